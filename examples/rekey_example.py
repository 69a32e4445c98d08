"""Exemplo de troca de senha de um keystore."""

import logging
import tempfile
from pathlib import Path

from keystore_manager import KeystoreConfig, KeystoreManager, load_envelope, save_envelope

# Configurar logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    """Demonstra a troca de senha gerando um envelope novo."""

    print("\n=== KeystoreManager - Troca de Senha ===\n")

    config = KeystoreConfig(keystore_dir=tempfile.mkdtemp(), logger=logger)
    manager = KeystoreManager(config)
    path = Path(config.keystore_path)

    try:
        # 1. Keystore inicial
        print("1. Criando keystore com a senha antiga...")
        original = manager.seal("ab" * 32, "old-password")
        save_envelope(original, path)
        print(f"   salt: {original.to_dict()['salt'][:16]}...")

        # 2. Trocar a senha
        print("\n2. Trocando a senha...")
        rekeyed = manager.rekey(load_envelope(path), "old-password", "new-stronger-password")
        save_envelope(rekeyed, path, overwrite=True)
        print(f"   salt: {rekeyed.to_dict()['salt'][:16]}... (novo)")
        print(f"   iv mudou: {rekeyed.iv != original.iv}")

        # 3. Conferir
        print("\n3. Conferindo com a nova senha...")
        ok = manager.verify_round_trip("ab" * 32, "new-stronger-password", envelope=load_envelope(path))
        print(f"   ✓ Verificado: {ok}")
    finally:
        manager.cleanup()

    print("\n=== Fim do exemplo ===\n")


if __name__ == "__main__":
    main()
