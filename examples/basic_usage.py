"""Exemplo básico de uso do KeystoreManager."""

import logging
import tempfile
from pathlib import Path

from keystore_manager import (
    AuthenticationFailedError,
    KeystoreConfig,
    KeystoreManager,
    load_envelope,
    save_envelope,
    validate_secret,
)

# Configurar logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    """Demonstra criação, gravação e abertura de um keystore."""

    print("\n=== KeystoreManager - Exemplo Básico ===\n")

    workdir = Path(tempfile.mkdtemp())

    # 1. Criar configuração
    print("1. Criando configuração...")
    config = KeystoreConfig(keystore_dir=str(workdir), logger=logger)
    print(f"   Keystore: {config.keystore_path}")

    manager = KeystoreManager(config)

    try:
        # 2. Validar a chave privada
        print("\n2. Validando chave privada...")
        with validate_secret("0x" + "11" * 32) as secret:
            print(f"   ✓ Chave válida ({len(secret)} caracteres)")

            # 3. Criptografar e verificar
            print("\n3. Criptografando com AES-256-GCM + scrypt...")
            envelope = manager.seal(secret, "correct-password", hint="exemplo")

        # 4. Persistir
        print("\n4. Gravando envelope...")
        save_envelope(envelope, config.keystore_path)
        for key, value in envelope.to_dict().items():
            print(f"   {key}: {value}")

        # 5. Abrir com a senha correta
        print("\n5. Abrindo keystore com a senha correta...")
        loaded = load_envelope(config.keystore_path)
        with manager.decrypt(loaded, "correct-password") as recovered:
            print(f"   ✓ Chave recuperada: {recovered.reveal()[:8]}...")

        # 6. Senha errada
        print("\n6. Tentando senha errada...")
        try:
            manager.decrypt(loaded, "wrong-password")
        except AuthenticationFailedError as exc:
            print(f"   ✓ Rejeitada: {exc}")
    finally:
        # 7. Limpar material sensível
        print("\n7. Limpando material sensível da memória...")
        manager.cleanup()
        print("   ✓ Limpeza de segurança concluída")

    print("\n=== Fim do exemplo ===\n")


if __name__ == "__main__":
    main()
