"""Exemplo de uso de KeystoreConfig.from_file()."""

from pathlib import Path

from keystore_manager import KeystoreConfig


def main() -> None:
    """Demonstra carga de configuracao via arquivo .env."""
    env_path = Path("example_keystore.env")
    env_path.write_text(
        "\n".join(
            [
                'KEYSTORE_DIR="keystore"',
                'KEYSTORE_FILE="deployer.json"',
                "KEYSTORE_SCRYPT_N=32768",
                "KEYSTORE_MIN_PASSPHRASE_LENGTH=12",
                'KEYSTORE_DESCRIPTION="Deployer key"',
                "",
            ]
        )
    )

    try:
        config = KeystoreConfig.from_file(str(env_path))
        print(f"Keystore: {config.keystore_path}")
        print(f"scrypt N: {config.scrypt_n}")
        print(f"Senha minima: {config.min_passphrase_length}")
    finally:
        env_path.unlink()


if __name__ == "__main__":
    main()
