"""Fixtures compartilhadas dos testes."""

import pytest

from keystore_manager import KeystoreConfig, KeystoreManager

SECRET = "1111111111111111111111111111111111111111111111111111111111111111"
PASSPHRASE = "correct-password"


@pytest.fixture
def fast_config(tmp_path):
    """Configuração com scrypt barato para acelerar os testes."""
    return KeystoreConfig(keystore_dir=str(tmp_path / "keystore"), scrypt_n=2**10)


@pytest.fixture
def manager(fast_config):
    manager = KeystoreManager(fast_config)
    yield manager
    manager.cleanup()
