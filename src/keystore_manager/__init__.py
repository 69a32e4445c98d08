"""KeystoreManager - Keystore criptografado para chaves privadas.

Este pacote fornece:
- Validação de chaves privadas hexadecimais (64 caracteres, 0x opcional)
- Derivação de chave scrypt a partir de senha + salt aleatório
- Criptografia autenticada AES-256-GCM
- Envelope JSON autodescritivo gravado de forma atômica
- Limpeza explícita de material sensível da memória
"""

from .config import KeystoreConfig
from .envelope import Envelope, load_envelope, save_envelope
from .errors import (
    AuthenticationFailedError,
    EnvelopeFormatError,
    IntegrityCheckError,
    InvalidFormatError,
    KeystoreError,
    PassphrasePolicyError,
)
from .manager import KeystoreManager
from .utils import SensitiveBytes, check_passphrase, validate_secret

__version__ = "0.1.0"

__all__ = [
    # Classes principais
    "KeystoreManager",
    "Envelope",
    # Configuração
    "KeystoreConfig",
    # Persistência
    "load_envelope",
    "save_envelope",
    # Erros
    "KeystoreError",
    "InvalidFormatError",
    "PassphrasePolicyError",
    "AuthenticationFailedError",
    "IntegrityCheckError",
    "EnvelopeFormatError",
    # Utilidades
    "SensitiveBytes",
    "check_passphrase",
    "validate_secret",
]
