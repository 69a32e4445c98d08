"""Configurações e dataclasses para o KeystoreManager."""

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Self

from dotenv import dotenv_values

# Parâmetros padrão do scrypt usados pelos keystores existentes
DEFAULT_SCRYPT_N = 2**14
DEFAULT_SCRYPT_R = 8
DEFAULT_SCRYPT_P = 1

MIN_PASSPHRASE_LENGTH = 8

ENV_PREFIX = "KEYSTORE_"

# variável de ambiente -> (campo, conversor)
_ENV_FIELDS: Dict[str, tuple] = {
    "DIR": ("keystore_dir", str),
    "FILE": ("keystore_file", str),
    "SCRYPT_N": ("scrypt_n", int),
    "SCRYPT_R": ("scrypt_r", int),
    "SCRYPT_P": ("scrypt_p", int),
    "MIN_PASSPHRASE_LENGTH": ("min_passphrase_length", int),
    "DESCRIPTION": ("description", str),
    "ENVIRONMENT": ("environment", str),
}


def _default_environment() -> str:
    return platform.system().lower() or "unknown"


@dataclass
class KeystoreConfig:
    """Configuração do KeystoreManager.

    Attributes:
        keystore_dir: Diretório onde o envelope é gravado (padrão: keystore)
        keystore_file: Nome do arquivo do envelope (padrão: wallet.json)
        scrypt_n: Fator de custo CPU/memória do scrypt (potência de 2, padrão: 16384)
        scrypt_r: Tamanho de bloco do scrypt (padrão: 8)
        scrypt_p: Paralelização do scrypt (padrão: 1)
        min_passphrase_length: Comprimento mínimo da senha (nunca menor que 8)
        description: Texto livre gravado no envelope
        environment: Ambiente gravado no envelope (padrão: sistema operacional)
        audit_callback: Callback opcional para auditoria de eventos
        logger: Logger opcional para mensagens (usa logging padrão se None)
    """

    keystore_dir: str = "keystore"
    keystore_file: str = "wallet.json"
    scrypt_n: int = DEFAULT_SCRYPT_N
    scrypt_r: int = DEFAULT_SCRYPT_R
    scrypt_p: int = DEFAULT_SCRYPT_P
    min_passphrase_length: int = MIN_PASSPHRASE_LENGTH
    description: str = "Private Key Keystore"
    environment: str = field(default_factory=_default_environment)
    audit_callback: Optional[Callable] = None
    logger: Optional[Any] = None  # logging.Logger

    def __post_init__(self) -> None:
        """Valida configuração após inicialização."""
        if self.scrypt_n <= 1 or self.scrypt_n & (self.scrypt_n - 1):
            raise ValueError(f"scrypt_n deve ser potência de 2 maior que 1, recebido: {self.scrypt_n}")

        if self.scrypt_r < 1 or self.scrypt_p < 1:
            raise ValueError("scrypt_r e scrypt_p devem ser positivos")

        if self.min_passphrase_length < MIN_PASSPHRASE_LENGTH:
            raise ValueError(
                f"Comprimento mínimo da senha não pode ser menor que {MIN_PASSPHRASE_LENGTH}"
            )

        if not self.keystore_file or Path(self.keystore_file).name != self.keystore_file:
            raise ValueError(f"Nome de arquivo do keystore inválido: '{self.keystore_file}'")

    @property
    def keystore_path(self) -> Path:
        """Caminho completo do envelope."""
        return Path(self.keystore_dir) / self.keystore_file

    @classmethod
    def from_environment(cls, prefix: str = ENV_PREFIX, **kwargs: Any) -> Self:
        """Cria configuração a partir de variáveis de ambiente.

        Formato esperado:
            KEYSTORE_DIR=keystore
            KEYSTORE_FILE=wallet.json
            KEYSTORE_SCRYPT_N=16384
            KEYSTORE_MIN_PASSPHRASE_LENGTH=12

        Variáveis ausentes mantêm o valor padrão.

        Args:
            prefix: Prefixo das variáveis (padrão: KEYSTORE_)
            **kwargs: Argumentos adicionais para KeystoreConfig

        Returns:
            KeystoreConfig configurado a partir do ambiente

        Raises:
            ValueError: Se algum valor for inválido
        """
        return cls._from_mapping(os.environ, prefix=prefix, **kwargs)

    @classmethod
    def from_file(cls, filename: str, prefix: str = ENV_PREFIX, **kwargs: Any) -> Self:
        """Cria configuração a partir de um arquivo .env.

        Args:
            filename: Caminho do arquivo .env
            prefix: Prefixo das variáveis (padrão: KEYSTORE_)
            **kwargs: Argumentos adicionais para KeystoreConfig

        Returns:
            KeystoreConfig configurado a partir do arquivo

        Raises:
            FileNotFoundError: Se o arquivo não existir
            ValueError: Se algum valor for inválido
        """
        env_path = Path(filename)
        if not env_path.exists():
            raise FileNotFoundError(f"Arquivo .env não encontrado: {filename}")

        with env_path.open("r", encoding="utf-8", errors="strict") as f:
            data = {k: v for k, v in dotenv_values(stream=f).items() if v is not None}

        return cls._from_mapping(data, prefix=prefix, **kwargs)

    @classmethod
    def _from_mapping(cls, mapping: Mapping[str, str], prefix: str = ENV_PREFIX, **kwargs: Any) -> Self:
        """Cria configuração a partir de um mapeamento de variáveis."""
        values: Dict[str, Any] = {}

        for suffix, (attr, convert) in _ENV_FIELDS.items():
            raw = mapping.get(f"{prefix}{suffix}")
            if raw is None or raw == "":
                continue

            # Remover aspas (problema comum com dotenv)
            raw = raw.strip().strip("\"'")
            try:
                values[attr] = convert(raw)
            except ValueError as exc:
                raise ValueError(f"Valor inválido para {prefix}{suffix}: '{raw}'") from exc

        values.update(kwargs)
        return cls(**values)
