"""Envelope de keystore: formato em disco e persistência."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .errors import EnvelopeFormatError
from .utils import atomic_write_json, from_hex, read_json, to_hex

ALGORITHM = "aes-256-gcm"
ENVELOPE_VERSION = 2

# Nome do campo de ciphertext gravado pela ferramenta de importação antiga
LEGACY_CIPHERTEXT_FIELD = "encrypted"

_logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """Timestamp ISO-8601 em UTC com milissegundos e sufixo Z."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Envelope:
    """Registro persistido de um segredo criptografado.

    Envelopes nunca são alterados no lugar: uma nova criptografia sempre
    gera outro envelope com salt e iv novos.

    Attributes:
        salt: Salt aleatório da derivação de chave
        iv: Nonce do AES-GCM
        ciphertext: Segredo criptografado (sem a tag)
        auth_tag: Tag de autenticação do GCM
        algorithm: Identificador da cifra (sempre "aes-256-gcm")
        version: Versão do formato do envelope
        created: Data de criação (ISO-8601 UTC)
        hint: Lembrete opcional da senha escolhido pelo operador
        description: Texto livre
        environment: Ambiente onde o envelope foi criado
    """

    salt: bytes
    iv: bytes
    ciphertext: bytes
    auth_tag: bytes
    algorithm: str = ALGORITHM
    version: int = ENVELOPE_VERSION
    created: str = ""
    hint: Optional[str] = None
    description: str = ""
    environment: str = ""

    def __post_init__(self) -> None:
        if self.algorithm != ALGORITHM:
            raise EnvelopeFormatError(
                f"Algoritmo não suportado: '{self.algorithm}'. Esperado: '{ALGORITHM}'"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Serializa no formato JSON do keystore (campos binários em hex minúsculo)."""
        return {
            "ciphertext": to_hex(self.ciphertext),
            "iv": to_hex(self.iv),
            "salt": to_hex(self.salt),
            "authTag": to_hex(self.auth_tag),
            "algorithm": self.algorithm,
            "version": self.version,
            "created": self.created,
            "hint": self.hint,
            "description": self.description,
            "environment": self.environment,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: Any) -> "Envelope":
        """Reconstrói um envelope a partir do JSON do keystore.

        Aceita o campo legado ``encrypted`` no lugar de ``ciphertext``.

        Raises:
            EnvelopeFormatError: Se faltar algum campo ou algum valor for inválido
        """
        if not isinstance(data, dict):
            raise EnvelopeFormatError("Envelope deve ser um objeto JSON")

        ciphertext = data.get("ciphertext", data.get(LEGACY_CIPHERTEXT_FIELD))
        required = {
            "ciphertext": ciphertext,
            "iv": data.get("iv"),
            "salt": data.get("salt"),
            "authTag": data.get("authTag"),
            "algorithm": data.get("algorithm"),
        }
        missing = [name for name, value in required.items() if value is None]
        if missing:
            raise EnvelopeFormatError(f"Campos obrigatórios ausentes no envelope: {missing}")

        hint = data.get("hint")
        if hint is not None and not isinstance(hint, str):
            raise EnvelopeFormatError("Campo 'hint' deve ser string ou null")

        try:
            return cls(
                salt=from_hex(required["salt"], "salt"),
                iv=from_hex(required["iv"], "iv"),
                ciphertext=from_hex(ciphertext, "ciphertext"),
                auth_tag=from_hex(required["authTag"], "authTag"),
                algorithm=required["algorithm"],
                version=int(data.get("version", ENVELOPE_VERSION)),
                created=str(data.get("created") or ""),
                hint=hint,
                description=str(data.get("description") or ""),
                environment=str(data.get("environment") or ""),
            )
        except (TypeError, ValueError) as exc:
            raise EnvelopeFormatError(f"Envelope inválido: {exc}") from exc

    @classmethod
    def from_json(cls, text: str) -> "Envelope":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise EnvelopeFormatError(f"Envelope não é JSON válido: {exc}") from exc
        return cls.from_dict(data)


def load_envelope(path: Union[str, Path]) -> Envelope:
    """Lê um envelope do disco.

    Raises:
        FileNotFoundError: Se o arquivo não existir
        EnvelopeFormatError: Se o conteúdo for inválido
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Keystore não encontrado: {path}")

    try:
        data = read_json(path)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise EnvelopeFormatError(f"Keystore ilegível ({path}): {exc}") from exc

    envelope = Envelope.from_dict(data)
    _logger.debug(f"Envelope carregado de: {path}")
    return envelope


def save_envelope(envelope: Envelope, path: Union[str, Path], overwrite: bool = False) -> Path:
    """Persiste o envelope em uma única escrita atômica.

    Args:
        envelope: Envelope completo
        path: Arquivo de destino (o diretório é criado se necessário)
        overwrite: Se True, substitui um keystore existente

    Returns:
        Path: Caminho gravado

    Raises:
        FileExistsError: Se o arquivo existir e overwrite for False
    """
    path = Path(path)
    atomic_write_json(path, envelope.to_dict(), overwrite=overwrite)
    _logger.info(f"Envelope persistido em: {path}")
    return path
