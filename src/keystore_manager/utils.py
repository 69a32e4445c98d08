"""Funções auxiliares para o KeystoreManager."""

import hmac
import json
import os
import re
import tempfile
from contextlib import nullcontext
from pathlib import Path
from typing import Any, ContextManager, Mapping, Optional, Union

from .errors import InvalidFormatError, PassphrasePolicyError

HEX_SECRET_LENGTH = 64

_HEX_SECRET_RE = re.compile(r"[0-9a-fA-F]{64}")
_WHITESPACE_RE = re.compile(r"\s+")

BytesLike = Union[bytes, bytearray, memoryview, str]


class SensitiveBytes:
    """Buffer mutável para material sensível com limpeza explícita.

    NOTA DE SEGURANÇA: o conteúdo fica em um bytearray para poder ser zerado
    quando não for mais necessário. Use como context manager para garantir a
    limpeza em todos os caminhos de saída (retorno normal, erro ou exceção)::

        with SensitiveBytes(passphrase) as buf:
            kdf.derive(bytes(buf))

    É segurança de melhor esforço: objetos str e bytes imutáveis usados para
    construir o buffer continuam na memória até o coletor de lixo liberá-los.
    """

    __slots__ = ("_buf", "_wiped")

    def __init__(self, data: BytesLike) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        elif not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"Dados sensíveis devem ser str ou bytes, recebido: {type(data)}")
        self._buf = bytearray(data)
        self._wiped = False

    def __enter__(self) -> "SensitiveBytes":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.wipe()

    def __bytes__(self) -> bytes:
        self._ensure_alive()
        return bytes(self._buf)

    def __len__(self) -> int:
        return len(self._buf)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SensitiveBytes):
            other = other._buf
        elif isinstance(other, str):
            other = other.encode("utf-8")
        if not isinstance(other, (bytes, bytearray, memoryview)):
            return NotImplemented
        return hmac.compare_digest(bytes(self._buf), bytes(other))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        state = "wiped" if self._wiped else f"{len(self._buf)} bytes"
        return f"SensitiveBytes(<{state}>)"

    @property
    def wiped(self) -> bool:
        return self._wiped

    def _ensure_alive(self) -> None:
        if self._wiped:
            raise ValueError("Buffer sensível já foi zerado")

    def reveal(self) -> str:
        """Decodifica o conteúdo como UTF-8 (cria uma cópia str não zerável)."""
        self._ensure_alive()
        return self._buf.decode("utf-8")

    def char_count(self) -> int:
        """Conta code points UTF-8 sem decodificar o buffer."""
        return sum(1 for b in self._buf if b & 0xC0 != 0x80)

    def wipe(self) -> None:
        """Sobrescreve o buffer com zeros.

        Após chamar wipe(), o conteúdo não pode mais ser lido.
        """
        for i in range(len(self._buf)):
            self._buf[i] = 0
        self._wiped = True


def scoped_sensitive(data: Union[BytesLike, SensitiveBytes]) -> ContextManager[SensitiveBytes]:
    """Context manager que zera apenas as cópias criadas aqui.

    Buffers SensitiveBytes recebidos pertencem ao chamador e não são zerados.
    """
    if isinstance(data, SensitiveBytes):
        return nullcontext(data)
    return SensitiveBytes(data)


def validate_secret(secret_input: Optional[str]) -> SensitiveBytes:
    """Valida e normaliza uma chave privada hexadecimal.

    Remove todos os espaços em branco e um prefixo opcional ``0x``/``0X``.
    O restante deve ter exatamente 64 caracteres hexadecimais. A caixa das
    letras é preservada.

    Args:
        secret_input: Chave digitada pelo operador

    Returns:
        SensitiveBytes: Chave normalizada em ASCII

    Raises:
        InvalidFormatError: Se a entrada não for uma chave válida

    Examples:
        >>> validate_secret("0x" + "a" * 64).reveal() == "a" * 64
        True
    """
    if not secret_input or not isinstance(secret_input, str):
        raise InvalidFormatError("Nenhuma chave privada informada")

    cleaned = _WHITESPACE_RE.sub("", secret_input)
    if cleaned[:2] in ("0x", "0X"):
        cleaned = cleaned[2:]

    if not _HEX_SECRET_RE.fullmatch(cleaned):
        raise InvalidFormatError(
            f"Formato de chave privada inválido. "
            f"Esperado: {HEX_SECRET_LENGTH} caracteres hexadecimais (com ou sem 0x)"
        )

    return SensitiveBytes(cleaned)


def is_valid_secret(secret: Union[BytesLike, SensitiveBytes]) -> bool:
    """Verifica se um segredo já normalizado tem o formato de chave privada."""
    raw = bytes(secret)
    if len(raw) != HEX_SECRET_LENGTH:
        return False
    return _HEX_SECRET_RE.fullmatch(raw.decode("ascii", "replace")) is not None


def check_passphrase(
    passphrase: Union[BytesLike, SensitiveBytes],
    confirmation: Optional[Union[BytesLike, SensitiveBytes]] = None,
    min_length: int = 8,
) -> None:
    """Aplica a política de senha.

    Args:
        passphrase: Senha do operador
        confirmation: Confirmação digitada (opcional)
        min_length: Comprimento mínimo em caracteres

    Raises:
        PassphrasePolicyError: Se a senha for curta ou a confirmação não conferir
    """
    with scoped_sensitive(passphrase) as buf:
        if buf.char_count() < min_length:
            raise PassphrasePolicyError(f"A senha deve ter pelo menos {min_length} caracteres")

        if confirmation is not None:
            with scoped_sensitive(confirmation) as other:
                if buf != other:
                    raise PassphrasePolicyError("As senhas não conferem")


def to_hex(data: bytes) -> str:
    """Codifica bytes em hexadecimal minúsculo."""
    return bytes(data).hex()


def from_hex(value: Any, field: str) -> bytes:
    """Decodifica um campo hexadecimal do envelope.

    Raises:
        ValueError: Se o valor não for uma string hexadecimal
    """
    if not isinstance(value, str):
        raise ValueError(f"Campo '{field}' deve ser string hexadecimal, recebido: {type(value)}")
    try:
        return bytes.fromhex(value)
    except ValueError as exc:
        raise ValueError(f"Campo '{field}' não é hexadecimal válido") from exc


def atomic_write_json(path: Path, data: Mapping[str, Any], overwrite: bool = False) -> None:
    """Grava um documento JSON de forma atômica.

    O conteúdo completo é escrito em um arquivo temporário no mesmo
    diretório e então movido sobre o destino com ``os.replace``. Em caso de
    erro o temporário é removido e o destino permanece intacto.

    Args:
        path: Arquivo de destino
        data: Documento a serializar
        overwrite: Se False, recusa sobrescrever um arquivo existente

    Raises:
        FileExistsError: Se o destino existir e overwrite for False
    """
    path = Path(path)
    if path.exists() and not overwrite:
        raise FileExistsError(f"Arquivo já existe: {path}")

    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(data, indent=2) + "\n"

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def read_json(path: Path) -> Any:
    """Lê um documento JSON em UTF-8."""
    with Path(path).open("r", encoding="utf-8", errors="strict") as f:
        return json.load(f)
