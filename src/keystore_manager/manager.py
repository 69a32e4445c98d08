"""KeystoreManager - Envelope criptografado para chaves privadas."""

import gc
import logging
import os
from typing import List, Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .config import KeystoreConfig
from .envelope import ALGORITHM, Envelope, utc_timestamp
from .errors import (
    AuthenticationFailedError,
    EnvelopeFormatError,
    IntegrityCheckError,
    InvalidFormatError,
    KeystoreError,
    PassphrasePolicyError,
)
from .utils import BytesLike, SensitiveBytes, check_passphrase, scoped_sensitive

KEY_LENGTH = 32
SALT_LENGTH = 32
IV_LENGTH = 16
TAG_LENGTH = 16

# Mensagem única para senha errada e envelope adulterado
AUTHENTICATION_FAILED_MESSAGE = "Falha ao descriptografar: senha incorreta ou keystore corrompido"

SecretLike = Union[BytesLike, SensitiveBytes]

__all__ = [
    "KeystoreManager",
    "KeystoreError",
    "InvalidFormatError",
    "PassphrasePolicyError",
    "AuthenticationFailedError",
    "IntegrityCheckError",
    "EnvelopeFormatError",
]


class KeystoreManager:
    """Gerenciador de envelopes de keystore com scrypt + AES-256-GCM.

    Esta classe fornece:
    - Derivação de chave com scrypt a partir de senha + salt aleatório
    - Criptografia autenticada AES-256-GCM
    - Verificação de ida e volta antes de confiar em um envelope novo
    - Troca de senha gerando envelope novo (salt e iv novos)
    - Limpeza de material sensível da memória

    Cada operação é uma transformação isolada; nenhum estado de protocolo é
    mantido entre chamadas.

    Attributes:
        config: Configuração do gerenciador
    """

    def __init__(self, config: Optional[KeystoreConfig] = None):
        """Inicializa o KeystoreManager.

        Args:
            config: Configuração do gerenciador (usa padrões se None)
        """
        self.config = config or KeystoreConfig()
        self._logger = self.config.logger or logging.getLogger(__name__)

        # Buffers entregues ao chamador, zerados em cleanup()
        self._issued: List[SensitiveBytes] = []

    def derive_key(self, passphrase: SecretLike, salt: bytes) -> SensitiveBytes:
        """Deriva a chave simétrica de 32 bytes com scrypt.

        Determinística: mesma senha, mesmo salt e mesmos parâmetros geram a
        mesma chave, o que permite descriptografar sem guardar a chave.

        Args:
            passphrase: Senha do operador
            salt: Salt do envelope

        Returns:
            SensitiveBytes: Chave derivada (o chamador deve zerá-la)
        """
        kdf = Scrypt(
            salt=bytes(salt),
            length=KEY_LENGTH,
            n=self.config.scrypt_n,
            r=self.config.scrypt_r,
            p=self.config.scrypt_p,
        )
        with scoped_sensitive(passphrase) as secret_passphrase:
            # Convert bytearray to bytes for scrypt
            return SensitiveBytes(kdf.derive(bytes(secret_passphrase)))

    def encrypt(self, secret: SecretLike, passphrase: SecretLike, hint: Optional[str] = None) -> Envelope:
        """Criptografa um segredo e monta o envelope completo.

        Não persiste nada; gravar o envelope é responsabilidade do chamador.

        Args:
            secret: Segredo já validado
            passphrase: Senha do operador
            hint: Lembrete opcional da senha

        Returns:
            Envelope: Envelope com salt e iv novos

        Raises:
            PassphrasePolicyError: Se a senha não atender a política

        Examples:
            >>> envelope = manager.encrypt(secret, "correct-password")
            >>> save_envelope(envelope, "keystore/wallet.json")
        """
        check_passphrase(passphrase, min_length=self.config.min_passphrase_length)

        salt = os.urandom(SALT_LENGTH)
        iv = os.urandom(IV_LENGTH)

        with self.derive_key(passphrase, salt) as key, scoped_sensitive(secret) as plaintext:
            sealed = AESGCM(bytes(key)).encrypt(iv, bytes(plaintext), None)

        envelope = Envelope(
            salt=salt,
            iv=iv,
            ciphertext=sealed[:-TAG_LENGTH],
            auth_tag=sealed[-TAG_LENGTH:],
            algorithm=ALGORITHM,
            created=utc_timestamp(),
            hint=hint or None,
            description=self.config.description,
            environment=self.config.environment,
        )

        self._audit("encryption", {"algorithm": ALGORITHM, "size": len(secret)})
        self._logger.debug("Envelope criado")

        return envelope

    def decrypt(self, envelope: Envelope, passphrase: SecretLike) -> SensitiveBytes:
        """Descriptografa um envelope com a senha do operador.

        Senha incorreta e envelope corrompido produzem o mesmo erro, para não
        servir de oráculo a quem tenta adivinhar senhas.

        Args:
            envelope: Envelope a abrir
            passphrase: Senha do operador

        Returns:
            SensitiveBytes: Segredo original (o chamador deve zerá-lo)

        Raises:
            AuthenticationFailedError: Se a tag não conferir ou a cifra falhar
        """
        with self.derive_key(passphrase, envelope.salt) as key:
            try:
                plaintext = AESGCM(bytes(key)).decrypt(
                    envelope.iv, envelope.ciphertext + envelope.auth_tag, None
                )
            except (InvalidTag, ValueError) as exc:
                self._audit("decryption_failed", {"algorithm": envelope.algorithm})
                self._logger.warning("Falha na descriptografia autenticada do envelope")
                raise AuthenticationFailedError(AUTHENTICATION_FAILED_MESSAGE) from exc

        self._audit("decryption", {"algorithm": envelope.algorithm})

        return self._track(SensitiveBytes(plaintext))

    def verify_round_trip(
        self,
        secret: SecretLike,
        passphrase: SecretLike,
        envelope: Optional[Envelope] = None,
    ) -> bool:
        """Confere que o envelope abre e devolve exatamente o segredo.

        Args:
            secret: Segredo original
            passphrase: Senha usada na criptografia
            envelope: Envelope recém criado (se None, criptografa um novo)

        Returns:
            bool: True se a descriptografia devolveu o segredo original
        """
        if envelope is None:
            envelope = self.encrypt(secret, passphrase)

        try:
            with self.decrypt(envelope, passphrase) as recovered:
                return recovered == secret
        except AuthenticationFailedError:
            return False

    def seal(self, secret: SecretLike, passphrase: SecretLike, hint: Optional[str] = None) -> Envelope:
        """Criptografa e verifica o envelope antes de devolvê-lo.

        Raises:
            PassphrasePolicyError: Se a senha não atender a política
            IntegrityCheckError: Se a verificação de ida e volta falhar
        """
        envelope = self.encrypt(secret, passphrase, hint=hint)

        if not self.verify_round_trip(secret, passphrase, envelope=envelope):
            self._logger.error("Verificação de integridade do envelope falhou")
            raise IntegrityCheckError(
                "Verificação da criptografia falhou: o envelope não devolveu a chave original"
            )

        self._logger.info("Envelope criado e verificado com sucesso")
        return envelope

    def rekey(
        self,
        envelope: Envelope,
        old_passphrase: SecretLike,
        new_passphrase: SecretLike,
        hint: Optional[str] = None,
    ) -> Envelope:
        """Gera um envelope novo protegido por outra senha.

        O envelope original não é alterado.

        Raises:
            AuthenticationFailedError: Se a senha antiga não abrir o envelope
            PassphrasePolicyError: Se a nova senha não atender a política
            IntegrityCheckError: Se a verificação do novo envelope falhar
        """
        check_passphrase(new_passphrase, min_length=self.config.min_passphrase_length)

        with self.decrypt(envelope, old_passphrase) as secret:
            new_envelope = self.seal(secret, new_passphrase, hint=hint)

        self._audit("rekey", {"algorithm": new_envelope.algorithm})
        self._logger.info("Senha do keystore substituída")
        return new_envelope

    def _track(self, buf: SensitiveBytes) -> SensitiveBytes:
        self._issued.append(buf)
        return buf

    def _audit(self, event: str, metadata: dict) -> None:
        """Registra evento de auditoria se callback configurado.

        Args:
            event: Nome do evento (e.g., "encryption", "decryption", "rekey")
            metadata: Metadados do evento (nunca contém material sensível)
        """
        if self.config.audit_callback:
            try:
                self.config.audit_callback(event, metadata)
            except Exception as e:
                self._logger.warning(f"Erro no callback de auditoria: {e}")

    def cleanup(self) -> None:
        """Zera os segredos devolvidos por este gerenciador.

        SECURITY: chama wipe() em todos os buffers ainda rastreados e força a
        coleta de lixo. Deve ser chamado pelo chamador de mais alto nível em
        todos os caminhos de saída (tipicamente em um bloco finally).

        PYTHON GC LIMITATIONS:
        - Cópias imutáveis (str, bytes) criadas no caminho podem continuar na memória
        - Isto é segurança de melhor esforço, não uma garantia
        """
        for buf in self._issued:
            buf.wipe()
        self._issued.clear()

        gc.collect()

        self._logger.debug("Material sensível removido da memória")
