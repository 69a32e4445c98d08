"""Exceções do gerenciador de keystore."""


class KeystoreError(Exception):
    """Erro específico do gerenciador de keystore."""

    pass


class InvalidFormatError(KeystoreError):
    """Chave privada com formato inválido."""

    pass


class PassphrasePolicyError(KeystoreError):
    """Senha curta demais ou confirmação divergente."""

    pass


class AuthenticationFailedError(KeystoreError):
    """Falha na descriptografia autenticada.

    Cobre tanto senha incorreta quanto envelope corrompido ou adulterado; as
    duas causas não são diferenciadas.
    """

    pass


class IntegrityCheckError(KeystoreError):
    """Verificação de ida e volta após a criptografia falhou."""

    pass


class EnvelopeFormatError(KeystoreError):
    """Arquivo de keystore ilegível ou com campos malformados."""

    pass
