"""Ferramenta de linha de comando para importar e verificar keystores."""

import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

import click

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
from .utils import SensitiveBytes, check_passphrase, is_valid_secret, validate_secret

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_INTEGRITY = 3

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _fail(message: str, code: int = EXIT_FAILURE) -> NoReturn:
    click.echo(f"✗ {message}", err=True)
    sys.exit(code)


def _prompt_hidden(text: str) -> SensitiveBytes:
    # click devolve str; o buffer recebe a cópia que pode ser zerada
    return SensitiveBytes(click.prompt(text, hide_input=True, default="", show_default=False))


def _keystore_path(config: KeystoreConfig, keystore: Optional[str]) -> Path:
    return Path(keystore) if keystore else config.keystore_path


def _load(path: Path) -> Envelope:
    try:
        return load_envelope(path)
    except FileNotFoundError:
        _fail(f"Keystore não encontrado: {path}")
    except OSError as exc:
        _fail(f"Não foi possível ler o keystore: {exc}")
    except EnvelopeFormatError as exc:
        _fail(str(exc))


def _show_hint(envelope: Envelope) -> None:
    if envelope.hint:
        click.echo(f"Dica da senha: {envelope.hint}")


keystore_option = click.option(
    "--keystore",
    "keystore",
    type=click.Path(dir_okay=False),
    default=None,
    help="Arquivo do keystore (padrão: KEYSTORE_DIR/KEYSTORE_FILE).",
)


@click.group(invoke_without_command=True)
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Carrega a configuração de um arquivo .env.",
)
@click.option("-v", "--verbose", is_flag=True, help="Habilita logs de depuração.")
@click.pass_context
def main(ctx: click.Context, env_file: Optional[str], verbose: bool) -> None:
    """Importa uma chave privada para um keystore criptografado (AES-256-GCM + scrypt).

    Sem subcomando, executa 'import'.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)

    try:
        config = KeystoreConfig.from_file(env_file) if env_file else KeystoreConfig.from_environment()
    except (ValueError, OSError) as exc:
        raise click.UsageError(f"Configuração inválida: {exc}") from exc

    ctx.obj = config

    if ctx.invoked_subcommand is None:
        ctx.invoke(import_key)


@main.command("import")
@keystore_option
@click.option("--force", is_flag=True, help="Sobrescreve um keystore existente sem perguntar.")
@click.pass_obj
def import_key(config: KeystoreConfig, keystore: Optional[str], force: bool) -> None:
    """Criptografa uma chave privada e grava o keystore."""
    path = _keystore_path(config, keystore)
    manager = KeystoreManager(config)

    click.echo("🔐 Importação de chave privada")
    click.echo("=" * 40)

    try:
        if path.exists() and not force:
            if not click.confirm(f"Keystore {path} já existe. Sobrescrever?", default=False):
                _fail("Keystore existente preservado.")

        secret_input = click.prompt(
            "Chave privada (com ou sem 0x)", hide_input=True, default="", show_default=False
        )
        with validate_secret(secret_input) as secret:
            del secret_input
            click.echo("✓ Formato de chave privada válido.\n")

            with _prompt_hidden(
                f"Senha para criptografar o keystore (mín. {config.min_passphrase_length} caracteres)"
            ) as passphrase:
                check_passphrase(passphrase, min_length=config.min_passphrase_length)
                with _prompt_hidden("Confirme a senha") as confirmation:
                    check_passphrase(
                        passphrase, confirmation, min_length=config.min_passphrase_length
                    )

                hint = click.prompt(
                    "Dica de senha (opcional, Enter para pular)", default="", show_default=False
                ).strip()

                click.echo("\n🔒 Criptografando chave privada com AES-256-GCM...")
                envelope = manager.seal(secret, passphrase, hint=hint or None)

        save_envelope(envelope, path, overwrite=True)
    except InvalidFormatError as exc:
        _fail(
            f"{exc}\n"
            "  Exemplo: 0x1234567890abcdef1234567890abcdef1234567890abcdef1234567890abcdef\n"
            "  Ou:      1234567890abcdef1234567890abcdef1234567890abcdef1234567890abcdef"
        )
    except PassphrasePolicyError as exc:
        _fail(str(exc))
    except IntegrityCheckError as exc:
        _fail(str(exc), code=EXIT_INTEGRITY)
    except KeystoreError as exc:
        _fail(str(exc))
    except OSError as exc:
        _fail(f"Não foi possível gravar o keystore: {exc}")
    except click.Abort:
        _fail("Importação cancelada pelo usuário.")
    finally:
        manager.cleanup()

    click.echo("✓ Chave privada criptografada e armazenada!")
    click.echo(f"📁 Keystore: {path}")
    click.echo("\n🛡️  Recursos de segurança:")
    click.echo("- Criptografia AES-256-GCM com salt aleatório")
    click.echo("- Derivação de chave scrypt (chave de 32 bytes)")
    click.echo("- Tag de autenticação para verificação de integridade")
    click.echo("- Entrada oculta (nada exibido no terminal)")
    click.echo("- Limpeza de memória realizada")
    click.echo("\n⚠️  Notas importantes:")
    click.echo("- Guarde sua senha: ela não pode ser recuperada")
    click.echo("- Faça backup seguro do arquivo de keystore")
    click.echo("- Nunca compartilhe o keystore junto com a senha")


@main.command("verify")
@keystore_option
@click.pass_obj
def verify_keystore(config: KeystoreConfig, keystore: Optional[str]) -> None:
    """Confere que a senha abre o keystore (a chave nunca é exibida)."""
    path = _keystore_path(config, keystore)
    envelope = _load(path)
    manager = KeystoreManager(config)

    try:
        _show_hint(envelope)
        with _prompt_hidden("Senha do keystore") as passphrase:
            with manager.decrypt(envelope, passphrase) as secret:
                valid = is_valid_secret(secret)
    except AuthenticationFailedError as exc:
        _fail(str(exc))
    except click.Abort:
        _fail("Verificação cancelada pelo usuário.")
    finally:
        manager.cleanup()

    if not valid:
        _fail("O keystore abriu, mas o conteúdo não é uma chave privada válida.")

    click.echo(f"✓ Keystore verificado: {path}")
    click.echo(f"  Criado em: {envelope.created or 'desconhecido'}")


@main.command("rekey")
@keystore_option
@click.pass_obj
def rekey_keystore(config: KeystoreConfig, keystore: Optional[str]) -> None:
    """Troca a senha do keystore gerando um envelope novo."""
    path = _keystore_path(config, keystore)
    envelope = _load(path)
    manager = KeystoreManager(config)

    try:
        _show_hint(envelope)
        with _prompt_hidden("Senha atual") as old_passphrase, _prompt_hidden(
            f"Nova senha (mín. {config.min_passphrase_length} caracteres)"
        ) as new_passphrase:
            check_passphrase(new_passphrase, min_length=config.min_passphrase_length)
            with _prompt_hidden("Confirme a nova senha") as confirmation:
                check_passphrase(
                    new_passphrase, confirmation, min_length=config.min_passphrase_length
                )

            hint = click.prompt(
                "Nova dica de senha (opcional)", default=envelope.hint or "", show_default=False
            ).strip()

            new_envelope = manager.rekey(envelope, old_passphrase, new_passphrase, hint=hint or None)

        save_envelope(new_envelope, path, overwrite=True)
    except IntegrityCheckError as exc:
        _fail(str(exc), code=EXIT_INTEGRITY)
    except KeystoreError as exc:
        _fail(str(exc))
    except OSError as exc:
        _fail(f"Não foi possível gravar o keystore: {exc}")
    except click.Abort:
        _fail("Troca de senha cancelada pelo usuário.")
    finally:
        manager.cleanup()

    click.echo(f"✓ Senha do keystore substituída: {path}")
