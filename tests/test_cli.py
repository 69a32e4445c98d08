"""Testes para a linha de comando."""

import json

import pytest
from click.testing import CliRunner

from keystore_manager import (
    KeystoreConfig,
    KeystoreManager,
    SensitiveBytes,
    load_envelope,
    save_envelope,
)
from keystore_manager.cli import main

from conftest import PASSPHRASE, SECRET


@pytest.fixture
def keystore_env(tmp_path, monkeypatch):
    """Aponta a CLI para um diretório temporário com scrypt barato."""
    for name in ("FILE", "SCRYPT_R", "SCRYPT_P", "MIN_PASSPHRASE_LENGTH", "DESCRIPTION", "ENVIRONMENT"):
        monkeypatch.delenv(f"KEYSTORE_{name}", raising=False)
    monkeypatch.setenv("KEYSTORE_DIR", str(tmp_path / "keystore"))
    monkeypatch.setenv("KEYSTORE_SCRYPT_N", "1024")
    return tmp_path / "keystore" / "wallet.json"


@pytest.fixture
def runner():
    return CliRunner()


def _cli_manager(tmp_path):
    return KeystoreManager(KeystoreConfig(keystore_dir=str(tmp_path / "keystore"), scrypt_n=1024))


def _lines(*values):
    return "\n".join(values) + "\n"


def test_import_without_arguments_writes_keystore(runner, keystore_env, tmp_path):
    """Testa o fluxo completo de importação sem argumentos."""
    result = runner.invoke(main, [], input=_lines("0x" + SECRET, PASSPHRASE, PASSPHRASE, "pet name"))

    assert result.exit_code == 0, result.output
    assert "Chave privada criptografada e armazenada" in result.output
    assert SECRET not in result.output
    assert PASSPHRASE not in result.output

    data = json.loads(keystore_env.read_text())
    assert data["algorithm"] == "aes-256-gcm"
    assert data["hint"] == "pet name"
    assert data["version"] == 2

    manager = _cli_manager(tmp_path)
    with manager.decrypt(load_envelope(keystore_env), PASSPHRASE) as recovered:
        assert recovered.reveal() == SECRET


def test_import_subcommand_with_explicit_path(runner, keystore_env, tmp_path):
    """Testa o subcomando import com --keystore e dica vazia."""
    target = tmp_path / "custom" / "deployer.json"
    result = runner.invoke(
        main, ["import", "--keystore", str(target)], input=_lines(SECRET, PASSPHRASE, PASSPHRASE, "")
    )

    assert result.exit_code == 0, result.output
    assert json.loads(target.read_text())["hint"] is None
    assert not keystore_env.exists()


@pytest.mark.parametrize(
    "answers,message",
    [
        (("not-a-key",), "Formato de chave privada inválido"),
        (("",), "Nenhuma chave privada informada"),
        ((SECRET, "short"), "pelo menos 8"),
        ((SECRET, PASSPHRASE, "different-password"), "não conferem"),
    ],
)
def test_import_failures_exit_nonzero_and_write_nothing(runner, keystore_env, answers, message):
    """Testa que erros de validação encerram sem gravar arquivo."""
    result = runner.invoke(main, ["import"], input=_lines(*answers))

    assert result.exit_code == 1
    assert message in result.output
    assert not keystore_env.exists()


def test_import_cancelled_writes_nothing(runner, keystore_env):
    """Testa cancelamento (EOF) no meio da importação."""
    result = runner.invoke(main, ["import"], input=_lines(SECRET))

    assert result.exit_code == 1
    assert "cancelada" in result.output
    assert not keystore_env.exists()


def test_import_integrity_failure_exits_with_code_3(runner, keystore_env, monkeypatch):
    """Testa que falha de integridade é fatal e não grava arquivo."""
    monkeypatch.setattr(KeystoreManager, "verify_round_trip", lambda self, *args, **kwargs: False)

    result = runner.invoke(main, ["import"], input=_lines(SECRET, PASSPHRASE, PASSPHRASE, ""))

    assert result.exit_code == 3
    assert "Verificação da criptografia falhou" in result.output
    assert not keystore_env.exists()


def test_import_existing_keystore_declined(runner, keystore_env, tmp_path):
    """Testa que um keystore existente só é substituído com confirmação."""
    manager = _cli_manager(tmp_path)
    original = manager.seal(SECRET, PASSPHRASE)
    save_envelope(original, keystore_env)

    result = runner.invoke(main, ["import"], input=_lines("n"))

    assert result.exit_code == 1
    assert "preservado" in result.output
    assert load_envelope(keystore_env) == original


def test_import_existing_keystore_force(runner, keystore_env, tmp_path):
    """Testa substituição com --force."""
    manager = _cli_manager(tmp_path)
    original = manager.seal(SECRET, PASSPHRASE)
    save_envelope(original, keystore_env)

    result = runner.invoke(
        main, ["import", "--force"], input=_lines("2" * 64, "another-password", "another-password", "")
    )

    assert result.exit_code == 0, result.output
    replaced = load_envelope(keystore_env)
    assert replaced.salt != original.salt
    with manager.decrypt(replaced, "another-password") as recovered:
        assert recovered.reveal() == "2" * 64


def test_verify_command(runner, keystore_env, tmp_path):
    """Testa verificação com senha correta e errada."""
    manager = _cli_manager(tmp_path)
    save_envelope(manager.seal(SECRET, PASSPHRASE, hint="lembrete"), keystore_env)

    ok = runner.invoke(main, ["verify"], input=_lines(PASSPHRASE))
    assert ok.exit_code == 0, ok.output
    assert "Keystore verificado" in ok.output
    assert "lembrete" in ok.output
    assert SECRET not in ok.output

    wrong = runner.invoke(main, ["verify"], input=_lines("wrong-password"))
    assert wrong.exit_code == 1
    assert "senha incorreta ou keystore corrompido" in wrong.output


def test_verify_missing_or_corrupt_keystore(runner, keystore_env):
    """Testa erros de leitura na verificação."""
    missing = runner.invoke(main, ["verify"])
    assert missing.exit_code == 1
    assert "Keystore não encontrado" in missing.output

    keystore_env.parent.mkdir(parents=True)
    keystore_env.write_text("{}")
    corrupt = runner.invoke(main, ["verify"])
    assert corrupt.exit_code == 1
    assert "ausentes" in corrupt.output


def test_rekey_command(runner, keystore_env, tmp_path):
    """Testa troca de senha pela CLI."""
    manager = _cli_manager(tmp_path)
    original = manager.seal(SECRET, PASSPHRASE, hint="antiga")
    save_envelope(original, keystore_env)

    result = runner.invoke(
        main, ["rekey"], input=_lines(PASSPHRASE, "another-password", "another-password", "")
    )

    assert result.exit_code == 0, result.output
    rekeyed = load_envelope(keystore_env)
    assert rekeyed.salt != original.salt
    assert rekeyed.hint == "antiga"
    with manager.decrypt(rekeyed, "another-password") as recovered:
        assert recovered.reveal() == SECRET


def test_rekey_wrong_passphrase_keeps_file(runner, keystore_env, tmp_path):
    """Testa que senha atual errada não altera o keystore."""
    manager = _cli_manager(tmp_path)
    original = manager.seal(SECRET, PASSPHRASE)
    save_envelope(original, keystore_env)

    result = runner.invoke(
        main, ["rekey"], input=_lines("wrong-password", "another-password", "another-password", "")
    )

    assert result.exit_code == 1
    assert load_envelope(keystore_env) == original


def test_env_file_option(runner, keystore_env, tmp_path):
    """Testa carga de configuração via --env-file."""
    env_file = tmp_path / "keystore.env"
    env_file.write_text(f'KEYSTORE_DIR="{tmp_path / "from_env"}"\nKEYSTORE_SCRYPT_N=1024\n')

    result = runner.invoke(
        main, ["--env-file", str(env_file), "import"], input=_lines(SECRET, PASSPHRASE, PASSPHRASE, "")
    )

    assert result.exit_code == 0, result.output
    assert (tmp_path / "from_env" / "wallet.json").exists()


def test_invalid_configuration_is_usage_error(runner, monkeypatch):
    """Testa configuração inválida no ambiente."""
    monkeypatch.setenv("KEYSTORE_SCRYPT_N", "1000")

    result = runner.invoke(main, ["verify"])

    assert result.exit_code == 2
    assert "Configuração inválida" in result.output


def test_verify_unreadable_keystore(runner, keystore_env):
    """Testa erro de leitura quando o keystore é um diretório."""
    keystore_env.mkdir(parents=True)

    result = runner.invoke(main, ["verify"])

    assert result.exit_code == 1
    assert "Não foi possível ler o keystore" in result.output
    assert not isinstance(result.exception, OSError)


def test_import_mismatch_wipes_prompt_buffers(runner, keystore_env, monkeypatch):
    """Testa que chave, senha e confirmação são zeradas ao falhar a confirmação."""
    wiped = []
    original_wipe = SensitiveBytes.wipe

    def recording_wipe(self):
        original_wipe(self)
        wiped.append(self)

    monkeypatch.setattr(SensitiveBytes, "wipe", recording_wipe)

    result = runner.invoke(
        main, ["import"], input=_lines(SECRET, PASSPHRASE, "different-password")
    )

    assert result.exit_code == 1
    assert "não conferem" in result.output
    assert not keystore_env.exists()

    assert len({id(buf) for buf in wiped}) >= 3
    assert all(buf.wiped and set(buf._buf) <= {0} for buf in wiped)
