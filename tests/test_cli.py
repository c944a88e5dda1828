"""Tests for the typer CLI, with ShellSession replaced by a recorder."""

from pathlib import Path
from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from promptshell.adapters.cli import app as app_module
from promptshell.adapters.cli.app import app
from promptshell.core.exceptions import AuthError, PromptNotFoundError, TransferError
from promptshell.domain.shell.models import ExecResult

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    for name in ("HOST", "PORT", "USER", "PASSWORD", "KEY", "PROMPT", "SSH_CONFIG", "USE_SSH_CONFIG"):
        monkeypatch.delenv(f"PROMPTSHELL_{name}", raising=False)


@pytest.fixture
def shell(monkeypatch: pytest.MonkeyPatch) -> SimpleNamespace:
    """Scriptable stand-in for ShellSession."""
    state = SimpleNamespace(
        sessions=[],
        outputs={},
        failures={},
        auth_error=None,
        transfer_error=None,
        history="banner\r\n$ ",
    )

    class RecordingSession:
        def __init__(self, config):
            self.config = config
            self.calls = []
            state.sessions.append(self)

        def authenticate(self):
            self.calls.append("authenticate")
            if state.auth_error is not None:
                raise state.auth_error

        def open_shell(self):
            self.calls.append("open_shell")

        def exec_result(self, command):
            self.calls.append(("exec", command))
            if command in state.failures:
                return ExecResult(command=command, error=state.failures[command])
            return ExecResult(command=command, output=state.outputs.get(command, ""))

        def get_history(self):
            return state.history

        def upload_file(self, local_path, remote_path):
            self.calls.append(("upload", local_path, remote_path))
            if state.transfer_error is not None:
                raise state.transfer_error

        def delete_file(self, remote_path):
            self.calls.append(("delete", remote_path))
            if state.transfer_error is not None:
                raise state.transfer_error

        def disconnect(self):
            self.calls.append("disconnect")

        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            self.disconnect()

    monkeypatch.setattr(app_module, "ShellSession", RecordingSession)
    return state


class TestExec:
    def test_prints_each_output(self, shell: SimpleNamespace) -> None:
        shell.outputs = {"uname": "Linux", "pwd": "/home/admin"}
        result = runner.invoke(app, ["exec", "web1", "uname", "pwd", "--user", "admin", "--prompt", "$ "])

        assert result.exit_code == 0, result.output
        assert "Linux" in result.output
        assert "/home/admin" in result.output
        session = shell.sessions[0]
        assert session.config.host == "web1"
        assert session.config.username == "admin"
        assert session.config.prompt == "$ "
        assert session.calls == ["authenticate", "open_shell", ("exec", "uname"), ("exec", "pwd"), "disconnect"]

    def test_stops_at_first_failure(self, shell: SimpleNamespace) -> None:
        shell.failures = {"slow": PromptNotFoundError("$ ", "slow\r\n", "read timed out")}
        result = runner.invoke(app, ["exec", "web1", "slow", "never", "-u", "admin"])

        assert result.exit_code == 1
        assert "slow:" in result.output
        assert ("exec", "never") not in shell.sessions[0].calls
        assert shell.sessions[0].calls[-1] == "disconnect"

    def test_history(self, shell: SimpleNamespace) -> None:
        result = runner.invoke(app, ["exec", "web1", "true", "-u", "admin", "--history"])
        assert result.exit_code == 0, result.output
        assert "banner" in result.output

    def test_options_reach_config(self, shell: SimpleNamespace, tmp_path: Path) -> None:
        result = runner.invoke(
            app,
            [
                "exec", "web1", "ls",
                "-u", "admin",
                "-p", "2222",
                "--term", "vt100",
                "--read-timeout", "5",
                "--debug-log", str(tmp_path / "raw.log"),
            ],
        )
        assert result.exit_code == 0, result.output
        config = shell.sessions[0].config
        assert config.port == 2222
        assert config.terminal.term_type == "vt100"
        assert config.read_timeout == 5.0
        assert config.debug_log == tmp_path / "raw.log"

    def test_password_prompt(self, shell: SimpleNamespace) -> None:
        result = runner.invoke(app, ["exec", "web1", "ls", "-u", "admin", "--password"], input="s3cret\n")
        assert result.exit_code == 0, result.output
        assert shell.sessions[0].config.password == "s3cret"

    def test_config_file(self, shell: SimpleNamespace, tmp_path: Path) -> None:
        config_file = tmp_path / "promptshell.toml"
        config_file.write_text('username = "ops"\nport = 2200\nprompt = "# "\n', encoding="utf-8")
        result = runner.invoke(app, ["exec", "web1", "id", "-c", str(config_file), "-p", "2201"])

        assert result.exit_code == 0, result.output
        config = shell.sessions[0].config
        assert config.username == "ops"
        assert config.prompt == "# "
        assert config.port == 2201

    def test_default_config_file(self, shell: SimpleNamespace, tmp_path: Path) -> None:
        default = tmp_path / ".promptshell" / "config.toml"
        default.parent.mkdir()
        default.write_text('username = "from-home"\n', encoding="utf-8")
        result = runner.invoke(app, ["exec", "web1", "id"])
        assert result.exit_code == 0, result.output
        assert shell.sessions[0].config.username == "from-home"

    def test_missing_config_file(self, shell: SimpleNamespace, tmp_path: Path) -> None:
        result = runner.invoke(app, ["exec", "web1", "id", "-c", str(tmp_path / "absent.toml")])
        assert result.exit_code == 1
        assert "not found" in result.output
        assert shell.sessions == []

    def test_auth_failure(self, shell: SimpleNamespace) -> None:
        shell.auth_error = AuthError("No password or key configured")
        result = runner.invoke(app, ["exec", "web1", "ls", "-u", "admin"])

        assert result.exit_code == 1
        assert "No password or key" in result.output
        assert shell.sessions[0].calls == ["authenticate", "disconnect"]


def test_unknown_log_level(shell: SimpleNamespace) -> None:
    result = runner.invoke(app, ["--log-level", "LOUD", "delete", "web1", "/tmp/x"])
    assert result.exit_code == 1
    assert "Unknown log level" in result.output
    assert shell.sessions == []


class TestFileCommands:
    def test_upload(self, shell: SimpleNamespace, tmp_path: Path) -> None:
        local = tmp_path / "build.tar"
        local.write_bytes(b"data")
        result = runner.invoke(app, ["upload", "web1", str(local), "/tmp/build.tar", "-u", "admin"])

        assert result.exit_code == 0, result.output
        assert ("upload", str(local), "/tmp/build.tar") in shell.sessions[0].calls
        assert shell.sessions[0].calls[-1] == "disconnect"

    def test_upload_missing_local_file(self, shell: SimpleNamespace, tmp_path: Path) -> None:
        result = runner.invoke(app, ["upload", "web1", str(tmp_path / "absent"), "/tmp/x"])
        assert result.exit_code == 1
        assert shell.sessions == []

    def test_upload_failure(self, shell: SimpleNamespace, tmp_path: Path) -> None:
        local = tmp_path / "build.tar"
        local.write_bytes(b"data")
        shell.transfer_error = TransferError("disk full")
        result = runner.invoke(app, ["upload", "web1", str(local), "/tmp/build.tar", "-u", "admin"])
        assert result.exit_code == 1
        assert "disk full" in result.output

    def test_delete(self, shell: SimpleNamespace) -> None:
        result = runner.invoke(app, ["--log-level", "DEBUG", "delete", "web1", "/tmp/old.log", "-u", "admin"])
        assert result.exit_code == 0, result.output
        assert ("delete", "/tmp/old.log") in shell.sessions[0].calls
        assert "deleted" in result.output
