"""Tests for the shell configuration and result models."""

from pathlib import Path

import pytest

from promptshell.core.constants import DimensionUnit
from promptshell.core.exceptions import ConfigError, PromptNotFoundError
from promptshell.domain.shell.models import ExecResult, SessionConfig, TerminalConfig


class TestTerminalConfig:
    def test_defaults(self) -> None:
        terminal = TerminalConfig()
        assert (terminal.term_type, terminal.width, terminal.height) == ("dumb", 80, 40)
        assert terminal.unit is DimensionUnit.CHARACTERS
        assert terminal.env == {}

    def test_unit_string_is_coerced(self) -> None:
        terminal = TerminalConfig(unit="pixels")
        terminal.validate()
        assert terminal.unit is DimensionUnit.PIXELS

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"term_type": ""},
            {"width": 0},
            {"height": -1},
            {"unit": "inches"},
        ],
    )
    def test_invalid(self, kwargs) -> None:
        with pytest.raises(ConfigError):
            TerminalConfig(**kwargs).validate()

    def test_from_dict(self) -> None:
        terminal = TerminalConfig.from_dict(
            {"term_type": "vt100", "width": "132", "env": {"LANG": "C", "COLUMNS": 132}}
        )
        assert terminal.term_type == "vt100"
        assert terminal.width == 132
        assert terminal.height == 40
        assert terminal.env == {"LANG": "C", "COLUMNS": "132"}

    def test_to_dict(self) -> None:
        data = TerminalConfig(unit=DimensionUnit.PIXELS).to_dict()
        assert data["unit"] == "pixels"
        assert TerminalConfig.from_dict(data) == TerminalConfig(unit=DimensionUnit.PIXELS)


class TestSessionConfig:
    def test_defaults(self) -> None:
        config = SessionConfig()
        config.validate()
        assert config.prompt == ">"
        assert config.port == 22
        assert config.read_timeout is None
        assert config.debug_log is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"prompt": ""},
            {"port": 0},
            {"port": 70000},
            {"read_timeout": 0},
            {"encoding": "no-such-codec"},
            {"prompt": "\u279c ", "encoding": "ascii"},
        ],
    )
    def test_invalid(self, kwargs) -> None:
        with pytest.raises(ConfigError):
            SessionConfig(**kwargs).validate()

    def test_from_dict(self) -> None:
        config = SessionConfig.from_dict({
            "host": "router1",
            "port": "2222",
            "username": "admin",
            "prompt": "# ",
            "read_timeout": 30,
            "debug_log": "~/shell.log",
            "terminal": {"term_type": "vt100"},
        })
        assert config.port == 2222
        assert config.read_timeout == 30.0
        assert config.debug_log == Path("~/shell.log").expanduser()
        assert config.terminal.term_type == "vt100"

    def test_from_dict_validates(self) -> None:
        with pytest.raises(ConfigError):
            SessionConfig.from_dict({"prompt": ""})

    def test_to_dict_omits_secrets(self) -> None:
        data = SessionConfig(host="h", username="u", password="pw", passphrase="pp").to_dict()
        assert "password" not in data
        assert "passphrase" not in data
        assert data["terminal"]["term_type"] == "dumb"


class TestExecResult:
    def test_success(self) -> None:
        result = ExecResult(command="ls", output="a\nb", raw="ls\r\na\r\nb\r\n>")
        assert result.success
        assert str(result) == "a\nb"

    def test_failure(self) -> None:
        error = PromptNotFoundError(">", "ls\r\n", "channel closed")
        result = ExecResult(command="ls", raw="ls\r\n", error=error)
        assert not result.success
        assert str(result) == str(error)
        assert "channel closed" in str(result)
