"""
Shell domain models
"""
import codecs
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any

from ...core.constants import (
    DEFAULT_ENCODING,
    DEFAULT_LINE_ENDING,
    DEFAULT_OPEN_DELAY,
    DEFAULT_PROMPT,
    DEFAULT_SSH_PORT,
    DEFAULT_SSH_TIMEOUT,
    DEFAULT_TERM_HEIGHT,
    DEFAULT_TERM_TYPE,
    DEFAULT_TERM_WIDTH,
    DEFAULT_WRITE_DELAY,
    DimensionUnit,
)
from ...core.exceptions import ConfigError, PromptShellError


def check_prompt(prompt: str, encoding: str) -> None:
    """
    Raises:
        ConfigError: If the prompt is empty or the encoding cannot represent it
    """
    if not prompt:
        raise ConfigError("Prompt marker must not be empty")
    try:
        codecs.lookup(encoding)
    except LookupError as e:
        raise ConfigError(f"Unknown encoding: {encoding}") from e
    try:
        prompt.encode(encoding)
    except UnicodeEncodeError as e:
        raise ConfigError(f"Prompt {prompt!r} cannot be encoded as {encoding}") from e


@dataclass
class TerminalConfig:
    """Pseudo-terminal parameters requested for the shell"""
    term_type: str = DEFAULT_TERM_TYPE
    width: int = DEFAULT_TERM_WIDTH
    height: int = DEFAULT_TERM_HEIGHT
    unit: DimensionUnit = DimensionUnit.CHARACTERS
    env: Dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        """Validate configuration"""
        if not self.term_type:
            raise ConfigError("Terminal type must not be empty")
        if self.width <= 0 or self.height <= 0:
            raise ConfigError(f"Invalid terminal size: {self.width}x{self.height}")
        try:
            self.unit = DimensionUnit(self.unit)
        except ValueError as e:
            raise ConfigError(f"Invalid dimension unit: {self.unit}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "term_type": self.term_type,
            "width": self.width,
            "height": self.height,
            "unit": DimensionUnit(self.unit).value,
            "env": dict(self.env),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TerminalConfig":
        """Create from dictionary"""
        terminal = cls(
            term_type=data.get("term_type", DEFAULT_TERM_TYPE),
            width=int(data.get("width", DEFAULT_TERM_WIDTH)),
            height=int(data.get("height", DEFAULT_TERM_HEIGHT)),
            unit=data.get("unit", DimensionUnit.CHARACTERS),
            env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
        )
        terminal.validate()
        return terminal


@dataclass
class SessionConfig:
    """Everything a ShellSession needs, passed at construction"""
    # Connection
    host: Optional[str] = None
    port: int = DEFAULT_SSH_PORT
    timeout: float = DEFAULT_SSH_TIMEOUT
    username: Optional[str] = None
    password: Optional[str] = None
    key_path: Optional[str] = None
    passphrase: Optional[str] = None
    known_hosts: Optional[str] = None

    # Shell
    prompt: str = DEFAULT_PROMPT
    terminal: TerminalConfig = field(default_factory=TerminalConfig)
    encoding: str = DEFAULT_ENCODING
    line_ending: str = DEFAULT_LINE_ENDING

    # Timing; read_timeout None blocks until the prompt or EOF
    open_delay: float = DEFAULT_OPEN_DELAY
    write_delay: float = DEFAULT_WRITE_DELAY
    read_timeout: Optional[float] = None

    # Raw byte transcript, disabled unless set
    debug_log: Optional[Path] = None

    def validate(self) -> None:
        """Validate configuration"""
        check_prompt(self.prompt, self.encoding)
        if not (1 <= self.port <= 65535):
            raise ConfigError(f"Invalid port: {self.port}")
        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ConfigError(f"Invalid read_timeout: {self.read_timeout}")
        self.terminal.validate()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (password is omitted)"""
        return {
            "host": self.host,
            "port": self.port,
            "timeout": self.timeout,
            "username": self.username,
            "key_path": self.key_path,
            "known_hosts": self.known_hosts,
            "prompt": self.prompt,
            "terminal": self.terminal.to_dict(),
            "encoding": self.encoding,
            "line_ending": self.line_ending,
            "open_delay": self.open_delay,
            "write_delay": self.write_delay,
            "read_timeout": self.read_timeout,
            "debug_log": str(self.debug_log) if self.debug_log else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionConfig":
        """Create from dictionary"""
        debug_log = data.get("debug_log")
        read_timeout = data.get("read_timeout")
        config = cls(
            host=data.get("host"),
            port=int(data.get("port", DEFAULT_SSH_PORT)),
            timeout=float(data.get("timeout", DEFAULT_SSH_TIMEOUT)),
            username=data.get("username"),
            password=data.get("password"),
            key_path=data.get("key_path"),
            passphrase=data.get("passphrase"),
            known_hosts=data.get("known_hosts"),
            prompt=str(data.get("prompt", DEFAULT_PROMPT)),
            terminal=TerminalConfig.from_dict(data.get("terminal") or {}),
            encoding=data.get("encoding", DEFAULT_ENCODING),
            line_ending=data.get("line_ending", DEFAULT_LINE_ENDING),
            open_delay=float(data.get("open_delay", DEFAULT_OPEN_DELAY)),
            write_delay=float(data.get("write_delay", DEFAULT_WRITE_DELAY)),
            read_timeout=float(read_timeout) if read_timeout is not None else None,
            debug_log=Path(debug_log).expanduser() if debug_log else None,
        )
        config.validate()
        return config


@dataclass
class ExecResult:
    """Outcome of one exec round trip"""
    command: str
    output: str = ""
    raw: str = ""
    error: Optional[PromptShellError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        """Command output, or the error message when the round trip failed"""
        if self.success:
            return self.output
        return str(self.error)
