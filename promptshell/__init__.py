"""
promptshell - prompt-synchronized interactive shells over SSH

Opens a pty shell over an SSH connection and turns its byte stream into a
"write a command, read its output" API:
- Output of a command ends where the configured prompt appears
- Embedded telnet option negotiation is answered and filtered out
- Full session history and optional raw byte debug log
- Password and key authentication, SFTP upload / delete
"""

__version__ = "0.1.0"

from .core import (
    ParamikoTransport,
    TransportProvider,
    ShellChannel,
    setup_logging,
    get_logger,
)
from .core.constants import DimensionUnit, TelnetByte
from .core.exceptions import (
    PromptShellError,
    ConfigError,
    ConnectError,
    AuthError,
    ShellError,
    WriteError,
    ShellIOError,
    ReadError,
    NotConnectedError,
    PromptNotFoundError,
    ReadCancelledError,
    ProtocolError,
    TransferError,
)
from .domain.shell import (
    TerminalConfig,
    SessionConfig,
    ExecResult,
    ControlNegotiator,
    PromptReader,
    DebugSink,
    ShellSession,
)

__all__ = [
    # Version
    "__version__",
    # Transport
    "ParamikoTransport",
    "TransportProvider",
    "ShellChannel",
    # Logging
    "setup_logging",
    "get_logger",
    # Constants
    "DimensionUnit",
    "TelnetByte",
    # Errors
    "PromptShellError",
    "ConfigError",
    "ConnectError",
    "AuthError",
    "ShellError",
    "WriteError",
    "ShellIOError",
    "ReadError",
    "NotConnectedError",
    "PromptNotFoundError",
    "ReadCancelledError",
    "ProtocolError",
    "TransferError",
    # Shell
    "TerminalConfig",
    "SessionConfig",
    "ExecResult",
    "ControlNegotiator",
    "PromptReader",
    "DebugSink",
    "ShellSession",
]
