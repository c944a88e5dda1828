"""
Unified exception definitions
"""


class PromptShellError(Exception):
    """Base exception class"""
    pass


class ConfigError(PromptShellError):
    """Configuration error"""
    pass


class ConnectError(PromptShellError):
    """Transport could not be established"""

    def __init__(self, host, port, reason: str = ""):
        self.host = host
        self.port = port
        self.reason = reason
        message = f"Failed connecting to {host} on port {port}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class AuthError(PromptShellError):
    """Credentials rejected"""
    pass


class ShellError(PromptShellError):
    """Shell channel could not be established"""
    pass


class WriteError(PromptShellError):
    """Write to the shell failed"""
    pass


class ShellIOError(WriteError):
    """Channel rejected the written bytes"""
    pass


class ReadError(PromptShellError):
    """Read from the shell failed"""
    pass


class NotConnectedError(WriteError, ReadError):
    """No shell channel is open"""
    pass


class PromptNotFoundError(ReadError):
    """Channel ran dry before the prompt appeared"""

    def __init__(self, expected: str, received: str, reason: str = ""):
        self.expected = expected
        self.received = received
        self.reason = reason
        message = (
            f"Couldn't find the requested prompt {expected!r}, "
            f"it was not in the data returned from server: {received!r}"
        )
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class ReadCancelledError(ReadError):
    """Read aborted by its cancel event"""
    pass


class ProtocolError(PromptShellError):
    """Malformed or unknown telnet control sequence"""
    pass


class TransferError(PromptShellError):
    """Transfer error"""
    pass
