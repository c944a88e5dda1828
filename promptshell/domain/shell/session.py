"""
Interactive shell session

Owns the shell channel and drives the write-command / read-to-prompt cycle.
Connection setup, authentication and file transfer are delegated to a
TransportProvider.

A session is not thread-safe; confine it to one thread. The only cross-thread
interaction supported is setting the ``cancel`` event passed to a read.
"""
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Optional

from ...core.client import ParamikoTransport
from ...core.constants import DimensionUnit
from ...core.exceptions import (
    AuthError,
    ConfigError,
    ConnectError,
    NotConnectedError,
    PromptShellError,
    ReadError,
    ShellError,
    ShellIOError,
    TransferError,
)
from ...core.interfaces import ShellChannel, TransportProvider
from ...core.logging import get_logger
from ...core.utils import strip_framing
from .models import ExecResult, SessionConfig, check_prompt
from .negotiator import ControlNegotiator
from .reader import DebugSink, PromptReader

logger = get_logger(__name__)


def log_disconnect(reason: int, message: str, language: str) -> None:
    """Default disconnect notification: log only, no reconnect"""
    logger.warning(
        f"SSH disconnected with reason code [{reason}] and message: {message} "
        f"(language: {language or '-'})"
    )


class ShellSession:
    """
    Prompt-synchronized shell over an SSH transport.

    Usage:
        with ShellSession(SessionConfig(host="10.0.0.5", username="admin",
                                        password="secret", prompt="$ ")) as shell:
            shell.authenticate()
            shell.open_shell()
            print(shell.exec("uname -a"))

    When no transport is given the session builds a ParamikoTransport and owns
    it; a transport passed in is borrowed and left open by ``disconnect``.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        transport: Optional[TransportProvider] = None,
    ):
        """
        Initialize session; connects immediately when config.host is set.

        Args:
            config: Session configuration (defaults if None)
            transport: Borrowed transport provider (optional)

        Raises:
            ConfigError: If the configuration is invalid
            ConnectError: If the immediate connection fails
        """
        self.config = config or SessionConfig()
        self.config.validate()

        self._history = bytearray()
        self._channel: Optional[ShellChannel] = None
        self._reader: Optional[PromptReader] = None
        self._sftp: Any = None
        self._debug_sink = DebugSink(self.config.debug_log) if self.config.debug_log else None

        self._owns_transport = transport is None
        self.transport: Optional[TransportProvider] = (
            transport if transport is not None else self._create_transport()
        )

        if self.config.host:
            self.connect()

    def _create_transport(self) -> TransportProvider:
        return ParamikoTransport(
            timeout=self.config.timeout,
            known_hosts=self.config.known_hosts,
        )

    # --------------------
    # Connection management
    # --------------------
    def connect(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        methods: Optional[Dict[str, Any]] = None,
        callbacks: Optional[Dict[str, Callable[[int, str, str], None]]] = None,
    ) -> None:
        """
        Connect the transport.

        Args:
            host: New host (keeps the configured one if None)
            port: New port (keeps the configured one if None)
            methods: Algorithm preferences for the provider
            callbacks: Provider callbacks; "disconnect" defaults to log_disconnect

        Raises:
            ConnectError: If the transport cannot connect
        """
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = int(port)
        if not self.config.host:
            raise ConfigError("No host to connect to")

        host, port = self.config.host, self.config.port
        methods = methods if isinstance(methods, dict) else {}
        callbacks = {"disconnect": log_disconnect, **(callbacks if isinstance(callbacks, dict) else {})}

        if self.transport is None:
            if not self._owns_transport:
                raise ConnectError(host, port, "transport was released by disconnect")
            self.transport = self._create_transport()

        logger.debug(f"Connecting to {host}:{port}")
        try:
            self.transport.connect(
                host, port,
                methods=methods,
                callbacks=callbacks,
                timeout=self.config.timeout,
            )
        except (ConnectError, ConfigError):
            raise
        except Exception as e:
            raise ConnectError(host, port, str(e)) from e
        logger.info(f"Connected to {host}:{port}")

    def is_connected(self) -> bool:
        return self.transport is not None and self.transport.is_active()

    def disconnect(self) -> None:
        """Close the shell and release the transport; idempotent"""
        self.close_shell()
        self._sftp = None
        if self._debug_sink is not None:
            self._debug_sink.close()
        if self.transport is not None and self._owns_transport:
            self.transport.close()
            logger.info(f"Disconnected from {self.config.host}")
        self.transport = None

    # --------------------
    # Authentication
    # --------------------
    def authenticate(self) -> None:
        """
        Log in with the configured credentials, key first.

        Raises:
            AuthError: If no credentials are configured or they are rejected
        """
        if self.config.key_path:
            self.auth_key()
        elif self.config.password is not None:
            self.auth_password()
        else:
            raise AuthError("No password or key configured")

    def auth_password(self, username: Optional[str] = None, password: Optional[str] = None) -> None:
        if username:
            self.config.username = username
        if password:
            self.config.password = password
        user = self._require_username()
        transport = self._require_transport()
        try:
            transport.auth_password(user, self.config.password or "")
        except (AuthError, NotConnectedError):
            raise
        except Exception as e:
            raise AuthError(f"Password authentication failed for {user}: {e}") from e
        logger.info(f"Authenticated {user} by password")

    def auth_key(
        self,
        username: Optional[str] = None,
        key_path: Optional[str] = None,
        passphrase: Optional[str] = None,
    ) -> None:
        if username:
            self.config.username = username
        if key_path:
            self.config.key_path = key_path
        if passphrase:
            self.config.passphrase = passphrase
        if not self.config.key_path:
            raise AuthError("No private key configured")
        user = self._require_username()
        transport = self._require_transport()
        try:
            transport.auth_key(user, self.config.key_path, self.config.passphrase)
        except (AuthError, NotConnectedError):
            raise
        except Exception as e:
            raise AuthError(f"Public key authentication failed for {user}: {e}") from e
        logger.info(f"Authenticated {user} with key {self.config.key_path}")

    def _require_username(self) -> str:
        if not self.config.username:
            raise AuthError("No username configured")
        return self.config.username

    def _require_transport(self) -> TransportProvider:
        if self.transport is None:
            raise NotConnectedError("SSH connection closed")
        return self.transport

    # --------------------
    # Shell lifecycle
    # --------------------
    @property
    def prompt(self) -> str:
        return self.config.prompt

    def set_prompt(self, marker: str) -> None:
        """
        Set the marker that ends every later read.

        Raises:
            ConfigError: If marker is empty or not encodable
        """
        check_prompt(marker, self.config.encoding)
        self.config.prompt = marker

    def is_shell_open(self) -> bool:
        return self._channel is not None

    def open_shell(
        self,
        term_type: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        dimension_unit: Optional[DimensionUnit] = None,
    ) -> None:
        """
        Open a pty shell and swallow the login banner.

        Overrides are stored in the terminal config. A shell that is already
        open is closed before the new one is requested.

        Args:
            term_type: Terminal type, e.g. "dumb" or "vt100"
            env: Environment variables to request
            width: Terminal width
            height: Terminal height
            dimension_unit: Characters or pixels

        Raises:
            NotConnectedError: If there is no transport
            ShellError: If the channel cannot be created
            PromptNotFoundError: If the banner never reaches the prompt
        """
        terminal = self.config.terminal
        if term_type is not None:
            terminal.term_type = term_type
        if env is not None:
            terminal.env = dict(env)
        if width is not None:
            terminal.width = int(width)
        if height is not None:
            terminal.height = int(height)
        if dimension_unit is not None:
            terminal.unit = dimension_unit
        terminal.validate()

        transport = self._require_transport()

        if self._channel is not None:
            logger.debug("Closing previous shell before reopening")
            self.close_shell()

        try:
            channel = transport.open_shell_channel(
                terminal.term_type,
                terminal.env or None,
                terminal.width,
                terminal.height,
                terminal.unit,
            )
        except PromptShellError:
            raise
        except Exception as e:
            raise ShellError(f"unable to establish shell: {e}") from e
        if channel is None:
            raise ShellError("unable to establish shell")

        channel.setblocking(True)
        self._channel = channel
        self._reader = PromptReader(
            channel,
            ControlNegotiator(),
            history=self._history,
            debug_sink=self._debug_sink,
            encoding=self.config.encoding,
        )

        time.sleep(self.config.open_delay)

        # The banner still lands in the history, just not in the buffer
        try:
            self._reader.read_until(self.config.prompt, timeout=self.config.read_timeout)
        except Exception:
            self.close_shell()
            raise
        self._reader.clear()

        logger.info(
            f"Shell opened ({terminal.term_type}, "
            f"{terminal.width}x{terminal.height} {DimensionUnit(terminal.unit).value})"
        )

    def close_shell(self) -> None:
        """Close the shell channel; idempotent"""
        if self._channel is None:
            return
        try:
            self._channel.close()
        except Exception as e:
            logger.debug(f"Ignoring shell close error: {e}")
        self._channel = None
        self._reader = None
        logger.debug("Shell closed")

    def _require_shell(self) -> PromptReader:
        if self._channel is None or self._reader is None:
            raise NotConnectedError("SSH connection closed")
        return self._reader

    # --------------------
    # Command surface
    # --------------------
    def write(self, command: str, append_newline: bool = True) -> None:
        """
        Send a command to the shell.

        Args:
            command: Text to send
            append_newline: Append the configured line ending

        Raises:
            NotConnectedError: If no shell is open
            ShellIOError: If the channel rejects the bytes
        """
        reader = self._require_shell()
        reader.clear()

        if append_newline:
            command += self.config.line_ending

        logger.debug(f"write: {command!r}")
        try:
            self._channel.sendall(command.encode(self.config.encoding))
        except Exception as e:
            raise ShellIOError(f"Error writing to shell: {e}") from e

        time.sleep(self.config.write_delay)

    def read_until(
        self,
        prompt: Optional[str] = None,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """
        Read until the transcript ends with prompt (the session prompt by default).

        timeout falls back to config.read_timeout.
        """
        reader = self._require_shell()
        return reader.read_until(
            prompt if prompt is not None else self.config.prompt,
            timeout=timeout if timeout is not None else self.config.read_timeout,
            cancel=cancel,
        )

    def exec_result(
        self,
        command: str,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ExecResult:
        """
        Run a command and collect its output.

        The echoed command line and the trailing prompt line are removed.
        Errors of any kind are returned in ExecResult.error instead of raised;
        non-session errors are wrapped in ReadError.
        """
        try:
            self.write(command)
            raw = self.read_until(timeout=timeout, cancel=cancel)
        except PromptShellError as e:
            error = e
        except Exception as e:
            error = ReadError(f"Error running {command!r}: {e}")
            error.__cause__ = e
        else:
            return ExecResult(command=command, output=strip_framing(raw), raw=raw)

        logger.debug(f"exec {command!r} failed: {error}")
        partial = self._reader.text() if self._reader is not None else ""
        return ExecResult(command=command, raw=partial, error=error)

    def exec(self, command: str) -> str:
        """
        Run a command and return its output, or the error message on failure.

        Never raises; use exec_result to tell failures apart from output.
        """
        return str(self.exec_result(command))

    def get_buffer(self) -> str:
        """Read once more to the prompt and return the raw transcript"""
        return self.read_until()

    def transcript(self) -> str:
        """Current transcript buffer, without reading"""
        if self._reader is None:
            return ""
        return self._reader.text()

    def get_history(self) -> str:
        """Everything received since the session was created"""
        return self._history.decode(self.config.encoding, errors="replace")

    # --------------------
    # File transfer
    # --------------------
    def upload_file(self, local_path: str, remote_path: str) -> None:
        """
        Raises:
            TransferError: If the upload fails
        """
        transport = self._require_transport()
        try:
            transport.send_file(local_path, remote_path)
        except (TransferError, NotConnectedError):
            raise
        except Exception as e:
            raise TransferError(f"Failed to upload {local_path} to {remote_path}: {e}") from e
        logger.info(f"Uploaded {local_path} -> {remote_path}")

    def delete_file(self, remote_path: str) -> None:
        """
        Raises:
            TransferError: If the SFTP channel cannot be opened or the delete fails
        """
        transport = self._require_transport()
        try:
            if self._sftp is None:
                self._sftp = transport.open_file_channel()
            transport.delete_remote_file(self._sftp, remote_path)
        except (TransferError, NotConnectedError):
            raise
        except Exception as e:
            raise TransferError(f"Failed to delete {remote_path}: {e}") from e
        logger.info(f"Deleted {remote_path}")

    # --------------------
    # Context manager
    # --------------------
    def __enter__(self) -> ShellSession:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.disconnect()

    def __del__(self):
        if "transport" in self.__dict__:
            self.disconnect()
