"""Shared fakes: an in-memory shell channel and transport provider."""

from __future__ import annotations

import logging
import socket
from typing import Any, Callable, Dict, List, Optional

import pytest
from rich.logging import RichHandler

from promptshell.core.constants import DimensionUnit
from promptshell.core.exceptions import ShellError, TransferError
from promptshell.core.interfaces import TransportProvider
from promptshell.domain.shell.models import SessionConfig


class FakeChannel:
    """Scripted byte channel.

    ``incoming`` is what recv hands out. ``responder`` is called with every
    sendall payload and may return bytes to queue as the remote's answer.
    When the queue is empty recv returns b"" (EOF), or raises socket.timeout
    if ``stall`` is set.
    """

    def __init__(
        self,
        data: bytes = b"",
        responder: Optional[Callable[[bytes], Optional[bytes]]] = None,
    ) -> None:
        self.incoming = bytearray(data)
        self.responder = responder
        self.sent = bytearray()
        self.writes: List[bytes] = []
        self.timeouts: List[Optional[float]] = []
        self.blocking: Optional[bool] = None
        self.closed = False
        self.stall = False
        self.fail_send = False
        self.recv_calls = 0

    def feed(self, data: bytes) -> None:
        self.incoming += data

    def recv(self, nbytes: int) -> bytes:
        self.recv_calls += 1
        if not self.incoming:
            if self.stall:
                raise socket.timeout("timed out")
            return b""
        chunk = bytes(self.incoming[:nbytes])
        del self.incoming[:nbytes]
        return chunk

    def sendall(self, data: bytes) -> None:
        if self.fail_send:
            raise OSError("broken pipe")
        self.sent += data
        self.writes.append(bytes(data))
        if self.responder is not None:
            reply = self.responder(bytes(data))
            if reply:
                self.incoming += reply

    def setblocking(self, blocking: bool) -> None:
        self.blocking = blocking

    def settimeout(self, timeout: Optional[float]) -> None:
        self.timeouts.append(timeout)

    def close(self) -> None:
        self.closed = True


def echo_shell(prompt: str = "PROMPT>", outputs: Optional[Dict[str, str]] = None):
    """Responder that echoes each command, prints its output, then the prompt."""
    outputs = outputs or {}

    def respond(data: bytes) -> bytes:
        command = data.decode().rstrip("\n")
        body = outputs.get(command, "")
        text = f"{command}\r\n"
        if body:
            text += body + "\r\n"
        return (text + prompt).encode()

    return respond


class FakeTransport(TransportProvider):
    """Records calls and hands out prepared channels."""

    def __init__(self, channels: Optional[List[FakeChannel]] = None) -> None:
        self.channels = list(channels or [])
        self.calls: List[tuple] = []
        self.active = False
        self.closed = False
        self.shell_error: Optional[Exception] = None
        self.connect_error: Optional[Exception] = None
        self.auth_error: Optional[Exception] = None
        self.transfer_error: Optional[Exception] = None
        self.file_channel = object()
        self.callbacks: Dict[str, Any] = {}

    def connect(self, host, port, methods=None, callbacks=None, timeout=None) -> None:
        self.calls.append(("connect", host, port, methods, timeout))
        if self.connect_error is not None:
            raise self.connect_error
        self.callbacks = callbacks or {}
        self.active = True

    def auth_password(self, username, password) -> None:
        self.calls.append(("auth_password", username, password))
        if self.auth_error is not None:
            raise self.auth_error

    def auth_key(self, username, key_path, passphrase=None) -> None:
        self.calls.append(("auth_key", username, key_path, passphrase))
        if self.auth_error is not None:
            raise self.auth_error

    def open_shell_channel(self, term_type, env, width, height, unit=DimensionUnit.CHARACTERS):
        self.calls.append(("open_shell_channel", term_type, env, width, height, unit))
        if self.shell_error is not None:
            raise self.shell_error
        if not self.channels:
            raise ShellError("no channel left")
        return self.channels.pop(0)

    def open_file_channel(self) -> Any:
        self.calls.append(("open_file_channel",))
        return self.file_channel

    def send_file(self, local_path, remote_path) -> None:
        self.calls.append(("send_file", local_path, remote_path))
        if self.transfer_error is not None:
            raise self.transfer_error

    def delete_remote_file(self, file_channel, remote_path) -> None:
        self.calls.append(("delete_remote_file", file_channel, remote_path))
        if self.transfer_error is not None:
            raise self.transfer_error

    def is_active(self) -> bool:
        return self.active

    def close(self) -> None:
        self.calls.append(("close",))
        self.active = False
        self.closed = True

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def fast_config() -> SessionConfig:
    """Session config without sleeps, prompt "PROMPT>"."""
    return SessionConfig(
        prompt="PROMPT>",
        username="tester",
        password="secret",
        open_delay=0.0,
        write_delay=0.0,
    )


@pytest.fixture
def transfer_failure() -> TransferError:
    return TransferError("remote says no")


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo setup_logging calls so handlers do not leak between tests."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler, (RichHandler, logging.FileHandler)):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    logging.getLogger("paramiko").setLevel(logging.NOTSET)
