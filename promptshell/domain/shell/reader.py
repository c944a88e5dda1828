"""
Prompt-synchronized reader

Pulls the shell stream one byte at a time until the transcript ends with the
prompt marker. IAC units are handed to the negotiator and dropped.
"""
import socket
import threading
import time
from pathlib import Path
from typing import BinaryIO, Optional

from ...core.constants import DEFAULT_ENCODING, TelnetByte
from ...core.exceptions import PromptNotFoundError, ReadCancelledError
from ...core.interfaces import ShellChannel
from ...core.logging import get_logger
from .negotiator import ControlNegotiator

logger = get_logger(__name__)

# Channel wait slice while a cancel event is being watched (seconds)
CANCEL_POLL_INTERVAL = 0.1


class DebugSink:
    """
    Append-only raw byte log.
    
    Best effort: the first write failure disables the sink and is logged,
    the read that triggered it carries on.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()
        self._handle: Optional[BinaryIO] = None
        self._disabled = False

    @property
    def disabled(self) -> bool:
        return self._disabled

    def write(self, data: bytes) -> None:
        if self._disabled:
            return
        try:
            if self._handle is None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._handle = open(self.path, "ab")
            self._handle.write(data)
            if b"\n" in data:
                self._handle.flush()
        except OSError as e:
            self._disable(e)

    def flush(self) -> None:
        if self._handle is None or self._disabled:
            return
        try:
            self._handle.flush()
        except OSError as e:
            self._disable(e)

    def _disable(self, error: OSError) -> None:
        self._disabled = True
        logger.warning(f"Debug log {self.path} disabled: {error}")

    def close(self) -> None:
        if self._handle is None:
            return
        try:
            self._handle.close()
        except OSError as e:
            logger.warning(f"Failed to close debug log {self.path}: {e}")
        self._handle = None


class PromptReader:
    """
    Reads a shell channel up to a prompt marker.
    
    ``buffer`` holds the bytes of the current read and is reset at its start.
    ``history`` is appended to and never cleared; pass a shared bytearray to
    keep one history across several readers.
    """

    def __init__(
        self,
        channel: ShellChannel,
        negotiator: Optional[ControlNegotiator] = None,
        history: Optional[bytearray] = None,
        debug_sink: Optional[DebugSink] = None,
        encoding: str = DEFAULT_ENCODING,
    ):
        self.channel = channel
        self.negotiator = negotiator or ControlNegotiator()
        self.buffer = bytearray()
        self.history = history if history is not None else bytearray()
        self.debug_sink = debug_sink
        self.encoding = encoding

    def clear(self) -> None:
        """Reset the transcript buffer"""
        self.buffer.clear()

    def text(self) -> str:
        """Decoded transcript buffer"""
        return self.buffer.decode(self.encoding, errors="replace")

    def read_until(
        self,
        prompt: str,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """
        Block until the transcript ends with prompt.
        
        An empty prompt matches after the first byte.
        
        Args:
            prompt: Marker that ends the read
            timeout: Deadline in seconds for the whole read (None = no deadline)
            cancel: Event checked between bytes; setting it aborts the read
        
        Returns:
            The decoded transcript, prompt included
        
        Raises:
            PromptNotFoundError: Channel closed or timed out first
            ReadCancelledError: cancel was set
            ProtocolError: Malformed control sequence
        """
        marker = prompt.encode(self.encoding)
        deadline = time.monotonic() + timeout if timeout is not None else None
        self.clear()

        try:
            while True:
                byte = self._next_byte(prompt, deadline, cancel)

                if byte[0] == TelnetByte.IAC:
                    self._restore_timeout(deadline, cancel)
                    self.negotiator.negotiate(self.channel)
                    continue

                self.buffer += byte
                self.history += byte
                if self.debug_sink is not None:
                    self.debug_sink.write(byte)

                if self.buffer.endswith(marker):
                    return self.text()
        finally:
            if self.debug_sink is not None:
                self.debug_sink.flush()
            if deadline is not None or cancel is not None:
                self.channel.settimeout(None)

    def _next_byte(
        self,
        prompt: str,
        deadline: Optional[float],
        cancel: Optional[threading.Event],
    ) -> bytes:
        """The single suspension point of a read"""
        while True:
            if cancel is not None and cancel.is_set():
                raise ReadCancelledError(f"Read for prompt {prompt!r} cancelled")

            wait: Optional[float] = None
            if deadline is not None:
                wait = deadline - time.monotonic()
                if wait <= 0:
                    raise PromptNotFoundError(prompt, self.text(), "read timed out")
            if cancel is not None:
                wait = CANCEL_POLL_INTERVAL if wait is None else min(wait, CANCEL_POLL_INTERVAL)
            if wait is not None:
                self.channel.settimeout(wait)

            try:
                data = self.channel.recv(1)
            except socket.timeout:
                if wait is None:
                    raise PromptNotFoundError(prompt, self.text(), "channel timed out")
                continue
            except OSError as e:
                raise PromptNotFoundError(prompt, self.text(), f"channel error: {e}") from e

            if not data:
                raise PromptNotFoundError(prompt, self.text(), "channel closed")
            return data

    def _restore_timeout(
        self,
        deadline: Optional[float],
        cancel: Optional[threading.Event],
    ) -> None:
        """Give the negotiator the rest of the deadline instead of a poll slice"""
        if deadline is not None:
            self.channel.settimeout(max(deadline - time.monotonic(), 0.001))
        elif cancel is not None:
            self.channel.settimeout(None)
