"""
Core interfaces for the transport boundary

The shell engine only talks to these. ``ParamikoTransport`` in ``client.py`` is
the default implementation; tests substitute in-memory fakes.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from .constants import DimensionUnit


DisconnectCallback = Callable[[int, str, str], None]


@runtime_checkable
class ShellChannel(Protocol):
    """
    Raw byte channel of an interactive shell.
    
    Mirrors the subset of ``paramiko.Channel`` used by the reader: payload
    bytes only, SSH framing is already stripped.
    """
    
    def recv(self, nbytes: int) -> bytes:
        """Return up to nbytes; b"" on EOF. May raise socket.timeout."""
        ...
    
    def sendall(self, data: bytes) -> None:
        ...
    
    def setblocking(self, blocking: bool) -> None:
        ...
    
    def settimeout(self, timeout: Optional[float]) -> None:
        ...
    
    def close(self) -> None:
        ...


class TransportProvider(ABC):
    """Authenticated SSH connection plus a file-transfer side channel"""
    
    @abstractmethod
    def connect(
        self,
        host: str,
        port: int,
        methods: Optional[Dict[str, Any]] = None,
        callbacks: Optional[Dict[str, DisconnectCallback]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """Open the connection; raise ConnectError on failure"""
        pass
    
    @abstractmethod
    def auth_password(self, username: str, password: str) -> None:
        """Password authentication; raise AuthError on rejection"""
        pass
    
    @abstractmethod
    def auth_key(self, username: str, key_path: str, passphrase: Optional[str] = None) -> None:
        """Public key authentication; raise AuthError on rejection"""
        pass
    
    @abstractmethod
    def open_shell_channel(
        self,
        term_type: str,
        env: Optional[Dict[str, str]],
        width: int,
        height: int,
        unit: DimensionUnit,
    ) -> ShellChannel:
        """Request a pty shell; raise ShellError on failure"""
        pass
    
    @abstractmethod
    def open_file_channel(self) -> Any:
        """Open an SFTP-style client; raise TransferError on failure"""
        pass
    
    @abstractmethod
    def send_file(self, local_path: str, remote_path: str) -> None:
        """Upload a file; raise TransferError on failure"""
        pass
    
    @abstractmethod
    def delete_remote_file(self, file_channel: Any, remote_path: str) -> None:
        """Remove a remote file; raise TransferError on failure"""
        pass
    
    @abstractmethod
    def is_active(self) -> bool:
        """Check whether the connection is usable"""
        pass
    
    @abstractmethod
    def close(self) -> None:
        """Tear down the connection"""
        pass
