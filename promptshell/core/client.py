"""
Paramiko-backed transport provider
"""
from __future__ import annotations

import socket
from pathlib import Path
from typing import Any, Dict, Optional

import paramiko

from .constants import DEFAULT_SSH_PORT, DEFAULT_SSH_TIMEOUT, DimensionUnit
from .exceptions import (
    AuthError,
    ConfigError,
    ConnectError,
    NotConnectedError,
    ShellError,
    TransferError,
)
from .interfaces import DisconnectCallback, ShellChannel, TransportProvider
from .logging import get_logger

logger = get_logger(__name__)


# libssh2-style preference names -> paramiko SecurityOptions attributes
SECURITY_OPTION_KEYS = {
    "kex": "kex",
    "hostkey": "key_types",
    "ciphers": "ciphers",
    "macs": "digests",
    "compression": "compression",
}

# Tried in order when loading a private key
PRIVATE_KEY_CLASSES = (
    paramiko.Ed25519Key,
    paramiko.RSAKey,
    paramiko.ECDSAKey,
)


class NotifyingTransport(paramiko.Transport):
    """
    paramiko Transport that reports SSH_MSG_DISCONNECT to a callback.

    The callback runs on the transport thread with
    (reason_code, message, language_tag).
    """

    def __init__(self, sock, on_disconnect: Optional[DisconnectCallback] = None):
        super().__init__(sock)
        self.on_disconnect = on_disconnect

    def _parse_disconnect(self, m):
        code = m.get_int()
        desc = m.get_text()
        language = m.get_text()
        logger.debug(f"Disconnect (code {code}): {desc}")
        if self.on_disconnect is not None:
            try:
                self.on_disconnect(code, desc, language)
            except Exception:
                logger.exception("Disconnect callback failed")


class ParamikoTransport(TransportProvider):
    """
    Transport provider on top of ``paramiko.Transport``:
    - connection and authentication as separate steps
    - password and key login (Ed25519 / RSA / ECDSA)
    - pty shell channels
    - SFTP side channel, reused once opened
    - supports with context manager
    """

    def __init__(
        self,
        timeout: float = DEFAULT_SSH_TIMEOUT,
        known_hosts: Optional[str] = None,
    ) -> None:
        """
        Args:
            timeout: Connect / channel-open timeout in seconds
            known_hosts: Optional known_hosts file to verify the server key against
        """
        self.timeout = timeout
        self.known_hosts = known_hosts
        self.host: Optional[str] = None
        self.port: int = DEFAULT_SSH_PORT
        self._transport: Optional[paramiko.Transport] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    # --------------------
    # Connection management
    # --------------------
    def connect(
        self,
        host: str,
        port: int = DEFAULT_SSH_PORT,
        methods: Optional[Dict[str, Any]] = None,
        callbacks: Optional[Dict[str, DisconnectCallback]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Open the TCP connection and run the SSH handshake.

        An existing connection (and its SFTP client) is closed first.

        Args:
            host: Host name or IP address
            port: TCP port
            methods: Algorithm preferences (kex, hostkey, ciphers, macs, compression)
            callbacks: Optional {"disconnect": callable(reason, message, language)}
            timeout: Overrides the provider timeout for this connection

        Raises:
            ConnectError: If the host is unreachable or the handshake fails
            ConfigError: If methods names an unknown preference
        """
        timeout = self.timeout if timeout is None else timeout
        callbacks = callbacks or {}

        if self._transport is not None:
            logger.debug(f"Closing connection to {self.host}:{self.port} before reconnecting")
            self.close()

        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as e:
            raise ConnectError(host, port, str(e)) from e

        transport = NotifyingTransport(sock, on_disconnect=callbacks.get("disconnect"))
        try:
            self._apply_methods(transport, methods or {})
            transport.start_client(timeout=timeout)
            if self.known_hosts:
                self._verify_host_key(transport, host, port)
        except ConfigError:
            transport.close()
            raise
        except (paramiko.SSHException, OSError, EOFError) as e:
            transport.close()
            raise ConnectError(host, port, str(e)) from e

        self._transport = transport
        self.host = host
        self.port = port
        logger.debug(f"Connected to {host}:{port}")

    def _apply_methods(self, transport: paramiko.Transport, methods: Dict[str, Any]) -> None:
        """Push algorithm preferences into the transport security options"""
        options = transport.get_security_options()
        for key, value in methods.items():
            attr = SECURITY_OPTION_KEYS.get(key)
            if attr is None:
                raise ConfigError(f"Unknown algorithm preference: {key}")
            if isinstance(value, str):
                value = [item.strip() for item in value.split(",") if item.strip()]
            try:
                setattr(options, attr, tuple(value))
            except ValueError as e:
                raise ConfigError(f"Unsupported {key} algorithms: {value}") from e

    def _verify_host_key(self, transport: paramiko.Transport, host: str, port: int) -> None:
        """Check the server key against known_hosts"""
        host_keys = paramiko.HostKeys(str(Path(self.known_hosts).expanduser()))
        lookup = host if port == DEFAULT_SSH_PORT else f"[{host}]:{port}"
        key = transport.get_remote_server_key()
        if not host_keys.check(lookup, key):
            raise paramiko.SSHException(f"Host key verification failed for {lookup}")

    def _require_transport(self) -> paramiko.Transport:
        if self._transport is None or not self._transport.is_active():
            raise NotConnectedError("SSH connection closed")
        return self._transport

    def is_active(self) -> bool:
        return self._transport is not None and self._transport.is_active()

    def close(self) -> None:
        """Close SFTP and the transport; safe to call twice"""
        if self._sftp is not None:
            try:
                self._sftp.close()
            except (OSError, paramiko.SSHException) as e:
                logger.debug(f"Ignoring SFTP close error: {e}")
            self._sftp = None
        if self._transport is not None:
            self._transport.close()
            self._transport = None

    # --------------------
    # Authentication
    # --------------------
    def auth_password(self, username: str, password: str) -> None:
        """Raises AuthError if the server rejects the password"""
        transport = self._require_transport()
        try:
            transport.auth_password(username, password)
        except paramiko.SSHException as e:
            raise AuthError(f"Password authentication failed for {username}: {e}") from e

    def auth_key(self, username: str, key_path: str, passphrase: Optional[str] = None) -> None:
        """Raises AuthError if the key cannot be loaded or is rejected"""
        transport = self._require_transport()
        key = self._load_private_key(key_path, passphrase)
        try:
            transport.auth_publickey(username, key)
        except paramiko.SSHException as e:
            raise AuthError(f"Public key authentication failed for {username}: {e}") from e

    def _load_private_key(self, path: str, passphrase: Optional[str] = None) -> paramiko.PKey:
        """Probe Ed25519, RSA then ECDSA"""
        p = Path(path).expanduser()
        if not p.exists():
            raise AuthError(f"Private key not found: {p}")

        last_error: Optional[Exception] = None
        for key_class in PRIVATE_KEY_CLASSES:
            try:
                return key_class.from_private_key_file(str(p), password=passphrase)
            except paramiko.SSHException as e:
                last_error = e
        raise AuthError(f"Failed to load private key at {p}: {last_error}")

    # --------------------
    # Channels
    # --------------------
    def open_shell_channel(
        self,
        term_type: str,
        env: Optional[Dict[str, str]],
        width: int,
        height: int,
        unit: DimensionUnit = DimensionUnit.CHARACTERS,
    ) -> ShellChannel:
        """
        Open a session channel with a pty and start the login shell.

        Raises:
            NotConnectedError: If there is no live transport
            ShellError: If the server refuses the channel, pty or shell
        """
        transport = self._require_transport()

        try:
            channel = transport.open_session(timeout=self.timeout)
        except (paramiko.SSHException, OSError, EOFError) as e:
            raise ShellError(f"unable to establish shell: {e}") from e

        try:
            if DimensionUnit(unit) is DimensionUnit.PIXELS:
                channel.get_pty(
                    term=term_type, width=0, height=0,
                    width_pixels=width, height_pixels=height,
                )
            else:
                channel.get_pty(term=term_type, width=width, height=height)
            if env:
                channel.update_environment(env)
            channel.invoke_shell()
        except (paramiko.SSHException, OSError, EOFError) as e:
            channel.close()
            raise ShellError(f"unable to establish shell: {e}") from e

        return channel

    def open_file_channel(self) -> paramiko.SFTPClient:
        """Return the SFTP client, reusing an open one"""
        transport = self._require_transport()
        channel = self._sftp.get_channel() if self._sftp is not None else None
        if channel is None or channel.closed:
            try:
                self._sftp = paramiko.SFTPClient.from_transport(transport)
            except (paramiko.SSHException, OSError, EOFError) as e:
                raise TransferError(f"Could not establish sftp connection: {e}") from e
            if self._sftp is None:
                raise TransferError("Could not establish sftp connection")
        return self._sftp

    # --------------------
    # File transfer
    # --------------------
    def send_file(self, local_path: str, remote_path: str) -> None:
        sftp = self.open_file_channel()
        try:
            sftp.put(str(Path(local_path).expanduser()), remote_path)
        except (paramiko.SSHException, OSError) as e:
            raise TransferError(f"Failed to upload {local_path} to {remote_path}: {e}") from e

    def delete_remote_file(self, file_channel: paramiko.SFTPClient, remote_path: str) -> None:
        try:
            file_channel.remove(remote_path)
        except (paramiko.SSHException, OSError) as e:
            raise TransferError(f"Failed to delete {remote_path}: {e}") from e

    # --------------------
    # Context manager
    # --------------------
    def __enter__(self) -> ParamikoTransport:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
