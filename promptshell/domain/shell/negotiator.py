"""
Telnet option negotiation embedded in the shell stream

Some remote shells (mostly Windows SSH servers bridging a telnet console)
interleave IAC sequences with their output. They are answered here and never
reach the transcript. Every option is refused: the goal is only to keep the
remote side from waiting on us.

Operates on raw channel payload bytes, not on SSH packet framing.
"""
import socket

from ...core.constants import TelnetByte
from ...core.exceptions import ProtocolError
from ...core.interfaces import ShellChannel
from ...core.logging import get_logger

logger = get_logger(__name__)


class ControlNegotiator:
    """Answers one IAC unit with a refusal"""

    def negotiate(self, channel: ShellChannel) -> bytes:
        """
        Consume the bytes following an IAC and send the counter-response.
        
        DO/DONT are answered with WONT, WILL/WONT with DONT.
        
        Args:
            channel: Channel positioned right after the IAC byte
        
        Returns:
            The three response bytes that were sent
        
        Raises:
            ProtocolError: On a doubled IAC, an unknown command byte, a
                truncated unit, or a failed reply
        """
        command = self._read_byte(channel)

        if command == TelnetByte.IAC:
            raise ProtocolError("unexpected escape sequence")

        if command in (TelnetByte.DO, TelnetByte.DONT):
            reply = TelnetByte.WONT
        elif command in (TelnetByte.WILL, TelnetByte.WONT):
            reply = TelnetByte.DONT
        else:
            raise ProtocolError(f"unknown control character {command}")

        option = self._read_byte(channel)
        response = bytes([TelnetByte.IAC, reply, option])

        try:
            channel.sendall(response)
        except Exception as e:
            raise ProtocolError(f"failed to answer control sequence: {e}") from e

        logger.debug(
            f"Refused telnet option {option}: "
            f"{TelnetByte(command).name} -> {reply.name}"
        )
        return response

    @staticmethod
    def _read_byte(channel: ShellChannel) -> int:
        try:
            data = channel.recv(1)
        except socket.timeout as e:
            raise ProtocolError("timed out inside control sequence") from e
        if not data:
            raise ProtocolError("connection closed inside control sequence")
        return data[0]
