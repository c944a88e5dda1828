"""
Project constants definitions
"""
from enum import Enum, IntEnum

# ============================================================
# Default Values
# ============================================================

DEFAULT_SSH_PORT = 22
DEFAULT_SSH_TIMEOUT = 10
DEFAULT_PROMPT = ">"
DEFAULT_ENCODING = "utf-8"
DEFAULT_LINE_ENDING = "\n"

# ============================================================
# Terminal Defaults
# ============================================================

# "dumb" keeps escape sequences out of the stream
DEFAULT_TERM_TYPE = "dumb"
DEFAULT_TERM_WIDTH = 80
DEFAULT_TERM_HEIGHT = 40

# ============================================================
# Timing (seconds)
# ============================================================

# Pause after opening a shell so the login banner can arrive
DEFAULT_OPEN_DELAY = 0.0035
# Pause after each write so the remote shell can start answering
DEFAULT_WRITE_DELAY = 0.0035

# ============================================================
# Paths
# ============================================================

SSH_CONFIG_PATH = "~/.ssh/config"
DEFAULT_LOG_DIR = "~/.promptshell/logs"
DEFAULT_CONFIG_PATH = "~/.promptshell/config.toml"
ENV_PREFIX = "PROMPTSHELL_"


# ============================================================
# Telnet Control Bytes
# ============================================================

class TelnetByte(IntEnum):
    """Telnet bytes that may be embedded in the shell stream"""
    NULL = 0
    DC1 = 17
    ESC = 27
    WILL = 251
    WONT = 252
    DO = 253
    DONT = 254
    IAC = 255


class DimensionUnit(str, Enum):
    """Unit of the pty width/height"""
    CHARACTERS = "chars"
    PIXELS = "pixels"
