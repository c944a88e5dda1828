"""
Core infrastructure layer
"""
from .client import ParamikoTransport
from .constants import *
from .exceptions import *
from .logging import setup_logging, get_logger, get_stdout_console, get_stderr_console
from .interfaces import TransportProvider, ShellChannel
from .utils import load_ssh_config, strip_framing

__all__ = [
    "ParamikoTransport",
    "setup_logging",
    "get_logger",
    "get_stdout_console",
    "get_stderr_console",
    "TransportProvider",
    "ShellChannel",
    "load_ssh_config",
    "strip_framing",
]
