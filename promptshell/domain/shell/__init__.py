"""
Prompt-synchronized shell engine
"""
from .models import TerminalConfig, SessionConfig, ExecResult
from .negotiator import ControlNegotiator
from .reader import PromptReader, DebugSink
from .session import ShellSession, log_disconnect

__all__ = [
    "TerminalConfig",
    "SessionConfig",
    "ExecResult",
    "ControlNegotiator",
    "PromptReader",
    "DebugSink",
    "ShellSession",
    "log_disconnect",
]
