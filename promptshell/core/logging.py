"""
Logging for promptshell

Log records go to stderr through rich; command output printed by the CLI goes
through the stdout console. Raw shell bytes are never logged here, they have
their own sink (domain.shell.reader.DebugSink).
"""
import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install as install_traceback

from .exceptions import ConfigError

FILE_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers kept at library_level or above
NOISY_LIBRARIES = ("paramiko",)

# Consoles resolve sys.stdout / sys.stderr on every write
_stdout_console = Console()
_stderr_console = Console(stderr=True)


def resolve_level(level: Union[str, int]) -> int:
    """
    Turn "debug", "INFO" or 10 into a logging level.

    Raises:
        ConfigError: If the name is not a logging level
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ConfigError(f"Unknown log level: {level}")
    return value


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Path] = None,
    rich_tracebacks: bool = True,
    library_level: Union[str, int] = "WARNING",
) -> None:
    """
    Route all logging through a rich stderr handler.

    Replaces any handlers already on the root logger, so calling it twice
    does not duplicate output.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional plain-text log file, appended to
        rich_tracebacks: Render tracebacks with rich
        library_level: Floor for chatty libraries such as paramiko

    Raises:
        ConfigError: If a level name is unknown
    """
    log_level = resolve_level(level)
    library_floor = resolve_level(library_level)

    if rich_tracebacks:
        install_traceback(show_locals=False, width=120)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    # Source paths only help when debugging
    rich_handler = RichHandler(
        console=_stderr_console,
        show_time=True,
        show_path=log_level <= logging.DEBUG,
        rich_tracebacks=rich_tracebacks,
        markup=False,
    )
    rich_handler.setLevel(log_level)
    root_logger.addHandler(rich_handler)

    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(max(log_level, library_floor))

    if log_file:
        root_logger.addHandler(_file_handler(Path(log_file).expanduser(), log_level))


def _file_handler(path: Path, level: int) -> logging.FileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    return handler


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass __name__"""
    return logging.getLogger(name)


def get_stdout_console() -> Console:
    """Console for command output"""
    return _stdout_console


def get_stderr_console() -> Console:
    """Console for errors and log records"""
    return _stderr_console
