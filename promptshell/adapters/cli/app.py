"""
Main CLI application
"""
import typer
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.markup import escape

from ...core.constants import DEFAULT_CONFIG_PATH
from ...core.exceptions import ConfigError, PromptShellError
from ...core.logging import setup_logging, get_logger, get_stdout_console, get_stderr_console
from ...domain.shell.models import SessionConfig
from ...domain.shell.session import ShellSession
from ..config.loader import ConfigLoader

logger = get_logger(__name__)
console = get_stdout_console()
stderr_console = get_stderr_console()

app = typer.Typer(
    name="promptshell",
    add_completion=False,
    help="Drive an interactive SSH shell by prompt",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def main(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log file path",
    ),
):
    """
    promptshell - run commands in a remote pty shell

    Commands are written to a real login shell and their output is read up
    to the prompt marker, so shell state (cwd, variables) carries over
    between commands.
    """
    try:
        setup_logging(level=log_level, log_file=log_file)
    except ConfigError as e:
        _fail(e)


def _build_config(
    host: str,
    user: Optional[str],
    port: Optional[int],
    password: bool,
    key_file: Optional[str],
    config_file: Optional[Path],
    timeout: Optional[float],
    extra: Optional[Dict[str, Any]] = None,
) -> SessionConfig:
    """Merge CLI options over env and TOML into a SessionConfig"""
    overrides: Dict[str, Any] = {
        "host": host,
        "username": user,
        "port": port,
        "key_path": key_file,
        "timeout": timeout,
    }
    if password:
        overrides["password"] = typer.prompt("Password", hide_input=True)
    if extra:
        overrides.update(extra)

    if config_file is None:
        default_path = Path(DEFAULT_CONFIG_PATH).expanduser()
        config_file = default_path if default_path.exists() else None

    return ConfigLoader().load_session_config(config_file, overrides)


def _open_session(config: SessionConfig) -> ShellSession:
    """Connect and authenticate; the session is closed again on failure"""
    session = ShellSession(config)
    try:
        session.authenticate()
    except PromptShellError:
        session.disconnect()
        raise
    return session


def _fail(error: Exception) -> None:
    stderr_console.print(f"[red]Error:[/red] {escape(str(error))}")
    raise typer.Exit(1)


@app.command("exec")
def exec_run(
    host: str = typer.Argument(..., help="Hostname, IP or ssh_config alias"),
    commands: List[str] = typer.Argument(..., help="Commands to run, in order"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Username"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="SSH port"),
    password: bool = typer.Option(False, "--password", help="Prompt for password"),
    key_file: Optional[str] = typer.Option(None, "--key", "-i", help="SSH key file path"),
    prompt: Optional[str] = typer.Option(None, "--prompt", help="Shell prompt marker"),
    term: Optional[str] = typer.Option(None, "--term", help="Terminal type"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML configuration file"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Connection timeout (seconds)"),
    read_timeout: Optional[float] = typer.Option(None, "--read-timeout", help="Per-command read deadline (seconds)"),
    debug_log: Optional[Path] = typer.Option(None, "--debug-log", help="Append raw shell bytes to this file"),
    history: bool = typer.Option(False, "--history", help="Print the whole session transcript at the end"),
) -> None:
    """
    Run commands in a remote shell and print their output.

    Examples:
        promptshell exec myserver "cd /var/log" "ls -1" --prompt "$ "
        promptshell exec 10.0.0.5 "show version" -u admin --password --prompt ">"
    """
    extra: Dict[str, Any] = {
        "prompt": prompt,
        "read_timeout": read_timeout,
        "debug_log": str(debug_log) if debug_log else None,
    }
    if term:
        extra["terminal"] = {"term_type": term}

    failed = False
    try:
        config = _build_config(host, user, port, password, key_file, config_file, timeout, extra)
        with _open_session(config) as session:
            session.open_shell()
            for command in commands:
                result = session.exec_result(command)
                if not result.success:
                    stderr_console.print(f"[red]{escape(command)}:[/red] {escape(str(result.error))}")
                    failed = True
                    break
                if result.output:
                    console.print(result.output, markup=False, highlight=False)
            if history:
                console.rule("history")
                console.print(session.get_history(), markup=False, highlight=False)
    except PromptShellError as e:
        logger.debug("exec failed", exc_info=True)
        _fail(e)

    if failed:
        raise typer.Exit(1)


@app.command("upload")
def upload_run(
    host: str = typer.Argument(..., help="Hostname, IP or ssh_config alias"),
    local_path: Path = typer.Argument(..., help="Local file"),
    remote_path: str = typer.Argument(..., help="Remote destination path"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Username"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="SSH port"),
    password: bool = typer.Option(False, "--password", help="Prompt for password"),
    key_file: Optional[str] = typer.Option(None, "--key", "-i", help="SSH key file path"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML configuration file"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Connection timeout (seconds)"),
) -> None:
    """Upload a file over SFTP."""
    if not local_path.exists():
        _fail(FileNotFoundError(f"Local file not found: {local_path}"))

    try:
        config = _build_config(host, user, port, password, key_file, config_file, timeout)
        with _open_session(config) as session:
            session.upload_file(str(local_path), remote_path)
    except PromptShellError as e:
        _fail(e)

    console.print(f"[green]✓[/green] {escape(str(local_path))} -> {escape(remote_path)}")


@app.command("delete")
def delete_run(
    host: str = typer.Argument(..., help="Hostname, IP or ssh_config alias"),
    remote_path: str = typer.Argument(..., help="Remote file to delete"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Username"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="SSH port"),
    password: bool = typer.Option(False, "--password", help="Prompt for password"),
    key_file: Optional[str] = typer.Option(None, "--key", "-i", help="SSH key file path"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML configuration file"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Connection timeout (seconds)"),
) -> None:
    """Delete a remote file over SFTP."""
    try:
        config = _build_config(host, user, port, password, key_file, config_file, timeout)
        with _open_session(config) as session:
            session.delete_file(remote_path)
    except PromptShellError as e:
        _fail(e)

    console.print(f"[green]✓[/green] deleted {escape(remote_path)}")


def run():
    """CLI entry point"""
    app()


if __name__ == "__main__":
    run()
