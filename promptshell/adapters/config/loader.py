"""
Configuration loader with priority: CLI > env > TOML > defaults
"""
import os
import tomllib
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from ...core.constants import ENV_PREFIX
from ...core.exceptions import ConfigError
from ...core.logging import get_logger
from ...core.utils import load_ssh_config
from ...domain.shell.models import SessionConfig

logger = get_logger(__name__)


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "yes", "1", "on")


# Environment variable suffix -> (config key, converter)
ENV_MAPPINGS: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "HOST": ("host", str),
    "PORT": ("port", int),
    "USER": ("username", str),
    "PASSWORD": ("password", str),
    "KEY": ("key_path", str),
    "PASSPHRASE": ("passphrase", str),
    "KNOWN_HOSTS": ("known_hosts", str),
    "TIMEOUT": ("timeout", float),
    "PROMPT": ("prompt", str),
    "READ_TIMEOUT": ("read_timeout", float),
    "DEBUG_LOG": ("debug_log", str),
    "TERM": ("terminal.term_type", str),
    "TERM_WIDTH": ("terminal.width", int),
    "TERM_HEIGHT": ("terminal.height", int),
    "TERM_UNIT": ("terminal.unit", str),
    "SSH_CONFIG": ("ssh_config", str),
    "USE_SSH_CONFIG": ("use_ssh_config", _to_bool),
}


class ConfigLoader:
    """Configuration loader with priority support"""

    def __init__(self, env_prefix: str = ENV_PREFIX):
        self._env_prefix = env_prefix

    def load_toml(self, path: Path) -> Dict[str, Any]:
        """Load TOML configuration file"""
        path = Path(path).expanduser()
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            return tomllib.loads(path.read_text(encoding='utf-8'))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse TOML configuration {path}: {e}") from e

    def load_env(self, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        environ = os.environ if environ is None else environ
        config: Dict[str, Any] = {}

        for suffix, (config_key, convert) in ENV_MAPPINGS.items():
            env_key = self._env_prefix + suffix
            value = environ.get(env_key)
            if not value:
                continue
            try:
                converted = convert(value)
            except ValueError as e:
                raise ConfigError(f"Invalid value for {env_key}: {value!r}") from e

            # Handle nested keys
            if "." in config_key:
                section, key = config_key.split(".", 1)
                config.setdefault(section, {})[key] = converted
            else:
                config[config_key] = converted

        return config

    def merge_configs(self, *configs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge multiple configurations with priority.
        Later configs override earlier ones.
        """
        result: Dict[str, Any] = {}

        for config in configs:
            result = self._deep_merge(result, config)

        return result

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if value is None:
                continue
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def load(
        self,
        toml_path: Optional[Path] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
        environ: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Load configuration with priority: CLI > env > TOML > defaults

        Args:
            toml_path: Path to TOML configuration file
            cli_overrides: CLI parameter overrides (None values are ignored)
            use_env: Whether to load from environment variables
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Merged configuration dictionary
        """
        configs = []

        if toml_path:
            configs.append(self.load_toml(toml_path))

        if use_env:
            env_config = self.load_env(environ)
            if env_config:
                configs.append(env_config)

        if cli_overrides:
            configs.append(cli_overrides)

        return self.merge_configs(*configs)

    def resolve_ssh_alias(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fill host/username/port/key_path from ~/.ssh/config.

        Applies when the data names an alias under "ssh_config", or when
        "use_ssh_config" is set (the host itself is then looked up).
        Explicit values always win over ssh_config entries.
        """
        alias = data.get("ssh_config")
        if not alias and data.get("use_ssh_config") and data.get("host"):
            alias = data["host"]
        if not alias:
            return data

        entry = load_ssh_config(alias)
        logger.debug(f"Resolved ssh_config alias {alias}: {entry}")
        resolved = dict(data)
        resolved["host"] = entry["host"] if data.get("host") in (None, alias) else data["host"]
        for key in ("username", "port", "key_path"):
            if resolved.get(key) is None and entry.get(key) is not None:
                resolved[key] = entry[key]
        return resolved

    def load_session_config(
        self,
        toml_path: Optional[Path] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
        environ: Optional[Dict[str, str]] = None,
    ) -> SessionConfig:
        """
        Load, merge and validate into a SessionConfig.

        Raises:
            ConfigError: If a source is unreadable or a value is invalid
        """
        data = self.load(toml_path, cli_overrides, use_env, environ)
        data = self.resolve_ssh_alias(data)
        try:
            return SessionConfig.from_dict(data)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
