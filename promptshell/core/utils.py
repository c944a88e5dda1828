"""
Core utility functions
"""
import paramiko
from pathlib import Path
from typing import Dict, Any, Optional

from .constants import SSH_CONFIG_PATH, DEFAULT_SSH_PORT
from .exceptions import ConfigError


# ============================================================
# SSH Config Management
# ============================================================

def load_ssh_config(hostname: str, config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration for specified Host from ~/.ssh/config.
    
    Args:
        hostname: Host name or alias in SSH configuration
        config_path: Alternative ssh_config file
    
    Returns:
        Dictionary containing host, user, port, key_path
    
    Raises:
        ConfigError: If the ssh_config file doesn't exist
    """
    path = Path(config_path or SSH_CONFIG_PATH).expanduser()
    if not path.exists():
        raise ConfigError(f"{path} does not exist")

    ssh_config = paramiko.SSHConfig.from_path(str(path))
    entry = ssh_config.lookup(hostname)

    return {
        "host": entry.get("hostname", hostname),
        "username": entry.get("user", None),
        "port": int(entry.get("port", DEFAULT_SSH_PORT)),
        "key_path": entry.get("identityfile", [None])[0],
    }


# ============================================================
# Output Framing
# ============================================================

def strip_framing(buffer: str) -> str:
    """
    Remove the echoed command (first line) and the prompt (last line).
    
    Args:
        buffer: Raw transcript ending with the prompt
    
    Returns:
        Remaining lines joined and stripped
    """
    lines = buffer.replace("\r\n", "\n").split("\n")
    lines[0] = ""
    lines[-1] = ""
    return "\n".join(lines).strip()
