"""
Core utility functions
"""
import paramiko
from pathlib import Path
from typing import Dict, Any, Iterable, List, Union

from .constants import SSH_CONFIG_PATH, DEFAULT_SSH_PORT, DEFAULT_SOURCE_EXTENSIONS
from .exceptions import ConfigError
from .logging import get_logger

logger = get_logger(__name__)


# ============================================================
# SSH Config Management
# ============================================================

def load_ssh_config(hostname: str, config_path: Union[str, Path] = SSH_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration for specified Host from ~/.ssh/config.
    
    Args:
        hostname: Host name in SSH configuration
        config_path: SSH client config file
    
    Returns:
        Dictionary containing host, user, port, key_file
    
    Raises:
        ConfigError: If the config file doesn't exist
    """
    path = Path(config_path).expanduser()
    if not path.exists():
        raise ConfigError(f"{config_path} does not exist")

    ssh_config = paramiko.SSHConfig.from_path(str(path))
    entry = ssh_config.lookup(hostname)

    return {
        "host": entry.get("hostname", hostname),
        "user": entry.get("user", None),
        "port": int(entry.get("port", DEFAULT_SSH_PORT)),
        "key_file": entry.get("identityfile", [None])[0],
    }


# ============================================================
# Local File Enumeration
# ============================================================

def list_source_files(
    directory: Union[str, Path],
    extensions: Iterable[str] = DEFAULT_SOURCE_EXTENSIONS,
) -> List[Path]:
    """
    List regular files in `directory` whose extension is one of `extensions`.

    Not recursive. Matching ignores case; results are sorted by name.

    Raises:
        FileNotFoundError: If `directory` doesn't exist
        NotADirectoryError: If `directory` is a file
    """
    wanted = {
        (ext if ext.startswith(".") else f".{ext}").lower()
        for ext in extensions
    }
    result = []
    for entry in sorted(Path(directory).expanduser().iterdir()):
        if entry.is_file() and entry.suffix.lower() in wanted:
            logger.debug(f"entry: {entry}")
            result.append(entry)
    return result
