"""
CLI connection helpers
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ...client import SshClient
from ...config import ClientConfig
from ...core.exceptions import ConfigError
from ...core.interfaces import PromptProvider
from ...core.logging import get_logger
from ...core.utils import load_ssh_config

logger = get_logger(__name__)


@dataclass
class ConnectionOptions:
    """Connection flags shared by every command"""
    host: str
    user: Optional[str] = None
    port: Optional[int] = None
    password: Optional[str] = None
    key: Optional[Path] = None
    passphrase: Optional[str] = None
    tunnel: bool = False
    config_file: Optional[Path] = None
    insecure: bool = False


def resolve_host(options: ConnectionOptions) -> ConnectionOptions:
    """
    Fill host/user/port/key from ~/.ssh/config when `host` is an alias.

    Explicit flags always win over ssh config values.
    """
    try:
        entry = load_ssh_config(options.host)
    except ConfigError:
        return options

    key_file = entry.get("key_file")
    return ConnectionOptions(
        host=entry.get("host") or options.host,
        user=options.user or entry.get("user"),
        port=options.port or entry.get("port"),
        password=options.password,
        key=options.key or (Path(key_file) if key_file and not options.password else None),
        passphrase=options.passphrase,
        tunnel=options.tunnel,
        config_file=options.config_file,
        insecure=options.insecure,
    )


def open_client(
    options: ConnectionOptions,
    prompts: PromptProvider,
    progress_callback: Optional[Callable[[str, int, int], None]] = None,
) -> SshClient:
    """
    Build, authenticate and connect an SshClient from CLI options.

    `progress_callback` is handed to the client for file uploads.

    Raises:
        ConfigError: Bad config file, missing user, or --port with --tunnel
        ConnectError: Handshake failed
    """
    if options.tunnel and options.port is not None:
        # the tunnel always reaches the target on its configured port
        raise ConfigError("--port can not be combined with --tunnel; set tunnel.target_port in the config file")

    options = resolve_host(options)

    config = ClientConfig.load(options.config_file)
    if options.insecure:
        config.strict_host_key_checking = False

    user = options.user or prompts.prompt("Enter SSH username", default="root")
    if not user:
        raise ConfigError("No user given")

    client = SshClient(config, progress_callback=progress_callback)
    try:
        if options.key:
            client.authenticate_key(user, options.key, options.passphrase)
        else:
            password = options.password or prompts.prompt(
                f"Password for {user}@{options.host}", password=True
            )
            client.authenticate_password(user, password)

        if options.tunnel:
            client.connect_through_default_tunnel(options.host)
        else:
            client.connect(options.host, options.port)
    except Exception:
        client.close()
        raise

    logger.debug(f"Connected to {options.host} (route: {client.route.value})")
    return client
