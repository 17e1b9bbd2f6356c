"""
Client configuration loading

Sources, lowest precedence first: dataclass defaults, a TOML file
(`[client]` and `[gateway]` tables), then `SSHHOP_*` environment variables.
"""
import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .core.constants import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_READ_CHUNK_SIZE,
    DEFAULT_SSH_TIMEOUT,
    ENV_PREFIX,
)
from .core.exceptions import ConfigError
from .core.session import ParamikoSessionFactory
from .domain.session.models import TunnelSpec

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {value!r}")


@dataclass
class ClientConfig:
    """Per-client settings. Nothing here is process-wide."""
    strict_host_key_checking: bool = True
    known_hosts_file: Optional[Path] = None
    connect_timeout: float = DEFAULT_SSH_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE
    gateway: Optional[TunnelSpec] = None

    def validate(self) -> None:
        """Validate configuration"""
        if self.connect_timeout <= 0:
            raise ConfigError(f"connect_timeout must be positive, got {self.connect_timeout}")
        if self.poll_interval <= 0:
            raise ConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.read_chunk_size <= 0:
            raise ConfigError(f"read_chunk_size must be positive, got {self.read_chunk_size}")
        if self.gateway is not None:
            self.gateway.validate()

    def session_factory(self) -> ParamikoSessionFactory:
        """Session factory honouring this config's host key and timeout settings"""
        return ParamikoSessionFactory(
            strict_host_key_checking=self.strict_host_key_checking,
            known_hosts_file=self.known_hosts_file,
            timeout=self.connect_timeout,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClientConfig":
        """
        Build from a mapping shaped like the TOML file.

        Args:
            data: `{"client": {...}, "gateway": {...}}`; both tables optional
        """
        client = dict(data.get("client", {}))
        known = {f.name for f in fields(cls)} - {"gateway"}
        unknown = set(client) - known
        if unknown:
            raise ConfigError(f"Unknown client settings: {', '.join(sorted(unknown))}")

        try:
            config = cls(
                strict_host_key_checking=_to_bool(
                    "strict_host_key_checking", client.get("strict_host_key_checking", True)
                ),
                known_hosts_file=(
                    Path(client["known_hosts_file"]).expanduser()
                    if client.get("known_hosts_file") else None
                ),
                connect_timeout=float(client.get("connect_timeout", DEFAULT_SSH_TIMEOUT)),
                poll_interval=float(client.get("poll_interval", DEFAULT_POLL_INTERVAL)),
                read_chunk_size=int(client.get("read_chunk_size", DEFAULT_READ_CHUNK_SIZE)),
                gateway=TunnelSpec.from_dict(data["gateway"]) if data.get("gateway") else None,
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid client config: {e}") from e

        config.validate()
        return config

    @classmethod
    def from_toml(cls, path: Path) -> "ClientConfig":
        """Load from a TOML file"""
        path = Path(path).expanduser()
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"Config file not found: {path}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_env(
        cls,
        base: Optional["ClientConfig"] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ClientConfig":
        """
        Overlay `SSHHOP_*` environment variables on `base`.

        Client keys: SSHHOP_STRICT_HOST_KEY_CHECKING, SSHHOP_KNOWN_HOSTS_FILE,
        SSHHOP_CONNECT_TIMEOUT, SSHHOP_POLL_INTERVAL, SSHHOP_READ_CHUNK_SIZE.
        Gateway keys: SSHHOP_GATEWAY_HOST, SSHHOP_GATEWAY_USER,
        SSHHOP_GATEWAY_PASSWORD, SSHHOP_GATEWAY_PORT,
        SSHHOP_GATEWAY_LOCAL_PORT, SSHHOP_GATEWAY_TARGET_PORT.
        """
        env = os.environ if environ is None else environ
        base = base or cls()

        data: Dict[str, Any] = {
            "client": {
                "strict_host_key_checking": base.strict_host_key_checking,
                "known_hosts_file": str(base.known_hosts_file) if base.known_hosts_file else None,
                "connect_timeout": base.connect_timeout,
                "poll_interval": base.poll_interval,
                "read_chunk_size": base.read_chunk_size,
            },
            "gateway": base.gateway.to_dict() if base.gateway else {},
        }

        for key in data["client"]:
            value = env.get(f"{ENV_PREFIX}{key.upper()}")
            if value is not None:
                data["client"][key] = value

        gateway_env = {
            "hostname": "GATEWAY_HOST",
            "user": "GATEWAY_USER",
            "password": "GATEWAY_PASSWORD",
            "port": "GATEWAY_PORT",
            "local_port": "GATEWAY_LOCAL_PORT",
            "target_port": "GATEWAY_TARGET_PORT",
        }
        for key, suffix in gateway_env.items():
            value = env.get(f"{ENV_PREFIX}{suffix}")
            if value is not None:
                data["gateway"][key] = value

        return cls.from_dict(data)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "ClientConfig":
        """TOML file (if given) overlaid with the environment"""
        base = cls.from_toml(path) if path else cls()
        return cls.from_env(base)
