"""
Session domain models
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any

from ...core.constants import (
    DEFAULT_SSH_PORT,
    DEFAULT_TUNNEL_LOCAL_PORT,
    DEFAULT_TUNNEL_TARGET_PORT,
    DEFAULT_TUNNEL_BIND_HOST,
)
from ...core.exceptions import ConfigError


class CredentialKind(str, Enum):
    """Authentication method"""
    PASSWORD = "password"
    PUBLIC_KEY = "public_key"


class RouteState(str, Enum):
    """Which session services channel operations"""
    DIRECT = "direct"
    TUNNELED = "tunneled"


@dataclass(frozen=True)
class Credential:
    """
    User credential, exactly one kind active.

    Build through `Credential.password` or `Credential.public_key`.
    """
    user: str
    kind: CredentialKind
    secret: Optional[str] = None
    key_path: Optional[Path] = None
    passphrase: Optional[str] = None

    @classmethod
    def password(cls, user: str, secret: str) -> "Credential":
        return cls(user=user, kind=CredentialKind.PASSWORD, secret=secret)

    @classmethod
    def public_key(
        cls,
        user: str,
        key_path: Path,
        passphrase: Optional[str] = None,
    ) -> "Credential":
        return cls(
            user=user,
            kind=CredentialKind.PUBLIC_KEY,
            key_path=Path(key_path).expanduser(),
            passphrase=passphrase,
        )

    @property
    def uses_key(self) -> bool:
        return self.kind is CredentialKind.PUBLIC_KEY and self.key_path is not None

    def __repr__(self) -> str:
        # secrets stay out of logs and tracebacks
        target = f"key_path={str(self.key_path)!r}" if self.uses_key else "secret=***"
        return f"Credential(user={self.user!r}, kind={self.kind.value}, {target})"


@dataclass(frozen=True)
class HostAddress:
    """Remote endpoint"""
    hostname: str
    port: int = DEFAULT_SSH_PORT

    def __str__(self) -> str:
        return f"{self.hostname}:{self.port}"


@dataclass
class TunnelSpec:
    """
    Jump host description.

    `local_port` is where the forwarded listener binds on this machine
    (0 picks an ephemeral port); `target_port` is the service port on the
    final host that the gateway forwards to.
    """
    hostname: str
    user: str
    password: str
    port: int = DEFAULT_SSH_PORT
    local_port: int = DEFAULT_TUNNEL_LOCAL_PORT
    target_port: int = DEFAULT_TUNNEL_TARGET_PORT
    bind_host: str = DEFAULT_TUNNEL_BIND_HOST

    def validate(self) -> None:
        """Validate configuration"""
        if not self.hostname:
            raise ConfigError("Gateway hostname is empty")
        if not self.user:
            raise ConfigError("Gateway user is empty")
        if not (1 <= self.port <= 65535):
            raise ConfigError(f"Invalid gateway port: {self.port}")
        if not (0 <= self.local_port <= 65535):
            raise ConfigError(f"Invalid local_port: {self.local_port}")
        if not (1 <= self.target_port <= 65535):
            raise ConfigError(f"Invalid target_port: {self.target_port}")

    @property
    def address(self) -> HostAddress:
        return HostAddress(self.hostname, self.port)

    @property
    def credential(self) -> Credential:
        return Credential.password(self.user, self.password)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "hostname": self.hostname,
            "user": self.user,
            "password": self.password,
            "port": self.port,
            "local_port": self.local_port,
            "target_port": self.target_port,
            "bind_host": self.bind_host,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TunnelSpec":
        """Create from dictionary"""
        try:
            spec = cls(
                hostname=data["hostname"],
                user=data["user"],
                password=data.get("password", ""),
                port=int(data.get("port", DEFAULT_SSH_PORT)),
                local_port=int(data.get("local_port", DEFAULT_TUNNEL_LOCAL_PORT)),
                target_port=int(data.get("target_port", DEFAULT_TUNNEL_TARGET_PORT)),
                bind_host=data.get("bind_host", DEFAULT_TUNNEL_BIND_HOST),
            )
        except KeyError as e:
            raise ConfigError(f"Gateway config missing field: {e.args[0]}") from e
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid gateway config: {e}") from e
        spec.validate()
        return spec

    def __repr__(self) -> str:
        return (
            f"TunnelSpec(hostname={self.hostname!r}, user={self.user!r}, "
            f"port={self.port}, local_port={self.local_port}, "
            f"target_port={self.target_port})"
        )
