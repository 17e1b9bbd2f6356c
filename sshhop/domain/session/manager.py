"""
Session topology management

Holds the direct (primary) session, the tunneled (secondary) session and
the gateway tunnel that carries it. The active route is chosen once per
connect call and read by everything else through `active_handle()`.
"""
from dataclasses import dataclass
from typing import Callable, Optional

from ...core.constants import LOCALHOST
from ...core.exceptions import (
    AuthConfigError,
    ConfigError,
    NotConnectedError,
    RouteConflictError,
)
from ...core.interfaces import SessionFactory
from ...core.logging import get_logger
from ...core.session import SessionHandle
from ...proxy.forwarder import ForwardConfig, LocalForwarder
from .models import Credential, HostAddress, RouteState, TunnelSpec

logger = get_logger(__name__)

ForwarderFactory = Callable[[SessionHandle, ForwardConfig], LocalForwarder]


@dataclass
class Tunnel:
    """Stage 1 of a tunneled route: gateway session plus its forwarder"""
    gateway: SessionHandle
    forwarder: LocalForwarder
    target_host: str

    def close(self) -> None:
        self.forwarder.stop()
        self.gateway.disconnect()


class SessionManager:
    """Owns the sessions of one client"""

    def __init__(
        self,
        session_factory: SessionFactory,
        forwarder_factory: ForwarderFactory = LocalForwarder,
    ):
        self.session_factory = session_factory
        self.forwarder_factory = forwarder_factory
        self._credential: Optional[Credential] = None
        self._primary: Optional[SessionHandle] = None
        self._secondary: Optional[SessionHandle] = None
        self._tunnel: Optional[Tunnel] = None
        self._route = RouteState.DIRECT
        self._host: Optional[str] = None

    # --------------------
    # State
    # --------------------
    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    @property
    def route(self) -> RouteState:
        return self._route

    @property
    def host(self) -> Optional[str]:
        """Target host of the last successful connect"""
        return self._host

    @property
    def primary(self) -> Optional[SessionHandle]:
        return self._primary

    @property
    def secondary(self) -> Optional[SessionHandle]:
        return self._secondary

    @property
    def is_connected(self) -> bool:
        if self._route is RouteState.TUNNELED:
            return self._secondary is not None
        return self._primary is not None

    def authenticate(self, credential: Credential) -> None:
        """Store the credential used by the next connect call"""
        self._credential = credential

    def _require_credential(self) -> Credential:
        if self._credential is None:
            raise AuthConfigError(
                "No credential set. Call one of the authenticate methods before connecting."
            )
        return self._credential

    # --------------------
    # Direct route
    # --------------------
    def connect_direct(self, host: str, port: Optional[int] = None) -> SessionHandle:
        """
        Connect straight to `host`.

        An open primary session to the same address is reused; one to a
        different address is replaced.
        """
        credential = self._require_credential()
        address = HostAddress(host) if port is None else HostAddress(host, port)

        if self._primary is not None:
            if self._primary.address == address and self._primary.is_active:
                logger.debug(f"Reusing direct session to {address}")
                self._route = RouteState.DIRECT
                self._host = host
                return self._primary
            logger.debug(f"Replacing direct session to {self._primary.address}")
            self._primary.disconnect()
            self._primary = None

        self._primary = self.session_factory.open(address, credential)
        self._route = RouteState.DIRECT
        self._host = host
        logger.debug(f"Connected directly to: {address}")
        return self._primary

    # --------------------
    # Tunneled route
    # --------------------
    def connect_via_tunnel(self, host: str, tunnel: Optional[TunnelSpec]) -> SessionHandle:
        """
        Connect to `host` through the gateway described by `tunnel`.

        Stage 1 opens the gateway session and starts forwarding a local
        port to `host`; stage 2 opens the target session over that port
        with the stored credential. Stage 2 is never attempted if stage 1
        fails, and a stage 2 failure tears stage 1 down again.
        The target's server key is checked under `host`, not under the
        forwarded localhost port.

        Raises:
            AuthConfigError: No credential stored
            ConfigError: No gateway configured
            RouteConflictError: A tunnel to another host is still open
            ConnectError: Either handshake failed
        """
        credential = self._require_credential()

        if self._secondary is not None:
            if self._tunnel is not None and self._tunnel.target_host != host:
                raise RouteConflictError(
                    f"Tunnel is open to {self._tunnel.target_host}; "
                    f"close() before tunneling to {host}"
                )
            self._route = RouteState.TUNNELED
            self._host = host
            return self._secondary

        if tunnel is None:
            raise ConfigError("No gateway configured for tunneled connections")
        tunnel.validate()

        gateway = self.session_factory.open(tunnel.address, tunnel.credential)
        try:
            forwarder = self.forwarder_factory(
                gateway,
                ForwardConfig(
                    target_host=host,
                    target_port=tunnel.target_port,
                    local_port=tunnel.local_port,
                    bind_host=tunnel.bind_host,
                ),
            )
            local_port = forwarder.start()
        except Exception:
            gateway.disconnect()
            raise
        logger.debug(f"Gateway {tunnel.address} forwarding local port {local_port} to {host}")

        try:
            secondary = self.session_factory.open(
                HostAddress(LOCALHOST, local_port),
                credential,
                host_key_address=HostAddress(host, tunnel.target_port),
            )
        except Exception:
            forwarder.stop()
            gateway.disconnect()
            raise

        self._tunnel = Tunnel(gateway=gateway, forwarder=forwarder, target_host=host)
        self._secondary = secondary
        self._route = RouteState.TUNNELED
        self._host = host
        logger.debug(f"Connected from: {tunnel.hostname} to: {host}")
        return secondary

    # --------------------
    # Routing / teardown
    # --------------------
    def active_handle(self) -> SessionHandle:
        """Return the session the current route points at"""
        if self._route is RouteState.TUNNELED:
            handle = self._secondary
        else:
            handle = self._primary
        if handle is None:
            raise NotConnectedError("Not connected. Call connect() first.")
        return handle

    def close_all(self) -> None:
        """Disconnect secondary, then the tunnel, then primary. Never raises."""
        secondary, self._secondary = self._secondary, None
        tunnel, self._tunnel = self._tunnel, None
        primary, self._primary = self._primary, None
        self._route = RouteState.DIRECT
        self._host = None

        for name, close in (
            ("secondary session", secondary.disconnect if secondary else None),
            ("tunnel", tunnel.close if tunnel else None),
            ("primary session", primary.disconnect if primary else None),
        ):
            if close is None:
                continue
            try:
                close()
            except Exception as e:
                logger.debug(f"Closing {name} failed: {e}")
