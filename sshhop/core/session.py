"""
Paramiko-backed transport sessions

A `SessionHandle` owns exactly one `paramiko.SSHClient`. Channels opened
from it (exec, sftp, direct-tcpip) are scoped to the caller's operation;
the handle itself lives until `disconnect()`.
"""
from __future__ import annotations

import socket
from pathlib import Path
from typing import Optional, Tuple, TYPE_CHECKING

import paramiko

from .constants import DEFAULT_SSH_PORT, DEFAULT_SSH_TIMEOUT, KNOWN_HOSTS_PATH
from .exceptions import ConnectError, NotConnectedError
from .interfaces import SessionFactory
from .logging import get_logger

if TYPE_CHECKING:
    from ..domain.session.models import Credential, HostAddress

logger = get_logger(__name__)

_KEY_CLASSES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


class SessionHandle:
    """One authenticated transport session"""

    def __init__(self, client: paramiko.SSHClient, address: "HostAddress", user: str):
        self.client = client
        self.address = address
        self.user = user
        self._closed = False

    @property
    def is_active(self) -> bool:
        if self._closed:
            return False
        transport = self.client.get_transport()
        return transport is not None and transport.is_active()

    def _transport(self) -> paramiko.Transport:
        if self._closed:
            raise NotConnectedError(f"Session to {self.address} is closed")
        transport = self.client.get_transport()
        if transport is None or not transport.is_active():
            raise NotConnectedError(f"Session to {self.address} is not alive")
        return transport

    def open_exec_channel(self) -> paramiko.Channel:
        """Open a session channel for one exec request"""
        return self._transport().open_session()

    def open_sftp(self) -> paramiko.SFTPClient:
        """Open an sftp subsystem channel"""
        self._transport()
        return self.client.open_sftp()

    def open_forward_channel(
        self,
        destination: Tuple[str, int],
        origin: Tuple[str, int],
    ) -> paramiko.Channel:
        """Open a direct-tcpip channel to `destination` through this session"""
        return self._transport().open_channel("direct-tcpip", destination, origin)

    def disconnect(self) -> None:
        """Close the session. Calling it again is a no-op."""
        if self._closed:
            return
        self._closed = True
        self.client.close()
        logger.debug(f"Disconnected from {self.address}")

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"SessionHandle({self.user}@{self.address}, {state})"


def known_hosts_name(address: "HostAddress") -> str:
    """Name an address is stored under in known_hosts"""
    if address.port == DEFAULT_SSH_PORT:
        return address.hostname
    return f"[{address.hostname}]:{address.port}"


class KnownHostPolicy(paramiko.MissingHostKeyPolicy):
    """
    Accepts a server key only if known_hosts lists it for `name`.

    paramiko keys its own lookup on the address it dialled; this policy
    checks against a fixed name instead.
    """

    def __init__(self, host_keys: paramiko.HostKeys, name: str):
        self.host_keys = host_keys
        self.name = name

    def missing_host_key(self, client, hostname, key) -> None:
        known = self.host_keys.lookup(self.name)
        if known is None or known.get(key.get_name()) != key:
            raise paramiko.SSHException(
                f"Server key {key.get_name()} is not in known_hosts for {self.name} "
                f"(connected via {hostname})"
            )
        logger.debug(f"Host key for {self.name} verified via {hostname}")


class ParamikoSessionFactory(SessionFactory):
    """
    Opens sessions with `paramiko.SSHClient`.

    Host key verification is on unless `strict_host_key_checking` is False,
    in which case unknown keys are accepted and added for the session.
    """

    def __init__(
        self,
        strict_host_key_checking: bool = True,
        known_hosts_file: Optional[Path] = None,
        timeout: float = DEFAULT_SSH_TIMEOUT,
    ):
        self.strict_host_key_checking = strict_host_key_checking
        self.known_hosts_file = known_hosts_file
        self.timeout = timeout

    def _known_host_keys(self) -> paramiko.HostKeys:
        host_keys = paramiko.HostKeys()
        for path in (KNOWN_HOSTS_PATH, self.known_hosts_file):
            if path and Path(path).expanduser().is_file():
                host_keys.load(str(Path(path).expanduser()))
        return host_keys

    def _new_client(self, host_key_address: Optional["HostAddress"] = None) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        if self.strict_host_key_checking and host_key_address is not None:
            # nothing preloaded: every key goes through the policy
            client.set_missing_host_key_policy(
                KnownHostPolicy(self._known_host_keys(), known_hosts_name(host_key_address))
            )
        elif self.strict_host_key_checking:
            client.load_system_host_keys()
            if self.known_hosts_file:
                client.load_host_keys(str(Path(self.known_hosts_file).expanduser()))
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            logger.warning("Host key checking is disabled; accepting unknown host keys")
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        return client

    def open(
        self,
        address: "HostAddress",
        credential: "Credential",
        host_key_address: Optional["HostAddress"] = None,
    ) -> SessionHandle:
        """
        Open and authenticate one session to `address`.

        `host_key_address` names the host whose known_hosts entry the
        server key must match when that differs from `address`, as for a
        session reached through a forwarded local port.
        """
        connect_kwargs = {
            "hostname": address.hostname,
            "port": address.port,
            "username": credential.user,
            "timeout": self.timeout,
            "banner_timeout": self.timeout,
            "auth_timeout": self.timeout,
            "allow_agent": False,
            "look_for_keys": False,
        }
        if credential.uses_key:
            connect_kwargs["pkey"] = load_private_key(credential.key_path, credential.passphrase)
        else:
            connect_kwargs["password"] = credential.secret

        client = self._new_client(host_key_address)
        try:
            client.connect(**connect_kwargs)
        except (paramiko.SSHException, socket.error) as e:
            client.close()
            raise ConnectError(
                f"Failed to connect to {credential.user}@{address}: {e}"
            ) from e

        logger.debug(f"Connected to {credential.user}@{address}")
        return SessionHandle(client, address, credential.user)


def load_private_key(path: Path, passphrase: Optional[str] = None) -> paramiko.PKey:
    """Try Ed25519, ECDSA and RSA formats in turn"""
    p = Path(path).expanduser()
    if not p.is_file():
        raise ConnectError(f"Private key not found: {p}")

    last_error: Optional[Exception] = None
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key_file(str(p), password=passphrase)
        except paramiko.PasswordRequiredException as e:
            raise ConnectError(f"Private key {p} is encrypted; a passphrase is required") from e
        except (paramiko.SSHException, ValueError) as e:
            last_error = e

    raise ConnectError(f"Failed to load private key at {p}") from last_error
