"""
Session domain
"""
from .models import Credential, CredentialKind, HostAddress, RouteState, TunnelSpec
from .manager import SessionManager, Tunnel

__all__ = [
    "Credential",
    "CredentialKind",
    "HostAddress",
    "RouteState",
    "TunnelSpec",
    "SessionManager",
    "Tunnel",
]
