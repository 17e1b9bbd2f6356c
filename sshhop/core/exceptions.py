"""
Unified exception definitions
"""
from typing import Optional

from .constants import EXIT_STATUS_UNSET


class RemoteError(Exception):
    """Base exception class"""
    pass


class ConfigError(RemoteError):
    """Configuration error"""
    pass


class AuthConfigError(ConfigError):
    """No credential was set before a connect call"""
    pass


class ConnectError(RemoteError):
    """Transport handshake or authentication failure"""
    pass


class RouteConflictError(ConnectError):
    """An open route points at a different host than the one requested"""
    pass


class NotConnectedError(RemoteError):
    """Operation attempted without an active session"""
    pass


class ExecutionError(RemoteError):
    """Exec channel protocol failure"""

    def __init__(self, message: str, exit_status: Optional[int] = None):
        super().__init__(message)
        self.exit_status = EXIT_STATUS_UNSET if exit_status is None else exit_status


class ExecutionInterruptedError(ExecutionError):
    """Command polling was cancelled or ran past its deadline"""
    pass


class TransferError(RemoteError):
    """Transfer error"""
    pass
