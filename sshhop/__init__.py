"""
sshhop - remote execution over SSH

Synchronous client for running commands and uploading files on remote
hosts, supporting:
- Password and public-key authentication
- Direct sessions and sessions tunneled through a gateway (ssh -L)
- Command execution with streamed output and exit status
- Batch file upload with on-demand remote directory creation
"""

__version__ = "0.1.0"

from .client import SshClient
from .config import ClientConfig
from .core import (
    EXIT_STATUS_UNSET,
    RemoteError,
    ConfigError,
    AuthConfigError,
    ConnectError,
    RouteConflictError,
    NotConnectedError,
    ExecutionError,
    ExecutionInterruptedError,
    TransferError,
    SessionHandle,
    ParamikoSessionFactory,
    list_source_files,
    load_ssh_config,
    setup_logging,
)
from .domain.session import Credential, HostAddress, RouteState, TunnelSpec, SessionManager
from .domain.execution import CommandExecutor, ExecutionResult
from .domain.transfer import FileTransferer, TransferManifest, TransferReport

__all__ = [
    # Version
    "__version__",
    # Client
    "SshClient",
    "ClientConfig",
    # Models
    "Credential",
    "HostAddress",
    "RouteState",
    "TunnelSpec",
    "ExecutionResult",
    "TransferManifest",
    "TransferReport",
    # Components
    "SessionManager",
    "SessionHandle",
    "ParamikoSessionFactory",
    "CommandExecutor",
    "FileTransferer",
    # Utilities
    "EXIT_STATUS_UNSET",
    "list_source_files",
    "load_ssh_config",
    "setup_logging",
    # Errors
    "RemoteError",
    "ConfigError",
    "AuthConfigError",
    "ConnectError",
    "RouteConflictError",
    "NotConnectedError",
    "ExecutionError",
    "ExecutionInterruptedError",
    "TransferError",
]
