from __future__ import annotations

import shlex
import threading
from pathlib import Path, PurePosixPath
from typing import Optional, Sequence, Union

from .config import ClientConfig
from .core.constants import EXIT_STATUS_UNSET
from .core.interfaces import SessionFactory
from .core.logging import get_logger
from .domain.execution import CommandExecutor, ExecutionResult, OutputSink
from .domain.session import Credential, RouteState, SessionManager, TunnelSpec
from .domain.session.manager import ForwarderFactory
from .domain.transfer import FileTransferer, ProgressCallback, normalize_remote_path
from .proxy.forwarder import LocalForwarder

logger = get_logger(__name__)


class SshClient:
    """
    Runs commands and uploads files on a remote host, directly or through
    a gateway tunnel.

    - authenticate_password / authenticate_key 设置凭据（后设置的覆盖前者）
    - connect 直连, connect_through_default_tunnel 经网关转发
    - execute_command / copy_files 使用当前路由的会话
    - 支持 with 上下文管理，退出时 close()

    Usage:
        with SshClient(config) as client:
            client.authenticate_password(user, password)
            client.connect(host)
            client.execute_command("hostname; pwd")
    """
    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        session_factory: Optional[SessionFactory] = None,
        forwarder_factory: ForwarderFactory = LocalForwarder,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.config.validate()

        self.sessions = SessionManager(
            session_factory or self.config.session_factory(),
            forwarder_factory,
        )
        self.executor = CommandExecutor(
            poll_interval=self.config.poll_interval,
            chunk_size=self.config.read_chunk_size,
        )
        self.transferer = FileTransferer(progress_callback)

    # --------------------
    # Authentication
    # --------------------
    def authenticate(self, credential: Credential) -> None:
        self.sessions.authenticate(credential)

    def authenticate_password(self, user: str, password: str) -> None:
        """Use password authentication for the next connect"""
        self.sessions.authenticate(Credential.password(user, password))

    def authenticate_key(
        self,
        user: str,
        key_path: Union[str, Path],
        passphrase: Optional[str] = None,
    ) -> None:
        """
        Use public-key authentication for the next connect.

        The matching public key must already be in the remote user's
        authorized_keys.
        """
        self.sessions.authenticate(Credential.public_key(user, Path(key_path), passphrase))

    # --------------------
    # Connection management
    # --------------------
    @property
    def route(self) -> RouteState:
        return self.sessions.route

    @property
    def tunneled(self) -> bool:
        return self.sessions.route is RouteState.TUNNELED

    def connect(self, host: str, port: Optional[int] = None) -> None:
        """Connect directly to `host`"""
        self.sessions.connect_direct(host, port)

    def connect_through_default_tunnel(self, host: str) -> None:
        """Connect to `host` through the gateway from `config.gateway`"""
        self.sessions.connect_via_tunnel(host, self.config.gateway)

    def connect_through_tunnel(self, host: str, tunnel: TunnelSpec) -> None:
        """Connect to `host` through an explicit gateway"""
        self.sessions.connect_via_tunnel(host, tunnel)

    def close(self) -> None:
        """Release every session. Safe to call repeatedly."""
        self.sessions.close_all()

    # --------------------
    # Operations
    # --------------------
    def execute_command(
        self,
        command: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        stdout_sink: Optional[OutputSink] = None,
        stderr_sink: Optional[OutputSink] = None,
    ) -> int:
        """
        Execute a command or script remotely; output goes to the log.

        Returns:
            Remote exit status, or EXIT_STATUS_UNSET (-100) if none was seen
        """
        return self.run(command, timeout, cancel_event, stdout_sink, stderr_sink).exit_status

    def run(
        self,
        command: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        stdout_sink: Optional[OutputSink] = None,
        stderr_sink: Optional[OutputSink] = None,
    ) -> ExecutionResult:
        """Same as execute_command but returns the full ExecutionResult"""
        handle = self.sessions.active_handle()
        logger.debug(f"tunneled: {self.tunneled}")
        return self.executor.execute(
            handle,
            command,
            timeout=timeout,
            cancel_event=cancel_event,
            stdout_sink=stdout_sink,
            stderr_sink=stderr_sink,
        )

    def copy_files(
        self,
        paths: Sequence[Union[str, Path]],
        remote_dir: Union[str, Path],
    ) -> bool:
        """
        Copy local files into `remote_dir`, creating missing directories.

        Returns:
            True if every file was uploaded
        """
        handle = self.sessions.active_handle()
        logger.debug(f"tunneled: {self.tunneled}")
        return self.transferer.copy_files(handle, paths, remote_dir)

    def run_script(
        self,
        script: Union[str, Path],
        remote_dir: Union[str, Path],
        timeout: Optional[float] = None,
    ) -> int:
        """
        Upload a local script, strip CR line endings, make it executable
        and run it.

        Returns:
            The script's exit status, or EXIT_STATUS_UNSET if the upload failed
        """
        script = Path(script)
        if not self.copy_files([script], remote_dir):
            logger.error(f"Upload of {script} failed; not running it")
            return EXIT_STATUS_UNSET

        remote_script = str(PurePosixPath("/", normalize_remote_path(remote_dir), script.name))
        quoted = shlex.quote(remote_script)
        cmd = f"sed -i 's/\\r$//' {quoted} && chmod +x {quoted} && {quoted}"
        return self.execute_command(cmd, timeout=timeout)

    # --------------------
    # Context manager
    # --------------------
    def __enter__(self) -> SshClient:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

