"""
SSH local port forwarding using paramiko

设计说明：
==========
本地端口转发（Local Port Forwarding, ssh -L）：
- 本地监听 bind_host:local_port
- 每个进入的连接通过网关会话打开 direct-tcpip 通道
- 通道目的地为 target_host:target_port

Paramiko 没有直接提供 -L 的监听端，因此：
- 自己绑定本地 socket 并在后台线程 accept
- 对每个连接调用 Transport.open_channel("direct-tcpip", ...)
- 使用 select 在 socket 与通道之间双向转发数据
"""
import select
import socket
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

import paramiko

from ..core.constants import DEFAULT_TUNNEL_BIND_HOST, FORWARD_BUFFER_SIZE
from ..core.exceptions import ConnectError
from ..core.logging import get_logger
from ..core.session import SessionHandle

logger = get_logger(__name__)


@dataclass
class ForwardConfig:
    """Forwarding configuration"""
    target_host: str
    target_port: int
    local_port: int = 0
    bind_host: str = DEFAULT_TUNNEL_BIND_HOST


class LocalForwarder:
    """
    Forwards a local listening port to a destination reachable from the
    gateway session.

    `bound_port` is only meaningful after `start()`; with `local_port=0`
    it holds the ephemeral port the OS assigned.
    """
    
    def __init__(
        self,
        session: SessionHandle,
        config: ForwardConfig,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.session = session
        self.config = config
        self.on_error = on_error
        self.bound_port: Optional[int] = None
        self._listener: Optional[socket.socket] = None
        self._acceptor_thread: Optional[threading.Thread] = None
        self._running = False
        self._lock = threading.Lock()
        self._channels: List[paramiko.Channel] = []
    
    def start(self) -> int:
        """
        Bind the local listener and start accepting connections.

        Returns:
            The bound local port

        Raises:
            ConnectError: If the local port can not be bound
        """
        with self._lock:
            if self._running:
                raise RuntimeError("Forwarder is already running")
            
            listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                listener.bind((self.config.bind_host, self.config.local_port))
                listener.listen(16)
            except OSError as e:
                listener.close()
                raise ConnectError(
                    f"Failed to bind local forward port "
                    f"{self.config.bind_host}:{self.config.local_port}: {e}"
                ) from e
            
            self._listener = listener
            self.bound_port = listener.getsockname()[1]
            self._running = True
            self._acceptor_thread = threading.Thread(
                target=self._run_acceptor,
                name=f"forward-{self.bound_port}",
                daemon=True,
            )
            self._acceptor_thread.start()
        
        logger.debug(
            f"Forwarding {self.config.bind_host}:{self.bound_port} -> "
            f"{self.config.target_host}:{self.config.target_port} via {self.session.address}"
        )
        return self.bound_port
    
    def stop(self) -> None:
        """Stop forwarding and close every live channel"""
        with self._lock:
            if not self._running:
                return
            self._running = False
            
            if self._listener:
                try:
                    self._listener.close()
                except OSError as e:
                    logger.debug(f"Closing forward listener failed: {e}")
                self._listener = None
            
            channels, self._channels = self._channels[:], []
        
        for chan in channels:
            chan.close()
        
        if self._acceptor_thread and self._acceptor_thread.is_alive():
            self._acceptor_thread.join(timeout=2.0)
        self._acceptor_thread = None
    
    def is_running(self) -> bool:
        """Check if forwarder is running"""
        with self._lock:
            return self._running
    
    def _run_acceptor(self) -> None:
        """Accept loop; wakes once a second to notice `stop()`"""
        while self._running:
            listener = self._listener
            if listener is None:
                break
            try:
                readable, _, _ = select.select([listener], [], [], 1.0)
                if not readable:
                    continue
                client_sock, origin = listener.accept()
            except (OSError, ValueError):
                # listener closed by stop()
                break
            
            threading.Thread(
                target=self._handle_local_connection,
                args=(client_sock, origin),
                daemon=True,
            ).start()
    
    def _handle_local_connection(self, sock: socket.socket, origin: tuple) -> None:
        """Open a direct-tcpip channel for one local connection and pump it"""
        chan = None
        try:
            chan = self.session.open_forward_channel(
                (self.config.target_host, self.config.target_port),
                origin,
            )
            with self._lock:
                self._channels.append(chan)
            self._forward_data(chan, sock)
        except Exception as e:
            logger.debug(f"Forwarded connection from {origin} failed: {e}")
            if self.on_error:
                self.on_error(e)
        finally:
            try:
                sock.close()
            except OSError:
                pass
            if chan is not None:
                chan.close()
                with self._lock:
                    if chan in self._channels:
                        self._channels.remove(chan)
    
    def _forward_data(self, chan: paramiko.Channel, sock: socket.socket) -> None:
        """Forward bytes both ways until either side closes"""
        while self._running:
            readable, _, _ = select.select([sock, chan], [], [], 1.0)
            if sock in readable:
                data = sock.recv(FORWARD_BUFFER_SIZE)
                if not data:
                    break
                chan.sendall(data)
            if chan in readable:
                data = chan.recv(FORWARD_BUFFER_SIZE)
                if not data:
                    break
                sock.sendall(data)
