"""
LocalForwarder tests over loopback sockets

The gateway channel is stood in for by one end of a socketpair; the test
plays the remote side on the other end.
"""
import socket
import time

import pytest

from sshhop.core.exceptions import ConnectError
from sshhop.proxy.forwarder import ForwardConfig, LocalForwarder


class PairSession:
    """Session whose forward channels are socketpair ends"""

    def __init__(self):
        self.address = "gw.example.com:22"
        self.requests = []
        self.remote_ends = []

    def open_forward_channel(self, destination, origin):
        self.requests.append((destination, origin))
        local_end, remote_end = socket.socketpair()
        self.remote_ends.append(remote_end)
        return local_end


def recv_exactly(sock, n):
    data = b""
    while len(data) < n:
        chunk = sock.recv(n - len(data))
        if not chunk:
            break
        data += chunk
    return data


def test_forwards_bytes_both_ways():
    session = PairSession()
    forwarder = LocalForwarder(session, ForwardConfig("10.0.0.12", 22, local_port=0))
    port = forwarder.start()
    try:
        assert port == forwarder.bound_port
        assert port > 0

        with socket.create_connection(("127.0.0.1", port), timeout=5) as conn:
            conn.sendall(b"SSH-2.0-test\r\n")
            deadline = time.monotonic() + 5
            while not session.remote_ends and time.monotonic() < deadline:
                time.sleep(0.02)
            remote = session.remote_ends[0]
            remote.settimeout(5)

            assert recv_exactly(remote, 14) == b"SSH-2.0-test\r\n"
            remote.sendall(b"SSH-2.0-server\r\n")
            assert recv_exactly(conn, 16) == b"SSH-2.0-server\r\n"

        assert session.requests[0][0] == ("10.0.0.12", 22)
    finally:
        forwarder.stop()
        for end in session.remote_ends:
            end.close()

    assert not forwarder.is_running()


def test_stop_is_idempotent():
    forwarder = LocalForwarder(PairSession(), ForwardConfig("10.0.0.12", 22))
    forwarder.start()
    forwarder.stop()
    forwarder.stop()
    assert not forwarder.is_running()


def test_start_twice_rejected():
    forwarder = LocalForwarder(PairSession(), ForwardConfig("10.0.0.12", 22))
    forwarder.start()
    try:
        with pytest.raises(RuntimeError):
            forwarder.start()
    finally:
        forwarder.stop()


def test_port_in_use_raises_connect_error():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        busy_port = blocker.getsockname()[1]

        forwarder = LocalForwarder(PairSession(), ForwardConfig("10.0.0.12", 22, local_port=busy_port))
        with pytest.raises(ConnectError):
            forwarder.start()
        assert not forwarder.is_running()
