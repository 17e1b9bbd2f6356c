import pytest

from sshhop.core.exceptions import ConnectError
from sshhop.domain.session.models import HostAddress


class FakeChannel:
    """
    Exec channel double.

    `stdout_chunks` arrive one per exit-status poll; the channel reports
    finished on poll number `polls_before_exit` (remaining chunks are
    buffered at that moment).
    """

    def __init__(self, stdout_chunks=(), stderr_chunks=(), exit_status=0, polls_before_exit=1):
        self.pending_out = list(stdout_chunks)
        self.pending_err = list(stderr_chunks)
        self.out = b""
        self.err = b""
        self.exit_status = exit_status
        self.polls_before_exit = polls_before_exit
        self.polls = 0
        self.command = None
        self.write_shut = False
        self.close_count = 0
        self.recv_sizes = []

    def exec_command(self, command):
        self.command = command

    def shutdown_write(self):
        self.write_shut = True

    def _arrive(self):
        if self.pending_out:
            self.out += self.pending_out.pop(0)
        if self.pending_err:
            self.err += self.pending_err.pop(0)

    def recv_ready(self):
        return bool(self.out)

    def recv(self, n):
        self.recv_sizes.append(n)
        data, self.out = self.out[:n], self.out[n:]
        return data

    def recv_stderr_ready(self):
        return bool(self.err)

    def recv_stderr(self, n):
        data, self.err = self.err[:n], self.err[n:]
        return data

    def exit_status_ready(self):
        self.polls += 1
        if self.polls >= self.polls_before_exit:
            while self.pending_out or self.pending_err:
                self._arrive()
            return True
        self._arrive()
        return False

    def recv_exit_status(self):
        return self.exit_status

    def close(self):
        self.close_count += 1


class FakeSftp:
    """SFTP client double over an in-memory directory set"""

    def __init__(self, existing=("/",), fail_chdir_root=False):
        self.dirs = {"/"} | set(existing)
        self.cwd = "/"
        self.calls = []
        self.files = {}
        self.close_count = 0
        self.fail_chdir_root = fail_chdir_root

    def _resolve(self, path):
        if path.startswith("/"):
            return path
        return self.cwd.rstrip("/") + "/" + path

    def chdir(self, path):
        self.calls.append(("chdir", path))
        if path == "/" and self.fail_chdir_root:
            raise IOError(13, "Permission denied")
        target = self._resolve(path)
        if target not in self.dirs:
            raise IOError(2, "No such file")
        self.cwd = target

    def mkdir(self, path):
        self.calls.append(("mkdir", path))
        self.dirs.add(self._resolve(path))

    def putfo(self, fl, remotepath, callback=None, confirm=True):
        data = fl.read()
        self.calls.append(("put", remotepath))
        self.files[self._resolve(remotepath)] = data
        if callback:
            callback(len(data), len(data))

    def close(self):
        self.close_count += 1


class FakeHandle:
    """SessionHandle double"""

    def __init__(self, address, credential):
        self.address = address
        self.credential = credential
        self.user = credential.user
        self.disconnect_count = 0
        self.channels = []
        self.sftp = FakeSftp()
        self.is_active = True

    def open_exec_channel(self):
        return self.channels.pop(0)

    def open_sftp(self):
        return self.sftp

    def disconnect(self):
        self.disconnect_count += 1
        self.is_active = False


class FakeSessionFactory:
    """Records every open; hosts in `failing` refuse the handshake"""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.opened = []
        self.events = None

    def open(self, address, credential, host_key_address=None):
        if self.events is not None:
            self.events.append(("open", address.hostname))
        if address.hostname in self.failing:
            raise ConnectError(f"handshake failed for {address}")
        handle = FakeHandle(address, credential)
        handle.host_key_address = host_key_address
        self.opened.append(handle)
        return handle


class FakeForwarder:
    def __init__(self, session, config, events=None, fail=False):
        self.session = session
        self.config = config
        self.events = events
        self.fail = fail
        self.stopped = 0

    def start(self):
        if self.events is not None:
            self.events.append(("forward", self.config.target_host))
        if self.fail:
            raise ConnectError("bind failed")
        return self.config.local_port or 40022

    def stop(self):
        self.stopped += 1


class ForwarderRecorder:
    """forwarder_factory that keeps the forwarders it built"""

    def __init__(self, events=None, fail=False):
        self.events = events
        self.fail = fail
        self.built = []

    def __call__(self, session, config):
        forwarder = FakeForwarder(session, config, self.events, self.fail)
        self.built.append(forwarder)
        return forwarder


@pytest.fixture
def factory():
    return FakeSessionFactory()


@pytest.fixture
def forwarders():
    return ForwarderRecorder()


@pytest.fixture
def handle():
    from sshhop.domain.session.models import Credential
    return FakeHandle(HostAddress("web01"), Credential.password("deploy", "pw"))
