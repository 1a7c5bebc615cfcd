import errno
import socket

import pytest


@pytest.fixture
def listening_port():
    """A loopback port with an active listener."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server.bind(("127.0.0.1", 0))
    server.listen(16)
    try:
        yield server.getsockname()[1]
    finally:
        server.close()


@pytest.fixture
def refused_port():
    """A loopback port nothing listens on, so connections are refused."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    return port


class FakeSocket:
    """Stands in for a TCP socket whose connect never completes on its own."""

    def __init__(self, connect_code=errno.EINPROGRESS, so_error=0, getsockopt_error=None):
        self.connect_code = connect_code
        self.so_error = so_error
        self.getsockopt_error = getsockopt_error
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True

    def setblocking(self, flag):
        pass

    def connect_ex(self, address):
        return self.connect_code

    def getsockopt(self, level, option):
        if self.getsockopt_error:
            raise self.getsockopt_error
        return self.so_error


@pytest.fixture
def fake_socket(monkeypatch):
    """Replaces socket creation in the prober; returns the factory's created sockets."""
    created = []

    def install(**kwargs):
        def factory():
            sock = FakeSocket(**kwargs)
            created.append(sock)
            return sock
        monkeypatch.setattr("portsweep.prober._open_socket", factory)
        return created

    return install
