import errno
import socket
import struct
import threading

import pytest
from fastapi.testclient import TestClient

from app.config import ClamdAddress, ServerConfig
from app.main import create_app

EICAR = b"X5O!P%@AP[4\\PZX54(P^)7CC)7}$EICAR-STANDARD-ANTIVIRUS-TEST-FILE!$H+H*"
EICAR_SIGNATURE = "Win.Test.EICAR_HDB-1"


def _recv_exact(conn: socket.socket, n: int) -> bytes:
    buf = bytearray()
    while len(buf) < n:
        chunk = conn.recv(n - len(buf))
        if not chunk:
            raise EOFError("connection closed")
        buf.extend(chunk)
    return bytes(buf)


def _recv_until(conn: socket.socket, delim: bytes) -> bytes:
    buf = bytearray()
    while not buf.endswith(delim):
        b = conn.recv(1)
        if not b:
            raise EOFError("connection closed")
        buf.extend(b)
    return bytes(buf)


def eicar_reply(data: bytes) -> bytes:
    if EICAR in data:
        return f"stream: {EICAR_SIGNATURE} FOUND\0".encode()
    return b"stream: OK\0"


class FakeClamd:
    """
    Threaded clamd stand-in speaking INSTREAM.

    ``reply`` is either fixed bytes, a callable taking the reassembled payload,
    or None to keep the connection open without replying.
    """

    def __init__(self, reply=eicar_reply):
        self.reply = reply
        self.connections = 0
        self.sessions: list[dict] = []
        self._stop = threading.Event()
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            self._server.bind(("127.0.0.1", 0))
        except OSError as e:
            self._server.close()
            if getattr(e, "errno", None) in (errno.EPERM, errno.EACCES):
                pytest.skip("Socket bind not permitted in this environment.")
            raise
        self._server.listen(8)
        self._server.settimeout(0.1)
        self.port = self._server.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    @property
    def address(self) -> ClamdAddress:
        return ClamdAddress("127.0.0.1", self.port)

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self._server.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            self.connections += 1
            with conn:
                conn.settimeout(5)
                try:
                    self._handle(conn)
                except (OSError, EOFError):
                    pass

    def _handle(self, conn: socket.socket):
        session: dict = {"frames": []}
        self.sessions.append(session)
        session["command"] = _recv_until(conn, b"\0")

        data = bytearray()
        while True:
            (n,) = struct.unpack("!I", _recv_exact(conn, 4))
            session["frames"].append(n)
            if n == 0:
                break
            data.extend(_recv_exact(conn, n))
        session["data"] = bytes(data)

        if self.reply is None:
            session["client_closed"] = conn.recv(1) == b""
            return
        reply = self.reply(session["data"]) if callable(self.reply) else self.reply
        conn.sendall(reply)

    def close(self):
        self._stop.set()
        self._server.close()
        self._thread.join(timeout=2)


@pytest.fixture
def fake_clamd():
    server = FakeClamd()
    yield server
    server.close()


@pytest.fixture
def make_fake_clamd():
    servers = []

    def factory(reply=eicar_reply) -> FakeClamd:
        server = FakeClamd(reply)
        servers.append(server)
        return server

    yield factory
    for server in servers:
        server.close()


@pytest.fixture
def closed_port() -> int:
    # Bind and release a port so nothing listens on it.
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def make_client():
    clients = []

    def factory(upstream: ClamdAddress, **overrides) -> TestClient:
        config = ServerConfig(clamav_upstream=upstream, **overrides)
        test_client = TestClient(create_app(config))
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield factory
    for test_client in clients:
        test_client.__exit__(None, None, None)


@pytest.fixture
def client(fake_clamd, make_client):
    return make_client(fake_clamd.address, chunk_size=16)
