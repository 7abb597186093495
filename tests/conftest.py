"""
Shared fixtures: a scripted RTSP server on loopback and RTP packet helpers.
"""

import socket
import struct
import sys
import threading
from pathlib import Path

import pytest

# Add src to path for development
src_path = str(Path(__file__).parent.parent / 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from rtsp_client import ClientConfig


class RTSPStubServer:
    """
    Minimal RTSP server for tests.

    Answers every request with 200 OK (echoing CSeq, adding Session to
    SETUP) unless told otherwise. Requests are recorded as
    (method, resource, headers) tuples in arrival order.
    """

    def __init__(self, session_id: str = "123456"):
        self.session_id = session_id
        self.requests = []
        self.failures = {}          # method -> (code, reason)
        self.raw_replies = {}       # method -> bytes sent verbatim
        self.disconnect_on = set()  # methods that make the server hang up
        self.omit_session = False
        self.cseq_offset = 0

        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind(('127.0.0.1', 0))
        self._listener.listen(4)
        self._listener.settimeout(0.1)
        self.host, self.port = self._listener.getsockname()

        self._running = False
        self._thread = None
        self._clients = []

    @property
    def methods(self):
        return [method for method, _, _ in self.requests]

    def fail(self, method: str, code: int = 454, reason: str = "Session Not Found"):
        self.failures[method] = (code, reason)

    def start(self):
        self._running = True
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def stop(self):
        self._running = False
        for client in list(self._clients):
            try:
                client.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            client.close()
        self._thread.join(timeout=2)
        self._listener.close()

    def _serve(self):
        while self._running:
            try:
                client, _ = self._listener.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            client.settimeout(None)
            self._clients.append(client)
            try:
                self._handle(client)
            except OSError:
                pass
            finally:
                self._clients.remove(client)
                client.close()

    def _handle(self, client):
        reader = client.makefile('rb')
        while self._running:
            line = reader.readline()
            if not line:
                return
            request_line = line.decode().strip()
            if not request_line:
                continue

            headers = {}
            while True:
                line = reader.readline().decode()
                if not line or not line.strip():
                    break
                name, _, value = line.partition(':')
                headers[name.strip()] = value.strip()

            method, resource, _ = request_line.split(' ', 2)
            self.requests.append((method, resource, headers))

            if method in self.disconnect_on:
                return
            if method in self.raw_replies:
                client.sendall(self.raw_replies[method])
                continue

            code, reason = self.failures.get(method, (200, "OK"))
            cseq = int(headers.get('CSeq', 0)) + self.cseq_offset
            reply = f"RTSP/1.0 {code} {reason}\r\nCSeq: {cseq}\r\n"
            if method == 'SETUP' and code == 200 and not self.omit_session:
                reply += f"Session: {self.session_id}\r\n"
            reply += "\r\n"
            client.sendall(reply.encode())


@pytest.fixture
def rtsp_server():
    server = RTSPStubServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def fast_config():
    """Short timeouts so stream-end paths run quickly"""
    return ClientConfig(
        connect_timeout=2.0,
        receive_timeout=0.75,
        read_interval=0.005,
        rate_interval=0.1,
    )


def build_rtp_packet(sequence: int, timestamp: int = 0, payload_type: int = 26,
                     marker: bool = False, payload: bytes = b'\xff\xd8jpeg\xff\xd9') -> bytes:
    b1 = (0x80 if marker else 0) | (payload_type & 0x7F)
    return struct.pack('>BBHII', 0x80, b1, sequence & 0xFFFF, timestamp, 0x1234) + payload


@pytest.fixture
def make_packet():
    return build_rtp_packet


@pytest.fixture
def udp_sender():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    yield sock
    sock.close()


@pytest.fixture
def refused_port():
    """A loopback TCP port with nothing listening on it"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
