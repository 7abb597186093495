#!/usr/bin/env python3
"""
RTSP Control Channel

Owns the TCP connection to the RTSP server. Requests are never pipelined:
each request is written and its response read before the next one goes
out. CSeq correlation numbers start at 1 and increase by exactly one per
request.

Response reads have no timeout. A server that stops answering stalls the
calling control operation.
"""

import socket
import logging
import threading
from typing import BinaryIO, Optional

from .exceptions import ProtocolError, RTSPConnectionError, TransportError
from .rtsp_messages import RTSPRequest, RTSPResponse, read_rtsp_response

logger = logging.getLogger(__name__)


class ControlChannel:
    """
    Request/response exchange over the RTSP control connection.

    Example:
        channel = ControlChannel()
        channel.open('localhost', 8554)
        request = RTSPRequest('SETUP', 'movie.Mjpeg', channel.next_cseq(),
                              client_port=50000)
        response = channel.exchange(request)
        channel.close()
    """

    def __init__(self, connect_timeout: Optional[float] = 10.0):
        """
        Args:
            connect_timeout: Seconds allowed for the TCP handshake (None = OS
                default). Reads after the handshake never time out.
        """
        self.connect_timeout = connect_timeout
        self.host: Optional[str] = None
        self.port: Optional[int] = None
        self._socket: Optional[socket.socket] = None
        self._reader: Optional[BinaryIO] = None
        self._cseq = 0
        self._cseq_lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._socket is not None

    @property
    def last_cseq(self) -> int:
        """Most recently assigned correlation number (0 before any request)"""
        return self._cseq

    def open(self, host: str, port: int):
        """
        Connect to the RTSP server.

        Raises:
            RTSPConnectionError: Name resolution, refusal, timeout or any other
                transport failure
        """
        if self._socket is not None:
            logger.warning(f"Control channel already open to {self.host}:{self.port}")
            return

        try:
            sock = socket.create_connection((host, port), timeout=self.connect_timeout)
        except OSError as e:
            raise RTSPConnectionError(f"Cannot connect to {host}:{port}: {e}") from e

        # Responses are read without a timeout
        sock.settimeout(None)
        self._socket = sock
        self._reader = sock.makefile('rb')
        self.host = host
        self.port = port
        logger.info(f"Control channel connected to {host}:{port}")

    def next_cseq(self) -> int:
        """Allocate the correlation number for the next request"""
        with self._cseq_lock:
            self._cseq += 1
            return self._cseq

    def send(self, request: RTSPRequest):
        """
        Write one request.

        Raises:
            TransportError: Channel not open or write failed
        """
        if self._socket is None:
            raise TransportError("Control channel is not open")

        data = request.encode()
        logger.debug(f"Sending {request.method} {request.resource} CSeq={request.cseq}")
        try:
            self._socket.sendall(data)
        except OSError as e:
            raise TransportError(f"Failed to send {request.method}: {e}") from e

    def receive_response(self) -> RTSPResponse:
        """
        Block until one full response has been read.

        Raises:
            ProtocolError: Malformed response
            TransportError: Channel not open, read failure or connection closed
        """
        if self._reader is None:
            raise TransportError("Control channel is not open")
        return read_rtsp_response(self._reader)

    def exchange(self, request: RTSPRequest) -> RTSPResponse:
        """
        Send a request and read its response.

        Raises:
            ProtocolError: Malformed response or CSeq mismatch
            TransportError: Transport failure
        """
        self.send(request)
        response = self.receive_response()
        if response.cseq is not None and response.cseq != request.cseq:
            raise ProtocolError(
                f"{request.method}: response CSeq {response.cseq} "
                f"does not match request CSeq {request.cseq}",
                status_code=response.status_code,
            )
        return response

    def close(self):
        """Release the control socket. Safe to call more than once."""
        reader, sock = self._reader, self._socket
        self._reader = None
        self._socket = None

        if reader is not None:
            try:
                reader.close()
            except OSError as e:
                logger.debug(f"Ignoring error closing control reader: {e}")
        if sock is not None:
            try:
                sock.close()
            except OSError as e:
                logger.debug(f"Ignoring error closing control socket: {e}")
            logger.info(f"Control channel to {self.host}:{self.port} closed")
