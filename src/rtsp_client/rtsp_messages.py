#!/usr/bin/env python3
"""
RTSP Control Messages

Text encoding of control requests and parsing of control responses.

Request:
    <METHOD> <resource> RTSP/1.0
    CSeq: <n>
    [Transport: RTP/UDP; client_port= <port>]
    [Session: <id>]
    <blank line>

Response:
    RTSP/1.0 <code> <reason>
    <Name>: <value>       (CSeq always, Session on SETUP)
    <blank line>

Lines are terminated with CRLF on the way out; the parser accepts CRLF or
bare LF.
"""

import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, Optional, Tuple

from .exceptions import ProtocolError, TransportError

logger = logging.getLogger(__name__)

RTSP_VERSION = "RTSP/1.0"
CRLF = "\r\n"

# Longest line we accept before declaring the peer broken
MAX_LINE_LENGTH = 8192


def check_resource(resource: str) -> str:
    """
    Validate a resource name for use in a request line.

    Non-ASCII names are sent as UTF-8. Whitespace and control characters
    would split the request line or inject headers, so they are refused.

    Raises:
        ProtocolError: Empty name, or name containing whitespace or control
            characters
    """
    if not resource:
        raise ProtocolError("Resource name is empty")
    for ch in resource:
        if ch.isspace() or not ch.isprintable():
            raise ProtocolError(f"Resource name contains an illegal character: {resource!r}")
    return resource


@dataclass
class RTSPRequest:
    """A single control request"""
    method: str
    resource: str
    cseq: int
    client_port: Optional[int] = None     # Data-channel port (SETUP only)
    session_id: Optional[str] = None

    def encode(self) -> bytes:
        check_resource(self.resource)
        lines = [
            f"{self.method} {self.resource} {RTSP_VERSION}",
            f"CSeq: {self.cseq}",
        ]
        if self.client_port is not None:
            lines.append(f"Transport: RTP/UDP; client_port= {self.client_port}")
        if self.session_id is not None:
            lines.append(f"Session: {self.session_id}")
        return (CRLF.join(lines) + CRLF + CRLF).encode('utf-8')


@dataclass
class RTSPResponse:
    """A parsed control response"""
    status_code: int
    reason: str
    cseq: Optional[int] = None
    session_id: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)   # lower-cased names

    @property
    def ok(self) -> bool:
        return self.status_code == 200


def _read_line(stream: BinaryIO) -> str:
    try:
        raw = stream.readline(MAX_LINE_LENGTH + 1)
    except OSError as e:
        raise TransportError(f"Control connection read failed: {e}") from e

    if not raw:
        raise TransportError("Control connection closed by server")
    if len(raw) > MAX_LINE_LENGTH:
        raise ProtocolError("Response line too long")

    try:
        return raw.decode('utf-8').rstrip('\r\n')
    except UnicodeDecodeError as e:
        raise ProtocolError(f"Response is not valid text: {e}") from e


def parse_status_line(line: str) -> Tuple[int, str]:
    """
    Split an RTSP status line.

    Returns:
        (status_code, reason) tuple
    """
    parts = line.split(None, 2)
    if len(parts) < 2 or not parts[0].startswith("RTSP/"):
        raise ProtocolError(f"Malformed status line: {line!r}")
    try:
        code = int(parts[1])
    except ValueError:
        raise ProtocolError(f"Malformed status code: {line!r}") from None
    reason = parts[2] if len(parts) == 3 else ""
    return code, reason


def read_rtsp_response(stream: BinaryIO) -> RTSPResponse:
    """
    Read one complete response (status line, headers, blank line).

    Blocks until the blank line arrives; there is no timeout.

    Args:
        stream: Binary file object wrapping the control socket

    Raises:
        ProtocolError: Malformed status line, header or CSeq value
        TransportError: Read failure or end of stream before the blank line
    """
    status_line = _read_line(stream)
    # Tolerate stray blank lines between responses
    while not status_line:
        status_line = _read_line(stream)

    code, reason = parse_status_line(status_line)

    headers: Dict[str, str] = {}
    while True:
        line = _read_line(stream)
        if not line:
            break
        name, sep, value = line.partition(':')
        if not sep or not name.strip():
            raise ProtocolError(f"Malformed header line: {line!r}")
        headers[name.strip().lower()] = value.strip()

    cseq = None
    if 'cseq' in headers:
        try:
            cseq = int(headers['cseq'])
        except ValueError:
            raise ProtocolError(f"Malformed CSeq: {headers['cseq']!r}") from None

    session_id = None
    if 'session' in headers:
        # "Session: 123456;timeout=60"
        session_id = headers['session'].split(';', 1)[0].strip() or None

    logger.debug(f"Response: {code} {reason} (CSeq={cseq}, Session={session_id})")

    return RTSPResponse(
        status_code=code,
        reason=reason,
        cseq=cseq,
        session_id=session_id,
        headers=headers,
    )
