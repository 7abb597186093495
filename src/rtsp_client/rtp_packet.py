#!/usr/bin/env python3
"""
RTP Packet Codec

Decodes one inbound RTP datagram into a DataFrame. Only motion-JPEG
payloads (RTP payload type 26) produce frames; anything else is dropped.

Header layout (first 12 bytes):
    byte 0      version / padding / extension / CSRC count (ignored)
    byte 1      marker (high bit) + payload type (low 7 bits)
    bytes 2-3   sequence number, big-endian
    bytes 4-7   timestamp, big-endian
    bytes 8-11  SSRC (ignored)
"""

import struct
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

RTP_HEADER_LENGTH = 12
MJPEG_PAYLOAD_TYPE = 26

_HEADER = struct.Struct('>BBHI')


@dataclass(frozen=True)
class DataFrame:
    """One motion-JPEG frame carried by a single RTP packet"""
    payload_type: int       # 7-bit RTP payload type
    marker: bool            # RTP marker bit
    sequence: int           # 16-bit sequence number
    timestamp: int          # 32-bit RTP timestamp
    payload: bytes          # Packet minus the 12-byte header

    def __repr__(self):
        return (f"DataFrame(seq={self.sequence}, ts={self.timestamp}, "
                f"pt={self.payload_type}, marker={self.marker}, "
                f"payload={len(self.payload)} bytes)")


def parse_rtp_packet(data: bytes,
                     payload_type: int = MJPEG_PAYLOAD_TYPE) -> Optional[DataFrame]:
    """
    Parse an RTP datagram into a DataFrame.

    Args:
        data: Raw datagram bytes
        payload_type: The only payload type accepted

    Returns:
        DataFrame, or None if the datagram is too short or carries a
        different payload type
    """
    if len(data) < RTP_HEADER_LENGTH:
        logger.debug(f"Dropping short datagram: {len(data)} bytes")
        return None

    _, b1, sequence, timestamp = _HEADER.unpack_from(data)

    packet_type = b1 & 0x7F
    if packet_type != payload_type:
        logger.debug(f"Dropping packet seq={sequence}: payload type {packet_type}")
        return None

    return DataFrame(
        payload_type=packet_type,
        marker=bool(b1 & 0x80),
        sequence=sequence,
        timestamp=timestamp,
        payload=bytes(data[RTP_HEADER_LENGTH:]),
    )
