"""
RTSP Client - Motion-JPEG over RTSP/RTP

Client-side engine for an RTSP control channel plus an RTP/UDP data channel:
- Session state machine (SETUP / PLAY / PAUSE / TEARDOWN)
- Receive loop with a 15-frame reorder buffer
- Loss, out-of-order and frame-rate statistics per connection

Quick Start:
    from rtsp_client import RTSPConnection

    def show(frame):
        print(frame.sequence, len(frame.payload))

    conn = RTSPConnection('localhost', 8554, on_frame=show)
    conn.setup('movie.Mjpeg')
    conn.play()
    ...
    conn.teardown()
    conn.close()
"""

__version__ = "1.0.0"

from .exceptions import (
    RTSPError, RTSPConnectionError, StateError, ProtocolError, TransportError
)
from .rtp_packet import DataFrame, parse_rtp_packet, MJPEG_PAYLOAD_TYPE, RTP_HEADER_LENGTH
from .rtsp_messages import RTSPRequest, RTSPResponse, read_rtsp_response
from .control_channel import ControlChannel
from .frame_buffer import ReorderBuffer
from .stream_stats import StreamStatistics, StreamReport, format_report_summary
from .worker import PeriodicWorker
from .rtp_receiver import RTPReceiver
from .connection import RTSPConnection, ConnectionState
from .config import ClientConfig, load_config
from .frame_writer import JpegFrameWriter

__all__ = [
    # === Session (primary interface) ===
    "RTSPConnection",
    "ConnectionState",
    "ClientConfig",
    "load_config",
    # Errors
    "RTSPError",
    "RTSPConnectionError",
    "StateError",
    "ProtocolError",
    "TransportError",
    # === Data plane ===
    "DataFrame",
    "parse_rtp_packet",
    "MJPEG_PAYLOAD_TYPE",
    "RTP_HEADER_LENGTH",
    "RTPReceiver",
    "ReorderBuffer",
    "StreamStatistics",
    "StreamReport",
    "format_report_summary",
    "PeriodicWorker",
    "JpegFrameWriter",
    # === Control plane (lower-level) ===
    "ControlChannel",
    "RTSPRequest",
    "RTSPResponse",
    "read_rtsp_response",
]
