#!/usr/bin/env python3
"""
RTSP Connection - Session State Machine

Drives one RTSP session over a control channel and owns its data plane:

    INIT --setup--> READY --play--> PLAYING
                      ^               |
                      +----pause------+
    READY/PLAYING --teardown--> INIT
    any --close--> closed (terminal)

Every control operation holds one connection-wide lock, checks its
required state before any I/O, and changes state only after a 200
response. Stopping the receive loop (PAUSE, TEARDOWN, close) joins the
loop thread before the lock is released, so statistics and the reorder
buffer can be read or reset safely afterwards.

Architecture:
    caller → RTSPConnection → ControlChannel (RTSP/TCP)
                            → RTPReceiver (RTP/UDP) → on_frame
"""

import logging
import threading
from enum import Enum
from typing import Optional

from .config import ClientConfig
from .control_channel import ControlChannel
from .exceptions import ProtocolError, StateError
from .frame_buffer import ReorderBuffer
from .rtp_receiver import FrameCallback, ReportCallback, RTPReceiver
from .rtsp_messages import RTSPRequest, RTSPResponse, check_resource
from .stream_stats import StreamReport, StreamStatistics

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """RTSP session states"""
    UNOPENED = "unopened"      # Not connected (or closed)
    INIT = "init"              # Connected, no stream set up
    READY = "ready"            # Stream set up, not playing
    PLAYING = "playing"        # Receive loop running


class RTSPConnection:
    """
    Client side of one RTSP/RTP session.

    Example:
        conn = RTSPConnection('localhost', 8554, on_frame=show_frame)
        conn.setup('movie.Mjpeg')
        conn.play()
        ...
        conn.pause()
        conn.teardown()
        conn.close()

    The control connection is opened by the constructor. An already-built
    ControlChannel (open or not) can be passed in instead.
    """

    def __init__(
        self,
        server: str,
        port: int,
        on_frame: FrameCallback,
        config: Optional[ClientConfig] = None,
        on_report: Optional[ReportCallback] = None,
        control_channel: Optional[ControlChannel] = None,
    ):
        """
        Connect to an RTSP server. No request is sent yet.

        Args:
            server: Hostname or IP address of the RTSP server
            port: TCP port of the RTSP server
            on_frame: Consumer callback, called on the receive thread with
                each DataFrame in sequence order
            config: Timing/buffer settings (defaults if None)
            on_report: Called with the final StreamReport when a stream ends
            control_channel: Channel to use instead of a new one

        Raises:
            RTSPConnectionError: The control connection could not be opened
        """
        self.config = config or ClientConfig()
        self.on_frame = on_frame
        self.on_report = on_report

        self.state = ConnectionState.UNOPENED
        self.resource: Optional[str] = None
        self.session_id: Optional[str] = None

        # Per-connection data-plane state
        self.statistics = StreamStatistics()
        self.frame_buffer = ReorderBuffer(self.config.reorder_low_watermark)
        self.receiver: Optional[RTPReceiver] = None
        self.last_report: Optional[StreamReport] = None

        self._closed = False
        self._lock = threading.Lock()

        self.control = control_channel or ControlChannel(self.config.connect_timeout)
        if not self.control.is_open:
            self.control.open(server, port)

        self.state = ConnectionState.INIT
        logger.info(f"RTSP connection to {server}:{port} ready (state {self.state.name})")

    # === Properties ===

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def data_port(self) -> Optional[int]:
        """Local UDP port of the data socket (None before SETUP)"""
        return self.receiver.port if self.receiver else None

    @property
    def receiving(self) -> bool:
        """True while the receive loop is running"""
        return self.receiver is not None and self.receiver.running

    def get_state(self) -> ConnectionState:
        with self._lock:
            return self.state

    # === Control operations ===

    def setup(self, resource: str):
        """
        Send SETUP for a video resource.

        Opens the UDP data socket on an ephemeral port (1 s receive
        timeout by default) and advertises it in the Transport header.

        Raises:
            StateError: Not in INIT
            RTSPConnectionError: Data socket could not be opened
            ProtocolError: Bad resource name, non-200 response or no
                Session header
            TransportError: Control channel failure
        """
        with self._lock:
            self._require('setup', ConnectionState.INIT)
            check_resource(resource)

            receiver = self._create_receiver()
            port = receiver.open()
            try:
                response = self._request('SETUP', resource, client_port=port)
                if not response.session_id:
                    raise ProtocolError("SETUP response carries no Session header",
                                        status_code=response.status_code)
            except Exception:
                receiver.close()
                raise

            self.receiver = receiver
            self.resource = resource
            self.session_id = response.session_id
            self._transition(ConnectionState.READY)
            logger.info(f"Session {self.session_id} set up for {resource} "
                        f"(RTP port {port})")

    def play(self):
        """
        Send PLAY and start the receive loop and rate sampler.

        Raises:
            StateError: Not in READY
            ProtocolError: Non-200 response
            TransportError: Control channel failure
        """
        with self._lock:
            self._require('play', ConnectionState.READY)
            self._request('PLAY', self.resource, session_id=self.session_id)
            self.last_report = None
            self.receiver.start()
            self._transition(ConnectionState.PLAYING)

    def pause(self):
        """
        Send PAUSE and stop the receive loop. Returns only after the loop
        thread has exited.

        Raises:
            StateError: Not in PLAYING
            ProtocolError: Non-200 response
            TransportError: Control channel failure
        """
        with self._lock:
            self._require('pause', ConnectionState.PLAYING)
            self._request('PAUSE', self.resource, session_id=self.session_id)
            self.receiver.stop()
            self._transition(ConnectionState.READY)

    def teardown(self):
        """
        Send TEARDOWN, release the data socket and reset statistics, the
        reorder buffer and the last stream report. The control connection
        stays open, so a new SETUP may follow.

        Raises:
            StateError: In INIT (nothing set up)
            ProtocolError: Non-200 response
            TransportError: Control channel failure
        """
        with self._lock:
            self._require('teardown', ConnectionState.READY, ConnectionState.PLAYING)
            self._request('TEARDOWN', self.resource, session_id=self.session_id)
            self._release_data_plane()
            self.statistics.reset()
            self.frame_buffer.clear()
            self.last_report = None
            self.session_id = None
            self.resource = None
            self._transition(ConnectionState.INIT)

    def close(self):
        """
        Stop the data plane and close both channels. Never raises; calling
        it again is a no-op. No further operation is valid afterwards.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._release_data_plane()
            except Exception as e:
                logger.warning(f"Error releasing data plane on close: {e}")
            try:
                self.control.close()
            except Exception as e:
                logger.warning(f"Error closing control channel: {e}")
            self.state = ConnectionState.UNOPENED
            logger.info("RTSP connection closed")

    def report(self) -> StreamReport:
        """Current statistics snapshot (without ending the stream)"""
        return self.statistics.report()

    # === Internals ===

    def _require(self, operation: str, *allowed: ConnectionState):
        if self._closed:
            raise StateError(f"Connection is closed; cannot {operation}")
        if self.state not in allowed:
            raise StateError(f"Wrong state for {operation}: {self.state.name}")

    def _transition(self, new_state: ConnectionState):
        logger.info(f"State {self.state.name} -> {new_state.name}")
        self.state = new_state

    def _request(self, method: str, resource: str,
                 client_port: Optional[int] = None,
                 session_id: Optional[str] = None) -> RTSPResponse:
        check_resource(resource)
        request = RTSPRequest(
            method=method,
            resource=resource,
            cseq=self.control.next_cseq(),
            client_port=client_port,
            session_id=session_id,
        )
        response = self.control.exchange(request)
        if not response.ok:
            logger.warning(f"{method} rejected: {response.status_code} {response.reason}")
            raise ProtocolError(
                f"{method} failed: {response.status_code} {response.reason}",
                status_code=response.status_code,
            )
        return response

    def _create_receiver(self) -> RTPReceiver:
        cfg = self.config
        return RTPReceiver(
            on_frame=self.on_frame,
            statistics=self.statistics,
            frame_buffer=self.frame_buffer,
            on_stream_end=self._handle_stream_end,
            receive_timeout=cfg.receive_timeout,
            read_interval=cfg.read_interval,
            rate_interval=cfg.rate_interval,
            max_datagram_size=cfg.max_datagram_size,
            payload_type=cfg.payload_type,
        )

    def _handle_stream_end(self, report: StreamReport):
        # Runs on the receive thread; must not take self._lock
        self.last_report = report
        if self.on_report:
            self.on_report(report)

    def _release_data_plane(self):
        receiver = self.receiver
        self.receiver = None
        if receiver is not None:
            receiver.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self):
        return (f"RTSPConnection(state={self.state.name}, resource={self.resource!r}, "
                f"session={self.session_id!r})")
