#!/usr/bin/env python3
"""
RTP Receiver - Data Plane Receive Loop

Reads motion-JPEG RTP packets from the session's UDP data socket and pushes
them through:

    socket → parse_rtp_packet → StreamStatistics → ReorderBuffer → on_frame

Two workers run while playing:
- the receive loop: one bounded read per iteration (socket timeout, 1 s by
  default), iterations started at least 20 ms apart
- the rate sampler: closes a one-second arrival window every second

A socket timeout means the stream has ended: the reorder buffer is drained
to the consumer, a final StreamReport is produced and both workers stop.
None of this reaches the control-plane caller.
"""

import socket
import logging
from typing import Callable, Optional

from .exceptions import RTSPConnectionError
from .frame_buffer import ReorderBuffer
from .rtp_packet import DataFrame, MJPEG_PAYLOAD_TYPE, parse_rtp_packet
from .stream_stats import StreamReport, StreamStatistics, format_report_summary
from .worker import PeriodicWorker

logger = logging.getLogger(__name__)

FrameCallback = Callable[[DataFrame], None]
ReportCallback = Callable[[StreamReport], None]


class RTPReceiver:
    """
    Owns the UDP data socket of one RTSP session and its receive loop.

    The statistics and reorder buffer are passed in by the owning
    connection so they outlive a PAUSE/PLAY cycle and are reset only at
    TEARDOWN.

    Example:
        receiver = RTPReceiver(on_frame=show, statistics=stats,
                               frame_buffer=ReorderBuffer())
        port = receiver.open()        # send this port in SETUP
        receiver.start()              # after PLAY succeeds
        receiver.stop()               # PAUSE
        receiver.close()              # TEARDOWN / close
    """

    def __init__(
        self,
        on_frame: FrameCallback,
        statistics: StreamStatistics,
        frame_buffer: ReorderBuffer,
        on_stream_end: Optional[ReportCallback] = None,
        receive_timeout: float = 1.0,
        read_interval: float = 0.020,
        rate_interval: float = 1.0,
        max_datagram_size: int = 15000,
        payload_type: int = MJPEG_PAYLOAD_TYPE,
        bind_address: str = '',
    ):
        """
        Initialize RTP receiver.

        Args:
            on_frame: Consumer callback, invoked on the receive thread
            statistics: Per-connection loss/rate statistics
            frame_buffer: Per-connection reorder buffer
            on_stream_end: Called with the final report when the stream ends
            receive_timeout: Socket read timeout; expiry ends the stream
            read_interval: Minimum seconds between read attempts
            rate_interval: Frame-rate sampling period
            max_datagram_size: Receive buffer size per datagram
            payload_type: RTP payload type accepted as frames
            bind_address: Local address for the data socket ('' = all)
        """
        self.on_frame = on_frame
        self.statistics = statistics
        self.frame_buffer = frame_buffer
        self.on_stream_end = on_stream_end
        self.receive_timeout = receive_timeout
        self.max_datagram_size = max_datagram_size
        self.payload_type = payload_type
        self.bind_address = bind_address

        self.socket: Optional[socket.socket] = None
        self.port: Optional[int] = None
        self.final_report: Optional[StreamReport] = None

        self._receive_worker = PeriodicWorker(
            'rtp-receive', self._receive_once, min_interval=read_interval)
        self._rate_worker = PeriodicWorker(
            'rtp-rate', self._sample_rate, min_interval=rate_interval,
            initial_delay=rate_interval)

    @property
    def running(self) -> bool:
        """True while the receive loop thread is alive"""
        return self._receive_worker.running

    def open(self) -> int:
        """
        Create the data socket on an ephemeral port.

        Returns:
            Local UDP port number to advertise in SETUP

        Raises:
            RTSPConnectionError: Socket could not be created or bound
        """
        if self.socket is not None:
            return self.port

        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            try:
                sock.bind((self.bind_address, 0))
                sock.settimeout(self.receive_timeout)
            except OSError:
                sock.close()
                raise
        except OSError as e:
            raise RTSPConnectionError(f"Cannot open RTP data socket: {e}") from e

        self.socket = sock
        self.port = sock.getsockname()[1]
        logger.info(f"RTP data socket bound to UDP port {self.port} "
                    f"(timeout {self.receive_timeout}s)")
        return self.port

    def start(self):
        """Start the receive loop and the rate sampler"""
        if self.socket is None:
            raise RuntimeError("RTP data socket is not open")
        if self.running:
            logger.warning("RTP receiver already running")
            return

        self.final_report = None
        self._receive_worker.start()
        self._rate_worker.start()
        logger.info(f"RTP receiver started on port {self.port}")

    def stop(self):
        """
        Stop both workers. Blocks until the in-flight read has completed
        and no further iteration will start.
        """
        self._receive_worker.stop()
        self._rate_worker.stop()
        logger.debug("RTP receiver stopped")

    def close(self):
        """Stop the workers and release the data socket. Idempotent."""
        self.stop()
        sock = self.socket
        self.socket = None
        if sock is not None:
            try:
                sock.close()
            except OSError as e:
                logger.debug(f"Ignoring error closing RTP socket: {e}")
            logger.info(f"RTP data socket on port {self.port} closed")

    def _sample_rate(self) -> bool:
        count = self.statistics.sample_rate()
        logger.debug(f"Frame rate sample: {count} fps")
        return True

    def _receive_once(self) -> bool:
        """One receive-loop iteration. Returns False when the stream ends."""
        sock = self.socket
        if sock is None:
            return False

        try:
            data = sock.recv(self.max_datagram_size)
        except socket.timeout:
            self._finish_stream()
            return False
        except OSError as e:
            # Transient read failure: skip this iteration
            logger.debug(f"RTP read failed: {e}")
            return True

        self.statistics.record_arrival()

        frame = parse_rtp_packet(data, self.payload_type)
        if frame is None:
            return True

        self.statistics.observe(frame.sequence)

        ready = self.frame_buffer.push(frame)
        if ready is not None:
            self._deliver(ready)
        return True

    def _deliver(self, frame: DataFrame):
        try:
            self.on_frame(frame)
        except Exception as e:
            logger.error(f"Frame consumer failed on seq={frame.sequence}: {e}", exc_info=True)

    def _finish_stream(self):
        """Socket timed out: drain, report and wind down the sampler"""
        drained = 0
        for frame in self.frame_buffer.drain_all():
            self._deliver(frame)
            drained += 1

        self._rate_worker.stop()

        report = self.statistics.report()
        self.final_report = report
        logger.info(f"RTP stream ended on port {self.port} "
                    f"({drained} buffered frames drained)")
        logger.info(format_report_summary(report))

        if self.on_stream_end:
            try:
                self.on_stream_end(report)
            except Exception as e:
                logger.error(f"Stream-end callback error: {e}", exc_info=True)
