#!/usr/bin/env python3
"""
JPEG Frame Writer - Frame Consumer

Writes each delivered motion-JPEG payload to its own file:

    <output_dir>/frame_<sequence:05d>.jpg

Architecture:
    RTPReceiver (reordering) → JpegFrameWriter (storage) → JPEG files
"""

import logging
import threading
from pathlib import Path
from typing import Optional

from .rtp_packet import DataFrame

logger = logging.getLogger(__name__)


class JpegFrameWriter:
    """
    Callable frame consumer for RTSPConnection(on_frame=...).

    Called on the receive thread; counters are guarded so they can be read
    from the control thread.
    """

    def __init__(self, output_dir: Path, prefix: str = "frame"):
        """
        Args:
            output_dir: Directory for JPEG files (created if missing)
            prefix: Filename prefix
        """
        self.output_dir = Path(output_dir)
        self.prefix = prefix
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self.frames_written = 0
        self.bytes_written = 0
        self.last_sequence: Optional[int] = None

    def path_for(self, frame: DataFrame) -> Path:
        return self.output_dir / f"{self.prefix}_{frame.sequence:05d}.jpg"

    def __call__(self, frame: DataFrame):
        path = self.path_for(frame)
        path.write_bytes(frame.payload)

        with self._lock:
            self.frames_written += 1
            self.bytes_written += len(frame.payload)
            self.last_sequence = frame.sequence

        if self.frames_written % 100 == 0:
            logger.debug(f"Wrote {self.frames_written} frames to {self.output_dir}")

    def get_stats(self) -> dict:
        with self._lock:
            return {
                'frames_written': self.frames_written,
                'bytes_written': self.bytes_written,
                'last_sequence': self.last_sequence,
                'output_dir': str(self.output_dir),
            }
