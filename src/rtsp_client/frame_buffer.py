#!/usr/bin/env python3
"""
Frame Reorder Buffer - Absorb Out-of-Order Delivery

Holds DataFrames in a min-heap keyed by RTP sequence number. Nothing is
delivered until the buffer depth reaches the low-watermark (15 frames);
from then on every push is paired with exactly one pop of the lowest
sequence number. The first frame therefore leaves only after the 15th has
arrived, and reordering within roughly that window is corrected.

Sequence numbers are compared as plain integers (no 16-bit wrap handling).
"""

import heapq
import itertools
import logging
from typing import Iterator, List, Optional, Tuple

from .rtp_packet import DataFrame

logger = logging.getLogger(__name__)

DEFAULT_LOW_WATERMARK = 15


class ReorderBuffer:
    """
    Bounded-latency priority buffer ordering frames by sequence number.

    Not thread-safe: only the receive loop touches it while playing, and
    control operations only touch it after the loop has been stopped.
    """

    def __init__(self, low_watermark: int = DEFAULT_LOW_WATERMARK):
        """
        Args:
            low_watermark: Depth that must be reached before delivery starts
        """
        if low_watermark < 1:
            raise ValueError(f"low_watermark must be >= 1, got {low_watermark}")
        self.low_watermark = low_watermark

        # (sequence, arrival order, frame); arrival order breaks ties
        self._heap: List[Tuple[int, int, DataFrame]] = []
        self._arrivals = itertools.count()

        # Statistics
        self.frames_pushed = 0
        self.frames_delivered = 0

    def __len__(self):
        return len(self._heap)

    def push(self, frame: DataFrame) -> Optional[DataFrame]:
        """
        Insert a frame.

        Returns:
            The lowest-sequence frame once the buffer has reached its
            low-watermark, otherwise None (still filling)
        """
        heapq.heappush(self._heap, (frame.sequence, next(self._arrivals), frame))
        self.frames_pushed += 1

        if len(self._heap) >= self.low_watermark:
            if self.frames_delivered == 0:
                logger.debug(f"Reorder buffer reached watermark ({self.low_watermark}), delivering")
            return self._pop()
        return None

    def _pop(self) -> DataFrame:
        _, _, frame = heapq.heappop(self._heap)
        self.frames_delivered += 1
        return frame

    def drain_all(self) -> Iterator[DataFrame]:
        """Pop every buffered frame in ascending sequence order (stream end)"""
        if self._heap:
            logger.debug(f"Draining {len(self._heap)} buffered frames")
        while self._heap:
            yield self._pop()

    def clear(self):
        """Discard buffered frames and counters"""
        self._heap.clear()
        self._arrivals = itertools.count()
        self.frames_pushed = 0
        self.frames_delivered = 0

    def get_stats(self) -> dict:
        return {
            'frames_pushed': self.frames_pushed,
            'frames_delivered': self.frames_delivered,
            'buffer_used': len(self._heap),
            'low_watermark': self.low_watermark,
        }
