#!/usr/bin/env python3
"""
Stream Statistics - Loss, Reordering and Frame Rate

Tracks, for one connection:
- expected next sequence number
- every sequence number seen so far
- sequence numbers currently believed lost
- how many "lost" packets later turned up (out-of-order arrivals)
- datagram arrivals per second, sampled by a 1-second timer

Gap logic per parsed packet with sequence s:
    s == expected            -> nothing to record
    s in lost                -> it was late, not lost: out_of_order += 1
    expected never seen      -> expected is now believed lost
    then: seen.add(s); expected = s + 1

The expected pointer follows the latest packet, it does not wait for gaps
to fill. 16-bit sequence wraparound is not handled: after 65535 the next
packet (0) is counted as a gap.
"""

import threading
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Set

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class StreamReport:
    """Final statistics for one playback run"""
    average_fps: int                  # sum(per-second counts) // samples
    lost_packets: int                 # Sequence numbers still believed lost
    out_of_order_packets: int         # Late arrivals recovered from the lost set
    frames_received: int = 0          # Datagrams read from the data socket
    peak_fps: int = 0
    rate_samples: List[int] = field(default_factory=list)
    lost_sequences: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def format_report_summary(report: StreamReport) -> str:
    """Format a stream report for console/log display"""
    lines = [
        f"Average FPS: {report.average_fps}, "
        f"Lost packets: {report.lost_packets}, "
        f"Out-of-order packets: {report.out_of_order_packets}",
        f"   Frames received: {report.frames_received} "
        f"over {len(report.rate_samples)}s (peak {report.peak_fps} fps)",
    ]
    if report.lost_sequences:
        shown = report.lost_sequences[:20]
        more = len(report.lost_sequences) - len(shown)
        lost = ', '.join(str(s) for s in shown)
        lines.append(f"   Lost: [{lost}{', ...' if more else ''}]")
    return "\n".join(lines)


class StreamStatistics:
    """
    Per-connection loss/rate statistics.

    observe() and record_arrival() are called from the receive loop,
    sample_rate() from the rate-sampling timer; an internal lock keeps
    them consistent.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    def reset(self):
        """Clear everything (construction and TEARDOWN)"""
        with self._lock:
            self.expected_seq = 0
            self.seen: Set[int] = set()
            self.lost: Set[int] = set()
            self.out_of_order = 0
            self.per_second_counts: List[int] = []
            self.frames_received = 0
            self._arrivals_this_second = 0

    def record_arrival(self):
        """Count one datagram read from the data socket"""
        with self._lock:
            self._arrivals_this_second += 1
            self.frames_received += 1

    def observe(self, sequence: int):
        """Update loss/reorder accounting for one parsed packet"""
        with self._lock:
            if sequence != self.expected_seq:
                if sequence in self.lost:
                    self.lost.discard(sequence)
                    self.out_of_order += 1
                    logger.debug(f"Late packet seq={sequence} (was counted lost)")
                elif self.expected_seq not in self.seen:
                    self.lost.add(self.expected_seq)
                    logger.debug(f"Gap: expected seq={self.expected_seq}, got {sequence}")
            self.seen.add(sequence)
            self.expected_seq = sequence + 1

    def sample_rate(self) -> int:
        """Close the current one-second window; returns its arrival count"""
        with self._lock:
            count = self._arrivals_this_second
            self.per_second_counts.append(count)
            self._arrivals_this_second = 0
        return count

    def average_fps(self) -> int:
        """Truncated mean of the per-second samples (0 with no samples)"""
        with self._lock:
            return self._average_locked()

    def _average_locked(self) -> int:
        if not self.per_second_counts:
            return 0
        counts = np.asarray(self.per_second_counts, dtype=np.int64)
        return int(counts.sum()) // counts.size

    def report(self) -> StreamReport:
        """Snapshot of the current statistics"""
        with self._lock:
            peak = int(np.max(self.per_second_counts)) if self.per_second_counts else 0
            return StreamReport(
                average_fps=self._average_locked(),
                lost_packets=len(self.lost),
                out_of_order_packets=self.out_of_order,
                frames_received=self.frames_received,
                peak_fps=peak,
                rate_samples=list(self.per_second_counts),
                lost_sequences=sorted(self.lost),
            )
