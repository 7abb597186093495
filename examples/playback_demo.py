#!/usr/bin/env python3
"""
Playback Demo - Session Lifecycle

Walks one RTSP session through SETUP, PLAY, PAUSE, PLAY again and
TEARDOWN, counting delivered frames and printing the stream statistics.

Usage:
    python examples/playback_demo.py
    python examples/playback_demo.py --server 192.168.1.20 --port 8554 --video movie.Mjpeg
"""

import argparse
import sys
import time
from pathlib import Path

# Add parent directory to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from rtsp_client import (
    RTSPConnection,
    RTSPError,
    format_report_summary,
)


class FrameCounter:
    """Counts frames and remembers the last sequence number"""

    def __init__(self):
        self.count = 0
        self.last_sequence = None

    def __call__(self, frame):
        self.count += 1
        self.last_sequence = frame.sequence


def run_demo(server: str, port: int, video: str, play_seconds: float):
    counter = FrameCounter()

    print("\n" + "="*60)
    print(f"Connecting to rtsp://{server}:{port}/{video}")
    print("="*60)

    with RTSPConnection(server, port, on_frame=counter) as conn:
        conn.setup(video)
        print(f"\n✓ SETUP: session {conn.session_id}, RTP on UDP port {conn.data_port}")

        conn.play()
        print(f"▶ PLAY for {play_seconds:.1f}s...")
        time.sleep(play_seconds)

        conn.pause()
        print(f"⏸ PAUSE after {counter.count} frames (last seq {counter.last_sequence})")
        time.sleep(1.0)

        conn.play()
        print(f"▶ PLAY again for {play_seconds:.1f}s...")
        time.sleep(play_seconds)

        report = conn.last_report or conn.report()
        conn.teardown()
        print(f"■ TEARDOWN, state now {conn.state.name}")

    print("\n" + format_report_summary(report))
    print(f"Frames delivered: {counter.count}")


def main():
    parser = argparse.ArgumentParser(description='RTSP playback lifecycle demo')
    parser.add_argument('--server', default='localhost', help='RTSP server host')
    parser.add_argument('--port', type=int, default=8554, help='RTSP server port')
    parser.add_argument('--video', default='movie.Mjpeg', help='Video resource')
    parser.add_argument('--seconds', type=float, default=3.0, help='Seconds per PLAY')
    args = parser.parse_args()

    try:
        run_demo(args.server, args.port, args.video, args.seconds)
    except RTSPError as e:
        print(f"\n❌ {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
