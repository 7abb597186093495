#!/usr/bin/env python3
"""
Command Line Interface for the RTSP client
"""

import sys
import time
import logging
import argparse
import dataclasses

from .config import ClientConfig, load_config
from .connection import RTSPConnection
from .exceptions import RTSPError
from .frame_writer import JpegFrameWriter
from .stream_stats import format_report_summary

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool):
    root_logger = logging.getLogger()
    level = logging.DEBUG if debug else logging.INFO
    root_logger.setLevel(level)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(levelname)s:%(name)s:%(message)s'))
        root_logger.addHandler(handler)
    for handler in root_logger.handlers:
        handler.setLevel(level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Play a motion-JPEG stream from an RTSP server',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--config', '-c', help='Configuration file path (TOML)')
    parser.add_argument('--server', '-s', help='RTSP server host')
    parser.add_argument('--port', '-p', type=int, help='RTSP server port')
    parser.add_argument('--video', '-v', help='Video resource to play')
    parser.add_argument('--duration', '-t', type=float, default=10.0,
                        help='Seconds to play before TEARDOWN (default 10)')
    parser.add_argument('--output-dir', '-o', help='Write received frames here')
    parser.add_argument('--debug', '-d', action='store_true', help='Enable DEBUG logging')
    return parser


def main(argv=None):
    """Main entry point for the rtsp-client command"""
    args = build_parser().parse_args(argv)
    _configure_logging(args.debug)

    try:
        config = load_config(args.config) if args.config else ClientConfig()
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Error loading configuration: {e}")
        sys.exit(1)

    overrides = {}
    if args.server:
        overrides['server_host'] = args.server
    if args.port is not None:
        overrides['server_port'] = args.port
    if args.video:
        overrides['video'] = args.video
    if args.output_dir:
        overrides['frames_dir'] = args.output_dir

    try:
        # replace() re-runs validation
        config = dataclasses.replace(config, **overrides)
    except ValueError as e:
        print(f"❌ Invalid option: {e}")
        sys.exit(1)

    writer = JpegFrameWriter(config.frames_dir) if config.frames_dir else None

    def on_frame(frame):
        if writer is not None:
            writer(frame)

    try:
        conn = RTSPConnection(config.server_host, config.server_port,
                              on_frame=on_frame, config=config)
    except RTSPError as e:
        print(f"❌ {e}")
        sys.exit(1)

    with conn:
        try:
            conn.setup(config.video)
            conn.play()
            logger.info(f"Playing {config.video} for {args.duration:.1f}s")
            time.sleep(args.duration)
            report = conn.last_report or conn.report()
            conn.teardown()
        except RTSPError as e:
            logger.error(f"RTSP session failed: {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            logger.info("Interrupted")
            report = conn.report()

    print(format_report_summary(report))
    if writer is not None:
        stats = writer.get_stats()
        print(f"Frames written: {stats['frames_written']} to {stats['output_dir']}")


if __name__ == '__main__':
    main()
