"""
Client configuration

Settings come from defaults, optionally overridden by a TOML file:

    [server]
    host = "localhost"
    port = 8554
    connect_timeout = 10.0

    [stream]
    video = "movie.Mjpeg"
    receive_timeout = 1.0        # data socket timeout; expiry ends the stream
    read_interval_ms = 20        # minimum spacing between RTP reads
    rate_interval = 1.0          # frame-rate sampling period
    reorder_low_watermark = 15
    max_datagram_size = 15000
    payload_type = 26

    [output]
    frames_dir = "./frames"      # omit to discard frames
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import toml

from .frame_buffer import DEFAULT_LOW_WATERMARK
from .rtp_packet import MJPEG_PAYLOAD_TYPE

logger = logging.getLogger(__name__)


@dataclass
class ClientConfig:
    """Configuration for one RTSP client connection"""
    # Control channel
    server_host: str = "localhost"
    server_port: int = 8554
    connect_timeout: Optional[float] = 10.0

    # Stream
    video: str = "movie.Mjpeg"
    receive_timeout: float = 1.0
    read_interval: float = 0.020
    rate_interval: float = 1.0
    reorder_low_watermark: int = DEFAULT_LOW_WATERMARK
    max_datagram_size: int = 15000
    payload_type: int = MJPEG_PAYLOAD_TYPE

    # Output
    frames_dir: Optional[Path] = None

    def __post_init__(self):
        if not 0 < self.server_port < 65536:
            raise ValueError(f"server_port out of range: {self.server_port}")
        if self.receive_timeout <= 0:
            raise ValueError("receive_timeout must be positive")
        if self.read_interval < 0:
            raise ValueError("read_interval must not be negative")
        if self.rate_interval <= 0:
            raise ValueError("rate_interval must be positive")
        if self.reorder_low_watermark < 1:
            raise ValueError("reorder_low_watermark must be >= 1")
        if not 0 <= self.payload_type < 128:
            raise ValueError(f"payload_type must be 7-bit, got {self.payload_type}")
        if self.frames_dir is not None:
            self.frames_dir = Path(self.frames_dir)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'ClientConfig':
        """Build from a parsed TOML document"""
        server = config.get('server', {})
        stream = config.get('stream', {})
        output = config.get('output', {})

        kwargs: Dict[str, Any] = {}
        if 'host' in server:
            kwargs['server_host'] = server['host']
        if 'port' in server:
            kwargs['server_port'] = int(server['port'])
        if 'connect_timeout' in server:
            kwargs['connect_timeout'] = server['connect_timeout']

        if 'video' in stream:
            kwargs['video'] = stream['video']
        for key in ('receive_timeout', 'rate_interval'):
            if key in stream:
                kwargs[key] = float(stream[key])
        if 'read_interval_ms' in stream:
            kwargs['read_interval'] = float(stream['read_interval_ms']) / 1000.0
        for key in ('reorder_low_watermark', 'max_datagram_size', 'payload_type'):
            if key in stream:
                kwargs[key] = int(stream[key])

        if output.get('frames_dir'):
            kwargs['frames_dir'] = Path(output['frames_dir']).expanduser()

        return cls(**kwargs)


def load_config(config_path: Union[str, Path]) -> ClientConfig:
    """
    Load client configuration from a TOML file.

    Raises:
        FileNotFoundError: config_path does not exist
        ValueError: A setting is out of range
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = toml.load(f)

    logger.info(f"Loaded configuration from {config_path}")
    return ClientConfig.from_dict(config)
