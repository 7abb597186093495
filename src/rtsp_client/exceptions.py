"""
Exception hierarchy for the RTSP client.

Control-plane failures surface to the caller as one of these. Data-plane
problems (bad datagrams, timeouts) never leave the receive loop.
"""

from typing import Optional


class RTSPError(Exception):
    """Base class for all client errors"""


class RTSPConnectionError(RTSPError, ConnectionError):
    """The control connection or the data socket could not be established"""


class StateError(RTSPError):
    """Operation is not valid in the connection's current state"""


class ProtocolError(RTSPError):
    """Malformed or non-success control response"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransportError(RTSPError, IOError):
    """Transport failure during an otherwise valid control exchange"""
