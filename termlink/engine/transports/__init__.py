"""Transport abstraction over the command-execution backend."""
from .base import Transport
from .live import LiveTransport
from .registry import build_transport
from .simulated import SimulatedTransport, simulated_response
from .socket_bridge import HostBridge, SocketBridge

__all__ = [
    "Transport",
    "LiveTransport",
    "SimulatedTransport",
    "simulated_response",
    "HostBridge",
    "SocketBridge",
    "build_transport",
]
