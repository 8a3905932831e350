"""Transport selection - picks the variant once, at construction time."""
from __future__ import annotations

import logging

from ..config import TransportConfig
from ..message_router import MessageRouter
from .base import Transport
from .live import LiveTransport
from .simulated import SimulatedTransport
from .socket_bridge import HostBridge, SocketBridge

logger = logging.getLogger(__name__)


def build_transport(
    config: TransportConfig,
    bridge: HostBridge | None = None,
    router: MessageRouter | None = None,
) -> Transport:
    """Build the transport named by ``config.mode``.

    Live mode uses *bridge* when given (host integrations inject their
    own), otherwise a SocketBridge on ``config.socket_path``.
    """
    config.validate()
    if config.mode == "live":
        transport: Transport = LiveTransport(
            bridge if bridge is not None else SocketBridge(),
            config.socket_path,
            router=router,
            event_queue_size=config.event_queue_size,
        )
    else:
        transport = SimulatedTransport(
            router=router,
            session_start_delay=config.session_start_delay,
            output_delay=config.output_delay,
            event_queue_size=config.event_queue_size,
        )
    logger.info("Transport built: %s", transport.name)
    return transport
