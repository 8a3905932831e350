"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via TERMLINK_* env vars,
or a YAML file (see yaml_config.py).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from termlink.shared.models.session import DEFAULT_WORKING_DIRECTORY

logger = logging.getLogger(__name__)

TRANSPORT_MODES = ("simulated", "live")

DEFAULT_SOCKET_PATH = "/data/data/com.termux/files/usr/tmp/claude-code.sock"


@dataclass
class TransportConfig:
    """Transport and session defaults."""

    # "simulated" (canned delayed responses) or "live" (host bridge)
    mode: str = "simulated"

    # Live transport: UNIX socket path, or host:port for TCP
    socket_path: str = DEFAULT_SOCKET_PATH

    # Working directory for new sessions when the caller gives none
    working_directory: str = DEFAULT_WORKING_DIRECTORY

    # Credential passed to the backend when starting a session
    api_key: str = ""

    # Simulated transport delays, in seconds
    session_start_delay: float = 1.0
    output_delay: float = 0.5

    # Inbound event queue bound
    event_queue_size: int = 5000

    # Logging
    log_level: str = "INFO"

    def validate(self) -> None:
        """Raise ValueError for settings that cannot work."""
        if self.mode not in TRANSPORT_MODES:
            raise ValueError(
                f"Unknown transport mode {self.mode!r} "
                f"(expected one of: {', '.join(TRANSPORT_MODES)})"
            )
        if self.session_start_delay < 0 or self.output_delay < 0:
            raise ValueError("Simulated delays must not be negative")
        if self.event_queue_size <= 0:
            raise ValueError("event_queue_size must be positive")

    @classmethod
    def from_env(cls) -> TransportConfig:
        """Load configuration from TERMLINK_* environment variables."""
        env_vars = sorted(k for k in os.environ if k.startswith("TERMLINK_"))
        if env_vars:
            # Values are not logged; TERMLINK_API_KEY is a secret.
            logger.info(
                "TransportConfig.from_env: env overrides: %s", ", ".join(env_vars),
            )
        else:
            logger.debug("TransportConfig.from_env: no TERMLINK_* env vars set, using defaults")

        config = cls(
            mode=os.getenv("TERMLINK_MODE", cls.mode).strip().lower(),
            socket_path=os.getenv("TERMLINK_SOCKET_PATH", cls.socket_path),
            working_directory=os.getenv(
                "TERMLINK_WORKING_DIR", cls.working_directory
            ),
            api_key=os.getenv("TERMLINK_API_KEY", cls.api_key),
            session_start_delay=float(os.getenv(
                "TERMLINK_SESSION_START_DELAY", str(cls.session_start_delay)
            )),
            output_delay=float(os.getenv(
                "TERMLINK_OUTPUT_DELAY", str(cls.output_delay)
            )),
            event_queue_size=int(os.getenv(
                "TERMLINK_EVENT_QUEUE_SIZE", str(cls.event_queue_size)
            )),
            log_level=os.getenv("TERMLINK_LOG_LEVEL", cls.log_level).upper(),
        )
        config.validate()
        logger.info(
            "TransportConfig.from_env: mode=%s socket=%s cwd=%s log_level=%s",
            config.mode, config.socket_path,
            config.working_directory, config.log_level,
        )
        return config
