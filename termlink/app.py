"""termlink CLI - main application entry point."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import yaml


def _configure_logging(level: str, *, to_stderr: bool) -> Path:
    """Log to a rotating file, plus stderr when no TUI owns the screen."""
    log_dir = Path.home() / ".termlink" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "termlink.log"

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"
    )
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    if to_stderr:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)
    return log_file


def _build_config(args):
    """Environment first, then the YAML file, then command-line flags."""
    from termlink.engine.config import TransportConfig
    from termlink.engine.yaml_config import discover_config, load_yaml_config

    log = logging.getLogger(__name__)
    config = TransportConfig.from_env()

    config_path = Path(args.config) if args.config else discover_config(Path.cwd())
    if config_path is not None:
        config = load_yaml_config(config_path, base=config)
    else:
        log.info("No config file found; using environment and defaults")

    overrides = {}
    if args.mode:
        overrides["mode"] = args.mode
    if args.socket:
        overrides["socket_path"] = args.socket
    if args.cwd:
        overrides["working_directory"] = args.cwd
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    if overrides:
        config = dataclasses.replace(config, **overrides)
    config.validate()
    return config


def main(argv: list[str] | None = None) -> None:
    import argparse

    parser = argparse.ArgumentParser(
        prog="termlink",
        description="termlink - terminal sessions over a simulated or live backend",
    )
    parser.add_argument(
        "--server", action="store_true",
        help="Start the HTTP+websocket server instead of the TUI",
    )
    parser.add_argument(
        "--host", default="127.0.0.1",
        help="Server bind address (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port", type=int, default=8765,
        help="Server port (0=random available port)",
    )
    parser.add_argument(
        "--mode", choices=("simulated", "live"),
        help="Transport mode (overrides TERMLINK_MODE and YAML)",
    )
    parser.add_argument(
        "--socket", metavar="PATH",
        help="Backend socket path, or host:port, for live mode",
    )
    parser.add_argument(
        "--cwd", metavar="DIR",
        help="Working directory for new sessions",
    )
    parser.add_argument(
        "--config", metavar="PATH",
        help="YAML config file (default: .termlink/termlink.yaml or termlink.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args(argv)

    # Bootstrap logging before config so env/YAML parsing is recorded.
    log_file = _configure_logging(
        "DEBUG" if args.verbose else "INFO", to_stderr=args.server,
    )
    log = logging.getLogger(__name__)
    try:
        config = _build_config(args)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        log.error("Invalid configuration: %s", exc)
        print(f"termlink: invalid configuration: {exc}", file=sys.stderr)
        sys.exit(2)
    logging.getLogger().setLevel(getattr(logging, config.log_level, logging.INFO))
    log.info(
        "Starting termlink (%s) mode=%s cwd=%s log=%s",
        "server" if args.server else "tui", config.mode,
        config.working_directory, log_file,
    )

    from termlink.adapters.orchestrator import SessionOrchestrator
    from termlink.engine.transports import build_transport

    orchestrator = SessionOrchestrator(
        build_transport(config),
        default_working_directory=config.working_directory,
    )

    if args.server:
        from termlink.web.server import TerminalServer

        server = TerminalServer(
            orchestrator,
            host=args.host,
            port=args.port,
            default_credential=config.api_key,
        )
        try:
            asyncio.run(server.serve_forever())
        except KeyboardInterrupt:
            log.info("Interrupted")
        sys.exit(0)

    # TUI mode
    from termlink.tui.app import TerminalApp

    app = TerminalApp(
        orchestrator,
        credential=config.api_key,
        working_directory=config.working_directory,
    )
    app.run()


if __name__ == "__main__":
    main()
