"""YAML configuration loader.

Overlays a YAML file on top of the environment configuration. When no
file is given or discovered, TERMLINK_* env vars work exactly as before.

Example YAML:
    transport:
      mode: live
      socket_path: /data/data/com.termux/files/usr/tmp/claude-code.sock
      working_directory: /storage/emulated/0/ClaudeCode
      output_delay: 0.2
"""
from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

import yaml

from .config import TransportConfig

logger = logging.getLogger(__name__)

CONFIG_CANDIDATES = (
    Path(".termlink") / "termlink.yaml",
    Path("termlink.yaml"),
)

_FLOAT_FIELDS = {"session_start_delay", "output_delay"}
_INT_FIELDS = {"event_queue_size"}


def discover_config(cwd: str | Path) -> Path | None:
    """Return the first existing config candidate under *cwd*, if any."""
    root = Path(cwd)
    for candidate in CONFIG_CANDIDATES:
        path = root / candidate
        if path.exists():
            logger.info("Auto-discovered config: %s", path)
            return path
    return None


def load_yaml_config(
    path: str | Path,
    base: TransportConfig | None = None,
) -> TransportConfig:
    """Load *path* and overlay its ``transport`` section on *base*.

    *base* defaults to TransportConfig.from_env(). Unknown keys are
    ignored with a warning; invalid values raise ValueError.
    """
    path = Path(path)
    logger.info("load_yaml_config: loading %s (exists=%s)", path, path.exists())
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error("load_yaml_config: config file not found at %s", path.absolute())
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    if not isinstance(raw, dict):
        raise ValueError(f"{path}: top level must be a mapping")

    section = raw.get("transport") or {}
    if not isinstance(section, dict):
        raise ValueError(f"{path}: 'transport' must be a mapping")

    config = base if base is not None else TransportConfig.from_env()
    known = {f.name for f in dataclasses.fields(TransportConfig)}
    overrides: dict[str, object] = {}
    for key, value in section.items():
        if key not in known:
            logger.warning("load_yaml_config: ignoring unknown key transport.%s", key)
            continue
        if key in _FLOAT_FIELDS:
            value = float(value)
        elif key in _INT_FIELDS:
            value = int(value)
        elif key == "mode":
            value = str(value).strip().lower()
        elif key == "log_level":
            value = str(value).upper()
        else:
            value = str(value)
        overrides[key] = value

    config = dataclasses.replace(config, **overrides)
    config.validate()
    logger.info(
        "Parsed YAML config %s - overrides: %s",
        path.name, ", ".join(sorted(overrides)) if overrides else "(none)",
    )
    return config
