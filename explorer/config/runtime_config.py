"""Runtime configuration for the explorer viewer.

Provides centralized configuration for the engine connection, status
polling and request timeouts. Environment variables take precedence over
YAML config, which takes precedence over built-in defaults.

Usage:
    from explorer.config.runtime_config import get_config

    config = get_config()
    config.engine_url          # "http://127.0.0.1:3000"
    config.poll_interval_s     # 2.0

Environment overrides:
    EXPLORER_CONFIG             Path to an alternative YAML file
    EXPLORER_ENGINE             "http" | "demo"
    EXPLORER_ENGINE_URL         Base URL of the HTTP engine
    EXPLORER_DEMO_MODEL         Demo model name ("ping-pong")
    EXPLORER_POLL_INTERVAL_S    Status poll interval in seconds
    EXPLORER_MAX_BACKOFF_S      Upper bound for poll retry backoff
    EXPLORER_REQUEST_TIMEOUT_S  Bound on a single engine query
    EXPLORER_LOG_LEVEL          Logging level name for the API server
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

_CONFIG_PATH = Path(__file__).parent / "runtime.yaml"
_cached_config: Optional["ExplorerConfig"] = None

ENGINE_KINDS = ("http", "demo")

# Polling faster than this hammers the engine for no visible benefit
POLL_INTERVAL_MIN_S = 0.05
POLL_INTERVAL_MAX_S = 300.0
TIMEOUT_MIN_S = 0.05
TIMEOUT_MAX_S = 120.0


def _clamp_seconds(value: float, name: str, min_val: float, max_val: float) -> float:
    """Clamp a duration to sanity bounds with logging.

    Args:
        value: The configured value in seconds.
        name: Human-readable name for logging (e.g., "polling.interval_s").
        min_val: Minimum allowed value.
        max_val: Maximum allowed value.

    Returns:
        Clamped value within [min_val, max_val].
    """
    if value < min_val:
        logger.warning("Config '%s' value %.3fs is below minimum %.3fs. Clamping.", name, value, min_val)
        return min_val
    if value > max_val:
        logger.warning("Config '%s' value %.3fs exceeds maximum %.3fs. Clamping.", name, value, max_val)
        return max_val
    return value


@dataclass(frozen=True)
class ExplorerConfig:
    """Resolved viewer configuration.

    Attributes:
        engine_kind: "http" for a remote checker, "demo" for an in-process model.
        engine_url: Base URL of the HTTP engine.
        demo_model: Name of the bundled model used by the demo engine.
        poll_interval_s: Status poll interval.
        max_backoff_s: Upper bound for the delay between failed polls.
        request_timeout_s: Bound on a single engine query.
        source: Where the values came from ("default" | "yaml" | "env").
    """

    engine_kind: str = "http"
    engine_url: str = "http://127.0.0.1:3000"
    demo_model: str = "ping-pong"
    poll_interval_s: float = 2.0
    max_backoff_s: float = 30.0
    request_timeout_s: float = 5.0
    source: str = "default"


def _default_config() -> Dict[str, Any]:
    """Return default configuration if runtime.yaml doesn't exist."""
    return {
        "version": "1.0",
        "engine": {"kind": "http", "url": "http://127.0.0.1:3000", "demo_model": "ping-pong"},
        "polling": {"interval_s": 2.0, "max_backoff_s": 30.0},
        "requests": {"timeout_s": 5.0},
    }


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return data


def _env_float(name: str, fallback: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return fallback
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number", name, raw)
        return fallback


def load_config(path: Optional[Path] = None) -> ExplorerConfig:
    """Load configuration from YAML and the environment (uncached).

    Args:
        path: YAML file to read. Defaults to $EXPLORER_CONFIG, then
            runtime.yaml beside this module.

    Returns:
        Resolved ExplorerConfig.
    """
    env_path = os.environ.get("EXPLORER_CONFIG")
    config_path = path or (Path(env_path) if env_path else _CONFIG_PATH)

    source = "default"
    data = _default_config()
    if config_path.exists():
        loaded = _read_yaml(config_path)
        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(data.get(section), dict):
                data[section].update(values)
            else:
                data[section] = values
        source = "yaml"

    engine = data.get("engine", {})
    polling = data.get("polling", {})
    requests = data.get("requests", {})

    engine_kind = str(engine.get("kind", "http"))
    engine_url = str(engine.get("url", "http://127.0.0.1:3000"))
    demo_model = str(engine.get("demo_model", "ping-pong"))
    poll_interval_s = float(polling.get("interval_s", 2.0))
    max_backoff_s = float(polling.get("max_backoff_s", 30.0))
    request_timeout_s = float(requests.get("timeout_s", 5.0))

    env_keys = (
        "EXPLORER_ENGINE",
        "EXPLORER_ENGINE_URL",
        "EXPLORER_DEMO_MODEL",
        "EXPLORER_POLL_INTERVAL_S",
        "EXPLORER_MAX_BACKOFF_S",
        "EXPLORER_REQUEST_TIMEOUT_S",
    )
    if any(os.environ.get(key) for key in env_keys):
        source = "env"
    engine_kind = os.environ.get("EXPLORER_ENGINE") or engine_kind
    engine_url = os.environ.get("EXPLORER_ENGINE_URL") or engine_url
    demo_model = os.environ.get("EXPLORER_DEMO_MODEL") or demo_model
    poll_interval_s = _env_float("EXPLORER_POLL_INTERVAL_S", poll_interval_s)
    max_backoff_s = _env_float("EXPLORER_MAX_BACKOFF_S", max_backoff_s)
    request_timeout_s = _env_float("EXPLORER_REQUEST_TIMEOUT_S", request_timeout_s)

    if engine_kind not in ENGINE_KINDS:
        logger.warning("Unknown engine kind %r, falling back to 'http'", engine_kind)
        engine_kind = "http"

    poll_interval_s = _clamp_seconds(
        poll_interval_s, "polling.interval_s", POLL_INTERVAL_MIN_S, POLL_INTERVAL_MAX_S
    )
    max_backoff_s = _clamp_seconds(
        max_backoff_s, "polling.max_backoff_s", poll_interval_s, POLL_INTERVAL_MAX_S
    )
    request_timeout_s = _clamp_seconds(
        request_timeout_s, "requests.timeout_s", TIMEOUT_MIN_S, TIMEOUT_MAX_S
    )

    return ExplorerConfig(
        engine_kind=engine_kind,
        engine_url=engine_url,
        demo_model=demo_model,
        poll_interval_s=poll_interval_s,
        max_backoff_s=max_backoff_s,
        request_timeout_s=request_timeout_s,
        source=source,
    )


def get_config() -> ExplorerConfig:
    """Load configuration, with caching."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reset_config_cache() -> None:
    """Drop the cached configuration (tests and reloads)."""
    global _cached_config
    _cached_config = None
