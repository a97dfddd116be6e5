"""
factory.py - Engine factory functions.

Provides centralized engine instantiation from the resolved runtime config:
- "http": HttpExplorerEngine against config.engine_url
- "demo": ModelEngine over a bundled model (config.demo_model)
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from explorer.config.runtime_config import ExplorerConfig, get_config
from explorer.models.base import Model
from explorer.models.ping_pong import ping_pong_model
from explorer.models.register import SingleCopyRegister, register_test_model

from .base import ExplorerEngine
from .http import HttpExplorerEngine
from .model_engine import ModelEngine

logger = logging.getLogger(__name__)

DEMO_MODELS: Dict[str, Callable[[], Model]] = {
    "ping-pong": lambda: ping_pong_model(max_nat=5),
    "ping-pong-lossy": lambda: ping_pong_model(max_nat=3, lossy=True),
    "single-copy-register": lambda: register_test_model([SingleCopyRegister()], duplicating=False),
    "replicated-register": lambda: register_test_model(
        [SingleCopyRegister(), SingleCopyRegister()], duplicating=False
    ),
}


def get_engine(config: Optional[ExplorerConfig] = None) -> ExplorerEngine:
    """Get an engine for the configured engine kind.

    Args:
        config: Resolved configuration. Defaults to get_config().

    Returns:
        Configured ExplorerEngine instance.

    Raises:
        ValueError: If the demo model name is not recognized.
    """
    config = config or get_config()

    if config.engine_kind == "demo":
        factory = DEMO_MODELS.get(config.demo_model)
        if factory is None:
            raise ValueError(
                f"Unknown demo model {config.demo_model!r}. Valid: {', '.join(sorted(DEMO_MODELS))}"
            )
        logger.debug("get_engine: demo model %s", config.demo_model)
        return ModelEngine(factory())

    logger.debug("get_engine: http engine at %s", config.engine_url)
    return HttpExplorerEngine(config.engine_url, timeout_s=config.request_timeout_s)
