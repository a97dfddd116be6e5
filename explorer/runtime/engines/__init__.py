"""
Exploration engines.

Engines answer the viewer's two read-only queries (status, step by path).

Usage:
    from explorer.runtime.engines import get_engine
    engine = get_engine()
    status = await engine.get_status()
"""

from .base import ExplorerEngine
from .factory import DEMO_MODELS, get_engine
from .http import HttpExplorerEngine
from .model_engine import ModelEngine

__all__ = [
    "ExplorerEngine",
    "HttpExplorerEngine",
    "ModelEngine",
    "DEMO_MODELS",
    "get_engine",
]
