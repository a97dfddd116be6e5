"""
Routes package for the explorer API.

This package contains the FastAPI routers for:
- steps: status, step resolution and navigation view endpoints
- events: SSE streaming of status changes
"""

from .events import router as events_router
from .steps import router as steps_router

__all__ = ["steps_router", "events_router"]
