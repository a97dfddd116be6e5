"""
Explorer API - FastAPI surface for the state graph viewer.

Endpoints:
    GET  /api/health               - Health check
    GET  /api/status               - Latest engine status
    GET  /api/status/events        - SSE stream of status changes
    GET  /api/steps/{route}        - Resolve a step without navigating
    GET  /api/view/{route}         - Navigate and return the rendered view
    POST /api/view/retry           - Retry the current path
"""

from .server import app, create_app

__all__ = ["create_app", "app"]
