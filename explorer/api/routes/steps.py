"""
Status, step and view endpoints for the explorer API.

Provides REST endpoints for:
- Reading the latest published engine status
- Resolving a step by route without changing the current view
- Navigating the session's controller and reading the rendered view
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from explorer.runtime.errors import EngineUnavailable, ExplorerError, MalformedPath, PathNotFound
from explorer.runtime.navigation import NavigationController
from explorer.runtime.path_codec import decode
from explorer.runtime.render import DisplayMode, RenderedView, render
from explorer.runtime.types import status_to_dict, step_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(tags=["steps"])


# =============================================================================
# Pydantic Models
# =============================================================================


class StatusResponse(BaseModel):
    """Latest published engine status."""

    model: str
    generated: str
    progress: str
    recent_path: Optional[str] = None
    discoveries: Dict[str, str] = Field(default_factory=dict)
    done: bool = False


class StepLinkModel(BaseModel):
    route: str
    action: str
    noop: bool = False


class StepResponse(BaseModel):
    """A resolved step."""

    route: str
    action: str
    state: str
    outcome: Optional[str] = None
    svg: Optional[str] = None
    noop: bool = False
    next_steps: List[StepLinkModel] = Field(default_factory=list)
    path_steps: List[StepLinkModel] = Field(default_factory=list)


class ViewLinkModel(BaseModel):
    route: str
    action: str
    noop: bool = False
    css_class: str = ""


class DiscoveryModel(BaseModel):
    name: str
    route: str


class ViewResponse(BaseModel):
    """Rendered navigation view."""

    route: Optional[str] = None
    phase: str
    display_text: str = ""
    diagram_markup: Optional[str] = None
    preformatted: bool = True
    notice: Optional[str] = None
    error: Optional[str] = None
    retryable: bool = False
    not_found: bool = False
    path_links: List[ViewLinkModel] = Field(default_factory=list)
    next_links: List[ViewLinkModel] = Field(default_factory=list)
    discoveries: List[DiscoveryModel] = Field(default_factory=list)


# =============================================================================
# Helpers
# =============================================================================


def error_status_code(error: ExplorerError) -> int:
    """HTTP status for an explorer error."""
    if isinstance(error, MalformedPath):
        return 400
    if isinstance(error, PathNotFound):
        return 404
    if isinstance(error, EngineUnavailable):
        return 503
    return 500


def _view_response(controller: NavigationController, rendered: RenderedView) -> ViewResponse:
    return ViewResponse(
        route=rendered.route,
        phase=rendered.phase,
        display_text=rendered.display_text,
        diagram_markup=rendered.diagram_markup,
        preformatted=rendered.preformatted,
        notice=rendered.notice,
        error=rendered.error,
        retryable=rendered.retryable,
        not_found=rendered.not_found,
        path_links=[ViewLinkModel(**asdict(link)) for link in rendered.path_links],
        next_links=[ViewLinkModel(**asdict(link)) for link in rendered.next_links],
        discoveries=[DiscoveryModel(name=d.name, route=d.route) for d in controller.discoveries],
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/status", response_model=StatusResponse)
async def get_status(request: Request):
    """Latest status published by the poller.

    Returns 503 until the first successful poll.
    """
    status = request.app.state.poller.status.value
    if status is None:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "status_unavailable",
                "message": "No status has been received from the engine yet",
                "details": {"last_error": request.app.state.poller.last_error},
            },
        )
    return StatusResponse(**status_to_dict(status))


@router.get("/steps/{route:path}", response_model=StepResponse)
async def get_step(route: str, request: Request):
    """Resolve a step by route without changing the current view."""
    try:
        path = decode(route)
        step = await request.app.state.repository.resolve(path)
    except ExplorerError as e:
        raise HTTPException(status_code=error_status_code(e), detail=e.to_dict())
    return StepResponse(**step_to_dict(step))


@router.post("/view/retry", response_model=ViewResponse)
async def retry_view(
    request: Request,
    complete: bool = Query(False, description="Show the complete state instead of the outcome"),
    compact: bool = Query(False, description="Collapse whitespace"),
):
    """Re-request the current path after a failure."""
    controller: NavigationController = request.app.state.controller
    view = await controller.retry()
    return _view_response(controller, render(view, DisplayMode(complete, compact)))


@router.get("/view/{route:path}", response_model=ViewResponse)
async def navigate_view(
    route: str,
    request: Request,
    complete: bool = Query(False, description="Show the complete state instead of the outcome"),
    compact: bool = Query(False, description="Collapse whitespace"),
):
    """Navigate to route and return the rendered view.

    Malformed routes render the root with a notice. Failed lookups return the
    'failed' phase alongside the last successfully resolved step.
    """
    controller: NavigationController = request.app.state.controller
    view = await controller.navigate(route)
    return _view_response(controller, render(view, DisplayMode(complete, compact)))


@router.get("/view", response_model=ViewResponse)
async def navigate_root(
    request: Request,
    complete: bool = Query(False),
    compact: bool = Query(False),
):
    """Navigate to the root path."""
    return await navigate_view("", request, complete=complete, compact=compact)