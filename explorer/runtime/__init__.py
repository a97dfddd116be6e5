# explorer/runtime package
# Path-addressable navigation over a lazily discovered state graph.
#
# Core components:
#   - path_codec: route token <-> StatePath
#   - step_repository: path-keyed Step resolution with an append-only cache
#   - status_poller: periodic Status retrieval with change detection
#   - navigation: NavigationController state machine (last-route-wins)
#   - render: pure projection of the navigation view to display fields
#   - engines: engine query interface + HTTP and in-process implementations
#
# Usage:
#     from explorer.runtime import NavigationController, StepRepository, StatusPoller
#     repo = StepRepository(engine)
#     controller = NavigationController(repo, StatusPoller(engine))
#     async with controller:
#         await controller.navigate("0/2/1")

from .errors import EngineUnavailable, ExplorerError, MalformedPath, PathNotFound
from .navigation import (
    Discovery,
    Failed,
    Idle,
    NavigationController,
    NavigationView,
    Resolved,
    Resolving,
)
from .path_codec import decode, decode_or_root, encode
from .render import DisplayMode, RenderedView, StepLink, bind_render, render
from .signals import Cell, Computed
from .status_poller import StatusPoller
from .step_repository import StepRepository
from .types import StatePath, Status, Step, StepStub, StepView

__all__ = [
    "ExplorerError",
    "MalformedPath",
    "PathNotFound",
    "EngineUnavailable",
    "StatePath",
    "Status",
    "Step",
    "StepStub",
    "StepView",
    "encode",
    "decode",
    "decode_or_root",
    "Cell",
    "Computed",
    "StepRepository",
    "StatusPoller",
    "NavigationController",
    "NavigationView",
    "Discovery",
    "Idle",
    "Resolving",
    "Resolved",
    "Failed",
    "DisplayMode",
    "RenderedView",
    "StepLink",
    "render",
    "bind_render",
]
