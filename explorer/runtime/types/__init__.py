"""
Core type definitions for the explorer runtime.

Usage:
    from explorer.runtime.types import (
        StatePath, Status, Step, StepStub, StepView, NextAction,
        status_to_dict, status_from_dict,
        step_to_dict, step_stub_to_dict, step_view_from_dict,
    )
"""

from __future__ import annotations

from .paths import StatePath
from .status import Status, status_from_dict, status_to_dict
from .steps import (
    NextAction,
    Step,
    StepStub,
    StepView,
    step_stub_to_dict,
    step_to_dict,
    step_view_from_dict,
)

__all__ = [
    "StatePath",
    "Status",
    "status_to_dict",
    "status_from_dict",
    "NextAction",
    "Step",
    "StepStub",
    "StepView",
    "step_to_dict",
    "step_stub_to_dict",
    "step_view_from_dict",
]
