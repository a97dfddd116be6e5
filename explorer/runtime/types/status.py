"""Aggregate engine status types.

A Status snapshot is replaced wholesale on every poll; there are no partial
updates, so equality is structural over the whole record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .paths import StatePath


@dataclass(frozen=True)
class Status:
    """Summary status reported by the exploration engine.

    Attributes:
        model: Name of the model being explored.
        generated: Timestamp (engine formatted) of this snapshot.
        progress: Human-readable progress counters.
        recent_path: Path of a recently explored node, if the engine reports one.
        discoveries: Discovery name -> path, in engine order.
        done: True once the engine has exhausted its frontier.
    """

    model: str
    generated: str = ""
    progress: str = ""
    recent_path: Optional[StatePath] = None
    discoveries: Dict[str, StatePath] = field(default_factory=dict)
    done: bool = False


def status_to_dict(status: Status) -> Dict[str, Any]:
    """Convert Status to a dictionary for JSON serialization.

    Paths are rendered as route tokens so the result can be used directly as
    links by a client.
    """
    from ..path_codec import encode

    return {
        "model": status.model,
        "generated": status.generated,
        "progress": status.progress,
        "recent_path": encode(status.recent_path) if status.recent_path is not None else None,
        "discoveries": {name: encode(path) for name, path in status.discoveries.items()},
        "done": status.done,
    }


def status_from_dict(data: Dict[str, Any]) -> Status:
    """Parse Status from an engine payload.

    Raises:
        MalformedPath: If a path token in the payload is not well formed.
    """
    from ..path_codec import decode

    recent = data.get("recent_path")
    return Status(
        model=str(data.get("model", "")),
        generated=str(data.get("generated", "")),
        progress=str(data.get("progress", "")),
        recent_path=decode(recent) if recent is not None else None,
        discoveries={
            str(name): decode(token) for name, token in (data.get("discoveries") or {}).items()
        },
        done=bool(data.get("done", False)),
    )
