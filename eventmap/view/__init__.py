"""
eventmap.view: coordinator, sheet state and the render contract.
"""

from .sheet import DEFAULT_TITLE, SheetKind, SheetPosition, SheetState
from .render import (
    CameraTarget,
    PopupDetails,
    RenderInstruction,
    Renderer,
    SnapshotRenderer,
)
from .coordinator import (
    ClusterDrillDown,
    ViewConfig,
    ViewCoordinator,
    ViewInputs,
    ViewOutputs,
    recompute,
)

__all__ = [
    "DEFAULT_TITLE",
    "SheetKind",
    "SheetPosition",
    "SheetState",
    "CameraTarget",
    "PopupDetails",
    "RenderInstruction",
    "Renderer",
    "SnapshotRenderer",
    "ClusterDrillDown",
    "ViewConfig",
    "ViewCoordinator",
    "ViewInputs",
    "ViewOutputs",
    "recompute",
]
