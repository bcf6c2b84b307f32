"""Public API for the interactive graph.

Exported symbols:

Engine:
    GraphEngine: Facade a renderer talks to (tick, snapshot, expand,
        collapse, click, focus, pan/zoom, drag, hover, reveal, locate).

Components:
    GraphProjection: Visible node/edge set under expand/collapse.
    ForceLayoutEngine: d3-style force relaxation over visible nodes.
    CameraController: View transform with eased focus animation.
    InteractionDispatcher: Pointer events to graph operations.
    AnimationLoop: Fixed-rate asyncio ticker that parks when idle.

Records:
    GraphNode, GraphEdge, Transform, NodeSnapshot, GraphSnapshot,
    PointerEvent, PointerEventType, ClickAction.

Example::

    from map_my_repo.visualization import GraphEngine

    engine = GraphEngine(root, analyzer=llm_client)
    await engine.expand("root")
    engine.tick(1 / 60)
    snapshot = engine.snapshot()
"""

from .camera import CameraController, ease_cubic_out
from .engine import GraphEngine
from .interaction import (
    ClickAction,
    InteractionDispatcher,
    PointerEvent,
    PointerEventType,
)
from .layout_engine import ForceLayoutEngine
from .models import GraphEdge, GraphNode, GraphSnapshot, NodeSnapshot, Transform
from .projection import GraphProjection
from .scheduler import AnimationLoop

__all__ = [
    "AnimationLoop",
    "CameraController",
    "ClickAction",
    "ForceLayoutEngine",
    "GraphEdge",
    "GraphEngine",
    "GraphNode",
    "GraphProjection",
    "GraphSnapshot",
    "InteractionDispatcher",
    "NodeSnapshot",
    "PointerEvent",
    "PointerEventType",
    "Transform",
    "ease_cubic_out",
]
