"""Graph-side records: visible nodes, edges, camera transform, snapshots.

``GraphNode`` is ephemeral: it exists only while its tree node is visible
and refers to the tree node by id. The layout engine mutates positions and
velocities in place; everything else belongs to the projection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..core.models import NodeKind


@dataclass(eq=False)
class GraphNode:
    """A visible node in the force layout."""

    id: str
    name: str
    kind: NodeKind
    depth: int
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    fx: float | None = None
    fy: float | None = None
    expanded: bool = False

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)

    @property
    def pinned(self) -> bool:
        return self.fx is not None and self.fy is not None

    def pin(self, x: float, y: float) -> None:
        """Hold the node at ``(x, y)`` regardless of forces."""
        self.fx = x
        self.fy = y
        self.x = x
        self.y = y
        self.vx = 0.0
        self.vy = 0.0

    def unpin(self) -> None:
        self.fx = None
        self.fy = None


@dataclass(frozen=True)
class GraphEdge:
    """Parent -> child link between two visible nodes."""

    source: str
    target: str

    def to_dict(self) -> dict[str, str]:
        return {"source": self.source, "target": self.target}


@dataclass(frozen=True)
class Transform:
    """2D view transform: ``screen = world * k + (x, y)``."""

    x: float = 0.0
    y: float = 0.0
    k: float = 1.0

    def apply(self, point: tuple[float, float]) -> tuple[float, float]:
        return (point[0] * self.k + self.x, point[1] * self.k + self.y)

    def invert(self, point: tuple[float, float]) -> tuple[float, float]:
        return ((point[0] - self.x) / self.k, (point[1] - self.y) / self.k)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "k": self.k}


@dataclass(frozen=True)
class NodeSnapshot:
    id: str
    name: str
    kind: NodeKind
    x: float
    y: float
    depth: int
    radius: float
    expanded: bool
    expandable: bool
    pinned: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "x": self.x,
            "y": self.y,
            "depth": self.depth,
            "radius": self.radius,
            "expanded": self.expanded,
            "expandable": self.expandable,
            "pinned": self.pinned,
        }


@dataclass(frozen=True)
class GraphSnapshot:
    """Read-only view handed to renderers, refreshed every tick."""

    nodes: tuple[NodeSnapshot, ...]
    edges: tuple[GraphEdge, ...]
    transform: Transform
    version: int
    alpha: float
    analyzing: frozenset[str] = field(default_factory=frozenset)
    hovered: str | None = None
    selected: str | None = None

    def node(self, node_id: str) -> NodeSnapshot | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    @property
    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
            "transform": self.transform.to_dict(),
            "version": self.version,
            "alpha": self.alpha,
            "analyzing": sorted(self.analyzing),
            "hovered": self.hovered,
            "selected": self.selected,
        }
