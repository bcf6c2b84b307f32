"""Interaction dispatcher: pointer events to projection, layout and camera.

Routing of a click depends on the clicked node:
    - Folder: toggle expand/collapse
    - File not yet analyzed, with content available: expand (analyze first)
    - File already analyzed and with children: toggle expand/collapse
    - Symbol (function/class/component) or anything else: focus only

Every click also notifies the selection sink before routing, so a details
panel can show the node while its analysis is still running.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from loguru import logger

from ..config.settings import ForceSettings
from ..core.enrichment import EnrichmentAdapter
from ..core.models import NodeKind, TreeNode
from ..core.tree import TreeModel
from .camera import CameraController
from .layout_engine import ForceLayoutEngine
from .projection import GraphProjection


class PointerEventType(StrEnum):
    CLICK = "click"
    DRAG_START = "drag_start"
    DRAG_MOVE = "drag_move"
    DRAG_END = "drag_end"
    HOVER = "hover"


class ClickAction(StrEnum):
    TOGGLE = "toggle"
    EXPAND = "expand"
    FOCUS = "focus"


@dataclass(frozen=True)
class PointerEvent:
    """A raw pointer event in world coordinates.

    ``node_id`` is ``None`` for hover-out.
    """

    type: PointerEventType
    node_id: str | None
    x: float = 0.0
    y: float = 0.0


class InteractionDispatcher:
    """Turns pointer events into graph operations."""

    def __init__(
        self,
        tree: TreeModel,
        projection: GraphProjection,
        enricher: EnrichmentAdapter,
        layout: ForceLayoutEngine,
        camera: CameraController,
        on_node_selected: Callable[[TreeNode], None] | None = None,
        on_wake: Callable[[], None] | None = None,
    ) -> None:
        self._tree = tree
        self._projection = projection
        self._enricher = enricher
        self._layout = layout
        self._camera = camera
        self.on_node_selected = on_node_selected
        self._on_wake = on_wake

        self.selected: str | None = None
        self.hovered: str | None = None
        self.dragging: str | None = None

    @property
    def _forces(self) -> ForceSettings:
        return self._layout.settings

    # ── Click ───────────────────────────────────────────────────────────

    def classify_click(self, node_id: str) -> ClickAction:
        """Decide what a click on ``node_id`` does, without doing it."""
        node = self._tree.get(node_id)
        if node.kind == NodeKind.FOLDER:
            return ClickAction.TOGGLE
        if node.kind == NodeKind.FILE:
            if not node.analyzed:
                if self._enricher.can_enrich(node):
                    return ClickAction.EXPAND
                # Content never arrived, but earlier children may still be there
                return ClickAction.TOGGLE if node.has_children else ClickAction.FOCUS
            if node.has_children:
                return ClickAction.TOGGLE
        return ClickAction.FOCUS

    async def click(self, node_id: str) -> ClickAction:
        """Select a node and route the click.

        Raises:
            TreeNodeNotFoundError: If ``node_id`` is unknown or hidden
        """
        self._projection.get(node_id)
        node = self._tree.get(node_id)

        self.selected = node_id
        self._notify_selected(node)

        action = self.classify_click(node_id)
        logger.debug(f"Click on {node_id} -> {action}")

        if action == ClickAction.TOGGLE:
            await self._projection.toggle(node_id)
        elif action == ClickAction.EXPAND:
            await self._projection.expand(node_id)
        else:
            self.focus(node_id)
        return action

    def _notify_selected(self, node: TreeNode) -> None:
        if self.on_node_selected is None:
            return
        try:
            self.on_node_selected(node)
        except Exception as e:
            logger.warning(f"Selection handler failed for {node.id}: {e}")

    def focus(self, node_id: str) -> None:
        """Center the camera on a visible node."""
        self._camera.focus(node_id, self._projection.get(node_id).position)
        self._wake()

    # ── Drag ────────────────────────────────────────────────────────────

    def start_drag(self, node_id: str, x: float | None = None, y: float | None = None) -> None:
        """Pin a node where the pointer grabbed it and keep the layout warm."""
        node = self._projection.get(node_id)
        node.pin(node.x if x is None else x, node.y if y is None else y)
        self.dragging = node_id
        self._layout.set_alpha_target(self._forces.drag_alpha_target)
        self._wake()

    def drag(self, node_id: str, x: float, y: float) -> None:
        node = self._projection.get(node_id)
        node.pin(x, y)
        self._wake()

    def end_drag(self, node_id: str) -> None:
        """Release a dragged node back into the simulation.

        A node hidden since the drag started has nothing left to unpin, but
        the layout is still allowed to cool down.

        Raises:
            TreeNodeNotFoundError: If ``node_id`` is not in the tree
        """
        if node_id in self._projection:
            self._projection.get(node_id).unpin()
        else:
            self._tree.get(node_id)
        if self.dragging == node_id:
            self.dragging = None
        self._layout.set_alpha_target(0.0)
        self._wake()

    def release_hidden_drag(self) -> None:
        """End the current drag if a collapse has hidden the dragged node."""
        if self.dragging is None or self.dragging in self._projection:
            return
        logger.debug(f"Releasing drag of hidden node {self.dragging}")
        self.dragging = None
        self._layout.set_alpha_target(0.0)

    # ── Hover ───────────────────────────────────────────────────────────

    def hover(self, node_id: str | None) -> None:
        """Set the emphasized node. Layout and graph state are untouched."""
        self.hovered = node_id if node_id in self._projection else None

    async def dispatch(self, event: PointerEvent) -> ClickAction | None:
        """Route a raw pointer event.

        Returns:
            The click action for ``CLICK`` events, otherwise None
        """
        if event.type == PointerEventType.HOVER:
            self.hover(event.node_id)
            return None

        if event.node_id is None:
            logger.debug(f"Ignoring {event.type} without a target node")
            return None

        if event.type == PointerEventType.CLICK:
            return await self.click(event.node_id)
        if event.type == PointerEventType.DRAG_START:
            self.start_drag(event.node_id, event.x, event.y)
        elif event.type == PointerEventType.DRAG_MOVE:
            self.drag(event.node_id, event.x, event.y)
        elif event.type == PointerEventType.DRAG_END:
            self.end_drag(event.node_id)
        return None

    def _wake(self) -> None:
        if self._on_wake is not None:
            self._on_wake()
