"""Graph projection: the visible subset of the tree as nodes and edges.

Invariant:
    The visible node set is always exactly the root plus every tree node
    whose ancestors are all visible and expanded. Edges exist only between
    a visible parent and its visible child.

Expanding reveals the direct children of a node (analyzing an unanalyzed
file first). Collapsing hides everything reachable from the node through
the *current edges*. Walking edges rather than the tree means nodes that
were never revealed are never touched.
"""

from __future__ import annotations

import asyncio
import random
from collections import deque
from collections.abc import Callable, Iterator

from loguru import logger

from ..core.enrichment import EnrichmentAdapter
from ..core.exceptions import GraphNodeNotFoundError
from ..core.models import NodeKind, TreeNode
from ..core.tree import TreeModel
from .models import GraphEdge, GraphNode


class GraphProjection:
    """Maintains visible ``GraphNode``s/``GraphEdge``s under expand/collapse.

    Args:
        tree: Tree model to project
        enricher: Adapter used to analyze files before revealing their symbols
        spawn_jitter: Width of the random offset around the parent given to
            newly revealed nodes (avoids exact overlap in the solver)
        rng: Random source for spawn offsets
        on_focus: Called with a node id after every expand/collapse
        on_topology_change: Called after the visible set changed
    """

    def __init__(
        self,
        tree: TreeModel,
        enricher: EnrichmentAdapter,
        spawn_jitter: float = 60.0,
        rng: random.Random | None = None,
        on_focus: Callable[[str], None] | None = None,
        on_topology_change: Callable[[], None] | None = None,
    ) -> None:
        self._tree = tree
        self._enricher = enricher
        self._spawn_jitter = spawn_jitter
        self._rng = rng or random.Random()
        self.on_focus = on_focus
        self.on_topology_change = on_topology_change

        self._nodes: dict[str, GraphNode] = {}
        # Visible edges as source -> ordered targets
        self._edges: dict[str, list[str]] = {}
        # Where hidden nodes were last seen, so they reappear in place
        self._last_positions: dict[str, tuple[float, float]] = {}
        self._pending: dict[str, asyncio.Task[bool]] = {}
        self._version = 0

        root = tree.get_root()
        root_node = GraphNode(id=root.id, name=root.name, kind=root.kind, depth=0)
        root_node.pin(0.0, 0.0)
        self._nodes[root.id] = root_node

    # ── Read access ─────────────────────────────────────────────────────

    @property
    def version(self) -> int:
        """Incremented on every structural change (dirty marker for hosts)."""
        return self._version

    @property
    def root_id(self) -> str:
        return self._tree.root_id

    def nodes(self) -> list[GraphNode]:
        return list(self._nodes.values())

    def edges(self) -> list[GraphEdge]:
        return [
            GraphEdge(source, target)
            for source, targets in self._edges.items()
            for target in targets
        ]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, node_id: str) -> GraphNode:
        """Return the visible node for ``node_id``.

        Raises:
            TreeNodeNotFoundError: If the id is not in the tree at all
            GraphNodeNotFoundError: If the node exists but is hidden
        """
        node = self._nodes.get(node_id)
        if node is None:
            self._tree.get(node_id)
            raise GraphNodeNotFoundError(
                f"Node '{node_id}' is not visible", {"node_id": node_id}
            )
        return node

    def is_pending(self, node_id: str) -> bool:
        return node_id in self._pending

    def expected_visible_ids(self) -> set[str]:
        """Ids that the visibility invariant requires, derived from the tree."""
        expected: set[str] = set()
        queue: deque[TreeNode] = deque([self._tree.get_root()])
        while queue:
            tree_node = queue.popleft()
            expected.add(tree_node.id)
            graph_node = self._nodes.get(tree_node.id)
            if graph_node is not None and graph_node.expanded:
                queue.extend(tree_node.children or [])
        return expected

    # ── Disclosure ──────────────────────────────────────────────────────

    async def expand(self, node_id: str) -> bool:
        """Reveal the children of a visible node.

        An unanalyzed file is analyzed first; its symbols are attached to the
        tree before anything becomes visible. Concurrent calls for the same
        node share one in-flight operation.

        Returns:
            True if the node ended up expanded

        Raises:
            TreeNodeNotFoundError: If ``node_id`` is unknown or hidden
        """
        pending = self._pending.get(node_id)
        if pending is not None:
            logger.debug(f"Coalescing expand of {node_id} with in-flight request")
            return await asyncio.shield(pending)

        self.get(node_id)
        tree_node = self._tree.get(node_id)

        if tree_node.kind == NodeKind.FILE and not tree_node.analyzed:
            task = asyncio.ensure_future(self._enrich_then_reveal(node_id))
            self._pending[node_id] = task
            return await asyncio.shield(task)

        return self._reveal_children(node_id)

    async def _enrich_then_reveal(self, node_id: str) -> bool:
        try:
            tree_node = self._tree.get(node_id)
            await self._enricher.enrich(tree_node)
            if not tree_node.analyzed:
                logger.debug(f"Not expanding {node_id}: analysis did not complete")
                return False
            if node_id not in self._nodes:
                # An ancestor was collapsed while the analysis was running
                return False
            return self._reveal_children(node_id)
        finally:
            self._pending.pop(node_id, None)

    def _reveal_children(self, node_id: str) -> bool:
        parent = self._nodes[node_id]
        tree_node = self._tree.get(node_id)
        targets = self._edges.setdefault(node_id, [])

        added = 0
        for child in tree_node.children or []:
            if child.id not in self._nodes:
                self._nodes[child.id] = self._spawn(child, parent)
                added += 1
            if child.id not in targets:
                targets.append(child.id)

        if not targets:
            del self._edges[node_id]

        parent.expanded = True
        self._version += 1
        logger.debug(f"Expanded {node_id}: {added} nodes revealed")

        self._notify(node_id)
        return True

    def _spawn(self, child: TreeNode, parent: GraphNode) -> GraphNode:
        remembered = self._last_positions.pop(child.id, None)
        if remembered is not None:
            x, y = remembered
        else:
            half = self._spawn_jitter / 2
            x = parent.x + self._rng.uniform(-half, half)
            y = parent.y + self._rng.uniform(-half, half)
        return GraphNode(
            id=child.id,
            name=child.name,
            kind=child.kind,
            depth=parent.depth + 1,
            x=x,
            y=y,
        )

    async def collapse(self, node_id: str) -> bool:
        """Hide every visible descendant of ``node_id``.

        If an expand of the node is still waiting for its analysis, the call
        is coalesced with it and nothing is collapsed.

        Returns:
            True if the node ended up collapsed

        Raises:
            TreeNodeNotFoundError: If ``node_id`` is unknown or hidden
        """
        pending = self._pending.get(node_id)
        if pending is not None:
            logger.debug(f"Coalescing collapse of {node_id} with in-flight expand")
            expanded = await asyncio.shield(pending)
            return not expanded

        self._collapse_now(node_id)
        return True

    def _collapse_now(self, node_id: str) -> None:
        node = self.get(node_id)
        descendants = self.visible_descendants(node_id)

        for descendant_id in descendants:
            hidden = self._nodes.pop(descendant_id)
            self._last_positions[descendant_id] = hidden.position
            self._edges.pop(descendant_id, None)
        self._edges.pop(node_id, None)

        node.expanded = False
        self._version += 1
        logger.debug(f"Collapsed {node_id}: {len(descendants)} nodes hidden")

        self._notify(node_id)

    def visible_descendants(self, node_id: str) -> set[str]:
        """Everything reachable from ``node_id`` over the current edges."""
        found: set[str] = set()
        queue: deque[str] = deque([node_id])
        while queue:
            for target in self._edges.get(queue.popleft(), ()):
                if target not in found:
                    found.add(target)
                    queue.append(target)
        return found

    async def toggle(self, node_id: str) -> bool:
        """Collapse an expanded node, expand a collapsed one.

        Returns:
            The node's resulting ``expanded`` state
        """
        if node_id not in self._pending and self.get(node_id).expanded:
            await self.collapse(node_id)
            return False
        return await self.expand(node_id)

    def iter_path(self, node_id: str) -> Iterator[str]:
        """Ancestors of ``node_id`` (root first), then the node itself."""
        yield from self._tree.ancestors(node_id)
        yield node_id

    def _notify(self, node_id: str) -> None:
        if self.on_topology_change is not None:
            self.on_topology_change()
        if self.on_focus is not None:
            self.on_focus(node_id)
