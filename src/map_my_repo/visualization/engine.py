"""GraphEngine: the surface a renderer talks to.

Wires the tree, enrichment adapter, projection, layout, camera and
interaction dispatcher together:

    projection change ──► camera.focus(node)      (on_focus)
                      └─► layout.reheat() + wake  (on_topology_change)

Hosts either poll ``snapshot()`` after ``tick(dt)`` or run an
``AnimationLoop`` around ``tick``. Nothing here depends on how frames
are rendered.
"""

from __future__ import annotations

import random
from collections.abc import Callable

from loguru import logger

from ..config.settings import VisualizerSettings
from ..core.enrichment import Analyzer, CodeAssistant, ContentFetcher, EnrichmentAdapter
from ..core.exceptions import TreeNodeNotFoundError
from ..core.models import TreeNode
from ..core.tree import TreeModel
from .camera import CameraController
from .interaction import ClickAction, InteractionDispatcher, PointerEvent
from .layout_engine import ForceLayoutEngine
from .models import GraphSnapshot, NodeSnapshot, Transform
from .projection import GraphProjection
from .scheduler import AnimationLoop


class GraphEngine:
    """Interactive, progressively disclosed graph over a codebase tree.

    Args:
        tree: The tree (or its root node) to visualize
        analyzer: Analysis collaborator for files
        content_fetcher: Fetches file content that was not loaded eagerly
        settings: Visualizer configuration
        on_node_selected: Called with the tree node on every click
        rng: Random source for spawn jitter and layout de-degeneration
    """

    def __init__(
        self,
        tree: TreeModel | TreeNode,
        analyzer: Analyzer | None = None,
        content_fetcher: ContentFetcher | None = None,
        settings: VisualizerSettings | None = None,
        on_node_selected: Callable[[TreeNode], None] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or VisualizerSettings()
        self.tree = tree if isinstance(tree, TreeModel) else TreeModel(tree)
        self._analyzer = analyzer
        rng = rng or random.Random()

        self.enricher = EnrichmentAdapter(
            self.tree,
            analyzer,
            content_fetcher=content_fetcher,
            max_content_bytes=self.settings.enrichment.max_content_bytes,
        )
        self.layout = ForceLayoutEngine(self.settings.forces, rng=rng)
        self.projection = GraphProjection(
            self.tree,
            self.enricher,
            spawn_jitter=self.settings.forces.spawn_jitter,
            rng=rng,
            on_focus=self._focus_after_change,
            on_topology_change=self._reheat,
        )
        self.camera = CameraController(
            self.settings.camera,
            position_of=lambda node_id: self.projection.get(node_id).position,
        )
        self.loop = AnimationLoop(self.tick, tick_rate=self.settings.scheduler.tick_rate)
        self.interaction = InteractionDispatcher(
            self.tree,
            self.projection,
            self.enricher,
            self.layout,
            self.camera,
            on_node_selected=on_node_selected,
            on_wake=self.loop.wake,
        )

    # ── Frame driving ───────────────────────────────────────────────────

    def tick(self, dt: float) -> bool:
        """Advance physics one step and the camera by ``dt`` seconds.

        Returns:
            True while the layout or camera is still moving
        """
        self.layout.tick(
            self.projection.nodes(), self.projection.edges(), self.projection.root_id
        )
        self.camera.advance(dt)
        return self.active

    @property
    def active(self) -> bool:
        return self.layout.active or self.camera.animating

    def snapshot(self) -> GraphSnapshot:
        """Immutable view of the visible graph and camera."""
        forces = self.settings.forces
        nodes = []
        for node in self.projection.nodes():
            tree_node = self.tree.get(node.id)
            nodes.append(
                NodeSnapshot(
                    id=node.id,
                    name=node.name,
                    kind=node.kind,
                    x=node.x,
                    y=node.y,
                    depth=node.depth,
                    radius=forces.radius_for(node.kind),
                    expanded=node.expanded,
                    expandable=tree_node.has_children
                    or self.enricher.can_enrich(tree_node),
                    pinned=node.pinned,
                )
            )
        return GraphSnapshot(
            nodes=tuple(nodes),
            edges=tuple(self.projection.edges()),
            transform=self.camera.transform,
            version=self.projection.version,
            alpha=self.layout.alpha,
            analyzing=self.enricher.in_flight,
            hovered=self.interaction.hovered,
            selected=self.interaction.selected,
        )

    # ── Disclosure ──────────────────────────────────────────────────────

    async def expand(self, node_id: str) -> bool:
        return await self.projection.expand(node_id)

    async def collapse(self, node_id: str) -> bool:
        return await self.projection.collapse(node_id)

    async def toggle(self, node_id: str) -> bool:
        return await self.projection.toggle(node_id)

    async def reveal(self, node_id: str) -> bool:
        """Make a possibly hidden node visible and focus it.

        Ancestors are expanded root first. Returns False if an ancestor
        could not be expanded (e.g. its file analysis failed).

        Raises:
            TreeNodeNotFoundError: If ``node_id`` is not in the tree
        """
        for ancestor_id in self.tree.ancestors(node_id):
            if self.projection.get(ancestor_id).expanded:
                continue
            if not await self.projection.expand(ancestor_id):
                logger.warning(f"Could not reveal {node_id}: {ancestor_id} did not expand")
                return False
        self.focus(node_id)
        return True

    async def locate(self, query: str) -> str | None:
        """Ask the analyzer which file answers ``query`` and reveal it.

        Returns:
            The revealed file id, or None if nothing matched
        """
        if not isinstance(self._analyzer, CodeAssistant):
            logger.warning("Analyzer cannot look up files; locate is unavailable")
            return None

        root_id = self.tree.root_id
        prefix = f"{root_id}/"
        paths = [fid.removeprefix(prefix) for fid in self.tree.file_ids()]
        try:
            path = await self._analyzer.find_relevant_file(query, paths)
        except Exception as e:
            logger.warning(f"File lookup failed for '{query}': {e}")
            return None
        if not path:
            return None

        node_id = f"{prefix}{path.strip('/')}"
        if node_id not in self.tree:
            logger.info(f"Suggested path '{path}' is not in the tree")
            return None
        await self.reveal(node_id)
        return node_id

    async def summarize(self, node_id: str) -> str | None:
        """Fill in a folder's summary via the analyzer (soft-failing)."""
        return await self.enricher.summarize_folder(self.tree.get(node_id))

    # ── Interaction ─────────────────────────────────────────────────────

    async def click(self, node_id: str) -> ClickAction:
        return await self.interaction.click(node_id)

    async def dispatch(self, event: PointerEvent) -> ClickAction | None:
        return await self.interaction.dispatch(event)

    def focus(self, node_id: str) -> None:
        self.interaction.focus(node_id)

    def pan_zoom(
        self,
        dx: float = 0.0,
        dy: float = 0.0,
        scale: float = 1.0,
        anchor: tuple[float, float] | None = None,
    ) -> Transform:
        return self.camera.pan_zoom(dx, dy, scale, anchor)

    def start_drag(self, node_id: str, x: float | None = None, y: float | None = None) -> None:
        self.interaction.start_drag(node_id, x, y)

    def drag(self, node_id: str, x: float, y: float) -> None:
        self.interaction.drag(node_id, x, y)

    def end_drag(self, node_id: str) -> None:
        self.interaction.end_drag(node_id)

    def hover(self, node_id: str | None) -> None:
        self.interaction.hover(node_id)

    def node_details(self, node_id: str) -> dict:
        """Tree-side details of a node, for a details panel."""
        node = self.tree.get(node_id)
        details = node.to_dict()
        details["visible"] = node_id in self.projection
        details["analyzing"] = self.enricher.is_enriching(node_id)
        details["parent_id"] = self.tree.parent_id(node_id)
        return details

    # ── Projection callbacks ────────────────────────────────────────────

    def _focus_after_change(self, node_id: str) -> None:
        try:
            self.camera.focus(node_id, self.projection.get(node_id).position)
        except TreeNodeNotFoundError:
            logger.debug(f"Skipping focus on {node_id}: no longer visible")

    def _reheat(self) -> None:
        self.interaction.release_hidden_drag()
        self.layout.reheat()
        self.loop.wake()
