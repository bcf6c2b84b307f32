"""Tests for the GraphEngine facade."""

import asyncio
import math
from unittest.mock import AsyncMock, MagicMock

import pytest

from map_my_repo.config.settings import VisualizerSettings
from map_my_repo.core.exceptions import AnalysisError, GraphNodeNotFoundError
from map_my_repo.core.models import NodeKind, TreeNode
from map_my_repo.visualization.engine import GraphEngine
from map_my_repo.visualization.interaction import ClickAction


@pytest.fixture
def selected():
    return MagicMock()


@pytest.fixture
def engine(sample_root, mock_analyzer, selected, rng):
    return GraphEngine(sample_root, analyzer=mock_analyzer, on_node_selected=selected, rng=rng)


def settle(engine: GraphEngine, max_ticks: int = 3000) -> int:
    return engine.loop.run_until_idle(dt=1 / 60, max_ticks=max_ticks)


class TestSnapshot:
    def test_initial_snapshot(self, engine):
        snapshot = engine.snapshot()

        assert snapshot.node_ids == {"root"}
        assert snapshot.edges == ()
        root = snapshot.node("root")
        assert root.kind == NodeKind.FOLDER
        assert root.pinned
        assert root.expandable
        assert root.radius == engine.settings.forces.radius_for(NodeKind.FOLDER)
        assert snapshot.version == 0

    @pytest.mark.asyncio
    async def test_snapshot_reflects_expansion(self, engine):
        await engine.expand("root")
        snapshot = engine.snapshot()

        assert snapshot.node_ids == {"root", "root/src", "root/README.md"}
        assert snapshot.node("root").expanded
        assert snapshot.node("root/README.md").expandable
        assert snapshot.version == 1
        data = snapshot.to_dict()
        assert {"source": "root", "target": "root/src"} in data["edges"]
        assert data["transform"]["k"] == 1.0

    @pytest.mark.asyncio
    async def test_snapshot_is_immutable(self, engine):
        await engine.expand("root")
        snapshot = engine.snapshot()
        settle(engine)
        moved = engine.snapshot()

        assert snapshot.node("root/src").x != moved.node("root/src").x

    @pytest.mark.asyncio
    async def test_analyzing_ids_are_reported(self, sample_root, analysis_result, rng):
        release = asyncio.Event()

        async def slow_analyze(name, content):
            await release.wait()
            return analysis_result

        analyzer = MagicMock()
        analyzer.analyze = AsyncMock(side_effect=slow_analyze)
        engine = GraphEngine(sample_root, analyzer=analyzer, rng=rng)
        await engine.expand("root")
        await engine.expand("root/src")

        pending = asyncio.ensure_future(engine.expand("root/src/main.ts"))
        for _ in range(5):
            await asyncio.sleep(0)
        assert engine.snapshot().analyzing == frozenset({"root/src/main.ts"})

        release.set()
        await pending
        snapshot = engine.snapshot()
        assert snapshot.analyzing == frozenset()
        assert snapshot.node("root/src/main.ts#run") is not None
        assert not snapshot.node("root/src/main.ts#run").expandable

    def test_without_analyzer_files_are_not_expandable(self, sample_root):
        engine = GraphEngine(sample_root)
        assert engine.enricher.can_enrich(engine.tree.get("root/src/main.ts")) is False


class TestWiring:
    @pytest.mark.asyncio
    async def test_expand_reheats_and_focuses(self, engine):
        settle(engine)
        assert not engine.layout.active

        await engine.expand("root")

        assert engine.layout.active
        assert engine.camera.focus_target == "root"

    @pytest.mark.asyncio
    async def test_layout_settles_with_finite_positions(self, engine):
        await engine.expand("root")
        await engine.expand("root/src")
        ticks = settle(engine)

        assert ticks < 3000
        assert not engine.active
        for node in engine.snapshot().nodes:
            assert math.isfinite(node.x) and math.isfinite(node.y)
        assert engine.snapshot().node("root").x == 0.0

    @pytest.mark.asyncio
    async def test_hover_is_stable_after_settling(self, engine):
        await engine.expand("root")
        await engine.expand("root/src")
        settle(engine)
        before = {n.id: (n.x, n.y) for n in engine.snapshot().nodes}

        engine.hover("root/src")
        engine.tick(1 / 60)

        after = {n.id: (n.x, n.y) for n in engine.snapshot().nodes}
        for node_id, (x, y) in before.items():
            assert math.hypot(after[node_id][0] - x, after[node_id][1] - y) < 1e-6
        assert engine.snapshot().hovered == "root/src"

    @pytest.mark.asyncio
    async def test_click_notifies_selection_sink(self, engine, selected):
        assert await engine.click("root") == ClickAction.TOGGLE
        selected.assert_called_once()
        assert selected.call_args.args[0].id == "root"
        assert engine.snapshot().selected == "root"

    @pytest.mark.asyncio
    async def test_pan_zoom_cancels_expand_focus(self, engine):
        await engine.expand("root")
        engine.pan_zoom(scale=0.5)

        assert not engine.camera.animating
        assert engine.snapshot().transform.k == 0.5

    @pytest.mark.asyncio
    async def test_drag_round_trip(self, engine):
        await engine.expand("root")
        engine.start_drag("root/src", 10.0, 10.0)
        engine.drag("root/src", 200.0, 50.0)
        engine.tick(1 / 60)
        assert engine.snapshot().node("root/src").x == 200.0

        engine.end_drag("root/src")
        assert not engine.snapshot().node("root/src").pinned

    @pytest.mark.asyncio
    async def test_collapse_during_drag_lets_layout_settle(self, engine):
        await engine.expand("root")
        await engine.expand("root/src")
        engine.start_drag("root/src/main.ts", 30.0, 30.0)

        await engine.collapse("root")

        assert engine.interaction.dragging is None
        assert engine.layout.alpha_target == 0.0
        engine.end_drag("root/src/main.ts")
        settle(engine, max_ticks=5000)
        assert not engine.layout.active


class TestReveal:
    @pytest.mark.asyncio
    async def test_reveal_expands_ancestors(self, engine, mock_analyzer):
        assert await engine.reveal("root/src/utils/helpers.ts") is True

        ids = engine.snapshot().node_ids
        assert {"root/src", "root/src/utils", "root/src/utils/helpers.ts"} <= ids
        assert engine.camera.focus_target == "root/src/utils/helpers.ts"
        mock_analyzer.analyze.assert_not_called()

    @pytest.mark.asyncio
    async def test_reveal_symbol_analyzes_its_file(self, engine, mock_analyzer):
        await engine.reveal("root/src/main.ts")
        await engine.expand("root/src/main.ts")
        await engine.collapse("root")

        assert await engine.reveal("root/src/main.ts#run") is True
        assert "root/src/main.ts#run" in engine.snapshot().node_ids
        assert mock_analyzer.analyze.await_count == 1

    @pytest.mark.asyncio
    async def test_reveal_stops_when_an_ancestor_fails(self, sample_root, rng):
        analyzer = AsyncMock()
        analyzer.analyze = AsyncMock(side_effect=AnalysisError("down"))
        engine = GraphEngine(sample_root, analyzer=analyzer, rng=rng)
        # A child that only becomes visible once main.ts is analyzed
        engine.tree.attach_children(
            "root/src/main.ts", [TreeNode(id="", name="run", kind=NodeKind.FUNCTION)]
        )

        assert await engine.reveal("root/src/main.ts#run") is False
        assert "root/src/main.ts#run" not in engine.snapshot().node_ids


class TestLocateAndSummarize:
    @pytest.mark.asyncio
    async def test_locate_reveals_suggested_file(self, engine, mock_analyzer):
        mock_analyzer.find_relevant_file.return_value = "src/utils/helpers.ts"

        assert await engine.locate("where is add?") == "root/src/utils/helpers.ts"
        assert "root/src/utils/helpers.ts" in engine.snapshot().node_ids
        query, paths = mock_analyzer.find_relevant_file.await_args.args
        assert query == "where is add?"
        assert sorted(paths) == ["README.md", "src/main.ts", "src/utils/helpers.ts"]

    @pytest.mark.asyncio
    async def test_locate_ignores_unknown_paths(self, engine, mock_analyzer):
        mock_analyzer.find_relevant_file.return_value = "lib/missing.ts"
        assert await engine.locate("?") is None
        assert engine.snapshot().node_ids == {"root"}

    @pytest.mark.asyncio
    async def test_locate_without_match(self, engine):
        assert await engine.locate("?") is None

    @pytest.mark.asyncio
    async def test_locate_failure_is_soft(self, engine, mock_analyzer):
        mock_analyzer.find_relevant_file.side_effect = AnalysisError("down")
        assert await engine.locate("?") is None

    @pytest.mark.asyncio
    async def test_summarize_folder(self, engine):
        assert await engine.summarize("root/src") == "Holds the sources."
        assert engine.node_details("root/src")["summary"] == "Holds the sources."


class TestNodeDetails:
    @pytest.mark.asyncio
    async def test_details(self, engine):
        details = engine.node_details("root/src/main.ts")
        assert details["visible"] is False
        assert details["parent_id"] == "root/src"
        assert details["analyzing"] is False

    def test_unknown_hidden_distinction(self, engine):
        with pytest.raises(GraphNodeNotFoundError):
            engine.focus("root/src")


def test_custom_settings_are_used(sample_root):
    settings = VisualizerSettings.from_dict({"camera": {"focus_zoom": 3.0, "focus_duration": 0}})
    engine = GraphEngine(sample_root, settings=settings)
    engine.focus("root")
    engine.tick(0.0)
    assert engine.camera.transform.k == 3.0
