"""Shared fixtures: a small codebase tree and a mocked analyzer."""

import random
from unittest.mock import AsyncMock

import pytest

from map_my_repo.core.models import AnalysisItem, AnalysisResult, NodeKind, TreeNode
from map_my_repo.core.tree import TreeModel


def make_sample_root() -> TreeNode:
    """root(repo) -> src -> {main.ts, utils -> helpers.ts}, README.md"""
    main = TreeNode(
        id="root/src/main.ts",
        name="main.ts",
        kind=NodeKind.FILE,
        content="export function run() { start(); }",
        size=34,
    )
    helpers = TreeNode(
        id="root/src/utils/helpers.ts",
        name="helpers.ts",
        kind=NodeKind.FILE,
        content="export const add = (a, b) => a + b;",
        size=35,
    )
    utils = TreeNode(
        id="root/src/utils", name="utils", kind=NodeKind.FOLDER, children=[helpers]
    )
    src = TreeNode(
        id="root/src", name="src", kind=NodeKind.FOLDER, children=[main, utils]
    )
    readme = TreeNode(
        id="root/README.md",
        name="README.md",
        kind=NodeKind.FILE,
        content="# Sample",
        size=8,
    )
    return TreeNode(id="root", name="repo", kind=NodeKind.FOLDER, children=[src, readme])


@pytest.fixture
def sample_root():
    return make_sample_root()


@pytest.fixture
def tree(sample_root):
    return TreeModel(sample_root)


@pytest.fixture
def analysis_result():
    return AnalysisResult(
        summary="Application entry point.",
        items=[AnalysisItem(name="run", kind="FUNCTION", description="entry point")],
    )


@pytest.fixture
def mock_analyzer(analysis_result):
    """Analyzer whose ``analyze`` resolves immediately with one function."""
    mock = AsyncMock()
    mock.analyze = AsyncMock(return_value=analysis_result)
    mock.analyze_folder = AsyncMock(return_value="Holds the sources.")
    mock.find_relevant_file = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def rng():
    return random.Random(7)
