"""Tests for TreeModel lookups and attach_children."""

import pytest

from map_my_repo.core.exceptions import TreeNodeNotFoundError
from map_my_repo.core.models import NodeKind, TreeNode
from map_my_repo.core.tree import TreeModel


def symbol(name: str, kind: NodeKind = NodeKind.FUNCTION) -> TreeNode:
    return TreeNode(id="", name=name, kind=kind)


class TestLookups:
    def test_get_root(self, tree, sample_root):
        assert tree.get_root() is sample_root
        assert tree.root_id == "root"

    def test_get_by_id(self, tree):
        assert tree.get("root/src/utils").name == "utils"

    def test_get_unknown_raises_not_found(self, tree):
        with pytest.raises(TreeNodeNotFoundError) as exc_info:
            tree.get("root/nope")
        assert exc_info.value.context["node_id"] == "root/nope"

    def test_contains_and_len(self, tree):
        assert "root/README.md" in tree
        assert "root/missing" not in tree
        assert len(tree) == 6

    def test_parent_and_ancestors(self, tree):
        assert tree.parent_id("root") is None
        assert tree.parent_id("root/src/main.ts") == "root/src"
        assert tree.ancestors("root/src/utils/helpers.ts") == [
            "root",
            "root/src",
            "root/src/utils",
        ]
        assert tree.ancestors("root") == []

    def test_file_ids(self, tree):
        assert set(tree.file_ids()) == {
            "root/src/main.ts",
            "root/src/utils/helpers.ts",
            "root/README.md",
        }

    def test_duplicate_ids_rejected(self):
        child = TreeNode(id="root/a", name="a", kind=NodeKind.FILE)
        twin = TreeNode(id="root/a", name="a", kind=NodeKind.FILE)
        root = TreeNode(id="root", name="r", kind=NodeKind.FOLDER, children=[child, twin])
        with pytest.raises(ValueError):
            TreeModel(root)


class TestAttachChildren:
    def test_attaches_with_derived_ids(self, tree):
        attached = tree.attach_children("root/src/main.ts", [symbol("run")])

        assert [n.id for n in attached] == ["root/src/main.ts#run"]
        assert tree.get("root/src/main.ts#run").name == "run"
        assert tree.parent_id("root/src/main.ts#run") == "root/src/main.ts"

    def test_appends_rather_than_replaces(self, tree):
        tree.attach_children("root/src/main.ts", [symbol("run")])
        tree.attach_children("root/src/main.ts", [symbol("stop")])

        names = [c.name for c in tree.get("root/src/main.ts").children]
        assert names == ["run", "stop"]

    def test_duplicate_name_and_kind_is_noop(self, tree):
        tree.attach_children("root/src/main.ts", [symbol("run")])
        attached = tree.attach_children("root/src/main.ts", [symbol("run")])

        assert attached == []
        assert len(tree.get("root/src/main.ts").children) == 1

    def test_same_name_different_kind_gets_distinct_id(self, tree):
        tree.attach_children(
            "root/src/main.ts",
            [symbol("run"), symbol("run", NodeKind.CLASS)],
        )
        ids = [c.id for c in tree.get("root/src/main.ts").children]
        assert ids == ["root/src/main.ts#run", "root/src/main.ts#run:class"]

    def test_fallback_id_collisions_stay_unique(self, tree):
        tree.attach_children(
            "root/src/main.ts",
            [
                symbol("run:class"),
                symbol("run"),
                symbol("run", NodeKind.CLASS),
            ],
        )

        ids = [c.id for c in tree.get("root/src/main.ts").children]
        assert ids == [
            "root/src/main.ts#run:class",
            "root/src/main.ts#run",
            "root/src/main.ts#run:class2",
        ]
        assert all(tree.get(node_id) for node_id in ids)

    def test_unknown_parent_raises(self, tree):
        with pytest.raises(TreeNodeNotFoundError):
            tree.attach_children("root/ghost.ts", [symbol("run")])

    def test_nested_children_are_rekeyed_and_indexed(self, tree):
        inner = TreeNode(id="x", name="deep.py", kind=NodeKind.FILE)
        folder = TreeNode(id="y", name="extra", kind=NodeKind.FOLDER, children=[inner])

        tree.attach_children("root", [folder])

        assert tree.get("root/extra/deep.py") is inner
        assert tree.ancestors("root/extra/deep.py") == ["root", "root/extra"]
