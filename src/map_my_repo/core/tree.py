"""Tree model: an id-addressed index over the codebase tree.

The ``TreeNode`` records keep their ordered ``children`` lists, but every
lookup (node by id, parent of a node) goes through the maps held here so
that the graph layer only ever needs ids.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from loguru import logger

from .exceptions import TreeNodeNotFoundError
from .models import NodeKind, TreeNode, derive_child_id


class TreeModel:
    """Owns the codebase tree and the only way to grow it.

    Nodes are never removed. ``attach_children`` appends, and skips any child
    whose ``(name, kind)`` already exists under the same parent, which makes
    re-attaching the same analysis result a no-op.
    """

    def __init__(self, root: TreeNode) -> None:
        self._root = root
        self._nodes: dict[str, TreeNode] = {}
        self._parent: dict[str, str] = {}
        self._index(root, None)
        logger.debug(f"Tree model indexed {len(self._nodes)} nodes under '{root.id}'")

    def _index(self, node: TreeNode, parent_id: str | None) -> None:
        if node.id in self._nodes:
            raise ValueError(f"Duplicate tree id: {node.id}")
        self._nodes[node.id] = node
        if parent_id is not None:
            self._parent[node.id] = parent_id
        for child in node.children or []:
            self._index(child, node.id)

    # ── Lookups ─────────────────────────────────────────────────────────

    def get_root(self) -> TreeNode:
        return self._root

    @property
    def root_id(self) -> str:
        return self._root.id

    def get(self, node_id: str) -> TreeNode:
        """Return the node with ``node_id``.

        Raises:
            TreeNodeNotFoundError: If no such node exists
        """
        try:
            return self._nodes[node_id]
        except KeyError:
            raise TreeNodeNotFoundError(
                f"No tree node with id '{node_id}'", {"node_id": node_id}
            ) from None

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[TreeNode]:
        return iter(self._nodes.values())

    def parent_id(self, node_id: str) -> str | None:
        self.get(node_id)
        return self._parent.get(node_id)

    def children_of(self, node_id: str) -> list[TreeNode]:
        return list(self.get(node_id).children or [])

    def ancestors(self, node_id: str) -> list[str]:
        """Ids of every ancestor of ``node_id``, root first."""
        self.get(node_id)
        chain: list[str] = []
        current = self._parent.get(node_id)
        while current is not None:
            chain.append(current)
            current = self._parent.get(current)
        chain.reverse()
        return chain

    def file_ids(self) -> list[str]:
        return [n.id for n in self._nodes.values() if n.kind == NodeKind.FILE]

    # ── Mutation ────────────────────────────────────────────────────────

    def attach_children(
        self, node_id: str, children: Iterable[TreeNode]
    ) -> list[TreeNode]:
        """Append ``children`` to the node addressed by ``node_id``.

        Each child (and anything below it) is re-keyed with an id derived
        from its new parent. Children whose ``(name, kind)`` pair is already
        present are skipped.

        Args:
            node_id: Id of the node to grow
            children: New child records; their current ids are ignored

        Returns:
            The children that were actually attached

        Raises:
            TreeNodeNotFoundError: If ``node_id`` does not exist
        """
        parent = self.get(node_id)
        if parent.children is None:
            parent.children = []

        attached: list[TreeNode] = []
        for child in children:
            if parent.child_named(child.name, child.kind) is not None:
                logger.debug(
                    f"Skipping duplicate child {child.kind}:{child.name} of {node_id}"
                )
                continue
            child_id = self._free_id(
                derive_child_id(node_id, child.name, child.kind), child.kind
            )
            self._rekey(child, child_id)
            self._index(child, node_id)
            parent.children.append(child)
            attached.append(child)

        if attached:
            logger.debug(f"Attached {len(attached)} children to {node_id}")
        return attached

    def _free_id(self, child_id: str, kind: NodeKind) -> str:
        if child_id not in self._nodes:
            return child_id
        # Same name, different kind (e.g. a class and a function "run")
        candidate = f"{child_id}:{kind.value}"
        suffix = 2
        while candidate in self._nodes:
            candidate = f"{child_id}:{kind.value}{suffix}"
            suffix += 1
        return candidate

    def _rekey(self, node: TreeNode, new_id: str) -> None:
        node.id = new_id
        for child in node.children or []:
            self._rekey(child, derive_child_id(new_id, child.name, child.kind))
