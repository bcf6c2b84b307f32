"""Data models for the codebase tree and AI analysis results.

``TreeNode`` is the persistent domain record: one per folder, file or
synthetic symbol. Nodes are never deleted during a session; hiding a
subtree in the graph leaves the tree untouched so re-expanding is
instantaneous.

``AnalysisResult`` is the validated shape of what the analysis
collaborator returns for a single file.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

PATH_SEPARATOR = "/"
SYMBOL_SEPARATOR = "#"


class NodeKind(StrEnum):
    FOLDER = "folder"
    FILE = "file"
    FUNCTION = "function"
    CLASS = "class"
    COMPONENT = "component"

    @property
    def is_symbol(self) -> bool:
        """True for nodes synthesized from analysis (never expandable)."""
        return self in (NodeKind.FUNCTION, NodeKind.CLASS, NodeKind.COMPONENT)


def derive_child_id(parent_id: str, name: str, kind: NodeKind) -> str:
    """Build a child id from its parent's id and its local name.

    Symbol children use ``#`` so they never collide with real paths:

        >>> derive_child_id("root/src", "main.ts", NodeKind.FILE)
        'root/src/main.ts'
        >>> derive_child_id("root/src/main.ts", "run", NodeKind.FUNCTION)
        'root/src/main.ts#run'
    """
    separator = SYMBOL_SEPARATOR if kind.is_symbol else PATH_SEPARATOR
    return f"{parent_id}{separator}{name}"


@dataclass(eq=False)
class TreeNode:
    """A folder, file or symbol in the codebase tree.

    ``children`` is ``None`` for a file that has not been analyzed yet and
    an empty list for a folder without entries.
    """

    id: str
    name: str
    kind: NodeKind
    children: list[TreeNode] | None = None
    content: str | None = None
    analyzed: bool = False
    size: int = 0
    summary: str | None = None
    description: str | None = None
    download_url: str | None = None
    local_path: str | None = None
    # Cleared when content turns out to be unavailable and there is nothing to show
    expandable: bool = True

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def child_named(self, name: str, kind: NodeKind) -> TreeNode | None:
        for child in self.children or []:
            if child.name == name and child.kind == kind:
                return child
        return None

    def walk(self):
        """Yield this node and all of its descendants, depth first."""
        yield self
        for child in self.children or []:
            yield from child.walk()

    def to_dict(self, include_content: bool = False) -> dict:
        """Shallow, JSON-friendly description of the node (no children)."""
        data = {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "analyzed": self.analyzed,
            "size": self.size,
            "summary": self.summary,
            "description": self.description,
            "child_count": len(self.children or []),
        }
        if include_content:
            data["content"] = self.content
        return data


class AnalysisItem(BaseModel):
    """One symbol extracted from a file by the analysis collaborator."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    kind: str = Field(
        default="COMPONENT",
        validation_alias=AliasChoices("kind", "type"),
        description="FUNCTION, CLASS or COMPONENT",
    )
    description: str = ""

    def node_kind(self) -> NodeKind:
        """Map the reported kind onto a symbol ``NodeKind``.

        Anything that is not a function or a class is shown as a component.
        """
        value = self.kind.strip().lower()
        if value == NodeKind.FUNCTION:
            return NodeKind.FUNCTION
        if value == NodeKind.CLASS:
            return NodeKind.CLASS
        return NodeKind.COMPONENT


class AnalysisResult(BaseModel):
    """File-level analysis: a short summary plus the exported symbols."""

    summary: str = ""
    items: list[AnalysisItem] = Field(default_factory=list)


class GitHubRepo(BaseModel):
    """A public repository listed for a GitHub user."""

    name: str
    full_name: str
    html_url: str
    description: str | None = None
    language: str | None = None
    stargazers_count: int = 0
    fork: bool = False
    updated_at: str | None = None
