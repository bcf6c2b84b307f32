"""Typed exception hierarchy for map-my-repo.

Hierarchy
---------
MapMyRepoError (base)
├── TreeNodeNotFoundError    – unknown tree id (alias ``NotFound``)
│   └── GraphNodeNotFoundError – tree id exists but is not currently visible
├── EnrichmentError          – analysis of a file failed (alias ``EnrichmentFailed``)
├── ContentUnavailableError  – file too large or fetch failed (alias ``ContentUnavailable``)
├── AnalysisError            – LLM transport / response parsing failures
├── IngestionError           – loading a tree from disk or GitHub failed
│   ├── RepositoryNotFoundError
│   └── RateLimitError
└── ConfigError              – settings file could not be loaded

``EnrichmentError`` and ``ContentUnavailableError`` never escape the
enrichment adapter: they are converted into a soft outcome there, so the
layout engine and camera are never exposed to them.
"""

from typing import Any


class MapMyRepoError(Exception):
    """Base exception for map-my-repo."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


# ── Tree / graph lookups ────────────────────────────────────────────────


class TreeNodeNotFoundError(MapMyRepoError):
    """An operation referenced a tree id that does not exist."""

    pass


class GraphNodeNotFoundError(TreeNodeNotFoundError):
    """The tree id exists but its node is not part of the visible graph."""

    pass


NotFound = TreeNodeNotFoundError


# ── Enrichment ──────────────────────────────────────────────────────────


class EnrichmentError(MapMyRepoError):
    """Network or parse failure while analyzing a file.

    Recoverable: the file keeps ``analyzed=False`` so a later click retries.
    """

    pass


EnrichmentFailed = EnrichmentError


class ContentUnavailableError(MapMyRepoError):
    """File content is too large or could not be fetched."""

    pass


ContentUnavailable = ContentUnavailableError


class AnalysisError(MapMyRepoError):
    """LLM request failed or returned something unusable."""

    pass


# ── Ingestion ───────────────────────────────────────────────────────────


class IngestionError(MapMyRepoError):
    """Loading the source tree failed."""

    pass


class RepositoryNotFoundError(IngestionError):
    """Remote repository, its tree, or a GitHub user does not exist."""

    pass


class RateLimitError(IngestionError):
    """GitHub API rate limit exceeded."""

    pass


# ── Configuration ───────────────────────────────────────────────────────


class ConfigError(MapMyRepoError):
    """Configuration / validation errors."""

    pass
