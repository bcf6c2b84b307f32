"""Core functionality for map-my-repo: tree model, enrichment and collaborators."""

from .exceptions import (
    AnalysisError,
    ConfigError,
    ContentUnavailable,
    ContentUnavailableError,
    EnrichmentError,
    EnrichmentFailed,
    GraphNodeNotFoundError,
    IngestionError,
    MapMyRepoError,
    NotFound,
    RateLimitError,
    RepositoryNotFoundError,
    TreeNodeNotFoundError,
)
from .models import AnalysisItem, AnalysisResult, GitHubRepo, NodeKind, TreeNode
from .tree import TreeModel

__all__ = [
    # Exceptions
    "AnalysisError",
    "ConfigError",
    "ContentUnavailable",
    "ContentUnavailableError",
    "EnrichmentError",
    "EnrichmentFailed",
    "GraphNodeNotFoundError",
    "IngestionError",
    "MapMyRepoError",
    "NotFound",
    "RateLimitError",
    "RepositoryNotFoundError",
    "TreeNodeNotFoundError",
    # Models
    "AnalysisItem",
    "AnalysisResult",
    "GitHubRepo",
    "NodeKind",
    "TreeNode",
    "TreeModel",
]
