"""Enrichment adapter: turns an AI analysis of a file into tree children.

The adapter is the error boundary for everything that can go wrong while
analyzing a file. Callers get an ``EnrichmentOutcome`` back and never an
exception, so a failed analysis simply leaves the file unexpanded and
clickable again.

Concurrency:
    At most one analysis runs per file. A second ``enrich`` call for a file
    whose analysis is still in flight awaits the same task instead of
    issuing another request. Requests are not cancellable once issued: the
    shared task is shielded from the cancellation of any single caller.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from loguru import logger
from pydantic import ValidationError

from ..config.defaults import MAX_CONTENT_BYTES
from .exceptions import ContentUnavailableError, EnrichmentError
from .models import AnalysisResult, NodeKind, TreeNode
from .tree import TreeModel


class Analyzer(Protocol):
    """External analysis collaborator."""

    async def analyze(
        self, name: str, content: str
    ) -> AnalysisResult | dict[str, Any] | None: ...


@runtime_checkable
class CodeAssistant(Protocol):
    """Optional extra capabilities of an analysis collaborator."""

    async def analyze_folder(self, node: TreeNode) -> str | None: ...

    async def find_relevant_file(
        self, query: str, all_file_paths: list[str]
    ) -> str | None: ...


class ContentFetcher(Protocol):
    """Fetches the source text of a file whose content was not loaded."""

    def can_fetch(self, node: TreeNode) -> bool: ...

    async def fetch_content(self, node: TreeNode) -> str: ...


class EnrichmentOutcome(StrEnum):
    ENRICHED = "enriched"
    ALREADY_ANALYZED = "already_analyzed"
    NOT_A_FILE = "not_a_file"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


class EnrichmentAdapter:
    """Analyzes files on demand and attaches their symbols to the tree."""

    def __init__(
        self,
        tree: TreeModel,
        analyzer: Analyzer | None,
        content_fetcher: ContentFetcher | None = None,
        max_content_bytes: int = MAX_CONTENT_BYTES,
    ) -> None:
        self._tree = tree
        self._analyzer = analyzer
        self._content_fetcher = content_fetcher
        self._max_content_bytes = max_content_bytes
        self._in_flight: dict[str, asyncio.Task[EnrichmentOutcome]] = {}

    @property
    def in_flight(self) -> frozenset[str]:
        """Ids of files whose analysis has been issued but not resolved."""
        return frozenset(self._in_flight)

    def is_enriching(self, node_id: str) -> bool:
        return node_id in self._in_flight

    def can_enrich(self, node: TreeNode) -> bool:
        """Whether an analysis of ``node`` could be attempted at all."""
        if self._analyzer is None:
            return False
        if node.kind != NodeKind.FILE or node.analyzed or not node.expandable:
            return False
        if node.content is not None:
            return True
        return self._content_fetcher is not None and self._content_fetcher.can_fetch(
            node
        )

    async def enrich(self, node: TreeNode | str) -> EnrichmentOutcome:
        """Analyze a file and attach its symbols as children.

        Args:
            node: The file node, or its id

        Returns:
            What happened; failures are reported here, never raised

        Raises:
            TreeNodeNotFoundError: If an id is given that does not exist
        """
        if isinstance(node, str):
            node = self._tree.get(node)

        if node.kind != NodeKind.FILE:
            return EnrichmentOutcome.NOT_A_FILE
        if node.analyzed:
            return EnrichmentOutcome.ALREADY_ANALYZED

        task = self._in_flight.get(node.id)
        if task is None:
            task = asyncio.ensure_future(self._run(node))
            self._in_flight[node.id] = task
        else:
            logger.debug(f"Joining in-flight analysis of {node.id}")

        return await asyncio.shield(task)

    async def _run(self, node: TreeNode) -> EnrichmentOutcome:
        try:
            try:
                content = await self._resolve_content(node)
            except ContentUnavailableError as e:
                logger.warning(f"Content unavailable for {node.id}: {e}")
                if not node.children:
                    node.expandable = False
                return EnrichmentOutcome.UNAVAILABLE

            try:
                result = await self._analyze(node, content)
            except EnrichmentError as e:
                logger.warning(f"Enrichment failed for {node.id}: {e}")
                return EnrichmentOutcome.FAILED

            try:
                self._apply(node, result)
            except Exception as e:
                logger.error(f"Attaching analysis of {node.id} failed: {e}")
                return EnrichmentOutcome.FAILED
            return EnrichmentOutcome.ENRICHED
        finally:
            self._in_flight.pop(node.id, None)

    async def _resolve_content(self, node: TreeNode) -> str:
        if node.content is not None:
            return node.content

        if self._content_fetcher is None or not self._content_fetcher.can_fetch(node):
            raise ContentUnavailableError(
                f"No content loaded for {node.name} and no way to fetch it",
                {"node_id": node.id},
            )

        try:
            content = await self._content_fetcher.fetch_content(node)
        except ContentUnavailableError:
            raise
        except Exception as e:
            raise ContentUnavailableError(
                f"Failed to fetch {node.name}: {e}", {"node_id": node.id}
            ) from e

        if len(content.encode("utf-8")) >= self._max_content_bytes:
            raise ContentUnavailableError(
                f"{node.name} is too large to analyze", {"node_id": node.id}
            )

        node.content = content
        return content

    async def _analyze(self, node: TreeNode, content: str) -> AnalysisResult:
        if self._analyzer is None:
            raise EnrichmentError("No analyzer configured", {"node_id": node.id})

        try:
            raw = await self._analyzer.analyze(node.name, content)
        except Exception as e:
            raise EnrichmentError(
                f"Analysis request failed: {e}", {"node_id": node.id}
            ) from e

        if raw is None:
            raise EnrichmentError("Analysis returned no result", {"node_id": node.id})
        if isinstance(raw, AnalysisResult):
            return raw

        try:
            return AnalysisResult.model_validate(raw)
        except ValidationError as e:
            raise EnrichmentError(
                f"Malformed analysis result: {e}", {"node_id": node.id}
            ) from e

    def _apply(self, node: TreeNode, result: AnalysisResult) -> None:
        symbols = [
            TreeNode(
                id="",
                name=item.name,
                kind=item.node_kind(),
                description=item.description,
                size=1,
            )
            for item in result.items
        ]
        attached = self._tree.attach_children(node.id, symbols)
        node.summary = result.summary
        node.analyzed = True
        logger.debug(
            f"Enriched {node.id}: {len(attached)} symbols "
            f"({len(result.items) - len(attached)} duplicates skipped)"
        )

    async def summarize_folder(self, node: TreeNode) -> str | None:
        """Fill ``node.summary`` for a folder using the assistant, if any.

        Returns the summary, or ``None`` when it could not be produced.
        """
        if node.kind != NodeKind.FOLDER:
            return None
        if node.summary:
            return node.summary
        if not isinstance(self._analyzer, CodeAssistant):
            return None

        try:
            summary = await self._analyzer.analyze_folder(node)
        except Exception as e:
            logger.warning(f"Folder summary failed for {node.id}: {e}")
            return None

        if summary:
            node.summary = summary
        return summary
