"""Loading codebase trees from a local checkout or the GitHub API.

Both loaders produce the same shape: a ``root`` folder whose descendants
are keyed by ``root/<relative path>``. Files below the size limit carry
their content; everything else is fetched later through a content fetcher.
"""

from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from urllib.parse import quote, urlparse

import aiofiles
import httpx
from loguru import logger

from ..config.defaults import (
    DEFAULT_IGNORE_FILES,
    DEFAULT_IGNORE_PATTERNS,
    MAX_CONTENT_BYTES,
)
from .exceptions import (
    ContentUnavailableError,
    IngestionError,
    RateLimitError,
    RepositoryNotFoundError,
)
from .models import GitHubRepo, NodeKind, TreeNode, derive_child_id

ROOT_ID = "root"
GITHUB_API = "https://api.github.com"
GITHUB_RAW = "https://raw.githubusercontent.com"


def calculate_sizes(node: TreeNode) -> int:
    """Set every folder's ``size`` to the sum of its children.

    Files count for at least 1 so empty files still carry weight.
    """
    if node.kind == NodeKind.FILE:
        return node.size or 1
    if node.children is not None:
        node.size = sum(calculate_sizes(child) for child in node.children)
        return node.size
    return 0


def _ensure_folder(
    folders: dict[str, TreeNode], root: TreeNode, rel_dir: str
) -> TreeNode:
    """Return the folder for ``rel_dir``, creating any missing ancestors."""
    if not rel_dir:
        return root
    if rel_dir in folders:
        return folders[rel_dir]

    parent_rel, _, name = rel_dir.rpartition("/")
    parent = _ensure_folder(folders, root, parent_rel)
    folder = TreeNode(
        id=derive_child_id(parent.id, name, NodeKind.FOLDER),
        name=name,
        kind=NodeKind.FOLDER,
        children=[],
    )
    parent.children.append(folder)
    folders[rel_dir] = folder
    return folder


# ── Local filesystem ────────────────────────────────────────────────────


def load_local_tree(
    path: Path,
    max_content_bytes: int = MAX_CONTENT_BYTES,
    ignore_patterns: list[str] | None = None,
) -> TreeNode:
    """Build a tree from a directory on disk.

    Args:
        path: Directory to ingest
        max_content_bytes: Files smaller than this are read eagerly
        ignore_patterns: Directory names to skip (defaults to the usual
            VCS, cache and build directories)

    Returns:
        Root folder node (id ``root``, named after the directory)

    Raises:
        IngestionError: If ``path`` is not a directory
    """
    path = path.resolve()
    if not path.is_dir():
        raise IngestionError(f"Not a directory: {path}", {"path": str(path)})

    ignored_dirs = set(ignore_patterns or DEFAULT_IGNORE_PATTERNS)
    root = TreeNode(id=ROOT_ID, name=path.name, kind=NodeKind.FOLDER, children=[])
    folders: dict[str, TreeNode] = {}
    file_count = 0

    for dirpath, dirnames, filenames in os.walk(path):
        dirnames[:] = sorted(d for d in dirnames if d not in ignored_dirs)
        rel_dir = Path(dirpath).relative_to(path).as_posix()
        folder = _ensure_folder(folders, root, "" if rel_dir == "." else rel_dir)

        for filename in sorted(filenames):
            if any(fnmatch.fnmatch(filename, p) for p in DEFAULT_IGNORE_FILES):
                continue
            file_path = Path(dirpath) / filename
            try:
                size = file_path.stat().st_size
            except OSError as e:
                logger.debug(f"Skipping unreadable {file_path}: {e}")
                continue

            content = None
            if size < max_content_bytes:
                try:
                    content = file_path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as e:
                    logger.debug(f"Could not read text of {file_path}: {e}")

            folder.children.append(
                TreeNode(
                    id=derive_child_id(folder.id, filename, NodeKind.FILE),
                    name=filename,
                    kind=NodeKind.FILE,
                    content=content,
                    size=size,
                    local_path=str(file_path),
                )
            )
            file_count += 1

    calculate_sizes(root)
    logger.info(f"Loaded {file_count} files from {path}")
    return root


class LocalContentFetcher:
    """Reads file content from disk for nodes that were not loaded eagerly."""

    def __init__(self, max_content_bytes: int = MAX_CONTENT_BYTES) -> None:
        self.max_content_bytes = max_content_bytes

    def can_fetch(self, node: TreeNode) -> bool:
        return node.local_path is not None

    async def fetch_content(self, node: TreeNode) -> str:
        if node.local_path is None:
            raise ContentUnavailableError(f"{node.name} has no local path")

        path = Path(node.local_path)
        try:
            if path.stat().st_size >= self.max_content_bytes:
                raise ContentUnavailableError(
                    f"{node.name} is too large ({path.stat().st_size} bytes)"
                )
            async with aiofiles.open(path, encoding="utf-8") as f:
                return await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ContentUnavailableError(f"Could not read {path}: {e}") from e


# ── GitHub ──────────────────────────────────────────────────────────────


def parse_github_url(url: str) -> tuple[str, str] | None:
    """Extract ``(owner, repo)`` from a GitHub repository URL.

    Example:
        >>> parse_github_url("https://github.com/octo/hello-world")
        ('octo', 'hello-world')
    """
    if "://" not in url:
        url = f"https://{url}"
    parsed = urlparse(url)
    if parsed.hostname not in ("github.com", "www.github.com"):
        return None
    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 2:
        return None
    repo = parts[1].removesuffix(".git")
    return parts[0], repo


def is_github_url(source: str) -> bool:
    return parse_github_url(source) is not None


class GitHubTreeLoader:
    """Builds a tree from the GitHub git-trees API (one recursive request)."""

    TIMEOUT_SECONDS = 30.0

    def __init__(
        self,
        token: str | None = None,
        timeout: float = TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = token or os.environ.get("GITHUB_TOKEN")
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def load(self, url: str) -> TreeNode:
        """Fetch the default-branch tree of a repository.

        Raises:
            IngestionError: If the URL is not a GitHub repository URL
            RepositoryNotFoundError: If the repository or tree does not exist
            RateLimitError: If the API rate limit is exceeded
        """
        coords = parse_github_url(url)
        if coords is None:
            raise IngestionError(
                "Invalid GitHub URL. Format: https://github.com/owner/repo",
                {"url": url},
            )
        owner, repo = coords

        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport, headers=self._headers()
        ) as client:
            repo_response = await client.get(f"{GITHUB_API}/repos/{owner}/{repo}")
            self._check(repo_response, f"Repository '{owner}/{repo}'")
            branch = repo_response.json().get("default_branch", "main")

            tree_response = await client.get(
                f"{GITHUB_API}/repos/{owner}/{repo}/git/trees/{branch}",
                params={"recursive": "1"},
            )
            self._check(tree_response, f"Tree for branch '{branch}'")
            tree_data = tree_response.json()

        if tree_data.get("truncated"):
            logger.warning(
                f"{owner}/{repo} is too large for one tree request; some files are missing"
            )

        root = self._build(repo, owner, branch, tree_data.get("tree", []))
        calculate_sizes(root)
        logger.info(f"Loaded {owner}/{repo}@{branch} from GitHub")
        return root

    async def list_repos(self, username: str) -> list[GitHubRepo]:
        """List a user's public repositories, most recently updated first.

        Raises:
            RepositoryNotFoundError: If the user does not exist
            RateLimitError: If the API rate limit is exceeded
        """
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport, headers=self._headers()
        ) as client:
            response = await client.get(
                f"{GITHUB_API}/users/{quote(username)}/repos",
                params={"per_page": "100", "sort": "updated"},
            )
            self._check(response, f"User '{username}'")

        try:
            repos = [GitHubRepo.model_validate(item) for item in response.json()]
        except (ValueError, TypeError) as e:
            raise IngestionError(
                f"Unexpected repository listing for {username}: {e}",
                {"username": username},
            ) from e

        logger.info(f"Found {len(repos)} repositories for {username}")
        return repos

    @staticmethod
    def _check(response: httpx.Response, what: str) -> None:
        if response.status_code == 403:
            raise RateLimitError(
                "GitHub API rate limit exceeded. Provide a GitHub token (GITHUB_TOKEN) "
                "to increase limits."
            )
        if response.status_code == 404:
            raise RepositoryNotFoundError(f"{what} not found.")
        if response.status_code == 409:
            raise RepositoryNotFoundError(f"{what} is empty.")
        if response.is_error:
            raise IngestionError(
                f"GitHub API error (HTTP {response.status_code}) for {what}",
                {"status_code": response.status_code},
            )

    @staticmethod
    def _build(repo: str, owner: str, branch: str, items: list[dict]) -> TreeNode:
        root = TreeNode(id=ROOT_ID, name=repo, kind=NodeKind.FOLDER, children=[])
        folders: dict[str, TreeNode] = {}

        # Shallow paths first so parents exist before their entries
        for item in sorted(items, key=lambda i: i["path"].count("/")):
            item_path = item["path"]
            if item.get("type") == "tree":
                _ensure_folder(folders, root, item_path)
            elif item.get("type") == "blob":
                parent_rel, _, name = item_path.rpartition("/")
                parent = _ensure_folder(folders, root, parent_rel)
                parent.children.append(
                    TreeNode(
                        id=derive_child_id(parent.id, name, NodeKind.FILE),
                        name=name,
                        kind=NodeKind.FILE,
                        size=item.get("size") or 0,
                        download_url=(
                            f"{GITHUB_RAW}/{owner}/{repo}/{quote(branch)}/{quote(item_path)}"
                        ),
                    )
                )
        return root


def group_by_language(repos: list[GitHubRepo]) -> dict[str, list[GitHubRepo]]:
    """Group repositories by primary language ('Other' when GitHub has none)."""
    groups: dict[str, list[GitHubRepo]] = {}
    for repo in repos:
        groups.setdefault(repo.language or "Other", []).append(repo)
    return groups


class RemoteContentFetcher:
    """Downloads file content from a node's ``download_url``."""

    TIMEOUT_SECONDS = 30.0

    def __init__(
        self,
        max_content_bytes: int = MAX_CONTENT_BYTES,
        timeout: float = TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.max_content_bytes = max_content_bytes
        self.timeout = timeout
        self._transport = transport

    def can_fetch(self, node: TreeNode) -> bool:
        return node.download_url is not None

    async def fetch_content(self, node: TreeNode) -> str:
        if node.download_url is None:
            raise ContentUnavailableError(f"{node.name} has no download URL")
        if node.size and node.size >= self.max_content_bytes:
            raise ContentUnavailableError(f"{node.name} is too large ({node.size} bytes)")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(node.download_url)
                response.raise_for_status()
                return response.text
        except httpx.HTTPError as e:
            raise ContentUnavailableError(
                f"Failed to fetch content of {node.name}: {e}"
            ) from e


# ── Entry point ─────────────────────────────────────────────────────────


async def load_tree(
    source: str,
    max_content_bytes: int = MAX_CONTENT_BYTES,
    github_token: str | None = None,
) -> tuple[TreeNode, LocalContentFetcher | RemoteContentFetcher]:
    """Load a tree from a GitHub URL or a local directory.

    Returns:
        The root node and the content fetcher matching its origin
    """
    if is_github_url(source):
        root = await GitHubTreeLoader(token=github_token).load(source)
        return root, RemoteContentFetcher(max_content_bytes=max_content_bytes)

    root = load_local_tree(Path(source), max_content_bytes=max_content_bytes)
    return root, LocalContentFetcher(max_content_bytes=max_content_bytes)
