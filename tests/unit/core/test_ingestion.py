"""Tests for local and GitHub tree ingestion."""

import httpx
import pytest

from map_my_repo.core.exceptions import (
    ContentUnavailableError,
    IngestionError,
    RateLimitError,
    RepositoryNotFoundError,
)
from map_my_repo.core.ingestion import (
    GitHubTreeLoader,
    LocalContentFetcher,
    RemoteContentFetcher,
    calculate_sizes,
    group_by_language,
    is_github_url,
    load_local_tree,
    load_tree,
    parse_github_url,
)
from map_my_repo.core.models import GitHubRepo, NodeKind, TreeNode
from map_my_repo.core.tree import TreeModel


@pytest.fixture
def project_dir(tmp_path):
    root = tmp_path / "proj"
    (root / "src" / "utils").mkdir(parents=True)
    (root / "src" / "main.py").write_text("def run():\n    pass\n")
    (root / "src" / "utils" / "helpers.py").write_text("def add(a, b):\n    return a + b\n")
    (root / "README.md").write_text("# Project\n")
    (root / "big.txt").write_text("x" * 500)
    (root / ".git").mkdir()
    (root / ".git" / "config").write_text("[core]\n")
    (root / "node_modules" / "lib").mkdir(parents=True)
    (root / "node_modules" / "lib" / "index.js").write_text("module.exports = 1;\n")
    (root / "src" / "main.pyc").write_bytes(b"\x00\x01")
    return root


class TestLocalTree:
    def test_builds_folder_and_file_nodes(self, project_dir):
        root = load_local_tree(project_dir, max_content_bytes=100)
        ids = {n.id for n in root.walk()}

        assert root.id == "root"
        assert root.name == "proj"
        assert ids == {
            "root",
            "root/README.md",
            "root/big.txt",
            "root/src",
            "root/src/main.py",
            "root/src/utils",
            "root/src/utils/helpers.py",
        }

    def test_small_files_are_read_eagerly(self, project_dir):
        tree = TreeModel(load_local_tree(project_dir, max_content_bytes=100))

        main = tree.get("root/src/main.py")
        assert main.kind == NodeKind.FILE
        assert main.content == "def run():\n    pass\n"
        assert main.children is None
        assert main.local_path == str(project_dir / "src" / "main.py")

    def test_large_files_keep_no_content(self, project_dir):
        tree = TreeModel(load_local_tree(project_dir, max_content_bytes=100))

        big = tree.get("root/big.txt")
        assert big.content is None
        assert big.size == 500

    def test_folder_sizes_are_summed(self, project_dir):
        tree = TreeModel(load_local_tree(project_dir))
        src = tree.get("root/src")
        main = tree.get("root/src/main.py")
        helpers = tree.get("root/src/utils/helpers.py")

        assert src.size == main.size + helpers.size
        assert tree.get_root().size == sum(c.size for c in tree.get_root().children)

    def test_custom_ignore_patterns(self, project_dir):
        root = load_local_tree(project_dir, ignore_patterns=["utils", ".git", "node_modules"])
        ids = {n.id for n in root.walk()}
        assert "root/src/utils" not in ids
        assert "root/src/main.py" in ids

    def test_not_a_directory(self, tmp_path):
        with pytest.raises(IngestionError):
            load_local_tree(tmp_path / "missing")


class TestCalculateSizes:
    def test_empty_files_count_as_one(self):
        empty = TreeNode(id="root/e", name="e", kind=NodeKind.FILE, size=0)
        folder = TreeNode(id="root", name="r", kind=NodeKind.FOLDER, children=[empty])
        assert calculate_sizes(folder) == 1
        assert folder.size == 1


class TestLocalContentFetcher:
    @pytest.mark.asyncio
    async def test_reads_file(self, project_dir):
        fetcher = LocalContentFetcher()
        node = TreeNode(
            id="root/README.md",
            name="README.md",
            kind=NodeKind.FILE,
            local_path=str(project_dir / "README.md"),
        )
        assert fetcher.can_fetch(node)
        assert await fetcher.fetch_content(node) == "# Project\n"

    @pytest.mark.asyncio
    async def test_too_large(self, project_dir):
        fetcher = LocalContentFetcher(max_content_bytes=100)
        node = TreeNode(
            id="root/big.txt",
            name="big.txt",
            kind=NodeKind.FILE,
            local_path=str(project_dir / "big.txt"),
        )
        with pytest.raises(ContentUnavailableError, match="too large"):
            await fetcher.fetch_content(node)

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        fetcher = LocalContentFetcher()
        node = TreeNode(
            id="root/gone", name="gone", kind=NodeKind.FILE, local_path=str(tmp_path / "gone")
        )
        with pytest.raises(ContentUnavailableError):
            await fetcher.fetch_content(node)

    def test_cannot_fetch_without_path(self):
        node = TreeNode(id="root/x", name="x", kind=NodeKind.FILE)
        assert not LocalContentFetcher().can_fetch(node)


class TestGitHubUrls:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://github.com/octo/hello-world", ("octo", "hello-world")),
            ("https://github.com/octo/hello-world.git", ("octo", "hello-world")),
            ("github.com/octo/hello-world/tree/main/src", ("octo", "hello-world")),
            ("https://www.github.com/octo/repo/", ("octo", "repo")),
            ("https://gitlab.com/octo/repo", None),
            ("https://github.com/octo", None),
            ("./local/path", None),
        ],
    )
    def test_parse_github_url(self, url, expected):
        assert parse_github_url(url) == expected

    def test_is_github_url(self):
        assert is_github_url("https://github.com/a/b")
        assert not is_github_url("/home/me/project")


def github_handler(status_repo: int = 200, status_tree: int = 200, truncated: bool = False):
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/repos/octo/demo":
            return httpx.Response(status_repo, json={"default_branch": "dev"})
        if path == "/repos/octo/demo/git/trees/dev":
            assert request.url.params["recursive"] == "1"
            return httpx.Response(
                status_tree,
                json={
                    "truncated": truncated,
                    "tree": [
                        {"path": "src/app/main.ts", "type": "blob", "size": 40},
                        {"path": "src", "type": "tree"},
                        {"path": "README.md", "type": "blob", "size": 10},
                        {"path": "src/app", "type": "tree"},
                        {"path": "vendor", "type": "commit"},
                    ],
                },
            )
        return httpx.Response(404)

    return handler


class TestGitHubTreeLoader:
    @pytest.mark.asyncio
    async def test_builds_tree_from_api(self):
        loader = GitHubTreeLoader(token="t", transport=httpx.MockTransport(github_handler()))
        root = await loader.load("https://github.com/octo/demo")
        tree = TreeModel(root)

        assert root.name == "demo"
        assert {n.id for n in root.walk()} == {
            "root",
            "root/src",
            "root/src/app",
            "root/src/app/main.ts",
            "root/README.md",
        }
        main = tree.get("root/src/app/main.ts")
        assert main.content is None
        assert main.size == 40
        assert main.download_url == (
            "https://raw.githubusercontent.com/octo/demo/dev/src/app/main.ts"
        )
        assert tree.get("root/src").size == 40

    @pytest.mark.asyncio
    async def test_sends_token(self):
        seen = []

        def handler(request):
            seen.append(request.headers.get("Authorization"))
            return github_handler()(request)

        loader = GitHubTreeLoader(token="secret", transport=httpx.MockTransport(handler))
        await loader.load("https://github.com/octo/demo")
        assert seen[0] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_truncated_tree_still_loads(self):
        loader = GitHubTreeLoader(
            token="t", transport=httpx.MockTransport(github_handler(truncated=True))
        )
        root = await loader.load("https://github.com/octo/demo")
        assert root.children

    @pytest.mark.asyncio
    async def test_missing_repository(self):
        loader = GitHubTreeLoader(
            token="t", transport=httpx.MockTransport(github_handler(status_repo=404))
        )
        with pytest.raises(RepositoryNotFoundError):
            await loader.load("https://github.com/octo/demo")

    @pytest.mark.asyncio
    async def test_empty_repository(self):
        loader = GitHubTreeLoader(
            token="t", transport=httpx.MockTransport(github_handler(status_tree=409))
        )
        with pytest.raises(RepositoryNotFoundError, match="empty"):
            await loader.load("https://github.com/octo/demo")

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        loader = GitHubTreeLoader(
            token="t", transport=httpx.MockTransport(github_handler(status_repo=403))
        )
        with pytest.raises(RateLimitError):
            await loader.load("https://github.com/octo/demo")

    @pytest.mark.asyncio
    async def test_server_error(self):
        loader = GitHubTreeLoader(
            token="t", transport=httpx.MockTransport(github_handler(status_repo=502))
        )
        with pytest.raises(IngestionError) as exc_info:
            await loader.load("https://github.com/octo/demo")
        assert exc_info.value.context["status_code"] == 502

    @pytest.mark.asyncio
    async def test_invalid_url(self):
        with pytest.raises(IngestionError, match="Invalid GitHub URL"):
            await GitHubTreeLoader(token="t").load("https://example.com/x")

    def test_download_urls_are_quoted(self):
        root = GitHubTreeLoader._build(
            "demo",
            "octo",
            "dev",
            [{"path": "docs/what is #1?.md", "type": "blob", "size": 5}],
        )

        doc = TreeModel(root).get("root/docs/what is #1?.md")
        assert doc.download_url == (
            "https://raw.githubusercontent.com/octo/demo/dev/docs/what%20is%20%231%3F.md"
        )


REPOS = [
    {
        "name": "hello",
        "full_name": "octo/hello",
        "html_url": "https://github.com/octo/hello",
        "description": "Greeter",
        "language": "Python",
        "stargazers_count": 12,
        "fork": False,
        "updated_at": "2024-05-01T00:00:00Z",
        "owner": {"login": "octo"},
    },
    {
        "name": "site",
        "full_name": "octo/site",
        "html_url": "https://github.com/octo/site",
        "language": None,
        "fork": True,
    },
]


class TestListRepos:
    @pytest.mark.asyncio
    async def test_lists_repositories(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=REPOS)

        loader = GitHubTreeLoader(token="t", transport=httpx.MockTransport(handler))
        repos = await loader.list_repos("octo")

        assert [r.name for r in repos] == ["hello", "site"]
        assert repos[0].stargazers_count == 12
        assert repos[1].fork and repos[1].description is None
        assert seen[0].url.path == "/users/octo/repos"
        assert seen[0].url.params["sort"] == "updated"
        assert seen[0].headers["Authorization"] == "Bearer t"

    @pytest.mark.asyncio
    async def test_unknown_user(self):
        loader = GitHubTreeLoader(
            token="t", transport=httpx.MockTransport(lambda r: httpx.Response(404))
        )
        with pytest.raises(RepositoryNotFoundError, match="User 'ghost'"):
            await loader.list_repos("ghost")

    @pytest.mark.asyncio
    async def test_unexpected_payload(self):
        loader = GitHubTreeLoader(
            token="t",
            transport=httpx.MockTransport(
                lambda r: httpx.Response(200, json={"message": "odd"})
            ),
        )
        with pytest.raises(IngestionError, match="Unexpected repository listing"):
            await loader.list_repos("octo")

    def test_group_by_language(self):
        repos = [GitHubRepo.model_validate(item) for item in REPOS]

        groups = group_by_language(repos)

        assert {lang: [r.name for r in rs] for lang, rs in groups.items()} == {
            "Python": ["hello"],
            "Other": ["site"],
        }


class TestRemoteContentFetcher:
    @pytest.mark.asyncio
    async def test_downloads_content(self):
        fetcher = RemoteContentFetcher(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, text="let a = 1;"))
        )
        node = TreeNode(
            id="root/a.ts",
            name="a.ts",
            kind=NodeKind.FILE,
            download_url="https://raw.githubusercontent.com/o/r/main/a.ts",
        )
        assert fetcher.can_fetch(node)
        assert await fetcher.fetch_content(node) == "let a = 1;"

    @pytest.mark.asyncio
    async def test_http_error_is_unavailable(self):
        fetcher = RemoteContentFetcher(
            transport=httpx.MockTransport(lambda r: httpx.Response(404))
        )
        node = TreeNode(
            id="root/a.ts", name="a.ts", kind=NodeKind.FILE, download_url="https://x/a.ts"
        )
        with pytest.raises(ContentUnavailableError):
            await fetcher.fetch_content(node)

    @pytest.mark.asyncio
    async def test_known_large_size_is_refused(self):
        fetcher = RemoteContentFetcher(max_content_bytes=10)
        node = TreeNode(
            id="root/a.ts",
            name="a.ts",
            kind=NodeKind.FILE,
            size=11,
            download_url="https://x/a.ts",
        )
        with pytest.raises(ContentUnavailableError, match="too large"):
            await fetcher.fetch_content(node)


class TestLoadTree:
    @pytest.mark.asyncio
    async def test_local_source_uses_local_fetcher(self, project_dir):
        root, fetcher = await load_tree(str(project_dir))
        assert root.name == "proj"
        assert isinstance(fetcher, LocalContentFetcher)
