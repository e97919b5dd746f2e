"""Shared test fixtures."""

from datetime import datetime, timezone

import pytest

import cherrypicker.settings as settings_module
from cherrypicker.models import CherryPickPlan, Commit, PlanCommit, PullRequest, RepoRef
from cherrypicker.providers.base import Page, RepositoryHost


def make_commit(sha: str, minute: int = 0, message: str | None = None) -> Commit:
    return Commit(
        sha=sha,
        message=message or f"Change {sha}",
        author="Jane Doe",
        date=datetime(2024, 3, 1, 12, minute, tzinfo=timezone.utc),
        html_url=f"https://github.com/acme/widgets/commit/{sha}",
    )


class FakeHost(RepositoryHost):
    """In-memory RepositoryHost; an Exception in place of a page or PR is raised when fetched."""

    def __init__(self, compare_pages=(), search_pages=(), prs=None) -> None:
        self.compare_pages = list(compare_pages)
        self.search_pages = list(search_pages)
        self.prs = dict(prs or {})
        self.calls: list[tuple] = []

    @staticmethod
    def _page(pages: list, page: int) -> Page:
        items = pages[page - 1] if pages else []
        if isinstance(items, Exception):
            raise items
        return Page(items=items, has_next=page < len(pages))

    def compare_commits(self, repo, base, head, page):
        self.calls.append(("compare", base, head, page))
        return self._page(self.compare_pages, page)

    def search_merged_labeled_prs(self, query, page):
        self.calls.append(("search", query, page))
        return self._page(self.search_pages, page)

    def get_pull_request(self, repo, number):
        self.calls.append(("pr", number))
        pr = self.prs[number]
        if isinstance(pr, Exception):
            raise pr
        return pr


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch: pytest.MonkeyPatch):
    """Point settings at an empty config and strip credentials from the environment."""
    monkeypatch.setattr(settings_module, "CONFIG_PATH", tmp_path / "no-config.toml")
    for var in ("GITHUB_TOKEN", "CHERRYPICKER_GITHUB_TOKEN", "CHERRYPICKER_GITHUB_AUTH", "CHERRYPICKER_HEAD_BRANCH"):
        monkeypatch.delenv(var, raising=False)
    settings_module._load_toml.cache_clear()
    yield
    settings_module._load_toml.cache_clear()


@pytest.fixture
def repo() -> RepoRef:
    return RepoRef(owner="acme", name="widgets")


@pytest.fixture
def missing_commits() -> list[Commit]:
    """a1, a2, a3 on main but not on v1.2, oldest first."""
    return [make_commit("a1", 1), make_commit("a2", 2), make_commit("a3", 3)]


@pytest.fixture
def backport_pr() -> PullRequest:
    return PullRequest(
        number=12,
        merge_commit_sha="a2",
        merged=True,
        title="Fix crash on empty input",
        labels=["backport"],
        html_url="https://github.com/acme/widgets/pull/12",
    )


@pytest.fixture
def backport_host(missing_commits: list[Commit], backport_pr: PullRequest) -> FakeHost:
    return FakeHost(compare_pages=[missing_commits], search_pages=[[12]], prs={12: backport_pr})


@pytest.fixture
def sample_plan(missing_commits: list[Commit]) -> CherryPickPlan:
    """Plan for a1..a3 where only a2 came from a backport-labeled PR."""
    prs = {"a2": 12}
    return CherryPickPlan(
        repo="https://github.com/acme/widgets",
        release_branch="v1.2",
        label="backport",
        commits=[
            PlanCommit(sha=c.sha, date=c.date, author=c.author, message=c.message, pr=prs.get(c.sha))
            for c in missing_commits
        ],
    )
