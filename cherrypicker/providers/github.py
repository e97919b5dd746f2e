"""GitHub REST API v3 provider."""

import logging
import subprocess
from collections.abc import Iterator
from contextlib import contextmanager

import httpx

from cherrypicker.errors import GitHubApiError
from cherrypicker.models import Commit, PullRequest, RepoRef
from cherrypicker.providers.base import Page, RepositoryHost
from cherrypicker.settings import CherrypickerSettings

BASE_URL = "https://api.github.com"

logger = logging.getLogger(__name__)


@contextmanager
def _payload(path: str) -> Iterator[None]:
    """Turn a response body we cannot map into a GitHubApiError naming the endpoint."""
    try:
        yield
    except (KeyError, TypeError, ValueError) as exc:
        raise GitHubApiError(f"unexpected response from GitHub for {path}: {exc!r}") from exc


class GitHubProvider(RepositoryHost):
    def __init__(self, settings: CherrypickerSettings) -> None:
        self._token = self._resolve_token(settings)
        self._per_page = settings.per_page
        self._timeout = settings.http_timeout
        self._headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _resolve_token(self, settings: CherrypickerSettings) -> str:
        if settings.github_auth == "gh-cli":
            result = subprocess.run(
                ["gh", "auth", "token"],
                capture_output=True,
                text=True,
            )
            if result.returncode != 0:
                raise GitHubApiError("gh auth token failed. Run: gh auth login")
            return result.stdout.strip()
        if settings.github_token:
            return settings.github_token.get_secret_value()
        raise GitHubApiError("No GitHub credentials. Set GITHUB_TOKEN or use github_auth = \"gh-cli\".")

    def _get(self, path: str, params: dict | None = None) -> httpx.Response:
        response = httpx.get(
            f"{BASE_URL}{path}",
            headers=self._headers,
            params=params or {},
            timeout=self._timeout,
        )
        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None:
            logger.debug("GET %s -> %s (rate limit remaining: %s)", path, response.status_code, remaining)
        if response.status_code == 401:
            raise GitHubApiError("GitHub API returned 401. Check GITHUB_TOKEN or run: gh auth login")
        if response.status_code == 403 and remaining == "0":
            raise GitHubApiError("GitHub API rate limit exhausted. Wait for the limit to reset and retry.")
        response.raise_for_status()
        return response

    def _get_page(self, path: str, page: int, params: dict | None = None) -> tuple[dict | list, bool]:
        response = self._get(path, params={**(params or {}), "page": str(page), "per_page": str(self._per_page)})
        return response.json(), "next" in response.links

    @staticmethod
    def _commit_from_node(node: dict) -> Commit:
        git_commit = node["commit"]
        author = git_commit.get("author") or {}
        committer = git_commit.get("committer") or {}
        return Commit(
            sha=node["sha"],
            message=(git_commit.get("message") or "").split("\n", 1)[0],
            author=author.get("name") or "",
            date=author.get("date") or committer.get("date"),
            html_url=node.get("html_url"),
        )

    def compare_commits(self, repo: RepoRef, base: str, head: str, page: int) -> Page[Commit]:
        path = f"/repos/{repo.full_name}/compare/{base}...{head}"
        with _payload(path):
            body, has_next = self._get_page(path, page)
            commits = [self._commit_from_node(node) for node in body.get("commits", [])]  # type: ignore[union-attr]
        return Page[Commit](items=commits, has_next=has_next)

    def search_merged_labeled_prs(self, query: str, page: int) -> Page[int]:
        # Search results are issues: they carry the PR number but not merge_commit_sha.
        with _payload("/search/issues"):
            body, has_next = self._get_page(
                "/search/issues",
                page,
                params={"q": query, "sort": "created", "order": "desc"},
            )
            numbers = [item["number"] for item in body.get("items", [])]  # type: ignore[union-attr]
        return Page[int](items=numbers, has_next=has_next)

    def get_pull_request(self, repo: RepoRef, number: int) -> PullRequest:
        path = f"/repos/{repo.full_name}/pulls/{number}"
        with _payload(path):
            node = self._get(path).json()
            return PullRequest(
                number=node["number"],
                merge_commit_sha=node.get("merge_commit_sha") or None,
                merged=bool(node.get("merged")),
                title=node.get("title") or "",
                labels=[label["name"] for label in node.get("labels") or []],
                html_url=node.get("html_url"),
            )
