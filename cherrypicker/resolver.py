"""Missing-commit resolution: branch diff, label index, and the merge of the two.

Both API walks are fail-fast. A truncated diff would produce an invalid
cherry-pick order and a partial label index would misclassify commits, so any
page or detail failure aborts the whole resolution with a ``ResolutionError``.
"""

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

import httpx

from cherrypicker.errors import GitHubApiError, InputError, OperationCancelled, ResolutionError
from cherrypicker.models import Commit, LabelIndex, MissingCommit, Mode, PullRequest, RepoRef
from cherrypicker.providers.base import Page, RepositoryHost

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that abort resolution; anything else is a bug and propagates as-is.
_API_ERRORS = (httpx.HTTPError, GitHubApiError)


def _check_cancel(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled("resolution cancelled")


def iter_pages(fetch: Callable[[int], Page[T]], cancel: threading.Event | None = None) -> Iterator[Page[T]]:
    """Yield pages from ``fetch(1)``, ``fetch(2)``, ... until one reports no next page.

    Each call starts again from page 1.
    """
    page = 1
    while True:
        _check_cancel(cancel)
        result = fetch(page)
        yield result
        if not result.has_next:
            return
        page += 1


def compare_branches(
    host: RepositoryHost,
    repo: RepoRef,
    base: str,
    head: str,
    cancel: threading.Event | None = None,
) -> list[Commit]:
    """Return every commit on ``head`` missing from ``base``, oldest first, as the API emits them."""
    commits: list[Commit] = []
    page_no = 0
    try:
        for page_no, page in enumerate(
            iter_pages(lambda n: host.compare_commits(repo, base, head, n), cancel), start=1
        ):
            logger.debug("compare %s...%s page %d: %d commits", base, head, page_no, len(page.items))
            commits.extend(page.items)
    except _API_ERRORS as exc:
        raise ResolutionError(
            f"comparing {repo.full_name} {base}...{head} failed on page {page_no + 1}: {exc}"
        ) from exc
    logger.info("%d commits on %s missing from %s", len(commits), head, base)
    return commits


def label_query(repo: RepoRef, label: str) -> str:
    return f'repo:{repo.full_name} is:pr is:merged label:"{label}"'


def _fetch_detail(host: RepositoryHost, repo: RepoRef, number: int) -> PullRequest:
    try:
        return host.get_pull_request(repo, number)
    except _API_ERRORS as exc:
        raise ResolutionError(f"getting PR #{number} failed: {exc}") from exc


def build_label_index(
    host: RepositoryHost,
    repo: RepoRef,
    label: str,
    workers: int = 1,
    cancel: threading.Event | None = None,
) -> LabelIndex:
    """Map merge-commit sha -> merged PR for every PR carrying ``label``.

    Search results omit the merge commit, so each match costs one extra detail
    request. Details are fetched on up to ``workers`` threads but folded into
    the index in search order; on a duplicate sha the later PR wins.
    """
    query = label_query(repo, label)
    numbers: list[int] = []
    page_no = 0
    try:
        for page_no, page in enumerate(
            iter_pages(lambda n: host.search_merged_labeled_prs(query, n), cancel), start=1
        ):
            numbers.extend(page.items)
    except _API_ERRORS as exc:
        raise ResolutionError(f"searching PRs labeled {label!r} failed on page {page_no + 1}: {exc}") from exc

    logger.info("%d merged PRs labeled %r; fetching details", len(numbers), label)
    _check_cancel(cancel)
    details = _fetch_details(host, repo, numbers, workers)

    index: LabelIndex = {}
    for pr in details:
        # search says is:merged, but the detail is authoritative
        if not pr.merged or not pr.merge_commit_sha:
            logger.warning("PR #%d matched %r but is not merged; skipping", pr.number, label)
            continue
        index[pr.merge_commit_sha] = pr
    return index


def _fetch_details(host: RepositoryHost, repo: RepoRef, numbers: list[int], workers: int) -> list[PullRequest]:
    if workers <= 1 or len(numbers) <= 1:
        return [_fetch_detail(host, repo, n) for n in numbers]
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pr-detail")
    try:
        # map() yields in input order and re-raises the first failure
        return list(executor.map(lambda n: _fetch_detail(host, repo, n), numbers))
    finally:
        executor.shutdown(wait=True, cancel_futures=True)


def compute_missing_commits(
    commits: Iterable[Commit],
    mode: Mode,
    index: LabelIndex | None = None,
) -> list[MissingCommit]:
    """Filter the diff by label membership. Never reorders; does no I/O."""
    if mode is Mode.ALL:
        return [MissingCommit(commit=c) for c in commits]
    if index is None:
        raise InputError(f"mode {mode.value} requires a label index")
    if mode is Mode.WITH_LABEL:
        return [MissingCommit(commit=c, pull_request=index[c.sha]) for c in commits if c.sha in index]
    return [MissingCommit(commit=c) for c in commits if c.sha not in index]


def resolve_missing_commits(
    host: RepositoryHost,
    repo: RepoRef,
    release_branch: str,
    mode: Mode = Mode.ALL,
    label: str | None = None,
    head: str = "main",
    workers: int = 1,
    cancel: threading.Event | None = None,
) -> list[MissingCommit]:
    if not release_branch:
        raise InputError("release branch name is required")
    if mode is not Mode.ALL and not label:
        raise InputError(f"mode {mode.value} requires a label")

    index = None
    if mode is not Mode.ALL:
        index = build_label_index(host, repo, label, workers=workers, cancel=cancel)  # type: ignore[arg-type]
    commits = compare_branches(host, repo, release_branch, head, cancel=cancel)
    return compute_missing_commits(commits, mode, index)
