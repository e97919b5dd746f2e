"""Shared pydantic models: the contract between the GitHub provider, the resolver and the orchestrator."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

GITHUB_URL = "https://github.com"


class Mode(StrEnum):
    ALL = "all"
    WITH_LABEL = "with-label"
    WITHOUT_LABEL = "without-label"


class RepoRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    @classmethod
    def parse(cls, value: str) -> "RepoRef":
        """Parse "owner/repo" or "https://github.com/owner/repo"."""
        cleaned = value.strip().removesuffix(".git").rstrip("/")
        for prefix in (f"{GITHUB_URL}/", "http://github.com/"):
            if cleaned.startswith(prefix):
                cleaned = cleaned[len(prefix) :]
                break
        owner, sep, name = cleaned.partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"repo must be in owner/repo format, got {value!r}")
        return cls(owner=owner, name=name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def url(self) -> str:
        return f"{GITHUB_URL}/{self.full_name}"


class Commit(BaseModel):
    model_config = ConfigDict(frozen=True)

    sha: str
    message: str  # first line only
    author: str
    date: datetime
    html_url: str | None = None


class PullRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    number: int
    merge_commit_sha: str | None = None  # None until merged
    merged: bool = False
    title: str = ""
    labels: list[str] = []
    html_url: str | None = None


class MissingCommit(BaseModel):
    """A commit absent from the release branch, with its labeled PR in with-label mode."""

    model_config = ConfigDict(frozen=True)

    commit: Commit
    pull_request: PullRequest | None = None


# merge-commit sha -> pull request that landed it
LabelIndex = dict[str, PullRequest]


class PlanCommit(BaseModel):
    model_config = ConfigDict(frozen=True)

    sha: str
    date: datetime
    author: str
    message: str
    pr: int | None = None


class CherryPickPlan(BaseModel):
    """The plan file written by ``list -o yaml`` and read by ``create``.

    Field names are the on-disk keys and must not change.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    repo: str
    release_branch: str = Field(alias="releaseBranch", min_length=1)
    label: str | None = None
    commits: list[PlanCommit] = []
