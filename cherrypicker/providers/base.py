"""Abstract base class for hosted-repository API providers."""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from cherrypicker.models import Commit, PullRequest, RepoRef

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of results plus whether the API advertised another one."""

    model_config = ConfigDict(frozen=True)

    items: list[T]
    has_next: bool = False


class RepositoryHost(ABC):
    @abstractmethod
    def compare_commits(self, repo: RepoRef, base: str, head: str, page: int) -> Page[Commit]: ...

    @abstractmethod
    def search_merged_labeled_prs(self, query: str, page: int) -> Page[int]:
        """Return PR numbers matching an issue-search query."""

    @abstractmethod
    def get_pull_request(self, repo: RepoRef, number: int) -> PullRequest: ...
