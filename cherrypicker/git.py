"""Thin git wrapper bound to one working copy.

Output is inherited by the terminal so the user sees git's own conflict
messages; only the exit status is inspected.
"""

import logging
import subprocess
from pathlib import Path

import typer

from cherrypicker.errors import GitError

logger = logging.getLogger(__name__)


class GitRunner:
    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    def run(self, *args: str) -> None:
        logger.debug("Executing git command in %s: git %s", self.repo_root, " ".join(args))
        typer.echo(f"=> git {' '.join(args)}", err=True)
        try:
            result = subprocess.run(["git", *args], cwd=self.repo_root, check=False)
        except OSError as exc:
            # missing working copy or no git on PATH
            raise GitError(list(args), None, f"could not be started in {self.repo_root}: {exc}") from exc
        if result.returncode != 0:
            raise GitError(list(args), result.returncode)

    def checkout(self, branch: str) -> None:
        self.run("checkout", branch)

    def create_tracking_branch(self, branch: str, remote_ref: str) -> None:
        self.run("checkout", "-b", branch, remote_ref)

    def fast_forward_pull(self) -> None:
        self.run("pull", "--ff-only")

    def create_branch(self, name: str) -> None:
        """Create ``name`` off the current HEAD and switch to it."""
        self.run("checkout", "-b", name)

    def cherry_pick(self, sha: str) -> None:
        self.run("cherry-pick", sha)
