"""Cherry-pick orchestration: checkout, sync, branch, then apply the plan in order.

The run stops at the first failing cherry-pick and leaves the working copy
exactly as git left it, so a human can resolve the conflict and continue
with ``git cherry-pick --continue``.
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from cherrypicker.errors import GitError, OrchestrationError, PlanError
from cherrypicker.git import GitRunner
from cherrypicker.models import CherryPickPlan

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "cherrypick-"


class PickState(StrEnum):
    IDLE = "idle"
    RELEASE_BRANCH_CHECKED_OUT = "release-branch-checked-out"
    SYNCED = "synced"
    WORKING_BRANCH_CREATED = "working-branch-created"
    APPLYING = "applying"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CherryPickOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: PickState
    branch: str
    total: int
    applied: list[str] = []
    position: int | None = None  # 1-based index of the commit that stopped the run
    sha: str | None = None
    cause: str | None = None

    def describe(self) -> str:
        if self.state is PickState.DONE:
            return f"{self.total} commit(s) cherry-picked onto branch {self.branch}"
        verb = "failed" if self.state is PickState.FAILED else "cancelled"
        return f"cherry-pick {verb} at {self.position} of {self.total} ({self.sha}): {self.cause}"


def working_branch_name(now: datetime) -> str:
    return f"{BRANCH_PREFIX}{now:%Y%m%d-%H%M%S}"


def execute_cherry_pick_plan(
    plan: CherryPickPlan,
    runner: GitRunner,
    remote: str = "origin",
    cancel: threading.Event | None = None,
    now: datetime | None = None,
    on_step: Callable[[int, int, str], None] | None = None,
) -> CherryPickOutcome:
    """Run the plan against ``runner``'s working copy.

    Raises ``PlanError`` for an empty plan and ``OrchestrationError`` when the
    release branch cannot be checked out, fast-forwarded, or branched from.
    Cherry-pick failures are returned as a ``FAILED`` outcome instead.
    """
    if not plan.commits:
        raise PlanError("no commits found in plan")

    release = plan.release_branch
    state = PickState.IDLE
    try:
        try:
            runner.checkout(release)
        except GitError as checkout_exc:
            logger.info("no local branch %s; creating it from %s/%s", release, remote, release)
            try:
                runner.create_tracking_branch(release, f"{remote}/{release}")
            except GitError as exc:
                raise OrchestrationError(
                    state.value,
                    f"checking out {release}: {checkout_exc}; tracking {remote}/{release}: {exc}",
                ) from exc
        state = PickState.RELEASE_BRANCH_CHECKED_OUT

        runner.fast_forward_pull()
        state = PickState.SYNCED

        branch = working_branch_name(now or datetime.now())
        runner.create_branch(branch)
        state = PickState.WORKING_BRANCH_CREATED
    except GitError as exc:
        raise OrchestrationError(state.value, _setup_failure(state, release, exc)) from exc

    total = len(plan.commits)
    applied: list[str] = []
    for position, commit in enumerate(plan.commits, start=1):
        if cancel is not None and cancel.is_set():
            return CherryPickOutcome(
                state=PickState.CANCELLED,
                branch=branch,
                total=total,
                applied=applied,
                position=position,
                sha=commit.sha,
                cause="cancelled before applying",
            )
        if on_step:
            on_step(position, total, commit.sha)
        try:
            runner.cherry_pick(commit.sha)
        except GitError as exc:
            logger.error("cherry-pick of %s failed at %d/%d: %s", commit.sha, position, total, exc)
            return CherryPickOutcome(
                state=PickState.FAILED,
                branch=branch,
                total=total,
                applied=applied,
                position=position,
                sha=commit.sha,
                cause=str(exc),
            )
        applied.append(commit.sha)

    return CherryPickOutcome(state=PickState.DONE, branch=branch, total=total, applied=applied)


def _setup_failure(state: PickState, release: str, exc: GitError) -> str:
    if state is PickState.RELEASE_BRANCH_CHECKED_OUT:
        return f"fast-forwarding {release}: {exc}"
    return f"creating working branch: {exc}"
