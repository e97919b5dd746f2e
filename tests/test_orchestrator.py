"""Tests for cherrypicker.orchestrator state machine."""

import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock, call

import pytest

from cherrypicker.errors import GitError, OrchestrationError, PlanError
from cherrypicker.git import GitRunner
from cherrypicker.models import CherryPickPlan, PlanCommit
from cherrypicker.orchestrator import PickState, execute_cherry_pick_plan, working_branch_name

NOW = datetime(2024, 5, 6, 7, 8, 9)
BRANCH = "cherrypick-20240506-070809"


def _runner(conflict_on: set[str] | None = None) -> MagicMock:
    runner = MagicMock(spec=GitRunner)

    def cherry_pick(sha: str) -> None:
        if sha in (conflict_on or set()):
            raise GitError(["cherry-pick", sha], 1)

    runner.cherry_pick.side_effect = cherry_pick
    return runner


def _plan(n: int) -> CherryPickPlan:
    date = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return CherryPickPlan(
        repo="https://github.com/acme/widgets",
        release_branch="v1.2",
        commits=[PlanCommit(sha=f"c{i}", date=date, author="Jane Doe", message=f"m{i}") for i in range(1, n + 1)],
    )


def test_working_branch_name() -> None:
    assert working_branch_name(NOW) == BRANCH


class TestHappyPath:
    def test_runs_steps_in_order(self, sample_plan) -> None:
        runner = _runner()
        outcome = execute_cherry_pick_plan(sample_plan, runner, now=NOW)

        assert outcome.state is PickState.DONE
        assert outcome.branch == BRANCH
        assert outcome.applied == ["a1", "a2", "a3"]
        assert runner.method_calls == [
            call.checkout("v1.2"),
            call.fast_forward_pull(),
            call.create_branch(BRANCH),
            call.cherry_pick("a1"),
            call.cherry_pick("a2"),
            call.cherry_pick("a3"),
        ]

    def test_creates_tracking_branch_when_missing_locally(self, sample_plan) -> None:
        runner = _runner()
        runner.checkout.side_effect = GitError(["checkout", "v1.2"], 1)

        outcome = execute_cherry_pick_plan(sample_plan, runner, remote="upstream", now=NOW)

        assert outcome.state is PickState.DONE
        runner.create_tracking_branch.assert_called_once_with("v1.2", "upstream/v1.2")

    def test_reports_each_step(self, sample_plan) -> None:
        steps = []
        execute_cherry_pick_plan(sample_plan, _runner(), now=NOW, on_step=lambda i, n, sha: steps.append((i, n, sha)))
        assert steps == [(1, 3, "a1"), (2, 3, "a2"), (3, 3, "a3")]

    def test_describe_done(self, sample_plan) -> None:
        outcome = execute_cherry_pick_plan(sample_plan, _runner(), now=NOW)
        assert outcome.describe() == f"3 commit(s) cherry-picked onto branch {BRANCH}"


class TestConflict:
    def test_a2_conflict_scenario(self, sample_plan) -> None:
        runner = _runner(conflict_on={"a2"})

        outcome = execute_cherry_pick_plan(sample_plan, runner, now=NOW)

        assert outcome.state is PickState.FAILED
        assert outcome.position == 2
        assert outcome.sha == "a2"
        assert outcome.applied == ["a1"]
        assert "2 of 3" in outcome.describe()
        assert call.cherry_pick("a3") not in runner.method_calls

    @pytest.mark.parametrize("k", [1, 2, 3, 4])
    def test_halts_at_first_failure(self, k: int) -> None:
        runner = _runner(conflict_on={f"c{k}"})

        outcome = execute_cherry_pick_plan(_plan(4), runner, now=NOW)

        assert outcome.state is PickState.FAILED
        assert outcome.position == k
        assert len(outcome.applied) == k - 1
        picked = [c.args[0] for c in runner.cherry_pick.call_args_list]
        assert picked == [f"c{i}" for i in range(1, k + 1)]

    def test_no_abort_or_cleanup(self, sample_plan) -> None:
        runner = _runner(conflict_on={"a1"})
        execute_cherry_pick_plan(sample_plan, runner, now=NOW)
        assert not runner.run.called
        assert runner.method_calls[-1] == call.cherry_pick("a1")

    def test_cause_carries_git_error(self, sample_plan) -> None:
        outcome = execute_cherry_pick_plan(sample_plan, _runner(conflict_on={"a3"}), now=NOW)
        assert outcome.cause == "git cherry-pick a3 exited with status 1"


class TestSetupFailures:
    def test_empty_plan_touches_nothing(self) -> None:
        runner = _runner()
        with pytest.raises(PlanError):
            execute_cherry_pick_plan(_plan(0), runner, now=NOW)
        assert runner.method_calls == []

    def test_checkout_failure_is_fatal(self, sample_plan) -> None:
        runner = _runner()
        runner.checkout.side_effect = GitError(["checkout", "v1.2"], 1)
        runner.create_tracking_branch.side_effect = GitError(["checkout", "-b", "v1.2", "origin/v1.2"], 128)

        with pytest.raises(OrchestrationError, match="checking out v1.2") as exc_info:
            execute_cherry_pick_plan(sample_plan, runner, now=NOW)

        assert exc_info.value.state == PickState.IDLE
        message = str(exc_info.value)
        assert "git checkout v1.2 exited with status 1" in message
        assert "tracking origin/v1.2: git checkout -b v1.2 origin/v1.2 exited with status 128" in message
        runner.fast_forward_pull.assert_not_called()
        runner.cherry_pick.assert_not_called()

    def test_non_fast_forward_is_fatal(self, sample_plan) -> None:
        runner = _runner()
        runner.fast_forward_pull.side_effect = GitError(["pull", "--ff-only"], 1)

        with pytest.raises(OrchestrationError, match="fast-forwarding") as exc_info:
            execute_cherry_pick_plan(sample_plan, runner, now=NOW)

        assert exc_info.value.state == PickState.RELEASE_BRANCH_CHECKED_OUT
        runner.create_branch.assert_not_called()

    def test_branch_creation_failure_is_fatal(self, sample_plan) -> None:
        runner = _runner()
        runner.create_branch.side_effect = GitError(["checkout", "-b", BRANCH], 128)

        with pytest.raises(OrchestrationError) as exc_info:
            execute_cherry_pick_plan(sample_plan, runner, now=NOW)

        assert exc_info.value.state == PickState.SYNCED
        runner.cherry_pick.assert_not_called()


class TestCancel:
    def test_cancel_stops_before_next_commit(self) -> None:
        cancel = threading.Event()

        def on_step(position: int, total: int, sha: str) -> None:
            if position == 2:
                cancel.set()

        runner = _runner()
        outcome = execute_cherry_pick_plan(_plan(4), runner, cancel=cancel, now=NOW, on_step=on_step)

        assert outcome.state is PickState.CANCELLED
        assert outcome.position == 3
        assert outcome.applied == ["c1", "c2"]
        assert runner.cherry_pick.call_count == 2
