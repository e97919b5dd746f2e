"""Exception types shared across cherrypicker."""


class CherrypickerError(Exception):
    """Base class for every error cherrypicker raises on purpose."""


class InputError(CherrypickerError, ValueError):
    """A caller passed arguments that cannot be resolved."""


class PlanError(CherrypickerError):
    """The cherry-pick plan file is missing, malformed, or empty."""


class GitHubApiError(CherrypickerError, RuntimeError):
    """GitHub answered with an error we can explain to the user."""


class ResolutionError(CherrypickerError):
    """Resolving missing commits failed; no partial result is returned."""


class OperationCancelled(CherrypickerError):
    """The caller's cancellation signal was set."""


class GitError(CherrypickerError):
    """A git command exited with a non-zero status or could not be started."""

    def __init__(self, args: list[str], returncode: int | None, reason: str | None = None) -> None:
        self.git_args = args
        self.returncode = returncode
        detail = reason or f"exited with status {returncode}"
        super().__init__(f"git {' '.join(args)} {detail}")


class OrchestrationError(CherrypickerError):
    """The working copy could not be prepared for cherry-picking."""

    def __init__(self, state: str, message: str) -> None:
        self.state = state
        super().__init__(message)
