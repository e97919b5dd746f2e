"""cherrypicker CLI: all commands."""

from pathlib import Path
from typing import Annotated

import typer
from rich import print as rprint
from rich.markup import escape
from rich.table import Table

from cherrypicker.errors import CherrypickerError
from cherrypicker.git import GitRunner
from cherrypicker.logger import setup_logger
from cherrypicker.models import MissingCommit, Mode, RepoRef
from cherrypicker.orchestrator import PickState, execute_cherry_pick_plan
from cherrypicker.plan import dump_plan, load_plan, plan_from_missing, write_plan
from cherrypicker.providers.base import RepositoryHost
from cherrypicker.providers.github import GitHubProvider
from cherrypicker.resolver import resolve_missing_commits
from cherrypicker.settings import CONFIG_PATH, CherrypickerSettings, get_settings

app = typer.Typer(help="Find commits missing from a release branch and cherry-pick them.", no_args_is_help=True)

VerboseOpt = Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output to stderr")]


# ---------------------------------------------------------------------------
# Provider factory
# ---------------------------------------------------------------------------


def get_provider(settings: CherrypickerSettings) -> RepositoryHost:
    return GitHubProvider(settings)


def _configure_logging(settings: CherrypickerSettings, verbose: bool) -> None:
    setup_logger("DEBUG" if verbose else settings.log_level)


# ---------------------------------------------------------------------------
# Table rendering
# ---------------------------------------------------------------------------


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def render_table(commits: list[MissingCommit], show_pr: bool) -> Table:
    table = Table(box=None, pad_edge=False)
    table.add_column("SHA", style="cyan", no_wrap=True)
    table.add_column("DATE", no_wrap=True)
    table.add_column("AUTHOR")
    if show_pr:
        table.add_column("PR")
    table.add_column("MESSAGE")

    for item in commits:
        c = item.commit
        row = [c.sha[:12], f"{c.date:%Y-%m-%d %H:%M}", escape(c.author)]
        if show_pr:
            row.append(f"#{item.pull_request.number}" if item.pull_request else "")
        row.append(escape(truncate(c.message, 72 if show_pr else 80)))
        table.add_row(*row)
    return table


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("list")
def list_cmd(
    repo: Annotated[str, typer.Argument(help="Repository as owner/repo")],
    release_branch: Annotated[str, typer.Argument(help="Release branch name")],
    with_label: Annotated[
        str | None,
        typer.Option("--with-label", help="Only commits whose merged PR has this label"),
    ] = None,
    without_label: Annotated[
        str | None,
        typer.Option("--without-label", help="Only commits whose merged PR lacks this label"),
    ] = None,
    output: Annotated[str, typer.Option("--output", "-o", help="Output format: table or yaml")] = "table",
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Write the YAML plan here instead of stdout"),
    ] = None,
    head: Annotated[str | None, typer.Option("--head", help="Branch to compare against (default: main)")] = None,
    verbose: VerboseOpt = False,
) -> None:
    """List commits in main that are missing from a release branch."""
    if with_label and without_label:
        rprint("[red]--with-label and --without-label are mutually exclusive[/red]")
        raise typer.Exit(1)
    if output not in ("table", "yaml"):
        rprint(f"[red]Unsupported output format '{output}', must be table or yaml[/red]")
        raise typer.Exit(1)
    try:
        repo_ref = RepoRef.parse(repo)
    except ValueError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)

    settings = get_settings(require_token=True)
    _configure_logging(settings, verbose)

    if with_label:
        mode, label = Mode.WITH_LABEL, with_label
        typer.echo(f"Fetching commits with label {label!r}...", err=True)
    elif without_label:
        mode, label = Mode.WITHOUT_LABEL, without_label
        typer.echo(f"Fetching commits without label {label!r}...", err=True)
    else:
        mode, label = Mode.ALL, None

    try:
        provider = get_provider(settings)
        commits = resolve_missing_commits(
            provider,
            repo_ref,
            release_branch,
            mode=mode,
            label=label,
            head=head or settings.head_branch,
            workers=settings.detail_workers,
        )
    except CherrypickerError as exc:
        rprint(f"[red]Listing missing commits failed: {escape(str(exc))}[/red]")
        raise typer.Exit(1)

    if not commits:
        typer.echo("No missing commits found.")
        return

    if output == "yaml":
        # only with-label plans record the label; without-label commits have none
        plan = plan_from_missing(repo_ref, release_branch, with_label, commits)
        if file:
            write_plan(plan, file)
            typer.echo(f"Wrote {len(commits)} commit(s) to {file}", err=True)
        else:
            typer.echo(dump_plan(plan), nl=False)
        return

    rprint(render_table(commits, show_pr=mode is Mode.WITH_LABEL))
    typer.echo(f"\nTotal: {len(commits)} missing commits", err=True)


@app.command("create")
def create_cmd(
    file: Annotated[Path, typer.Option("--file", "-f", help="YAML plan produced by: list -o yaml")],
    repo_dir: Annotated[
        Path,
        typer.Option("--repo-dir", "-C", help="Local clone to cherry-pick in"),
    ] = Path("."),
    remote: Annotated[str | None, typer.Option("--remote", help="Remote holding the release branch")] = None,
    verbose: VerboseOpt = False,
) -> None:
    """Create a cherry-pick branch off the release branch and apply every commit in the plan.

    Steps: checkout the release branch (creating a tracking branch if needed),
    fast-forward it, create cherrypick-<date>, then cherry-pick each commit.
    """
    settings = get_settings()
    _configure_logging(settings, verbose)

    try:
        plan = load_plan(file)
    except CherrypickerError as exc:
        rprint(f"[red]Parsing input file: {escape(str(exc))}[/red]")
        raise typer.Exit(1)
    if not plan.commits:
        rprint("[red]No commits found in input file[/red]")
        raise typer.Exit(1)

    typer.echo(f"Repo:           {plan.repo}", err=True)
    typer.echo(f"Release branch: {plan.release_branch}", err=True)
    typer.echo(f"Commits:        {len(plan.commits)}", err=True)

    def on_step(position: int, total: int, sha: str) -> None:
        typer.echo(f"\n[{position}/{total}] Cherry-picking {sha}", err=True)

    try:
        outcome = execute_cherry_pick_plan(
            plan,
            GitRunner(repo_dir),
            remote=remote or settings.remote,
            on_step=on_step,
        )
    except CherrypickerError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)

    if outcome.state is not PickState.DONE:
        rprint(f"[red]{escape(outcome.describe())}[/red]")
        rprint(f"Applied {len(outcome.applied)} commit(s) to {outcome.branch} before stopping.")
        if outcome.state is PickState.FAILED:
            rprint("Resolve the conflict and run: git cherry-pick --continue")
        raise typer.Exit(1)

    rprint(f"\n[green]✓[/green] Done. {outcome.describe()}")


@app.command("config-show")
def config_show() -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings()

    def mask(val: str | None, prefix: str = "") -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"{prefix}...{val[-5:]}"

    table = Table(title="cherrypicker configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("config_file", str(CONFIG_PATH))
    table.add_row(
        "github_token",
        mask(settings.github_token.get_secret_value() if settings.github_token else None, prefix="ghp_"),
    )
    table.add_row("github_auth", settings.github_auth)
    table.add_row("head_branch", settings.head_branch)
    table.add_row("remote", settings.remote)
    table.add_row("per_page", str(settings.per_page))
    table.add_row("detail_workers", str(settings.detail_workers))
    table.add_row("http_timeout", str(settings.http_timeout))
    table.add_row("log_level", settings.log_level)

    rprint(table)
