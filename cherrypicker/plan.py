"""Reading and writing the YAML cherry-pick plan shared by ``list`` and ``create``."""

from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

import yaml
from pydantic import ValidationError

from cherrypicker.errors import PlanError
from cherrypicker.models import CherryPickPlan, MissingCommit, PlanCommit, RepoRef


def plan_from_missing(
    repo: RepoRef,
    release_branch: str,
    label: str | None,
    missing: Iterable[MissingCommit],
) -> CherryPickPlan:
    commits = [
        PlanCommit(
            sha=m.commit.sha,
            date=m.commit.date,
            author=m.commit.author,
            message=m.commit.message,
            pr=m.pull_request.number if m.pull_request else None,
        )
        for m in missing
    ]
    return CherryPickPlan(repo=repo.url, release_branch=release_branch, label=label or None, commits=commits)


class _PlanDumper(yaml.SafeDumper):
    pass


def _represent_datetime(dumper: yaml.SafeDumper, value: datetime) -> yaml.ScalarNode:
    # plain RFC 3339 timestamp; a quoted string would not decode into Go's time.Time
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return dumper.represent_scalar("tag:yaml.org,2002:timestamp", text)


_PlanDumper.add_representer(datetime, _represent_datetime)


def dump_plan(plan: CherryPickPlan) -> str:
    # exclude_none drops empty label / pr keys
    data = plan.model_dump(by_alias=True, exclude_none=True)
    data.setdefault("commits", [])
    return yaml.dump(data, Dumper=_PlanDumper, sort_keys=False, allow_unicode=True, default_flow_style=False)


def parse_plan(text: str) -> CherryPickPlan:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise PlanError(f"invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise PlanError("invalid plan: expected a mapping at the top level")
    if not data.get("releaseBranch"):
        raise PlanError("releaseBranch is missing from YAML file")
    if data.get("commits") is None:
        data["commits"] = []
    try:
        return CherryPickPlan.model_validate(data)
    except ValidationError as exc:
        raise PlanError(f"invalid plan: {exc}") from exc


def load_plan(path: Path) -> CherryPickPlan:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PlanError(f"cannot read {path}: {exc}") from exc
    return parse_plan(text)


def write_plan(plan: CherryPickPlan, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_plan(plan), encoding="utf-8")
