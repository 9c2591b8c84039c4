"""Read commands: list or show Konflux records of the current namespace."""

from __future__ import annotations

import json
from collections.abc import Sequence
from enum import Enum
from typing import Protocol

import typer

from korn.cli.commands._helpers import exit_on_error, exit_with_code
from korn.cli.context import CLIContext, build_context, global_options
from korn.core.errors import ErrorCode
from korn.core.structured import StrDict
from korn.konflux.application import get_application, list_applications
from korn.konflux.component import get_component, list_components
from korn.konflux.model import Application, Component, Release, ReleasePlan, Snapshot
from korn.konflux.release import get_release, list_releases
from korn.konflux.releaseplan import get_release_plan, list_release_plans
from korn.konflux.snapshot import (
    get_snapshot,
    list_snapshots,
    list_snapshots_by_version,
    select_candidate,
)
from korn.output.format import age

get_app = typer.Typer(add_completion=False, no_args_is_help=True)


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"


class _Record(Protocol):
    def to_dict(self) -> StrDict: ...


def _emit(
    ctx: CLIContext,
    records: Sequence[_Record],
    output: OutputFormat,
    columns: Sequence[str],
    rows: Sequence[Sequence[str]],
    *,
    single: bool = False,
) -> None:
    """Render records; ``single`` prints the one named record as a JSON object."""
    if output is OutputFormat.JSON:
        payload: object = [r.to_dict() for r in records]
        if single and records:
            payload = records[0].to_dict()
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return
    if not records:
        ctx.console.info(f"no resources found in namespace {ctx.namespace}")
        return
    ctx.console.table(columns, rows)


def _output_option() -> OutputFormat:
    return typer.Option(OutputFormat.TABLE, "--output", "-o", help="table or json")


def _application_rows(apps: Sequence[Application]) -> list[list[str]]:
    return [[a.name, a.app_type or "", age(a.metadata.creation_timestamp)] for a in apps]


def _component_rows(components: Sequence[Component]) -> list[list[str]]:
    return [
        [
            c.name,
            c.application,
            "bundle" if c.is_bundle else "",
            c.bundle_reference or "",
            age(c.metadata.creation_timestamp),
        ]
        for c in components
    ]


def _snapshot_rows(snapshots: Sequence[Snapshot]) -> list[list[str]]:
    return [
        [
            s.name,
            s.application,
            s.sha,
            s.commit_title,
            s.test_status,
            age(s.metadata.creation_timestamp),
        ]
        for s in snapshots
    ]


def _release_rows(releases: Sequence[Release]) -> list[list[str]]:
    return [
        [
            r.name,
            r.snapshot,
            r.release_plan,
            r.notes_type() or "",
            r.status,
            age(r.metadata.creation_timestamp),
        ]
        for r in releases
    ]


def _release_plan_rows(plans: Sequence[ReleasePlan]) -> list[list[str]]:
    return [
        [
            p.name,
            p.application,
            p.environment,
            p.admission_name,
            str(p.admission_active).lower(),
            age(p.metadata.creation_timestamp),
        ]
        for p in plans
    ]


@get_app.command("application")
def get_application_cmd(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Application name"),
    output: OutputFormat = _output_option(),
) -> None:
    """List applications, or show one."""
    c = build_context(global_options(ctx))
    if name:
        apps = [exit_on_error(get_application(c.korn, name), c)]
    else:
        apps = exit_on_error(list_applications(c.korn), c)
    _emit(
        c,
        apps,
        output,
        ("Name", "Type", "Age"),
        _application_rows(apps),
        single=bool(name),
    )


@get_app.command("component")
def get_component_cmd(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Component name"),
    app: str | None = typer.Option(None, "--app", "-a", help="Only components of this application"),
    output: OutputFormat = _output_option(),
) -> None:
    """List components, or show one."""
    c = build_context(global_options(ctx))
    if name:
        components = [exit_on_error(get_component(c.korn, name), c)]
    else:
        components = exit_on_error(list_components(c.korn, app), c)
    _emit(
        c,
        components,
        output,
        ("Name", "Application", "Type", "Bundle Label", "Age"),
        _component_rows(components),
        single=bool(name),
    )


@get_app.command("snapshot")
def get_snapshot_cmd(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Snapshot name"),
    app: str | None = typer.Option(None, "--app", "-a", help="Only snapshots of this application"),
    sha: str | None = typer.Option(None, "--sha", help="Snapshot built from this commit"),
    version: str | None = typer.Option(
        None, "--version", help="Snapshots built from this version (needs --app)"
    ),
    candidate: bool = typer.Option(
        False, "--candidate", help="Show the next release candidate (needs --app)"
    ),
    output: OutputFormat = _output_option(),
) -> None:
    """List push snapshots newest first, or find one by name, SHA or version."""
    c = build_context(global_options(ctx))

    if (version or candidate) and not app:
        c.console.error("--version and --candidate require --app")
        exit_with_code(ErrorCode.USER_ERROR)

    single = bool(candidate or ((name or sha) and not version))
    if candidate and app:
        snapshots = [exit_on_error(select_candidate(c.korn, app), c)]
    elif version and app:
        snapshots = exit_on_error(list_snapshots_by_version(c.korn, app, version), c)
    elif name or sha:
        snapshots = [exit_on_error(get_snapshot(c.korn, name=name, sha=sha, application=app), c)]
    else:
        snapshots = exit_on_error(list_snapshots(c.korn, app), c)

    _emit(
        c,
        snapshots,
        output,
        ("Name", "Application", "SHA", "Commit", "Status", "Age"),
        _snapshot_rows(snapshots),
        single=single,
    )


@get_app.command("release")
def get_release_cmd(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Release name"),
    app: str | None = typer.Option(None, "--app", "-a", help="Only releases of this application"),
    output: OutputFormat = _output_option(),
) -> None:
    """List releases newest first, or show one."""
    c = build_context(global_options(ctx))
    if name:
        releases = [exit_on_error(get_release(c.korn, name), c)]
    else:
        releases = exit_on_error(list_releases(c.korn, app), c)
    _emit(
        c,
        releases,
        output,
        ("Name", "Snapshot", "Release Plan", "Type", "Status", "Age"),
        _release_rows(releases),
        single=bool(name),
    )


@get_app.command("releaseplan")
def get_release_plan_cmd(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Release plan name"),
    app: str | None = typer.Option(
        None, "--app", "-a", help="Only release plans of this application"
    ),
    output: OutputFormat = _output_option(),
) -> None:
    """List release plans, or show one."""
    c = build_context(global_options(ctx))
    if name:
        plans = [exit_on_error(get_release_plan(c.korn, name), c)]
    else:
        plans = exit_on_error(list_release_plans(c.korn, app), c)
    _emit(
        c,
        plans,
        output,
        ("Name", "Application", "Environment", "Release Plan Admission", "Active", "Age"),
        _release_plan_rows(plans),
        single=bool(name),
    )
