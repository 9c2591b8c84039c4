"""Create a release for the next valid snapshot of an application."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import typer

from korn.cli.commands._helpers import exit_on_error, exit_with_code
from korn.cli.commands.waitfor import report_completion
from korn.cli.context import CLIContext, build_context, global_options
from korn.core.config import ReleaseOptions
from korn.core.errors import ErrorCode
from korn.konflux.manifest import ManifestRequest, NotesInput, generate_release_manifest
from korn.konflux.notes import load_notes_file, parse_release_type
from korn.konflux.release import create_release
from korn.konflux.tracker import await_completion
from korn.output.console import Style

create_app = typer.Typer(add_completion=False, no_args_is_help=True)


def _notes(ctx: CLIContext, options: ReleaseOptions) -> NotesInput:
    notes = NotesInput()
    if options.notes_file is not None:
        notes = exit_on_error(load_notes_file(options.notes_file), ctx)
    if options.release_type is not None:
        rtype = exit_on_error(parse_release_type(options.release_type), ctx)
        notes = replace(notes, type=rtype)
    return notes


@create_app.command("release")
def create_release_cmd(
    ctx: typer.Context,
    app: str = typer.Option(..., "--app", "-a", help="Application to release"),
    env: str | None = typer.Option(
        None, "--env", "-e", help="staging or production (default from config: staging)"
    ),
    snapshot: str | None = typer.Option(
        None, "--snapshot", help="Release this snapshot instead of the next candidate"
    ),
    sha: str | None = typer.Option(
        None, "--sha", help="Release the snapshot built from this commit"
    ),
    force: bool = typer.Option(
        False, "--force", help="Reuse the last released snapshot when nothing newer is valid"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the manifest without creating it"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait for the release to finish"),
    timeout: int | None = typer.Option(
        None, "--timeout", "-t", min=1, help="Minutes to wait (default from config: 60)"
    ),
    release_type: str | None = typer.Option(
        None, "--release-type", help="Override the advisory type: RHEA, RHBA or RHSA"
    ),
    notes_file: Path | None = typer.Option(
        None, "--notes-file", help="TOML or JSON release notes (issues, cves, references)"
    ),
) -> None:
    """Select, validate and release a snapshot, then track the release."""
    c = build_context(global_options(ctx))

    try:
        options = ReleaseOptions(
            application=app,
            environment=env or c.config.environment,
            force_release=force,
            wait=wait,
            timeout_minutes=timeout or c.config.wait_timeout_minutes,
            dry_run=dry_run,
            snapshot=snapshot,
            sha=sha,
            release_type=release_type,
            notes_file=notes_file,
        )
    except ValueError as e:
        c.console.error(str(e))
        exit_with_code(ErrorCode.USER_ERROR)

    request = ManifestRequest(
        application=options.application,
        environment=options.environment,
        force_release=options.force_release,
        snapshot=options.snapshot,
        sha=options.sha,
        notes=_notes(c, options),
    )
    release = exit_on_error(generate_release_manifest(c.korn, request), c)

    if options.dry_run:
        typer.echo(json.dumps(release.to_dict(), indent=2, sort_keys=True))
        return

    created = exit_on_error(create_release(c.korn, release), c)
    c.console.success(
        f"release {created.namespace}/{created.name} created for snapshot {created.snapshot}"
    )
    if not options.wait:
        c.console.print(f"korn waitfor release {created.name}", Style.DIM)
        return

    report_completion(c, await_completion(c.korn, created.name, options.timeout_seconds))
