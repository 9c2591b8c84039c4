"""Wait for an existing release to finish."""

from __future__ import annotations

import json

import typer

from korn.cli.commands._helpers import exit_on_error
from korn.cli.context import CLIContext, build_context, global_options
from korn.core.result import Result
from korn.konflux.errors import KornError
from korn.konflux.release import get_release
from korn.konflux.tracker import (
    CompletionOutcome,
    ReleaseSucceeded,
    ReleaseTimedOut,
    await_completion,
)
from korn.output.console import Style

waitfor_app = typer.Typer(add_completion=False, no_args_is_help=True)


def report_completion(ctx: CLIContext, result: Result[CompletionOutcome, KornError]) -> None:
    """Print the outcome of a wait; failures exit non-zero, a timeout does not."""
    outcome = exit_on_error(result, ctx)
    match outcome:
        case ReleaseSucceeded(release=release, artifacts=artifacts):
            ctx.console.success(f"release {release.namespace}/{release.name} succeeded")
            if artifacts is not None:
                ctx.console.print("artifacts:", Style.DIM)
                ctx.console.print(json.dumps(artifacts, indent=2, sort_keys=True))
        case ReleaseTimedOut(release_name=name, elapsed_seconds=elapsed):
            ctx.console.warning(
                f"timed out waiting for release {ctx.namespace}/{name} after {int(elapsed)}s; "
                "it is still running in the cluster"
            )
            ctx.console.print(f"korn waitfor release {name}", Style.DIM)


@waitfor_app.command("release")
def waitfor_release_cmd(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Release name"),
    timeout: int | None = typer.Option(
        None, "--timeout", "-t", min=1, help="Minutes to wait (default from config: 60)"
    ),
) -> None:
    """Wait until a release succeeds or fails."""
    c = build_context(global_options(ctx))
    exit_on_error(get_release(c.korn, name), c)
    minutes = timeout or c.config.wait_timeout_minutes
    report_completion(c, await_completion(c.korn, name, minutes * 60))
