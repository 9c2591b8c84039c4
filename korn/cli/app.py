from __future__ import annotations

from pathlib import Path

import typer

from korn import __version__
from korn.cli.commands.create import create_app
from korn.cli.commands.get import get_app
from korn.cli.commands.waitfor import waitfor_app
from korn.cli.context import GlobalOptions

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Release Konflux applications.",
)

# Sub-apps
app.add_typer(get_app, name="get", help="Show Konflux records.")
app.add_typer(create_app, name="create", help="Create Konflux records.")
app.add_typer(waitfor_app, name="waitfor", help="Wait for Konflux records.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    kubeconfig: Path | None = typer.Option(
        None, "--kubeconfig", help="Kubeconfig file (default: $KUBECONFIG or ~/.kube/config)"
    ),
    namespace: str | None = typer.Option(
        None, "--namespace", "-n", help="Namespace (default: current kubeconfig context)"
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: $KORN_CONFIG or ~/.config/korn/config.toml)"
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Print debug output."),
) -> None:
    ctx.obj = GlobalOptions(
        kubeconfig=kubeconfig,
        namespace=namespace,
        config_path=config,
        debug=debug,
    )


def main() -> None:
    app()
