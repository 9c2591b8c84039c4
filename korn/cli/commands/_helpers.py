"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn, TypeVar

import typer

from korn.core.errors import ErrorCode
from korn.core.result import Err, Result
from korn.konflux.errors import KornError
from korn.output.console import Style

if TYPE_CHECKING:
    from korn.cli.context import CLIContext


T = TypeVar("T")


def exit_on_error(result: Result[T, KornError], ctx: CLIContext) -> T:
    """Return the Ok value, or report the error and exit with its code.

    The exit code follows the error kind (see ``KornError.exit_code``).
    """
    if isinstance(result, Err):
        error = result.error
        ctx.console.error(error.message)
        if error.hint:
            ctx.console.print(f"hint: {error.hint}", Style.DIM)
        raise typer.Exit(code=int(error.exit_code()))
    return result.value


def exit_with_code(code: ErrorCode) -> NoReturn:
    raise typer.Exit(code=int(code))
