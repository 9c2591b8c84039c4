from __future__ import annotations

from typing import Literal

from korn.core.result import Err, Ok, Result
from korn.konflux import labels
from korn.konflux.context import KornContext
from korn.konflux.errors import KornError
from korn.konflux.model import Application
from korn.konflux.store import Kind

ApplicationType = Literal["operator", "fbc"]

_APPLICATION_TYPES: tuple[ApplicationType, ...] = (
    labels.OPERATOR_APPLICATION_TYPE,
    labels.FBC_APPLICATION_TYPE,
)


def list_applications(ctx: KornContext) -> Result[list[Application], KornError]:
    listed = ctx.store.list(Kind.APPLICATION, ctx.namespace)
    if isinstance(listed, Err):
        return listed
    return Ok([Application.from_dict(o) for o in listed.value])


def get_application(ctx: KornContext, name: str) -> Result[Application, KornError]:
    got = ctx.store.get(Kind.APPLICATION, ctx.namespace, name)
    if isinstance(got, Err):
        if got.error.kind == "not_found":
            return Err(
                KornError(
                    kind="not_found",
                    message=f"application {name} not found in namespace {ctx.namespace}",
                )
            )
        return got
    return Ok(Application.from_dict(got.value))


def application_type(ctx: KornContext, name: str) -> Result[ApplicationType, KornError]:
    """Classify an application from its type label.

    The type decides which component a release is cut from: the bundle
    component of an ``operator`` application, or the single component of an
    ``fbc`` application.
    """
    app = get_application(ctx, name)
    if isinstance(app, Err):
        return app

    value = app.value.app_type
    if value is None:
        return Err(
            KornError(
                kind="config",
                message=(
                    "unable to determine application type: application "
                    f"{ctx.namespace}/{name} does not contain label {labels.APPLICATION_TYPE_LABEL}"
                ),
            )
        )
    for t in _APPLICATION_TYPES:
        if value == t:
            return Ok(t)
    return Err(
        KornError(
            kind="config",
            message=f"unsupported application type {value!r} for application {ctx.namespace}/{name}",
            hint=f"set {labels.APPLICATION_TYPE_LABEL} to one of: {', '.join(_APPLICATION_TYPES)}",
        )
    )
