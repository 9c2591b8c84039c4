from __future__ import annotations

from collections.abc import Mapping

from korn.core.result import Err, Ok, Result
from korn.konflux import labels
from korn.konflux.application import application_type
from korn.konflux.context import KornContext
from korn.konflux.errors import KornError
from korn.konflux.model import Component
from korn.konflux.store import Kind


def list_components(
    ctx: KornContext,
    application: str | None = None,
    *,
    selector: Mapping[str, str] | None = None,
) -> Result[list[Component], KornError]:
    """List components, restricted to ``application`` when given."""
    listed = ctx.store.list(Kind.COMPONENT, ctx.namespace, selector)
    if isinstance(listed, Err):
        return listed
    comps = [Component.from_dict(o) for o in listed.value]
    if application:
        comps = [c for c in comps if c.application == application]
    return Ok(comps)


def get_component(ctx: KornContext, name: str) -> Result[Component, KornError]:
    got = ctx.store.get(Kind.COMPONENT, ctx.namespace, name)
    if isinstance(got, Err):
        if got.error.kind == "not_found":
            return Err(
                KornError(
                    kind="not_found",
                    message=f"component {name} not found in namespace {ctx.namespace}",
                )
            )
        return got
    return Ok(Component.from_dict(got.value))


def bundle_component(ctx: KornContext, application: str) -> Result[Component, KornError]:
    bundles = list_components(
        ctx,
        application,
        selector={labels.COMPONENT_TYPE_LABEL: labels.BUNDLE_COMPONENT_TYPE},
    )
    if isinstance(bundles, Err):
        return bundles

    found = bundles.value
    if not found:
        return Err(
            KornError(
                kind="config",
                message=(
                    f"no bundle component found for application {ctx.namespace}/{application} "
                    f"with labels {labels.COMPONENT_TYPE_LABEL}={labels.BUNDLE_COMPONENT_TYPE}"
                ),
            )
        )
    if len(found) > 1:
        names = ", ".join(c.name for c in found)
        return Err(
            KornError(
                kind="config",
                message=(
                    f"more than one bundle component found for application "
                    f"{ctx.namespace}/{application}: {names}"
                ),
            )
        )
    return Ok(found[0])


def component_for_release(ctx: KornContext, application: str) -> Result[Component, KornError]:
    """Return the component whose snapshots are released.

    Operator applications release from their bundle component. FBC
    applications hold exactly one component, which is released as is.
    """
    app_type = application_type(ctx, application)
    if isinstance(app_type, Err):
        return app_type

    if app_type.value == labels.OPERATOR_APPLICATION_TYPE:
        return bundle_component(ctx, application)

    comps = list_components(ctx, application)
    if isinstance(comps, Err):
        return comps
    if not comps.value:
        return Err(
            KornError(
                kind="config",
                message=(
                    f"application {ctx.namespace}/{application} does not have any component associated"
                ),
            )
        )
    if len(comps.value) > 1:
        return Err(
            KornError(
                kind="config",
                message=(
                    f"application {ctx.namespace}/{application} of type FBC can only have "
                    "1 component"
                ),
            )
        )
    return Ok(comps.value[0])
