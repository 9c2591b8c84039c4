from __future__ import annotations

from korn.core.result import Err, Ok, Result
from korn.konflux import labels
from korn.konflux.context import KornContext
from korn.konflux.errors import KornError
from korn.konflux.model import ReleasePlan
from korn.konflux.store import Kind


def list_release_plans(
    ctx: KornContext, application: str | None = None
) -> Result[list[ReleasePlan], KornError]:
    listed = ctx.store.list(Kind.RELEASE_PLAN, ctx.namespace)
    if isinstance(listed, Err):
        return listed
    plans = [ReleasePlan.from_dict(o) for o in listed.value]
    if application:
        plans = [p for p in plans if p.application == application]
    return Ok(plans)


def get_release_plan(ctx: KornContext, name: str) -> Result[ReleasePlan, KornError]:
    got = ctx.store.get(Kind.RELEASE_PLAN, ctx.namespace, name)
    if isinstance(got, Err):
        if got.error.kind == "not_found":
            return Err(
                KornError(
                    kind="not_found",
                    message=f"release plan {name} not found in namespace {ctx.namespace}",
                )
            )
        return got
    return Ok(ReleasePlan.from_dict(got.value))


def release_plan_for_environment(
    ctx: KornContext, application: str, environment: str
) -> Result[ReleasePlan, KornError]:
    listed = ctx.store.list(
        Kind.RELEASE_PLAN, ctx.namespace, {labels.ENVIRONMENT_LABEL: environment}
    )
    if isinstance(listed, Err):
        return listed

    for obj in listed.value:
        plan = ReleasePlan.from_dict(obj)
        if plan.application == application:
            return Ok(plan)

    return Err(
        KornError(
            kind="config",
            message=(
                f"no release plan found for application {ctx.namespace}/{application} "
                f"with labels {labels.ENVIRONMENT_LABEL}={environment}"
            ),
        )
    )
