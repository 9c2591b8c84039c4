from __future__ import annotations

from datetime import UTC, datetime

from korn.core.result import Err, Ok, Result
from korn.konflux import labels
from korn.konflux.context import KornContext
from korn.konflux.errors import KornError
from korn.konflux.model import Release
from korn.konflux.releaseplan import list_release_plans
from korn.konflux.store import Kind

_EPOCH = datetime.min.replace(tzinfo=UTC)


def list_releases(
    ctx: KornContext, application: str | None = None
) -> Result[list[Release], KornError]:
    """List releases, newest first.

    A release belongs to an application when it carries the application
    label, or when it targets one of the application's release plans.
    """
    listed = ctx.store.list(Kind.RELEASE, ctx.namespace)
    if isinstance(listed, Err):
        return listed
    releases = [Release.from_dict(o) for o in listed.value]

    if application:
        plans = list_release_plans(ctx, application)
        if isinstance(plans, Err):
            return plans
        plan_names = {p.name for p in plans.value}
        releases = [
            r
            for r in releases
            if r.metadata.labels.get(labels.APPLICATION_LABEL) == application
            or r.release_plan in plan_names
        ]

    releases.sort(key=lambda r: r.metadata.creation_timestamp or _EPOCH, reverse=True)
    return Ok(releases)


def list_successful_releases(
    ctx: KornContext, application: str | None = None
) -> Result[list[Release], KornError]:
    return list_releases(ctx, application).map(
        lambda releases: [r for r in releases if r.has_succeeded()]
    )


def get_release(ctx: KornContext, name: str) -> Result[Release, KornError]:
    got = ctx.store.get(Kind.RELEASE, ctx.namespace, name)
    if isinstance(got, Err):
        if got.error.kind == "not_found":
            return Err(
                KornError(
                    kind="not_found",
                    message=f"release {name} not found in namespace {ctx.namespace}",
                )
            )
        return got
    return Ok(Release.from_dict(got.value))


def create_release(
    ctx: KornContext, release: Release, *, dry_run: bool = False
) -> Result[Release, KornError]:
    created = ctx.store.create(Kind.RELEASE, ctx.namespace, release.to_dict(), dry_run=dry_run)
    if isinstance(created, Err):
        return created
    return Ok(Release.from_dict(created.value))
