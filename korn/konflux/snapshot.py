"""Snapshot lookup and release candidate selection.

A snapshot is a candidate for release when it is newer than the snapshot of
the last successful release, its integration tests finished, and the bundle
image it carries embeds exactly the component images the snapshot recorded.
"""

from __future__ import annotations

from datetime import UTC, datetime

from korn.core.result import Err, Ok, Result
from korn.konflux import labels
from korn.konflux.component import component_for_release, list_components
from korn.konflux.context import KornContext
from korn.konflux.errors import KornError
from korn.konflux.images import digest_suffix
from korn.konflux.model import Snapshot
from korn.konflux.release import list_successful_releases
from korn.konflux.semver import SemVer, parse_tolerant
from korn.konflux.store import Kind
from korn.konflux.versions import VersionResolver, resolving_versions

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _newest_first(snapshots: list[Snapshot]) -> list[Snapshot]:
    return sorted(
        snapshots,
        key=lambda s: s.metadata.creation_timestamp or _EPOCH,
        reverse=True,
    )


def list_snapshots(
    ctx: KornContext, application: str | None = None
) -> Result[list[Snapshot], KornError]:
    """List push-event snapshots, newest first.

    With an application, only snapshots of its release component are listed.
    """
    selector = {labels.EVENT_TYPE_LABEL: labels.PUSH_EVENT_TYPE}
    if application:
        comp = component_for_release(ctx, application)
        if isinstance(comp, Err):
            return comp
        selector[labels.COMPONENT_LABEL] = comp.value.name

    ctx.console.debug(f"listing snapshots in {ctx.namespace} with labels {selector}")
    listed = ctx.store.list(Kind.SNAPSHOT, ctx.namespace, selector)
    if isinstance(listed, Err):
        return listed
    return Ok(_newest_first([Snapshot.from_dict(o) for o in listed.value]))


def _get_snapshot_by_name(
    ctx: KornContext, name: str, application: str | None
) -> Result[Snapshot, KornError]:
    not_found = KornError(
        kind="not_found", message=f"snapshot {name} not found in namespace {ctx.namespace}"
    )
    got = ctx.store.get(Kind.SNAPSHOT, ctx.namespace, name)
    if isinstance(got, Err):
        if got.error.kind == "not_found":
            return Err(not_found)
        return got
    snap = Snapshot.from_dict(got.value)
    if application and snap.application != application:
        return Err(not_found)
    return Ok(snap)


def get_snapshot(
    ctx: KornContext,
    *,
    name: str | None = None,
    sha: str | None = None,
    application: str | None = None,
) -> Result[Snapshot, KornError]:
    """Find one snapshot by name and/or commit SHA.

    When several snapshots share a SHA the newest one is returned.
    """
    if not name and not sha:
        return Err(KornError(kind="invalid_input", message="snapshot name or SHA is required"))

    if name and not sha:
        return _get_snapshot_by_name(ctx, name, application)

    selector: dict[str, str] = {}
    if application:
        selector[labels.APPLICATION_LABEL] = application
    if sha:
        selector[labels.SHA_LABEL] = sha

    listed = ctx.store.list(Kind.SNAPSHOT, ctx.namespace, selector)
    if isinstance(listed, Err):
        return listed

    found = [Snapshot.from_dict(o) for o in listed.value]
    if name:
        found = [s for s in found if s.name == name]
    if not found:
        what = f"snapshot {name}" if name else f"snapshot with SHA {sha}"
        return Err(
            KornError(kind="not_found", message=f"{what} not found in namespace {ctx.namespace}")
        )
    return Ok(_newest_first(found)[0])


def snapshot_version(
    resolver: VersionResolver, snapshot: Snapshot
) -> Result[SemVer | None, KornError]:
    """Resolve the version a snapshot was built from.

    Components without git provenance are skipped. Ok(None) means the
    snapshot has no resolvable version, or its components disagree.
    """
    version: SemVer | None = None
    for c in snapshot.components:
        if c.git_source is None:
            continue
        resolved = resolver.resolve_version(c.git_source.url, c.git_source.revision)
        if isinstance(resolved, Err):
            return resolved
        if version is None:
            version = resolved.value
        elif version != resolved.value:
            return Ok(None)
    return Ok(version)


def list_snapshots_by_version(
    ctx: KornContext, application: str, version: str
) -> Result[list[Snapshot], KornError]:
    """List the snapshots of ``application`` built from ``version``, newest first."""
    wanted = parse_tolerant(version)
    if wanted is None:
        return Err(KornError(kind="invalid_input", message=f"invalid version {version!r}"))

    listed = list_snapshots(ctx, application)
    if isinstance(listed, Err):
        return listed

    matches: list[Snapshot] = []
    with resolving_versions(ctx.versions) as resolver:
        for s in listed.value:
            v = snapshot_version(resolver, s)
            if isinstance(v, Err):
                return v
            if v.value is None:
                ctx.console.debug(f"inconsistent version for snapshot {s.namespace}/{s.name}")
                continue
            if v.value == wanted:
                matches.append(s)

    if not matches:
        return Err(
            KornError(
                kind="not_found",
                message=(
                    f"no snapshot found for application {ctx.namespace}/{application} "
                    f"with version {version}"
                ),
            )
        )
    return Ok(matches)


def latest_snapshot_by_version(
    ctx: KornContext, application: str, version: str
) -> Result[Snapshot, KornError]:
    return list_snapshots_by_version(ctx, application, version).map(lambda found: found[0])


def snapshot_from_last_release(
    ctx: KornContext, application: str
) -> Result[Snapshot | None, KornError]:
    """Return the snapshot used by the most recent successful release, if any."""
    releases = list_successful_releases(ctx, application)
    if isinstance(releases, Err):
        return releases
    if not releases.value:
        return Ok(None)

    last = releases.value[0]
    snap = get_snapshot(ctx, name=last.snapshot)
    if isinstance(snap, Err):
        return snap
    return Ok(snap.value)


def validate_candidacy(
    ctx: KornContext, application: str, bundle_name: str, snapshot: Snapshot
) -> Result[bool, KornError]:
    """Check that ``snapshot`` is internally consistent.

    Ok(False) rejects this snapshot only. Err means the snapshot or the
    platform wiring is broken and selection must stop.
    """
    if not snapshot.has_finished():
        ctx.console.debug(f"snapshot {snapshot.name} has not finished running yet, discarding")
        return Ok(False)

    bundle_image = snapshot.image_for(bundle_name)
    if bundle_image is None:
        return Err(
            KornError(
                kind="config",
                message=f"component reference {bundle_name} in snapshot {snapshot.name} not found",
            )
        )

    bundle_labels = ctx.images.inspect(bundle_image)
    if isinstance(bundle_labels, Err):
        return bundle_labels
    bundle_version = bundle_labels.value.get(labels.VERSION_IMAGE_LABEL)

    comps = list_components(ctx, application)
    if isinstance(comps, Err):
        return comps

    for comp in comps.value:
        if comp.name == bundle_name:
            continue

        alias = comp.bundle_reference
        if alias is None:
            return Err(
                KornError(
                    kind="config",
                    message=(
                        f"label {labels.BUNDLE_REFERENCE_LABEL} not found in component "
                        f"{comp.namespace}/{comp.name}"
                    ),
                )
            )

        embedded = bundle_labels.value.get(alias)
        if embedded is None:
            ctx.console.info(
                f"missing label {alias} for component {comp.name} in bundle image {bundle_image}"
            )
            return Ok(False)

        comp_image = snapshot.image_for(comp.name)
        if comp_image is None:
            return Err(
                KornError(
                    kind="config",
                    message=f"component reference {comp.name} in snapshot {snapshot.name} not found",
                )
            )

        if digest_suffix(embedded) != digest_suffix(comp_image):
            ctx.console.info(
                f"component {comp.name} pullspec mismatch in bundle {bundle_name}, "
                f"snapshot {snapshot.name} is not a candidate for release"
            )
            return Ok(False)

        comp_labels = ctx.images.inspect(comp_image)
        if isinstance(comp_labels, Err):
            return comp_labels
        comp_version = comp_labels.value.get(labels.VERSION_IMAGE_LABEL)
        if comp_version != bundle_version:
            ctx.console.info(
                f"component {comp.name} and bundle {bundle_name} version mismatch: "
                f"component has {comp_version} and bundle has {bundle_version}"
            )
            return Ok(False)

    return Ok(True)


def select_candidate(
    ctx: KornContext, application: str, *, force_release: bool = False
) -> Result[Snapshot, KornError]:
    """Return the newest valid snapshot released after the last successful release.

    With ``force_release`` the snapshot of the last successful release is
    returned when nothing newer validates, so a failed release can be retried.
    """
    cutoff_r = snapshot_from_last_release(ctx, application)
    if isinstance(cutoff_r, Err):
        return cutoff_r
    cutoff = cutoff_r.value

    comp = component_for_release(ctx, application)
    if isinstance(comp, Err):
        return comp

    listed = list_snapshots(ctx, application)
    if isinstance(listed, Err):
        return listed

    for snap in listed.value:
        if cutoff is not None and snap.name == cutoff.name:
            break
        valid = validate_candidacy(ctx, application, comp.value.name, snap)
        if isinstance(valid, Err):
            return valid
        if valid.value:
            return Ok(snap)

    if force_release and cutoff is not None:
        ctx.console.debug(f"no newer candidate, reusing snapshot {cutoff.name} of the last release")
        return Ok(cutoff)

    msg = (
        f"no new valid snapshot candidates found for bundle "
        f"{comp.value.namespace}/{comp.value.name}"
    )
    if cutoff is not None:
        msg += f" after the one used for the last release {cutoff.name}"
    return Err(KornError(kind="no_candidate", message=msg))
