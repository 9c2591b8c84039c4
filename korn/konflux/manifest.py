"""Build the Release record for a snapshot candidate.

The advisory type of a release follows the bundle's semantic version: a
patch release (``x.y.z`` with ``z != 0``) is a bug fix advisory (RHBA),
anything else a feature advisory (RHEA). FBC applications always ship as
feature advisories.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from korn.core.result import Err, Ok, Result
from korn.konflux import labels
from korn.konflux.application import ApplicationType, application_type
from korn.konflux.component import bundle_component
from korn.konflux.context import KornContext
from korn.konflux.errors import KornError
from korn.konflux.model import (
    BUGFIX_RELEASE,
    FEATURE_RELEASE,
    Metadata,
    Release,
    ReleaseNotes,
    ReleaseType,
    Snapshot,
)
from korn.konflux.releaseplan import release_plan_for_environment
from korn.konflux.semver import parse_tolerant
from korn.konflux.snapshot import get_snapshot, select_candidate


def _no_issues() -> dict[str, object]:
    return {}


@dataclass(frozen=True, slots=True)
class NotesInput:
    """Caller supplied release notes merged into the generated ones.

    ``type`` replaces the classification derived from the bundle version.
    """

    type: ReleaseType | None = None
    issues: dict[str, object] = field(default_factory=_no_issues)
    cves: tuple[dict[str, str], ...] = ()
    references: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ManifestRequest:
    """Inputs of ``generate_release_manifest``."""

    application: str
    environment: str
    force_release: bool = False
    snapshot: str | None = None
    sha: str | None = None
    notes: NotesInput = field(default_factory=NotesInput)


def bundle_version(
    ctx: KornContext, application: str, candidate: Snapshot
) -> Result[str, KornError]:
    """Read the ``version`` label of the bundle image carried by ``candidate``."""
    bundle = bundle_component(ctx, application)
    if isinstance(bundle, Err):
        return bundle

    pullspec = candidate.image_for(bundle.value.name)
    if pullspec is None:
        return Err(
            KornError(
                kind="config",
                message=(
                    f"component reference {bundle.value.name} in snapshot {candidate.name} not found"
                ),
            )
        )

    image_labels = ctx.images.inspect(pullspec)
    if isinstance(image_labels, Err):
        return image_labels

    version = image_labels.value.get(labels.VERSION_IMAGE_LABEL)
    if version is None:
        return Err(
            KornError(
                kind="config",
                message=(
                    f"label 'version' not found in bundle "
                    f"{bundle.value.namespace}/{bundle.value.name}"
                ),
            )
        )
    return Ok(version)


def classify_release(
    ctx: KornContext, application: str, app_type: ApplicationType, candidate: Snapshot
) -> Result[ReleaseType, KornError]:
    if app_type == labels.FBC_APPLICATION_TYPE:
        return Ok(FEATURE_RELEASE)

    raw = bundle_version(ctx, application, candidate)
    if isinstance(raw, Err):
        return raw

    version = parse_tolerant(raw.value)
    if version is None:
        return Err(
            KornError(
                kind="invalid_version",
                message=f"invalid version {raw.value!r} in bundle of snapshot {candidate.name}",
            )
        )
    ctx.console.debug(f"bundle version {version} for snapshot {candidate.name}")
    return Ok(BUGFIX_RELEASE if version.is_patch_release else FEATURE_RELEASE)


def generate_manifest(
    ctx: KornContext,
    application: str,
    environment: str,
    candidate: Snapshot,
    notes: NotesInput | None = None,
) -> Result[Release, KornError]:
    """Build (without creating) the Release of ``candidate`` to ``environment``."""
    app_type = application_type(ctx, application)
    if isinstance(app_type, Err):
        return app_type

    plan = release_plan_for_environment(ctx, application, environment)
    if isinstance(plan, Err):
        return plan

    rtype = classify_release(ctx, application, app_type.value, candidate)
    if isinstance(rtype, Err):
        return rtype

    extra = notes or NotesInput()
    release_notes = ReleaseNotes(
        type=extra.type or rtype.value,
        issues=dict(extra.issues),
        cves=extra.cves,
        references=extra.references,
    )

    return Ok(
        Release(
            metadata=Metadata(
                name="",
                namespace=ctx.namespace,
                generate_name=f"{application}-{environment}-",
                labels={labels.APPLICATION_LABEL: application},
            ),
            snapshot=candidate.name,
            release_plan=plan.value.name,
            data=release_notes.payload(),
        )
    )


def generate_release_manifest(
    ctx: KornContext, request: ManifestRequest
) -> Result[Release, KornError]:
    """Pick the snapshot to release and build its Release.

    An explicit snapshot name or commit SHA bypasses candidate selection.
    """
    if request.snapshot or request.sha:
        candidate = get_snapshot(
            ctx, name=request.snapshot, sha=request.sha, application=request.application
        )
    else:
        candidate = select_candidate(ctx, request.application, force_release=request.force_release)
    if isinstance(candidate, Err):
        return candidate

    ctx.console.debug(f"snapshot candidate: {candidate.value.name}")
    return generate_manifest(
        ctx, request.application, request.environment, candidate.value, request.notes
    )
