"""Konflux release domain: records, candidate selection, manifests, completion."""

from .context import KornContext
from .errors import KornError
from .manifest import ManifestRequest, NotesInput, generate_manifest, generate_release_manifest
from .model import Application, Component, Release, ReleasePlan, Snapshot
from .snapshot import select_candidate, validate_candidacy
from .tracker import ReleaseSucceeded, ReleaseTimedOut, await_completion

__all__ = [
    "Application",
    "Component",
    "KornContext",
    "KornError",
    "ManifestRequest",
    "NotesInput",
    "Release",
    "ReleasePlan",
    "ReleaseSucceeded",
    "ReleaseTimedOut",
    "Snapshot",
    "await_completion",
    "generate_manifest",
    "generate_release_manifest",
    "select_candidate",
    "validate_candidacy",
]
