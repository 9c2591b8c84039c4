"""Record store capability.

korn never talks to the cluster directly: it lists, gets, creates and watches
Konflux records through a RecordStore. The production implementation is
``korn.konflux.kube.KubeRecordStore``; tests use an in-memory fake.
"""

from __future__ import annotations

import builtins
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from korn.core.result import Result
from korn.core.structured import StrDict
from korn.konflux.errors import KornError


class Kind(Enum):
    """Konflux record kinds and their API plural names."""

    APPLICATION = ("Application", "applications")
    COMPONENT = ("Component", "components")
    SNAPSHOT = ("Snapshot", "snapshots")
    RELEASE = ("Release", "releases")
    RELEASE_PLAN = ("ReleasePlan", "releaseplans")

    def __init__(self, kind: str, plural: str) -> None:
        self.kind = kind
        self.plural = plural

    def __str__(self) -> str:
        return self.kind


@dataclass(frozen=True, slots=True)
class WatchEvent:
    """One event of a watch stream.

    Attributes:
        type: ``ADDED``, ``MODIFIED``, ``DELETED`` or ``ERROR``.
        object: The record as a Kubernetes object mapping.
    """

    type: str
    object: StrDict


class WatchStream(Protocol):
    def events(self) -> Iterator[WatchEvent]:
        """Yield events until the stream closes or ``stop`` is called."""
        ...

    def stop(self) -> None:
        """Close the stream; safe to call from another thread and more than once."""
        ...


class RecordStore(Protocol):
    def list(
        self,
        kind: Kind,
        namespace: str,
        labels: Mapping[str, str] | None = None,
    ) -> Result[builtins.list[StrDict], KornError]: ...

    def get(self, kind: Kind, namespace: str, name: str) -> Result[StrDict, KornError]:
        """Return the record, or Err(kind="not_found") when it does not exist."""
        ...

    def create(
        self, kind: Kind, namespace: str, record: StrDict, *, dry_run: bool = False
    ) -> Result[StrDict, KornError]: ...

    def watch(self, kind: Kind, namespace: str, name: str) -> Result[WatchStream, KornError]:
        """Open a watch scoped to the single record ``name``."""
        ...
