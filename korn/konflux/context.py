from __future__ import annotations

from dataclasses import dataclass

from korn.konflux.images import ImageInspector
from korn.konflux.store import RecordStore
from korn.konflux.versions import VersionResolver
from korn.output.console import ConsoleProtocol


@dataclass(frozen=True, slots=True)
class KornContext:
    """Collaborators and scope for one korn invocation.

    Passed explicitly to every operation; korn keeps no module-level state.
    """

    store: RecordStore
    images: ImageInspector
    versions: VersionResolver
    namespace: str
    console: ConsoleProtocol
