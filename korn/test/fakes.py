"""In-memory collaborators and record builders shared by the korn tests."""

from __future__ import annotations

import builtins
import queue
from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import UTC, datetime, timedelta

import typer

from korn.cli.app import app
from korn.cli.context import GlobalOptions
from korn.core.result import Err, Ok, Result
from korn.core.structured import StrDict, get_str, get_str_map, get_table
from korn.konflux import labels
from korn.konflux.context import KornContext
from korn.konflux.errors import KornError
from korn.konflux.model import (
    Application,
    Component,
    Condition,
    GitSource,
    Metadata,
    Release,
    ReleasePlan,
    Snapshot,
    SnapshotComponent,
)
from korn.konflux.semver import SemVer
from korn.konflux.store import Kind, WatchEvent
from korn.output.console import ConsoleProtocol, MockConsole

NAMESPACE = "demo-ns"
BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

_KINDS = {k.kind: k for k in Kind}


def _matches(obj: StrDict, namespace: str, selector: Mapping[str, str] | None) -> bool:
    meta = get_table(obj, "metadata") or {}
    if get_str(meta, "namespace") != namespace:
        return False
    obj_labels = get_str_map(meta, "labels")
    return all(obj_labels.get(k) == v for k, v in (selector or {}).items())


class FakeWatch:
    """Watch stream fed by the test; ``close`` ends it as the server would."""

    def __init__(self, events: Iterable[WatchEvent] = ()) -> None:
        self._queue: queue.Queue[WatchEvent | None] = queue.Queue()
        self.stopped = False
        for e in events:
            self.push(e)

    def push(self, event: WatchEvent) -> None:
        self._queue.put(event)

    def close(self) -> None:
        self._queue.put(None)

    def events(self) -> Iterator[WatchEvent]:
        while True:
            item = self._queue.get()
            if item is None or self.stopped:
                return
            yield item

    def stop(self) -> None:
        self.stopped = True
        self._queue.put(None)


class FakeRecordStore:
    def __init__(self) -> None:
        self._records: dict[Kind, builtins.list[StrDict]] = {k: [] for k in Kind}
        self.created: builtins.list[StrDict] = []
        self.watches: dict[str, FakeWatch] = {}
        self.failures: dict[Kind, KornError] = {}
        self.list_calls: builtins.list[tuple[Kind, dict[str, str]]] = []
        self.get_calls: builtins.list[tuple[Kind, str]] = []
        self._generated = 0

    def add(self, *records: Application | Component | Snapshot | Release | ReleasePlan) -> None:
        for r in records:
            self._records[_KINDS[r.KIND]].append(r.to_dict())

    def watch_for(self, name: str, *events: WatchEvent) -> FakeWatch:
        stream = FakeWatch(events)
        self.watches[name] = stream
        return stream

    def list(
        self,
        kind: Kind,
        namespace: str,
        labels: Mapping[str, str] | None = None,
    ) -> Result[builtins.list[StrDict], KornError]:
        self.list_calls.append((kind, dict(labels or {})))
        if kind in self.failures:
            return Err(self.failures[kind])
        return Ok([o for o in self._records[kind] if _matches(o, namespace, labels)])

    def get(self, kind: Kind, namespace: str, name: str) -> Result[StrDict, KornError]:
        self.get_calls.append((kind, name))
        if kind in self.failures:
            return Err(self.failures[kind])
        for o in self._records[kind]:
            meta = get_table(o, "metadata") or {}
            if get_str(meta, "name") == name and get_str(meta, "namespace") == namespace:
                return Ok(o)
        return Err(KornError(kind="not_found", message=f"{kind} {name} not found"))

    def create(
        self, kind: Kind, namespace: str, record: StrDict, *, dry_run: bool = False
    ) -> Result[StrDict, KornError]:
        if kind in self.failures:
            return Err(self.failures[kind])
        meta = dict(get_table(record, "metadata") or {})
        if not get_str(meta, "name"):
            self._generated += 1
            meta["name"] = f"{get_str(meta, 'generateName') or ''}{self._generated:05d}"
        meta["namespace"] = namespace
        obj = {**record, "metadata": meta}
        if not dry_run:
            self._records[kind].append(obj)
            self.created.append(obj)
        return Ok(obj)

    def watch(self, kind: Kind, namespace: str, name: str) -> Result[FakeWatch, KornError]:
        if kind in self.failures:
            return Err(self.failures[kind])
        return Ok(self.watches.setdefault(name, FakeWatch()))


class FakeImageInspector:
    def __init__(self, images: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self.images = {k: dict(v) for k, v in (images or {}).items()}
        self.calls: list[str] = []

    def inspect(self, image: str) -> Result[dict[str, str], KornError]:
        self.calls.append(image)
        found = self.images.get(image)
        if found is None:
            return Err(KornError(kind="upstream", message=f"failed to inspect image {image}"))
        return Ok(dict(found))


class FakeVersionResolver:
    def __init__(self, versions: Mapping[tuple[str, str], SemVer] | None = None) -> None:
        self.versions = dict(versions or {})
        self.calls: list[tuple[str, str]] = []
        self.cleanups = 0

    def resolve_version(self, repo_url: str, revision: str) -> Result[SemVer, KornError]:
        self.calls.append((repo_url, revision))
        found = self.versions.get((repo_url, revision))
        if found is None:
            return Err(
                KornError(kind="upstream", message=f"failed to fetch file content {repo_url}")
            )
        return Ok(found)

    def cleanup(self) -> None:
        self.cleanups += 1


class ManualTimer:
    """Stand-in for ``threading.Timer`` that fires only when told to."""

    def __init__(self, interval: float, function: Callable[[], None]) -> None:
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.function()


class ImmediateTimer(ManualTimer):
    def start(self) -> None:
        super().start()
        self.fire()


def make_context(
    store: FakeRecordStore | None = None,
    images: FakeImageInspector | None = None,
    versions: FakeVersionResolver | None = None,
    *,
    console: ConsoleProtocol | None = None,
    namespace: str = NAMESPACE,
) -> KornContext:
    return KornContext(
        store=store or FakeRecordStore(),
        images=images or FakeImageInspector(),
        versions=versions or FakeVersionResolver(),
        namespace=namespace,
        console=console or MockConsole(),
    )


def typer_context(options: GlobalOptions | None = None) -> typer.Context:
    """Context to pass when calling a command function directly."""
    return typer.Context(typer.main.get_command(app), obj=options)


def at(minute: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minute)


def application(name: str = "demo", app_type: str | None = "operator") -> Application:
    app_labels = {labels.APPLICATION_TYPE_LABEL: app_type} if app_type else {}
    return Application(metadata=Metadata(name=name, namespace=NAMESPACE, labels=app_labels))


def component(
    name: str,
    app: str = "demo",
    *,
    bundle: bool = False,
    alias: str | None = None,
) -> Component:
    comp_labels: dict[str, str] = {}
    if bundle:
        comp_labels[labels.COMPONENT_TYPE_LABEL] = labels.BUNDLE_COMPONENT_TYPE
    if alias:
        comp_labels[labels.BUNDLE_REFERENCE_LABEL] = alias
    return Component(
        metadata=Metadata(name=name, namespace=NAMESPACE, labels=comp_labels),
        application=app,
    )


def snapshot(
    name: str,
    images: Mapping[str, str],
    *,
    app: str = "demo",
    component_name: str = "demo-bundle",
    minute: int = 0,
    finished: bool = True,
    sha: str = "",
    git: Mapping[str, GitSource] | None = None,
) -> Snapshot:
    snap_labels = {
        labels.EVENT_TYPE_LABEL: labels.PUSH_EVENT_TYPE,
        labels.APPLICATION_LABEL: app,
        labels.COMPONENT_LABEL: component_name,
    }
    if sha:
        snap_labels[labels.SHA_LABEL] = sha
    conditions: tuple[Condition, ...] = ()
    if finished:
        conditions = (
            Condition(
                type=labels.TEST_SUCCEEDED_CONDITION,
                status="True",
                reason=labels.TEST_FINISHED_REASON,
            ),
        )
    return Snapshot(
        metadata=Metadata(
            name=name,
            namespace=NAMESPACE,
            labels=snap_labels,
            annotations={labels.SHA_TITLE_ANNOTATION: f"commit for {name}"},
            creation_timestamp=at(minute),
        ),
        application=app,
        components=tuple(
            SnapshotComponent(name=c, container_image=img, git_source=(git or {}).get(c))
            for c, img in images.items()
        ),
        conditions=conditions,
    )


def release_plan(name: str, app: str = "demo", environment: str = "staging") -> ReleasePlan:
    return ReleasePlan(
        metadata=Metadata(
            name=name,
            namespace=NAMESPACE,
            labels={labels.ENVIRONMENT_LABEL: environment},
        ),
        application=app,
        admission_name=f"{name}-admission",
        admission_active=True,
    )


def release(
    name: str,
    snapshot_name: str,
    *,
    app: str = "demo",
    plan: str = "demo-staging",
    reason: str | None = labels.SUCCEEDED_REASON,
    message: str = "",
    minute: int = 0,
    extra_conditions: tuple[Condition, ...] = (),
) -> Release:
    conditions = extra_conditions
    if reason is not None:
        conditions = (
            Condition(
                type=labels.RELEASED_CONDITION,
                status="True" if reason == labels.SUCCEEDED_REASON else "False",
                reason=reason,
                message=message,
            ),
            *extra_conditions,
        )
    return Release(
        metadata=Metadata(
            name=name,
            namespace=NAMESPACE,
            labels={labels.APPLICATION_LABEL: app},
            creation_timestamp=at(minute),
        ),
        snapshot=snapshot_name,
        release_plan=plan,
        conditions=conditions,
    )


def event(kind: str, record: Release) -> WatchEvent:
    return WatchEvent(type=kind, object=record.to_dict())


# Images of the demo operator application: a bundle and one controller whose
# pullspec the bundle records under the "controller" label.
BUNDLE_IMAGE = "quay.io/demo/demo-bundle@sha256:b0b0"
CONTROLLER_IMAGE = "quay.io/demo/demo-controller@sha256:c0c0"


def demo_store(*extra: Application | Component | Snapshot | Release | ReleasePlan) -> FakeRecordStore:
    """Operator application ``demo`` with bundle, controller and a staging plan."""
    store = FakeRecordStore()
    store.add(
        application("demo"),
        component("demo-bundle", bundle=True),
        component("demo-controller", alias="controller"),
        release_plan("demo-staging"),
        release_plan("demo-production", environment="production"),
        *extra,
    )
    return store


def demo_images(
    version: str = "1.0.1",
    *,
    controller_version: str | None = None,
    embedded_controller: str = "registry.redhat.io/demo/controller@sha256:c0c0",
) -> FakeImageInspector:
    return FakeImageInspector(
        {
            BUNDLE_IMAGE: {"version": version, "controller": embedded_controller},
            CONTROLLER_IMAGE: {"version": controller_version or version},
        }
    )


def demo_snapshot(name: str, *, minute: int = 0, finished: bool = True, sha: str = "") -> Snapshot:
    return snapshot(
        name,
        {"demo-bundle": BUNDLE_IMAGE, "demo-controller": CONTROLLER_IMAGE},
        minute=minute,
        finished=finished,
        sha=sha,
    )
