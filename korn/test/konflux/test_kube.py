from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from korn.core.result import Err, Ok
from korn.konflux import kube
from korn.konflux.kube import KubeRecordStore, KubeWatchStream, current_namespace, load_api_client
from korn.konflux.store import Kind


class _FakeCustomObjects:
    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[object, ...], dict[str, object]]] = []
        self.items: list[dict[str, object]] = []
        self.error: Exception | None = None

    def _record(self, name: str, args: tuple[object, ...], kwargs: dict[str, object]) -> None:
        self.calls.append((name, args, kwargs))
        if self.error is not None:
            raise self.error

    def list_namespaced_custom_object(self, *args: object, **kwargs: object) -> object:
        self._record("list", args, kwargs)
        return {"items": self.items}

    def get_namespaced_custom_object(self, *args: object, **kwargs: object) -> object:
        self._record("get", args, kwargs)
        return {"metadata": {"name": args[-1]}}

    def create_namespaced_custom_object(self, *args: object, **kwargs: object) -> object:
        self._record("create", args, kwargs)
        body = args[-1]
        assert isinstance(body, dict)
        return {**body, "metadata": {"name": "demo-staging-x1"}}


def _store(api: _FakeCustomObjects) -> KubeRecordStore:
    return KubeRecordStore(api)  # type: ignore[arg-type]


class TestKubeRecordStore:
    def test_list_with_label_selector(self) -> None:
        api = _FakeCustomObjects()
        api.items = [{"metadata": {"name": "s1"}}, "garbage"]  # type: ignore[list-item]

        result = _store(api).list(
            Kind.SNAPSHOT, "demo-ns", {"b": "2", "a": "1"}
        )

        assert result == Ok([{"metadata": {"name": "s1"}}])
        name, args, kwargs = api.calls[0]
        assert name == "list"
        assert args == ("appstudio.redhat.com", "v1alpha1", "demo-ns", "snapshots")
        assert kwargs == {"label_selector": "a=1,b=2"}

    def test_list_without_labels(self) -> None:
        api = _FakeCustomObjects()
        _store(api).list(Kind.RELEASE_PLAN, "demo-ns")
        assert api.calls[0][1][3] == "releaseplans"
        assert api.calls[0][2] == {"label_selector": None}

    def test_get_not_found(self) -> None:
        api = _FakeCustomObjects()
        api.error = ApiException(status=404, reason="Not Found")

        result = _store(api).get(Kind.APPLICATION, "demo-ns", "demo")

        assert isinstance(result, Err)
        assert result.error.kind == "not_found"
        assert result.error.message == "Application demo not found in namespace demo-ns"

    def test_get_forbidden_is_upstream(self) -> None:
        api = _FakeCustomObjects()
        api.error = ApiException(status=403, reason="Forbidden")

        result = _store(api).get(Kind.APPLICATION, "demo-ns", "demo")

        assert isinstance(result, Err)
        assert result.error.kind == "upstream"
        assert "403 Forbidden" in result.error.message

    def test_transport_error_is_upstream(self) -> None:
        api = _FakeCustomObjects()
        api.error = HTTPError("connection refused")

        result = _store(api).list(Kind.RELEASE, "demo-ns")

        assert isinstance(result, Err)
        assert result.error.kind == "upstream"
        assert "connection refused" in result.error.message

    @pytest.mark.parametrize(("dry_run", "expected"), [(True, "All"), (False, None)])
    def test_create(self, dry_run: bool, expected: str | None) -> None:
        api = _FakeCustomObjects()

        result = _store(api).create(
            Kind.RELEASE, "demo-ns", {"metadata": {"generateName": "demo-"}}, dry_run=dry_run
        )

        assert isinstance(result, Ok)
        assert result.value["metadata"] == {"name": "demo-staging-x1"}
        _, args, kwargs = api.calls[0]
        assert args[3] == "releases"
        assert kwargs == {"dry_run": expected}


class _ScriptedWatch:
    """Replaces ``kubernetes.watch.Watch``; each stream() call runs the next script."""

    def __init__(self, scripts: list[Callable[[], Iterator[object]]]) -> None:
        self.scripts = scripts
        self.kwargs: list[dict[str, object]] = []
        self.stopped = False

    def stream(self, _func: object, *_args: object, **kwargs: object) -> Iterator[object]:
        self.kwargs.append(kwargs)
        return self.scripts.pop(0)()

    def stop(self) -> None:
        self.stopped = True


def _raw(kind: str, version: str) -> dict[str, object]:
    return {
        "type": kind,
        "object": {"metadata": {"name": "r1", "resourceVersion": version}},
    }


class TestKubeWatchStream:
    def _stream(
        self, monkeypatch: pytest.MonkeyPatch, scripts: list[Callable[[], Iterator[object]]]
    ) -> tuple[KubeWatchStream, _ScriptedWatch]:
        fake = _ScriptedWatch(scripts)
        monkeypatch.setattr(kube.watch, "Watch", lambda: fake)
        api = _FakeCustomObjects()
        stream = KubeWatchStream(api, Kind.RELEASE, "demo-ns", "r1")  # type: ignore[arg-type]
        return stream, fake

    def test_field_selector_and_stop(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def first() -> Iterator[object]:
            yield _raw("ADDED", "5")
            yield _raw("MODIFIED", "6")

        stream, fake = self._stream(monkeypatch, [first])
        events = stream.events()

        ev = next(events)
        assert ev.type == "ADDED"
        assert ev.object["metadata"] == {"name": "r1", "resourceVersion": "5"}
        assert fake.kwargs[0]["field_selector"] == "metadata.name=r1"
        assert "resource_version" not in fake.kwargs[0]

        stream.stop()
        assert list(events) == []
        assert fake.stopped

    def test_reconnects_from_last_resource_version(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def first() -> Iterator[object]:
            yield _raw("ADDED", "5")

        def second() -> Iterator[object]:
            yield _raw("MODIFIED", "7")

        stream, fake = self._stream(monkeypatch, [first, second])
        events = stream.events()

        assert next(events).type == "ADDED"
        assert next(events).type == "MODIFIED"
        assert fake.kwargs[1]["resource_version"] == "5"
        stream.stop()

    def test_expired_history_restarts(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def first() -> Iterator[object]:
            yield _raw("ADDED", "5")
            raise ApiException(status=410, reason="Gone")

        def second() -> Iterator[object]:
            yield _raw("MODIFIED", "9")

        stream, fake = self._stream(monkeypatch, [first, second])
        events = stream.events()

        assert next(events).type == "ADDED"
        assert next(events).type == "MODIFIED"
        assert "resource_version" not in fake.kwargs[1]
        stream.stop()

    def test_api_error_becomes_error_event(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def first() -> Iterator[object]:
            raise ApiException(status=403, reason="Forbidden")
            yield  # pragma: no cover

        stream, _ = self._stream(monkeypatch, [first])

        events = list(stream.events())

        assert len(events) == 1
        assert events[0].type == "ERROR"
        assert events[0].object == {"message": "403 Forbidden"}


class TestClientLoading:
    def test_incluster_failure_is_config_error(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def fail() -> None:
            raise ConfigException("Service host/port is not set.")

        monkeypatch.setattr(kube.config, "load_incluster_config", fail)

        result = load_api_client(tmp_path / "missing")

        assert isinstance(result, Err)
        assert result.error.kind == "config"
        assert result.error.hint == "pass --kubeconfig or set KUBECONFIG"

    def test_current_namespace(self, tmp_path: Path) -> None:
        path = tmp_path / "config"
        path.write_text(
            """\
apiVersion: v1
kind: Config
clusters:
- name: c
  cluster: {server: "https://api.example.com:6443"}
users:
- name: u
  user: {token: t}
contexts:
- name: ctx
  context: {cluster: c, user: u, namespace: tenant}
current-context: ctx
""",
            encoding="utf-8",
        )
        assert current_namespace(path) == "tenant"

    def test_current_namespace_defaults(self, tmp_path: Path) -> None:
        assert current_namespace(tmp_path / "missing") == "default"
        assert current_namespace(None) == "default"
