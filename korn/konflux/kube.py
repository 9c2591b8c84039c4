"""RecordStore backed by the Kubernetes API.

Konflux records are custom resources in the ``appstudio.redhat.com/v1alpha1``
group, served through ``CustomObjectsApi``. Client exceptions are converted
to ``KornError`` here so nothing above this module sees them.
"""

from __future__ import annotations

import builtins
import threading
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from kubernetes import client, config, watch
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from korn.core.result import Err, Ok, Result
from korn.core.structured import StrDict, as_obj_list, as_str_dict, get_str, get_table
from korn.konflux.errors import KornError
from korn.konflux.model import API_GROUP, API_VERSION
from korn.konflux.store import Kind, WatchEvent

__all__ = ["KubeRecordStore", "KubeWatchStream", "current_namespace", "load_api_client"]

# The server ends each watch request after this many seconds; the stream
# reconnects and checks whether it was stopped in between.
_WATCH_POLL_SECONDS = 30


def _selector(labels: Mapping[str, str] | None) -> str | None:
    if not labels:
        return None
    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))


def _api_error(action: str, e: ApiException) -> KornError:
    return KornError(
        kind="upstream",
        message=f"failed to {action}: {e.status} {e.reason}",
        hint=(e.body or None) if isinstance(e.body, str) else None,
    )


def _transport_error(action: str, e: Exception) -> KornError:
    return KornError(kind="upstream", message=f"failed to {action}: {e}")


def load_api_client(kubeconfig: Path | None) -> Result[client.ApiClient, KornError]:
    """Build an API client from a kubeconfig, falling back to in-cluster config."""
    try:
        if kubeconfig is not None and kubeconfig.exists():
            return Ok(config.new_client_from_config(config_file=str(kubeconfig)))
        config.load_incluster_config()
        return Ok(client.ApiClient())
    except (ConfigException, OSError) as e:
        return Err(
            KornError(
                kind="config",
                message=f"unable to load cluster configuration: {e}",
                hint="pass --kubeconfig or set KUBECONFIG",
            )
        )


def current_namespace(kubeconfig: Path | None) -> str:
    """Namespace of the active kubeconfig context, or ``default``."""
    if kubeconfig is None or not kubeconfig.exists():
        return "default"
    try:
        _, active = config.list_kube_config_contexts(config_file=str(kubeconfig))
    except (ConfigException, OSError):
        return "default"
    context = get_table(active, "context") if isinstance(active, dict) else None
    if context is None:
        return "default"
    return get_str(context, "namespace") or "default"


class KubeWatchStream:
    """Watch on a single custom object, stoppable from another thread."""

    def __init__(self, api: client.CustomObjectsApi, kind: Kind, namespace: str, name: str) -> None:
        self._api = api
        self._kind = kind
        self._namespace = namespace
        self._name = name
        self._stopped = threading.Event()
        self._watch = watch.Watch()

    def events(self) -> Iterator[WatchEvent]:
        resource_version: str | None = None
        while not self._stopped.is_set():
            kwargs: dict[str, Any] = {
                "field_selector": f"metadata.name={self._name}",
                "timeout_seconds": _WATCH_POLL_SECONDS,
            }
            if resource_version is not None:
                kwargs["resource_version"] = resource_version
            try:
                for raw in self._watch.stream(
                    self._api.list_namespaced_custom_object,
                    API_GROUP,
                    API_VERSION,
                    self._namespace,
                    self._kind.plural,
                    **kwargs,
                ):
                    if self._stopped.is_set():
                        return
                    event = as_str_dict(raw)
                    if event is None:
                        continue
                    obj = get_table(event, "object") or {}
                    meta = get_table(obj, "metadata") or {}
                    resource_version = get_str(meta, "resourceVersion") or resource_version
                    yield WatchEvent(type=get_str(event, "type") or "", object=obj)
            except ApiException as e:
                if e.status == 410:
                    # History expired; restart from the current state.
                    resource_version = None
                    continue
                yield WatchEvent(
                    type="ERROR",
                    object={"message": f"{e.status} {e.reason}"},
                )
                return
            except HTTPError as e:
                yield WatchEvent(type="ERROR", object={"message": str(e)})
                return

    def stop(self) -> None:
        self._stopped.set()
        self._watch.stop()


class KubeRecordStore:
    def __init__(self, api: client.CustomObjectsApi) -> None:
        self._api = api

    @classmethod
    def from_kubeconfig(cls, kubeconfig: Path | None) -> Result[KubeRecordStore, KornError]:
        api_client = load_api_client(kubeconfig)
        if isinstance(api_client, Err):
            return api_client
        return Ok(cls(client.CustomObjectsApi(api_client.value)))

    def list(
        self,
        kind: Kind,
        namespace: str,
        labels: Mapping[str, str] | None = None,
    ) -> Result[builtins.list[StrDict], KornError]:
        action = f"list {kind.plural} in {namespace}"
        try:
            resp: object = self._api.list_namespaced_custom_object(
                API_GROUP,
                API_VERSION,
                namespace,
                kind.plural,
                label_selector=_selector(labels),
            )
        except ApiException as e:
            return Err(_api_error(action, e))
        except HTTPError as e:
            return Err(_transport_error(action, e))

        body = as_str_dict(resp) or {}
        items: builtins.list[StrDict] = []
        for item in as_obj_list(body.get("items")) or []:
            d = as_str_dict(item)
            if d is not None:
                items.append(d)
        return Ok(items)

    def get(self, kind: Kind, namespace: str, name: str) -> Result[StrDict, KornError]:
        action = f"get {kind} {namespace}/{name}"
        try:
            resp: object = self._api.get_namespaced_custom_object(
                API_GROUP, API_VERSION, namespace, kind.plural, name
            )
        except ApiException as e:
            if e.status == 404:
                return Err(
                    KornError(
                        kind="not_found",
                        message=f"{kind} {name} not found in namespace {namespace}",
                    )
                )
            return Err(_api_error(action, e))
        except HTTPError as e:
            return Err(_transport_error(action, e))

        obj = as_str_dict(resp)
        if obj is None:
            return Err(KornError(kind="upstream", message=f"unexpected payload for {action}"))
        return Ok(obj)

    def create(
        self, kind: Kind, namespace: str, record: StrDict, *, dry_run: bool = False
    ) -> Result[StrDict, KornError]:
        action = f"create {kind} in {namespace}"
        try:
            resp: object = self._api.create_namespaced_custom_object(
                API_GROUP,
                API_VERSION,
                namespace,
                kind.plural,
                record,
                dry_run="All" if dry_run else None,
            )
        except ApiException as e:
            return Err(_api_error(action, e))
        except HTTPError as e:
            return Err(_transport_error(action, e))

        obj = as_str_dict(resp)
        if obj is None:
            return Err(KornError(kind="upstream", message=f"unexpected payload for {action}"))
        return Ok(obj)

    def watch(self, kind: Kind, namespace: str, name: str) -> Result[KubeWatchStream, KornError]:
        return Ok(KubeWatchStream(self._api, kind, namespace, name))
