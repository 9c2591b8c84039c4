"""Typed views of the Konflux records korn works with.

Each record decodes straight from the Kubernetes object mapping returned by
the record store (``from_dict``). Records korn creates also encode back
(``to_dict``). Fields korn does not use are not modelled.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from korn.core.structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_list,
    get_str,
    get_str_map,
    get_table,
)
from korn.konflux import labels

API_GROUP = "appstudio.redhat.com"
API_VERSION = "v1alpha1"

ReleaseType = Literal["RHEA", "RHBA", "RHSA"]

FEATURE_RELEASE: ReleaseType = "RHEA"
BUGFIX_RELEASE: ReleaseType = "RHBA"
SECURITY_RELEASE: ReleaseType = "RHSA"
RELEASE_TYPES: tuple[ReleaseType, ...] = (FEATURE_RELEASE, BUGFIX_RELEASE, SECURITY_RELEASE)


def _parse_timestamp(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class Metadata:
    name: str
    namespace: str
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    creation_timestamp: datetime | None = None
    generate_name: str | None = None

    @classmethod
    def from_dict(cls, obj: Mapping[str, object]) -> Metadata:
        meta = get_table(obj, "metadata") or {}
        return cls(
            name=get_str(meta, "name") or "",
            namespace=get_str(meta, "namespace") or "",
            labels=get_str_map(meta, "labels"),
            annotations=get_str_map(meta, "annotations"),
            creation_timestamp=_parse_timestamp(get_str(meta, "creationTimestamp")),
            generate_name=get_str(meta, "generateName"),
        )

    def to_dict(self) -> StrDict:
        out: StrDict = {"namespace": self.namespace}
        if self.name:
            out["name"] = self.name
        if self.generate_name:
            out["generateName"] = self.generate_name
        if self.labels:
            out["labels"] = dict(self.labels)
        if self.annotations:
            out["annotations"] = dict(self.annotations)
        created = _format_timestamp(self.creation_timestamp)
        if created is not None:
            out["creationTimestamp"] = created
        return out


@dataclass(frozen=True, slots=True)
class Condition:
    type: str
    status: str = "Unknown"
    reason: str = ""
    message: str = ""

    @classmethod
    def from_dict(cls, obj: Mapping[str, object]) -> Condition:
        return cls(
            type=get_str(obj, "type") or "",
            status=get_str(obj, "status") or "Unknown",
            reason=get_str(obj, "reason") or "",
            message=get_str(obj, "message") or "",
        )

    def to_dict(self) -> StrDict:
        return {
            "type": self.type,
            "status": self.status,
            "reason": self.reason,
            "message": self.message,
        }


def _conditions(obj: Mapping[str, object]) -> tuple[Condition, ...]:
    status = get_table(obj, "status") or {}
    raw = get_list(status, "conditions") or []
    out: list[Condition] = []
    for item in raw:
        d = as_str_dict(item)
        if d is not None:
            out.append(Condition.from_dict(d))
    return tuple(out)


def find_condition(conditions: tuple[Condition, ...], type_: str) -> Condition | None:
    for c in conditions:
        if c.type == type_:
            return c
    return None


@dataclass(frozen=True, slots=True)
class Application:
    metadata: Metadata

    KIND = "Application"

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def app_type(self) -> str | None:
        return self.metadata.labels.get(labels.APPLICATION_TYPE_LABEL)

    @classmethod
    def from_dict(cls, obj: Mapping[str, object]) -> Application:
        return cls(metadata=Metadata.from_dict(obj))

    def to_dict(self) -> StrDict:
        return {
            "apiVersion": f"{API_GROUP}/{API_VERSION}",
            "kind": self.KIND,
            "metadata": self.metadata.to_dict(),
            "spec": {"displayName": self.name},
        }


@dataclass(frozen=True, slots=True)
class Component:
    metadata: Metadata
    application: str

    KIND = "Component"

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def is_bundle(self) -> bool:
        return self.metadata.labels.get(labels.COMPONENT_TYPE_LABEL) == labels.BUNDLE_COMPONENT_TYPE

    @property
    def bundle_reference(self) -> str | None:
        """Alias under which the bundle image records this component's pullspec."""
        return self.metadata.labels.get(labels.BUNDLE_REFERENCE_LABEL)

    @classmethod
    def from_dict(cls, obj: Mapping[str, object]) -> Component:
        spec = get_table(obj, "spec") or {}
        return cls(
            metadata=Metadata.from_dict(obj),
            application=get_str(spec, "application") or "",
        )

    def to_dict(self) -> StrDict:
        return {
            "apiVersion": f"{API_GROUP}/{API_VERSION}",
            "kind": self.KIND,
            "metadata": self.metadata.to_dict(),
            "spec": {"application": self.application, "componentName": self.name},
        }


@dataclass(frozen=True, slots=True)
class GitSource:
    url: str
    revision: str


@dataclass(frozen=True, slots=True)
class SnapshotComponent:
    name: str
    container_image: str
    git_source: GitSource | None = None

    @classmethod
    def from_dict(cls, obj: Mapping[str, object]) -> SnapshotComponent:
        git: GitSource | None = None
        source = get_table(obj, "source") or {}
        git_tbl = get_table(source, "git")
        if git_tbl is not None:
            url = get_str(git_tbl, "url")
            revision = get_str(git_tbl, "revision")
            if url is not None and revision is not None:
                git = GitSource(url=url, revision=revision)
        return cls(
            name=get_str(obj, "name") or "",
            container_image=get_str(obj, "containerImage") or "",
            git_source=git,
        )

    def to_dict(self) -> StrDict:
        out: StrDict = {"name": self.name, "containerImage": self.container_image}
        if self.git_source is not None:
            out["source"] = {
                "git": {"url": self.git_source.url, "revision": self.git_source.revision}
            }
        return out


@dataclass(frozen=True, slots=True)
class Snapshot:
    metadata: Metadata
    application: str
    components: tuple[SnapshotComponent, ...] = ()
    conditions: tuple[Condition, ...] = ()

    KIND = "Snapshot"

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def sha(self) -> str:
        return self.metadata.labels.get(labels.SHA_LABEL, "")

    @property
    def commit_title(self) -> str:
        return self.metadata.annotations.get(labels.SHA_TITLE_ANNOTATION, "")

    @property
    def test_status(self) -> str:
        c = find_condition(self.conditions, labels.TEST_SUCCEEDED_CONDITION)
        return c.reason if c is not None else ""

    def has_finished(self) -> bool:
        """True once integration tests report ``Finished``."""
        return any(
            c.type == labels.TEST_SUCCEEDED_CONDITION and c.reason == labels.TEST_FINISHED_REASON
            for c in self.conditions
        )

    def image_for(self, component_name: str) -> str | None:
        for c in self.components:
            if c.name == component_name:
                return c.container_image
        return None

    @classmethod
    def from_dict(cls, obj: Mapping[str, object]) -> Snapshot:
        spec = get_table(obj, "spec") or {}
        comps: list[SnapshotComponent] = []
        for item in get_list(spec, "components") or []:
            d = as_str_dict(item)
            if d is not None:
                comps.append(SnapshotComponent.from_dict(d))
        return cls(
            metadata=Metadata.from_dict(obj),
            application=get_str(spec, "application") or "",
            components=tuple(comps),
            conditions=_conditions(obj),
        )

    def to_dict(self) -> StrDict:
        return {
            "apiVersion": f"{API_GROUP}/{API_VERSION}",
            "kind": self.KIND,
            "metadata": self.metadata.to_dict(),
            "spec": {
                "application": self.application,
                "components": [c.to_dict() for c in self.components],
            },
            "status": {"conditions": [c.to_dict() for c in self.conditions]},
        }


@dataclass(frozen=True, slots=True)
class ReleasePlan:
    metadata: Metadata
    application: str
    admission_name: str = ""
    admission_active: bool = False

    KIND = "ReleasePlan"

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def environment(self) -> str:
        return self.metadata.labels.get(labels.ENVIRONMENT_LABEL, "")

    @classmethod
    def from_dict(cls, obj: Mapping[str, object]) -> ReleasePlan:
        spec = get_table(obj, "spec") or {}
        status = get_table(obj, "status") or {}
        rpa = get_table(status, "releasePlanAdmission") or {}
        return cls(
            metadata=Metadata.from_dict(obj),
            application=get_str(spec, "application") or "",
            admission_name=get_str(rpa, "name") or "",
            admission_active=get_bool(rpa, "active") or False,
        )

    def to_dict(self) -> StrDict:
        return {
            "apiVersion": f"{API_GROUP}/{API_VERSION}",
            "kind": self.KIND,
            "metadata": self.metadata.to_dict(),
            "spec": {"application": self.application},
            "status": {
                "releasePlanAdmission": {
                    "name": self.admission_name,
                    "active": self.admission_active,
                }
            },
        }


def _empty_issues() -> dict[str, object]:
    return {}


@dataclass(frozen=True, slots=True)
class ReleaseNotes:
    """Release notes carried in ``spec.data.releaseNotes``."""

    type: ReleaseType
    issues: dict[str, object] = field(default_factory=_empty_issues)
    cves: tuple[dict[str, str], ...] = ()
    references: tuple[str, ...] = ()

    def to_dict(self) -> StrDict:
        out: StrDict = {"type": self.type}
        if self.issues:
            out["issues"] = dict(self.issues)
        if self.cves:
            out["cves"] = [dict(c) for c in self.cves]
        if self.references:
            out["references"] = list(self.references)
        return out

    def payload(self) -> StrDict:
        return {"releaseNotes": self.to_dict()}


@dataclass(frozen=True, slots=True)
class Release:
    metadata: Metadata
    snapshot: str
    release_plan: str
    data: StrDict | None = None
    conditions: tuple[Condition, ...] = ()
    artifacts: object = None

    KIND = "Release"

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def released(self) -> Condition | None:
        return find_condition(self.conditions, labels.RELEASED_CONDITION)

    @property
    def status(self) -> str:
        c = self.released
        return c.reason if c is not None else ""

    def has_succeeded(self) -> bool:
        c = self.released
        return c is not None and c.reason == labels.SUCCEEDED_REASON

    def notes_type(self) -> str | None:
        if self.data is None:
            return None
        notes = get_table(self.data, "releaseNotes") or {}
        return get_str(notes, "type")

    @classmethod
    def from_dict(cls, obj: Mapping[str, object]) -> Release:
        spec = get_table(obj, "spec") or {}
        status = get_table(obj, "status") or {}
        return cls(
            metadata=Metadata.from_dict(obj),
            snapshot=get_str(spec, "snapshot") or "",
            release_plan=get_str(spec, "releasePlan") or "",
            data=get_table(spec, "data"),
            conditions=_conditions(obj),
            artifacts=status.get("artifacts"),
        )

    def to_dict(self) -> StrDict:
        spec: StrDict = {"snapshot": self.snapshot, "releasePlan": self.release_plan}
        if self.data is not None:
            spec["data"] = self.data
        out: StrDict = {
            "apiVersion": f"{API_GROUP}/{API_VERSION}",
            "kind": self.KIND,
            "metadata": self.metadata.to_dict(),
            "spec": spec,
        }
        if self.conditions or self.artifacts is not None:
            status: StrDict = {"conditions": [c.to_dict() for c in self.conditions]}
            if self.artifacts is not None:
                status["artifacts"] = self.artifacts
            out["status"] = status
        return out
