"""Load caller supplied release notes from a TOML or JSON file.

Example (TOML)::

    type = "RHSA"
    references = ["https://access.redhat.com/articles/1"]

    [issues]
    fixed = [{ id = "PROJ-1", source = "issues.redhat.com" }]

    [[cves]]
    key = "CVE-2024-1234"
    component = "demo-controller"
"""

from __future__ import annotations

import json
import tomllib
from collections.abc import Mapping
from pathlib import Path

from korn.core.result import Err, Ok, Result
from korn.core.structured import as_str_dict, get_list, get_str, get_table
from korn.konflux.errors import KornError
from korn.konflux.manifest import NotesInput
from korn.konflux.model import RELEASE_TYPES, ReleaseType


def parse_release_type(value: str) -> Result[ReleaseType, KornError]:
    for t in RELEASE_TYPES:
        if value == t:
            return Ok(t)
    return Err(
        KornError(
            kind="invalid_input",
            message=(
                f"invalid release type {value}: only {', '.join(RELEASE_TYPES)} are supported"
            ),
        )
    )


def parse_notes(data: Mapping[str, object]) -> Result[NotesInput, KornError]:
    rtype: ReleaseType | None = None
    raw_type = get_str(data, "type")
    if raw_type is not None:
        parsed = parse_release_type(raw_type)
        if isinstance(parsed, Err):
            return parsed
        rtype = parsed.value

    cves: list[dict[str, str]] = []
    for item in get_list(data, "cves") or []:
        d = as_str_dict(item)
        if d is None:
            return Err(KornError(kind="invalid_input", message="each CVE entry must be a table"))
        cves.append({k: str(v) for k, v in d.items()})

    references: list[str] = []
    for item in get_list(data, "references") or []:
        if not isinstance(item, str):
            return Err(KornError(kind="invalid_input", message="references must be strings"))
        references.append(item)

    return Ok(
        NotesInput(
            type=rtype,
            issues=get_table(data, "issues") or {},
            cves=tuple(cves),
            references=tuple(references),
        )
    )


def load_notes_file(path: Path) -> Result[NotesInput, KornError]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(KornError(kind="invalid_input", message=f"cannot read notes file {path}: {e}"))

    try:
        obj: object = tomllib.loads(text) if path.suffix == ".toml" else json.loads(text)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
        return Err(KornError(kind="invalid_input", message=f"invalid notes file {path}: {e}"))

    data = as_str_dict(obj)
    if data is None:
        return Err(
            KornError(kind="invalid_input", message=f"notes file {path} must hold a table")
        )
    return parse_notes(data)
