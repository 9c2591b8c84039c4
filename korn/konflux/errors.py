"""Error type for every korn operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from korn.core.errors import ErrorCode

KornErrorKind = Literal[
    "config",
    "not_found",
    "no_candidate",
    "invalid_version",
    "invalid_input",
    "upstream",
    "release_failed",
    "deleted",
]


@dataclass(frozen=True, slots=True)
class KornError:
    """Canonical error payload.

    ``config`` marks broken platform wiring (missing labels, duplicate bundle
    components, missing release plans); it is never retried. ``upstream``
    wraps a failure of the cluster, the registry or a git remote.
    """

    kind: KornErrorKind
    message: str
    hint: str | None = None

    def exit_code(self) -> ErrorCode:
        match self.kind:
            case "config" | "invalid_version":
                return ErrorCode.CONFIG_ERROR
            case "not_found" | "no_candidate":
                return ErrorCode.NOT_FOUND
            case "upstream":
                return ErrorCode.UPSTREAM_ERROR
            case "release_failed" | "deleted":
                return ErrorCode.RELEASE_FAILED
            case "invalid_input":
                return ErrorCode.USER_ERROR
        return ErrorCode.USER_ERROR
