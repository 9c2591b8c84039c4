"""Resolve the semantic version a snapshot component was built from.

The version of a component at a given revision is the content of
``VERSION.txt`` at the root of its repository. Resolution clones each
repository once per batch; ``resolving_versions`` guarantees the clones are
removed when the batch ends, whatever the outcome.
"""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from korn.core.result import Err, Ok, Result
from korn.konflux.errors import KornError
from korn.konflux.semver import SemVer, parse_tolerant
from korn.konflux.timeouts import GIT_CLONE_TIMEOUT_SECONDS, GIT_TIMEOUT_SECONDS
from korn.output.console import ConsoleProtocol
from korn.platform.process import run as run_process

__all__ = ["GitVersionResolver", "VERSION_FILE", "VersionResolver", "resolving_versions"]

VERSION_FILE = "VERSION.txt"


class VersionResolver(Protocol):
    def resolve_version(self, repo_url: str, revision: str) -> Result[SemVer, KornError]: ...

    def cleanup(self) -> None:
        """Release scratch resources acquired by ``resolve_version``."""
        ...


@contextmanager
def resolving_versions(resolver: VersionResolver) -> Iterator[VersionResolver]:
    """Scope a batch of resolutions; ``cleanup`` runs exactly once on exit."""
    try:
        yield resolver
    finally:
        resolver.cleanup()


def normalize_repo_url(repo_url: str) -> str:
    return repo_url.removesuffix(".git")


class GitVersionResolver:
    def __init__(self, *, console: ConsoleProtocol | None = None) -> None:
        self._clones: dict[str, Path] = {}
        self._console = console

    def _clone(self, repo_url: str) -> Result[Path, KornError]:
        key = normalize_repo_url(repo_url)
        existing = self._clones.get(key)
        if existing is not None:
            return Ok(existing)

        target = Path(tempfile.mkdtemp(prefix="korn-git-"))
        # Register before cloning so a failed clone is cleaned up too.
        self._clones[key] = target
        if self._console is not None:
            self._console.debug(f"cloning repository {repo_url}")
        cloned = run_process(
            ["git", "clone", "--quiet", "--no-checkout", repo_url, str(target)],
            timeout=GIT_CLONE_TIMEOUT_SECONDS,
        )
        if isinstance(cloned, Err):
            return Err(
                KornError(
                    kind="upstream",
                    message=f"failed to clone {repo_url}",
                    hint=cloned.error.stderr.strip() or None,
                )
            )
        return Ok(target)

    def resolve_version(self, repo_url: str, revision: str) -> Result[SemVer, KornError]:
        clone = self._clone(repo_url)
        if isinstance(clone, Err):
            return clone

        shown = run_process(
            ["git", "show", f"{revision}:{VERSION_FILE}"],
            cwd=clone.value,
            timeout=GIT_TIMEOUT_SECONDS,
        )
        if isinstance(shown, Err):
            return Err(
                KornError(
                    kind="upstream",
                    message=f"failed to fetch file content: {VERSION_FILE} at {revision} in {repo_url}",
                    hint=shown.error.stderr.strip() or None,
                )
            )

        version = parse_tolerant(shown.value)
        if version is None:
            return Err(
                KornError(
                    kind="invalid_version",
                    message=(
                        f"invalid version {shown.value.strip()!r} in {VERSION_FILE} "
                        f"at {revision} in {repo_url}"
                    ),
                )
            )
        return Ok(version)

    def cleanup(self) -> None:
        for repo, path in self._clones.items():
            if self._console is not None:
                self._console.debug(f"cleaning up git clone directory for {repo} on {path}")
            shutil.rmtree(path, ignore_errors=True)
        self._clones.clear()
