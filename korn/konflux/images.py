"""Container image metadata.

Candidate validation and manifest generation only need an image's labels.
The podman adapter pulls the image, reads its labels and removes it again;
nothing is cached between calls because an image can be rebuilt at the
same tag.
"""

from __future__ import annotations

import json
from typing import Protocol

from korn.core.result import Err, Ok, Result
from korn.core.structured import as_obj_list, as_str_dict, get_str_map, get_table
from korn.konflux.errors import KornError
from korn.konflux.timeouts import IMAGE_INSPECT_TIMEOUT_SECONDS, IMAGE_PULL_TIMEOUT_SECONDS
from korn.output.console import ConsoleProtocol
from korn.platform.process import run as run_process

__all__ = ["ImageInspector", "PodmanImageInspector", "digest_suffix"]

_DIGEST_MARKER = "@sha256:"


def digest_suffix(pullspec: str) -> str:
    """Return the ``@sha256:...`` tail of a pullspec.

    Registry host and repository path differ between the bundle's view and
    the snapshot's view of the same image, only the digest is comparable.
    A pullspec without a digest is returned unchanged.
    """
    idx = pullspec.rfind(_DIGEST_MARKER)
    if idx < 0:
        return pullspec
    return pullspec[idx:]


class ImageInspector(Protocol):
    def inspect(self, image: str) -> Result[dict[str, str], KornError]:
        """Return the label map of ``image``."""
        ...


class PodmanImageInspector:
    """Read image labels through the podman CLI."""

    def __init__(
        self,
        *,
        os_name: str = "linux",
        arch: str = "amd64",
        remote_url: str | None = None,
        console: ConsoleProtocol | None = None,
    ) -> None:
        self._os = os_name
        self._arch = arch
        self._remote_url = remote_url
        self._console = console

    def _cmd(self, *args: str) -> list[str]:
        cmd = ["podman"]
        if self._remote_url:
            cmd.extend(["--url", self._remote_url])
        cmd.extend(args)
        return cmd

    def inspect(self, image: str) -> Result[dict[str, str], KornError]:
        if self._console is not None:
            self._console.debug(f"pulling image {image}")
        pulled = run_process(
            self._cmd("pull", "--quiet", "--os", self._os, "--arch", self._arch, image),
            timeout=IMAGE_PULL_TIMEOUT_SECONDS,
        )
        if isinstance(pulled, Err):
            return Err(
                KornError(
                    kind="upstream",
                    message=f"failed to inspect image {image}: pull failed",
                    hint=pulled.error.stderr.strip() or None,
                )
            )

        lines = [ln.strip() for ln in pulled.value.splitlines() if ln.strip()]
        if not lines:
            return Err(
                KornError(kind="upstream", message=f"failed to inspect image {image}: no image id")
            )
        image_id = lines[-1]

        try:
            return self._read_labels(image, image_id)
        finally:
            removed = run_process(
                self._cmd("rmi", "--force", image_id), timeout=IMAGE_INSPECT_TIMEOUT_SECONDS
            )
            if isinstance(removed, Err) and self._console is not None:
                self._console.debug(f"failed to remove image {image_id}: {removed.error}")

    def _read_labels(self, image: str, image_id: str) -> Result[dict[str, str], KornError]:
        inspected = run_process(
            self._cmd("image", "inspect", image_id), timeout=IMAGE_INSPECT_TIMEOUT_SECONDS
        )
        if isinstance(inspected, Err):
            return Err(
                KornError(
                    kind="upstream",
                    message=f"failed to inspect image {image}",
                    hint=inspected.error.stderr.strip() or None,
                )
            )
        return parse_inspect_labels(image, inspected.value)


def parse_inspect_labels(image: str, payload: str) -> Result[dict[str, str], KornError]:
    """Extract labels from ``podman image inspect`` JSON output."""
    try:
        obj: object = json.loads(payload)
    except json.JSONDecodeError as e:
        return Err(
            KornError(kind="upstream", message=f"failed to inspect image {image}: invalid JSON: {e}")
        )

    items = as_obj_list(obj)
    report = as_str_dict(items[0]) if items else as_str_dict(obj)
    if report is None:
        return Err(
            KornError(kind="upstream", message=f"failed to inspect image {image}: empty report")
        )

    found = get_str_map(report, "Labels")
    if not found:
        config = get_table(report, "Config") or {}
        found = get_str_map(config, "Labels")
    return Ok(found)
