"""Wait for a Release to finish.

The release pipeline runs asynchronously in the cluster. ``await_completion``
watches the one Release until its ``Released`` condition reaches a terminal
reason. A timer closes the watch when the wait budget is spent; running out
of time is reported as an outcome, not an error, because the release may
still succeed after we stop watching.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from korn.core.result import Err, Ok, Result
from korn.core.structured import get_str
from korn.konflux import labels
from korn.konflux.context import KornContext
from korn.konflux.errors import KornError
from korn.konflux.model import Release
from korn.konflux.store import Kind
from korn.output.console import Style

__all__ = [
    "CompletionOutcome",
    "ReleaseSucceeded",
    "ReleaseTimedOut",
    "Timer",
    "TimerFactory",
    "await_completion",
    "failure_message",
]


class Timer(Protocol):
    daemon: bool

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


@dataclass(frozen=True, slots=True)
class ReleaseSucceeded:
    release: Release
    artifacts: object


@dataclass(frozen=True, slots=True)
class ReleaseTimedOut:
    release_name: str
    elapsed_seconds: float


CompletionOutcome = ReleaseSucceeded | ReleaseTimedOut


def failure_message(release: Release) -> str:
    """Best available explanation of a failed release.

    A failed pipeline condition carries the pipeline's own diagnostic, which
    is more useful than the generic ``Released`` message.
    """
    released = release.released
    message = released.message if released is not None else ""
    for c in release.conditions:
        if c.type == labels.MANAGED_PIPELINE_CONDITION and c.reason == labels.FAILED_REASON:
            if c.message:
                return c.message
    for c in release.conditions:
        if (
            c.type.endswith(labels.PIPELINE_CONDITION_SUFFIX)
            and c.reason == labels.FAILED_REASON
            and c.message
        ):
            return c.message
    return message or "no failure message reported"


def _format_elapsed(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    if minutes:
        return f"{minutes}m{secs:02d}s"
    return f"{secs}s"


def await_completion(
    ctx: KornContext,
    release_name: str,
    timeout_seconds: float,
    *,
    timer_factory: TimerFactory = threading.Timer,
    clock: Callable[[], float] = time.monotonic,
) -> Result[CompletionOutcome, KornError]:
    """Watch ``release_name`` until it succeeds, fails or the timeout fires.

    Returns:
        Ok(ReleaseSucceeded) with the decoded artifacts,
        Ok(ReleaseTimedOut) when the timer closed the watch first,
        Err(release_failed) when the pipeline failed,
        Err(deleted) when the release disappeared or the watch closed on its own.
    """
    opened = ctx.store.watch(Kind.RELEASE, ctx.namespace, release_name)
    if isinstance(opened, Err):
        return opened
    stream = opened.value

    expired = threading.Event()

    def _expire() -> None:
        expired.set()
        stream.stop()

    timer = timer_factory(timeout_seconds, _expire)
    timer.daemon = True
    started = clock()
    timer.start()
    ctx.console.print(
        f"waiting for release {ctx.namespace}/{release_name} "
        f"(timeout {_format_elapsed(timeout_seconds)})",
        Style.DIM,
    )

    try:
        for event in stream.events():
            if event.type == "DELETED":
                return Err(
                    KornError(
                        kind="deleted",
                        message=f"release {ctx.namespace}/{release_name}: object was deleted",
                    )
                )
            if event.type == "ERROR":
                return Err(
                    KornError(
                        kind="upstream",
                        message=f"watch on release {ctx.namespace}/{release_name} failed",
                        hint=get_str(event.object, "message"),
                    )
                )

            release = Release.from_dict(event.object)
            if release.name and release.name != release_name:
                continue

            released = release.released
            if released is None:
                ctx.console.debug(f"release {release_name} has no Released condition yet")
                continue

            match released.reason:
                case labels.FAILED_REASON:
                    return Err(
                        KornError(
                            kind="release_failed",
                            message=(
                                f"release {ctx.namespace}/{release_name} failed: "
                                f"{failure_message(release)}"
                            ),
                        )
                    )
                case labels.SUCCEEDED_REASON:
                    return Ok(ReleaseSucceeded(release=release, artifacts=release.artifacts))
                case labels.PROGRESSING_REASON:
                    ctx.console.print(
                        f"release {release_name} in progress "
                        f"({_format_elapsed(clock() - started)} elapsed)",
                        Style.DIM,
                    )
                case other:
                    ctx.console.debug(f"release {release_name} condition reason {other!r}")
    finally:
        timer.cancel()
        stream.stop()

    if expired.is_set():
        return Ok(ReleaseTimedOut(release_name=release_name, elapsed_seconds=clock() - started))
    return Err(
        KornError(
            kind="deleted",
            message=(
                f"release {ctx.namespace}/{release_name}: watch closed before completion, "
                "object was deleted"
            ),
        )
    )
