from __future__ import annotations

import json
from pathlib import Path

import pytest
import typer

from korn.cli.commands import create as create_cmd
from korn.cli.context import CLIContext
from korn.core.config import Config
from korn.core.errors import ErrorCode
from korn.core.result import Ok
from korn.konflux import labels
from korn.konflux.tracker import ReleaseTimedOut
from korn.output.console import MockConsole
from korn.test.fakes import (
    FakeImageInspector,
    FakeRecordStore,
    demo_images,
    demo_snapshot,
    demo_store,
    event,
    make_context,
    release,
    typer_context,
)

RELEASE_NAME = "demo-staging-00001"


def _ctx(
    store: FakeRecordStore,
    images: FakeImageInspector | None = None,
    config: Config | None = None,
) -> CLIContext:
    console = MockConsole()
    return CLIContext(
        korn=make_context(store, images or demo_images(), console=console),
        config=config or Config(),
        console=console,
    )


def _run(
    monkeypatch: pytest.MonkeyPatch,
    ctx: CLIContext,
    *,
    env: str | None = None,
    snapshot: str | None = None,
    sha: str | None = None,
    force: bool = False,
    dry_run: bool = False,
    wait: bool = True,
    timeout: int | None = None,
    release_type: str | None = None,
    notes_file: Path | None = None,
) -> None:
    monkeypatch.setattr(create_cmd, "build_context", lambda _options: ctx)
    create_cmd.create_release_cmd(
        typer_context(),
        app="demo",
        env=env,
        snapshot=snapshot,
        sha=sha,
        force=force,
        dry_run=dry_run,
        wait=wait,
        timeout=timeout,
        release_type=release_type,
        notes_file=notes_file,
    )


def _console(ctx: CLIContext) -> MockConsole:
    assert isinstance(ctx.console, MockConsole)
    return ctx.console


def test_dry_run_prints_manifest_without_creating(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    store = demo_store(demo_snapshot("demo-snap-1", minute=1))

    _run(monkeypatch, _ctx(store), dry_run=True)

    manifest = json.loads(capsys.readouterr().out)
    assert manifest["kind"] == "Release"
    assert manifest["metadata"]["generateName"] == "demo-staging-"
    assert manifest["spec"]["snapshot"] == "demo-snap-1"
    assert manifest["spec"]["releasePlan"] == "demo-staging"
    assert manifest["spec"]["data"] == {"releaseNotes": {"type": "RHBA"}}
    assert store.created == []


def test_production_environment_uses_its_plan(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    store = demo_store(demo_snapshot("demo-snap-1", minute=1))

    _run(monkeypatch, _ctx(store), env="production", dry_run=True)

    manifest = json.loads(capsys.readouterr().out)
    assert manifest["spec"]["releasePlan"] == "demo-production"
    assert manifest["metadata"]["generateName"] == "demo-production-"


def test_environment_default_comes_from_config(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    store = demo_store(demo_snapshot("demo-snap-1", minute=1))

    _run(monkeypatch, _ctx(store, config=Config(environment="production")), dry_run=True)

    manifest = json.loads(capsys.readouterr().out)
    assert manifest["spec"]["releasePlan"] == "demo-production"


def test_release_type_and_notes_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    notes = tmp_path / "notes.toml"
    notes.write_text(
        'references = ["https://example.com/advisory"]\n'
        "[[cves]]\n"
        'key = "CVE-2024-0001"\n'
        'component = "demo-controller"\n',
        encoding="utf-8",
    )
    store = demo_store(demo_snapshot("demo-snap-1", minute=1))

    _run(monkeypatch, _ctx(store), dry_run=True, release_type="RHSA", notes_file=notes)

    release_notes = json.loads(capsys.readouterr().out)["spec"]["data"]["releaseNotes"]
    assert release_notes == {
        "type": "RHSA",
        "cves": [{"key": "CVE-2024-0001", "component": "demo-controller"}],
        "references": ["https://example.com/advisory"],
    }


def test_invalid_release_type_exits(monkeypatch: pytest.MonkeyPatch) -> None:
    ctx = _ctx(demo_store(demo_snapshot("demo-snap-1", minute=1)))

    with pytest.raises(typer.Exit) as exc:
        _run(monkeypatch, ctx, dry_run=True, release_type="RHXA")

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)
    assert _console(ctx).has_error()


def test_snapshot_and_sha_are_exclusive(monkeypatch: pytest.MonkeyPatch) -> None:
    ctx = _ctx(demo_store())

    with pytest.raises(typer.Exit) as exc:
        _run(monkeypatch, ctx, snapshot="demo-snap-1", sha="aaa")

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)
    assert _console(ctx).messages == ["error: --snapshot and --sha are mutually exclusive"]


def test_explicit_snapshot_skips_selection(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    store = demo_store(
        demo_snapshot("demo-snap-1", minute=1),
        demo_snapshot("demo-snap-2", minute=2, finished=False),
    )

    _run(monkeypatch, _ctx(store), snapshot="demo-snap-2", dry_run=True)

    assert json.loads(capsys.readouterr().out)["spec"]["snapshot"] == "demo-snap-2"


def test_no_candidate_exits_not_found(monkeypatch: pytest.MonkeyPatch) -> None:
    ctx = _ctx(demo_store(demo_snapshot("demo-snap-1", minute=1, finished=False)))

    with pytest.raises(typer.Exit) as exc:
        _run(monkeypatch, ctx)

    assert exc.value.exit_code == int(ErrorCode.NOT_FOUND)
    assert any("no new valid snapshot candidates" in m for m in _console(ctx).messages)


def test_no_wait_creates_and_prints_hint(monkeypatch: pytest.MonkeyPatch) -> None:
    store = demo_store(demo_snapshot("demo-snap-1", minute=1))
    ctx = _ctx(store)

    _run(monkeypatch, ctx, wait=False)

    assert len(store.created) == 1
    messages = _console(ctx).messages
    assert f"OK release demo-ns/{RELEASE_NAME} created for snapshot demo-snap-1" in messages
    assert messages[-1] == f"korn waitfor release {RELEASE_NAME}"


def test_waits_for_success(monkeypatch: pytest.MonkeyPatch) -> None:
    store = demo_store(demo_snapshot("demo-snap-1", minute=1))
    store.watch_for(
        RELEASE_NAME,
        event("MODIFIED", release(RELEASE_NAME, "demo-snap-1", reason=labels.PROGRESSING_REASON)),
        event("MODIFIED", release(RELEASE_NAME, "demo-snap-1")),
    )
    ctx = _ctx(store)

    _run(monkeypatch, ctx)

    assert f"OK release demo-ns/{RELEASE_NAME} succeeded" in _console(ctx).messages


def test_failed_release_exits(monkeypatch: pytest.MonkeyPatch) -> None:
    store = demo_store(demo_snapshot("demo-snap-1", minute=1))
    store.watch_for(
        RELEASE_NAME,
        event(
            "MODIFIED",
            release(
                RELEASE_NAME,
                "demo-snap-1",
                reason=labels.FAILED_REASON,
                message="Release processing failed on managed pipelineRun",
            ),
        ),
    )
    ctx = _ctx(store)

    with pytest.raises(typer.Exit) as exc:
        _run(monkeypatch, ctx)

    assert exc.value.exit_code == int(ErrorCode.RELEASE_FAILED)
    assert (
        f"error: release demo-ns/{RELEASE_NAME} failed: "
        "Release processing failed on managed pipelineRun"
    ) in _console(ctx).messages


def test_timeout_minutes_reach_the_tracker(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[float] = []

    def fake_await(_ctx: object, name: str, timeout_seconds: float) -> Ok[ReleaseTimedOut]:
        seen.append(timeout_seconds)
        return Ok(ReleaseTimedOut(release_name=name, elapsed_seconds=timeout_seconds))

    monkeypatch.setattr(create_cmd, "await_completion", fake_await)
    ctx = _ctx(demo_store(demo_snapshot("demo-snap-1", minute=1)))

    _run(monkeypatch, ctx, timeout=2)

    assert seen == [120]
    assert _console(ctx).has_warning()
