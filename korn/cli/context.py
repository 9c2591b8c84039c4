from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from korn.core.config import (
    Config,
    default_config_path,
    default_kubeconfig_path,
    load_config_or_default,
)
from korn.core.errors import ErrorCode
from korn.core.result import Err
from korn.konflux.context import KornContext
from korn.konflux.images import PodmanImageInspector
from korn.konflux.kube import KubeRecordStore, current_namespace
from korn.konflux.versions import GitVersionResolver
from korn.output.console import ConsoleProtocol, RichConsole, Style


@dataclass(frozen=True, slots=True)
class GlobalOptions:
    """Values of the root command flags, stored on the typer context object."""

    kubeconfig: Path | None = None
    namespace: str | None = None
    config_path: Path | None = None
    debug: bool = False


@dataclass(frozen=True, slots=True)
class CLIContext:
    korn: KornContext
    config: Config
    console: ConsoleProtocol

    @property
    def namespace(self) -> str:
        return self.korn.namespace


def global_options(ctx: typer.Context) -> GlobalOptions:
    return ctx.find_object(GlobalOptions) or GlobalOptions()


def _container_host() -> str | None:
    return os.environ.get("CONTAINER_HOST") or os.environ.get("DOCKER_HOST") or None


def build_context(options: GlobalOptions | None = None) -> CLIContext:
    options = options or GlobalOptions()
    console = RichConsole(debug=options.debug)

    config_path = options.config_path or default_config_path()
    config_result = load_config_or_default(config_path)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))
    config = config_result.value

    if options.kubeconfig is not None:
        kubeconfig = options.kubeconfig.expanduser()
    elif config.kubeconfig:
        kubeconfig = Path(config.kubeconfig).expanduser()
    else:
        kubeconfig = default_kubeconfig_path()

    namespace = options.namespace or config.namespace or current_namespace(kubeconfig)
    console.debug(f"using kubeconfig {kubeconfig}, namespace {namespace}")

    store = KubeRecordStore.from_kubeconfig(kubeconfig)
    if isinstance(store, Err):
        console.error(store.error.message)
        if store.error.hint:
            console.print(f"hint: {store.error.hint}", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

    korn = KornContext(
        store=store.value,
        images=PodmanImageInspector(
            os_name=config.image_os,
            arch=config.image_arch,
            remote_url=_container_host(),
            console=console,
        ),
        versions=GitVersionResolver(console=console),
        namespace=namespace,
        console=console,
    )
    return CLIContext(korn=korn, config=config, console=console)
