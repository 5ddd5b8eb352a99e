from __future__ import annotations

from functools import partial
from pathlib import Path

import anyio
import typer

from . import __version__
from .config import ConfigError
from .discord.client import run_bot
from .discovery import MODULE_KINDS, DiscoveredModule
from .host import HostContext, OfflineClient
from .loader import LoadResult
from .logging import setup_logging
from .settings import TomteSettings, load_settings_or_env

_KIND_TITLES = {"command": "commands", "addon": "addons"}


def _print_version_and_exit() -> None:
    typer.echo(__version__)
    raise typer.Exit()


def _version_callback(value: bool) -> None:
    if value:
        _print_version_and_exit()


def _load_settings(config: Path | None) -> tuple[TomteSettings, Path | None]:
    try:
        return load_settings_or_env(config)
    except ConfigError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1) from e


def _resolve_root(
    settings: TomteSettings, config_path: Path | None, root: Path | None
) -> Path:
    if root is not None:
        return root.expanduser()
    return settings.addons_root(config_path=config_path)


def _describe(module: DiscoveredModule) -> str:
    line = f"  {module.display_name} (priority {module.priority}, {module.entry_path.name})"
    if module.is_extension:
        line += f" extension of {module.parent}"
    return line


def _describe_result(result: LoadResult) -> str:
    if result.success:
        details = f"{result.interaction_count} handlers"
        if result.kind == "command":
            details = f"{result.command_count} cmd, {details}"
        return f"  ok      {result.name}: {result.elapsed_ms}ms ({details})"
    status = "skipped" if result.skipped else "failed"
    return f"  {status:<7} {result.name}: {result.error}"


ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to tomte.toml (default: ~/.tomte/tomte.toml).",
)
RootOption = typer.Option(
    None,
    "--root",
    help="Addons directory (default: [addons].root from the config).",
)


def run(
    config: Path | None = ConfigOption,
    debug: bool = typer.Option(
        False,
        "--debug/--no-debug",
        help="Log per-module load details and full tracebacks.",
    ),
) -> None:
    """Connect to Discord and host the configured addons."""
    settings, config_path = _load_settings(config)
    setup_logging(debug=debug or settings.debug)

    try:
        anyio.run(partial(run_bot, settings, config_path=config_path))
    except ConfigError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1) from e
    except KeyboardInterrupt:
        raise typer.Exit(code=130) from None


def addons(
    config: Path | None = ConfigOption,
    root: Path | None = RootOption,
) -> None:
    """List discovered addon modules and rejected descriptors."""
    settings, config_path = _load_settings(config)
    setup_logging(debug=settings.debug)
    addons_root = _resolve_root(settings, config_path, root)

    host = HostContext(root=addons_root, enabled=True)
    report = host.discover()
    typer.echo(f"addons root: {addons_root}")
    for kind in MODULE_KINDS:
        typer.echo(f"{_KIND_TITLES[kind]}:")
        modules = report.of(kind)
        if not modules:
            typer.echo("  (none)")
        for module in modules:
            typer.echo(_describe(module))
    if report.rejected:
        typer.echo("rejected:")
        for rejection in report.rejected:
            typer.echo(f"  {rejection.label}: {'; '.join(rejection.reasons)}")


async def _check(host: HostContext) -> list[LoadResult]:
    await host.load_intents()
    return await host.load_all()


def check(
    config: Path | None = ConfigOption,
    root: Path | None = RootOption,
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        min=0.1,
        help="Per-module load timeout in seconds.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug/--no-debug",
        help="Log per-module load details and full tracebacks.",
    ),
) -> None:
    """Load every module without connecting to Discord."""
    settings, config_path = _load_settings(config)
    setup_logging(debug=debug or settings.debug)
    addons_root = _resolve_root(settings, config_path, root)

    host = HostContext(
        root=addons_root,
        timeout=timeout or settings.addons.load_timeout,
    )
    host.client = OfflineClient(host)
    results = anyio.run(_check, host)
    host.report()

    if not results:
        typer.echo(f"no modules found under {addons_root}")
        return
    for result in results:
        typer.echo(_describe_result(result))
    requested = host.intents.requested()
    if requested:
        typer.echo(f"intents: {', '.join(requested)}")
    if any(result.failed for result in results):
        raise typer.Exit(code=1)


def app_main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Discord addon host."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=1)


def create_app() -> typer.Typer:
    app = typer.Typer(
        add_completion=False,
        invoke_without_command=True,
        help="Discord addon host.",
    )
    app.command(name="run")(run)
    app.command(name="addons")(addons)
    app.command(name="check")(check)
    app.callback()(app_main)
    return app


def main() -> None:
    app = create_app()
    app()


if __name__ == "__main__":
    main()
