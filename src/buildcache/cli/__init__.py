"""
CLI for buildcache.

Inspect and maintain a project's build cache manifest.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Iterator, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from buildcache.core.config import BuildCacheConfig, load_config
from buildcache.core.errors import ConfigError
from buildcache.infrastructure.file_watcher import FileWatcher
from buildcache.services import BuildCache, BuildStats, WatchService

# Initialize Rich Console
console = Console()

app = typer.Typer(
    name="buildcache",
    help="Incremental build cache - per-file validity tracking across builds",
    add_completion=False,
)

_ROOT_OPTION = typer.Option(Path("."), "--root", "-r", help="Project root directory")
_CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Config file (.yaml/.yml/.json)")
_VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Log every cache hit and miss")


def _setup_logging(config: BuildCacheConfig, verbose: bool) -> None:
    """Route buildcache logs to stderr through rich."""
    package_logger = logging.getLogger("buildcache")
    for handler in list(package_logger.handlers):
        if getattr(handler, "_buildcache_cli", False):
            package_logger.removeHandler(handler)

    handler = RichHandler(console=Console(stderr=True), show_path=False)
    handler._buildcache_cli = True
    package_logger.addHandler(handler)
    if verbose:
        package_logger.setLevel(logging.DEBUG)
    else:
        package_logger.setLevel(config.logging.level.upper())


def _open_cache(root: Path, config_path: Optional[Path], verbose: bool) -> tuple[BuildCache, BuildCacheConfig]:
    """Load configuration (.env, file, env vars) and build the cache for root."""
    load_dotenv()
    try:
        config = load_config(config_path)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not root.is_dir():
        console.print(f"[bold red]Error:[/bold red] Root is not a directory: {root}")
        raise typer.Exit(1)

    verbose = verbose or config.logging.verbose
    _setup_logging(config, verbose)
    return BuildCache(config.cache, root, verbose=verbose), config


def _iter_files(paths: list[Path]) -> Iterator[Path]:
    for path in paths:
        if path.is_dir():
            for dirpath, _dirnames, filenames in os.walk(path):
                for name in sorted(filenames):
                    yield Path(dirpath) / name
        else:
            yield path


def _display_path(cache: BuildCache, path: Path) -> str:
    try:
        return path.resolve().relative_to(cache.root).as_posix()
    except ValueError:
        return str(path)


def _summary_panel(stats: BuildStats, title: str) -> Panel:
    summary = Table.grid(padding=1)
    summary.add_column(style="bold")
    summary.add_column()
    summary.add_row("Hits:", f"[green]{stats.hits}[/green]")
    summary.add_row("Misses:", f"[yellow]{stats.misses}[/yellow]")
    summary.add_row("Skipped:", str(stats.skipped))
    summary.add_row("Hashed:", str(stats.hashed))
    summary.add_row("Evicted:", str(stats.stale_removed + stats.overflow_removed))
    summary.add_row("Saved:", "yes" if stats.saved else "no")
    return Panel(summary, title=title, border_style="green", expand=False)


@app.command()
def check(
    paths: list[Path] = typer.Argument(..., help="Files or directories to check"),
    root: Path = _ROOT_OPTION,
    config: Optional[Path] = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
):
    """Run one build pass over PATHS and report hits and misses."""
    cache, _ = _open_cache(root, config, verbose)

    table = Table(title="Cache check")
    table.add_column("File")
    table.add_column("Result")
    table.add_column("Reason", style="dim")

    cache.begin_build()
    for path in _iter_files(paths):
        result = cache.check(path)
        if result is None:
            continue
        label = "[green]hit[/green]" if result.hit else "[yellow]miss[/yellow]"
        table.add_row(_display_path(cache, path), label, result.reason)
    stats = cache.end_build()

    if table.row_count:
        console.print(table)
    console.print(_summary_panel(stats, "[bold green]Build pass complete[/bold green]"))


@app.command()
def status(
    root: Path = _ROOT_OPTION,
    config: Optional[Path] = _CONFIG_OPTION,
):
    """Show the cache manifest summary."""
    cache, _ = _open_cache(root, config, False)
    info = cache.status()

    table = Table(title="Build cache status", show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Manifest", info["manifest_path"])
    table.add_row("Exists", "yes" if info["manifest_exists"] else "no")
    table.add_row("Format", info["format_version"])
    table.add_row("Entries", f"{info['entries']} / {info['max_entries']}")
    table.add_row("Hash", info["hash_algorithm"])
    table.add_row("Tool version", info["metadata"]["toolVersion"] or "-")
    console.print(table)


@app.command()
def prune(
    root: Path = _ROOT_OPTION,
    config: Optional[Path] = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
):
    """Drop entries for deleted files and enforce max_entries."""
    cache, _ = _open_cache(root, config, verbose)
    stats = cache.prune()
    console.print(
        f"Removed {stats.stale_removed} stale and {stats.overflow_removed} overflow entries, "
        f"{len(cache.manifest)} remain"
    )


@app.command()
def clear(
    root: Path = _ROOT_OPTION,
    config: Optional[Path] = _CONFIG_OPTION,
):
    """Delete the cache manifest."""
    cache, _ = _open_cache(root, config, False)
    if cache.clear():
        console.print(f"[green]Removed[/green] {cache.manifest_path}")
    else:
        console.print("[dim]No cache manifest to remove[/dim]")


@app.command()
def watch(
    root: Path = _ROOT_OPTION,
    config: Optional[Path] = _CONFIG_OPTION,
    debounce: Optional[int] = typer.Option(
        None, "--debounce", "-d", help="Debounce delay in milliseconds"
    ),
    verbose: bool = _VERBOSE_OPTION,
):
    """Recheck files as they change until interrupted."""
    cache, cfg = _open_cache(root, config, verbose)
    debounce_ms = debounce if debounce is not None else cfg.watch.debounce_ms

    service = WatchService(cache, FileWatcher(cache.should_cache), debounce_ms=debounce_ms)

    async def _run() -> None:
        await service.start()
        try:
            while True:
                await asyncio.sleep(1)
        finally:
            await service.stop()

    console.print(f"[bold blue]Watching[/bold blue] {cache.root} (Ctrl+C to stop)")
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\n[cyan]Stopped watching[/cyan]")


if __name__ == "__main__":
    app()
