# === NAVMAP v1 ===
# {
#   "module": "BrowserFetch.cli",
#   "purpose": "Typer CLI for resolving and downloading browser builds",
#   "sections": [
#     {"id": "context", "name": "CliContext", "anchor": "CTX", "kind": "class"},
#     {"id": "main", "name": "main", "anchor": "MAIN", "kind": "function"},
#     {"id": "commands", "name": "Commands", "anchor": "CMD", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Main Typer CLI app for BrowserFetch.

Global options (``--config``, ``--log-level``, ``--cache-dir``) are handled
by the callback and apply to every subcommand::

    browserfetch fetch 114
    browserfetch --cache-dir /tmp/bf fetch 114.0.5735.90 --os windows
    browserfetch fetch ff115.0
    browserfetch resolve 114 --channel beta
    browserfetch clear-cache
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from .api import __version__, fetch as fetch_release, resolve_chromium, split_vendor
from .cache import JsonFileCache
from .errors import BrowserFetchError, UserConfigError
from .logging_config import setup_logging
from .net import get_http_client
from .settings import BrowserFetchConfig, ReleaseChannel, load_config
from .vendors import FirefoxReleases, first_match

_console = Console()


class CliContext:
    """Shared state for one CLI invocation: settings and console."""

    def __init__(self, config: BrowserFetchConfig) -> None:
        self.config = config
        self.console = _console

    def fail(self, error: Exception, code: int = 1) -> typer.Exit:
        self.console.print(f"[red]Error: {error}[/red]")
        return typer.Exit(code)


app = typer.Typer(
    name="browserfetch",
    help="Resolve browser versions to snapshot builds and unpack them locally",
    no_args_is_help=True,
)

_context: Optional[CliContext] = None


def get_context() -> CliContext:
    """Return the context created by :func:`main`.

    Raises:
        RuntimeError: If the callback has not run.
    """
    if _context is None:
        raise RuntimeError("CLI context not initialized")
    return _context


@app.callback(invoke_without_command=False)
def main(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="BROWSERFETCH_CONFIG",
        help="Path to a YAML config file",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    ),
    cache_dir: Optional[Path] = typer.Option(
        None,
        "--cache-dir",
        help="Directory for cached listings and histories",
    ),
) -> None:
    """BrowserFetch CLI - download unpacked browser builds by version."""
    global _context

    try:
        settings = load_config(config)
        if log_level:
            settings.logging.level = log_level
    except (UserConfigError, ValueError) as exc:
        _console.print(f"[red]Error loading settings: {exc}[/red]")
        raise typer.Exit(2)
    if cache_dir is not None:
        settings.storage.cache_dir = cache_dir

    setup_logging(settings.logging)
    _context = CliContext(settings)


@app.command()
def fetch(
    version: str = typer.Argument(..., help="Version such as 114, 114.0.5735.90 or ff115.0"),
    os_name: Optional[str] = typer.Option(
        None, "--os", "-o", help="Target OS: windows, linux or macos (default: this machine)"
    ),
    channel: Optional[ReleaseChannel] = typer.Option(
        None, "--channel", help="Release channel for Chromium history lookups"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", help="Directory receiving the unpacked build"
    ),
) -> None:
    """Resolve VERSION and unpack the matching build.

    Example:
        $ browserfetch fetch 114 --os windows --output ./browsers
    """
    ctx = get_context()
    try:
        outcome = fetch_release(
            version,
            config=ctx.config,
            os_name=os_name,
            channel=channel,
            output_dir=output,
        )
    except BrowserFetchError as exc:
        raise ctx.fail(exc)
    ctx.console.print(
        f"[green]✓[/green] {outcome.vendor} {outcome.version} unpacked to {outcome.path}"
    )


@app.command()
def resolve(
    version: str = typer.Argument(..., help="Version to resolve"),
    os_name: Optional[str] = typer.Option(None, "--os", "-o", help="Target OS"),
    channel: Optional[ReleaseChannel] = typer.Option(None, "--channel", help="Release channel"),
) -> None:
    """Print the build VERSION resolves to without downloading it."""
    ctx = get_context()
    vendor, query = split_vendor(version)
    try:
        if vendor == "firefox":
            releases = FirefoxReleases.load(
                config=ctx.config,
                client=get_http_client(ctx.config.http),
                cache=JsonFileCache(ctx.config.storage.cache_dir),
            )
            item = first_match(releases, query)
            ctx.console.print(f"firefox {item.version}")
            return
        platform, build = resolve_chromium(
            query, config=ctx.config, os_name=os_name, channel=channel
        )
    except BrowserFetchError as exc:
        raise ctx.fail(exc)
    ctx.console.print(
        f"chromium {build.version} -> {build.prefix} "
        f"(position {build.position}, revision {build.revision}, {platform})"
    )


@app.command("clear-cache")
def clear_cache() -> None:
    """Delete cached listings and release histories."""
    ctx = get_context()
    removed = JsonFileCache(ctx.config.storage.cache_dir).clear()
    ctx.console.print(f"removed {len(removed)} cached files from {ctx.config.storage.cache_dir}")


@app.command("version")
def version_cmd() -> None:
    """Show version information."""
    get_context().console.print(f"[bold]browserfetch[/bold] version {__version__}")


__all__ = ["app", "CliContext", "get_context", "main"]
