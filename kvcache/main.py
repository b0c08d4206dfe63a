"""Main entry point for the kvcache command line tool.

Sets up the Typer CLI application, wires the configured cache backend
(Composition Root), defines CLI commands, and delegates execution to the
CommandHandler.
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from kvcache.core.command_handler import CommandHandler
from kvcache.domain.exceptions import CacheError
from kvcache.infrastructure.cache.factory import create_cache_from_config
from kvcache.infrastructure.cli.display import ConsoleDisplay
from kvcache.infrastructure.config.settings import get_config, load_configuration
from kvcache.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, resolve_log_level, setup_logging

logger = logging.getLogger(__name__)


def create_command_handler(path: Optional[Path] = None, serializer: Optional[str] = None, verbose: bool = False) -> CommandHandler:
    """Creates and wires up the dependencies for one CLI invocation.

    Raises:
        CacheError: If the configured backend cannot be created.
    """
    load_configuration()
    log_level = logging.DEBUG if verbose else resolve_log_level(get_config('logging.level', 'WARNING'))
    setup_logging(
        log_level=log_level,
        log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
        log_file=get_config('logging.file'),
    )
    cache = create_cache_from_config(path=str(path) if path else None, serializer=serializer)
    logger.info(f"Using cache backend: {cache!r}")
    return CommandHandler(cache=cache, ui=ConsoleDisplay())


# --- Typer App Definition ---
app = typer.Typer(
    name="kvcache",
    help="Inspect and manage a file-backed key/value cache.",
    add_completion=False,
)

TtlOption = Annotated[int, typer.Option("--ttl", "-t", help="Seconds until expiry. 0 or less means 365 days.")]
JsonOption = Annotated[bool, typer.Option("--json", help="Parse VALUE as JSON instead of storing it as a string.")]


def _finish(ok: bool) -> None:
    if not ok:
        raise typer.Exit(code=1)


@app.callback()
def main_callback(
    ctx: typer.Context,
    path: Annotated[Optional[Path], typer.Option("--path", "-p", help="Cache directory. Overrides cache.path.")] = None,
    serializer: Annotated[Optional[str], typer.Option("--serializer", "-s", help="Value serializer ('pickle' or 'json').")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Creates the cache backend shared by all commands."""
    try:
        ctx.obj = create_command_handler(path=path, serializer=serializer, verbose=verbose)
    except CacheError as e:
        logger.error(f"Failed to initialize cache: {e}")
        ConsoleDisplay().display_error(f"Cache initialization failed: {e}")
        raise typer.Exit(code=2)


@app.command()
def key(ctx: typer.Context, cache_key: Annotated[str, typer.Argument(metavar="KEY", help="Logical cache key.")]):
    """Print the normalized (on-disk) name of a key."""
    _finish(ctx.obj.handle_key(cache_key))


@app.command()
def get(ctx: typer.Context, cache_key: Annotated[str, typer.Argument(metavar="KEY")]):
    """Print a cached value. Exits with 1 on a miss."""
    _finish(ctx.obj.handle_get(cache_key))


@app.command(name="set")
def set_command(
    ctx: typer.Context,
    cache_key: Annotated[str, typer.Argument(metavar="KEY")],
    value: Annotated[str, typer.Argument(metavar="VALUE")],
    ttl: TtlOption = 0,
    as_json: JsonOption = False,
):
    """Store a value, replacing any existing entry."""
    _finish(ctx.obj.handle_set(cache_key, value, ttl=ttl, as_json=as_json))


@app.command()
def add(
    ctx: typer.Context,
    cache_key: Annotated[str, typer.Argument(metavar="KEY")],
    value: Annotated[str, typer.Argument(metavar="VALUE")],
    ttl: TtlOption = 0,
    as_json: JsonOption = False,
):
    """Store a value only if the key has no live entry."""
    _finish(ctx.obj.handle_add(cache_key, value, ttl=ttl, as_json=as_json))


@app.command()
def exists(ctx: typer.Context, cache_key: Annotated[str, typer.Argument(metavar="KEY")]):
    """Exit with 0 if the key has a live entry, 1 otherwise."""
    _finish(ctx.obj.handle_exists(cache_key))


@app.command()
def delete(ctx: typer.Context, cache_key: Annotated[str, typer.Argument(metavar="KEY")]):
    """Delete an entry."""
    _finish(ctx.obj.handle_delete(cache_key))


@app.command()
def flush(ctx: typer.Context):
    """Remove every entry from the cache directory."""
    _finish(ctx.obj.handle_flush())


@app.command()
def gc(
    ctx: typer.Context,
    all_entries: Annotated[bool, typer.Option("--all", help="Remove live entries too.")] = False,
):
    """Remove expired entry files."""
    _finish(ctx.obj.handle_gc(expired_only=not all_entries))


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
