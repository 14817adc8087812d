"""
GitHub Mirror — CLI Entry Point

Usage:
    ghmirror -c mirrors.json                  # update all mirrors
    ghmirror -c mirrors.json widgets gadgets  # update named mirrors
    ghmirror -c mirrors.json -s -p 8080       # run the webhook server
"""

from __future__ import annotations

# Load .env before anything reads LOG_LEVEL / LOG_FORMAT
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

from typing import Optional, Tuple

import click

from .config.loader import ConfigProvider, load_config
from .errors import ConfigurationError
from .logging_config import setup_logging
from .mirror.dispatcher import UpdateDispatcher
from .server.app import run_server

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _print_results(results) -> None:
    click.echo("")
    for r in results:
        if r.ok:
            click.secho(f"  ✓ {r.name} ({r.action})", fg="green")
        else:
            click.secho(f"  ✗ {r.name} ({r.action}): {r.result.describe()}", fg="red")

    ok_count = sum(1 for r in results if r.ok)
    click.echo(f"\n{ok_count}/{len(results)} mirrors updated")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-c", "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    metavar="FILE",
    help="Config file (.json)",
)
@click.option("-s", "--server", is_flag=True, help="Start webserver for handling post-receive-hooks")
@click.option("-p", "--port", type=int, default=8080, show_default=True,
              help="Port for webserver to listen to")
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind address for the webserver")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False),
              default=None, help="Log level (default: LOG_LEVEL env var or INFO)")
@click.argument("mirror_names", nargs=-1, metavar="[MIRROR_NAME]...")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[Path],
    server: bool,
    port: int,
    host: str,
    log_level: Optional[str],
    mirror_names: Tuple[str, ...],
) -> None:
    """Keep local bare mirrors of GitHub repositories up to date.

    Without --server, updates the named mirrors (or all of them) and
    exits. With --server, listens for GitHub post-receive webhooks and
    updates the mirrors of each pushed repository.
    """
    setup_logging(level=log_level)

    if config_path is None:
        click.secho("Error! No config file specified.", fg="red", err=True)
        click.echo(ctx.get_help())
        ctx.exit(2)

    # Fail at startup on a broken file, in both modes
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        ctx.exit(1)

    if server:
        if mirror_names:
            click.secho("Mirror names are ignored in server mode", fg="yellow", err=True)
        run_server(ConfigProvider(config_path), host=host, port=port)
        return

    dispatcher = UpdateDispatcher(lambda: config)
    try:
        results = dispatcher.dispatch_sync(mirror_names)
    except ConfigurationError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        ctx.exit(1)

    if not results:
        click.echo("No mirrors to update.")
        return

    _print_results(results)

    if not all(r.ok for r in results):
        ctx.exit(1)


if __name__ == "__main__":
    cli()
