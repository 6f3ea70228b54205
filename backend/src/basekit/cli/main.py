"""basekit CLI entry point."""

import logging
import os

import click


@click.group()
@click.option(
    "--log-level",
    default=lambda: os.environ.get("BASEKIT_LOG_LEVEL", "INFO"),
    help="Root log level (default: $BASEKIT_LOG_LEVEL or INFO).",
)
def cli(log_level: str):
    """basekit: schema-driven backend toolkit CLI."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=lambda: int(os.environ.get("BASEKIT_PORT", "8000")), type=int)
@click.option("--reload", is_flag=True, default=False, help="Reload on code changes.")
def serve(host: str, port: int, reload: bool):
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "basekit.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=os.environ.get("BASEKIT_LOG_LEVEL", "info").lower(),
    )


# Register subcommand groups
from basekit.cli.collections_cmd import collections  # noqa: E402
from basekit.cli.hooks_cmd import hooks  # noqa: E402
from basekit.cli.migrations_cmd import migrations  # noqa: E402

cli.add_command(collections)
cli.add_command(hooks)
cli.add_command(migrations)
