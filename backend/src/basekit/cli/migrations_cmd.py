"""Migrations CLI commands."""

import click

from basekit.cli.common import run_with_app


@click.group()
def migrations():
    """Migration record commands."""
    pass


@migrations.command("list")
@click.option("--collection", "-c", default=None, help="Only show migrations of this collection.")
def list_migrations(collection: str | None):
    """List migration records, newest first."""

    async def fetch(app):
        return await app.collections.migrations(collection)

    records = run_with_app(fetch)
    if not records:
        click.echo("No migrations recorded.")
        return

    colours = {"complete": "green", "failed": "red", "pending": "yellow"}
    for record in records:
        status = click.style(record["status"], fg=colours.get(record["status"]))
        steps = ", ".join(s.get("type", "?") for s in record.get("steps", []))
        click.echo(f"{record['_id']}  {record['collection']}  {status}  [{steps}]")
        if record["status"] == "failed":
            click.echo(f"    step {record.get('failedStep')}: {record.get('error')}")
