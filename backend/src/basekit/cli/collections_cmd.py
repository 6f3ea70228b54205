"""Collections CLI commands: list, validate and import definitions."""

from pathlib import Path

import click

from basekit.cli.common import run_with_app
from basekit.collections.file_schema import check_structure
from basekit.collections.loader import DefinitionFileError, load_definitions
from basekit.collections.system import SYSTEM_COLLECTIONS
from basekit.core.errors import ServiceError
from basekit.hooks.builtin import register_builtin_hooks
from basekit.hooks.registry import HookRegistry
from basekit.schema.definitions import validate_definition


@click.group()
def collections():
    """Collection definition commands."""
    pass


@collections.command("list")
def list_collections():
    """List stored collection definitions."""

    async def fetch(app):
        return await app.collections.list()

    for definition in run_with_app(fetch):
        flags = []
        if not definition.exposed:
            flags.append("internal")
        if definition.template:
            flags.append("template")
        suffix = f" ({', '.join(flags)})" if flags else ""
        click.echo(f"{definition.name}: {len(definition.schema)} field(s){suffix}")


@collections.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
def validate(path: Path):
    """Validate YAML collection definitions without touching the database."""
    try:
        files = load_definitions(path)
    except DefinitionFileError as e:
        click.echo(click.style(str(e), fg="red"), err=True)
        raise SystemExit(1)

    registry = HookRegistry()
    register_builtin_hooks(registry)
    known = set(SYSTEM_COLLECTIONS) | {f.name for f in files}

    failed = 0
    for file in files:
        issues = check_structure(file.definition, file.path)
        if issues:
            failed += 1
            click.echo(click.style(f"ERR {file.path}", fg="red"))
            for issue in issues:
                click.echo(f"    at {issue.location or '(root)'}: {issue.message}")
            continue

        result = validate_definition(
            file.definition, known, registry.option_schemas(), registry.option_checks()
        )
        if result.valid:
            click.echo(click.style(f"OK  {file.path}", fg="green"))
            continue
        failed += 1
        click.echo(click.style(f"ERR {file.path}", fg="red"))
        for field, message in result.errors.items():
            click.echo(f"    [{field}]: {message}")

    if failed:
        click.echo(f"\n{failed} of {len(files)} definition(s) invalid.", err=True)
        raise SystemExit(1)
    click.echo(f"\n{len(files)} definition(s) valid.")


@collections.command("import")
@click.argument("path", type=click.Path(exists=True, path_type=Path))
def import_collections(path: Path):
    """Create the collections defined under PATH that do not exist yet."""

    async def run(app):
        return await app.import_definitions(path)

    try:
        created = run_with_app(run)
    except DefinitionFileError as e:
        click.echo(click.style(str(e), fg="red"), err=True)
        raise SystemExit(1)
    except ServiceError as e:
        click.echo(click.style(f"Import failed: {e.message}", fg="red"), err=True)
        raise SystemExit(1)

    for definition in created:
        click.echo(f"Created {definition.name}")
    click.echo(f"{len(created)} collection(s) imported.")
