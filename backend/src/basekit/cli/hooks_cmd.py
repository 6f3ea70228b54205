"""Hooks CLI commands."""

import click

from basekit.hooks.builtin import register_builtin_hooks
from basekit.hooks.registry import HookRegistry


@click.group()
def hooks():
    """Hook commands."""
    pass


@hooks.command("list")
def list_hooks():
    """List registered hooks and their options."""
    registry = HookRegistry()
    register_builtin_hooks(registry)

    for entry in registry.list():
        click.echo(click.style(entry["id"], bold=True) + f"  {entry['description']}")
        for option, spec in entry["options"].items():
            flags = " (required)" if spec.get("required") else ""
            default = f" [default: {spec['defaultValue']!r}]" if "defaultValue" in spec else ""
            click.echo(f"    {option}: {spec['type']}{flags}{default}")
