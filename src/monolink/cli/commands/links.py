"""
Links Command - Show the local link summary.

Reads the summary file written by the last `monolink link` run and renders
which projects link to which.
"""

from __future__ import annotations

import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from ...core.errors import ConfigurationError
from ...core.link_registry import LinkRegistry
from ..utils import CONFIG_OPTION_HELP, load_configuration

console = Console()


@click.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help=CONFIG_OPTION_HELP,
)
def links(config_path: str | None):
    """
    Show local links between monorepo projects.
    """
    try:
        configuration = load_configuration(config_path)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    link_json = configuration.link_json_path
    if not link_json.exists():
        console.print(f"[red]Error:[/red] No link summary found at {link_json}")
        console.print("Run 'monolink link' first.")
        sys.exit(1)

    try:
        registry = LinkRegistry.load(link_json)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    tree = Tree(f"🔗 [bold]{configuration.root_folder.name}[/bold]")
    for project in configuration.projects:
        names = registry.get_local_links(project.package_name)
        branch = tree.add(f"[cyan]{project.package_name}[/cyan] ({project.version})")
        if not names:
            branch.add("[dim]no local links[/dim]")
            continue
        for name in names:
            icon = "[green]✓[/green]" if configuration.get_project_by_name(name) else "[red]✗[/red]"
            branch.add(f"{icon} {name}")

    console.print(tree)
