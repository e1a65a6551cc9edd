"""
Link Command - Run a full linking pass.

Builds every project's node_modules (classic installs) or records local
links and dependency manifests (workspace installs), then writes the local
link summary file.

Usage:
    monolink link                     # Link all projects
    monolink link --parallelism 4     # Link four projects at a time
    monolink link --debug             # Print each project's package tree
"""

from __future__ import annotations

import sys

import click
from rich.console import Console
from rich.markup import escape

from ...core.errors import ConfigurationError, LinkConsistencyError
from ...core.link_manager import LinkManager
from ...core.repo_config import InstallMode
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
@click.option(
    "--parallelism",
    "-p",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Number of projects to link at once",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Print each project's package tree before linking (classic installs)",
)
def link(config_path: str | None, parallelism: int, debug: bool):
    """
    Link all projects of the monorepo.

    \b
    Examples:
        monolink link
        monolink link -c path/to/monolink.toml -p 4
    """
    try:
        configuration = load_configuration(config_path)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    mode = configuration.install_mode
    mode_str = "[cyan]workspace[/cyan]" if mode == InstallMode.WORKSPACE else "[cyan]classic[/cyan]"
    console.print(f"[bold]🔗 Linking {len(configuration.projects)} project(s) ({mode_str})...[/bold]")

    manager = LinkManager(configuration, parallelism=parallelism, debug=debug, console=console)
    try:
        summary = manager.link()
    except (LinkConsistencyError, ConfigurationError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    if not configuration.projects:
        console.print(
            "[yellow]Nothing to do. Add at least one project to monolink.toml.[/yellow]"
        )

    local_link_count = sum(
        len(names) for names in summary.registry.to_dict()["localLinks"].values()
    )
    console.print(
        f"[green]✓ Linked {summary.projects_linked} project(s) "
        f"with {local_link_count} local link(s)[/green]"
    )
    console.print(f"[dim]Wrote {configuration.link_json_path}[/dim]")
