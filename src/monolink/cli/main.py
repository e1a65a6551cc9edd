"""
monolink CLI - Main entry point.

This module registers all CLI commands. Each command is implemented
in its own module under cli/commands/.
"""

import logging

import click

from .commands import link, links


@click.group()
@click.version_option(package_name="monolink")
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug)")
def main(verbose: int):
    """monolink: Local dependency linking for pnpm monorepos.

    Builds each project's node_modules from the pnpm install and records
    which monorepo projects link to each other.

    \b
    Quick Start:
      monolink link --config monolink.toml
      monolink links
    """
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="[%X]",
    )


# Register commands
main.add_command(link.link)
main.add_command(links.links)

if __name__ == "__main__":
    main()
