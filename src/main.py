#!/usr/bin/env python3
"""
sanity - Deploy every Sanityfile directory in a repository to Heroku.

Buildpacks and addons are converged to what each Sanityfile declares before
the code is pushed.
"""

import asyncio
import logging
from pathlib import Path

import click
from tabulate import tabulate

from config import get_config
from deploy import Deployer, DeployError
from reconcilers.base import ReconcileError
from runner import CommandError
from sanityfile import SanityfileError, find_sanity_dirs, load_sanityfile

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else get_config().cli.log_level
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load_targets(root: Path):
    """Discover and parse every Sanityfile under root."""
    filename = get_config().cli.sanityfile_name
    directories = find_sanity_dirs(root, filename)
    if not directories:
        click.echo(f"No {filename} found under {root}")
    return [(directory, load_sanityfile(directory, filename)) for directory in directories]


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """sanity - converge Heroku app configuration and deploy"""
    _configure_logging(verbose)


@cli.command()
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    help="Repository root to search for Sanityfiles",
)
def deploy(root):
    """Reconcile and deploy every Sanityfile directory"""
    deployer = Deployer(repo_root=root)

    async def run():
        await deployer.ensure_clean_worktree()
        for directory, target in _load_targets(root):
            click.echo(f"Deploying '{directory}'")
            for result in await deployer.deploy(directory, target):
                click.echo(f"  {result.domain}: {result.message}")

    try:
        asyncio.run(run())
    except (DeployError, ReconcileError, SanityfileError, CommandError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)


@cli.command()
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    help="Repository root to search for Sanityfiles",
)
def plan(root):
    """Show the actions a deploy would take, without applying them"""
    deployer = Deployer(repo_root=root)

    async def run():
        rows = []
        for _, target in _load_targets(root):
            for domain, actions in (await deployer.plan(target)).items():
                if not actions:
                    rows.append([target.app, domain, "-", "up to date"])
                for step, action in enumerate(actions, start=1):
                    rows.append([target.app, domain, step, str(action)])
        return rows

    try:
        rows = asyncio.run(run())
    except (ReconcileError, SanityfileError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if rows:
        click.echo(
            tabulate(rows, headers=["App", "Domain", "Step", "Action"], tablefmt="grid")
        )


if __name__ == "__main__":
    cli()
