"""
Deployer - Converges an app's configuration and pushes the code to Heroku.

For each deployable directory the deployer:

1. converges buildpacks, then addons (see reconcilers),
2. copies the configured files into the repository root,
3. commits the tree onto a throwaway branch and returns to the original one,
4. force-pushes that branch to the app's git remote, then deletes it.
"""

import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from config import Config, get_config
from heroku import HerokuClient, Runner
from reconcilers.addons import AddonReconciler
from reconcilers.base import ReconcileResult
from reconcilers.buildpacks import BuildpackReconciler
from reconcilers.ordered import plan_ordered
from reconcilers.sets import plan_set
from runner import CommandError, run_command
from sanityfile import HerokuTarget

logger = logging.getLogger(__name__)


class DeployError(Exception):
    """A deployment precondition or step failed."""


class Deployer:
    """Runs the reconcile-and-push workflow for Heroku targets."""

    def __init__(
        self,
        config: Optional[Config] = None,
        runner: Optional[Runner] = None,
        repo_root: Path = Path("."),
    ):
        self.config = config or get_config()
        self._runner = runner or run_command
        self.repo_root = Path(repo_root)

    async def _run(self, *args: str) -> str:
        return await self._runner(
            list(args),
            timeout=self.config.runner.command_timeout,
            cwd=self.repo_root,
        )

    def client_for(self, target: HerokuTarget) -> HerokuClient:
        return HerokuClient(
            target.app,
            config=self.config.heroku,
            runner=self._runner,
            timeout=self.config.runner.command_timeout,
        )

    def reconcilers_for(self, target: HerokuTarget) -> list:
        """Reconcilers for a target, in the order they run."""
        client = self.client_for(target)
        convergence = self.config.convergence
        return [
            BuildpackReconciler(client, target.buildpacks, convergence),
            AddonReconciler(client, target.addons, convergence),
        ]

    async def ensure_clean_worktree(self) -> None:
        """Refuse to deploy with uncommitted changes."""
        status = await self._run("git", "status", "--short")
        if status.strip():
            raise DeployError("Cannot deploy, working directory dirty")

    async def reconcile(self, target: HerokuTarget) -> List[ReconcileResult]:
        """Converge every domain of a target; stops at the first failure."""
        results = []
        for reconciler in self.reconcilers_for(target):
            logger.info(f"Reconciling {reconciler.name} of '{target.app}'")
            results.append(await reconciler.reconcile())
        return results

    async def plan(self, target: HerokuTarget) -> Dict[str, list]:
        """
        Observe a target once and simulate the actions a reconcile would take.

        Nothing is applied. The simulation assumes each action takes effect
        exactly as decided.
        """
        buildpacks, addons = self.reconcilers_for(target)
        return {
            buildpacks.name: plan_ordered(await buildpacks.observe(), buildpacks.target),
            addons.name: plan_set(await addons.observe(), addons.target),
        }

    def copy_files_to_root(self, directory: Path, files: Sequence[str]) -> None:
        """Copy files from a deployable directory into the repository root."""
        for name in files:
            source = Path(directory) / name
            logger.info(f"Copying '{source}' to '{self.repo_root}'")
            try:
                shutil.copy2(source, self.repo_root)
            except OSError as e:
                raise DeployError(f"Cannot copy '{source}' to repository root: {e}") from e

    async def create_deploy_branch(self, target: HerokuTarget) -> str:
        """Commit the working tree onto a fresh branch without switching to it."""
        current = (await self._run("git", "rev-parse", "--abbrev-ref", "HEAD")).strip()
        branch = f"{self.config.heroku.branch_prefix}/{target.app}"

        try:
            await self._run("git", "branch", "-D", branch)
        except CommandError:
            logger.debug(f"No stale branch '{branch}' to delete")

        await self._run("git", "checkout", "-b", branch)
        await self._run("git", "add", ".")
        await self._run("git", "commit", "-m", f"Deploy to heroku/{target.app}")
        await self._run("git", "checkout", current)
        return branch

    async def push(self, target: HerokuTarget, branch: str) -> None:
        heroku = self.config.heroku
        await self._run(
            "git",
            "push",
            heroku.git_url(target.app),
            f"{branch}:{heroku.deploy_ref}",
            "--force",
        )
        await self._run("git", "branch", "-D", branch)

    async def deploy(self, directory: Path, target: HerokuTarget) -> List[ReconcileResult]:
        """Deploy one directory. Errors propagate; nothing is rolled back."""
        logger.info(f"Deploying '{directory}' to '{target.app}'")
        results = await self.reconcile(target)
        self.copy_files_to_root(directory, target.copy_to_root)
        branch = await self.create_deploy_branch(target)
        await self.push(target, branch)
        logger.info(f"Deployed '{directory}' to '{target.app}'")
        return results
