"""
Reconciler Base - Observe, decide, apply, repeat.

A reconciler converges one domain of a deployment target (for example the
buildpack list of an app) to its desired state. Every decision is made from
a fresh observation: applied actions may shift positions, and the remote
side may lag behind the last command issued, so no plan is ever kept
between iterations.

Runs are sequential and assume nobody else mutates the same domain while
they are in progress.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional

from config import ConvergenceConfig

logger = logging.getLogger(__name__)


class ReconcileError(Exception):
    """Base class for errors that abort a reconciliation run."""


class ObservationError(ReconcileError):
    """Current state could not be read or parsed from the remote system."""


class ActionApplicationError(ReconcileError):
    """A decided action failed to apply. The remote state is now unknown."""

    def __init__(self, message: str, action: Any, observed: Any):
        super().__init__(message)
        self.action = action
        self.observed = observed


class NonConvergenceError(ReconcileError):
    """The loop stopped making observable progress."""

    def __init__(self, message: str, observed: Any, actions_applied: int):
        super().__init__(message)
        self.observed = observed
        self.actions_applied = actions_applied


@dataclass
class ReconcileResult:
    """Result from a completed reconcile() call."""

    domain: str
    success: bool = False
    message: str = ""
    actions: List[Any] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.actions)


class Reconciler(ABC):
    """
    Abstract base class for convergence loops.

    Subclasses supply the three steps of the loop; reconcile() drives them
    until decide() returns None.
    """

    def __init__(self, config: Optional[ConvergenceConfig] = None):
        self.config = config or ConvergenceConfig()

    @property
    @abstractmethod
    def name(self) -> str:
        """Domain name used in logs and results (e.g. 'buildpacks')."""
        pass

    @abstractmethod
    async def observe(self) -> Any:
        """
        Read the current state from the remote system.

        Raises:
            ObservationError: If the state cannot be read or parsed.
        """
        pass

    @abstractmethod
    def decide(self, observed: Any) -> Optional[Any]:
        """
        Decide the single next action for an observed state.

        Must be free of side effects. Returns None once converged.
        """
        pass

    @abstractmethod
    async def apply(self, action: Any) -> None:
        """
        Issue one remote command for a decided action.

        Any exception is wrapped in ActionApplicationError by the loop.
        """
        pass

    @property
    def stagnation_limit(self) -> int:
        """Consecutive unreflected actions tolerated before giving up."""
        return self.config.stagnation_limit

    def step_bound(self, observed: Any) -> int:
        """
        Upper bound on the actions needed to converge from an observed state.

        The iteration cap is raised to this bound so a run that can still
        converge is never cut short. 0 means no known bound.
        """
        return 0

    async def reconcile(self) -> ReconcileResult:
        """
        Run the convergence loop to completion.

        Returns:
            ReconcileResult listing the actions that were applied.

        Raises:
            ObservationError: If reading state fails.
            ActionApplicationError: If an action fails to apply.
            NonConvergenceError: If the iteration cap or stagnation limit is hit.
        """
        applied: List[Any] = []
        previous: Any = None
        stagnant = 0
        cap: Optional[int] = None

        while True:
            observed = await self.observe()
            logger.info(f"[{self.name}] observed {observed!r}")

            if cap is None:
                cap = self._iteration_cap(observed)

            action = self.decide(observed)
            if action is None:
                message = (
                    f"converged after {len(applied)} action(s)"
                    if applied
                    else "already converged"
                )
                logger.info(f"[{self.name}] {message}")
                return ReconcileResult(
                    domain=self.name, success=True, message=message, actions=applied
                )

            if applied and observed == previous:
                stagnant += 1
            else:
                stagnant = 0
            self._check_progress(observed, len(applied), stagnant, cap)

            logger.info(f"[{self.name}] applying {action}")
            try:
                await self.apply(action)
            except ActionApplicationError:
                raise
            except Exception as e:
                logger.error(
                    f"[{self.name}] failed to apply {action} "
                    f"against observed state {observed!r}: {e}"
                )
                raise ActionApplicationError(
                    f"{self.name}: failed to apply {action} "
                    f"against observed state {observed!r}: {e}",
                    action=action,
                    observed=observed,
                ) from e

            applied.append(action)
            previous = observed

            if self.config.settle_delay > 0:
                await asyncio.sleep(self.config.settle_delay)

    def _iteration_cap(self, observed: Any) -> int:
        """Configured cap, raised to the convergence bound (0 = unbounded)."""
        max_iterations = self.config.max_iterations
        if not max_iterations:
            return 0
        return max(max_iterations, self.step_bound(observed))

    def _check_progress(
        self, observed: Any, applied: int, stagnant: int, cap: int
    ) -> None:
        """Raise NonConvergenceError when a guard rail trips."""
        if cap and applied >= cap:
            raise NonConvergenceError(
                f"{self.name}: not converged after {applied} action(s); "
                f"last observed state {observed!r}",
                observed=observed,
                actions_applied=applied,
            )

        limit = self.stagnation_limit
        if limit and stagnant >= limit:
            raise NonConvergenceError(
                f"{self.name}: remote state unchanged after {stagnant} "
                f"consecutive action(s); last observed state {observed!r}",
                observed=observed,
                actions_applied=applied,
            )
