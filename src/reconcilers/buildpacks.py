"""
Buildpack reconciler - Converges an app's ordered buildpack list.
"""

import logging
from typing import List, Optional, Sequence

from config import ConvergenceConfig
from heroku import HerokuClient
from reconcilers.base import Reconciler
from reconcilers.ordered import Insert, OrderedAction, Remove, next_ordered_action

logger = logging.getLogger(__name__)


class BuildpackReconciler(Reconciler):
    """Reconciles `heroku buildpacks` against a desired ordered list."""

    def __init__(
        self,
        client: HerokuClient,
        buildpacks: Sequence[str],
        config: Optional[ConvergenceConfig] = None,
    ):
        super().__init__(config)
        self.client = client
        self.target = tuple(buildpacks)

    @property
    def name(self) -> str:
        return "buildpacks"

    async def observe(self) -> List[str]:
        return await self.client.buildpacks()

    def decide(self, observed: List[str]) -> Optional[OrderedAction]:
        return next_ordered_action(observed, self.target)

    def step_bound(self, observed: List[str]) -> int:
        return len(observed) + len(self.target)

    async def apply(self, action: OrderedAction) -> None:
        if isinstance(action, Insert):
            await self.client.add_buildpack(action.position, action.value)
        elif isinstance(action, Remove):
            await self.client.remove_buildpack(action.position)
        else:
            raise TypeError(f"Unsupported buildpack action: {action!r}")
