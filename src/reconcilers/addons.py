"""
Addon reconciler - Converges the set of addons attached to an app.

Addons are compared by service name. A desired entry may carry a plan
(``heroku-redis:mini``); the plan is only used when the addon is created,
so plan changes on an existing addon are not reconciled.
"""

import logging
from typing import AbstractSet, Dict, FrozenSet, Iterable, Optional

from config import ConvergenceConfig
from heroku import HerokuClient
from reconcilers.base import Reconciler
from reconcilers.sets import Add, Remove, SetAction, next_set_action

logger = logging.getLogger(__name__)


def service_name(addon: str) -> str:
    """Strip an optional ':plan' suffix."""
    return addon.split(":", 1)[0]


class AddonReconciler(Reconciler):
    """Reconciles `heroku addons` against a desired set of services."""

    def __init__(
        self,
        client: HerokuClient,
        addons: Iterable[str],
        config: Optional[ConvergenceConfig] = None,
    ):
        super().__init__(config)
        self.client = client
        self.create_specs: Dict[str, str] = {service_name(a): a for a in addons}
        self.target: FrozenSet[str] = frozenset(self.create_specs)
        # Instance names from the latest observation, needed to destroy addons
        self._instances: Dict[str, str] = {}

    @property
    def name(self) -> str:
        return "addons"

    @property
    def stagnation_limit(self) -> int:
        # addons:create is not idempotent; never re-issue an unreflected one
        return self.config.addon_stagnation_limit

    async def observe(self) -> FrozenSet[str]:
        self._instances = await self.client.addons()
        return frozenset(self._instances)

    def decide(self, observed: AbstractSet[str]) -> Optional[SetAction]:
        return next_set_action(observed, self.target)

    def step_bound(self, observed: AbstractSet[str]) -> int:
        return len(frozenset(observed) ^ self.target)

    async def apply(self, action: SetAction) -> None:
        if isinstance(action, Add):
            await self.client.create_addon(self.create_specs[action.value])
        elif isinstance(action, Remove):
            await self.client.destroy_addon(self._instances[action.value])
        else:
            raise TypeError(f"Unsupported addon action: {action!r}")
