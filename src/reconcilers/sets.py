"""
Set reconciliation.

Decides one membership fix that moves a current set toward a target set.
Used for addons, where order is irrelevant.
"""

from dataclasses import dataclass
from typing import AbstractSet, Any, FrozenSet, List, Optional, Union


@dataclass(frozen=True)
class Add:
    """Add ``value`` to the set."""

    value: Any

    def __str__(self) -> str:
        return f"add {self.value}"


@dataclass(frozen=True)
class Remove:
    """Remove ``value`` from the set."""

    value: Any

    def __str__(self) -> str:
        return f"remove {self.value}"


SetAction = Union[Add, Remove]


def next_set_action(
    current: AbstractSet[Any], target: AbstractSet[Any]
) -> Optional[SetAction]:
    """
    Return one action that shrinks the symmetric difference, or None if equal.

    Missing members are added before extra members are removed. Which
    member is picked among several candidates is unspecified.
    """
    missing = target - current
    if missing:
        return Add(next(iter(missing)))

    extra = current - target
    if extra:
        return Remove(next(iter(extra)))

    return None


def apply_set_action(current: AbstractSet[Any], action: SetAction) -> FrozenSet[Any]:
    """Return a copy of ``current`` with ``action`` applied."""
    if isinstance(action, Add):
        return frozenset(current) | {action.value}
    if isinstance(action, Remove):
        return frozenset(current) - {action.value}
    raise TypeError(f"Not a set action: {action!r}")


def plan_set(current: AbstractSet[Any], target: AbstractSet[Any]) -> List[SetAction]:
    """Simulate a full convergence run and return every action it would take."""
    actions: List[SetAction] = []
    state = frozenset(current)
    action = next_set_action(state, target)
    while action is not None:
        actions.append(action)
        state = apply_set_action(state, action)
        action = next_set_action(state, target)
    return actions
