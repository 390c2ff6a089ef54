"""
Ordered-sequence reconciliation.

Decides the single next positional edit that moves a current sequence one
step closer to a target sequence. Used for buildpacks, where order matters.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union


@dataclass(frozen=True)
class Insert:
    """Insert ``value`` so that it ends up at zero-based ``position``."""

    position: int
    value: Any

    def shifted(self) -> "Insert":
        return Insert(self.position + 1, self.value)

    def __str__(self) -> str:
        return f"insert {self.value} at {self.position}"


@dataclass(frozen=True)
class Remove:
    """Remove the element at zero-based ``position``."""

    position: int

    def shifted(self) -> "Remove":
        return Remove(self.position + 1)

    def __str__(self) -> str:
        return f"remove at {self.position}"


OrderedAction = Union[Insert, Remove]


def next_ordered_action(
    current: Sequence[Any], target: Sequence[Any]
) -> Optional[OrderedAction]:
    """
    Return the next edit to apply to ``current``, or None if it equals ``target``.

    Walks both sequences head first. A mismatched head is always removed
    before anything is inserted, so the result is not a minimal edit script.
    Positions refer to ``current`` as passed in and are only valid until the
    returned action has been applied.

    Args:
        current: The observed sequence.
        target: The desired sequence.

    Returns:
        An Insert or Remove action, or None when converged.
    """
    return _walk(current, target, 0)


def _walk(
    current: Sequence[Any], target: Sequence[Any], start: int
) -> Optional[OrderedAction]:
    has_current = start < len(current)
    has_target = start < len(target)

    if not has_current and not has_target:
        return None
    if has_current and has_target and current[start] != target[start]:
        return Remove(0)
    if has_current and not has_target:
        return Remove(0)
    if not has_current:
        return Insert(0, target[start])

    # Heads match: decide on the tails, then re-express relative to this level.
    action = _walk(current, target, start + 1)
    return action.shifted() if action is not None else None


def apply_ordered_action(current: Sequence[Any], action: OrderedAction) -> List[Any]:
    """Return a copy of ``current`` with ``action`` applied."""
    result = list(current)
    if isinstance(action, Insert):
        result.insert(action.position, action.value)
    elif isinstance(action, Remove):
        del result[action.position]
    else:
        raise TypeError(f"Not an ordered action: {action!r}")
    return result


def plan_ordered(current: Sequence[Any], target: Sequence[Any]) -> List[OrderedAction]:
    """
    Simulate a full convergence run and return every action it would take.

    The remote side is assumed to apply each action exactly as decided.
    """
    actions: List[OrderedAction] = []
    state = list(current)
    action = next_ordered_action(state, target)
    while action is not None:
        actions.append(action)
        state = apply_ordered_action(state, action)
        action = next_ordered_action(state, target)
    return actions
