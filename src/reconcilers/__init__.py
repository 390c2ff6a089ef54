"""
Reconcilers package.

Pure decision functions for ordered sequences and sets, the shared
observe/decide/apply loop, and the Heroku buildpack and addon reconcilers
built on them.
"""

from reconcilers.base import (
    ActionApplicationError,
    NonConvergenceError,
    ObservationError,
    ReconcileError,
    Reconciler,
    ReconcileResult,
)
from reconcilers.ordered import next_ordered_action
from reconcilers.sets import next_set_action

__all__ = [
    "ActionApplicationError",
    "NonConvergenceError",
    "ObservationError",
    "ReconcileError",
    "Reconciler",
    "ReconcileResult",
    "next_ordered_action",
    "next_set_action",
]
