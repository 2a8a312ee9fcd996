"""
errors.py — Exceptions raised by the occupancy and placement engine.

Infeasible searches and undefined windows are not errors: they come back as
empty lists, None windows or feasible=False recommendations.
"""


class PlannerError(Exception):
    """Base class for garden planner errors."""


class InvalidPlacementError(PlannerError, ValueError):
    """Constraint input that can never be satisfied (unknown bed, too many segments...)."""


class NotFoundError(InvalidPlacementError):
    """A referenced bed, seed or planting does not exist."""


class SlotOccupiedError(PlannerError):
    """The target became occupied between search and commit.

    Recoverable: the caller should re-run the search on a fresh snapshot.
    """

    def __init__(self, message, conflicts=None):
        super().__init__(message)
        self.conflicts = list(conflicts or [])
