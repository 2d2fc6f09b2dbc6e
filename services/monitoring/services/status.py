"""
Status Engine
=============

State machine advancing obligation instances as time passes.

    upcoming -> due_today -> overdue -> resolved

`resolved` is terminal and only reached through `resolve()`. Automatic
transitions never move backwards, and `days_overdue` is recomputed from the
date difference on every run so a skipped run never under-counts.

Version: 0.1.0
"""

from dataclasses import dataclass
from datetime import datetime

from shared.models.obligation import ObligationInstance, ObligationStatus, Resolution


_ORDER = {
    ObligationStatus.UPCOMING: 0,
    ObligationStatus.DUE_TODAY: 1,
    ObligationStatus.OVERDUE: 2,
    ObligationStatus.RESOLVED: 3,
}


@dataclass(frozen=True)
class StatusTransition:
    """Outcome of advancing one obligation."""

    obligation: ObligationInstance
    previous: ObligationStatus
    current: ObligationStatus

    @property
    def changed(self) -> bool:
        return self.previous != self.current

    @property
    def became_overdue(self) -> bool:
        """The obligation entered `overdue` during this evaluation."""
        return self.changed and self.current == ObligationStatus.OVERDUE


class StatusEngine:
    """Advances obligation status against the current time."""

    def status_for(self, obligation: ObligationInstance, now: datetime) -> ObligationStatus:
        """Status implied by the calendar alone."""
        today = now.date()
        if today < obligation.due_date:
            return ObligationStatus.UPCOMING
        if today == obligation.due_date:
            return ObligationStatus.DUE_TODAY
        return ObligationStatus.OVERDUE

    def advance(self, obligation: ObligationInstance, now: datetime) -> StatusTransition:
        """
        Evaluate an obligation once.

        Args:
            obligation: Obligation to evaluate
            now: Evaluation time

        Returns:
            StatusTransition holding the updated copy of the obligation
        """
        previous = obligation.status
        if not obligation.is_open:
            return StatusTransition(obligation, previous, previous)

        computed = self.status_for(obligation, now)
        current = computed if _ORDER[computed] >= _ORDER[previous] else previous

        days_overdue = 0
        if current == ObligationStatus.OVERDUE:
            days_overdue = max(0, (now.date() - obligation.due_date).days)

        updated = obligation.model_copy(
            update={
                "status": current,
                "days_overdue": days_overdue,
                "last_evaluated_at": now,
            }
        )
        return StatusTransition(updated, previous, current)

    def resolve(
        self,
        obligation: ObligationInstance,
        now: datetime,
        resolution: Resolution = Resolution.SATISFIED,
    ) -> ObligationInstance:
        """Move an obligation to the terminal `resolved` state."""
        if obligation.status == ObligationStatus.RESOLVED:
            return obligation
        return obligation.model_copy(
            update={
                "status": ObligationStatus.RESOLVED,
                "resolution": resolution,
                "resolved_at": now,
                "last_evaluated_at": now,
            }
        )

    def supersede(self, obligation: ObligationInstance, now: datetime) -> ObligationInstance:
        """Archive an obligation replaced by a fresh instance for the same period."""
        resolved = self.resolve(obligation, now, Resolution.SUPERSEDED)
        return resolved.model_copy(update={"archived": True})
