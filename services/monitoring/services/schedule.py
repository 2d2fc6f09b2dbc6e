"""
Schedule Calculator
===================

Computes the periods and due dates a requirement produces for a subject.

Due date rules:
- MONTHLY: first day of the month after the period + due_day_offset days
- QUARTERLY: first day of the month after the quarter + due_day_offset days
- ANNUAL: annual_due_month/annual_due_day of the year after the period
- ADHOC / TRIGGER_BASED: none, instances are created by external triggers

Version: 0.1.0
"""

from dataclasses import dataclass
from datetime import date
from typing import NamedTuple

from dateutil.relativedelta import relativedelta

from shared.models.requirement import Applicability, Frequency, RequirementDefinition
from shared.models.subject import SubjectProfile


class DueDate(NamedTuple):
    """A period label and the date its filing falls due."""

    period_label: str
    due_date: date


@dataclass(frozen=True)
class Period:
    """A closed calendar interval."""

    label: str
    start: date
    end: date


def applies_to(applicability: Applicability, subject: SubjectProfile) -> bool:
    """Evaluate an applicability predicate against a subject profile."""
    if applicability.min_revenue is not None and subject.annual_revenue < applicability.min_revenue:
        return False
    if applicability.min_employees is not None and subject.employee_count < applicability.min_employees:
        return False
    if applicability.subject_types:
        allowed = {t.upper() for t in applicability.subject_types}
        if subject.subject_type not in allowed:
            return False
    if applicability.regions and subject.region not in applicability.regions:
        return False
    return True


def _month_period(d: date) -> Period:
    start = d + relativedelta(day=1)
    end = start + relativedelta(months=+1, days=-1)
    return Period(f"{start.year:04d}-{start.month:02d}", start, end)


def _quarter_period(d: date) -> Period:
    quarter = (d.month - 1) // 3 + 1
    start = date(d.year, 3 * (quarter - 1) + 1, 1)
    end = start + relativedelta(months=+3, days=-1)
    return Period(f"{d.year:04d}-Q{quarter}", start, end)


def _year_period(d: date) -> Period:
    start = date(d.year, 1, 1)
    return Period(f"{d.year:04d}", start, start + relativedelta(years=+1, days=-1))


def period_containing(frequency: Frequency, d: date) -> Period:
    """The period of `frequency` that contains day `d`."""
    if frequency == Frequency.MONTHLY:
        return _month_period(d)
    if frequency == Frequency.QUARTERLY:
        return _quarter_period(d)
    if frequency == Frequency.ANNUAL:
        return _year_period(d)
    raise ValueError(f"{frequency.value} requirements have no calendar periods")


def previous_period(frequency: Frequency, period: Period) -> Period:
    """The period immediately before `period`."""
    return period_containing(frequency, period.start + relativedelta(days=-1))


def due_date_for(requirement: RequirementDefinition, period: Period) -> date:
    """Due date of a requirement's filing for `period`."""
    rule = requirement.schedule
    if requirement.frequency == Frequency.ANNUAL:
        # relativedelta clamps day to the end of the month
        return period.end + relativedelta(
            years=+1, month=rule.annual_due_month, day=rule.annual_due_day
        )
    return period.end + relativedelta(days=+1 + rule.due_day_offset)


class ScheduleCalculator:
    """
    Pure due date computation.

    Produces the `lookback_periods` most recently completed periods plus the
    period that contains the reference date. Calling twice with the same
    inputs yields the same result.
    """

    def __init__(self, lookback_periods: int = 1) -> None:
        if lookback_periods < 0:
            raise ValueError("lookback_periods must be >= 0")
        self.lookback_periods = lookback_periods

    def compute_due_dates(
        self,
        requirement: RequirementDefinition,
        subject: SubjectProfile,
        reference_date: date,
    ) -> list[DueDate]:
        """
        Compute the due dates a requirement currently produces for a subject.

        Args:
            requirement: Requirement definition
            subject: Subject profile
            reference_date: Day the computation is anchored to

        Returns:
            DueDate entries ordered by due date; empty when the requirement
            does not apply or is not calendar-scheduled
        """
        if not requirement.frequency.is_scheduled:
            return []
        if not applies_to(requirement.applicability, subject):
            return []

        period = period_containing(requirement.frequency, reference_date)
        periods = [period]
        for _ in range(self.lookback_periods):
            period = previous_period(requirement.frequency, period)
            periods.append(period)

        registered = subject.registration_date
        due_dates = [
            DueDate(p.label, due_date_for(requirement, p))
            for p in periods
            if registered is None or p.end >= registered
        ]
        return sorted(due_dates, key=lambda d: d.due_date)
