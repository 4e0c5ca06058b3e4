from __future__ import annotations

from dataclasses import dataclass

from ..core.constants import EARLY_LEAVE_BELOW_MINUTES, FULL_DAY_ABSENCE_BELOW_MINUTES, HALF_DAY_BELOW_MINUTES
from .strategies.base import Classification, ClassificationContext, WorkedDurationStrategy
from .strategies.early_leave_strategy import EarlyLeaveStrategy
from .strategies.full_day_absence_strategy import FullDayAbsenceStrategy
from .strategies.full_day_strategy import FullDayStrategy
from .strategies.half_day_strategy import HalfDayStrategy


@dataclass
class ClassificationFactory:
    """Factory Pattern: pick the worked-duration band for a day."""

    def for_worked_minutes(self, worked_minutes: int) -> WorkedDurationStrategy:
        if worked_minutes < FULL_DAY_ABSENCE_BELOW_MINUTES:
            return FullDayAbsenceStrategy()
        if worked_minutes < HALF_DAY_BELOW_MINUTES:
            return HalfDayStrategy()
        if worked_minutes < EARLY_LEAVE_BELOW_MINUTES:
            return EarlyLeaveStrategy()
        return FullDayStrategy()

    def classify(self, worked_minutes: int, context: ClassificationContext) -> Classification:
        return self.for_worked_minutes(worked_minutes).classify(worked_minutes, context)


def classify(worked_minutes: int, context: ClassificationContext | None = None) -> Classification:
    return ClassificationFactory().classify(worked_minutes, context or ClassificationContext())
