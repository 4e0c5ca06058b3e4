from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from ...common.datetime_utils import format_duration
from ...core.enums import AttendanceStatus


class ClassificationKind(str, Enum):
    FULL_DAY_ABSENCE = "full-day-absence"
    HALF_DAY = "half-day"
    EARLY_LEAVE = "early-leave"
    FULL_DAY = "full-day"


@dataclass(frozen=True)
class ClassificationContext:
    has_half_day_leave: bool = False
    was_remote: bool = False
    is_late: bool = False
    # Admin corrections report a full day with a late check-in as `late`.
    admin_variant: bool = False


@dataclass(frozen=True)
class Classification:
    """Outcome of a worked-duration decision.

    `leave_days` is what the day costs: unpaid days, or the extra half day of an
    upgraded half-day leave.
    """

    kind: ClassificationKind
    status: AttendanceStatus
    worked_minutes: int
    leave_days: float = 0.0
    is_half_day: bool = False
    analysis: str = ""

    @property
    def production_time(self) -> str:
        return format_duration(self.worked_minutes)


class WorkedDurationStrategy(ABC):
    """Strategy Pattern: one band of worked minutes."""

    @abstractmethod
    def classify(self, worked_minutes: int, context: ClassificationContext) -> Classification:
        raise NotImplementedError
