from __future__ import annotations

from ...common.datetime_utils import format_duration
from ...core.enums import AttendanceStatus
from .base import Classification, ClassificationContext, ClassificationKind, WorkedDurationStrategy


class EarlyLeaveStrategy(WorkedDurationStrategy):
    """6.5 to 8 hours: informational, never charged."""

    def classify(self, worked_minutes: int, context: ClassificationContext) -> Classification:
        return Classification(
            kind=ClassificationKind.EARLY_LEAVE,
            status=AttendanceStatus.EARLY_LEAVE,
            worked_minutes=worked_minutes,
            analysis=f"Worked {format_duration(worked_minutes)}, less than 8 hours. Marked as early leave.",
        )
