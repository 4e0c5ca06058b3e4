from __future__ import annotations

from ...common.datetime_utils import format_duration
from ...core.enums import AttendanceStatus
from .base import Classification, ClassificationContext, ClassificationKind, WorkedDurationStrategy


class FullDayStrategy(WorkedDurationStrategy):
    """8 hours or more."""

    def classify(self, worked_minutes: int, context: ClassificationContext) -> Classification:
        if context.was_remote:
            status = AttendanceStatus.REMOTE
        elif context.admin_variant and context.is_late:
            status = AttendanceStatus.LATE
        else:
            status = AttendanceStatus.PRESENT
        return Classification(
            kind=ClassificationKind.FULL_DAY,
            status=status,
            worked_minutes=worked_minutes,
            analysis=f"Worked {format_duration(worked_minutes)}. Full day completed.",
        )
