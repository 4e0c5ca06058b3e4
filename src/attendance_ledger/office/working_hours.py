from __future__ import annotations

from datetime import date
from typing import Optional

from ..core.exceptions import NotFoundError
from ..users.repository import UserRepository
from .model import WorkingHours
from .repository import OfficeConfigRepository, WorkingHoursRepository


class WorkingHoursResolver:
    """Effective checkin/checkout times for a user.

    Default users get the office hours (business hours for business designations);
    everyone else needs an unexpired override record.
    """

    def __init__(
        self,
        users: UserRepository,
        working_hours: WorkingHoursRepository,
        office_config: OfficeConfigRepository,
    ):
        self._users = users
        self._working_hours = working_hours
        self._office_config = office_config

    def get(self, user_id: int, *, today: Optional[date] = None) -> WorkingHours:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")

        if not user.is_default_working_hours:
            record = self._working_hours.get_for_user(user_id)
            if record is None:
                raise NotFoundError("Working hours not configured for this user")
            if record.expiry_date is None or today is None or record.expiry_date >= today:
                return record

        window = self._office_config.get().hours_for(user.leave_category)
        return WorkingHours(checkin_time=window.checkin_time, checkout_time=window.checkout_time)
