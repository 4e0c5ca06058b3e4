from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import LeaveCategory
from .model import User


class UserRepository(Protocol):
    """Read-only user directory.

    Note (DIP): services depend on this interface, never on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def list_regularizable(self) -> Sequence[User]:
        """Active employees and team leads."""
        raise NotImplementedError

    def list_active_by_category(self, category: LeaveCategory) -> Sequence[User]:
        raise NotImplementedError
