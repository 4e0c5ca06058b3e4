"""Entitlement math for the leave ledger.

Pure functions: they read a user and an office config snapshot and return
numbers or buckets; persistence lives in LeaveLedger.
"""

from __future__ import annotations

import math
from typing import Dict, Mapping, Optional, Tuple

from ..common.datetime_utils import days_remaining_in_year
from ..core.constants import CASUAL_SHARE, EXCLUDED_FROM_TOTAL_TAKEN, GENERAL_POOL_TYPES, SICK_SHARE
from ..core.enums import EmploymentStatus, Gender, LeaveType
from ..office.model import OfficeConfig
from ..users.model import User
from .model import LeaveBucket


def base_entitlement(user: User, config: OfficeConfig) -> int:
    if user.is_probationary:
        return int(config.leave_types_for(user.leave_category).get(LeaveType.PROBATION, 0))
    return int(config.permanent_entitlement_for(user.leave_category))


def prorated_entitlement(user: User, config: OfficeConfig, year: int) -> int:
    """Permanent employees who joined during `year` get the remaining fraction of it."""
    entitlement = base_entitlement(user, config)
    joined = user.joining_date
    if user.employment_status == EmploymentStatus.PERMANENT and joined is not None and joined.year == year:
        return math.floor(entitlement * days_remaining_in_year(joined) / 365)
    return entitlement


def _skipped_for_gender(leave_type: LeaveType, gender: Gender) -> bool:
    if leave_type == LeaveType.MATERNITY and gender == Gender.MALE:
        return True
    if leave_type == LeaveType.PATERNITY and gender == Gender.FEMALE:
        return True
    return False


def allowed_by_type(user: User, config: OfficeConfig, entitlement: int) -> Dict[LeaveType, int]:
    if user.is_probationary:
        return {LeaveType.PROBATION: entitlement}

    sick = math.floor(entitlement * SICK_SHARE)
    casual = math.floor(entitlement * CASUAL_SHARE)
    allowed = {
        LeaveType.SICK: sick,
        LeaveType.CASUAL: casual,
        LeaveType.ANNUAL: entitlement - sick - casual,
    }
    for leave_type, allowance in config.leave_types_for(user.leave_category).items():
        if leave_type in allowed or leave_type == LeaveType.PROBATION:
            continue
        if _skipped_for_gender(leave_type, user.gender):
            continue
        allowed[leave_type] = int(allowance)
    return allowed


def make_bucket(allowed: float, taken: float) -> LeaveBucket:
    taken = max(0.0, float(taken))
    return LeaveBucket(allowed=float(allowed), taken=taken, remaining=max(0.0, float(allowed) - taken))


def build_breakdown(
    allowed: Mapping[LeaveType, int],
    previous: Optional[Mapping[LeaveType, LeaveBucket]] = None,
) -> Dict[LeaveType, LeaveBucket]:
    """Buckets for `allowed`, carrying `taken` over from `previous`.

    A previously used type that is no longer configured stays with allowed=0.
    """
    previous = previous or {}
    breakdown = {t: make_bucket(a, previous[t].taken if t in previous else 0.0) for t, a in allowed.items()}
    for leave_type, bucket in previous.items():
        if leave_type not in breakdown and bucket.taken > 0:
            breakdown[leave_type] = make_bucket(0, bucket.taken)
    return breakdown


def aggregates(user: User, breakdown: Mapping[LeaveType, LeaveBucket]) -> Tuple[float, float]:
    """(total_taken_leaves, remaining_leaves) for a breakdown."""
    total_taken = sum(b.taken for t, b in breakdown.items() if t not in EXCLUDED_FROM_TOTAL_TAKEN)
    pool = (LeaveType.PROBATION,) if user.is_probationary else GENERAL_POOL_TYPES
    remaining = sum(breakdown[t].remaining for t in pool if t in breakdown)
    return float(total_taken), float(remaining)
