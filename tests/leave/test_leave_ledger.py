from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from attendance_ledger.core.enums import LeaveCategory, LeaveStatus, LeaveType
from attendance_ledger.core.exceptions import NotFoundError, ValidationError
from attendance_ledger.leave.ledger import year_portions
from attendance_ledger.leave.model import LeaveRecord


def _leave(start, end, total, *, half=False, leave_type=LeaveType.ANNUAL, user_id=1):
    return LeaveRecord(
        leave_id=1,
        user_id=user_id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        total_days=total,
        is_half_day=half,
        status=LeaveStatus.PENDING,
        reason="Family function out of town",
    )


def test_initialize_builds_stats_once(world):
    stats = world.ledger.initialize(1, 2025)
    assert stats.prorated_leave_entitlement == 24
    assert stats.remaining_leaves == 24
    assert stats.total_taken_leaves == 0
    assert world.ledger.initialize(1, 2025) is stats


def test_initialize_unknown_user(world):
    with pytest.raises(NotFoundError):
        world.ledger.initialize(99, 2025)


def test_apply_then_restore_returns_to_start(world):
    before = world.ledger.initialize(1, 2025)
    world.ledger.apply(1, 2025, LeaveType.ANNUAL, 2)
    after = world.ledger.restore(1, 2025, LeaveType.ANNUAL, 2)
    assert after.leave_breakdown == before.leave_breakdown
    assert after.remaining_leaves == before.remaining_leaves
    assert after.total_restored_leaves == 0


def test_buckets_and_totals_stay_consistent(world):
    world.ledger.apply(1, 2025, LeaveType.ANNUAL, 3)
    world.ledger.apply(1, 2025, LeaveType.SICK, 1.5)
    stats = world.ledger.apply(1, 2025, LeaveType.UNPAID, 2)

    for bucket in stats.leave_breakdown.values():
        assert bucket.remaining == max(0, bucket.allowed - bucket.taken)
    assert stats.total_taken_leaves == 4.5
    assert stats.remaining_leaves == 24 - 4.5


def test_over_restore_clamps_at_zero(world):
    stats = world.ledger.restore(1, 2025, LeaveType.CASUAL, 2)
    assert stats.bucket(LeaveType.CASUAL).taken == 0
    assert stats.bucket(LeaveType.CASUAL).remaining == 7


def test_over_apply_keeps_remaining_at_zero(world):
    stats = world.ledger.apply(1, 2025, LeaveType.SICK, 9)
    assert stats.bucket(LeaveType.SICK).taken == 9
    assert stats.bucket(LeaveType.SICK).remaining == 0


def test_unconfigured_type_is_rejected(world):
    with pytest.raises(ValidationError):
        world.ledger.apply(2, 2025, LeaveType.ANNUAL, 1)


def test_unpaid_bucket_is_created_on_demand(world):
    stats = world.ledger.apply(2, 2025, LeaveType.UNPAID, 1)
    unpaid = stats.bucket(LeaveType.UNPAID)
    assert unpaid.allowed == 0
    assert unpaid.taken == 1
    assert stats.remaining_leaves == 3


def test_attendance_restore_is_counted(world):
    world.ledger.apply(1, 2025, LeaveType.ANNUAL, 2)
    stats = world.ledger.restore(1, 2025, LeaveType.ANNUAL, 1, count_as_restored=True)
    assert stats.total_restored_leaves == 1
    assert stats.bucket(LeaveType.ANNUAL).taken == 1


def test_year_portions():
    assert year_portions(_leave(date(2025, 3, 3), date(2025, 3, 3), 0.5, half=True)) == {2025: 0.5}
    assert year_portions(_leave(date(2025, 3, 3), date(2025, 3, 7), 5)) == {2025: 5.0}
    assert year_portions(_leave(date(2025, 12, 29), date(2026, 1, 2), 5)) == {2025: 3.0, 2026: 2.0}


def test_cross_year_leave_charges_each_year(world):
    leave = _leave(date(2025, 12, 29), date(2026, 1, 2), 5)
    world.ledger.apply_leave(leave)
    assert world.ledger.get_stats(1, 2025).bucket(LeaveType.ANNUAL).taken == 3
    assert world.ledger.get_stats(1, 2026).bucket(LeaveType.ANNUAL).taken == 2

    world.ledger.restore_leave(leave)
    assert world.ledger.get_stats(1, 2025).bucket(LeaveType.ANNUAL).taken == 0
    assert world.ledger.get_stats(1, 2026).bucket(LeaveType.ANNUAL).taken == 0


def test_recalculate_applies_new_config_and_keeps_taken(world):
    world.ledger.apply(1, 2025, LeaveType.ANNUAL, 4)
    world.ledger.apply(1, 2025, LeaveType.MARRIAGE, 2)
    config = world.office_config.config
    world.office_config.config = replace(
        config,
        allowed_leave_for_permanent_employees=30,
        general_leave_types={LeaveType.UNPAID: 10},
    )

    stats = world.ledger.recalculate(1, 2025)
    assert stats.prorated_leave_entitlement == 30
    assert stats.bucket(LeaveType.ANNUAL).allowed == 12
    assert stats.bucket(LeaveType.ANNUAL).taken == 4
    assert stats.bucket(LeaveType.MARRIAGE).allowed == 0
    assert stats.bucket(LeaveType.MARRIAGE).taken == 2
    # marriage is excluded from the total
    assert stats.total_taken_leaves == 4
    assert stats.remaining_leaves == 26


def test_sync_category_only_touches_that_category(world):
    world.ledger.initialize(1, 2025)
    world.ledger.initialize(4, 2025)
    rebuilt = world.ledger.sync_category(LeaveCategory.BUSINESS, 2025)
    assert rebuilt == 1
