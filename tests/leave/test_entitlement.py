from __future__ import annotations

from dataclasses import replace
from datetime import date

from attendance_ledger.core.enums import EmploymentStatus, Gender, LeaveType
from attendance_ledger.leave.entitlement import (
    aggregates,
    allowed_by_type,
    build_breakdown,
    make_bucket,
    prorated_entitlement,
)
from attendance_ledger.office.model import OfficeConfig

from conftest import make_user


def test_permanent_entitlement_split():
    user = make_user(1)
    allowed = allowed_by_type(user, OfficeConfig(), 24)
    assert allowed[LeaveType.SICK] == 7
    assert allowed[LeaveType.CASUAL] == 7
    assert allowed[LeaveType.ANNUAL] == 10
    assert LeaveType.PROBATION not in allowed
    assert allowed[LeaveType.UNPAID] == 10


def test_gender_specific_types():
    config = OfficeConfig()
    male = allowed_by_type(make_user(1, gender=Gender.MALE), config, 24)
    female = allowed_by_type(make_user(2, gender=Gender.FEMALE), config, 24)
    assert LeaveType.MATERNITY not in male and LeaveType.PATERNITY in male
    assert LeaveType.PATERNITY not in female and LeaveType.MATERNITY in female


def test_probationary_users_only_get_the_probation_pool():
    user = make_user(2, employment_status=EmploymentStatus.INTERNSHIP)
    config = OfficeConfig()
    entitlement = prorated_entitlement(user, config, 2025)
    assert entitlement == 3
    assert allowed_by_type(user, config, entitlement) == {LeaveType.PROBATION: 3}


def test_joining_year_is_prorated_and_floored():
    user = make_user(1, joining_date=date(2025, 7, 1))
    # 184 of 365 days remain
    assert prorated_entitlement(user, OfficeConfig(), 2025) == 12
    assert prorated_entitlement(user, OfficeConfig(), 2026) == 24


def test_business_designation_uses_business_settings():
    config = replace(OfficeConfig(), allowed_leave_for_permanent_business_developers=30)
    user = make_user(4, designation="Senior Business Developer")
    assert prorated_entitlement(user, config, 2025) == 30


def test_breakdown_keeps_taken_and_used_types_that_were_removed():
    previous = {
        LeaveType.ANNUAL: make_bucket(10, 4),
        LeaveType.MARRIAGE: make_bucket(5, 2),
        LeaveType.DEMISE: make_bucket(5, 0),
    }
    breakdown = build_breakdown({LeaveType.ANNUAL: 12}, previous)
    assert breakdown[LeaveType.ANNUAL].taken == 4
    assert breakdown[LeaveType.ANNUAL].remaining == 8
    assert breakdown[LeaveType.MARRIAGE].allowed == 0
    assert breakdown[LeaveType.MARRIAGE].remaining == 0
    assert LeaveType.DEMISE not in breakdown


def test_aggregates_skip_unpaid_and_special_types():
    user = make_user(1)
    breakdown = {
        LeaveType.ANNUAL: make_bucket(10, 2),
        LeaveType.SICK: make_bucket(7, 1),
        LeaveType.CASUAL: make_bucket(7, 0),
        LeaveType.UNPAID: make_bucket(10, 3),
        LeaveType.MARRIAGE: make_bucket(5, 5),
    }
    assert aggregates(user, breakdown) == (3.0, 21.0)


def test_bucket_remaining_never_negative():
    bucket = make_bucket(2, 3.5)
    assert bucket.remaining == 0
    assert make_bucket(2, -1).taken == 0
