from __future__ import annotations

from datetime import date, time

import pytest
import requests

from attendance_ledger.core.exceptions import LocationNotAllowedError, NotFoundError
from attendance_ledger.office.location import LocationVerifier
from attendance_ledger.office.model import ClockWindow, DaySchedule, OfficeConfig, WorkingHours

from conftest import MONDAY, make_user


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.urls = []

    def get(self, url, timeout):
        self.urls.append(url)
        if self.error:
            raise self.error
        return FakeResponse(self.payload)


def _verifier(session):
    return LocationVerifier(lookup_url="http://geo.test/json/{ip}", session=session)


def test_origin_must_be_on_the_allow_list():
    session = FakeSession({"status": "success"})
    config = OfficeConfig(allowed_ips=("203.0.113.7",))
    with pytest.raises(LocationNotAllowedError):
        _verifier(session).verify("198.51.100.1", config)
    with pytest.raises(LocationNotAllowedError):
        _verifier(session).verify(None, config)
    assert session.urls == []


def test_private_addresses_skip_the_lookup():
    session = FakeSession()
    _verifier(session).verify("192.168.1.20", OfficeConfig(allowed_ips=("192.168.1.20",)))
    assert session.urls == []


def test_public_address_with_clean_network():
    session = FakeSession({"status": "success", "org": "Nayatel", "isp": "Nayatel Pvt"})
    _verifier(session).verify("203.0.113.7", OfficeConfig(allowed_ips=("203.0.113.7",)))
    assert session.urls == ["http://geo.test/json/203.0.113.7"]


@pytest.mark.parametrize(
    "session",
    [
        FakeSession({"status": "success", "org": "DigitalOcean, LLC", "isp": ""}),
        FakeSession({"status": "fail"}),
        FakeSession(error=requests.ConnectionError("no route")),
    ],
)
def test_public_address_rejected(session):
    with pytest.raises(LocationNotAllowedError):
        _verifier(session).verify("203.0.113.7", OfficeConfig(allowed_ips=("203.0.113.7",)))


def test_default_users_get_office_hours(world):
    assert world.resolver.get(1).checkin_time == time(10, 0)


def test_business_users_get_business_hours(world):
    world.office_config.config = OfficeConfig(bd_working_hours=ClockWindow(time(12, 0), time(21, 0)))
    assert world.resolver.get(4).checkin_time == time(12, 0)


def test_personal_hours_and_expiry(world):
    world.users.users_by_id[1] = make_user(1, is_default_working_hours=False)
    world.working_hours_repo.by_user[1] = WorkingHours(
        checkin_time=time(8, 0), checkout_time=time(16, 0), expiry_date=date(2025, 2, 28)
    )
    assert world.resolver.get(1, today=MONDAY).checkin_time == time(10, 0)
    assert world.resolver.get(1, today=date(2025, 2, 1)).checkin_time == time(8, 0)


def test_personal_hours_missing(world):
    world.users.users_by_id[1] = make_user(1, is_default_working_hours=False)
    with pytest.raises(NotFoundError):
        world.resolver.get(1)


def test_weekly_custom_hours():
    hours = WorkingHours(
        checkin_time=time(10, 0),
        checkout_time=time(19, 0),
        custom_working_hours=(DaySchedule("monday", time(9, 0), time(14, 0)),),
        is_week_custom_working_hours=True,
    )
    assert hours.window_for(MONDAY).checkout_time == time(14, 0)
    assert hours.window_for(date(2025, 3, 4)).checkout_time == time(19, 0)
