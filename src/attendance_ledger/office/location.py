from __future__ import annotations

import ipaddress
from typing import Optional

import requests
import structlog

from ..core.constants import SUSPICIOUS_NETWORK_ORGS
from ..core.exceptions import LocationNotAllowedError
from .model import OfficeConfig

logger = structlog.get_logger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized location. Attendance not allowed."


class LocationVerifier:
    """Decides whether a check-in origin is an allowed office location.

    The origin must be on the office allow-list, and public addresses must not
    geolocate to a hosting or VPN provider.
    """

    def __init__(self, *, lookup_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self._lookup_url = lookup_url
        self._timeout = timeout
        self._session = session or requests.Session()

    def verify(self, origin_ip: Optional[str], config: OfficeConfig) -> None:
        if not origin_ip or origin_ip not in config.allowed_ips:
            logger.warning("location.not_allowed", origin_ip=origin_ip)
            raise LocationNotAllowedError(UNAUTHORIZED_MESSAGE)

        if self._is_private(origin_ip):
            return

        info = self._lookup(origin_ip)
        if info.get("status") != "success":
            raise LocationNotAllowedError(UNAUTHORIZED_MESSAGE)

        org = f"{info.get('org', '')} {info.get('isp', '')}".lower()
        if any(marker in org for marker in SUSPICIOUS_NETWORK_ORGS):
            logger.warning("location.suspicious_network", origin_ip=origin_ip, org=org.strip())
            raise LocationNotAllowedError(UNAUTHORIZED_MESSAGE)

    @staticmethod
    def _is_private(origin_ip: str) -> bool:
        try:
            return ipaddress.ip_address(origin_ip).is_private
        except ValueError:
            return False

    def _lookup(self, origin_ip: str) -> dict:
        try:
            response = self._session.get(self._lookup_url.format(ip=origin_ip), timeout=self._timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("location.lookup_failed", origin_ip=origin_ip, error=str(e))
            return {}
