from __future__ import annotations

from typing import Optional, Protocol

import structlog

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor

logger = structlog.get_logger(__name__)


class NotificationGateway(Protocol):
    def notify(
        self,
        actor_id: Optional[int],
        target_id: Optional[int],
        message: str,
        *,
        notify_admins: bool = False,
        admin_message: Optional[str] = None,
    ) -> None:
        raise NotImplementedError


class MySQLNotificationGateway(NotificationGateway):
    """Writes in-app notifications. Delivery problems never fail the caller."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def notify(
        self,
        actor_id: Optional[int],
        target_id: Optional[int],
        message: str,
        *,
        notify_admins: bool = False,
        admin_message: Optional[str] = None,
    ) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO notifications(notification_by, notification_to, notify_admins, message, admin_message)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (actor_id, target_id, int(notify_admins), message, admin_message),
                )
        except Exception as e:
            logger.warning("notification.failed", target_id=target_id, error=str(e))


def safe_notify(gateway: NotificationGateway, actor_id, target_id, message: str, **kwargs) -> None:
    """Call any gateway and log instead of raising."""
    try:
        gateway.notify(actor_id, target_id, message, **kwargs)
    except Exception as e:
        logger.warning("notification.failed", target_id=target_id, error=str(e))
