from __future__ import annotations

from dataclasses import dataclass
from types import ModuleType

from .attendance.factory import ClassificationFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .database.connection import DBConfig, DatabaseConnection
from .leave.ledger import LeaveLedger
from .leave.mysql_leave_repository import MySQLLeaveRepository
from .leave.mysql_leave_stats_repository import MySQLLeaveStatsRepository
from .leave.service import LeaveService
from .notifications.gateway import MySQLNotificationGateway
from .notifications.mailer import SmtpMailer
from .office.location import LocationVerifier
from .office.mysql_office_repository import (
    MySQLOfficeConfigRepository,
    MySQLOfficeEventDirectory,
    MySQLRemoteWorkDirectory,
    MySQLWorkingHoursRepository,
)
from .office.working_hours import WorkingHoursResolver
from .regularization.runner import RegularizationRunner
from .regularization.service import RegularizationService
from .users.mysql_user_repository import MySQLUserRepository


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection
    timezone: str

    users_repo: MySQLUserRepository
    attendance_repo: MySQLAttendanceRepository
    leaves_repo: MySQLLeaveRepository
    leave_stats_repo: MySQLLeaveStatsRepository
    office_config_repo: MySQLOfficeConfigRepository
    working_hours_repo: MySQLWorkingHoursRepository
    remote_work: MySQLRemoteWorkDirectory
    events: MySQLOfficeEventDirectory
    notifications: MySQLNotificationGateway
    mailer: SmtpMailer

    leave_ledger: LeaveLedger
    leave_service: LeaveService
    attendance_service: AttendanceService
    regularization_service: RegularizationService
    regularization_runner: RegularizationRunner


def build_container(*, db_config: dict, settings: ModuleType) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    timezone = getattr(settings, "ORG_TIMEZONE")

    users_repo = MySQLUserRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    leaves_repo = MySQLLeaveRepository(conn)
    leave_stats_repo = MySQLLeaveStatsRepository(conn)
    office_config_repo = MySQLOfficeConfigRepository(conn)
    working_hours_repo = MySQLWorkingHoursRepository(conn)
    remote_work = MySQLRemoteWorkDirectory(conn)
    events = MySQLOfficeEventDirectory(conn)
    notifications = MySQLNotificationGateway(conn)
    mailer = SmtpMailer(
        host=getattr(settings, "SMTP_HOST"),
        port=int(getattr(settings, "SMTP_PORT")),
        sender=getattr(settings, "SMTP_FROM"),
        username=getattr(settings, "SMTP_USER", ""),
        password=getattr(settings, "SMTP_PASSWORD", ""),
        use_tls=bool(getattr(settings, "SMTP_USE_TLS", True)),
    )

    working_hours = WorkingHoursResolver(users_repo, working_hours_repo, office_config_repo)
    location = LocationVerifier(
        lookup_url=getattr(settings, "IP_LOOKUP_URL"),
        timeout=float(getattr(settings, "IP_LOOKUP_TIMEOUT", 5.0)),
    )

    leave_ledger = LeaveLedger(leave_stats_repo, users_repo, office_config_repo)
    leave_service = LeaveService(
        leaves_repo,
        leave_ledger,
        users_repo,
        attendance_repo,
        remote_work=remote_work,
        office_config=office_config_repo,
        notifications=notifications,
        timezone=timezone,
    )
    attendance_service = AttendanceService(
        attendance_repo,
        users_repo,
        leave_service,
        working_hours=working_hours,
        remote_work=remote_work,
        office_config=office_config_repo,
        notifications=notifications,
        location=location,
        classification_factory=ClassificationFactory(),
        timezone=timezone,
    )
    regularization_service = RegularizationService(
        attendance_repo,
        users_repo,
        leave_service,
        events=events,
        working_hours=working_hours,
        office_config=office_config_repo,
        notifications=notifications,
        timezone=timezone,
    )
    regularization_runner = RegularizationRunner(
        regularization_service,
        mailer,
        recipients=getattr(settings, "ADMIN_REPORT_EMAILS", []),
    )

    return Container(
        conn=conn,
        timezone=timezone,
        users_repo=users_repo,
        attendance_repo=attendance_repo,
        leaves_repo=leaves_repo,
        leave_stats_repo=leave_stats_repo,
        office_config_repo=office_config_repo,
        working_hours_repo=working_hours_repo,
        remote_work=remote_work,
        events=events,
        notifications=notifications,
        mailer=mailer,
        leave_ledger=leave_ledger,
        leave_service=leave_service,
        attendance_service=attendance_service,
        regularization_service=regularization_service,
        regularization_runner=regularization_runner,
    )
