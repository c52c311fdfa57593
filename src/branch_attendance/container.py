from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .attendance.workday import WorkdayResolver
from .audit.sink import AuditSink, LoggingAuditSink
from .breaks.service import BreakService
from .common.datetime_utils import Clock
from .common.locks import KeyedLock
from .common.timezones import TimeZoneConverter
from .core.constants import DEFAULT_LATE_GRACE_MINUTES, DEFAULT_LOCK_TIMEOUT_SECONDS, DEFAULT_PENDING_PAGE_SIZE
from .corrections.mysql_correction_repository import MySQLCorrectionRepository
from .corrections.repository import CorrectionRepository
from .corrections.service import CorrectionService
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeDirectory
from .employees.repository import EmployeeDirectory
from .shifts.mysql_shift_repository import MySQLShiftRepository
from .shifts.repository import ShiftRepository
from .shifts.resolver import ScheduledShiftResolver, ShiftResolver


@dataclass(frozen=True)
class Container:
    employees_repo: EmployeeDirectory
    shifts_repo: ShiftRepository
    attendance_repo: AttendanceRepository
    corrections_repo: CorrectionRepository

    converter: TimeZoneConverter
    locks: KeyedLock
    workdays: WorkdayResolver
    shift_resolver: ShiftResolver

    break_service: BreakService
    attendance_service: AttendanceService
    correction_service: CorrectionService

    conn: Optional[DatabaseConnection] = None


def wire(
    *,
    employees: EmployeeDirectory,
    shifts: ShiftRepository,
    attendance: AttendanceRepository,
    corrections: CorrectionRepository,
    clock: Clock | None = None,
    converter: TimeZoneConverter | None = None,
    audit: AuditSink | None = None,
    shift_resolver: ShiftResolver | None = None,
    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
    page_size: int = DEFAULT_PENDING_PAGE_SIZE,
    conn: DatabaseConnection | None = None,
) -> Container:
    """Build the services over any set of repositories.

    One KeyedLock is shared by all services so they serialise on the same
    employee-day.
    """
    converter = converter or TimeZoneConverter()
    locks = KeyedLock(timeout=lock_timeout)
    workdays = WorkdayResolver(employees, converter, clock)
    shift_resolver = shift_resolver or ScheduledShiftResolver(shifts, employees)

    break_service = BreakService(attendance, workdays, locks, audit=audit)
    attendance_service = AttendanceService(
        attendance,
        workdays,
        shift_resolver,
        break_service,
        locks,
        audit=audit,
        strategy_factory=AttendanceStrategyFactory(),
        grace_minutes=grace_minutes,
    )
    correction_service = CorrectionService(
        corrections,
        attendance,
        break_service,
        workdays,
        locks,
        audit=audit,
        page_size=page_size,
    )

    return Container(
        employees_repo=employees,
        shifts_repo=shifts,
        attendance_repo=attendance,
        corrections_repo=corrections,
        converter=converter,
        locks=locks,
        workdays=workdays,
        shift_resolver=shift_resolver,
        break_service=break_service,
        attendance_service=attendance_service,
        correction_service=correction_service,
        conn=conn,
    )


def build_container(
    *,
    db_config: dict,
    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
    page_size: int = DEFAULT_PENDING_PAGE_SIZE,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    return wire(
        employees=MySQLEmployeeDirectory(conn),
        shifts=MySQLShiftRepository(conn),
        attendance=MySQLAttendanceRepository(conn),
        corrections=MySQLCorrectionRepository(conn),
        audit=LoggingAuditSink(),
        grace_minutes=grace_minutes,
        lock_timeout=lock_timeout,
        page_size=page_size,
        conn=conn,
    )
