from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import ModuleType
from typing import Any, Callable

from .accounts.mysql_account_repository import MySQLAccountRepository
from .accounts.repository import AccountRepository
from .accounts.service import AuthService
from .accounts.tokens import TokenService
from .classes.mysql_class_repository import MySQLClassRepository
from .classes.repository import ClassRepository
from .classes.service import ClassService
from .common.datetime_utils import now_local
from .core.constants import DEVICE_ONLINE_MINUTES
from .courses.mysql_course_repository import MySQLCourseRepository
from .courses.repository import CourseRepository
from .courses.service import CourseService
from .database.connection import DBConfig, DatabaseConnection
from .devices.mysql_device_repository import MySQLDeviceRepository
from .devices.repository import DeviceRepository
from .devices.service import DeviceService
from .enrollments.mysql_enrollment_repository import MySQLEnrollmentRepository
from .enrollments.repository import EnrollmentRepository
from .enrollments.service import EnrollmentService
from .lecturers.mysql_lecturer_repository import MySQLLecturerRepository
from .lecturers.repository import LecturerRepository
from .lecturers.service import LecturerService
from .recognition.factory import build_recognizer
from .recognition.model import Recognizer
from .reports.service import ReportService
from .sessions.mysql_session_repository import MySQLRecordRepository, MySQLSessionRepository
from .sessions.repository import RecordRepository, SessionRepository
from .sessions.service import AttendanceSessionService
from .students.mysql_student_repository import MySQLStudentRepository
from .students.repository import StudentRepository
from .students.service import StudentService


@dataclass(frozen=True)
class Repositories:
    accounts: AccountRepository
    students: StudentRepository
    lecturers: LecturerRepository
    courses: CourseRepository
    classes: ClassRepository
    enrollments: EnrollmentRepository
    devices: DeviceRepository
    sessions: SessionRepository
    records: RecordRepository


@dataclass(frozen=True)
class Container:
    repos: Repositories

    auth_service: AuthService
    student_service: StudentService
    lecturer_service: LecturerService
    course_service: CourseService
    class_service: ClassService
    enrollment_service: EnrollmentService
    device_service: DeviceService
    session_service: AttendanceSessionService
    report_service: ReportService


def mysql_repositories(conn: DatabaseConnection) -> Repositories:
    return Repositories(
        accounts=MySQLAccountRepository(conn),
        students=MySQLStudentRepository(conn),
        lecturers=MySQLLecturerRepository(conn),
        courses=MySQLCourseRepository(conn),
        classes=MySQLClassRepository(conn),
        enrollments=MySQLEnrollmentRepository(conn),
        devices=MySQLDeviceRepository(conn),
        sessions=MySQLSessionRepository(conn),
        records=MySQLRecordRepository(conn),
    )


def build_services(
    repos: Repositories,
    *,
    tokens: TokenService,
    recognizer: Recognizer,
    clock: Callable[[], datetime] = now_local,
    online_minutes: int = DEVICE_ONLINE_MINUTES,
) -> Container:
    """Wire services over any set of repositories (MySQL in production, in-memory in tests)."""

    student_service = StudentService(repos.students, repos.accounts)
    lecturer_service = LecturerService(repos.lecturers, repos.accounts)
    auth_service = AuthService(
        repos.accounts,
        repos.students,
        repos.lecturers,
        tokens,
        student_service=student_service,
        lecturer_service=lecturer_service,
        clock=clock,
    )
    course_service = CourseService(repos.courses)
    class_service = ClassService(repos.classes, repos.courses, repos.lecturers, repos.enrollments, repos.students)
    enrollment_service = EnrollmentService(
        repos.enrollments,
        repos.classes,
        repos.students,
        repos.courses,
        clock=clock,
    )
    device_service = DeviceService(repos.devices, repos.classes, clock=clock, online_minutes=online_minutes)
    session_service = AttendanceSessionService(
        repos.sessions,
        repos.records,
        repos.classes,
        repos.courses,
        repos.devices,
        repos.enrollments,
        repos.students,
        recognizer,
        clock=clock,
        online_minutes=online_minutes,
    )
    report_service = ReportService(
        repos.students,
        repos.lecturers,
        repos.courses,
        repos.classes,
        repos.devices,
        repos.enrollments,
        repos.sessions,
        repos.records,
        clock=clock,
        online_minutes=online_minutes,
    )

    return Container(
        repos=repos,
        auth_service=auth_service,
        student_service=student_service,
        lecturer_service=lecturer_service,
        course_service=course_service,
        class_service=class_service,
        enrollment_service=enrollment_service,
        device_service=device_service,
        session_service=session_service,
        report_service=report_service,
    )


def build_container(*, db_config: dict[str, Any], settings: ModuleType) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    tokens = TokenService(
        getattr(settings, "JWT_SECRET"),
        expires_hours=int(getattr(settings, "JWT_EXPIRES_HOURS", 24)),
        refresh_days=int(getattr(settings, "REFRESH_EXPIRES_DAYS", 7)),
    )
    return build_services(
        mysql_repositories(conn),
        tokens=tokens,
        recognizer=build_recognizer(settings),
        online_minutes=int(getattr(settings, "DEVICE_ONLINE_MINUTES", DEVICE_ONLINE_MINUTES)),
    )
