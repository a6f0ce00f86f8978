from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import pytest
from werkzeug.security import generate_password_hash

from campus_attendance.accounts.model import AuthContext
from campus_attendance.accounts.tokens import TokenService
from campus_attendance.container import Container, Repositories, build_services
from campus_attendance.core.enums import Role
from campus_attendance.main import create_app
from campus_attendance.settings import testing as testing_settings

from fakes import (
    FixedClock,
    InMemoryAccounts,
    InMemoryClasses,
    InMemoryCourses,
    InMemoryDevices,
    InMemoryEnrollments,
    InMemoryLecturers,
    InMemoryRecords,
    InMemorySessions,
    InMemoryStudents,
    StubRecognizer,
)

# A Monday, inside the seeded class's slot.
FIXED_NOW = datetime(2024, 3, 11, 8, 15)


@dataclass
class Campus:
    """Ids and caller contexts of the seeded demo data."""

    admin: AuthContext
    lecturer: AuthContext
    other_lecturer: AuthContext
    students: list[AuthContext]
    course_id: int
    class_id: int
    device_id: int
    device_external_id: str
    enrolled_ids: list[int]
    outsider_id: int


@pytest.fixture
def clock():
    return FixedClock(FIXED_NOW)


@pytest.fixture
def recognizer():
    return StubRecognizer()


@pytest.fixture
def repos():
    classes = InMemoryClasses()
    return Repositories(
        accounts=InMemoryAccounts(),
        students=InMemoryStudents(),
        lecturers=InMemoryLecturers(),
        courses=InMemoryCourses(),
        classes=classes,
        enrollments=InMemoryEnrollments(classes),
        devices=InMemoryDevices(),
        sessions=InMemorySessions(),
        records=InMemoryRecords(),
    )


@pytest.fixture
def tokens():
    return TokenService(testing_settings.JWT_SECRET)


@pytest.fixture
def container(repos, tokens, recognizer, clock) -> Container:
    return build_services(repos, tokens=tokens, recognizer=recognizer, clock=clock)


def _context(repos: Repositories, account_id: int) -> AuthContext:
    return AuthContext.of(repos.accounts.get_by_id(account_id))


@pytest.fixture
def campus(container: Container, repos: Repositories) -> Campus:
    admin_id = repos.accounts.create(
        username="admin",
        email="admin@kampus.ac.id",
        password_hash=generate_password_hash("admin123"),
        role=Role.ADMIN,
    )

    lecturer, lecturer_account = container.lecturer_service.create(
        {"nidn": "0012345601", "nama": "Dr. Budi Santoso", "email": "budi@kampus.ac.id", "jurusan": "Informatika"}
    )
    other, other_account = container.lecturer_service.create(
        {"nidn": "0012345602", "nama": "Dr. Rina Wati", "email": "rina@kampus.ac.id", "jurusan": "Informatika"}
    )

    course = container.course_service.create(
        {"kode": "IF205", "nama": "Basis Data", "sks": 3, "semester": 3, "jurusan": "Informatika"}
    )
    section = container.class_service.create(
        {
            "nama": "IF205-A",
            "matkulId": course.course_id,
            "dosenId": lecturer.lecturer_id,
            "hari": "Senin",
            "jamMulai": "08:00",
            "jamSelesai": "10:30",
            "ruang": "A201",
            "kapasitas": 3,
            "tahunAjaran": "2023/2024",
            "semester": "Genap",
        }
    )

    student_accounts = []
    for nim, nama in (("2023001", "Siti Aminah"), ("2023002", "Andi Pratama"), ("2023003", "Dewi Lestari")):
        _, account = container.student_service.create(
            {"nim": nim, "nama": nama, "email": f"{nim}@student.kampus.ac.id", "jurusan": "Informatika", "semester": 3}
        )
        student_accounts.append(account)

    students = [_context(repos, a.account_id) for a in student_accounts]
    enrolled_ids = [students[0].student_id, students[1].student_id]
    container.enrollment_service.enroll(kelas_id=section["id"], mahasiswa_ids=enrolled_ids)

    device = container.device_service.create(
        {"deviceId": "DEV-1", "nama": "Kamera Lab 1", "lokasi": "Gedung A Lantai 2", "ruang": "A201"}
    )

    return Campus(
        admin=_context(repos, admin_id),
        lecturer=_context(repos, lecturer_account.account_id),
        other_lecturer=_context(repos, other_account.account_id),
        students=students,
        course_id=course.course_id,
        class_id=section["id"],
        device_id=device["id"],
        device_external_id=device["deviceId"],
        enrolled_ids=enrolled_ids,
        outsider_id=students[2].student_id,
    )


@pytest.fixture
def app(container):
    flask_app = create_app(container=container, settings=testing_settings)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def bearer(repos, tokens):
    """Authorization header for an account id, clearing any pending password change."""

    def make(ctx: AuthContext) -> dict:
        account = repos.accounts.get_by_id(ctx.account_id)
        if account.must_change_password:
            repos.accounts.update_password(account.account_id, password_hash=account.password_hash)
            account = repos.accounts.get_by_id(ctx.account_id)
        return {"Authorization": f"Bearer {tokens.issue(account)}"}

    return make
