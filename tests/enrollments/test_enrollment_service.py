from __future__ import annotations

import pytest

from campus_attendance.core.exceptions import (
    AuthorizationError,
    CapacityExceededError,
    NotFoundError,
    ValidationError,
)

from conftest import FIXED_NOW


def _new_student(container, nim: str) -> int:
    student, _ = container.student_service.create(
        {"nim": nim, "nama": f"Mahasiswa {nim}", "email": f"{nim}@student.kampus.ac.id", "jurusan": "Informatika", "semester": 3},
        create_account=False,
    )
    return student.student_id


def _enrollment(repos, campus, mahasiswa_id):
    return next(
        e for e in repos.enrollments.list_for_class(campus.class_id, active_only=False) if e.mahasiswa_id == mahasiswa_id
    )


def test_enroll_batch_adds_new_members(container, campus):
    batch = container.enrollment_service.enroll(kelas_id=campus.class_id, mahasiswa_ids=[campus.outsider_id])

    assert batch.success_count == 1
    assert batch.errors == []
    assert batch.enrollments[0].tanggal_enroll == FIXED_NOW


def test_enroll_batch_reports_already_enrolled(container, campus):
    student_id = campus.enrolled_ids[0]
    batch = container.enrollment_service.enroll(kelas_id=campus.class_id, mahasiswa_ids=[student_id])

    assert batch.success_count == 0
    assert batch.errors == [f"Mahasiswa {student_id} is already enrolled in this class"]


def test_enroll_batch_over_capacity_writes_nothing(container, campus, repos):
    extra = _new_student(container, "2023010")
    with pytest.raises(CapacityExceededError) as exc:
        container.enrollment_service.enroll(kelas_id=campus.class_id, mahasiswa_ids=[campus.outsider_id, extra])

    assert exc.value.current == 2
    assert exc.value.capacity == 3
    assert str(exc.value) == "Class capacity exceeded. Current: 2, Available: 1"
    assert repos.enrollments.counts(kelas_id=campus.class_id) == (2, 2)


def test_enroll_rejects_unknown_students_and_bad_payload(container, campus):
    with pytest.raises(NotFoundError, match="One or more mahasiswa not found"):
        container.enrollment_service.enroll(kelas_id=campus.class_id, mahasiswa_ids=[999])
    with pytest.raises(NotFoundError, match="Kelas not found"):
        container.enrollment_service.enroll(kelas_id=999, mahasiswa_ids=[campus.outsider_id])
    with pytest.raises(ValidationError) as exc:
        container.enrollment_service.enroll(kelas_id="abc", mahasiswa_ids=[])
    assert {e["field"] for e in exc.value.errors} == {"kelasId", "mahasiswaIds"}


def test_unenroll_deactivates_and_reenroll_reactivates(container, campus, repos):
    student_id = campus.enrolled_ids[0]
    enrollment = _enrollment(repos, campus, student_id)

    gone = container.enrollment_service.unenroll(enrollment.enrollment_id)
    assert gone.is_active is False
    assert repos.enrollments.counts(kelas_id=campus.class_id) == (2, 1)
    assert not repos.enrollments.is_active_member(campus.class_id, student_id)

    batch = container.enrollment_service.enroll(kelas_id=campus.class_id, mahasiswa_ids=[student_id])
    assert batch.success_count == 1
    assert batch.enrollments[0].enrollment_id == enrollment.enrollment_id
    assert repos.enrollments.counts(kelas_id=campus.class_id) == (2, 2)


def test_reactivation_respects_capacity(container, campus, repos):
    first = _enrollment(repos, campus, campus.enrolled_ids[0])
    container.enrollment_service.unenroll(first.enrollment_id)
    container.enrollment_service.enroll(
        kelas_id=campus.class_id, mahasiswa_ids=[campus.outsider_id, _new_student(container, "2023011")]
    )

    with pytest.raises(ValidationError, match="capacity exceeded"):
        container.enrollment_service.update(first.enrollment_id, {"isActive": True})

    with pytest.raises(ValidationError):
        container.enrollment_service.update(first.enrollment_id, {"isActive": "maybe"})


def test_class_enrollments_visible_to_owner_only(container, campus):
    items = container.enrollment_service.for_class(campus.lecturer, campus.class_id)
    assert [i["mahasiswa"]["id"] for i in items] == campus.enrolled_ids
    assert items[0]["kelas"]["mataKuliah"]["kode"] == "IF205"

    with pytest.raises(AuthorizationError):
        container.enrollment_service.for_class(campus.other_lecturer, campus.class_id)


def test_student_sees_only_own_enrollments(container, campus):
    me = campus.students[0]
    assert len(container.enrollment_service.for_student(me, me.student_id)) == 1
    with pytest.raises(AuthorizationError):
        container.enrollment_service.for_student(me, campus.students[1].student_id)


def test_stats_for_class(container, campus):
    stats = container.enrollment_service.stats(kelas_id=campus.class_id)

    assert stats["totalEnrollments"] == 2
    assert stats["kelasInfo"]["available"] == 1
    assert stats["kelasInfo"]["utilizationPercentage"] == 66.67
