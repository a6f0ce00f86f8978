from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from ..classes.repository import ClassRepository
from ..common.datetime_utils import now_local
from ..common.pagination import Page, PageRequest
from ..common.validators import as_bool, as_int, int_list
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository
from ..students.repository import StudentRepository
from .model import Enrollment, EnrollmentBatch
from .repository import EnrollmentRepository

logger = logging.getLogger(__name__)


class EnrollmentService:
    """Use cases: batch enrollment, listing and (de)activation of memberships."""

    def __init__(
        self,
        enrollments: EnrollmentRepository,
        classes: ClassRepository,
        students: StudentRepository,
        courses: CourseRepository,
        *,
        clock: Callable = now_local,
    ):
        self._enrollments = enrollments
        self._classes = classes
        self._students = students
        self._courses = courses
        self._clock = clock

    def require(self, enrollment_id: Any) -> Enrollment:
        enrollment = self._enrollments.get_by_id(int(enrollment_id))
        if not enrollment:
            raise NotFoundError("Enrollment not found")
        return enrollment

    def describe(self, enrollments: Sequence[Enrollment]) -> list[dict]:
        students = {s.student_id: s for s in self._students.find_by_ids(sorted({e.mahasiswa_id for e in enrollments}))}
        classes = {c.class_id: c for c in self._classes.find_by_ids(sorted({e.kelas_id for e in enrollments}))}
        courses = {c.course_id: c for c in self._courses.find_by_ids(sorted({c.matkul_id for c in classes.values()}))}

        out = []
        for e in enrollments:
            item = e.to_dict()
            student = students.get(e.mahasiswa_id)
            section = classes.get(e.kelas_id)
            item["mahasiswa"] = student.summary() | {"jurusan": student.jurusan} if student else None
            if section:
                course = courses.get(section.matkul_id)
                item["kelas"] = section.to_dict() | {"mataKuliah": course.summary() if course else None}
            else:
                item["kelas"] = None
            out.append(item)
        return out

    def list(
        self,
        page: PageRequest,
        *,
        kelas_id: Optional[int] = None,
        mahasiswa_id: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> tuple[list[dict], Page[Enrollment]]:
        result = self._enrollments.list(page, kelas_id=kelas_id, mahasiswa_id=mahasiswa_id, is_active=is_active)
        return self.describe(result.items), result

    def get(self, enrollment_id: int) -> dict:
        return self.describe([self.require(enrollment_id)])[0]

    def for_class(self, ctx, kelas_id: int) -> list[dict]:
        section = self._classes.get_by_id(kelas_id)
        if not section:
            raise NotFoundError("Kelas not found")
        if not ctx.is_admin and section.dosen_id != ctx.lecturer_id:
            raise AuthorizationError("Unauthorized to view enrollments of this class")
        return self.describe(self._enrollments.list_for_class(kelas_id))

    def for_student(self, ctx, mahasiswa_id: int) -> list[dict]:
        if not ctx.is_admin and ctx.student_id != mahasiswa_id:
            raise AuthorizationError("Insufficient permissions")
        if not self._students.get_by_id(mahasiswa_id):
            raise NotFoundError("Mahasiswa not found")
        return self.describe(self._enrollments.list_for_student(mahasiswa_id))

    def stats(self, *, kelas_id: Optional[int] = None, mahasiswa_id: Optional[int] = None) -> dict:
        total, active = self._enrollments.counts(kelas_id=kelas_id, mahasiswa_id=mahasiswa_id)
        out: dict[str, Any] = {
            "totalEnrollments": total,
            "activeEnrollments": active,
            "inactiveEnrollments": total - active,
        }
        if kelas_id is not None:
            section = self._classes.get_by_id(kelas_id)
            if not section:
                raise NotFoundError("Kelas not found")
            out["kelasInfo"] = {
                "id": section.class_id,
                "nama": section.nama,
                "kapasitas": section.kapasitas,
                "enrolled": active,
                "available": section.kapasitas - active,
                "utilizationPercentage": round(active / section.kapasitas * 100, 2),
            }
        if mahasiswa_id is not None:
            student = self._students.get_by_id(mahasiswa_id)
            if not student:
                raise NotFoundError("Mahasiswa not found")
            out["mahasiswaInfo"] = student.summary() | {
                "jurusan": student.jurusan,
                "semester": student.semester,
                "activeEnrollments": active,
            }
        return out

    def enroll(self, *, kelas_id: Any, mahasiswa_ids: Any) -> EnrollmentBatch:
        errors = []
        kelas_id_int = as_int(kelas_id)
        if kelas_id_int is None:
            errors.append({"field": "kelasId", "message": "kelasId must be an integer"})
        ids = int_list(mahasiswa_ids)
        if ids is None:
            errors.append({"field": "mahasiswaIds", "message": "mahasiswaIds must be a non-empty array of integers"})
        if errors:
            raise ValidationError("Validation failed", errors=errors)

        if not self._classes.get_by_id(kelas_id_int):
            raise NotFoundError("Kelas not found")

        ids = list(dict.fromkeys(ids))
        if len(self._students.find_by_ids(ids)) != len(ids):
            raise NotFoundError("One or more mahasiswa not found")

        batch = self._enrollments.enroll_batch(kelas_id_int, ids, now=self._clock())
        logger.info(
            "Enrollment batch for kelas %s: %s enrolled, %s skipped",
            kelas_id_int,
            batch.success_count,
            batch.error_count,
        )
        return batch

    def update(self, enrollment_id: int, data: dict) -> Enrollment:
        enrollment = self.require(enrollment_id)
        is_active = as_bool(data.get("isActive"))
        if is_active is None:
            raise ValidationError(
                "Validation failed",
                errors=[{"field": "isActive", "message": "isActive must be a boolean"}],
            )
        if is_active and not enrollment.is_active:
            section = self._classes.get_by_id(enrollment.kelas_id)
            _, active = self._enrollments.counts(kelas_id=enrollment.kelas_id)
            if section and active + 1 > section.kapasitas:
                raise ValidationError(
                    f"Class capacity exceeded. Current: {active}, Available: {section.kapasitas - active}"
                )
        self._enrollments.set_active(enrollment.enrollment_id, is_active=is_active)
        return self.require(enrollment.enrollment_id)

    def unenroll(self, enrollment_id: int) -> Enrollment:
        enrollment = self.require(enrollment_id)
        self._enrollments.set_active(enrollment.enrollment_id, is_active=False)
        logger.info("Unenrolled mahasiswa %s from kelas %s", enrollment.mahasiswa_id, enrollment.kelas_id)
        return self.require(enrollment.enrollment_id)
