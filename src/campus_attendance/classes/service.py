from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from ..common.pagination import Page, PageRequest
from ..common.validators import FieldErrors, as_int, choice, parse_hhmm, text
from ..core.enums import Term, Weekday
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository
from ..enrollments.repository import EnrollmentRepository
from ..lecturers.repository import LecturerRepository
from ..students.repository import StudentRepository
from .model import ClassSection
from .repository import ClassRepository

logger = logging.getLogger(__name__)


class ClassService:
    """Use cases: kelas CRUD plus the per-role "my classes" views.

    Note: schedule overlap (same room or lecturer at the same time) is not
    checked; see DESIGN.md.
    """

    def __init__(
        self,
        classes: ClassRepository,
        courses: CourseRepository,
        lecturers: LecturerRepository,
        enrollments: EnrollmentRepository,
        students: StudentRepository,
    ):
        self._classes = classes
        self._courses = courses
        self._lecturers = lecturers
        self._enrollments = enrollments
        self._students = students

    def require(self, class_id: Any) -> ClassSection:
        try:
            section = self._classes.get_by_id(int(class_id))
        except (TypeError, ValueError):
            section = None
        if not section:
            raise NotFoundError("Kelas not found")
        return section

    def describe(self, sections: Sequence[ClassSection], *, with_students: bool = False) -> list[dict]:
        """Serialize classes with their course and lecturer (and optionally roster) attached."""

        courses = {c.course_id: c for c in self._courses.find_by_ids(sorted({s.matkul_id for s in sections}))}
        lecturers = {d.lecturer_id: d for d in self._lecturers.find_by_ids(sorted({s.dosen_id for s in sections}))}

        out = []
        for s in sections:
            item = s.to_dict()
            course = courses.get(s.matkul_id)
            lecturer = lecturers.get(s.dosen_id)
            item["mataKuliah"] = course.summary() if course else None
            item["dosen"] = lecturer.summary() if lecturer else None
            active = self._enrollments.list_for_class(s.class_id)
            item["jumlahMahasiswa"] = len(active)
            if with_students:
                roster = self._students.find_by_ids([e.mahasiswa_id for e in active])
                item["mahasiswas"] = [st.to_dict() for st in roster]
            out.append(item)
        return out

    def list(
        self,
        page: PageRequest,
        *,
        dosen_id: Optional[int] = None,
        matkul_id: Optional[int] = None,
        hari: Optional[str] = None,
    ) -> tuple[list[dict], Page[ClassSection]]:
        result = self._classes.list(page, dosen_id=dosen_id, matkul_id=matkul_id, hari=hari)
        return self.describe(result.items), result

    def get(self, class_id: int) -> dict:
        return self.describe([self.require(class_id)], with_students=True)[0]

    def classes_for_lecturer(self, ctx) -> list[dict]:
        if ctx.lecturer_id is None:
            raise AuthorizationError("Only dosen have a teaching schedule")
        return self.describe(self._classes.list_by_lecturer(ctx.lecturer_id))

    def classes_for_student(self, ctx) -> list[dict]:
        if ctx.student_id is None:
            raise AuthorizationError("Only mahasiswa have enrolled classes")
        ids = [e.kelas_id for e in self._enrollments.list_for_student(ctx.student_id)]
        sections = sorted(self._classes.find_by_ids(ids), key=lambda s: s.schedule_key)
        return self.describe(sections)

    def _validate(self, data: Mapping[str, Any], *, partial: bool) -> dict:
        errors = FieldErrors()
        fields: dict[str, Any] = {}

        def wanted(key: str) -> bool:
            return not partial or key in data

        for key, col, label in (("nama", "nama", "Nama"), ("ruang", "ruang", "Ruang"), ("tahunAjaran", "tahun_ajaran", "Tahun ajaran")):
            if wanted(key):
                fields[col] = text(data.get(key))
                if not fields[col]:
                    errors.add(key, f"{label} is required")
        for key, col in (("matkulId", "matkul_id"), ("dosenId", "dosen_id")):
            if wanted(key):
                fields[col] = as_int(data.get(key))
                if fields[col] is None:
                    errors.add(key, f"{key} must be an integer")
        if wanted("hari"):
            hari = choice(data.get("hari"), [d.value for d in Weekday])
            if hari is None:
                errors.add("hari", "Hari must be one of Senin..Minggu")
            else:
                fields["hari"] = Weekday(hari)
        for key, col in (("jamMulai", "jam_mulai"), ("jamSelesai", "jam_selesai")):
            if wanted(key):
                fields[col] = parse_hhmm(data.get(key))
                if fields[col] is None:
                    errors.add(key, f"{key} must be HH:MM")
        if wanted("kapasitas"):
            kapasitas = as_int(data.get("kapasitas"))
            if kapasitas is None or kapasitas < 1:
                errors.add("kapasitas", "Kapasitas must be at least 1")
            fields["kapasitas"] = kapasitas
        if wanted("semester"):
            semester = choice(data.get("semester"), [t.value for t in Term])
            if semester is None:
                errors.add("semester", "Semester must be Ganjil or Genap")
            else:
                fields["semester"] = Term(semester)

        errors.raise_if_any()
        return fields

    def _check_references(self, fields: Mapping[str, Any]) -> None:
        if "matkul_id" in fields and not self._courses.get_by_id(fields["matkul_id"]):
            raise NotFoundError("Mata kuliah not found")
        if "dosen_id" in fields and not self._lecturers.get_by_id(fields["dosen_id"]):
            raise NotFoundError("Dosen not found")

    @staticmethod
    def _check_times(start, end) -> None:
        if start and end and end <= start:
            raise ValidationError(
                "Validation failed",
                errors=[{"field": "jamSelesai", "message": "jamSelesai must be after jamMulai"}],
            )

    def create(self, data: Mapping[str, Any]) -> dict:
        fields = self._validate(data, partial=False)
        self._check_times(fields["jam_mulai"], fields["jam_selesai"])
        self._check_references(fields)
        class_id = self._classes.create(fields)
        logger.info("Created kelas %s (%s)", class_id, fields["nama"])
        return self.get(class_id)

    def update(self, class_id: int, data: Mapping[str, Any]) -> dict:
        current = self.require(class_id)
        changes = self._validate(data, partial=True)
        self._check_times(changes.get("jam_mulai", current.jam_mulai), changes.get("jam_selesai", current.jam_selesai))
        self._check_references(changes)

        if "kapasitas" in changes:
            _, active = self._enrollments.counts(kelas_id=current.class_id)
            if changes["kapasitas"] < active:
                raise ValidationError(f"Kapasitas cannot be lower than current enrollment ({active})")

        self._classes.update(current.class_id, changes)
        return self.get(current.class_id)

    def delete(self, class_id: int) -> None:
        section = self.require(class_id)
        self._classes.delete(section.class_id)
        logger.info("Deleted kelas %s", section.class_id)
