from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..common.pagination import Page, PageRequest
from ..common.validators import FieldErrors, int_in_range, optional_text, text
from ..core.constants import MAX_SEMESTER, MAX_SKS, MIN_SEMESTER, MIN_SKS
from ..core.exceptions import NotFoundError, ValidationError
from .model import Course
from .repository import CourseRepository

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(self, courses: CourseRepository):
        self._courses = courses

    def require(self, course_id: Any) -> Course:
        try:
            course = self._courses.get_by_id(int(course_id))
        except (TypeError, ValueError):
            course = None
        if not course:
            raise NotFoundError("Mata kuliah not found")
        return course

    def list(self, page: PageRequest, *, jurusan: Optional[str] = None, semester: Optional[int] = None) -> Page[Course]:
        return self._courses.list(page, jurusan=jurusan, semester=semester)

    @staticmethod
    def _validate(data: Mapping[str, Any], *, partial: bool) -> dict:
        errors = FieldErrors()
        changes: dict[str, Any] = {}

        for key, label in (("kode", "Kode"), ("nama", "Nama"), ("jurusan", "Jurusan")):
            if not partial or key in data:
                changes[key] = text(data.get(key))
                if not changes[key]:
                    errors.add(key, f"{label} is required")
        if not partial or "sks" in data:
            changes["sks"] = int_in_range(data.get("sks"), MIN_SKS, MAX_SKS)
            if changes["sks"] is None:
                errors.add("sks", f"SKS must be between {MIN_SKS} and {MAX_SKS}")
        if not partial or "semester" in data:
            changes["semester"] = int_in_range(data.get("semester"), MIN_SEMESTER, MAX_SEMESTER)
            if changes["semester"] is None:
                errors.add("semester", f"Semester must be between {MIN_SEMESTER} and {MAX_SEMESTER}")
        if "deskripsi" in data:
            changes["deskripsi"] = optional_text(data.get("deskripsi"))

        errors.raise_if_any()
        return changes

    def create(self, data: Mapping[str, Any]) -> Course:
        fields = self._validate(data, partial=False)
        if self._courses.exists_kode(fields["kode"]):
            raise ValidationError("Kode mata kuliah already exists")

        course_id = self._courses.create(
            kode=fields["kode"],
            nama=fields["nama"],
            sks=fields["sks"],
            semester=fields["semester"],
            jurusan=fields["jurusan"],
            deskripsi=fields.get("deskripsi"),
        )
        logger.info("Created mata kuliah %s (%s)", course_id, fields["kode"])
        return self.require(course_id)

    def update(self, course_id: int, data: Mapping[str, Any]) -> Course:
        current = self.require(course_id)
        changes = self._validate(data, partial=True)
        if "kode" in changes and self._courses.exists_kode(changes["kode"], exclude_id=current.course_id):
            raise ValidationError("Kode mata kuliah already exists")
        self._courses.update(current.course_id, changes)
        return self.require(current.course_id)

    def delete(self, course_id: int) -> None:
        course = self.require(course_id)
        self._courses.delete(course.course_id)
        logger.info("Deleted mata kuliah %s", course.course_id)
