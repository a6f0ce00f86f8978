from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from ..common.pagination import Page, PageRequest
from .model import Course


class CourseRepository(Protocol):
    def list(self, page: PageRequest, *, jurusan: Optional[str] = None, semester: Optional[int] = None) -> Page[Course]:
        raise NotImplementedError

    def get_by_id(self, course_id: int) -> Optional[Course]:
        raise NotImplementedError

    def find_by_ids(self, course_ids: Sequence[int]) -> Sequence[Course]:
        raise NotImplementedError

    def exists_kode(self, kode: str, *, exclude_id: Optional[int] = None) -> bool:
        raise NotImplementedError

    def create(self, *, kode: str, nama: str, sks: int, semester: int, jurusan: str, deskripsi: Optional[str]) -> int:
        raise NotImplementedError

    def update(self, course_id: int, changes: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, course_id: int) -> bool:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError
