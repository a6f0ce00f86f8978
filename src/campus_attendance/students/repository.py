from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from ..common.pagination import Page, PageRequest
from .model import Student


class StudentRepository(Protocol):
    def list(self, page: PageRequest, *, jurusan: Optional[str] = None, semester: Optional[int] = None) -> Page[Student]:
        raise NotImplementedError

    def get_by_id(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def find_by_ids(self, student_ids: Sequence[int]) -> Sequence[Student]:
        raise NotImplementedError

    def exists_nim_or_email(self, nim: str, email: str, *, exclude_id: Optional[int] = None) -> bool:
        raise NotImplementedError

    def create(
        self,
        *,
        nim: str,
        nama: str,
        email: str,
        jurusan: str,
        semester: int,
        nomor_hp: Optional[str] = None,
        alamat: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def update(self, student_id: int, changes: Mapping[str, Any]) -> bool:
        """`changes` keys are column names (nim, nama, email, jurusan, semester, ...)."""
        raise NotImplementedError

    def delete(self, student_id: int) -> bool:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError
