from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from ..common.pagination import Page, PageRequest
from .model import Lecturer


class LecturerRepository(Protocol):
    def list(self, page: PageRequest, *, jurusan: Optional[str] = None) -> Page[Lecturer]:
        raise NotImplementedError

    def get_by_id(self, lecturer_id: int) -> Optional[Lecturer]:
        raise NotImplementedError

    def find_by_ids(self, lecturer_ids: Sequence[int]) -> Sequence[Lecturer]:
        raise NotImplementedError

    def exists_nidn_or_email(self, nidn: str, email: str, *, exclude_id: Optional[int] = None) -> bool:
        raise NotImplementedError

    def create(
        self,
        *,
        nidn: str,
        nama: str,
        email: str,
        jurusan: str,
        nomor_hp: Optional[str] = None,
        alamat: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def update(self, lecturer_id: int, changes: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, lecturer_id: int) -> bool:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError
