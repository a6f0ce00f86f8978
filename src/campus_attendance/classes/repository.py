from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from ..common.pagination import Page, PageRequest
from .model import ClassSection


class ClassRepository(Protocol):
    def list(
        self,
        page: PageRequest,
        *,
        dosen_id: Optional[int] = None,
        matkul_id: Optional[int] = None,
        hari: Optional[str] = None,
    ) -> Page[ClassSection]:
        raise NotImplementedError

    def get_by_id(self, class_id: int) -> Optional[ClassSection]:
        raise NotImplementedError

    def find_by_ids(self, class_ids: Sequence[int]) -> Sequence[ClassSection]:
        raise NotImplementedError

    def list_by_lecturer(self, dosen_id: int) -> Sequence[ClassSection]:
        """Ordered by weekday then start time."""
        raise NotImplementedError

    def create(self, fields: Mapping[str, Any]) -> int:
        raise NotImplementedError

    def update(self, class_id: int, changes: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, class_id: int) -> bool:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError
