from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..common.pagination import Page, PageRequest
from .model import Enrollment, EnrollmentBatch


class EnrollmentRepository(Protocol):
    def list(
        self,
        page: PageRequest,
        *,
        kelas_id: Optional[int] = None,
        mahasiswa_id: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> Page[Enrollment]:
        raise NotImplementedError

    def get_by_id(self, enrollment_id: int) -> Optional[Enrollment]:
        raise NotImplementedError

    def list_for_class(self, kelas_id: int, *, active_only: bool = True) -> Sequence[Enrollment]:
        raise NotImplementedError

    def list_for_student(self, mahasiswa_id: int, *, active_only: bool = True) -> Sequence[Enrollment]:
        raise NotImplementedError

    def is_active_member(self, kelas_id: int, mahasiswa_id: int) -> bool:
        raise NotImplementedError

    def counts(self, *, kelas_id: Optional[int] = None, mahasiswa_id: Optional[int] = None) -> tuple[int, int]:
        """(total, active) enrollment rows matching the filter."""
        raise NotImplementedError

    def set_active(self, enrollment_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError

    def enroll_batch(self, kelas_id: int, mahasiswa_ids: Sequence[int], *, now: datetime) -> EnrollmentBatch:
        """Atomically check capacity and enroll.

        Raises CapacityExceededError (nothing written) when
        active + len(mahasiswa_ids) > kapasitas. Otherwise each student is
        handled on its own: already active -> per-item error, inactive ->
        reactivated, absent -> inserted.
        """
        raise NotImplementedError
