from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, AttendanceSession, NewRecord


class SessionRepository(Protocol):
    def get_by_id(self, session_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def find_by_ids(self, session_ids: Sequence[int]) -> Sequence[AttendanceSession]:
        raise NotImplementedError

    def get_active_for_device(self, device_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def create_active(
        self,
        *,
        kelas_id: int,
        dosen_id: int,
        device_id: int,
        judul_sesi: str,
        durasi_menit: int,
        kode_sesi: str,
        waktu_mulai: datetime,
    ) -> int:
        """Insert an active session.

        Raises DuplicateKeyError with key "uq_sesi_active_kelas" when the
        kelas already has an active session, or "uq_sesi_kode" when the code
        is taken.
        """
        raise NotImplementedError

    def close(self, session_id: int, *, at: datetime) -> bool:
        raise NotImplementedError

    def list_active(self, *, dosen_id: Optional[int] = None) -> Sequence[AttendanceSession]:
        raise NotImplementedError

    def find(
        self,
        *,
        kelas_ids: Optional[Sequence[int]] = None,
        dosen_id: Optional[int] = None,
        started_from: Optional[datetime] = None,
        started_before: Optional[datetime] = None,
    ) -> Sequence[AttendanceSession]:
        """Sessions matching every given filter, newest first."""
        raise NotImplementedError


class RecordRepository(Protocol):
    def get_for_session_student(self, session_id: int, mahasiswa_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def insert_if_absent(self, record: NewRecord) -> tuple[AttendanceRecord, bool]:
        """Write `record` unless (session, mahasiswa) already has one.

        Returns the stored record and whether this call created it.
        """
        raise NotImplementedError

    def list_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def find(
        self,
        *,
        session_ids: Optional[Sequence[int]] = None,
        mahasiswa_id: Optional[int] = None,
        recorded_from: Optional[datetime] = None,
        recorded_before: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        """Records matching every given filter, newest first.

        An empty `session_ids` matches nothing.
        """
        raise NotImplementedError
