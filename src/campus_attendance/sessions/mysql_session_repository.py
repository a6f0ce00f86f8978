from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..core.enums import AttendanceStatus
from ..core.exceptions import DuplicateKeyError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import AttendanceRecord, AttendanceSession, NewRecord
from .repository import RecordRepository, SessionRepository

_SESSION_COLUMNS = """
    id, kelas_id, dosen_id, device_id, judul_sesi, waktu_mulai, waktu_selesai,
    durasi_menit, is_active, kode_sesi, created_at, updated_at
"""

_RECORD_COLUMNS = """
    id, sesi_absensi_id, mahasiswa_id, waktu_absen, status, lokasi_absen, confidence,
    foto_wajah, device_id, ip_address, user_agent, is_validated, keterangan,
    created_at, updated_at
"""

_RECORD_UNIQUE_KEY = "uq_absensi_sesi_mahasiswa"


def _to_session(row: dict) -> AttendanceSession:
    return AttendanceSession(
        session_id=int(row["id"]),
        kelas_id=int(row["kelas_id"]),
        dosen_id=int(row["dosen_id"]),
        device_id=int(row["device_id"]),
        judul_sesi=row["judul_sesi"],
        waktu_mulai=row["waktu_mulai"],
        waktu_selesai=row.get("waktu_selesai"),
        durasi_menit=int(row["durasi_menit"]),
        is_active=bool(row["is_active"]),
        kode_sesi=row["kode_sesi"],
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _to_record(row: dict) -> AttendanceRecord:
    confidence = row.get("confidence")
    return AttendanceRecord(
        record_id=int(row["id"]),
        sesi_absensi_id=int(row["sesi_absensi_id"]),
        mahasiswa_id=int(row["mahasiswa_id"]),
        waktu_absen=row["waktu_absen"],
        status=AttendanceStatus(row["status"]),
        lokasi_absen=row.get("lokasi_absen"),
        confidence=float(confidence) if confidence is not None else None,
        foto_wajah=row.get("foto_wajah"),
        device_id=row.get("device_id"),
        ip_address=row.get("ip_address"),
        user_agent=row.get("user_agent"),
        is_validated=bool(row.get("is_validated")),
        keterangan=row.get("keterangan"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, session_id: int) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM sesi_absensi WHERE id=%s", (session_id,))
            row = fetchone(cur)
            return _to_session(row) if row else None

    def find_by_ids(self, session_ids: Sequence[int]) -> Sequence[AttendanceSession]:
        if not session_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SESSION_COLUMNS} FROM sesi_absensi WHERE id IN ({in_clause(session_ids)})",
                tuple(session_ids),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def get_active_for_device(self, device_id: int) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS} FROM sesi_absensi
                WHERE device_id=%s AND is_active=1
                ORDER BY waktu_mulai DESC LIMIT 1
                """,
                (device_id,),
            )
            row = fetchone(cur)
            return _to_session(row) if row else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sesi_absensi(kelas_id, dosen_id, device_id, judul_sesi, waktu_mulai, durasi_menit, is_active, kode_sesi)
                VALUES(%s,%s,%s,%s,%s,%s,1,%s)
                """,
                (kelas_id, dosen_id, device_id, judul_sesi, waktu_mulai, durasi_menit, kode_sesi),
            )
            return int(cur.lastrowid)

    def close(self, session_id: int, *, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE sesi_absensi SET is_active=0, waktu_selesai=COALESCE(waktu_selesai, %s) WHERE id=%s",
                (at, session_id),
            )
            return cur.rowcount > 0

    def list_active(self, *, dosen_id: Optional[int] = None) -> Sequence[AttendanceSession]:
        sql = f"SELECT {_SESSION_COLUMNS} FROM sesi_absensi WHERE is_active=1"
        params: tuple = ()
        if dosen_id is not None:
            sql += " AND dosen_id=%s"
            params = (dosen_id,)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY waktu_mulai DESC", params)
            return [_to_session(r) for r in fetchall(cur)]

    def find(
        self,
        *,
        kelas_ids: Optional[Sequence[int]] = None,
        dosen_id: Optional[int] = None,
        started_from: Optional[datetime] = None,
        started_before: Optional[datetime] = None,
    ) -> Sequence[AttendanceSession]:
        if kelas_ids is not None and not kelas_ids:
            return []
        where = ["1=1"]
        params: list[Any] = []
        if kelas_ids is not None:
            where.append(f"kelas_id IN ({in_clause(kelas_ids)})")
            params.extend(kelas_ids)
        if dosen_id is not None:
            where.append("dosen_id=%s")
            params.append(dosen_id)
        if started_from is not None:
            where.append("waktu_mulai >= %s")
            params.append(started_from)
        if started_before is not None:
            where.append("waktu_mulai < %s")
            params.append(started_before)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SESSION_COLUMNS} FROM sesi_absensi WHERE {' AND '.join(where)} ORDER BY waktu_mulai DESC, id DESC",
                tuple(params),
            )
            return [_to_session(r) for r in fetchall(cur)]


class MySQLRecordRepository(RecordRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_session_student(self, session_id: int, mahasiswa_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM absensi WHERE sesi_absensi_id=%s AND mahasiswa_id=%s",
                (session_id, mahasiswa_id),
            )
            row = fetchone(cur)
            return _to_record(row) if row else None

    def insert_if_absent(self, record: NewRecord) -> tuple[AttendanceRecord, bool]:
        created = True
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO absensi(
                        sesi_absensi_id, mahasiswa_id, waktu_absen, status, lokasi_absen, confidence,
                        foto_wajah, device_id, ip_address, user_agent, is_validated, keterangan
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        record.sesi_absensi_id,
                        record.mahasiswa_id,
                        record.waktu_absen,
                        record.status.value,
                        record.lokasi_absen,
                        record.confidence,
                        record.foto_wajah,
                        record.device_id,
                        record.ip_address,
                        record.user_agent,
                        int(record.is_validated),
                        record.keterangan,
                    ),
                )
        except DuplicateKeyError as e:
            if e.key != _RECORD_UNIQUE_KEY:
                raise
            created = False

        stored = self.get_for_session_student(record.sesi_absensi_id, record.mahasiswa_id)
        if stored is None:
            raise RuntimeError(
                f"Attendance for sesi {record.sesi_absensi_id} / mahasiswa {record.mahasiswa_id} vanished after insert"
            )
        return stored, created

    def list_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM absensi WHERE sesi_absensi_id=%s ORDER BY waktu_absen ASC, id ASC",
                (session_id,),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def find(
        self,
        *,
        session_ids: Optional[Sequence[int]] = None,
        mahasiswa_id: Optional[int] = None,
        recorded_from: Optional[datetime] = None,
        recorded_before: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        if session_ids is not None and not session_ids:
            return []
        where = ["1=1"]
        params: list[Any] = []
        if session_ids is not None:
            where.append(f"sesi_absensi_id IN ({in_clause(session_ids)})")
            params.extend(session_ids)
        if mahasiswa_id is not None:
            where.append("mahasiswa_id=%s")
            params.append(mahasiswa_id)
        if recorded_from is not None:
            where.append("waktu_absen >= %s")
            params.append(recorded_from)
        if recorded_before is not None:
            where.append("waktu_absen < %s")
            params.append(recorded_before)
        sql = f"SELECT {_RECORD_COLUMNS} FROM absensi WHERE {' AND '.join(where)} ORDER BY waktu_absen DESC, id DESC"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_record(r) for r in fetchall(cur)]
