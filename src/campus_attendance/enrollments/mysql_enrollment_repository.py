from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..common.pagination import Page, PageRequest
from ..core.exceptions import CapacityExceededError, NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Enrollment, EnrollmentBatch
from .repository import EnrollmentRepository

_COLUMNS = "id, kelas_id, mahasiswa_id, tanggal_enroll, is_active, created_at, updated_at"


def _to_enrollment(row: dict) -> Enrollment:
    return Enrollment(
        enrollment_id=int(row["id"]),
        kelas_id=int(row["kelas_id"]),
        mahasiswa_id=int(row["mahasiswa_id"]),
        tanggal_enroll=row["tanggal_enroll"],
        is_active=bool(row["is_active"]),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class MySQLEnrollmentRepository(EnrollmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(
        self,
        page: PageRequest,
        *,
        kelas_id: Optional[int] = None,
        mahasiswa_id: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> Page[Enrollment]:
        where = ["1=1"]
        params: list[Any] = []
        for col, value in (("kelas_id", kelas_id), ("mahasiswa_id", mahasiswa_id)):
            if value is not None:
                where.append(f"{col}=%s")
                params.append(value)
        if is_active is not None:
            where.append("is_active=%s")
            params.append(int(is_active))
        clause = " AND ".join(where)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM enrollment WHERE {clause}", tuple(params))
            total = int(fetchone(cur)["total"])
            cur.execute(
                f"SELECT {_COLUMNS} FROM enrollment WHERE {clause} ORDER BY created_at DESC, id DESC LIMIT %s OFFSET %s",
                tuple(params) + (page.limit, page.offset),
            )
            rows = fetchall(cur)
        return Page(items=[_to_enrollment(r) for r in rows], total=total, page=page.page, limit=page.limit)

    def get_by_id(self, enrollment_id: int) -> Optional[Enrollment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM enrollment WHERE id=%s", (enrollment_id,))
            row = fetchone(cur)
            return _to_enrollment(row) if row else None

    def _list_where(self, where: str, params: tuple, active_only: bool) -> Sequence[Enrollment]:
        if active_only:
            where += " AND is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM enrollment WHERE {where} ORDER BY tanggal_enroll, id", params)
            return [_to_enrollment(r) for r in fetchall(cur)]

    def list_for_class(self, kelas_id: int, *, active_only: bool = True) -> Sequence[Enrollment]:
        return self._list_where("kelas_id=%s", (kelas_id,), active_only)

    def list_for_student(self, mahasiswa_id: int, *, active_only: bool = True) -> Sequence[Enrollment]:
        return self._list_where("mahasiswa_id=%s", (mahasiswa_id,), active_only)

    def is_active_member(self, kelas_id: int, mahasiswa_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS hit FROM enrollment WHERE kelas_id=%s AND mahasiswa_id=%s AND is_active=1",
                (kelas_id, mahasiswa_id),
            )
            return fetchone(cur) is not None

    def counts(self, *, kelas_id: Optional[int] = None, mahasiswa_id: Optional[int] = None) -> tuple[int, int]:
        where = ["1=1"]
        params: list[Any] = []
        for col, value in (("kelas_id", kelas_id), ("mahasiswa_id", mahasiswa_id)):
            if value is not None:
                where.append(f"{col}=%s")
                params.append(value)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT COUNT(*) AS total, COALESCE(SUM(is_active), 0) AS active FROM enrollment WHERE {' AND '.join(where)}",
                tuple(params),
            )
            row = fetchone(cur)
            return int(row["total"]), int(row["active"])

    def set_active(self, enrollment_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE enrollment SET is_active=%s WHERE id=%s", (int(is_active), enrollment_id))
            cur.execute("SELECT 1 AS hit FROM enrollment WHERE id=%s", (enrollment_id,))
            return fetchone(cur) is not None

    def enroll_batch(self, kelas_id: int, mahasiswa_ids: Sequence[int], *, now: datetime) -> EnrollmentBatch:
        with db_cursor(self._conn_factory) as (_, cur):
            # Locking the class row serializes concurrent batches for the same class.
            cur.execute("SELECT kapasitas FROM kelas WHERE id=%s FOR UPDATE", (kelas_id,))
            row = fetchone(cur)
            if not row:
                raise NotFoundError("Kelas not found")
            capacity = int(row["kapasitas"])

            cur.execute("SELECT COUNT(*) AS active FROM enrollment WHERE kelas_id=%s AND is_active=1", (kelas_id,))
            current = int(fetchone(cur)["active"])
            if current + len(mahasiswa_ids) > capacity:
                raise CapacityExceededError(current=current, capacity=capacity)

            cur.execute(
                f"""
                SELECT id, mahasiswa_id, is_active FROM enrollment
                WHERE kelas_id=%s AND mahasiswa_id IN ({in_clause(mahasiswa_ids)})
                FOR UPDATE
                """,
                (kelas_id, *mahasiswa_ids),
            )
            existing = {int(r["mahasiswa_id"]): r for r in fetchall(cur)}

            touched: list[int] = []
            errors: list[str] = []
            for mahasiswa_id in mahasiswa_ids:
                found = existing.get(mahasiswa_id)
                if found and found["is_active"]:
                    errors.append(f"Mahasiswa {mahasiswa_id} is already enrolled in this class")
                elif found:
                    cur.execute(
                        "UPDATE enrollment SET is_active=1, tanggal_enroll=%s WHERE id=%s",
                        (now, found["id"]),
                    )
                    touched.append(int(found["id"]))
                else:
                    cur.execute(
                        "INSERT INTO enrollment(kelas_id, mahasiswa_id, tanggal_enroll, is_active) VALUES(%s,%s,%s,1)",
                        (kelas_id, mahasiswa_id, now),
                    )
                    touched.append(int(cur.lastrowid))

            enrollments: list[Enrollment] = []
            if touched:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM enrollment WHERE id IN ({in_clause(touched)}) ORDER BY id",
                    tuple(touched),
                )
                enrollments = [_to_enrollment(r) for r in fetchall(cur)]

        return EnrollmentBatch(enrollments=enrollments, errors=errors)
