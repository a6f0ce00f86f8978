from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..common.pagination import Page, PageRequest, like
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Course
from .repository import CourseRepository

_COLUMNS = "id, kode, nama, sks, semester, jurusan, deskripsi, created_at, updated_at"

_UPDATABLE = frozenset({"kode", "nama", "sks", "semester", "jurusan", "deskripsi"})


def _to_course(row: dict) -> Course:
    return Course(
        course_id=int(row["id"]),
        kode=row["kode"],
        nama=row["nama"],
        sks=int(row["sks"]),
        semester=int(row["semester"]),
        jurusan=row["jurusan"],
        deskripsi=row.get("deskripsi"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class MySQLCourseRepository(CourseRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(self, page: PageRequest, *, jurusan: Optional[str] = None, semester: Optional[int] = None) -> Page[Course]:
        where = ["1=1"]
        params: list[Any] = []
        if page.search:
            where.append("(nama LIKE %s OR kode LIKE %s OR jurusan LIKE %s)")
            params.extend([like(page.search)] * 3)
        if jurusan:
            where.append("jurusan=%s")
            params.append(jurusan)
        if semester is not None:
            where.append("semester=%s")
            params.append(semester)
        clause = " AND ".join(where)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM mata_kuliah WHERE {clause}", tuple(params))
            total = int(fetchone(cur)["total"])
            cur.execute(
                f"SELECT {_COLUMNS} FROM mata_kuliah WHERE {clause} ORDER BY created_at DESC, id DESC LIMIT %s OFFSET %s",
                tuple(params) + (page.limit, page.offset),
            )
            rows = fetchall(cur)
        return Page(items=[_to_course(r) for r in rows], total=total, page=page.page, limit=page.limit)

    def get_by_id(self, course_id: int) -> Optional[Course]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM mata_kuliah WHERE id=%s", (course_id,))
            row = fetchone(cur)
            return _to_course(row) if row else None

    def find_by_ids(self, course_ids: Sequence[int]) -> Sequence[Course]:
        if not course_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM mata_kuliah WHERE id IN ({in_clause(course_ids)})", tuple(course_ids))
            return [_to_course(r) for r in fetchall(cur)]

    def exists_kode(self, kode: str, *, exclude_id: Optional[int] = None) -> bool:
        sql = "SELECT 1 AS hit FROM mata_kuliah WHERE kode=%s"
        params: tuple = (kode,)
        if exclude_id is not None:
            sql += " AND id<>%s"
            params += (exclude_id,)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " LIMIT 1", params)
            return fetchone(cur) is not None

    def create(self, *, kode: str, nama: str, sks: int, semester: int, jurusan: str, deskripsi: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO mata_kuliah(kode, nama, sks, semester, jurusan, deskripsi) VALUES(%s,%s,%s,%s,%s,%s)",
                (kode, nama, sks, semester, jurusan, deskripsi),
            )
            return int(cur.lastrowid)

    def update(self, course_id: int, changes: Mapping[str, Any]) -> bool:
        fields = {k: v for k, v in changes.items() if k in _UPDATABLE}
        with db_cursor(self._conn_factory) as (_, cur):
            if fields:
                assignments = ", ".join(f"{k}=%s" for k in fields)
                cur.execute(f"UPDATE mata_kuliah SET {assignments} WHERE id=%s", tuple(fields.values()) + (course_id,))
            cur.execute("SELECT 1 AS hit FROM mata_kuliah WHERE id=%s", (course_id,))
            return fetchone(cur) is not None

    def delete(self, course_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM mata_kuliah WHERE id=%s", (course_id,))
            return cur.rowcount > 0

    def count(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM mata_kuliah")
            return int(fetchone(cur)["total"])
