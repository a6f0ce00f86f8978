from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..common.pagination import Page, PageRequest, like
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Student
from .repository import StudentRepository

_COLUMNS = """
    id, nim, nama, email, jurusan, semester, foto_profil, foto_wajah,
    nomor_hp, alamat, created_at, updated_at
"""

_UPDATABLE = frozenset({"nim", "nama", "email", "jurusan", "semester", "foto_profil", "foto_wajah", "nomor_hp", "alamat"})


def _to_student(row: dict) -> Student:
    return Student(
        student_id=int(row["id"]),
        nim=row["nim"],
        nama=row["nama"],
        email=row["email"],
        jurusan=row["jurusan"],
        semester=int(row["semester"]),
        foto_profil=row.get("foto_profil"),
        foto_wajah=row.get("foto_wajah"),
        nomor_hp=row.get("nomor_hp"),
        alamat=row.get("alamat"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(self, page: PageRequest, *, jurusan: Optional[str] = None, semester: Optional[int] = None) -> Page[Student]:
        where = ["1=1"]
        params: list[Any] = []
        if page.search:
            where.append("(nama LIKE %s OR nim LIKE %s OR email LIKE %s OR jurusan LIKE %s)")
            params.extend([like(page.search)] * 4)
        if jurusan:
            where.append("jurusan=%s")
            params.append(jurusan)
        if semester is not None:
            where.append("semester=%s")
            params.append(semester)
        clause = " AND ".join(where)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM mahasiswa WHERE {clause}", tuple(params))
            total = int(fetchone(cur)["total"])
            cur.execute(
                f"SELECT {_COLUMNS} FROM mahasiswa WHERE {clause} ORDER BY created_at DESC, id DESC LIMIT %s OFFSET %s",
                tuple(params) + (page.limit, page.offset),
            )
            rows = fetchall(cur)
        return Page(items=[_to_student(r) for r in rows], total=total, page=page.page, limit=page.limit)

    def get_by_id(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM mahasiswa WHERE id=%s", (student_id,))
            row = fetchone(cur)
            return _to_student(row) if row else None

    def find_by_ids(self, student_ids: Sequence[int]) -> Sequence[Student]:
        if not student_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM mahasiswa WHERE id IN ({in_clause(student_ids)}) ORDER BY nim",
                tuple(student_ids),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def exists_nim_or_email(self, nim: str, email: str, *, exclude_id: Optional[int] = None) -> bool:
        sql = "SELECT 1 AS hit FROM mahasiswa WHERE (nim=%s OR email=%s)"
        params: tuple = (nim, email)
        if exclude_id is not None:
            sql += " AND id<>%s"
            params += (exclude_id,)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " LIMIT 1", params)
            return fetchone(cur) is not None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO mahasiswa(nim, nama, email, jurusan, semester, nomor_hp, alamat)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (nim, nama, email, jurusan, semester, nomor_hp, alamat),
            )
            return int(cur.lastrowid)

    def update(self, student_id: int, changes: Mapping[str, Any]) -> bool:
        fields = {k: v for k, v in changes.items() if k in _UPDATABLE}
        with db_cursor(self._conn_factory) as (_, cur):
            if fields:
                assignments = ", ".join(f"{k}=%s" for k in fields)
                cur.execute(f"UPDATE mahasiswa SET {assignments} WHERE id=%s", tuple(fields.values()) + (student_id,))
            # rowcount is 0 when nothing changed, so check existence explicitly.
            cur.execute("SELECT 1 AS hit FROM mahasiswa WHERE id=%s", (student_id,))
            return fetchone(cur) is not None

    def delete(self, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM mahasiswa WHERE id=%s", (student_id,))
            return cur.rowcount > 0

    def count(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM mahasiswa")
            return int(fetchone(cur)["total"])
