from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..common.pagination import Page, PageRequest, like
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Lecturer
from .repository import LecturerRepository

_COLUMNS = "id, nidn, nama, email, jurusan, foto_profil, nomor_hp, alamat, created_at, updated_at"

_UPDATABLE = frozenset({"nidn", "nama", "email", "jurusan", "foto_profil", "nomor_hp", "alamat"})


def _to_lecturer(row: dict) -> Lecturer:
    return Lecturer(
        lecturer_id=int(row["id"]),
        nidn=row["nidn"],
        nama=row["nama"],
        email=row["email"],
        jurusan=row["jurusan"],
        foto_profil=row.get("foto_profil"),
        nomor_hp=row.get("nomor_hp"),
        alamat=row.get("alamat"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class MySQLLecturerRepository(LecturerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(self, page: PageRequest, *, jurusan: Optional[str] = None) -> Page[Lecturer]:
        where = ["1=1"]
        params: list[Any] = []
        if page.search:
            where.append("(nama LIKE %s OR nidn LIKE %s OR email LIKE %s OR jurusan LIKE %s)")
            params.extend([like(page.search)] * 4)
        if jurusan:
            where.append("jurusan=%s")
            params.append(jurusan)
        clause = " AND ".join(where)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM dosen WHERE {clause}", tuple(params))
            total = int(fetchone(cur)["total"])
            cur.execute(
                f"SELECT {_COLUMNS} FROM dosen WHERE {clause} ORDER BY created_at DESC, id DESC LIMIT %s OFFSET %s",
                tuple(params) + (page.limit, page.offset),
            )
            rows = fetchall(cur)
        return Page(items=[_to_lecturer(r) for r in rows], total=total, page=page.page, limit=page.limit)

    def get_by_id(self, lecturer_id: int) -> Optional[Lecturer]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM dosen WHERE id=%s", (lecturer_id,))
            row = fetchone(cur)
            return _to_lecturer(row) if row else None

    def find_by_ids(self, lecturer_ids: Sequence[int]) -> Sequence[Lecturer]:
        if not lecturer_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM dosen WHERE id IN ({in_clause(lecturer_ids)})", tuple(lecturer_ids))
            return [_to_lecturer(r) for r in fetchall(cur)]

    def exists_nidn_or_email(self, nidn: str, email: str, *, exclude_id: Optional[int] = None) -> bool:
        sql = "SELECT 1 AS hit FROM dosen WHERE (nidn=%s OR email=%s)"
        params: tuple = (nidn, email)
        if exclude_id is not None:
            sql += " AND id<>%s"
            params += (exclude_id,)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " LIMIT 1", params)
            return fetchone(cur) is not None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO dosen(nidn, nama, email, jurusan, nomor_hp, alamat) VALUES(%s,%s,%s,%s,%s,%s)",
                (nidn, nama, email, jurusan, nomor_hp, alamat),
            )
            return int(cur.lastrowid)

    def update(self, lecturer_id: int, changes: Mapping[str, Any]) -> bool:
        fields = {k: v for k, v in changes.items() if k in _UPDATABLE}
        with db_cursor(self._conn_factory) as (_, cur):
            if fields:
                assignments = ", ".join(f"{k}=%s" for k in fields)
                cur.execute(f"UPDATE dosen SET {assignments} WHERE id=%s", tuple(fields.values()) + (lecturer_id,))
            cur.execute("SELECT 1 AS hit FROM dosen WHERE id=%s", (lecturer_id,))
            return fetchone(cur) is not None

    def delete(self, lecturer_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM dosen WHERE id=%s", (lecturer_id,))
            return cur.rowcount > 0

    def count(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM dosen")
            return int(fetchone(cur)["total"])
