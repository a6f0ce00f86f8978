from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..common.pagination import Page, PageRequest, like
from ..core.enums import Term, Weekday
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, normalize_mysql_time
from .model import ClassSection
from .repository import ClassRepository

_COLUMNS = """
    id, nama, matkul_id, dosen_id, hari, jam_mulai, jam_selesai, ruang, kapasitas,
    tahun_ajaran, semester, created_at, updated_at
"""

_COLUMN_SET = (
    "nama", "matkul_id", "dosen_id", "hari", "jam_mulai", "jam_selesai",
    "ruang", "kapasitas", "tahun_ajaran", "semester",
)

_SCHEDULE_ORDER = "FIELD(hari, 'Senin', 'Selasa', 'Rabu', 'Kamis', 'Jumat', 'Sabtu', 'Minggu'), jam_mulai"


def _to_class(row: dict) -> ClassSection:
    return ClassSection(
        class_id=int(row["id"]),
        nama=row["nama"],
        matkul_id=int(row["matkul_id"]),
        dosen_id=int(row["dosen_id"]),
        hari=Weekday(row["hari"]),
        jam_mulai=normalize_mysql_time(row["jam_mulai"]),
        jam_selesai=normalize_mysql_time(row["jam_selesai"]),
        ruang=row["ruang"],
        kapasitas=int(row["kapasitas"]),
        tahun_ajaran=row["tahun_ajaran"],
        semester=Term(row["semester"]),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _db_value(value: Any) -> Any:
    # Enums are stored by value.
    return getattr(value, "value", value)


class MySQLClassRepository(ClassRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(
        self,
        page: PageRequest,
        *,
        dosen_id: Optional[int] = None,
        matkul_id: Optional[int] = None,
        hari: Optional[str] = None,
    ) -> Page[ClassSection]:
        where = ["1=1"]
        params: list[Any] = []
        if page.search:
            where.append("(nama LIKE %s OR ruang LIKE %s OR tahun_ajaran LIKE %s)")
            params.extend([like(page.search)] * 3)
        for col, value in (("dosen_id", dosen_id), ("matkul_id", matkul_id), ("hari", hari)):
            if value is not None:
                where.append(f"{col}=%s")
                params.append(value)
        clause = " AND ".join(where)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM kelas WHERE {clause}", tuple(params))
            total = int(fetchone(cur)["total"])
            cur.execute(
                f"SELECT {_COLUMNS} FROM kelas WHERE {clause} ORDER BY created_at DESC, id DESC LIMIT %s OFFSET %s",
                tuple(params) + (page.limit, page.offset),
            )
            rows = fetchall(cur)
        return Page(items=[_to_class(r) for r in rows], total=total, page=page.page, limit=page.limit)

    def get_by_id(self, class_id: int) -> Optional[ClassSection]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM kelas WHERE id=%s", (class_id,))
            row = fetchone(cur)
            return _to_class(row) if row else None

    def find_by_ids(self, class_ids: Sequence[int]) -> Sequence[ClassSection]:
        if not class_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM kelas WHERE id IN ({in_clause(class_ids)}) ORDER BY {_SCHEDULE_ORDER}",
                tuple(class_ids),
            )
            return [_to_class(r) for r in fetchall(cur)]

    def list_by_lecturer(self, dosen_id: int) -> Sequence[ClassSection]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM kelas WHERE dosen_id=%s ORDER BY {_SCHEDULE_ORDER}", (dosen_id,))
            return [_to_class(r) for r in fetchall(cur)]

    def create(self, fields: Mapping[str, Any]) -> int:
        cols = [c for c in _COLUMN_SET if c in fields]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO kelas({', '.join(cols)}) VALUES({in_clause(cols)})",
                tuple(_db_value(fields[c]) for c in cols),
            )
            return int(cur.lastrowid)

    def update(self, class_id: int, changes: Mapping[str, Any]) -> bool:
        cols = [c for c in _COLUMN_SET if c in changes]
        with db_cursor(self._conn_factory) as (_, cur):
            if cols:
                assignments = ", ".join(f"{c}=%s" for c in cols)
                cur.execute(
                    f"UPDATE kelas SET {assignments} WHERE id=%s",
                    tuple(_db_value(changes[c]) for c in cols) + (class_id,),
                )
            cur.execute("SELECT 1 AS hit FROM kelas WHERE id=%s", (class_id,))
            return fetchone(cur) is not None

    def delete(self, class_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # kelas_id feeds a stored generated column, so sessions cannot cascade.
            cur.execute("DELETE FROM sesi_absensi WHERE kelas_id=%s", (class_id,))
            cur.execute("DELETE FROM kelas WHERE id=%s", (class_id,))
            return cur.rowcount > 0

    def count(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM kelas")
            return int(fetchone(cur)["total"])
