from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..common.pagination import Page, PageRequest, like
from ..core.enums import DeviceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Device
from .repository import DeviceRepository

_COLUMNS = """
    id, device_id, nama, lokasi, ruang, kelas_id, is_active, last_heartbeat,
    ip_address, status, created_at, updated_at
"""

# Domain field name -> column name.
_FIELD_COLUMNS = {
    "external_id": "device_id",
    "nama": "nama",
    "lokasi": "lokasi",
    "ruang": "ruang",
    "kelas_id": "kelas_id",
    "is_active": "is_active",
    "status": "status",
    "ip_address": "ip_address",
}


def _to_device(row: dict) -> Device:
    return Device(
        device_id=int(row["id"]),
        external_id=row["device_id"],
        nama=row["nama"],
        lokasi=row["lokasi"],
        ruang=row["ruang"],
        kelas_id=row.get("kelas_id"),
        is_active=bool(row.get("is_active", True)),
        last_heartbeat=row.get("last_heartbeat"),
        ip_address=row.get("ip_address"),
        status=DeviceStatus(row["status"]),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _db_value(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    return getattr(value, "value", value)


class MySQLDeviceRepository(DeviceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(
        self,
        page: PageRequest,
        *,
        online_since: datetime,
        status: Optional[DeviceStatus] = None,
        is_active: Optional[bool] = None,
    ) -> Page[Device]:
        where = ["1=1"]
        params: list[Any] = []
        if page.search:
            where.append("(nama LIKE %s OR device_id LIKE %s OR lokasi LIKE %s OR ruang LIKE %s)")
            params.extend([like(page.search)] * 4)
        if status == DeviceStatus.MAINTENANCE:
            where.append("status='maintenance'")
        elif status == DeviceStatus.ONLINE:
            where.append("status<>'maintenance' AND last_heartbeat >= %s")
            params.append(online_since)
        elif status == DeviceStatus.OFFLINE:
            where.append("status<>'maintenance' AND (last_heartbeat IS NULL OR last_heartbeat < %s)")
            params.append(online_since)
        if is_active is not None:
            where.append("is_active=%s")
            params.append(int(is_active))
        clause = " AND ".join(where)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM devices WHERE {clause}", tuple(params))
            total = int(fetchone(cur)["total"])
            cur.execute(
                f"SELECT {_COLUMNS} FROM devices WHERE {clause} ORDER BY created_at DESC, id DESC LIMIT %s OFFSET %s",
                tuple(params) + (page.limit, page.offset),
            )
            rows = fetchall(cur)
        return Page(items=[_to_device(r) for r in rows], total=total, page=page.page, limit=page.limit)

    def list_all(self) -> Sequence[Device]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM devices ORDER BY id")
            return [_to_device(r) for r in fetchall(cur)]

    def get_by_id(self, device_id: int) -> Optional[Device]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM devices WHERE id=%s", (device_id,))
            row = fetchone(cur)
            return _to_device(row) if row else None

    def find_by_ids(self, device_ids: Sequence[int]) -> Sequence[Device]:
        if not device_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM devices WHERE id IN ({in_clause(device_ids)})", tuple(device_ids))
            return [_to_device(r) for r in fetchall(cur)]

    def get_by_external_id(self, external_id: str) -> Optional[Device]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM devices WHERE device_id=%s", (external_id,))
            row = fetchone(cur)
            return _to_device(row) if row else None

    def exists_external_id(self, external_id: str, *, exclude_id: Optional[int] = None) -> bool:
        sql = "SELECT 1 AS hit FROM devices WHERE device_id=%s"
        params: tuple = (external_id,)
        if exclude_id is not None:
            sql += " AND id<>%s"
            params += (exclude_id,)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " LIMIT 1", params)
            return fetchone(cur) is not None

    def create(self, fields: Mapping[str, Any]) -> int:
        keys = [k for k in _FIELD_COLUMNS if k in fields]
        cols = [_FIELD_COLUMNS[k] for k in keys]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO devices({', '.join(cols)}) VALUES({in_clause(cols)})",
                tuple(_db_value(fields[k]) for k in keys),
            )
            return int(cur.lastrowid)

    def update(self, device_id: int, changes: Mapping[str, Any]) -> bool:
        keys = [k for k in _FIELD_COLUMNS if k in changes]
        with db_cursor(self._conn_factory) as (_, cur):
            if keys:
                assignments = ", ".join(f"{_FIELD_COLUMNS[k]}=%s" for k in keys)
                cur.execute(
                    f"UPDATE devices SET {assignments} WHERE id=%s",
                    tuple(_db_value(changes[k]) for k in keys) + (device_id,),
                )
            cur.execute("SELECT 1 AS hit FROM devices WHERE id=%s", (device_id,))
            return fetchone(cur) is not None

    def delete(self, device_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM devices WHERE id=%s", (device_id,))
            return cur.rowcount > 0

    def record_heartbeat(self, device_id: int, *, at: datetime, ip_address: Optional[str] = None) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE devices
                SET last_heartbeat=%s,
                    ip_address=COALESCE(%s, ip_address),
                    status=IF(status='maintenance', status, 'online')
                WHERE id=%s
                """,
                (at, ip_address, device_id),
            )

    def count(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM devices")
            return int(fetchone(cur)["total"])

    def count_online(self, *, since: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS total FROM devices WHERE status<>'maintenance' AND last_heartbeat >= %s",
                (since,),
            )
            return int(fetchone(cur)["total"])
