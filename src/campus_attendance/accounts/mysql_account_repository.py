from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Account, ProfileLink, link_from_columns, link_to_columns
from .repository import AccountRepository

_COLUMNS = """
    id, username, email, password_hash, role, profile_type, profile_id,
    is_active, must_change_password, last_login, created_at
"""


def _to_account(row: dict) -> Account:
    return Account(
        account_id=int(row["id"]),
        username=row["username"],
        email=row["email"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        profile=link_from_columns(row.get("profile_type"), row.get("profile_id")),
        is_active=bool(row.get("is_active", True)),
        must_change_password=bool(row.get("must_change_password", False)),
        last_login=row.get("last_login"),
        created_at=row.get("created_at"),
    )


class MySQLAccountRepository(AccountRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_where(self, where: str, params: tuple) -> Optional[Account]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE {where} LIMIT 1", params)
            row = fetchone(cur)
            return _to_account(row) if row else None

    def get_by_id(self, account_id: int) -> Optional[Account]:
        return self._get_where("id=%s", (account_id,))

    def get_by_login(self, login: str) -> Optional[Account]:
        return self._get_where("username=%s OR email=%s", (login, login))

    def get_by_profile(self, profile: ProfileLink) -> Optional[Account]:
        if profile is None:
            return None
        profile_type, profile_id = link_to_columns(profile)
        return self._get_where("profile_type=%s AND profile_id=%s", (profile_type, profile_id))

    def exists_username_or_email(self, username: str, email: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS hit FROM users WHERE username=%s OR email=%s LIMIT 1", (username, email))
            return fetchone(cur) is not None

    def create(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        profile: ProfileLink = None,
        must_change_password: bool = False,
    ) -> int:
        profile_type, profile_id = link_to_columns(profile)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(username, email, password_hash, role, profile_type, profile_id,
                                  is_active, must_change_password)
                VALUES(%s,%s,%s,%s,%s,%s,1,%s)
                """,
                (username, email, password_hash, role.value, profile_type, profile_id, int(must_change_password)),
            )
            return int(cur.lastrowid)

    def update_last_login(self, account_id: int, *, at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET last_login=%s WHERE id=%s", (at, account_id))

    def update_password(self, account_id: int, *, password_hash: str, must_change_password: bool = False) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET password_hash=%s, must_change_password=%s WHERE id=%s",
                (password_hash, int(must_change_password), account_id),
            )
            return cur.rowcount > 0

    def delete_by_profile(self, profile: ProfileLink) -> int:
        if profile is None:
            return 0
        profile_type, profile_id = link_to_columns(profile)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE profile_type=%s AND profile_id=%s", (profile_type, profile_id))
            return cur.rowcount
