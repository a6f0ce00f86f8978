from __future__ import annotations

import re
from contextlib import contextmanager
from datetime import time, timedelta
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import ConflictError, DuplicateKeyError
from .connection import DatabaseConnection

_KEY_RE = re.compile(r"for key '([^']+)'")


def _translate_integrity_error(err: mysql.connector.IntegrityError) -> Exception:
    if err.errno == errorcode.ER_DUP_ENTRY:
        match = _KEY_RE.search(str(err.msg or ""))
        key = match.group(1).split(".")[-1] if match else ""
        return DuplicateKeyError(key=key)
    if err.errno in (errorcode.ER_ROW_IS_REFERENCED_2, errorcode.ER_ROW_IS_REFERENCED):
        return ConflictError("Record is still referenced by other data")
    if err.errno in (errorcode.ER_NO_REFERENCED_ROW_2, errorcode.ER_NO_REFERENCED_ROW):
        return ConflictError("Referenced record does not exist")
    return err


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield (conn, cursor); commit on success, roll back on any error.

    Integrity errors are re-raised as domain conflicts so services never see
    driver exceptions.
    """

    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError as e:
        conn.rollback()
        translated = _translate_integrity_error(e)
        if translated is e:
            raise
        raise translated from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def in_clause(values) -> str:
    """Placeholder list for `col IN (...)`; callers must pass a non-empty sequence."""
    return ", ".join(["%s"] * len(values))


def normalize_mysql_time(value: Any) -> Optional[time]:
    """TIME columns arrive as timedelta, time or "HH:MM[:SS]" depending on the connector build."""

    if value is None or isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        seconds = int(value.total_seconds()) % 86400
        return time(seconds // 3600, seconds % 3600 // 60, seconds % 60)
    if isinstance(value, str):
        parts = [int(p) for p in value.strip().split(":")[:3] if p]
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        return time(*parts)
    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")
