from __future__ import annotations

from datetime import time, timedelta

import mysql.connector
import pytest
from mysql.connector import errorcode

from campus_attendance.core.exceptions import ConflictError, DuplicateKeyError
from campus_attendance.database.mysql_base import db_cursor, normalize_mysql_time


class _Cursor:
    def __init__(self, error=None):
        self.error = error
        self.closed = False

    def execute(self, sql, params=()):
        if self.error:
            raise self.error

    def close(self):
        self.closed = True


class _Conn:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self, dictionary=True):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class _Factory:
    def __init__(self, conn):
        self.conn = conn

    def connect(self):
        return self.conn


def _run(error):
    conn = _Conn(_Cursor(error))
    with db_cursor(_Factory(conn)) as (_, cur):
        cur.execute("INSERT ...")
    return conn


def test_commit_on_success():
    conn = _run(None)
    assert conn.committed and conn.closed
    assert not conn.rolled_back


def test_duplicate_entry_names_the_index():
    err = mysql.connector.IntegrityError(
        msg="Duplicate entry '3' for key 'sesi_absensi.uq_sesi_active_kelas'", errno=errorcode.ER_DUP_ENTRY
    )
    with pytest.raises(DuplicateKeyError) as exc:
        _run(err)
    assert exc.value.key == "uq_sesi_active_kelas"


def test_foreign_key_violation_is_conflict():
    err = mysql.connector.IntegrityError(msg="Cannot delete or update a parent row", errno=errorcode.ER_ROW_IS_REFERENCED_2)
    with pytest.raises(ConflictError, match="still referenced"):
        _run(err)


def test_rollback_and_close_on_error():
    conn = _Conn(_Cursor(RuntimeError("boom")))
    with pytest.raises(RuntimeError):
        with db_cursor(_Factory(conn)) as (_, cur):
            cur.execute("UPDATE ...")
    assert conn.rolled_back and conn.closed
    assert not conn.committed


@pytest.mark.parametrize(
    "raw, expected",
    [
        (time(8, 30), time(8, 30)),
        (timedelta(hours=13, minutes=5), time(13, 5)),
        ("07:45:10", time(7, 45, 10)),
        (None, None),
    ],
)
def test_normalize_mysql_time(raw, expected):
    assert normalize_mysql_time(raw) == expected
