from __future__ import annotations

from campus_attendance.database.bootstrap import SCHEMA_PATH, split_statements


def test_split_statements_drops_comments_and_database_switches():
    sql = """
-- schema header
CREATE DATABASE IF NOT EXISTS other_db;
USE other_db;
CREATE TABLE a (id INT);
INSERT INTO a VALUES (1);
"""
    assert split_statements(sql) == ["CREATE TABLE a (id INT)", "INSERT INTO a VALUES (1)"]


def test_split_statements_keeps_semicolons_inside_quotes():
    sql = "INSERT INTO t (s) VALUES ('a;b'); INSERT INTO t (s) VALUES (\"it\\'s;\");"
    assert split_statements(sql) == [
        "INSERT INTO t (s) VALUES ('a;b')",
        "INSERT INTO t (s) VALUES (\"it\\'s;\")",
    ]


def test_bundled_schema_defines_attendance_tables():
    statements = split_statements(SCHEMA_PATH.read_text(encoding="utf-8"))
    creates = " ".join(s for s in statements if s.upper().startswith("CREATE TABLE"))
    for table in ("mahasiswa", "sesi_absensi", "absensi", "devices"):
        assert table in creates
