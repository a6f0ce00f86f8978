from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path

import mysql.connector
from werkzeug.security import generate_password_hash

from .connection import DBConfig

logger = logging.getLogger(__name__)

SQL_DIR = Path(__file__).resolve().parent
SCHEMA_PATH = SQL_DIR / "schema.sql"
SEED_PATH = SQL_DIR / "seed.sql"


def _connect(target: DBConfig, *, with_database: bool = True):
    return mysql.connector.connect(use_pure=True, **target.connect_kwargs(with_database=with_database))


# One statement: quoted strings (which may hold ";") or any other non-";" text.
_STATEMENT_RE = re.compile(r"""(?:'(?:\\.|[^'\\])*'|"(?:\\.|[^"\\])*"|[^;'"])+""", re.S)
_SKIPPED_RE = re.compile(r"(?im)^\s*(?:--.*|CREATE\s+DATABASE\b.*?;|USE\b.*?;)\s*$")


def split_statements(sql: str) -> list[str]:
    """Split a schema/seed script on top-level semicolons.

    Comment lines and CREATE DATABASE / USE lines are dropped so the target
    database always comes from DB_CONFIG.
    """
    cleaned = _SKIPPED_RE.sub("", sql)
    return [m.group(0).strip() for m in _STATEMENT_RE.finditer(cleaned) if m.group(0).strip()]


def _run_sql_file(db_config: dict, path: str | Path) -> int:
    statements = split_statements(Path(path).read_text(encoding="utf-8"))
    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor()
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    return len(statements)


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path = SCHEMA_PATH) -> None:
    ensure_database_exists(db_config)
    _run_sql_file(db_config, schema_path)
    logger.info("Schema applied from %s", schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path = SEED_PATH) -> None:
    _run_sql_file(db_config, seed_path)
    logger.info("Seed data applied from %s", seed_path)


def ensure_demo_data(db_config: dict) -> None:
    """Create demo accounts, one class and its enrollments on top of seed.sql.

    Demo logins: admin/admin123, the lecturer's NIDN and each student's NIM
    (password = login). Profile accounts are not flagged for rotation so the
    demo stays usable; real accounts created through the API are.
    """

    target = DBConfig.from_dict(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor(dictionary=True)

        def get_id(table: str, col: str, value: str) -> int:
            if table not in {"dosen", "mahasiswa", "mata_kuliah", "devices", "kelas"}:
                raise RuntimeError(f"Unsupported lookup table: {table}")
            cur.execute(f"SELECT id FROM {table} WHERE {col}=%s", (value,))
            row = cur.fetchone()
            if not row:
                raise RuntimeError(f"Missing {table} row for {col}={value}")
            return int(row["id"])

        def upsert_account(username: str, email: str, password: str, role: str, profile_type, profile_id) -> None:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT id FROM users WHERE username=%s", (username,))
            if cur.fetchone():
                cur.execute(
                    """
                    UPDATE users
                    SET email=%s, password_hash=%s, role=%s, profile_type=%s, profile_id=%s, is_active=1
                    WHERE username=%s
                    """,
                    (email, password_hash, role, profile_type, profile_id, username),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO users (username, email, password_hash, role, profile_type, profile_id)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    """,
                    (username, email, password_hash, role, profile_type, profile_id),
                )

        upsert_account("admin", "admin@kampus.ac.id", "admin123", "admin", None, None)

        dosen_id = get_id("dosen", "nidn", "0012345601")
        upsert_account("0012345601", "budi.santoso@kampus.ac.id", "0012345601", "dosen", "dosen", dosen_id)

        student_ids = []
        for nim, email in (
            ("2023001", "siti.aminah@student.kampus.ac.id"),
            ("2023002", "andi.pratama@student.kampus.ac.id"),
        ):
            sid = get_id("mahasiswa", "nim", nim)
            student_ids.append(sid)
            upsert_account(nim, email, nim, "mahasiswa", "mahasiswa", sid)

        matkul_id = get_id("mata_kuliah", "kode", "IF205")
        cur.execute("SELECT id FROM kelas WHERE nama=%s AND matkul_id=%s", ("IF205-A", matkul_id))
        row = cur.fetchone()
        if row:
            kelas_id = int(row["id"])
        else:
            cur.execute(
                """
                INSERT INTO kelas (nama, matkul_id, dosen_id, hari, jam_mulai, jam_selesai, ruang, kapasitas,
                                   tahun_ajaran, semester)
                VALUES (%s, %s, %s, 'Senin', '08:00', '10:30', 'A201', 40, '2024/2025', 'Ganjil')
                """,
                ("IF205-A", matkul_id, dosen_id),
            )
            kelas_id = int(cur.lastrowid)

        now = datetime.now()
        for sid in student_ids:
            cur.execute(
                """
                INSERT INTO enrollment (kelas_id, mahasiswa_id, tanggal_enroll, is_active)
                VALUES (%s, %s, %s, 1)
                ON DUPLICATE KEY UPDATE is_active=1
                """,
                (kelas_id, sid, now),
            )

        cur.execute("UPDATE devices SET kelas_id=%s WHERE device_id=%s", (kelas_id, "DEV-1"))

        conn.commit()
        logger.info("Demo data ready (kelas_id=%s)", kelas_id)
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    target = DBConfig.from_dict(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
