"""Dump the attendance database with `mysqldump`.

Note: needs the MySQL client tools on PATH.
"""

from __future__ import annotations

import importlib
import os
import subprocess
import sys
from datetime import datetime
from pathlib import Path

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from dotenv import load_dotenv

from campus_attendance.settings import get_settings_module


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    db = settings.DB_CONFIG

    out_dir = Path(__file__).resolve().parents[1] / "backups"
    out_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    out_file = out_dir / f"{db['database']}_{ts}.sql"

    cmd = [
        "mysqldump",
        f"-h{db['host']}",
        f"-P{db['port']}",
        f"-u{db['user']}",
        "--single-transaction",
        "--routines",
        db["database"],
    ]
    # Password via env so it does not show up in the process list.
    env = {"MYSQL_PWD": str(db["password"])}

    try:
        with out_file.open("wb") as f:
            subprocess.run(cmd, stdout=f, stderr=subprocess.PIPE, check=True, env={**os.environ, **env})
        print(f"OK: Backup created: {out_file}")
    except FileNotFoundError:
        raise SystemExit("mysqldump not found. Install the MySQL client tools.")
    except subprocess.CalledProcessError as e:
        out_file.unlink(missing_ok=True)
        raise SystemExit(f"mysqldump failed: {e.stderr.decode(errors='replace').strip()}")


if __name__ == "__main__":
    main()
