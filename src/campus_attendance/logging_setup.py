from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(*, level: str = "INFO", log_file: str = "") -> None:
    """Console logging plus an optional rotating file (10 MB x 5)."""

    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    formatter = logging.Formatter(_FORMAT)
    if not any(getattr(h, "_campus_attendance", False) for h in root.handlers):
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        console._campus_attendance = True
        root.addHandler(console)

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
            file_handler.setFormatter(formatter)
            file_handler._campus_attendance = True
            root.addHandler(file_handler)

    # Flask's dev server logs every request on its own; we already do.
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
