from __future__ import annotations

import importlib
import logging
from pathlib import Path
from types import ModuleType
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, send_from_directory
from flask_cors import CORS

from .accounts.controller import register as register_auth
from .classes.controller import register as register_classes
from .common.http import register_error_handlers, register_request_logging
from .common.responses import success
from .container import Container, build_container
from .courses.controller import register as register_courses
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_database_exists, ensure_demo_data, list_tables
from .devices.controller import register as register_devices
from .enrollments.controller import register as register_enrollments
from .lecturers.controller import register as register_lecturers
from .logging_setup import configure_logging
from .reports.controller import register as register_reports
from .sessions.controller import register as register_sessions
from .settings import get_settings_module
from .students.controller import register as register_students

logger = logging.getLogger(__name__)


def _bootstrap_database(settings: ModuleType) -> None:
    db_config = getattr(settings, "DB_CONFIG")
    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        ensure_database_exists(db_config)
        apply_schema(db_config)
        logger.info(
            "Schema ready on %s@%s:%s/%s (tables=%s)",
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
            len(list_tables(db_config)),
        )
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config)
        ensure_demo_data(db_config)
        logger.info("Demo seed ready")


def create_app(container: Optional[Container] = None, settings: Optional[ModuleType] = None) -> Flask:
    """Application factory.

    Tests pass a container built over in-memory repositories; otherwise the
    settings module picked by APP_ENV decides the database and backends.
    """

    load_dotenv(override=False)
    if settings is None:
        settings = importlib.import_module(get_settings_module())

    configure_logging(level=getattr(settings, "LOG_LEVEL", "INFO"), log_file=getattr(settings, "LOG_FILE", ""))

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["API_PREFIX"] = getattr(settings, "API_PREFIX", "/api")
    app.config["UPLOAD_FOLDER"] = str(Path(getattr(settings, "UPLOAD_FOLDER", "uploads")).resolve())
    app.config["MAX_CONTENT_LENGTH"] = int(getattr(settings, "MAX_UPLOAD_MB", 5)) * 1024 * 1024
    app.json.sort_keys = False

    CORS(app, resources={rf"{app.config['API_PREFIX']}/*": {"origins": getattr(settings, "CORS_ORIGINS", "*")}})
    register_error_handlers(app)
    register_request_logging(app)

    if container is None:
        _bootstrap_database(settings)
        container = build_container(db_config=getattr(settings, "DB_CONFIG"), settings=settings)

    @app.route(f"{app.config['API_PREFIX']}/health", methods=["GET"], endpoint="health")
    def health():
        return success("Server is running", {"status": "ok"})

    @app.route("/uploads/<path:filename>", methods=["GET"], endpoint="uploads")
    def uploaded_file(filename: str):
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename)

    register_auth(app, container)
    register_students(app, container)
    register_lecturers(app, container)
    register_courses(app, container)
    register_classes(app, container)
    register_enrollments(app, container)
    register_devices(app, container)
    register_sessions(app, container)
    register_reports(app, container)

    logger.info("campus_attendance ready (settings=%s, debug=%s)", settings.__name__, app.config["DEBUG"])
    return app
