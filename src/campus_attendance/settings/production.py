import os

from .base import *  # noqa: F401,F403

DEBUG = False

if SECRET_KEY == "dev-secret-key":  # noqa: F405
    raise RuntimeError("SECRET_KEY must be set in production")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = False
LOG_FILE = os.getenv("LOG_FILE", "logs/campus_attendance.log")
