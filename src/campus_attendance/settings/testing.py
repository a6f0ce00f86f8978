from .base import *  # noqa: F401,F403

SECRET_KEY = "test-secret-key"
JWT_SECRET = "test-jwt-secret"

DB_CONFIG = {
    "host": "localhost",
    "port": 3306,
    "user": "root",
    "password": "",
    "database": "campus_attendance_test",
    "pool_size": 1,
}

DEBUG = False
AUTO_INIT_DB = False
AUTO_SEED_DB = False

LOG_FILE = ""
MOCK_RECOGNITION_DELAY = 0.0
