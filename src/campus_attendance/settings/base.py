"""Settings shared by every environment; each env module star-imports this."""

import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
JWT_SECRET = os.getenv("JWT_SECRET", SECRET_KEY)
JWT_EXPIRES_HOURS = int(os.getenv("JWT_EXPIRES_HOURS", "24"))
REFRESH_EXPIRES_DAYS = int(os.getenv("REFRESH_EXPIRES_DAYS", "7"))

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "campus_attendance"),
    "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
}

API_PREFIX = os.getenv("API_PREFIX", "/api")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "uploads")
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "")

# "mock" simulates the recognition service; "http" calls RECOGNITION_ENDPOINT.
RECOGNITION_BACKEND = os.getenv("RECOGNITION_BACKEND", "mock")
RECOGNITION_ENDPOINT = os.getenv("RECOGNITION_ENDPOINT", "")
RECOGNITION_API_KEY = os.getenv("RECOGNITION_API_KEY", "")
RECOGNITION_TIMEOUT = float(os.getenv("RECOGNITION_TIMEOUT", "10"))
RECOGNITION_THRESHOLD = float(os.getenv("RECOGNITION_THRESHOLD", "0.7"))
MOCK_RECOGNITION_DELAY = float(os.getenv("MOCK_RECOGNITION_DELAY", "1.0"))

DEVICE_ONLINE_MINUTES = int(os.getenv("DEVICE_ONLINE_MINUTES", "5"))

DEBUG = False
AUTO_INIT_DB = False
AUTO_SEED_DB = False
