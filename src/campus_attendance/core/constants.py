"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

MIN_PASSWORD_LENGTH = 6
MIN_USERNAME_LENGTH = 3

MIN_SKS = 1
MAX_SKS = 6
MIN_SEMESTER = 1
MAX_SEMESTER = 14

MIN_SESSION_MINUTES = 1
MAX_SESSION_MINUTES = 180
SESSION_CODE_LENGTH = 6
SESSION_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
SESSION_CODE_ATTEMPTS = 5

DEVICE_ONLINE_MINUTES = 5

RECENT_ACTIVITY_LIMIT = 10
STUDENT_HISTORY_LIMIT = 50

ALLOWED_IMAGE_MIMETYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
