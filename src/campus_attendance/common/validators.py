from __future__ import annotations

import re
from datetime import datetime, time
from typing import Any, Iterable, Optional

from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class FieldErrors:
    """Collects per-field validation problems and raises them together."""

    def __init__(self) -> None:
        self._errors: list[dict] = []

    def add(self, field: str, message: str) -> None:
        self._errors.append({"field": field, "message": message})

    def __bool__(self) -> bool:
        return bool(self._errors)

    def raise_if_any(self) -> None:
        if self._errors:
            raise ValidationError("Validation failed", errors=self._errors)


def text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def optional_text(value: Any) -> Optional[str]:
    v = text(value)
    return v or None


def as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    v = text(value).lower()
    if v in {"1", "true", "yes"}:
        return True
    if v in {"0", "false", "no"}:
        return False
    return None


def is_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value or ""))


def parse_hhmm(value: Any) -> Optional[time]:
    v = text(value)
    if not re.fullmatch(r"\d{2}:\d{2}(:\d{2})?", v):
        return None
    try:
        return datetime.strptime(v[:5], "%H:%M").time()
    except ValueError:
        return None


def int_in_range(value: Any, low: int, high: int) -> Optional[int]:
    n = as_int(value)
    if n is None or not low <= n <= high:
        return None
    return n


def int_list(value: Any) -> Optional[list[int]]:
    if not isinstance(value, (list, tuple)) or not value:
        return None
    out: list[int] = []
    for item in value:
        n = as_int(item)
        if n is None:
            return None
        out.append(n)
    return out


def choice(value: Any, options: Iterable[str]) -> Optional[str]:
    v = text(value)
    return v if v in set(options) else None

