from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from ..core.exceptions import AuthenticationError
from .model import Account, link_to_columns

_ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Signs and verifies HS256 access/refresh tokens."""

    def __init__(
        self,
        secret: str,
        *,
        expires_hours: int = 24,
        refresh_days: int = 7,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self._expires = timedelta(hours=expires_hours)
        self._refresh_expires = timedelta(days=refresh_days)
        self._clock = clock

    def issue(self, account: Account) -> str:
        profile_type, profile_id = link_to_columns(account.profile)
        payload = {
            "id": account.account_id,
            "username": account.username,
            "email": account.email,
            "role": account.role.value,
            "profileId": profile_id,
            "profileType": profile_type,
            "type": "access",
            "exp": self._clock() + self._expires,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def issue_refresh(self, account: Account) -> str:
        payload = {"id": account.account_id, "type": "refresh", "exp": self._clock() + self._refresh_expires}
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def decode(self, token: str, *, expected_type: str = "access") -> dict:
        try:
            data = jwt.decode(token, self._secret, algorithms=[_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token")

        if data.get("type") != expected_type or not isinstance(data.get("id"), int):
            raise AuthenticationError("Invalid token")
        return data
