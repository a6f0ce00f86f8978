from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from ..core.enums import Role
from .model import Account, ProfileLink


class AccountRepository(Protocol):
    """Repository interface for accounts.

    Note: services depend on this interface, never on a concrete database.
    """

    def get_by_id(self, account_id: int) -> Optional[Account]:
        raise NotImplementedError

    def get_by_login(self, login: str) -> Optional[Account]:
        """Match on username OR email."""
        raise NotImplementedError

    def get_by_profile(self, profile: ProfileLink) -> Optional[Account]:
        raise NotImplementedError

    def exists_username_or_email(self, username: str, email: str) -> bool:
        raise NotImplementedError

    def create(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: Role,
        profile: ProfileLink = None,
        must_change_password: bool = False,
    ) -> int:
        raise NotImplementedError

    def update_last_login(self, account_id: int, *, at: datetime) -> None:
        raise NotImplementedError

    def update_password(self, account_id: int, *, password_hash: str, must_change_password: bool = False) -> bool:
        raise NotImplementedError

    def delete_by_profile(self, profile: ProfileLink) -> int:
        raise NotImplementedError
