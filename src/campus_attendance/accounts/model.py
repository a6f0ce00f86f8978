from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from ..common.datetime_utils import iso
from ..core.enums import ProfileType, Role


@dataclass(frozen=True)
class StudentLink:
    """Account points at a `mahasiswa` row."""

    profile_id: int

    @property
    def profile_type(self) -> ProfileType:
        return ProfileType.MAHASISWA


@dataclass(frozen=True)
class LecturerLink:
    """Account points at a `dosen` row."""

    profile_id: int

    @property
    def profile_type(self) -> ProfileType:
        return ProfileType.DOSEN


ProfileLink = Union[StudentLink, LecturerLink, None]


def link_from_columns(profile_type: Optional[str], profile_id: Optional[int]) -> ProfileLink:
    if not profile_type or profile_id is None:
        return None
    if ProfileType(profile_type) == ProfileType.MAHASISWA:
        return StudentLink(int(profile_id))
    return LecturerLink(int(profile_id))


def link_to_columns(link: ProfileLink) -> tuple[Optional[str], Optional[int]]:
    if link is None:
        return None, None
    return link.profile_type.value, link.profile_id


@dataclass(frozen=True)
class Account:
    """Login identity. Profile data lives in the linked mahasiswa/dosen row."""

    account_id: int
    username: str
    email: str
    password_hash: str
    role: Role
    profile: ProfileLink = None
    is_active: bool = True
    must_change_password: bool = False
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        profile_type, profile_id = link_to_columns(self.profile)
        return {
            "id": self.account_id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
            "profileId": profile_id,
            "profileType": profile_type,
            "isActive": self.is_active,
            "mustChangePassword": self.must_change_password,
            "lastLogin": iso(self.last_login),
            "createdAt": iso(self.created_at),
        }


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller, handed explicitly to views and services."""

    account_id: int
    username: str
    email: str
    role: Role
    profile: ProfileLink = None
    must_change_password: bool = False

    @classmethod
    def of(cls, account: Account) -> "AuthContext":
        return cls(
            account_id=account.account_id,
            username=account.username,
            email=account.email,
            role=account.role,
            profile=account.profile,
            must_change_password=account.must_change_password,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def lecturer_id(self) -> Optional[int]:
        return self.profile.profile_id if isinstance(self.profile, LecturerLink) else None

    @property
    def student_id(self) -> Optional[int]:
        return self.profile.profile_id if isinstance(self.profile, StudentLink) else None


@dataclass(frozen=True)
class LoginResult:
    account: Account
    profile: Optional[dict]
    token: str
    refresh_token: str
