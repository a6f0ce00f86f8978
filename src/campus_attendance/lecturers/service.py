from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from werkzeug.security import generate_password_hash

from ..accounts.model import Account, LecturerLink
from ..accounts.repository import AccountRepository
from ..common.pagination import Page, PageRequest
from ..common.validators import FieldErrors, as_bool, is_email, optional_text, text
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .model import Lecturer
from .repository import LecturerRepository

logger = logging.getLogger(__name__)

_SELF_EDITABLE = {"nama": "nama", "nomorHp": "nomor_hp", "alamat": "alamat"}


class LecturerService:
    """Use cases: manage dosen profiles (admin) and self-service edits."""

    def __init__(self, lecturers: LecturerRepository, accounts: AccountRepository):
        self._lecturers = lecturers
        self._accounts = accounts

    def require(self, lecturer_id: Any) -> Lecturer:
        try:
            lecturer = self._lecturers.get_by_id(int(lecturer_id))
        except (TypeError, ValueError):
            lecturer = None
        if not lecturer:
            raise NotFoundError("Dosen not found")
        return lecturer

    def list(self, page: PageRequest, *, jurusan: Optional[str] = None) -> Page[Lecturer]:
        return self._lecturers.list(page, jurusan=jurusan)

    def get(self, lecturer_id: int) -> dict:
        lecturer = self.require(lecturer_id)
        account = self._accounts.get_by_profile(LecturerLink(lecturer.lecturer_id))
        out = lecturer.to_dict()
        out["user"] = account.to_dict() if account else None
        return out

    @staticmethod
    def _validate(data: Mapping[str, Any], *, partial: bool) -> dict:
        errors = FieldErrors()
        changes: dict[str, Any] = {}
        required = {"nidn": "NIDN", "nama": "Nama", "jurusan": "Jurusan"}

        for key, label in required.items():
            if not partial or key in data:
                changes[key] = text(data.get(key))
                if not changes[key]:
                    errors.add(key, f"{label} is required")
        if not partial or "email" in data:
            changes["email"] = text(data.get("email"))
            if not is_email(changes["email"]):
                errors.add("email", "Valid email is required")
        if "nomorHp" in data:
            changes["nomor_hp"] = optional_text(data.get("nomorHp"))
        if "alamat" in data:
            changes["alamat"] = optional_text(data.get("alamat"))

        errors.raise_if_any()
        return changes

    def create(self, data: Mapping[str, Any], *, create_account: Optional[bool] = None) -> tuple[Lecturer, Optional[Account]]:
        fields = self._validate(data, partial=False)

        if self._lecturers.exists_nidn_or_email(fields["nidn"], fields["email"]):
            raise ValidationError("NIDN or email already exists")

        if create_account is None:
            flag = as_bool(data.get("createAccount"))
            create_account = True if flag is None else flag

        if create_account and self._accounts.exists_username_or_email(fields["nidn"], fields["email"]):
            raise ValidationError("Username or email already exists")

        lecturer_id = self._lecturers.create(
            nidn=fields["nidn"],
            nama=fields["nama"],
            email=fields["email"],
            jurusan=fields["jurusan"],
            nomor_hp=fields.get("nomor_hp"),
            alamat=fields.get("alamat"),
        )
        lecturer = self.require(lecturer_id)
        logger.info("Created dosen %s (nidn=%s)", lecturer_id, lecturer.nidn)

        account = None
        if create_account:
            try:
                account_id = self._accounts.create(
                    username=lecturer.nidn,
                    email=lecturer.email,
                    password_hash=generate_password_hash(lecturer.nidn),
                    role=Role.DOSEN,
                    profile=LecturerLink(lecturer_id),
                    must_change_password=True,
                )
            except ConflictError:
                self._lecturers.delete(lecturer_id)
                logger.warning("Account for dosen %s collided; profile removed", lecturer_id)
                raise
            account = self._accounts.get_by_id(account_id)
            logger.info("Created account %s for dosen %s", account_id, lecturer_id)
        return lecturer, account

    def update(self, lecturer_id: int, data: Mapping[str, Any]) -> Lecturer:
        current = self.require(lecturer_id)
        changes = self._validate(data, partial=True)

        nidn = changes.get("nidn", current.nidn)
        email = changes.get("email", current.email)
        if ("nidn" in changes or "email" in changes) and self._lecturers.exists_nidn_or_email(
            nidn, email, exclude_id=current.lecturer_id
        ):
            raise ValidationError("NIDN or email already exists")

        self._lecturers.update(current.lecturer_id, changes)
        return self.require(current.lecturer_id)

    def delete(self, lecturer_id: int) -> None:
        lecturer = self.require(lecturer_id)
        self._accounts.delete_by_profile(LecturerLink(lecturer.lecturer_id))
        self._lecturers.delete(lecturer.lecturer_id)
        logger.info("Deleted dosen %s", lecturer.lecturer_id)

    def _own_id(self, ctx) -> int:
        if ctx.lecturer_id is None:
            raise AuthorizationError("Only dosen can update their own profile")
        return ctx.lecturer_id

    def update_own_profile(self, ctx, data: Mapping[str, Any]) -> Lecturer:
        lecturer = self.require(self._own_id(ctx))
        changes = {col: optional_text(data.get(key)) for key, col in _SELF_EDITABLE.items() if key in data}
        if "nama" in changes and not changes["nama"]:
            raise ValidationError("Validation failed", errors=[{"field": "nama", "message": "Nama is required"}])
        self._lecturers.update(lecturer.lecturer_id, changes)
        return self.require(lecturer.lecturer_id)

    def set_profile_photo(self, ctx, photo_path: str) -> Lecturer:
        lecturer = self.require(self._own_id(ctx))
        self._lecturers.update(lecturer.lecturer_id, {"foto_profil": photo_path})
        return self.require(lecturer.lecturer_id)
