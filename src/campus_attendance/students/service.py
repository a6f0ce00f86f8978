from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from werkzeug.security import generate_password_hash

from ..accounts.model import Account, StudentLink
from ..accounts.repository import AccountRepository
from ..common.pagination import Page, PageRequest
from ..common.validators import FieldErrors, as_bool, int_in_range, is_email, optional_text, text
from ..core.constants import MAX_SEMESTER, MIN_SEMESTER
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .model import Student
from .repository import StudentRepository

logger = logging.getLogger(__name__)

_SELF_EDITABLE = {"nama": "nama", "nomorHp": "nomor_hp", "alamat": "alamat"}


class StudentService:
    """Use cases: manage mahasiswa profiles (admin) and self-service edits."""

    def __init__(self, students: StudentRepository, accounts: AccountRepository):
        self._students = students
        self._accounts = accounts

    def require(self, student_id: Any) -> Student:
        try:
            student = self._students.get_by_id(int(student_id))
        except (TypeError, ValueError):
            student = None
        if not student:
            raise NotFoundError("Mahasiswa not found")
        return student

    def list(self, page: PageRequest, *, jurusan: Optional[str] = None, semester: Optional[int] = None) -> Page[Student]:
        return self._students.list(page, jurusan=jurusan, semester=semester)

    def get(self, student_id: int) -> dict:
        student = self.require(student_id)
        account = self._accounts.get_by_profile(StudentLink(student.student_id))
        out = student.to_dict()
        out["user"] = account.to_dict() if account else None
        return out

    @staticmethod
    def _validate(data: Mapping[str, Any], *, partial: bool) -> dict:
        errors = FieldErrors()
        changes: dict[str, Any] = {}

        def present(key: str) -> bool:
            return not partial or key in data

        if present("nim"):
            changes["nim"] = text(data.get("nim"))
            if not changes["nim"]:
                errors.add("nim", "NIM is required")
        if present("nama"):
            changes["nama"] = text(data.get("nama"))
            if not changes["nama"]:
                errors.add("nama", "Nama is required")
        if present("email"):
            changes["email"] = text(data.get("email"))
            if not is_email(changes["email"]):
                errors.add("email", "Valid email is required")
        if present("jurusan"):
            changes["jurusan"] = text(data.get("jurusan"))
            if not changes["jurusan"]:
                errors.add("jurusan", "Jurusan is required")
        if present("semester"):
            changes["semester"] = int_in_range(data.get("semester"), MIN_SEMESTER, MAX_SEMESTER)
            if changes["semester"] is None:
                errors.add("semester", f"Semester must be between {MIN_SEMESTER} and {MAX_SEMESTER}")
        if "nomorHp" in data:
            changes["nomor_hp"] = optional_text(data.get("nomorHp"))
        if "alamat" in data:
            changes["alamat"] = optional_text(data.get("alamat"))

        errors.raise_if_any()
        return changes

    def create(self, data: Mapping[str, Any], *, create_account: Optional[bool] = None) -> tuple[Student, Optional[Account]]:
        fields = self._validate(data, partial=False)

        if self._students.exists_nim_or_email(fields["nim"], fields["email"]):
            raise ValidationError("NIM or email already exists")

        if create_account is None:
            flag = as_bool(data.get("createAccount"))
            create_account = True if flag is None else flag

        # Default login is the NIM; check before the profile row exists.
        if create_account and self._accounts.exists_username_or_email(fields["nim"], fields["email"]):
            raise ValidationError("Username or email already exists")

        student_id = self._students.create(
            nim=fields["nim"],
            nama=fields["nama"],
            email=fields["email"],
            jurusan=fields["jurusan"],
            semester=fields["semester"],
            nomor_hp=fields.get("nomor_hp"),
            alamat=fields.get("alamat"),
        )
        student = self.require(student_id)
        logger.info("Created mahasiswa %s (nim=%s)", student_id, student.nim)

        account = None
        if create_account:
            try:
                account_id = self._accounts.create(
                    username=student.nim,
                    email=student.email,
                    password_hash=generate_password_hash(student.nim),
                    role=Role.MAHASISWA,
                    profile=StudentLink(student_id),
                    must_change_password=True,
                )
            except ConflictError:
                # Lost a race on username/email; drop the profile so it is not left without a login.
                self._students.delete(student_id)
                logger.warning("Account for mahasiswa %s collided; profile removed", student_id)
                raise
            account = self._accounts.get_by_id(account_id)
            logger.info("Created account %s for mahasiswa %s", account_id, student_id)
        return student, account

    def update(self, student_id: int, data: Mapping[str, Any]) -> Student:
        current = self.require(student_id)
        changes = self._validate(data, partial=True)

        nim = changes.get("nim", current.nim)
        email = changes.get("email", current.email)
        if ("nim" in changes or "email" in changes) and self._students.exists_nim_or_email(
            nim, email, exclude_id=current.student_id
        ):
            raise ValidationError("NIM or email already exists")

        self._students.update(current.student_id, changes)
        return self.require(current.student_id)

    def delete(self, student_id: int) -> None:
        student = self.require(student_id)
        removed = self._accounts.delete_by_profile(StudentLink(student.student_id))
        self._students.delete(student.student_id)
        logger.info("Deleted mahasiswa %s (accounts removed=%s)", student.student_id, removed)

    def _own_id(self, ctx) -> int:
        if ctx.student_id is None:
            raise AuthorizationError("Only mahasiswa can update their own profile")
        return ctx.student_id

    def update_own_profile(self, ctx, data: Mapping[str, Any]) -> Student:
        student = self.require(self._own_id(ctx))
        changes = {col: optional_text(data.get(key)) for key, col in _SELF_EDITABLE.items() if key in data}
        if "nama" in changes and not changes["nama"]:
            raise ValidationError("Validation failed", errors=[{"field": "nama", "message": "Nama is required"}])
        self._students.update(student.student_id, changes)
        return self.require(student.student_id)

    def set_face_photo(self, ctx, photo_path: str) -> Student:
        student = self.require(self._own_id(ctx))
        self._students.update(student.student_id, {"foto_wajah": photo_path})
        logger.info("Mahasiswa %s uploaded a face photo", student.student_id)
        return self.require(student.student_id)

    def set_profile_photo(self, ctx, photo_path: str) -> Student:
        student = self.require(self._own_id(ctx))
        self._students.update(student.student_id, {"foto_profil": photo_path})
        return self.require(student.student_id)
