from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import now_local
from ..common.validators import FieldErrors, is_email, text
from ..core.constants import MIN_PASSWORD_LENGTH, MIN_USERNAME_LENGTH
from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InactiveAccountError,
    ValidationError,
)
from ..lecturers.repository import LecturerRepository
from ..lecturers.service import LecturerService
from ..students.repository import StudentRepository
from ..students.service import StudentService
from .model import Account, AuthContext, LecturerLink, LoginResult, ProfileLink, StudentLink
from .repository import AccountRepository
from .tokens import TokenService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def _password_matches(password_hash: str, password: str) -> bool:
    try:
        return check_password_hash(password_hash, password)
    except (TypeError, ValueError):
        # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
        return False


class AuthService:
    """Use cases: login, token verification, account registration, password change."""

    def __init__(
        self,
        accounts: AccountRepository,
        students: StudentRepository,
        lecturers: LecturerRepository,
        tokens: TokenService,
        *,
        student_service: StudentService,
        lecturer_service: LecturerService,
        clock: Callable = now_local,
    ):
        self._accounts = accounts
        self._students = students
        self._lecturers = lecturers
        self._tokens = tokens
        self._student_service = student_service
        self._lecturer_service = lecturer_service
        self._clock = clock

    def resolve_profile(self, link: ProfileLink) -> Optional[dict]:
        if isinstance(link, StudentLink):
            student = self._students.get_by_id(link.profile_id)
            return student.to_dict() if student else None
        if isinstance(link, LecturerLink):
            lecturer = self._lecturers.get_by_id(link.profile_id)
            return lecturer.to_dict() if lecturer else None
        return None

    def authenticate(self, login: str, password: str) -> LoginResult:
        login = text(login)
        if not login or not password:
            raise ValidationError("Username and password are required")

        # Unknown login and wrong password share one message; inactive is only
        # reported once the password has been verified.
        account = self._accounts.get_by_login(login)
        if not account or not _password_matches(account.password_hash, password):
            logger.info("Login rejected for %r: bad credentials", login)
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not account.is_active:
            logger.info("Login rejected for %r: account inactive", login)
            raise InactiveAccountError()

        self._accounts.update_last_login(account.account_id, at=self._clock())
        logger.info("Account %s logged in", account.account_id)

        return LoginResult(
            account=account,
            profile=self.resolve_profile(account.profile),
            token=self._tokens.issue(account),
            refresh_token=self._tokens.issue_refresh(account),
        )

    def authorize(
        self,
        token: Optional[str],
        allowed_roles: Iterable[Role],
        *,
        allow_pending_password: bool = False,
    ) -> AuthContext:
        if not token:
            raise AuthenticationError("Access token required")

        data = self._tokens.decode(token)

        # Reload so deactivation takes effect before the token expires.
        account = self._accounts.get_by_id(int(data["id"]))
        if not account or not account.is_active:
            raise AuthenticationError("Invalid or inactive user")

        if account.role not in set(allowed_roles):
            raise AuthorizationError("Insufficient permissions")

        if account.must_change_password and not allow_pending_password:
            raise AuthorizationError("Password change required")

        return AuthContext.of(account)

    def refresh(self, refresh_token: str) -> str:
        if not refresh_token:
            raise ValidationError("Refresh token is required")
        data = self._tokens.decode(refresh_token, expected_type="refresh")
        account = self._accounts.get_by_id(int(data["id"]))
        if not account or not account.is_active:
            raise AuthenticationError("Invalid or inactive user")
        return self._tokens.issue(account)

    def current_account(self, ctx: AuthContext) -> dict:
        account = self._accounts.get_by_id(ctx.account_id)
        if not account:
            raise AuthenticationError("Invalid or inactive user")
        out = account.to_dict()
        out["profile"] = self.resolve_profile(account.profile)
        return out

    def register(
        self,
        *,
        username: str,
        email: str,
        password: str,
        role: str,
        profile_id: Any = None,
        profile_data: Optional[Mapping[str, Any]] = None,
    ) -> Account:
        errors = FieldErrors()
        username = text(username)
        email = text(email)
        if len(username) < MIN_USERNAME_LENGTH:
            errors.add("username", f"Username must be at least {MIN_USERNAME_LENGTH} characters")
        if not is_email(email):
            errors.add("email", "Valid email is required")
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            errors.add("password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        try:
            role_enum = Role(text(role))
        except ValueError:
            role_enum = None
            errors.add("role", "Role must be admin, dosen or mahasiswa")
        errors.raise_if_any()

        if self._accounts.exists_username_or_email(username, email):
            raise ValidationError("Username or email already exists")

        profile: ProfileLink = None
        created_profile = False
        if role_enum == Role.MAHASISWA:
            if profile_data:
                student, _ = self._student_service.create(profile_data, create_account=False)
                profile = StudentLink(student.student_id)
                created_profile = True
            elif profile_id is not None:
                profile = StudentLink(self._student_service.require(profile_id).student_id)
        elif role_enum == Role.DOSEN:
            if profile_data:
                lecturer, _ = self._lecturer_service.create(profile_data, create_account=False)
                profile = LecturerLink(lecturer.lecturer_id)
                created_profile = True
            elif profile_id is not None:
                profile = LecturerLink(self._lecturer_service.require(profile_id).lecturer_id)

        if profile is not None and self._accounts.get_by_profile(profile):
            raise ValidationError("Profile already has an account")

        try:
            account_id = self._accounts.create(
                username=username,
                email=email,
                password_hash=generate_password_hash(password),
                role=role_enum,
                profile=profile,
            )
        except ConflictError:
            if created_profile:
                self._discard_profile(profile)
            raise
        logger.info("Registered account %s (%s)", account_id, role_enum.value)
        account = self._accounts.get_by_id(account_id)
        assert account is not None
        return account

    def _discard_profile(self, profile: ProfileLink) -> None:
        if isinstance(profile, StudentLink):
            self._students.delete(profile.profile_id)
        elif isinstance(profile, LecturerLink):
            self._lecturers.delete(profile.profile_id)
        logger.warning("Registration collided; removed new profile %r", profile)

    def change_password(self, ctx: AuthContext, *, current_password: str, new_password: str) -> None:
        account = self._accounts.get_by_id(ctx.account_id)
        if not account:
            raise AuthenticationError("Invalid or inactive user")

        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                "Validation failed",
                errors=[{"field": "newPassword", "message": f"Password must be at least {MIN_PASSWORD_LENGTH} characters"}],
            )
        if not _password_matches(account.password_hash, current_password or ""):
            raise ValidationError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must differ from the current password")

        self._accounts.update_password(
            account.account_id,
            password_hash=generate_password_hash(new_password),
            must_change_password=False,
        )
        logger.info("Account %s changed password", account.account_id)
