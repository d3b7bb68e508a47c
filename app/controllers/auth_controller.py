from dataclasses import dataclass
from typing import Any, Awaitable, TypeVar
from urllib.parse import quote

from app.core.email_service import EmailSender, otp_email, password_updated_email
from app.core.errors import (
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    PendingApprovalError,
    SamePasswordError,
    ValidationError,
    call_dependency,
)
from app.core.jwt import TokenIssuer
from app.core.logger import get_logger
from app.core.security import PasswordHasher
from app.models.user import AccountType
from app.repositories.auth_store import AuthStore
from app.schemas.auth import (
    LoginPayload,
    PasswordChangePayload,
    SignupPayload,
    UserOut,
)
from app.services.otp_service import OtpManager

logger = get_logger(__name__)

T = TypeVar("T")

AVATAR_URL = "https://api.dicebear.com/5.x/initials/svg?seed={seed}"


@dataclass(frozen=True)
class AuthResult:
    user: UserOut
    token: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "user": self.user.model_dump(mode="json", by_alias=True),
            "token": self.token,
        }


class AuthService:
    """
    Registration, login, signup OTP and password change. All business logic
    lives here, not in the routes.

    Every collaborator comes in through the constructor, there is no module
    level instance. Store and email calls are bounded by ``timeout`` seconds.

    The store commits each write on its own. When a later step of a flow
    fails (e.g. token signing after the user row exists) the error is logged
    and raised to the caller; nothing is rolled back.
    """

    def __init__(
        self,
        store: AuthStore,
        email_sender: EmailSender,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        otp_manager: OtpManager,
        *,
        timeout: float = 10.0,
    ):
        self._store = store
        self._email = email_sender
        self._hasher = hasher
        self.tokens = tokens
        self._otp = otp_manager
        self._timeout = timeout

    async def _store_call(self, aw: Awaitable[T]) -> T:
        return await call_dependency(aw, timeout=self._timeout, name="record store")

    async def _send_email(self, to_email: str, subject: str, html: str) -> None:
        await call_dependency(
            self._email.send(to_email, subject, html),
            timeout=self._timeout,
            name="email service",
        )

    async def _send_best_effort(self, to_email: str, subject: str, html: str) -> None:
        """Non-critical notice: failures are logged, never raised."""
        try:
            await self._send_email(to_email, subject, html)
        except Exception:
            logger.exception("Non-critical email %r to %s failed", subject, to_email)

    # ── Register ──────────────────────────────────────────────────────
    async def register(self, payload: SignupPayload) -> AuthResult:
        """
        1. password == confirmPassword
        2. no existing account for the email
        3. OTP verifies (failure kinds propagate unchanged)
        4-6. hash, create profile, create user
        7. issue token
        """
        if payload.password != payload.confirm_password:
            raise ValidationError(
                [{"field": "confirmPassword", "message": "Passwords do not match"}]
            )

        if await self._store_call(self._store.get_user_by_email(payload.email)):
            raise ConflictError()

        await self._otp.verify(payload.email, payload.otp)

        password_hash = await self._hasher.hash_async(payload.password)

        profile = await self._store_call(
            self._store.create_profile(contact_number=payload.contact_number)
        )
        try:
            user = await self._store_call(
                self._store.create_user(
                    first_name=payload.first_name,
                    last_name=payload.last_name,
                    email=payload.email,
                    password_hash=password_hash,
                    account_type=payload.account_type,
                    approved=payload.account_type != AccountType.INSTRUCTOR,
                    contact_number=payload.contact_number,
                    image=AVATAR_URL.format(
                        seed=quote(f"{payload.first_name} {payload.last_name}")
                    ),
                    profile_id=profile.id,
                )
            )
            token = self.tokens.issue(user)
        except Exception:
            logger.error(
                "Signup for %s failed after profile %s was created; not rolled back",
                payload.email,
                profile.id,
            )
            raise

        logger.info("User registered: id=%s type=%s", user.id, user.account_type.value)
        return AuthResult(user=UserOut.model_validate(user), token=token)

    # ── Login ─────────────────────────────────────────────────────────
    async def login(self, payload: LoginPayload) -> AuthResult:
        """
        Same InvalidCredentialsError for unknown email and wrong password, and
        the password check always runs (dummy hash when the user is missing)
        so timing does not reveal which accounts exist.
        Approval is checked only after the password is proven.
        """
        user = await self._store_call(self._store.get_user_by_email(payload.email))

        password_ok = await self._hasher.verify_async(
            payload.password,
            user.password_hash if user else None,
        )
        if not user or not password_ok:
            raise InvalidCredentialsError()

        if not user.approved:
            raise PendingApprovalError()

        token = self.tokens.issue(user)
        return AuthResult(user=UserOut.model_validate(user), token=token)

    # ── Request OTP ───────────────────────────────────────────────────
    async def request_otp(self, email: str) -> None:
        """OTPs are for new registrations only. Delivery failure fails the request."""
        if await self._store_call(self._store.get_user_by_email(email)):
            raise ConflictError("User already registered with this email")

        otp = await self._otp.issue(email)
        subject, html = otp_email(otp, self._otp.expiry_minutes)
        await self._send_email(email, subject, html)

    # ── Change Password ───────────────────────────────────────────────
    async def change_password(self, user_id: int, payload: PasswordChangePayload) -> None:
        if payload.new_password != payload.confirm_password:
            raise ValidationError(
                [{"field": "confirmPassword", "message": "New passwords do not match"}]
            )

        if payload.new_password == payload.old_password:
            raise SamePasswordError()

        user = await self._store_call(self._store.get_user_by_id(user_id))
        if user is None:
            raise NotFoundError("User not found")

        if not await self._hasher.verify_async(payload.old_password, user.password_hash):
            raise InvalidCredentialsError("Current password is incorrect")

        new_hash = await self._hasher.hash_async(payload.new_password)
        await self._store_call(self._store.update_password(user.id, new_hash))
        logger.info("Password changed for user id=%s", user.id)

        subject, html = password_updated_email(user.email, f"{user.first_name} {user.last_name}")
        await self._send_best_effort(user.email, subject, html)
