import hashlib
import hmac
import secrets
from datetime import timedelta

from app.core.clock import Clock, as_utc, utc_now
from app.core.errors import (
    ExpiredError,
    InvalidCodeError,
    OtpNotFoundError,
    call_dependency,
)
from app.core.logger import get_logger
from app.repositories.auth_store import AuthStore

logger = get_logger(__name__)

OTP_MIN = 100_000
OTP_MAX = 999_999


def generate_otp() -> str:
    # 6-digit numeric OTP from the OS CSPRNG, uniform over 100000..999999
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def hash_otp(otp: str) -> str:
    return hashlib.sha256(otp.encode("utf-8")).hexdigest()


def constant_time_equals(a: str, b: str) -> bool:
    return hmac.compare_digest(a, b)


class OtpManager:
    """
    Signup OTPs, one live code per email.

    Per email: absent → issued → (consumed | expired | superseded) → absent.
    issue() always supersedes whatever was there; verify() only ever looks
    at the newest row and consumes it with an atomic conditional delete,
    so a code verifies at most once even under concurrent requests.
    """

    def __init__(
        self,
        store: AuthStore,
        *,
        expiry_minutes: int = 10,
        clock: Clock = utc_now,
        timeout: float = 10.0,
    ):
        self._store = store
        self.expiry_minutes = expiry_minutes
        self._expiry = timedelta(minutes=expiry_minutes)
        self._clock = clock
        self._timeout = timeout

    async def issue(self, email: str) -> str:
        """Replace any existing code for ``email`` and return the new plaintext code."""
        removed = await call_dependency(
            self._store.delete_otps(email), timeout=self._timeout, name="record store"
        )
        if removed:
            logger.debug("Superseded %d stale OTP(s) for %s", removed, email)

        otp = generate_otp()
        await call_dependency(
            self._store.create_otp(email, hash_otp(otp), self._clock()),
            timeout=self._timeout,
            name="record store",
        )
        return otp

    async def verify(self, email: str, code: str) -> None:
        """
        Returns normally and consumes the code on success.

        Raises:
          OtpNotFoundError — nothing issued, or already consumed
          InvalidCodeError — code does not match the newest OTP
          ExpiredError     — newest OTP is older than the expiry window
        """
        record = await call_dependency(
            self._store.get_latest_otp(email), timeout=self._timeout, name="record store"
        )
        if record is None:
            raise OtpNotFoundError()

        if not constant_time_equals(record.code_hash, hash_otp(code)):
            raise InvalidCodeError()

        if self._clock() - as_utc(record.created_at) > self._expiry:
            raise ExpiredError()

        consumed = await call_dependency(
            self._store.consume_otp(record.id), timeout=self._timeout, name="record store"
        )
        if not consumed:
            # A concurrent verify deleted it between our read and delete
            raise OtpNotFoundError()
