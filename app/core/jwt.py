from dataclasses import dataclass
from datetime import timedelta

from jose import JWTError, jwt

from app.core.clock import Clock, utc_now
from app.core.errors import AuthenticationError


@dataclass(frozen=True)
class SessionClaims:
    id: int
    email: str
    account_type: str


class TokenIssuer:
    """
    Signs and checks session JWTs.

    Payload contains:
      sub         — user ID as string (standard JWT claim)
      id          — user ID
      email       — for frontend display
      accountType — Student / Instructor / Admin
      type        — guards against using other token types as sessions
      iat / exp   — issued at / expiry

    Anything holding SECRET_KEY can verify a token without the database.
    Rotate SECRET_KEY to invalidate every outstanding session.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        expire_minutes: int = 60 * 24,
        clock: Clock = utc_now,
    ):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.expire_minutes = expire_minutes
        self._clock = clock

    def issue(self, user) -> str:
        now = self._clock()
        account_type = getattr(user.account_type, "value", user.account_type)
        payload = {
            "sub":         str(user.id),
            "id":          user.id,
            "email":       user.email,
            "accountType": account_type,
            "type":        "access",
            "iat":         now,
            "exp":         now + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode(self, token: str) -> SessionClaims:
        """
        Verifies signature + expiry. Raises AuthenticationError on any failure.
        Expiry is judged by the same clock that stamped iat/exp at issue.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            raise AuthenticationError()

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise AuthenticationError()
        if self._clock().timestamp() >= exp:
            raise AuthenticationError("Session has expired. Please log in again.")

        if payload.get("type") != "access":
            raise AuthenticationError()

        try:
            return SessionClaims(
                id=int(payload["id"]),
                email=str(payload["email"]),
                account_type=str(payload["accountType"]),
            )
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError()
