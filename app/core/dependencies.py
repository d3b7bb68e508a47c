from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.controllers.auth_controller import AuthService
from app.core.errors import AuthenticationError
from app.core.jwt import SessionClaims
from app.core.rate_limiter import RateLimiter

bearer = HTTPBearer(auto_error=False)

SESSION_COOKIE = "token"


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def client_address(request: Request) -> str:
    """Rate-limit key. X-Forwarded-For is only trusted behind a known proxy."""
    if request.app.state.settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def enforce_auth_rate_limit(request: Request, response: Response) -> None:
    limiter: RateLimiter = request.app.state.rate_limiter
    status = limiter.hit(client_address(request))
    response.headers.update(rate_limit_headers(status.limit, status.remaining, status.reset_after))


def rate_limit_headers(limit: int, remaining: int, reset_after: int) -> dict[str, str]:
    # IETF draft RateLimit header fields
    return {
        "RateLimit-Limit": str(limit),
        "RateLimit-Remaining": str(remaining),
        "RateLimit-Reset": str(reset_after),
    }


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    service: AuthService = Depends(get_auth_service),
) -> SessionClaims:
    """
    Session guard. Accepts either:
      A) Authorization: Bearer <token>
      B) the HTTP-only `token` cookie set by /auth/login
    """
    token = credentials.credentials if credentials else request.cookies.get(SESSION_COOKIE)
    if not token or token == "none":
        raise AuthenticationError()
    return service.tokens.decode(token)
