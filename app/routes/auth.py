from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response, status

from app.controllers.auth_controller import AuthService
from app.core.dependencies import (
    SESSION_COOKIE,
    enforce_auth_rate_limit,
    get_auth_service,
    get_current_user,
)
from app.core.jwt import SessionClaims
from app.core.logger import get_logger
from app.schemas.auth import (
    MeResponse,
    validate_login,
    validate_otp_request,
    validate_password_change,
    validate_signup,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

# One shared counter per client address across all of these
rate_limited = [Depends(enforce_auth_rate_limit)]


@router.post(
    "/signup",
    status_code=status.HTTP_201_CREATED,
    dependencies=rate_limited,
    summary="Register",
    description="Create an account. Requires the OTP sent by `/auth/send-otp` to the same email.",
)
async def signup(
    body: Any = Body(...),
    service: AuthService = Depends(get_auth_service),
) -> dict:
    payload = validate_signup(body)
    result = await service.register(payload)
    return {
        "success": True,
        "message": "User registered successfully",
        "data": result.to_dict(),
    }


@router.post(
    "/login",
    dependencies=rate_limited,
    summary="Login",
    description="""
Authenticate with email + password.
Returns the JWT in the body and also sets it as an HTTP-only `token` cookie.
    """,
)
async def login(
    request: Request,
    response: Response,
    body: Any = Body(...),
    service: AuthService = Depends(get_auth_service),
) -> dict:
    payload = validate_login(body)
    result = await service.login(payload)

    settings = request.app.state.settings
    response.set_cookie(
        SESSION_COOKIE,
        result.token,
        max_age=settings.COOKIE_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )

    logger.info("User logged in: id=%s", result.user.id)
    return {
        "success": True,
        "message": "Login successful",
        "data": result.to_dict(),
    }


@router.post(
    "/send-otp",
    dependencies=rate_limited,
    summary="Send signup OTP",
)
async def send_otp(
    body: Any = Body(...),
    service: AuthService = Depends(get_auth_service),
) -> dict:
    payload = validate_otp_request(body)
    await service.request_otp(payload.email)
    logger.info("OTP sent to: %s", payload.email)
    return {"success": True, "message": "OTP sent successfully to your email"}


@router.put(
    "/change-password",
    dependencies=rate_limited,
    summary="Change password",
)
async def change_password(
    body: Any = Body(...),
    claims: SessionClaims = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> dict:
    payload = validate_password_change(body)
    await service.change_password(claims.id, payload)
    return {"success": True, "message": "Password updated successfully"}


@router.post(
    "/logout",
    dependencies=rate_limited,
    summary="Logout",
    description="""
JWT tokens are stateless, the server has no session to destroy.
This overwrites the `token` cookie with a value that expires in seconds;
bearer-token clients should also drop the token on their side.
    """,
)
async def logout(
    request: Request,
    response: Response,
    claims: SessionClaims = Depends(get_current_user),
) -> dict:
    response.set_cookie(
        SESSION_COOKIE,
        "none",
        expires=datetime.now(timezone.utc) + timedelta(seconds=10),
        httponly=True,
        secure=request.app.state.settings.is_production,
        samesite="strict",
    )
    logger.info("User logged out: id=%s", claims.id)
    return {"success": True, "message": "Logged out successfully"}


@router.get(
    "/me",
    response_model=MeResponse,
    response_model_by_alias=True,
    summary="Current session",
    description="Returns the claims of the presented session token.",
)
async def me(claims: SessionClaims = Depends(get_current_user)) -> MeResponse:
    return MeResponse(id=claims.id, email=claims.email, account_type=claims.account_type)
