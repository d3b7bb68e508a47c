from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from app.controllers.auth_controller import AuthService
from app.core.config import Settings, get_settings
from app.core.database import create_tables, dispose_engine
from app.core.dependencies import rate_limit_headers
from app.core.email_service import BrevoEmailSender, ConsoleEmailSender, EmailSender
from app.core.errors import AppError, TooManyRequestsError
from app.core.jwt import TokenIssuer
from app.core.logger import get_logger, setup_logging
from app.core.rate_limiter import RateLimiter
from app.core.security import PasswordHasher
from app.repositories.auth_store import SqlAlchemyAuthStore
from app.routes.auth import router as auth_router
from app.services.otp_service import OtpManager

logger = get_logger(__name__)


def build_email_sender(settings: Settings) -> EmailSender:
    if not settings.SENDINBLUE_API_KEY and not settings.is_production:
        logger.warning("SENDINBLUE_API_KEY not set, emails will be logged instead of sent")
        return ConsoleEmailSender()
    return BrevoEmailSender(
        api_key=settings.SENDINBLUE_API_KEY,
        from_email=settings.EMAIL_FROM,
        from_name=settings.EMAIL_FROM_NAME,
        timeout=settings.DEPENDENCY_TIMEOUT_SECONDS,
    )


def build_auth_service(settings: Settings) -> AuthService:
    store = SqlAlchemyAuthStore()
    return AuthService(
        store=store,
        email_sender=build_email_sender(settings),
        hasher=PasswordHasher(rounds=settings.BCRYPT_ROUNDS),
        tokens=TokenIssuer(
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        ),
        otp_manager=OtpManager(
            store,
            expiry_minutes=settings.OTP_EXPIRE_MINUTES,
            timeout=settings.DEPENDENCY_TIMEOUT_SECONDS,
        ),
        timeout=settings.DEPENDENCY_TIMEOUT_SECONDS,
    )


# ───────────────── ERROR HANDLERS ─────────────────

def _sanitize(obj):
    if isinstance(obj, (bytes, bytearray)):
        return f"<bytes:{len(obj)}>"
    if isinstance(obj, dict):
        return {k: _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_sanitize(v) for v in obj]
    return obj


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = None
    if isinstance(exc, TooManyRequestsError):
        headers = {"Retry-After": str(exc.retry_after)}
        if exc.limit is not None:
            headers.update(rate_limit_headers(exc.limit, 0, exc.retry_after))
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body") or "body",
            "message": err.get("msg", "Invalid value"),
        }
        for err in _sanitize(exc.errors())
    ]
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "code": "VALIDATION_ERROR",
            "message": errors[0]["message"] if errors else "Validation failed",
            "errors": errors,
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "code": "INTERNAL_ERROR", "message": "Something went wrong"},
    )


# ───────────────── APP FACTORY ─────────────────

def create_app(
    settings: Settings | None = None,
    *,
    auth_service: AuthService | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    """
    Wires the auth core from configuration. Tests pass their own
    auth_service / rate_limiter to run without a database or email.
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.DB_CREATE_TABLES and auth_service is None:
            await create_tables()
        yield
        await dispose_engine()

    app = FastAPI(
        title="StudyNotion Auth API",
        description="Signup (OTP-verified), login, password change and session tokens",
        version="1.0.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.auth_service = auth_service or build_auth_service(settings)
    app.state.rate_limiter = rate_limiter or RateLimiter(
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_MINUTES * 60,
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ───────────────── CORS ─────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ───────────────── ROUTES ─────────────────
    app.include_router(auth_router, prefix="/api")

    # ───────────────── HEALTH ─────────────────
    @app.get("/", tags=["Health"])
    async def root():
        return {"status": "ok", "app": "StudyNotion Auth API", "env": settings.APP_ENV}

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "healthy"}

    return app
