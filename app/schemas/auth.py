"""
Request payloads for the auth endpoints and the validate_* entry points.

Each validate_* takes the raw (untrusted) JSON body and either returns a
normalized model or raises app.core.errors.ValidationError listing every
rule the body broke, not just the first one.
"""
import re
from datetime import datetime
from typing import Annotated, Any, Mapping, Optional, Type, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from app.core.errors import ValidationError
from app.models.user import AccountType

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
PASSWORD_SYMBOLS = "@$!%*?&"

_COMPOSITION_RULES = (
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
    (re.compile(f"[{re.escape(PASSWORD_SYMBOLS)}]"),
     f"Password must contain at least one special character ({PASSWORD_SYMBOLS})"),
)


def password_policy_violations(password: str) -> list[str]:
    """Every password rule ``password`` breaks; empty list means it passes."""
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    elif len(password) > PASSWORD_MAX_LENGTH:
        problems.append(f"Password must not exceed {PASSWORD_MAX_LENGTH} characters")
    for pattern, message in _COMPOSITION_RULES:
        if not pattern.search(password):
            problems.append(message)
    return problems


# ── Field types ───────────────────────────────────────────────────────
NormalizedEmail = Annotated[EmailStr, AfterValidator(str.lower)]
PersonName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
RequiredStr = Annotated[str, StringConstraints(min_length=1)]
PhoneNumber = Annotated[str, StringConstraints(pattern=r"^\+?[1-9][0-9]{1,14}$")]
OtpCodeStr = Annotated[str, StringConstraints(pattern=r"^[0-9]{6}$")]


class _Payload(BaseModel):
    # Wire format is camelCase; snake_case is accepted for internal callers
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ── Request Bodies ────────────────────────────────────────────────────
class SignupPayload(_Payload):
    first_name: PersonName
    last_name: PersonName
    email: NormalizedEmail
    password: str
    confirm_password: RequiredStr
    account_type: AccountType = AccountType.STUDENT
    contact_number: Optional[PhoneNumber] = None
    otp: OtpCodeStr

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "firstName": "Ada",
                "lastName": "Lovelace",
                "email": "ada@example.com",
                "password": "Valid123!",
                "confirmPassword": "Valid123!",
                "accountType": "Student",
                "otp": "123456",
            }
        }
    )


class LoginPayload(_Payload):
    email: NormalizedEmail
    password: RequiredStr


class OtpRequestPayload(_Payload):
    email: NormalizedEmail


class PasswordChangePayload(_Payload):
    old_password: RequiredStr
    new_password: str
    confirm_password: RequiredStr


# ── Response Bodies ───────────────────────────────────────────────────
class UserOut(BaseModel):
    """
    Safe user info sent to the frontend.
    password_hash is never included here.
    """
    id: int
    first_name: str
    last_name: str
    email: str
    account_type: AccountType
    approved: bool
    contact_number: Optional[str] = None
    image: Optional[str] = None
    profile_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class MeResponse(BaseModel):
    id: int
    email: str
    account_type: str = Field(serialization_alias="accountType")


# ── Validators ────────────────────────────────────────────────────────
P = TypeVar("P", bound=_Payload)


def _issues(exc: PydanticValidationError) -> list[dict[str, str]]:
    out = []
    for err in exc.errors():
        loc = [str(part) for part in err["loc"]]
        # A missing/invalid field is reported by its wire (camelCase) name
        field = ".".join(loc) if loc else "body"
        out.append({"field": field, "message": err["msg"]})
    return out


def _validate(model: Type[P], data: Any, password_field: str | None = None) -> P:
    errors: list[dict[str, str]] = []

    try:
        payload = model.model_validate(data)
    except PydanticValidationError as exc:
        payload = None
        errors.extend(_issues(exc))

    if password_field and isinstance(data, Mapping):
        alias = to_camel(password_field)
        value = data.get(alias, data.get(password_field))
        if isinstance(value, str):
            errors.extend(
                {"field": alias, "message": msg} for msg in password_policy_violations(value)
            )

    if errors or payload is None:
        raise ValidationError(errors)
    return payload


def validate_signup(data: Any) -> SignupPayload:
    return _validate(SignupPayload, data, password_field="password")


def validate_login(data: Any) -> LoginPayload:
    return _validate(LoginPayload, data)


def validate_otp_request(data: Any) -> OtpRequestPayload:
    return _validate(OtpRequestPayload, data)


def validate_password_change(data: Any) -> PasswordChangePayload:
    return _validate(PasswordChangePayload, data, password_field="new_password")
