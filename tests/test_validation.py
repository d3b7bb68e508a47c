"""
Unit tests for the credential validators.

Tests:
- Password policy (length vs composition messages)
- Signup normalization and defaults
- All violations reported at once
"""

import pytest

from app.core.errors import ValidationError
from app.models.user import AccountType
from app.schemas.auth import (
    password_policy_violations,
    validate_login,
    validate_otp_request,
    validate_password_change,
    validate_signup,
)
from tests.conftest import signup_body


def _messages(exc: ValidationError, field: str) -> list[str]:
    return [e["message"] for e in exc.errors if e["field"] == field]


class TestPasswordPolicy:
    def test_accepts_valid_password(self):
        assert password_policy_violations("Valid123!") == []

    def test_no_uppercase_or_symbol(self):
        problems = password_policy_violations("abc12345")
        assert any("uppercase" in p for p in problems)
        assert any("special character" in p for p in problems)
        assert not any("characters long" in p for p in problems)

    def test_no_lowercase(self):
        problems = password_policy_violations("ALLUPPER1!")
        assert problems == ["Password must contain at least one lowercase letter"]

    def test_length_and_composition_are_distinct(self):
        problems = password_policy_violations("Ab1!")
        assert problems == ["Password must be at least 8 characters long"]

    def test_too_long(self):
        problems = password_policy_violations("Aa1!" * 40)
        assert problems == ["Password must not exceed 128 characters"]


class TestValidateSignup:
    def test_rejects_weak_passwords(self):
        for weak in ("abc12345", "ALLUPPER1!"):
            with pytest.raises(ValidationError) as exc_info:
                validate_signup(signup_body(password=weak, confirmPassword=weak))
            assert _messages(exc_info.value, "password")

    def test_accepts_valid_password(self):
        payload = validate_signup(signup_body(password="Valid123!"))
        assert payload.password == "Valid123!"

    def test_normalizes(self):
        payload = validate_signup(
            signup_body(firstName="  Ada  ", email="Ada@Example.COM", accountType="Instructor")
        )
        assert payload.first_name == "Ada"
        assert payload.email == "ada@example.com"
        assert payload.account_type is AccountType.INSTRUCTOR

    def test_account_type_defaults_to_student(self):
        body = signup_body()
        del body["accountType"]
        assert validate_signup(body).account_type is AccountType.STUDENT

    def test_rejects_unknown_account_type(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_signup(signup_body(accountType="Superuser"))
        assert _messages(exc_info.value, "accountType")

    def test_reports_every_violation(self):
        body = signup_body(
            firstName="",
            email="not-an-email",
            password="short",
            otp="12ab56",
            contactNumber="phone",
        )
        del body["confirmPassword"]

        with pytest.raises(ValidationError) as exc_info:
            validate_signup(body)

        fields = {e["field"] for e in exc_info.value.errors}
        assert {"firstName", "email", "password", "confirmPassword", "otp", "contactNumber"} <= fields
        # length + missing uppercase + missing number + missing symbol
        assert len(_messages(exc_info.value, "password")) == 4

    def test_otp_must_be_six_digits(self):
        for bad in ("12345", "1234567", "١٢٣٤٥٦"):
            with pytest.raises(ValidationError):
                validate_signup(signup_body(otp=bad))

    def test_contact_number_shape(self):
        assert validate_signup(signup_body(contactNumber="+919876543210")).contact_number == "+919876543210"
        with pytest.raises(ValidationError):
            validate_signup(signup_body(contactNumber="+0123"))

    def test_name_length_limit(self):
        with pytest.raises(ValidationError):
            validate_signup(signup_body(lastName="x" * 51))

    def test_mismatched_confirmation_is_not_a_shape_error(self):
        # Mismatch is a business rule, checked by AuthService.register
        payload = validate_signup(signup_body(confirmPassword="Different1!"))
        assert payload.confirm_password == "Different1!"

    def test_non_object_body(self):
        with pytest.raises(ValidationError):
            validate_signup(["not", "a", "dict"])


class TestOtherValidators:
    def test_login_requires_email_and_password(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_login({"email": "bad", "password": ""})
        fields = {e["field"] for e in exc_info.value.errors}
        assert fields == {"email", "password"}

    def test_login_lowercases_email(self):
        assert validate_login({"email": "A@Example.com", "password": "x"}).email == "a@example.com"

    def test_login_does_not_apply_policy(self):
        # Old accounts may predate the policy; login only needs non-empty
        assert validate_login({"email": "a@example.com", "password": "x"}).password == "x"

    def test_otp_request(self):
        assert validate_otp_request({"email": "New@Example.com"}).email == "new@example.com"
        with pytest.raises(ValidationError):
            validate_otp_request({})

    def test_password_change_applies_policy_to_new_password(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_password_change(
                {"oldPassword": "whatever", "newPassword": "abc12345", "confirmPassword": "abc12345"}
            )
        assert _messages(exc_info.value, "newPassword")
        assert not _messages(exc_info.value, "oldPassword")

    def test_password_change_requires_all_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_password_change({"newPassword": "Valid123!"})
        fields = {e["field"] for e in exc_info.value.errors}
        assert {"oldPassword", "confirmPassword"} <= fields

    def test_body_that_is_not_an_object_fails_every_validator(self):
        for validator in (validate_login, validate_otp_request, validate_password_change):
            with pytest.raises(ValidationError) as exc_info:
                validator(None)
            assert exc_info.value.errors
