"""
Centralized exception handling for the Traffic Fines API.

This module provides:
- Base APIException class extending FastAPI's HTTPException.
- Custom domain-specific exceptions with appropriate status codes and headers.
- Utility functions for formatting DB errors, logging, and routing exceptions.

Usage:
    - Raise specific exceptions in route handlers or services.
    - Use `handle()` to normalize raw exceptions (DB, Redis, Pydantic) into API-friendly responses.
"""

from traceback import format_exception
from logging import getLogger
from fastapi import status, HTTPException
from sqlalchemy.exc import IntegrityError
from psycopg2.errorcodes import UNIQUE_VIOLATION, FOREIGN_KEY_VIOLATION
from pydantic import ValidationError
from redis.exceptions import RedisError
from sqlalchemy import Column


# ---------------------------------------------------------------------------
# Utility functions
# ---------------------------------------------------------------------------
def formatIntegrityError(e: IntegrityError) -> str:
    """
    Format a database integrity error into a user-friendly message.

    PostgreSQL reports the offending key in `diag.message_detail`,
    SQLite only carries a plain message such as
    `UNIQUE constraint failed: users.email`.
    """
    diag = getattr(e.orig, "diag", None)
    if diag is not None and diag.message_detail:
        errorMessage: str = diag.message_detail
        errorMessage = errorMessage.translate({ord(i): None for i in '\\"\\.\\(\\)'})
        errorMessage = errorMessage.replace("Key ", "For ")
        errorMessage = errorMessage.replace("=", " value ")
        return errorMessage
    return str(e.orig)


def integrityErrorKind(e: IntegrityError) -> str | None:
    """
    Classify an integrity error as a unique or foreign key violation.

    Returns:
        str | None: `UNIQUE_VIOLATION`, `FOREIGN_KEY_VIOLATION` or None if
        the error is of another kind (NOT NULL, CHECK, ...).
    """
    diag = getattr(e.orig, "diag", None)
    if diag is not None:
        if diag.sqlstate == UNIQUE_VIOLATION:
            return UNIQUE_VIOLATION
        if diag.sqlstate == FOREIGN_KEY_VIOLATION:
            return FOREIGN_KEY_VIOLATION
        return None

    message = str(e.orig).upper()
    if "UNIQUE CONSTRAINT FAILED" in message:
        return UNIQUE_VIOLATION
    if "FOREIGN KEY CONSTRAINT FAILED" in message:
        return FOREIGN_KEY_VIOLATION
    return None


def logException(e: Exception) -> None:
    """Log an exception with traceback using Uvicorn's error logger."""
    detail = str(format_exception(type(e), e, e.__traceback__))
    logger = getLogger("uvicorn.error")
    logger.error(detail)


# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------
class APIException(HTTPException):
    """
    Base class for all application-specific exceptions.

    Provides default handling of status_code, detail, and headers.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    detail = None
    headers = None

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("status_code", self.status_code)
        kwargs.setdefault("detail", self.detail)
        kwargs.setdefault("headers", self.headers)
        super().__init__(*args, **kwargs)


# ---------------------------------------------------------------------------
# Exception handling entrypoint
# ---------------------------------------------------------------------------
def handle(e: Exception):
    """
    Normalize and re-raise exceptions as API-friendly errors.

    Converts raw exceptions from DB, Pydantic, Redis, etc. into
    corresponding APIException subclasses. Unique violations on the
    columns that have a friendly pre-check are reported with the same
    error the pre-check raises.
    """
    if isinstance(e, IntegrityError):
        kind = integrityErrorKind(e)
        detail = formatIntegrityError(e)
        if kind == UNIQUE_VIOLATION:
            if "email" in detail:
                raise EmailAlreadyRegistered()
            if "registration_number" in detail:
                raise DuplicateRegistrationNumber()
            raise UniqueViolation(detail)
        if kind == FOREIGN_KEY_VIOLATION:
            raise ForeignKeyViolation(detail)
    if isinstance(e, ValidationError):
        raise PydanticError(detail=e.errors())
    if isinstance(e, APIException):
        raise e
    if isinstance(e, RedisError):
        raise RedisDBError(detail=str(e))

    logException(e)
    raise e


# ---------------------------------------------------------------------------
# Exception Classes
# ---------------------------------------------------------------------------
class PydanticError(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    headers = {"X-Error": "PydanticError"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class UniqueViolation(APIException):
    status_code = status.HTTP_409_CONFLICT
    headers = {"X-Error": "UniqueViolation"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class ForeignKeyViolation(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    headers = {"X-Error": "ForeignKeyViolation"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class UnknownValue(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    headers = {"X-Error": "UnknownValue"}

    def __init__(self, column_name: Column):
        detail = f"Invalid {column_name.name} is provided"
        super().__init__(detail=detail)


class InvalidValue(APIException):
    status_code = status.HTTP_406_NOT_ACCEPTABLE
    headers = {"X-Error": "InvalidValue"}

    def __init__(self, column_name: Column):
        detail = f"Invalid {column_name.name} is provided"
        super().__init__(detail=detail)


class InvalidCredentials(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid email or password"
    headers = {"X-Error": "InvalidCredentials"}


class InvalidToken(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid token"
    headers = {"X-Error": "InvalidToken"}


class NoPermission(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "This user has no permission to perform this action"
    headers = {"X-Error": "NoPermission"}


class InvalidIdentifier(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Invalid ID provided"
    headers = {"X-Error": "InvalidIdentifier"}


class AccountNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "No account found with the provided identifier"
    headers = {"X-Error": "AccountNotFound"}


class InvalidIdentifierFormat(APIException):
    status_code = status.HTTP_406_NOT_ACCEPTABLE
    detail = "Please enter a valid email address or a 10-digit phone number"
    headers = {"X-Error": "InvalidIdentifierFormat"}


class InvalidStateTransition(APIException):
    status_code = status.HTTP_406_NOT_ACCEPTABLE
    headers = {"X-Error": "InvalidStateTransition"}

    def __init__(self, column_name: Column | str):
        name = getattr(column_name, "name", column_name)
        detail = f"The {name} cannot be set to the provided value"
        super().__init__(detail=detail)


class DataInUse(APIException):
    status_code = status.HTTP_406_NOT_ACCEPTABLE
    headers = {"X-Error": "DataInUse"}

    def __init__(self, orm_class):
        detail = f"The {orm_class.__name__} is currently in use"
        super().__init__(detail=detail)


class DuplicateRegistrationNumber(APIException):
    status_code = status.HTTP_406_NOT_ACCEPTABLE
    detail = "A vehicle with this registration number already exists"
    headers = {"X-Error": "DuplicateRegistrationNumber"}


class LockAcquireTimeout(APIException):
    status_code = status.HTTP_406_NOT_ACCEPTABLE
    headers = {"X-Error": "LockAcquireTimeout"}
    detail = "Lock acquisition timed out"


class RedisDBError(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    headers = {"X-Error": "RedisAPIError"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


# ---------------------------------------------------------------------------
# Credential rules
# ---------------------------------------------------------------------------
class CredentialViolation(APIException):
    """
    Base class of every registration and password rule failure.

    Validators stop at the first failing rule, so a response always
    carries exactly one of these messages.
    """

    status_code = status.HTTP_406_NOT_ACCEPTABLE
    detail = "Invalid credentials provided"
    headers = {"X-Error": "CredentialViolation"}


class EmailAlreadyRegistered(CredentialViolation):
    detail = "Email is already registered"
    headers = {"X-Error": "EmailAlreadyRegistered"}


class InvalidPhoneNumber(CredentialViolation):
    detail = "Phone number must be exactly 10 digits"
    headers = {"X-Error": "InvalidPhoneNumber"}


class PasswordSameAsEmail(CredentialViolation):
    detail = "Password cannot be the same as your email address"
    headers = {"X-Error": "PasswordSameAsEmail"}


class PasswordTooShort(CredentialViolation):
    detail = "Password must be at least 8 characters long"
    headers = {"X-Error": "PasswordTooShort"}


class PasswordMissingUppercase(CredentialViolation):
    detail = "Password must contain at least one uppercase letter"
    headers = {"X-Error": "PasswordMissingUppercase"}


class PasswordMissingLowercase(CredentialViolation):
    detail = "Password must contain at least one lowercase letter"
    headers = {"X-Error": "PasswordMissingLowercase"}


class PasswordMissingDigit(CredentialViolation):
    detail = "Password must contain at least one digit"
    headers = {"X-Error": "PasswordMissingDigit"}


class IncorrectPassword(CredentialViolation):
    detail = "Current password is incorrect"
    headers = {"X-Error": "IncorrectPassword"}


class PasswordMismatch(CredentialViolation):
    detail = "New passwords do not match"
    headers = {"X-Error": "PasswordMismatch"}


class PasswordUnchanged(CredentialViolation):
    detail = "New password must be different from the current password"
    headers = {"X-Error": "PasswordUnchanged"}


# ---------------------------------------------------------------------------
# One time password
# ---------------------------------------------------------------------------
class InvalidOTP(APIException):
    status_code = status.HTTP_406_NOT_ACCEPTABLE
    detail = "Invalid or expired OTP"
    headers = {"X-Error": "InvalidOTP"}


class OTPDispatchFailed(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Failed to send OTP, please try again later"
    headers = {"X-Error": "OTPDispatchFailed"}
