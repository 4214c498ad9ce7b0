"""
Validation and permission checks for the Traffic Fines API.

This module centralizes guard logic such as:
- Token validation and role checks
- Registration and password rules
- State transition enforcement

All functions raise appropriate exceptions from `trafficfines.src.exceptions`
when validation fails, ensuring consistent error handling. Rule lists are
evaluated in order and the first failing rule is raised.
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional
from sqlalchemy import Column
from sqlalchemy.orm.session import Session

from trafficfines.src.db import AccessToken, User
from trafficfines.src.constants import (
    MIN_PASSWORD_LENGTH,
    REGEX_DIGIT,
    REGEX_LOWERCASE,
    REGEX_PHONE,
    REGEX_UPPERCASE,
)
from trafficfines.src.enums import Role
from trafficfines.src import argon2, exceptions
from trafficfines.src.functions import isValidTransition, normaliseEmail


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------
def accessToken(access_token: str, session: Session) -> AccessToken:
    """
    Validate a bearer token.

    Args:
        access_token (str): The bearer token string provided by the client.
        session (Session): Active SQLAlchemy session for DB lookup.

    Returns:
        AccessToken: The valid token object from the database.

    Raises:
        exceptions.InvalidToken: If the token is not found or has expired.
    """
    current_time = datetime.now(timezone.utc)

    token = (
        session.query(AccessToken)
        .filter(
            AccessToken.access_token == access_token,
            AccessToken.expires_at > current_time,
        )
        .first()
    )

    if token is None:
        raise exceptions.InvalidToken()

    return token


def _roleToken(access_token: str, session: Session, role: Role) -> AccessToken:
    token = accessToken(access_token, session)
    user = session.get(User, token.user_id)
    if user is None or user.role != role:
        raise exceptions.NoPermission()
    return token


def adminToken(access_token: str, session: Session) -> AccessToken:
    """Validate a token that belongs to an administrator."""
    return _roleToken(access_token, session, Role.ADMIN)


def userToken(access_token: str, session: Session) -> AccessToken:
    """Validate a token that belongs to a vehicle owner."""
    return _roleToken(access_token, session, Role.USER)


# ---------------------------------------------------------------------------
# Credential rules
# ---------------------------------------------------------------------------
def phoneNumber(phone: str) -> bool:
    if phone is None or re.fullmatch(REGEX_PHONE, phone) is None:
        raise exceptions.InvalidPhoneNumber()
    return True


def notSameAsEmail(password: str, email: str) -> bool:
    if password.lower() == email.strip().lower():
        raise exceptions.PasswordSameAsEmail()
    return True


def passwordStrength(password: str) -> bool:
    """
    Enforce the password composition rules.

    Raises, in order:
        exceptions.PasswordTooShort: Fewer than MIN_PASSWORD_LENGTH characters.
        exceptions.PasswordMissingUppercase: No ASCII uppercase letter.
        exceptions.PasswordMissingLowercase: No ASCII lowercase letter.
        exceptions.PasswordMissingDigit: No digit.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise exceptions.PasswordTooShort()
    if re.search(REGEX_UPPERCASE, password) is None:
        raise exceptions.PasswordMissingUppercase()
    if re.search(REGEX_LOWERCASE, password) is None:
        raise exceptions.PasswordMissingLowercase()
    if re.search(REGEX_DIGIT, password) is None:
        raise exceptions.PasswordMissingDigit()
    return True


def registration(session: Session, email: str, phone: str, password: str) -> bool:
    """
    Validate a self registration request.

    Rules (first failure wins):
        1. The email is not registered yet (case-insensitive).
        2. The phone number has exactly 10 digits.
        3. The password differs from the email (case-insensitive).
        4. to 7. `passwordStrength`.

    Returns:
        bool: True if every rule holds.
    """
    email = normaliseEmail(email)
    exists = session.query(User.id).filter(User.email == email).first()
    if exists is not None:
        raise exceptions.EmailAlreadyRegistered()
    phoneNumber(phone)
    notSameAsEmail(password, email)
    return passwordStrength(password)


def passwordChange(
    user: User, current: str, new: str, confirm: Optional[str] = None
) -> bool:
    """
    Validate a password change of an authenticated user.

    Rules (first failure wins):
        1. `current` verifies against the stored digest.
        2. `confirm`, when given, equals `new`.
        3. `new` differs from the email (case-insensitive).
        4. `new` differs from the current password.
        5. `passwordStrength`.
    """
    if not argon2.checkPassword(current, user.password):
        raise exceptions.IncorrectPassword()
    if confirm is not None and confirm != new:
        raise exceptions.PasswordMismatch()
    notSameAsEmail(new, user.email)
    if argon2.checkPassword(new, user.password):
        raise exceptions.PasswordUnchanged()
    return passwordStrength(new)


def passwordReset(email: str, new: str, confirm: Optional[str] = None) -> bool:
    """Validate the new password of an OTP password reset."""
    if confirm is not None and confirm != new:
        raise exceptions.PasswordMismatch()
    notSameAsEmail(new, email)
    return passwordStrength(new)


# ---------------------------------------------------------------------------
# Other validations
# ---------------------------------------------------------------------------
def stateTransition(
    transitions: dict[Any, list[Any]], old_state: Any, new_state: Any, state: Column
) -> bool:
    """
    Validate whether a state transition is allowed.

    Args:
        transitions (dict[Any, list[Any]]): Mapping of valid transitions.
        old_state (Any): Current state value.
        new_state (Any): Desired new state value.
        state (Column): SQLAlchemy column representing the state
            (used to format error messages).

    Returns:
        bool: True if the transition is valid.

    Raises:
        exceptions.InvalidStateTransition: If the transition is not permitted.
    """
    if not isValidTransition(transitions, old_state, new_state):
        raise exceptions.InvalidStateTransition(state)
    return True
