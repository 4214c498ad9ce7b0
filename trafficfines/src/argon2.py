from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

passwordHasher = PasswordHasher(encoding="utf-8")


def makePassword(password: str) -> str:
    """
    Hash a plain-text password using Argon2.

    Args:
        password (str): The plain-text password to be hashed.

    Returns:
        str: The Argon2 digest, the only form in which a password is stored.
    """
    return passwordHasher.hash(password)


def checkPassword(password: str, digest: str) -> bool:
    """
    Verify a plain-text password against a stored Argon2 digest.

    A digest that is not a valid Argon2 hash never verifies.

    Returns:
        bool: True if the password matches the digest, False otherwise.
    """
    try:
        return passwordHasher.verify(digest, password)
    except (VerificationError, InvalidHashError):
        return False
