from fastapi import Request
from sqlalchemy.orm.session import Session

from trafficfines.src import schemas
from trafficfines.src.db import AccessToken, User
from trafficfines.src.mailer import SMTPMailer
from trafficfines.src.otp import PasswordResetOTP, createStore

# Shared by every request of the process
resetOTP = PasswordResetOTP(createStore(), SMTPMailer())


def requestInfo(request: Request) -> schemas.RequestInfo:
    """
    Extract metadata about the incoming request.

    Args:
        request (Request): FastAPI request object.

    Returns:
        schemas.RequestInfo: Pydantic model containing:
            - method (str): HTTP method (GET, POST, etc.).
            - path (str): Path portion of the request URL.
            - app_id (int): Application ID from app state.
    """
    return schemas.RequestInfo(
        method=request.method,
        path=request.url.path,
        app_id=request.scope["app"].state.id,
    )


def passwordResetOTP() -> PasswordResetOTP:
    """Dependency returning the process wide password reset OTP manager."""
    return resetOTP


def tokenUser(token: AccessToken, session: Session) -> User | None:
    """Fetch the account an access token was issued to."""
    return session.get(User, token.user_id)
