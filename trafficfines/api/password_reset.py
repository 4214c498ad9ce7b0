import re
from fastapi import APIRouter, Depends, Response, status, Form
from pydantic import BaseModel, Field, EmailStr

from trafficfines.src.constants import MAX_PASSWORD_LENGTH, OTP_LENGTH, REGEX_PHONE
from trafficfines.src.db import sessionMaker
from trafficfines.src import crud, exceptions, validators, getters
from trafficfines.src.loggers import logEvent
from trafficfines.src.functions import fuseExceptionResponses
from trafficfines.src.otp import PasswordResetOTP
from trafficfines.src.urls import URL_PASSWORD_FORGOT, URL_PASSWORD_RESET

route_public = APIRouter()


## Output Schema
class ForgotSchema(BaseModel):
    email: str
    expires_in: int


## Input Forms
class ForgotForm(BaseModel):
    identifier: str = Field(
        Form(max_length=256, description="Registered email or 10 digit phone number")
    )


class ResetForm(BaseModel):
    email: EmailStr = Field(Form(max_length=256))
    otp: str = Field(Form(max_length=OTP_LENGTH + 16))
    new_password: str = Field(Form(max_length=MAX_PASSWORD_LENGTH))
    confirm_password: str | None = Field(
        Form(max_length=MAX_PASSWORD_LENGTH, default=None)
    )


## API endpoints [Public]
@route_public.post(
    URL_PASSWORD_FORGOT,
    tags=["Password Reset"],
    response_model=ForgotSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidIdentifierFormat(),
            exceptions.AccountNotFound(),
            exceptions.OTPDispatchFailed(),
        ]
    ),
    description="""
    Starts a password reset by e-mailing a one time password to the account.
    The identifier is either a 10 digit phone number or an email address.
    A new request replaces any code issued before for the same account.
    The code expires after OTP_EXPIRY_TIME seconds.
    """,
)
async def forgot_password(
    fParam: ForgotForm = Depends(),
    resetOTP: PasswordResetOTP = Depends(getters.passwordResetOTP),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        identifier = fParam.identifier.strip()
        if re.fullmatch(REGEX_PHONE, identifier):
            user = crud.getUserByPhone(session, identifier)
        elif "@" in identifier:
            user = crud.getUserByEmail(session, identifier)
        else:
            raise exceptions.InvalidIdentifierFormat()
        if user is None:
            raise exceptions.AccountNotFound()

        resetOTP.issue(user.email)
        logEvent(None, request_info, {"user_id": user.id, "otp_issued": True})
        return {"email": user.email, "expires_in": resetOTP.ttl}
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_public.post(
    URL_PASSWORD_RESET,
    tags=["Password Reset"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [
            exceptions.PasswordMismatch(),
            exceptions.PasswordSameAsEmail(),
            exceptions.PasswordTooShort(),
            exceptions.InvalidOTP(),
            exceptions.AccountNotFound(),
        ]
    ),
    description="""
    Sets a new password using the one time password sent by the forgot password endpoint.
    The new password is validated before the code is checked, so a rejected password
    does not use up the code. A correct code can be used only once.
    """,
)
async def reset_password(
    fParam: ResetForm = Depends(),
    resetOTP: PasswordResetOTP = Depends(getters.passwordResetOTP),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        validators.passwordReset(
            fParam.email, fParam.new_password, fParam.confirm_password
        )
        if not resetOTP.verify(fParam.email, fParam.otp):
            raise exceptions.InvalidOTP()

        user = crud.getUserByEmail(session, fParam.email)
        if user is None:
            raise exceptions.AccountNotFound()
        crud.updatePassword(session, user, fParam.new_password)

        logEvent(None, request_info, {"user_id": user.id, "password_reset": True})
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
