from datetime import datetime
from typing import List
from fastapi import APIRouter, Depends, Query, Response, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, EmailStr

from trafficfines.api.bearer import bearer_admin, bearer_user
from trafficfines.src.constants import MAX_PASSWORD_LENGTH
from trafficfines.src.db import sessionMaker
from trafficfines.src import crud, exceptions, validators, getters
from trafficfines.src.enums import Role
from trafficfines.src.loggers import logEvent
from trafficfines.src.functions import enumStr, fuseExceptionResponses
from trafficfines.src.urls import URL_ACCOUNT, URL_ACCOUNT_PASSWORD

route_public = APIRouter()
route_user = APIRouter()
route_admin = APIRouter()


## Output Schema
class AccountSchema(BaseModel):
    id: int
    full_name: str
    email: str
    phone: str
    role: Role
    created_on: datetime


## Input Forms
class CreateForm(BaseModel):
    full_name: str = Field(Form(min_length=1, max_length=128))
    email: EmailStr = Field(Form(max_length=256))
    phone: str = Field(Form(max_length=32))
    password: str = Field(Form(max_length=MAX_PASSWORD_LENGTH))


class PasswordForm(BaseModel):
    current_password: str = Field(Form(max_length=MAX_PASSWORD_LENGTH))
    new_password: str = Field(Form(max_length=MAX_PASSWORD_LENGTH))
    confirm_password: str | None = Field(
        Form(max_length=MAX_PASSWORD_LENGTH, default=None)
    )


class DeleteForm(BaseModel):
    id: int = Field(Form())


## Query Parameters
class QueryParams(BaseModel):
    role: Role | None = Field(Query(default=None, description=enumStr(Role)))


## API endpoints [Public]
@route_public.post(
    URL_ACCOUNT,
    tags=["Account"],
    response_model=AccountSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.EmailAlreadyRegistered(),
            exceptions.InvalidPhoneNumber(),
            exceptions.PasswordSameAsEmail(),
            exceptions.PasswordTooShort(),
            exceptions.PasswordMissingUppercase(),
            exceptions.PasswordMissingLowercase(),
            exceptions.PasswordMissingDigit(),
        ]
    ),
    description="""
    Registers a new vehicle owner account.
    The rules are checked in order and only the first failure is reported:
    unregistered email, 10 digit phone number, password different from the email,
    at least 8 characters, an uppercase letter, a lowercase letter and a digit.
    The role is always USER. The password is hashed using Argon2 before storing.
    """,
)
async def create_account(
    fParam: CreateForm = Depends(),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        validators.registration(session, fParam.email, fParam.phone, fParam.password)
        user = crud.createUser(
            session,
            full_name=fParam.full_name,
            email=fParam.email,
            password=fParam.password,
            phone=fParam.phone,
            role=Role.USER,
        )

        userData = jsonable_encoder(user, exclude={"password"})
        logEvent(None, request_info, userData)
        return userData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


## API endpoints [User]
@route_user.patch(
    URL_ACCOUNT_PASSWORD,
    tags=["Account"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.IncorrectPassword(),
            exceptions.PasswordMismatch(),
            exceptions.PasswordSameAsEmail(),
            exceptions.PasswordUnchanged(),
            exceptions.PasswordTooShort(),
        ]
    ),
    description="""
    Changes the password of the authenticated user.
    The current password must be correct, the confirmation (when sent) must match,
    and the new password must differ from both the email and the current password
    before the strength rules are applied.
    """,
)
async def update_password(
    fParam: PasswordForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        user = getters.tokenUser(token, session)

        validators.passwordChange(
            user,
            fParam.current_password,
            fParam.new_password,
            fParam.confirm_password,
        )
        crud.updatePassword(session, user, fParam.new_password)

        logEvent(token, request_info, {"id": user.id, "password_changed": True})
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


## API endpoints [Admin]
@route_admin.get(
    URL_ACCOUNT,
    tags=["Account"],
    response_model=List[AccountSchema],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Lists the registered accounts, optionally filtered by role.
    """,
)
async def fetch_accounts(qParam: QueryParams = Depends(), bearer=Depends(bearer_admin)):
    try:
        session = sessionMaker()
        validators.adminToken(bearer.credentials, session)
        return crud.listUsers(session, qParam.role)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.delete(
    URL_ACCOUNT,
    tags=["Account"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Deletes a vehicle owner account with its vehicles, their violations and its tokens.
    Administrator accounts cannot be deleted.
    If the account does not exist, the operation is silently ignored.
    """,
)
async def delete_account(
    fParam: DeleteForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)

        user = crud.getUser(session, fParam.id)
        if user is None:
            return Response(status_code=status.HTTP_204_NO_CONTENT)
        if user.role == Role.ADMIN:
            raise exceptions.NoPermission()

        userData = jsonable_encoder(user, exclude={"password"})
        crud.deleteUser(session, user.id)
        logEvent(token, request_info, userData)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
