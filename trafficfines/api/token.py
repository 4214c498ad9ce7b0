from datetime import datetime, timedelta, timezone
from fastapi import APIRouter, Depends, Response, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, EmailStr

from trafficfines.api.bearer import bearer_admin, bearer_user
from trafficfines.src.constants import (
    MAX_PASSWORD_LENGTH,
    MAX_TOKEN_VALIDITY,
    MAX_USER_TOKENS,
)
from trafficfines.src.db import AccessToken, sessionMaker
from trafficfines.src import argon2, crud, exceptions, validators, getters
from trafficfines.src.enums import Role
from trafficfines.src.loggers import logEvent
from trafficfines.src.functions import fuseExceptionResponses
from trafficfines.src.urls import URL_ACCOUNT_TOKEN

route_public = APIRouter()
route_user = APIRouter()
route_admin = APIRouter()


## Output Schema
class MaskedTokenSchema(BaseModel):
    id: int
    user_id: int
    expires_in: int
    expires_at: datetime
    created_on: datetime


class TokenSchema(MaskedTokenSchema):
    access_token: str
    token_type: str = "bearer"
    role: Role


## Input Forms
class CreateForm(BaseModel):
    email: EmailStr = Field(Form(max_length=256))
    password: str = Field(Form(max_length=MAX_PASSWORD_LENGTH))


## API endpoints [Public]
@route_public.post(
    URL_ACCOUNT_TOKEN,
    tags=["Token"],
    response_model=TokenSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses([exceptions.InvalidCredentials()]),
    description="""
    Issues a new access token after validating the email and password.
    The role of the account is returned along with the token, clients use it to pick the admin or user app.
    Limits active tokens using MAX_USER_TOKENS (token rotation).
    Sets expiration with expires_in=MAX_TOKEN_VALIDITY (in seconds).
    Logs the authentication event for audit tracking.
    """,
)
async def create_token(
    fParam: CreateForm = Depends(),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        user = crud.getUserByEmail(session, fParam.email)
        if user is None:
            raise exceptions.InvalidCredentials()
        if not argon2.checkPassword(fParam.password, user.password):
            raise exceptions.InvalidCredentials()

        # Remove excess tokens from DB
        tokens = (
            session.query(AccessToken)
            .filter(AccessToken.user_id == user.id)
            .order_by(AccessToken.created_on.desc(), AccessToken.id.desc())
            .all()
        )
        if len(tokens) >= MAX_USER_TOKENS:
            for token in tokens[MAX_USER_TOKENS - 1 :]:
                session.delete(token)
            session.flush()

        # Create a new token
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=MAX_TOKEN_VALIDITY)
        token = AccessToken(
            user_id=user.id,
            expires_in=MAX_TOKEN_VALIDITY,
            expires_at=expires_at,
        )
        session.add(token)
        session.commit()
        session.refresh(token)

        tokenData = jsonable_encoder(token)
        tokenData["role"] = user.role
        tokenLogData = tokenData.copy()
        tokenLogData.pop("access_token")
        logEvent(token, request_info, tokenLogData)
        return tokenData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


def _deleteToken(access_token: str, role: Role, request_info) -> Response:
    try:
        session = sessionMaker()
        if role == Role.ADMIN:
            token = validators.adminToken(access_token, session)
        else:
            token = validators.userToken(access_token, session)

        session.delete(token)
        session.commit()
        logEvent(
            token,
            request_info,
            jsonable_encoder(token, exclude={"access_token"}),
        )
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


## API endpoints [User]
@route_user.delete(
    URL_ACCOUNT_TOKEN,
    tags=["Token"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Revokes the access token used in the request (logout).
    """,
)
async def delete_user_token(
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    return _deleteToken(bearer.credentials, Role.USER, request_info)


## API endpoints [Admin]
@route_admin.delete(
    URL_ACCOUNT_TOKEN,
    tags=["Token"],
    status_code=status.HTTP_204_NO_CONTENT,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Revokes the access token used in the request (logout).
    """,
)
async def delete_admin_token(
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    return _deleteToken(bearer.credentials, Role.ADMIN, request_info)
