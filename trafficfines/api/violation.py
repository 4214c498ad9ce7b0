from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from trafficfines.api.bearer import bearer_admin, bearer_user
from trafficfines.src.db import Violation, sessionMaker
from trafficfines.src import crud, exceptions, schemas, validators, getters
from trafficfines.src.enums import ViolationStatus
from trafficfines.src.loggers import logEvent
from trafficfines.src.functions import enumStr, fuseExceptionResponses
from trafficfines.src.urls import URL_VIOLATION

route_user = APIRouter()
route_admin = APIRouter()


## Output Schema
class ViolationSchema(BaseModel):
    id: int
    vehicle_id: int
    rule_id: int
    violation_date: datetime
    location: Optional[str]
    description: Optional[str]
    status: ViolationStatus


## Input Forms
class CreateForm(BaseModel):
    vehicle_id: int = Field(Form())
    rule_id: int = Field(Form())
    location: str | None = Field(Form(max_length=256, default=None))
    description: str | None = Field(Form(max_length=1024, default=None))


class UpdateForm(BaseModel):
    id: int = Field(Form())


## Query Parameters
class QueryParams(BaseModel):
    status: ViolationStatus | None = Field(
        Query(default=None, description=enumStr(ViolationStatus))
    )
    vehicle_id: int | None = Field(Query(default=None))
    rule_id: int | None = Field(Query(default=None))
    user_id: int | None = Field(Query(default=None))


class UserQueryParams(BaseModel):
    status: ViolationStatus | None = Field(
        Query(default=None, description=enumStr(ViolationStatus))
    )
    vehicle_id: int | None = Field(Query(default=None))


## API endpoints [Admin]
@route_admin.post(
    URL_VIOLATION,
    tags=["Violation"],
    response_model=ViolationSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.UnknownValue(Violation.vehicle_id),
            exceptions.UnknownValue(Violation.rule_id),
        ]
    ),
    description="""
    Records a violation of a traffic rule by a registered vehicle.
    The violation is dated now and starts in the PENDING status.
    Its fine is not stored, it is always the current fine of the rule.
    """,
)
async def create_violation(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)

        violation = crud.createViolation(
            session,
            vehicleId=fParam.vehicle_id,
            ruleId=fParam.rule_id,
            location=fParam.location,
            description=fParam.description,
        )

        violationData = jsonable_encoder(violation)
        logEvent(token, request_info, violationData)
        return violationData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.patch(
    URL_VIOLATION,
    tags=["Violation"],
    response_model=ViolationSchema,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.InvalidIdentifier(),
            exceptions.InvalidStateTransition(Violation.status),
        ]
    ),
    description="""
    Marks a violation as PAID.
    Marking an already paid violation changes nothing.
    """,
)
async def update_violation(
    fParam: UpdateForm = Depends(),
    bearer=Depends(bearer_admin),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.adminToken(bearer.credentials, session)

        violation = crud.markPaid(session, fParam.id)

        violationData = jsonable_encoder(violation)
        logEvent(token, request_info, violationData)
        return violationData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_admin.get(
    URL_VIOLATION,
    tags=["Violation"],
    response_model=List[schemas.ViolationDetail],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Lists violations with their vehicle, rule and current fine, newest first.
    """,
)
async def fetch_violations(
    qParam: QueryParams = Depends(), bearer=Depends(bearer_admin)
):
    try:
        session = sessionMaker()
        validators.adminToken(bearer.credentials, session)
        violations = crud.listViolations(
            session,
            status=qParam.status,
            vehicleId=qParam.vehicle_id,
            ruleId=qParam.rule_id,
            userId=qParam.user_id,
        )
        return crud.describeViolations(session, violations)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


## API endpoints [User]
@route_user.get(
    URL_VIOLATION,
    tags=["Violation"],
    response_model=List[schemas.ViolationDetail],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Lists the violations of the vehicles owned by the authenticated user, newest first.
    """,
)
async def fetch_own_violations(
    qParam: UserQueryParams = Depends(), bearer=Depends(bearer_user)
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        violations = crud.listViolations(
            session,
            status=qParam.status,
            vehicleId=qParam.vehicle_id,
            userId=token.user_id,
        )
        return crud.describeViolations(session, violations)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
