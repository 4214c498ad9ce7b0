from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status, Form
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from trafficfines.api.bearer import bearer_admin, bearer_user
from trafficfines.src.constants import REGEX_REGISTRATION_NUMBER
from trafficfines.src.db import sessionMaker
from trafficfines.src import crud, exceptions, validators, getters
from trafficfines.src.enums import VehicleType
from trafficfines.src.loggers import logEvent
from trafficfines.src.functions import enumStr, fuseExceptionResponses
from trafficfines.src.urls import URL_VEHICLE

route_user = APIRouter()
route_admin = APIRouter()


## Output Schema
class VehicleSchema(BaseModel):
    id: int
    registration_number: str
    vehicle_type: VehicleType
    model: Optional[str]
    user_id: int


## Input Forms
class CreateForm(BaseModel):
    registration_number: str = Field(
        Form(pattern=REGEX_REGISTRATION_NUMBER, max_length=32)
    )
    vehicle_type: VehicleType = Field(Form(description=enumStr(VehicleType)))
    model: str | None = Field(Form(max_length=128, default=None))


## Query Parameters
class QueryParams(BaseModel):
    user_id: int | None = Field(Query(default=None))


## API endpoints [User]
@route_user.post(
    URL_VEHICLE,
    tags=["Vehicle"],
    response_model=VehicleSchema,
    status_code=status.HTTP_201_CREATED,
    responses=fuseExceptionResponses(
        [
            exceptions.InvalidToken(),
            exceptions.NoPermission(),
            exceptions.DuplicateRegistrationNumber(),
        ]
    ),
    description="""
    Registers a vehicle owned by the authenticated user.
    Registration numbers are unique across the system.
    """,
)
async def create_vehicle(
    fParam: CreateForm = Depends(),
    bearer=Depends(bearer_user),
    request_info=Depends(getters.requestInfo),
):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)

        vehicle = crud.createVehicle(
            session,
            userId=token.user_id,
            registration_number=fParam.registration_number,
            vehicle_type=fParam.vehicle_type,
            model=fParam.model,
        )

        vehicleData = jsonable_encoder(vehicle)
        logEvent(token, request_info, vehicleData)
        return vehicleData
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


@route_user.get(
    URL_VEHICLE,
    tags=["Vehicle"],
    response_model=List[VehicleSchema],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Lists the vehicles of the authenticated user.
    """,
)
async def fetch_own_vehicles(bearer=Depends(bearer_user)):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        return crud.vehiclesForUser(session, token.user_id)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


## API endpoints [Admin]
@route_admin.get(
    URL_VEHICLE,
    tags=["Vehicle"],
    response_model=List[VehicleSchema],
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Lists every registered vehicle, optionally only those of one owner.
    """,
)
async def fetch_vehicles(qParam: QueryParams = Depends(), bearer=Depends(bearer_admin)):
    try:
        session = sessionMaker()
        validators.adminToken(bearer.credentials, session)
        return crud.listVehicles(session, qParam.user_id)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
