from fastapi import APIRouter, Depends

from trafficfines.api.bearer import bearer_admin, bearer_user
from trafficfines.src.db import sessionMaker
from trafficfines.src import exceptions, schemas, statistics, validators
from trafficfines.src.functions import fuseExceptionResponses
from trafficfines.src.urls import URL_DASHBOARD

route_user = APIRouter()
route_admin = APIRouter()


## API endpoints [Admin]
@route_admin.get(
    URL_DASHBOARD,
    tags=["Dashboard"],
    response_model=schemas.AdminDashboard,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    System wide statistics: violation counts by status, total, collected and
    pending fines, registered owners and vehicles, and the latest violations.
    """,
)
async def fetch_admin_dashboard(bearer=Depends(bearer_admin)):
    try:
        session = sessionMaker()
        validators.adminToken(bearer.credentials, session)
        return statistics.adminDashboard(session)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()


## API endpoints [User]
@route_user.get(
    URL_DASHBOARD,
    tags=["Dashboard"],
    response_model=schemas.UserDashboard,
    responses=fuseExceptionResponses(
        [exceptions.InvalidToken(), exceptions.NoPermission()]
    ),
    description="""
    Statistics of the authenticated user: vehicle and violation counts,
    total, paid and pending fines, and every violation of the user's vehicles.
    """,
)
async def fetch_user_dashboard(bearer=Depends(bearer_user)):
    try:
        session = sessionMaker()
        token = validators.userToken(bearer.credentials, session)
        return statistics.userDashboard(session, token.user_id)
    except Exception as e:
        exceptions.handle(e)
    finally:
        session.close()
