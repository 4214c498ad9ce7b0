from fastapi import FastAPI
from trafficfines.api import (
    account,
    dashboard,
    password_reset,
    token,
    traffic_rule,
    vehicle,
    violation,
)
from trafficfines.src.enums import AppID


# ------------------------------------------------------
# Create separate FastAPI apps for each user domain
# ------------------------------------------------------
app_admin = FastAPI(title="Admin APP")
app_user = FastAPI(title="User APP")
app_public = FastAPI(title="Public APP")

# Tag each app with its AppID
app_admin.state.id = AppID.ADMIN
app_user.state.id = AppID.USER
app_public.state.id = AppID.PUBLIC


# ------------------------------------------------------
# Admin routers
# ------------------------------------------------------
app_admin.include_router(token.route_admin)
app_admin.include_router(account.route_admin)
app_admin.include_router(dashboard.route_admin)
app_admin.include_router(traffic_rule.route_admin)
app_admin.include_router(vehicle.route_admin)
app_admin.include_router(violation.route_admin)


# ------------------------------------------------------
# User routers
# ------------------------------------------------------
app_user.include_router(token.route_user)
app_user.include_router(account.route_user)
app_user.include_router(dashboard.route_user)
app_user.include_router(vehicle.route_user)
app_user.include_router(violation.route_user)


# ------------------------------------------------------
# Public routers
# ------------------------------------------------------
app_public.include_router(account.route_public)
app_public.include_router(token.route_public)
app_public.include_router(password_reset.route_public)
