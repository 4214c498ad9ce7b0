from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel

from trafficfines.src.enums import VehicleType, ViolationStatus


class RequestInfo(BaseModel):
    method: str
    path: str
    app_id: int


class HealthStatus(BaseModel):
    status: str
    version: str


class ErrorResponse(BaseModel):
    detail: str


class ViolationDetail(BaseModel):
    """A violation joined with its vehicle and rule, carrying the derived fine."""

    id: int
    vehicle_id: int
    registration_number: str
    vehicle_type: VehicleType
    user_id: int
    rule_id: int
    rule_name: str
    fine_amount: Decimal
    violation_date: datetime
    location: Optional[str]
    description: Optional[str]
    status: ViolationStatus


class AdminDashboard(BaseModel):
    total_violations: int
    pending_violations: int
    paid_violations: int
    total_amount: Decimal
    collected_amount: Decimal
    pending_amount: Decimal
    total_users: int
    total_vehicles: int
    recent_violations: List[ViolationDetail]


class UserDashboard(BaseModel):
    total_vehicles: int
    total_violations: int
    total_amount: Decimal
    paid_amount: Decimal
    pending_amount: Decimal
    violations: List[ViolationDetail]
