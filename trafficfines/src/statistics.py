"""
Read-only aggregates over violations and the fines of their rules.

A scope is either every violation (administrators) or the violations of the
vehicles owned by one user. Amounts are always summed through
`violations.rule_id -> traffic_rules.fine_amount` at query time, so an
updated rule fine is reflected by every later aggregate. Empty scopes give
identity values (0 and Decimal("0.00")), never None.
"""

from decimal import Decimal
from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm.session import Session

from trafficfines.src.db import TrafficRule, User, Vehicle, Violation
from trafficfines.src.constants import RECENT_VIOLATION_LIMIT
from trafficfines.src.enums import Role, ViolationStatus
from trafficfines.src.functions import toAmount
from trafficfines.src import crud


def _sumFines(
    session: Session,
    userId: Optional[int] = None,
    status: Optional[ViolationStatus] = None,
) -> Decimal:
    query = (
        session.query(func.coalesce(func.sum(TrafficRule.fine_amount), 0))
        .select_from(Violation)
        .join(TrafficRule, TrafficRule.id == Violation.rule_id)
    )
    if userId is not None:
        query = query.join(Vehicle, Vehicle.id == Violation.vehicle_id).filter(
            Vehicle.user_id == userId
        )
    if status is not None:
        query = query.filter(Violation.status == status)
    return toAmount(query.scalar())


def totalViolationCount(session: Session) -> int:
    return session.query(func.count(Violation.id)).scalar()


def countByStatus(session: Session, status: ViolationStatus) -> int:
    return (
        session.query(func.count(Violation.id))
        .filter(Violation.status == status)
        .scalar()
    )


def totalFineAmount(session: Session, userId: Optional[int] = None) -> Decimal:
    """
    Sum of the fines of every violation in scope.

    Args:
        userId (int | None): Restrict to this user's vehicles, None for all violations.
    """
    return _sumFines(session, userId)


def totalPaidAmount(session: Session, userId: Optional[int] = None) -> Decimal:
    return _sumFines(session, userId, ViolationStatus.PAID)


def totalPendingAmount(session: Session, userId: Optional[int] = None) -> Decimal:
    return _sumFines(session, userId, ViolationStatus.PENDING)


def recentViolations(
    session: Session, limit: int = RECENT_VIOLATION_LIMIT
) -> List[Violation]:
    """Newest violations first, violations on the same date in insertion order."""
    return (
        session.query(Violation)
        .order_by(Violation.violation_date.desc(), Violation.id.asc())
        .limit(limit)
        .all()
    )


def violationsForUser(session: Session, userId: int) -> List[Violation]:
    return crud.listViolations(session, userId=userId)


def adminDashboard(session: Session) -> dict:
    """
    System wide figures shown to administrators.

    Returns:
        dict: Shaped like `schemas.AdminDashboard`.
    """
    totalUsers = (
        session.query(func.count(User.id)).filter(User.role == Role.USER).scalar()
    )
    totalVehicles = session.query(func.count(Vehicle.id)).scalar()
    recent = recentViolations(session)
    return {
        "total_violations": totalViolationCount(session),
        "pending_violations": countByStatus(session, ViolationStatus.PENDING),
        "paid_violations": countByStatus(session, ViolationStatus.PAID),
        "total_amount": totalFineAmount(session),
        "collected_amount": totalPaidAmount(session),
        "pending_amount": totalPendingAmount(session),
        "total_users": totalUsers,
        "total_vehicles": totalVehicles,
        "recent_violations": crud.describeViolations(session, recent),
    }


def userDashboard(session: Session, userId: int) -> dict:
    """
    Figures of one vehicle owner.

    Returns:
        dict: Shaped like `schemas.UserDashboard`.
    """
    violations = violationsForUser(session, userId)
    totalVehicles = (
        session.query(func.count(Vehicle.id)).filter(Vehicle.user_id == userId).scalar()
    )
    return {
        "total_vehicles": totalVehicles,
        "total_violations": len(violations),
        "total_amount": totalFineAmount(session, userId),
        "paid_amount": totalPaidAmount(session, userId),
        "pending_amount": totalPendingAmount(session, userId),
        "violations": crud.describeViolations(session, violations),
    }
