"""
Data access operations for users, vehicles, traffic rules and violations.

Every mutation commits a single unit of work. Uniqueness is checked up front
to report a friendly error, but the database stays the final authority: an
`IntegrityError` raised by the commit is rolled back and translated by
`exceptions.handle` into the same error the pre-check would have raised.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.session import Session

from trafficfines.src.db import AccessToken, TrafficRule, User, Vehicle, Violation
from trafficfines.src.enums import Role, VehicleType, ViolationStatus
from trafficfines.src import argon2, exceptions, validators
from trafficfines.src.functions import normaliseEmail, toAmount

# Allowed payment status transitions
VIOLATION_TRANSITIONS = {
    ViolationStatus.PENDING: [ViolationStatus.PAID],
}


def _commit(session: Session, instance=None):
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        exceptions.handle(e)
    if instance is not None:
        session.refresh(instance)
    return instance


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
def getUser(session: Session, userId: int) -> Optional[User]:
    return session.get(User, userId)


def getUserByEmail(session: Session, email: str) -> Optional[User]:
    """Find a user by email, ignoring case and surrounding whitespace."""
    return session.query(User).filter(User.email == normaliseEmail(email)).first()


def getUserByPhone(session: Session, phone: str) -> Optional[User]:
    """Phone numbers are not unique, the oldest account wins."""
    return (
        session.query(User)
        .filter(User.phone == phone.strip())
        .order_by(User.id.asc())
        .first()
    )


def getVehicle(session: Session, vehicleId: int) -> Optional[Vehicle]:
    return session.get(Vehicle, vehicleId)


def getRule(session: Session, ruleId: int) -> Optional[TrafficRule]:
    return session.get(TrafficRule, ruleId)


def getViolation(session: Session, violationId: int) -> Optional[Violation]:
    return session.get(Violation, violationId)


def existsByEmail(session: Session, email: str) -> bool:
    query = session.query(User.id).filter(User.email == normaliseEmail(email))
    return query.first() is not None


def existsByRegistrationNumber(session: Session, registrationNumber: str) -> bool:
    query = session.query(Vehicle.id).filter(
        Vehicle.registration_number == registrationNumber.strip()
    )
    return query.first() is not None


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------
def listUsers(session: Session, role: Optional[Role] = None) -> List[User]:
    query = session.query(User)
    if role is not None:
        query = query.filter(User.role == role)
    return query.order_by(User.id.asc()).all()


def vehiclesForUser(session: Session, userId: int) -> List[Vehicle]:
    return (
        session.query(Vehicle)
        .filter(Vehicle.user_id == userId)
        .order_by(Vehicle.id.asc())
        .all()
    )


def listRules(session: Session) -> List[TrafficRule]:
    return session.query(TrafficRule).order_by(TrafficRule.id.asc()).all()


def listVehicles(session: Session, userId: Optional[int] = None) -> List[Vehicle]:
    query = session.query(Vehicle)
    if userId is not None:
        query = query.filter(Vehicle.user_id == userId)
    return query.order_by(Vehicle.id.asc()).all()


def listViolations(
    session: Session,
    status: Optional[ViolationStatus] = None,
    vehicleId: Optional[int] = None,
    ruleId: Optional[int] = None,
    userId: Optional[int] = None,
) -> List[Violation]:
    """
    List violations, newest first with ties in insertion order.

    Args:
        status (ViolationStatus | None): Only violations in this payment status.
        vehicleId (int | None): Only violations of this vehicle.
        ruleId (int | None): Only violations of this rule.
        userId (int | None): Only violations of vehicles owned by this user.
    """
    query = session.query(Violation)
    if status is not None:
        query = query.filter(Violation.status == status)
    if vehicleId is not None:
        query = query.filter(Violation.vehicle_id == vehicleId)
    if ruleId is not None:
        query = query.filter(Violation.rule_id == ruleId)
    if userId is not None:
        query = query.join(Vehicle, Vehicle.id == Violation.vehicle_id).filter(
            Vehicle.user_id == userId
        )
    query = query.order_by(Violation.violation_date.desc(), Violation.id.asc())
    return query.all()


def describeViolations(session: Session, violations: Iterable[Violation]) -> List[dict]:
    """
    Resolve the vehicle and rule of each violation in a batch.

    One keyed lookup is made per table regardless of the batch size.
    The fine is read through the rule, so the returned `fine_amount`
    always reflects the rule's current value.

    Returns:
        List[dict]: Read models shaped like `schemas.ViolationDetail`,
        in the order of the given violations.
    """
    violations = list(violations)
    vehicleIds = {violation.vehicle_id for violation in violations}
    ruleIds = {violation.rule_id for violation in violations}
    vehicles, rules = {}, {}
    if vehicleIds:
        rows = session.query(Vehicle).filter(Vehicle.id.in_(vehicleIds)).all()
        vehicles = {vehicle.id: vehicle for vehicle in rows}
    if ruleIds:
        rows = session.query(TrafficRule).filter(TrafficRule.id.in_(ruleIds)).all()
        rules = {rule.id: rule for rule in rows}

    details = []
    for violation in violations:
        vehicle = vehicles[violation.vehicle_id]
        rule = rules[violation.rule_id]
        details.append(
            {
                "id": violation.id,
                "vehicle_id": vehicle.id,
                "registration_number": vehicle.registration_number,
                "vehicle_type": vehicle.vehicle_type,
                "user_id": vehicle.user_id,
                "rule_id": rule.id,
                "rule_name": rule.rule_name,
                "fine_amount": toAmount(rule.fine_amount),
                "violation_date": violation.violation_date,
                "location": violation.location,
                "description": violation.description,
                "status": violation.status,
            }
        )
    return details


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------
def createUser(
    session: Session,
    full_name: str,
    email: str,
    password: str,
    phone: str,
    role: Role = Role.USER,
) -> User:
    """
    Persist a new account, hashing the plain-text password with Argon2.

    Raises:
        exceptions.EmailAlreadyRegistered: If the email is taken (case-insensitive).
    """
    email = normaliseEmail(email)
    if existsByEmail(session, email):
        raise exceptions.EmailAlreadyRegistered()
    user = User(
        full_name=full_name.strip(),
        email=email,
        password=argon2.makePassword(password),
        phone=phone.strip(),
        role=role,
    )
    session.add(user)
    return _commit(session, user)


def createVehicle(
    session: Session,
    userId: int,
    registration_number: str,
    vehicle_type: VehicleType,
    model: Optional[str] = None,
) -> Vehicle:
    registration_number = registration_number.strip()
    if getUser(session, userId) is None:
        raise exceptions.UnknownValue(Vehicle.user_id)
    if existsByRegistrationNumber(session, registration_number):
        raise exceptions.DuplicateRegistrationNumber()
    vehicle = Vehicle(
        registration_number=registration_number,
        vehicle_type=vehicle_type,
        model=model,
        user_id=userId,
    )
    session.add(vehicle)
    return _commit(session, vehicle)


def createRule(
    session: Session,
    rule_name: str,
    fine_amount: Decimal,
    description: Optional[str] = None,
) -> TrafficRule:
    if rule_name is None or not rule_name.strip():
        raise exceptions.InvalidValue(TrafficRule.rule_name)
    fine_amount = toAmount(fine_amount)
    if fine_amount <= 0:
        raise exceptions.InvalidValue(TrafficRule.fine_amount)
    rule = TrafficRule(
        rule_name=rule_name.strip(), description=description, fine_amount=fine_amount
    )
    session.add(rule)
    return _commit(session, rule)


def createViolation(
    session: Session,
    vehicleId: int,
    ruleId: int,
    location: Optional[str] = None,
    description: Optional[str] = None,
    violation_date: Optional[datetime] = None,
    status: ViolationStatus = ViolationStatus.PENDING,
) -> Violation:
    """
    Record a violation against an existing vehicle and rule.

    The violation date defaults to the current time. Only the seed
    data records violations directly in the PAID status.

    Raises:
        exceptions.UnknownValue: If the vehicle or the rule does not exist.
    """
    if getVehicle(session, vehicleId) is None:
        raise exceptions.UnknownValue(Violation.vehicle_id)
    if getRule(session, ruleId) is None:
        raise exceptions.UnknownValue(Violation.rule_id)
    violation = Violation(
        vehicle_id=vehicleId,
        rule_id=ruleId,
        location=location,
        description=description,
        status=status,
    )
    if violation_date is not None:
        violation.violation_date = violation_date
    session.add(violation)
    return _commit(session, violation)


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------
def updatePassword(session: Session, user: User, password: str) -> User:
    """Replace the password digest of a user. The password must be validated first."""
    user.password = argon2.makePassword(password)
    return _commit(session, user)


def updateRule(
    session: Session,
    ruleId: int,
    rule_name: Optional[str] = None,
    description: Optional[str] = None,
    fine_amount: Optional[Decimal] = None,
) -> TrafficRule:
    """
    Update the given attributes of a rule, leaving `None` ones unchanged.

    A new fine applies to every violation of the rule, recorded or future,
    since violations never hold a copy of it.
    """
    rule = getRule(session, ruleId)
    if rule is None:
        raise exceptions.InvalidIdentifier()
    if rule_name is not None:
        if not rule_name.strip():
            raise exceptions.InvalidValue(TrafficRule.rule_name)
        rule.rule_name = rule_name.strip()
    if description is not None:
        rule.description = description
    if fine_amount is not None:
        fine_amount = toAmount(fine_amount)
        if fine_amount <= 0:
            raise exceptions.InvalidValue(TrafficRule.fine_amount)
        rule.fine_amount = fine_amount
    return _commit(session, rule)


def updateRuleFine(session: Session, ruleId: int, fine_amount: Decimal) -> TrafficRule:
    return updateRule(session, ruleId, fine_amount=fine_amount)


def markPaid(session: Session, violationId: int) -> Violation:
    """
    Move a violation to the PAID status.

    Marking an already paid violation is a no-op.

    Raises:
        exceptions.InvalidIdentifier: If the violation does not exist.
        exceptions.InvalidStateTransition: If the current status cannot become PAID.
    """
    violation = getViolation(session, violationId)
    if violation is None:
        raise exceptions.InvalidIdentifier()
    if violation.status == ViolationStatus.PAID:
        return violation
    validators.stateTransition(
        VIOLATION_TRANSITIONS, violation.status, ViolationStatus.PAID, Violation.status
    )
    violation.status = ViolationStatus.PAID
    return _commit(session, violation)


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------
def deleteUser(session: Session, userId: int) -> bool:
    """
    Delete a user together with everything they own.

    The violations of the user's vehicles go first, then the vehicles,
    the access tokens and finally the user, all in one transaction.

    Returns:
        bool: False if there was no such user.
    """
    user = getUser(session, userId)
    if user is None:
        return False
    vehicleIds = select(Vehicle.id).where(Vehicle.user_id == userId)
    session.query(Violation).filter(Violation.vehicle_id.in_(vehicleIds)).delete(
        synchronize_session=False
    )
    session.query(Vehicle).filter(Vehicle.user_id == userId).delete(
        synchronize_session=False
    )
    session.query(AccessToken).filter(AccessToken.user_id == userId).delete(
        synchronize_session=False
    )
    session.delete(user)
    _commit(session)
    return True


def deleteVehicle(session: Session, vehicleId: int) -> bool:
    """Delete a vehicle and its violations. Returns False if there was no such vehicle."""
    vehicle = getVehicle(session, vehicleId)
    if vehicle is None:
        return False
    session.query(Violation).filter(Violation.vehicle_id == vehicleId).delete(
        synchronize_session=False
    )
    session.delete(vehicle)
    _commit(session)
    return True


def deleteRule(session: Session, ruleId: int) -> bool:
    """
    Delete a traffic rule that no violation refers to.

    Raises:
        exceptions.DataInUse: If any violation is recorded against the rule.
    """
    rule = getRule(session, ruleId)
    if rule is None:
        return False
    inUse = session.query(Violation.id).filter(Violation.rule_id == ruleId).first()
    if inUse is not None:
        raise exceptions.DataInUse(TrafficRule)
    session.delete(rule)
    _commit(session)
    return True
