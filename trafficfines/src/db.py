from datetime import datetime, timezone
from secrets import token_hex
from sqlalchemy import (
    TEXT,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    create_engine,
    event,
    func,
)
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from trafficfines.src.constants import DB_URL
from trafficfines.src.enums import Role, VehicleType, ViolationStatus


# Global DBMS variables
if DB_URL.startswith("sqlite"):
    # A single shared connection keeps the in-memory database alive across sessions
    engine = create_engine(
        url=DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(url=DB_URL, echo=False)
sessionMaker = sessionmaker(bind=engine, expire_on_commit=False)
ORMbase = declarative_base()


@event.listens_for(engine, "connect")
def enableForeignKeys(dbapiConnection, connectionRecord):
    if engine.dialect.name == "sqlite":
        cursor = dbapiConnection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def utcNow() -> datetime:
    return datetime.now(timezone.utc)


# ----------------------------------- General DB Models ---------------------------------------#
class User(ORMbase):
    """
    Represents an account of the system, either an administrator who manages
    traffic rules and violations or a vehicle owner who views fines.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the user.

        full_name (TEXT):
            Full name of the user, used for display.
            Must not be null.

        email (String(256)):
            Email address used for login and password recovery.
            Stored trimmed and lower-cased so uniqueness is case-insensitive.
            Must be unique and not null.

        password (TEXT):
            Argon2 hash of the password.
            Plaintext should never be stored here.

        phone (String(10)):
            Contact number made of exactly 10 digits.
            Also usable as an identifier in the forgot password flow.

        role (String):
            Role of the account, stored by name. Mapped from the `Role` enum.
            Forced to `Role.USER` on self registration and never changed afterwards.

        created_on (DateTime):
            Timestamp of when the account was created.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    full_name = Column(TEXT, nullable=False)
    email = Column(String(256), nullable=False, unique=True)
    password = Column(TEXT, nullable=False)
    phone = Column(String(10), nullable=False, index=True)
    role = Column(
        Enum(Role, native_enum=False, length=16), nullable=False, default=Role.USER
    )
    # Metadata
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class AccessToken(ORMbase):
    """
    Represents an authentication token issued to a user at login.

    Columns:
        id (Integer):
            Primary key. Unique identifier for this token record.

        user_id (Integer):
            Foreign key referencing `users.id`.
            Cascades on delete, if the user is removed the tokens are deleted.

        access_token (String):
            Unique, securely generated 64-character hexadecimal access token.

        expires_in (Integer):
            Token expiration time in seconds.

        expires_at (DateTime):
            Date and time after which the token becomes invalid.

        created_on (DateTime):
            Timestamp indicating when this token was created.
    """

    __tablename__ = "access_tokens"

    id = Column(Integer, primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    access_token = Column(
        String(64), unique=True, nullable=False, default=lambda: token_hex(32)
    )
    expires_in = Column(Integer, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    # Metadata
    created_on = Column(DateTime(timezone=True), nullable=False, default=utcNow)


class Vehicle(ORMbase):
    """
    Represents a vehicle registered by its owner.
    Ownership is exclusive, each vehicle belongs to exactly one user.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the vehicle.

        registration_number (String(32)):
            Registration plate of the vehicle.
            Must be unique across the system and not null.

        vehicle_type (String):
            Category of the vehicle, stored by name. Mapped from the `VehicleType` enum.

        model (TEXT):
            Optional free text model description.

        user_id (Integer):
            Foreign key referencing `users.id`, the owner of the vehicle.
            Cascades on delete.
    """

    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True)
    registration_number = Column(String(32), nullable=False, unique=True)
    vehicle_type = Column(Enum(VehicleType, native_enum=False, length=16), nullable=False)
    model = Column(TEXT)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class TrafficRule(ORMbase):
    """
    Represents a category of traffic violation with a fixed monetary penalty.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the rule.

        rule_name (TEXT):
            Name of the rule. Must not be blank.

        description (TEXT):
            Optional explanation of the rule.

        fine_amount (Numeric(10, 2)):
            Penalty for violating the rule. Must be strictly positive.
            Violations never copy this value, it is read through the rule every time.
    """

    __tablename__ = "traffic_rules"

    id = Column(Integer, primary_key=True)
    rule_name = Column(TEXT, nullable=False)
    description = Column(TEXT)
    fine_amount = Column(Numeric(10, 2), nullable=False)


class Violation(ORMbase):
    """
    Represents a recorded violation of a traffic rule by a vehicle.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the violation.

        vehicle_id (Integer):
            Foreign key referencing `vehicles.id`.
            Cascades on delete.

        rule_id (Integer):
            Foreign key referencing `traffic_rules.id`.
            Restricted on delete, a rule cannot be removed while violations refer to it.

        violation_date (DateTime):
            When the violation happened. Defaults to the record creation time.

        location (TEXT):
            Free text location of the violation.

        description (TEXT):
            Free text details of the violation.

        status (String):
            Payment status, stored by name. Mapped from the `ViolationStatus` enum.
            Defaults to `ViolationStatus.PENDING`, the only transition is PENDING to PAID.
    """

    __tablename__ = "violations"

    id = Column(Integer, primary_key=True)
    vehicle_id = Column(
        Integer,
        ForeignKey("vehicles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rule_id = Column(
        Integer,
        ForeignKey("traffic_rules.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    violation_date = Column(DateTime(timezone=True), nullable=False, default=utcNow)
    location = Column(TEXT)
    description = Column(TEXT)
    status = Column(
        Enum(ViolationStatus, native_enum=False, length=16),
        nullable=False,
        default=ViolationStatus.PENDING,
        index=True,
    )
