import argparse, logging
from datetime import datetime, timezone
from decimal import Decimal

from trafficfines.src import argon2
from trafficfines.src.enums import Role, VehicleType, ViolationStatus
from trafficfines.src.db import (
    TrafficRule,
    User,
    Vehicle,
    Violation,
    sessionMaker,
    engine,
    ORMbase,
)

logger = logging.getLogger("Seed")

ADMIN = ("System Admin", "admin@admin.com", "admin123", "9999999999")

RULES = [
    ("Over Speeding", "Exceeding the speed limit", "1000"),
    ("Signal Jump", "Jumping a red traffic signal", "1500"),
    ("No Helmet", "Riding two-wheeler without helmet", "500"),
    ("No Seat Belt", "Driving without seat belt", "500"),
    ("Drunk Driving", "Driving under the influence of alcohol", "5000"),
    ("Wrong Side Driving", "Driving on the wrong side of the road", "2000"),
    ("No Parking", "Parking in a no-parking zone", "750"),
    ("Using Mobile Phone", "Using phone while driving", "1500"),
]

USERS = [
    ("Shrestha Bhika", "shresthabidhika618@gmail.com", "Test@123", "9812345678"),
    ("Sita Limbu", "sita@gmail.com", "sita123", "9812345679"),
    ("Bikash Karki", "bikash@gmail.com", "bikash123", "9812345680"),
    ("Anita Sharma", "anita@gmail.com", "anita123", "9812345681"),
    ("Sujan Thapa", "sujan@gmail.com", "sujan123", "9812345682"),
]

# (owner email, registration number, type, model)
VEHICLES = [
    ("shresthabidhika618@gmail.com", "Ko-01-PA-1234", VehicleType.CAR, "Maruti Swift"),
    ("shresthabidhika618@gmail.com", "Ko-01-PA-5678", VehicleType.BIKE, "Bajaj Pulsar NS200"),
    ("sita@gmail.com", "Me-02-PA-9012", VehicleType.CAR, "Hyundai i20"),
    ("bikash@gmail.com", "Ko-03-PA-3456", VehicleType.BIKE, "Honda Shine"),
    ("bikash@gmail.com", "Ko-03-PA-7890", VehicleType.AUTO, "Bajaj RE"),
    ("anita@gmail.com", "Me-04-PA-2345", VehicleType.CAR, "Hyundai Creta"),
    ("sujan@gmail.com", "Ko-05-PA-6789", VehicleType.TRUCK, "Tata Ace"),
    ("sujan@gmail.com", "Ko-05-PA-1122", VehicleType.BIKE, "KTM Duke 200"),
]

PENDING, PAID = ViolationStatus.PENDING, ViolationStatus.PAID

# (registration number, rule, date, location, description, status)
VIOLATIONS = [
    ("Ko-01-PA-1234", "Over Speeding", (2025, 6, 15, 14, 30), "Itahari Road, Biratnagar",
     "Caught doing 90 km/h in a 60 km/h zone", PENDING),
    ("Ko-01-PA-5678", "No Helmet", (2025, 5, 20, 9, 15), "Main Road, Biratnagar",
     "Riding without helmet", PAID),
    ("Me-02-PA-9012", "Signal Jump", (2025, 7, 2, 18, 45), "Traffic Chowk, Biratnagar",
     "Jumped red signal during peak hours", PENDING),
    ("Me-02-PA-9012", "No Seat Belt", (2025, 4, 10, 11, 0), "Dharan Road, Biratnagar",
     "Driver not wearing seat belt", PAID),
    ("Ko-03-PA-3456", "Wrong Side Driving", (2025, 8, 5, 7, 30), "Rani Chowk, Biratnagar",
     "Riding on wrong side of the road", PENDING),
    ("Ko-03-PA-7890", "No Parking", (2025, 7, 18, 16, 20), "Jogbani Border, Biratnagar",
     "Parked in no-parking zone blocking traffic", PENDING),
    ("Me-04-PA-2345", "Using Mobile Phone", (2025, 9, 1, 13, 0), "Tinpaini, Biratnagar",
     "Using mobile phone while driving", PENDING),
    ("Me-04-PA-2345", "Over Speeding", (2025, 3, 22, 22, 30), "Koshi Highway, Biratnagar",
     "Exceeded speed limit by 30 km/h", PAID),
    ("Ko-05-PA-6789", "Drunk Driving", (2025, 8, 14, 23, 45), "Mahendra Highway, Biratnagar",
     "Failed breathalyzer test, BAC above legal limit", PENDING),
    ("Ko-05-PA-1122", "Signal Jump", (2025, 6, 30, 8, 15), "Baraha Chowk, Biratnagar",
     "Jumped red signal at busy intersection", PAID),
    ("Ko-01-PA-1234", "Using Mobile Phone", (2025, 9, 10, 10, 0), "Ganesh Chowk, Biratnagar",
     "Caught talking on phone while driving", PENDING),
    ("Ko-05-PA-6789", "No Parking", (2025, 7, 25, 15, 30), "Pokhariya Chowk, Biratnagar",
     "Truck parked in residential no-parking zone", PENDING),
]


# ----------------------------------- Project Setup -------------------------------------------#
def removeTables():
    ORMbase.metadata.drop_all(engine)
    logger.info("* All tables deleted")


def createTables():
    ORMbase.metadata.create_all(engine)
    logger.info("* All tables created")


def initDB():
    """Seed the administrator and the standard traffic rules, once."""
    session = sessionMaker()
    try:
        if session.query(User.id).filter(User.role == Role.ADMIN).first() is not None:
            logger.info("* Admin already present, skipping initialization")
            return

        fullName, email, password, phone = ADMIN
        admin = User(
            full_name=fullName,
            email=email,
            password=argon2.makePassword(password),
            phone=phone,
            role=Role.ADMIN,
        )
        session.add(admin)
        for ruleName, description, fineAmount in RULES:
            session.add(
                TrafficRule(
                    rule_name=ruleName,
                    description=description,
                    fine_amount=Decimal(fineAmount),
                )
            )
        session.commit()
        logger.info(f"* Created admin account and {len(RULES)} traffic rules")
    finally:
        session.close()


def testDB():
    """Seed sample owners, vehicles and violations, once."""
    session = sessionMaker()
    try:
        if session.query(User.id).filter(User.role == Role.USER).first() is not None:
            logger.info("* Sample data already present, skipping")
            return

        users = {}
        for fullName, email, password, phone in USERS:
            user = User(
                full_name=fullName,
                email=email,
                password=argon2.makePassword(password),
                phone=phone,
                role=Role.USER,
            )
            session.add(user)
            users[email] = user
        session.flush()
        logger.info(f"* Created {len(users)} sample users")

        vehicles = {}
        for email, registrationNumber, vehicleType, model in VEHICLES:
            vehicle = Vehicle(
                registration_number=registrationNumber,
                vehicle_type=vehicleType,
                model=model,
                user_id=users[email].id,
            )
            session.add(vehicle)
            vehicles[registrationNumber] = vehicle
        session.flush()
        logger.info(f"* Created {len(vehicles)} sample vehicles")

        rules = {rule.rule_name: rule for rule in session.query(TrafficRule).all()}
        for registrationNumber, ruleName, date, location, description, status in VIOLATIONS:
            session.add(
                Violation(
                    vehicle_id=vehicles[registrationNumber].id,
                    rule_id=rules[ruleName].id,
                    violation_date=datetime(*date, tzinfo=timezone.utc),
                    location=location,
                    description=description,
                    status=status,
                )
            )
        session.commit()
        logger.info(f"* Created {len(VIOLATIONS)} sample violations")
    finally:
        session.close()


# Setup database
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser()
    # remove tables
    parser.add_argument("-rm", action="store_true", help="remove tables")
    parser.add_argument("-cr", action="store_true", help="create tables")
    parser.add_argument("-init", action="store_true", help="initialize DB")
    parser.add_argument("-test", action="store_true", help="add test data")
    args = parser.parse_args()

    if args.cr:
        createTables()
    if args.init:
        initDB()
    if args.test:
        testDB()
    if args.rm:
        removeTables()
