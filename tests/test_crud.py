"""
Tests for the data access layer: creation, uniqueness, cascades,
payment status transitions and violation read models.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from trafficfines.src import argon2, crud, exceptions
from trafficfines.src.db import AccessToken, TrafficRule, User, Vehicle, Violation
from trafficfines.src.enums import Role, VehicleType, ViolationStatus


class TestUsers:
    def test_create_user_hashes_password(self, session):
        user = crud.createUser(session, " Sita ", " Sita@Gmail.com ", "Secret123", "9812345679")
        assert user.full_name == "Sita"
        assert user.email == "sita@gmail.com"
        assert user.role == Role.USER
        assert user.password != "Secret123"
        assert argon2.checkPassword("Secret123", user.password)
        assert user.created_on is not None

    def test_duplicate_email_ignoring_case(self, session, owner):
        with pytest.raises(exceptions.EmailAlreadyRegistered):
            crud.createUser(session, "Other", "RAM@gmail.com", "Secret123", "9812345679")

    def test_storage_is_the_final_authority_on_email(self, session, owner, monkeypatch):
        monkeypatch.setattr(crud, "existsByEmail", lambda session, email: False)
        with pytest.raises(exceptions.EmailAlreadyRegistered):
            crud.createUser(session, "Other", "ram@gmail.com", "Secret123", "9812345679")
        # The failed unit of work was rolled back
        assert session.query(User).count() == 1

    def test_lookups(self, session, owner, otherOwner):
        assert crud.getUser(session, owner.id).email == "ram@gmail.com"
        assert crud.getUserByEmail(session, "  RAM@GMAIL.COM").id == owner.id
        assert crud.getUserByPhone(session, "9800000002").id == otherOwner.id
        assert crud.getUserByEmail(session, "nobody@gmail.com") is None
        assert crud.existsByEmail(session, "Hari@gmail.com")
        assert not crud.existsByEmail(session, "nobody@gmail.com")

    def test_shared_phone_resolves_to_oldest_account(self, session, owner):
        crud.createUser(session, "Twin", "twin@gmail.com", "Secret123", owner.phone)
        assert crud.getUserByPhone(session, owner.phone).id == owner.id

    def test_update_password(self, session, owner):
        crud.updatePassword(session, owner, "Changed99")
        assert argon2.checkPassword("Changed99", owner.password)

    def test_list_users_by_role(self, session, admin, owner, otherOwner):
        assert [u.id for u in crud.listUsers(session, Role.USER)] == [owner.id, otherOwner.id]
        assert [u.id for u in crud.listUsers(session, Role.ADMIN)] == [admin.id]
        assert len(crud.listUsers(session)) == 3


class TestVehicles:
    def test_create_vehicle(self, session, owner):
        vehicle = crud.createVehicle(
            session, owner.id, " Ko-01-PA-9999 ", VehicleType.BUS, "Tata Starbus"
        )
        assert vehicle.registration_number == "Ko-01-PA-9999"
        assert vehicle.vehicle_type == VehicleType.BUS
        assert vehicle.user_id == owner.id
        assert crud.existsByRegistrationNumber(session, "Ko-01-PA-9999")

    def test_duplicate_registration_number(self, session, car, otherOwner):
        with pytest.raises(exceptions.DuplicateRegistrationNumber):
            crud.createVehicle(session, otherOwner.id, car.registration_number, VehicleType.CAR)

    def test_storage_is_the_final_authority_on_registration(
        self, session, car, otherOwner, monkeypatch
    ):
        monkeypatch.setattr(crud, "existsByRegistrationNumber", lambda s, r: False)
        with pytest.raises(exceptions.DuplicateRegistrationNumber):
            crud.createVehicle(session, otherOwner.id, car.registration_number, VehicleType.CAR)
        assert session.query(Vehicle).count() == 1

    def test_unknown_owner(self, session):
        with pytest.raises(exceptions.UnknownValue):
            crud.createVehicle(session, 999, "Ko-09-PA-0000", VehicleType.CAR)

    def test_vehicles_for_user(self, session, owner, car, bike, truck):
        assert [v.id for v in crud.vehiclesForUser(session, owner.id)] == [car.id, bike.id]
        assert crud.vehiclesForUser(session, 999) == []
        assert len(crud.listVehicles(session)) == 3
        assert [v.id for v in crud.listVehicles(session, truck.user_id)] == [truck.id]


class TestRules:
    def test_create_rule(self, session):
        rule = crud.createRule(session, " No Parking ", Decimal("750"), "Parking in a no-parking zone")
        assert rule.rule_name == "No Parking"
        assert rule.fine_amount == Decimal("750.00")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_fine_must_be_positive(self, session, amount):
        with pytest.raises(exceptions.InvalidValue):
            crud.createRule(session, "Bad", amount)

    def test_name_must_not_be_blank(self, session):
        with pytest.raises(exceptions.InvalidValue):
            crud.createRule(session, "   ", Decimal("100"))

    def test_update_rule(self, session, rules):
        rule = crud.updateRule(session, rules["speed"].id, rule_name="Speeding", fine_amount=Decimal("1200"))
        assert rule.rule_name == "Speeding"
        assert rule.fine_amount == Decimal("1200.00")
        assert rule.description is None

    def test_update_unknown_rule(self, session):
        with pytest.raises(exceptions.InvalidIdentifier):
            crud.updateRuleFine(session, 999, Decimal("10"))

    def test_list_rules(self, session, rules):
        assert [r.rule_name for r in crud.listRules(session)] == [
            "Over Speeding",
            "No Helmet",
            "Drunk Driving",
        ]

    def test_unreferenced_rule_can_be_deleted(self, session, rules):
        assert crud.deleteRule(session, rules["helmet"].id) is True
        assert crud.getRule(session, rules["helmet"].id) is None
        assert crud.deleteRule(session, 999) is False

    def test_referenced_rule_cannot_be_deleted(self, session, rules, car):
        crud.createViolation(session, car.id, rules["speed"].id)
        with pytest.raises(exceptions.DataInUse):
            crud.deleteRule(session, rules["speed"].id)
        assert session.query(TrafficRule).count() == 3


class TestViolations:
    def test_create_violation_defaults(self, session, rules, car):
        before = datetime.now(timezone.utc).replace(tzinfo=None)
        violation = crud.createViolation(session, car.id, rules["speed"].id, "Ring Road")
        assert violation.status == ViolationStatus.PENDING
        assert violation.location == "Ring Road"
        assert violation.violation_date.replace(tzinfo=None) >= before

    def test_unknown_vehicle_or_rule(self, session, rules, car):
        with pytest.raises(exceptions.UnknownValue):
            crud.createViolation(session, 999, rules["speed"].id)
        with pytest.raises(exceptions.UnknownValue):
            crud.createViolation(session, car.id, 999)
        assert session.query(Violation).count() == 0

    def test_mark_paid(self, session, rules, car):
        violation = crud.createViolation(session, car.id, rules["speed"].id)
        assert crud.markPaid(session, violation.id).status == ViolationStatus.PAID

    def test_mark_paid_twice_is_a_no_op(self, session, rules, car):
        violation = crud.createViolation(session, car.id, rules["speed"].id)
        crud.markPaid(session, violation.id)
        assert crud.markPaid(session, violation.id).status == ViolationStatus.PAID

    def test_mark_paid_unknown_id(self, session):
        with pytest.raises(exceptions.InvalidIdentifier):
            crud.markPaid(session, 999)

    def test_list_filters(self, session, rules, car, truck):
        first = crud.createViolation(session, car.id, rules["speed"].id)
        second = crud.createViolation(session, truck.id, rules["drunk"].id)
        crud.markPaid(session, second.id)

        assert [v.id for v in crud.listViolations(session, status=ViolationStatus.PAID)] == [second.id]
        assert [v.id for v in crud.listViolations(session, vehicleId=car.id)] == [first.id]
        assert [v.id for v in crud.listViolations(session, ruleId=rules["drunk"].id)] == [second.id]
        assert [v.id for v in crud.listViolations(session, userId=car.user_id)] == [first.id]

    def test_describe_violations(self, session, rules, car, truck):
        first = crud.createViolation(session, car.id, rules["speed"].id, "A")
        second = crud.createViolation(session, truck.id, rules["drunk"].id, "B")

        details = crud.describeViolations(session, [second, first])
        assert [d["id"] for d in details] == [second.id, first.id]
        assert details[0]["registration_number"] == truck.registration_number
        assert details[0]["rule_name"] == "Drunk Driving"
        assert details[0]["fine_amount"] == Decimal("5000.00")
        assert details[1]["user_id"] == car.user_id
        assert crud.describeViolations(session, []) == []

    def test_described_fine_follows_the_rule(self, session, rules, car):
        violation = crud.createViolation(session, car.id, rules["speed"].id)
        crud.updateRuleFine(session, rules["speed"].id, Decimal("1250.50"))
        [detail] = crud.describeViolations(session, [violation])
        assert detail["fine_amount"] == Decimal("1250.50")


class TestCascadeDelete:
    def test_delete_user_removes_everything_owned(
        self, session, rules, owner, car, bike, truck
    ):
        crud.createViolation(session, car.id, rules["speed"].id)
        crud.createViolation(session, bike.id, rules["helmet"].id)
        kept = crud.createViolation(session, truck.id, rules["drunk"].id)
        session.add(
            AccessToken(
                user_id=owner.id,
                expires_in=60,
                expires_at=datetime.now(timezone.utc),
            )
        )
        session.commit()

        assert crud.deleteUser(session, owner.id) is True

        assert crud.getUser(session, owner.id) is None
        assert session.query(Vehicle).filter(Vehicle.user_id == owner.id).count() == 0
        assert [v.id for v in session.query(Violation).all()] == [kept.id]
        assert session.query(AccessToken).count() == 0
        assert session.query(Vehicle).count() == 1

    def test_delete_unknown_user(self, session):
        assert crud.deleteUser(session, 999) is False

    def test_delete_vehicle_removes_its_violations(self, session, rules, car, bike):
        crud.createViolation(session, car.id, rules["speed"].id)
        kept = crud.createViolation(session, bike.id, rules["helmet"].id)

        assert crud.deleteVehicle(session, car.id) is True
        assert [v.id for v in session.query(Violation).all()] == [kept.id]
        assert crud.deleteVehicle(session, car.id) is False
