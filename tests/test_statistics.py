"""
Tests for the violation and fine aggregates and the dashboards built on them.
"""

from datetime import datetime, timezone
from decimal import Decimal

from trafficfines import seed
from trafficfines.src import crud, statistics
from trafficfines.src.enums import ViolationStatus


def at(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestEmptyScopes:
    def test_identity_values(self, session):
        assert statistics.totalViolationCount(session) == 0
        assert statistics.countByStatus(session, ViolationStatus.PENDING) == 0
        assert statistics.totalFineAmount(session) == Decimal("0.00")
        assert statistics.totalPaidAmount(session) == Decimal("0.00")
        assert statistics.totalPendingAmount(session) == Decimal("0.00")
        assert statistics.recentViolations(session) == []

    def test_unknown_user(self, session, rules, car):
        crud.createViolation(session, car.id, rules["speed"].id)
        assert statistics.totalFineAmount(session, 999) == Decimal("0.00")
        assert statistics.violationsForUser(session, 999) == []

    def test_user_without_violations(self, session, owner):
        dashboard = statistics.userDashboard(session, owner.id)
        assert dashboard["total_vehicles"] == 0
        assert dashboard["total_violations"] == 0
        assert dashboard["total_amount"] == Decimal("0.00")
        assert dashboard["violations"] == []


class TestTotals:
    def test_sums_follow_the_rule_fine(self, session, rules, car, bike, truck):
        crud.createViolation(session, car.id, rules["speed"].id)
        crud.createViolation(session, car.id, rules["speed"].id)
        paid = crud.createViolation(session, bike.id, rules["helmet"].id)
        crud.createViolation(session, truck.id, rules["drunk"].id)
        crud.markPaid(session, paid.id)

        assert statistics.totalViolationCount(session) == 4
        assert statistics.countByStatus(session, ViolationStatus.PAID) == 1
        assert statistics.countByStatus(session, ViolationStatus.PENDING) == 3
        assert statistics.totalFineAmount(session) == Decimal("7500.00")
        assert statistics.totalPaidAmount(session) == Decimal("500.00")
        assert statistics.totalPendingAmount(session) == Decimal("7000.00")

    def test_user_scope(self, session, rules, owner, otherOwner, car, bike, truck):
        crud.createViolation(session, car.id, rules["speed"].id)
        crud.markPaid(session, crud.createViolation(session, bike.id, rules["helmet"].id).id)
        crud.createViolation(session, truck.id, rules["drunk"].id)

        assert statistics.totalFineAmount(session, owner.id) == Decimal("1500.00")
        assert statistics.totalPaidAmount(session, owner.id) == Decimal("500.00")
        assert statistics.totalPendingAmount(session, owner.id) == Decimal("1000.00")
        assert statistics.totalFineAmount(session, otherOwner.id) == Decimal("5000.00")

    def test_counts_partition_the_total(self, session, rules, car, bike):
        for rule in rules.values():
            crud.createViolation(session, car.id, rule.id)
        crud.markPaid(session, crud.createViolation(session, bike.id, rules["helmet"].id).id)

        total = statistics.totalViolationCount(session)
        assert total == statistics.countByStatus(
            session, ViolationStatus.PENDING
        ) + statistics.countByStatus(session, ViolationStatus.PAID)
        assert statistics.totalFineAmount(session) == statistics.totalPaidAmount(
            session
        ) + statistics.totalPendingAmount(session)

    def test_fine_update_is_retroactive(self, session, rules, car):
        crud.createViolation(session, car.id, rules["speed"].id)
        crud.markPaid(session, crud.createViolation(session, car.id, rules["speed"].id).id)

        crud.updateRuleFine(session, rules["speed"].id, Decimal("1500"))

        assert statistics.totalFineAmount(session) == Decimal("3000.00")
        assert statistics.totalPaidAmount(session) == Decimal("1500.00")

    def test_amounts_keep_cents(self, session, car):
        rule = crud.createRule(session, "Tinted Glass", Decimal("249.99"))
        crud.createViolation(session, car.id, rule.id)
        crud.createViolation(session, car.id, rule.id)
        assert statistics.totalFineAmount(session) == Decimal("499.98")


class TestOrdering:
    def test_recent_newest_first_ties_in_insertion_order(self, session, rules, car):
        old = crud.createViolation(session, car.id, rules["speed"].id, violation_date=at(2025, 1, 1))
        tieA = crud.createViolation(session, car.id, rules["speed"].id, violation_date=at(2025, 3, 1))
        tieB = crud.createViolation(session, car.id, rules["helmet"].id, violation_date=at(2025, 3, 1))
        new = crud.createViolation(session, car.id, rules["drunk"].id, violation_date=at(2025, 5, 1))

        recent = statistics.recentViolations(session)
        assert [v.id for v in recent] == [new.id, tieA.id, tieB.id, old.id]
        assert [v.id for v in statistics.recentViolations(session, 2)] == [new.id, tieA.id]

    def test_recent_is_capped(self, session, rules, car):
        for day in range(1, 8):
            crud.createViolation(session, car.id, rules["speed"].id, violation_date=at(2025, 1, day))
        assert len(statistics.recentViolations(session)) == 5

    def test_violations_for_user(self, session, rules, owner, car, bike, truck):
        first = crud.createViolation(session, car.id, rules["speed"].id, violation_date=at(2025, 2, 1))
        second = crud.createViolation(session, bike.id, rules["helmet"].id, violation_date=at(2025, 4, 1))
        crud.createViolation(session, truck.id, rules["drunk"].id, violation_date=at(2025, 6, 1))

        violations = statistics.violationsForUser(session, owner.id)
        assert [v.id for v in violations] == [second.id, first.id]


class TestDashboards:
    def test_admin_dashboard(self, session, admin, rules, owner, otherOwner, car, truck):
        earlier = crud.createViolation(session, car.id, rules["speed"].id, violation_date=at(2025, 2, 1))
        latest = crud.createViolation(session, truck.id, rules["drunk"].id, violation_date=at(2025, 3, 1))
        crud.markPaid(session, latest.id)

        dashboard = statistics.adminDashboard(session)
        assert dashboard["total_violations"] == 2
        assert dashboard["pending_violations"] == 1
        assert dashboard["paid_violations"] == 1
        assert dashboard["total_amount"] == Decimal("6000.00")
        assert dashboard["collected_amount"] == Decimal("5000.00")
        assert dashboard["pending_amount"] == Decimal("1000.00")
        # Administrators are not counted
        assert dashboard["total_users"] == 2
        assert dashboard["total_vehicles"] == 2
        assert [v["id"] for v in dashboard["recent_violations"]] == [latest.id, earlier.id]
        assert dashboard["recent_violations"][0]["rule_name"] == "Drunk Driving"

    def test_user_dashboard(self, session, rules, owner, car, bike, truck):
        crud.createViolation(session, car.id, rules["speed"].id)
        crud.createViolation(session, truck.id, rules["drunk"].id)

        dashboard = statistics.userDashboard(session, owner.id)
        assert dashboard["total_vehicles"] == 2
        assert dashboard["total_violations"] == 1
        assert dashboard["total_amount"] == Decimal("1000.00")
        assert dashboard["paid_amount"] == Decimal("0.00")
        assert dashboard["pending_amount"] == Decimal("1000.00")
        assert dashboard["violations"][0]["registration_number"] == car.registration_number


class TestSeedData:
    def test_seeded_figures(self, session):
        seed.initDB()
        seed.testDB()

        dashboard = statistics.adminDashboard(session)
        assert dashboard["total_violations"] == 12
        assert dashboard["pending_violations"] == 8
        assert dashboard["paid_violations"] == 4
        assert dashboard["total_amount"] == Decimal("17500.00")
        assert dashboard["collected_amount"] == Decimal("3500.00")
        assert dashboard["pending_amount"] == Decimal("14000.00")
        assert dashboard["total_users"] == 5
        assert dashboard["total_vehicles"] == 8
        assert [v["location"] for v in dashboard["recent_violations"]] == [
            "Ganesh Chowk, Biratnagar",
            "Tinpaini, Biratnagar",
            "Mahendra Highway, Biratnagar",
            "Rani Chowk, Biratnagar",
            "Pokhariya Chowk, Biratnagar",
        ]

    def test_seeded_owner_figures(self, session):
        seed.initDB()
        seed.testDB()

        shrestha = crud.getUserByEmail(session, "shresthabidhika618@gmail.com")
        assert statistics.totalFineAmount(session, shrestha.id) == Decimal("3000.00")
        assert statistics.totalPaidAmount(session, shrestha.id) == Decimal("500.00")
        assert statistics.totalPendingAmount(session, shrestha.id) == Decimal("2500.00")

        sujan = crud.getUserByEmail(session, "sujan@gmail.com")
        assert statistics.totalFineAmount(session, sujan.id) == Decimal("7250.00")
        assert statistics.totalPaidAmount(session, sujan.id) == Decimal("1500.00")

    def test_seeding_is_idempotent(self, session):
        seed.initDB()
        seed.testDB()
        seed.initDB()
        seed.testDB()
        assert statistics.totalViolationCount(session) == 12
