"""
Nomination Seat Allocator tests.

Tests cover:
  - Occupancy = enrollments + PENDING/APPROVED nominations
  - Capacity checks (capped and uncapped sessions)
  - HR decisions on PENDING nominations, decided once
"""
from datetime import datetime, timezone

import pytest

from training_tracker.models.catalog import TrainingSession
from training_tracker.models.employee import Employee, Role
from training_tracker.models.workflow import Nomination, NominationStatus
from training_tracker.services.seat_allocator import decide, occupancy, try_reserve
from training_tracker.services.workflow_errors import ErrorKind

HR = Employee(id=1, role=Role.HR_ADMIN.value)
MANAGER = Employee(id=2, role=Role.MANAGER.value)


def _nom(nom_id, status=NominationStatus.PENDING):
    return Nomination(id=nom_id, session_id=7, employee_id=100 + nom_id, status=status.value)


def _session(max_participants):
    return TrainingSession(id=7, title="Forklift safety", duration_hours=4, max_participants=max_participants)


class TestOccupancy:
    def test_counts_only_seat_holding_nominations(self):
        noms = [
            _nom(1),
            _nom(2, NominationStatus.APPROVED),
            _nom(3, NominationStatus.REJECTED),
            _nom(4, NominationStatus.WAITLIST),
        ]
        assert occupancy(3, noms) == 5

    def test_exclude_id(self):
        assert occupancy(0, [_nom(1), _nom(2)], exclude_id=1) == 1


class TestTryReserve:
    def test_full_from_enrollments(self):
        _, err = try_reserve(_session(2), 2, [])
        assert err.kind is ErrorKind.SEATS_FULL
        assert err.details == {"max_participants": 2, "current_occupancy": 2}
        assert err.message == "Seat is full, please contact HR"

    def test_full_from_enrollment_plus_pending(self):
        _, err = try_reserve(_session(2), 1, [_nom(1)])
        assert err.kind is ErrorKind.SEATS_FULL
        assert err.details["current_occupancy"] == 2

    def test_free_seat(self):
        occupied, err = try_reserve(_session(2), 1, [_nom(1, NominationStatus.REJECTED)])
        assert err is None
        assert occupied == 1

    def test_uncapped(self):
        occupied, err = try_reserve(_session(None), 500, [_nom(1)])
        assert err is None
        assert occupied == 501


class TestDecide:
    @pytest.mark.parametrize("action,status", [
        ("approve", NominationStatus.APPROVED),
        ("waitlist", NominationStatus.WAITLIST),
    ])
    def test_hr_decisions(self, action, status):
        now = datetime(2026, 5, 4, tzinfo=timezone.utc)
        update, err = decide(_nom(1), action, HR, now=now)
        assert err is None
        assert update.status is status
        assert (update.decided_by, update.decided_at) == (HR.id, now)

    def test_reject_requires_reason(self):
        _, err = decide(_nom(1), "reject", HR, " ")
        assert err.kind is ErrorKind.VALIDATION_ERROR
        update, err = decide(_nom(1), "reject", HR, "no budget")
        assert update.status is NominationStatus.REJECTED
        assert update.reason == "no budget"

    @pytest.mark.parametrize("action", ["reject", "approve"])
    def test_non_string_reason_is_validation_error(self, action):
        nom = _nom(1)
        _, err = decide(nom, action, HR, 5)
        assert err.kind is ErrorKind.VALIDATION_ERROR
        assert nom.status == NominationStatus.PENDING.value

    def test_decided_twice_is_invalid_transition(self):
        nom = _nom(1)
        update, _ = decide(nom, "approve", HR)
        update.apply_to(nom)
        _, err = decide(nom, "waitlist", HR)
        assert err.kind is ErrorKind.INVALID_TRANSITION

    def test_manager_forbidden(self):
        _, err = decide(_nom(1), "approve", MANAGER)
        assert err.kind is ErrorKind.FORBIDDEN

    def test_unknown_action(self):
        _, err = decide(_nom(1), "promote", HR)
        assert err.kind is ErrorKind.VALIDATION_ERROR

    def test_approve_does_not_count_itself(self):
        target = _nom(1)
        update, err = decide(target, "approve", HR, session=_session(2), enrollment_count=1,
                             nominations=[target])
        assert err is None
        assert update.status is NominationStatus.APPROVED

    def test_approve_rechecks_capacity(self):
        target = _nom(1)
        _, err = decide(target, "approve", HR, session=_session(2), enrollment_count=2,
                        nominations=[target])
        assert err.kind is ErrorKind.SEATS_FULL

    def test_waitlist_ignores_capacity(self):
        update, err = decide(_nom(1), "waitlist", HR, session=_session(1), enrollment_count=5)
        assert err is None
        assert update.status is NominationStatus.WAITLIST
