"""
Role Authorizer: policy table tests.

Tests cover:
  - Every (role, status, source) combination for training needs
  - Reporting-line scoping for managers
  - HR-only nomination decisions
  - Role/scope always evaluated before status
"""
import pytest

from training_tracker.models.employee import Employee, Role
from training_tracker.models.workflow import (
    NeedStatus,
    Nomination,
    NominationStatus,
    SubmissionSource,
    TrainingNeed,
)
from training_tracker.services.role_authorizer import (
    BAD_STATUS,
    ROLE_OR_SCOPE,
    actor_role,
    can_decide,
    is_manager_of,
)


def _emp(emp_id, role, manager_id=None):
    return Employee(id=emp_id, role=role, manager_id=manager_id)


def _need(status, source=SubmissionSource.EMPLOYEE, for_employee_id=3):
    return TrainingNeed(id=1, status=status.value, submission_source=source.value, for_employee_id=for_employee_id)


HR = _emp(1, Role.HR_ADMIN.value)
MANAGER = _emp(2, Role.MANAGER.value)
REPORT = _emp(3, Role.EMPLOYEE.value, manager_id=2)
OTHER_MANAGER = _emp(4, Role.MANAGER.value)


class TestHelpers:
    def test_actor_role_coerces_string(self):
        assert actor_role(HR) is Role.HR_ADMIN

    def test_actor_role_unknown_is_none(self):
        assert actor_role(_emp(9, "auditor")) is None

    def test_is_manager_of(self):
        assert is_manager_of(MANAGER, REPORT)
        assert not is_manager_of(OTHER_MANAGER, REPORT)
        assert not is_manager_of(MANAGER, None)


class TestNeedPolicy:
    @pytest.mark.parametrize("status", [NeedStatus.SUBMITTED, NeedStatus.MGR_APPROVED])
    @pytest.mark.parametrize("action", ["approve", "reject"])
    def test_hr_may_decide_open_needs(self, status, action):
        assert can_decide(HR, _need(status), action, REPORT).allowed

    @pytest.mark.parametrize("status", [NeedStatus.HR_APPROVED, NeedStatus.REJECTED, NeedStatus.PLANNED])
    def test_hr_blocked_on_final_statuses(self, status):
        decision = can_decide(HR, _need(status), "approve", REPORT)
        assert not decision.allowed
        assert decision.reason == BAD_STATUS

    def test_manager_approves_report_employee_need(self):
        assert can_decide(MANAGER, _need(NeedStatus.SUBMITTED), "approve", REPORT)

    def test_manager_cannot_approve_manager_sourced_need(self):
        need = _need(NeedStatus.SUBMITTED, SubmissionSource.MANAGER)
        decision = can_decide(MANAGER, need, "approve", REPORT)
        assert decision.reason == ROLE_OR_SCOPE

    def test_manager_may_reject_manager_sourced_need(self):
        need = _need(NeedStatus.SUBMITTED, SubmissionSource.MANAGER)
        assert can_decide(MANAGER, need, "reject", REPORT)

    def test_manager_second_stage_is_bad_status(self):
        decision = can_decide(MANAGER, _need(NeedStatus.MGR_APPROVED), "approve", REPORT)
        assert decision.reason == BAD_STATUS

    @pytest.mark.parametrize("status", list(NeedStatus))
    def test_foreign_manager_refused_on_scope_whatever_status(self, status):
        decision = can_decide(OTHER_MANAGER, _need(status), "approve", REPORT)
        assert decision.reason == ROLE_OR_SCOPE

    def test_employee_never_decides(self):
        decision = can_decide(REPORT, _need(NeedStatus.SUBMITTED), "approve", REPORT)
        assert decision.reason == ROLE_OR_SCOPE


class TestNominationPolicy:
    def _nom(self, status):
        return Nomination(id=5, session_id=1, employee_id=3, status=status.value)

    @pytest.mark.parametrize("action", ["approve", "reject", "waitlist"])
    def test_hr_decides_pending(self, action):
        assert can_decide(HR, self._nom(NominationStatus.PENDING), action)

    @pytest.mark.parametrize("status", [NominationStatus.APPROVED, NominationStatus.REJECTED,
                                        NominationStatus.WAITLIST])
    def test_decided_nomination_is_bad_status(self, status):
        assert can_decide(HR, self._nom(status), "approve").reason == BAD_STATUS

    @pytest.mark.parametrize("actor", [MANAGER, REPORT])
    def test_non_hr_refused(self, actor):
        assert can_decide(actor, self._nom(NominationStatus.PENDING), "approve").reason == ROLE_OR_SCOPE

    def test_unknown_target_type(self):
        with pytest.raises(TypeError):
            can_decide(HR, object(), "approve")
