"""
Training Need State Machine tests.

Tests cover:
  - Legal transitions and their timestamps
  - MANAGER-sourced needs never reaching MGR_APPROVED
  - Check order: action → reason → scope → transition table
  - allowed_actions hints
"""
from datetime import datetime, timezone

import pytest

from training_tracker.models.employee import Employee, Role
from training_tracker.models.workflow import NeedStatus, SubmissionSource, TrainingNeed
from training_tracker.services.need_state_machine import NEED_TRANSITIONS, allowed_actions, transition
from training_tracker.services.workflow_errors import ErrorKind

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)

HR = Employee(id=1, role=Role.HR_ADMIN.value)
MANAGER = Employee(id=2, role=Role.MANAGER.value)
REPORT = Employee(id=3, role=Role.EMPLOYEE.value, manager_id=2)
OTHER_MANAGER = Employee(id=4, role=Role.MANAGER.value)


def _need(status=NeedStatus.SUBMITTED, source=SubmissionSource.EMPLOYEE):
    return TrainingNeed(id=10, status=status.value, submission_source=source.value, for_employee_id=REPORT.id)


class TestApprove:
    def test_manager_stage(self):
        update, err = transition(_need(), "approve", MANAGER, REPORT, now=NOW)
        assert err is None
        assert update.status is NeedStatus.MGR_APPROVED
        assert update.manager_approved_by == MANAGER.id
        assert update.manager_approved_at == NOW
        assert update.decided_by is None

    def test_hr_stage_after_manager(self):
        update, err = transition(_need(NeedStatus.MGR_APPROVED), "approve", HR, REPORT, now=NOW)
        assert err is None
        assert update.status is NeedStatus.HR_APPROVED
        assert (update.hr_approved_by, update.decided_by, update.decided_at) == (HR.id, HR.id, NOW)

    def test_hr_may_skip_manager_stage(self):
        update, _ = transition(_need(), "approve", HR, REPORT)
        assert update.status is NeedStatus.HR_APPROVED

    def test_manager_sourced_goes_straight_to_hr_approved(self):
        update, _ = transition(_need(source=SubmissionSource.MANAGER), "approve", HR, REPORT)
        assert update.status is NeedStatus.HR_APPROVED

    def test_no_table_entry_leads_manager_sourced_to_mgr_approved(self):
        for (status, source, _action, _role), target in NEED_TRANSITIONS.items():
            if source is SubmissionSource.MANAGER:
                assert target is not NeedStatus.MGR_APPROVED
                assert status is not NeedStatus.MGR_APPROVED

    @pytest.mark.parametrize("status", [NeedStatus.REJECTED, NeedStatus.HR_APPROVED])
    def test_approve_final_status_is_invalid_transition(self, status):
        _, err = transition(_need(status), "approve", HR, REPORT)
        assert err.kind is ErrorKind.INVALID_TRANSITION
        assert err.details["current_status"] == status.value

    def test_apply_to_mutates_only_stamped_fields(self):
        need = _need()
        update, _ = transition(need, "approve", MANAGER, REPORT, now=NOW)
        assert need.status == NeedStatus.SUBMITTED.value
        update.apply_to(need)
        assert need.status == NeedStatus.MGR_APPROVED.value
        assert need.manager_approved_at == NOW
        assert need.hr_approved_by is None


class TestReject:
    def test_reject_records_reason(self):
        update, err = transition(_need(), "reject", HR, REPORT, "  insufficient budget ", now=NOW)
        assert err is None
        assert update.status is NeedStatus.REJECTED
        assert update.status_reason == "insufficient budget"
        assert update.decided_by == HR.id

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_blank_reason_is_validation_error(self, reason):
        _, err = transition(_need(), "reject", HR, REPORT, reason)
        assert err.kind is ErrorKind.VALIDATION_ERROR

    @pytest.mark.parametrize("reason", [5, ["late"], {"text": "no"}])
    def test_non_string_reason_is_validation_error(self, reason):
        _, err = transition(_need(), "reject", HR, REPORT, reason)
        assert err.kind is ErrorKind.VALIDATION_ERROR
        assert err.details == {"field": "reason"}

    def test_reason_checked_before_scope(self):
        _, err = transition(_need(), "reject", OTHER_MANAGER, REPORT, "")
        assert err.kind is ErrorKind.VALIDATION_ERROR

    def test_second_rejection_is_invalid_transition(self):
        _, err = transition(_need(NeedStatus.REJECTED), "reject", HR, REPORT, "again")
        assert err.kind is ErrorKind.INVALID_TRANSITION

    def test_manager_cannot_reject_after_own_approval(self):
        _, err = transition(_need(NeedStatus.MGR_APPROVED), "reject", MANAGER, REPORT, "changed mind")
        assert err.kind is ErrorKind.INVALID_TRANSITION


class TestRefusals:
    def test_unknown_action(self):
        _, err = transition(_need(), "escalate", HR, REPORT)
        assert err.kind is ErrorKind.VALIDATION_ERROR

    @pytest.mark.parametrize("status", list(NeedStatus))
    def test_foreign_manager_forbidden_regardless_of_status(self, status):
        _, err = transition(_need(status), "approve", OTHER_MANAGER, REPORT)
        assert err.kind is ErrorKind.FORBIDDEN

    def test_manager_approving_own_submission_forbidden(self):
        _, err = transition(_need(source=SubmissionSource.MANAGER), "approve", MANAGER, REPORT)
        assert err.kind is ErrorKind.FORBIDDEN

    def test_employee_forbidden(self):
        _, err = transition(_need(), "approve", REPORT, REPORT)
        assert err.kind is ErrorKind.FORBIDDEN


class TestAllowedActions:
    def test_manager_on_report_need(self):
        assert allowed_actions(_need(), MANAGER, REPORT) == ["approve", "reject"]

    def test_manager_on_manager_sourced_need(self):
        assert allowed_actions(_need(source=SubmissionSource.MANAGER), MANAGER, REPORT) == ["reject"]

    @pytest.mark.parametrize("status", [NeedStatus.HR_APPROVED, NeedStatus.REJECTED, NeedStatus.PLANNED])
    def test_nothing_on_final_status(self, status):
        assert allowed_actions(_need(status), HR, REPORT) == []
        assert allowed_actions(_need(status), MANAGER, REPORT) == []
