"""Correction windows for past work periods."""

from datetime import datetime

import pytest

from workrule.config import get_settings
from workrule.errors import ValidationError
from workrule.services import CHANGE_POLICY, ChangePolicyService
from workrule.services.change_policy import calculate_days_back


PERIOD_END = datetime(2026, 3, 1, 17, 0)


@pytest.fixture
def windowed(organization, make_change_policy, assign):
    policy = make_change_policy(self_service_days=2, approval_days=5)
    assign(CHANGE_POLICY, policy.change_policy_id, "organization", organization.organization_id)
    return policy


class TestDaysBack:

    def test_counts_calendar_days(self):
        assert calculate_days_back(PERIOD_END, datetime(2026, 3, 1, 23, 59), "UTC") == 0
        assert calculate_days_back(PERIOD_END, datetime(2026, 3, 2, 0, 1), "UTC") == 1

    def test_uses_the_callers_time_zone(self):
        # 23:30 UTC is already the next day in Berlin
        end = datetime(2026, 3, 1, 23, 30)
        now = datetime(2026, 3, 2, 10, 0)

        assert calculate_days_back(end, now, "UTC") == 1
        assert calculate_days_back(end, now, "Europe/Berlin") == 0

    def test_unknown_zone(self):
        with pytest.raises(ValidationError):
            calculate_days_back(PERIOD_END, PERIOD_END, "Mars/Olympus")


class TestEditCapability:

    @pytest.mark.parametrize("now, result, reason, days_back", [
        (datetime(2026, 3, 1, 18, 0), "direct", "within_self_service", 0),
        (datetime(2026, 3, 3, 8, 0), "direct", "within_self_service", 2),
        (datetime(2026, 3, 4, 8, 0), "approval_required", "within_approval_window", 3),
        (datetime(2026, 3, 8, 8, 0), "approval_required", "within_approval_window", 7),
        (datetime(2026, 3, 9, 8, 0), "forbidden", "beyond_approval_window", 8),
    ])
    def test_window_boundaries(self, db, employee, windowed, now, result, reason, days_back):
        capability = ChangePolicyService(db).get_edit_capability(
            employee.employee_id, PERIOD_END, "UTC", now=now
        )

        assert capability.result == result
        assert capability.reason == reason
        assert capability.days_back == days_back
        assert capability.policy_id == windowed.change_policy_id
        assert capability.self_service_days == 2
        assert capability.approval_days == 5

    def test_no_policy_is_direct(self, db, employee):
        capability = ChangePolicyService(db).get_edit_capability(
            employee.employee_id, PERIOD_END, "UTC", now=datetime(2026, 6, 1)
        )
        assert (capability.result, capability.reason) == ("direct", "no_policy")
        assert capability.policy_id is None

    def test_trust_mode(self, db, organization, employee, make_change_policy, assign):
        policy = make_change_policy(no_approval_required=True)
        assign(CHANGE_POLICY, policy.change_policy_id, "organization", organization.organization_id)

        capability = ChangePolicyService(db).get_edit_capability(
            employee.employee_id, PERIOD_END, "UTC", now=datetime(2027, 1, 1)
        )
        assert (capability.result, capability.reason) == ("direct", "trust_mode")

    def test_zero_day_policy_allows_same_day(self, db, organization, employee, make_change_policy, assign):
        policy = make_change_policy(self_service_days=0, approval_days=0)
        assign(CHANGE_POLICY, policy.change_policy_id, "organization", organization.organization_id)
        service = ChangePolicyService(db)

        same_day = service.get_edit_capability(
            employee.employee_id, PERIOD_END, "UTC", now=datetime(2026, 3, 1, 20, 0)
        )
        next_day = service.get_edit_capability(
            employee.employee_id, PERIOD_END, "UTC", now=datetime(2026, 3, 2, 9, 0)
        )

        assert same_day.result == "direct"
        assert next_day.result == "forbidden"


class TestClockOutApproval:

    def test_no_policy(self, db, employee):
        assert ChangePolicyService(db).check_clock_out_needs_approval(employee.employee_id) is False

    def test_zero_day_policy_needs_approval(self, db, organization, employee, make_change_policy, assign):
        policy = make_change_policy(self_service_days=0, approval_days=3)
        assign(CHANGE_POLICY, policy.change_policy_id, "organization", organization.organization_id)

        assert ChangePolicyService(db).check_clock_out_needs_approval(employee.employee_id) is True

    def test_zero_day_behavior_can_be_switched_off(
        self, db, organization, employee, make_change_policy, assign, monkeypatch
    ):
        policy = make_change_policy(self_service_days=0)
        assign(CHANGE_POLICY, policy.change_policy_id, "organization", organization.organization_id)
        monkeypatch.setattr(get_settings(), "zero_day_clock_out_requires_approval", False)

        assert ChangePolicyService(db).check_clock_out_needs_approval(employee.employee_id) is False

    def test_self_service_days_do_not_need_approval(self, db, employee, windowed):
        assert ChangePolicyService(db).check_clock_out_needs_approval(employee.employee_id) is False

    def test_trust_mode_never_needs_approval(self, db, organization, employee, make_change_policy, assign):
        policy = make_change_policy(self_service_days=0, no_approval_required=True)
        assign(CHANGE_POLICY, policy.change_policy_id, "organization", organization.organization_id)

        assert ChangePolicyService(db).check_clock_out_needs_approval(employee.employee_id) is False
