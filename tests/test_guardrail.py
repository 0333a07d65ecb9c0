"""Rest-period admission, overtime statistics, alerts and compliance status."""

import logging
from datetime import date, datetime, timedelta

import pytest

from workrule.models import ComplianceException, WorkPolicyViolation
from workrule.services import WORK_POLICY, ComplianceGuardrailService, ExceptionWorkflowService
from workrule.services.guardrail import alert_severity, percent_of


LAST_CLOCK_OUT = datetime(2026, 3, 4, 22, 0)
MORNING = datetime(2026, 3, 5, 6, 0)  # 8h after clock-out


@pytest.fixture
def rest_policy(organization, make_work_policy, assign):
    def _make(enforcement):
        policy = make_work_policy(min_rest_period_minutes=660, rest_period_enforcement=enforcement)
        assign(WORK_POLICY, policy.policy_id, "organization", organization.organization_id)
        return policy

    return _make


@pytest.fixture
def worked_yesterday(employee, make_work_period):
    return make_work_period(employee, datetime(2026, 3, 4, 14, 0), LAST_CLOCK_OUT)


def _approved_exception(db, employee, admin, exception_type="rest_period", at=LAST_CLOCK_OUT):
    workflow = ExceptionWorkflowService(db)
    exception = workflow.request_exception(employee.employee_id, exception_type, "Shift swap", now=at)
    return workflow.approve_exception(exception.exception_id, admin.employee_id)


class TestPercentages:

    @pytest.mark.parametrize("value, limit, expected", [
        (430, 480, 90),
        (1, 200, 1),    # 0.5 rounds up
        (199, 200, 100),  # 99.5 rounds up
        (480, 480, 100),
        (0, 480, 0),
    ])
    def test_percent_of(self, value, limit, expected):
        assert percent_of(value, limit) == expected

    @pytest.mark.parametrize("percent, expected", [
        (100, "violation"),
        (120, "violation"),
        (95, "critical"),
        (99, "critical"),
        (80, "warning"),
        (79, "info"),
    ])
    def test_severity(self, percent, expected):
        assert alert_severity(percent, 80) == expected


class TestRestPeriod:

    def test_block_denies_and_logs(self, db, employee, rest_policy, worked_yesterday, caplog):
        policy = rest_policy("block")
        caplog.set_level(logging.INFO, logger="workrule")

        decision = ComplianceGuardrailService(db).check_rest_period(employee.employee_id, "UTC", now=MORNING)

        assert decision.can_clock_in is False
        assert decision.enforcement == "block"
        assert decision.violation.rest_period_minutes == 480
        assert decision.violation.shortfall_minutes == 180
        assert decision.minutes_until_allowed == 180
        assert decision.next_allowed_clock_in == datetime(2026, 3, 5, 9, 0)
        assert decision.exception_id is None

        violation = db.get(WorkPolicyViolation, decision.violation_id)
        assert violation.violation_type == "rest_period"
        assert violation.policy_id == policy.policy_id
        assert violation.get_details()["enforcement"] == "block"
        assert any(r.message == "rest_period_checked" for r in caplog.records)

    def test_warn_allows_but_logs(self, db, employee, rest_policy, worked_yesterday):
        rest_policy("warn")

        decision = ComplianceGuardrailService(db).check_rest_period(employee.employee_id, "UTC", now=MORNING)

        assert decision.can_clock_in is True
        assert decision.violation is not None
        assert decision.violation_id is not None

    def test_none_allows_without_logging(self, db, employee, rest_policy, worked_yesterday):
        rest_policy("none")

        decision = ComplianceGuardrailService(db).check_rest_period(employee.employee_id, "UTC", now=MORNING)

        assert decision.can_clock_in is True
        assert decision.violation_id is None
        assert db.query(WorkPolicyViolation).count() == 0

    def test_missing_enforcement_uses_default(self, db, employee, rest_policy, worked_yesterday):
        rest_policy(None)

        decision = ComplianceGuardrailService(db).check_rest_period(employee.employee_id, "UTC", now=MORNING)

        assert decision.enforcement == "warn"
        assert decision.can_clock_in is True

    def test_exception_unlocks_block_without_consuming(
        self, db, employee, admin, rest_policy, worked_yesterday
    ):
        rest_policy("block")
        exception = _approved_exception(db, employee, admin)

        decision = ComplianceGuardrailService(db).check_rest_period(employee.employee_id, "UTC", now=MORNING)

        assert decision.can_clock_in is True
        assert decision.has_valid_exception is True
        assert decision.exception_id == exception.exception_id
        assert db.get(ComplianceException, exception.exception_id).status == "approved"
        violation = db.get(WorkPolicyViolation, decision.violation_id)
        assert violation.get_details()["exception_id"] == exception.exception_id

    def test_repeated_checks_log_one_violation(self, db, employee, rest_policy, worked_yesterday):
        rest_policy("warn")
        service = ComplianceGuardrailService(db)

        decisions = [
            service.check_rest_period(employee.employee_id, "UTC", now=MORNING + timedelta(minutes=i))
            for i in range(3)
        ]

        assert db.query(WorkPolicyViolation).count() == 1
        assert len({d.violation_id for d in decisions}) == 1
        status = service.get_compliance_status(employee.employee_id, "UTC", now=MORNING)
        assert status.unacknowledged_violations == 1

    def test_new_rest_gap_logs_again(self, db, employee, rest_policy, worked_yesterday, make_work_period):
        rest_policy("warn")
        service = ComplianceGuardrailService(db)
        first = service.check_rest_period(employee.employee_id, "UTC", now=MORNING)

        make_work_period(employee, datetime(2026, 3, 5, 9, 0), datetime(2026, 3, 5, 17, 0))
        second = service.check_rest_period(employee.employee_id, "UTC", now=datetime(2026, 3, 5, 20, 0))

        assert second.violation_id != first.violation_id
        assert db.query(WorkPolicyViolation).count() == 2

    def test_violation_date_follows_time_zone(self, db, employee, rest_policy, make_work_period):
        rest_policy("warn")
        make_work_period(employee, datetime(2026, 3, 5, 14, 0), datetime(2026, 3, 5, 22, 0))

        # 23:30 UTC on the 5th is already the 6th in Berlin
        decision = ComplianceGuardrailService(db).check_rest_period(
            employee.employee_id, "Europe/Berlin", now=datetime(2026, 3, 5, 23, 30)
        )

        violation = db.get(WorkPolicyViolation, decision.violation_id)
        assert violation.violation_date == date(2026, 3, 6)

    def test_lapsed_exception_does_not_unlock_block(
        self, db, employee, admin, rest_policy, worked_yesterday
    ):
        rest_policy("block")
        # Window ends at 02:00, four hours before the attempted clock-in
        exception = _approved_exception(db, employee, admin, at=LAST_CLOCK_OUT - timedelta(hours=20))

        decision = ComplianceGuardrailService(db).check_rest_period(employee.employee_id, "UTC", now=MORNING)

        assert db.get(ComplianceException, exception.exception_id).status == "approved"
        assert decision.can_clock_in is False
        assert decision.has_valid_exception is False
        assert decision.exception_id is None

    def test_overtime_exception_does_not_cover_rest(
        self, db, employee, admin, rest_policy, worked_yesterday
    ):
        rest_policy("block")
        _approved_exception(db, employee, admin, exception_type="overtime_daily")

        decision = ComplianceGuardrailService(db).check_rest_period(employee.employee_id, "UTC", now=MORNING)
        assert decision.can_clock_in is False

    def test_enough_rest(self, db, employee, rest_policy, worked_yesterday):
        rest_policy("block")

        decision = ComplianceGuardrailService(db).check_rest_period(
            employee.employee_id, "UTC", now=LAST_CLOCK_OUT + timedelta(minutes=660)
        )

        assert decision.can_clock_in is True
        assert decision.violation is None
        assert db.query(WorkPolicyViolation).count() == 0

    def test_first_ever_clock_in(self, db, employee, rest_policy):
        rest_policy("block")
        decision = ComplianceGuardrailService(db).check_rest_period(employee.employee_id, "UTC", now=MORNING)
        assert decision.can_clock_in is True

    def test_no_policy(self, db, employee, worked_yesterday):
        decision = ComplianceGuardrailService(db).check_rest_period(employee.employee_id, "UTC", now=MORNING)
        assert decision.can_clock_in is True
        assert decision.enforcement == "none"

    def test_open_session_is_ignored(self, db, employee, rest_policy, worked_yesterday, make_work_period):
        rest_policy("block")
        make_work_period(employee, datetime(2026, 3, 5, 5, 0), None)

        last = ComplianceGuardrailService(db).get_last_clock_out(employee.employee_id, MORNING)
        assert last == LAST_CLOCK_OUT


class TestOvertimeAndAlerts:

    NOW = datetime(2026, 3, 4, 15, 0)  # Wednesday

    @pytest.fixture
    def regulated(self, organization, make_work_policy, assign):
        policy = make_work_policy(
            max_daily_minutes=600,
            max_uninterrupted_minutes=100,
            overtime_daily_threshold_minutes=480,
            overtime_weekly_threshold_minutes=2400,
            overtime_monthly_threshold_minutes=0,
            alert_threshold_percent=80,
        )
        assign(WORK_POLICY, policy.policy_id, "organization", organization.organization_id)
        return policy

    @pytest.fixture
    def worked_today(self, employee, make_work_period):
        make_work_period(employee, datetime(2026, 3, 2, 8, 0), datetime(2026, 3, 2, 16, 0))  # Monday, 480
        return make_work_period(employee, datetime(2026, 3, 4, 6, 0), datetime(2026, 3, 4, 12, 40))  # 400

    def test_overtime_stats(self, db, employee, regulated, worked_today, make_work_period):
        make_work_period(employee, datetime(2026, 2, 27, 8, 0), datetime(2026, 2, 27, 9, 0))  # last month

        stats = ComplianceGuardrailService(db).get_overtime_stats(employee.employee_id, "UTC", now=self.NOW)

        assert stats.daily.worked_minutes == 400
        assert stats.daily.overtime_minutes == 0
        assert stats.daily.percent_of_threshold == 83
        assert stats.weekly.worked_minutes == 880
        assert stats.weekly.period_start == datetime(2026, 3, 2)
        assert stats.monthly.worked_minutes == 880
        # A zero threshold counts as no threshold
        assert stats.monthly.threshold_minutes is None
        assert stats.monthly.percent_of_threshold is None

    def test_daily_overtime_minutes(self, db, employee, regulated, worked_today, make_work_period):
        make_work_period(employee, datetime(2026, 3, 4, 13, 0), datetime(2026, 3, 4, 14, 50))  # +110

        stats = ComplianceGuardrailService(db).get_overtime_stats(employee.employee_id, "UTC", now=self.NOW)

        assert stats.daily.worked_minutes == 510
        assert stats.daily.overtime_minutes == 30

    def test_windows_follow_local_day(self, db, employee, regulated, make_work_period):
        # 22:00 UTC on the 4th is 23:00 on the 4th in Berlin; "now" is already the 5th there
        make_work_period(employee, datetime(2026, 3, 4, 22, 0), datetime(2026, 3, 4, 22, 50))
        now = datetime(2026, 3, 4, 23, 30)
        service = ComplianceGuardrailService(db)

        utc = service.get_overtime_stats(employee.employee_id, "UTC", now=now)
        berlin = service.get_overtime_stats(employee.employee_id, "Europe/Berlin", now=now)

        assert utc.daily.worked_minutes == 50
        assert berlin.daily.worked_minutes == 0
        assert berlin.daily.period_start == datetime(2026, 3, 4, 23, 0)

    def test_alerts_sorted_by_severity(self, db, employee, regulated, worked_today):
        alerts = ComplianceGuardrailService(db).get_proactive_alerts(
            employee.employee_id, current_session_minutes=90, time_zone="UTC", now=self.NOW
        )

        assert [(a.alert_type, a.severity) for a in alerts] == [
            ("overtime_daily", "violation"),
            ("daily_hours", "warning"),
            ("uninterrupted_work", "warning"),
        ]
        overtime, daily, continuous = alerts
        assert overtime.current_minutes == 490
        assert overtime.percent_of_limit == 102
        assert overtime.minutes_remaining == 0
        assert overtime.can_request_exception is True
        assert overtime.message == "Daily overtime: 8h 10m of 8h threshold"
        assert daily.within_lead_time is False
        assert daily.can_request_exception is False
        assert continuous.minutes_remaining == 10
        assert continuous.within_lead_time is True

    def test_below_threshold_no_alerts(self, db, employee, regulated, worked_today):
        alerts = ComplianceGuardrailService(db).get_proactive_alerts(
            employee.employee_id, current_session_minutes=0, time_zone="UTC", now=self.NOW
        )
        assert [a.alert_type for a in alerts] == ["overtime_daily"]
        assert alerts[0].severity == "warning"

    def test_no_regulation_no_alerts(self, db, employee, worked_today):
        assert ComplianceGuardrailService(db).get_proactive_alerts(
            employee.employee_id, 600, "UTC", now=self.NOW
        ) == []

    def test_compliance_status(self, db, organization, employee, admin, regulated, worked_today):
        ExceptionWorkflowService(db).request_exception(
            employee.employee_id, "overtime_daily", "Stocktake", now=self.NOW
        )
        service = ComplianceGuardrailService(db)
        service.work_policies.log_violation(
            employee.employee_id, organization.organization_id, "max_daily", {"actual": 620}
        )
        acknowledged = service.work_policies.log_violation(
            employee.employee_id, organization.organization_id, "max_daily", {"actual": 640}
        )
        service.work_policies.acknowledge_violation(acknowledged.violation_id, admin.employee_id)

        status = service.get_compliance_status(
            employee.employee_id, "UTC", current_session_minutes=90, now=self.NOW
        )

        assert status.is_compliant is False
        assert status.policy_id == regulated.policy_id
        assert status.alerts[0].severity == "violation"
        assert status.stats.daily.worked_minutes == 400
        assert status.pending_exceptions == 1
        assert status.unacknowledged_violations == 1

    def test_compliance_status_without_policy(self, db, employee):
        status = ComplianceGuardrailService(db).get_compliance_status(employee.employee_id, "UTC")

        assert status.is_compliant is True
        assert status.policy_id is None
        assert status.alerts == []

    def test_break_requirements_passthrough(self, db):
        requirement = ComplianceGuardrailService(db).calculate_break_requirements(None, 600)
        assert requirement.required is False
