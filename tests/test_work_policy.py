"""Work regulation: limit checks, break tiers and the violation log."""

from datetime import date, datetime

import pytest

from workrule.errors import NotFoundError, ValidationError
from workrule.models import AuditLog, BreakRule, BreakRuleOption, WorkPolicyRegulation
from workrule.services import WORK_POLICY, WorkPolicyService, calculate_break_requirements
from workrule.services.work_policy import describe_break_option


NOW = datetime(2026, 3, 4, 12, 0)

BREAK_TIERS = [
    (360, 30, [{"split_count": 1}, {"split_count": 2, "minimum_split_minutes": 15}]),
    (540, 45, [{"split_count": None, "minimum_longest_split_minutes": 15}]),
]


def _regulation(*tiers):
    regulation = WorkPolicyRegulation()
    for threshold, required in tiers:
        regulation.break_rules.append(
            BreakRule(working_minutes_threshold=threshold, required_break_minutes=required)
        )
    return regulation


class TestBreakRequirements:

    def test_largest_exceeded_tier_applies(self):
        regulation = _regulation((360, 30), (540, 45))

        requirement = calculate_break_requirements(regulation, 600)

        assert requirement.required
        assert requirement.working_minutes_threshold == 540
        assert requirement.required_break_minutes == 45

    def test_threshold_must_be_strictly_exceeded(self):
        regulation = _regulation((360, 30), (540, 45))

        assert calculate_break_requirements(regulation, 540).required_break_minutes == 30
        assert calculate_break_requirements(regulation, 360).required is False

    def test_tier_order_does_not_matter(self):
        regulation = _regulation((540, 45), (360, 30))
        assert calculate_break_requirements(regulation, 600).required_break_minutes == 45

    def test_remaining_break_never_negative(self):
        regulation = _regulation((360, 30))

        partial = calculate_break_requirements(regulation, 400, breaks_taken_minutes=10)
        done = calculate_break_requirements(regulation, 400, breaks_taken_minutes=45)

        assert partial.remaining_break_minutes == 20
        assert done.remaining_break_minutes == 0

    def test_no_regulation_means_no_break(self):
        requirement = calculate_break_requirements(None, 900, 0)
        assert requirement.required is False
        assert requirement.options == []

    @pytest.mark.parametrize("option, expected", [
        ({"split_count": 1}, "Take entire break at once"),
        ({"split_count": None}, "Take entire break at once"),
        (
            {"split_count": None, "minimum_longest_split_minutes": 15},
            "Split into any number of breaks, with one lasting at least 15 minutes",
        ),
        (
            {"split_count": 3, "minimum_split_minutes": 10},
            "Split into 3 breaks, each at least 10 minutes",
        ),
        ({"split_count": 2}, "Flexible break options"),
    ])
    def test_option_descriptions(self, option, expected):
        assert describe_break_option(BreakRuleOption(**option)) == expected


class TestCheckCompliance:

    @pytest.fixture
    def regulated(self, organization, make_work_policy, assign):
        policy = make_work_policy(
            max_daily_minutes=600,
            max_weekly_minutes=2400,
            max_uninterrupted_minutes=360,
            break_rules=BREAK_TIERS,
        )
        assign(WORK_POLICY, policy.policy_id, "organization", organization.organization_id)
        return policy

    def test_reports_every_issue(self, db, employee, regulated):
        check = WorkPolicyService(db).check_compliance(
            employee.employee_id,
            current_session_minutes=400,
            total_daily_minutes=620,
            total_weekly_minutes=2000,
            breaks_taken_minutes=15,
            at=NOW,
        )

        assert check.is_compliant is False
        assert check.policy_id == regulated.policy_id
        by_type = {issue.violation_type: issue for issue in check.issues}
        assert set(by_type) == {"max_daily", "max_uninterrupted", "break_required"}
        assert by_type["max_daily"].severity == "violation"
        assert by_type["max_uninterrupted"].severity == "warning"
        assert by_type["break_required"].message == "Break required: 30m remaining of 45m total"
        assert len(check.break_requirement.options) == 1

    def test_warnings_alone_stay_compliant(self, db, employee, regulated):
        check = WorkPolicyService(db).check_compliance(
            employee.employee_id,
            current_session_minutes=380,
            total_daily_minutes=380,
            total_weekly_minutes=380,
            at=NOW,
        )

        assert check.is_compliant is True
        assert {issue.violation_type for issue in check.issues} == {"max_uninterrupted", "break_required"}

    def test_weekly_limit(self, db, employee, regulated):
        check = WorkPolicyService(db).check_compliance(
            employee.employee_id, 60, 60, 2460, at=NOW
        )
        assert [issue.violation_type for issue in check.issues] == ["max_weekly"]
        assert check.issues[0].message == "Weekly working time (41h) exceeds limit (40h)"

    def test_no_policy_is_compliant(self, db, employee):
        check = WorkPolicyService(db).check_compliance(employee.employee_id, 900, 900, 9000, at=NOW)
        assert check.is_compliant is True
        assert check.policy_id is None

    def test_disabled_regulation_is_unrestricted(
        self, db, organization, employee, make_work_policy, assign
    ):
        policy = make_work_policy(regulation_enabled=False, max_daily_minutes=60)
        assign(WORK_POLICY, policy.policy_id, "organization", organization.organization_id)

        service = WorkPolicyService(db)
        resolved, regulation = service.get_effective_regulation(employee.employee_id, NOW)
        check = service.check_compliance(employee.employee_id, 900, 900, 900, at=NOW)

        assert resolved.policy_id == policy.policy_id
        assert regulation is None
        assert check.is_compliant is True
        assert check.policy_id == policy.policy_id


class TestViolations:

    def test_log_and_query(self, db, organization, employee, admin):
        service = WorkPolicyService(db)
        service.log_violation(
            employee.employee_id, organization.organization_id, "max_daily",
            {"actual": 620, "limit": 600}, violation_date=date(2026, 3, 2),
        )
        service.log_violation(
            employee.employee_id, organization.organization_id, "break_required",
            {"remaining": 15}, violation_date=date(2026, 3, 3),
        )
        service.log_violation(
            admin.employee_id, organization.organization_id, "max_daily",
            {"actual": 700}, violation_date=date(2026, 3, 3),
        )

        in_range = service.get_violations(organization.organization_id, date(2026, 3, 1), date(2026, 3, 31))
        mine = service.get_violations(
            organization.organization_id, date(2026, 3, 1), date(2026, 3, 31),
            employee_id=employee.employee_id,
        )
        daily = service.get_violations(
            organization.organization_id, date(2026, 3, 1), date(2026, 3, 31),
            violation_type="max_daily",
        )
        first_day = service.get_violations(organization.organization_id, date(2026, 3, 2), date(2026, 3, 2))

        assert len(in_range) == 3
        assert in_range[0].violation_date == date(2026, 3, 3)
        assert len(mine) == 2
        assert len(daily) == 2
        assert [v.get_details() for v in first_day] == [{"actual": 620, "limit": 600}]

    def test_unknown_type_rejected(self, db, organization, employee):
        with pytest.raises(ValidationError):
            WorkPolicyService(db).log_violation(
                employee.employee_id, organization.organization_id, "too_happy", {}
            )

    def test_acknowledge_keeps_first(self, db, organization, employee, admin):
        service = WorkPolicyService(db)
        violation = service.log_violation(
            employee.employee_id, organization.organization_id, "rest_period", {"shortfall_minutes": 60}
        )
        first_at = datetime(2026, 3, 4, 9, 0)

        service.acknowledge_violation(violation.violation_id, admin.employee_id, "Talked to Sam", at=first_at)
        again = service.acknowledge_violation(
            violation.violation_id, employee.employee_id, "second", at=datetime(2026, 3, 5)
        )

        assert again.is_acknowledged
        assert again.acknowledged_by == admin.employee_id
        assert again.acknowledged_at == first_at
        assert again.acknowledged_note == "Talked to Sam"

        audit_rows = db.query(AuditLog).filter(
            AuditLog.table_name == "work_policy_violations",
            AuditLog.record_id == violation.violation_id,
        ).all()
        assert len(audit_rows) == 1
        assert audit_rows[0].context == "violation acknowledged"

    def test_acknowledge_unknown(self, db, admin):
        with pytest.raises(NotFoundError):
            WorkPolicyService(db).acknowledge_violation(77, admin.employee_id)
