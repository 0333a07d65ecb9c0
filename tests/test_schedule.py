"""Schedule templates: weekly target hours and expected minutes per day."""

from datetime import date
from decimal import Decimal

import pytest

from workrule.services import SCHEDULE_TEMPLATE, ScheduleTemplateService, calculate_weekly_hours


MONDAY = date(2026, 3, 2)
FRIDAY = date(2026, 3, 6)
SATURDAY = date(2026, 3, 7)


class TestWeeklyHours:

    @pytest.mark.parametrize("cycle, hours, weekly", [
        ("weekly", 40, Decimal("40")),
        ("daily", 8, Decimal("56")),
        ("biweekly", 80, Decimal("40")),
        ("yearly", 2080, Decimal("40")),
    ])
    def test_simple_cycles(self, make_schedule, cycle, hours, weekly):
        template = make_schedule(schedule_cycle=cycle, hours_per_cycle=hours)
        assert calculate_weekly_hours(template) == weekly

    def test_monthly_cycle(self, make_schedule):
        template = make_schedule(schedule_cycle="monthly", hours_per_cycle="173.33")
        assert calculate_weekly_hours(template).quantize(Decimal("0.01")) == Decimal("40.00")

    def test_detailed_sums_work_days(self, make_schedule):
        template = make_schedule(
            schedule_type="detailed",
            days={"monday": 8.5, "tuesday": 8.5, "wednesday": 8.5, "thursday": 8.5, "friday": 6, "saturday": 0},
        )
        assert calculate_weekly_hours(template) == Decimal("40")


class TestExpectedMinutes:

    def test_simple_spreads_over_preset(self, db, organization, employee, make_schedule, assign):
        template = make_schedule(hours_per_cycle=40)
        assign(SCHEDULE_TEMPLATE, template.template_id, "organization", organization.organization_id)
        service = ScheduleTemplateService(db)

        assert service.expected_minutes_for_date(employee.employee_id, MONDAY, "UTC") == 480
        assert service.expected_minutes_for_date(employee.employee_id, SATURDAY, "UTC") == 0

    def test_weekend_preset(self, db, organization, employee, make_schedule, assign):
        template = make_schedule(hours_per_cycle=16, working_days_preset="weekends")
        assign(SCHEDULE_TEMPLATE, template.template_id, "organization", organization.organization_id)
        service = ScheduleTemplateService(db)

        assert service.expected_minutes_for_date(employee.employee_id, MONDAY, "UTC") == 0
        assert service.expected_minutes_for_date(employee.employee_id, SATURDAY, "UTC") == 480

    def test_half_minute_rounds_up(self, db, organization, employee, make_schedule, assign):
        # 16.15h over two days is 484.5 minutes a day
        template = make_schedule(hours_per_cycle="16.15", working_days_preset="weekends")
        assign(SCHEDULE_TEMPLATE, template.template_id, "organization", organization.organization_id)

        assert ScheduleTemplateService(db).expected_minutes_for_date(employee.employee_id, SATURDAY, "UTC") == 485

    def test_custom_preset_reads_day_rows(self, db, organization, employee, make_schedule, assign):
        template = make_schedule(
            hours_per_cycle=20,
            working_days_preset="custom",
            days={"monday": 10, "wednesday": 10, "tuesday": 0},
        )
        assign(SCHEDULE_TEMPLATE, template.template_id, "organization", organization.organization_id)
        service = ScheduleTemplateService(db)

        assert service.expected_minutes_for_date(employee.employee_id, MONDAY, "UTC") == 600
        assert service.expected_minutes_for_date(employee.employee_id, date(2026, 3, 3), "UTC") == 0

    def test_detailed_uses_the_weekday_row(self, db, organization, employee, make_schedule, assign):
        template = make_schedule(
            schedule_type="detailed",
            days={"monday": 8.5, "friday": 6},
        )
        assign(SCHEDULE_TEMPLATE, template.template_id, "organization", organization.organization_id)
        service = ScheduleTemplateService(db)

        assert service.expected_minutes_for_date(employee.employee_id, MONDAY, "UTC") == 510
        assert service.expected_minutes_for_date(employee.employee_id, FRIDAY, "UTC") == 360
        assert service.expected_minutes_for_date(employee.employee_id, SATURDAY, "UTC") == 0

    def test_no_template(self, db, employee):
        assert ScheduleTemplateService(db).expected_minutes_for_date(employee.employee_id, MONDAY, "UTC") == 0

    def test_effective_template_is_resolved(self, db, team, employee, make_schedule, assign):
        template = make_schedule(name="Part time", hours_per_cycle=20)
        assign(SCHEDULE_TEMPLATE, template.template_id, "team", team.team_id)

        resolved = ScheduleTemplateService(db).get_effective_template(employee.employee_id)
        assert resolved.policy_name == "Part time"
        assert resolved.assignment_level == "team"
