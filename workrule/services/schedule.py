# WorkRule - Schedule Template Service
# Target working time from the effective schedule template

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy.orm import Session

from workrule.models import WorkScheduleTemplate
from workrule.models.schedule import SCHEDULE_SIMPLE
from workrule.schemas import ResolvedPolicy
from workrule.services.resolver import SCHEDULE_TEMPLATE, PolicyAssignmentResolver
from workrule.timeutils import WEEKDAYS, get_zone, local_midnight_utc


WORKING_DAY_PRESETS = {
    "weekdays": WEEKDAYS[:5],
    "weekends": WEEKDAYS[5:],
    "all_days": WEEKDAYS,
}

# hours_per_cycle * multiplier / divisor = hours per week
CYCLE_TO_WEEKLY = {
    "daily": (7, 1),
    "weekly": (1, 1),
    "biweekly": (1, 2),
    "monthly": (12, 52),
    "yearly": (1, 52),
}


def working_days(template: WorkScheduleTemplate) -> tuple[str, ...]:
    """Weekday names the template counts as working days."""
    if template.working_days_preset in WORKING_DAY_PRESETS:
        return WORKING_DAY_PRESETS[template.working_days_preset]
    return tuple(
        day for day in WEEKDAYS
        if any(d.day_of_week == day and d.is_work_day for d in template.days)
    )


def calculate_weekly_hours(template: WorkScheduleTemplate) -> Decimal:
    """
    Target hours per week.

    Simple schedules scale hours_per_cycle by their cycle; detailed ones
    add up the hours of their working days.
    """
    if template.schedule_type == SCHEDULE_SIMPLE and template.hours_per_cycle is not None:
        multiplier, divisor = CYCLE_TO_WEEKLY.get(template.schedule_cycle, (1, 1))
        return Decimal(template.hours_per_cycle) * multiplier / divisor

    return sum(
        (Decimal(day.hours_per_day) for day in template.days if day.is_work_day),
        Decimal(0),
    )


class ScheduleTemplateService:
    """
    Service for work schedule templates.

    Usage:
        service = ScheduleTemplateService(db)
        minutes = service.expected_minutes_for_date(employee_id, date(2026, 3, 2), "Europe/Berlin")
    """

    def __init__(self, db: Session):
        self.db = db
        self.resolver = PolicyAssignmentResolver(db, SCHEDULE_TEMPLATE)

    def get_effective_template(
        self,
        employee_id: int,
        at: Optional[datetime] = None,
    ) -> Optional[ResolvedPolicy]:
        return self.resolver.resolve(employee_id, at)

    def calculate_weekly_hours(self, template: WorkScheduleTemplate) -> Decimal:
        return calculate_weekly_hours(template)

    def expected_minutes_for_date(
        self,
        employee_id: int,
        on_date: date,
        time_zone: str,
    ) -> int:
        """
        Target minutes for one calendar day; 0 without a template or on
        a non-working day.

        The template is resolved at local midnight of on_date.
        """
        at = local_midnight_utc(on_date, get_zone(time_zone))
        resolved = self.get_effective_template(employee_id, at)
        if resolved is None:
            return 0

        template = resolved.policy
        weekday = WEEKDAYS[on_date.weekday()]

        if template.schedule_type == SCHEDULE_SIMPLE:
            days = working_days(template)
            if weekday not in days:
                return 0
            hours = calculate_weekly_hours(template) / Decimal(len(days))
        else:
            hours = sum(
                (
                    Decimal(day.hours_per_day) for day in template.days
                    if day.day_of_week == weekday and day.is_work_day
                ),
                Decimal(0),
            )

        return int((hours * 60).to_integral_value(rounding=ROUND_HALF_UP))
