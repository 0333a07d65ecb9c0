# WorkRule - Surcharge Service
# Minute-level premium pay with "max wins" overlap, and per-work-period persistence

import json
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Optional, Sequence

import pytz
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from workrule.errors import NotFoundError, storage_operation
from workrule.models import Organization, SurchargeCalculation, WorkPeriod
from workrule.models.surcharge import RULE_DATE_BASED, RULE_DAY_OF_WEEK, RULE_TIME_WINDOW
from workrule.schemas import (
    AppliedRule,
    ResolvedPolicy,
    RuleTypeCredits,
    SurchargeCredits,
    SurchargeResult,
    WorkPeriodSurcharge,
)
from workrule.services.resolver import SURCHARGE_MODEL, PolicyAssignmentResolver
from workrule.timeutils import WEEKDAYS, get_zone, parse_hhmm, to_local, to_utc_naive, utc_now

logger = logging.getLogger(__name__)

OVERLAP_POLICY = "max_wins"

# (local aware datetime, naive UTC datetime) -> bool
Matcher = Callable[[datetime, datetime], bool]


def _never(local: datetime, instant: datetime) -> bool:
    return False


def _build_matcher(rule: Any) -> Matcher:
    """
    Compile one rule into a predicate, once per calculation.

    Rules missing the fields their type needs never match.
    """
    if rule.rule_type == RULE_DAY_OF_WEEK:
        if not rule.day_of_week or rule.day_of_week.lower() not in WEEKDAYS:
            return _never
        weekday = WEEKDAYS.index(rule.day_of_week.lower())

        def matches(local: datetime, instant: datetime) -> bool:
            return local.weekday() == weekday

    elif rule.rule_type == RULE_TIME_WINDOW:
        if not rule.window_start_time or not rule.window_end_time:
            return _never
        start = parse_hhmm(rule.window_start_time, "window_start_time")
        end = parse_hhmm(rule.window_end_time, "window_end_time")

        if start < end:
            def matches(local: datetime, instant: datetime) -> bool:
                return start <= local.hour * 60 + local.minute < end
        else:
            # Spans midnight (22:00-06:00); equal bounds cover the whole day
            def matches(local: datetime, instant: datetime) -> bool:
                minute_of_day = local.hour * 60 + local.minute
                return minute_of_day >= start or minute_of_day < end

    elif rule.rule_type == RULE_DATE_BASED:
        if rule.specific_date is not None:
            specific = rule.specific_date

            def matches(local: datetime, instant: datetime) -> bool:
                return local.date() == specific

        elif rule.date_range_start is not None and rule.date_range_end is not None:
            range_start, range_end = rule.date_range_start, rule.date_range_end

            def matches(local: datetime, instant: datetime) -> bool:
                return range_start <= local.date() <= range_end

        else:
            return _never

    else:
        return _never

    valid_from = to_utc_naive(rule.valid_from) if rule.valid_from else None
    valid_until = to_utc_naive(rule.valid_until) if rule.valid_until else None
    if valid_from is None and valid_until is None:
        return matches

    def matches_in_validity(local: datetime, instant: datetime) -> bool:
        if valid_from is not None and instant < valid_from:
            return False
        if valid_until is not None and instant > valid_until:
            return False
        return matches(local, instant)

    return matches_in_validity


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_surcharges(
    start_time: datetime,
    end_time: datetime,
    rules: Sequence[Any],
    time_zone: str,
) -> SurchargeResult:
    """
    Premium minutes for the interval [start_time, end_time).

    Every whole minute is checked against every rule in the zone's local
    time. The matching rule with the highest percentage takes the minute;
    on equal percentages the rule listed first keeps it. Rules are
    evaluated in the order given, so callers pass them sorted
    (SurchargeModel.active_rules).

    Per rule, surcharge = round_half_up(qualifying minutes * percentage).
    """
    zone = get_zone(time_zone)
    start = to_utc_naive(start_time)
    end = to_utc_naive(end_time)
    total_minutes = int((end - start).total_seconds() // 60)

    if total_minutes <= 0 or not rules:
        base = max(0, total_minutes)
        return SurchargeResult(base_minutes=base, total_credited_minutes=base)

    compiled = [
        (index, Decimal(str(rule.percentage)), _build_matcher(rule))
        for index, rule in enumerate(rules)
    ]
    qualifying = [0] * len(rules)

    start_utc = pytz.utc.localize(start)
    one_minute = timedelta(minutes=1)
    for i in range(total_minutes):
        instant = start + one_minute * i
        local = (start_utc + one_minute * i).astimezone(zone)

        winner = -1
        best = None
        for index, percentage, matches in compiled:
            if (best is None or percentage > best) and matches(local, instant):
                winner, best = index, percentage
        if winner >= 0:
            qualifying[winner] += 1

    applied_rules = []
    total_qualifying = 0
    total_surcharge = 0
    for (index, percentage, _), rule in zip(compiled, rules):
        minutes = qualifying[index]
        if minutes == 0:
            continue
        surcharge = _round_half_up(minutes * percentage)
        applied_rules.append(AppliedRule(
            rule_id=rule.rule_id,
            rule_name=rule.name,
            rule_type=rule.rule_type,
            percentage=percentage,
            qualifying_minutes=minutes,
            surcharge_minutes=surcharge,
        ))
        total_qualifying += minutes
        total_surcharge += surcharge

    return SurchargeResult(
        base_minutes=total_minutes,
        qualifying_minutes=total_qualifying,
        surcharge_minutes=total_surcharge,
        total_credited_minutes=total_minutes + total_surcharge,
        applied_rules=applied_rules,
    )


class SurchargeService:
    """
    Service for surcharge models and stored calculations.

    Usage:
        service = SurchargeService(db)

        # On clock-out
        result = service.persist_calculation(work_period_id, "Europe/Berlin")
        db.commit()

        # Payroll export
        credits = service.get_credits_for_period(employee_id, date(2026, 1, 1), date(2026, 1, 31))

    The model is resolved at the work period's start time, so a
    reassignment later in the shift does not change the premium.
    """

    def __init__(self, db: Session):
        self.db = db
        self.resolver = PolicyAssignmentResolver(db, SURCHARGE_MODEL)

    def get_effective_model(
        self,
        employee_id: int,
        at: Optional[datetime] = None,
    ) -> Optional[ResolvedPolicy]:
        """Resolved model; use ``.policy.active_rules`` for its rules."""
        return self.resolver.resolve(employee_id, at)

    def _get_work_period(self, work_period_id: int) -> WorkPeriod:
        with storage_operation("get_work_period"):
            period = self.db.get(WorkPeriod, work_period_id)
        if period is None:
            raise NotFoundError("work_period", work_period_id)
        return period

    def _get_existing(self, work_period_id: int) -> Optional[SurchargeCalculation]:
        with storage_operation("get_surcharge_calculation"):
            return self.db.execute(
                select(SurchargeCalculation)
                .where(SurchargeCalculation.work_period_id == work_period_id)
            ).scalar_one_or_none()

    def calculate_for_work_period(
        self,
        work_period_id: int,
        time_zone: str,
    ) -> Optional[WorkPeriodSurcharge]:
        """
        Calculate without storing.

        Returns None while the period is still open, and when no model
        (or a model without active rules) applies.
        """
        period = self._get_work_period(work_period_id)
        if not period.is_closed:
            return None

        resolved = self.get_effective_model(period.employee_id, period.start_time)
        if resolved is None:
            return None
        rules = resolved.policy.active_rules
        if not rules:
            return None

        result = calculate_surcharges(period.start_time, period.end_time, rules, time_zone)
        zone = get_zone(time_zone)
        return WorkPeriodSurcharge(
            **result.model_dump(),
            work_period_id=period.work_period_id,
            employee_id=period.employee_id,
            surcharge_model_id=resolved.policy_id,
            surcharge_model_name=resolved.policy_name,
            calculation_date=to_local(period.start_time, zone).date(),
            time_zone=time_zone,
        )

    def persist_calculation(
        self,
        work_period_id: int,
        time_zone: str,
    ) -> Optional[WorkPeriodSurcharge]:
        """
        Calculate and store, once per work period.

        A second call returns the stored row's result without
        recalculating. Use recalculate() to force a fresh calculation.
        """
        existing = self._get_existing(work_period_id)
        if existing is not None:
            return self._from_stored(existing)

        calculation = self.calculate_for_work_period(work_period_id, time_zone)
        if calculation is None:
            return None

        calculated_at = utc_now()
        period = self._get_work_period(work_period_id)
        primary = calculation.applied_rules[0] if calculation.applied_rules else None
        details = {
            "work_period_start_time": period.start_time.isoformat(),
            "work_period_end_time": period.end_time.isoformat(),
            "rules_applied": [rule.model_dump(mode="json") for rule in calculation.applied_rules],
            "overlap_policy": OVERLAP_POLICY,
            "time_zone": time_zone,
            "calculated_at": calculated_at.isoformat(),
        }

        row = SurchargeCalculation(
            employee_id=period.employee_id,
            organization_id=period.organization_id,
            work_period_id=work_period_id,
            surcharge_model_id=calculation.surcharge_model_id,
            surcharge_rule_id=primary.rule_id if primary else None,
            calculation_date=calculation.calculation_date,
            base_minutes=calculation.base_minutes,
            qualifying_minutes=calculation.qualifying_minutes,
            surcharge_minutes=calculation.surcharge_minutes,
            applied_percentage=primary.percentage if primary else Decimal("0"),
            calculation_details=json.dumps(details),
            created_at=calculated_at,
        )
        with storage_operation("insert_surcharge_calculation"):
            self.db.add(row)
            self.db.flush()

        logger.info(
            "surcharge_persisted",
            extra={
                "calculation_id": row.calculation_id,
                "work_period_id": work_period_id,
                "surcharge_model_id": calculation.surcharge_model_id,
                "base_minutes": calculation.base_minutes,
                "surcharge_minutes": calculation.surcharge_minutes,
            },
        )
        return calculation.model_copy(
            update={"calculation_id": row.calculation_id, "calculated_at": calculated_at}
        )

    def recalculate(
        self,
        work_period_id: int,
        time_zone: str,
    ) -> Optional[WorkPeriodSurcharge]:
        """Drop the stored calculation (if any) and persist a fresh one."""
        self._get_work_period(work_period_id)
        with storage_operation("delete_surcharge_calculation"):
            self.db.execute(
                delete(SurchargeCalculation)
                .where(SurchargeCalculation.work_period_id == work_period_id)
            )
            self.db.flush()
            self.db.expire_all()

        logger.info("surcharge_recalculating", extra={"work_period_id": work_period_id})
        return self.persist_calculation(work_period_id, time_zone)

    def _from_stored(self, row: SurchargeCalculation) -> WorkPeriodSurcharge:
        details = row.get_details()
        return WorkPeriodSurcharge(
            base_minutes=row.base_minutes,
            qualifying_minutes=row.qualifying_minutes,
            surcharge_minutes=row.surcharge_minutes,
            total_credited_minutes=row.total_credited_minutes,
            applied_rules=[AppliedRule(**rule) for rule in details.get("rules_applied", [])],
            work_period_id=row.work_period_id,
            employee_id=row.employee_id,
            surcharge_model_id=row.surcharge_model_id,
            surcharge_model_name=row.surcharge_model.name,
            calculation_date=row.calculation_date,
            time_zone=details.get("time_zone", "UTC"),
            calculation_id=row.calculation_id,
            calculated_at=row.created_at,
        )

    def get_credits_for_period(
        self,
        employee_id: int,
        start_date: date,
        end_date: date,
    ) -> SurchargeCredits:
        """Sum stored calculations whose calculation_date is in [start_date, end_date]."""
        with storage_operation("get_surcharge_credits"):
            rows = self.db.execute(
                select(SurchargeCalculation).where(
                    SurchargeCalculation.employee_id == employee_id,
                    SurchargeCalculation.calculation_date >= start_date,
                    SurchargeCalculation.calculation_date <= end_date,
                )
            ).scalars().all()

        credits = SurchargeCredits(employee_id=employee_id, start_date=start_date, end_date=end_date)
        for row in rows:
            credits.total_base_minutes += row.base_minutes
            credits.total_qualifying_minutes += row.qualifying_minutes
            credits.total_surcharge_minutes += row.surcharge_minutes
            credits.calculation_count += 1

            for rule in row.get_details().get("rules_applied", []):
                bucket = credits.by_rule_type.setdefault(rule["rule_type"], RuleTypeCredits())
                bucket.minutes += rule["surcharge_minutes"]
                bucket.count += 1

        credits.total_credited_minutes = credits.total_base_minutes + credits.total_surcharge_minutes
        return credits

    def is_surcharges_enabled(self, organization_id: int) -> bool:
        with storage_operation("get_organization"):
            organization = self.db.get(Organization, organization_id)
        return bool(organization and organization.surcharges_enabled)
