# WorkRule - Surcharge Result Schemas

from datetime import datetime, date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class AppliedRule(BaseModel):
    rule_id: int
    rule_name: str
    rule_type: str
    percentage: Decimal
    qualifying_minutes: int
    surcharge_minutes: int


class SurchargeResult(BaseModel):
    """Minute-level breakdown for one interval."""

    base_minutes: int = 0
    qualifying_minutes: int = 0
    surcharge_minutes: int = 0
    total_credited_minutes: int = 0
    applied_rules: list[AppliedRule] = []


class WorkPeriodSurcharge(SurchargeResult):
    """A calculation tied to a work period, stored or not."""

    work_period_id: int
    employee_id: int
    surcharge_model_id: int
    surcharge_model_name: str
    calculation_date: date
    time_zone: str
    calculation_id: Optional[int] = None
    calculated_at: Optional[datetime] = None


class RuleTypeCredits(BaseModel):
    minutes: int = 0
    count: int = 0


class SurchargeCredits(BaseModel):
    """Totals over all stored calculations in a date range."""

    employee_id: int
    start_date: date
    end_date: date
    total_base_minutes: int = 0
    total_qualifying_minutes: int = 0
    total_surcharge_minutes: int = 0
    total_credited_minutes: int = 0
    calculation_count: int = 0
    by_rule_type: dict[str, RuleTypeCredits] = {}
