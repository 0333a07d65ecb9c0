# WorkRule - Compliance Schemas
# Decisions, statistics and alerts returned by the guardrail

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel


Severity = Literal["info", "warning", "critical", "violation"]
Enforcement = Literal["block", "warn", "none"]


class RestPeriodViolation(BaseModel):
    last_clock_out_time: datetime
    rest_period_minutes: int
    required_minutes: int
    shortfall_minutes: int


class RestPeriodDecision(BaseModel):
    """
    Clock-in admission decision.

    can_clock_in=False only happens under block enforcement without a
    covering exception. When exception_id is set the caller must call
    mark_exception_as_used once the session is actually started.
    """

    can_clock_in: bool
    enforcement: Enforcement
    violation: Optional[RestPeriodViolation] = None
    has_valid_exception: bool = False
    exception_id: Optional[int] = None
    violation_id: Optional[int] = None
    next_allowed_clock_in: Optional[datetime] = None
    minutes_until_allowed: Optional[int] = None


class OvertimeWindow(BaseModel):
    period_start: datetime
    period_end: datetime
    worked_minutes: int
    threshold_minutes: Optional[int] = None
    overtime_minutes: int = 0
    percent_of_threshold: Optional[int] = None


class OvertimeStats(BaseModel):
    daily: OvertimeWindow
    weekly: OvertimeWindow
    monthly: OvertimeWindow


class ComplianceAlert(BaseModel):
    alert_type: Literal["overtime_daily", "daily_hours", "overtime_weekly", "uninterrupted_work"]
    severity: Severity
    message: str
    current_minutes: int
    threshold_minutes: int
    minutes_remaining: int
    percent_of_limit: int
    # Remaining time is inside the regulation's alert lead time
    within_lead_time: bool = False
    can_request_exception: bool = False


class BreakOption(BaseModel):
    split_count: Optional[int] = None
    minimum_split_minutes: Optional[int] = None
    minimum_longest_split_minutes: Optional[int] = None
    description: str


class BreakRequirement(BaseModel):
    required: bool
    worked_minutes: int
    breaks_taken_minutes: int
    working_minutes_threshold: Optional[int] = None
    required_break_minutes: int = 0
    remaining_break_minutes: int = 0
    options: list[BreakOption] = []


class ComplianceIssue(BaseModel):
    violation_type: Literal["max_daily", "max_weekly", "max_uninterrupted", "break_required"]
    severity: Literal["warning", "violation"]
    message: str
    actual_minutes: int
    limit_minutes: int


class ComplianceCheck(BaseModel):
    """Point-in-time check of a session against the regulation limits."""

    is_compliant: bool
    policy_id: Optional[int] = None
    issues: list[ComplianceIssue] = []
    break_requirement: Optional[BreakRequirement] = None


class ComplianceStatus(BaseModel):
    employee_id: int
    is_compliant: bool
    policy_id: Optional[int] = None
    policy_name: Optional[str] = None
    alerts: list[ComplianceAlert] = []
    stats: OvertimeStats
    pending_exceptions: int = 0
    unacknowledged_violations: int = 0
