# WorkRule - Compliance Guardrail Service
# Rest-period admission, overtime statistics, proactive alerts and compliance status

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from workrule.config import get_settings
from workrule.errors import storage_operation
from workrule.models import ComplianceException, WorkPeriod, WorkPolicyRegulation, WorkPolicyViolation
from workrule.models.compliance_exception import STATUS_PENDING
from workrule.models.work_policy import ENFORCEMENT_BLOCK, ENFORCEMENT_NONE
from workrule.schemas import (
    BreakRequirement,
    ComplianceAlert,
    ComplianceStatus,
    OvertimeStats,
    OvertimeWindow,
    RestPeriodDecision,
    RestPeriodViolation,
)
from workrule.services.exception_workflow import ExceptionWorkflowService
from workrule.services.work_policy import WorkPolicyService, calculate_break_requirements
from workrule.timeutils import (
    day_bounds,
    format_minutes,
    get_zone,
    month_bounds,
    to_local,
    to_utc_naive,
    utc_now,
    week_bounds,
)

logger = logging.getLogger(__name__)

SEVERITY_ORDER = {"violation": 0, "critical": 1, "warning": 2, "info": 3}


def percent_of(value: int, limit: int) -> int:
    """value / limit as a whole percentage, halves rounded up."""
    return math.floor(value * 100 / limit + 0.5)


def alert_severity(percent_of_limit: int, alert_threshold_percent: int) -> str:
    if percent_of_limit >= 100:
        return "violation"
    if percent_of_limit >= 95:
        return "critical"
    if percent_of_limit >= alert_threshold_percent:
        return "warning"
    return "info"


def _overtime_window(
    bounds: tuple[datetime, datetime],
    worked_minutes: int,
    threshold: Optional[int],
) -> OvertimeWindow:
    # A zero threshold is treated as no threshold
    if not threshold:
        return OvertimeWindow(
            period_start=bounds[0],
            period_end=bounds[1],
            worked_minutes=worked_minutes,
        )
    return OvertimeWindow(
        period_start=bounds[0],
        period_end=bounds[1],
        worked_minutes=worked_minutes,
        threshold_minutes=threshold,
        overtime_minutes=max(0, worked_minutes - threshold),
        percent_of_threshold=percent_of(worked_minutes, threshold),
    )


class ComplianceGuardrailService:
    """
    Guardrail checks against the employee's effective work regulation.

    Usage:
        guardrail = ComplianceGuardrailService(db)

        decision = guardrail.check_rest_period(employee_id, "Europe/Berlin")
        if not decision.can_clock_in:
            ...  # show decision.next_allowed_clock_in
        elif decision.exception_id:
            ...  # start the session, then mark the exception used

        alerts = guardrail.get_proactive_alerts(employee_id, 410, "Europe/Berlin")

    A missing policy, regulation or threshold means "unrestricted" and
    never raises. Decisions that go against the employee are ordinary
    results, not errors.
    """

    def __init__(self, db: Session, current_user_id: Optional[int] = None):
        self.db = db
        self.current_user_id = current_user_id
        self.settings = get_settings()
        self.work_policies = WorkPolicyService(db, current_user_id)
        self.exceptions = ExceptionWorkflowService(db, current_user_id)

    # =========================================================================
    # Work period queries
    # =========================================================================

    def get_last_clock_out(self, employee_id: int, before: datetime) -> Optional[datetime]:
        """End time of the employee's latest closed session ending at or before ``before``."""
        query = (
            select(WorkPeriod.end_time)
            .where(
                WorkPeriod.employee_id == employee_id,
                WorkPeriod.is_active.is_(False),
                WorkPeriod.end_time.is_not(None),
                WorkPeriod.end_time <= before,
            )
            .order_by(WorkPeriod.end_time.desc())
            .limit(1)
        )
        with storage_operation("get_last_clock_out"):
            return self.db.execute(query).scalar_one_or_none()

    def get_worked_minutes(self, employee_id: int, start: datetime, end: datetime) -> int:
        """Minutes of closed sessions that started within [start, end]."""
        query = select(func.coalesce(func.sum(WorkPeriod.duration_minutes), 0)).where(
            WorkPeriod.employee_id == employee_id,
            WorkPeriod.is_active.is_(False),
            WorkPeriod.start_time >= start,
            WorkPeriod.start_time <= end,
        )
        with storage_operation("get_worked_minutes"):
            return int(self.db.execute(query).scalar_one())

    def find_rest_period_violation(
        self,
        employee_id: int,
        last_clock_out: datetime,
    ) -> Optional[WorkPolicyViolation]:
        """The rest_period violation already logged for the gap after last_clock_out, if any."""
        # violation_date is local to the caller, at most a day before the UTC date
        query = (
            select(WorkPolicyViolation)
            .where(
                WorkPolicyViolation.employee_id == employee_id,
                WorkPolicyViolation.violation_type == "rest_period",
                WorkPolicyViolation.violation_date >= (last_clock_out - timedelta(days=1)).date(),
            )
            .order_by(WorkPolicyViolation.violation_id)
        )
        with storage_operation("find_rest_period_violation"):
            candidates = self.db.execute(query).scalars().all()

        gap_start = last_clock_out.isoformat()
        for candidate in candidates:
            if candidate.get_details().get("last_clock_out_time") == gap_start:
                return candidate
        return None

    # =========================================================================
    # Rest period
    # =========================================================================

    def check_rest_period(
        self,
        employee_id: int,
        time_zone: str,
        now: Optional[datetime] = None,
    ) -> RestPeriodDecision:
        """
        Decide whether the employee may clock in now.

        Shortfalls are logged as rest_period violations unless
        enforcement is none, even when the clock-in is allowed. One row
        is kept per rest gap, so repeated checks before the same clock-in
        reuse it. A covering exception is reported through exception_id
        but not consumed; the caller marks it used after the session
        starts.
        """
        now = to_utc_naive(now) if now is not None else utc_now()
        resolved, regulation = self.work_policies.get_effective_regulation(employee_id, now)

        if regulation is None or not regulation.min_rest_period_minutes:
            return RestPeriodDecision(can_clock_in=True, enforcement=ENFORCEMENT_NONE)

        required = regulation.min_rest_period_minutes
        enforcement = regulation.rest_period_enforcement or self.settings.default_rest_period_enforcement

        last_clock_out = self.get_last_clock_out(employee_id, now)
        if last_clock_out is None:
            return RestPeriodDecision(can_clock_in=True, enforcement=enforcement)

        rest_minutes = int((now - last_clock_out).total_seconds() // 60)
        if rest_minutes >= required:
            return RestPeriodDecision(can_clock_in=True, enforcement=enforcement)

        shortfall = required - rest_minutes
        violation = RestPeriodViolation(
            last_clock_out_time=last_clock_out,
            rest_period_minutes=rest_minutes,
            required_minutes=required,
            shortfall_minutes=shortfall,
        )
        exception = self.exceptions.has_valid_exception(employee_id, "rest_period", now)
        can_clock_in = exception is not None or enforcement != ENFORCEMENT_BLOCK

        violation_id = None
        if enforcement != ENFORCEMENT_NONE:
            logged = self.find_rest_period_violation(employee_id, last_clock_out)
            if logged is None:
                details = violation.model_dump(mode="json")
                details["enforcement"] = enforcement
                details["exception_id"] = exception.exception_id if exception else None
                logged = self.work_policies.log_violation(
                    employee_id=employee_id,
                    organization_id=resolved.policy.organization_id,
                    violation_type="rest_period",
                    details=details,
                    policy_id=resolved.policy_id,
                    violation_date=to_local(now, get_zone(time_zone)).date(),
                )
            violation_id = logged.violation_id

        logger.info(
            "rest_period_checked",
            extra={
                "employee_id": employee_id,
                "can_clock_in": can_clock_in,
                "enforcement": enforcement,
                "rest_minutes": rest_minutes,
                "required_minutes": required,
                "exception_id": exception.exception_id if exception else None,
            },
        )
        return RestPeriodDecision(
            can_clock_in=can_clock_in,
            enforcement=enforcement,
            violation=violation,
            has_valid_exception=exception is not None,
            exception_id=exception.exception_id if exception else None,
            violation_id=violation_id,
            next_allowed_clock_in=last_clock_out + timedelta(minutes=required),
            minutes_until_allowed=shortfall,
        )

    # =========================================================================
    # Overtime and alerts
    # =========================================================================

    def _overtime_stats(
        self,
        employee_id: int,
        regulation: Optional[WorkPolicyRegulation],
        time_zone: str,
        now: datetime,
    ) -> OvertimeStats:
        zone = get_zone(time_zone)
        windows = {
            "daily": day_bounds(now, zone),
            "weekly": week_bounds(now, zone),
            "monthly": month_bounds(now, zone),
        }
        thresholds = {
            "daily": regulation.overtime_daily_threshold_minutes if regulation else None,
            "weekly": regulation.overtime_weekly_threshold_minutes if regulation else None,
            "monthly": regulation.overtime_monthly_threshold_minutes if regulation else None,
        }
        return OvertimeStats(**{
            name: _overtime_window(
                bounds,
                self.get_worked_minutes(employee_id, *bounds),
                thresholds[name],
            )
            for name, bounds in windows.items()
        })

    def get_overtime_stats(
        self,
        employee_id: int,
        time_zone: str,
        now: Optional[datetime] = None,
    ) -> OvertimeStats:
        """Worked and overtime minutes for the local day, week (Mon-Sun) and month."""
        now = to_utc_naive(now) if now is not None else utc_now()
        _, regulation = self.work_policies.get_effective_regulation(employee_id, now)
        return self._overtime_stats(employee_id, regulation, time_zone, now)

    def _build_alerts(
        self,
        regulation: WorkPolicyRegulation,
        stats: OvertimeStats,
        current_session_minutes: int,
    ) -> list[ComplianceAlert]:
        alert_threshold = regulation.alert_threshold_percent or self.settings.default_alert_threshold_percent
        lead_time = regulation.alert_before_limit_minutes
        if lead_time is None:
            lead_time = self.settings.default_alert_before_limit_minutes

        daily = stats.daily.worked_minutes + current_session_minutes
        weekly = stats.weekly.worked_minutes + current_session_minutes

        checks = (
            ("overtime_daily", "Daily overtime", "threshold", daily,
             regulation.overtime_daily_threshold_minutes, True),
            ("daily_hours", "Daily limit", "maximum", daily,
             regulation.max_daily_minutes, False),
            ("overtime_weekly", "Weekly overtime", "threshold", weekly,
             regulation.overtime_weekly_threshold_minutes, True),
            ("uninterrupted_work", "Continuous work", "maximum", current_session_minutes,
             regulation.max_uninterrupted_minutes, False),
        )

        alerts = []
        for alert_type, label, noun, current, limit, can_request in checks:
            if not limit:
                continue
            percent = percent_of(current, limit)
            if percent < alert_threshold:
                continue
            remaining = max(0, limit - current)
            alerts.append(ComplianceAlert(
                alert_type=alert_type,
                severity=alert_severity(percent, alert_threshold),
                message=f"{label}: {format_minutes(current)} of {format_minutes(limit)} {noun}",
                current_minutes=current,
                threshold_minutes=limit,
                minutes_remaining=remaining,
                percent_of_limit=percent,
                within_lead_time=remaining <= lead_time,
                can_request_exception=can_request,
            ))

        # Stable sort keeps check order within a severity
        alerts.sort(key=lambda alert: SEVERITY_ORDER[alert.severity])
        return alerts

    def get_proactive_alerts(
        self,
        employee_id: int,
        current_session_minutes: int,
        time_zone: str,
        now: Optional[datetime] = None,
    ) -> list[ComplianceAlert]:
        """
        Alerts for thresholds the employee is approaching or past,
        counting the in-progress session. Most severe first.
        """
        now = to_utc_naive(now) if now is not None else utc_now()
        _, regulation = self.work_policies.get_effective_regulation(employee_id, now)
        if regulation is None:
            return []
        stats = self._overtime_stats(employee_id, regulation, time_zone, now)
        return self._build_alerts(regulation, stats, current_session_minutes)

    # =========================================================================
    # Breaks and status
    # =========================================================================

    def calculate_break_requirements(
        self,
        regulation: Optional[WorkPolicyRegulation],
        worked_minutes: int,
        breaks_taken_minutes: int = 0,
    ) -> BreakRequirement:
        return calculate_break_requirements(regulation, worked_minutes, breaks_taken_minutes)

    def get_compliance_status(
        self,
        employee_id: int,
        time_zone: str,
        current_session_minutes: int = 0,
        now: Optional[datetime] = None,
    ) -> ComplianceStatus:
        """
        Dashboard summary: alerts, overtime stats and open items.

        is_compliant is False only when some alert has severity violation.
        """
        now = to_utc_naive(now) if now is not None else utc_now()
        resolved, regulation = self.work_policies.get_effective_regulation(employee_id, now)
        employee = self.work_policies.resolver.get_employee(employee_id)

        stats = self._overtime_stats(employee_id, regulation, time_zone, now)
        alerts = []
        if regulation is not None:
            alerts = self._build_alerts(regulation, stats, current_session_minutes)

        with storage_operation("get_pending_exceptions_count"):
            pending = self.db.execute(
                select(func.count()).select_from(ComplianceException).where(
                    ComplianceException.employee_id == employee_id,
                    ComplianceException.status == STATUS_PENDING,
                )
            ).scalar_one()

        with storage_operation("get_unacknowledged_violations_count"):
            unacknowledged = self.db.execute(
                select(func.count()).select_from(WorkPolicyViolation).where(
                    WorkPolicyViolation.employee_id == employee_id,
                    WorkPolicyViolation.organization_id == employee.organization_id,
                    WorkPolicyViolation.acknowledged_at.is_(None),
                )
            ).scalar_one()

        return ComplianceStatus(
            employee_id=employee_id,
            is_compliant=not any(alert.severity == "violation" for alert in alerts),
            policy_id=resolved.policy_id if resolved else None,
            policy_name=resolved.policy_name if resolved else None,
            alerts=alerts,
            stats=stats,
            pending_exceptions=pending,
            unacknowledged_violations=unacknowledged,
        )
