# WorkRule - Work Policy Service
# Effective regulation lookup, limit checks, break tiers and violation log

import json
import logging
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from workrule.errors import NotFoundError, ValidationError, storage_operation
from workrule.models import WorkPolicyRegulation, WorkPolicyViolation
from workrule.models.work_policy import VIOLATION_TYPES, BreakRuleOption
from workrule.schemas import (
    BreakOption,
    BreakRequirement,
    ComplianceCheck,
    ComplianceIssue,
    ResolvedPolicy,
)
from workrule.services.audit import AuditService
from workrule.services.resolver import WORK_POLICY, PolicyAssignmentResolver
from workrule.timeutils import format_minutes, to_utc_naive, utc_now

logger = logging.getLogger(__name__)


def describe_break_option(option: BreakRuleOption) -> str:
    """Human-readable choice for one way of splitting a break."""
    if option.split_count == 1 or (
        option.split_count is None and not option.minimum_longest_split_minutes
    ):
        return "Take entire break at once"
    if option.split_count is None:
        return (
            "Split into any number of breaks, with one lasting at least "
            f"{option.minimum_longest_split_minutes} minutes"
        )
    if option.split_count and option.minimum_split_minutes:
        return (
            f"Split into {option.split_count} breaks, "
            f"each at least {option.minimum_split_minutes} minutes"
        )
    return "Flexible break options"


def calculate_break_requirements(
    regulation: Optional[WorkPolicyRegulation],
    worked_minutes: int,
    breaks_taken_minutes: int = 0,
) -> BreakRequirement:
    """
    Break owed after worked_minutes of work.

    The tier with the largest working_minutes_threshold that worked_minutes
    strictly exceeds is the one that applies. With no such tier, or no
    regulation at all, no break is required.
    """
    applicable = None
    if regulation is not None:
        for rule in regulation.break_rules:
            if worked_minutes > rule.working_minutes_threshold and (
                applicable is None
                or rule.working_minutes_threshold > applicable.working_minutes_threshold
            ):
                applicable = rule

    if applicable is None:
        return BreakRequirement(
            required=False,
            worked_minutes=worked_minutes,
            breaks_taken_minutes=breaks_taken_minutes,
        )

    return BreakRequirement(
        required=True,
        worked_minutes=worked_minutes,
        breaks_taken_minutes=breaks_taken_minutes,
        working_minutes_threshold=applicable.working_minutes_threshold,
        required_break_minutes=applicable.required_break_minutes,
        remaining_break_minutes=max(0, applicable.required_break_minutes - breaks_taken_minutes),
        options=[
            BreakOption(
                split_count=option.split_count,
                minimum_split_minutes=option.minimum_split_minutes,
                minimum_longest_split_minutes=option.minimum_longest_split_minutes,
                description=describe_break_option(option),
            )
            for option in applicable.options
        ],
    )


class WorkPolicyService:
    """
    Service for working-time regulation.

    Usage:
        service = WorkPolicyService(db, current_user_id)

        resolved = service.get_effective_policy(employee_id)
        check = service.check_compliance(
            employee_id,
            current_session_minutes=250,
            total_daily_minutes=520,
            total_weekly_minutes=2400,
            breaks_taken_minutes=15,
        )
    """

    def __init__(self, db: Session, current_user_id: Optional[int] = None):
        self.db = db
        self.current_user_id = current_user_id
        self.resolver = PolicyAssignmentResolver(db, WORK_POLICY)

    def get_effective_policy(
        self,
        employee_id: int,
        at: Optional[datetime] = None,
    ) -> Optional[ResolvedPolicy]:
        return self.resolver.resolve(employee_id, at)

    def get_effective_regulation(
        self,
        employee_id: int,
        at: Optional[datetime] = None,
    ) -> tuple[Optional[ResolvedPolicy], Optional[WorkPolicyRegulation]]:
        """Resolved policy and its enabled regulation block (either may be None)."""
        resolved = self.get_effective_policy(employee_id, at)
        if resolved is None:
            return None, None
        return resolved, resolved.policy.effective_regulation

    def check_compliance(
        self,
        employee_id: int,
        current_session_minutes: int,
        total_daily_minutes: int,
        total_weekly_minutes: int,
        breaks_taken_minutes: int = 0,
        at: Optional[datetime] = None,
    ) -> ComplianceCheck:
        """
        Compare session totals with the regulation limits.

        Exceeding the daily or weekly maximum is a violation; long
        uninterrupted work and an outstanding break are warnings.
        """
        resolved, regulation = self.get_effective_regulation(employee_id, at)
        if regulation is None:
            return ComplianceCheck(
                is_compliant=True,
                policy_id=resolved.policy_id if resolved else None,
            )

        issues: list[ComplianceIssue] = []

        if regulation.max_daily_minutes and total_daily_minutes > regulation.max_daily_minutes:
            issues.append(ComplianceIssue(
                violation_type="max_daily",
                severity="violation",
                message=(
                    f"Daily working time ({format_minutes(total_daily_minutes)}) "
                    f"exceeds limit ({format_minutes(regulation.max_daily_minutes)})"
                ),
                actual_minutes=total_daily_minutes,
                limit_minutes=regulation.max_daily_minutes,
            ))

        if regulation.max_weekly_minutes and total_weekly_minutes > regulation.max_weekly_minutes:
            issues.append(ComplianceIssue(
                violation_type="max_weekly",
                severity="violation",
                message=(
                    f"Weekly working time ({format_minutes(total_weekly_minutes)}) "
                    f"exceeds limit ({format_minutes(regulation.max_weekly_minutes)})"
                ),
                actual_minutes=total_weekly_minutes,
                limit_minutes=regulation.max_weekly_minutes,
            ))

        if (
            regulation.max_uninterrupted_minutes
            and current_session_minutes > regulation.max_uninterrupted_minutes
        ):
            issues.append(ComplianceIssue(
                violation_type="max_uninterrupted",
                severity="warning",
                message=(
                    f"Uninterrupted work ({format_minutes(current_session_minutes)}) "
                    f"exceeds limit ({format_minutes(regulation.max_uninterrupted_minutes)})"
                ),
                actual_minutes=current_session_minutes,
                limit_minutes=regulation.max_uninterrupted_minutes,
            ))

        break_requirement = calculate_break_requirements(
            regulation, total_daily_minutes, breaks_taken_minutes
        )
        if break_requirement.required and break_requirement.remaining_break_minutes > 0:
            issues.append(ComplianceIssue(
                violation_type="break_required",
                severity="warning",
                message=(
                    f"Break required: {format_minutes(break_requirement.remaining_break_minutes)} "
                    f"remaining of {format_minutes(break_requirement.required_break_minutes)} total"
                ),
                actual_minutes=breaks_taken_minutes,
                limit_minutes=break_requirement.required_break_minutes,
            ))

        return ComplianceCheck(
            is_compliant=not any(issue.severity == "violation" for issue in issues),
            policy_id=resolved.policy_id,
            issues=issues,
            break_requirement=break_requirement,
        )

    def calculate_break_requirements(
        self,
        regulation: Optional[WorkPolicyRegulation],
        worked_minutes: int,
        breaks_taken_minutes: int = 0,
    ) -> BreakRequirement:
        return calculate_break_requirements(regulation, worked_minutes, breaks_taken_minutes)

    # =========================================================================
    # Violations
    # =========================================================================

    def log_violation(
        self,
        employee_id: int,
        organization_id: int,
        violation_type: str,
        details: dict[str, Any],
        policy_id: Optional[int] = None,
        work_period_id: Optional[int] = None,
        violation_date: Optional[date] = None,
    ) -> WorkPolicyViolation:
        """Insert one violation row. The row is flushed, not committed."""
        if violation_type not in VIOLATION_TYPES:
            raise ValidationError(
                f"Unknown violation type '{violation_type}'",
                field="violation_type",
                value=violation_type,
            )

        violation = WorkPolicyViolation(
            employee_id=employee_id,
            organization_id=organization_id,
            policy_id=policy_id,
            work_period_id=work_period_id,
            violation_type=violation_type,
            violation_date=violation_date or utc_now().date(),
            details=json.dumps(details, default=str),
        )
        with storage_operation("log_violation"):
            self.db.add(violation)
            self.db.flush()

        logger.info(
            "violation_logged",
            extra={
                "violation_id": violation.violation_id,
                "employee_id": employee_id,
                "violation_type": violation_type,
                "policy_id": policy_id,
            },
        )
        return violation

    def get_violations(
        self,
        organization_id: int,
        start_date: date,
        end_date: date,
        employee_id: Optional[int] = None,
        violation_type: Optional[str] = None,
    ) -> list[WorkPolicyViolation]:
        """Violations in [start_date, end_date], newest first."""
        query = select(WorkPolicyViolation).where(
            WorkPolicyViolation.organization_id == organization_id,
            WorkPolicyViolation.violation_date >= start_date,
            WorkPolicyViolation.violation_date <= end_date,
        )
        if employee_id is not None:
            query = query.where(WorkPolicyViolation.employee_id == employee_id)
        if violation_type is not None:
            query = query.where(WorkPolicyViolation.violation_type == violation_type)
        query = query.order_by(
            WorkPolicyViolation.violation_date.desc(),
            WorkPolicyViolation.violation_id.desc(),
        )

        with storage_operation("get_violations"):
            return list(self.db.execute(query).scalars().all())

    def acknowledge_violation(
        self,
        violation_id: int,
        acknowledged_by: int,
        note: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> WorkPolicyViolation:
        """
        Record a manager acknowledgement.

        Acknowledging twice keeps the first acknowledgement.
        """
        with storage_operation("acknowledge_violation"):
            violation = self.db.get(WorkPolicyViolation, violation_id)
            if violation is None:
                raise NotFoundError("violation", violation_id)

            if violation.is_acknowledged:
                return violation

            audit = AuditService(self.db, acknowledged_by)
            old_state = audit.capture_state(violation)
            violation.acknowledged_by = acknowledged_by
            violation.acknowledged_at = to_utc_naive(at) if at is not None else utc_now()
            violation.acknowledged_note = note
            audit.log_update(violation, old_state, context="violation acknowledged")
            self.db.flush()

        logger.info(
            "violation_acknowledged",
            extra={"violation_id": violation_id, "acknowledged_by": acknowledged_by},
        )
        return violation
