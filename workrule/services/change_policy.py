# WorkRule - Change Policy Service
# Decides whether a past work period may be edited directly, with approval, or not at all

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from workrule.config import get_settings
from workrule.schemas import EditCapability, ResolvedPolicy
from workrule.services.resolver import CHANGE_POLICY, PolicyAssignmentResolver
from workrule.timeutils import get_zone, to_local, to_utc_naive, utc_now

logger = logging.getLogger(__name__)


def calculate_days_back(work_period_end: datetime, now: datetime, time_zone: str) -> int:
    """Calendar days between the period's end and now, counted in time_zone."""
    zone = get_zone(time_zone)
    return (to_local(now, zone).date() - to_local(work_period_end, zone).date()).days


class ChangePolicyService:
    """
    Service for correction windows.

    Usage:
        service = ChangePolicyService(db)
        capability = service.get_edit_capability(
            employee_id, period.end_time, "Europe/Berlin"
        )
        if capability.result == "approval_required":
            ...
    """

    def __init__(self, db: Session):
        self.db = db
        self.resolver = PolicyAssignmentResolver(db, CHANGE_POLICY)

    def resolve_policy(
        self,
        employee_id: int,
        at: Optional[datetime] = None,
    ) -> Optional[ResolvedPolicy]:
        return self.resolver.resolve(employee_id, at)

    def get_edit_capability(
        self,
        employee_id: int,
        work_period_end_time: datetime,
        time_zone: str,
        now: Optional[datetime] = None,
    ) -> EditCapability:
        now = to_utc_naive(now) if now is not None else utc_now()
        days_back = calculate_days_back(to_utc_naive(work_period_end_time), now, time_zone)

        resolved = self.resolve_policy(employee_id, now)
        if resolved is None:
            return EditCapability(result="direct", reason="no_policy", days_back=days_back)

        policy = resolved.policy
        common = {
            "days_back": days_back,
            "policy_id": resolved.policy_id,
            "self_service_days": policy.self_service_days,
            "approval_days": policy.approval_days,
        }

        if policy.no_approval_required:
            return EditCapability(result="direct", reason="trust_mode", **common)

        # Same-day edits fall in here even when self_service_days is 0
        if days_back <= policy.self_service_days:
            return EditCapability(result="direct", reason="within_self_service", **common)

        if days_back <= policy.self_service_days + policy.approval_days:
            return EditCapability(
                result="approval_required",
                reason="within_approval_window",
                **common,
            )

        logger.info(
            "edit_forbidden",
            extra={
                "employee_id": employee_id,
                "policy_id": resolved.policy_id,
                "days_back": days_back,
            },
        )
        return EditCapability(result="forbidden", reason="beyond_approval_window", **common)

    def check_clock_out_needs_approval(
        self,
        employee_id: int,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Whether a clock-out must go through approval.

        Only a "0-day" policy (self_service_days == 0, no trust mode)
        triggers this, and only while zero_day_clock_out_requires_approval
        is enabled.
        """
        resolved = self.resolve_policy(employee_id, now)
        if resolved is None or resolved.policy.no_approval_required:
            return False

        if not get_settings().zero_day_clock_out_requires_approval:
            return False

        return resolved.policy.self_service_days == 0
