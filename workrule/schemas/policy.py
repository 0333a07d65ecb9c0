# WorkRule - Policy Resolution Schemas

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict


AssignmentLevel = Literal["employee", "team", "organization"]


class ResolvedPolicy(BaseModel):
    """
    The single policy that applies to an employee at an instant.

    ``policy`` is the ORM row of whichever family was resolved
    (WorkPolicy, ChangePolicy, SurchargeModel, WorkScheduleTemplate).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    family: str
    policy: Any
    policy_id: int
    policy_name: str
    assignment_id: int
    assignment_level: AssignmentLevel
    # Team or organization name the policy was inherited through
    assigned_via: Optional[str] = None
    evaluated_at: datetime


class EditCapability(BaseModel):
    """Whether an employee may edit a past work period, and how."""

    result: Literal["direct", "approval_required", "forbidden"]
    reason: Literal[
        "no_policy",
        "trust_mode",
        "within_self_service",
        "within_approval_window",
        "beyond_approval_window",
    ]
    days_back: int
    policy_id: Optional[int] = None
    self_service_days: Optional[int] = None
    approval_days: Optional[int] = None
