# WorkRule - Result Schemas

from .policy import ResolvedPolicy, EditCapability, AssignmentLevel
from .surcharge import (
    AppliedRule,
    SurchargeResult,
    WorkPeriodSurcharge,
    RuleTypeCredits,
    SurchargeCredits,
)
from .compliance import (
    RestPeriodViolation,
    RestPeriodDecision,
    OvertimeWindow,
    OvertimeStats,
    ComplianceAlert,
    BreakOption,
    BreakRequirement,
    ComplianceIssue,
    ComplianceCheck,
    ComplianceStatus,
)

__all__ = [
    "ResolvedPolicy",
    "EditCapability",
    "AssignmentLevel",
    "AppliedRule",
    "SurchargeResult",
    "WorkPeriodSurcharge",
    "RuleTypeCredits",
    "SurchargeCredits",
    "RestPeriodViolation",
    "RestPeriodDecision",
    "OvertimeWindow",
    "OvertimeStats",
    "ComplianceAlert",
    "BreakOption",
    "BreakRequirement",
    "ComplianceIssue",
    "ComplianceCheck",
    "ComplianceStatus",
]
