# WorkRule - Services
# Business logic layer

from .audit import AuditService, AuditQuery
from .resolver import (
    PolicyFamily,
    PolicyAssignmentResolver,
    AssignmentService,
    WORK_POLICY,
    CHANGE_POLICY,
    SURCHARGE_MODEL,
    SCHEDULE_TEMPLATE,
    FAMILIES,
)
from .work_policy import WorkPolicyService, calculate_break_requirements
from .change_policy import ChangePolicyService
from .surcharge import SurchargeService, calculate_surcharges
from .schedule import ScheduleTemplateService, calculate_weekly_hours
from .exception_workflow import ExceptionWorkflowService
from .guardrail import ComplianceGuardrailService

__all__ = [
    "AuditService",
    "AuditQuery",
    "PolicyFamily",
    "PolicyAssignmentResolver",
    "AssignmentService",
    "WORK_POLICY",
    "CHANGE_POLICY",
    "SURCHARGE_MODEL",
    "SCHEDULE_TEMPLATE",
    "FAMILIES",
    "WorkPolicyService",
    "calculate_break_requirements",
    "ChangePolicyService",
    "SurchargeService",
    "calculate_surcharges",
    "ScheduleTemplateService",
    "calculate_weekly_hours",
    "ExceptionWorkflowService",
    "ComplianceGuardrailService",
]
