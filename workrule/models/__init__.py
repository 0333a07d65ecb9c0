# WorkRule - Database Models
# Import every model here so Base.metadata sees all tables

from .base import Base, TimestampMixin, AuditMixin
from .organization import Organization, Team, Employee
from .assignment import (
    PolicyAssignmentMixin,
    SCOPE_ORGANIZATION,
    SCOPE_TEAM,
    SCOPE_EMPLOYEE,
    SCOPE_PRIORITY,
)
from .work_period import WorkPeriod
from .work_policy import (
    WorkPolicy,
    WorkPolicyRegulation,
    BreakRule,
    BreakRuleOption,
    WorkPolicyAssignment,
    WorkPolicyViolation,
)
from .change_policy import ChangePolicy, ChangePolicyAssignment
from .surcharge import (
    SurchargeModel,
    SurchargeRule,
    SurchargeModelAssignment,
    SurchargeCalculation,
)
from .schedule import (
    WorkScheduleTemplate,
    WorkScheduleTemplateDay,
    WorkScheduleAssignment,
)
from .compliance_exception import ComplianceException
from .audit_log import AuditLog, create_audit_entry

__all__ = [
    "Base",
    "TimestampMixin",
    "AuditMixin",
    "Organization",
    "Team",
    "Employee",
    "PolicyAssignmentMixin",
    "SCOPE_ORGANIZATION",
    "SCOPE_TEAM",
    "SCOPE_EMPLOYEE",
    "SCOPE_PRIORITY",
    "WorkPeriod",
    "WorkPolicy",
    "WorkPolicyRegulation",
    "BreakRule",
    "BreakRuleOption",
    "WorkPolicyAssignment",
    "WorkPolicyViolation",
    "ChangePolicy",
    "ChangePolicyAssignment",
    "SurchargeModel",
    "SurchargeRule",
    "SurchargeModelAssignment",
    "SurchargeCalculation",
    "WorkScheduleTemplate",
    "WorkScheduleTemplateDay",
    "WorkScheduleAssignment",
    "ComplianceException",
    "AuditLog",
    "create_audit_entry",
]
