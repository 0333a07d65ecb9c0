# WorkRule - Work Regulation Policy Models

from datetime import datetime, date
from typing import Optional, List, TYPE_CHECKING
import json

from sqlalchemy import String, Boolean, Integer, DateTime, Date, ForeignKey, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, AuditMixin
from .assignment import PolicyAssignmentMixin
from workrule.timeutils import utc_now

if TYPE_CHECKING:
    from .organization import Employee


# Enforcement modes for the minimum rest period
ENFORCEMENT_BLOCK = "block"
ENFORCEMENT_WARN = "warn"
ENFORCEMENT_NONE = "none"
ENFORCEMENT_MODES = (ENFORCEMENT_BLOCK, ENFORCEMENT_WARN, ENFORCEMENT_NONE)

VIOLATION_TYPES = (
    "max_daily",
    "max_weekly",
    "max_uninterrupted",
    "break_required",
    "rest_period",
    "overtime_daily",
    "overtime_weekly",
    "overtime_monthly",
)


class WorkPolicy(Base, AuditMixin):
    """
    Named, organization-owned bundle of working-time rules.

    The regulation block (limits, rest period, overtime thresholds and
    break tiers) is optional. A policy with regulation_enabled=False
    resolves normally but carries no restrictions.
    """

    __tablename__ = "work_policies"

    policy_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.organization_id"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False
    )

    description: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True
    )

    schedule_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )

    regulation_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    regulation: Mapped[Optional["WorkPolicyRegulation"]] = relationship(
        "WorkPolicyRegulation",
        back_populates="policy",
        uselist=False,
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<WorkPolicy {self.policy_id}: {self.name}>"

    @property
    def effective_regulation(self) -> Optional["WorkPolicyRegulation"]:
        """The regulation block, or None when disabled or absent."""
        if not self.regulation_enabled:
            return None
        return self.regulation


class WorkPolicyRegulation(Base):
    """
    Limits attached to a work policy. Every column is optional; a NULL
    limit means that aspect is unrestricted.
    """

    __tablename__ = "work_policy_regulations"

    regulation_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    policy_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("work_policies.policy_id"),
        nullable=False,
        unique=True
    )

    # Hard limits
    max_daily_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_weekly_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_uninterrupted_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Rest period between sessions
    min_rest_period_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # block | warn | none
    rest_period_enforcement: Mapped[Optional[str]] = mapped_column(
        String(10),
        nullable=True
    )

    # Overtime thresholds
    overtime_daily_threshold_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    overtime_weekly_threshold_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    overtime_monthly_threshold_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Proactive alerts
    alert_before_limit_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    alert_threshold_percent: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    policy: Mapped["WorkPolicy"] = relationship(
        "WorkPolicy",
        back_populates="regulation"
    )

    break_rules: Mapped[List["BreakRule"]] = relationship(
        "BreakRule",
        back_populates="regulation",
        order_by="BreakRule.sort_order",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<WorkPolicyRegulation {self.regulation_id} policy={self.policy_id}>"


class BreakRule(Base):
    """One break tier: past the working threshold, this much break is owed."""

    __tablename__ = "work_policy_break_rules"

    break_rule_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    regulation_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("work_policy_regulations.regulation_id"),
        nullable=False,
        index=True
    )

    working_minutes_threshold: Mapped[int] = mapped_column(
        Integer,
        nullable=False
    )

    required_break_minutes: Mapped[int] = mapped_column(
        Integer,
        nullable=False
    )

    sort_order: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False
    )

    regulation: Mapped["WorkPolicyRegulation"] = relationship(
        "WorkPolicyRegulation",
        back_populates="break_rules"
    )

    options: Mapped[List["BreakRuleOption"]] = relationship(
        "BreakRuleOption",
        back_populates="break_rule",
        order_by="BreakRuleOption.sort_order",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<BreakRule {self.break_rule_id}: "
            f">{self.working_minutes_threshold}m -> {self.required_break_minutes}m>"
        )


class BreakRuleOption(Base):
    """
    How a required break may be divided.

    split_count NULL means any number of splits.
    """

    __tablename__ = "work_policy_break_rule_options"

    option_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    break_rule_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("work_policy_break_rules.break_rule_id"),
        nullable=False,
        index=True
    )

    split_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    minimum_split_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    minimum_longest_split_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    sort_order: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False
    )

    break_rule: Mapped["BreakRule"] = relationship(
        "BreakRule",
        back_populates="options"
    )


class WorkPolicyAssignment(Base, PolicyAssignmentMixin):
    """Binds a WorkPolicy to an organization, team or employee."""

    __tablename__ = "work_policy_assignments"

    __table_args__ = (
        Index("ix_work_policy_assignments_scope", "scope", "is_active"),
    )

    assignment_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    policy_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("work_policies.policy_id"),
        nullable=False,
        index=True
    )

    policy: Mapped["WorkPolicy"] = relationship("WorkPolicy")

    def __repr__(self) -> str:
        return f"<WorkPolicyAssignment {self.assignment_id} {self.scope}:{self.target_id}>"


class WorkPolicyViolation(Base):
    """
    Audit row written when a guardrail check fails.

    Never updated except to record a manager acknowledgement, never deleted.
    """

    __tablename__ = "work_policy_violations"

    __table_args__ = (
        Index("ix_work_policy_violations_org_date", "organization_id", "violation_date"),
        Index("ix_work_policy_violations_employee", "employee_id", "violation_date"),
    )

    violation_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.organization_id"),
        nullable=False
    )

    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.employee_id"),
        nullable=False
    )

    # NULL when no policy was resolvable at the time of the check
    policy_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("work_policies.policy_id"),
        nullable=True
    )

    work_period_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("work_periods.work_period_id"),
        nullable=True
    )

    violation_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        index=True
    )

    violation_date: Mapped[date] = mapped_column(
        Date,
        nullable=False
    )

    # JSON: actual vs. limit minutes, shortfall, overtime amount
    details: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False
    )

    acknowledged_by: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("employees.employee_id"),
        nullable=True
    )

    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True
    )

    acknowledged_note: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True
    )

    employee: Mapped["Employee"] = relationship(
        "Employee",
        foreign_keys=[employee_id]
    )

    def __repr__(self) -> str:
        return f"<WorkPolicyViolation {self.violation_id} {self.violation_type} emp={self.employee_id}>"

    @property
    def is_acknowledged(self) -> bool:
        return self.acknowledged_at is not None

    def get_details(self) -> dict:
        """Parse details JSON."""
        if self.details:
            return json.loads(self.details)
        return {}
