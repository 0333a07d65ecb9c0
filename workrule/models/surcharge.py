# WorkRule - Surcharge Models
# Premium pay rules and the per-work-period calculation record

from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
import json

from sqlalchemy import String, Boolean, Integer, DateTime, Date, Numeric, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, AuditMixin
from .assignment import PolicyAssignmentMixin
from workrule.timeutils import utc_now


RULE_DAY_OF_WEEK = "day_of_week"
RULE_TIME_WINDOW = "time_window"
RULE_DATE_BASED = "date_based"
RULE_TYPES = (RULE_DAY_OF_WEEK, RULE_TIME_WINDOW, RULE_DATE_BASED)


class SurchargeModel(Base, AuditMixin):
    """A named set of surcharge rules owned by an organization."""

    __tablename__ = "surcharge_models"

    model_id: Mapped[int] = mapped_column(
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

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    rules: Mapped[List["SurchargeRule"]] = relationship(
        "SurchargeRule",
        back_populates="model",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<SurchargeModel {self.model_id}: {self.name}>"

    @property
    def active_rules(self) -> list["SurchargeRule"]:
        """Active rules in evaluation order: priority desc, then id."""
        return sorted(
            (rule for rule in self.rules if rule.is_active),
            key=lambda rule: (-rule.priority, rule.rule_id)
        )


class SurchargeRule(Base):
    """
    One premium condition.

    Matching fields depend on rule_type:
        day_of_week  - day_of_week ('monday'..'sunday')
        time_window  - window_start_time / window_end_time as 'HH:MM';
                       end <= start spans midnight
        date_based   - specific_date, or date_range_start..date_range_end

    percentage is the premium fraction (0.50 = 50% extra).
    Rules with persisted calculations are never edited, only deactivated.
    """

    __tablename__ = "surcharge_rules"

    rule_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    model_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("surcharge_models.model_id"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False
    )

    rule_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False
    )

    percentage: Mapped[Decimal] = mapped_column(
        Numeric(6, 4),
        nullable=False
    )

    # day_of_week
    day_of_week: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # time_window
    window_start_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    window_end_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    # date_based
    specific_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    date_range_start: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    date_range_end: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Stable ordering among otherwise equal rules
    priority: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False
    )

    # Optional rule validity, naive UTC
    valid_from: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    valid_until: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    model: Mapped["SurchargeModel"] = relationship(
        "SurchargeModel",
        back_populates="rules"
    )

    def __repr__(self) -> str:
        return f"<SurchargeRule {self.rule_id}: {self.rule_type} {self.percentage}>"


class SurchargeModelAssignment(Base, PolicyAssignmentMixin):
    """Binds a SurchargeModel to an organization, team or employee."""

    __tablename__ = "surcharge_model_assignments"

    assignment_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    policy_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("surcharge_models.model_id"),
        nullable=False,
        index=True
    )

    policy: Mapped["SurchargeModel"] = relationship("SurchargeModel")

    def __repr__(self) -> str:
        return f"<SurchargeModelAssignment {self.assignment_id} {self.scope}:{self.target_id}>"


class SurchargeCalculation(Base):
    """
    Stored surcharge result for one closed work period.

    At most one row per work period (unique constraint). Recalculation
    deletes the row and writes a new one.
    """

    __tablename__ = "surcharge_calculations"

    calculation_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.employee_id"),
        nullable=False,
        index=True
    )

    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.organization_id"),
        nullable=False
    )

    work_period_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("work_periods.work_period_id"),
        nullable=False,
        unique=True
    )

    surcharge_model_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("surcharge_models.model_id"),
        nullable=False
    )

    # First applied rule, NULL when nothing qualified
    surcharge_rule_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("surcharge_rules.rule_id"),
        nullable=True
    )

    # Local date the work period started on
    calculation_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True
    )

    base_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    qualifying_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    surcharge_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Percentage of the first applied rule
    applied_percentage: Mapped[Decimal] = mapped_column(
        Numeric(6, 4),
        nullable=False,
        default=Decimal("0")
    )

    calculation_details: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False
    )

    surcharge_model: Mapped["SurchargeModel"] = relationship("SurchargeModel")

    def __repr__(self) -> str:
        return (
            f"<SurchargeCalculation {self.calculation_id} "
            f"period={self.work_period_id} +{self.surcharge_minutes}m>"
        )

    @property
    def total_credited_minutes(self) -> int:
        return self.base_minutes + self.surcharge_minutes

    def get_details(self) -> dict:
        """Parse calculation_details JSON."""
        if self.calculation_details:
            return json.loads(self.calculation_details)
        return {}
