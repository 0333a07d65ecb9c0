# WorkRule - Compliance Exception Model

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Boolean, Integer, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


EXCEPTION_TYPES = ("rest_period", "overtime_daily", "overtime_weekly", "overtime_monthly")

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_EXPIRED = "expired"
STATUS_USED = "used"


class ComplianceException(Base, TimestampMixin):
    """
    A pre-approved, one-shot waiver of one guardrail rule for one employee.

    State machine:
        pending  -approve->  approved  -mark used->  used
        pending  -reject->   rejected
        pending  -sweep->    expired

    An approved row is only usable while valid_from <= now <= valid_until
    and was_used is False, whether or not the sweep has run yet.
    """

    __tablename__ = "compliance_exceptions"

    __table_args__ = (
        Index("ix_compliance_exceptions_lookup", "employee_id", "exception_type", "status"),
        Index("ix_compliance_exceptions_org_status", "organization_id", "status"),
    )

    exception_id: Mapped[int] = mapped_column(
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

    exception_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(10),
        default=STATUS_PENDING,
        nullable=False
    )

    reason: Mapped[str] = mapped_column(
        String(500),
        nullable=False
    )

    planned_duration_minutes: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True
    )

    # Grant window, naive UTC
    valid_from: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False
    )

    valid_until: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False
    )

    # Decision
    approver_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("employees.employee_id"),
        nullable=True
    )

    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    rejection_reason: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True
    )

    # Consumption; only ever flips False -> True
    was_used: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )

    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    work_period_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("work_periods.work_period_id"),
        nullable=True
    )

    actual_duration_minutes: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True
    )

    created_by: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.employee_id"),
        nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<ComplianceException {self.exception_id} {self.exception_type} "
            f"emp={self.employee_id} {self.status}>"
        )

    def is_valid_at(self, instant: datetime) -> bool:
        """Usable for a guardrail decision at instant."""
        return (
            self.status == STATUS_APPROVED
            and not self.was_used
            and self.valid_from <= instant <= self.valid_until
        )
