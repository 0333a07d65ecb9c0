# WorkRule - Work Period Model
# Clock-in/clock-out sessions; read by the engine, written by the tracking app

from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import Boolean, Integer, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .organization import Employee


class WorkPeriod(Base, TimestampMixin):
    """
    One work session.

    is_active is True while the employee is clocked in; end_time and
    duration_minutes are filled when the session closes.
    """

    __tablename__ = "work_periods"

    __table_args__ = (
        Index("ix_work_periods_employee_start", "employee_id", "start_time"),
        Index("ix_work_periods_employee_end", "employee_id", "end_time"),
    )

    work_period_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.employee_id"),
        nullable=False
    )

    organization_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organizations.organization_id"),
        nullable=False,
        index=True
    )

    start_time: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False
    )

    end_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True
    )

    duration_minutes: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    employee: Mapped["Employee"] = relationship(
        "Employee",
        back_populates="work_periods"
    )

    def __repr__(self) -> str:
        return f"<WorkPeriod {self.work_period_id} emp={self.employee_id} {self.start_time}>"

    @property
    def is_closed(self) -> bool:
        return not self.is_active and self.end_time is not None
