# WorkRule - Work Schedule Template Models

from decimal import Decimal
from typing import Optional, List

from sqlalchemy import String, Boolean, Integer, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, AuditMixin
from .assignment import PolicyAssignmentMixin


SCHEDULE_CYCLES = ("daily", "weekly", "biweekly", "monthly", "yearly")
SCHEDULE_SIMPLE = "simple"
SCHEDULE_DETAILED = "detailed"


class WorkScheduleTemplate(Base, AuditMixin):
    """
    Target working time for employees.

    Simple schedules give hours_per_cycle for a cycle (daily, weekly,
    biweekly, monthly, yearly) spread over a working-days preset.
    Detailed schedules list hours per weekday in ``days``.
    """

    __tablename__ = "work_schedule_templates"

    template_id: Mapped[int] = mapped_column(
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

    schedule_cycle: Mapped[str] = mapped_column(
        String(10),
        default="weekly",
        nullable=False
    )

    # simple | detailed
    schedule_type: Mapped[str] = mapped_column(
        String(10),
        default=SCHEDULE_SIMPLE,
        nullable=False
    )

    # weekdays | weekends | all_days | custom (custom reads is_work_day from days)
    working_days_preset: Mapped[str] = mapped_column(
        String(20),
        default="weekdays",
        nullable=False
    )

    hours_per_cycle: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(7, 2),
        nullable=True
    )

    home_office_days_per_cycle: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    days: Mapped[List["WorkScheduleTemplateDay"]] = relationship(
        "WorkScheduleTemplateDay",
        back_populates="template",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<WorkScheduleTemplate {self.template_id}: {self.name}>"


class WorkScheduleTemplateDay(Base):
    """Hours for one weekday of a detailed schedule."""

    __tablename__ = "work_schedule_template_days"

    day_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    template_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("work_schedule_templates.template_id"),
        nullable=False,
        index=True
    )

    # 'monday'..'sunday'
    day_of_week: Mapped[str] = mapped_column(
        String(10),
        nullable=False
    )

    hours_per_day: Mapped[Decimal] = mapped_column(
        Numeric(4, 2),
        default=Decimal("0"),
        nullable=False
    )

    is_work_day: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    template: Mapped["WorkScheduleTemplate"] = relationship(
        "WorkScheduleTemplate",
        back_populates="days"
    )


class WorkScheduleAssignment(Base, PolicyAssignmentMixin):
    """Binds a WorkScheduleTemplate to an organization, team or employee."""

    __tablename__ = "work_schedule_assignments"

    assignment_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    policy_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("work_schedule_templates.template_id"),
        nullable=False,
        index=True
    )

    policy: Mapped["WorkScheduleTemplate"] = relationship("WorkScheduleTemplate")

    def __repr__(self) -> str:
        return f"<WorkScheduleAssignment {self.assignment_id} {self.scope}:{self.target_id}>"
