# WorkRule - Organization, Team and Employee Models
# Minimal identity shapes; the surrounding application owns their CRUD

from datetime import datetime
from typing import Optional, List, TYPE_CHECKING

from sqlalchemy import String, Boolean, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from workrule.timeutils import utc_now

if TYPE_CHECKING:
    from .work_period import WorkPeriod


class Organization(Base):
    """Tenant that owns policies, teams and employees."""

    __tablename__ = "organizations"

    organization_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False
    )

    # Feature flag for premium pay calculation
    surcharges_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False
    )

    teams: Mapped[List["Team"]] = relationship(
        "Team",
        back_populates="organization"
    )

    def __repr__(self) -> str:
        return f"<Organization {self.organization_id}: {self.name}>"


class Team(Base):
    """A group of employees inside one organization."""

    __tablename__ = "teams"

    team_id: Mapped[int] = mapped_column(
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

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False
    )

    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="teams"
    )

    members: Mapped[List["Employee"]] = relationship(
        "Employee",
        back_populates="team"
    )

    def __repr__(self) -> str:
        return f"<Team {self.team_id}: {self.name}>"


class Employee(Base):
    """
    Employee as seen by the policy engine.

    The engine only needs organization and (optional) team membership to
    walk the assignment hierarchy.
    """

    __tablename__ = "employees"

    employee_id: Mapped[int] = mapped_column(
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

    # Employees without a team fall through to organization policies
    team_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("teams.team_id"),
        nullable=True,
        index=True
    )

    first_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False
    )

    last_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False
    )

    team: Mapped[Optional["Team"]] = relationship(
        "Team",
        back_populates="members"
    )

    work_periods: Mapped[List["WorkPeriod"]] = relationship(
        "WorkPeriod",
        back_populates="employee"
    )

    def __repr__(self) -> str:
        return f"<Employee {self.employee_id}: {self.display_name}>"

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
