# WorkRule - Policy Assignment Mixin
# Shared columns for the four hierarchical assignment tables

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, declared_attr

from .base import AuditMixin


SCOPE_ORGANIZATION = "organization"
SCOPE_TEAM = "team"
SCOPE_EMPLOYEE = "employee"

# Higher wins
SCOPE_PRIORITY = {
    SCOPE_ORGANIZATION: 0,
    SCOPE_TEAM: 1,
    SCOPE_EMPLOYEE: 2,
}

# Resolution order, most specific first
RESOLUTION_ORDER = (SCOPE_EMPLOYEE, SCOPE_TEAM, SCOPE_ORGANIZATION)


class PolicyAssignmentMixin(AuditMixin):
    """
    Binds one policy to one scope: organization, team or employee.

    Concrete assignment tables add their own primary key, the policy_id
    foreign key and a ``policy`` relationship. Everything else, including
    the scope key columns and the validity window, lives here so the
    resolver can treat all four families alike.

    Exactly one of team_id / employee_id is populated for team and
    employee scope; organization_id is always set (it is also the
    scope key for organization-level assignments).

    Assignments are never hard-deleted. They are deactivated with
    is_active=False, either directly or when superseded.
    """

    @declared_attr
    def organization_id(cls) -> Mapped[int]:
        return mapped_column(
            Integer,
            ForeignKey("organizations.organization_id"),
            nullable=False,
            index=True
        )

    # organization | team | employee
    scope: Mapped[str] = mapped_column(
        String(20),
        nullable=False
    )

    @declared_attr
    def team_id(cls) -> Mapped[Optional[int]]:
        return mapped_column(
            Integer,
            ForeignKey("teams.team_id"),
            nullable=True,
            index=True
        )

    @declared_attr
    def employee_id(cls) -> Mapped[Optional[int]]:
        return mapped_column(
            Integer,
            ForeignKey("employees.employee_id"),
            nullable=True,
            index=True
        )

    # Derived from scope: employee=2, team=1, organization=0
    priority: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0
    )

    # Open bounds (NULL) mean unbounded
    effective_from: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True
    )

    effective_until: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True
    )

    @property
    def target_id(self) -> Optional[int]:
        """The scope-matching key for this assignment."""
        if self.scope == SCOPE_EMPLOYEE:
            return self.employee_id
        if self.scope == SCOPE_TEAM:
            return self.team_id
        return self.organization_id

    def is_effective_at(self, instant: datetime) -> bool:
        """Temporal validity at instant; both bounds inclusive."""
        if self.effective_from is not None and self.effective_from > instant:
            return False
        if self.effective_until is not None and self.effective_until < instant:
            return False
        return True

    def deactivate(self, performed_by: int) -> None:
        """Soft-deactivate this assignment."""
        self.is_active = False
        self.modified_by = performed_by
