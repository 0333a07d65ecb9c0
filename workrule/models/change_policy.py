# WorkRule - Change Policy Models
# How far back employees may edit their own time records

from typing import Optional

from sqlalchemy import String, Boolean, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, AuditMixin
from .assignment import PolicyAssignmentMixin


class ChangePolicy(Base, AuditMixin):
    """
    Correction window for past work periods.

    Edits up to self_service_days back are applied directly; the next
    approval_days need a manager; anything older is forbidden.
    no_approval_required switches the policy into trust mode.
    """

    __tablename__ = "change_policies"

    change_policy_id: Mapped[int] = mapped_column(
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

    self_service_days: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False
    )

    approval_days: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False
    )

    no_approval_required: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )

    notify_all_managers: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<ChangePolicy {self.change_policy_id}: {self.name}>"


class ChangePolicyAssignment(Base, PolicyAssignmentMixin):
    """Binds a ChangePolicy to an organization, team or employee."""

    __tablename__ = "change_policy_assignments"

    assignment_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    policy_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("change_policies.change_policy_id"),
        nullable=False,
        index=True
    )

    policy: Mapped["ChangePolicy"] = relationship("ChangePolicy")

    def __repr__(self) -> str:
        return f"<ChangePolicyAssignment {self.assignment_id} {self.scope}:{self.target_id}>"
