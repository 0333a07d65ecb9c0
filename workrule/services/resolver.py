# WorkRule - Policy Assignment Resolver
# Hierarchical employee > team > organization resolution, shared by all policy families

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Optional, TypeVar

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from workrule.errors import NotFoundError, ValidationError, storage_operation
from workrule.models import (
    Employee,
    Organization,
    Team,
    WorkPolicy,
    WorkPolicyAssignment,
    ChangePolicy,
    ChangePolicyAssignment,
    SurchargeModel,
    SurchargeModelAssignment,
    WorkScheduleTemplate,
    WorkScheduleAssignment,
)
from workrule.models.assignment import (
    PolicyAssignmentMixin,
    RESOLUTION_ORDER,
    SCOPE_EMPLOYEE,
    SCOPE_ORGANIZATION,
    SCOPE_PRIORITY,
    SCOPE_TEAM,
)
from workrule.schemas import ResolvedPolicy
from workrule.services.audit import AuditService
from workrule.timeutils import to_utc_naive, utc_now

logger = logging.getLogger(__name__)

P = TypeVar("P")


@dataclass(frozen=True)
class PolicyFamily(Generic[P]):
    """
    Everything the resolver needs to know about one kind of policy.

    ``policy_pk`` is the primary key attribute on ``policy_model``; the
    assignment table always points at it through ``policy_id``.
    """

    name: str
    assignment_model: type
    policy_model: type
    policy_pk: str


WORK_POLICY = PolicyFamily("work_policy", WorkPolicyAssignment, WorkPolicy, "policy_id")
CHANGE_POLICY = PolicyFamily("change_policy", ChangePolicyAssignment, ChangePolicy, "change_policy_id")
SURCHARGE_MODEL = PolicyFamily("surcharge_model", SurchargeModelAssignment, SurchargeModel, "model_id")
SCHEDULE_TEMPLATE = PolicyFamily("schedule_template", WorkScheduleAssignment, WorkScheduleTemplate, "template_id")

FAMILIES = {
    family.name: family
    for family in (WORK_POLICY, CHANGE_POLICY, SURCHARGE_MODEL, SCHEDULE_TEMPLATE)
}


def _scope_column(model: type, scope: str):
    if scope == SCOPE_EMPLOYEE:
        return model.employee_id
    if scope == SCOPE_TEAM:
        return model.team_id
    return model.organization_id


def _effective_at(model: type, instant: datetime):
    """SQL form of PolicyAssignmentMixin.is_effective_at."""
    return and_(
        or_(model.effective_from.is_(None), model.effective_from <= instant),
        or_(model.effective_until.is_(None), model.effective_until >= instant),
    )


class PolicyAssignmentResolver(Generic[P]):
    """
    Resolves the single policy of one family that applies to an employee.

    Usage:
        resolver = PolicyAssignmentResolver(db, WORK_POLICY)
        resolved = resolver.resolve(employee_id, at=clock_in_time)
        if resolved is None:
            ...  # no restriction applies

    Scopes are tried most specific first. At each scope only active
    assignments that are valid at the instant and point at an active
    policy count. "Nothing found" is returned as None, never raised.
    """

    def __init__(self, db: Session, family: PolicyFamily[P]):
        self.db = db
        self.family = family

    def get_employee(self, employee_id: int) -> Employee:
        """Load the employee or raise NotFoundError."""
        with storage_operation("get_employee"):
            employee = self.db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("employee", employee_id)
        return employee

    def resolve(
        self,
        employee_id: int,
        at: Optional[datetime] = None,
    ) -> Optional[ResolvedPolicy]:
        employee = self.get_employee(employee_id)
        instant = to_utc_naive(at) if at is not None else utc_now()

        targets = {
            SCOPE_EMPLOYEE: employee.employee_id,
            SCOPE_TEAM: employee.team_id,
            SCOPE_ORGANIZATION: employee.organization_id,
        }

        for scope in RESOLUTION_ORDER:
            target_id = targets[scope]
            if target_id is None:
                continue

            assignment = self._find_assignment(scope, target_id, instant)
            if assignment is None:
                continue

            policy = assignment.policy
            logger.debug(
                "policy_resolved",
                extra={
                    "family": self.family.name,
                    "employee_id": employee_id,
                    "level": scope,
                    "assignment_id": assignment.assignment_id,
                    "policy_id": assignment.policy_id,
                },
            )
            return ResolvedPolicy(
                family=self.family.name,
                policy=policy,
                policy_id=assignment.policy_id,
                policy_name=policy.name,
                assignment_id=assignment.assignment_id,
                assignment_level=scope,
                assigned_via=self._assigned_via(employee, scope),
                evaluated_at=instant,
            )

        logger.debug(
            "policy_unresolved",
            extra={"family": self.family.name, "employee_id": employee_id},
        )
        return None

    def _find_assignment(
        self,
        scope: str,
        target_id: int,
        instant: datetime,
    ) -> Optional[PolicyAssignmentMixin]:
        """
        Best assignment at one scope, or None.

        Several valid rows at the same scope is a data anomaly; the most
        recently created one wins and a warning is logged.
        """
        model = self.family.assignment_model
        policy_model = self.family.policy_model
        policy_pk = getattr(policy_model, self.family.policy_pk)

        query = (
            select(model)
            .join(policy_model, model.policy_id == policy_pk)
            .where(
                model.scope == scope,
                _scope_column(model, scope) == target_id,
                model.is_active.is_(True),
                policy_model.is_active.is_(True),
                _effective_at(model, instant),
            )
            .order_by(model.created_at.desc(), model.assignment_id.desc())
        )

        with storage_operation(f"resolve_{self.family.name}"):
            candidates = self.db.execute(query).scalars().all()

        if not candidates:
            return None

        if len(candidates) > 1:
            logger.warning(
                "multiple_active_assignments",
                extra={
                    "family": self.family.name,
                    "scope": scope,
                    "target_id": target_id,
                    "assignment_ids": [c.assignment_id for c in candidates],
                    "chosen_assignment_id": candidates[0].assignment_id,
                },
            )

        return candidates[0]

    def _assigned_via(self, employee: Employee, scope: str) -> Optional[str]:
        if scope == SCOPE_TEAM and employee.team is not None:
            return employee.team.name
        if scope == SCOPE_ORGANIZATION:
            with storage_operation("get_organization"):
                organization = self.db.get(Organization, employee.organization_id)
            return organization.name if organization else None
        return None


class AssignmentService(Generic[P]):
    """
    Administration of assignments for one policy family.

    Usage:
        service = AssignmentService(db, WORK_POLICY, admin_employee_id)
        assignment = service.assign(policy_id, "team", team_id)
        db.commit()

    Assignments are never deleted. A new assignment deactivates any
    active assignment for the same scope and target whose window
    overlaps it.
    """

    def __init__(self, db: Session, family: PolicyFamily[P], performed_by: int):
        self.db = db
        self.family = family
        self.performed_by = performed_by
        self.audit = AuditService(db, performed_by)

    def assign(
        self,
        policy_id: int,
        scope: str,
        target_id: int,
        effective_from: Optional[datetime] = None,
        effective_until: Optional[datetime] = None,
    ) -> PolicyAssignmentMixin:
        if scope not in SCOPE_PRIORITY:
            raise ValidationError(
                f"Invalid assignment scope '{scope}'",
                field="scope",
                value=scope,
            )

        with storage_operation(f"get_{self.family.name}"):
            policy = self.db.get(self.family.policy_model, policy_id)
        if policy is None:
            raise NotFoundError(self.family.name, policy_id)
        if not policy.is_active:
            raise ValidationError(
                f"{self.family.name} {policy_id} is inactive",
                field="policy_id",
                value=policy_id,
            )

        organization_id = policy.organization_id
        self._validate_target(scope, target_id, organization_id)

        if effective_from is not None:
            effective_from = to_utc_naive(effective_from)
        if effective_until is not None:
            effective_until = to_utc_naive(effective_until)
        if effective_from and effective_until and effective_until < effective_from:
            raise ValidationError(
                "effective_until must not be before effective_from",
                field="effective_until",
                value=effective_until,
            )

        model = self.family.assignment_model
        assignment = model(
            policy_id=policy_id,
            organization_id=organization_id,
            scope=scope,
            team_id=target_id if scope == SCOPE_TEAM else None,
            employee_id=target_id if scope == SCOPE_EMPLOYEE else None,
            priority=SCOPE_PRIORITY[scope],
            effective_from=effective_from,
            effective_until=effective_until,
            is_active=True,
            created_by=self.performed_by,
        )

        with storage_operation(f"assign_{self.family.name}"):
            superseded = self._overlapping_assignments(
                scope, target_id, effective_from, effective_until
            )
            self.db.add(assignment)
            self.db.flush()

            for previous in superseded:
                old_state = self.audit.capture_state(previous)
                previous.deactivate(self.performed_by)
                self.audit.log_update(
                    previous,
                    old_state,
                    context=f"superseded by assignment {assignment.assignment_id}",
                )

            self.audit.log_insert(assignment)
            self.db.flush()

        logger.info(
            "assignment_created",
            extra={
                "family": self.family.name,
                "assignment_id": assignment.assignment_id,
                "policy_id": policy_id,
                "scope": scope,
                "target_id": target_id,
                "superseded": [a.assignment_id for a in superseded],
            },
        )
        return assignment

    def unassign(self, assignment_id: int) -> PolicyAssignmentMixin:
        """Soft-deactivate one assignment."""
        model = self.family.assignment_model
        with storage_operation(f"unassign_{self.family.name}"):
            assignment = self.db.get(model, assignment_id)
            if assignment is None:
                raise NotFoundError(f"{self.family.name}_assignment", assignment_id)

            if assignment.is_active:
                old_state = self.audit.capture_state(assignment)
                assignment.deactivate(self.performed_by)
                self.audit.log_update(assignment, old_state, context="unassigned")
                self.db.flush()

        logger.info(
            "assignment_deactivated",
            extra={"family": self.family.name, "assignment_id": assignment_id},
        )
        return assignment

    def list_assignments(
        self,
        organization_id: int,
        include_inactive: bool = False,
    ) -> list[PolicyAssignmentMixin]:
        """Assignments of an organization, most specific scope first."""
        model = self.family.assignment_model
        query = select(model).where(model.organization_id == organization_id)
        if not include_inactive:
            query = query.where(model.is_active.is_(True))
        query = query.order_by(
            model.priority.desc(),
            model.created_at.desc(),
            model.assignment_id.desc(),
        )
        with storage_operation(f"list_{self.family.name}_assignments"):
            return list(self.db.execute(query).scalars().all())

    def _validate_target(self, scope: str, target_id: int, organization_id: int) -> None:
        if scope == SCOPE_ORGANIZATION:
            if target_id != organization_id:
                raise ValidationError(
                    "Organization assignments must target the policy's organization",
                    field="target_id",
                    value=target_id,
                )
            return

        target_model = Team if scope == SCOPE_TEAM else Employee
        with storage_operation(f"get_{scope}"):
            target = self.db.get(target_model, target_id)
        if target is None or target.organization_id != organization_id:
            raise ValidationError(
                f"Target {scope} {target_id} does not exist in organization {organization_id}",
                field="target_id",
                value=target_id,
            )

    def _overlapping_assignments(
        self,
        scope: str,
        target_id: int,
        effective_from: Optional[datetime],
        effective_until: Optional[datetime],
    ) -> list[PolicyAssignmentMixin]:
        model = self.family.assignment_model
        query = select(model).where(
            model.scope == scope,
            _scope_column(model, scope) == target_id,
            model.is_active.is_(True),
        )
        if effective_from is not None:
            query = query.where(
                or_(model.effective_until.is_(None), model.effective_until >= effective_from)
            )
        if effective_until is not None:
            query = query.where(
                or_(model.effective_from.is_(None), model.effective_from <= effective_until)
            )
        return list(self.db.execute(query).scalars().all())
