# WorkRule - Exception Workflow Service
# Pre-approved, one-shot waivers of a guardrail rule

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from workrule.config import get_settings
from workrule.errors import ConflictError, NotFoundError, ValidationError, storage_operation
from workrule.models import ComplianceException, Employee
from workrule.models.compliance_exception import (
    EXCEPTION_TYPES,
    STATUS_APPROVED,
    STATUS_EXPIRED,
    STATUS_PENDING,
    STATUS_REJECTED,
    STATUS_USED,
)
from workrule.services.audit import AuditService
from workrule.timeutils import to_utc_naive, utc_now

logger = logging.getLogger(__name__)


class ExceptionWorkflowService:
    """
    State machine for compliance exceptions.

    Usage:
        workflow = ExceptionWorkflowService(db, current_user_id)

        exception = workflow.request_exception(employee_id, "rest_period", "Night shift swap")
        workflow.approve_exception(exception.exception_id, manager_id)

        # Later, once the guardrail let the employee clock in on it
        workflow.mark_exception_as_used(exception.exception_id, work_period_id=period_id)
        db.commit()

    Every transition is a guarded UPDATE on the source state, so two
    racing callers cannot both move the same row. A transition from the
    wrong state raises ConflictError; an unknown id raises NotFoundError.
    """

    def __init__(self, db: Session, current_user_id: Optional[int] = None):
        self.db = db
        self.current_user_id = current_user_id
        self.settings = get_settings()

    def _now(self, now: Optional[datetime]) -> datetime:
        return to_utc_naive(now) if now is not None else utc_now()

    def get_exception(self, exception_id: int) -> ComplianceException:
        with storage_operation("get_exception"):
            exception = self.db.get(ComplianceException, exception_id)
        if exception is None:
            raise NotFoundError("compliance_exception", exception_id)
        return exception

    def request_exception(
        self,
        employee_id: int,
        exception_type: str,
        reason: str,
        planned_duration_minutes: Optional[int] = None,
        created_by: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ComplianceException:
        """
        Create a pending exception valid for the configured window
        (24 hours by default) starting now.
        """
        if exception_type not in EXCEPTION_TYPES:
            raise ValidationError(
                f"Unknown exception type '{exception_type}'",
                field="exception_type",
                value=exception_type,
            )
        if not reason or not reason.strip():
            raise ValidationError("A reason is required", field="reason", value=reason)
        if planned_duration_minutes is not None and planned_duration_minutes <= 0:
            raise ValidationError(
                "planned_duration_minutes must be positive",
                field="planned_duration_minutes",
                value=planned_duration_minutes,
            )

        with storage_operation("get_employee"):
            employee = self.db.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("employee", employee_id)

        valid_from = self._now(now)
        creator = created_by or self.current_user_id or employee_id
        exception = ComplianceException(
            organization_id=employee.organization_id,
            employee_id=employee_id,
            exception_type=exception_type,
            status=STATUS_PENDING,
            reason=reason.strip(),
            planned_duration_minutes=planned_duration_minutes,
            valid_from=valid_from,
            valid_until=valid_from + timedelta(hours=self.settings.exception_validity_hours),
            created_by=creator,
            created_at=valid_from,
        )

        with storage_operation("create_exception"):
            self.db.add(exception)
            self.db.flush()
            AuditService(self.db, creator).log_insert(exception, context="exception requested")

        logger.info(
            "exception_requested",
            extra={
                "exception_id": exception.exception_id,
                "employee_id": employee_id,
                "exception_type": exception_type,
                "valid_until": exception.valid_until,
            },
        )
        return exception

    def _transition(
        self,
        exception_id: int,
        required_status: str,
        values: dict[str, Any],
        performed_by: int,
        context: str,
        operation: str,
        extra_guard: Optional[Any] = None,
    ) -> ComplianceException:
        """Guarded UPDATE from required_status, with audit."""
        exception = self.get_exception(exception_id)
        audit = AuditService(self.db, performed_by)
        old_state = audit.capture_state(exception)

        statement = (
            update(ComplianceException)
            .where(
                ComplianceException.exception_id == exception_id,
                ComplianceException.status == required_status,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if extra_guard is not None:
            statement = statement.where(extra_guard)

        with storage_operation(operation):
            result = self.db.execute(statement)
            self.db.refresh(exception)

        if result.rowcount == 0:
            raise ConflictError(
                "compliance_exception",
                exception_id,
                current_status=exception.status,
                required_status=required_status,
            )

        with storage_operation(operation):
            audit.log_update(exception, old_state, context=context)
            self.db.flush()

        logger.info(
            context.replace(" ", "_"),
            extra={
                "exception_id": exception_id,
                "employee_id": exception.employee_id,
                "status": exception.status,
                "performed_by": performed_by,
            },
        )
        return exception

    def approve_exception(
        self,
        exception_id: int,
        approver_id: int,
        now: Optional[datetime] = None,
    ) -> ComplianceException:
        return self._transition(
            exception_id,
            required_status=STATUS_PENDING,
            values={
                "status": STATUS_APPROVED,
                "approver_id": approver_id,
                "approved_at": self._now(now),
            },
            performed_by=approver_id,
            context="exception approved",
            operation="approve_exception",
        )

    def reject_exception(
        self,
        exception_id: int,
        approver_id: int,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ComplianceException:
        return self._transition(
            exception_id,
            required_status=STATUS_PENDING,
            values={
                "status": STATUS_REJECTED,
                "approver_id": approver_id,
                "rejected_at": self._now(now),
                "rejection_reason": reason,
            },
            performed_by=approver_id,
            context="exception rejected",
            operation="reject_exception",
        )

    def mark_exception_as_used(
        self,
        exception_id: int,
        work_period_id: Optional[int] = None,
        actual_duration_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ComplianceException:
        """
        Consume an approved exception. Works once; a second call raises
        ConflictError because the row is no longer approved.
        """
        exception = self.get_exception(exception_id)
        return self._transition(
            exception_id,
            required_status=STATUS_APPROVED,
            values={
                "status": STATUS_USED,
                "was_used": True,
                "used_at": self._now(now),
                "work_period_id": work_period_id,
                "actual_duration_minutes": actual_duration_minutes,
            },
            performed_by=self.current_user_id or exception.employee_id,
            context="exception used",
            operation="mark_exception_used",
            extra_guard=ComplianceException.was_used.is_(False),
        )

    def has_valid_exception(
        self,
        employee_id: int,
        exception_type: str,
        at: Optional[datetime] = None,
    ) -> Optional[ComplianceException]:
        """
        The approved, unused exception covering ``at``, or None.

        Validity is decided by the window, so an approved row past
        valid_until is ignored even before the sweep marks it expired.
        When several qualify, the one expiring first is returned.
        """
        instant = self._now(at)
        query = (
            select(ComplianceException)
            .where(
                ComplianceException.employee_id == employee_id,
                ComplianceException.exception_type == exception_type,
                ComplianceException.status == STATUS_APPROVED,
                ComplianceException.was_used.is_(False),
                ComplianceException.valid_from <= instant,
                ComplianceException.valid_until >= instant,
            )
            .order_by(ComplianceException.valid_until.asc(), ComplianceException.exception_id.asc())
            .limit(1)
        )
        with storage_operation("has_valid_exception"):
            return self.db.execute(query).scalar_one_or_none()

    def get_pending_exceptions(self, organization_id: int) -> list[ComplianceException]:
        query = (
            select(ComplianceException)
            .where(
                ComplianceException.organization_id == organization_id,
                ComplianceException.status == STATUS_PENDING,
            )
            .order_by(ComplianceException.created_at.desc(), ComplianceException.exception_id.desc())
        )
        with storage_operation("get_pending_exceptions"):
            return list(self.db.execute(query).scalars().all())

    def expire_old_exceptions(
        self,
        organization_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Sweep pending exceptions whose window has passed to expired.

        Only rows still pending are touched, so an approval racing the
        sweep is never overwritten. Returns the number of rows expired.
        """
        instant = self._now(now)
        query = select(ComplianceException).where(
            ComplianceException.status == STATUS_PENDING,
            ComplianceException.valid_until <= instant,
        )
        if organization_id is not None:
            query = query.where(ComplianceException.organization_id == organization_id)

        expired = 0
        with storage_operation("expire_old_exceptions"):
            candidates = self.db.execute(query).scalars().all()
            for exception in candidates:
                audit = AuditService(self.db, self.current_user_id or exception.created_by)
                old_state = audit.capture_state(exception)
                result = self.db.execute(
                    update(ComplianceException)
                    .where(
                        ComplianceException.exception_id == exception.exception_id,
                        ComplianceException.status == STATUS_PENDING,
                    )
                    .values(status=STATUS_EXPIRED)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    continue
                self.db.refresh(exception)
                audit.log_update(exception, old_state, context="exception expired")
                expired += 1
            self.db.flush()

        logger.info(
            "exceptions_expired",
            extra={"organization_id": organization_id, "expired_count": expired},
        )
        return expired

    def get_my_exceptions(
        self,
        employee_id: int,
        include_expired: bool = False,
    ) -> list[ComplianceException]:
        """An employee's own exceptions, newest first."""
        query = select(ComplianceException).where(ComplianceException.employee_id == employee_id)
        if not include_expired:
            query = query.where(ComplianceException.status != STATUS_EXPIRED)
        query = (
            query
            .order_by(ComplianceException.created_at.desc(), ComplianceException.exception_id.desc())
            .limit(self.settings.my_exceptions_limit)
        )
        with storage_operation("get_my_exceptions"):
            return list(self.db.execute(query).scalars().all())
