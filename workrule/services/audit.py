# WorkRule - Audit Service
# Change history for assignments, exceptions and violation acknowledgements

from datetime import datetime, date
from decimal import Decimal
from typing import Optional, Any

from sqlalchemy.orm import Session
from sqlalchemy.inspection import inspect

from workrule.models.audit_log import AuditLog, create_audit_entry
from workrule.models.base import Base


class AuditService:
    """
    Service for creating audit log entries.

    Usage:
        audit = AuditService(db_session, current_user_id)

        # For inserts - call after flush to get the ID
        db.add(assignment)
        db.flush()
        audit.log_insert(assignment)

        # For updates - capture old values before modifying
        old_values = audit.capture_state(exception)
        exception.status = "approved"
        audit.log_update(exception, old_values, context="exception approved")

    Only the tables in AUDITED_TABLES are written; other instances are
    silently skipped so callers do not need to check.
    """

    AUDITED_TABLES = {
        "work_policy_assignments",
        "change_policy_assignments",
        "surcharge_model_assignments",
        "work_schedule_assignments",
        "compliance_exceptions",
        "work_policy_violations",
    }

    def __init__(
        self,
        db: Session,
        performed_by: int,
        context: Optional[str] = None,
    ):
        self.db = db
        self.performed_by = performed_by
        self.context = context

    def _serialize_value(self, value: Any) -> Any:
        """Convert a column value to something json.dumps accepts."""
        if value is None:
            return None
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, (int, float, str, bool)):
            return value
        return str(value)

    def _get_primary_key(self, instance: Base) -> int:
        mapper = inspect(type(instance))
        return getattr(instance, mapper.primary_key[0].name)

    def capture_state(self, instance: Base) -> dict[str, Any]:
        """
        Snapshot all column values of instance.

        Call this BEFORE making changes to capture the "old" state.
        """
        mapper = inspect(type(instance))
        return {
            column.key: self._serialize_value(getattr(instance, column.key))
            for column in mapper.column_attrs
        }

    def _diff_states(
        self,
        old_state: dict[str, Any],
        new_state: dict[str, Any]
    ) -> list[str]:
        return [
            key for key in set(old_state) | set(new_state)
            if old_state.get(key) != new_state.get(key)
        ]

    def log_insert(
        self,
        instance: Base,
        context: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """
        Log an INSERT. Call after flush so the instance has its id.
        """
        table_name = instance.__tablename__
        if table_name not in self.AUDITED_TABLES:
            return None

        entry = create_audit_entry(
            table_name=table_name,
            record_id=self._get_primary_key(instance),
            action="INSERT",
            performed_by=self.performed_by,
            new_values=self.capture_state(instance),
            context=context or self.context,
        )
        self.db.add(entry)
        return entry

    def log_update(
        self,
        instance: Base,
        old_state: dict[str, Any],
        context: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """
        Log an UPDATE against a state captured with capture_state.

        Returns None when nothing changed.
        """
        table_name = instance.__tablename__
        if table_name not in self.AUDITED_TABLES:
            return None

        new_state = self.capture_state(instance)
        changed_fields = self._diff_states(old_state, new_state)
        if not changed_fields:
            return None

        entry = create_audit_entry(
            table_name=table_name,
            record_id=self._get_primary_key(instance),
            action="UPDATE",
            performed_by=self.performed_by,
            old_values=old_state,
            new_values=new_state,
            changed_fields=changed_fields,
            context=context or self.context,
        )
        self.db.add(entry)
        return entry


class AuditQuery:
    """
    Helper class for querying audit logs.

    Usage:
        query = AuditQuery(db)
        history = query.get_record_history("compliance_exceptions", 42)
    """

    def __init__(self, db: Session):
        self.db = db

    def get_record_history(
        self,
        table_name: str,
        record_id: int,
    ) -> list[AuditLog]:
        """Full history of one record, oldest first."""
        return (
            self.db.query(AuditLog)
            .filter(
                AuditLog.table_name == table_name,
                AuditLog.record_id == record_id,
            )
            .order_by(AuditLog.performed_at.asc(), AuditLog.audit_id.asc())
            .all()
        )

    def get_changes_by_user(
        self,
        employee_id: int,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AuditLog]:
        """Changes made by one user, newest first."""
        return (
            self.db.query(AuditLog)
            .filter(AuditLog.performed_by == employee_id)
            .order_by(AuditLog.performed_at.desc(), AuditLog.audit_id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
