# WorkRule - Audit Log Model

from datetime import datetime
from typing import Optional, Any, TYPE_CHECKING
import json

from sqlalchemy import String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base
from workrule.timeutils import utc_now

if TYPE_CHECKING:
    from .organization import Employee


class AuditLog(Base):
    """
    Change history for policy configuration and exception decisions.

    Covered changes:
        - Policy assignments created or deactivated
        - Compliance exceptions requested, approved, rejected, used, expired
        - Violations acknowledged by a manager

    old_values and new_values hold JSON snapshots of the row so the
    state at any point can be reconstructed.

    Actions:
        - INSERT: new_values contains the created record
        - UPDATE: old_values and new_values show before/after
    """

    __tablename__ = "audit_log"

    audit_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    table_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True
    )

    record_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True
    )

    # INSERT or UPDATE
    action: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True
    )

    # Comma-separated, UPDATE only
    changed_fields: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True
    )

    old_values: Mapped[Optional[str]] = mapped_column(
        Text,  # nvarchar(max) on SQL Server
        nullable=True
    )

    new_values: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )

    performed_by: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employees.employee_id"),
        nullable=False,
        index=True
    )

    performed_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
        index=True
    )

    # e.g. "exception approved", "superseded by assignment 12"
    context: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True
    )

    performer: Mapped["Employee"] = relationship(
        "Employee",
        foreign_keys=[performed_by]
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.table_name}:{self.record_id} by {self.performed_by}>"

    def get_old_values(self) -> Optional[dict]:
        if self.old_values:
            return json.loads(self.old_values)
        return None

    def get_new_values(self) -> Optional[dict]:
        if self.new_values:
            return json.loads(self.new_values)
        return None

    def get_changes(self) -> dict[str, tuple[Any, Any]]:
        """{field_name: (old_value, new_value)} for UPDATE rows."""
        if self.action != "UPDATE":
            return {}

        old = self.get_old_values() or {}
        new = self.get_new_values() or {}

        changes = {}
        for field in (self.changed_fields or "").split(","):
            field = field.strip()
            if field:
                changes[field] = (old.get(field), new.get(field))

        return changes


def create_audit_entry(
    table_name: str,
    record_id: int,
    action: str,
    performed_by: int,
    old_values: Optional[dict] = None,
    new_values: Optional[dict] = None,
    changed_fields: Optional[list[str]] = None,
    context: Optional[str] = None,
) -> AuditLog:
    """
    Build an AuditLog entry (not yet added to the session).

    Values must already be JSON-serializable; AuditService.capture_state
    takes care of that.
    """
    return AuditLog(
        table_name=table_name,
        record_id=record_id,
        action=action,
        performed_by=performed_by,
        old_values=json.dumps(old_values) if old_values else None,
        new_values=json.dumps(new_values) if new_values else None,
        changed_fields=",".join(sorted(changed_fields)) if changed_fields else None,
        context=context,
    )
