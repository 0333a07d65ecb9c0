"""
Typed exceptions for the WorkRule engine.

Every error carries a machine-readable ``code`` so callers can branch on
type instead of parsing messages:

    WorkRuleError (base)
    +-- NotFoundError      NOT_FOUND         referenced row does not exist
    +-- ValidationError    VALIDATION_ERROR  malformed input to a mutation
    +-- ConflictError      CONFLICT          state transition from wrong state
    +-- StorageError       STORAGE_ERROR     persistence layer failed

"No policy applies" and guardrail denials are NOT errors; they are
ordinary return values.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class WorkRuleError(Exception):
    """Base class for all engine errors."""

    code: str = "WORKRULE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(WorkRuleError):
    """A referenced employee, policy, assignment or exception does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any, message: Optional[str] = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message or f"{entity_type} {entity_id} not found")


class ValidationError(WorkRuleError):
    """Caller-correctable input problem. Never retried automatically."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)


class ConflictError(WorkRuleError):
    """A state transition was attempted from the wrong source state."""

    code = "CONFLICT"

    def __init__(
        self,
        entity_type: str,
        entity_id: Any,
        current_status: str,
        required_status: str,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        self.required_status = required_status
        super().__init__(
            f"{entity_type} {entity_id} is '{current_status}', "
            f"expected '{required_status}'"
        )


class StorageError(WorkRuleError):
    """The persistence collaborator failed during a named operation."""

    code = "STORAGE_ERROR"

    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Storage failure in {operation}: {cause}")


@contextmanager
def storage_operation(operation: str) -> Iterator[None]:
    """
    Wrap persistence calls so driver failures surface as StorageError.

    Usage:
        with storage_operation("get_last_clock_out"):
            row = db.execute(query).first()

    Engine errors raised inside the block pass through untouched.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error(
            "storage_failure",
            extra={"operation": operation, "error": str(exc)},
        )
        raise StorageError(operation, exc) from exc
