#!/usr/bin/env python
"""
WorkRule - Database Management CLI

Usage:
    python -m scripts.db_manage check                  # Test database connection
    python -m scripts.db_manage init                   # Create tables directly (dev only)
    python -m scripts.db_manage migrate                # Run pending migrations
    python -m scripts.db_manage current                # Show current migration version
    python -m scripts.db_manage history                # Show migration history
    python -m scripts.db_manage expire-exceptions [organization_id]
                                                       # Sweep stale pending exceptions
"""

import logging
import sys
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from workrule.config import get_settings
from workrule.database import check_connection, get_db_context, init_db
from workrule.errors import WorkRuleError
from workrule.logging_config import configure_logging
from workrule.services import ExceptionWorkflowService


settings = get_settings()
logger = logging.getLogger("workrule.scripts.db_manage")

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"


def _alembic_config():
    from alembic.config import Config

    alembic_cfg = Config(str(ALEMBIC_INI))
    alembic_cfg.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    return alembic_cfg


def cmd_check(args):
    """Test database connection."""
    target = "configured URL" if settings.db_url else f"{settings.db_server}/{settings.db_name}"
    print(f"Connecting to: {target}")
    try:
        check_connection()
        print("Connection successful!")
        return True
    except SQLAlchemyError as e:
        print(f"Connection failed: {e}")
        return False


def cmd_init(args):
    """Create all tables from the models, bypassing migrations."""
    if not settings.debug:
        print("ERROR: init is only available in debug mode; use migrate")
        return False

    print("Creating tables...")
    init_db()
    print("Tables created!")
    return True


def cmd_migrate(args):
    """Run pending Alembic migrations."""
    from alembic import command

    print("Running migrations...")
    command.upgrade(_alembic_config(), "head")
    print("Migrations complete!")
    return True


def cmd_current(args):
    """Show current migration version."""
    from alembic import command

    command.current(_alembic_config())
    return True


def cmd_history(args):
    """Show migration history."""
    from alembic import command

    command.history(_alembic_config())
    return True


def cmd_expire_exceptions(args):
    """
    Move pending exceptions past their window to expired.

    Safe to run while managers are approving: only rows still pending
    are touched.
    """
    organization_id = None
    if args:
        try:
            organization_id = int(args[0])
        except ValueError:
            print(f"organization_id must be an integer, got '{args[0]}'")
            return False

    with get_db_context() as db:
        try:
            expired = ExceptionWorkflowService(db).expire_old_exceptions(organization_id)
            db.commit()
        except WorkRuleError as e:
            db.rollback()
            logger.error("exception_sweep_failed", extra={"code": e.code, "error": e.message})
            print(f"Sweep failed: {e.message}")
            return False

    scope = f"organization {organization_id}" if organization_id is not None else "all organizations"
    print(f"Expired {expired} exception(s) for {scope}")
    return True


def cmd_help(args):
    """Show help."""
    print(__doc__)
    return True


COMMANDS = {
    "check": cmd_check,
    "init": cmd_init,
    "migrate": cmd_migrate,
    "current": cmd_current,
    "history": cmd_history,
    "expire-exceptions": cmd_expire_exceptions,
    "help": cmd_help,
}


def main():
    configure_logging()

    if len(sys.argv) < 2:
        cmd_help([])
        sys.exit(1)

    command = sys.argv[1].lower()

    if command not in COMMANDS:
        print(f"Unknown command: {command}")
        cmd_help([])
        sys.exit(1)

    success = COMMANDS[command](sys.argv[2:])
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
