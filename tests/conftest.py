"""
Pytest fixtures for the WorkRule test suite.

Provides:
- An in-memory SQLite database per test (no external services)
- Organization / team / employee fixtures
- Factory fixtures for policies, assignments and work periods
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from workrule.logging_config import reset_logging
from workrule.models import (
    Base,
    BreakRule,
    BreakRuleOption,
    ChangePolicy,
    Employee,
    Organization,
    SurchargeModel,
    SurchargeRule,
    Team,
    WorkPeriod,
    WorkPolicy,
    WorkPolicyRegulation,
    WorkScheduleTemplate,
    WorkScheduleTemplateDay,
)
from workrule.services import AssignmentService


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    session = Session(engine, expire_on_commit=False)
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


# =============================================================================
# Identity
# =============================================================================


@pytest.fixture
def organization(db) -> Organization:
    org = Organization(name="Acme Logistics", surcharges_enabled=True)
    db.add(org)
    db.flush()
    return org


@pytest.fixture
def other_organization(db) -> Organization:
    org = Organization(name="Other Corp")
    db.add(org)
    db.flush()
    return org


@pytest.fixture
def team(db, organization) -> Team:
    team = Team(organization_id=organization.organization_id, name="Warehouse")
    db.add(team)
    db.flush()
    return team


@pytest.fixture
def admin(db, organization) -> Employee:
    admin = Employee(
        organization_id=organization.organization_id,
        first_name="Ada",
        last_name="Admin",
        email="ada@example.com",
    )
    db.add(admin)
    db.flush()
    return admin


@pytest.fixture
def employee(db, organization, team) -> Employee:
    employee = Employee(
        organization_id=organization.organization_id,
        team_id=team.team_id,
        first_name="Sam",
        last_name="Worker",
    )
    db.add(employee)
    db.flush()
    return employee


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_work_policy(db, organization, admin):
    """
    Create a WorkPolicy with a regulation block.

    break_rules: list of (threshold, required, [option kwargs, ...])
    """

    def _make(
        name: str = "Standard",
        organization_id: Optional[int] = None,
        is_active: bool = True,
        regulation_enabled: bool = True,
        break_rules=(),
        **limits,
    ) -> WorkPolicy:
        policy = WorkPolicy(
            organization_id=organization_id or organization.organization_id,
            name=name,
            is_active=is_active,
            regulation_enabled=regulation_enabled,
            created_by=admin.employee_id,
        )
        regulation = WorkPolicyRegulation(**limits)
        for order, (threshold, required, options) in enumerate(break_rules):
            regulation.break_rules.append(BreakRule(
                working_minutes_threshold=threshold,
                required_break_minutes=required,
                sort_order=order,
                options=[
                    BreakRuleOption(sort_order=i, **option)
                    for i, option in enumerate(options)
                ],
            ))
        policy.regulation = regulation
        db.add(policy)
        db.flush()
        return policy

    return _make


@pytest.fixture
def make_change_policy(db, organization, admin):
    def _make(
        name: str = "Corrections",
        self_service_days: int = 0,
        approval_days: int = 0,
        no_approval_required: bool = False,
    ) -> ChangePolicy:
        policy = ChangePolicy(
            organization_id=organization.organization_id,
            name=name,
            self_service_days=self_service_days,
            approval_days=approval_days,
            no_approval_required=no_approval_required,
            created_by=admin.employee_id,
        )
        db.add(policy)
        db.flush()
        return policy

    return _make


@pytest.fixture
def make_surcharge_model(db, organization, admin):
    """rules: list of SurchargeRule kwargs."""

    def _make(rules=(), name: str = "Premiums") -> SurchargeModel:
        model = SurchargeModel(
            organization_id=organization.organization_id,
            name=name,
            created_by=admin.employee_id,
        )
        for rule in rules:
            rule = dict(rule)
            rule["percentage"] = Decimal(str(rule["percentage"]))
            model.rules.append(SurchargeRule(**rule))
        db.add(model)
        db.flush()
        return model

    return _make


@pytest.fixture
def make_schedule(db, organization, admin):
    """days: mapping of weekday -> hours (work days) for detailed/custom templates."""

    def _make(
        name: str = "Full time",
        schedule_type: str = "simple",
        schedule_cycle: str = "weekly",
        hours_per_cycle=None,
        working_days_preset: str = "weekdays",
        days=None,
    ) -> WorkScheduleTemplate:
        template = WorkScheduleTemplate(
            organization_id=organization.organization_id,
            name=name,
            schedule_type=schedule_type,
            schedule_cycle=schedule_cycle,
            hours_per_cycle=Decimal(str(hours_per_cycle)) if hours_per_cycle is not None else None,
            working_days_preset=working_days_preset,
            created_by=admin.employee_id,
        )
        for day, hours in (days or {}).items():
            template.days.append(WorkScheduleTemplateDay(
                day_of_week=day,
                hours_per_day=Decimal(str(hours)),
                is_work_day=hours > 0,
            ))
        db.add(template)
        db.flush()
        return template

    return _make


@pytest.fixture
def assign(db, admin):
    """Assign a policy through AssignmentService as the admin."""

    def _assign(family, policy_id, scope, target_id, **window):
        return AssignmentService(db, family, admin.employee_id).assign(
            policy_id, scope, target_id, **window
        )

    return _assign


@pytest.fixture
def make_work_period(db):
    def _make(employee: Employee, start: datetime, end: Optional[datetime]) -> WorkPeriod:
        period = WorkPeriod(
            employee_id=employee.employee_id,
            organization_id=employee.organization_id,
            start_time=start,
            end_time=end,
            duration_minutes=int((end - start) / timedelta(minutes=1)) if end else None,
            is_active=end is None,
        )
        db.add(period)
        db.flush()
        return period

    return _make
