"""Initial schema - all tables

Revision ID: 001
Revises:
Create Date: 2026-01-01 00:00:00.000000

This migration creates all tables for WorkRule:
- organizations, teams, employees: identity shapes the engine walks
- work_periods: clock-in/clock-out sessions
- work_policies (+ regulations, break rules, break rule options)
- work_policy_violations: guardrail violation log
- change_policies, surcharge_models (+ rules), work_schedule_templates (+ days)
- one *_assignments table per policy family
- surcharge_calculations: stored premium results per work period
- compliance_exceptions: pre-approved guardrail waivers
- audit_log: change tracking
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from workrule.config import get_settings

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Get schema from config
settings = get_settings()
SCHEMA = settings.db_schema  # None keeps the database default


def _ref(column: str) -> str:
    return f'{SCHEMA}.{column}' if SCHEMA else column


def _now():
    return sa.text('CURRENT_TIMESTAMP')


def _audit_columns(table: str) -> list:
    """created_at/created_by/modified_at/modified_by with their foreign keys."""
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_now()),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('modified_at', sa.DateTime(), nullable=True),
        sa.Column('modified_by', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], [_ref('employees.employee_id')], name=f'fk_{table}_created_by'),
        sa.ForeignKeyConstraint(['modified_by'], [_ref('employees.employee_id')], name=f'fk_{table}_modified_by'),
    ]


def _create_assignment_table(table: str, policy_column: str) -> None:
    """Assignment tables share every column except the policy they point at."""
    op.create_table(
        table,
        sa.Column('assignment_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('policy_id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('scope', sa.String(length=20), nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=True),
        sa.Column('employee_id', sa.Integer(), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('effective_from', sa.DateTime(), nullable=True),
        sa.Column('effective_until', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_audit_columns(table),
        sa.ForeignKeyConstraint(['policy_id'], [_ref(policy_column)], name=f'fk_{table}_policy'),
        sa.ForeignKeyConstraint(['organization_id'], [_ref('organizations.organization_id')], name=f'fk_{table}_organization'),
        sa.ForeignKeyConstraint(['team_id'], [_ref('teams.team_id')], name=f'fk_{table}_team'),
        sa.ForeignKeyConstraint(['employee_id'], [_ref('employees.employee_id')], name=f'fk_{table}_employee'),
        sa.PrimaryKeyConstraint('assignment_id'),
        schema=SCHEMA,
    )
    for column in ('policy_id', 'organization_id', 'team_id', 'employee_id', 'is_active'):
        op.create_index(f'ix_{table}_{column}', table, [column], schema=SCHEMA)


def upgrade() -> None:
    # Create schema if specified and doesn't exist (SQL Server only)
    if SCHEMA and op.get_bind().dialect.name == 'mssql':
        op.execute(f"IF NOT EXISTS (SELECT * FROM sys.schemas WHERE name = '{SCHEMA}') EXEC('CREATE SCHEMA {SCHEMA}')")

    # Organizations table
    op.create_table(
        'organizations',
        sa.Column('organization_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('surcharges_enabled', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_now()),
        sa.PrimaryKeyConstraint('organization_id'),
        schema=SCHEMA,
    )

    # Teams table
    op.create_table(
        'teams',
        sa.Column('team_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['organization_id'], [_ref('organizations.organization_id')], name='fk_teams_organization'),
        sa.PrimaryKeyConstraint('team_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_teams_organization_id', 'teams', ['organization_id'], schema=SCHEMA)

    # Employees table
    op.create_table(
        'employees',
        sa.Column('employee_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('team_id', sa.Integer(), nullable=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['organization_id'], [_ref('organizations.organization_id')], name='fk_employees_organization'),
        sa.ForeignKeyConstraint(['team_id'], [_ref('teams.team_id')], name='fk_employees_team'),
        sa.PrimaryKeyConstraint('employee_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_employees_organization_id', 'employees', ['organization_id'], schema=SCHEMA)
    op.create_index('ix_employees_team_id', 'employees', ['team_id'], schema=SCHEMA)

    # Work periods table
    op.create_table(
        'work_periods',
        sa.Column('work_period_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['employee_id'], [_ref('employees.employee_id')], name='fk_work_periods_employee'),
        sa.ForeignKeyConstraint(['organization_id'], [_ref('organizations.organization_id')], name='fk_work_periods_organization'),
        sa.PrimaryKeyConstraint('work_period_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_work_periods_organization_id', 'work_periods', ['organization_id'], schema=SCHEMA)
    op.create_index('ix_work_periods_employee_start', 'work_periods', ['employee_id', 'start_time'], schema=SCHEMA)
    op.create_index('ix_work_periods_employee_end', 'work_periods', ['employee_id', 'end_time'], schema=SCHEMA)

    # Work policies and their regulation block
    op.create_table(
        'work_policies',
        sa.Column('policy_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('schedule_enabled', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('regulation_enabled', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_audit_columns('work_policies'),
        sa.ForeignKeyConstraint(['organization_id'], [_ref('organizations.organization_id')], name='fk_work_policies_organization'),
        sa.PrimaryKeyConstraint('policy_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_work_policies_organization_id', 'work_policies', ['organization_id'], schema=SCHEMA)

    op.create_table(
        'work_policy_regulations',
        sa.Column('regulation_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('policy_id', sa.Integer(), nullable=False),
        sa.Column('max_daily_minutes', sa.Integer(), nullable=True),
        sa.Column('max_weekly_minutes', sa.Integer(), nullable=True),
        sa.Column('max_uninterrupted_minutes', sa.Integer(), nullable=True),
        sa.Column('min_rest_period_minutes', sa.Integer(), nullable=True),
        sa.Column('rest_period_enforcement', sa.String(length=10), nullable=True),
        sa.Column('overtime_daily_threshold_minutes', sa.Integer(), nullable=True),
        sa.Column('overtime_weekly_threshold_minutes', sa.Integer(), nullable=True),
        sa.Column('overtime_monthly_threshold_minutes', sa.Integer(), nullable=True),
        sa.Column('alert_before_limit_minutes', sa.Integer(), nullable=True),
        sa.Column('alert_threshold_percent', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['policy_id'], [_ref('work_policies.policy_id')], name='fk_work_policy_regulations_policy'),
        sa.PrimaryKeyConstraint('regulation_id'),
        sa.UniqueConstraint('policy_id', name='uq_work_policy_regulations_policy'),
        schema=SCHEMA,
    )

    op.create_table(
        'work_policy_break_rules',
        sa.Column('break_rule_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('regulation_id', sa.Integer(), nullable=False),
        sa.Column('working_minutes_threshold', sa.Integer(), nullable=False),
        sa.Column('required_break_minutes', sa.Integer(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['regulation_id'], [_ref('work_policy_regulations.regulation_id')], name='fk_work_policy_break_rules_regulation'),
        sa.PrimaryKeyConstraint('break_rule_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_work_policy_break_rules_regulation_id', 'work_policy_break_rules', ['regulation_id'], schema=SCHEMA)

    op.create_table(
        'work_policy_break_rule_options',
        sa.Column('option_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('break_rule_id', sa.Integer(), nullable=False),
        sa.Column('split_count', sa.Integer(), nullable=True),
        sa.Column('minimum_split_minutes', sa.Integer(), nullable=True),
        sa.Column('minimum_longest_split_minutes', sa.Integer(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['break_rule_id'], [_ref('work_policy_break_rules.break_rule_id')], name='fk_work_policy_break_rule_options_rule'),
        sa.PrimaryKeyConstraint('option_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_work_policy_break_rule_options_break_rule_id', 'work_policy_break_rule_options', ['break_rule_id'], schema=SCHEMA)

    _create_assignment_table('work_policy_assignments', 'work_policies.policy_id')
    op.create_index('ix_work_policy_assignments_scope', 'work_policy_assignments', ['scope', 'is_active'], schema=SCHEMA)

    # Violations log
    op.create_table(
        'work_policy_violations',
        sa.Column('violation_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('policy_id', sa.Integer(), nullable=True),
        sa.Column('work_period_id', sa.Integer(), nullable=True),
        sa.Column('violation_type', sa.String(length=30), nullable=False),
        sa.Column('violation_date', sa.Date(), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_now()),
        sa.Column('acknowledged_by', sa.Integer(), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.Column('acknowledged_note', sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], [_ref('organizations.organization_id')], name='fk_work_policy_violations_organization'),
        sa.ForeignKeyConstraint(['employee_id'], [_ref('employees.employee_id')], name='fk_work_policy_violations_employee'),
        sa.ForeignKeyConstraint(['policy_id'], [_ref('work_policies.policy_id')], name='fk_work_policy_violations_policy'),
        sa.ForeignKeyConstraint(['work_period_id'], [_ref('work_periods.work_period_id')], name='fk_work_policy_violations_work_period'),
        sa.ForeignKeyConstraint(['acknowledged_by'], [_ref('employees.employee_id')], name='fk_work_policy_violations_acknowledged_by'),
        sa.PrimaryKeyConstraint('violation_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_work_policy_violations_violation_type', 'work_policy_violations', ['violation_type'], schema=SCHEMA)
    op.create_index('ix_work_policy_violations_org_date', 'work_policy_violations', ['organization_id', 'violation_date'], schema=SCHEMA)
    op.create_index('ix_work_policy_violations_employee', 'work_policy_violations', ['employee_id', 'violation_date'], schema=SCHEMA)

    # Change policies
    op.create_table(
        'change_policies',
        sa.Column('change_policy_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('self_service_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('approval_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('no_approval_required', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('notify_all_managers', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_audit_columns('change_policies'),
        sa.ForeignKeyConstraint(['organization_id'], [_ref('organizations.organization_id')], name='fk_change_policies_organization'),
        sa.PrimaryKeyConstraint('change_policy_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_change_policies_organization_id', 'change_policies', ['organization_id'], schema=SCHEMA)

    _create_assignment_table('change_policy_assignments', 'change_policies.change_policy_id')

    # Surcharge models and rules
    op.create_table(
        'surcharge_models',
        sa.Column('model_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_audit_columns('surcharge_models'),
        sa.ForeignKeyConstraint(['organization_id'], [_ref('organizations.organization_id')], name='fk_surcharge_models_organization'),
        sa.PrimaryKeyConstraint('model_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_surcharge_models_organization_id', 'surcharge_models', ['organization_id'], schema=SCHEMA)

    op.create_table(
        'surcharge_rules',
        sa.Column('rule_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('model_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('rule_type', sa.String(length=20), nullable=False),
        sa.Column('percentage', sa.Numeric(precision=6, scale=4), nullable=False),
        sa.Column('day_of_week', sa.String(length=10), nullable=True),
        sa.Column('window_start_time', sa.String(length=5), nullable=True),
        sa.Column('window_end_time', sa.String(length=5), nullable=True),
        sa.Column('specific_date', sa.Date(), nullable=True),
        sa.Column('date_range_start', sa.Date(), nullable=True),
        sa.Column('date_range_end', sa.Date(), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('valid_from', sa.DateTime(), nullable=True),
        sa.Column('valid_until', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['model_id'], [_ref('surcharge_models.model_id')], name='fk_surcharge_rules_model'),
        sa.PrimaryKeyConstraint('rule_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_surcharge_rules_model_id', 'surcharge_rules', ['model_id'], schema=SCHEMA)

    _create_assignment_table('surcharge_model_assignments', 'surcharge_models.model_id')

    op.create_table(
        'surcharge_calculations',
        sa.Column('calculation_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('work_period_id', sa.Integer(), nullable=False),
        sa.Column('surcharge_model_id', sa.Integer(), nullable=False),
        sa.Column('surcharge_rule_id', sa.Integer(), nullable=True),
        sa.Column('calculation_date', sa.Date(), nullable=False),
        sa.Column('base_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('qualifying_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('surcharge_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('applied_percentage', sa.Numeric(precision=6, scale=4), nullable=False, server_default='0'),
        sa.Column('calculation_details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['employee_id'], [_ref('employees.employee_id')], name='fk_surcharge_calculations_employee'),
        sa.ForeignKeyConstraint(['organization_id'], [_ref('organizations.organization_id')], name='fk_surcharge_calculations_organization'),
        sa.ForeignKeyConstraint(['work_period_id'], [_ref('work_periods.work_period_id')], name='fk_surcharge_calculations_work_period'),
        sa.ForeignKeyConstraint(['surcharge_model_id'], [_ref('surcharge_models.model_id')], name='fk_surcharge_calculations_model'),
        sa.ForeignKeyConstraint(['surcharge_rule_id'], [_ref('surcharge_rules.rule_id')], name='fk_surcharge_calculations_rule'),
        sa.PrimaryKeyConstraint('calculation_id'),
        sa.UniqueConstraint('work_period_id', name='uq_surcharge_calculations_work_period'),
        schema=SCHEMA,
    )
    op.create_index('ix_surcharge_calculations_employee_id', 'surcharge_calculations', ['employee_id'], schema=SCHEMA)
    op.create_index('ix_surcharge_calculations_calculation_date', 'surcharge_calculations', ['calculation_date'], schema=SCHEMA)

    # Work schedule templates
    op.create_table(
        'work_schedule_templates',
        sa.Column('template_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('schedule_cycle', sa.String(length=10), nullable=False, server_default='weekly'),
        sa.Column('schedule_type', sa.String(length=10), nullable=False, server_default='simple'),
        sa.Column('working_days_preset', sa.String(length=20), nullable=False, server_default='weekdays'),
        sa.Column('hours_per_cycle', sa.Numeric(precision=7, scale=2), nullable=True),
        sa.Column('home_office_days_per_cycle', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_audit_columns('work_schedule_templates'),
        sa.ForeignKeyConstraint(['organization_id'], [_ref('organizations.organization_id')], name='fk_work_schedule_templates_organization'),
        sa.PrimaryKeyConstraint('template_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_work_schedule_templates_organization_id', 'work_schedule_templates', ['organization_id'], schema=SCHEMA)

    op.create_table(
        'work_schedule_template_days',
        sa.Column('day_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=False),
        sa.Column('day_of_week', sa.String(length=10), nullable=False),
        sa.Column('hours_per_day', sa.Numeric(precision=4, scale=2), nullable=False, server_default='0'),
        sa.Column('is_work_day', sa.Boolean(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['template_id'], [_ref('work_schedule_templates.template_id')], name='fk_work_schedule_template_days_template'),
        sa.PrimaryKeyConstraint('day_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_work_schedule_template_days_template_id', 'work_schedule_template_days', ['template_id'], schema=SCHEMA)

    _create_assignment_table('work_schedule_assignments', 'work_schedule_templates.template_id')

    # Compliance exceptions
    op.create_table(
        'compliance_exceptions',
        sa.Column('exception_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('exception_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=10), nullable=False, server_default='pending'),
        sa.Column('reason', sa.String(length=500), nullable=False),
        sa.Column('planned_duration_minutes', sa.Integer(), nullable=True),
        sa.Column('valid_from', sa.DateTime(), nullable=False),
        sa.Column('valid_until', sa.DateTime(), nullable=False),
        sa.Column('approver_id', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejected_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.String(length=500), nullable=True),
        sa.Column('was_used', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('work_period_id', sa.Integer(), nullable=True),
        sa.Column('actual_duration_minutes', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=_now()),
        sa.ForeignKeyConstraint(['organization_id'], [_ref('organizations.organization_id')], name='fk_compliance_exceptions_organization'),
        sa.ForeignKeyConstraint(['employee_id'], [_ref('employees.employee_id')], name='fk_compliance_exceptions_employee'),
        sa.ForeignKeyConstraint(['approver_id'], [_ref('employees.employee_id')], name='fk_compliance_exceptions_approver'),
        sa.ForeignKeyConstraint(['work_period_id'], [_ref('work_periods.work_period_id')], name='fk_compliance_exceptions_work_period'),
        sa.ForeignKeyConstraint(['created_by'], [_ref('employees.employee_id')], name='fk_compliance_exceptions_created_by'),
        sa.PrimaryKeyConstraint('exception_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_compliance_exceptions_lookup', 'compliance_exceptions', ['employee_id', 'exception_type', 'status'], schema=SCHEMA)
    op.create_index('ix_compliance_exceptions_org_status', 'compliance_exceptions', ['organization_id', 'status'], schema=SCHEMA)

    # Audit log table
    op.create_table(
        'audit_log',
        sa.Column('audit_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('table_name', sa.String(length=100), nullable=False),
        sa.Column('record_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('changed_fields', sa.String(length=500), nullable=True),
        sa.Column('old_values', sa.Text(), nullable=True),
        sa.Column('new_values', sa.Text(), nullable=True),
        sa.Column('performed_by', sa.Integer(), nullable=False),
        sa.Column('performed_at', sa.DateTime(), nullable=False, server_default=_now()),
        sa.Column('context', sa.String(length=200), nullable=True),
        sa.ForeignKeyConstraint(['performed_by'], [_ref('employees.employee_id')], name='fk_audit_log_performed_by'),
        sa.PrimaryKeyConstraint('audit_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_audit_log_table_name', 'audit_log', ['table_name'], schema=SCHEMA)
    op.create_index('ix_audit_log_record_id', 'audit_log', ['record_id'], schema=SCHEMA)
    op.create_index('ix_audit_log_action', 'audit_log', ['action'], schema=SCHEMA)
    op.create_index('ix_audit_log_performed_by', 'audit_log', ['performed_by'], schema=SCHEMA)
    op.create_index('ix_audit_log_performed_at', 'audit_log', ['performed_at'], schema=SCHEMA)


def downgrade() -> None:
    op.drop_table('audit_log', schema=SCHEMA)
    op.drop_table('compliance_exceptions', schema=SCHEMA)
    op.drop_table('work_schedule_assignments', schema=SCHEMA)
    op.drop_table('work_schedule_template_days', schema=SCHEMA)
    op.drop_table('work_schedule_templates', schema=SCHEMA)
    op.drop_table('surcharge_calculations', schema=SCHEMA)
    op.drop_table('surcharge_model_assignments', schema=SCHEMA)
    op.drop_table('surcharge_rules', schema=SCHEMA)
    op.drop_table('surcharge_models', schema=SCHEMA)
    op.drop_table('change_policy_assignments', schema=SCHEMA)
    op.drop_table('change_policies', schema=SCHEMA)
    op.drop_table('work_policy_violations', schema=SCHEMA)
    op.drop_table('work_policy_assignments', schema=SCHEMA)
    op.drop_table('work_policy_break_rule_options', schema=SCHEMA)
    op.drop_table('work_policy_break_rules', schema=SCHEMA)
    op.drop_table('work_policy_regulations', schema=SCHEMA)
    op.drop_table('work_policies', schema=SCHEMA)
    op.drop_table('work_periods', schema=SCHEMA)
    op.drop_table('employees', schema=SCHEMA)
    op.drop_table('teams', schema=SCHEMA)
    op.drop_table('organizations', schema=SCHEMA)
