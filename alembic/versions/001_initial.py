"""Initial migration - monitored entities, incidents, logs, alert rules, uptime

Revision ID: 001
Create Date: 2026-10-18
"""
import uuid

from alembic import op
import sqlalchemy as sa

revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _fk(name: str, target: str, nullable: bool = False, index: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.Uuid(),
        sa.ForeignKey(target, ondelete='CASCADE'),
        nullable=nullable,
        index=index,
    )


def _check_columns() -> list[sa.Column]:
    """Check configuration and runtime state shared by apps and components."""
    return [
        sa.Column('status', sa.String(30), nullable=False, server_default='OPERATIONAL'),
        sa.Column('check_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('check_type', sa.String(30), nullable=False, server_default='NONE'),
        sa.Column('check_target', sa.String(500), nullable=True),
        sa.Column('check_interval_seconds', sa.Integer(), nullable=True, server_default='60'),
        sa.Column('check_timeout_seconds', sa.Integer(), nullable=True, server_default='10'),
        sa.Column('check_expected_status', sa.Integer(), nullable=True, server_default='200'),
        sa.Column('check_failure_threshold', sa.Integer(), nullable=True, server_default='3'),
        sa.Column('last_check_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_check_success', sa.Boolean(), nullable=True),
        sa.Column('last_check_message', sa.String(1000), nullable=True),
        sa.Column('consecutive_failures', sa.Integer(), nullable=False, server_default='0'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
    ]


def upgrade() -> None:
    # Monitored entities
    op.create_table(
        'status_apps',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tenant_id', sa.Uuid(), nullable=True, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=True, unique=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_check_columns(),
    )
    op.create_index('ix_status_apps_status', 'status_apps', ['status'])

    op.create_table(
        'status_components',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _fk('app_id', 'status_apps.id', index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('check_inherit_from_app', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_check_columns(),
    )
    op.create_index('ix_status_components_status', 'status_components', ['status'])

    # Incidents and their timeline
    op.create_table(
        'status_incidents',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _fk('app_id', 'status_apps.id', index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column(
            'status', sa.String(20), nullable=False, server_default='INVESTIGATING', index=True
        ),
        sa.Column('severity', sa.String(20), nullable=False, server_default='MINOR'),
        sa.Column('origin', sa.String(20), nullable=False, server_default='MANUAL'),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
    )

    op.create_table(
        'status_incident_updates',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _fk('incident_id', 'status_incidents.id', index=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        _timestamp('created_at'),
    )

    op.create_table(
        'status_incident_components',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _fk('incident_id', 'status_incidents.id', index=True),
        _fk('component_id', 'status_components.id', index=True),
    )

    # Maintenance windows and subscribers (written by the admin surface)
    op.create_table(
        'status_maintenances',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _fk('app_id', 'status_apps.id', index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='SCHEDULED'),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp('created_at'),
    )

    op.create_table(
        'notification_subscribers',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _fk('app_id', 'status_apps.id', index=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp('created_at'),
    )

    # Raw logs and per-minute metric buckets
    op.create_table(
        'logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tenant_id', sa.Uuid(), nullable=True, index=True),
        sa.Column('log_timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('level', sa.String(20), nullable=False),
        sa.Column('service', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('trace_id', sa.String(255), nullable=True),
        _timestamp('created_at'),
    )
    op.create_index('idx_logs_timestamp', 'logs', ['log_timestamp'])

    op.create_table(
        'log_metrics',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tenant_id', sa.Uuid(), nullable=True),
        sa.Column('service', sa.String(255), nullable=False),
        sa.Column('level', sa.String(20), nullable=False),
        sa.Column('bucket', sa.DateTime(timezone=True), nullable=False),
        sa.Column('bucket_type', sa.String(10), nullable=False, server_default='MINUTE'),
        sa.Column('count', sa.BigInteger(), nullable=False, server_default='0'),
        _timestamp('updated_at'),
        sa.UniqueConstraint(
            'tenant_id', 'service', 'level', 'bucket', 'bucket_type', name='uq_log_metrics_key'
        ),
    )
    op.create_index('idx_log_metrics_bucket', 'log_metrics', ['bucket'])

    # Log alert rules
    op.create_table(
        'alert_rules',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tenant_id', sa.Uuid(), nullable=True, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('service', sa.String(255), nullable=True),
        sa.Column('level', sa.String(20), nullable=True),
        sa.Column('threshold_count', sa.BigInteger(), nullable=False),
        sa.Column('window_minutes', sa.Integer(), nullable=False),
        sa.Column('cooldown_minutes', sa.Integer(), nullable=True, server_default='15'),
        sa.Column('notification_type', sa.String(20), nullable=False),
        sa.Column('notification_target', sa.String(500), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        sa.Column('last_fired_at', sa.DateTime(timezone=True), nullable=True),
        _timestamp('created_at'),
    )

    # Daily uptime history
    op.create_table(
        'status_uptime_history',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _fk('app_id', 'status_apps.id', nullable=False),
        _fk('component_id', 'status_components.id', nullable=True),
        sa.Column('record_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='OPERATIONAL'),
        sa.Column('uptime_percentage', sa.Numeric(6, 3), nullable=False, server_default='100.000'),
        sa.Column('total_minutes', sa.Integer(), nullable=False, server_default='1440'),
        sa.Column('operational_minutes', sa.Integer(), nullable=False, server_default='1440'),
        sa.Column('degraded_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('outage_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('incident_count', sa.Integer(), nullable=False, server_default='0'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
    )
    op.create_index(
        'idx_uptime_app_date', 'status_uptime_history', ['app_id', 'component_id', 'record_date']
    )
    # One record per entity per day; NULL component_id needs its own partial index
    op.create_index(
        'uq_uptime_app_day', 'status_uptime_history', ['app_id', 'record_date'],
        unique=True, postgresql_where=sa.text('component_id IS NULL'),
    )
    op.create_index(
        'uq_uptime_component_day', 'status_uptime_history', ['component_id', 'record_date'],
        unique=True, postgresql_where=sa.text('component_id IS NOT NULL'),
    )

    # Runtime-editable health check settings
    op.create_table(
        'health_check_settings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('setting_key', sa.String(100), nullable=False, unique=True),
        sa.Column('setting_value', sa.String(500), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        _timestamp('updated_at'),
    )
    op.bulk_insert(
        sa.table(
            'health_check_settings',
            sa.column('id', sa.Uuid()),
            sa.column('setting_key', sa.String()),
            sa.column('setting_value', sa.String()),
            sa.column('description', sa.String()),
        ),
        [
            {
                'id': setting_id,
                'setting_key': key,
                'setting_value': value,
                'description': description,
            }
            for setting_id, key, value, description in _default_settings()
        ],
    )


def _default_settings():
    return [
        (uuid.uuid4(), 'enabled', 'true', 'Master switch for scheduled health checks'),
        (uuid.uuid4(), 'scheduler_interval_seconds', '10', 'Seconds between scheduler ticks'),
        (uuid.uuid4(), 'pool_size', '10', 'Number of concurrent check workers'),
        (uuid.uuid4(), 'default_interval_seconds', '60', 'Interval for entities without their own'),
        (uuid.uuid4(), 'default_timeout_seconds', '10', 'Timeout for entities without their own'),
    ]


def downgrade() -> None:
    op.drop_table('health_check_settings')
    op.drop_index('uq_uptime_component_day', table_name='status_uptime_history')
    op.drop_index('uq_uptime_app_day', table_name='status_uptime_history')
    op.drop_index('idx_uptime_app_date', table_name='status_uptime_history')
    op.drop_table('status_uptime_history')
    op.drop_table('alert_rules')
    op.drop_index('idx_log_metrics_bucket', table_name='log_metrics')
    op.drop_table('log_metrics')
    op.drop_index('idx_logs_timestamp', table_name='logs')
    op.drop_table('logs')
    op.drop_table('notification_subscribers')
    op.drop_table('status_maintenances')
    op.drop_table('status_incident_components')
    op.drop_table('status_incident_updates')
    op.drop_table('status_incidents')
    op.drop_index('ix_status_components_status', table_name='status_components')
    op.drop_table('status_components')
    op.drop_index('ix_status_apps_status', table_name='status_apps')
    op.drop_table('status_apps')
