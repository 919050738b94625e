"""Sync schema - users, sync clients, sync queue, sync metadata, jobs,
notifications and the syncable entity tables

Revision ID: 001_sync_schema
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_sync_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENTITY_TABLES = ('locations', 'assets', 'tasks', 'schedules')


def _entity_columns():
    """Columns shared by every syncable entity table"""
    return [
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('organization_id', sa.String(36), nullable=False),
        sa.Column('created_by_user_id', sa.String(36), nullable=True),
        sa.Column('updated_by_user_id', sa.String(36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('organization_id', sa.String(36), nullable=False),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_users_organization_id', 'users', ['organization_id'])

    op.create_table(
        'sync_clients',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('device_id', sa.String(255), nullable=False),
        sa.Column('device_name', sa.String(255), nullable=True),
        sa.Column('sync_token', sa.JSON(), nullable=True),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'device_id', name='uq_sync_clients_user_device'),
    )
    op.create_index('ix_sync_clients_user_id', 'sync_clients', ['user_id'])
    op.create_index('ix_sync_clients_last_sync_at', 'sync_clients', ['last_sync_at'])

    op.create_table(
        'sync_queue',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('client_id', sa.String(36), sa.ForeignKey('sync_clients.id', ondelete='CASCADE'), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(100), nullable=True),
        sa.Column('operation', sa.String(16), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='PENDING'),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('client_version', sa.Integer(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_sync_queue_client_status', 'sync_queue', ['client_id', 'status'])
    op.create_index('ix_sync_queue_entity', 'sync_queue', ['entity_type', 'entity_id'])
    op.create_index('ix_sync_queue_created_at', 'sync_queue', ['created_at'])

    op.create_table(
        'sync_metadata',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(100), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('last_modified_by', sa.String(100), nullable=False),
        sa.Column('last_modified_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('checksum', sa.String(64), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('client_id', sa.String(36), sa.ForeignKey('sync_clients.id', ondelete='SET NULL'), nullable=True),
        sa.UniqueConstraint('entity_type', 'entity_id', name='uq_sync_metadata_entity'),
    )
    op.create_index('ix_sync_metadata_type_modified', 'sync_metadata', ['entity_type', 'last_modified_at'])
    op.create_index('ix_sync_metadata_deleted_at', 'sync_metadata', ['deleted_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('organization_id', sa.String(36), nullable=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_organization_id', 'notifications', ['organization_id'])
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    op.create_table(
        'jobs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('job_type', sa.String(64), nullable=False),
        sa.Column('status', sa.String(32), nullable=False, server_default='queued'),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_jobs_job_type', 'jobs', ['job_type'])
    op.create_index('ix_jobs_status', 'jobs', ['status'])
    op.create_index('ix_jobs_status_priority', 'jobs', ['status', 'priority', 'created_at'])

    # Syncable entity tables
    op.create_table(
        'locations',
        *_entity_columns(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('parent_id', sa.String(36), nullable=True),
    )
    op.create_index('ix_locations_parent_id', 'locations', ['parent_id'])

    op.create_table(
        'assets',
        *_entity_columns(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(32), nullable=False, server_default='OPERATIONAL'),
        sa.Column('location_id', sa.String(36), nullable=True),
        sa.Column('serial_number', sa.String(255), nullable=True),
        sa.Column('custom_fields', sa.JSON(), nullable=True),
    )
    op.create_index('ix_assets_location_id', 'assets', ['location_id'])

    op.create_table(
        'tasks',
        *_entity_columns(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('status', sa.String(32), nullable=False, server_default='PLANNED'),
        sa.Column('priority', sa.String(16), nullable=False, server_default='MEDIUM'),
        sa.Column('asset_id', sa.String(36), nullable=True),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_tasks_asset_id', 'tasks', ['asset_id'])

    op.create_table(
        'schedules',
        *_entity_columns(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('asset_id', sa.String(36), nullable=True),
        sa.Column('recurrence_rule', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_schedules_asset_id', 'schedules', ['asset_id'])

    for table in ENTITY_TABLES:
        op.create_index(f'ix_{table}_organization_id', table, ['organization_id'])


def downgrade() -> None:
    for table in reversed(ENTITY_TABLES):
        op.drop_table(table)
    op.drop_table('jobs')
    op.drop_table('notifications')
    op.drop_table('sync_metadata')
    op.drop_table('sync_queue')
    op.drop_table('sync_clients')
    op.drop_table('users')
