"""initial workflow tables

Revision ID: 0001_initial_workflow
Revises:
Create Date: 2025-06-02
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_workflow'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*, closed: bool = False):
    cols = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]
    if closed:
        cols.append(sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True))
    return cols


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=128), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='REQUESTER'),
        sa.Column('department', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_department', 'users', ['department'])

    op.create_table('service_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sr_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('requested_by', sa.String(length=128), nullable=False),
        sa.Column('department', sa.String(length=64), nullable=False),
        sa.Column('contact_person', sa.String(length=128)),
        sa.Column('contact_email', sa.String(length=128)),
        sa.Column('contact_phone', sa.String(length=32)),
        sa.Column('date_of_request', sa.String(length=32)),
        sa.Column('priority', sa.String(length=16), nullable=False, server_default='MEDIUM'),
        sa.Column('service_category', sa.String(length=64), nullable=False),
        sa.Column('brief_subject', sa.String(length=255)),
        sa.Column('work_description', sa.Text()),
        sa.Column('location', sa.String(length=255)),
        sa.Column('reason', sa.Text()),
        sa.Column('budget_source', sa.String(length=128)),
        sa.Column('target_start_date', sa.String(length=32)),
        sa.Column('target_completion_date', sa.String(length=32)),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='SUBMITTED'),
        sa.Column('approvals', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_service_requests_sr_number', 'service_requests', ['sr_number'])
    op.create_index('ix_service_requests_department', 'service_requests', ['department'])
    op.create_index('ix_service_requests_service_category', 'service_requests', ['service_category'])
    op.create_index('ix_service_requests_status', 'service_requests', ['status'])

    op.create_table('job_orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('jo_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('sr_id', sa.Integer(), sa.ForeignKey('service_requests.id'), nullable=False, unique=True),
        sa.Column('type', sa.String(length=32), nullable=False, server_default='SERVICE'),
        sa.Column('date_issued', sa.String(length=32)),
        sa.Column('requested_by', sa.String(length=128), nullable=False),
        sa.Column('department', sa.String(length=64), nullable=False),
        sa.Column('contact_person', sa.String(length=128)),
        sa.Column('contact_email', sa.String(length=128)),
        sa.Column('priority_level', sa.String(length=16), nullable=False, server_default='MEDIUM'),
        sa.Column('target_start_date', sa.String(length=32)),
        sa.Column('target_completion_date', sa.String(length=32)),
        sa.Column('service_category', sa.String(length=64), nullable=False),
        sa.Column('work_description', sa.Text()),
        sa.Column('location', sa.String(length=255)),
        sa.Column('reason', sa.Text()),
        sa.Column('materials', sa.JSON(), nullable=True),
        sa.Column('manpower', sa.JSON(), nullable=True),
        sa.Column('schedule', sa.JSON(), nullable=True),
        sa.Column('budget', sa.JSON(), nullable=True),
        sa.Column('acceptance', sa.JSON(), nullable=True),
        sa.Column('material_transfer', sa.JSON(), nullable=True),
        sa.Column('approvals', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='DRAFT'),
        *_timestamps(closed=True),
    )
    op.create_index('ix_job_orders_jo_number', 'job_orders', ['jo_number'])
    op.create_index('ix_job_orders_department', 'job_orders', ['department'])
    op.create_index('ix_job_orders_service_category', 'job_orders', ['service_category'])
    op.create_index('ix_job_orders_status', 'job_orders', ['status'])

    op.create_table('purchase_orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('po_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('jo_id', sa.Integer(), sa.ForeignKey('job_orders.id'), nullable=False, unique=True),
        sa.Column('sr_id', sa.Integer(), nullable=True),
        sa.Column('date_requested', sa.String(length=32)),
        sa.Column('requested_by', sa.String(length=128)),
        sa.Column('department', sa.String(length=64)),
        sa.Column('priority', sa.String(length=16)),
        sa.Column('items', sa.JSON(), nullable=True),
        sa.Column('supplier_name', sa.String(length=150)),
        sa.Column('supplier_contact', sa.String(length=150)),
        sa.Column('supplier_address', sa.String(length=255)),
        sa.Column('subtotal', sa.Float(), nullable=False, server_default='0'),
        sa.Column('tax', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='DRAFT'),
        sa.Column('approvals', sa.JSON(), nullable=True),
        sa.Column('expected_delivery_date', sa.String(length=32)),
        sa.Column('actual_delivery_date', sa.String(length=32)),
        sa.Column('delivery_notes', sa.Text()),
        sa.Column('created_by', sa.Integer(), nullable=True),
        *_timestamps(closed=True),
    )
    op.create_index('ix_purchase_orders_po_number', 'purchase_orders', ['po_number'])
    op.create_index('ix_purchase_orders_department', 'purchase_orders', ['department'])
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])

    op.create_table('receiving_reports',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('rr_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('po_id', sa.Integer(), sa.ForeignKey('purchase_orders.id'), nullable=False),
        sa.Column('reference_number', sa.String(length=32)),
        sa.Column('supplier_name', sa.String(length=150), nullable=False),
        sa.Column('supplier_contact', sa.String(length=150)),
        sa.Column('supplier_address', sa.String(length=255)),
        sa.Column('department', sa.String(length=64)),
        sa.Column('memo', sa.Text()),
        sa.Column('items', sa.JSON(), nullable=True),
        sa.Column('subtotal', sa.Float(), nullable=False, server_default='0'),
        sa.Column('tax', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='DRAFT'),
        sa.Column('received_by', sa.Integer(), nullable=False),
        sa.Column('received_by_name', sa.String(length=128)),
        sa.Column('actual_delivery_date', sa.String(length=32), nullable=False),
        sa.Column('delivery_notes', sa.Text()),
        *_timestamps(),
    )
    op.create_index('ix_receiving_reports_rr_number', 'receiving_reports', ['rr_number'])
    op.create_index('ix_receiving_reports_po_id', 'receiving_reports', ['po_id'])
    op.create_index('ix_receiving_reports_department', 'receiving_reports', ['department'])
    op.create_index('ix_receiving_reports_status', 'receiving_reports', ['status'])

    op.create_table('notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('type', sa.String(length=64), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=False),
        sa.Column('recipient', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.String(length=500)),
        sa.Column('link', sa.String(length=255)),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_entity_id', 'notifications', ['entity_id'])
    op.create_index('ix_notifications_recipient', 'notifications', ['recipient'])
    op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=False),
        sa.Column('actor_role', sa.String(length=32), nullable=True),
        sa.Column('actor_department', sa.String(length=64), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])


def downgrade():
    for table in ('audit_logs', 'notifications', 'receiving_reports', 'purchase_orders',
                  'job_orders', 'service_requests', 'users'):
        op.drop_table(table)
