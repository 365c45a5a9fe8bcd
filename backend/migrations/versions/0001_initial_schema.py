"""initial itdesk schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _ts(name, nullable=False):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade():
    op.create_table('custom_users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='user'),
        sa.Column('permissions', sa.JSON(), nullable=True),
        sa.Column('department', sa.String(length=128), nullable=True),
        sa.Column('company', sa.String(length=128), nullable=True),
        sa.Column('site', sa.String(length=128), nullable=True),
        sa.Column('phone_number', sa.String(length=32), nullable=True),
        sa.Column('avatar', sa.String(length=512), nullable=True),
        _ts('created_at'),
    )
    op.create_index('ix_custom_users_email', 'custom_users', ['email'], unique=True)

    op.create_table('stock_items',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('manufacturer', sa.String(length=128), nullable=True),
        sa.Column('model', sa.String(length=128), nullable=True),
        sa.Column('serial_number', sa.String(length=128), nullable=True),
        _ts('purchase_date', nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='available'),
        sa.Column('image', sa.String(length=512), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        _ts('created_at'),
        _ts('updated_at'),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_items_quantity_non_negative'),
    )
    op.create_index('ix_stock_items_name', 'stock_items', ['name'])
    op.create_index('ix_stock_items_category', 'stock_items', ['category'])
    op.create_index('ix_stock_items_status', 'stock_items', ['status'])

    op.create_table('issues',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('submitted_by', sa.String(length=36), sa.ForeignKey('custom_users.id'), nullable=False),
        sa.Column('assigned_to', sa.String(length=36), sa.ForeignKey('custom_users.id'), nullable=True),
        sa.Column('severity', sa.String(length=16), nullable=False, server_default='medium'),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='submitted'),
        _ts('created_at'),
        _ts('updated_at'),
        _ts('resolved_at', nullable=True),
    )
    op.create_index('ix_issues_submitted_by', 'issues', ['submitted_by'])
    op.create_index('ix_issues_assigned_to', 'issues', ['assigned_to'])
    op.create_index('ix_issues_status', 'issues', ['status'])

    op.create_table('issue_comments',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('issue_id', sa.String(length=36), sa.ForeignKey('issues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('custom_users.id'), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        _ts('created_at'),
    )
    op.create_index('ix_issue_comments_issue_id', 'issue_comments', ['issue_id'])

    op.create_table('issue_stock_items',
        sa.Column('issue_id', sa.String(length=36), sa.ForeignKey('issues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('stock_item_id', sa.String(length=36), sa.ForeignKey('stock_items.id', ondelete='CASCADE'), nullable=False),
        sa.PrimaryKeyConstraint('issue_id', 'stock_item_id', name='pk_issue_stock_items'),
    )

    op.create_table('stock_usage',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('stock_item_id', sa.String(length=36), nullable=False),
        sa.Column('issue_id', sa.String(length=36), sa.ForeignKey('issues.id', ondelete='SET NULL'), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('transaction_type', sa.String(length=8), nullable=False, server_default='out'),
        sa.Column('assigned_to', sa.String(length=36), sa.ForeignKey('custom_users.id'), nullable=True),
        _ts('date'),
        sa.Column('sequence', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.CheckConstraint('quantity > 0', name='ck_stock_usage_quantity_positive'),
    )
    op.create_index('ix_stock_usage_stock_item_id', 'stock_usage', ['stock_item_id'])
    op.create_index('ix_stock_usage_date', 'stock_usage', ['date'])

    op.create_table('purchase_requests',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('custom_users.id'), nullable=False),
        sa.Column('bon_number', sa.String(length=64), nullable=False),
        sa.Column('bon_signer', sa.String(length=128), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('item_description', sa.Text(), nullable=True),
        sa.Column('item_quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('estimated_price', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('ix_purchase_requests_user_id', 'purchase_requests', ['user_id'])
    op.create_index('ix_purchase_requests_status', 'purchase_requests', ['status'])


def downgrade():
    op.drop_table('purchase_requests')
    op.drop_table('stock_usage')
    op.drop_table('issue_stock_items')
    op.drop_table('issue_comments')
    op.drop_table('issues')
    op.drop_table('stock_items')
    op.drop_table('custom_users')
