from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, ForeignKey, DateTime, PrimaryKeyConstraint

from itdesk.models.users import Base, new_id
from itdesk.utils.timestamps import utcnow


class Issue(Base):
    __tablename__ = 'issues'
    # Status constants
    STATUS_SUBMITTED = 'submitted'
    STATUS_IN_PROGRESS = 'in-progress'
    STATUS_RESOLVED = 'resolved'
    STATUS_ESCALATED = 'escalated'
    ALL_STATUSES = (STATUS_SUBMITTED, STATUS_IN_PROGRESS, STATUS_RESOLVED, STATUS_ESCALATED)
    SEVERITIES = ('low', 'medium', 'high')
    TYPES = ('hardware', 'software', 'network')
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    submitted_by: Mapped[str] = mapped_column(ForeignKey('custom_users.id'), nullable=False, index=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(ForeignKey('custom_users.id'), nullable=True, index=True)
    severity: Mapped[str] = mapped_column(String(16), nullable=False, default='medium')
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_SUBMITTED, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

# Status flow: submitted -> in-progress -> resolved, escalated reachable from any open state.


class IssueComment(Base):
    __tablename__ = 'issue_comments'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    issue_id: Mapped[str] = mapped_column(ForeignKey('issues.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey('custom_users.id'), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class IssueStockItem(Base):
    __tablename__ = 'issue_stock_items'
    issue_id: Mapped[str] = mapped_column(ForeignKey('issues.id', ondelete='CASCADE'), nullable=False)
    stock_item_id: Mapped[str] = mapped_column(ForeignKey('stock_items.id', ondelete='CASCADE'), nullable=False)

    __table_args__ = (PrimaryKeyConstraint('issue_id', 'stock_item_id', name='pk_issue_stock_items'),)
