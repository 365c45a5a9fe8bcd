from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, Float, ForeignKey, DateTime, CheckConstraint

from itdesk.models.users import Base, new_id
from itdesk.utils.timestamps import utcnow


class StockItem(Base):
    __tablename__ = 'stock_items'
    # Status constants
    STATUS_AVAILABLE = 'available'
    STATUS_IN_USE = 'in-use'
    STATUS_REPAIR = 'repair'
    STATUS_DISPOSED = 'disposed'
    ALL_STATUSES = (STATUS_AVAILABLE, STATUS_IN_USE, STATUS_REPAIR, STATUS_DISPOSED)
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    manufacturer: Mapped[Optional[str]] = mapped_column(String(128))
    model: Mapped[Optional[str]] = mapped_column(String(128))
    serial_number: Mapped[Optional[str]] = mapped_column(String(128))
    purchase_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    price: Mapped[Optional[float]] = mapped_column(Float)
    location: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_AVAILABLE, index=True)
    image: Mapped[Optional[str]] = mapped_column(String(512))
    # bumped on every quantity write; guards read-modify-write races
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (CheckConstraint('quantity >= 0', name='ck_stock_items_quantity_non_negative'),)


class StockUsage(Base):
    __tablename__ = 'stock_usage'
    TYPE_IN = 'in'
    TYPE_OUT = 'out'
    ALL_TYPES = (TYPE_IN, TYPE_OUT)
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    # no foreign key: history may be preserved after its item is deleted
    stock_item_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    issue_id: Mapped[Optional[str]] = mapped_column(ForeignKey('issues.id', ondelete='SET NULL'), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(8), nullable=False, default=TYPE_OUT)
    assigned_to: Mapped[Optional[str]] = mapped_column(ForeignKey('custom_users.id'), nullable=True)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    # item version this entry produced; orders entries that share a date
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (CheckConstraint('quantity > 0', name='ck_stock_usage_quantity_positive'),)
