from __future__ import annotations
import uuid
from datetime import datetime
from typing import Optional, List
from sqlalchemy.orm import declarative_base, Mapped, mapped_column
from sqlalchemy import String, JSON, DateTime

from itdesk.utils.timestamps import utcnow

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class CustomUser(Base):
    __tablename__ = 'custom_users'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default='user')
    permissions: Mapped[Optional[List[str]]] = mapped_column(JSON, default=list)
    department: Mapped[Optional[str]] = mapped_column(String(128))
    company: Mapped[Optional[str]] = mapped_column(String(128))
    site: Mapped[Optional[str]] = mapped_column(String(128))
    phone_number: Mapped[Optional[str]] = mapped_column(String(32))
    avatar: Mapped[Optional[str]] = mapped_column(String(512))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
