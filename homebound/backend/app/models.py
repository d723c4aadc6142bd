# app/models.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class IntegrationEndpoint(Base):
    """
    One configured webhook receiver. Read by the destination directory on
    every broadcast; the fan-out engine never writes here.
    """
    __tablename__ = "integration_endpoints"
    __table_args__ = (UniqueConstraint("webhook_url", name="uq_integration_endpoint_url"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    webhook_url: Mapped[str] = mapped_column(String(1024))
    webhook_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    # optional HMAC secret for X-Homebound-Signature
    secret: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
