from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.domain import DrawStatus
from app.domain.models import utcnow

from .db import Base


class DrawRecord(Base):
    __tablename__ = "draws"

    draw_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=DrawStatus.SETUP.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    rollover_in: Mapped[Decimal] = mapped_column(Numeric(30, 9), nullable=False, default=0)
    settled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    settlement: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    events: Mapped[list["EventRecord"]] = relationship(
        "EventRecord",
        back_populates="draw",
        cascade="all, delete-orphan",
        order_by="EventRecord.idx",
    )
    tickets: Mapped[list["TicketRecord"]] = relationship(
        "TicketRecord", back_populates="draw", cascade="all, delete-orphan"
    )


class EventRecord(Base):
    __tablename__ = "draw_events"
    __table_args__ = (UniqueConstraint("draw_id", "idx", name="uq_draw_events_draw_idx"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    draw_id: Mapped[int] = mapped_column(Integer, ForeignKey("draws.draw_id"), nullable=False)
    idx: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    result: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_void: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source_url: Mapped[str | None] = mapped_column(String, nullable=True)

    draw: Mapped[DrawRecord] = relationship("DrawRecord", back_populates="events")


class TicketRecord(Base):
    __tablename__ = "tickets"

    ticket_id: Mapped[str] = mapped_column(String, primary_key=True)
    draw_id: Mapped[int] = mapped_column(Integer, ForeignKey("draws.draw_id"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    username: Mapped[str | None] = mapped_column(String, nullable=True)
    wallet: Mapped[str | None] = mapped_column(String, nullable=True)
    selections: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    currency: Mapped[str] = mapped_column(String(16), nullable=False, default="TON")
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    invoice_id: Mapped[str | None] = mapped_column(String, nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    draw: Mapped[DrawRecord] = relationship("DrawRecord", back_populates="tickets")
