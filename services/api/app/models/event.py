"""Event SQLAlchemy model."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.core.timeutils import utcnow
from app.schemas.enums import EventStatus


class Event(Base):
    """Time-boxed, geo-located activation of a card.

    Taps on the card while the event is live are attributed to it.
    """

    __tablename__ = "events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    card_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    location_name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    city: Mapped[str] = mapped_column(String(255), nullable=False)
    province: Mapped[str] = mapped_column(String(255), nullable=False)
    country: Mapped[str] = mapped_column(String(255), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    start_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        comment="Event start (UTC)",
    )
    end_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        comment="Event end (UTC)",
    )
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="Asia/Manila")
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EventStatus.ACTIVE.value,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        Index("ix_events_card_id_status", "card_id", "status"),
        Index("ix_events_start_at_end_at", "start_at", "end_at"),
    )

    def __repr__(self) -> str:
        return f"<Event {self.id} {self.name!r} {self.start_at}..{self.end_at}>"
