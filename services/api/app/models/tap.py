"""TapLog SQLAlchemy model for raw tap records."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, JSONType
from app.core.timeutils import utcnow


class TapLog(Base):
    """One tap on a card, plus the actions recorded during its session.

    ``actions`` is append-only. ``geo`` follows the wire format
    (latitude, longitude, accuracy, city, country, region, timezone, method,
    timestamp) and is replaced wholesale when an action brings new location
    data.
    """

    __tablename__ = "tap_logs"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    card_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("events.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Event the tap was attributed to",
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        index=True,
    )
    ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    geo: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    session_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    actions: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )

    __table_args__ = (
        Index("ix_tap_logs_card_id_timestamp", "card_id", "timestamp"),
        Index("ix_tap_logs_card_id_session_id", "card_id", "session_id"),
    )

    def __repr__(self) -> str:
        return f"<TapLog {self.id} card={self.card_id} at={self.timestamp}>"
