"""Card SQLAlchemy model."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.core.timeutils import utcnow


class Card(Base):
    """NFC card owned by a user.

    Cards are managed by the card service; this service reads them for
    ownership checks, labels and analytics scope.
    """

    __tablename__ = "cards"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
        comment="Owner of the card",
    )
    label: Mapped[str] = mapped_column(String(255), nullable=False, default="Card")
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="active",
        comment="Card status: 'active' or 'inactive'",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Card {self.id} label={self.label!r}>"
