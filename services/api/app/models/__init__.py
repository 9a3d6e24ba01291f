"""SQLAlchemy models.

All models are imported here so they register on ``Base.metadata``.
"""

from app.core.database import Base
from app.models.activity_log import ActivityLog
from app.models.card import Card
from app.models.event import Event
from app.models.tap import TapLog

__all__ = ["Base", "ActivityLog", "Card", "Event", "TapLog"]
