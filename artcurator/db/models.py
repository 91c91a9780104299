"""
SQLAlchemy ORM models.

Only the interaction log lives here. Artworks, users and the social graph
belong to other services; an interaction row copies the artwork's style,
mood and colors at the time of the event so profiles can be rebuilt
without a catalog lookup.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, DateTime, JSON, Index

from artcurator.db.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserInteraction(Base):
    """Append-only log of user actions on artworks."""

    __tablename__ = "user_interactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    artwork_id = Column(String(64), nullable=False)
    interaction_type = Column(String(32), nullable=False)  # view/click/favorite/purchase_request
    style = Column(String(64))
    mood = Column(String(64))
    colors = Column(JSON, default=list)
    rating = Column(Integer, nullable=False)  # Interaction weight, 1-5
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("idx_user_interactions_user", "user_id"),
        Index("idx_user_interactions_user_created", "user_id", created_at.desc()),
        Index("idx_user_interactions_created", "created_at"),
    )
