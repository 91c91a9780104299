"""
Interaction persistence.

Stores are deliberately thin: they raise on failure and leave degradation
to the callers (profile store, recommenders), which log and carry on with
empty history.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from artcurator.db.models import UserInteraction
from artcurator.db.schemas import INTERACTION_WEIGHTS, ArtworkFeatures, InteractionType

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class Interaction:
    """One user action on one artwork, with the artwork's features at that time."""
    user_id: str
    artwork_id: str
    interaction_type: InteractionType
    rating: int
    created_at: datetime = field(default_factory=_utcnow)
    style: str = "mixed"
    mood: str = "neutral"
    colors: list[str] = field(default_factory=list)

    @property
    def weight(self) -> int:
        return INTERACTION_WEIGHTS.get(self.interaction_type, 1)

    @classmethod
    def from_artwork(
        cls,
        user_id: str,
        artwork: ArtworkFeatures,
        interaction_type: InteractionType,
        created_at: Optional[datetime] = None,
    ) -> "Interaction":
        """Record an event; the rating is the interaction's weight."""
        return cls(
            user_id=user_id,
            artwork_id=artwork.id,
            interaction_type=interaction_type,
            rating=INTERACTION_WEIGHTS[interaction_type],
            created_at=created_at or _utcnow(),
            style=artwork.style,
            mood=artwork.mood,
            colors=list(artwork.colors),
        )


class InteractionStore(Protocol):
    """Read/write access to the interaction log."""

    async def load_user_history(
        self,
        user_id: str,
        limit: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> list[Interaction]:
        """A user's interactions, newest first."""
        ...

    async def load_interactions(
        self,
        since: Optional[datetime] = None,
        exclude_user: Optional[str] = None,
    ) -> list[Interaction]:
        ...

    async def persist_interaction(self, interaction: Interaction) -> None:
        ...


class InMemoryInteractionStore:
    """Process-local store for tests and single-instance deployments."""

    def __init__(self, interactions: Optional[list[Interaction]] = None):
        self._interactions: list[Interaction] = list(interactions or [])

    async def load_user_history(
        self,
        user_id: str,
        limit: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> list[Interaction]:
        # Reverse first so equal timestamps keep newest-inserted first
        history = [
            i for i in reversed(self._interactions)
            if i.user_id == user_id and (since is None or i.created_at >= since)
        ]
        history.sort(key=lambda i: i.created_at, reverse=True)
        return history[:limit] if limit is not None else history

    async def load_interactions(
        self,
        since: Optional[datetime] = None,
        exclude_user: Optional[str] = None,
    ) -> list[Interaction]:
        return [
            i for i in self._interactions
            if (since is None or i.created_at >= since)
            and (exclude_user is None or i.user_id != exclude_user)
        ]

    async def persist_interaction(self, interaction: Interaction) -> None:
        self._interactions.append(interaction)

    def __len__(self) -> int:
        return len(self._interactions)


def _row_to_interaction(row: UserInteraction) -> Interaction:
    return Interaction(
        user_id=row.user_id,
        artwork_id=row.artwork_id,
        interaction_type=InteractionType(row.interaction_type),
        rating=row.rating,
        created_at=_as_utc(row.created_at),
        style=row.style or "mixed",
        mood=row.mood or "neutral",
        colors=list(row.colors or []),
    )


class SQLAlchemyInteractionStore:
    """Interaction log in the ``user_interactions`` table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def load_user_history(
        self,
        user_id: str,
        limit: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> list[Interaction]:
        query = select(UserInteraction).where(UserInteraction.user_id == user_id)
        if since is not None:
            query = query.where(UserInteraction.created_at >= since)
        query = query.order_by(UserInteraction.created_at.desc(), UserInteraction.id.desc())
        if limit is not None:
            query = query.limit(limit)

        async with self.session_maker() as session:
            result = await session.execute(query)
            rows = result.scalars().all()

        return [_row_to_interaction(row) for row in rows]

    async def load_interactions(
        self,
        since: Optional[datetime] = None,
        exclude_user: Optional[str] = None,
    ) -> list[Interaction]:
        query = select(UserInteraction)
        if since is not None:
            query = query.where(UserInteraction.created_at >= since)
        if exclude_user is not None:
            query = query.where(UserInteraction.user_id != exclude_user)
        query = query.order_by(UserInteraction.id)

        async with self.session_maker() as session:
            result = await session.execute(query)
            rows = result.scalars().all()

        return [_row_to_interaction(row) for row in rows]

    async def persist_interaction(self, interaction: Interaction) -> None:
        async with self.session_maker() as session:
            session.add(UserInteraction(
                user_id=interaction.user_id,
                artwork_id=interaction.artwork_id,
                interaction_type=interaction.interaction_type.value,
                style=interaction.style,
                mood=interaction.mood,
                colors=list(interaction.colors),
                rating=interaction.rating,
                created_at=interaction.created_at,
            ))
            await session.commit()

        logger.debug(
            f"Persisted {interaction.interaction_type.value} by {interaction.user_id} "
            f"on {interaction.artwork_id}"
        )
