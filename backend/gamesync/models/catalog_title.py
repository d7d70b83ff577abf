"""CatalogTitle ORM — canonical, deduplicated game concept.

Invariants:
    - name is the edition-stripped base name; normalized_name is its matching key
    - Player profile columns satisfy core/player_profile.py invariants
      (enforced by the catalog repository on every write)
    - Titles are never deleted by the sync core

Design Decisions:
    - normalized_name indexed: get-or-create by name is on the sync hot path
    - game_type stored as plain string (GameType value)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from gamesync.db.base import Base


class CatalogTitle(Base):
    __tablename__ = "catalog_titles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    normalized_name: Mapped[str] = mapped_column(
        String(500), nullable=False, index=True,
    )
    game_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default="video_game",
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    overall_min_players: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    overall_max_players: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    supports_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    supports_local: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    supports_physical: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    online_min_players: Mapped[int | None] = mapped_column(Integer, nullable=True)
    online_max_players: Mapped[int | None] = mapped_column(Integer, nullable=True)
    local_min_players: Mapped[int | None] = mapped_column(Integer, nullable=True)
    local_max_players: Mapped[int | None] = mapped_column(Integer, nullable=True)
    physical_min_players: Mapped[int | None] = mapped_column(Integer, nullable=True)
    physical_max_players: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    releases: Mapped[list["CatalogRelease"]] = relationship(
        "CatalogRelease", back_populates="title",
        cascade="all, delete-orphan", lazy="raise",
    )
