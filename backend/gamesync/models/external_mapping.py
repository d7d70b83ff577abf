"""ExternalMapping ORM — links one external game record to its catalog title/release.

Invariants:
    - One mapping per (provider, external_game_id, owner_id)
    - status in {pending, mapped, ignored}; ignored suppresses copy creation
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from gamesync.db.base import Base


class ExternalMapping(Base):
    __tablename__ = "external_mappings"
    __table_args__ = (
        UniqueConstraint("provider", "external_game_id", "owner_id", name="uq_mapping_external"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    external_game_id: Mapped[str] = mapped_column(String(255), nullable=False)
    external_game_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    title_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("catalog_titles.id", ondelete="SET NULL"),
        nullable=True,
    )
    release_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("catalog_releases.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
