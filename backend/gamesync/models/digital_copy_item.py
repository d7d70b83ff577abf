"""DigitalCopyItem ORM — the user-visible inventory record for an owned digital license.

Invariants:
    - One per (account_id, external_game_id); created once, updated thereafter
    - Aggregator provenance columns are only set for aggregator imports
    - needs_review flags aggregator copies without an original-provider game id
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from gamesync.db.base import Base


class DigitalCopyItem(Base):
    __tablename__ = "digital_copy_items"
    __table_args__ = (
        UniqueConstraint("account_id", "external_game_id", name="uq_copy_account_game"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("external_accounts.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    external_game_id: Mapped[str] = mapped_column(String(255), nullable=False)
    release_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("catalog_releases.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    playtime_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_installed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    last_played_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    store_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    needs_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    aggregator_provider_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    aggregator_account_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    aggregator_external_game_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    original_provider_plugin_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    original_provider_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    original_provider_game_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    original_provider_normalized_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
