"""LibraryEntrySnapshot ORM — latest raw view of one external library entry.

Invariants:
    - Unique per (account_id, external_game_id); written only by upsert
    - Never deleted on soft removal; is_installed is cleared instead
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, Boolean, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from gamesync.db.base import Base


class LibraryEntrySnapshot(Base):
    __tablename__ = "library_entry_snapshots"
    __table_args__ = (
        UniqueConstraint("account_id", "external_game_id", name="uq_snapshot_account_game"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("external_accounts.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    external_game_id: Mapped[str] = mapped_column(String(255), nullable=False)
    external_game_name: Mapped[str] = mapped_column(String(500), nullable=False)
    playtime_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_installed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    last_played_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    raw_payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
