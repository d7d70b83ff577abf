"""CatalogRelease ORM — a (title, platform, edition) triple.

Invariants:
    - Unique per (title_id, platform, edition)
    - edition is the detected edition string or NULL for a plain release
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from gamesync.db.base import Base


class CatalogRelease(Base):
    __tablename__ = "catalog_releases"
    __table_args__ = (
        UniqueConstraint("title_id", "platform", "edition", name="uq_release_title_platform_edition"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("catalog_titles.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    platform: Mapped[str] = mapped_column(String(100), nullable=False)
    edition: Mapped[str | None] = mapped_column(String(100), nullable=True)
    release_date: Mapped[str | None] = mapped_column(String(40), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    title: Mapped["CatalogTitle"] = relationship(
        "CatalogTitle", back_populates="releases",
    )
