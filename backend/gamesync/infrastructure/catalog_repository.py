"""Catalog Repository — SQLAlchemy persistence for CatalogTitle and CatalogRelease.

Invariants:
    - Every title write validates the resulting player profile first
      (raises PlayerProfileValidationError, nothing is written)
    - One short session per operation: no session outlives its call
    - Returned records are detached but fully loaded (expire_on_commit=False)

Design Decisions:
    - Validation lives at the write boundary so the processor's
      raw -> clamped -> safe-default ladder has a single trigger point
"""

from dataclasses import replace
from typing import Any
from uuid import UUID

from sqlalchemy import select

from gamesync.core.errors import ResourceNotFoundError
from gamesync.core.player_profile import (
    PROFILE_FIELDS, profile_of, validate_player_profile,
)
from gamesync.core.records import PlayerProfile
from gamesync.infrastructure.database import DatabaseSessionManager
from gamesync.models.catalog_release import CatalogRelease
from gamesync.models.catalog_title import CatalogTitle


def _profile_overrides(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if k in PROFILE_FIELDS}


class SqlCatalogRepository:
    """CatalogRepository over a DatabaseSessionManager."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def get_title(self, title_id: UUID) -> CatalogTitle | None:
        async with self._db.session() as session:
            return await session.get(CatalogTitle, title_id)

    async def find_title_by_normalized_name(
        self, normalized_name: str,
    ) -> CatalogTitle | None:
        async with self._db.session() as session:
            result = await session.execute(
                select(CatalogTitle)
                .where(CatalogTitle.normalized_name == normalized_name)
                .order_by(CatalogTitle.created_at)
                .limit(1),
            )
            return result.scalar_one_or_none()

    async def create_title(self, fields: dict[str, Any]) -> CatalogTitle:
        validate_player_profile(PlayerProfile(**_profile_overrides(fields)))
        async with self._db.session() as session:
            title = CatalogTitle(**fields)
            session.add(title)
            await session.commit()
            await session.refresh(title)
            return title

    async def update_title(
        self, title_id: UUID, fields: dict[str, Any],
    ) -> CatalogTitle:
        async with self._db.session() as session:
            title = await session.get(CatalogTitle, title_id)
            if title is None:
                raise ResourceNotFoundError("CatalogTitle", str(title_id))
            overrides = _profile_overrides(fields)
            if overrides:
                validate_player_profile(replace(profile_of(title), **overrides))
            for key, value in fields.items():
                setattr(title, key, value)
            await session.commit()
            await session.refresh(title)
            return title

    async def find_release(
        self, title_id: UUID, platform: str, edition: str | None,
    ) -> CatalogRelease | None:
        edition_clause = (
            CatalogRelease.edition.is_(None) if edition is None
            else CatalogRelease.edition == edition
        )
        async with self._db.session() as session:
            result = await session.execute(
                select(CatalogRelease).where(
                    CatalogRelease.title_id == title_id,
                    CatalogRelease.platform == platform,
                    edition_clause,
                ),
            )
            return result.scalar_one_or_none()

    async def create_release(self, fields: dict[str, Any]) -> CatalogRelease:
        async with self._db.session() as session:
            release = CatalogRelease(**fields)
            session.add(release)
            await session.commit()
            await session.refresh(release)
            return release

    async def list_releases(self, title_id: UUID) -> list[CatalogRelease]:
        async with self._db.session() as session:
            result = await session.execute(
                select(CatalogRelease)
                .where(CatalogRelease.title_id == title_id)
                .order_by(CatalogRelease.created_at),
            )
            return list(result.scalars().all())
