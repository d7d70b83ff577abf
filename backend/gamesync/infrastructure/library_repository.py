"""Library Repository — mappings, snapshots and digital copies.

Invariants:
    - Snapshots are written only through upsert_snapshot, keyed by
      (account_id, external_game_id)
    - get_copies_by_external_ids answers a whole batch in one query
    - Mapping lookups are scoped by owner
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select

from gamesync.core.errors import ResourceNotFoundError
from gamesync.infrastructure.database import DatabaseSessionManager
from gamesync.models.digital_copy_item import DigitalCopyItem
from gamesync.models.external_mapping import ExternalMapping
from gamesync.models.library_entry_snapshot import LibraryEntrySnapshot


class SqlLibraryRepository:
    """LibraryRepository over a DatabaseSessionManager."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    # ─── Digital copies ──────────────────────────────────────────

    async def get_copies_by_external_ids(
        self, account_id: UUID, external_game_ids: list[str],
    ) -> dict[str, DigitalCopyItem]:
        if not external_game_ids:
            return {}
        async with self._db.session() as session:
            result = await session.execute(
                select(DigitalCopyItem).where(
                    DigitalCopyItem.account_id == account_id,
                    DigitalCopyItem.external_game_id.in_(external_game_ids),
                ),
            )
            return {c.external_game_id: c for c in result.scalars().all()}

    async def find_copy(
        self, account_id: UUID, external_game_id: str,
    ) -> DigitalCopyItem | None:
        async with self._db.session() as session:
            result = await session.execute(
                select(DigitalCopyItem).where(
                    DigitalCopyItem.account_id == account_id,
                    DigitalCopyItem.external_game_id == external_game_id,
                ),
            )
            return result.scalar_one_or_none()

    async def create_copy(self, fields: dict[str, Any]) -> DigitalCopyItem:
        async with self._db.session() as session:
            copy = DigitalCopyItem(**fields)
            session.add(copy)
            await session.commit()
            await session.refresh(copy)
            return copy

    async def update_copy(self, copy_id: UUID, fields: dict[str, Any]) -> None:
        async with self._db.session() as session:
            copy = await session.get(DigitalCopyItem, copy_id)
            if copy is None:
                raise ResourceNotFoundError("DigitalCopyItem", str(copy_id))
            for key, value in fields.items():
                setattr(copy, key, value)
            await session.commit()

    # ─── Snapshots ───────────────────────────────────────────────

    async def get_snapshot(
        self, account_id: UUID, external_game_id: str,
    ) -> LibraryEntrySnapshot | None:
        async with self._db.session() as session:
            return await self._select_snapshot(session, account_id, external_game_id)

    async def upsert_snapshot(
        self, account_id: UUID, external_game_id: str, fields: dict[str, Any],
    ) -> None:
        async with self._db.session() as session:
            snapshot = await self._select_snapshot(session, account_id, external_game_id)
            if snapshot is None:
                snapshot = LibraryEntrySnapshot(
                    account_id=account_id, external_game_id=external_game_id,
                )
                session.add(snapshot)
            for key, value in fields.items():
                setattr(snapshot, key, value)
            await session.commit()

    async def list_snapshots(self, account_id: UUID) -> list[LibraryEntrySnapshot]:
        async with self._db.session() as session:
            result = await session.execute(
                select(LibraryEntrySnapshot)
                .where(LibraryEntrySnapshot.account_id == account_id),
            )
            return list(result.scalars().all())

    @staticmethod
    async def _select_snapshot(session, account_id, external_game_id):
        result = await session.execute(
            select(LibraryEntrySnapshot).where(
                LibraryEntrySnapshot.account_id == account_id,
                LibraryEntrySnapshot.external_game_id == external_game_id,
            ),
        )
        return result.scalar_one_or_none()

    # ─── Mappings ────────────────────────────────────────────────

    async def get_mapping(
        self, provider: str, external_game_id: str, owner_id: int,
    ) -> ExternalMapping | None:
        async with self._db.session() as session:
            result = await session.execute(
                select(ExternalMapping).where(
                    ExternalMapping.provider == provider,
                    ExternalMapping.external_game_id == external_game_id,
                    ExternalMapping.owner_id == owner_id,
                ),
            )
            return result.scalar_one_or_none()

    async def create_mapping(self, fields: dict[str, Any]) -> ExternalMapping:
        async with self._db.session() as session:
            mapping = ExternalMapping(**fields)
            session.add(mapping)
            await session.commit()
            await session.refresh(mapping)
            return mapping

    async def update_mapping(
        self, mapping_id: UUID, fields: dict[str, Any],
    ) -> ExternalMapping:
        async with self._db.session() as session:
            mapping = await session.get(ExternalMapping, mapping_id)
            if mapping is None:
                raise ResourceNotFoundError("ExternalMapping", str(mapping_id))
            for key, value in fields.items():
                setattr(mapping, key, value)
            await session.commit()
            await session.refresh(mapping)
            return mapping
