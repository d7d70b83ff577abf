"""Account and Device Repositories — ExternalAccount and ConnectorDevice persistence.

Accounts are owned by the surrounding application; the sync core reads them
and stamps last_synced_at. create() exists for bootstrap and tests.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select

from gamesync.core.errors import ResourceNotFoundError
from gamesync.infrastructure.database import DatabaseSessionManager
from gamesync.models.connector_device import ConnectorDevice
from gamesync.models.external_account import ExternalAccount


class SqlAccountRepository:
    """AccountRepository over a DatabaseSessionManager."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def create(self, fields: dict[str, Any]) -> ExternalAccount:
        async with self._db.session() as session:
            account = ExternalAccount(**fields)
            session.add(account)
            await session.commit()
            await session.refresh(account)
            return account

    async def get(self, account_id: UUID) -> ExternalAccount | None:
        async with self._db.session() as session:
            return await session.get(ExternalAccount, account_id)

    async def update_last_synced(self, account_id: UUID, at: datetime) -> None:
        async with self._db.session() as session:
            account = await session.get(ExternalAccount, account_id)
            if account is None:
                raise ResourceNotFoundError("ExternalAccount", str(account_id))
            account.last_synced_at = at
            await session.commit()


class SqlDeviceRepository:
    """DeviceRepository over a DatabaseSessionManager."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def create(self, fields: dict[str, Any]) -> ConnectorDevice:
        async with self._db.session() as session:
            device = ConnectorDevice(**fields)
            session.add(device)
            await session.commit()
            await session.refresh(device)
            return device

    async def get(self, device_id: UUID) -> ConnectorDevice | None:
        async with self._db.session() as session:
            return await session.get(ConnectorDevice, device_id)

    async def list_for_owner(
        self, owner_id: int, account_id: UUID | None = None,
    ) -> list[ConnectorDevice]:
        query = select(ConnectorDevice).where(ConnectorDevice.owner_id == owner_id)
        if account_id is not None:
            query = query.where(ConnectorDevice.account_id == account_id)
        async with self._db.session() as session:
            result = await session.execute(query.order_by(ConnectorDevice.created_at))
            return list(result.scalars().all())

    async def list_active(self, provider: str | None = None) -> list[ConnectorDevice]:
        query = select(ConnectorDevice).where(ConnectorDevice.revoked_at.is_(None))
        if provider is not None:
            query = query.where(ConnectorDevice.provider == provider)
        async with self._db.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def update(self, device_id: UUID, fields: dict[str, Any]) -> ConnectorDevice:
        async with self._db.session() as session:
            device = await session.get(ConnectorDevice, device_id)
            if device is None:
                raise ResourceNotFoundError("ConnectorDevice", str(device_id))
            for key, value in fields.items():
                setattr(device, key, value)
            await session.commit()
            await session.refresh(device)
            return device

    async def delete(self, device_id: UUID) -> None:
        async with self._db.session() as session:
            device = await session.get(ConnectorDevice, device_id)
            if device is None:
                raise ResourceNotFoundError("ConnectorDevice", str(device_id))
            await session.delete(device)
            await session.commit()
