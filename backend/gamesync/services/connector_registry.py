"""Connector Registry — id -> connector and provider name -> connector lookup.

Invariants:
    - Populated once at process start (services/wiring.py); read-only afterwards
    - Provider lookups are case-insensitive; id lookups are exact
    - Registering a duplicate id replaces the earlier connector
"""

import logging

from gamesync.core.provider_contracts import Connector

logger = logging.getLogger(__name__)


class ConnectorRegistry:
    """Explicit registration, no auto-discovery."""

    def __init__(self) -> None:
        self._by_id: dict[str, Connector] = {}
        self._by_provider: dict[str, Connector] = {}

    def register(self, connector: Connector) -> None:
        manifest = connector.manifest
        if manifest.id in self._by_id:
            logger.warning(f"Connector '{manifest.id}' registered twice, replacing")
        self._by_id[manifest.id] = connector
        self._by_provider[manifest.provider.lower()] = connector

    def get_by_id(self, connector_id: str) -> Connector | None:
        return self._by_id.get(connector_id)

    def get_by_provider(self, provider: str) -> Connector | None:
        return self._by_provider.get((provider or "").lower())

    def all(self) -> list[Connector]:
        return list(self._by_id.values())
