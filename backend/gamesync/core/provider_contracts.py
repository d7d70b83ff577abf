"""Provider Contracts — the uniform interface every connector and metadata source implements.

Invariants:
    - Manifests are plain frozen data records, never behaviour
    - A connector is either pull-style (sync_library) or push-style (preprocess_import
      plus device management); dispatch uses is_push_connector(), never isinstance
    - Metadata providers declare capabilities and a RateLimitConfig; the pipeline,
      not the provider, enforces the delay and the error threshold

Design Decisions:
    - Protocol over ABC: adapters and test fakes satisfy the contract structurally
    - Push connectors manage their own devices because device tokens are tied
      to the agent that pushes, not to the generic sync flow
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, TypeGuard, runtime_checkable

from gamesync.core.domain_types import ConnectorCapability, GameType, SyncStyle
from gamesync.core.records import (
    ConnectorCredentials,
    FetchedMetadata,
    LibrarySyncResult,
    MetadataSearchResult,
    PreprocessedImport,
)
from gamesync.core.repository_protocols import DeviceLike


# ─── Manifests ───────────────────────────────────────────────────

@dataclass(frozen=True)
class ConnectorManifest:
    id: str
    name: str
    provider: str
    sync_style: SyncStyle
    capabilities: frozenset[ConnectorCapability] = frozenset()
    is_aggregator: bool = False
    supports_devices: bool = False
    version: str = "1.0.0"


@dataclass(frozen=True)
class ProviderCapabilities:
    supports_search: bool = False
    has_accurate_player_counts: bool = False
    has_descriptions: bool = False
    has_cover_images: bool = False
    has_store_urls: bool = False
    supports_batch_requests: bool = False


@dataclass(frozen=True)
class RateLimitConfig:
    """Per-provider pacing. The pipeline sleeps request_delay_ms between calls."""
    request_delay_ms: int = 0
    max_consecutive_errors: int = 5
    max_batch_size: int = 1
    batch_delay_ms: int = 0
    max_games_per_sync: int | None = None
    retry_delay_ms: int = 0


@dataclass(frozen=True)
class MetadataProviderManifest:
    id: str
    name: str
    game_types: frozenset[GameType] = field(
        default_factory=lambda: frozenset({GameType.VIDEO_GAME}),
    )
    requires_api_key: bool = False
    version: str = "1.0.0"


# ─── Metadata provider ───────────────────────────────────────────

@runtime_checkable
class MetadataProvider(Protocol):
    manifest: MetadataProviderManifest
    capabilities: ProviderCapabilities
    rate_limit: RateLimitConfig

    async def search_games(
        self, query: str, limit: int = 10,
    ) -> list[MetadataSearchResult]: ...

    async def get_game_metadata(self, external_id: str) -> FetchedMetadata | None: ...

    def get_game_url(self, external_id: str) -> str: ...


# ─── Connectors ──────────────────────────────────────────────────

class PullConnector(Protocol):
    """Fetches a user's library from the provider on demand."""
    manifest: ConnectorManifest

    async def sync_library(
        self, credentials: ConnectorCredentials,
    ) -> LibrarySyncResult: ...


class PushConnector(PullConnector, Protocol):
    """Receives libraries pushed by a registered local agent."""

    async def preprocess_import(self, raw_payload: Any) -> PreprocessedImport: ...

    async def register_device(
        self, owner_id: int, account_id: Any, device_name: str,
    ) -> tuple[DeviceLike, str]: ...

    async def list_devices(
        self, owner_id: int, account_id: Any | None = None,
    ) -> list[DeviceLike]: ...

    async def revoke_device(self, device_id: Any, owner_id: int) -> DeviceLike: ...

    async def delete_device(self, device_id: Any, owner_id: int) -> None: ...

    async def verify_device_token(self, token: str) -> DeviceLike | None: ...


Connector = PullConnector | PushConnector


def is_push_connector(connector: Connector) -> TypeGuard[PushConnector]:
    """Capability check: push style AND device management declared."""
    manifest = connector.manifest
    return manifest.supports_devices and manifest.sync_style == SyncStyle.PUSH
