"""Test doubles for connectors and metadata providers.

FakeMetadataProvider answers from in-memory dicts and can be told to raise on
every call; FakePullConnector returns a fixed LibrarySyncResult.
"""

from gamesync.core.domain_types import GameType, SyncStyle
from gamesync.core.provider_contracts import (
    ConnectorManifest,
    MetadataProviderManifest,
    ProviderCapabilities,
    RateLimitConfig,
)
from gamesync.core.records import (
    ConnectorCredentials,
    FetchedMetadata,
    LibrarySyncResult,
    MetadataSearchResult,
)

OWNER_ID = 1


class FakeMetadataProvider:
    def __init__(
        self,
        provider_id: str,
        *,
        metadata: dict[str, FetchedMetadata] | None = None,
        search_index: dict[str, list[str]] | None = None,
        supports_search: bool = True,
        accurate_counts: bool = False,
        game_types: frozenset[GameType] = frozenset({GameType.VIDEO_GAME}),
        rate_limit: RateLimitConfig | None = None,
        error: Exception | None = None,
    ):
        self.manifest = MetadataProviderManifest(
            id=provider_id, name=provider_id.title(), game_types=game_types,
        )
        self.capabilities = ProviderCapabilities(
            supports_search=supports_search,
            has_accurate_player_counts=accurate_counts,
            has_descriptions=True,
        )
        self.rate_limit = rate_limit or RateLimitConfig(max_consecutive_errors=3)
        self.metadata = metadata or {}
        self.search_index = search_index or {}
        self.error = error
        self.search_calls: list[str] = []
        self.fetch_calls: list[str] = []

    async def search_games(self, query: str, limit: int = 10) -> list[MetadataSearchResult]:
        self.search_calls.append(query)
        if self.error is not None:
            raise self.error
        ids = self.search_index.get(query.lower(), [])
        return [
            MetadataSearchResult(
                external_id=i, name=self.metadata[i].name, provider_id=self.manifest.id,
            )
            for i in ids[:limit]
        ]

    async def get_game_metadata(self, external_id: str) -> FetchedMetadata | None:
        self.fetch_calls.append(external_id)
        if self.error is not None:
            raise self.error
        return self.metadata.get(external_id)

    def get_game_url(self, external_id: str) -> str:
        return f"https://{self.manifest.id}.example/{external_id}"


def metadata(provider_id: str, external_id: str, name: str, **kwargs) -> FetchedMetadata:
    return FetchedMetadata(
        external_id=external_id, provider_id=provider_id, name=name, **kwargs,
    )


class FakePullConnector:
    def __init__(
        self, provider: str = "steam", result: LibrarySyncResult | None = None,
        is_aggregator: bool = False,
    ):
        self.manifest = ConnectorManifest(
            id=provider, name=provider.title(), provider=provider,
            sync_style=SyncStyle.PULL, is_aggregator=is_aggregator,
        )
        self.result = result or LibrarySyncResult(success=True)
        self.calls: list[ConnectorCredentials] = []

    async def sync_library(self, credentials: ConnectorCredentials) -> LibrarySyncResult:
        self.calls.append(credentials)
        return self.result


class FakeSleep:
    """Records requested sleeps instead of waiting."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
