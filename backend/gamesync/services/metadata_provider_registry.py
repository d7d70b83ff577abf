"""Metadata Provider Registry — lookup by id, by game type and by capability.

Invariants:
    - Registration order is preserved and is the fallback order everywhere
    - get_by_game_type matches the manifest's game_types set
    - Capability queries read ProviderCapabilities flags, never provider ids
"""

from gamesync.core.domain_types import GameType
from gamesync.core.provider_contracts import MetadataProvider


class MetadataProviderRegistry:
    def __init__(self) -> None:
        self._providers: dict[str, MetadataProvider] = {}

    def register(self, provider: MetadataProvider) -> None:
        self._providers[provider.manifest.id] = provider

    def get_by_id(self, provider_id: str) -> MetadataProvider | None:
        return self._providers.get(provider_id)

    def all(self) -> list[MetadataProvider]:
        return list(self._providers.values())

    def get_by_game_type(self, game_type: str | GameType) -> list[MetadataProvider]:
        try:
            wanted = GameType(game_type)
        except ValueError:
            return []
        return [p for p in self._providers.values() if wanted in p.manifest.game_types]

    def get_with_search(self) -> list[MetadataProvider]:
        return [p for p in self._providers.values() if p.capabilities.supports_search]

    def get_with_accurate_player_counts(self) -> list[MetadataProvider]:
        return [
            p for p in self._providers.values()
            if p.capabilities.has_accurate_player_counts
        ]
