"""Manual Metadata Operations — per-title fetch, search and apply.

Invariants:
    - An empty or whitespace query falls back to the title's name; if that is
      empty too, InputValidationError is raised before any provider is called
    - Unknown titles and unknown provider ids raise ResourceNotFoundError
    - Lookups are time-boxed; a timeout degrades to "no metadata", never an error
    - apply_metadata_option always force-updates
"""

import asyncio
import logging
from uuid import UUID

from gamesync.core.errors import InputValidationError, ResourceNotFoundError
from gamesync.core.records import MetadataFetchResult, MetadataSearchResult
from gamesync.core.repository_protocols import CatalogRepository, CatalogTitleLike
from gamesync.services.metadata_pipeline import MetadataPipeline

logger = logging.getLogger(__name__)


class MetadataOperations:
    def __init__(
        self,
        pipeline: MetadataPipeline,
        catalog: CatalogRepository,
        *,
        timeout_seconds: float = 300,
    ):
        self._pipeline = pipeline
        self._catalog = catalog
        self._timeout_seconds = timeout_seconds

    async def fetch_metadata_for_title(
        self, title_id: UUID, search_query: str | None = None,
    ) -> MetadataFetchResult:
        title = await self._get_title(title_id)
        query = _resolve_query(title, search_query)
        try:
            return await asyncio.wait_for(
                self._pipeline.process_one_game(name=query, game_type=title.game_type),
                timeout=self._timeout_or_none(),
            )
        except asyncio.TimeoutError:
            logger.warning(f"Metadata lookup for '{query}' timed out")
            return MetadataFetchResult(metadata=None)

    async def search_metadata_options(
        self, title_id: UUID, search_query: str | None = None,
    ) -> list[MetadataSearchResult]:
        title = await self._get_title(title_id)
        query = _resolve_query(title, search_query)
        try:
            return await asyncio.wait_for(
                self._pipeline.search_options(query, title.game_type),
                timeout=self._timeout_or_none(),
            )
        except asyncio.TimeoutError:
            logger.warning(f"Metadata search for '{query}' timed out")
            return []

    async def apply_metadata_option(
        self, title_id: UUID, provider_id: str, external_id: str,
    ) -> CatalogTitleLike:
        title = await self._get_title(title_id)
        if self._pipeline.registry.get_by_id(provider_id) is None:
            raise ResourceNotFoundError("MetadataProvider", provider_id)
        if not external_id or not external_id.strip():
            raise InputValidationError("External id is required", "external_id")

        result = await self._pipeline.process_one_game(
            name=title.name, provider_id=provider_id, external_id=external_id.strip(),
        )
        if result.metadata is None:
            raise ResourceNotFoundError(f"{provider_id} game", external_id)
        updated, changed = await self._pipeline.apply_to_title(
            title, result.metadata, force_update=True,
        )
        logger.info(
            f"Applied {provider_id} metadata to '{title.name}': {', '.join(changed) or 'no changes'}",
            extra={"provider_id": provider_id},
        )
        return updated

    async def _get_title(self, title_id: UUID) -> CatalogTitleLike:
        title = await self._catalog.get_title(title_id)
        if title is None:
            raise ResourceNotFoundError("CatalogTitle", str(title_id))
        return title

    def _timeout_or_none(self) -> float | None:
        return self._timeout_seconds or None


def _resolve_query(title: CatalogTitleLike, search_query: str | None) -> str:
    query = (search_query or "").strip() or (title.name or "").strip()
    if not query:
        raise InputValidationError("A search query or title name is required", "search_query")
    return query
