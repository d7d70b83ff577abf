"""Metadata Operations — manual per-title fetch, search and apply.

Invariants:
    - Query falls back to the title name when no search query is given
    - Apply forces description and cover replacement
    - Unknown title, unknown provider and missing external game are 404s
"""

import asyncio
from uuid import uuid4

import pytest

from gamesync.core.errors import InputValidationError, ResourceNotFoundError
from gamesync.services.metadata_operations import MetadataOperations

from tests.services.fakes import FakeMetadataProvider, metadata


@pytest.fixture
def rawg(provider_registry):
    provider = FakeMetadataProvider(
        "rawg",
        metadata={
            "4200": metadata(
                "rawg", "4200", "Portal 2",
                description="Sequel to the puzzle classic with a co-op campaign.",
                cover_image_url="https://media.example/portal2.jpg",
            ),
            "13": metadata("rawg", "13", "Portal 2: Desolation"),
        },
        search_index={"portal 2": ["4200", "13"], "portal two": ["4200"]},
    )
    provider_registry.register(provider)
    return provider


@pytest.fixture
def operations(pipeline, catalog):
    return MetadataOperations(pipeline, catalog)


@pytest.fixture
async def title(catalog):
    return await catalog.create_title({
        "name": "Portal 2", "normalized_name": "portal 2", "game_type": "video_game",
        "description": "Old description that is long enough to be kept around.",
        "cover_image_url": "https://old.example/cover.jpg",
    })


async def test_fetch_uses_title_name_by_default(operations, rawg, title):
    result = await operations.fetch_metadata_for_title(title.id)

    assert result.provider_id == "rawg"
    assert result.metadata.external_id == "4200"
    assert rawg.search_calls == ["Portal 2"]


async def test_fetch_uses_explicit_query(operations, rawg, title):
    await operations.fetch_metadata_for_title(title.id, "  Portal Two ")
    assert rawg.search_calls == ["Portal Two"]


async def test_fetch_unknown_title_is_not_found(operations):
    with pytest.raises(ResourceNotFoundError):
        await operations.fetch_metadata_for_title(uuid4())


async def test_fetch_times_out_to_empty_result(pipeline, catalog, title):
    class SlowProvider(FakeMetadataProvider):
        async def search_games(self, query, limit=10):
            await asyncio.sleep(1)
            return []

    pipeline.registry.register(SlowProvider("slow"))
    operations = MetadataOperations(pipeline, catalog, timeout_seconds=0.01)

    result = await operations.fetch_metadata_for_title(title.id)

    assert result.metadata is None


async def test_search_returns_ranked_options(operations, rawg, title):
    options = await operations.search_metadata_options(title.id)
    assert [o.name for o in options] == ["Portal 2", "Portal 2: Desolation"]


async def test_apply_forces_description_and_cover(operations, rawg, title, catalog):
    updated = await operations.apply_metadata_option(title.id, "rawg", "4200")

    assert updated.description == "Sequel to the puzzle classic with a co-op campaign."
    assert updated.cover_image_url == "https://media.example/portal2.jpg"
    stored = await catalog.get_title(title.id)
    assert stored.description == updated.description


async def test_apply_unknown_provider_is_not_found(operations, title):
    with pytest.raises(ResourceNotFoundError) as exc:
        await operations.apply_metadata_option(title.id, "nope", "1")
    assert exc.value.resource_type == "MetadataProvider"


async def test_apply_missing_game_is_not_found(operations, rawg, title):
    with pytest.raises(ResourceNotFoundError):
        await operations.apply_metadata_option(title.id, "rawg", "does-not-exist")


async def test_apply_requires_external_id(operations, rawg, title):
    with pytest.raises(InputValidationError):
        await operations.apply_metadata_option(title.id, "rawg", "  ")
