"""Metadata Schemas — manual per-title metadata fetch, search and apply."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MetadataQuery(BaseModel):
    search_query: str | None = Field(None, max_length=200)


class ApplyMetadataRequest(BaseModel):
    provider_id: str = Field(min_length=1, max_length=50)
    external_id: str = Field(min_length=1, max_length=100)


class PlayerInfoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    overall_min_players: int | None = None
    overall_max_players: int | None = None
    supports_online: bool | None = None
    supports_local: bool | None = None
    supports_physical: bool | None = None
    online_min_players: int | None = None
    online_max_players: int | None = None
    local_min_players: int | None = None
    local_max_players: int | None = None
    physical_min_players: int | None = None
    physical_max_players: int | None = None


class FetchedMetadataResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    external_id: str
    provider_id: str
    name: str
    description: str | None = None
    short_description: str | None = None
    cover_image_url: str | None = None
    header_image_url: str | None = None
    genres: list[str] = []
    developers: list[str] = []
    publishers: list[str] = []
    platforms: list[str] = []
    release_date: str | None = None
    store_url: str | None = None
    player_info: PlayerInfoResponse | None = None


class MetadataFetchResponse(BaseModel):
    metadata: FetchedMetadataResponse | None
    provider_id: str | None = None
    enriched: bool = False


class MetadataSearchResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    external_id: str
    name: str
    provider_id: str
    release_date: str | None = None
    cover_image_url: str | None = None


class CatalogTitleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    game_type: str
    description: str | None = None
    cover_image_url: str | None = None
    overall_min_players: int
    overall_max_players: int
    supports_online: bool
    supports_local: bool
    supports_physical: bool
    online_min_players: int | None = None
    online_max_players: int | None = None
    local_min_players: int | None = None
    local_max_players: int | None = None
    physical_min_players: int | None = None
    physical_max_players: int | None = None
