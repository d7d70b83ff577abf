"""Metadata Routes — manual per-title metadata fetch, search and apply."""

from uuid import UUID

from fastapi import APIRouter, Depends

from gamesync.api.dependencies import get_metadata_operations
from gamesync.schemas.metadata import (
    ApplyMetadataRequest, CatalogTitleResponse, FetchedMetadataResponse,
    MetadataFetchResponse, MetadataQuery, MetadataSearchResultResponse,
)
from gamesync.services.metadata_operations import MetadataOperations

router = APIRouter(prefix="/api/v1/metadata", tags=["metadata"])


@router.post("/titles/{title_id}/fetch", response_model=MetadataFetchResponse)
async def fetch_metadata(
    title_id: UUID,
    body: MetadataQuery | None = None,
    operations: MetadataOperations = Depends(get_metadata_operations),
):
    result = await operations.fetch_metadata_for_title(
        title_id, body.search_query if body else None,
    )
    return MetadataFetchResponse(
        metadata=(
            FetchedMetadataResponse.model_validate(result.metadata)
            if result.metadata else None
        ),
        provider_id=result.provider_id,
        enriched=result.enriched,
    )


@router.post(
    "/titles/{title_id}/search", response_model=list[MetadataSearchResultResponse],
)
async def search_metadata(
    title_id: UUID,
    body: MetadataQuery | None = None,
    operations: MetadataOperations = Depends(get_metadata_operations),
):
    results = await operations.search_metadata_options(
        title_id, body.search_query if body else None,
    )
    return [MetadataSearchResultResponse.model_validate(r) for r in results]


@router.post("/titles/{title_id}/apply", response_model=CatalogTitleResponse)
async def apply_metadata(
    title_id: UUID,
    body: ApplyMetadataRequest,
    operations: MetadataOperations = Depends(get_metadata_operations),
):
    title = await operations.apply_metadata_option(
        title_id, body.provider_id, body.external_id,
    )
    return CatalogTitleResponse.model_validate(title)
