"""Playnite Import Payload — the document a Playnite agent pushes.

Invariants:
    - aggregator must be "playnite"; exportedAt must be an ISO timestamp
    - Every game carries playniteDatabaseId, name, originalProviderPluginId
      and originalProviderName
    - Empty optional strings are read as absent
    - storeUrl, when present, is an http(s) URL

Design Decisions:
    - camelCase aliases generated from snake_case field names: the agent's wire
      format stays camelCase while the Python side stays idiomatic
    - Unknown game keys are tolerated (extra="allow") so newer agents keep working
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class PlaynitePlugin(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    plugin_id: str = Field(min_length=1)
    name: str = Field(min_length=1)


class PlayniteGame(BaseModel):
    """One game as exported by Playnite."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow",
    )

    entitlement_key: str | None = Field(None, max_length=500)
    playnite_database_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    is_custom_game: bool | None = None
    hidden: bool | None = None
    is_installed: bool | None = Field(
        None, validation_alias=AliasChoices("isInstalled", "installed", "is_installed"),
    )
    install_directory: str | None = None
    playtime_seconds: int | None = Field(None, ge=0)
    last_activity: datetime | None = None
    platforms: list[str] = Field(default_factory=list)
    source_id: str | None = None
    source_name: str | None = None
    original_provider_plugin_id: str = Field(min_length=1)
    original_provider_name: str = Field(min_length=1)
    original_provider_game_id: str | None = None
    store_url: str | None = None
    raw: dict[str, Any] | None = None

    @field_validator(
        "entitlement_key", "install_directory", "last_activity", "source_id",
        "source_name", "original_provider_game_id", "store_url",
        mode="before",
    )
    @classmethod
    def blank_as_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v

    @field_validator("store_url")
    @classmethod
    def check_store_url(cls, v: str | None) -> str | None:
        if v is not None and not v.lower().startswith(("http://", "https://")):
            raise ValueError("storeUrl must be an http(s) URL")
        return v


class PlayniteImportPayload(BaseModel):
    """Top-level push document."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    aggregator: Literal["playnite"]
    exported_at: datetime
    plugins: list[PlaynitePlugin] = Field(default_factory=list)
    games: list[PlayniteGame]
