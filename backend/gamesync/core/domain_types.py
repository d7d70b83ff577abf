"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - AccountId, TitleId, ReleaseId, JobId, DeviceId wrap UUIDs; OwnerId wraps int
    - All valid states encoded as Enums — no raw string matching
    - Provider ids are lowercase strings ("steam", "playnite", "rawg")

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: persist as plain strings and serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

AccountId = NewType("AccountId", UUID)
TitleId = NewType("TitleId", UUID)
ReleaseId = NewType("ReleaseId", UUID)
JobId = NewType("JobId", UUID)
DeviceId = NewType("DeviceId", UUID)
OwnerId = NewType("OwnerId", int)
ProviderId = NewType("ProviderId", str)


# ─── Constants ───────────────────────────────────────────────────

DEFAULT_MULTIPLAYER_MAX_PLAYERS = 4
DEFAULT_PLATFORM = "PC"

PROVIDER_PLATFORM_DEFAULTS: dict[str, str] = {
    "steam": "PC",
    "epic": "PC",
    "gog": "PC",
    "origin": "PC",
    "ubisoft": "PC",
    "playnite": "PC",
    "xbox": "Xbox Series",
    "playstation": "PlayStation 5",
    "nintendo": "Nintendo Switch",
}


# ─── Enums ───────────────────────────────────────────────────────

class GameType(str, Enum):
    """Catalog title type. Physical-play fields only apply to non-video types."""
    VIDEO_GAME = "video_game"
    BOARD_GAME = "board_game"
    CARD_GAME = "card_game"
    TABLETOP_RPG = "tabletop_rpg"
    OTHER_PHYSICAL = "other_physical"


PHYSICAL_GAME_TYPES = frozenset({
    GameType.BOARD_GAME,
    GameType.CARD_GAME,
    GameType.TABLETOP_RPG,
    GameType.OTHER_PHYSICAL,
})


class MappingStatus(str, Enum):
    """ExternalMapping lifecycle — IGNORED suppresses copy creation."""
    PENDING = "pending"
    MAPPED = "mapped"
    IGNORED = "ignored"


class SyncJobStatus(str, Enum):
    """SyncJob states — COMPLETED and FAILED are terminal."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncJobType(str, Enum):
    """What a job record tracks."""
    LIBRARY_SYNC = "library_sync"
    PUSH_IMPORT = "push_import"
    METADATA_ENRICHMENT = "metadata_enrichment"


class SyncStyle(str, Enum):
    """How a connector obtains games: it fetches them, or an agent pushes them."""
    PULL = "pull"
    PUSH = "push"


class ConnectorCapability(str, Enum):
    LIBRARY_SYNC = "library_sync"
    PLAYTIME_SYNC = "playtime_sync"
    INSTALLED_SYNC = "installed_sync"
    DEVICE_MANAGEMENT = "device_management"


class ConnectorErrorCode(str, Enum):
    """Connector failure classes surfaced in FAILED job messages."""
    API_KEY_INVALID = "API_KEY_INVALID"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    NETWORK_ERROR = "NETWORK_ERROR"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
