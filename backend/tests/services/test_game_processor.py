"""Game Processor — catalog reconciliation for raw external games.

Invariants:
    - Editions of one game merge into a single title with one release per edition
    - Re-running a batch creates no new titles, releases or copies (smart sync)
    - Invalid player profiles are clamped on title creation, never rejected
    - An IGNORED mapping keeps the snapshot but suppresses the copy
    - One failing game does not stop the batch
"""

from gamesync.core.domain_types import MappingStatus
from gamesync.core.errors import PlayerProfileValidationError
from gamesync.core.player_profile import profile_fields, safe_default_profile
from gamesync.core.records import PlayerInfo, RawExternalGame
from gamesync.infrastructure.catalog_repository import SqlCatalogRepository
from gamesync.services.game_processor import GameProcessor

from tests.services.fakes import OWNER_ID


def game(external_id: str, name: str, **kwargs) -> RawExternalGame:
    return RawExternalGame(external_game_id=external_id, name=name, **kwargs)


async def test_new_games_create_title_release_mapping_and_copy(
    processor, library, catalog, steam_account,
):
    stats = await processor.process_game_batch(
        steam_account.id, "steam", [game("620", "Portal 2", playtime_minutes=90)], OWNER_ID,
    )

    assert stats.entries_processed == 1
    assert stats.entries_added == 1
    assert stats.titles_created == 1
    assert stats.copies_created == 1

    title = await catalog.find_title_by_normalized_name("portal 2")
    releases = await catalog.list_releases(title.id)
    assert [r.platform for r in releases] == ["PC"]
    mapping = await library.get_mapping("steam", "620", OWNER_ID)
    assert mapping.status == MappingStatus.MAPPED
    copy = await library.find_copy(steam_account.id, "620")
    assert copy.release_id == releases[0].id
    assert copy.playtime_minutes == 90


async def test_editions_merge_into_one_title(processor, catalog, steam_account):
    await processor.process_game_batch(
        steam_account.id, "steam",
        [
            game("489830", "Skyrim: Special Edition"),
            game("72850", "Skyrim"),
        ],
        OWNER_ID,
    )

    title = await catalog.find_title_by_normalized_name("skyrim")
    assert title.name == "Skyrim"
    releases = await catalog.list_releases(title.id)
    assert sorted(r.edition or "" for r in releases) == ["", "Special Edition"]


async def test_editions_from_different_providers_merge(
    processor, catalog, steam_account, playnite_account,
):
    first = await processor.process_game_batch(
        steam_account.id, "steam", [game("1222670", "The Sims 4")], OWNER_ID,
    )
    second = await processor.process_game_batch(
        playnite_account.id, "playnite",
        [game("playnite:ea:sims4", "The Sims 4 Premium Edition")], OWNER_ID,
        is_aggregator=True,
    )

    assert (first.titles_created, second.titles_created) == (1, 0)
    assert (first.releases_created, second.releases_created) == (1, 1)
    title = await catalog.find_title_by_normalized_name("the sims 4")
    releases = await catalog.list_releases(title.id)
    assert sorted(r.edition or "" for r in releases) == ["", "Premium Edition"]


async def test_second_run_only_refreshes_volatile_fields(processor, library, steam_account):
    """Smart sync: an existing copy is updated in place, nothing new is created."""
    await processor.process_game_batch(
        steam_account.id, "steam", [game("620", "Portal 2", playtime_minutes=90)], OWNER_ID,
    )

    stats = await processor.process_game_batch(
        steam_account.id, "steam",
        [game("620", "Portal 2", playtime_minutes=150, is_installed=True)], OWNER_ID,
    )

    assert stats.entries_updated == 1
    assert stats.entries_added == 0
    assert stats.titles_created == 0
    assert stats.copies_created == 0
    copy = await library.find_copy(steam_account.id, "620")
    assert copy.playtime_minutes == 150
    assert copy.is_installed is True
    snapshot = await library.get_snapshot(steam_account.id, "620")
    assert snapshot.playtime_minutes == 150


async def test_platform_defaults_by_provider(processor, catalog, accounts):
    account = await accounts.create({"owner_id": OWNER_ID, "provider": "xbox"})
    await processor.process_game_batch(account.id, "xbox", [game("x1", "Halo Infinite")], OWNER_ID)

    title = await catalog.find_title_by_normalized_name("halo infinite")
    releases = await catalog.list_releases(title.id)
    assert releases[0].platform == "Xbox Series"


async def test_inconsistent_player_counts_are_clamped(processor, catalog, steam_account):
    """Online max above overall max extends overall max instead of failing."""
    info = PlayerInfo(overall_max_players=2, supports_online=True, online_max_players=8)
    await processor.process_game_batch(
        steam_account.id, "steam", [game("1", "Party Game", player_info=info)], OWNER_ID,
    )

    title = await catalog.find_title_by_normalized_name("party game")
    assert title.overall_max_players == 8
    assert title.supports_online is True
    assert title.online_max_players == 8


async def test_multiplayer_without_counts_uses_default_max(processor, catalog, steam_account):
    info = PlayerInfo(supports_local=True)
    await processor.process_game_batch(
        steam_account.id, "steam", [game("2", "Couch Co-op", player_info=info)], OWNER_ID,
    )

    title = await catalog.find_title_by_normalized_name("couch co op")
    assert title.overall_max_players == 4
    assert title.local_max_players == 4


async def test_description_is_stripped_on_title_creation(processor, catalog, steam_account):
    await processor.process_game_batch(
        steam_account.id, "steam",
        [game("3", "Celeste", description="<p>Climb the <b>mountain</b>.</p>")], OWNER_ID,
    )

    title = await catalog.find_title_by_normalized_name("celeste")
    assert title.description == "Climb the mountain."


async def test_ignored_mapping_suppresses_copy(processor, library, steam_account):
    await library.create_mapping({
        "provider": "steam", "external_game_id": "999", "owner_id": OWNER_ID,
        "status": MappingStatus.IGNORED.value,
    })

    stats = await processor.process_game_batch(
        steam_account.id, "steam", [game("999", "Soundtrack DLC")], OWNER_ID,
    )

    assert stats.copies_created == 0
    assert await library.find_copy(steam_account.id, "999") is None
    assert await library.get_snapshot(steam_account.id, "999") is not None


async def test_pending_mapping_is_resolved(processor, library, steam_account):
    pending = await library.create_mapping({
        "provider": "steam", "external_game_id": "70", "owner_id": OWNER_ID,
    })

    await processor.process_game_batch(
        steam_account.id, "steam", [game("70", "Half-Life")], OWNER_ID,
    )

    mapping = await library.get_mapping("steam", "70", OWNER_ID)
    assert mapping.id == pending.id
    assert mapping.status == MappingStatus.MAPPED
    assert mapping.title_id is not None


async def test_aggregator_copy_without_original_id_needs_review(processor, library, playnite_account):
    await processor.process_game_batch(
        playnite_account.id, "playnite",
        [
            game("playnite:abc:620", "Portal 2", original_provider_game_id="620"),
            game("playnite-db:xyz", "Mystery Game"),
        ],
        OWNER_ID, is_aggregator=True,
    )

    tracked = await library.find_copy(playnite_account.id, "playnite:abc:620")
    unknown = await library.find_copy(playnite_account.id, "playnite-db:xyz")
    assert tracked.needs_review is False
    assert tracked.aggregator_provider_id == "playnite"
    assert unknown.needs_review is True


class FlakyCatalog(SqlCatalogRepository):
    async def find_title_by_normalized_name(self, normalized_name):
        if normalized_name == "broken":
            raise RuntimeError("lookup failed")
        return await super().find_title_by_normalized_name(normalized_name)


async def test_one_failing_game_does_not_stop_batch(db, library, steam_account):
    processor = GameProcessor(FlakyCatalog(db), library)

    stats = await processor.process_game_batch(
        steam_account.id, "steam",
        [game("1", "Broken"), game("2", "Working")], OWNER_ID,
    )

    assert stats.copies_created == 1
    assert await library.find_copy(steam_account.id, "2") is not None
    assert await library.find_copy(steam_account.id, "1") is None


class StubbornCatalog(SqlCatalogRepository):
    """Rejects the first `rejections` title profiles it is given."""

    def __init__(self, db, rejections: int):
        super().__init__(db)
        self.rejections = rejections
        self.attempts: list[dict] = []

    async def create_title(self, fields):
        self.attempts.append(fields)
        if len(self.attempts) <= self.rejections:
            raise PlayerProfileValidationError(["overall_max_players < overall_min_players"])
        return await super().create_title(fields)


async def test_rejected_clamp_falls_back_to_safe_profile(db, library, steam_account):
    catalog = StubbornCatalog(db, rejections=2)
    processor = GameProcessor(catalog, library)
    info = PlayerInfo(overall_max_players=2, supports_online=True, online_max_players=8)

    stats = await processor.process_game_batch(
        steam_account.id, "steam", [game("1", "Party Game", player_info=info)], OWNER_ID,
    )

    assert len(catalog.attempts) == 3
    safe = profile_fields(safe_default_profile())
    assert {k: catalog.attempts[2][k] for k in safe} == safe
    assert stats.copies_created == 1
    title = await catalog.find_title_by_normalized_name("party game")
    assert title.overall_max_players == 1
    assert title.supports_online is False


async def test_title_creation_stops_after_three_attempts(db, library, steam_account):
    catalog = StubbornCatalog(db, rejections=5)
    processor = GameProcessor(catalog, library)

    stats = await processor.process_game_batch(
        steam_account.id, "steam", [game("1", "Party Game"), game("2", "Solo Game")], OWNER_ID,
    )

    # Three attempts per game, and the failing games do not stop the batch
    assert len(catalog.attempts) == 6
    assert stats.copies_created == 0
