"""Title Updates — which CatalogTitle fields a piece of metadata may change.

Invariants:
    - Description only replaced when absent, too short, a name placeholder, or forced
    - Cover only fills an empty slot unless forced
    - Video games never receive physical-play fields
    - Invalid counts never overwrite known values
"""

from types import SimpleNamespace
from uuid import uuid4

from gamesync.core.records import FetchedMetadata, PlayerInfo

from gamesync.core.title_updates import compute_title_updates, is_physical_type

LONG_DESCRIPTION = (
    "A sprawling open-world adventure across a war-torn continent "
    "full of monsters and difficult choices."
)


def make_title(**overrides):
    values = dict(
        id=uuid4(), name="Hades", normalized_name="hades", game_type="video_game",
        description=None, cover_image_url=None,
        overall_min_players=1, overall_max_players=1,
        supports_online=False, supports_local=False, supports_physical=False,
        online_min_players=None, online_max_players=None,
        local_min_players=None, local_max_players=None,
        physical_min_players=None, physical_max_players=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def make_metadata(**overrides):
    values = dict(external_id="1145360", provider_id="steam", name="Hades")
    values.update(overrides)
    return FetchedMetadata(**values)


def test_description_filled_when_absent():
    updates = compute_title_updates(
        make_title(), make_metadata(description="<p>Defy the god &amp; escape</p>"),
    )
    assert updates["description"] == "Defy the god & escape"


def test_short_description_preferred():
    updates = compute_title_updates(
        make_title(),
        make_metadata(description=LONG_DESCRIPTION, short_description="Roguelike."),
    )
    assert updates["description"] == "Roguelike."


def test_meaningful_description_kept_without_force():
    title = make_title(description=LONG_DESCRIPTION)
    updates = compute_title_updates(title, make_metadata(description="Something else entirely"))
    assert "description" not in updates


def test_short_description_is_replaced():
    title = make_title(description="TBD")
    updates = compute_title_updates(title, make_metadata(description=LONG_DESCRIPTION))
    assert updates["description"] == LONG_DESCRIPTION


def test_name_placeholder_description_is_replaced():
    title = make_title(description="Hades")
    updates = compute_title_updates(
        title, make_metadata(description="Battle out of hell."), min_description_length=3,
    )
    assert updates["description"] == "Battle out of hell."


def test_name_placeholder_match_is_case_sensitive():
    title = make_title(description="HADES")
    updates = compute_title_updates(
        title, make_metadata(description="Battle out of hell."), min_description_length=3,
    )
    assert "description" not in updates


def test_force_update_replaces_description_and_cover():
    title = make_title(description=LONG_DESCRIPTION, cover_image_url="https://old/cover.jpg")
    updates = compute_title_updates(
        title,
        make_metadata(description="Fresh text", cover_image_url="https://new/cover.jpg"),
        force_update=True,
    )
    assert updates["description"] == "Fresh text"
    assert updates["cover_image_url"] == "https://new/cover.jpg"


def test_cover_only_fills_empty_slot():
    title = make_title(cover_image_url="https://old/cover.jpg")
    updates = compute_title_updates(title, make_metadata(cover_image_url="https://new/cover.jpg"))
    assert "cover_image_url" not in updates

    updates = compute_title_updates(make_title(), make_metadata(cover_image_url="https://new/cover.jpg"))
    assert updates["cover_image_url"] == "https://new/cover.jpg"


def test_video_game_never_gets_physical_play():
    info = PlayerInfo(supports_physical=True, physical_min_players=2, physical_max_players=4)
    updates = compute_title_updates(make_title(), make_metadata(player_info=info))
    assert "supports_physical" not in updates
    assert "physical_max_players" not in updates


def test_board_game_receives_physical_counts():
    title = make_title(game_type="board_game")
    info = PlayerInfo(
        overall_min_players=2, overall_max_players=4, supports_physical=True,
        physical_min_players=2, physical_max_players=4,
    )
    updates = compute_title_updates(title, make_metadata(player_info=info))
    assert updates == {
        "overall_min_players": 2,
        "overall_max_players": 4,
        "supports_physical": True,
        "physical_min_players": 2,
        "physical_max_players": 4,
    }


def test_mode_max_extends_overall_max():
    title = make_title(overall_max_players=4)
    info = PlayerInfo(supports_online=True, online_max_players=8)
    updates = compute_title_updates(title, make_metadata(player_info=info))
    assert updates["overall_max_players"] == 8
    assert updates["supports_online"] is True
    assert updates["online_min_players"] == 1
    assert updates["online_max_players"] == 8


def test_invalid_counts_never_overwrite_known_values():
    title = make_title(overall_max_players=4)
    info = PlayerInfo(overall_max_players=0, overall_min_players=-2)
    assert compute_title_updates(title, make_metadata(player_info=info)) == {}


def test_unchanged_values_are_not_returned():
    title = make_title(description="Roguelike.", cover_image_url="https://c/1.jpg")
    updates = compute_title_updates(
        title,
        make_metadata(short_description="Roguelike.", cover_image_url="https://c/1.jpg"),
        force_update=True,
    )
    assert updates == {}


def test_physical_type_detection():
    assert is_physical_type("card_game")
    assert not is_physical_type("video_game")
    assert not is_physical_type("not-a-type")
