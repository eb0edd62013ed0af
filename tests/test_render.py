"""Tests for header rendering."""

import pytest

from pt_tracker.models import CharacterEntry, Settings, TrackerSnapshot
from pt_tracker.render import build_header, heart_emoji


@pytest.mark.parametrize(
    "points,emoji",
    [
        (-100, "🖤"),
        (0, "🖤"),
        (4999, "🖤"),
        (5000, "💜"),
        (19999, "💜"),
        (20000, "💙"),
        (35000, "💚"),
        (45000, "💛"),
        (59999, "🧡"),
        (60000, "❤️"),
        (80000, "❤️"),
    ],
)
def test_heart_emoji_tiers(points, emoji):
    assert heart_emoji(points) == emoji


def test_header_all_fields():
    snapshot = TrackerSnapshot(
        time="2:05 PM", location="Docks", weather="Foggy", heart_points=75000
    )

    header = build_header(snapshot, Settings())

    assert header.splitlines() == [
        "Time: 2:05 PM",
        "Location: Docks",
        "Weather: Foggy",
        "Heart Meter: ❤️ 75000",
    ]


def test_disabled_fields_leave_no_line():
    snapshot = TrackerSnapshot(time="2:05 PM", location="Docks", weather="Foggy")
    settings = Settings(show_time=False, show_weather=False)

    header = build_header(snapshot, settings)

    assert header.splitlines() == ["Location: Docks", "Heart Meter: 🖤 0"]


def test_negative_points_display_as_zero():
    header = build_header(TrackerSnapshot(heart_points=-20), Settings())

    assert "Heart Meter: 🖤 0" in header


def test_character_block():
    snapshot = TrackerSnapshot(
        location="Docks",
        characters=[
            CharacterEntry("Alice", outfit="raincoat", position="on the pier"),
            CharacterEntry("Bob"),
        ],
    )
    settings = Settings(show_time=False, show_weather=False, show_heart_meter=False)

    header = build_header(snapshot, settings)

    assert header.splitlines() == [
        "Location: Docks",
        "---",
        "Characters: Alice, Bob",
        "Alice: raincoat · on the pier",
    ]


def test_character_block_hidden():
    snapshot = TrackerSnapshot(characters=[CharacterEntry("Alice")])

    assert "Characters" not in build_header(snapshot, Settings(show_characters=False))
    assert "Characters" not in build_header(snapshot, Settings(track_characters=False))


def test_empty_character_list_has_no_block():
    header = build_header(TrackerSnapshot(), Settings())

    assert "---" not in header
    assert "Characters" not in header
