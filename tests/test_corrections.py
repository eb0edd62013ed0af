"""Tests for manual edit and regenerate actions."""

import asyncio

import pytest
from pt_tracker import Events
from pt_tracker.generation import ScriptedGenerator
from pt_tracker.models import CharacterEntry
from pt_tracker.prompt import format_state_block
from pt_tracker.tags import parse_tags


def test_edit_tracker_with_overrides(seeded_extension):
    extension, host = seeded_extension

    snapshot = extension.edit_tracker(3, {"location": "Lighthouse", "heart_points": 21000})

    assert snapshot.location == "Lighthouse"
    assert snapshot.heart_points == 21000
    assert extension.state.get_snapshot(3) is snapshot
    assert "Heart Meter: 💙 21000" in host.headers[3]
    assert host.load_settings("pt-tracker")["current_location"] == "Lighthouse"


def test_edit_tracker_opens_dialog_prefilled(seeded_extension):
    extension, host = seeded_extension
    seen = {}

    def dialog(index, fields):
        seen.update(index=index, fields=fields)
        return {"weather": "Clear skies"}

    host.dialog = dialog
    snapshot = extension.edit_tracker(3)

    assert seen["index"] == 3
    assert seen["fields"]["location"] == "Docks"
    assert seen["fields"]["heart_points"] == 6000
    assert snapshot.weather == "Clear skies"


def test_edit_tracker_cancelled_dialog(seeded_extension):
    extension, host = seeded_extension
    before = host.headers[3]

    host.dialog = lambda index, fields: None

    assert extension.edit_tracker(3) is None
    assert host.headers[3] == before


def test_edit_tracker_uncached_message_is_resolved_from_text(seeded_extension):
    extension, host = seeded_extension
    extension.state.clear()

    snapshot = extension.edit_tracker(1, {"weather": "Drizzle"})

    assert snapshot.location == "Docks"
    assert snapshot.weather == "Drizzle"
    assert extension.settings.current_weather == "Foggy, 50°F"


def test_edit_tracker_rejects_user_message(seeded_extension):
    extension, host = seeded_extension

    with pytest.raises(ValueError):
        extension.edit_tracker(2, {"location": "Nowhere"})


def test_header_long_press_opens_edit(seeded_extension):
    extension, host = seeded_extension
    host.dialog = lambda index, fields: {"location": "Pier %d" % index}

    asyncio.run(host.emit(Events.HEADER_LONG_PRESS, {"message_index": 1}))

    assert "Location: Pier 1" in host.headers[1]


def test_edit_button_targets_latest_ai_message(seeded_extension):
    extension, host = seeded_extension
    host.dialog = lambda index, fields: {"time": "23:59"}

    asyncio.run(host.emit(Events.BUTTON_CLICKED, {"action": "edit"}))

    assert "Time: 11:59 PM" in host.headers[3]


def test_stop_button_is_noop(seeded_extension):
    extension, host = seeded_extension
    before = dict(host.headers)

    asyncio.run(host.emit(Events.BUTTON_CLICKED, {"action": "stop"}))

    assert host.headers == before


def test_regenerate_applies_response_tags(seeded_extension):
    extension, host = seeded_extension
    host.generator = ScriptedGenerator(["[location: Boardwalk]\n[heart: 9000]"])

    snapshot = asyncio.run(extension.regenerate_tracker(3))

    assert snapshot.location == "Boardwalk"
    assert snapshot.heart_points == 9000
    assert snapshot.time == "8:15 AM; 05/21/2001 (Monday)"
    assert "Location: Boardwalk" in host.headers[3]
    assert extension.settings.heart_points == 9000


def test_regenerate_prompt_includes_narrative_and_hint(seeded_extension):
    extension, host = seeded_extension
    generator = ScriptedGenerator(["[heart: 1]"])
    host.generator = generator

    asyncio.run(extension.regenerate_tracker(3))

    prompt = generator.prompts[0]
    assert "Scene:\nThey stroll along the water." in prompt
    assert "[time: 09:00]" not in prompt
    assert "Tracker state before this scene:\nTime: 8:15 AM" in prompt


def test_regenerate_without_hint(seeded_extension):
    extension, host = seeded_extension
    extension.config.regenerate_with_hint = False
    generator = ScriptedGenerator(["[heart: 1]"])
    host.generator = generator

    asyncio.run(extension.regenerate_tracker(3))

    assert "before this scene" not in generator.prompts[0]


def test_regenerate_without_tags_leaves_state(seeded_extension):
    extension, host = seeded_extension
    host.generator = ScriptedGenerator(["Sorry, I can't do that."])
    before = host.headers[3]

    assert asyncio.run(extension.regenerate_tracker(3)) is None
    assert host.headers[3] == before
    assert extension.settings.heart_points == 6000


def test_regenerate_dropped_when_message_changes_meanwhile(seeded_extension):
    extension, host = seeded_extension

    class EditingGenerator:
        async def generate(self, prompt):
            host.edit_message(3, "Rewritten by the user. [location: Attic]")
            return "[location: Boardwalk]"

    host.generator = EditingGenerator()

    assert asyncio.run(extension.regenerate_tracker(3)) is None
    assert "Location: Boardwalk" not in host.headers[3]


def test_regenerate_button_awaits_generation(seeded_extension):
    extension, host = seeded_extension
    host.generator = ScriptedGenerator(["[weather: Storm]"])

    asyncio.run(host.emit(Events.BUTTON_CLICKED, {"action": "regenerate"}))

    assert "Weather: Storm" in host.headers[3]


def test_regenerate_without_backend_raises(seeded_extension):
    extension, host = seeded_extension
    host.generator = None

    with pytest.raises(RuntimeError):
        asyncio.run(extension.regenerate_tracker(3))


def test_manual_edit_survives_next_turn(seeded_extension):
    extension, host = seeded_extension
    extension.edit_tracker(3, {"location": "Lighthouse", "heart_points": 21000})

    message = host.add_message("The lamp flickers on. [time: 10:00]")
    snapshot = extension.process_ai_message(message.text, message.index)

    assert snapshot.location == "Lighthouse"
    assert snapshot.heart_points == 21000
    assert snapshot.weather == "Foggy, 50°F"
    assert extension.settings.heart_points == 21000


def test_regenerated_untagged_message_feeds_next_turn(extension, host):
    first = host.add_message("They cast off. [location: Docks]")
    extension.process_ai_message(first.text, first.index)
    host.add_message("Onward!", is_user=True)
    untagged = host.add_message("The shore fades behind them.")
    extension.process_ai_message(untagged.text, untagged.index)

    host.generator = ScriptedGenerator(["[location: Open Sea]"])
    asyncio.run(extension.regenerate_tracker(untagged.index))
    assert extension.settings.current_location == "Open Sea"

    message = host.add_message("Gulls circle the mast. [time: 09:00]")
    snapshot = extension.process_ai_message(message.text, message.index)

    assert snapshot.location == "Open Sea"


def test_reparsed_message_drops_its_correction(seeded_extension):
    extension, host = seeded_extension
    extension.edit_tracker(3, {"location": "Lighthouse"})
    assert extension.state.is_corrected(3)

    extension.on_message_edited(
        {"text": host.chat[3].text, "index": 3, "is_user": False}
    )

    assert not extension.state.is_corrected(3)
    assert extension.state.get_snapshot(3).location == "Docks"


def test_edited_values_round_trip_through_prompt(seeded_extension):
    extension, host = seeded_extension

    snapshot = extension.edit_tracker(
        3,
        {
            "location": "Pier ]7",
            "weather": "[Windy]",
            "characters": [{"name": "Al|ice", "outfit": "coat] | hat"}],
        },
    )

    assert snapshot.location == "Pier 7"
    assert snapshot.weather == "Windy"
    assert snapshot.characters == [CharacterEntry("Al/ice", outfit="coat / hat")]

    tags = parse_tags(format_state_block(snapshot))
    assert tags.location == snapshot.location
    assert tags.weather == snapshot.weather
    assert tags.characters == snapshot.characters
