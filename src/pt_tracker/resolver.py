"""Fallback resolution of parsed tags into tracker snapshots."""

from __future__ import annotations

import re

from pt_tracker.models import (
    UNKNOWN,
    CharacterEntry,
    ChatMessage,
    Settings,
    TagSet,
    TrackerSnapshot,
)
from pt_tracker.tags import normalize_time, parse_tags

_HEART_PATTERN = re.compile(r"^\s*([+-]?\d[\d,]*)")


def parse_heart(raw: str | None) -> int | None:
    """Parse a heart tag value into non-negative points.

    Reads the leading integer (thousands separators allowed) and clamps
    negatives to 0. Returns None when nothing numeric is found.
    """
    if raw is None:
        return None
    match = _HEART_PATTERN.match(raw)
    if match is None:
        return None
    return max(0, int(match.group(1).replace(",", "")))


def find_previous_tags(
    history: list[ChatMessage],
    index: int,
    track_characters: bool = True,
    corrected: dict[int, TrackerSnapshot] | None = None,
) -> TagSet | None:
    """Tags of the nearest earlier AI message that carries any.

    Args:
        history: Visible chat history
        index: Index of the message being resolved
        track_characters: Whether [char:] tags are parsed
        corrected: Snapshots from manual edits or regenerations, by message
            index; these replace the message's raw tags

    Returns:
        TagSet of the nearest earlier tagged AI message, or None
    """
    corrected = corrected or {}
    earlier = sorted(
        (m for m in history if m.index < index and not m.is_user),
        key=lambda m: m.index,
        reverse=True,
    )
    for message in earlier:
        if message.index in corrected:
            tags = corrected[message.index].to_tags()
            if not track_characters:
                tags.characters = []
            return tags
        tags = parse_tags(message.text, track_characters)
        if not tags.is_empty:
            return tags
    return None


def _first(*values: str | None) -> str | None:
    for value in values:
        if value:
            return value
    return None


def resolve_snapshot(
    current: TagSet,
    previous: TagSet | None,
    settings: Settings,
    default: str = UNKNOWN,
) -> TrackerSnapshot:
    """Resolve a message's tags into a complete snapshot.

    Each field falls back from the current message to the nearest earlier
    AI message, then to the persisted settings, then to ``default``. A
    missing tag means "unchanged", never "cleared".

    Args:
        current: Tags parsed from the message being resolved
        previous: Tags of the nearest earlier AI message, if any
        settings: Persisted settings holding the last known values
        default: Literal used when no source has a value

    Returns:
        TrackerSnapshot with every field concrete
    """
    previous = previous or TagSet()

    time = _first(current.time, previous.time, settings.current_time)
    location = _first(current.location, previous.location, settings.current_location)
    weather = _first(current.weather, previous.weather, settings.current_weather)

    heart_points = parse_heart(current.heart)
    if heart_points is None:
        heart_points = parse_heart(previous.heart)
    if heart_points is None:
        heart_points = max(0, settings.heart_points)

    if current.characters:
        characters = list(current.characters)
    elif previous.characters:
        characters = list(previous.characters)
    else:
        characters = [CharacterEntry.from_dict(c) for c in settings.current_characters]
    if not settings.track_characters:
        characters = []

    return TrackerSnapshot(
        time=normalize_time(time) if time else default,
        location=location or default,
        weather=weather or default,
        heart_points=heart_points,
        characters=characters,
    )


def _clean(value: str, pipes: bool = False) -> str:
    value = value.replace("[", "").replace("]", "")
    if pipes:
        value = value.replace("|", "/")
    return " ".join(value.split())


def apply_overrides(snapshot: TrackerSnapshot, overrides: dict) -> TrackerSnapshot:
    """Apply manual field corrections to a snapshot.

    Blank strings are ignored; ``heart_points`` goes through parse_heart so a
    bad value keeps the existing points. Brackets are removed from values (and
    pipes from character fields) so the result can be written back as tags.
    """
    values = snapshot.to_dict()
    for key in ("time", "location", "weather"):
        value = overrides.get(key)
        if isinstance(value, str) and _clean(value):
            values[key] = _clean(value)

    if "heart_points" in overrides:
        points = parse_heart(str(overrides["heart_points"]))
        if points is not None:
            values["heart_points"] = points

    characters = snapshot.characters
    if "characters" in overrides:
        characters = [
            c if isinstance(c, CharacterEntry) else CharacterEntry.from_dict(c)
            for c in overrides["characters"]
        ]
        characters = [
            CharacterEntry(
                name=_clean(c.name, pipes=True),
                outfit=_clean(c.outfit, pipes=True),
                state=_clean(c.state, pipes=True),
                position=_clean(c.position, pipes=True),
            )
            for c in characters
        ]
        characters = [c for c in characters if c.name]

    return TrackerSnapshot(
        time=normalize_time(values["time"]),
        location=values["location"],
        weather=values["weather"],
        heart_points=values["heart_points"],
        characters=characters,
    )
