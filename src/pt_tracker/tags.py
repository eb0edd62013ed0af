"""Tag extraction and time normalization for PT Tracker."""

import re

from pt_tracker.models import CharacterEntry, TagSet

SCALAR_TAGS = ("time", "location", "weather", "heart")
CHARACTER_FIELDS = ("name", "outfit", "state", "position")


def _tag_pattern(key: str) -> re.Pattern:
    return re.compile(r"\[" + key + r":\s*([^\]]+)\]", re.IGNORECASE)


_SCALAR_PATTERNS = {key: _tag_pattern(key) for key in SCALAR_TAGS}
_CHAR_PATTERN = _tag_pattern("char")

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?(\s*;.*)?$", re.DOTALL)
_MERIDIEM_PATTERN = re.compile(r"(?<![a-z])[ap]\.?m\.?(?![a-z])", re.IGNORECASE)


def output_filter_pattern(track_characters: bool = True) -> str:
    """Build the regex the host uses to strip tracker tags from a bubble."""
    keys = list(SCALAR_TAGS)
    if track_characters:
        keys.append("char")
    return r"\[(?:" + "|".join(keys) + r"):\s*[^\]]*\]"


def strip_tags(text: str, track_characters: bool = True) -> str:
    """Remove tracker tags from text, leaving the narrative."""
    return re.sub(output_filter_pattern(track_characters), "", text, flags=re.IGNORECASE).strip()


def parse_character(body: str) -> CharacterEntry | None:
    """Parse the body of a [char: ...] tag.

    The body is a pipe-delimited list of ``key: value`` segments. A first
    segment without a recognised key is taken as the name (``[char: Alice |
    outfit: coat]``). Returns None when no name could be determined.
    """
    values = dict.fromkeys(CHARACTER_FIELDS, "")
    for i, segment in enumerate(body.split("|")):
        segment = segment.strip()
        if not segment:
            continue
        key, sep, value = segment.partition(":")
        key = key.strip().lower()
        if sep and key in values:
            values[key] = value.strip()
        elif i == 0 and not values["name"]:
            values["name"] = segment

    if not values["name"]:
        return None
    return CharacterEntry(**values)


def parse_tags(text: str, track_characters: bool = True) -> TagSet:
    """Extract tracker tags from raw message text.

    Scalar tags use their first occurrence. All [char: ...] tags are kept in
    the order they appear. Malformed tags are skipped silently.
    """
    scalars = {}
    for key, pattern in _SCALAR_PATTERNS.items():
        match = pattern.search(text)
        scalars[key] = match.group(1).strip() if match else None

    characters = []
    if track_characters:
        for body in _CHAR_PATTERN.findall(text):
            entry = parse_character(body)
            if entry is not None:
                characters.append(entry)

    return TagSet(characters=characters, **scalars)


def normalize_time(value: str) -> str:
    """Convert a 24-hour time expression to 12-hour form.

    ``"13:05:00; 05/21/2001 (Monday)"`` becomes ``"1:05 PM; 05/21/2001
    (Monday)"``. Input that already carries AM/PM, does not look like a
    time, or has an hour outside 0-23 is returned unchanged.
    """
    if _MERIDIEM_PATTERN.search(value):
        return value

    match = _TIME_PATTERN.match(value.strip())
    if match is None:
        return value

    hour = int(match.group(1))
    if hour > 23:
        return value

    minutes = match.group(2)
    suffix = match.group(3) or ""
    meridiem = "AM" if hour < 12 else "PM"
    hour12 = hour % 12 or 12
    return f"{hour12}:{minutes} {meridiem}{suffix}"
