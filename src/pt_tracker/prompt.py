"""System prompt construction for PT Tracker.

The current-state block is written in the same tag syntax that
``tags.parse_tags`` reads, so the model's next reply can be parsed back into
the snapshot it was shown.
"""

from pt_tracker.models import UNKNOWN, CharacterEntry, TrackerSnapshot
from pt_tracker.render import HEART_TIERS

PROMPT_HEADER = "[PTTracker Instructions]"

TAG_SYNTAX = [
    "[time: HH:MM:SS; MM/DD/YYYY (DayOfWeek)]",
    "[location: Full Location Description]",
    "[weather: Weather Description, Temperature]",
    "[heart: points_value]",
]

CHAR_SYNTAX = "[char: Name | outfit: Clothing | state: Mood or Condition | position: Where and how they are placed]"

HEART_RULES = (
    "Heart Meter Rules:\n"
    "After each message, assess the character and {{user}}'s relationship and "
    "assign a heart points value showing the romantic interest the character has "
    "for {{user}}. The Heart Meter can increase or decrease depending on the "
    "interactions with {{user}}. The level it increases or decreases can range "
    "dramatically and can even go up and down entire heart levels in one post. "
    "The maximum amount of points it can increase or decrease is 10000."
)

CHAR_RULES = (
    "Character Rules:\n"
    "Add one [char:] tag for every character present in the scene, including "
    "{{user}} when relevant. Drop characters who have left the scene."
)

EXAMPLE_TAGS = [
    "[time: 08:15:00; 05/21/2001 (Monday)]",
    "[location: Mako Crystal Cave, Eastern Trail, Mount Nibel, Nibelheim]",
    "[weather: Cool and damp inside cave, sunny outside, 57°F]",
    "[heart: 0]",
]

EXAMPLE_CHAR = "[char: Tifa | outfit: White tank top, black skirt | state: Curious | position: Kneeling by the crystals]"

REGENERATE_INSTRUCTIONS = (
    "[OOC: Reassess the scene below and re-output the tracker tags for it. "
    "Reply with the tags only, one per line, and no narrative.]"
)


def _prompt_value(value: str) -> str:
    return value if value and value != UNKNOWN else "unknown"


def _format_char(character: CharacterEntry) -> str:
    parts = [character.name]
    for key in ("outfit", "state", "position"):
        value = getattr(character, key)
        if value:
            parts.append(f"{key}: {value}")
    return "[char: " + " | ".join(parts) + "]"


def format_heart_table() -> str:
    """Render the heart point bucket table."""
    lines = ["Heart point ranges:"]
    lower = 0
    for bound, emoji, name in HEART_TIERS:
        upper = f"{bound - 1:,}" if bound is not None else "and above"
        sep = " – " if bound is not None else " "
        lines.append(f"  {lower:,}{sep}{upper} → {emoji} {name}")
        lower = bound or lower
    return "\n".join(lines)


def format_state_block(snapshot: TrackerSnapshot, track_characters: bool = True) -> str:
    """Render a snapshot as tracker tags, one per line."""
    lines = [
        f"[time: {_prompt_value(snapshot.time)}]",
        f"[location: {_prompt_value(snapshot.location)}]",
        f"[weather: {_prompt_value(snapshot.weather)}]",
        f"[heart: {max(0, snapshot.heart_points)}]",
    ]
    if track_characters:
        lines.extend(_format_char(c) for c in snapshot.characters)
    return "\n".join(lines)


def build_prompt(snapshot: TrackerSnapshot, track_characters: bool = True) -> str:
    """Build the tracker system prompt around the current state.

    Uses {{user}}, which the host substitutes with the persona name.
    """
    syntax = list(TAG_SYNTAX)
    examples = list(EXAMPLE_TAGS)
    tag_count = "four"
    if track_characters:
        syntax.append(CHAR_SYNTAX)
        examples.append(EXAMPLE_CHAR)
        tag_count = "five kinds"

    sections = [
        PROMPT_HEADER + "\n"
        f"At the end of EVERY response, you must include all {tag_count} of the "
        "following tracker tags on separate lines. Keep them at the very end of "
        "your message, after any narrative content. Always output every tag, but "
        "only change the values that actually changed since the last response.",
        "\n".join(syntax),
        HEART_RULES,
        format_heart_table(),
    ]
    if track_characters:
        sections.append(CHAR_RULES)
    sections.append(
        "Current tracker state (continue from here):\n"
        + format_state_block(snapshot, track_characters)
    )
    sections.append("Example tags:\n" + "\n".join(examples))
    return "\n\n".join(sections)


def build_regenerate_prompt(
    narrative: str,
    previous_header: str | None = None,
    track_characters: bool = True,
) -> str:
    """Build the hidden request asking the model to re-derive tags.

    Args:
        narrative: The message text with its tags stripped
        previous_header: Rendered header of the previous message, used as a
            continuity hint
        track_characters: Whether [char:] tags are requested

    Returns:
        Prompt text for a hidden generation
    """
    syntax = list(TAG_SYNTAX)
    if track_characters:
        syntax.append(CHAR_SYNTAX)

    sections = [REGENERATE_INSTRUCTIONS, "Tag format:\n" + "\n".join(syntax)]
    if previous_header:
        sections.append("Tracker state before this scene:\n" + previous_header)
    sections.append("Scene:\n" + narrative)
    return "\n\n".join(sections)
