"""Status header rendering for PT Tracker."""

from pt_tracker.models import Settings, TrackerSnapshot

# (exclusive upper bound, emoji, name); the last tier is open-ended
HEART_TIERS = [
    (5_000, "🖤", "Black Heart"),
    (20_000, "💜", "Purple Heart"),
    (30_000, "💙", "Blue Heart"),
    (40_000, "💚", "Green Heart"),
    (50_000, "💛", "Yellow Heart"),
    (60_000, "🧡", "Orange Heart"),
    (None, "❤️", "Red Heart"),
]

DETAIL_SEPARATOR = " · "


def heart_emoji(points: int) -> str:
    """Map heart points to the tier emoji. Negative points count as 0."""
    points = max(0, points)
    for bound, emoji, _ in HEART_TIERS:
        if bound is None or points < bound:
            return emoji
    return HEART_TIERS[-1][1]


def build_header(snapshot: TrackerSnapshot, settings: Settings) -> str:
    """Build the header shown above an AI message bubble.

    Disabled fields are left out entirely.
    """
    lines = []

    if settings.show_time:
        lines.append(f"Time: {snapshot.time}")
    if settings.show_location:
        lines.append(f"Location: {snapshot.location}")
    if settings.show_weather:
        lines.append(f"Weather: {snapshot.weather}")
    if settings.show_heart_meter:
        points = max(0, snapshot.heart_points)
        lines.append(f"Heart Meter: {heart_emoji(points)} {points}")

    if settings.show_characters and settings.track_characters and snapshot.characters:
        if lines:
            lines.append("---")
        lines.append("Characters: " + ", ".join(c.name for c in snapshot.characters))
        for c in snapshot.characters:
            details = [d for d in (c.outfit, c.state, c.position) if d]
            if details:
                lines.append(f"{c.name}: " + DETAIL_SEPARATOR.join(details))

    return "\n".join(lines)
