"""Data models for PT Tracker."""

from __future__ import annotations

from dataclasses import dataclass, field, fields

UNKNOWN = "Unknown"


@dataclass
class TrackerConfig:
    """Configuration for TrackerExtension."""

    db_path: str = ":memory:"
    extension_id: str = "pt-tracker"
    generation_backend: str = "none"  # "openai" | "none"
    openai_model: str = "gpt-4o-mini"  # if backend="openai"
    regenerate_with_hint: bool = True  # seed regenerate with previous header


@dataclass
class CharacterEntry:
    """One scene participant from a [char: ...] tag."""

    name: str
    outfit: str = ""
    state: str = ""
    position: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "outfit": self.outfit,
            "state": self.state,
            "position": self.position,
        }

    @classmethod
    def from_dict(cls, data: dict) -> CharacterEntry:
        return cls(
            name=data.get("name", ""),
            outfit=data.get("outfit", ""),
            state=data.get("state", ""),
            position=data.get("position", ""),
        )


@dataclass
class TagSet:
    """Tags parsed from a single message. None means the tag was absent."""

    time: str | None = None
    location: str | None = None
    weather: str | None = None
    heart: str | None = None
    characters: list[CharacterEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when the text carried no tracker data at all."""
        return (
            self.time is None
            and self.location is None
            and self.weather is None
            and self.heart is None
            and not self.characters
        )


@dataclass
class TrackerSnapshot:
    """Fully resolved tracker state at a point in the conversation."""

    time: str = UNKNOWN
    location: str = UNKNOWN
    weather: str = UNKNOWN
    heart_points: int = 0
    characters: list[CharacterEntry] = field(default_factory=list)

    def to_tags(self) -> TagSet:
        """The snapshot as parsed tags; placeholder fields become absent."""
        return TagSet(
            time=None if self.time == UNKNOWN else self.time,
            location=None if self.location == UNKNOWN else self.location,
            weather=None if self.weather == UNKNOWN else self.weather,
            heart=str(max(0, self.heart_points)),
            characters=list(self.characters),
        )

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "location": self.location,
            "weather": self.weather,
            "heart_points": self.heart_points,
            "characters": [c.to_dict() for c in self.characters],
        }


@dataclass
class Settings:
    """Persisted extension settings.

    Owned by the host persistence layer; loaded once per session and saved
    after every mutation.
    """

    enabled: bool = True
    scan_depth: int = 10  # prompt depth and rescan window
    default_heart_points: int = 0
    heart_points: int = 0
    current_time: str = ""
    current_location: str = ""
    current_weather: str = ""
    current_characters: list[dict] = field(default_factory=list)
    track_characters: bool = True
    show_time: bool = True
    show_location: bool = True
    show_weather: bool = True
    show_heart_meter: bool = True
    show_characters: bool = True
    extra: dict = field(default_factory=dict)  # keys we don't own

    @classmethod
    def keys(cls) -> list[str]:
        return [f.name for f in fields(cls) if f.name != "extra"]

    @classmethod
    def from_dict(cls, data: dict | None) -> Settings:
        """Build settings, backfilling any missing key from defaults."""
        data = dict(data or {})
        known = set(cls.keys())
        values = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        if "heart_points" not in values:
            values["heart_points"] = values.get(
                "default_heart_points", cls.default_heart_points
            )
        return cls(**values, extra=extra)

    def to_dict(self) -> dict:
        data = dict(self.extra)
        for key in self.keys():
            value = getattr(self, key)
            data[key] = list(value) if isinstance(value, list) else value
        return data

    def snapshot(self) -> TrackerSnapshot:
        """The settings-backed "current" snapshot."""
        return TrackerSnapshot(
            time=self.current_time or UNKNOWN,
            location=self.current_location or UNKNOWN,
            weather=self.current_weather or UNKNOWN,
            heart_points=max(0, self.heart_points),
            characters=[CharacterEntry.from_dict(c) for c in self.current_characters],
        )


@dataclass
class ChatMessage:
    """A message in the host's visible chat history."""

    text: str
    index: int
    is_user: bool = False


@dataclass
class Button:
    """A quick-reply button registered with the host."""

    label: str
    action: str
