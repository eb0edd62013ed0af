"""PT Tracker - Scene status tracking from tagged AI chat messages."""

from pt_tracker.models import (
    TrackerConfig,
    CharacterEntry,
    TagSet,
    TrackerSnapshot,
    Settings,
    ChatMessage,
    Button,
)
from pt_tracker.extension import TrackerExtension
from pt_tracker.host import Events, HostFacade, InjectionPosition, LocalHost

__version__ = "0.1.0"

__all__ = [
    "TrackerExtension",
    "TrackerConfig",
    "CharacterEntry",
    "TagSet",
    "TrackerSnapshot",
    "Settings",
    "ChatMessage",
    "Button",
    "Events",
    "HostFacade",
    "InjectionPosition",
    "LocalHost",
]
