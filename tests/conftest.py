"""Pytest fixtures for PT Tracker tests."""

import pytest
from pt_tracker import LocalHost, TrackerConfig, TrackerExtension
from pt_tracker.generation import ScriptedGenerator


@pytest.fixture
def host():
    """Create an in-memory host for testing."""
    host = LocalHost(db_path=":memory:", generator=ScriptedGenerator())
    yield host
    host.close()


@pytest.fixture
def extension(host):
    """Initialised extension bound to the in-memory host."""
    ext = TrackerExtension(host, TrackerConfig(db_path=":memory:"))
    ext.init()
    return ext


@pytest.fixture
def seeded_extension(extension):
    """Extension with a short tagged conversation already processed."""
    host = extension.host

    messages = [
        ("Hello there.", True),
        (
            "She waves from the pier.\n"
            "[time: 08:15:00; 05/21/2001 (Monday)]\n"
            "[location: Docks]\n"
            "[weather: Foggy, 50°F]\n"
            "[heart: 4000]\n"
            "[char: Alice | outfit: raincoat | state: cheerful]\n"
            "[char: Bob | position: by the boat]",
            False,
        ),
        ("Shall we walk?", True),
        ("They stroll along the water. [time: 09:00] [heart: 6000]", False),
    ]
    for text, is_user in messages:
        message = host.add_message(text, is_user=is_user)
        if not is_user:
            extension.process_ai_message(message.text, message.index)

    return extension, host
