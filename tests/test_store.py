"""Tests for settings persistence and the tracker state store."""

from pt_tracker.models import CharacterEntry, Settings, TrackerSnapshot
from pt_tracker.store import SettingsStore, TrackerStateStore


def test_settings_store_round_trip():
    with SettingsStore(":memory:") as store:
        assert store.load("pt-tracker") is None

        store.save("pt-tracker", {"enabled": False, "scan_depth": 4})
        store.save("pt-tracker", {"enabled": True, "scan_depth": 6})

        assert store.load("pt-tracker") == {"enabled": True, "scan_depth": 6}
        assert store.load("other") is None


def test_settings_store_persists_to_file(tmp_path):
    db_path = str(tmp_path / "tracker.db")
    with SettingsStore(db_path) as store:
        store.save("pt-tracker", {"heart_points": 42})

    with SettingsStore(db_path) as store:
        assert store.load("pt-tracker") == {"heart_points": 42}


def test_settings_defaults():
    settings = Settings.from_dict(None)

    assert settings.enabled is True
    assert settings.scan_depth == 10
    assert settings.heart_points == 0
    assert settings.show_heart_meter is True


def test_settings_backfill_is_non_destructive():
    settings = Settings.from_dict({"scan_depth": 3, "show_time": False, "custom": "x"})

    assert settings.scan_depth == 3
    assert settings.show_time is False
    assert settings.show_weather is True
    assert settings.to_dict()["custom"] == "x"


def test_heart_points_start_from_default_heart_points():
    settings = Settings.from_dict({"default_heart_points": 2500})

    assert settings.heart_points == 2500
    assert Settings.from_dict({"default_heart_points": 2500, "heart_points": 10}).heart_points == 10


def test_settings_snapshot_fills_unknown():
    snapshot = Settings(current_location="Docks", heart_points=-5).snapshot()

    assert snapshot.location == "Docks"
    assert snapshot.time == "Unknown"
    assert snapshot.heart_points == 0


def test_record_and_get_snapshot():
    state = TrackerStateStore(Settings(), lambda s: None)
    snapshot = TrackerSnapshot(location="Docks")

    state.record_snapshot(3, snapshot)

    assert state.get_snapshot(3) is snapshot
    assert state.get_snapshot(4) is None
    assert len(state) == 1


def test_record_snapshot_upserts():
    state = TrackerStateStore(Settings(), lambda s: None)
    state.record_snapshot(1, TrackerSnapshot(location="Docks"))
    state.record_snapshot(1, TrackerSnapshot(location="Market"))

    assert state.get_snapshot(1).location == "Market"
    assert len(state) == 1


def test_clear_and_forget():
    state = TrackerStateStore(Settings(), lambda s: None)
    state.record_snapshot(1, TrackerSnapshot())
    state.record_snapshot(2, TrackerSnapshot())

    state.forget(1)
    assert state.get_snapshot(1) is None

    state.clear()
    assert len(state) == 0


def test_set_current_writes_settings_and_persists():
    saved = []
    settings = Settings()
    state = TrackerStateStore(settings, saved.append)

    state.set_current(
        TrackerSnapshot(
            time="2:05 PM",
            location="Docks",
            weather="Unknown",
            heart_points=75000,
            characters=[CharacterEntry("Alice", outfit="coat")],
        )
    )

    assert saved == [settings]
    assert settings.current_time == "2:05 PM"
    assert settings.current_location == "Docks"
    assert settings.current_weather == ""
    assert settings.heart_points == 75000
    assert settings.current_characters == [
        {"name": "Alice", "outfit": "coat", "state": "", "position": ""}
    ]
    assert state.get_current().weather == "Unknown"
