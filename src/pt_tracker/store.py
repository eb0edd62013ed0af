"""Tracker state store and settings persistence."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Callable

from pt_tracker.models import UNKNOWN, Settings, TrackerSnapshot


class SettingsStore:
    """sqlite-backed key/value persistence for extension settings."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.db = sqlite3.connect(db_path)
        self.db.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path) as f:
            schema = f.read()
        self.db.executescript(schema)
        self.db.commit()

    def close(self) -> None:
        """Close database connection."""
        self.db.close()

    def __enter__(self) -> SettingsStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def load(self, extension_id: str) -> dict | None:
        """Load the stored settings document, or None if never saved."""
        row = self.db.execute(
            "SELECT data FROM extension_settings WHERE extension_id = ?",
            (extension_id,),
        ).fetchone()
        if row is None:
            return None
        return json.loads(row["data"])

    def save(self, extension_id: str, data: dict) -> None:
        """Insert or replace the settings document."""
        self.db.execute(
            """
            INSERT INTO extension_settings (extension_id, data, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(extension_id) DO UPDATE SET
                data = excluded.data,
                updated_at = excluded.updated_at
            """,
            (extension_id, json.dumps(data)),
        )
        self.db.commit()


class TrackerStateStore:
    """Per-message snapshot cache plus the settings-backed current snapshot.

    The cache lives in memory only. ``set_current`` writes through to the
    settings object and calls ``persist`` straight away.
    """

    def __init__(self, settings: Settings, persist: Callable[[Settings], None]):
        self.settings = settings
        self._persist = persist
        self._snapshots: dict[int, TrackerSnapshot] = {}
        self._corrected: set[int] = set()

    def __len__(self) -> int:
        return len(self._snapshots)

    def record_snapshot(
        self, message_id: int, snapshot: TrackerSnapshot, corrected: bool = False
    ) -> None:
        """Upsert a snapshot.

        ``corrected`` marks entries from a manual edit or a regeneration;
        those outrank the message's raw tags when later messages resolve.
        """
        self._snapshots[message_id] = snapshot
        if corrected:
            self._corrected.add(message_id)
        else:
            self._corrected.discard(message_id)

    def get_snapshot(self, message_id: int) -> TrackerSnapshot | None:
        return self._snapshots.get(message_id)

    def is_corrected(self, message_id: int) -> bool:
        return message_id in self._corrected

    def corrected_snapshots(self) -> dict[int, TrackerSnapshot]:
        return {i: self._snapshots[i] for i in self._corrected}

    def forget(self, message_id: int) -> None:
        self._snapshots.pop(message_id, None)
        self._corrected.discard(message_id)

    def items(self) -> list[tuple[int, TrackerSnapshot]]:
        return sorted(self._snapshots.items())

    def clear(self) -> None:
        self._snapshots.clear()
        self._corrected.clear()

    def get_current(self) -> TrackerSnapshot:
        return self.settings.snapshot()

    def set_current(self, snapshot: TrackerSnapshot) -> None:
        """Write a resolved snapshot back to settings and persist."""
        s = self.settings
        # Placeholders are display-only; keep the stored field empty.
        s.current_time = "" if snapshot.time == UNKNOWN else snapshot.time
        s.current_location = "" if snapshot.location == UNKNOWN else snapshot.location
        s.current_weather = "" if snapshot.weather == UNKNOWN else snapshot.weather
        s.heart_points = max(0, snapshot.heart_points)
        s.current_characters = [c.to_dict() for c in snapshot.characters]
        self._persist(s)
