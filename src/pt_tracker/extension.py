"""PT Tracker extension - event routing and tracker lifecycle."""

from __future__ import annotations

import logging

from pt_tracker.host import Events, HostFacade, InjectionPosition
from pt_tracker.models import (
    Button,
    ChatMessage,
    Settings,
    TrackerConfig,
    TrackerSnapshot,
)
from pt_tracker.prompt import build_prompt, build_regenerate_prompt
from pt_tracker.render import build_header
from pt_tracker.resolver import apply_overrides, find_previous_tags, resolve_snapshot
from pt_tracker.store import TrackerStateStore
from pt_tracker.tags import output_filter_pattern, parse_tags, strip_tags

logger = logging.getLogger(__name__)

# Buttons shown while the AI is idle
DEFAULT_BUTTONS = [
    Button(label="✏️ Edit Tracker", action="edit"),
    Button(label="\U0001f504 Regenerate Tracker", action="regenerate"),
]

# Buttons shown while a generation is in progress
STOP_BUTTONS = [
    Button(label="⏹ Stop", action="stop"),
]


class TrackerExtension:
    """Scans AI messages for tracker tags and keeps headers and prompt current."""

    def __init__(self, host: HostFacade, config: TrackerConfig | None = None):
        self.host = host
        self.config = config or TrackerConfig()
        self.extension_id = self.config.extension_id
        self.settings = Settings.from_dict(host.load_settings(self.extension_id))
        self.state = TrackerStateStore(self.settings, self._save_settings)

    def _save_settings(self, settings: Settings | None = None) -> None:
        self.host.save_settings(self.extension_id, (settings or self.settings).to_dict())

    @property
    def track_characters(self) -> bool:
        return self.settings.track_characters

    # -------------------------------------------------------------------------
    # Initialisation
    # -------------------------------------------------------------------------

    def init(self) -> None:
        """Persist settings, register filter, prompt and buttons, subscribe."""
        logger.info("Initialising tracker extension %s", self.extension_id)

        # Writes back any defaults backfilled on load
        self._save_settings()

        self.register_output_filter()
        self.inject_prompt()
        self.register_default_buttons()

        self.host.on(Events.MESSAGE_RECEIVED, self.on_message_received)
        self.host.on(Events.MESSAGE_EDITED, self.on_message_edited)
        self.host.on(Events.MESSAGE_DELETED, self.on_message_deleted)
        self.host.on(Events.GENERATION_STARTED, self.on_generation_started)
        self.host.on(Events.GENERATION_STOPPED, self.on_generation_stopped)
        self.host.on(Events.CHAT_CHANGED, self.on_chat_changed)
        self.host.on(Events.CHARACTER_CHANGED, self.on_character_changed)
        self.host.on(Events.BUTTON_CLICKED, self.on_button_clicked)
        self.host.on(Events.HEADER_LONG_PRESS, self.on_header_long_press)

        logger.info("Tracker extension ready")

    def register_output_filter(self) -> None:
        pattern = output_filter_pattern(self.track_characters)
        self.host.register_output_filter(self.extension_id, pattern)
        logger.debug("Output filter registered: %s", pattern)

    def register_default_buttons(self) -> None:
        self.host.register_buttons(self.extension_id, DEFAULT_BUTTONS)

    def register_stop_button(self) -> None:
        self.host.register_buttons(self.extension_id, STOP_BUTTONS)

    def inject_prompt(self) -> None:
        """(Re-)inject the tracker system prompt at the configured depth.

        An empty prompt is injected while the extension is disabled.
        """
        s = self.settings
        text = ""
        if s.enabled:
            text = build_prompt(self.state.get_current(), s.track_characters)
        self.host.set_extension_prompt(
            self.extension_id,
            text,
            InjectionPosition.AFTER_CHAR_DEFS,
            s.scan_depth,
        )
        if s.enabled:
            logger.info("Prompt injected (scan_depth=%d)", s.scan_depth)

    # -------------------------------------------------------------------------
    # Message processing
    # -------------------------------------------------------------------------

    def process_ai_message(self, text: str, index: int) -> TrackerSnapshot | None:
        """Parse an AI message, resolve its snapshot and publish it.

        Args:
            text: Raw message text from the AI
            index: Index of the message in the chat

        Returns:
            The resolved snapshot, or None if disabled or the text has no tags
        """
        if not self.settings.enabled:
            return None

        tags = parse_tags(text, self.track_characters)
        if tags.is_empty:
            logger.debug("Message #%d carries no tracker tags", index)
            self.state.forget(index)
            self.host.clear_message_header(index)
            return None

        previous = self._previous_tags(index)
        snapshot = resolve_snapshot(tags, previous, self.settings)
        self._publish(index, snapshot)
        return snapshot

    def _publish(
        self, index: int, snapshot: TrackerSnapshot, corrected: bool = False
    ) -> None:
        """Cache and render a snapshot; make it current if it is the latest."""
        self.state.record_snapshot(index, snapshot, corrected)
        self.host.set_message_header(index, build_header(snapshot, self.settings))
        logger.info("Header set for message #%d", index)

        if self._is_latest_ai_message(index):
            self.state.set_current(snapshot)
            logger.debug("Current tracker state updated from message #%d", index)
            self.inject_prompt()

    def _is_latest_ai_message(self, index: int) -> bool:
        ai_indices = [m.index for m in self.host.get_chat() if not m.is_user]
        return not ai_indices or index >= max(ai_indices)

    def _latest_ai_message(self) -> ChatMessage | None:
        ai_messages = [m for m in self.host.get_chat() if not m.is_user]
        return max(ai_messages, key=lambda m: m.index) if ai_messages else None

    def _find_message(self, index: int) -> ChatMessage | None:
        for message in self.host.get_chat():
            if message.index == index:
                return message
        return None

    def _require_ai_message(self, index: int) -> ChatMessage:
        message = self._find_message(index)
        if message is None:
            raise ValueError(f"Message not found: {index}")
        if message.is_user:
            raise ValueError(f"Message #{index} is not an AI message")
        return message

    def _previous_tags(self, index: int):
        """History layer for ``index``; corrected snapshots beat raw tags."""
        return find_previous_tags(
            self.host.get_chat(),
            index,
            self.track_characters,
            corrected=self.state.corrected_snapshots(),
        )

    def snapshot_for(self, index: int) -> TrackerSnapshot:
        """Cached snapshot for a message, re-resolved from chat text if needed."""
        cached = self.state.get_snapshot(index)
        if cached is not None:
            return cached

        message = self._require_ai_message(index)
        tags = parse_tags(message.text, self.track_characters)
        previous = self._previous_tags(index)
        return resolve_snapshot(tags, previous, self.settings)

    def rescan_history(self) -> int:
        """Re-process AI messages within the last ``scan_depth`` messages.

        Returns:
            Number of messages that produced a header
        """
        if not self.settings.enabled:
            return 0

        chat = sorted(self.host.get_chat(), key=lambda m: m.index)
        recent = chat[-self.settings.scan_depth:] if self.settings.scan_depth > 0 else []
        count = 0
        for message in recent:
            if message.is_user:
                continue
            if self.process_ai_message(message.text, message.index) is not None:
                count += 1
        logger.info("Rescanned %d recent messages, %d headers set", len(recent), count)
        return count

    def _reset(self) -> None:
        self.state.clear()
        self.host.clear_all_headers()
        self.rescan_history()
        self.inject_prompt()

    # -------------------------------------------------------------------------
    # Manual corrections
    # -------------------------------------------------------------------------

    def edit_tracker(self, index: int, overrides: dict | None = None) -> TrackerSnapshot | None:
        """Apply manual field corrections to a message's tracker state.

        Args:
            index: Index of the AI message to correct
            overrides: Field values to apply; when None the host edit dialog
                is opened, pre-filled from the message's snapshot

        Returns:
            The corrected snapshot, or None if the dialog was cancelled
        """
        snapshot = self.snapshot_for(index)
        if overrides is None:
            overrides = self.host.open_edit_dialog(index, snapshot.to_dict())
            if overrides is None:
                logger.debug("Edit dialog for message #%d cancelled", index)
                return None

        updated = apply_overrides(snapshot, overrides)
        self._publish(index, updated, corrected=True)
        return updated

    async def regenerate_tracker(self, index: int) -> TrackerSnapshot | None:
        """Ask the model to re-derive a message's tags from its narrative.

        The result is resolved against whatever state exists when the
        response arrives. A response without tags leaves state untouched, and
        the result is dropped if the message was edited or removed meanwhile.
        """
        if not self.settings.enabled:
            return None

        message = self._require_ai_message(index)
        original_text = message.text

        hint = None
        if self.config.regenerate_with_hint:
            earlier = [
                m for m in self.host.get_chat() if m.index < index and not m.is_user
            ]
            if earlier:
                previous = self.state.get_snapshot(max(m.index for m in earlier))
                if previous is not None:
                    hint = build_header(previous, self.settings)

        prompt = build_regenerate_prompt(
            strip_tags(original_text, self.track_characters),
            hint,
            self.track_characters,
        )
        logger.info("Requesting tracker regeneration for message #%d", index)
        response = await self.host.generate_hidden(prompt)

        tags = parse_tags(response, self.track_characters)
        if tags.is_empty:
            logger.warning("Regeneration for message #%d returned no tags", index)
            return None

        current = self._find_message(index)
        if current is None or current.is_user or current.text != original_text:
            logger.warning("Message #%d changed during regeneration; result dropped", index)
            return None

        previous_tags = self._previous_tags(index)
        snapshot = resolve_snapshot(tags, previous_tags, self.settings)
        self._publish(index, snapshot, corrected=True)
        return snapshot

    def update_settings(self, changes: dict) -> Settings:
        """Change settings, persist them and refresh prompt and headers.

        Raises:
            ValueError: If a key is not a known setting
        """
        unknown = set(changes) - set(Settings.keys())
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

        filter_changed = (
            "track_characters" in changes
            and changes["track_characters"] != self.settings.track_characters
        )
        for key, value in changes.items():
            setattr(self.settings, key, value)
        self.settings.heart_points = max(0, self.settings.heart_points)
        self._save_settings()

        if filter_changed:
            self.register_output_filter()
        self.inject_prompt()

        if self.settings.enabled:
            for index, snapshot in self.state.items():
                self.host.set_message_header(index, build_header(snapshot, self.settings))
        else:
            self.host.clear_all_headers()
        return self.settings

    # -------------------------------------------------------------------------
    # Event handlers
    # -------------------------------------------------------------------------

    def on_message_received(self, data: dict) -> None:
        """data = {text, index, is_user}"""
        logger.debug("MESSAGE_RECEIVED #%s", data.get("index"))
        if data.get("is_user"):
            return
        self.process_ai_message(data["text"], data["index"])

    def on_message_edited(self, data: dict) -> None:
        """data = {text, index, is_user}"""
        logger.debug("MESSAGE_EDITED #%s", data.get("index"))
        if data.get("is_user"):
            # User messages never carry tracker tags
            self.state.forget(data["index"])
            self.host.clear_message_header(data["index"])
            return
        self.process_ai_message(data["text"], data["index"])

    def on_message_deleted(self, data: dict) -> None:
        # Indices shift after a deletion, so every cached entry is suspect
        logger.debug("MESSAGE_DELETED #%s; clearing snapshot cache", data.get("index"))
        self.state.clear()

    def on_generation_started(self, data: dict) -> None:
        self.register_stop_button()

    def on_generation_stopped(self, data: dict) -> None:
        self.register_default_buttons()

    def on_chat_changed(self, data: dict) -> None:
        logger.info("Chat changed; rebuilding tracker headers")
        self._reset()

    def on_character_changed(self, data: dict) -> None:
        logger.info("Character changed; rebuilding tracker headers")
        self._reset()
        self.register_default_buttons()

    def on_button_clicked(self, data: dict):
        """data = {action}. Returns a coroutine for "regenerate"."""
        action = data.get("action")
        if action == "stop":
            logger.debug("Stop requested; generation is stopped by the host")
            return None

        latest = self._latest_ai_message()
        if latest is None:
            logger.info("No AI message to apply %r to", action)
            return None

        if action == "edit":
            return self.edit_tracker(latest.index)
        if action == "regenerate":
            return self.regenerate_tracker(latest.index)
        logger.warning("Unknown button action: %r", action)
        return None

    def on_header_long_press(self, data: dict) -> TrackerSnapshot | None:
        """data = {message_index}"""
        return self.edit_tracker(data["message_index"])
