"""Host platform interface and an in-process host implementation."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Protocol

from pt_tracker.generation import TextGenerator
from pt_tracker.models import Button, ChatMessage
from pt_tracker.store import SettingsStore

logger = logging.getLogger(__name__)


class Events:
    """Lifecycle event names emitted by the host."""

    MESSAGE_RECEIVED = "message_received"
    MESSAGE_EDITED = "message_edited"
    MESSAGE_DELETED = "message_deleted"
    GENERATION_STARTED = "generation_started"
    GENERATION_STOPPED = "generation_stopped"
    CHAT_CHANGED = "chat_changed"
    CHARACTER_CHANGED = "character_changed"
    BUTTON_CLICKED = "button_clicked"
    HEADER_LONG_PRESS = "header_long_press"

    ALL = (
        MESSAGE_RECEIVED,
        MESSAGE_EDITED,
        MESSAGE_DELETED,
        GENERATION_STARTED,
        GENERATION_STOPPED,
        CHAT_CHANGED,
        CHARACTER_CHANGED,
        BUTTON_CLICKED,
        HEADER_LONG_PRESS,
    )


class InjectionPosition:
    """Where an extension prompt is placed in the context."""

    BEFORE_CHAR_DEFS = "before_char_defs"
    AFTER_CHAR_DEFS = "after_char_defs"
    IN_CHAT = "in_chat"


Handler = Callable[[dict], Any]


class HostFacade(Protocol):
    """Everything the tracker needs from the host application."""

    def load_settings(self, extension_id: str) -> dict | None: ...

    def save_settings(self, extension_id: str, data: dict) -> None: ...

    def on(self, event: str, handler: Handler) -> None: ...

    def set_message_header(self, index: int, text: str) -> None: ...

    def clear_message_header(self, index: int) -> None: ...

    def clear_all_headers(self) -> None: ...

    def register_output_filter(self, extension_id: str, pattern: str) -> None: ...

    def set_extension_prompt(
        self, extension_id: str, text: str, position: str, depth: int
    ) -> None: ...

    def register_buttons(self, extension_id: str, buttons: list[Button]) -> None: ...

    def get_chat(self) -> list[ChatMessage]: ...

    async def generate_hidden(self, prompt: str) -> str: ...

    def open_edit_dialog(self, index: int, fields: dict) -> dict | None: ...


class LocalHost:
    """In-process host with an in-memory chat and sqlite-backed settings.

    Headers, prompts, filters and buttons are kept in plain attributes so
    callers (tests, the MCP server) can read back what the extension did.
    """

    def __init__(
        self,
        db_path: str = ":memory:",
        generator: TextGenerator | None = None,
        dialog: Callable[[int, dict], dict | None] | None = None,
    ):
        self.settings_store = SettingsStore(db_path)
        self.generator = generator
        self.dialog = dialog
        self.chat: list[ChatMessage] = []
        self.headers: dict[int, str] = {}
        self.prompts: dict[str, dict] = {}
        self.output_filters: dict[str, str] = {}
        self.buttons: dict[str, list[Button]] = {}
        self._handlers: dict[str, list[Handler]] = {}

    def close(self) -> None:
        self.settings_store.close()

    def __enter__(self) -> LocalHost:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def load_settings(self, extension_id: str) -> dict | None:
        return self.settings_store.load(extension_id)

    def save_settings(self, extension_id: str, data: dict) -> None:
        self.settings_store.save(extension_id, data)

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def on(self, event: str, handler: Handler) -> None:
        if event not in Events.ALL:
            raise ValueError(f"Unknown event: {event}")
        self._handlers.setdefault(event, []).append(handler)

    async def emit(self, event: str, payload: dict | None = None) -> None:
        """Dispatch an event to its handlers, one at a time."""
        payload = payload or {}
        for handler in self._handlers.get(event, []):
            result = handler(payload)
            if inspect.isawaitable(result):
                await result

    # -------------------------------------------------------------------------
    # Chat
    # -------------------------------------------------------------------------

    def get_chat(self) -> list[ChatMessage]:
        return list(self.chat)

    def add_message(self, text: str, is_user: bool = False) -> ChatMessage:
        """Append a message to the chat and return it."""
        message = ChatMessage(text=text, index=len(self.chat), is_user=is_user)
        self.chat.append(message)
        return message

    def edit_message(self, index: int, text: str) -> ChatMessage:
        message = self._message(index)
        message.text = text
        return message

    def delete_message(self, index: int) -> None:
        """Remove a message; later messages are renumbered."""
        self._message(index)
        del self.chat[index]
        for i, message in enumerate(self.chat):
            message.index = i
        self.headers = {
            (i if i < index else i - 1): text
            for i, text in self.headers.items()
            if i != index
        }

    def replace_chat(self, messages: list[ChatMessage]) -> None:
        self.chat = list(messages)
        self.headers = {}

    def _message(self, index: int) -> ChatMessage:
        if not 0 <= index < len(self.chat):
            raise ValueError(f"Message not found: {index}")
        return self.chat[index]

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def set_message_header(self, index: int, text: str) -> None:
        self.headers[index] = text

    def clear_message_header(self, index: int) -> None:
        self.headers.pop(index, None)

    def clear_all_headers(self) -> None:
        self.headers.clear()

    def register_output_filter(self, extension_id: str, pattern: str) -> None:
        self.output_filters[extension_id] = pattern

    def set_extension_prompt(
        self, extension_id: str, text: str, position: str, depth: int
    ) -> None:
        self.prompts[extension_id] = {
            "text": text,
            "position": position,
            "depth": depth,
        }

    def register_buttons(self, extension_id: str, buttons: list[Button]) -> None:
        self.buttons[extension_id] = list(buttons)

    # -------------------------------------------------------------------------
    # Generation & dialogs
    # -------------------------------------------------------------------------

    async def generate_hidden(self, prompt: str) -> str:
        if self.generator is None:
            raise RuntimeError("No generation backend configured")
        return await self.generator.generate(prompt)

    def open_edit_dialog(self, index: int, fields: dict) -> dict | None:
        if self.dialog is None:
            logger.debug("No edit dialog available for message #%d", index)
            return None
        return self.dialog(index, fields)
