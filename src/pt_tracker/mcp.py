"""MCP server for PT Tracker.

Exposes the tracker extension, bound to an in-process host, through Model
Context Protocol tools.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from pt_tracker.extension import TrackerExtension
from pt_tracker.generation import create_generator
from pt_tracker.host import Events, LocalHost
from pt_tracker.models import ChatMessage, TrackerConfig

logger = logging.getLogger(__name__)

# Global extension instance (initialized on first connection)
_extension: TrackerExtension | None = None


def get_extension() -> TrackerExtension:
    """Get or initialize the extension instance."""
    global _extension
    if _extension is None:
        # Load config from environment or use defaults
        config = TrackerConfig(
            db_path=os.getenv("PT_TRACKER_DB_PATH", "pt_tracker.db"),
            extension_id=os.getenv("PT_TRACKER_EXTENSION_ID", "pt-tracker"),
            generation_backend=os.getenv("PT_TRACKER_GENERATION_BACKEND", "none"),
            openai_model=os.getenv("PT_TRACKER_OPENAI_MODEL", "gpt-4o-mini"),
            regenerate_with_hint=os.getenv("PT_TRACKER_REGENERATE_HINT", "1") != "0",
        )
        host = LocalHost(
            db_path=config.db_path,
            generator=create_generator(config.generation_backend, config.openai_model),
        )
        _extension = TrackerExtension(host, config)
        _extension.init()
    return _extension


def reset_extension() -> None:
    """Drop the global extension, closing its host."""
    global _extension
    if _extension is not None:
        _extension.host.close()
    _extension = None


# Initialize server
server = Server("pt_tracker")


# -------------------------------------------------------------------------
# Tool Definitions
# -------------------------------------------------------------------------

_MESSAGE_INDEX = {"type": "integer", "description": "Index of the message in the chat"}

TOOLS = [
    Tool(
        name="message_received",
        description="Append a message to the chat and process its tracker tags",
        inputSchema={
            "type": "object",
            "properties": {
                "text": {"type": "string", "description": "Raw message text"},
                "is_user": {
                    "type": "boolean",
                    "default": False,
                    "description": "True for user messages",
                },
            },
            "required": ["text"],
        },
    ),
    Tool(
        name="message_edited",
        description="Replace a message's text and re-process its tracker tags",
        inputSchema={
            "type": "object",
            "properties": {
                "index": _MESSAGE_INDEX,
                "text": {"type": "string", "description": "New message text"},
            },
            "required": ["index", "text"],
        },
    ),
    Tool(
        name="message_deleted",
        description="Delete a message from the chat",
        inputSchema={
            "type": "object",
            "properties": {"index": _MESSAGE_INDEX},
            "required": ["index"],
        },
    ),
    Tool(
        name="chat_changed",
        description="Switch to a different chat history and rebuild tracker headers",
        inputSchema={
            "type": "object",
            "properties": {
                "messages": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "text": {"type": "string"},
                            "is_user": {"type": "boolean"},
                        },
                        "required": ["text"],
                    },
                    "description": "The new chat history, oldest first",
                },
            },
            "required": ["messages"],
        },
    ),
    Tool(
        name="edit_tracker",
        description="Manually correct the tracker fields of an AI message",
        inputSchema={
            "type": "object",
            "properties": {
                "index": _MESSAGE_INDEX,
                "overrides": {
                    "type": "object",
                    "description": "Fields to set: time, location, weather, heart_points, characters",
                },
            },
            "required": ["index", "overrides"],
        },
    ),
    Tool(
        name="regenerate_tracker",
        description="Ask the model to re-derive an AI message's tracker tags",
        inputSchema={
            "type": "object",
            "properties": {
                "index": {
                    "type": "integer",
                    "description": "Message index (defaults to the latest AI message)",
                },
            },
        },
    ),
    Tool(
        name="get_header",
        description="Get the rendered tracker header for a message",
        inputSchema={
            "type": "object",
            "properties": {"index": _MESSAGE_INDEX},
            "required": ["index"],
        },
    ),
    Tool(
        name="get_prompt",
        description="Get the currently injected tracker system prompt",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="get_settings",
        description="Get the persisted tracker settings",
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="update_settings",
        description="Change tracker settings (toggles, scan depth, current values)",
        inputSchema={
            "type": "object",
            "properties": {
                "changes": {"type": "object", "description": "Setting names and new values"},
            },
            "required": ["changes"],
        },
    ),
    Tool(
        name="get_output_filter",
        description="Get the regex used to strip tracker tags from displayed messages",
        inputSchema={"type": "object", "properties": {}},
    ),
]


# -------------------------------------------------------------------------
# MCP Handlers
# -------------------------------------------------------------------------


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _snapshot_result(extension: TrackerExtension, index: int, snapshot) -> list[TextContent]:
    if snapshot is None:
        return _text(f"No tracker data for message {index}")
    result = {
        "index": index,
        "snapshot": snapshot.to_dict(),
        "header": extension.host.headers.get(index, ""),
    }
    return _text(json.dumps(result, indent=2, ensure_ascii=False))


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return TOOLS


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""
    extension = get_extension()
    host = extension.host

    try:
        # Route to the host event or extension method
        if name == "message_received":
            is_user = arguments.get("is_user", False)
            message = host.add_message(arguments["text"], is_user=is_user)
            await host.emit(
                Events.MESSAGE_RECEIVED,
                {"text": message.text, "index": message.index, "is_user": is_user},
            )
            return _snapshot_result(
                extension, message.index, extension.state.get_snapshot(message.index)
            )

        elif name == "message_edited":
            message = host.edit_message(arguments["index"], arguments["text"])
            await host.emit(
                Events.MESSAGE_EDITED,
                {"text": message.text, "index": message.index, "is_user": message.is_user},
            )
            return _snapshot_result(
                extension, message.index, extension.state.get_snapshot(message.index)
            )

        elif name == "message_deleted":
            host.delete_message(arguments["index"])
            await host.emit(Events.MESSAGE_DELETED, {"index": arguments["index"]})
            return _text(f"Deleted message: {arguments['index']}")

        elif name == "chat_changed":
            host.replace_chat(
                [
                    ChatMessage(text=m["text"], index=i, is_user=m.get("is_user", False))
                    for i, m in enumerate(arguments["messages"])
                ]
            )
            await host.emit(Events.CHAT_CHANGED, {})
            return _text(
                json.dumps(
                    {str(i): h for i, h in sorted(host.headers.items())},
                    indent=2,
                    ensure_ascii=False,
                )
            )

        elif name == "edit_tracker":
            index = arguments["index"]
            snapshot = extension.edit_tracker(index, arguments["overrides"])
            return _snapshot_result(extension, index, snapshot)

        elif name == "regenerate_tracker":
            index = arguments.get("index")
            if index is None:
                ai_messages = [m.index for m in host.get_chat() if not m.is_user]
                if not ai_messages:
                    return _text("No AI message to regenerate")
                index = max(ai_messages)
            snapshot = await extension.regenerate_tracker(index)
            return _snapshot_result(extension, index, snapshot)

        elif name == "get_header":
            header = host.headers.get(arguments["index"])
            if header is None:
                return _text(f"No header for message {arguments['index']}")
            return _text(header)

        elif name == "get_prompt":
            prompt = host.prompts.get(extension.extension_id, {})
            return _text(json.dumps(prompt, indent=2, ensure_ascii=False))

        elif name == "get_settings":
            return _text(json.dumps(extension.settings.to_dict(), indent=2, ensure_ascii=False))

        elif name == "update_settings":
            settings = extension.update_settings(arguments["changes"])
            return _text(json.dumps(settings.to_dict(), indent=2, ensure_ascii=False))

        elif name == "get_output_filter":
            return _text(host.output_filters.get(extension.extension_id, ""))

        else:
            return _text(f"Unknown tool: {name}")

    except Exception as e:
        logger.exception("Tool %s failed", name)
        return _text(f"Error: {str(e)}")


# -------------------------------------------------------------------------
# Main Entry Point
# -------------------------------------------------------------------------


async def main():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def run() -> None:
    """Console script entry point."""
    import asyncio

    asyncio.run(main())


if __name__ == "__main__":
    run()
