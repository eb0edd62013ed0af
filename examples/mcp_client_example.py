"""Example of using PT Tracker through MCP.

This demonstrates how a chat front-end would drive the tracker server.
"""

import asyncio
import json
from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client


async def run_example():
    """Run example MCP interactions."""
    # Connect to the MCP server
    server_params = StdioServerParameters(
        command="pt-tracker-mcp",
        env={
            "PT_TRACKER_DB_PATH": "example_tracker.db",
            "PT_TRACKER_GENERATION_BACKEND": "none",
        },
    )

    async with stdio_client(server_params) as (read, write):
        async with ClientSession(read, write) as session:
            # Initialize connection
            await session.initialize()

            # List available tools
            tools = await session.list_tools()
            print(f"Available tools: {[t.name for t in tools.tools]}")

            print("\n=== Chat ===")
            await session.call_tool(
                "message_received",
                {"text": "Where are we?", "is_user": True},
            )
            reply = await session.call_tool(
                "message_received",
                {
                    "text": (
                        "The gulls scream overhead.\n"
                        "[time: 14:05]\n[location: Docks]\n"
                        "[weather: Windy, 60°F]\n[heart: 7500]\n"
                        "[char: Alice | outfit: raincoat | state: amused]"
                    )
                },
            )
            data = json.loads(reply.content[0].text)
            print(data["header"])

            print("\n=== Follow-up without location ===")
            reply = await session.call_tool(
                "message_received",
                {"text": "She points at a ship. [time: 14:20] [heart: 8200]"},
            )
            data = json.loads(reply.content[0].text)
            print(data["header"])

            print("\n=== Manual correction ===")
            reply = await session.call_tool(
                "edit_tracker",
                {"index": data["index"], "overrides": {"weather": "Drizzle, 58°F"}},
            )
            print(json.loads(reply.content[0].text)["header"])

            print("\n=== Hide weather ===")
            await session.call_tool("update_settings", {"changes": {"show_weather": False}})
            header = await session.call_tool("get_header", {"index": data["index"]})
            print(header.content[0].text)

            print("\n=== Injected prompt ===")
            prompt = await session.call_tool("get_prompt", {})
            print(json.loads(prompt.content[0].text)["text"])


if __name__ == "__main__":
    asyncio.run(run_example())
