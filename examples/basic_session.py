"""Basic tracker session against the in-process host.

This example demonstrates:
- Initialising the extension with persisted settings
- Feeding AI replies through host events
- Fallback of fields the AI did not repeat
- Manual correction and hidden regeneration

Note: This example uses a scripted generator instead of a real model.
Swap in OpenAIGenerator (``pip install pt-tracker[openai]``) for live calls.
"""

import asyncio

from pt_tracker import Events, LocalHost, TrackerConfig, TrackerExtension
from pt_tracker.generation import ScriptedGenerator


async def say(host: LocalHost, text: str, is_user: bool = False) -> int:
    """Append a message and emit MESSAGE_RECEIVED for it."""
    message = host.add_message(text, is_user=is_user)
    await host.emit(
        Events.MESSAGE_RECEIVED,
        {"text": message.text, "index": message.index, "is_user": is_user},
    )
    return message.index


async def main():
    generator = ScriptedGenerator(
        ["[time: 19:40][location: Seventh Heaven bar][weather: Clear night, 64°F][heart: 15000]"]
    )
    host = LocalHost(db_path="tracker.db", generator=generator)

    try:
        extension = TrackerExtension(host, TrackerConfig(db_path="tracker.db"))
        extension.init()

        await say(host, "Hey, got a minute?", is_user=True)
        first = await say(
            host,
            "Tifa looks up from the crystals and smiles.\n"
            "[time: 08:15:00; 05/21/2001 (Monday)]\n"
            "[location: Mako Crystal Cave, Mount Nibel]\n"
            "[weather: Cool and damp, 57°F]\n"
            "[heart: 4200]\n"
            "[char: Tifa | outfit: White tank top | state: Curious | position: Kneeling]",
        )
        print(f"=== Header #{first} ===")
        print(host.headers[first])

        await say(host, "Let's head back.", is_user=True)
        # Only the time and heart changed; the rest carries forward
        second = await say(host, "They walk out into the light. [time: 09:02] [heart: 5600]")
        print(f"\n=== Header #{second} ===")
        print(host.headers[second])

        # Manual correction, as the edit dialog would submit it
        extension.edit_tracker(second, {"weather": "Bright sun, 70°F"})
        print(f"\n=== Corrected header #{second} ===")
        print(host.headers[second])

        # Hidden regeneration from the narrative
        await host.emit(Events.BUTTON_CLICKED, {"action": "regenerate"})
        print(f"\n=== Regenerated header #{second} ===")
        print(host.headers[second])

        print("\n=== Injected prompt ===")
        print(host.prompts[extension.extension_id]["text"])
    finally:
        host.close()


if __name__ == "__main__":
    asyncio.run(main())
