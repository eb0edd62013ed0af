"""Hidden text generation backends for PT Tracker."""

from typing import Protocol
import logging

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    """Protocol for hidden generation backends."""

    async def generate(self, prompt: str) -> str:
        """Return the model's raw response to a single prompt."""
        ...


class OpenAIGenerator:
    """OpenAI chat completion backend."""

    def __init__(self, model: str = "gpt-4o-mini", max_tokens: int = 300):
        from openai import AsyncOpenAI

        self.model = model
        self.max_tokens = max_tokens
        self.client = AsyncOpenAI()

    async def generate(self, prompt: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
        )
        return response.choices[0].message.content or ""


class ScriptedGenerator:
    """Deterministic backend that replays canned responses.

    Intended for tests and offline sessions. Prompts are recorded in
    ``prompts``; once the script runs out the last response repeats.
    """

    def __init__(self, responses: list[str] | None = None):
        self.responses = list(responses or [""])
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


def create_generator(backend: str, model: str | None = None) -> TextGenerator | None:
    """Build a generator by backend name ("openai" or "none")."""
    if backend == "openai":
        logger.info("Using OpenAI generation backend (model=%s)", model)
        return OpenAIGenerator(model=model) if model else OpenAIGenerator()
    if backend == "none":
        return None
    raise ValueError(f"Unknown generation backend: {backend}")
