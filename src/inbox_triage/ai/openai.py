"""OpenAI GPT judge provider."""

import os
from typing import TYPE_CHECKING

from inbox_triage.ai.base import AIProvider, build_judge_prompt, parse_verdict

if TYPE_CHECKING:
    import openai


class OpenAIProvider(AIProvider):
    """OpenAI GPT provider."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
    ) -> None:
        """
        Initialize the OpenAI provider.

        Args:
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.
            model: Model to use for judging.
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model
        self._client: "openai.OpenAI | None" = None

    @property
    def client(self) -> "openai.OpenAI":
        """Lazy-load the OpenAI client."""
        if self._client is None:
            import openai

            self._client = openai.OpenAI(api_key=self.api_key)
        return self._client

    async def judge(
        self,
        system_prompt: str,
        user_prompt: str,
        subject: str,
        body: str,
    ) -> bool:
        """Judge a message with GPT."""
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": build_judge_prompt(user_prompt, subject, body)},
            ],
        )
        return parse_verdict(response.choices[0].message.content)

    async def is_available(self) -> bool:
        """Check if OpenAI API is available."""
        if not self.api_key:
            return False

        try:
            self.client.models.list()
            return True
        except Exception:
            return False
