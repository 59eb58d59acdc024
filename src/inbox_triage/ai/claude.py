"""Anthropic Claude judge provider."""

import os
from typing import TYPE_CHECKING

from inbox_triage.ai.base import AIProvider, build_judge_prompt, parse_verdict

if TYPE_CHECKING:
    import anthropic


class ClaudeProvider(AIProvider):
    """Anthropic Claude provider."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-haiku-4-5-20251001",
    ) -> None:
        """
        Initialize the Claude provider.

        Args:
            api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY env var.
            model: Model to use for judging.
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model
        self._client: "anthropic.Anthropic | None" = None

    @property
    def client(self) -> "anthropic.Anthropic":
        """Lazy-load the Anthropic client."""
        if self._client is None:
            import anthropic

            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    async def judge(
        self,
        system_prompt: str,
        user_prompt: str,
        subject: str,
        body: str,
    ) -> bool:
        """Judge a message with Claude."""
        message = self.client.messages.create(
            model=self.model,
            max_tokens=16,
            system=system_prompt,
            messages=[
                {"role": "user", "content": build_judge_prompt(user_prompt, subject, body)}
            ],
        )
        return parse_verdict(message.content[0].text)

    async def is_available(self) -> bool:
        """Check if Claude API is available."""
        if not self.api_key:
            return False

        try:
            self.client.messages.create(
                model=self.model,
                max_tokens=10,
                messages=[{"role": "user", "content": "test"}],
            )
            return True
        except Exception:
            return False
