"""Google Gemini judge provider."""

import os
from typing import TYPE_CHECKING

from inbox_triage.ai.base import AIProvider, build_judge_prompt, parse_verdict

if TYPE_CHECKING:
    import google.generativeai as genai


class GeminiProvider(AIProvider):
    """Google Gemini provider."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gemini-2.0-flash-lite",
    ) -> None:
        """
        Initialize the Gemini provider.

        Args:
            api_key: Gemini API key. Falls back to GEMINI_API_KEY env var.
            model: Model to use for judging.
        """
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY")
        self.model = model
        self._genai: "genai | None" = None

    @property
    def genai(self) -> "genai":
        """Lazy-load and configure the generativeai module."""
        if self._genai is None:
            import google.generativeai as genai

            genai.configure(api_key=self.api_key)
            self._genai = genai
        return self._genai

    async def judge(
        self,
        system_prompt: str,
        user_prompt: str,
        subject: str,
        body: str,
    ) -> bool:
        """Judge a message with Gemini."""
        model = self.genai.GenerativeModel(self.model, system_instruction=system_prompt)
        response = await model.generate_content_async(
            build_judge_prompt(user_prompt, subject, body),
            generation_config={"temperature": 0.0, "max_output_tokens": 10},
        )
        return parse_verdict(response.text)

    async def is_available(self) -> bool:
        """Check if the Gemini API is reachable with the configured key."""
        if not self.api_key:
            return False

        try:
            self.genai.get_model(f"models/{self.model}")
            return True
        except Exception:
            return False
