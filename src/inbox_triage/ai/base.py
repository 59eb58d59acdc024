"""Base LLM judge interface and shared types."""

import logging
import os
from abc import ABC, abstractmethod
from enum import Enum

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = """You are an email classification assistant. Based on the user's query and the provided email content (subject and body), determine if the email matches the user's criteria.
Respond with only 'MATCH' if it matches, or 'NO_MATCH' if it does not. Do not provide any explanation or any other text."""

# Longer bodies are cut before they are sent to a provider
MAX_BODY_CHARS = 15000


class LlmProvider(str, Enum):
    """LLM providers that can judge AI-mode rules."""

    GOOGLE = "google"
    CLAUDE = "claude"
    OPENAI = "openai"
    OLLAMA = "ollama"


SUPPORTED_PROVIDERS = {p.value for p in LlmProvider}

# Env vars the keyed providers fall back to when no key is configured
API_KEY_ENV_VARS = {
    LlmProvider.GOOGLE.value: "GEMINI_API_KEY",
    LlmProvider.CLAUDE.value: "ANTHROPIC_API_KEY",
    LlmProvider.OPENAI.value: "OPENAI_API_KEY",
}


def env_api_key(provider: str) -> str | None:
    """API key for a keyed provider from its environment variable, if set."""
    env_var = API_KEY_ENV_VARS.get(provider)
    if env_var is None:
        return None
    return os.environ.get(env_var) or None


class LlmConfig(BaseModel):
    """Provider settings resolved once per rule-engine run."""

    provider: str = Field(description="Provider name, e.g. 'google' or 'claude'")
    api_key: str | None = Field(default=None, description="Provider API key")
    model: str = Field(description="Model name to query")
    host: str | None = Field(default=None, description="Server URL for local providers")

    @property
    def needs_api_key(self) -> bool:
        return self.provider in API_KEY_ENV_VARS

    @property
    def is_supported(self) -> bool:
        """Known provider with the key it needs (configured or from the env)."""
        if self.provider not in SUPPORTED_PROVIDERS:
            return False
        if self.needs_api_key:
            return bool(self.api_key or env_api_key(self.provider))
        return True


class Verdict(str, Enum):
    """Answers an LLM judge may give."""

    MATCH = "MATCH"
    NO_MATCH = "NO_MATCH"


def build_judge_prompt(user_prompt: str, subject: str, body: str) -> str:
    """
    Build the question sent to the model for one message.

    Args:
        user_prompt: The rule's natural-language criteria.
        subject: Message subject.
        body: Message body (truncated to MAX_BODY_CHARS).

    Returns:
        Prompt text asking for MATCH or NO_MATCH.
    """
    return f'''User's Rule: "{user_prompt}"

Email Subject:
"""
{subject}
"""

Email Body:
"""
{body[:MAX_BODY_CHARS]}
"""

Does this email match the user's rule? Respond with only 'MATCH' or 'NO_MATCH'.'''


def parse_verdict(response_text: str | None) -> bool:
    """Map a model answer to a match decision. Anything unexpected is NO_MATCH."""
    answer = (response_text or "").strip().strip("`'\".").upper()
    if answer == Verdict.MATCH.value:
        return True
    if answer != Verdict.NO_MATCH.value:
        logger.warning(f"Unexpected judge answer {answer[:40]!r}, treating as NO_MATCH")
    return False


class AIProvider(ABC):
    """Abstract base class for LLM judge providers."""

    @abstractmethod
    async def judge(
        self,
        system_prompt: str,
        user_prompt: str,
        subject: str,
        body: str,
    ) -> bool:
        """
        Ask the model whether a message satisfies the user's criteria.

        Args:
            system_prompt: Instructions fixing the MATCH/NO_MATCH protocol.
            user_prompt: The rule's natural-language criteria.
            subject: Message subject.
            body: Message body.

        Returns:
            True if the model answered MATCH.
        """
        ...

    @abstractmethod
    async def is_available(self) -> bool:
        """Check if the provider is reachable and properly configured."""
        ...
