"""LLM judge providers for AI-mode rules."""

from inbox_triage.ai.base import (
    DEFAULT_SYSTEM_PROMPT,
    SUPPORTED_PROVIDERS,
    AIProvider,
    LlmConfig,
    LlmProvider,
)
from inbox_triage.ai.claude import ClaudeProvider
from inbox_triage.ai.gemini import GeminiProvider
from inbox_triage.ai.ollama import OllamaProvider
from inbox_triage.ai.openai import OpenAIProvider
from inbox_triage.errors import ConfigurationMissingError

_KEYED_PROVIDERS: dict[str, type[GeminiProvider | ClaudeProvider | OpenAIProvider]] = {
    LlmProvider.GOOGLE.value: GeminiProvider,
    LlmProvider.CLAUDE.value: ClaudeProvider,
    LlmProvider.OPENAI.value: OpenAIProvider,
}


def get_provider(config: LlmConfig) -> AIProvider:
    """
    Build the provider named by an LLM config.

    Raises:
        ConfigurationMissingError: If the provider is unknown or needs a key
            that is not configured.
    """
    if config.provider == LlmProvider.OLLAMA.value:
        return OllamaProvider(model=config.model, host=config.host or "http://localhost:11434")

    factory = _KEYED_PROVIDERS.get(config.provider)
    if factory is None:
        raise ConfigurationMissingError(f"Unsupported LLM provider '{config.provider}'")

    provider = factory(api_key=config.api_key, model=config.model)
    if not provider.api_key:
        raise ConfigurationMissingError(f"No API key configured for '{config.provider}'")
    return provider


async def judge_with_llm(
    config: LlmConfig,
    system_prompt: str,
    user_prompt: str,
    subject: str,
    body: str,
) -> bool:
    """Default judge capability: dispatch to the configured provider."""
    provider = get_provider(config)
    return await provider.judge(system_prompt, user_prompt, subject, body)


__all__ = [
    "AIProvider",
    "ClaudeProvider",
    "DEFAULT_SYSTEM_PROMPT",
    "GeminiProvider",
    "LlmConfig",
    "LlmProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "SUPPORTED_PROVIDERS",
    "get_provider",
    "judge_with_llm",
]
