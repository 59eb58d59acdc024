"""Ollama local LLM judge provider."""

from typing import TYPE_CHECKING

from inbox_triage.ai.base import AIProvider, build_judge_prompt, parse_verdict

if TYPE_CHECKING:
    import ollama


class OllamaProvider(AIProvider):
    """Ollama local LLM provider."""

    def __init__(
        self,
        model: str = "llama3.2",
        host: str = "http://localhost:11434",
    ) -> None:
        """
        Initialize the Ollama provider.

        Args:
            model: Model name to use (e.g., llama3.2, mistral, phi3).
            host: Ollama server URL.
        """
        self.model = model
        self.host = host
        self._client: "ollama.Client | None" = None

    @property
    def client(self) -> "ollama.Client":
        """Lazy-load the Ollama client."""
        if self._client is None:
            import ollama

            self._client = ollama.Client(host=self.host)
        return self._client

    async def judge(
        self,
        system_prompt: str,
        user_prompt: str,
        subject: str,
        body: str,
    ) -> bool:
        """Judge a message with a local Ollama model."""
        response = self.client.generate(
            model=self.model,
            system=system_prompt,
            prompt=build_judge_prompt(user_prompt, subject, body),
            options={"temperature": 0.0},
        )
        return parse_verdict(response.get("response", ""))

    async def is_available(self) -> bool:
        """Check if Ollama is available and the model is loaded."""
        try:
            models = self.client.list()
            model_names = [m.get("name", "").split(":")[0] for m in models.get("models", [])]
            return self.model.split(":")[0] in model_names
        except Exception:
            return False
