"""Application configuration management."""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from inbox_triage.ai.base import LlmConfig, env_api_key


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="INBOX_TRIAGE_",
        env_file=[
            ".env",  # Project-level defaults (lower priority)
            Path.home() / ".config" / "inbox-triage" / ".env",  # User config (higher priority)
        ],
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # LLM judge for AI-mode rules; unset disables them
    llm_provider: Literal["google", "claude", "openai", "ollama"] | None = Field(
        default=None, description="LLM provider for AI-mode rules"
    )

    # Gemini settings
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")
    gemini_model: str = Field(
        default="gemini-2.0-flash-lite", description="Gemini model to use"
    )

    # Claude settings
    anthropic_api_key: str | None = Field(
        default=None, description="Anthropic API key"
    )
    claude_model: str = Field(
        default="claude-haiku-4-5-20251001", description="Claude model to use"
    )

    # OpenAI settings
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model to use")

    # Ollama settings
    ollama_host: str = Field(
        default="http://localhost:11434", description="Ollama server URL"
    )
    ollama_model: str = Field(default="llama3.2", description="Ollama model to use")

    # Mailbox processing
    inbox_folder_id: str = Field(default="2", description="Folder id of the inbox")
    batch_size: int = Field(
        default=50, ge=1, description="Messages per coalesced batch in manual runs"
    )
    mail_process_limit: int = Field(
        default=1000, ge=1, description="Max headers listed in one manual run"
    )
    notification_query_length: int = Field(
        default=10, ge=1, description="Headers searched for an id-only notification"
    )
    verify_max_results: int = Field(
        default=5, ge=1, description="Newest messages searched when verifying a move"
    )

    # Paths
    config_dir: Path = Field(
        default=Path.home() / ".config" / "inbox-triage",
        description="Configuration directory",
    )
    rules_file: str = Field(default="rules.yaml", description="Rules config filename")
    mailbox_file: str = Field(
        default="mailbox.yaml", description="Label and folder name-to-id maps"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Path = Field(
        default=Path.home() / ".local" / "state" / "inbox-triage" / "logs",
        description="Directory for log files (per-mailbox logs written here)",
    )
    log_rotation_size_mb: int = Field(
        default=5, ge=1, description="Max size per log file in MB before rotation"
    )
    log_backup_count: int = Field(
        default=3, ge=0, description="Number of rotated log files to keep"
    )

    @property
    def rules_path(self) -> Path:
        """Full path to rules file."""
        return self.config_dir / self.rules_file

    @property
    def mailbox_path(self) -> Path:
        """Full path to the label/folder map file."""
        return self.config_dir / self.mailbox_file

    def ensure_config_dir(self) -> None:
        """Create config directory if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

    @property
    def log_max_bytes(self) -> int:
        return self.log_rotation_size_mb * 1024 * 1024

    def llm_config(self) -> LlmConfig | None:
        """
        Resolve the LLM settings for one rule-engine run.

        Keyed providers take their key from these settings first, then from
        the provider's own env var (``GEMINI_API_KEY``, ``ANTHROPIC_API_KEY``,
        ``OPENAI_API_KEY``).

        Returns:
            LlmConfig for the selected provider, or None when no provider is
            selected or the selected one has no API key (AI-mode rules then
            never match).
        """
        match self.llm_provider:
            case "google":
                return _keyed_config("google", self.gemini_api_key, self.gemini_model)
            case "claude":
                return _keyed_config("claude", self.anthropic_api_key, self.claude_model)
            case "openai":
                return _keyed_config("openai", self.openai_api_key, self.openai_model)
            case "ollama":
                return LlmConfig(
                    provider="ollama", model=self.ollama_model, host=self.ollama_host
                )
        return None


def _keyed_config(provider: str, api_key: str | None, model: str) -> LlmConfig | None:
    api_key = api_key or env_api_key(provider)
    if not api_key:
        return None
    return LlmConfig(provider=provider, api_key=api_key, model=model)


def load_rules(path: Path) -> list[dict]:
    """Load rules from a YAML file."""
    if not path.exists():
        return []

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return data.get("rules", [])


def save_rules(path: Path, rules: list[dict]) -> None:
    """Save rules to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.dump({"rules": rules}, f, default_flow_style=False, sort_keys=False, allow_unicode=True)


def load_name_maps(path: Path) -> tuple[dict[str, str], dict[str, str]]:
    """
    Load label and folder name-to-id maps.

    The file holds two mappings, ``labels`` and ``folders``, each from the
    name shown in the webmail client to its id. Ids are kept as strings.

    Returns:
        ``(labels, folders)``; both empty when the file does not exist.
    """
    if not path.exists():
        return {}, {}

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    labels = {str(k): str(v) for k, v in (data.get("labels") or {}).items()}
    folders = {str(k): str(v) for k, v in (data.get("folders") or {}).items()}
    return labels, folders
