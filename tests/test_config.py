"""Tests for settings, YAML storage and logging setup."""

from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from inbox_triage.config import Settings, load_name_maps, load_rules, save_rules
from inbox_triage.logging import (
    configure_logging,
    get_mailbox_logger,
    log_event,
    reset_logging,
    setup_logging,
)
from inbox_triage.rules.ruleset import RuleSet


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("INBOX_TRIAGE_LLM_PROVIDER", raising=False)
        settings = Settings(_env_file=None)

        assert settings.llm_provider is None
        assert settings.llm_config() is None
        assert settings.inbox_folder_id == "2"
        assert settings.batch_size == 50
        assert settings.mail_process_limit == 1000
        assert settings.notification_query_length == 10
        assert settings.verify_max_results == 5
        assert settings.rules_path.name == "rules.yaml"

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("INBOX_TRIAGE_LLM_PROVIDER", "google")
        monkeypatch.setenv("INBOX_TRIAGE_GEMINI_API_KEY", "g-key")

        config = Settings(_env_file=None).llm_config()

        assert config is not None
        assert config.provider == "google"
        assert config.api_key == "g-key"
        assert config.model == "gemini-2.0-flash-lite"

    def test_keyed_provider_without_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A keyed provider with no key anywhere leaves AI rules unconfigured."""
        for name in ("INBOX_TRIAGE_GEMINI_API_KEY", "GEMINI_API_KEY", "ANTHROPIC_API_KEY", "OPENAI_API_KEY"):
            monkeypatch.delenv(name, raising=False)

        assert Settings(llm_provider="google", gemini_api_key=None, _env_file=None).llm_config() is None
        assert Settings(llm_provider="claude", _env_file=None).llm_config() is None
        assert Settings(llm_provider="openai", _env_file=None).llm_config() is None

    def test_provider_env_var_counts_as_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("INBOX_TRIAGE_ANTHROPIC_API_KEY", raising=False)
        monkeypatch.setenv("ANTHROPIC_API_KEY", "a-key")

        config = Settings(llm_provider="claude", _env_file=None).llm_config()

        assert config is not None
        assert config.api_key == "a-key"
        assert config.is_supported

    def test_log_rotation_bytes(self) -> None:
        settings = Settings(log_rotation_size_mb=2, _env_file=None)
        assert settings.log_max_bytes == 2 * 1024 * 1024

    def test_ollama_config_has_host(self) -> None:
        config = Settings(llm_provider="ollama", _env_file=None).llm_config()
        assert config.host == "http://localhost:11434"
        assert config.api_key is None


class TestYamlStorage:
    """Tests for rules and name-map files."""

    def test_missing_files(self, tmp_path: Path) -> None:
        assert load_rules(tmp_path / "rules.yaml") == []
        assert load_name_maps(tmp_path / "mailbox.yaml") == ({}, {})

    def test_rules_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "rules.yaml"
        ruleset = RuleSet.from_dicts(
            [{"id": "1", "name": "Bills", "conditions": {"subject": [{"keywords": ["invoice"]}]}}]
        )

        save_rules(path, ruleset.to_dicts())

        assert RuleSet.from_dicts(load_rules(path)) == ruleset

    def test_name_maps_stringify_ids(self, tmp_path: Path) -> None:
        path = tmp_path / "mailbox.yaml"
        path.write_text("labels:\n  Work: 101\nfolders:\n  Archive: 5\n")

        labels, folders = load_name_maps(path)

        assert labels == {"Work": "101"}
        assert folders == {"Archive": "5"}


class TestLogging:
    """Tests for per-mailbox log files."""

    @pytest.fixture(autouse=True)
    def _close_logs(self):
        reset_logging()
        yield
        reset_logging()

    def test_mailbox_log_and_error_log(self, tmp_path: Path) -> None:
        setup_logging(log_dir=tmp_path)
        logger = get_mailbox_logger("work@corp.com")
        logger.info("processed")
        logger.error("move failed")

        mailbox_log = (tmp_path / "inbox-triage-work-corp-com.log").read_text()
        error_log = (tmp_path / "inbox-triage-error.log").read_text()

        assert "processed" in mailbox_log
        assert "move failed" in mailbox_log
        assert "[work@corp.com] move failed" in error_log
        assert "processed" not in error_log

    def test_same_logger_returned(self, tmp_path: Path) -> None:
        setup_logging(log_dir=tmp_path)
        assert get_mailbox_logger("a") is get_mailbox_logger("a")

    def test_rotation_from_settings(self, tmp_path: Path) -> None:
        settings = Settings(log_dir=tmp_path, log_rotation_size_mb=2, log_backup_count=7, _env_file=None)

        configure_logging(settings)
        handlers = get_mailbox_logger("work").handlers

        assert handlers
        for handler in handlers:
            assert isinstance(handler, RotatingFileHandler)
            assert handler.maxBytes == 2 * 1024 * 1024
            assert handler.backupCount == 7

    def test_event_line(self, tmp_path: Path) -> None:
        setup_logging(log_dir=tmp_path)

        log_event("work", "batch_run", processed=3, moved=0, skipped=None, message="No enabled rules.")

        line = (tmp_path / "inbox-triage-work.log").read_text().strip()
        assert line.endswith('batch_run processed=3 moved=0 message="No enabled rules."')
        assert "skipped" not in line
