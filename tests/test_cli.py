"""Tests for the command-line interface."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from inbox_triage.cli import app
from inbox_triage.config import load_rules

runner = CliRunner()


@pytest.fixture
def config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("INBOX_TRIAGE_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("INBOX_TRIAGE_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("INBOX_TRIAGE_LLM_PROVIDER", raising=False)
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0
    return tmp_path


class TestRulesCommands:
    """Tests for rule management commands."""

    def test_init_creates_examples(self, config_dir: Path) -> None:
        assert (config_dir / "rules.yaml").exists()
        assert (config_dir / "mailbox.yaml").exists()

    def test_list(self, config_dir: Path) -> None:
        result = runner.invoke(app, ["rules", "list"])
        assert result.exit_code == 0
        assert "Invoices" in result.output

    def test_show_unknown(self, config_dir: Path) -> None:
        result = runner.invoke(app, ["rules", "show", "nope"])
        assert result.exit_code == 1

    def test_disable_and_reorder(self, config_dir: Path) -> None:
        assert runner.invoke(app, ["rules", "disable", "1700000000000"]).exit_code == 0
        assert runner.invoke(app, ["rules", "down", "1700000000000"]).exit_code == 0

        rules = load_rules(config_dir / "rules.yaml")
        assert [r["id"] for r in rules][:2] == ["1700000000001", "1700000000000"]
        assert rules[1]["enabled"] is False

    def test_delete(self, config_dir: Path) -> None:
        result = runner.invoke(app, ["rules", "delete", "1700000000002", "--yes"])
        assert result.exit_code == 0
        assert len(load_rules(config_dir / "rules.yaml")) == 2

    def test_dry_run(self, config_dir: Path) -> None:
        result = runner.invoke(
            app, ["rules", "test", "--subject", "Your invoice", "--sender", "Billing <bill@corp.com>"]
        )
        assert result.exit_code == 0
        assert "apply labels 101" in result.output
        assert "move to folder 7" in result.output


class TestLlmCommands:
    def test_status_without_provider(self, config_dir: Path) -> None:
        result = runner.invoke(app, ["llm", "status"])
        assert result.exit_code == 0
        assert "No LLM provider configured" in result.output

    def test_status_provider_without_key(self, config_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("INBOX_TRIAGE_LLM_PROVIDER", "openai")
        monkeypatch.delenv("INBOX_TRIAGE_OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        result = runner.invoke(app, ["llm", "status"])

        assert result.exit_code == 1
        assert "No API key for 'openai'" in result.output
