"""Tests for new-mail notification handling."""

from pathlib import Path

import pytest

from inbox_triage.config import Settings
from inbox_triage.logging import reset_logging, setup_logging
from inbox_triage.mail.messages import Address
from inbox_triage.rules.models import Rule
from inbox_triage.rules.ruleset import RuleSet
from inbox_triage.runner.watcher import NewMailWatcher


@pytest.fixture
def watcher(mailbox, invoice_rule: Rule) -> NewMailWatcher:
    return NewMailWatcher(mailbox, RuleSet([invoice_rule]))


class TestNewMailWatcher:
    """Tests for the three notification shapes."""

    @pytest.mark.asyncio
    async def test_on_new_mail_parses_sender(self, watcher: NewMailWatcher, mailbox) -> None:
        result = await watcher.on_new_mail("2_0:abc", "Invoice 12", "Billing <bill@corp.com>")

        assert result.matched_rules == ["r-invoice"]
        assert result.mail_id == "5_0:abc"
        assert result.context.sender == Address(display_name="Moved Sender", email="moved@example.com")

    @pytest.mark.asyncio
    async def test_on_new_mail_id_looks_up_header(self, watcher: NewMailWatcher, mailbox) -> None:
        """An id-only notification lists the latest headers of its folder."""
        mailbox.add_message("2_0:abc", subject="Invoice 12")

        result = await watcher.on_new_mail_id("2_0:abc")

        assert mailbox.calls_to("query_mail_list")[0] == ("query_mail_list", ["2"], 10, 0)
        assert result is not None
        assert result.matched_rules == ["r-invoice"]

    @pytest.mark.asyncio
    async def test_on_new_mail_id_not_found(self, watcher: NewMailWatcher, mailbox) -> None:
        mailbox.add_message("2_0:other", subject="Invoice")

        assert await watcher.on_new_mail_id("2_0:abc") is None
        assert mailbox.calls_to("move_to_folder") == []

    @pytest.mark.asyncio
    async def test_query_length_from_settings(self, mailbox, invoice_rule: Rule) -> None:
        settings = Settings(notification_query_length=3, _env_file=None)
        watcher = NewMailWatcher(mailbox, [invoice_rule], settings=settings)

        await watcher.on_new_mail_id("7_0:abc")

        assert mailbox.calls_to("query_mail_list")[0] == ("query_mail_list", ["7"], 3, 0)

    @pytest.mark.asyncio
    async def test_on_mail_content_needs_no_fetch(self, mailbox, alice: Address) -> None:
        rule = Rule.model_validate(
            {
                "id": "r-cc",
                "name": "Cc me",
                "conditions": {
                    "cc": [{"address": "alice"}],
                    "body": [{"keywords": [{"keyword": "agenda"}]}],
                },
                "action": {"markAsRead": True},
            }
        )
        watcher = NewMailWatcher(mailbox, [rule])

        result = await watcher.on_mail_content(
            "2_0:abc",
            body="Meeting agenda attached",
            subject="Meeting",
            sender={"displayName": "Bob", "email": "bob@corp.com"},
            recipient=[],
            cc_recipients=[{"displayName": "Alice Smith", "email": "alice@example.com"}],
        )

        assert result.matched_rules == ["r-cc"]
        assert mailbox.calls_to("fetch_full_message") == []

    @pytest.mark.asyncio
    async def test_update_rules(self, watcher: NewMailWatcher) -> None:
        watcher.update_rules(RuleSet())

        result = await watcher.on_new_mail("2_0:abc", "Invoice", None)

        assert result.matched_rules == []

    @pytest.mark.asyncio
    async def test_verify_depth_from_settings(self, mailbox, invoice_rule: Rule) -> None:
        settings = Settings(verify_max_results=2, _env_file=None)
        watcher = NewMailWatcher(mailbox, [invoice_rule], settings=settings)

        await watcher.on_new_mail("2_0:abc", "Invoice 12", None)

        assert mailbox.calls_to("verify_move") == [("verify_move", "abc", "5", 2)]

    @pytest.mark.asyncio
    async def test_pass_recorded_in_mailbox_log(self, mailbox, invoice_rule: Rule, tmp_path: Path) -> None:
        reset_logging()
        setup_logging(log_dir=tmp_path)
        watcher = NewMailWatcher(mailbox, [invoice_rule], mailbox="work")
        try:
            await watcher.on_new_mail("2_0:abc", "Invoice 12", None)
            line = (tmp_path / "inbox-triage-work.log").read_text()
        finally:
            reset_logging()

        assert "new_mail mail_id=5_0:abc matched=r-invoice errors=0" in line
