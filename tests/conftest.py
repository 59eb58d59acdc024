"""Pytest fixtures for inbox-triage tests."""

from collections.abc import Mapping

import pytest

from inbox_triage.ai.base import LlmConfig
from inbox_triage.mail.capabilities import (
    FetchResult,
    MailCapabilities,
    MailListResult,
    OperationResult,
    VerifyResult,
)
from inbox_triage.mail.messages import Address, MailHeader, MailMetadata
from inbox_triage.rules.models import Rule


class FakeMailbox(MailCapabilities):
    """In-memory mail capabilities that record every call."""

    def __init__(
        self,
        labels: dict[str, str] | None = None,
        folders: dict[str, str] | None = None,
    ) -> None:
        self.labels = labels if labels is not None else {"Work": "L1", "Bills": "L2"}
        self.folders = folders if folders is not None else {"Inbox": "2", "Archive": "5"}
        self.messages: dict[str, FetchResult] = {}
        self.headers: list[MailHeader] = []
        self.calls: list[tuple] = []

        # Failure switches
        self.fail_fetch = False
        self.fail_labels = False
        self.fail_mark_read = False
        self.fail_move = False
        self.verify_found = True
        self.raise_on: set[str] = set()

    def add_message(
        self,
        mail_id: str,
        subject: str = "",
        body: str = "",
        sender: Address | None = None,
        recipient: list[Address] | None = None,
        cc_recipients: list[Address] | None = None,
    ) -> None:
        """Register a message's full details and its list header."""
        self.messages[mail_id] = FetchResult(
            success=True,
            subject=subject,
            body=body,
            sender=sender,
            recipient=recipient if recipient is not None else [],
            cc_recipients=cc_recipients if cc_recipients is not None else [],
        )
        self.headers.append(MailHeader(mail_id=mail_id, subject=subject, sender=sender))

    def calls_to(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def _maybe_raise(self, name: str) -> None:
        if name in self.raise_on:
            raise RuntimeError(f"{name} exploded")

    async def fetch_full_message(self, mail_id: str) -> FetchResult:
        self.calls.append(("fetch_full_message", mail_id))
        self._maybe_raise("fetch_full_message")
        if self.fail_fetch or mail_id not in self.messages:
            return FetchResult(success=False, error="not found")
        return self.messages[mail_id]

    async def apply_labels(self, mail_ids: list[str], label_ids: list[str]) -> OperationResult:
        self.calls.append(("apply_labels", list(mail_ids), list(label_ids)))
        self._maybe_raise("apply_labels")
        return OperationResult(success=not self.fail_labels, error="labels" if self.fail_labels else None)

    async def mark_read(self, mail_ids: list[str], is_read: bool) -> OperationResult:
        self.calls.append(("mark_read", list(mail_ids), is_read))
        self._maybe_raise("mark_read")
        return OperationResult(success=not self.fail_mark_read)

    async def move_to_folder(self, mail_id: str, folder_id: str) -> OperationResult:
        self.calls.append(("move_to_folder", mail_id, folder_id))
        self._maybe_raise("move_to_folder")
        return OperationResult(success=not self.fail_move)

    async def verify_move(
        self,
        original_unique_id: str,
        target_folder_id: str,
        max_results: int,
    ) -> VerifyResult:
        self.calls.append(("verify_move", original_unique_id, target_folder_id, max_results))
        self._maybe_raise("verify_move")
        if not self.verify_found:
            return VerifyResult(success=True, found=False)
        return VerifyResult(
            success=True,
            found=True,
            new_mail_id=f"{target_folder_id}_0:{original_unique_id}",
            metadata=MailMetadata(
                subject="Moved subject",
                sender=Address(display_name="Moved Sender", email="moved@example.com"),
            ),
        )

    async def query_mail_list(
        self,
        folder_ids: list[str],
        max_length: int,
        offset: int = 0,
    ) -> MailListResult:
        self.calls.append(("query_mail_list", list(folder_ids), max_length, offset))
        self._maybe_raise("query_mail_list")
        mails = self.headers[offset : offset + max_length]
        return MailListResult(success=True, mails=mails, total_count=len(self.headers))

    def label_map(self) -> Mapping[str, str]:
        return self.labels

    def folder_map(self) -> Mapping[str, str]:
        return self.folders


class RecordingJudge:
    """LLM judge stand-in returning a fixed verdict and recording prompts."""

    def __init__(self, verdict: bool = True, error: Exception | None = None) -> None:
        self.verdict = verdict
        self.error = error
        self.calls: list[tuple] = []

    async def __call__(
        self,
        config: LlmConfig,
        system_prompt: str,
        user_prompt: str,
        subject: str,
        body: str,
    ) -> bool:
        self.calls.append((config.provider, system_prompt, user_prompt, subject, body))
        if self.error is not None:
            raise self.error
        return self.verdict


@pytest.fixture
def mailbox() -> FakeMailbox:
    """Empty fake mailbox with a couple of labels and folders."""
    return FakeMailbox()


@pytest.fixture
def alice() -> Address:
    return Address(display_name="Alice Smith", email="alice@example.com")


@pytest.fixture
def llm_config() -> LlmConfig:
    return LlmConfig(provider="google", api_key="test-key", model="gemini-2.0-flash-lite")


@pytest.fixture
def invoice_rule() -> Rule:
    """Rule moving mail with 'invoice' in the subject to Archive."""
    return Rule.model_validate(
        {
            "id": "r-invoice",
            "name": "Invoices",
            "conditions": {
                "subject": [{"type": "include", "keywords": [{"keyword": "invoice"}]}],
            },
            "action": {"moveToFolder": "Archive", "stopProcessing": True},
        }
    )


@pytest.fixture
def ai_rule() -> Rule:
    """AI-mode rule labeling job offers."""
    return Rule.model_validate(
        {
            "id": "r-ai",
            "name": "Job offers",
            "conditionMode": "ai",
            "aiPrompt": {"user": "Job offers"},
            "action": {"setLabel": "Work"},
        }
    )


@pytest.fixture
def judge() -> RecordingJudge:
    """Judge answering MATCH; set ``verdict`` or ``error`` to change it."""
    return RecordingJudge()
