"""Capability interface the engine uses to reach the webmail client."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field

from inbox_triage.errors import CapabilityError
from inbox_triage.mail.messages import Address, MailHeader, MailMetadata


@dataclass
class OperationResult:
    """Outcome of a label, mark-read or move call."""

    success: bool
    error: str | None = None


@dataclass
class FetchResult:
    """Full message detail returned by ``fetch_full_message``."""

    success: bool
    subject: str | None = None
    body: str | None = None
    sender: Address | None = None
    recipient: list[Address] | None = None
    cc_recipients: list[Address] | None = None
    error: str | None = None


@dataclass
class VerifyResult:
    """Outcome of looking up a moved message in its destination folder."""

    success: bool
    found: bool = False
    new_mail_id: str | None = None
    metadata: MailMetadata | None = None
    error: str | None = None


@dataclass
class MailListResult:
    """A page of message headers from one or more folders."""

    success: bool
    mails: list[MailHeader] = field(default_factory=list)
    total_count: int = 0
    error: str | None = None


class MailCapabilities(ABC):
    """
    Operations the webmail client exposes to the rule engine.

    Implementations own transport, authentication and timeouts. Any exception
    they raise, and any result with ``success=False``, is treated by the
    engine as a failure of that single step.
    """

    @abstractmethod
    async def fetch_full_message(self, mail_id: str) -> FetchResult:
        """Fetch subject, body, sender and recipient lists for a message."""
        ...

    @abstractmethod
    async def apply_labels(self, mail_ids: list[str], label_ids: list[str]) -> OperationResult:
        """Apply every label in ``label_ids`` to every message in ``mail_ids``."""
        ...

    @abstractmethod
    async def mark_read(self, mail_ids: list[str], is_read: bool) -> OperationResult:
        """Set the read flag on the given messages."""
        ...

    @abstractmethod
    async def move_to_folder(self, mail_id: str, folder_id: str) -> OperationResult:
        """Move a message. The message id is invalid afterwards."""
        ...

    @abstractmethod
    async def verify_move(
        self,
        original_unique_id: str,
        target_folder_id: str,
        max_results: int,
    ) -> VerifyResult:
        """
        Find a moved message in its destination folder.

        Args:
            original_unique_id: Move-invariant part of the old message id.
            target_folder_id: Folder the message was moved into.
            max_results: How many of the newest messages to search.

        Returns:
            VerifyResult carrying the new full id and fresh metadata when found.
        """
        ...

    @abstractmethod
    async def query_mail_list(
        self,
        folder_ids: list[str],
        max_length: int,
        offset: int = 0,
    ) -> MailListResult:
        """List message headers, newest first."""
        ...

    @abstractmethod
    def label_map(self) -> Mapping[str, str]:
        """Snapshot of label name to label id."""
        ...

    @abstractmethod
    def folder_map(self) -> Mapping[str, str]:
        """Snapshot of folder name to folder id."""
        ...

    def resolve_label_id(self, name: str) -> str | None:
        """Look up a label id by name."""
        return self.label_map().get(name)

    def resolve_folder_id(self, name: str) -> str | None:
        """Look up a folder id by name."""
        return self.folder_map().get(name)


def ensure_success(
    result: OperationResult | FetchResult | VerifyResult | MailListResult | None,
    operation: str,
    mail_id: str | None = None,
) -> None:
    """
    Raise CapabilityError unless a capability result reports success.

    Raises:
        CapabilityError: If the result is missing or ``success`` is false.
    """
    if result is None:
        raise CapabilityError(operation, "no response", mail_id=mail_id)
    if not result.success:
        raise CapabilityError(operation, result.error, mail_id=mail_id)
