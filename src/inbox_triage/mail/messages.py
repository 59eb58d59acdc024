"""Message data threaded through a rule pass."""

import re
from dataclasses import dataclass
from typing import Any

_NAMED_ADDRESS = re.compile(r"(.*)<(.*)>")


@dataclass(frozen=True)
class Address:
    """A sender or recipient: display name plus email address."""

    display_name: str = ""
    email: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.display_name and not self.email

    def __str__(self) -> str:
        if self.display_name and self.email:
            return f"{self.display_name} <{self.email}>"
        return self.email or self.display_name


def parse_address(value: Any) -> Address | None:
    """
    Build an Address from the shapes the webmail client reports.

    Accepts an existing Address, a ``{displayName, email}`` dict (``name`` and
    ``address`` keys are also understood), or a ``"Name <email>"`` string.
    A string without angle brackets becomes the display name.

    Returns:
        The parsed Address, or None when the value is empty.
    """
    if value is None:
        return None
    if isinstance(value, Address):
        return value
    if isinstance(value, dict):
        display_name = value.get("displayName") or value.get("display_name") or value.get("name") or ""
        email = value.get("email") or value.get("address") or ""
        return Address(display_name=str(display_name), email=str(email))
    if isinstance(value, str):
        if not value:
            return None
        match = _NAMED_ADDRESS.match(value)
        if match and match.group(1).strip() and match.group(2).strip():
            return Address(display_name=match.group(1).strip(), email=match.group(2).strip())
        return Address(display_name=value, email="")
    return None


def parse_address_list(values: Any) -> list[Address] | None:
    """Parse a list of addresses. None stays None (unknown), [] stays []."""
    if values is None:
        return None
    parsed = [parse_address(v) for v in values]
    return [a for a in parsed if a is not None]


@dataclass
class MailMetadata:
    """Subject and sender reported for a message after it was moved."""

    subject: str | None = None
    sender: Address | None = None

    @classmethod
    def from_raw(cls, data: dict[str, Any] | None) -> "MailMetadata | None":
        if not data:
            return None
        return cls(
            subject=data.get("subject") or data.get("encSubject") or None,
            sender=parse_address(data.get("from") or data.get("sender")),
        )


@dataclass
class MailHeader:
    """Lightweight list entry for a message in a folder."""

    mail_id: str
    subject: str = ""
    sender: Address | None = None

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> "MailHeader":
        return cls(
            mail_id=data.get("mailId") or data.get("mail_id") or "",
            subject=data.get("subject") or data.get("encSubject") or "",
            sender=parse_address(data.get("from") or data.get("sender")),
        )


@dataclass
class MailContext:
    """
    Working state for one message during a rule pass.

    ``None`` means a field has not been obtained yet. For the recipient
    lists an empty list means the details were fetched and there are none.
    ``mail_id`` is not stable: a move replaces it and every later capability
    call must use the new value.
    """

    mail_id: str
    subject: str | None = None
    body: str | None = None
    sender: Address | None = None
    recipient: list[Address] | None = None
    cc_recipients: list[Address] | None = None
    details_fetched: bool = False
    deleted: bool = False

    @classmethod
    def from_header(cls, header: MailHeader) -> "MailContext":
        return cls(mail_id=header.mail_id, subject=header.subject, sender=header.sender)

    def merge(
        self,
        *,
        subject: str | None = None,
        body: str | None = None,
        sender: Address | None = None,
        recipient: list[Address] | None = None,
        cc_recipients: list[Address] | None = None,
    ) -> list[str]:
        """
        Fill gaps from freshly fetched data without overwriting known values.

        Returns:
            Names of the fields that were filled.
        """
        filled = []
        if not self.subject and subject:
            self.subject = subject
            filled.append("subject")
        if not self.body and body is not None:
            self.body = body
            filled.append("body")
        if (self.sender is None or self.sender.is_empty) and sender is not None:
            self.sender = sender
            filled.append("sender")
        if not self.recipient and recipient is not None:
            self.recipient = list(recipient)
            filled.append("recipient")
        if not self.cc_recipients and cc_recipients is not None:
            self.cc_recipients = list(cc_recipients)
            filled.append("cc_recipients")
        return filled

    def apply_metadata(self, metadata: MailMetadata | None) -> None:
        """Adopt subject/sender reported by a post-move lookup."""
        if metadata is None:
            return
        if metadata.subject:
            self.subject = metadata.subject
        if metadata.sender is not None and not metadata.sender.is_empty:
            self.sender = metadata.sender

    def describe(self) -> str:
        subject = (self.subject or "")[:60]
        return f"{self.mail_id} ({subject!r})"

