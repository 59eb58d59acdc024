"""Mail data types, the capability interface and the action executor."""

from inbox_triage.mail.actions import (
    ActionExecutor,
    ActionResult,
    extract_folder_id,
    extract_unique_id,
)
from inbox_triage.mail.capabilities import (
    FetchResult,
    MailCapabilities,
    MailListResult,
    OperationResult,
    VerifyResult,
    ensure_success,
)
from inbox_triage.mail.messages import (
    Address,
    MailContext,
    MailHeader,
    MailMetadata,
    parse_address,
    parse_address_list,
)

__all__ = [
    "ActionExecutor",
    "ActionResult",
    "Address",
    "FetchResult",
    "MailCapabilities",
    "MailContext",
    "MailHeader",
    "MailListResult",
    "MailMetadata",
    "OperationResult",
    "VerifyResult",
    "ensure_success",
    "extract_folder_id",
    "extract_unique_id",
    "parse_address",
    "parse_address_list",
]
