"""Error classes for the triage engine and its capability layer."""


class TriageError(Exception):
    """Base class for inbox-triage errors."""


class CapabilityError(TriageError):
    """Raised when a mail capability call fails or reports success=False."""

    def __init__(
        self,
        operation: str,
        message: str | None = None,
        mail_id: str | None = None,
    ) -> None:
        detail = message or "operation failed"
        if mail_id:
            detail = f"{detail} (mail {mail_id})"
        super().__init__(f"{operation}: {detail}")
        self.operation = operation
        self.mail_id = mail_id


class DataUnavailableError(TriageError):
    """Raised when a condition needs message data that could not be fetched."""

    def __init__(self, field: str, mail_id: str | None = None) -> None:
        super().__init__(f"'{field}' is unavailable for mail {mail_id}")
        self.field = field
        self.mail_id = mail_id


class MoveVerificationError(TriageError):
    """Raised when a moved message cannot be found in its destination folder."""

    def __init__(self, unique_id: str, folder_id: str) -> None:
        super().__init__(
            f"Moved message {unique_id} was not found in folder {folder_id}"
        )
        self.unique_id = unique_id
        self.folder_id = folder_id


class ConfigurationMissingError(TriageError):
    """Raised when an AI provider is selected but not configured."""


class UnresolvableNameError(TriageError):
    """Raised when a label or folder name has no known id."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"Unknown {kind} '{name}'")
        self.kind = kind
        self.name = name


class RuleValidationError(TriageError):
    """Raised when a stored rule cannot be parsed."""
