"""Per-mailbox activity logs for inbox-triage.

Every mailbox the engine works on gets its own rotating file,
``inbox-triage-{mailbox}.log``, holding one ``event key=value ...`` line per
batch run or notification pass. ERROR records from all mailboxes are also
written to the shared ``inbox-triage-error.log``, tagged with the mailbox.

Usage:
    from inbox_triage.logging import configure_logging, log_event

    configure_logging(settings)
    log_event("work", "batch_run", processed=40, moved=3)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from inbox_triage.config import Settings

DEFAULT_LOG_DIR = Path.home() / ".local" / "state" / "inbox-triage" / "logs"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024  # 5MB
DEFAULT_BACKUP_COUNT = 3

ERROR_LOG_NAME = "inbox-triage-error.log"
MAILBOX_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
ERROR_FORMAT = "%(asctime)s [%(levelname)s] [%(mailbox)s] %(message)s"


@dataclass
class _LogFiles:
    """Where log files go and how they rotate, plus the handlers opened so far."""

    log_dir: Path = DEFAULT_LOG_DIR
    max_bytes: int = DEFAULT_MAX_BYTES
    backup_count: int = DEFAULT_BACKUP_COUNT
    error_handler: RotatingFileHandler | None = None
    mailboxes: dict[str, logging.Logger] = field(default_factory=dict)

    def open(self, filename: str, fmt: str, level: int = logging.NOTSET) -> RotatingFileHandler:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            self.log_dir / filename,
            maxBytes=self.max_bytes,
            backupCount=self.backup_count,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(fmt))
        return handler

    def shared_error_handler(self) -> RotatingFileHandler:
        if self.error_handler is None:
            self.error_handler = self.open(ERROR_LOG_NAME, ERROR_FORMAT, logging.ERROR)
        return self.error_handler


_files = _LogFiles()


class _MailboxTag(logging.Filter):
    """Stamp each record with the mailbox it was logged for."""

    def __init__(self, mailbox: str) -> None:
        super().__init__()
        self.mailbox = mailbox

    def filter(self, record: logging.LogRecord) -> bool:
        record.mailbox = self.mailbox
        return True


def _safe_name(name: str) -> str:
    return "".join(c if c.isalnum() else "-" for c in name)


def setup_logging(
    log_dir: Path | None = None,
    log_level: str = "INFO",
    max_bytes: int | None = None,
    backup_count: int | None = None,
) -> None:
    """Set the package log level and where mailbox logs are written.

    Mailbox loggers opened before the call are closed, so the next
    ``get_mailbox_logger`` picks up the new directory and rotation.
    """
    global _files

    reset_logging()
    _files = _LogFiles(
        log_dir=log_dir or DEFAULT_LOG_DIR,
        max_bytes=max_bytes or DEFAULT_MAX_BYTES,
        backup_count=backup_count if backup_count is not None else DEFAULT_BACKUP_COUNT,
    )
    logging.getLogger("inbox_triage").setLevel(getattr(logging, log_level.upper(), logging.INFO))


def configure_logging(settings: Settings) -> None:
    """``setup_logging`` with the log directory, level and rotation from settings."""
    setup_logging(
        log_dir=settings.log_dir,
        log_level=settings.log_level,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_backup_count,
    )


def get_mailbox_logger(mailbox: str) -> logging.Logger:
    """Get or create the activity logger for one mailbox.

    Args:
        mailbox: Mailbox name (the account's address or a short alias)

    Returns:
        Logger writing to inbox-triage-{mailbox}.log, with ERROR+ records
        copied to the shared error log.
    """
    logger = _files.mailboxes.get(mailbox)
    if logger is not None:
        return logger

    safe_name = _safe_name(mailbox)
    logger = logging.getLogger(f"inbox_triage.mailbox.{safe_name}")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    logger.addFilter(_MailboxTag(mailbox))
    logger.addHandler(_files.open(f"inbox-triage-{safe_name}.log", MAILBOX_FORMAT))
    logger.addHandler(_files.shared_error_handler())

    _files.mailboxes[mailbox] = logger
    return logger


def _format_value(value: Any) -> str:
    text = str(value)
    if not text or any(c.isspace() or c in '"=' for c in text):
        return '"' + text.replace('"', '\\"') + '"'
    return text


def log_event(mailbox: str, event: str, level: int = logging.INFO, **fields: Any) -> None:
    """Write one ``event key=value ...`` line to a mailbox log; None values are left out."""
    parts = [event]
    parts.extend(f"{key}={_format_value(value)}" for key, value in fields.items() if value is not None)
    get_mailbox_logger(mailbox).log(level, " ".join(parts))


def reset_logging() -> None:
    """Close every mailbox log and the shared error log."""
    for logger in _files.mailboxes.values():
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
        for log_filter in logger.filters[:]:
            logger.removeFilter(log_filter)

    if _files.error_handler is not None:
        _files.error_handler.close()
        _files.error_handler = None

    _files.mailboxes.clear()
