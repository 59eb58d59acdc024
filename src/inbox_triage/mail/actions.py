"""Rule actions: label, mark read and move, with post-move id recovery."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from inbox_triage.errors import CapabilityError, MoveVerificationError, UnresolvableNameError
from inbox_triage.mail.capabilities import MailCapabilities, ensure_success
from inbox_triage.mail.messages import MailMetadata

if TYPE_CHECKING:
    from inbox_triage.rules.models import Rule

logger = logging.getLogger(__name__)

# Folder searched when a mail id carries no folder prefix
DEFAULT_FOLDER_ID = "2"

# How many of the newest destination messages are searched after a move
DEFAULT_VERIFY_MAX_RESULTS = 5


def extract_unique_id(mail_id: str) -> str:
    """
    Return the part of a mail id that survives a folder move.

    Ids look like ``"2_0:DzzzzyLmbnF$---.d0sJjml"``; the part after the first
    ``:`` is stable. An id without ``:`` is returned whole.
    """
    _, sep, unique = mail_id.partition(":")
    return unique if sep else mail_id


def extract_folder_id(mail_id: str) -> str:
    """Return the folder prefix of a mail id (the part before the first ``_``)."""
    prefix, sep, _ = mail_id.partition("_")
    return prefix if sep and prefix else DEFAULT_FOLDER_ID


@dataclass
class ActionResult:
    """Outcome of executing one rule's actions against one message."""

    new_mail_id: str
    metadata: MailMetadata | None = None
    deleted: bool = False
    applied: list[str] = field(default_factory=list)

    @property
    def moved(self) -> bool:
        return "move" in self.applied


class ActionExecutor:
    """
    Apply a matched rule's actions through the mail capabilities.

    Order is fixed: labels, then mark-read, then move. The move goes last
    because it invalidates the mail id; everything before it can use the id
    it was given.
    """

    def __init__(
        self,
        capabilities: MailCapabilities,
        verify_max_results: int = DEFAULT_VERIFY_MAX_RESULTS,
    ) -> None:
        self.capabilities = capabilities
        self.verify_max_results = verify_max_results

    async def execute(self, rule: "Rule", mail_id: str) -> ActionResult:
        """
        Execute a rule's actions for one message.

        Args:
            rule: The matched rule.
            mail_id: Current id of the message.

        Returns:
            ActionResult with the (possibly new) mail id and any metadata
            refreshed by a move. Failures of single steps are logged and do
            not stop the remaining steps.
        """
        action = rule.action
        result = ActionResult(new_mail_id=mail_id)

        if action.is_delete:
            # No delete call exists in the capability layer; the message is
            # only withdrawn from further rule processing.
            logger.info(f"Rule '{rule.name}': delete requested for {mail_id}")
            result.deleted = True
            result.applied.append("delete")
            return result

        if action.label_names and await self._apply_labels(rule, mail_id, action.label_names):
            result.applied.append("label")

        if action.mark_as_read and await self._mark_read(mail_id):
            result.applied.append("mark_read")

        if action.move_to_folder:
            moved_to = await self._move(mail_id, action.move_to_folder)
            if moved_to is not None:
                result.applied.append("move")
                new_id, metadata = moved_to
                result.new_mail_id = new_id
                result.metadata = metadata

        logger.debug(f"Rule '{rule.name}' actions done, mail id now {result.new_mail_id}")
        return result

    def resolve_label_ids(self, names: list[str]) -> list[str]:
        """Resolve label names to ids, skipping names that are unknown."""
        label_ids = []
        for name in names:
            try:
                label_ids.append(self._resolve("label", name))
            except UnresolvableNameError as e:
                logger.warning(f"{e}, skipping")
        return label_ids

    def _resolve(self, kind: str, name: str) -> str:
        if kind == "label":
            resolved = self.capabilities.resolve_label_id(name)
        else:
            resolved = self.capabilities.resolve_folder_id(name)
        if not resolved:
            raise UnresolvableNameError(kind, name)
        return resolved

    async def _apply_labels(self, rule: "Rule", mail_id: str, names: list[str]) -> bool:
        label_ids = self.resolve_label_ids(names)
        if not label_ids:
            logger.warning(f"Rule '{rule.name}': none of the labels {names} exist")
            return False

        try:
            response = await self.capabilities.apply_labels([mail_id], label_ids)
            ensure_success(response, "apply_labels", mail_id)
        except Exception as e:
            logger.error(f"Failed to label {mail_id}: {e}")
            return False

        logger.info(f"Labeled {mail_id} with {', '.join(label_ids)}")
        return True

    async def _mark_read(self, mail_id: str) -> bool:
        try:
            response = await self.capabilities.mark_read([mail_id], True)
            ensure_success(response, "mark_read", mail_id)
        except Exception as e:
            logger.error(f"Failed to mark {mail_id} as read: {e}")
            return False

        logger.info(f"Marked {mail_id} as read")
        return True

    async def _move(self, mail_id: str, folder_name: str) -> tuple[str, MailMetadata | None] | None:
        """
        Move a message and recover its new id.

        Returns:
            ``(mail_id, metadata)`` after a successful move, where the id is
            the verified new id or the old id if verification failed. None if
            the move itself did not happen.
        """
        try:
            folder_id = self._resolve("folder", folder_name)
        except UnresolvableNameError as e:
            logger.warning(f"{e}, move skipped")
            return None

        unique_id = extract_unique_id(mail_id)
        try:
            response = await self.capabilities.move_to_folder(mail_id, folder_id)
            ensure_success(response, "move_to_folder", mail_id)
        except Exception as e:
            logger.error(f"Failed to move {mail_id} to '{folder_name}': {e}")
            return None

        logger.info(f"Moved {mail_id} to '{folder_name}' ({folder_id})")

        try:
            new_id, metadata = await self._verify_move(unique_id, folder_id)
        except (CapabilityError, MoveVerificationError) as e:
            logger.warning(f"Move verification failed, keeping {mail_id}: {e}")
            return mail_id, None
        except Exception as e:
            logger.error(f"Move verification error for {mail_id}: {e}")
            return mail_id, None

        logger.info(f"Mail id updated after move: {mail_id} -> {new_id}")
        return new_id, metadata

    async def _verify_move(self, unique_id: str, folder_id: str) -> tuple[str, MailMetadata | None]:
        response = await self.capabilities.verify_move(
            unique_id, folder_id, self.verify_max_results
        )
        ensure_success(response, "verify_move")
        if not response.found or not response.new_mail_id:
            raise MoveVerificationError(unique_id, folder_id)
        return response.new_mail_id, response.metadata
