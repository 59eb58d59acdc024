"""Entry points for new-mail notifications from the webmail client."""

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from inbox_triage.logging import log_event
from inbox_triage.mail.actions import DEFAULT_VERIFY_MAX_RESULTS, ActionExecutor, extract_folder_id
from inbox_triage.mail.capabilities import MailCapabilities, ensure_success
from inbox_triage.mail.messages import MailHeader, parse_address, parse_address_list
from inbox_triage.rules.engine import RunResult, run_rules_engine
from inbox_triage.rules.models import Rule
from inbox_triage.rules.resolver import LlmJudge
from inbox_triage.rules.ruleset import RuleSet

if TYPE_CHECKING:
    from inbox_triage.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_QUERY_LENGTH = 10
NO_SUBJECT = "(no subject)"


class NewMailWatcher:
    """
    Run the rule engine for each new-mail notification.

    Notifications arrive in three shapes: with subject and sender, with only
    the mail id, or with the full content already fetched. Each shape is
    turned into a rule-engine run with whatever data it carries; anything
    missing is fetched by the engine when a rule needs it.
    """

    def __init__(
        self,
        capabilities: MailCapabilities,
        rules: RuleSet | Iterable[Rule],
        settings: "Settings | None" = None,
        judge: LlmJudge | None = None,
        mailbox: str | None = None,
    ) -> None:
        """
        Initialize the watcher.

        Args:
            capabilities: Mail capabilities of the open webmail session.
            rules: Current rule snapshot. Replace with ``update_rules``.
            settings: Settings supplying the LLM config and query length.
                Without settings AI-mode rules never match.
            judge: LLM judge override, mainly for tests.
            mailbox: Mailbox name; when set, each pass is recorded in that
                mailbox's log.
        """
        self.capabilities = capabilities
        self.rules = rules if isinstance(rules, RuleSet) else RuleSet(rules)
        self.settings = settings
        self.judge = judge
        self.mailbox = mailbox
        verify_max_results = (
            settings.verify_max_results if settings is not None else DEFAULT_VERIFY_MAX_RESULTS
        )
        self.executor = ActionExecutor(capabilities, verify_max_results=verify_max_results)

    @property
    def query_length(self) -> int:
        if self.settings is None:
            return DEFAULT_QUERY_LENGTH
        return self.settings.notification_query_length

    def update_rules(self, rules: RuleSet) -> None:
        """Swap in a new snapshot; passes already running keep the old one."""
        self.rules = rules

    async def _run(self, mail_id: str, **fields: Any) -> RunResult:
        llm_config = self.settings.llm_config() if self.settings else None
        result = await run_rules_engine(
            mail_id,
            fields.get("body"),
            fields.get("subject"),
            fields.get("sender"),
            fields.get("recipient"),
            fields.get("cc_recipients"),
            self.rules,
            llm_config,
            self.capabilities,
            judge=self.judge,
            executor=self.executor,
        )
        if self.mailbox:
            log_event(
                self.mailbox,
                "new_mail",
                level=logging.WARNING if result.errors else logging.INFO,
                mail_id=result.mail_id,
                matched=",".join(result.matched_rules),
                errors=len(result.errors),
            )
        return result

    async def on_new_mail(self, mail_id: str, subject: str | None, sender: Any) -> RunResult:
        """Handle a notification carrying subject and sender."""
        logger.info(f"New mail {mail_id}: {subject!r}")
        return await self._run(mail_id, subject=subject, sender=parse_address(sender))

    async def on_new_mail_id(self, mail_id: str) -> RunResult | None:
        """
        Handle a notification that carries only the mail id.

        The newest headers of the message's folder are listed to recover its
        subject and sender.

        Returns:
            The run result, or None when the header could not be found.
        """
        folder_id = extract_folder_id(mail_id)
        logger.info(f"New mail id {mail_id}, looking it up in folder {folder_id}")

        try:
            listing = await self.capabilities.query_mail_list([folder_id], self.query_length, 0)
            ensure_success(listing, "query_mail_list", mail_id)
        except Exception as e:
            logger.error(f"Could not list folder {folder_id}: {e}")
            return None

        header = self._find_header(listing.mails, mail_id)
        if header is None:
            logger.warning(f"Mail {mail_id} not among the latest {self.query_length} headers")
            return None

        return await self._run(
            mail_id, subject=header.subject or NO_SUBJECT, sender=header.sender
        )

    async def on_mail_content(
        self,
        mail_id: str,
        body: str | None,
        subject: str | None,
        sender: Any,
        recipient: list[Any] | None = None,
        cc_recipients: list[Any] | None = None,
    ) -> RunResult:
        """Handle a notification that already carries the full content."""
        logger.info(f"Mail content for {mail_id} received")
        return await self._run(
            mail_id,
            body=body,
            subject=subject,
            sender=parse_address(sender),
            recipient=parse_address_list(recipient),
            cc_recipients=parse_address_list(cc_recipients),
        )

    @staticmethod
    def _find_header(headers: list[MailHeader], mail_id: str) -> MailHeader | None:
        for header in headers:
            if header.mail_id == mail_id:
                return header
        return None
