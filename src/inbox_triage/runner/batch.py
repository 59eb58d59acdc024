"""Run selected rules over a whole folder with coalesced capability calls."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from inbox_triage.ai import judge_with_llm
from inbox_triage.ai.base import LlmConfig
from inbox_triage.logging import log_event
from inbox_triage.mail.actions import DEFAULT_FOLDER_ID, DEFAULT_VERIFY_MAX_RESULTS
from inbox_triage.mail.capabilities import MailCapabilities, ensure_success
from inbox_triage.mail.messages import MailContext, MailHeader
from inbox_triage.rules.engine import plan_rule_actions
from inbox_triage.rules.models import ActionType, PlannedAction, PlannedActionType, Rule
from inbox_triage.rules.resolver import ConditionResolver, LlmJudge, resolve_ai_condition
from inbox_triage.rules.ruleset import RuleSet
from inbox_triage.runner.models import BatchRunResult

if TYPE_CHECKING:
    from inbox_triage.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
DEFAULT_PROCESS_LIMIT = 1000


@dataclass
class _LabelOperation:
    label_ids: list[str]
    mail_ids: dict[str, None] = field(default_factory=dict)


@dataclass
class _ChunkActions:
    """Actions collected for one chunk, grouped so they can be sent together."""

    mark_read: dict[str, None] = field(default_factory=dict)
    labels: dict[str, _LabelOperation] = field(default_factory=dict)
    moves: list[PlannedAction] = field(default_factory=list)

    def add(self, action: PlannedAction) -> None:
        match action.type:
            case PlannedActionType.MARK_READ:
                self.mark_read[action.mail_id] = None
            case PlannedActionType.APPLY_LABEL:
                key = ",".join(sorted(action.label_ids))
                operation = self.labels.setdefault(key, _LabelOperation(list(action.label_ids)))
                operation.mail_ids[action.mail_id] = None
            case PlannedActionType.MOVE_MAIL:
                self.moves.append(action)

    def unique_moves(self) -> list[PlannedAction]:
        """First planned move per mail id."""
        seen: set[str] = set()
        moves = []
        for move in self.moves:
            if move.mail_id not in seen:
                seen.add(move.mail_id)
                moves.append(move)
        return moves


class BatchRuleRunner:
    """
    Apply rules to every message of a folder.

    Messages are planned one at a time (fetching details only for rules
    that need them), then each chunk's actions are sent in as few calls as
    possible: one label call per distinct label set, one mark-read call, and
    one verified move per message.
    """

    def __init__(
        self,
        capabilities: MailCapabilities,
        judge: LlmJudge | None = None,
        folder_id: str = DEFAULT_FOLDER_ID,
        batch_size: int = DEFAULT_BATCH_SIZE,
        process_limit: int = DEFAULT_PROCESS_LIMIT,
        verify_max_results: int = DEFAULT_VERIFY_MAX_RESULTS,
        mailbox: str | None = None,
    ) -> None:
        self.capabilities = capabilities
        self.judge = judge or judge_with_llm
        self.folder_id = folder_id
        self.batch_size = max(1, batch_size)
        self.process_limit = process_limit
        self.verify_max_results = verify_max_results
        self.mailbox = mailbox

    @classmethod
    def from_settings(
        cls,
        capabilities: MailCapabilities,
        settings: "Settings",
        judge: LlmJudge | None = None,
        mailbox: str | None = None,
    ) -> "BatchRuleRunner":
        """Build a runner over the inbox folder with sizes and limits from settings."""
        return cls(
            capabilities,
            judge=judge,
            folder_id=settings.inbox_folder_id,
            batch_size=settings.batch_size,
            process_limit=settings.mail_process_limit,
            verify_max_results=settings.verify_max_results,
            mailbox=mailbox,
        )

    async def run(
        self,
        rules: RuleSet | Iterable[Rule],
        llm_config: LlmConfig | None = None,
        rule_ids: Iterable[str] | None = None,
    ) -> BatchRunResult:
        """
        Run rules over the folder.

        Args:
            rules: All stored rules in priority order.
            llm_config: LLM settings, or None to make AI rules non-matching.
            rule_ids: Restrict the run to these rule ids (enabled ones only).

        Returns:
            BatchRunResult with counts. Failures are reported in the result,
            never raised.
        """
        result = BatchRunResult(started_at=datetime.now())
        ruleset = rules if isinstance(rules, RuleSet) else RuleSet(rules)

        try:
            await self._run(ruleset, llm_config, rule_ids, result)
        except Exception as e:
            logger.exception("Batch rule run failed")
            result.success = False
            result.message = str(e)
            result.errors.append(str(e))

        result.completed_at = datetime.now()
        self._record(result)
        return result

    async def _run(
        self,
        ruleset: RuleSet,
        llm_config: LlmConfig | None,
        rule_ids: Iterable[str] | None,
        result: BatchRunResult,
    ) -> None:
        selected_ids = list(rule_ids or [])
        if selected_ids:
            rules = ruleset.select(selected_ids)
            if not rules:
                result.message = "None of the selected rules exist or are enabled; nothing processed."
                logger.info(result.message)
                return
        else:
            rules = ruleset.enabled()
            if not rules:
                result.message = "No enabled rules to run."
                logger.info(result.message)
                return

        logger.info(f"Running {len(rules)} rule(s) over folder {self.folder_id}")

        listing = await self.capabilities.query_mail_list([self.folder_id], self.process_limit, 0)
        ensure_success(listing, "query_mail_list")
        headers = listing.mails
        result.total_in_scope = listing.total_count or len(headers)

        if not headers:
            result.message = "No messages in the folder to process."
            logger.info(result.message)
            return

        label_map = self.capabilities.label_map()
        folder_map = self.capabilities.folder_map()

        for start in range(0, len(headers), self.batch_size):
            chunk = headers[start : start + self.batch_size]
            logger.info(
                f"Processing chunk {start // self.batch_size + 1} ({len(chunk)} messages)"
            )
            actions = _ChunkActions()
            for header in chunk:
                result.mails_processed += 1
                planned = await self.plan_message(header, rules, llm_config, label_map, folder_map)
                if planned:
                    result.mails_matched += 1
                for action in planned:
                    actions.add(action)
            await self._execute_chunk(actions, result)

        result.message = (
            f"Processed {result.mails_processed} message(s): "
            f"{result.counts.labeled} labeled, {result.counts.marked_read} marked read, "
            f"{result.counts.moved} moved."
        )
        logger.info(result.message)

    async def plan_message(
        self,
        header: MailHeader,
        rules: Iterable[Rule],
        llm_config: LlmConfig | None,
        label_map: Mapping[str, str],
        folder_map: Mapping[str, str],
    ) -> list[PlannedAction]:
        """Decide actions for one listed message, fetching details on demand."""
        context = MailContext.from_header(header)
        planned: list[PlannedAction] = []

        for rule in rules:
            try:
                if rule.is_ai:
                    matched = await resolve_ai_condition(
                        rule, context, llm_config, self.capabilities, self.judge
                    )
                else:
                    outcome = await ConditionResolver(rule, context, self.capabilities).resolve()
                    matched = outcome.matched
            except Exception as e:
                logger.error(f"Rule '{rule.name}' failed for {header.mail_id}: {e}")
                continue

            if not matched:
                continue

            logger.debug(f"Rule '{rule.name}' matched {context.describe()}")
            if rule.action.type == ActionType.DELETE:
                break
            planned.extend(
                plan_rule_actions(rule, header.mail_id, label_map.get, folder_map.get)
            )
            if rule.action.stop_processing:
                break

        return planned

    async def _execute_chunk(self, actions: _ChunkActions, result: BatchRunResult) -> None:
        # Labels and read flags first: a move invalidates the ids they use
        for operation in actions.labels.values():
            mail_ids = list(operation.mail_ids)
            try:
                response = await self.capabilities.apply_labels(mail_ids, operation.label_ids)
                ensure_success(response, "apply_labels")
            except Exception as e:
                logger.warning(f"Batch label {operation.label_ids} failed: {e}")
                result.errors.append(str(e))
                continue
            result.counts.labeled += len(mail_ids)

        if actions.mark_read:
            mail_ids = list(actions.mark_read)
            try:
                response = await self.capabilities.mark_read(mail_ids, True)
                ensure_success(response, "mark_read")
            except Exception as e:
                logger.warning(f"Batch mark-read failed: {e}")
                result.errors.append(str(e))
            else:
                result.counts.marked_read += len(mail_ids)

        for move in actions.unique_moves():
            if await self._move_and_verify(move, result):
                result.counts.moved += 1

    async def _move_and_verify(self, move: PlannedAction, result: BatchRunResult) -> bool:
        try:
            response = await self.capabilities.move_to_folder(move.mail_id, move.folder_id)
            ensure_success(response, "move_to_folder", move.mail_id)
            verify = await self.capabilities.verify_move(
                move.original_unique_id, move.folder_id, self.verify_max_results
            )
            ensure_success(verify, "verify_move", move.mail_id)
        except Exception as e:
            logger.warning(f"Move of {move.mail_id} failed: {e}")
            result.errors.append(str(e))
            return False

        if not verify.found:
            logger.warning(f"Moved {move.mail_id} but could not find it in {move.folder_id}")
            return False

        logger.info(f"Moved {move.mail_id} to {move.folder_id} (new id {verify.new_mail_id})")
        return True

    def _record(self, result: BatchRunResult) -> None:
        """Write the run summary to the mailbox's own log."""
        if not self.mailbox:
            return
        counts = result.counts
        log_event(
            self.mailbox,
            "batch_run",
            level=logging.INFO if result.success else logging.ERROR,
            folder=self.folder_id,
            processed=result.mails_processed,
            in_scope=result.total_in_scope,
            matched=result.mails_matched,
            actions=counts.total,
            labeled=counts.labeled,
            marked_read=counts.marked_read,
            moved=counts.moved,
            errors=len(result.errors),
            duration=f"{result.duration_seconds:.2f}s",
            message=result.message,
        )
        for error in result.errors:
            log_event(self.mailbox, "batch_error", level=logging.WARNING, error=error)
