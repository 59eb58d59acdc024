"""Rule engine for running a message through an ordered rule list."""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from inbox_triage.ai import judge_with_llm
from inbox_triage.ai.base import LlmConfig
from inbox_triage.mail.actions import ActionExecutor, extract_unique_id
from inbox_triage.mail.capabilities import MailCapabilities
from inbox_triage.mail.messages import Address, MailContext
from inbox_triage.rules.models import ActionType, PlannedAction, PlannedActionType, Rule
from inbox_triage.rules.resolver import (
    ConditionResolver,
    LlmJudge,
    check_condition_kind,
    resolve_ai_condition,
)

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """What happened to one message during a rule pass."""

    mail_id: str
    matched_rules: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    context: MailContext | None = None


class RuleEngine:
    """Engine for processing one message against an ordered rule list."""

    def __init__(
        self,
        capabilities: MailCapabilities,
        judge: LlmJudge | None = None,
        executor: ActionExecutor | None = None,
    ) -> None:
        """
        Initialize the rule engine.

        Args:
            capabilities: Mail capabilities for fetches and actions.
            judge: LLM judge for AI-mode rules. Defaults to the configured
                provider dispatch.
            executor: Action executor. Built from ``capabilities`` if omitted.
        """
        self.capabilities = capabilities
        self.judge = judge or judge_with_llm
        self.executor = executor or ActionExecutor(capabilities)

    async def matches(
        self,
        rule: Rule,
        context: MailContext,
        llm_config: LlmConfig | None,
    ) -> bool:
        """Decide one rule against the context, dispatching on condition mode."""
        if rule.is_ai:
            return await resolve_ai_condition(
                rule, context, llm_config, self.capabilities, self.judge
            )
        outcome = await ConditionResolver(rule, context, self.capabilities).resolve()
        return outcome.matched

    async def run(
        self,
        rules: Iterable[Rule],
        context: MailContext,
        llm_config: LlmConfig | None = None,
    ) -> RunResult:
        """
        Process a message against all enabled rules in order.

        Args:
            rules: Rules in priority order.
            context: Message state; updated in place as rules fetch data and
                actions move the message.
            llm_config: LLM settings for this run, or None to disable AI rules.

        Returns:
            RunResult naming the matched rules and any per-rule errors.
        """
        result = RunResult(mail_id=context.mail_id, context=context)

        for rule in rules:
            if not rule.enabled:
                continue

            try:
                if not await self.matches(rule, context, llm_config):
                    continue

                logger.info(f"Rule '{rule.name}' matched {context.describe()}")
                result.matched_rules.append(rule.id)

                action_result = await self.executor.execute(rule, context.mail_id)
                if action_result.moved:
                    context.mail_id = action_result.new_mail_id
                    context.apply_metadata(action_result.metadata)
                if action_result.deleted:
                    context.deleted = True
                    break
            except Exception as e:
                logger.exception(f"Rule '{rule.name}' failed for {context.mail_id}")
                result.errors.append(f"{rule.name}: {e}")
                continue

            if rule.action.stop_processing:
                logger.debug(f"Rule '{rule.name}' stops processing")
                break

        result.mail_id = context.mail_id
        return result


async def run_rules_engine(
    mail_id: str,
    body: str | None,
    subject: str | None,
    sender: Address | None,
    recipient: list[Address] | None,
    cc_recipients: list[Address] | None,
    rules: Iterable[Rule],
    llm_config: LlmConfig | None,
    capabilities: MailCapabilities,
    judge: LlmJudge | None = None,
    executor: ActionExecutor | None = None,
) -> RunResult:
    """Build a context from whatever data is at hand and run the rules over it."""
    context = MailContext(
        mail_id=mail_id,
        subject=subject,
        body=body,
        sender=sender,
        recipient=recipient,
        cc_recipients=cc_recipients,
    )
    engine = RuleEngine(capabilities, judge=judge, executor=executor)
    return await engine.run(rules, context, llm_config)


def _rule_matches_offline(rule: Rule, context: MailContext) -> bool:
    for kind in rule.conditions.active_kinds:
        # Absent data cannot be fetched here, so it fails the rule
        if not check_condition_kind(rule.conditions, kind, context):
            return False
    return True


def plan_rule_actions(
    rule: Rule,
    mail_id: str,
    resolve_label: Callable[[str], str | None],
    resolve_folder: Callable[[str], str | None],
) -> list[PlannedAction]:
    """
    Translate a matched rule's action into planned actions.

    Unknown label names are dropped; an unknown folder drops the move.
    """
    action = rule.action
    planned: list[PlannedAction] = []

    if action.mark_as_read:
        planned.append(
            PlannedAction(type=PlannedActionType.MARK_READ, mail_id=mail_id, rule_id=rule.id)
        )

    label_ids = [lid for lid in (resolve_label(name) for name in action.label_names) if lid]
    if label_ids:
        planned.append(
            PlannedAction(
                type=PlannedActionType.APPLY_LABEL,
                mail_id=mail_id,
                rule_id=rule.id,
                label_ids=label_ids,
            )
        )
    elif action.label_names:
        logger.warning(f"Rule '{rule.name}': no label ids for {action.label_names}")

    if action.move_to_folder:
        folder_id = resolve_folder(action.move_to_folder)
        if folder_id:
            planned.append(
                PlannedAction(
                    type=PlannedActionType.MOVE_MAIL,
                    mail_id=mail_id,
                    rule_id=rule.id,
                    folder_id=folder_id,
                    original_unique_id=extract_unique_id(mail_id),
                )
            )
        else:
            logger.warning(f"Rule '{rule.name}': unknown folder '{action.move_to_folder}'")

    return planned


def determine_actions(
    mail_details: MailContext,
    rules: Iterable[Rule],
    tag_map: Mapping[str, str],
    folder_map: Mapping[str, str],
) -> list[PlannedAction]:
    """
    Decide actions for a message without calling any capability.

    Args:
        mail_details: Everything known about the message.
        rules: Rules in priority order.
        tag_map: Label name to label id.
        folder_map: Folder name to folder id.

    Returns:
        Planned actions of every matching rule up to the first one that
        stops processing. AI-mode rules are skipped since they need the
        judge, and delete actions end the list.
    """
    planned: list[PlannedAction] = []

    for rule in rules:
        if not rule.enabled or rule.is_ai:
            continue
        if not _rule_matches_offline(rule, mail_details):
            continue

        if rule.action.type == ActionType.DELETE:
            break

        planned.extend(
            plan_rule_actions(rule, mail_details.mail_id, tag_map.get, folder_map.get)
        )
        if rule.action.stop_processing:
            break

    return planned
