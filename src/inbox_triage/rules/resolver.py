"""Decide whether a rule matches a message, fetching details only when needed."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from inbox_triage.ai.base import LlmConfig
from inbox_triage.errors import DataUnavailableError
from inbox_triage.mail.capabilities import MailCapabilities, ensure_success
from inbox_triage.mail.messages import MailContext
from inbox_triage.rules.conditions import (
    ConditionKind,
    check_address_groups,
    check_content_groups,
)
from inbox_triage.rules.models import Rule, RuleConditions

logger = logging.getLogger(__name__)

LlmJudge = Callable[[LlmConfig, str, str, str, str], Awaitable[bool]]

# Kinds that can usually be decided from notification/list header data
HEADER_KINDS = (
    ConditionKind.SENDER,
    ConditionKind.RECIPIENT,
    ConditionKind.CC,
    ConditionKind.SUBJECT,
)


class ResolverState(str, Enum):
    """Progress of a single rule's condition resolution."""

    PENDING_HEADER_CHECK = "pending_header_check"
    PENDING_FETCH = "pending_fetch"
    PENDING_BODY_CHECK = "pending_body_check"
    MATCHED = "matched"
    NOT_MATCHED = "not_matched"


@dataclass
class ResolveOutcome:
    """Result of resolving one rule against one message."""

    matched: bool
    context: MailContext
    state: ResolverState
    fetched: bool = False


def _field_value(context: MailContext, kind: ConditionKind):
    match kind:
        case ConditionKind.SUBJECT:
            return context.subject
        case ConditionKind.BODY:
            return context.body
        case ConditionKind.SENDER:
            return context.sender
        case ConditionKind.RECIPIENT:
            return context.recipient
        case ConditionKind.CC:
            return context.cc_recipients


def check_condition_kind(
    conditions: RuleConditions,
    kind: ConditionKind,
    context: MailContext,
) -> bool | None:
    """
    Evaluate one condition kind against what the context currently holds.

    Returns:
        True/False when the kind could be decided, or None when the data it
        needs has not been obtained yet.
    """
    value = _field_value(context, kind)
    if value is None:
        return None

    groups = conditions.groups(kind)
    if kind in (ConditionKind.SUBJECT, ConditionKind.BODY):
        return check_content_groups(groups, value)
    if kind == ConditionKind.SENDER:
        return check_address_groups(groups, value)
    return check_address_groups(groups, value, is_list=True)


async def fetch_details(context: MailContext, capabilities: MailCapabilities) -> bool:
    """
    Fetch the full message once and merge it into the context.

    A context whose details were already fetched is not fetched again.

    Returns:
        True when details are available on the context afterwards.
    """
    if context.details_fetched:
        return True

    try:
        response = await capabilities.fetch_full_message(context.mail_id)
        ensure_success(response, "fetch_full_message", context.mail_id)
    except Exception as e:
        logger.warning(f"Could not fetch details for {context.mail_id}: {e}")
        return False

    filled = context.merge(
        subject=response.subject,
        body=response.body,
        sender=response.sender,
        recipient=response.recipient,
        cc_recipients=response.cc_recipients,
    )
    context.details_fetched = True
    logger.debug(f"Fetched details for {context.mail_id}, filled {filled or 'nothing'}")
    return True


class ConditionResolver:
    """
    Resolve a normal-mode rule in phases.

    Header conditions are checked first with the data already at hand, so a
    rule that fails on its sender never costs a fetch. Kinds whose data is
    missing are deferred until after the single fetch, then the body is
    checked last.
    """

    def __init__(self, rule: Rule, context: MailContext, capabilities: MailCapabilities) -> None:
        self.rule = rule
        self.context = context
        self.capabilities = capabilities
        self.state = ResolverState.PENDING_HEADER_CHECK
        self.deferred: list[ConditionKind] = []
        self.fetched = False

    async def resolve(self) -> ResolveOutcome:
        while self.state not in (ResolverState.MATCHED, ResolverState.NOT_MATCHED):
            match self.state:
                case ResolverState.PENDING_HEADER_CHECK:
                    self.state = self._check_headers()
                case ResolverState.PENDING_FETCH:
                    self.state = await self._fetch()
                case ResolverState.PENDING_BODY_CHECK:
                    self.state = self._check_body()

        matched = self.state == ResolverState.MATCHED
        logger.debug(
            f"Rule '{self.rule.name}' {'matched' if matched else 'did not match'} "
            f"{self.context.describe()}"
        )
        return ResolveOutcome(
            matched=matched,
            context=self.context,
            state=self.state,
            fetched=self.fetched,
        )

    def _check_headers(self) -> ResolverState:
        conditions = self.rule.conditions
        for kind in HEADER_KINDS:
            if not conditions.is_active(kind):
                continue
            result = check_condition_kind(conditions, kind, self.context)
            if result is None:
                self.deferred.append(kind)
            elif not result:
                return ResolverState.NOT_MATCHED

        if self._needs_fetch():
            return ResolverState.PENDING_FETCH
        return ResolverState.PENDING_BODY_CHECK

    def _needs_fetch(self) -> bool:
        if self.deferred:
            return True
        return (
            self.rule.conditions.is_active(ConditionKind.BODY)
            and self.context.body is None
        )

    async def _fetch(self) -> ResolverState:
        if not self.context.details_fetched:
            if not await fetch_details(self.context, self.capabilities):
                return ResolverState.NOT_MATCHED
            self.fetched = True

        for kind in self.deferred:
            if not check_condition_kind(self.rule.conditions, kind, self.context):
                return ResolverState.NOT_MATCHED
        self.deferred.clear()
        return ResolverState.PENDING_BODY_CHECK

    def _check_body(self) -> ResolverState:
        conditions = self.rule.conditions
        if not conditions.is_active(ConditionKind.BODY):
            return ResolverState.MATCHED
        if self.context.body is None:
            return ResolverState.NOT_MATCHED
        if check_content_groups(conditions.body, self.context.body):
            return ResolverState.MATCHED
        return ResolverState.NOT_MATCHED


async def resolve_ai_condition(
    rule: Rule,
    context: MailContext,
    llm_config: LlmConfig | None,
    capabilities: MailCapabilities,
    judge: LlmJudge,
) -> bool:
    """
    Decide an AI-mode rule by asking the LLM judge.

    Args:
        rule: An AI-mode rule.
        context: Message context; a fetch fills subject and body if missing.
        llm_config: Provider config for this run, or None when AI is off.
        capabilities: Mail capabilities used for the fetch.
        judge: Awaitable judge, usually ``inbox_triage.ai.judge_with_llm``.

    Returns:
        True only if the judge answered MATCH. Missing configuration, missing
        content and judge failures are all non-matches.
    """
    if llm_config is None or not llm_config.is_supported:
        logger.info(f"AI rule '{rule.name}' skipped: no LLM provider or API key configured")
        return False
    if rule.ai_prompt is None or not rule.ai_prompt.user:
        logger.warning(f"AI rule '{rule.name}' has no user prompt")
        return False

    try:
        subject, body = await _ai_content(context, capabilities)
    except DataUnavailableError as e:
        logger.info(f"AI rule '{rule.name}' skipped: {e}")
        return False

    try:
        return await judge(llm_config, rule.ai_prompt.system, rule.ai_prompt.user, subject, body)
    except Exception as e:
        logger.error(f"LLM judge failed for rule '{rule.name}': {e}")
        return False


async def _ai_content(context: MailContext, capabilities: MailCapabilities) -> tuple[str, str]:
    if not context.subject or not context.body:
        await fetch_details(context, capabilities)

    if not context.subject:
        raise DataUnavailableError("subject", context.mail_id)
    if not context.body:
        raise DataUnavailableError("body", context.mail_id)
    return context.subject, context.body
