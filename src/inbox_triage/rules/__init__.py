"""Rule models, condition evaluation and the rule engine."""

from inbox_triage.rules.conditions import (
    ConditionGroup,
    ConditionKind,
    GroupType,
    KeywordItem,
    KeywordLogic,
    check_address_groups,
    check_content_groups,
    evaluate_keyword_condition,
    evaluate_keywords,
)
from inbox_triage.rules.engine import RuleEngine, RunResult, determine_actions, run_rules_engine
from inbox_triage.rules.models import (
    AiPrompt,
    ConditionMode,
    PlannedAction,
    PlannedActionType,
    Rule,
    RuleAction,
    RuleConditions,
)
from inbox_triage.rules.resolver import ConditionResolver, resolve_ai_condition
from inbox_triage.rules.ruleset import RuleSet

__all__ = [
    "AiPrompt",
    "ConditionGroup",
    "ConditionKind",
    "ConditionMode",
    "ConditionResolver",
    "GroupType",
    "KeywordItem",
    "KeywordLogic",
    "PlannedAction",
    "PlannedActionType",
    "Rule",
    "RuleAction",
    "RuleConditions",
    "RuleEngine",
    "RuleSet",
    "RunResult",
    "check_address_groups",
    "check_content_groups",
    "determine_actions",
    "evaluate_keyword_condition",
    "evaluate_keywords",
    "resolve_ai_condition",
    "run_rules_engine",
]
