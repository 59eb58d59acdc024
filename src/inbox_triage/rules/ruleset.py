"""Immutable rule-list snapshots and the edits users make to them."""

import logging
from collections.abc import Iterable, Iterator
from typing import Any

from pydantic import ValidationError

from inbox_triage.errors import RuleValidationError
from inbox_triage.rules.models import Rule

logger = logging.getLogger(__name__)


class RuleSet:
    """
    An ordered, immutable list of rules.

    Order is priority: the first rule is evaluated first. Every edit returns
    a new RuleSet, so a pass that already holds a snapshot never sees rules
    change underneath it.
    """

    __slots__ = ("_rules",)

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: tuple[Rule, ...] = tuple(rules)

    @classmethod
    def from_dicts(cls, data: Iterable[dict[str, Any]] | None) -> "RuleSet":
        """
        Parse stored rule dicts (camelCase or snake_case keys).

        Raises:
            RuleValidationError: If any rule fails validation.
        """
        rules = []
        for index, item in enumerate(data or []):
            try:
                rules.append(Rule.model_validate(item))
            except ValidationError as e:
                name = item.get("name") if isinstance(item, dict) else None
                raise RuleValidationError(
                    f"Invalid rule #{index + 1} ({name or 'unnamed'}): {e}"
                ) from e
        return cls(rules)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [rule.model_dump(mode="json", by_alias=True, exclude_none=True) for rule in self._rules]

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleSet):
            return NotImplemented
        return self._rules == other._rules

    def __repr__(self) -> str:
        return f"RuleSet({[rule.name for rule in self._rules]!r})"

    def get(self, rule_id: str) -> Rule | None:
        for rule in self._rules:
            if rule.id == rule_id:
                return rule
        return None

    def index(self, rule_id: str) -> int:
        for position, rule in enumerate(self._rules):
            if rule.id == rule_id:
                return position
        raise KeyError(rule_id)

    def enabled(self) -> "RuleSet":
        return RuleSet(rule for rule in self._rules if rule.enabled)

    def select(self, rule_ids: Iterable[str]) -> "RuleSet":
        """Enabled rules whose ids are in ``rule_ids``, in stored order."""
        wanted = set(rule_ids)
        return RuleSet(rule for rule in self._rules if rule.enabled and rule.id in wanted)

    def add_or_update(self, rule: Rule) -> "RuleSet":
        """Replace the rule with the same id in place, or append a new one."""
        rules = list(self._rules)
        for position, existing in enumerate(rules):
            if existing.id == rule.id:
                rules[position] = rule
                logger.debug(f"Updated rule '{rule.name}' ({rule.id})")
                return RuleSet(rules)
        rules.append(rule)
        logger.debug(f"Added rule '{rule.name}' ({rule.id})")
        return RuleSet(rules)

    def delete(self, rule_id: str) -> "RuleSet":
        remaining = [rule for rule in self._rules if rule.id != rule_id]
        if len(remaining) == len(self._rules):
            raise KeyError(rule_id)
        return RuleSet(remaining)

    def toggle(self, rule_id: str, enabled: bool | None = None) -> "RuleSet":
        """Flip a rule's enabled flag, or set it when ``enabled`` is given."""
        position = self.index(rule_id)
        rule = self._rules[position]
        new_state = (not rule.enabled) if enabled is None else enabled
        rules = list(self._rules)
        rules[position] = rule.model_copy(update={"enabled": new_state})
        return RuleSet(rules)

    def move_up(self, rule_id: str) -> "RuleSet":
        return self._swap(self.index(rule_id), -1)

    def move_down(self, rule_id: str) -> "RuleSet":
        return self._swap(self.index(rule_id), 1)

    def _swap(self, position: int, offset: int) -> "RuleSet":
        target = position + offset
        if not 0 <= target < len(self._rules):
            return self
        rules = list(self._rules)
        rules[position], rules[target] = rules[target], rules[position]
        return RuleSet(rules)
