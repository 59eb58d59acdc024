"""Condition groups and the evaluators that match them against mail data."""

from collections.abc import Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from inbox_triage.mail.messages import Address


class ConditionKind(str, Enum):
    """The message fields a rule can put conditions on."""

    SUBJECT = "subject"
    BODY = "body"
    SENDER = "sender"
    RECIPIENT = "recipient"
    CC = "cc"


class GroupType(str, Enum):
    """Whether a group's raw match must be present or absent."""

    INCLUDE = "include"
    EXCLUDE = "exclude"


class KeywordLogic(str, Enum):
    """How a keyword joins the keyword that follows it."""

    AND = "and"
    OR = "or"


class KeywordItem(BaseModel):
    """One keyword of a subject/body expression."""

    keyword: str
    logic: KeywordLogic | None = None

    @model_validator(mode="before")
    @classmethod
    def _lift_plain_string(cls, data: Any) -> Any:
        # Oldest stored rules kept keywords as bare strings joined by OR.
        if isinstance(data, str):
            return {"keyword": data, "logic": KeywordLogic.OR}
        return data


class ConditionGroup(BaseModel):
    """
    One include/exclude clause of a condition kind.

    Subject and body groups carry ``keywords``; sender, recipient and cc
    groups carry an ``address`` substring.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enabled: bool = Field(default=True, description="Disabled groups never block a match")
    type: GroupType = Field(default=GroupType.INCLUDE, description="include or exclude")
    case_sensitive: bool = Field(default=False, description="Case-sensitive matching")
    keywords: list[KeywordItem] = Field(default_factory=list)
    address: str = Field(default="", description="Substring of email or display name")


def _as_groups(groups: Any) -> list[ConditionGroup]:
    """Normalize the legacy single-object shape into a list of groups."""
    if groups is None:
        return []
    if isinstance(groups, (ConditionGroup, dict)):
        groups = [groups]
    return [g if isinstance(g, ConditionGroup) else ConditionGroup.model_validate(g) for g in groups]


def _fold(value: str, case_sensitive: bool) -> str:
    return value if case_sensitive else value.lower()


def evaluate_keywords(
    items: Sequence[KeywordItem | str] | None,
    text: str,
    case_sensitive: bool = False,
) -> bool:
    """
    Evaluate an ordered keyword list as a boolean expression over ``text``.

    AND binds tighter than OR. The logic of item *i* joins it to item *i+1*;
    a missing logic counts as OR. Each maximal AND-run is true when all of
    its keywords are substrings of the text, and the expression is true when
    any run is.

    Args:
        items: Keyword items (bare strings are accepted).
        text: Text to search.
        case_sensitive: Compare without case folding when True.

    Returns:
        True if the expression matches. An empty list always matches.
    """
    if not items:
        return True

    keywords = [KeywordItem.model_validate(item) if isinstance(item, str) else item for item in items]
    haystack = _fold(text, case_sensitive)

    if len(keywords) == 1:
        return _fold(keywords[0].keyword, case_sensitive) in haystack

    and_runs: list[list[str]] = []
    current: list[str] = []
    for index, item in enumerate(keywords):
        current.append(_fold(item.keyword, case_sensitive))
        if item.logic != KeywordLogic.AND or index == len(keywords) - 1:
            and_runs.append(current)
            current = []

    return any(all(keyword in haystack for keyword in run) for run in and_runs)


def evaluate_keyword_condition(
    items: Sequence[KeywordItem | str] | None,
    text: str,
    case_sensitive: bool = False,
    group_type: GroupType = GroupType.INCLUDE,
) -> bool:
    """Evaluate a keyword expression and apply include/exclude."""
    result = evaluate_keywords(items, text, case_sensitive)
    return result if group_type == GroupType.INCLUDE else not result


def _address_matches(address: Address, needle: str, case_sensitive: bool) -> bool:
    email = _fold(address.email or "", case_sensitive)
    display_name = _fold(address.display_name or "", case_sensitive)
    return needle in email or needle in display_name


def check_address_groups(
    groups: Sequence[ConditionGroup] | ConditionGroup | dict | None,
    content: Address | Sequence[Address] | None,
    is_list: bool = False,
) -> bool:
    """
    Match sender/recipient/cc groups against an address or address list.

    Every enabled group must pass. A list target matches a group when any of
    its addresses contains the group's substring in its email or display
    name. Missing content gives a raw match of False for the group, which an
    exclude group then turns into a pass.

    Args:
        groups: Condition groups, or a legacy single condition.
        content: One Address (sender) or a list of them (recipient/cc).
        is_list: True when ``content`` is a recipient list.

    Returns:
        True when all enabled groups pass (vacuously when none are enabled).
    """
    for group in _as_groups(groups):
        if not group.enabled:
            continue

        needle = _fold(group.address, group.case_sensitive)
        if content is None:
            raw_match = False
        elif is_list:
            raw_match = any(
                _address_matches(addr, needle, group.case_sensitive) for addr in content
            )
        else:
            raw_match = _address_matches(content, needle, group.case_sensitive)

        passed = raw_match if group.type == GroupType.INCLUDE else not raw_match
        if not passed:
            return False

    return True


def check_content_groups(
    groups: Sequence[ConditionGroup] | ConditionGroup | dict | None,
    content: str | None,
) -> bool:
    """
    Match subject/body groups against text.

    When ``content`` is None (never obtained), an include group with
    keywords fails and an exclude group passes. Otherwise each enabled group
    is evaluated as a keyword expression and all must pass.
    """
    for group in _as_groups(groups):
        if not group.enabled:
            continue

        if content is None:
            passed = not group.keywords or group.type == GroupType.EXCLUDE
        else:
            passed = evaluate_keyword_condition(
                group.keywords, content, group.case_sensitive, group.type
            )
        if not passed:
            return False

    return True
