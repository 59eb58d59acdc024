"""Tests for keyword expressions and condition groups."""

import pytest

from inbox_triage.mail.messages import Address
from inbox_triage.rules.conditions import (
    ConditionGroup,
    GroupType,
    KeywordItem,
    KeywordLogic,
    check_address_groups,
    check_content_groups,
    evaluate_keyword_condition,
    evaluate_keywords,
)


def kw(keyword: str, logic: str | None = None) -> KeywordItem:
    return KeywordItem(keyword=keyword, logic=KeywordLogic(logic) if logic else None)


class TestEvaluateKeywords:
    """Tests for keyword AND/OR expressions."""

    def test_empty_list_matches(self) -> None:
        """An empty keyword list is a vacuous match."""
        assert evaluate_keywords([], "anything") is True
        assert evaluate_keywords(None, "") is True

    def test_single_keyword_is_substring_test(self) -> None:
        """A single keyword matches as a substring."""
        assert evaluate_keywords([kw("voice")], "Your invoice") is True
        assert evaluate_keywords([kw("receipt")], "Your invoice") is False

    @pytest.mark.parametrize(
        "text,expected",
        [("alpha only", True), ("gamma here", True), ("nothing", False)],
    )
    def test_all_or_matches_any(self, text: str, expected: bool) -> None:
        """With OR between every keyword, any one keyword suffices."""
        items = [kw("alpha", "or"), kw("beta", "or"), kw("gamma", "or")]
        assert evaluate_keywords(items, text) is expected

    @pytest.mark.parametrize(
        "text,expected",
        [("alpha beta gamma", True), ("alpha gamma", False), ("", False)],
    )
    def test_all_and_requires_every_keyword(self, text: str, expected: bool) -> None:
        """With AND between every keyword, all must be present."""
        items = [kw("alpha", "and"), kw("beta", "and"), kw("gamma", "and")]
        assert evaluate_keywords(items, text) is expected

    def test_and_binds_tighter_than_or(self) -> None:
        """[A and B or C] matches text holding only C."""
        items = [kw("A", "and"), kw("B", "or"), kw("C", "or")]
        assert evaluate_keywords(items, "C", case_sensitive=True) is True
        assert evaluate_keywords(items, "A", case_sensitive=True) is False
        assert evaluate_keywords(items, "A B", case_sensitive=True) is True

    def test_missing_logic_counts_as_or(self) -> None:
        """A keyword without logic ends its AND-run."""
        items = [kw("alpha"), kw("beta")]
        assert evaluate_keywords(items, "beta") is True

    def test_case_sensitivity(self) -> None:
        """Case-sensitive matching compares exact case."""
        items = [kw("Test")]
        assert evaluate_keywords(items, "test message", case_sensitive=True) is False
        assert evaluate_keywords(items, "Test message", case_sensitive=True) is True
        assert evaluate_keywords(items, "test message") is True

    def test_bare_strings_are_or_keywords(self) -> None:
        """Oldest stored rules kept keywords as plain strings."""
        assert evaluate_keywords(["foo", "bar"], "a bar") is True
        assert KeywordItem.model_validate("foo").logic == KeywordLogic.OR

    @pytest.mark.parametrize("text", ["invoice attached", "hello", ""])
    def test_exclude_negates_include(self, text: str) -> None:
        """Exclude is always the negation of include."""
        items = [kw("invoice", "and"), kw("attached")]
        include = evaluate_keyword_condition(items, text, False, GroupType.INCLUDE)
        exclude = evaluate_keyword_condition(items, text, False, GroupType.EXCLUDE)
        assert include is not exclude


class TestAddressGroups:
    """Tests for sender/recipient/cc matching."""

    def test_no_groups_match(self, alice: Address) -> None:
        """No groups, or only disabled ones, always pass."""
        assert check_address_groups([], alice) is True
        disabled = ConditionGroup(enabled=False, address="nobody")
        assert check_address_groups([disabled], alice) is True

    def test_matches_email_or_display_name(self, alice: Address) -> None:
        """The substring may hit the email or the display name."""
        assert check_address_groups([ConditionGroup(address="example.com")], alice) is True
        assert check_address_groups([ConditionGroup(address="smith")], alice) is True
        assert check_address_groups([ConditionGroup(address="bob")], alice) is False

    def test_case_sensitive_address(self, alice: Address) -> None:
        group = ConditionGroup(address="SMITH", case_sensitive=True)
        assert check_address_groups([group], alice) is False

    def test_list_matches_any_element(self, alice: Address) -> None:
        """A recipient list matches when any address contains the substring."""
        recipients = [Address(email="bob@other.org"), alice]
        group = ConditionGroup(address="alice@")
        assert check_address_groups([group], recipients, is_list=True) is True

    def test_groups_combine_with_and(self, alice: Address) -> None:
        """One matching and one failing include group fail overall."""
        groups = [ConditionGroup(address="alice"), ConditionGroup(address="carol")]
        assert check_address_groups(groups, [alice], is_list=True) is False

    def test_exclude_group(self, alice: Address) -> None:
        group = ConditionGroup(type=GroupType.EXCLUDE, address="alice")
        assert check_address_groups([group], alice) is False
        assert check_address_groups([group], Address(email="bob@x.org")) is True

    def test_absent_content(self) -> None:
        """Missing data is a raw non-match, which exclude turns into a pass."""
        assert check_address_groups([ConditionGroup(address="a")], None) is False
        exclude = ConditionGroup(type=GroupType.EXCLUDE, address="a")
        assert check_address_groups([exclude], None) is True

    def test_legacy_single_condition(self, alice: Address) -> None:
        """A pre-multi-group dict is accepted as a one-element list."""
        legacy = {"enabled": True, "type": "include", "address": "alice"}
        assert check_address_groups(legacy, alice) is True
        assert check_address_groups({"enabled": False, "address": "zzz"}, alice) is True


class TestContentGroups:
    """Tests for subject/body matching."""

    def test_keywords_per_group(self) -> None:
        groups = [ConditionGroup(keywords=[kw("invoice")])]
        assert check_content_groups(groups, "Your Invoice #4521") is True
        assert check_content_groups(groups, "Hello") is False

    def test_groups_combine_with_and(self) -> None:
        groups = [
            ConditionGroup(keywords=[kw("invoice")]),
            ConditionGroup(type=GroupType.EXCLUDE, keywords=[kw("paid")]),
        ]
        assert check_content_groups(groups, "invoice due") is True
        assert check_content_groups(groups, "invoice paid") is False

    def test_absent_content(self) -> None:
        """Absent text fails include groups with keywords only."""
        include = ConditionGroup(keywords=[kw("x")])
        exclude = ConditionGroup(type=GroupType.EXCLUDE, keywords=[kw("x")])
        empty = ConditionGroup(keywords=[])
        assert check_content_groups([include], None) is False
        assert check_content_groups([exclude], None) is True
        assert check_content_groups([empty], None) is True

    def test_empty_string_is_present_content(self) -> None:
        """An empty body is evaluated, not treated as missing."""
        exclude = ConditionGroup(type=GroupType.EXCLUDE, keywords=[kw("x")])
        assert check_content_groups([exclude], "") is True
        assert check_content_groups([ConditionGroup(keywords=[kw("x")])], "") is False

    def test_camel_case_aliases(self) -> None:
        group = ConditionGroup.model_validate(
            {"caseSensitive": True, "keywords": [{"keyword": "Urgent"}]}
        )
        assert group.case_sensitive is True
        assert check_content_groups([group], "urgent") is False
