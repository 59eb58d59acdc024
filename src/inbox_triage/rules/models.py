"""Rule definitions and planned-action records."""

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from inbox_triage.ai.base import DEFAULT_SYSTEM_PROMPT
from inbox_triage.rules.conditions import ConditionGroup, ConditionKind


class ConditionMode(str, Enum):
    """How a rule decides whether a message matches."""

    NORMAL = "normal"
    AI = "ai"


class ActionType(str, Enum):
    """Top-level action kind of a rule."""

    NORMAL = "normal"
    DELETE = "delete"


class _CamelModel(BaseModel):
    # Rules written by the browser extension use camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RuleConditions(_CamelModel):
    """Condition groups per message field. Groups of one field are ANDed."""

    subject: list[ConditionGroup] = Field(default_factory=list)
    body: list[ConditionGroup] = Field(default_factory=list)
    sender: list[ConditionGroup] = Field(default_factory=list)
    recipient: list[ConditionGroup] = Field(default_factory=list)
    cc: list[ConditionGroup] = Field(default_factory=list)

    @field_validator("subject", "body", "sender", "recipient", "cc", mode="before")
    @classmethod
    def _normalize_legacy_shape(cls, value: Any) -> Any:
        """Lift a pre-multi-group single condition object into a list."""
        if value is None:
            return []
        if isinstance(value, (dict, ConditionGroup)):
            return [value]
        return value

    def groups(self, kind: ConditionKind) -> list[ConditionGroup]:
        return getattr(self, kind.value)

    def is_active(self, kind: ConditionKind) -> bool:
        """A field takes part in matching when at least one group is enabled."""
        return any(group.enabled for group in self.groups(kind))

    @property
    def active_kinds(self) -> list[ConditionKind]:
        return [kind for kind in ConditionKind if self.is_active(kind)]


class AiPrompt(_CamelModel):
    """Prompt pair for an AI-mode rule."""

    system: str = Field(default=DEFAULT_SYSTEM_PROMPT, description="Judge protocol")
    user: str | None = Field(default=None, description="User's matching criteria")


class RuleAction(_CamelModel):
    """What to do with a message when a rule matches."""

    type: ActionType = Field(default=ActionType.NORMAL)
    move_to_folder: str | None = Field(default=None, description="Target folder name")
    set_label: str | list[str] | None = Field(default=None, description="Label name(s)")
    mark_as_read: bool = Field(default=False)
    stop_processing: bool = Field(
        default=True, description="Stop evaluating later rules after this one matches"
    )

    @property
    def is_delete(self) -> bool:
        return self.type == ActionType.DELETE

    @property
    def label_names(self) -> list[str]:
        if not self.set_label:
            return []
        if isinstance(self.set_label, str):
            return [self.set_label]
        return list(self.set_label)


def new_rule_id() -> str:
    """Creation-timestamp id in milliseconds."""
    return str(time.time_ns() // 1_000_000)


class Rule(_CamelModel):
    """A user-authored automation rule."""

    id: str = Field(default_factory=new_rule_id, description="Immutable rule id")
    name: str = Field(min_length=1, description="Human-readable rule name")
    enabled: bool = Field(default=True, description="Whether the rule is active")
    condition_mode: ConditionMode = Field(default=ConditionMode.NORMAL)
    conditions: RuleConditions = Field(default_factory=RuleConditions)
    ai_prompt: AiPrompt | None = Field(default=None)
    action: RuleAction = Field(default_factory=RuleAction)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Rule name cannot be blank")
        return value.strip()

    @field_validator("conditions", mode="before")
    @classmethod
    def _none_conditions(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def is_ai(self) -> bool:
        return self.condition_mode == ConditionMode.AI


class PlannedActionType(str, Enum):
    """Kinds of actions the decision step can plan."""

    MARK_READ = "mark_read"
    APPLY_LABEL = "apply_label"
    MOVE_MAIL = "move_mail"


class PlannedAction(BaseModel):
    """An action decided for a message but not yet executed."""

    type: PlannedActionType
    mail_id: str
    rule_id: str | None = None
    is_read: bool = True
    label_ids: list[str] = Field(default_factory=list)
    folder_id: str | None = None
    original_unique_id: str | None = None

    def describe(self) -> str:
        match self.type:
            case PlannedActionType.MARK_READ:
                return "mark as read"
            case PlannedActionType.APPLY_LABEL:
                return f"apply labels {', '.join(self.label_ids)}"
            case PlannedActionType.MOVE_MAIL:
                return f"move to folder {self.folder_id}"
        return self.type.value
