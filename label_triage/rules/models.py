"""Pydantic models for the declarative rule file."""

from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class RuleKind(str, Enum):
    """The side effect a rule produces when it matches."""

    ADD_LABEL = "add-label"
    MENTION = "mention"
    COMMENT = "comment"


class TriageRule(BaseModel):
    """Fields shared by every rule.

    ``id`` defaults to ``<prefix>:<label>`` so rule files rarely need to set it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id_prefix: ClassVar[str] = "rule"
    kind: ClassVar[RuleKind]

    id: str = Field(..., min_length=1, description="Unique rule identifier")
    label: str = Field(..., min_length=1, description="Label the rule is keyed on")

    @model_validator(mode="before")
    @classmethod
    def _default_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id") and data.get("label"):
            data = {**data, "id": f"{cls.id_prefix}:{data['label']}"}
        return data

    @field_validator("label")
    @classmethod
    def _strip_label(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("label must not be blank")
        return value


class PathLabelRule(TriageRule):
    """Add ``label`` to a pull request that touches any of ``paths``."""

    id_prefix: ClassVar[str] = "labeler"
    kind: ClassVar[RuleKind] = RuleKind.ADD_LABEL

    paths: list[str] = Field(
        ..., min_length=1, description="Path globs; a leading ! excludes"
    )

    @field_validator("paths")
    @classmethod
    def _require_positive_glob(cls, value: list[str]) -> list[str]:
        cleaned = [glob.strip() for glob in value if glob and glob.strip()]
        if not any(not glob.startswith("!") for glob in cleaned):
            raise ValueError("paths needs at least one glob without a leading !")
        return cleaned


class MentionRule(TriageRule):
    """Mention subscribers when ``label`` is added."""

    id_prefix: ClassVar[str] = "subscribe"
    kind: ClassVar[RuleKind] = RuleKind.MENTION

    mentions: list[str] = Field(
        ..., min_length=1, description="Logins to mention, with or without @"
    )

    @field_validator("mentions")
    @classmethod
    def _normalize_mentions(cls, value: list[str]) -> list[str]:
        # GitHub logins are case-insensitive; the first spelling wins.
        logins: list[str] = []
        seen: set[str] = set()
        for raw in value:
            login = raw.strip().lstrip("@")
            if not login:
                raise ValueError(f"Invalid mention {raw!r}")
            if login.lower() not in seen:
                seen.add(login.lower())
                logins.append(login)
        return logins


class CommentRule(TriageRule):
    """Post a predetermined comment when ``label`` is added."""

    id_prefix: ClassVar[str] = "message"
    kind: ClassVar[RuleKind] = RuleKind.COMMENT

    template: str = Field(..., min_length=1, description="Markdown comment template")


Rule = PathLabelRule | MentionRule | CommentRule


class RuleSet(BaseModel):
    """All rules of one repository, in evaluation order."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    labeler: list[PathLabelRule] = Field(default_factory=list)
    subscriptions: list[MentionRule] = Field(default_factory=list)
    messages: list[CommentRule] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_ids(self) -> "RuleSet":
        seen: set[str] = set()
        for rule in self.rules:
            if rule.id in seen:
                raise ValueError(f"Duplicate rule id {rule.id!r}")
            seen.add(rule.id)
        return self

    @property
    def rules(self) -> list[Rule]:
        return [*self.labeler, *self.subscriptions, *self.messages]

    def __len__(self) -> int:
        return len(self.labeler) + len(self.subscriptions) + len(self.messages)
