"""Modifier records granted by edges, hindrances, ancestries, gear and more."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from swade_builder.models.enums import TargetType, ValueType


class Modifier(BaseModel):
    """A typed bonus, penalty or die-step change applied to a named target.

    Modifiers carry no record of their source: a character's effective set
    is the concatenation of every attached source's modifiers, and the
    resolution engine only groups them by target.

    Attributes:
        target_type: Broad kind of target (attribute, skill, derived stat...).
        target_identifier: The specific target, e.g. ``"notice"``.
        value_type: How ``value`` is applied.
        value: Signed amount. ``None`` for descriptive modifiers; a die
            increment without a value counts as one step.
        description: Human-readable summary.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    target_type: TargetType
    target_identifier: str = ""
    value_type: ValueType
    value: int | None = None
    description: str = Field(default="", description="Human-readable summary")

    @field_validator("target_type", mode="before")
    @classmethod
    def parse_target_type(cls, value: object) -> object:
        if isinstance(value, str):
            return TargetType.parse(value)
        return value

    @field_validator("value_type", mode="before")
    @classmethod
    def parse_value_type(cls, value: object) -> object:
        if isinstance(value, str):
            return ValueType.parse(value)
        return value

    @model_validator(mode="after")
    def check_value(self) -> "Modifier":
        """Descriptive modifiers carry no value; numeric bonuses need one."""
        if self.value_type is ValueType.DESCRIPTIVE and self.value is not None:
            raise ValueError("Descriptive modifiers must not carry a value")
        if self.value_type.is_numeric and self.value is None:
            raise ValueError(f"{self.value_type} modifiers require a value")
        return self

    @property
    def steps(self) -> int:
        """Die steps granted, for ``die_increment`` modifiers."""
        if self.value_type is not ValueType.DIE_INCREMENT:
            return 0
        return 1 if self.value is None else self.value

    def matches(self, target_identifier: str, target_type: TargetType | None = None) -> bool:
        """Whether this modifier applies to the given target."""
        if target_type is not None and self.target_type is not target_type:
            return False
        return self.target_identifier.lower() == target_identifier.lower()


__all__ = ["Modifier"]
