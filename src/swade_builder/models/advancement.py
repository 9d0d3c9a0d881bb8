"""Advance proposals: the closed set of patterns one advance may take.

A proposal arrives from the presentation layer as a plain mapping and is
parsed explicitly into exactly one pattern:

    >>> parse_advance_proposal({"kind": "skill", "skill_ids": ["fighting", "notice"]})
    SkillAdvance(kind='skill', skill_ids=('fighting', 'notice'))
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from swade_builder.models.enums import AdvanceKind, HindranceAction


class AttributeAdvance(BaseModel):
    """Raise one attribute by one die step."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["attribute"] = "attribute"
    attribute_id: str

    def describe(self) -> str:
        return f"Raised {self.attribute_id}"


class SkillAdvance(BaseModel):
    """Raise skills by one step per listed id.

    Two different ids raise two skills one step each; the same id twice
    raises one skill two steps; a single id raises one skill one step.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["skill"] = "skill"
    skill_ids: Annotated[tuple[str, ...], Field(min_length=1, max_length=2)]

    def describe(self) -> str:
        return "Raised " + " and ".join(self.skill_ids)


class EdgeAdvance(BaseModel):
    """Take one new edge."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["edge"] = "edge"
    edge_id: str
    notes: str = ""

    def describe(self) -> str:
        return f"Took edge {self.edge_id}"


class HindranceAdvance(BaseModel):
    """Remove a minor hindrance, or reduce or remove a major one."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["hindrance"] = "hindrance"
    hindrance_id: str
    action: HindranceAction

    @field_validator("action", mode="before")
    @classmethod
    def parse_action(cls, value: Any) -> Any:
        if isinstance(value, str):
            return HindranceAction.parse(value)
        return value

    def describe(self) -> str:
        return f"{self.action.label}: {self.hindrance_id}"


AdvanceProposal = Annotated[
    Union[AttributeAdvance, SkillAdvance, EdgeAdvance, HindranceAdvance],
    Field(discriminator="kind"),
]

_proposal_adapter: TypeAdapter[AdvanceProposal] = TypeAdapter(AdvanceProposal)


def parse_advance_proposal(payload: Any) -> AdvanceProposal:
    """Validate a raw mapping into one advance pattern.

    Raises:
        pydantic.ValidationError: If the payload matches no pattern.
        swade_builder.core.exceptions.ValidationError: If an enumerated
            field holds an unknown string.
    """
    if isinstance(payload, dict) and isinstance(payload.get("kind"), str):
        payload = {**payload, "kind": AdvanceKind.parse(payload["kind"]).value}
    return _proposal_adapter.validate_python(payload)


__all__ = [
    "AttributeAdvance",
    "SkillAdvance",
    "EdgeAdvance",
    "HindranceAdvance",
    "AdvanceProposal",
    "parse_advance_proposal",
]
