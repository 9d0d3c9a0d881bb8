"""Requirement trees: boolean prerequisites gating edges, powers and more.

A requirement expression is a strict tree over four node types, told apart
by their ``node`` tag so whole trees can be loaded from plain mappings:

    >>> tree = parse_requirement_tree({
    ...     "node": "and",
    ...     "children": [
    ...         {"node": "leaf", "kind": "attribute", "target": "agility", "threshold": "d8"},
    ...         {"node": "leaf", "kind": "rank", "threshold": 2},
    ...     ],
    ... })
    >>> [leaf.label for leaf in tree.leaves()]
    ['Agility d8+', 'Rank 2+']
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from swade_builder.models.die import Die
from swade_builder.models.enums import RequirementKind


# =============================================================================
# Nodes
# =============================================================================


class LeafNode(BaseModel):
    """An atomic predicate such as "Agility d8+" or "has edge Alertness".

    Attributes:
        kind: Which predicate to apply.
        target: Id of the attribute, skill, edge, hindrance or arcane
            background concerned. ``None`` for rank, power count and an
            "any arcane background" check.
        threshold: Minimum die for attribute and skill checks, minimum rank
            level for rank checks, minimum count for power checks.
        description: Display text; generated from the fields when empty.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    node: Literal["leaf"] = "leaf"
    kind: RequirementKind
    target: str | None = None
    threshold: Die | int | None = None
    description: str = ""

    @field_validator("kind", mode="before")
    @classmethod
    def parse_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            return RequirementKind.parse(value)
        return value

    @model_validator(mode="before")
    @classmethod
    def parse_die_threshold(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("threshold"), str):
            data = {**data, "threshold": Die.parse(data["threshold"])}
        return data

    @model_validator(mode="after")
    def check_threshold(self) -> "LeafNode":
        """Attribute and skill checks need a target and a die threshold."""
        if self.kind in (RequirementKind.ATTRIBUTE, RequirementKind.SKILL):
            if not self.target or not isinstance(self.threshold, Die):
                raise ValueError(f"{self.kind} requirements need a target and a die threshold")
        elif self.kind in (RequirementKind.RANK, RequirementKind.POWER):
            if not isinstance(self.threshold, int):
                raise ValueError(f"{self.kind} requirements need an integer threshold")
        elif self.kind in (RequirementKind.EDGE, RequirementKind.HINDRANCE):
            if not self.target:
                raise ValueError(f"{self.kind} requirements need a target")
        return self

    @property
    def label(self) -> str:
        """Display text for this leaf."""
        if self.description:
            return self.description
        target = (self.target or "").replace("_", " ").title()
        match self.kind:
            case RequirementKind.ATTRIBUTE | RequirementKind.SKILL:
                return f"{target} {self.threshold}+"
            case RequirementKind.RANK:
                return f"Rank {self.threshold}+"
            case RequirementKind.EDGE:
                return f"Edge: {target}"
            case RequirementKind.HINDRANCE:
                return f"Hindrance: {target}"
            case RequirementKind.ARCANE_BACKGROUND:
                return f"Arcane Background ({target or 'any'})"
            case RequirementKind.POWER:
                return f"{self.threshold}+ powers"
        return target

    def leaves(self) -> Iterator[LeafNode]:
        yield self


class AndNode(BaseModel):
    """True when every child is true; an empty And is true."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    node: Literal["and"] = "and"
    children: tuple[RequirementExpression, ...] = ()

    @property
    def label(self) -> str:
        return " and ".join(child.label for child in self.children)

    def leaves(self) -> Iterator[LeafNode]:
        for child in self.children:
            yield from child.leaves()


class OrNode(BaseModel):
    """True when at least one child is true; an empty Or is false."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    node: Literal["or"] = "or"
    children: tuple[RequirementExpression, ...] = ()

    @property
    def label(self) -> str:
        return " or ".join(child.label for child in self.children)

    def leaves(self) -> Iterator[LeafNode]:
        for child in self.children:
            yield from child.leaves()


class NotNode(BaseModel):
    """Negation of a single child.

    Explanations treat a Not node as one opaque line: its own description,
    or ``"Not: "`` followed by the child's leaf labels joined by ``" / "``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    node: Literal["not"] = "not"
    child: RequirementExpression
    description: str = ""

    @property
    def label(self) -> str:
        if self.description:
            return self.description
        return "Not: " + " / ".join(leaf.label for leaf in self.child.leaves())

    def leaves(self) -> Iterator[LeafNode]:
        yield from self.child.leaves()


RequirementExpression = Annotated[
    Union[AndNode, OrNode, NotNode, LeafNode],
    Field(discriminator="node"),
]

AndNode.model_rebuild()
OrNode.model_rebuild()
NotNode.model_rebuild()

_expression_adapter: TypeAdapter[RequirementExpression] = TypeAdapter(RequirementExpression)


# =============================================================================
# Builders
# =============================================================================


def all_of(*children: RequirementExpression) -> AndNode:
    return AndNode(children=children)


def any_of(*children: RequirementExpression) -> OrNode:
    return OrNode(children=children)


def negate(child: RequirementExpression, description: str = "") -> NotNode:
    return NotNode(child=child, description=description)


def leaf(
    kind: RequirementKind | str,
    target: str | None = None,
    threshold: Die | int | str | None = None,
    description: str = "",
) -> LeafNode:
    """Build a requirement leaf, parsing die notation thresholds.

    Example:
        >>> leaf("attribute", "agility", "d8").label
        'Agility d8+'
    """
    return LeafNode.model_validate(
        {"kind": kind, "target": target, "threshold": threshold, "description": description}
    )


def no_requirements() -> AndNode:
    """The always-true requirement tree."""
    return AndNode()


def parse_requirement_tree(payload: Any) -> RequirementExpression:
    """Validate a plain mapping into a requirement tree.

    Args:
        payload: Nested mappings tagged with ``node``.

    Returns:
        The parsed tree.
    """
    return _expression_adapter.validate_python(payload)


__all__ = [
    "LeafNode",
    "AndNode",
    "OrNode",
    "NotNode",
    "RequirementExpression",
    "all_of",
    "any_of",
    "negate",
    "leaf",
    "no_requirements",
    "parse_requirement_tree",
]
