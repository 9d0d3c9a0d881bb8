"""Requirement evaluation and explanation.

Evaluation is a plain recursive walk over the requirement tree against a
read-only :class:`RequirementContext`. Conventions:

* an empty ``And`` is true (vacuous truth);
* an empty ``Or`` is false, so an empty alternative list never grants
  free access;
* ``And`` and ``Or`` are transparent when explaining: every failing leaf
  beneath them is reported, even under an ``Or`` that is satisfied;
* a ``Not`` node is opaque when explaining: it is reported as one entry,
  its own label, when it evaluates false, and contributes nothing when it
  evaluates true.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict

from swade_builder.core.logging import get_logger
from swade_builder.engine.modifiers import (
    effective_attribute_die,
    effective_skill_die,
    gather_modifiers,
)
from swade_builder.models.character import CharacterSnapshot
from swade_builder.models.die import Die
from swade_builder.models.enums import RequirementKind
from swade_builder.models.modifiers import Modifier
from swade_builder.models.reference import ReferenceData
from swade_builder.models.requirements import (
    AndNode,
    LeafNode,
    NotNode,
    OrNode,
    RequirementExpression,
)


logger = get_logger(__name__)


# =============================================================================
# Context
# =============================================================================


@dataclass(frozen=True)
class RequirementContext:
    """Read-only view of a character for requirement checks.

    Dice are effective dice, with every attached modifier applied.
    """

    attribute_dies: Mapping[str, Die]
    skill_dies: Mapping[str, Die | None]
    rank_level: int
    edge_ids: frozenset[str]
    hindrance_ids: frozenset[str]
    arcane_background_ids: frozenset[str]
    power_count: int

    @classmethod
    def from_snapshot(
        cls,
        snapshot: CharacterSnapshot,
        reference: ReferenceData,
        modifiers: Iterable[Modifier] | None = None,
    ) -> RequirementContext:
        """Build a context from a snapshot.

        Args:
            snapshot: The character.
            reference: Reference data for modifier lookup and ranks.
            modifiers: Pre-gathered modifiers; gathered when omitted.
        """
        mods = tuple(modifiers) if modifiers is not None else gather_modifiers(snapshot, reference)
        rank_level = (
            reference.rank_for_advances(snapshot.advance_count).level if reference.ranks else 1
        )
        return cls(
            attribute_dies={
                attribute_id: effective_attribute_die(snapshot, attribute_id, mods)
                for attribute_id in snapshot.attributes
            },
            skill_dies={
                skill_id: effective_skill_die(snapshot, skill_id, mods)
                for skill_id in snapshot.skills
            },
            rank_level=rank_level,
            edge_ids=frozenset(edge.edge_id for edge in snapshot.edges),
            hindrance_ids=frozenset(held.hindrance_id for held in snapshot.hindrances),
            arcane_background_ids=frozenset(
                selected.arcane_background_id for selected in snapshot.arcane_backgrounds
            ),
            power_count=snapshot.power_count,
        )

    def attribute_die(self, attribute_id: str) -> Die | None:
        return self.attribute_dies.get(attribute_id)

    def skill_die(self, skill_id: str) -> Die | None:
        return self.skill_dies.get(skill_id)

    def has_edge(self, edge_id: str) -> bool:
        return edge_id in self.edge_ids

    def has_hindrance(self, hindrance_id: str) -> bool:
        return hindrance_id in self.hindrance_ids

    def has_arcane_background(self, arcane_background_id: str | None = None) -> bool:
        if arcane_background_id is None:
            return bool(self.arcane_background_ids)
        return arcane_background_id in self.arcane_background_ids


# =============================================================================
# Evaluation
# =============================================================================


def _meets_die(actual: Die | None, threshold: Die | int | None) -> bool:
    return actual is not None and isinstance(threshold, Die) and actual >= threshold


def evaluate_leaf(node: LeafNode, context: RequirementContext) -> bool:
    """Apply one leaf predicate."""
    match node.kind:
        case RequirementKind.ATTRIBUTE:
            return _meets_die(context.attribute_die(node.target or ""), node.threshold)
        case RequirementKind.SKILL:
            return _meets_die(context.skill_die(node.target or ""), node.threshold)
        case RequirementKind.RANK:
            return context.rank_level >= int(node.threshold or 0)
        case RequirementKind.EDGE:
            return context.has_edge(node.target or "")
        case RequirementKind.HINDRANCE:
            return context.has_hindrance(node.target or "")
        case RequirementKind.ARCANE_BACKGROUND:
            return context.has_arcane_background(node.target)
        case RequirementKind.POWER:
            return context.power_count >= int(node.threshold or 0)
        case RequirementKind.DESCRIPTION:
            return True
    return False


def evaluate(node: RequirementExpression, context: RequirementContext) -> bool:
    """Evaluate a requirement tree.

    Example:
        >>> evaluate(AndNode(), context)
        True
        >>> evaluate(OrNode(), context)
        False
    """
    match node:
        case AndNode():
            return all(evaluate(child, context) for child in node.children)
        case OrNode():
            return any(evaluate(child, context) for child in node.children)
        case NotNode():
            return not evaluate(node.child, context)
        case LeafNode():
            return evaluate_leaf(node, context)
    raise TypeError(f"Unknown requirement node: {node!r}")


def unmet_requirements(node: RequirementExpression, context: RequirementContext) -> list[str]:
    """Describe every failing leaf, in tree order.

    ``And`` and ``Or`` are transparent; a failing ``Not`` node is reported
    once by its own label without looking inside it.
    """
    match node:
        case AndNode() | OrNode():
            unmet: list[str] = []
            for child in node.children:
                unmet.extend(unmet_requirements(child, context))
            return unmet
        case NotNode():
            return [] if evaluate(node, context) else [node.label]
        case LeafNode():
            return [] if evaluate_leaf(node, context) else [node.label]
    raise TypeError(f"Unknown requirement node: {node!r}")


# =============================================================================
# Availability
# =============================================================================


class RequirementStatus(BaseModel):
    """One explained line of a requirement tree."""

    model_config = ConfigDict(frozen=True)

    description: str
    is_met: bool


class Availability(BaseModel):
    """Whether an entity can be taken, with a line per requirement."""

    model_config = ConfigDict(frozen=True)

    is_available: bool
    requirement_statuses: tuple[RequirementStatus, ...] = ()


class AvailabilityReport(BaseModel):
    """Availability of every reference entity, keyed by id per category."""

    model_config = ConfigDict(frozen=True)

    edges: dict[str, Availability]
    hindrances: dict[str, Availability]
    powers: dict[str, Availability]
    arcane_backgrounds: dict[str, Availability]
    ancestries: dict[str, Availability]
    gear: dict[str, Availability]


def requirement_statuses(
    node: RequirementExpression, context: RequirementContext
) -> list[RequirementStatus]:
    """Status of every leaf, with each ``Not`` node as a single line."""
    match node:
        case AndNode() | OrNode():
            statuses: list[RequirementStatus] = []
            for child in node.children:
                statuses.extend(requirement_statuses(child, context))
            return statuses
        case NotNode():
            return [RequirementStatus(description=node.label, is_met=evaluate(node, context))]
        case LeafNode():
            return [RequirementStatus(description=node.label, is_met=evaluate_leaf(node, context))]
    raise TypeError(f"Unknown requirement node: {node!r}")


def availability(requirements: RequirementExpression, context: RequirementContext) -> Availability:
    return Availability(
        is_available=evaluate(requirements, context),
        requirement_statuses=tuple(requirement_statuses(requirements, context)),
    )


def availability_report(snapshot: CharacterSnapshot, reference: ReferenceData) -> AvailabilityReport:
    """Evaluate the requirements of every reference entity for a character.

    The presentation layer uses this to gray out and explain locked options.
    """
    context = RequirementContext.from_snapshot(snapshot, reference)

    def check(entities: Mapping[str, object]) -> dict[str, Availability]:
        return {
            entity_id: availability(entity.requirements, context)  # type: ignore[attr-defined]
            for entity_id, entity in entities.items()
        }

    report = AvailabilityReport(
        edges=check(reference.edges),
        hindrances=check(reference.hindrances),
        powers=check(reference.powers),
        arcane_backgrounds=check(reference.arcane_backgrounds),
        ancestries=check(reference.ancestries),
        gear=check(reference.gear),
    )
    logger.debug(
        "Availability computed",
        character=snapshot.name,
        available_edges=sum(1 for entry in report.edges.values() if entry.is_available),
    )
    return report


__all__ = [
    "RequirementContext",
    "RequirementStatus",
    "Availability",
    "AvailabilityReport",
    "evaluate",
    "evaluate_leaf",
    "unmet_requirements",
    "requirement_statuses",
    "availability",
    "availability_report",
]
