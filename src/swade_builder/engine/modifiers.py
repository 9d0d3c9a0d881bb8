"""Modifier resolution: from attached sources to effective values.

The engine is agnostic to where a modifier came from. A character's
effective set is the concatenation of its own modifiers and those of its
ancestry, edges, hindrances, arcane backgrounds and equipped gear; queries
then group that set by target. Nothing here is cached, so results can never
go stale after a mutation.

Example:
    >>> mods = [
    ...     Modifier(target_type="skill", target_identifier="notice", value_type="flat_bonus", value=1),
    ...     Modifier(target_type="skill", target_identifier="notice", value_type="flat_bonus", value=1),
    ... ]
    >>> effective_value("notice", mods)
    2
"""

from __future__ import annotations

from collections.abc import Iterable

from swade_builder.core.exceptions import NotFoundError
from swade_builder.models.character import CharacterSnapshot
from swade_builder.models.die import Die
from swade_builder.models.enums import TargetType, ValueType
from swade_builder.models.modifiers import Modifier
from swade_builder.models.reference import ReferenceData


def gather_modifiers(snapshot: CharacterSnapshot, reference: ReferenceData) -> tuple[Modifier, ...]:
    """Collect every modifier currently attached to a character.

    Only equipped gear contributes.

    Raises:
        NotFoundError: If the snapshot names an id missing from ``reference``.
    """
    modifiers: list[Modifier] = list(snapshot.modifiers)
    if snapshot.ancestry_id is not None:
        modifiers.extend(reference.ancestry(snapshot.ancestry_id).modifiers)
    for edge in snapshot.edges:
        modifiers.extend(reference.edge(edge.edge_id).modifiers)
    for hindrance in snapshot.hindrances:
        modifiers.extend(reference.hindrance(hindrance.hindrance_id).modifiers)
    for selected in snapshot.arcane_backgrounds:
        modifiers.extend(reference.arcane_background(selected.arcane_background_id).modifiers)
    for owned in snapshot.gear:
        if owned.is_equipped:
            modifiers.extend(reference.gear_item(owned.gear_id).modifiers)
    return tuple(modifiers)


def effective_value(
    target_identifier: str,
    modifiers: Iterable[Modifier],
    *,
    target_type: TargetType | None = None,
) -> int:
    """Sum the roll and flat bonuses aimed at a target.

    Descriptive modifiers and die increments contribute nothing.
    """
    return sum(
        modifier.value or 0
        for modifier in modifiers
        if modifier.value_type.is_numeric and modifier.matches(target_identifier, target_type)
    )


def die_steps(
    target_identifier: str,
    modifiers: Iterable[Modifier],
    *,
    target_type: TargetType | None = None,
) -> int:
    """Net die steps granted to a target by ``die_increment`` modifiers."""
    return sum(
        modifier.steps
        for modifier in modifiers
        if modifier.value_type is ValueType.DIE_INCREMENT
        and modifier.matches(target_identifier, target_type)
    )


def effective_die(
    base_die: Die,
    target_identifier: str,
    modifiers: Iterable[Modifier],
    *,
    target_type: TargetType | None = None,
) -> Die:
    """Apply matching die increments to ``base_die``.

    Increments commute, so order is irrelevant. Net downward steps stop at
    the d4 floor.
    """
    return base_die.step(die_steps(target_identifier, modifiers, target_type=target_type))


def trait_ceiling(default_max: Die, target_identifier: str, modifiers: Iterable[Modifier]) -> Die:
    """Maximum die for a trait, raised by ``trait_maximum`` increments."""
    return effective_die(
        default_max, target_identifier, modifiers, target_type=TargetType.TRAIT_MAXIMUM
    )


def total_for_type(target_type: TargetType, modifiers: Iterable[Modifier]) -> int:
    """Sum numeric modifiers of one target type, whatever their identifier.

    Used for budget targets such as extra skill points or power slots.
    """
    return sum(
        modifier.value or 0
        for modifier in modifiers
        if modifier.value_type.is_numeric and modifier.target_type is target_type
    )


def effective_attribute_die(
    snapshot: CharacterSnapshot,
    attribute_id: str,
    modifiers: Iterable[Modifier],
) -> Die:
    """Current attribute die with attribute increments applied.

    Raises:
        NotFoundError: If the character has no such attribute.
    """
    try:
        base = snapshot.attributes[attribute_id]
    except KeyError:
        raise NotFoundError(
            f"Character has no attribute {attribute_id}",
            entity_type="attribute",
            entity_id=attribute_id,
        ) from None
    return effective_die(base, attribute_id, modifiers, target_type=TargetType.ATTRIBUTE)


def effective_skill_die(
    snapshot: CharacterSnapshot,
    skill_id: str,
    modifiers: Iterable[Modifier],
) -> Die | None:
    """Current skill die with skill increments applied; ``None`` if untrained."""
    base = snapshot.skill_die(skill_id)
    if base is None:
        return None
    return effective_die(base, skill_id, modifiers, target_type=TargetType.SKILL)


__all__ = [
    "gather_modifiers",
    "effective_value",
    "die_steps",
    "effective_die",
    "trait_ceiling",
    "total_for_type",
    "effective_attribute_die",
    "effective_skill_die",
]
