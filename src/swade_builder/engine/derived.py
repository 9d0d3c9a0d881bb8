"""Derived statistics and encumbrance.

Both are pure functions of a snapshot and its resolved modifiers; they are
never stored and always recomputed.

SWADE formulas:
    Size: sum of ``size`` modifiers (a normal human is 0).
    Pace: 6 + ``pace`` modifiers.
    Parry: 2 + half the Fighting die (0 untrained) + ``parry`` modifiers.
    Toughness: 2 + half the Vigor die + Size + ``toughness`` modifiers.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from swade_builder.core.constants import (
    BASE_PACE,
    BASE_PARRY,
    BASE_SIZE,
    BASE_TOUGHNESS,
    ENCUMBRANCE_PENALTY,
    FIGHTING_SKILL_ID,
    LOAD_LIMIT_PER_STEP,
    STRENGTH_ATTRIBUTE_ID,
    VIGOR_ATTRIBUTE_ID,
)
from swade_builder.engine.modifiers import (
    effective_attribute_die,
    effective_skill_die,
    effective_value,
    gather_modifiers,
)
from swade_builder.models.character import CharacterSnapshot
from swade_builder.models.die import Die
from swade_builder.models.enums import TargetType
from swade_builder.models.modifiers import Modifier
from swade_builder.models.reference import ReferenceData


class DerivedStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    pace: int
    parry: int
    toughness: int
    size: int


class Encumbrance(BaseModel):
    """Carried weight against the Strength load limit."""

    model_config = ConfigDict(frozen=True)

    carried_weight: float
    load_limit: float
    is_encumbered: bool
    penalty: int


def _derived_bonus(stat: str, modifiers: Iterable[Modifier]) -> int:
    return effective_value(stat, modifiers, target_type=TargetType.DERIVED_STAT)


def load_limit_for(strength: Die) -> int:
    """Load limit for a Strength die: d4 20, d6 40, ... d12 100, +20 per step beyond."""
    return LOAD_LIMIT_PER_STEP * (strength.step_index + 1)


def compute_derived_stats(
    snapshot: CharacterSnapshot,
    reference: ReferenceData,
    modifiers: Iterable[Modifier] | None = None,
) -> DerivedStats:
    """Compute Pace, Parry, Toughness and Size."""
    mods = tuple(modifiers) if modifiers is not None else gather_modifiers(snapshot, reference)

    size = BASE_SIZE + _derived_bonus("size", mods)
    pace = BASE_PACE + _derived_bonus("pace", mods)

    fighting = effective_skill_die(snapshot, FIGHTING_SKILL_ID, mods)
    parry = BASE_PARRY + (fighting.half_size if fighting else 0) + _derived_bonus("parry", mods)

    vigor_bonus = 0
    if VIGOR_ATTRIBUTE_ID in snapshot.attributes:
        vigor_bonus = effective_attribute_die(snapshot, VIGOR_ATTRIBUTE_ID, mods).half_size
    toughness = BASE_TOUGHNESS + vigor_bonus + size + _derived_bonus("toughness", mods)

    return DerivedStats(pace=pace, parry=parry, toughness=toughness, size=size)


def compute_encumbrance(
    snapshot: CharacterSnapshot,
    reference: ReferenceData,
    modifiers: Iterable[Modifier] | None = None,
) -> Encumbrance:
    """Compare the weight of all owned gear against the load limit."""
    mods = tuple(modifiers) if modifiers is not None else gather_modifiers(snapshot, reference)

    strength = Die.d4()
    if STRENGTH_ATTRIBUTE_ID in snapshot.attributes:
        strength = effective_attribute_die(snapshot, STRENGTH_ATTRIBUTE_ID, mods)
    load_limit = float(load_limit_for(strength) + _derived_bonus("load_limit", mods))

    carried = sum(
        reference.gear_item(owned.gear_id).weight * owned.quantity for owned in snapshot.gear
    )
    is_encumbered = carried > load_limit
    return Encumbrance(
        carried_weight=float(carried),
        load_limit=load_limit,
        is_encumbered=is_encumbered,
        penalty=ENCUMBRANCE_PENALTY if is_encumbered else 0,
    )


__all__ = [
    "DerivedStats",
    "Encumbrance",
    "load_limit_for",
    "compute_derived_stats",
    "compute_encumbrance",
]
