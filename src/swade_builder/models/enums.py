"""Enumeration types for the SWADE character builder.

Every enumeration that can arrive as a string from the data layer offers an
explicit ``parse`` classmethod. Unknown strings raise
:class:`~swade_builder.core.exceptions.ValidationError` instead of quietly
becoming some default member, so bad reference data is reported where it
enters the engine.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Self

from swade_builder.core.exceptions import RejectionKind, ValidationError


class ParsableEnum(StrEnum):
    """StrEnum base with lenient, explicit string parsing."""

    @classmethod
    def parse(cls, raw: str | Self) -> Self:
        """Parse a raw string into a member.

        Matching ignores case and treats spaces and hyphens as underscores,
        so ``"Arcane Background"`` and ``"arcane-background"`` both resolve.

        Args:
            raw: Member value, member name, or an existing member.

        Returns:
            The matching member.

        Raises:
            ValidationError: If no member matches.
        """
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            key = raw.strip().lower().replace(" ", "_").replace("-", "_")
            for member in cls:
                if key in (member.value, member.name.lower()):
                    return member
        raise ValidationError(
            f"Invalid {cls.__name__}: {raw!r}",
            field_name=cls.__name__,
            invalid_value=raw,
        )


class TargetType(ParsableEnum):
    """What a modifier applies to.

    ``DERIVED_STAT`` modifiers name the statistic in their target
    identifier (``pace``, ``parry``, ``toughness``, ``size``,
    ``load_limit``). Budget targets (points, slots, wealth) are summed by
    type and ignore the identifier. ``TRAIT_MAXIMUM`` die increments raise
    the ceiling of the trait named by the identifier.
    """

    ATTRIBUTE = "attribute"
    SKILL = "skill"
    DERIVED_STAT = "derived_stat"
    ATTRIBUTE_POINTS = "attribute_points"
    SKILL_POINTS = "skill_points"
    POWER_POINTS = "power_points"
    POWER_SLOTS = "power_slots"
    WEALTH = "wealth"
    TRAIT_MAXIMUM = "trait_maximum"
    EDGE_CHOICE = "edge_choice"


class ValueType(ParsableEnum):
    """How a modifier's value is applied."""

    DIE_INCREMENT = "die_increment"
    ROLL_BONUS = "roll_bonus"
    FLAT_BONUS = "flat_bonus"
    DESCRIPTIVE = "descriptive"

    @property
    def is_numeric(self) -> bool:
        """Whether the value takes part in ``effective_value`` sums."""
        return self in (ValueType.ROLL_BONUS, ValueType.FLAT_BONUS)


class RequirementKind(ParsableEnum):
    """Predicate dispatched on by a requirement leaf."""

    ATTRIBUTE = "attribute"
    SKILL = "skill"
    RANK = "rank"
    EDGE = "edge"
    HINDRANCE = "hindrance"
    ARCANE_BACKGROUND = "arcane_background"
    POWER = "power"
    DESCRIPTION = "description"


class Severity(ParsableEnum):
    """Hindrance severity."""

    MINOR = "minor"
    MAJOR = "major"


class EdgeCategory(ParsableEnum):
    """Edge categories from the core rules."""

    BACKGROUND = "background"
    COMBAT = "combat"
    LEADERSHIP = "leadership"
    POWER = "power"
    PROFESSIONAL = "professional"
    SOCIAL = "social"
    WEIRD = "weird"
    LEGENDARY = "legendary"


class Provenance(ParsableEnum):
    """How a selection came to be attached to a character."""

    CHOSEN = "chosen"
    ANCESTRY = "ancestry"
    HINDRANCE_POINTS = "hindrance_points"
    ARCANE_BACKGROUND = "arcane_background"
    ADVANCEMENT = "advancement"
    ADVANCEMENT_REDUCED = "advancement_reduced"


class HindrancePointTarget(ParsableEnum):
    """Where surplus hindrance points can be spent during creation."""

    EDGES = "edges"
    ATTRIBUTES = "attributes"
    SKILLS = "skills"
    WEALTH = "wealth"


class AdvanceKind(ParsableEnum):
    """The closed set of advance patterns."""

    ATTRIBUTE = "attribute"
    SKILL = "skill"
    EDGE = "edge"
    HINDRANCE = "hindrance"


class HindranceAction(ParsableEnum):
    """What a hindrance advance does to its hindrance."""

    REMOVE_MINOR = "remove_minor"
    REDUCE_MAJOR = "reduce_major"
    REMOVE_MAJOR_HALF = "remove_major_half"

    @property
    def label(self) -> str:
        """Short label for presentation."""
        return {
            HindranceAction.REMOVE_MINOR: "Remove",
            HindranceAction.REDUCE_MAJOR: "Reduce to Minor",
            HindranceAction.REMOVE_MAJOR_HALF: "Begin Removal (requires 2 advances)",
        }[self]


class AdvancementPhase(ParsableEnum):
    """Per-advance lifecycle of the advancement state machine."""

    NOT_STARTED = "not_started"
    ADVANCE_AVAILABLE = "advance_available"
    ADVANCE_COMMITTED = "advance_committed"


__all__ = [
    "ParsableEnum",
    "TargetType",
    "ValueType",
    "RequirementKind",
    "Severity",
    "EdgeCategory",
    "Provenance",
    "HindrancePointTarget",
    "AdvanceKind",
    "HindranceAction",
    "AdvancementPhase",
    "RejectionKind",
]
