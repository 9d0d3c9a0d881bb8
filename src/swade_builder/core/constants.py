"""Rule constants for the SWADE character builder.

Values here are fixed by the core rules and are not meant to vary between
rule sets. Tunable budgets live in :class:`swade_builder.core.config.GameConfig`.
"""

from __future__ import annotations

# =============================================================================
# Die Progression
# =============================================================================

DIE_SIZES: tuple[int, ...] = (4, 6, 8, 10, 12)
"""Legal die sizes, in progression order."""

MIN_DIE_SIZE = 4
"""The floor of the die progression."""

MAX_DIE_SIZE = 12
"""Largest physical die; further steps add +1 modifiers to a d12."""

# =============================================================================
# Derived Statistics
# =============================================================================

BASE_PACE = 6
"""Pace before modifiers."""

BASE_PARRY = 2
"""Parry before the Fighting die and modifiers."""

BASE_TOUGHNESS = 2
"""Toughness before the Vigor die, Size and modifiers."""

BASE_SIZE = 0
"""Size of a normal human."""

FIGHTING_SKILL_ID = "fighting"
"""Skill whose die feeds Parry."""

VIGOR_ATTRIBUTE_ID = "vigor"
"""Attribute whose die feeds Toughness."""

STRENGTH_ATTRIBUTE_ID = "strength"
"""Attribute whose die sets the load limit."""

# =============================================================================
# Encumbrance
# =============================================================================

LOAD_LIMIT_PER_STEP = 20
"""Pounds of load limit per die step (d4 = 20, d6 = 40, ...)."""

ENCUMBRANCE_PENALTY = 2
"""Trait penalty while carrying more than the load limit."""
