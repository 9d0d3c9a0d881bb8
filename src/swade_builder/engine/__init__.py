"""Rules engine for character creation and advancement.

This package contains the rule logic, kept free of storage and UI:

- modifiers: Gathers modifiers from every attached source and resolves
  effective values and dice.
- requirements: Evaluates requirement trees and explains unmet leaves.
- derived: Pace, Parry, Toughness, Size and encumbrance.
- ledger: Creation-phase point budgets and single-step mutations.
- advancement: The post-creation advancement state machine.
- results: Mutation results and typed rejections.
"""

from __future__ import annotations

from swade_builder.engine.advancement import (
    AdvancementMachine,
    AdvancementOptions,
    HindranceOption,
)
from swade_builder.engine.derived import (
    DerivedStats,
    Encumbrance,
    compute_derived_stats,
    compute_encumbrance,
    load_limit_for,
)
from swade_builder.engine.ledger import CreationLedger, PointBudget, price_skill_step
from swade_builder.engine.modifiers import (
    die_steps,
    effective_attribute_die,
    effective_die,
    effective_skill_die,
    effective_value,
    gather_modifiers,
    total_for_type,
    trait_ceiling,
)
from swade_builder.engine.requirements import (
    Availability,
    AvailabilityReport,
    RequirementContext,
    RequirementStatus,
    availability,
    availability_report,
    evaluate,
    evaluate_leaf,
    requirement_statuses,
    unmet_requirements,
)
from swade_builder.engine.results import (
    MutationResult,
    Rejection,
    RuleChecks,
    RuleWarning,
    run_mutation,
)


__all__ = [
    # Modifiers
    "gather_modifiers",
    "effective_value",
    "die_steps",
    "effective_die",
    "trait_ceiling",
    "total_for_type",
    "effective_attribute_die",
    "effective_skill_die",
    # Requirements
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
    # Derived statistics
    "DerivedStats",
    "Encumbrance",
    "compute_derived_stats",
    "compute_encumbrance",
    "load_limit_for",
    # Ledger
    "CreationLedger",
    "PointBudget",
    "price_skill_step",
    # Advancement
    "AdvancementMachine",
    "AdvancementOptions",
    "HindranceOption",
    # Results
    "MutationResult",
    "Rejection",
    "RuleWarning",
    "RuleChecks",
    "run_mutation",
]
