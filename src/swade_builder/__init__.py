"""swade-builder - character build rules engine for Savage Worlds.

The engine represents die-rated traits and their progression, resolves
modifiers from every source into effective values, evaluates nested
prerequisite trees, and enforces point budgets during creation and step
rules during advancement. Storage, reference data loading and the user
interface are left to the hosting application.

Example:
    >>> from swade_builder import CreationLedger, GameConfig
    >>>
    >>> ledger = CreationLedger(reference, GameConfig())
    >>> hero = ledger.new_character("Red")
    >>> result = ledger.add_hindrance(hero, "loyal")
    >>> if result.accepted:
    ...     hero = result.snapshot
    ... else:
    ...     print(result.rejection.message)

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 schemas (Die, requirements, reference data, snapshot).
    engine: Modifier resolution, requirement evaluation, ledger, advancement.
"""

from __future__ import annotations

# Core
from swade_builder.core.config import GameConfig, Settings, get_settings
from swade_builder.core.exceptions import RejectionKind, RuleViolation, SwadeBuilderError
from swade_builder.core.logging import configure_logging, configure_logging_from_settings, get_logger

# Models
from swade_builder.models.character import CharacterSnapshot
from swade_builder.models.die import Die
from swade_builder.models.modifiers import Modifier
from swade_builder.models.reference import ReferenceData

# Engine
from swade_builder.engine.advancement import AdvancementMachine
from swade_builder.engine.derived import compute_derived_stats, compute_encumbrance
from swade_builder.engine.ledger import CreationLedger
from swade_builder.engine.requirements import availability_report
from swade_builder.engine.results import MutationResult, Rejection


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "SwadeBuilderError",
    "RuleViolation",
    "RejectionKind",
    "GameConfig",
    "Settings",
    "get_settings",
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    # Models
    "CharacterSnapshot",
    "Die",
    "Modifier",
    "ReferenceData",
    # Engine
    "AdvancementMachine",
    "CreationLedger",
    "MutationResult",
    "Rejection",
    "availability_report",
    "compute_derived_stats",
    "compute_encumbrance",
]
