"""Pydantic V2 schemas for the SWADE character builder.

Every model is frozen: reference data is shared read-only, and character
snapshots are replaced rather than modified.

Submodules:
    enums: Enumeration types with explicit string parsing.
    die: The Die value type and its progression arithmetic.
    modifiers: Modifier records.
    requirements: Requirement trees (And / Or / Not / Leaf).
    reference: Reference entities and the ReferenceData bundle.
    advancement: Advance proposal patterns.
    character: Character snapshot, selections, counters and advance records.
"""

from __future__ import annotations

from swade_builder.models.advancement import (
    AdvanceProposal,
    AttributeAdvance,
    EdgeAdvance,
    HindranceAdvance,
    SkillAdvance,
    parse_advance_proposal,
)
from swade_builder.models.character import (
    AdvanceRecord,
    CharacterSnapshot,
    PointCounters,
    SelectedArcaneBackground,
    SelectedEdge,
    SelectedGear,
    SelectedHindrance,
    SelectedPower,
)
from swade_builder.models.die import Die
from swade_builder.models.enums import (
    AdvanceKind,
    AdvancementPhase,
    EdgeCategory,
    HindranceAction,
    HindrancePointTarget,
    Provenance,
    RejectionKind,
    RequirementKind,
    Severity,
    TargetType,
    ValueType,
)
from swade_builder.models.modifiers import Modifier
from swade_builder.models.reference import (
    AncestryDefinition,
    ArcaneBackgroundDefinition,
    AttributeDefinition,
    EdgeDefinition,
    GearDefinition,
    HindranceDefinition,
    PowerDefinition,
    RankDefinition,
    ReferenceData,
    SkillDefinition,
)
from swade_builder.models.requirements import (
    AndNode,
    LeafNode,
    NotNode,
    OrNode,
    RequirementExpression,
    all_of,
    any_of,
    leaf,
    negate,
    no_requirements,
    parse_requirement_tree,
)


__all__ = [
    # Enums
    "AdvanceKind",
    "AdvancementPhase",
    "EdgeCategory",
    "HindranceAction",
    "HindrancePointTarget",
    "Provenance",
    "RejectionKind",
    "RequirementKind",
    "Severity",
    "TargetType",
    "ValueType",
    # Values
    "Die",
    "Modifier",
    # Requirements
    "AndNode",
    "OrNode",
    "NotNode",
    "LeafNode",
    "RequirementExpression",
    "all_of",
    "any_of",
    "negate",
    "leaf",
    "no_requirements",
    "parse_requirement_tree",
    # Reference data
    "AttributeDefinition",
    "SkillDefinition",
    "EdgeDefinition",
    "HindranceDefinition",
    "PowerDefinition",
    "AncestryDefinition",
    "ArcaneBackgroundDefinition",
    "GearDefinition",
    "RankDefinition",
    "ReferenceData",
    # Advancement
    "AttributeAdvance",
    "SkillAdvance",
    "EdgeAdvance",
    "HindranceAdvance",
    "AdvanceProposal",
    "parse_advance_proposal",
    # Character
    "SelectedEdge",
    "SelectedHindrance",
    "SelectedArcaneBackground",
    "SelectedPower",
    "SelectedGear",
    "PointCounters",
    "AdvanceRecord",
    "CharacterSnapshot",
]
