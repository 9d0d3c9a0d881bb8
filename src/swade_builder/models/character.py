"""Character snapshot and the records it is made of.

A :class:`CharacterSnapshot` is an immutable value. The ledger and the
advancement machine never modify one in place; every accepted mutation
yields a new snapshot built with :meth:`CharacterSnapshot.evolve`, so a
caller can discard a proposed change simply by dropping the new value.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from swade_builder.models.advancement import AdvanceProposal
from swade_builder.models.die import Die
from swade_builder.models.enums import Provenance
from swade_builder.models.modifiers import Modifier


NonNegativeInt = Annotated[int, Field(ge=0)]


# =============================================================================
# Selections
# =============================================================================


class SelectedEdge(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    edge_id: str
    provenance: Provenance = Provenance.CHOSEN
    notes: str = ""


class SelectedHindrance(BaseModel):
    """A held hindrance.

    Attributes:
        hindrance_id: Reference id.
        provenance: ``chosen`` hindrances earn hindrance points; ancestry,
            arcane background and reduced hindrances do not.
        granted_by: Id of the arcane background that brought the
            hindrance, if any.
        removal_progress: Advances already banked toward removing a major
            hindrance that has no minor companion.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    hindrance_id: str
    provenance: Provenance = Provenance.CHOSEN
    granted_by: str | None = None
    removal_progress: NonNegativeInt = 0


class SelectedArcaneBackground(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    arcane_background_id: str
    provenance: Provenance = Provenance.CHOSEN


class SelectedPower(BaseModel):
    """A known power; locked powers came with the background and stay with it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    power_id: str
    arcane_background_id: str
    provenance: Provenance = Provenance.ARCANE_BACKGROUND
    is_locked: bool = False


class SelectedGear(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    gear_id: str
    quantity: Annotated[int, Field(ge=1)] = 1
    is_equipped: bool = True
    provenance: Provenance = Provenance.CHOSEN


# =============================================================================
# Counters and History
# =============================================================================


class PointCounters(BaseModel):
    """Creation-phase point bookkeeping.

    Hindrance point allocations are stored in hindrance points, not in the
    benefit they buy.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    attribute_points_spent: NonNegativeInt = 0
    skill_points_spent: NonNegativeInt = 0
    hindrance_points_earned: NonNegativeInt = 0
    hindrance_points_to_edges: NonNegativeInt = 0
    hindrance_points_to_attributes: NonNegativeInt = 0
    hindrance_points_to_skills: NonNegativeInt = 0
    hindrance_points_to_wealth: NonNegativeInt = 0

    @property
    def hindrance_points_allocated(self) -> int:
        return (
            self.hindrance_points_to_edges
            + self.hindrance_points_to_attributes
            + self.hindrance_points_to_skills
            + self.hindrance_points_to_wealth
        )


class AdvanceRecord(BaseModel):
    """One committed advance and what it replaced.

    The ``previous_*`` fields hold exactly the state the advance overwrote,
    so undoing the newest advance restores the prior snapshot contents.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    advance_number: Annotated[int, Field(ge=1)]
    proposal: AdvanceProposal
    description: str = ""
    previous_attribute_die: Die | None = None
    previous_skill_dies: dict[str, Die | None] = Field(default_factory=dict)
    previous_hindrances: tuple[SelectedHindrance, ...] | None = None


# =============================================================================
# Snapshot
# =============================================================================


class CharacterSnapshot(BaseModel):
    """Complete state of one character at one moment.

    Attributes:
        name: Character name.
        is_wild_card: Whether the character is a Wild Card.
        ancestry_id: Attached ancestry, if any.
        attributes: Attribute id to current base die.
        skills: Skill id to current die; ``None`` or absent is untrained.
        attribute_step_costs: Points paid for each purchased attribute step.
        skill_step_costs: Points paid for each purchased skill step, in
            purchase order. Lowering refunds the last entry exactly.
        edges: Selected edges.
        hindrances: Held hindrances.
        arcane_backgrounds: Selected arcane backgrounds.
        powers: Known powers.
        gear: Owned gear.
        modifiers: Modifiers attached directly to the character.
        counters: Creation point counters.
        wealth: Funds on hand.
        power_points: Power points before modifiers.
        pending_advances: Advances granted in play and not yet spent.
        advances: Committed advances, oldest first.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    is_wild_card: bool = True
    ancestry_id: str | None = None
    attributes: dict[str, Die] = Field(default_factory=dict)
    skills: dict[str, Die | None] = Field(default_factory=dict)
    attribute_step_costs: dict[str, tuple[int, ...]] = Field(default_factory=dict)
    skill_step_costs: dict[str, tuple[int, ...]] = Field(default_factory=dict)
    edges: tuple[SelectedEdge, ...] = ()
    hindrances: tuple[SelectedHindrance, ...] = ()
    arcane_backgrounds: tuple[SelectedArcaneBackground, ...] = ()
    powers: tuple[SelectedPower, ...] = ()
    gear: tuple[SelectedGear, ...] = ()
    modifiers: tuple[Modifier, ...] = ()
    counters: PointCounters = Field(default_factory=PointCounters)
    wealth: int = 0
    power_points: NonNegativeInt = 0
    pending_advances: NonNegativeInt = 0
    advances: tuple[AdvanceRecord, ...] = ()

    def evolve(self, **changes: Any) -> CharacterSnapshot:
        """Return a copy with ``changes`` applied."""
        return self.model_copy(update=changes)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def skill_die(self, skill_id: str) -> Die | None:
        return self.skills.get(skill_id)

    def edge_count(self, edge_id: str) -> int:
        return sum(1 for edge in self.edges if edge.edge_id == edge_id)

    def has_edge(self, edge_id: str) -> bool:
        return self.edge_count(edge_id) > 0

    def hindrance(self, hindrance_id: str) -> SelectedHindrance | None:
        for held in self.hindrances:
            if held.hindrance_id == hindrance_id:
                return held
        return None

    def has_hindrance(self, hindrance_id: str) -> bool:
        return self.hindrance(hindrance_id) is not None

    def has_arcane_background(self, arcane_background_id: str | None = None) -> bool:
        if arcane_background_id is None:
            return bool(self.arcane_backgrounds)
        return any(
            selected.arcane_background_id == arcane_background_id
            for selected in self.arcane_backgrounds
        )

    def has_power(self, power_id: str) -> bool:
        return any(power.power_id == power_id for power in self.powers)

    @property
    def power_count(self) -> int:
        return len(self.powers)

    @property
    def advance_count(self) -> int:
        return len(self.advances)

    @property
    def last_advance(self) -> AdvanceRecord | None:
        return self.advances[-1] if self.advances else None


__all__ = [
    "SelectedEdge",
    "SelectedHindrance",
    "SelectedArcaneBackground",
    "SelectedPower",
    "SelectedGear",
    "PointCounters",
    "AdvanceRecord",
    "CharacterSnapshot",
]
