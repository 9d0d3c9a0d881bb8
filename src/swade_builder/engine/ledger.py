"""Point and cost ledger for character creation.

The ledger validates single-step mutations against the creation budgets in
:class:`~swade_builder.core.config.GameConfig` and returns a
:class:`~swade_builder.engine.results.MutationResult` for each: a new
snapshot when accepted, or the untouched input plus a typed rejection.

Skill step pricing is decided per step at the moment of the increment: a
step whose resulting die is at or below the linked attribute's effective
die is cheap, otherwise expensive. The paid cost is recorded with the step
and refunded exactly when that step is lowered, so later attribute changes
never re-price earlier purchases.

Example:
    >>> ledger = CreationLedger(reference, GameConfig())
    >>> hero = ledger.new_character("Red")
    >>> result = ledger.raise_attribute(hero, "agility")
    >>> result.accepted, str(result.snapshot.attributes["agility"])
    (True, 'd6')
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from swade_builder.core.config import GameConfig
from swade_builder.core.exceptions import (
    AdvancementRuleViolationError,
    CompanionConflictError,
    DuplicateSelectionError,
    InsufficientPointsError,
    InvalidDieSizeError,
    NotFoundError,
    RequirementNotMetError,
    ValidationError,
)
from swade_builder.core.logging import get_logger
from swade_builder.engine.modifiers import (
    effective_attribute_die,
    gather_modifiers,
    total_for_type,
    trait_ceiling,
)
from swade_builder.engine.requirements import RequirementContext, evaluate, unmet_requirements
from swade_builder.engine.results import MutationResult, RuleChecks, run_mutation
from swade_builder.models.character import (
    CharacterSnapshot,
    SelectedArcaneBackground,
    SelectedEdge,
    SelectedGear,
    SelectedHindrance,
    SelectedPower,
)
from swade_builder.models.die import Die
from swade_builder.models.enums import HindrancePointTarget, Provenance, Severity, TargetType
from swade_builder.models.modifiers import Modifier
from swade_builder.models.reference import (
    AncestryDefinition,
    ArcaneBackgroundDefinition,
    HindranceDefinition,
    ReferenceData,
    ReferenceEntity,
    SkillDefinition,
)


logger = get_logger(__name__)

_CREATION_EDGE_PROVENANCES = (Provenance.CHOSEN, Provenance.HINDRANCE_POINTS)


class PointBudget(BaseModel):
    """Creation budgets of one character.

    Totals include modifier extras and benefits bought with hindrance
    points. Remaining values go negative only after bypassed mutations.
    """

    model_config = ConfigDict(frozen=True)

    attribute_points_total: int
    attribute_points_spent: int
    skill_points_total: int
    skill_points_spent: int
    hindrance_points_earned: int
    hindrance_points_usable: int
    hindrance_points_allocated: int
    edge_slots_total: int
    edge_slots_used: int
    power_slots_total: int
    power_slots_used: int
    power_points: int
    wealth: int

    @property
    def attribute_points_remaining(self) -> int:
        return self.attribute_points_total - self.attribute_points_spent

    @property
    def skill_points_remaining(self) -> int:
        return self.skill_points_total - self.skill_points_spent

    @property
    def hindrance_points_available(self) -> int:
        return self.hindrance_points_usable - self.hindrance_points_allocated

    @property
    def edge_slots_remaining(self) -> int:
        return self.edge_slots_total - self.edge_slots_used

    @property
    def power_slots_remaining(self) -> int:
        return self.power_slots_total - self.power_slots_used


def price_skill_step(new_die: Die, linked_attribute_die: Die, config: GameConfig) -> int:
    """Cost of a skill step ending at ``new_die``."""
    if new_die <= linked_attribute_die:
        return config.skill_cost_at_or_below_attribute
    return config.skill_cost_above_attribute


class CreationLedger:
    """Validates and applies creation-phase mutations.

    Every mutating method accepts ``bypass_budget`` (point checks become
    warnings, for GM and editor flows) and ``bypass_requirements``
    (requirement, ceiling and cadence checks become warnings).

    Args:
        reference: Reference data shared for the session.
        config: Rule constants.
    """

    def __init__(self, reference: ReferenceData, config: GameConfig) -> None:
        self.reference = reference
        self.config = config

    # =========================================================================
    # Creation and budget
    # =========================================================================

    def new_character(self, name: str, *, is_wild_card: bool = True) -> CharacterSnapshot:
        """Start a character with base attributes and core skills."""
        snapshot = CharacterSnapshot(
            name=name,
            is_wild_card=is_wild_card,
            attributes={
                attribute.id: attribute.base_die for attribute in self.reference.attributes.values()
            },
            skills={
                skill.id: skill.starting_die
                for skill in self.reference.skills.values()
                if skill.is_core_skill
            },
            wealth=self.config.starting_wealth,
        )
        logger.info("Character created", character=name, wild_card=is_wild_card)
        return snapshot

    def budget(
        self, snapshot: CharacterSnapshot, modifiers: Iterable[Modifier] | None = None
    ) -> PointBudget:
        """Report earned, spent and remaining points."""
        mods = self._modifiers(snapshot, modifiers)
        counters = snapshot.counters
        config = self.config
        return PointBudget(
            attribute_points_total=(
                config.starting_attribute_points
                + total_for_type(TargetType.ATTRIBUTE_POINTS, mods)
                + counters.hindrance_points_to_attributes
                // config.hindrance_points_per_attribute_point
            ),
            attribute_points_spent=counters.attribute_points_spent,
            skill_points_total=(
                config.starting_skill_points
                + total_for_type(TargetType.SKILL_POINTS, mods)
                + counters.hindrance_points_to_skills // config.hindrance_points_per_skill_point
            ),
            skill_points_spent=counters.skill_points_spent,
            hindrance_points_earned=counters.hindrance_points_earned,
            hindrance_points_usable=min(
                counters.hindrance_points_earned, config.max_hindrance_points
            ),
            hindrance_points_allocated=counters.hindrance_points_allocated,
            edge_slots_total=(
                counters.hindrance_points_to_edges // config.hindrance_points_per_edge
                + total_for_type(TargetType.EDGE_CHOICE, mods)
            ),
            edge_slots_used=sum(
                1 for edge in snapshot.edges if edge.provenance in _CREATION_EDGE_PROVENANCES
            ),
            power_slots_total=(
                sum(
                    self.reference.arcane_background(selected.arcane_background_id).starting_powers
                    for selected in snapshot.arcane_backgrounds
                )
                + total_for_type(TargetType.POWER_SLOTS, mods)
            ),
            power_slots_used=snapshot.power_count,
            power_points=snapshot.power_points + total_for_type(TargetType.POWER_POINTS, mods),
            wealth=snapshot.wealth + total_for_type(TargetType.WEALTH, mods),
        )

    # =========================================================================
    # Attributes
    # =========================================================================

    def raise_attribute(
        self,
        snapshot: CharacterSnapshot,
        attribute_id: str,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Raise an attribute one step for one attribute point."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            self.reference.attribute(attribute_id)
            self._check_creation_open(snapshot, checks)
            current = self._attribute_die(snapshot, attribute_id)
            mods = gather_modifiers(snapshot, self.reference)
            new_die = current.increment()
            ceiling = trait_ceiling(Die.of(self.config.max_attribute_die), attribute_id, mods)
            if new_die > ceiling:
                checks.rule(
                    InvalidDieSizeError(
                        f"{attribute_id} cannot exceed {ceiling}",
                        details={"die": str(new_die), "ceiling": str(ceiling)},
                    )
                )
            remaining = self.budget(snapshot, mods).attribute_points_remaining
            if remaining < 1:
                checks.budget(
                    InsufficientPointsError(
                        "Not enough attribute points", needed=1, available=remaining
                    )
                )
            counters = snapshot.counters
            return snapshot.evolve(
                attributes={**snapshot.attributes, attribute_id: new_die},
                attribute_step_costs={
                    **snapshot.attribute_step_costs,
                    attribute_id: (*snapshot.attribute_step_costs.get(attribute_id, ()), 1),
                },
                counters=counters.model_copy(
                    update={"attribute_points_spent": counters.attribute_points_spent + 1}
                ),
            )

        return run_mutation(
            "raise_attribute",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def lower_attribute(
        self,
        snapshot: CharacterSnapshot,
        attribute_id: str,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Lower an attribute one step, refunding the step's cost.

        Edges taken during creation whose requirements no longer hold are
        removed, returning their hindrance point allocation.
        """

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            self._check_creation_open(snapshot, checks)
            lowered = self._lowered_attribute(snapshot, attribute_id)
            return self._settle(snapshot, lowered, checks)

        return run_mutation(
            "lower_attribute",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def _lowered_attribute(self, snapshot: CharacterSnapshot, attribute_id: str) -> CharacterSnapshot:
        base_die = self.reference.attribute(attribute_id).base_die
        current = self._attribute_die(snapshot, attribute_id)
        if current <= base_die:
            raise InvalidDieSizeError(
                f"{attribute_id} cannot go below {base_die}",
                details={"die": str(current), "floor": str(base_die)},
            )
        costs = snapshot.attribute_step_costs.get(attribute_id, ())
        refund = costs[-1] if costs else 0
        counters = snapshot.counters
        return snapshot.evolve(
            attributes={**snapshot.attributes, attribute_id: current.decrement()},
            attribute_step_costs={**snapshot.attribute_step_costs, attribute_id: costs[:-1]},
            counters=counters.model_copy(
                update={
                    "attribute_points_spent": max(0, counters.attribute_points_spent - refund)
                }
            ),
        )

    # =========================================================================
    # Skills
    # =========================================================================

    def skill_ceiling(
        self, skill_id: str, modifiers: Iterable[Modifier] = ()
    ) -> Die:
        """Highest die a skill may reach, special edges included."""
        skill = self.reference.skill(skill_id)
        default_max = min(skill.max_die, Die.of(self.config.max_skill_die))
        return trait_ceiling(default_max, skill_id, modifiers)

    def next_skill_step_cost(
        self,
        snapshot: CharacterSnapshot,
        skill_id: str,
        modifiers: Iterable[Modifier] | None = None,
        *,
        current: Die | None = None,
    ) -> int:
        """Price of raising a skill one step from ``current`` (its die by default)."""
        mods = self._modifiers(snapshot, modifiers)
        skill = self.reference.skill(skill_id)
        base = current if current is not None else snapshot.skill_die(skill_id)
        new_die = Die.d4() if base is None else base.increment()
        linked = effective_attribute_die(snapshot, skill.linked_attribute_id, mods)
        return price_skill_step(new_die, linked, self.config)

    def raise_skill(
        self,
        snapshot: CharacterSnapshot,
        skill_id: str,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Raise a skill one step; an untrained skill becomes d4."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            self.reference.skill(skill_id)
            self._check_creation_open(snapshot, checks)
            mods = gather_modifiers(snapshot, self.reference)
            current = snapshot.skill_die(skill_id)
            new_die = Die.d4() if current is None else current.increment()
            ceiling = self.skill_ceiling(skill_id, mods)
            if new_die > ceiling:
                checks.rule(
                    InvalidDieSizeError(
                        f"{skill_id} cannot exceed {ceiling}",
                        details={"die": str(new_die), "ceiling": str(ceiling)},
                    )
                )
            cost = self.next_skill_step_cost(snapshot, skill_id, mods)
            remaining = self.budget(snapshot, mods).skill_points_remaining
            if cost > remaining:
                checks.budget(
                    InsufficientPointsError(
                        "Not enough skill points", needed=cost, available=remaining
                    )
                )
            counters = snapshot.counters
            logger.debug("Skill step priced", skill_id=skill_id, die=str(new_die), cost=cost)
            return snapshot.evolve(
                skills={**snapshot.skills, skill_id: new_die},
                skill_step_costs={
                    **snapshot.skill_step_costs,
                    skill_id: (*snapshot.skill_step_costs.get(skill_id, ()), cost),
                },
                counters=counters.model_copy(
                    update={"skill_points_spent": counters.skill_points_spent + cost}
                ),
            )

        return run_mutation(
            "raise_skill",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def lower_skill(
        self,
        snapshot: CharacterSnapshot,
        skill_id: str,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Undo the last purchased step of a skill, refunding what it cost."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            self._check_creation_open(snapshot, checks)
            lowered = self._lowered_skill(snapshot, skill_id)
            return self._settle(snapshot, lowered, checks)

        return run_mutation(
            "lower_skill",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def _lowered_skill(self, snapshot: CharacterSnapshot, skill_id: str) -> CharacterSnapshot:
        skill: SkillDefinition = self.reference.skill(skill_id)
        current = snapshot.skill_die(skill_id)
        costs = snapshot.skill_step_costs.get(skill_id, ())
        if current is None:
            raise InvalidDieSizeError(
                f"{skill_id} is untrained", details={"skill_id": skill_id}
            )
        if not costs:
            raise InvalidDieSizeError(
                f"{skill_id} cannot go below {current}",
                details={"die": str(current), "core_skill": skill.is_core_skill},
            )

        skills = dict(snapshot.skills)
        if current.is_floor:
            skills.pop(skill_id, None)
        else:
            skills[skill_id] = current.decrement()
        counters = snapshot.counters
        return snapshot.evolve(
            skills=skills,
            skill_step_costs={**snapshot.skill_step_costs, skill_id: costs[:-1]},
            counters=counters.model_copy(
                update={"skill_points_spent": max(0, counters.skill_points_spent - costs[-1])}
            ),
        )

    def edges_invalidated_by_lowering(self, snapshot: CharacterSnapshot, trait_id: str) -> list[str]:
        """Preview which creation edges lowering a trait one step would remove.

        Args:
            snapshot: The character.
            trait_id: Attribute or skill id.

        Returns:
            Ids of the edges that would be removed, in selection order.

        Raises:
            RuleViolation: If the trait cannot be lowered at all.
        """
        if trait_id in self.reference.attributes:
            lowered = self._lowered_attribute(snapshot, trait_id)
        else:
            lowered = self._lowered_skill(snapshot, trait_id)
        _, removed = self._prune_invalid_edges(lowered)
        return removed

    # =========================================================================
    # Hindrances
    # =========================================================================

    def _hindrance_points(self, hindrance: HindranceDefinition) -> int:
        if hindrance.severity is Severity.MAJOR:
            return self.config.major_hindrance_points
        return self.config.minor_hindrance_points

    def _check_hindrance_conflicts(self, snapshot: CharacterSnapshot, hindrance: HindranceDefinition) -> None:
        if snapshot.has_hindrance(hindrance.id):
            raise DuplicateSelectionError(
                f"{hindrance.name} is already taken", details={"hindrance_id": hindrance.id}
            )
        for held in snapshot.hindrances:
            held_def = self.reference.hindrance(held.hindrance_id)
            if hindrance.id == held_def.companion_hindrance_id or (
                held.hindrance_id == hindrance.companion_hindrance_id
            ):
                raise CompanionConflictError(
                    f"{hindrance.name} conflicts with {held_def.name}",
                    details={"hindrance_id": hindrance.id, "held_id": held.hindrance_id},
                )

    def add_hindrance(
        self,
        snapshot: CharacterSnapshot,
        hindrance_id: str,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Take a hindrance, earning minor or major hindrance points.

        Points past the cap are rejected in normal mode; under a budget
        bypass they are recorded as earned but never become usable.
        """

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            hindrance = self.reference.hindrance(hindrance_id)
            self._check_hindrance_conflicts(snapshot, hindrance)
            self._check_requirements(snapshot, hindrance, checks)
            points = self._hindrance_points(hindrance)
            counters = snapshot.counters
            earned = counters.hindrance_points_earned + points
            if earned > self.config.max_hindrance_points:
                checks.budget(
                    InsufficientPointsError(
                        f"Hindrance points would exceed the cap of {self.config.max_hindrance_points}",
                        needed=earned,
                        available=self.config.max_hindrance_points,
                    )
                )
            return snapshot.evolve(
                hindrances=(*snapshot.hindrances, SelectedHindrance(hindrance_id=hindrance_id)),
                counters=counters.model_copy(update={"hindrance_points_earned": earned}),
            )

        return run_mutation(
            "add_hindrance",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def remove_hindrance(
        self,
        snapshot: CharacterSnapshot,
        hindrance_id: str,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Drop a chosen hindrance and the points it earned."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            held = snapshot.hindrance(hindrance_id)
            if held is None:
                raise NotFoundError(
                    f"{hindrance_id} is not held", entity_type="hindrance", entity_id=hindrance_id
                )
            if held.provenance in (Provenance.ANCESTRY, Provenance.ARCANE_BACKGROUND):
                source = (
                    "the ancestry"
                    if held.provenance is Provenance.ANCESTRY
                    else f"arcane background {held.granted_by}"
                )
                raise RequirementNotMetError(
                    f"{hindrance_id} is granted by {source}",
                    details={"hindrance_id": hindrance_id, "provenance": str(held.provenance)},
                )
            counters = snapshot.counters
            earned = counters.hindrance_points_earned
            if held.provenance is Provenance.CHOSEN:
                earned -= self._hindrance_points(self.reference.hindrance(hindrance_id))
            usable = min(earned, self.config.max_hindrance_points)
            if counters.hindrance_points_allocated > usable:
                checks.budget(
                    InsufficientPointsError(
                        "Removing this hindrance would leave allocated points uncovered",
                        needed=counters.hindrance_points_allocated,
                        available=usable,
                    )
                )
            updated = snapshot.evolve(
                hindrances=tuple(h for h in snapshot.hindrances if h.hindrance_id != hindrance_id),
                counters=counters.model_copy(update={"hindrance_points_earned": max(0, earned)}),
            )
            return self._settle(snapshot, updated, checks)

        return run_mutation(
            "remove_hindrance",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def allocate_hindrance_points(
        self,
        snapshot: CharacterSnapshot,
        target: HindrancePointTarget | str,
        points: int,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Spend (or, with a negative amount, take back) hindrance points.

        Amounts are hindrance points and must be a multiple of the target's
        conversion rate. Points can only be taken back while what they
        bought is still unused.
        """

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            self._check_creation_open(snapshot, checks)
            try:
                parsed = HindrancePointTarget.parse(target)
            except ValidationError as exc:
                raise NotFoundError(
                    f"Unknown hindrance point target: {target}",
                    entity_type="hindrance_point_target",
                    entity_id=str(target),
                ) from exc
            rate = self._allocation_rate(parsed)
            if points % rate:
                raise InsufficientPointsError(
                    f"{parsed} takes hindrance points in multiples of {rate}",
                    needed=rate,
                    details={"points": points},
                )
            field = f"hindrance_points_to_{parsed.value}"
            counters = snapshot.counters
            allocated = getattr(counters, field)
            if points > 0:
                available = self.budget(snapshot).hindrance_points_available
                if points > available:
                    checks.budget(
                        InsufficientPointsError(
                            "Not enough hindrance points", needed=points, available=available
                        )
                    )
            elif -points > allocated:
                raise InsufficientPointsError(
                    f"Only {allocated} hindrance points are allocated to {parsed}",
                    needed=-points,
                    available=allocated,
                )

            wealth = snapshot.wealth
            if parsed is HindrancePointTarget.WEALTH:
                wealth += points * self.config.starting_wealth
            updated = snapshot.evolve(
                counters=counters.model_copy(update={field: allocated + points}),
                wealth=wealth,
            )
            if points < 0:
                self._check_allocation_still_covers(updated, parsed, checks)
            return updated

        return run_mutation(
            "allocate_hindrance_points",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def _allocation_rate(self, target: HindrancePointTarget) -> int:
        return {
            HindrancePointTarget.EDGES: self.config.hindrance_points_per_edge,
            HindrancePointTarget.ATTRIBUTES: self.config.hindrance_points_per_attribute_point,
            HindrancePointTarget.SKILLS: self.config.hindrance_points_per_skill_point,
            HindrancePointTarget.WEALTH: 1,
        }[target]

    def _check_allocation_still_covers(
        self, snapshot: CharacterSnapshot, target: HindrancePointTarget, checks: RuleChecks
    ) -> None:
        budget = self.budget(snapshot)
        shortfall = {
            HindrancePointTarget.EDGES: budget.edge_slots_remaining,
            HindrancePointTarget.ATTRIBUTES: budget.attribute_points_remaining,
            HindrancePointTarget.SKILLS: budget.skill_points_remaining,
            HindrancePointTarget.WEALTH: budget.wealth,
        }[target]
        if shortfall < 0:
            checks.budget(
                InsufficientPointsError(
                    f"Hindrance points allocated to {target} are already spent",
                    needed=-shortfall,
                    available=0,
                )
            )

    # =========================================================================
    # Edges
    # =========================================================================

    def add_edge(
        self,
        snapshot: CharacterSnapshot,
        edge_id: str,
        *,
        notes: str = "",
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Take an edge with a free edge choice or a hindrance point allocation."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            edge = self.reference.edge(edge_id)
            if snapshot.has_edge(edge_id) and not edge.can_take_multiple_times:
                raise DuplicateSelectionError(
                    f"{edge.name} is already taken", details={"edge_id": edge_id}
                )
            mods = gather_modifiers(snapshot, self.reference)
            self._check_requirements(snapshot, edge, checks, mods)

            free_slots = total_for_type(TargetType.EDGE_CHOICE, mods)
            free_used = sum(1 for e in snapshot.edges if e.provenance is Provenance.CHOSEN)
            if free_used < free_slots:
                provenance = Provenance.CHOSEN
            else:
                provenance = Provenance.HINDRANCE_POINTS
                budget = self.budget(snapshot, mods)
                if budget.edge_slots_remaining < 1:
                    checks.budget(
                        InsufficientPointsError(
                            "No edge allocation available; allocate hindrance points to edges first",
                            needed=self.config.hindrance_points_per_edge,
                            available=budget.hindrance_points_available,
                        )
                    )
            return snapshot.evolve(
                edges=(*snapshot.edges, SelectedEdge(edge_id=edge_id, provenance=provenance, notes=notes))
            )

        return run_mutation(
            "add_edge",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def remove_edge(
        self,
        snapshot: CharacterSnapshot,
        edge_id: str,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Remove the most recent creation selection of an edge."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            for index in range(len(snapshot.edges) - 1, -1, -1):
                selected = snapshot.edges[index]
                if selected.edge_id == edge_id and selected.provenance in _CREATION_EDGE_PROVENANCES:
                    updated = self._without_edge_at(snapshot, index)
                    return self._settle(snapshot, updated, checks)
            raise NotFoundError(
                f"No removable selection of {edge_id}", entity_type="edge", entity_id=edge_id
            )

        return run_mutation(
            "remove_edge",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def _without_edge_at(self, snapshot: CharacterSnapshot, index: int) -> CharacterSnapshot:
        selected = snapshot.edges[index]
        counters = snapshot.counters
        if selected.provenance is Provenance.HINDRANCE_POINTS:
            counters = counters.model_copy(
                update={
                    "hindrance_points_to_edges": max(
                        0, counters.hindrance_points_to_edges - self.config.hindrance_points_per_edge
                    )
                }
            )
        return snapshot.evolve(
            edges=snapshot.edges[:index] + snapshot.edges[index + 1 :],
            counters=counters,
        )

    def _prune_invalid_edges(self, snapshot: CharacterSnapshot) -> tuple[CharacterSnapshot, list[str]]:
        """Drop creation edges whose requirements fail, until none do."""
        removed: list[str] = []
        while True:
            context = RequirementContext.from_snapshot(snapshot, self.reference)
            for index, selected in enumerate(snapshot.edges):
                if selected.provenance not in _CREATION_EDGE_PROVENANCES:
                    continue
                if not evaluate(self.reference.edge(selected.edge_id).requirements, context):
                    snapshot = self._without_edge_at(snapshot, index)
                    removed.append(selected.edge_id)
                    logger.info("Edge removed after its requirements failed", edge_id=selected.edge_id)
                    break
            else:
                return snapshot, removed

    # =========================================================================
    # Ancestry
    # =========================================================================

    def set_ancestry(
        self,
        snapshot: CharacterSnapshot,
        ancestry_id: str,
        *,
        hindrance_choices: Iterable[str] = (),
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Attach an ancestry, replacing any previous one.

        Granted edges and hindrances are attached with ``ancestry``
        provenance; granted hindrances earn no points. An ancestry that
        offers a hindrance choice needs exactly its number of picks from
        its options, and the picks are attached the same way.

        Replacing or clearing an ancestry prunes creation edges whose
        requirements fail and refuses changes that would overdraw a pool
        the old ancestry paid for.

        Args:
            snapshot: The character.
            ancestry_id: Ancestry to attach.
            hindrance_choices: Picks from the ancestry's hindrance options.
            bypass_budget: Turn budget failures into warnings.
            bypass_requirements: Turn requirement failures into warnings.

        Returns:
            The accepted or rejected result.
        """
        choices = tuple(hindrance_choices)

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            ancestry = self.reference.ancestry(ancestry_id)
            self._check_ancestry_choices(ancestry, choices)
            base = self._without_ancestry(snapshot)
            self._check_requirements(base, ancestry, checks)
            hindrances = list(base.hindrances)
            for hindrance_id in (*ancestry.granted_hindrance_ids, *choices):
                hindrance = self.reference.hindrance(hindrance_id)
                self._check_hindrance_conflicts(base.evolve(hindrances=tuple(hindrances)), hindrance)
                hindrances.append(
                    SelectedHindrance(hindrance_id=hindrance_id, provenance=Provenance.ANCESTRY)
                )
            edges = list(base.edges)
            for edge_id in ancestry.granted_edge_ids:
                self.reference.edge(edge_id)
                edges.append(SelectedEdge(edge_id=edge_id, provenance=Provenance.ANCESTRY))
            updated = base.evolve(
                ancestry_id=ancestry_id, edges=tuple(edges), hindrances=tuple(hindrances)
            )
            return self._settle(snapshot, updated, checks)

        return run_mutation(
            "set_ancestry",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    @staticmethod
    def _check_ancestry_choices(ancestry: AncestryDefinition, choices: tuple[str, ...]) -> None:
        expected = ancestry.required_hindrance_choices
        if len(choices) != expected or len(set(choices)) != len(choices):
            raise RequirementNotMetError(
                f"{ancestry.name} needs {expected} distinct hindrance choice(s)",
                unmet=[f"Choose {expected} of: {', '.join(ancestry.hindrance_options)}"],
                details={"choices": list(choices)},
            )
        offered = [c for c in choices if c not in ancestry.hindrance_options]
        if offered:
            raise RequirementNotMetError(
                f"{', '.join(offered)} is not offered by {ancestry.name}",
                details={"options": list(ancestry.hindrance_options)},
            )

    def clear_ancestry(
        self,
        snapshot: CharacterSnapshot,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Detach the ancestry and everything it granted."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            if snapshot.ancestry_id is None:
                raise NotFoundError("No ancestry is set", entity_type="ancestry")
            return self._settle(snapshot, self._without_ancestry(snapshot), checks)

        return run_mutation(
            "clear_ancestry",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    @staticmethod
    def _without_ancestry(snapshot: CharacterSnapshot) -> CharacterSnapshot:
        return snapshot.evolve(
            ancestry_id=None,
            edges=tuple(e for e in snapshot.edges if e.provenance is not Provenance.ANCESTRY),
            hindrances=tuple(
                h for h in snapshot.hindrances if h.provenance is not Provenance.ANCESTRY
            ),
        )

    # =========================================================================
    # Arcane backgrounds and powers
    # =========================================================================

    def add_arcane_background(
        self,
        snapshot: CharacterSnapshot,
        arcane_background_id: str,
        *,
        starting_power_ids: Iterable[str] = (),
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Take an arcane background with everything it brings.

        Built-in hindrances are attached with ``arcane_background``
        provenance and earn no points. Required starting powers are
        attached locked. ``starting_power_ids`` picks from the
        background's starting power options, up to its selection limit.
        Every starting power occupies a power slot.
        """
        picks = tuple(starting_power_ids)

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            background = self.reference.arcane_background(arcane_background_id)
            if snapshot.has_arcane_background(arcane_background_id):
                raise DuplicateSelectionError(
                    f"{background.name} is already taken",
                    details={"arcane_background_id": arcane_background_id},
                )
            self._check_starting_power_picks(background, picks)
            self._check_requirements(snapshot, background, checks)

            hindrances = list(snapshot.hindrances)
            for hindrance_id in background.built_in_hindrance_ids:
                hindrance = self.reference.hindrance(hindrance_id)
                self._check_hindrance_conflicts(snapshot.evolve(hindrances=tuple(hindrances)), hindrance)
                hindrances.append(
                    SelectedHindrance(
                        hindrance_id=hindrance_id,
                        provenance=Provenance.ARCANE_BACKGROUND,
                        granted_by=arcane_background_id,
                    )
                )

            powers = list(snapshot.powers)
            for power_id, locked in (
                *((p, True) for p in background.required_power_ids),
                *((p, False) for p in picks),
            ):
                power = self.reference.power(power_id)
                if any(p.power_id == power_id for p in powers):
                    raise DuplicateSelectionError(
                        f"{power.name} is already known", details={"power_id": power_id}
                    )
                powers.append(
                    SelectedPower(
                        power_id=power_id,
                        arcane_background_id=arcane_background_id,
                        is_locked=locked,
                    )
                )

            updated = snapshot.evolve(
                arcane_backgrounds=(
                    *snapshot.arcane_backgrounds,
                    SelectedArcaneBackground(arcane_background_id=arcane_background_id),
                ),
                hindrances=tuple(hindrances),
                powers=tuple(powers),
                power_points=snapshot.power_points + background.starting_power_points,
            )
            self._check_not_overdrawn(snapshot, updated, checks)
            logger.debug(
                "Arcane background attached",
                arcane_background_id=arcane_background_id,
                hindrances=list(background.built_in_hindrance_ids),
                powers=[p.power_id for p in powers if p.arcane_background_id == arcane_background_id],
            )
            return updated

        return run_mutation(
            "add_arcane_background",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    @staticmethod
    def _check_starting_power_picks(background: ArcaneBackgroundDefinition, picks: tuple[str, ...]) -> None:
        if len(picks) > background.starting_power_selections or len(set(picks)) != len(picks):
            raise RequirementNotMetError(
                f"{background.name} offers at most {background.starting_power_selections} "
                "distinct starting power choice(s)",
                details={"picks": list(picks)},
            )
        offered = [p for p in picks if p not in background.starting_power_options]
        if offered:
            raise RequirementNotMetError(
                f"{', '.join(offered)} is not a starting power option of {background.name}",
                details={"options": list(background.starting_power_options)},
            )

    def remove_arcane_background(
        self,
        snapshot: CharacterSnapshot,
        arcane_background_id: str,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Drop an arcane background with its powers and built-in hindrances."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            if not snapshot.has_arcane_background(arcane_background_id):
                raise NotFoundError(
                    f"{arcane_background_id} is not held",
                    entity_type="arcane_background",
                    entity_id=arcane_background_id,
                )
            background = self.reference.arcane_background(arcane_background_id)
            updated = snapshot.evolve(
                arcane_backgrounds=tuple(
                    s
                    for s in snapshot.arcane_backgrounds
                    if s.arcane_background_id != arcane_background_id
                ),
                hindrances=tuple(
                    h
                    for h in snapshot.hindrances
                    if not (
                        h.provenance is Provenance.ARCANE_BACKGROUND
                        and h.granted_by == arcane_background_id
                    )
                ),
                powers=tuple(
                    p for p in snapshot.powers if p.arcane_background_id != arcane_background_id
                ),
                power_points=max(0, snapshot.power_points - background.starting_power_points),
            )
            return self._settle(snapshot, updated, checks)

        return run_mutation(
            "remove_arcane_background",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def add_power(
        self,
        snapshot: CharacterSnapshot,
        power_id: str,
        arcane_background_id: str | None = None,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Learn a power through an arcane background.

        When ``arcane_background_id`` is omitted, the first held background
        whose power list allows the power is used.
        """

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            power = self.reference.power(power_id)
            if snapshot.has_power(power_id):
                raise DuplicateSelectionError(
                    f"{power.name} is already known", details={"power_id": power_id}
                )
            background_id = self._background_for_power(snapshot, power_id, arcane_background_id)
            mods = gather_modifiers(snapshot, self.reference)
            self._check_requirements(snapshot, power, checks, mods)
            budget = self.budget(snapshot, mods)
            if budget.power_slots_remaining < 1:
                checks.budget(
                    InsufficientPointsError(
                        "No power slots left", needed=1, available=budget.power_slots_remaining
                    )
                )
            return snapshot.evolve(
                powers=(
                    *snapshot.powers,
                    SelectedPower(power_id=power_id, arcane_background_id=background_id),
                )
            )

        return run_mutation(
            "add_power",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def _background_for_power(
        self, snapshot: CharacterSnapshot, power_id: str, arcane_background_id: str | None
    ) -> str:
        if arcane_background_id is not None:
            if not snapshot.has_arcane_background(arcane_background_id):
                raise NotFoundError(
                    f"{arcane_background_id} is not held",
                    entity_type="arcane_background",
                    entity_id=arcane_background_id,
                )
            candidates = [arcane_background_id]
        else:
            candidates = [s.arcane_background_id for s in snapshot.arcane_backgrounds]
        if not candidates:
            raise RequirementNotMetError(
                f"{power_id} requires an arcane background",
                unmet=["Arcane Background (any)"],
            )
        for candidate in candidates:
            if self.reference.arcane_background(candidate).allows_power(power_id):
                return candidate
        raise RequirementNotMetError(
            f"{power_id} is not on the power list of {', '.join(candidates)}",
            details={"power_id": power_id},
        )

    def remove_power(
        self,
        snapshot: CharacterSnapshot,
        power_id: str,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Forget a power; powers locked in by their background stay unless bypassed."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            held = next((p for p in snapshot.powers if p.power_id == power_id), None)
            if held is None:
                raise NotFoundError(
                    f"{power_id} is not known", entity_type="power", entity_id=power_id
                )
            if held.is_locked:
                checks.rule(
                    RequirementNotMetError(
                        f"{power_id} is a required power of {held.arcane_background_id}",
                        details={"power_id": power_id},
                    )
                )
            updated = snapshot.evolve(
                powers=tuple(p for p in snapshot.powers if p.power_id != power_id)
            )
            return self._settle(snapshot, updated, checks)

        return run_mutation(
            "remove_power",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    # =========================================================================
    # Gear
    # =========================================================================

    def add_gear(
        self,
        snapshot: CharacterSnapshot,
        gear_id: str,
        quantity: int = 1,
        *,
        equipped: bool = True,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Buy gear from the character's funds."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            item = self.reference.gear_item(gear_id)
            if quantity < 1:
                raise InsufficientPointsError(
                    "Quantity must be at least 1", details={"quantity": quantity}
                )
            mods = gather_modifiers(snapshot, self.reference)
            self._check_requirements(snapshot, item, checks, mods)
            cost = item.cost * quantity
            funds = self.budget(snapshot, mods).wealth
            if cost > funds:
                checks.budget(InsufficientPointsError("Not enough funds", needed=cost, available=funds))

            owned = [g for g in snapshot.gear if g.gear_id != gear_id]
            existing = next((g for g in snapshot.gear if g.gear_id == gear_id), None)
            total = quantity + (existing.quantity if existing else 0)
            owned.append(SelectedGear(gear_id=gear_id, quantity=total, is_equipped=equipped))
            return snapshot.evolve(gear=tuple(owned), wealth=snapshot.wealth - cost)

        return run_mutation(
            "add_gear",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def remove_gear(
        self,
        snapshot: CharacterSnapshot,
        gear_id: str,
        quantity: int | None = None,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Return gear for a full refund; all of it when ``quantity`` is omitted."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            existing = next((g for g in snapshot.gear if g.gear_id == gear_id), None)
            if existing is None:
                raise NotFoundError(f"{gear_id} is not owned", entity_type="gear", entity_id=gear_id)
            removed = existing.quantity if quantity is None else min(quantity, existing.quantity)
            kept = existing.quantity - removed
            gear = tuple(
                g if g.gear_id != gear_id else g.model_copy(update={"quantity": kept})
                for g in snapshot.gear
                if g.gear_id != gear_id or kept > 0
            )
            refund = self.reference.gear_item(gear_id).cost * removed
            updated = snapshot.evolve(gear=gear, wealth=snapshot.wealth + refund)
            return self._settle(snapshot, updated, checks)

        return run_mutation(
            "remove_gear",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def set_gear_equipped(
        self,
        snapshot: CharacterSnapshot,
        gear_id: str,
        equipped: bool,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Equip or unequip owned gear; only equipped gear grants modifiers."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            if not any(g.gear_id == gear_id for g in snapshot.gear):
                raise NotFoundError(f"{gear_id} is not owned", entity_type="gear", entity_id=gear_id)
            updated = snapshot.evolve(
                gear=tuple(
                    g.model_copy(update={"is_equipped": equipped}) if g.gear_id == gear_id else g
                    for g in snapshot.gear
                )
            )
            return self._settle(snapshot, updated, checks)

        return run_mutation(
            "set_gear_equipped",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_creation_open(self, snapshot: CharacterSnapshot, checks: RuleChecks) -> None:
        # Step costs recorded at creation no longer describe dice raised by advances.
        if snapshot.advances:
            checks.budget(
                AdvancementRuleViolationError(
                    "Creation points are closed once advances have been taken",
                    details={"advances": snapshot.advance_count},
                )
            )

    def _settle(
        self, before: CharacterSnapshot, updated: CharacterSnapshot, checks: RuleChecks
    ) -> CharacterSnapshot:
        """Prune edges that lost their requirements, then refuse new overdrafts."""
        pruned, _ = self._prune_invalid_edges(updated)
        self._check_not_overdrawn(before, pruned, checks)
        return pruned

    def _check_not_overdrawn(
        self, before: CharacterSnapshot, after: CharacterSnapshot, checks: RuleChecks
    ) -> None:
        """Fail a budget check for every pool the change drives further below zero.

        A pool that was already negative (after an earlier bypass) only fails
        when it drops further.
        """
        old, new = self.budget(before), self.budget(after)
        pools = {
            "attribute points": (old.attribute_points_remaining, new.attribute_points_remaining),
            "skill points": (old.skill_points_remaining, new.skill_points_remaining),
            "edge slots": (old.edge_slots_remaining, new.edge_slots_remaining),
            "power slots": (old.power_slots_remaining, new.power_slots_remaining),
            "wealth": (old.wealth, new.wealth),
        }
        for pool, (was, now) in pools.items():
            if now < 0 and now < was:
                checks.budget(
                    InsufficientPointsError(
                        f"This change would leave {-now} {pool} overspent",
                        needed=-now,
                        available=0,
                        details={"pool": pool},
                    )
                )

    def _modifiers(
        self, snapshot: CharacterSnapshot, modifiers: Iterable[Modifier] | None
    ) -> tuple[Modifier, ...]:
        if modifiers is None:
            return gather_modifiers(snapshot, self.reference)
        return tuple(modifiers)

    @staticmethod
    def _attribute_die(snapshot: CharacterSnapshot, attribute_id: str) -> Die:
        try:
            return snapshot.attributes[attribute_id]
        except KeyError:
            raise NotFoundError(
                f"Character has no attribute {attribute_id}",
                entity_type="attribute",
                entity_id=attribute_id,
            ) from None

    def _check_requirements(
        self,
        snapshot: CharacterSnapshot,
        entity: ReferenceEntity,
        checks: RuleChecks,
        modifiers: Iterable[Modifier] | None = None,
    ) -> None:
        context = RequirementContext.from_snapshot(snapshot, self.reference, modifiers)
        if not evaluate(entity.requirements, context):
            unmet = unmet_requirements(entity.requirements, context)
            checks.rule(
                RequirementNotMetError(
                    f"Requirements not met for {entity.name}: {', '.join(unmet)}",
                    unmet=unmet,
                )
            )


__all__ = [
    "PointBudget",
    "CreationLedger",
    "price_skill_step",
]
