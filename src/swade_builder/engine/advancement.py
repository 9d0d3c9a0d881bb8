"""Advancement state machine for post-creation leveling.

Each milestone reached in play grants one advance. An advance is a single
choice from a closed set of patterns (see
:mod:`swade_builder.models.advancement`); it is validated as a whole and
either committed to the advancement history or rejected, never applied in
part.

Per-advance lifecycle::

    NOT_STARTED --grant--> ADVANCE_AVAILABLE --commit--> ADVANCE_COMMITTED
                                 ^                              |
                                 +------------grant-------------+

Attribute cadence: an attribute advance may never follow another attribute
advance, and below Legendary at most one is allowed per rank (when
``attribute_advance_once_per_rank`` is set).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from swade_builder.core.config import GameConfig
from swade_builder.core.exceptions import (
    AdvancementRuleViolationError,
    DuplicateSelectionError,
    InvalidDieSizeError,
    NotFoundError,
    RequirementNotMetError,
    ValidationError,
)
from swade_builder.core.logging import get_logger
from swade_builder.engine.ledger import CreationLedger, price_skill_step
from swade_builder.engine.modifiers import (
    effective_attribute_die,
    gather_modifiers,
    trait_ceiling,
)
from swade_builder.engine.requirements import RequirementContext, evaluate, unmet_requirements
from swade_builder.engine.results import MutationResult, RuleChecks, run_mutation
from swade_builder.models.advancement import (
    AdvanceProposal,
    AttributeAdvance,
    EdgeAdvance,
    HindranceAdvance,
    SkillAdvance,
    parse_advance_proposal,
)
from swade_builder.models.character import AdvanceRecord, CharacterSnapshot, SelectedEdge, SelectedHindrance
from swade_builder.models.die import Die
from swade_builder.models.enums import AdvancementPhase, HindranceAction, Provenance
from swade_builder.models.modifiers import Modifier
from swade_builder.models.reference import RankDefinition, ReferenceData


logger = get_logger(__name__)


class HindranceOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    hindrance_id: str
    action: HindranceAction
    label: str


class AdvancementOptions(BaseModel):
    """What the next advance could be, for presentation."""

    model_config = ConfigDict(frozen=True)

    next_advance_number: int
    current_rank: str | None
    rank_after_advance: str | None
    attribute_advance_allowed: bool
    attribute_blocked_reason: str | None = None
    raisable_attributes: tuple[str, ...] = ()
    cheap_skills: tuple[str, ...] = ()
    expensive_skills: tuple[str, ...] = ()
    available_edges: tuple[str, ...] = ()
    hindrance_options: tuple[HindranceOption, ...] = ()


class AdvancementMachine:
    """Validates and commits advances.

    Args:
        reference: Reference data shared for the session.
        config: Rule constants.
    """

    def __init__(self, reference: ReferenceData, config: GameConfig) -> None:
        self.reference = reference
        self.config = config
        self._ledger = CreationLedger(reference, config)

    # =========================================================================
    # State
    # =========================================================================

    def phase(self, snapshot: CharacterSnapshot) -> AdvancementPhase:
        if snapshot.pending_advances > 0:
            return AdvancementPhase.ADVANCE_AVAILABLE
        if snapshot.advances:
            return AdvancementPhase.ADVANCE_COMMITTED
        return AdvancementPhase.NOT_STARTED

    def rank(self, snapshot: CharacterSnapshot) -> RankDefinition:
        """Rank resolved from the number of committed advances."""
        return self.reference.rank_for_advances(snapshot.advance_count)

    def grant_advance(self, snapshot: CharacterSnapshot) -> MutationResult:
        """Record that a milestone in play earned the character an advance."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            return snapshot.evolve(pending_advances=snapshot.pending_advances + 1)

        return run_mutation("grant_advance", snapshot, mutate)

    def parse_proposal(self, payload: Mapping[str, Any] | AdvanceProposal) -> AdvanceProposal:
        """Parse a raw payload into exactly one advance pattern.

        Raises:
            AdvancementRuleViolationError: If the payload matches no pattern.
        """
        if isinstance(payload, (AttributeAdvance, SkillAdvance, EdgeAdvance, HindranceAdvance)):
            return payload
        if not isinstance(payload, Mapping):
            raise AdvancementRuleViolationError(
                "Advance payload must be a mapping",
                details={"payload_type": type(payload).__name__},
            )
        try:
            return parse_advance_proposal(dict(payload))
        except (PydanticValidationError, ValidationError, TypeError, ValueError) as exc:
            raise AdvancementRuleViolationError(
                "Advance does not match any allowed pattern",
                details={"error": str(exc)},
            ) from exc

    # =========================================================================
    # Commit and undo
    # =========================================================================

    def commit(
        self,
        snapshot: CharacterSnapshot,
        proposal: Mapping[str, Any] | AdvanceProposal,
        *,
        bypass_budget: bool = False,
        bypass_requirements: bool = False,
    ) -> MutationResult:
        """Validate an advance as a whole and append it to the history.

        A pending advance is required unless ``bypass_budget`` is set.
        """

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            parsed = self.parse_proposal(proposal)
            number = snapshot.advance_count + 1
            if snapshot.pending_advances < 1:
                checks.budget(
                    AdvancementRuleViolationError(
                        "No advance is available", advance_number=number
                    )
                )
            mods = gather_modifiers(snapshot, self.reference)
            match parsed:
                case AttributeAdvance():
                    updated, record = self._attribute_advance(snapshot, parsed, number, mods, checks)
                case SkillAdvance():
                    updated, record = self._skill_advance(snapshot, parsed, number, mods, checks)
                case EdgeAdvance():
                    updated, record = self._edge_advance(snapshot, parsed, number, mods, checks)
                case HindranceAdvance():
                    updated, record = self._hindrance_advance(snapshot, parsed, number)
            logger.info(
                "Advance committed",
                advance_number=number,
                kind=parsed.kind,
                description=record.description,
            )
            return updated.evolve(
                advances=(*snapshot.advances, record),
                pending_advances=max(0, snapshot.pending_advances - 1),
            )

        return run_mutation(
            "commit_advance",
            snapshot,
            mutate,
            bypass_budget=bypass_budget,
            bypass_requirements=bypass_requirements,
        )

    def undo_last(self, snapshot: CharacterSnapshot) -> MutationResult:
        """Revert the newest advance exactly and re-open it."""

        def mutate(checks: RuleChecks) -> CharacterSnapshot:
            record = snapshot.last_advance
            if record is None:
                raise AdvancementRuleViolationError("There is no advance to undo")
            proposal = record.proposal
            updated = snapshot
            match proposal:
                case AttributeAdvance():
                    updated = updated.evolve(
                        attributes={
                            **updated.attributes,
                            proposal.attribute_id: record.previous_attribute_die,
                        }
                    )
                case SkillAdvance():
                    skills = dict(updated.skills)
                    for skill_id, previous in record.previous_skill_dies.items():
                        if previous is None:
                            skills.pop(skill_id, None)
                        else:
                            skills[skill_id] = previous
                    updated = updated.evolve(skills=skills)
                case EdgeAdvance():
                    edges = list(updated.edges)
                    for index in range(len(edges) - 1, -1, -1):
                        selected = edges[index]
                        if (
                            selected.edge_id == proposal.edge_id
                            and selected.provenance is Provenance.ADVANCEMENT
                        ):
                            del edges[index]
                            break
                    updated = updated.evolve(edges=tuple(edges))
                case HindranceAdvance():
                    updated = updated.evolve(hindrances=record.previous_hindrances or ())
            logger.info("Advance undone", advance_number=record.advance_number)
            return updated.evolve(
                advances=snapshot.advances[:-1],
                pending_advances=snapshot.pending_advances + 1,
            )

        return run_mutation("undo_advance", snapshot, mutate)

    # =========================================================================
    # Patterns
    # =========================================================================

    def attribute_cadence_violation(self, snapshot: CharacterSnapshot) -> str | None:
        """Why an attribute advance is not allowed next, or ``None``."""
        last = snapshot.last_advance
        if last is not None and isinstance(last.proposal, AttributeAdvance):
            return "Attributes cannot be raised on two consecutive advances"
        taken = snapshot.advance_count
        if not self.config.attribute_advance_once_per_rank:
            return None
        if taken >= self.config.legendary_rank_min_advances or not self.reference.ranks:
            return None
        current = self.reference.rank_for_advances(taken)
        for record in snapshot.advances:
            if not isinstance(record.proposal, AttributeAdvance):
                continue
            if self.reference.rank_for_advances(record.advance_number - 1).id == current.id:
                return f"An attribute was already raised during {current.name}"
        return None

    def _attribute_advance(
        self,
        snapshot: CharacterSnapshot,
        proposal: AttributeAdvance,
        number: int,
        mods: tuple[Modifier, ...],
        checks: RuleChecks,
    ) -> tuple[CharacterSnapshot, AdvanceRecord]:
        attribute_id = proposal.attribute_id
        self.reference.attribute(attribute_id)
        current = snapshot.attributes.get(attribute_id)
        if current is None:
            raise NotFoundError(
                f"Character has no attribute {attribute_id}",
                entity_type="attribute",
                entity_id=attribute_id,
            )
        reason = self.attribute_cadence_violation(snapshot)
        if reason is not None:
            checks.rule(AdvancementRuleViolationError(reason, advance_number=number))
        new_die = current.increment()
        ceiling = trait_ceiling(Die.of(self.config.max_attribute_die), attribute_id, mods)
        if new_die > ceiling:
            checks.rule(
                InvalidDieSizeError(
                    f"{attribute_id} cannot exceed {ceiling}",
                    details={"die": str(new_die), "ceiling": str(ceiling)},
                )
            )
        record = AdvanceRecord(
            advance_number=number,
            proposal=proposal,
            description=proposal.describe(),
            previous_attribute_die=current,
        )
        return snapshot.evolve(attributes={**snapshot.attributes, attribute_id: new_die}), record

    def _skill_advance(
        self,
        snapshot: CharacterSnapshot,
        proposal: SkillAdvance,
        number: int,
        mods: tuple[Modifier, ...],
        checks: RuleChecks,
    ) -> tuple[CharacterSnapshot, AdvanceRecord]:
        skills = dict(snapshot.skills)
        previous: dict[str, Die | None] = {}
        total_cost = 0
        for skill_id in proposal.skill_ids:
            skill = self.reference.skill(skill_id)
            current = skills.get(skill_id)
            previous.setdefault(skill_id, current)
            new_die = Die.d4() if current is None else current.increment()
            ceiling = self._ledger.skill_ceiling(skill_id, mods)
            if new_die > ceiling:
                checks.rule(
                    InvalidDieSizeError(
                        f"{skill_id} cannot exceed {ceiling}",
                        details={"die": str(new_die), "ceiling": str(ceiling)},
                    )
                )
            linked = effective_attribute_die(snapshot, skill.linked_attribute_id, mods)
            total_cost += price_skill_step(new_die, linked, self.config)
            skills[skill_id] = new_die

        if total_cost != self.config.skill_points_per_advance:
            checks.rule(
                AdvancementRuleViolationError(
                    f"A skill advance must spend exactly {self.config.skill_points_per_advance} "
                    f"skill points; this one costs {total_cost}",
                    advance_number=number,
                    details={"cost": total_cost},
                )
            )
        record = AdvanceRecord(
            advance_number=number,
            proposal=proposal,
            description=proposal.describe(),
            previous_skill_dies=previous,
        )
        return snapshot.evolve(skills=skills), record

    def _edge_advance(
        self,
        snapshot: CharacterSnapshot,
        proposal: EdgeAdvance,
        number: int,
        mods: tuple[Modifier, ...],
        checks: RuleChecks,
    ) -> tuple[CharacterSnapshot, AdvanceRecord]:
        edge = self.reference.edge(proposal.edge_id)
        if snapshot.has_edge(edge.id) and not edge.can_take_multiple_times:
            raise DuplicateSelectionError(
                f"{edge.name} is already taken", details={"edge_id": edge.id}
            )
        context = RequirementContext.from_snapshot(snapshot, self.reference, mods)
        if not evaluate(edge.requirements, context):
            unmet = unmet_requirements(edge.requirements, context)
            checks.rule(
                RequirementNotMetError(
                    f"Requirements not met for {edge.name}: {', '.join(unmet)}",
                    unmet=unmet,
                )
            )
        selected = SelectedEdge(edge_id=edge.id, provenance=Provenance.ADVANCEMENT, notes=proposal.notes)
        record = AdvanceRecord(advance_number=number, proposal=proposal, description=proposal.describe())
        return snapshot.evolve(edges=(*snapshot.edges, selected)), record

    def _hindrance_advance(
        self,
        snapshot: CharacterSnapshot,
        proposal: HindranceAdvance,
        number: int,
    ) -> tuple[CharacterSnapshot, AdvanceRecord]:
        held = snapshot.hindrance(proposal.hindrance_id)
        if held is None:
            raise NotFoundError(
                f"{proposal.hindrance_id} is not held",
                entity_type="hindrance",
                entity_id=proposal.hindrance_id,
            )
        hindrance = self.reference.hindrance(held.hindrance_id)
        allowed = self.hindrance_actions(held)
        if proposal.action not in allowed:
            raise AdvancementRuleViolationError(
                f"{proposal.action.label} is not possible for {hindrance.name}",
                advance_number=number,
                details={"allowed": [str(action) for action in allowed]},
            )

        others = tuple(h for h in snapshot.hindrances if h.hindrance_id != held.hindrance_id)
        match proposal.action:
            case HindranceAction.REMOVE_MINOR:
                hindrances = others
            case HindranceAction.REDUCE_MAJOR:
                reduced = SelectedHindrance(
                    hindrance_id=hindrance.companion_hindrance_id or "",
                    provenance=Provenance.ADVANCEMENT_REDUCED,
                )
                hindrances = tuple(
                    reduced if h.hindrance_id == held.hindrance_id else h
                    for h in snapshot.hindrances
                )
            case HindranceAction.REMOVE_MAJOR_HALF:
                if held.removal_progress >= 1:
                    hindrances = others
                else:
                    banked = held.model_copy(update={"removal_progress": held.removal_progress + 1})
                    hindrances = tuple(
                        banked if h.hindrance_id == held.hindrance_id else h
                        for h in snapshot.hindrances
                    )
        record = AdvanceRecord(
            advance_number=number,
            proposal=proposal,
            description=proposal.describe(),
            previous_hindrances=snapshot.hindrances,
        )
        return snapshot.evolve(hindrances=hindrances), record

    def hindrance_actions(self, held: SelectedHindrance) -> tuple[HindranceAction, ...]:
        """Actions an advance may take on a held hindrance."""
        hindrance = self.reference.hindrance(held.hindrance_id)
        if not hindrance.is_major:
            return (HindranceAction.REMOVE_MINOR,)
        companion_id = hindrance.companion_hindrance_id
        if companion_id and companion_id in self.reference.hindrances:
            return (HindranceAction.REDUCE_MAJOR,)
        return (HindranceAction.REMOVE_MAJOR_HALF,)

    # =========================================================================
    # Options
    # =========================================================================

    def options(self, snapshot: CharacterSnapshot) -> AdvancementOptions:
        """Summarize the legal choices for the next advance."""
        mods = gather_modifiers(snapshot, self.reference)
        number = snapshot.advance_count + 1
        reason = self.attribute_cadence_violation(snapshot)

        raisable = tuple(
            attribute_id
            for attribute_id, die in snapshot.attributes.items()
            if die.increment()
            <= trait_ceiling(Die.of(self.config.max_attribute_die), attribute_id, mods)
        )

        cheap: list[str] = []
        expensive: list[str] = []
        for skill_id, skill in self.reference.skills.items():
            current = snapshot.skill_die(skill_id)
            new_die = Die.d4() if current is None else current.increment()
            if new_die > self._ledger.skill_ceiling(skill_id, mods):
                continue
            linked = effective_attribute_die(snapshot, skill.linked_attribute_id, mods)
            if price_skill_step(new_die, linked, self.config) == self.config.skill_cost_at_or_below_attribute:
                cheap.append(skill_id)
            else:
                expensive.append(skill_id)

        context = RequirementContext.from_snapshot(snapshot, self.reference, mods)
        edges = tuple(
            edge_id
            for edge_id, edge in self.reference.edges.items()
            if (edge.can_take_multiple_times or not snapshot.has_edge(edge_id))
            and evaluate(edge.requirements, context)
        )

        hindrance_options: list[HindranceOption] = []
        for held in snapshot.hindrances:
            for action in self.hindrance_actions(held):
                label = action.label
                if action is HindranceAction.REMOVE_MAJOR_HALF and held.removal_progress >= 1:
                    label = "Complete Removal (2nd advance)"
                hindrance_options.append(
                    HindranceOption(hindrance_id=held.hindrance_id, action=action, label=label)
                )

        current_rank = after_rank = None
        if self.reference.ranks:
            current_rank = self.reference.rank_for_advances(snapshot.advance_count).name
            after_rank = self.reference.rank_for_advances(number).name

        return AdvancementOptions(
            next_advance_number=number,
            current_rank=current_rank,
            rank_after_advance=after_rank,
            attribute_advance_allowed=reason is None and bool(raisable),
            attribute_blocked_reason=reason,
            raisable_attributes=raisable,
            cheap_skills=tuple(cheap),
            expensive_skills=tuple(expensive),
            available_edges=edges,
            hindrance_options=tuple(hindrance_options),
        )


__all__ = [
    "HindranceOption",
    "AdvancementOptions",
    "AdvancementMachine",
]
