"""Immutable reference entities supplied by the data layer.

Reference data is loaded once per session and shared read-only by every
engine call. Entities are keyed by string ids; :class:`ReferenceData`
resolves ids and reports unknown ones with ``NotFoundError``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from swade_builder.core.exceptions import NotFoundError
from swade_builder.models.die import Die
from swade_builder.models.enums import EdgeCategory, Severity
from swade_builder.models.modifiers import Modifier
from swade_builder.models.requirements import RequirementExpression, no_requirements


# =============================================================================
# Entities
# =============================================================================


class ReferenceEntity(BaseModel):
    """Fields shared by every reference entity.

    Attributes:
        id: Stable identifier used by snapshots and requirement leaves.
        name: Display name.
        description: Rules text.
        source: Book or supplement the entity comes from.
        modifiers: Modifiers granted while the entity is attached.
        requirements: Prerequisites for attaching the entity.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[str, Field(min_length=1)]
    name: str
    description: str = ""
    source: str = ""
    modifiers: tuple[Modifier, ...] = ()
    requirements: RequirementExpression = Field(default_factory=no_requirements)


class AttributeDefinition(ReferenceEntity):
    """One of the five attributes."""

    base_die: Die = Field(default_factory=Die.d4)


class SkillDefinition(ReferenceEntity):
    """A skill, linked to the attribute that prices its steps.

    Core skills start at ``default_die`` (d4) for free and may not be
    lowered below it.
    """

    linked_attribute_id: str
    is_core_skill: bool = False
    default_die: Die | None = None
    max_die: Die = Field(default_factory=Die.d12)

    @property
    def starting_die(self) -> Die | None:
        if self.is_core_skill:
            return self.default_die or Die.d4()
        return None


class EdgeDefinition(ReferenceEntity):
    category: EdgeCategory = EdgeCategory.BACKGROUND
    can_take_multiple_times: bool = False

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, value: Any) -> Any:
        if isinstance(value, str):
            return EdgeCategory.parse(value)
        return value


class HindranceDefinition(ReferenceEntity):
    """A hindrance; the minor and major variants of one flaw are companions."""

    severity: Severity
    companion_hindrance_id: str | None = None

    @field_validator("severity", mode="before")
    @classmethod
    def parse_severity(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Severity.parse(value)
        return value

    @property
    def is_major(self) -> bool:
        return self.severity is Severity.MAJOR


class PowerDefinition(ReferenceEntity):
    power_points: int = 1
    range: str = ""
    duration: str = ""


class AncestryDefinition(ReferenceEntity):
    """An ancestry and the edges and hindrances it grants.

    Attributes:
        granted_edge_ids: Edges attached with the ancestry.
        granted_hindrance_ids: Hindrances attached with the ancestry.
        hindrance_options: Hindrances the player picks from on taking the
            ancestry; empty when the ancestry offers no choice.
        hindrance_selections: How many of ``hindrance_options`` must be
            picked.
    """

    granted_edge_ids: tuple[str, ...] = ()
    granted_hindrance_ids: tuple[str, ...] = ()
    hindrance_options: tuple[str, ...] = ()
    hindrance_selections: Annotated[int, Field(ge=0)] = 1

    @property
    def required_hindrance_choices(self) -> int:
        return min(self.hindrance_selections, len(self.hindrance_options))


class ArcaneBackgroundDefinition(ReferenceEntity):
    """An arcane background.

    Required and chosen starting powers occupy starting power slots like
    any other power.

    Attributes:
        arcane_skill_id: Skill used to activate powers.
        starting_powers: Powers known on taking the background.
        starting_power_points: Power points granted.
        power_ids: Powers the background may learn; ``None`` means any.
        built_in_hindrance_ids: Hindrances that come with the background
            and earn no points.
        required_power_ids: Starting powers attached with the background
            and locked against removal.
        starting_power_options: Powers offered as a starting choice.
        starting_power_selections: Most powers that may be picked from
            ``starting_power_options``.
    """

    arcane_skill_id: str
    starting_powers: Annotated[int, Field(ge=0)] = 0
    starting_power_points: Annotated[int, Field(ge=0)] = 0
    power_ids: tuple[str, ...] | None = None
    built_in_hindrance_ids: tuple[str, ...] = ()
    required_power_ids: tuple[str, ...] = ()
    starting_power_options: tuple[str, ...] = ()
    starting_power_selections: Annotated[int, Field(ge=0)] = 0

    def allows_power(self, power_id: str) -> bool:
        if power_id in self.required_power_ids or power_id in self.starting_power_options:
            return True
        return self.power_ids is None or power_id in self.power_ids


class GearDefinition(ReferenceEntity):
    category: str = ""
    cost: Annotated[int, Field(ge=0)] = 0
    weight: Annotated[float, Field(ge=0)] = 0.0


class RankDefinition(BaseModel):
    """A rank band of the advancement track."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    name: str
    level: Annotated[int, Field(ge=1)]
    min_advances: Annotated[int, Field(ge=0)]
    max_advances: int | None = None

    def contains(self, advances: int) -> bool:
        if advances < self.min_advances:
            return False
        return self.max_advances is None or advances <= self.max_advances


# =============================================================================
# Reference Data
# =============================================================================


EntityT = TypeVar("EntityT", bound=BaseModel)


def _index(entities: Iterable[EntityT]) -> dict[str, EntityT]:
    return {entity.id: entity for entity in entities}  # type: ignore[attr-defined]


class ReferenceData(BaseModel):
    """Every reference entity the engine may consult, keyed by id.

    Example:
        >>> data = ReferenceData.build(attributes=[AttributeDefinition(id="agility", name="Agility")])
        >>> data.attribute("agility").base_die
        Die(size=4, modifier=0)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    attributes: dict[str, AttributeDefinition] = Field(default_factory=dict)
    skills: dict[str, SkillDefinition] = Field(default_factory=dict)
    edges: dict[str, EdgeDefinition] = Field(default_factory=dict)
    hindrances: dict[str, HindranceDefinition] = Field(default_factory=dict)
    powers: dict[str, PowerDefinition] = Field(default_factory=dict)
    ancestries: dict[str, AncestryDefinition] = Field(default_factory=dict)
    arcane_backgrounds: dict[str, ArcaneBackgroundDefinition] = Field(default_factory=dict)
    gear: dict[str, GearDefinition] = Field(default_factory=dict)
    ranks: tuple[RankDefinition, ...] = ()

    @field_validator("ranks", mode="after")
    @classmethod
    def sort_ranks(cls, value: tuple[RankDefinition, ...]) -> tuple[RankDefinition, ...]:
        return tuple(sorted(value, key=lambda rank: rank.min_advances))

    @classmethod
    def build(
        cls,
        *,
        attributes: Iterable[AttributeDefinition] = (),
        skills: Iterable[SkillDefinition] = (),
        edges: Iterable[EdgeDefinition] = (),
        hindrances: Iterable[HindranceDefinition] = (),
        powers: Iterable[PowerDefinition] = (),
        ancestries: Iterable[AncestryDefinition] = (),
        arcane_backgrounds: Iterable[ArcaneBackgroundDefinition] = (),
        gear: Iterable[GearDefinition] = (),
        ranks: Iterable[RankDefinition] = (),
    ) -> ReferenceData:
        """Build reference data from entity lists."""
        return cls(
            attributes=_index(attributes),
            skills=_index(skills),
            edges=_index(edges),
            hindrances=_index(hindrances),
            powers=_index(powers),
            ancestries=_index(ancestries),
            arcane_backgrounds=_index(arcane_backgrounds),
            gear=_index(gear),
            ranks=tuple(ranks),
        )

    @staticmethod
    def _lookup(table: dict[str, EntityT], entity_type: str, entity_id: str) -> EntityT:
        try:
            return table[entity_id]
        except KeyError:
            raise NotFoundError(
                f"Unknown {entity_type}: {entity_id}",
                entity_type=entity_type,
                entity_id=entity_id,
            ) from None

    def attribute(self, attribute_id: str) -> AttributeDefinition:
        return self._lookup(self.attributes, "attribute", attribute_id)

    def skill(self, skill_id: str) -> SkillDefinition:
        return self._lookup(self.skills, "skill", skill_id)

    def edge(self, edge_id: str) -> EdgeDefinition:
        return self._lookup(self.edges, "edge", edge_id)

    def hindrance(self, hindrance_id: str) -> HindranceDefinition:
        return self._lookup(self.hindrances, "hindrance", hindrance_id)

    def power(self, power_id: str) -> PowerDefinition:
        return self._lookup(self.powers, "power", power_id)

    def ancestry(self, ancestry_id: str) -> AncestryDefinition:
        return self._lookup(self.ancestries, "ancestry", ancestry_id)

    def arcane_background(self, arcane_background_id: str) -> ArcaneBackgroundDefinition:
        return self._lookup(self.arcane_backgrounds, "arcane_background", arcane_background_id)

    def gear_item(self, gear_id: str) -> GearDefinition:
        return self._lookup(self.gear, "gear", gear_id)

    def rank_for_advances(self, advances: int) -> RankDefinition:
        """Resolve the rank a character with ``advances`` advances holds.

        A rank without ``max_advances`` is open-ended. Gaps between bands
        are not filled in.

        Raises:
            NotFoundError: If no rank covers the advance count.
        """
        for rank in reversed(self.ranks):
            if rank.contains(advances):
                return rank
        raise NotFoundError(
            f"No rank covers {advances} advances",
            entity_type="rank",
            entity_id=str(advances),
        )


__all__ = [
    "ReferenceEntity",
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
]
