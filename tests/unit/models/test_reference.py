"""Tests for reference entities, reference data lookup and snapshots."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from swade_builder.core.exceptions import NotFoundError, ValidationError
from swade_builder.models.character import CharacterSnapshot, SelectedEdge, SelectedHindrance
from swade_builder.models.die import Die
from swade_builder.models.enums import EdgeCategory, Provenance, Severity
from swade_builder.models.reference import (
    AncestryDefinition,
    ArcaneBackgroundDefinition,
    HindranceDefinition,
    RankDefinition,
    ReferenceData,
    SkillDefinition,
)


class TestEntities:
    """Tests for individual reference entities."""

    def test_core_skill_starts_at_d4(self) -> None:
        """Test core skills start trained and others untrained."""
        core = SkillDefinition(id="notice", name="Notice", linked_attribute_id="smarts", is_core_skill=True)
        other = SkillDefinition(id="fighting", name="Fighting", linked_attribute_id="agility")
        assert core.starting_die == Die.d4()
        assert other.starting_die is None

    def test_severity_parsed(self) -> None:
        """Test severity strings are parsed."""
        hindrance = HindranceDefinition(id="curious", name="Curious", severity="Major")
        assert hindrance.severity is Severity.MAJOR
        assert hindrance.is_major

    def test_unknown_severity_rejected(self) -> None:
        """Test an unknown severity is reported."""
        with pytest.raises(ValidationError):
            HindranceDefinition(id="odd", name="Odd", severity="medium")

    def test_empty_id_rejected(self) -> None:
        """Test ids must not be empty."""
        with pytest.raises(PydanticValidationError):
            HindranceDefinition(id="", name="Nameless", severity="minor")

    def test_power_list(self) -> None:
        """Test a restricted power list."""
        background = ArcaneBackgroundDefinition(
            id="miracles",
            name="Miracles",
            arcane_skill_id="faith",
            power_ids=("healing",),
        )
        assert background.allows_power("healing")
        assert not background.allows_power("bolt")

    def test_starting_powers_on_power_list(self) -> None:
        """Test required and optional starting powers are always learnable."""
        background = ArcaneBackgroundDefinition(
            id="shamanism",
            name="Shamanism",
            arcane_skill_id="faith",
            power_ids=("bolt",),
            required_power_ids=("healing",),
            starting_power_options=("deflection",),
            starting_power_selections=1,
        )
        assert background.allows_power("healing")
        assert background.allows_power("deflection")
        assert not background.allows_power("blast")

    def test_ancestry_hindrance_choices(self) -> None:
        """Test the pick count never exceeds the options offered."""
        assert AncestryDefinition(id="human", name="Human").required_hindrance_choices == 0
        half_elf = AncestryDefinition(id="half_elf", name="Half-Elf", hindrance_options=("outsider", "loyal"))
        assert half_elf.required_hindrance_choices == 1
        greedy = AncestryDefinition(id="odd", name="Odd", hindrance_options=("loyal",), hindrance_selections=3)
        assert greedy.required_hindrance_choices == 1

    def test_rank_contains(self) -> None:
        """Test rank bands."""
        seasoned = RankDefinition(id="seasoned", name="Seasoned", level=2, min_advances=4, max_advances=7)
        assert not seasoned.contains(3)
        assert seasoned.contains(4)
        assert seasoned.contains(7)
        assert not seasoned.contains(8)


class TestReferenceData:
    """Tests for reference data lookup."""

    def test_lookup(self, reference: ReferenceData) -> None:
        """Test entities resolve by id."""
        assert reference.edge("block").category is EdgeCategory.COMBAT
        assert reference.skill("fighting").linked_attribute_id == "agility"

    @pytest.mark.parametrize(
        ("method", "entity_type"),
        [
            ("attribute", "attribute"),
            ("skill", "skill"),
            ("edge", "edge"),
            ("hindrance", "hindrance"),
            ("power", "power"),
            ("ancestry", "ancestry"),
            ("arcane_background", "arcane_background"),
            ("gear_item", "gear"),
        ],
    )
    def test_unknown_id(self, reference: ReferenceData, method: str, entity_type: str) -> None:
        """Test unknown ids raise NotFoundError naming the entity type."""
        with pytest.raises(NotFoundError) as exc_info:
            getattr(reference, method)("nonexistent")

        assert exc_info.value.details == {"entity_type": entity_type, "entity_id": "nonexistent"}

    def test_ranks_sorted(self, reference: ReferenceData) -> None:
        """Test ranks are ordered by advances regardless of input order."""
        assert [rank.id for rank in reference.ranks] == [
            "novice",
            "seasoned",
            "veteran",
            "heroic",
            "legendary",
        ]

    @pytest.mark.parametrize(
        ("advances", "rank_id"),
        [(0, "novice"), (3, "novice"), (4, "seasoned"), (11, "veteran"), (12, "heroic"), (16, "legendary"), (40, "legendary")],
    )
    def test_rank_for_advances(self, reference: ReferenceData, advances: int, rank_id: str) -> None:
        """Test rank resolution at band boundaries."""
        assert reference.rank_for_advances(advances).id == rank_id

    def test_rank_for_advances_without_ranks(self) -> None:
        """Test resolution fails when no rank covers the count."""
        with pytest.raises(NotFoundError):
            ReferenceData().rank_for_advances(0)

    def test_rank_for_advances_respects_band_ends(self) -> None:
        """Test a count past a closed band and short of the next is not covered."""
        data = ReferenceData.build(
            ranks=[
                RankDefinition(id="novice", name="Novice", level=1, min_advances=0, max_advances=3),
                RankDefinition(id="veteran", name="Veteran", level=3, min_advances=8),
            ]
        )

        assert data.rank_for_advances(3).id == "novice"
        assert data.rank_for_advances(9).id == "veteran"
        with pytest.raises(NotFoundError):
            data.rank_for_advances(5)


class TestCharacterSnapshot:
    """Tests for snapshot queries and immutability."""

    def test_evolve_returns_new_snapshot(self) -> None:
        """Test evolve leaves the original untouched."""
        original = CharacterSnapshot(name="Red", attributes={"agility": Die.d4()})
        changed = original.evolve(attributes={"agility": Die.d6()})

        assert original.attributes["agility"] == Die.d4()
        assert changed.attributes["agility"] == Die.d6()
        assert changed.name == "Red"

    def test_frozen(self) -> None:
        """Test snapshots cannot be modified in place."""
        snapshot = CharacterSnapshot(name="Red")
        with pytest.raises(PydanticValidationError):
            snapshot.name = "Blue"  # type: ignore[misc]

    def test_queries(self) -> None:
        """Test selection queries."""
        snapshot = CharacterSnapshot(
            name="Red",
            skills={"fighting": Die.d8()},
            edges=(
                SelectedEdge(edge_id="trademark_weapon"),
                SelectedEdge(edge_id="trademark_weapon", provenance=Provenance.ADVANCEMENT),
            ),
            hindrances=(SelectedHindrance(hindrance_id="loyal"),),
        )
        assert snapshot.skill_die("fighting") == Die.d8()
        assert snapshot.skill_die("shooting") is None
        assert snapshot.edge_count("trademark_weapon") == 2
        assert snapshot.has_hindrance("loyal")
        assert snapshot.hindrance("curious") is None
        assert not snapshot.has_arcane_background()
        assert snapshot.last_advance is None
        assert snapshot.advance_count == 0
