"""Tests for derived statistics and encumbrance."""

from __future__ import annotations

import pytest

from swade_builder.engine.derived import compute_derived_stats, compute_encumbrance, load_limit_for
from swade_builder.models.character import CharacterSnapshot, SelectedEdge, SelectedGear
from swade_builder.models.die import Die
from swade_builder.models.modifiers import Modifier
from swade_builder.models.reference import ReferenceData


class TestDerivedStats:
    """Tests for Pace, Parry, Toughness and Size."""

    def test_base_values(self, reference: ReferenceData, hero: CharacterSnapshot) -> None:
        """Test a new character without Fighting."""
        stats = compute_derived_stats(hero, reference)

        assert stats.pace == 6
        assert stats.parry == 2
        assert stats.toughness == 4
        assert stats.size == 0

    def test_parry_from_fighting(self, reference: ReferenceData, hero: CharacterSnapshot) -> None:
        """Test Parry adds half the Fighting die."""
        stats = compute_derived_stats(hero.evolve(skills={**hero.skills, "fighting": Die.d8()}), reference)
        assert stats.parry == 6

    def test_toughness_from_vigor(self, reference: ReferenceData, hero: CharacterSnapshot) -> None:
        """Test Toughness adds half the Vigor die."""
        stats = compute_derived_stats(hero.evolve(attributes={**hero.attributes, "vigor": Die.d8()}), reference)
        assert stats.toughness == 6

    def test_size_adds_to_toughness(self, reference: ReferenceData, hero: CharacterSnapshot) -> None:
        """Test Size is reported and added to Toughness."""
        size = Modifier(target_type="derived_stat", target_identifier="size", value_type="flat_bonus", value=1)
        stats = compute_derived_stats(hero.evolve(modifiers=(size,)), reference)

        assert stats.size == 1
        assert stats.toughness == 5

    def test_edge_and_ancestry_modifiers(self, reference: ReferenceData, hero: CharacterSnapshot) -> None:
        """Test modifiers from attached sources change derived values."""
        snapshot = hero.evolve(
            ancestry_id="dwarf",
            edges=(SelectedEdge(edge_id="fleet_footed"), SelectedEdge(edge_id="brawny")),
        )
        stats = compute_derived_stats(snapshot, reference)

        assert stats.pace == 8
        # Dwarven vigor increment: d4 becomes d6.
        assert stats.toughness == 2 + 3 + 1

    def test_armor_only_when_equipped(self, reference: ReferenceData, hero: CharacterSnapshot) -> None:
        """Test unequipped armor grants nothing."""
        worn = hero.evolve(gear=(SelectedGear(gear_id="chain_shirt"),))
        carried = hero.evolve(gear=(SelectedGear(gear_id="chain_shirt", is_equipped=False),))

        assert compute_derived_stats(worn, reference).toughness == 6
        assert compute_derived_stats(carried, reference).toughness == 4


class TestEncumbrance:
    """Tests for load limits and encumbrance."""

    @pytest.mark.parametrize(
        ("die", "limit"),
        [("d4", 20), ("d6", 40), ("d8", 60), ("d10", 80), ("d12", 100), ("d12+1", 120)],
    )
    def test_load_limit(self, die: str, limit: int) -> None:
        """Test load limits per Strength die."""
        assert load_limit_for(Die.parse(die)) == limit

    def test_unencumbered(self, reference: ReferenceData, hero: CharacterSnapshot) -> None:
        """Test carrying less than the limit."""
        snapshot = hero.evolve(gear=(SelectedGear(gear_id="long_sword"), SelectedGear(gear_id="torch", quantity=4)))
        encumbrance = compute_encumbrance(snapshot, reference)

        assert encumbrance.carried_weight == 12
        assert encumbrance.load_limit == 20
        assert not encumbrance.is_encumbered
        assert encumbrance.penalty == 0

    def test_unequipped_gear_still_weighs(self, reference: ReferenceData, hero: CharacterSnapshot) -> None:
        """Test carried gear counts whether equipped or not."""
        snapshot = hero.evolve(gear=(SelectedGear(gear_id="chain_shirt", is_equipped=False),))
        encumbrance = compute_encumbrance(snapshot, reference)

        assert encumbrance.carried_weight == 25
        assert encumbrance.is_encumbered
        assert encumbrance.penalty == 2

    def test_strength_raises_limit(self, reference: ReferenceData, hero: CharacterSnapshot) -> None:
        """Test a stronger character carries more."""
        snapshot = hero.evolve(
            attributes={**hero.attributes, "strength": Die.d12()},
            gear=(SelectedGear(gear_id="anvil"),),
        )
        assert compute_encumbrance(snapshot, reference).is_encumbered

        stronger = snapshot.evolve(
            modifiers=(
                Modifier(
                    target_type="derived_stat",
                    target_identifier="load_limit",
                    value_type="flat_bonus",
                    value=50,
                ),
            )
        )
        encumbrance = compute_encumbrance(stronger, reference)
        assert encumbrance.load_limit == 150
        assert not encumbrance.is_encumbered
