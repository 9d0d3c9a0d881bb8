"""Tests for modifier resolution."""

from __future__ import annotations

import pytest

from swade_builder.core.exceptions import NotFoundError
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
from swade_builder.models.character import (
    CharacterSnapshot,
    SelectedEdge,
    SelectedGear,
    SelectedHindrance,
)
from swade_builder.models.die import Die
from swade_builder.models.enums import TargetType
from swade_builder.models.modifiers import Modifier
from swade_builder.models.reference import ReferenceData


def _mod(target_type: str, target: str, value_type: str, value: int | None = None) -> Modifier:
    return Modifier(
        target_type=target_type,
        target_identifier=target,
        value_type=value_type,
        value=value,
    )


class TestEffectiveValue:
    """Tests for summing bonuses."""

    def test_bonuses_sum(self) -> None:
        """Test two +1 bonuses on one target sum to 2."""
        mods = [_mod("skill", "notice", "flat_bonus", 1), _mod("skill", "notice", "flat_bonus", 1)]
        assert effective_value("notice", mods) == 2

    def test_descriptive_adds_nothing(self) -> None:
        """Test a descriptive modifier leaves the sum unchanged."""
        mods = [
            _mod("skill", "notice", "flat_bonus", 1),
            _mod("skill", "notice", "flat_bonus", 1),
            _mod("skill", "notice", "descriptive"),
        ]
        assert effective_value("notice", mods) == 2

    def test_roll_and_flat_bonuses_combine(self) -> None:
        """Test both numeric value types count, die increments do not."""
        mods = [
            _mod("skill", "notice", "roll_bonus", 2),
            _mod("skill", "notice", "flat_bonus", -1),
            _mod("skill", "notice", "die_increment", 1),
        ]
        assert effective_value("notice", mods) == 1

    def test_other_targets_ignored(self) -> None:
        """Test only matching identifiers count."""
        mods = [_mod("skill", "notice", "flat_bonus", 1), _mod("skill", "stealth", "flat_bonus", 3)]
        assert effective_value("notice", mods) == 1
        assert effective_value("persuasion", mods) == 0

    def test_target_type_filter(self) -> None:
        """Test an optional target type narrows the match."""
        mods = [_mod("derived_stat", "pace", "flat_bonus", 2), _mod("skill", "pace", "flat_bonus", 5)]
        assert effective_value("pace", mods, target_type=TargetType.DERIVED_STAT) == 2
        assert effective_value("pace", mods) == 7

    def test_budget_totals_ignore_identifier(self) -> None:
        """Test budget targets sum by type."""
        mods = [
            _mod("skill_points", "", "flat_bonus", 2),
            _mod("skill_points", "anything", "flat_bonus", 1),
            _mod("power_points", "", "flat_bonus", 5),
        ]
        assert total_for_type(TargetType.SKILL_POINTS, mods) == 3
        assert total_for_type(TargetType.EDGE_CHOICE, mods) == 0


class TestEffectiveDie:
    """Tests for die increments."""

    def test_increments_apply(self) -> None:
        """Test two increments raise d4 to d8."""
        mods = [_mod("attribute", "vigor", "die_increment", 1), _mod("attribute", "vigor", "die_increment")]
        assert die_steps("vigor", mods) == 2
        assert effective_die(Die.d4(), "vigor", mods) == Die.d8()

    def test_order_irrelevant(self) -> None:
        """Test increments commute."""
        mods = [
            _mod("attribute", "vigor", "die_increment", 2),
            _mod("attribute", "vigor", "die_increment", -1),
        ]
        assert effective_die(Die.d6(), "vigor", mods) == effective_die(Die.d6(), "vigor", mods[::-1])
        assert effective_die(Die.d6(), "vigor", mods) == Die.d8()

    def test_net_decrease_floors_at_d4(self) -> None:
        """Test downward steps stop at d4."""
        mods = [_mod("attribute", "vigor", "die_increment", -3)]
        assert effective_die(Die.d6(), "vigor", mods) == Die.d4()

    def test_past_d12(self) -> None:
        """Test increments continue past d12."""
        mods = [_mod("skill", "fighting", "die_increment", 2)]
        assert effective_die(Die.d12(), "fighting", mods) == Die.of(12, 2)

    def test_trait_ceiling(self) -> None:
        """Test trait maximum increments raise a ceiling only for their trait."""
        mods = [
            _mod("trait_maximum", "agility", "die_increment", 1),
            _mod("attribute", "agility", "die_increment", 1),
        ]
        assert trait_ceiling(Die.d12(), "agility", mods) == Die.of(12, 1)
        assert trait_ceiling(Die.d12(), "strength", mods) == Die.d12()


class TestGatherModifiers:
    """Tests for collecting modifiers from attached sources."""

    def test_sources(self, reference: ReferenceData) -> None:
        """Test direct, ancestry, edge, hindrance and equipped gear modifiers."""
        direct = _mod("skill", "notice", "flat_bonus", 1)
        snapshot = CharacterSnapshot(
            name="Red",
            ancestry_id="dwarf",
            edges=(SelectedEdge(edge_id="alertness"),),
            hindrances=(SelectedHindrance(hindrance_id="slow"),),
            gear=(SelectedGear(gear_id="chain_shirt"),),
            modifiers=(direct,),
        )
        mods = gather_modifiers(snapshot, reference)

        assert mods[0] == direct
        assert effective_value("notice", mods) == 3
        assert effective_value("pace", mods, target_type=TargetType.DERIVED_STAT) == -1
        assert effective_value("toughness", mods, target_type=TargetType.DERIVED_STAT) == 2
        assert die_steps("vigor", mods, target_type=TargetType.ATTRIBUTE) == 1

    def test_unequipped_gear_ignored(self, reference: ReferenceData) -> None:
        """Test only equipped gear contributes."""
        snapshot = CharacterSnapshot(
            name="Red",
            gear=(SelectedGear(gear_id="chain_shirt", is_equipped=False),),
        )
        assert gather_modifiers(snapshot, reference) == ()

    def test_repeated_edge_counts_each_time(self, reference: ReferenceData) -> None:
        """Test every selection contributes its modifiers."""
        snapshot = CharacterSnapshot(
            name="Red",
            edges=(SelectedEdge(edge_id="power_points"), SelectedEdge(edge_id="power_points")),
        )
        assert total_for_type(TargetType.POWER_POINTS, gather_modifiers(snapshot, reference)) == 10

    def test_unknown_id(self, reference: ReferenceData) -> None:
        """Test an id missing from reference data is reported."""
        snapshot = CharacterSnapshot(name="Red", edges=(SelectedEdge(edge_id="nimble"),))
        with pytest.raises(NotFoundError):
            gather_modifiers(snapshot, reference)


class TestTraitDice:
    """Tests for effective trait dice on a snapshot."""

    def test_attribute_die(self) -> None:
        """Test attribute increments apply to the base die."""
        snapshot = CharacterSnapshot(name="Red", attributes={"vigor": Die.d6()})
        mods = [_mod("attribute", "vigor", "die_increment", 1), _mod("skill", "vigor", "die_increment", 1)]
        assert effective_attribute_die(snapshot, "vigor", mods) == Die.d8()

    def test_missing_attribute(self) -> None:
        """Test an absent attribute raises NotFoundError."""
        with pytest.raises(NotFoundError):
            effective_attribute_die(CharacterSnapshot(name="Red"), "vigor", [])

    def test_untrained_skill(self) -> None:
        """Test untrained skills stay untrained whatever the modifiers."""
        snapshot = CharacterSnapshot(name="Red", skills={"notice": Die.d4()})
        mods = [_mod("skill", "fighting", "die_increment", 1), _mod("skill", "notice", "die_increment", 1)]
        assert effective_skill_die(snapshot, "fighting", mods) is None
        assert effective_skill_die(snapshot, "notice", mods) == Die.d6()
