"""Pytest configuration and shared fixtures.

This module provides the reference data, rule configuration and engine
objects shared by the character builder test suite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from swade_builder.core.config import GameConfig
from swade_builder.engine.advancement import AdvancementMachine
from swade_builder.engine.ledger import CreationLedger
from swade_builder.models.character import CharacterSnapshot
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
from swade_builder.models.requirements import all_of, any_of, leaf, negate


if TYPE_CHECKING:
    from collections.abc import Callable, Generator

    from swade_builder.engine.results import MutationResult


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from swade_builder.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def game_config() -> GameConfig:
    """Provide the default rule constants.

    Returns:
        A GameConfig with core rule values.
    """
    return GameConfig()


# =============================================================================
# Reference Data Fixtures
# =============================================================================


def _bonus(target_type: str, target: str, value: int, value_type: str = "flat_bonus") -> Modifier:
    return Modifier(
        target_type=target_type,
        target_identifier=target,
        value_type=value_type,
        value=value,
    )


@pytest.fixture
def reference() -> ReferenceData:
    """Provide a small but complete slice of core rules reference data.

    Returns:
        ReferenceData with attributes, skills, edges, hindrances, powers,
        arcane backgrounds, ancestries, gear and the five ranks.
    """
    attributes = [
        AttributeDefinition(id=attribute_id, name=attribute_id.title())
        for attribute_id in ("agility", "smarts", "spirit", "strength", "vigor")
    ]
    skills = [
        SkillDefinition(id="athletics", name="Athletics", linked_attribute_id="agility", is_core_skill=True),
        SkillDefinition(
            id="common_knowledge",
            name="Common Knowledge",
            linked_attribute_id="smarts",
            is_core_skill=True,
        ),
        SkillDefinition(id="notice", name="Notice", linked_attribute_id="smarts", is_core_skill=True),
        SkillDefinition(id="persuasion", name="Persuasion", linked_attribute_id="spirit", is_core_skill=True),
        SkillDefinition(id="stealth", name="Stealth", linked_attribute_id="agility", is_core_skill=True),
        SkillDefinition(id="fighting", name="Fighting", linked_attribute_id="agility"),
        SkillDefinition(id="shooting", name="Shooting", linked_attribute_id="agility"),
        SkillDefinition(id="spellcasting", name="Spellcasting", linked_attribute_id="smarts"),
        SkillDefinition(id="faith", name="Faith", linked_attribute_id="spirit"),
        SkillDefinition(id="healing", name="Healing", linked_attribute_id="smarts"),
    ]
    edges = [
        EdgeDefinition(
            id="alertness",
            name="Alertness",
            modifiers=(_bonus("skill", "notice", 2, "roll_bonus"),),
        ),
        EdgeDefinition(
            id="brawny",
            name="Brawny",
            requirements=all_of(leaf("attribute", "strength", "d6"), leaf("attribute", "vigor", "d6")),
            modifiers=(_bonus("derived_stat", "toughness", 1),),
        ),
        EdgeDefinition(id="quick", name="Quick", requirements=leaf("attribute", "agility", "d8")),
        EdgeDefinition(
            id="fleet_footed",
            name="Fleet-Footed",
            requirements=leaf("attribute", "agility", "d6"),
            modifiers=(_bonus("derived_stat", "pace", 2),),
        ),
        EdgeDefinition(
            id="block",
            name="Block",
            category="combat",
            requirements=all_of(leaf("rank", threshold=2), leaf("skill", "fighting", "d8")),
            modifiers=(_bonus("derived_stat", "parry", 1),),
        ),
        EdgeDefinition(
            id="trademark_weapon",
            name="Trademark Weapon",
            category="combat",
            can_take_multiple_times=True,
            requirements=any_of(leaf("skill", "fighting", "d8"), leaf("skill", "shooting", "d8")),
        ),
        EdgeDefinition(
            id="arcane_resistance",
            name="Arcane Resistance",
            requirements=all_of(
                negate(leaf("arcane_background")),
                leaf("attribute", "spirit", "d8"),
            ),
        ),
        EdgeDefinition(
            id="power_points",
            name="Power Points",
            category="power",
            can_take_multiple_times=True,
            requirements=leaf("arcane_background"),
            modifiers=(_bonus("power_points", "", 5),),
        ),
        EdgeDefinition(
            id="professional_agility",
            name="Professional (Agility)",
            category="professional",
            requirements=leaf("attribute", "agility", "d12"),
            modifiers=(_bonus("trait_maximum", "agility", 1, "die_increment"),),
        ),
        EdgeDefinition(
            id="low_light_vision",
            name="Low Light Vision",
            modifiers=(
                Modifier(
                    target_type="derived_stat",
                    target_identifier="vision",
                    value_type="descriptive",
                    description="Ignores dim and dark lighting penalties",
                ),
            ),
        ),

        EdgeDefinition(
            id="scholar",
            name="Scholar",
            requirements=leaf("attribute", "smarts", "d6"),
            modifiers=(_bonus("skill_points", "", 2),),
        ),
        EdgeDefinition(
            id="new_powers",
            name="New Powers",
            category="power",
            can_take_multiple_times=True,
            requirements=leaf("arcane_background"),
            modifiers=(_bonus("power_slots", "", 2),),
        ),
    ]
    hindrances = [
        HindranceDefinition(id="loyal", name="Loyal", severity="minor"),
        HindranceDefinition(id="quirk", name="Quirk", severity="minor"),
        HindranceDefinition(id="mean", name="Mean", severity="minor"),
        HindranceDefinition(id="curious", name="Curious", severity="major"),
        HindranceDefinition(
            id="bad_eyes_minor",
            name="Bad Eyes (Minor)",
            severity="minor",
            companion_hindrance_id="bad_eyes_major",
        ),
        HindranceDefinition(
            id="bad_eyes_major",
            name="Bad Eyes (Major)",
            severity="major",
            companion_hindrance_id="bad_eyes_minor",
        ),
        HindranceDefinition(
            id="slow",
            name="Slow",
            severity="minor",
            modifiers=(_bonus("derived_stat", "pace", -1),),
        ),
        HindranceDefinition(id="vow", name="Vow", severity="minor"),
        HindranceDefinition(id="outsider", name="Outsider", severity="minor"),
    ]
    powers = [
        PowerDefinition(id="bolt", name="Bolt", power_points=1),
        PowerDefinition(id="boost_trait", name="Boost/Lower Trait", power_points=2),
        PowerDefinition(id="deflection", name="Deflection", power_points=3),
        PowerDefinition(id="healing", name="Healing", power_points=3),
        PowerDefinition(id="blast", name="Blast", power_points=3, requirements=leaf("rank", threshold=2)),
    ]
    arcane_backgrounds = [
        ArcaneBackgroundDefinition(
            id="magic",
            name="Arcane Background (Magic)",
            arcane_skill_id="spellcasting",
            starting_powers=3,
            starting_power_points=10,
        ),
        ArcaneBackgroundDefinition(
            id="miracles",
            name="Arcane Background (Miracles)",
            arcane_skill_id="faith",
            starting_powers=2,
            starting_power_points=15,
            power_ids=("boost_trait", "deflection", "healing"),
        ),
        ArcaneBackgroundDefinition(
            id="shamanism",
            name="Arcane Background (Shamanism)",
            arcane_skill_id="faith",
            starting_powers=3,
            starting_power_points=10,
            power_ids=("bolt", "deflection", "healing"),
            built_in_hindrance_ids=("vow",),
            required_power_ids=("healing",),
            starting_power_options=("boost_trait", "deflection"),
            starting_power_selections=1,
        ),
    ]
    ancestries = [
        AncestryDefinition(
            id="human",
            name="Human",
            modifiers=(_bonus("edge_choice", "", 1),),
        ),
        AncestryDefinition(
            id="dwarf",
            name="Dwarf",
            modifiers=(_bonus("attribute", "vigor", 1, "die_increment"),),
            granted_edge_ids=("low_light_vision",),
            granted_hindrance_ids=("slow",),
        ),
        AncestryDefinition(
            id="half_elf",
            name="Half-Elf",
            modifiers=(_bonus("attribute_points", "", 1),),
            hindrance_options=("outsider", "loyal"),
        ),
    ]
    gear = [
        GearDefinition(id="long_sword", name="Long Sword", category="weapon", cost=300, weight=8),
        GearDefinition(
            id="chain_shirt",
            name="Chain Shirt",
            category="armor",
            cost=80,
            weight=25,
            modifiers=(_bonus("derived_stat", "toughness", 2),),
        ),
        GearDefinition(id="anvil", name="Anvil", category="mundane", cost=100, weight=150),
        GearDefinition(id="torch", name="Torch", category="mundane", cost=5, weight=1),
        GearDefinition(
            id="focus_crystal",
            name="Focus Crystal",
            category="arcane",
            cost=50,
            weight=1,
            modifiers=(_bonus("power_slots", "", 1),),
        ),
    ]
    ranks = [
        RankDefinition(id="legendary", name="Legendary", level=5, min_advances=16),
        RankDefinition(id="novice", name="Novice", level=1, min_advances=0, max_advances=3),
        RankDefinition(id="seasoned", name="Seasoned", level=2, min_advances=4, max_advances=7),
        RankDefinition(id="veteran", name="Veteran", level=3, min_advances=8, max_advances=11),
        RankDefinition(id="heroic", name="Heroic", level=4, min_advances=12, max_advances=15),
    ]
    return ReferenceData.build(
        attributes=attributes,
        skills=skills,
        edges=edges,
        hindrances=hindrances,
        powers=powers,
        ancestries=ancestries,
        arcane_backgrounds=arcane_backgrounds,
        gear=gear,
        ranks=ranks,
    )


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def ledger(reference: ReferenceData, game_config: GameConfig) -> CreationLedger:
    """Provide a creation ledger over the shared reference data.

    Returns:
        A CreationLedger with default rules.
    """
    return CreationLedger(reference, game_config)


@pytest.fixture
def machine(reference: ReferenceData, game_config: GameConfig) -> AdvancementMachine:
    """Provide an advancement machine over the shared reference data.

    Returns:
        An AdvancementMachine with default rules.
    """
    return AdvancementMachine(reference, game_config)


@pytest.fixture
def hero(ledger: CreationLedger) -> CharacterSnapshot:
    """Provide a freshly created Wild Card.

    Returns:
        A snapshot with d4 attributes and the core skills at d4.
    """
    return ledger.new_character("Red")


@pytest.fixture
def accept() -> Callable[[MutationResult], CharacterSnapshot]:
    """Provide a helper that asserts a mutation was accepted.

    Returns:
        Callable returning the new snapshot of an accepted result.
    """

    def _accept(result: MutationResult) -> CharacterSnapshot:
        assert result.accepted, result.rejection
        return result.snapshot

    return _accept
