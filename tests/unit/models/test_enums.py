"""Tests for enumeration parsing and modifier records."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from swade_builder.core.exceptions import ValidationError
from swade_builder.models.enums import (
    AdvanceKind,
    EdgeCategory,
    HindranceAction,
    HindrancePointTarget,
    RequirementKind,
    Severity,
    TargetType,
    ValueType,
)
from swade_builder.models.modifiers import Modifier


class TestParsableEnum:
    """Tests for explicit string parsing of enumerations."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("attribute", TargetType.ATTRIBUTE),
            ("Derived Stat", TargetType.DERIVED_STAT),
            ("trait-maximum", TargetType.TRAIT_MAXIMUM),
            ("EDGE_CHOICE", TargetType.EDGE_CHOICE),
        ],
    )
    def test_parse_variants(self, raw: str, expected: TargetType) -> None:
        """Test case, spaces and hyphens are normalized."""
        assert TargetType.parse(raw) is expected

    def test_parse_member_passthrough(self) -> None:
        """Test an existing member is returned unchanged."""
        assert Severity.parse(Severity.MAJOR) is Severity.MAJOR

    @pytest.mark.parametrize("raw", ["", "huge", "minorish"])
    def test_unknown_string_rejected(self, raw: str) -> None:
        """Test unknown strings never fall back to a default member."""
        with pytest.raises(ValidationError) as exc_info:
            Severity.parse(raw)

        assert exc_info.value.details["field_name"] == "Severity"

    def test_non_string_rejected(self) -> None:
        """Test non-string input is rejected."""
        with pytest.raises(ValidationError):
            EdgeCategory.parse(3)  # type: ignore[arg-type]

    def test_other_enums_parse(self) -> None:
        """Test parse is available on every enumeration."""
        assert EdgeCategory.parse("Combat") is EdgeCategory.COMBAT
        assert RequirementKind.parse("Arcane Background") is RequirementKind.ARCANE_BACKGROUND
        assert AdvanceKind.parse("EDGE") is AdvanceKind.EDGE
        assert HindrancePointTarget.parse("wealth") is HindrancePointTarget.WEALTH

    def test_value_type_numeric(self) -> None:
        """Test which value types are summed."""
        assert ValueType.ROLL_BONUS.is_numeric
        assert ValueType.FLAT_BONUS.is_numeric
        assert not ValueType.DIE_INCREMENT.is_numeric
        assert not ValueType.DESCRIPTIVE.is_numeric

    def test_hindrance_action_labels(self) -> None:
        """Test presentation labels of hindrance actions."""
        assert HindranceAction.REMOVE_MINOR.label == "Remove"
        assert HindranceAction.REDUCE_MAJOR.label == "Reduce to Minor"
        assert HindranceAction.REMOVE_MAJOR_HALF.label == "Begin Removal (requires 2 advances)"


class TestModifier:
    """Tests for the Modifier record."""

    def test_strings_parsed(self) -> None:
        """Test enum fields accept raw strings."""
        modifier = Modifier(
            target_type="Skill",
            target_identifier="notice",
            value_type="roll bonus",
            value=2,
        )
        assert modifier.target_type is TargetType.SKILL
        assert modifier.value_type is ValueType.ROLL_BONUS

    def test_unknown_target_type(self) -> None:
        """Test an unknown target type is reported, not defaulted."""
        with pytest.raises(ValidationError):
            Modifier(target_type="mood", value_type="flat_bonus", value=1)

    def test_descriptive_with_value_rejected(self) -> None:
        """Test descriptive modifiers carry no value."""
        with pytest.raises(PydanticValidationError):
            Modifier(target_type="skill", target_identifier="notice", value_type="descriptive", value=1)

    def test_numeric_without_value_rejected(self) -> None:
        """Test numeric bonuses need a value."""
        with pytest.raises(PydanticValidationError):
            Modifier(target_type="skill", target_identifier="notice", value_type="flat_bonus")

    def test_die_increment_defaults_to_one_step(self) -> None:
        """Test a die increment without a value is one step."""
        modifier = Modifier(target_type="attribute", target_identifier="vigor", value_type="die_increment")
        assert modifier.steps == 1

    def test_steps_only_for_die_increments(self) -> None:
        """Test bonuses grant no die steps."""
        modifier = Modifier(target_type="skill", target_identifier="notice", value_type="flat_bonus", value=3)
        assert modifier.steps == 0

    def test_matches_ignores_case(self) -> None:
        """Test target matching is case-insensitive and type-aware."""
        modifier = Modifier(target_type="skill", target_identifier="Notice", value_type="flat_bonus", value=1)
        assert modifier.matches("notice")
        assert modifier.matches("NOTICE", TargetType.SKILL)
        assert not modifier.matches("notice", TargetType.ATTRIBUTE)
        assert not modifier.matches("stealth")
