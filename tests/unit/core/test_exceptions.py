"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from swade_builder.core.exceptions import (
    AdvancementRuleViolationError,
    CompanionConflictError,
    ConfigurationError,
    DieError,
    DuplicateSelectionError,
    InsufficientPointsError,
    InvalidDieSizeError,
    InvalidDirectionError,
    NoPredecessorError,
    NotFoundError,
    RejectionKind,
    RequirementNotMetError,
    RuleViolation,
    SwadeBuilderError,
    ValidationError,
)


class TestSwadeBuilderError:
    """Tests for the base SwadeBuilderError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = SwadeBuilderError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = SwadeBuilderError("Test error", details={"key": "value", "count": 42})
        assert exc.details == {"key": "value", "count": 42}
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        repr_str = repr(SwadeBuilderError("Test", details={"x": 1}))
        assert "SwadeBuilderError" in repr_str
        assert "Test" in repr_str
        assert "x" in repr_str


class TestDieErrors:
    """Tests for die arithmetic exceptions."""

    def test_no_predecessor_is_die_error(self) -> None:
        """Test the d4 floor error belongs to the die family."""
        assert issubclass(NoPredecessorError, DieError)
        assert not issubclass(NoPredecessorError, RuleViolation)

    def test_invalid_direction_records_dice(self) -> None:
        """Test the dice involved are kept in details."""
        exc = InvalidDirectionError("Wrong way", start="d8", end="d6")
        assert exc.details == {"start": "d8", "end": "d6"}


class TestRuleViolations:
    """Tests for rule violations and their rejection kinds."""

    @pytest.mark.parametrize(
        ("exc_type", "kind"),
        [
            (InsufficientPointsError, RejectionKind.INSUFFICIENT_POINTS),
            (RequirementNotMetError, RejectionKind.REQUIREMENT_NOT_MET),
            (InvalidDieSizeError, RejectionKind.INVALID_DIE_SIZE),
            (DuplicateSelectionError, RejectionKind.DUPLICATE_SELECTION),
            (CompanionConflictError, RejectionKind.COMPANION_CONFLICT),
            (AdvancementRuleViolationError, RejectionKind.ADVANCEMENT_RULE_VIOLATION),
            (NotFoundError, RejectionKind.NOT_FOUND),
        ],
    )
    def test_kind_mapping(self, exc_type: type[RuleViolation], kind: RejectionKind) -> None:
        """Test each violation maps to one rejection kind."""
        exc = exc_type("Refused")
        assert exc.kind is kind
        assert isinstance(exc, SwadeBuilderError)

    def test_insufficient_points_details(self) -> None:
        """Test budget figures are kept in details."""
        exc = InsufficientPointsError("Not enough skill points", needed=2, available=1)
        assert exc.details == {"needed": 2, "available": 1}
        assert "needed=2" in str(exc)

    def test_insufficient_points_keeps_zero(self) -> None:
        """Test a zero balance is still reported."""
        exc = InsufficientPointsError("Broke", needed=1, available=0)
        assert exc.details["available"] == 0

    def test_requirement_not_met_lists_unmet(self) -> None:
        """Test unmet requirement labels are kept in details."""
        exc = RequirementNotMetError("Locked", unmet=["Agility d8+", "Rank 2+"])
        assert exc.details["unmet"] == ["Agility d8+", "Rank 2+"]

    def test_advance_number(self) -> None:
        """Test the advance number is recorded."""
        exc = AdvancementRuleViolationError("Too soon", advance_number=3)
        assert exc.details["advance_number"] == 3

    def test_not_found_entity(self) -> None:
        """Test the missing entity is recorded."""
        exc = NotFoundError("Unknown edge", entity_type="edge", entity_id="nimble")
        assert exc.details == {"entity_type": "edge", "entity_id": "nimble"}


class TestConfigurationAndValidationErrors:
    """Tests for configuration and validation exceptions."""

    def test_configuration_error_key(self) -> None:
        """Test ConfigurationError with config key."""
        exc = ConfigurationError("Bad rate", config_key="hindrance_points_per_edge")
        assert exc.details["config_key"] == "hindrance_points_per_edge"
        assert not isinstance(exc, RuleViolation)

    def test_validation_error_fields(self) -> None:
        """Test ValidationError with field context."""
        exc = ValidationError("Unknown severity", field_name="Severity", invalid_value="huge")
        assert exc.details["field_name"] == "Severity"
        assert exc.details["invalid_value"] == "huge"

    def test_catch_all_at_boundary(self) -> None:
        """Test every error can be handled through the base class."""
        with pytest.raises(SwadeBuilderError):
            raise ValidationError("Bad payload")
