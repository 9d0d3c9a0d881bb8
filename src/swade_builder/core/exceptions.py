"""Custom exception hierarchy for the SWADE character builder.

This module defines the exception hierarchy used by the rules engine. All
exceptions inherit from SwadeBuilderError, enabling unified error handling
at the application boundary while preserving domain-specific context.

Rule violations (``RuleViolation`` and its subclasses) describe invalid
*user* mutations. The ledger and the advancement machine never let them
escape: they are converted into typed rejections carried by a
``MutationResult``. The remaining exceptions signal data or programming
errors and propagate to the caller.

Example:
    >>> from swade_builder.core.exceptions import InsufficientPointsError
    >>> raise InsufficientPointsError("Not enough skill points", needed=2, available=1)
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class RejectionKind(StrEnum):
    """Typed reason attached to every rejected character mutation."""

    INSUFFICIENT_POINTS = "insufficient_points"
    REQUIREMENT_NOT_MET = "requirement_not_met"
    INVALID_DIE_SIZE = "invalid_die_size"
    DUPLICATE_SELECTION = "duplicate_selection"
    COMPANION_CONFLICT = "companion_conflict"
    ADVANCEMENT_RULE_VIOLATION = "advancement_rule_violation"
    NOT_FOUND = "not_found"


class SwadeBuilderError(Exception):
    """Base exception for all character builder errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Die Arithmetic Exceptions
# =============================================================================


class DieError(SwadeBuilderError):
    """Base exception for die progression arithmetic failures."""


class NoPredecessorError(DieError):
    """Raised when decrementing a die that is already at the d4 floor."""


class InvalidDirectionError(DieError):
    """Raised when counting steps from a die that is larger than the target.

    ``steps_from`` is only defined when the receiver is at or above the
    starting die in progression order.
    """

    def __init__(
        self,
        message: str,
        *,
        start: str | None = None,
        end: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the two dice involved.

        Args:
            message: Human-readable error description.
            start: The die counted from.
            end: The die counted to.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if start:
            combined_details["start"] = start
        if end:
            combined_details["end"] = end
        super().__init__(message, details=combined_details)


# =============================================================================
# Rule Violations (user-facing, converted into rejections)
# =============================================================================


class RuleViolation(SwadeBuilderError):
    """Base class for rejected character mutations.

    Every subclass maps to one ``RejectionKind`` so the presentation layer
    can react to the reason without parsing messages.
    """

    kind: RejectionKind = RejectionKind.ADVANCEMENT_RULE_VIOLATION


class InsufficientPointsError(RuleViolation):
    """Raised when a mutation would overspend a point budget."""

    kind = RejectionKind.INSUFFICIENT_POINTS

    def __init__(
        self,
        message: str,
        *,
        needed: int | None = None,
        available: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the budget figures.

        Args:
            message: Human-readable error description.
            needed: Points the mutation would consume.
            available: Points left in the budget.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if needed is not None:
            combined_details["needed"] = needed
        if available is not None:
            combined_details["available"] = available
        super().__init__(message, details=combined_details)


class RequirementNotMetError(RuleViolation):
    """Raised when an entity's prerequisites are not satisfied."""

    kind = RejectionKind.REQUIREMENT_NOT_MET

    def __init__(
        self,
        message: str,
        *,
        unmet: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the unmet requirement descriptions.

        Args:
            message: Human-readable error description.
            unmet: Descriptions of the requirements that failed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if unmet:
            combined_details["unmet"] = unmet
        super().__init__(message, details=combined_details)


class InvalidDieSizeError(RuleViolation):
    """Raised when a die would leave its legal range.

    Covers illegal sizes passed to the public constructors as well as trait
    changes that would move a die past a ceiling or below a floor.
    """

    kind = RejectionKind.INVALID_DIE_SIZE


class DuplicateSelectionError(RuleViolation):
    """Raised when selecting a non-repeatable entity a second time."""

    kind = RejectionKind.DUPLICATE_SELECTION


class CompanionConflictError(RuleViolation):
    """Raised when holding both severities of a hindrance companion pair."""

    kind = RejectionKind.COMPANION_CONFLICT


class AdvancementRuleViolationError(RuleViolation):
    """Raised when a proposed advance does not match a legal pattern."""

    kind = RejectionKind.ADVANCEMENT_RULE_VIOLATION

    def __init__(
        self,
        message: str,
        *,
        advance_number: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the advance number involved.

        Args:
            message: Human-readable error description.
            advance_number: The advance being validated.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if advance_number is not None:
            combined_details["advance_number"] = advance_number
        super().__init__(message, details=combined_details)


class NotFoundError(RuleViolation):
    """Raised when a reference id is absent from the supplied data."""

    kind = RejectionKind.NOT_FOUND

    def __init__(
        self,
        message: str,
        *,
        entity_type: str | None = None,
        entity_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the missing entity.

        Args:
            message: Human-readable error description.
            entity_type: Kind of entity that was looked up.
            entity_id: The id that could not be resolved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if entity_type:
            combined_details["entity_type"] = entity_type
        if entity_id:
            combined_details["entity_id"] = entity_id
        super().__init__(message, details=combined_details)


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(SwadeBuilderError):
    """Raised when rule or application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(SwadeBuilderError):
    """Raised when reference or payload data fails validation.

    This includes unknown enumeration strings coming from the data layer,
    which are reported instead of being mapped to a default.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


__all__ = [
    "RejectionKind",
    # Base exception
    "SwadeBuilderError",
    # Die arithmetic
    "DieError",
    "NoPredecessorError",
    "InvalidDirectionError",
    # Rule violations
    "RuleViolation",
    "InsufficientPointsError",
    "RequirementNotMetError",
    "InvalidDieSizeError",
    "DuplicateSelectionError",
    "CompanionConflictError",
    "AdvancementRuleViolationError",
    "NotFoundError",
    # Configuration & validation
    "ConfigurationError",
    "ValidationError",
]
