"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        SwadeBuilderError: Base exception for all builder errors.
        RuleViolation: Base of the user-facing rejection errors.
        ConfigurationError: Configuration-related errors.
        ValidationError: Reference data validation errors.

    Configuration:
        GameConfig: Tunable rule constants.
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from swade_builder.core.config import (
    GameConfig,
    Settings,
    clear_settings_cache,
    get_settings,
)
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
from swade_builder.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
    mutation_context,
)


__all__ = [
    # Base exception
    "SwadeBuilderError",
    # Die arithmetic
    "DieError",
    "NoPredecessorError",
    "InvalidDirectionError",
    # Rule violations
    "RejectionKind",
    "RuleViolation",
    "InsufficientPointsError",
    "RequirementNotMetError",
    "InvalidDieSizeError",
    "DuplicateSelectionError",
    "CompanionConflictError",
    "AdvancementRuleViolationError",
    "NotFoundError",
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
    # Configuration
    "GameConfig",
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "bind_context",
    "clear_context",
    "mutation_context",
]
