"""Configuration management for the SWADE character builder.

This module provides centralized configuration using pydantic-settings,
supporting environment variables, .env files, and runtime overrides.

Rule constants live in :class:`GameConfig`. The rules engine never reads
them from a global: a ``GameConfig`` instance is handed to every
``CreationLedger`` and ``AdvancementMachine``, so a house-rule variant is
simply a different config value.

Example:
    >>> from swade_builder.core.config import GameConfig
    >>> config = GameConfig(max_hindrance_points=6)
    >>> config.max_hindrance_points
    6

Environment Variables:
    SWADE_BUILDER_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    SWADE_BUILDER_JSON_LOGS: Emit JSON log lines instead of console output
    SWADE_BUILDER_GAME_STARTING_ATTRIBUTE_POINTS: Attribute points at creation
    SWADE_BUILDER_GAME_MAX_HINDRANCE_POINTS: Hindrance point cap
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from swade_builder.core.constants import DIE_SIZES
from swade_builder.core.exceptions import ConfigurationError


class GameConfig(BaseSettings):
    """Tunable rule constants for character creation and advancement.

    Attributes:
        starting_attribute_points: Attribute points available at creation.
        starting_skill_points: Skill points available at creation.
        max_hindrance_points: Cap on hindrance points usable for benefits.
        minor_hindrance_points: Points granted by a minor hindrance.
        major_hindrance_points: Points granted by a major hindrance.
        starting_wealth: Starting funds; each hindrance point spent on
            wealth adds the same amount again.
        hindrance_points_per_edge: Hindrance points spent per extra edge.
        hindrance_points_per_attribute_point: Hindrance points spent per
            extra attribute point.
        hindrance_points_per_skill_point: Hindrance points spent per extra
            skill point.
        skill_cost_at_or_below_attribute: Cost of a skill step that ends at
            or below the linked attribute.
        skill_cost_above_attribute: Cost of a skill step that ends above the
            linked attribute.
        skill_points_per_advance: Skill points an advance buys.
        max_attribute_die: Attribute ceiling before special edges.
        max_skill_die: Default skill ceiling before special edges.
        attribute_advance_once_per_rank: Limit attribute advances to one per
            rank below Legendary.
        legendary_rank_min_advances: Advances needed to reach Legendary.
    """

    model_config = SettingsConfigDict(
        env_prefix="SWADE_BUILDER_GAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Creation budgets
    starting_attribute_points: int = Field(
        default=5,
        ge=0,
        description="Attribute points available at creation",
    )
    starting_skill_points: int = Field(
        default=12,
        ge=0,
        description="Skill points available at creation",
    )
    max_hindrance_points: int = Field(
        default=4,
        ge=0,
        description="Hindrance points usable for mechanical benefit",
    )
    minor_hindrance_points: int = Field(
        default=1,
        ge=0,
        description="Points granted by a minor hindrance",
    )
    major_hindrance_points: int = Field(
        default=2,
        ge=0,
        description="Points granted by a major hindrance",
    )

    starting_wealth: int = Field(
        default=500,
        ge=0,
        description="Starting funds, also granted per hindrance point spent on wealth",
    )

    # Hindrance point conversion rates
    hindrance_points_per_edge: int = Field(
        default=2,
        description="Hindrance points per extra edge",
    )
    hindrance_points_per_attribute_point: int = Field(
        default=2,
        description="Hindrance points per extra attribute point",
    )
    hindrance_points_per_skill_point: int = Field(
        default=1,
        description="Hindrance points per extra skill point",
    )

    # Skill pricing
    skill_cost_at_or_below_attribute: int = Field(
        default=1,
        description="Cost of a skill step ending at or below the linked attribute",
    )
    skill_cost_above_attribute: int = Field(
        default=2,
        description="Cost of a skill step ending above the linked attribute",
    )
    skill_points_per_advance: int = Field(
        default=2,
        description="Skill points bought by one advance",
    )

    # Ceilings and cadence
    max_attribute_die: int = Field(
        default=12,
        description="Attribute die ceiling",
    )
    max_skill_die: int = Field(
        default=12,
        description="Default skill die ceiling",
    )
    attribute_advance_once_per_rank: bool = Field(
        default=True,
        description="Allow one attribute advance per rank below Legendary",
    )
    legendary_rank_min_advances: int = Field(
        default=16,
        ge=0,
        description="Advances needed to reach Legendary",
    )

    @model_validator(mode="after")
    def validate_rules(self) -> "GameConfig":
        """Reject rule combinations the engine cannot apply.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If a conversion rate is not positive or a
                ceiling is not a legal die size.
        """
        for key in (
            "hindrance_points_per_edge",
            "hindrance_points_per_attribute_point",
            "hindrance_points_per_skill_point",
            "skill_cost_at_or_below_attribute",
            "skill_cost_above_attribute",
            "skill_points_per_advance",
        ):
            if getattr(self, key) <= 0:
                raise ConfigurationError(
                    f"{key} must be positive, got {getattr(self, key)}",
                    config_key=key,
                )
        for key in ("max_attribute_die", "max_skill_die"):
            if getattr(self, key) not in DIE_SIZES:
                raise ConfigurationError(
                    f"{key} must be one of {DIE_SIZES}, got {getattr(self, key)}",
                    config_key=key,
                )
        if self.skill_cost_above_attribute < self.skill_cost_at_or_below_attribute:
            raise ConfigurationError(
                "skill_cost_above_attribute must not be cheaper than "
                "skill_cost_at_or_below_attribute",
                config_key="skill_cost_above_attribute",
            )
        return self


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name stamped on log events.
        app_version: Application version stamped on log events.
        log_level: Application logging level.
        json_logs: Emit JSON log lines.
        game: Rule constants.
    """

    model_config = SettingsConfigDict(
        env_prefix="SWADE_BUILDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="SWADE Character Builder",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(
        default=False,
        description="Emit JSON log lines",
    )

    game: GameConfig = Field(default_factory=GameConfig)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.

    Example:
        >>> settings = get_settings()
        >>> settings.game.starting_skill_points
        12
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access.

    Example:
        >>> clear_settings_cache()
        >>> settings = get_settings()  # Reloads from environment
    """
    get_settings.cache_clear()


__all__ = [
    "GameConfig",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
