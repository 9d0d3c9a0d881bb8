"""Die value type and progression arithmetic.

Traits in SWADE are rated by a die: d4, d6, d8, d10, d12, and beyond d12
with a flat modifier (d12+1, d12+2, ...). The progression is unbounded
upward and floored at d4.

Example:
    >>> Die.d10().increment().increment()
    Die(size=12, modifier=1)
    >>> str(Die.parse("d12+2"))
    'd12+2'
"""

from __future__ import annotations

import re
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from swade_builder.core.constants import DIE_SIZES, MAX_DIE_SIZE, MIN_DIE_SIZE
from swade_builder.core.exceptions import (
    InvalidDieSizeError,
    InvalidDirectionError,
    NoPredecessorError,
    ValidationError,
)


_DIE_PATTERN = re.compile(r"^\s*d(\d+)\s*(?:\+\s*(\d+))?\s*$", re.IGNORECASE)


class Die(BaseModel):
    """An immutable die rating with a total order.

    Dice compare first by size, then by modifier. Every operation returns a
    new ``Die``.

    Attributes:
        size: One of 4, 6, 8, 10, 12.
        modifier: Steps beyond d12; only a d12 may carry one.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    size: int
    modifier: Annotated[int, Field(ge=0)] = 0

    @model_validator(mode="after")
    def check_domain(self) -> "Die":
        """Reject sizes and modifiers outside the progression.

        Raises:
            InvalidDieSizeError: For an illegal size, or a modifier on a die
                smaller than d12.
        """
        if self.size not in DIE_SIZES:
            raise InvalidDieSizeError(
                f"Invalid die size d{self.size}",
                details={"size": self.size},
            )
        if self.modifier and self.size != MAX_DIE_SIZE:
            raise InvalidDieSizeError(
                f"Only a d12 may carry a modifier, got d{self.size}+{self.modifier}",
                details={"size": self.size, "modifier": self.modifier},
            )
        return self

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def d4(cls) -> Die:
        return cls(size=4)

    @classmethod
    def d6(cls) -> Die:
        return cls(size=6)

    @classmethod
    def d8(cls) -> Die:
        return cls(size=8)

    @classmethod
    def d10(cls) -> Die:
        return cls(size=10)

    @classmethod
    def d12(cls) -> Die:
        return cls(size=12)

    @classmethod
    def of(cls, size: int, modifier: int = 0) -> Die:
        """Build a die from its size and modifier.

        Raises:
            InvalidDieSizeError: If the combination is not on the progression.
        """
        return cls(size=size, modifier=modifier)

    @classmethod
    def from_step_index(cls, index: int) -> Die:
        """Build the die at a position of the progression (d4 is 0).

        Raises:
            NoPredecessorError: If ``index`` is negative.
        """
        if index < 0:
            raise NoPredecessorError(
                "No die below d4",
                details={"step_index": index},
            )
        last = len(DIE_SIZES) - 1
        if index <= last:
            return cls(size=DIE_SIZES[index])
        return cls(size=MAX_DIE_SIZE, modifier=index - last)

    @classmethod
    def parse(cls, raw: str) -> Die:
        """Parse dice notation such as ``d8`` or ``d12+2``.

        Args:
            raw: The notation to parse.

        Returns:
            The parsed die.

        Raises:
            ValidationError: If ``raw`` is not dice notation.
            InvalidDieSizeError: If the notation names an illegal die.
        """
        match = _DIE_PATTERN.match(raw) if isinstance(raw, str) else None
        if match is None:
            raise ValidationError(
                f"Invalid die notation: {raw!r}",
                field_name="die",
                invalid_value=raw,
            )
        return cls(size=int(match.group(1)), modifier=int(match.group(2) or 0))

    # -------------------------------------------------------------------------
    # Progression
    # -------------------------------------------------------------------------

    @property
    def step_index(self) -> int:
        """Position in the progression, with d4 at 0 and d12+1 at 5."""
        return DIE_SIZES.index(self.size) + self.modifier

    @property
    def half_size(self) -> int:
        """Half the die size, as used by Parry and Toughness."""
        return self.size // 2

    @property
    def is_floor(self) -> bool:
        return self.size == MIN_DIE_SIZE

    def increment(self) -> Die:
        """Return the next die: d4 → d6 → ... → d12 → d12+1 → ..."""
        return Die.from_step_index(self.step_index + 1)

    def decrement(self) -> Die:
        """Return the previous die.

        Raises:
            NoPredecessorError: When called on a d4.
        """
        if self.is_floor:
            raise NoPredecessorError(
                "d4 has no predecessor",
                details={"die": str(self)},
            )
        return Die.from_step_index(self.step_index - 1)

    def step(self, count: int) -> Die:
        """Move ``count`` steps along the progression, stopping at d4."""
        return Die.from_step_index(max(0, self.step_index + count))

    def steps_from(self, other: Die) -> int:
        """Count the increments needed to go from ``other`` to this die.

        Only defined when this die is at or above ``other``.

        Raises:
            InvalidDirectionError: If ``other`` is larger than this die.
        """
        if other > self:
            raise InvalidDirectionError(
                f"Cannot count steps from {other} down to {self}",
                start=str(other),
                end=str(self),
            )
        return self.step_index - other.step_index

    # -------------------------------------------------------------------------
    # Ordering and display
    # -------------------------------------------------------------------------

    def _key(self) -> tuple[int, int]:
        return (self.size, self.modifier)

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, Die):
            return NotImplemented
        return self._key() < other._key()

    def __le__(self, other: Any) -> bool:
        if not isinstance(other, Die):
            return NotImplemented
        return self._key() <= other._key()

    def __gt__(self, other: Any) -> bool:
        if not isinstance(other, Die):
            return NotImplemented
        return self._key() > other._key()

    def __ge__(self, other: Any) -> bool:
        if not isinstance(other, Die):
            return NotImplemented
        return self._key() >= other._key()

    def __str__(self) -> str:
        if self.modifier:
            return f"d{self.size}+{self.modifier}"
        return f"d{self.size}"


__all__ = ["Die"]
