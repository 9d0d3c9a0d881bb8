"""Mutation results, rejections and the rule-check plumbing behind them.

Every public ledger and advancement operation returns a
:class:`MutationResult`. Internally an operation raises
:class:`~swade_builder.core.exceptions.RuleViolation` subclasses; the
:func:`run_mutation` wrapper turns them into a typed :class:`Rejection`
carrying the untouched input snapshot, so a mutation is applied either
completely or not at all.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from swade_builder.core.exceptions import RejectionKind, RuleViolation
from swade_builder.core.logging import get_logger, mutation_context
from swade_builder.models.character import CharacterSnapshot


logger = get_logger(__name__)


@dataclass(frozen=True)
class Rejection:
    """Why a mutation was refused.

    Attributes:
        kind: Typed reason.
        message: Human-readable description, suitable for display verbatim.
        details: Structured context (points needed, unmet requirements...).
    """

    kind: RejectionKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_violation(cls, violation: RuleViolation) -> Rejection:
        return cls(kind=violation.kind, message=violation.message, details=dict(violation.details))


@dataclass(frozen=True)
class RuleWarning:
    """A check that failed but was bypassed on request."""

    kind: RejectionKind
    message: str


@dataclass(frozen=True)
class MutationResult:
    """Outcome of one proposed mutation.

    Attributes:
        snapshot: The new snapshot when accepted, the input when rejected.
        rejection: Set when the mutation was refused.
        warnings: Checks skipped under a bypass flag.
    """

    snapshot: CharacterSnapshot
    rejection: Rejection | None = None
    warnings: tuple[RuleWarning, ...] = ()

    @property
    def accepted(self) -> bool:
        return self.rejection is None

    @classmethod
    def rejected(cls, snapshot: CharacterSnapshot, violation: RuleViolation) -> MutationResult:
        return cls(snapshot=snapshot, rejection=Rejection.from_violation(violation))


@dataclass
class RuleChecks:
    """Collects bypassed failures while an operation runs.

    Budget failures are skipped under ``bypass_budget``; requirement and
    rule failures under ``bypass_requirements``. Everything else always
    raises.
    """

    bypass_budget: bool = False
    bypass_requirements: bool = False
    warnings: list[RuleWarning] = field(default_factory=list)

    def budget(self, violation: RuleViolation) -> None:
        """Raise ``violation`` unless budget checks are bypassed."""
        self._fail(violation, bypassed=self.bypass_budget)

    def rule(self, violation: RuleViolation) -> None:
        """Raise ``violation`` unless requirement checks are bypassed."""
        self._fail(violation, bypassed=self.bypass_requirements)

    def _fail(self, violation: RuleViolation, *, bypassed: bool) -> None:
        if not bypassed:
            raise violation
        logger.warning(
            "Rule check bypassed",
            kind=str(violation.kind),
            reason=violation.message,
        )
        self.warnings.append(RuleWarning(kind=violation.kind, message=violation.message))


def run_mutation(
    operation: str,
    snapshot: CharacterSnapshot,
    mutate: Callable[[RuleChecks], CharacterSnapshot],
    *,
    bypass_budget: bool = False,
    bypass_requirements: bool = False,
) -> MutationResult:
    """Run ``mutate`` and package its outcome.

    Args:
        operation: Name bound into the logging context while ``mutate`` runs.
        snapshot: The snapshot being changed.
        mutate: Builds the new snapshot, raising ``RuleViolation`` to refuse.
        bypass_budget: Turn budget failures into warnings.
        bypass_requirements: Turn requirement failures into warnings.

    Returns:
        The accepted or rejected result.
    """
    checks = RuleChecks(bypass_budget=bypass_budget, bypass_requirements=bypass_requirements)
    with mutation_context(snapshot.name, operation):
        try:
            updated = mutate(checks)
        except RuleViolation as exc:
            logger.info("Mutation rejected", kind=str(exc.kind), reason=exc.message)
            return MutationResult.rejected(snapshot, exc)
        logger.info("Mutation accepted", warnings=len(checks.warnings))
    return MutationResult(snapshot=updated, warnings=tuple(checks.warnings))


__all__ = [
    "Rejection",
    "RuleWarning",
    "MutationResult",
    "RuleChecks",
    "run_mutation",
]
