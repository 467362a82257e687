"""Layered validation pipeline run once per ``validate``/``transform`` call.

Key Responsibilities:
    - Run structural, base profile, overlay profile and business rules in a
      fixed order
    - Concatenate the partial accumulators of every rule without stopping at
      the first layer that reports errors

Collaborators:
    - Upstream: :class:`Ronin_FHIR.profiles.base.BaseProfile` builds one pipeline
      per profile with its rules injected at construction time
    - Downstream: rule callables from :mod:`Ronin_FHIR.validation.rules` and the
      profiles, and :class:`Ronin_FHIR.validation.schema.StructuralValidator`

Side Effects:
    - Emits a debug log event per completed run

Thread Safety:
    - Thread-safe; pipelines hold only immutable rule tuples
"""

from __future__ import annotations

# ==============================================================================
# IMPORTS
# ==============================================================================
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from typing import Any

import structlog

from .accumulator import Validation
from .location import LocationContext

logger = structlog.get_logger(__name__)

# ==============================================================================
# TYPE DEFINITIONS
# ==============================================================================

Rule = Callable[[Mapping[str, Any], LocationContext], Validation]


class ValidationState(Enum):
    """Ordered layers of the pipeline."""

    STRUCTURAL_CHECK = "structural_check"
    BASE_PROFILE_CHECK = "base_profile_check"
    OVERLAY_PROFILE_CHECK = "overlay_profile_check"
    BUSINESS_RULES_CHECK = "business_rules_check"
    DONE = "done"

    def next(self) -> ValidationState:
        """Return the state that follows this one; ``DONE`` is terminal."""
        order = list(ValidationState)
        position = order.index(self)
        return order[min(position + 1, len(order) - 1)]


CHECK_STATES: tuple[ValidationState, ...] = (
    ValidationState.STRUCTURAL_CHECK,
    ValidationState.BASE_PROFILE_CHECK,
    ValidationState.OVERLAY_PROFILE_CHECK,
    ValidationState.BUSINESS_RULES_CHECK,
)

# ==============================================================================
# PIPELINE
# ==============================================================================


class ValidationPipeline:
    """Ordered composition of validation rules.

    Args:
        stages: Rules per state. States without rules are skipped, unknown
            states are rejected.
        name: Label used in log events, usually the profile URL.
    """

    def __init__(
        self, stages: Mapping[ValidationState, Sequence[Rule]], *, name: str = "pipeline"
    ) -> None:
        if ValidationState.DONE in stages:
            raise ValueError("DONE is terminal and cannot hold rules")
        self._stages: dict[ValidationState, tuple[Rule, ...]] = {
            state: tuple(stages.get(state, ())) for state in CHECK_STATES
        }
        self.name = name

    def rules(self, state: ValidationState) -> tuple[Rule, ...]:
        return self._stages.get(state, ())

    def run(
        self, resource: Mapping[str, Any], parent_context: LocationContext
    ) -> Validation:
        """Run every layer and return the concatenated issues.

        Issues are ordered by layer, then by rule declaration order within a
        layer. Errors in one layer never prevent later layers from running.
        """
        validation = Validation()
        state = ValidationState.STRUCTURAL_CHECK
        while state is not ValidationState.DONE:
            for rule in self._stages[state]:
                validation.append(rule(resource, parent_context))
            state = state.next()
        logger.debug(
            "validation.pipeline.completed",
            pipeline=self.name,
            location=str(parent_context),
            issues=len(validation),
            errors=len(validation.errors()),
        )
        return validation

    def __call__(
        self, resource: Mapping[str, Any], parent_context: LocationContext
    ) -> Validation:
        return self.run(resource, parent_context)


__all__ = ["CHECK_STATES", "Rule", "ValidationPipeline", "ValidationState"]
