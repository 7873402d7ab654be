"""
Signal adjustment rules for the scoring engine.

Each rule pairs a condition on the :class:`Classification` with a
threshold on one capability dimension and an additive score delta.
Rules are plain data so they can be recalibrated from configuration
without touching the scoring algorithm.
"""

import logging
import math
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from modeltriage.capabilities.table import DIMENSIONS, CapabilityVector
from modeltriage.exceptions import ConfigurationError
from modeltriage.routing.classification import Classification

logger = logging.getLogger(__name__)

# Classification attributes a rule may test.
_CONDITION_FIELDS = {
    "has_code": lambda c: c.signals.has_code,
    "has_stack_trace": lambda c: c.signals.has_stack_trace,
    "strict_format": lambda c: c.signals.strict_format,
    "concise": lambda c: c.signals.concise,
    "long_form": lambda c: c.signals.long_form,
    "mentions_latest": lambda c: c.signals.mentions_latest,
    "recency_required": lambda c: c.recency_required,
    "stakes": lambda c: c.stakes,
    "task_category": lambda c: c.task_category,
}


class AdjustmentRule(BaseModel):
    """One additive bonus or penalty.

    The rule fires when the classification field named by ``when``
    equals ``equals`` (or is one of ``one_of``) and the model's
    ``dimension`` score satisfies ``op threshold``.

    Attributes:
        name: Stable identifier, used in logs and tests.
        when: Classification attribute to test.
        equals: Value the attribute must equal (default ``True``).
        one_of: Alternative to ``equals``: allowed attribute values.
        dimension: Capability dimension compared to the threshold.
        op: ``">="`` or ``"<"``.
        threshold: Capability threshold (0.0 -- 1.0).
        delta: Points added to the score when the rule fires.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    when: str
    equals: Any = True
    one_of: Optional[Tuple[str, ...]] = None
    dimension: str
    op: Literal[">=", "<"]
    threshold: float = Field(ge=0.0, le=1.0)
    delta: float

    @field_validator("when")
    @classmethod
    def when_must_be_known(cls, v: str) -> str:
        if v not in _CONDITION_FIELDS:
            raise ValueError(
                f"Unknown rule condition '{v}'. Allowed: {sorted(_CONDITION_FIELDS)}"
            )
        return v

    @field_validator("dimension")
    @classmethod
    def dimension_must_be_known(cls, v: str) -> str:
        if v not in DIMENSIONS:
            raise ValueError(f"Unknown capability dimension '{v}'")
        return v

    def matches(self, classification: Classification) -> bool:
        """Return True if the classification side of the rule holds."""
        value = _CONDITION_FIELDS[self.when](classification)
        if self.one_of is not None:
            return value in self.one_of
        return value == self.equals

    def applies(
        self,
        classification: Classification,
        capabilities: CapabilityVector,
    ) -> bool:
        """Return True if the rule fires for this model."""
        if not self.matches(classification):
            return False
        score = capabilities.get(self.dimension)
        if self.op == ">=":
            return score >= self.threshold
        return score < self.threshold


def _rule(name: str, when: str, dimension: str, op: str, threshold: float,
          delta: float, **kwargs: Any) -> AdjustmentRule:
    return AdjustmentRule(
        name=name, when=when, dimension=dimension, op=op,
        threshold=threshold, delta=delta, **kwargs,
    )


DEFAULT_ADJUSTMENT_RULES: Tuple[AdjustmentRule, ...] = (
    _rule("code_signal_bonus", "has_code", "code_generation", ">=", 0.75, 5),
    _rule("stack_trace_bonus", "has_stack_trace", "debugging", ">=", 0.70, 6),
    _rule("strict_format_bonus", "strict_format", "structured_output", ">=", 0.75, 5),
    _rule("recency_bonus", "recency_required", "recency_strength", ">=", 0.80, 5),
    _rule("high_stakes_weak_reasoning", "stakes", "reasoning", "<", 0.70, -12, equals="high"),
    _rule("medium_stakes_weak_reasoning", "stakes", "reasoning", "<", 0.60, -6, equals="medium"),
    _rule("recency_stale_penalty", "recency_required", "recency_strength", "<", 0.70, -8),
    _rule("code_task_weak_codegen", "task_category", "code_generation", "<", 0.60, -8,
          one_of=("code_gen", "debug")),
    _rule("concise_slow_penalty", "concise", "speed", "<", 0.50, -5),
    _rule("concise_fast_bonus", "concise", "speed", ">=", 0.85, 4),
    _rule("long_form_reasoning_bonus", "long_form", "reasoning", ">=", 0.75, 6),
    _rule("long_form_instruction_bonus", "long_form", "instruction_following", ">=", 0.85, 3),
    _rule("long_form_weak_reasoning", "long_form", "reasoning", "<", 0.55, -6),
)


def load_rules(raw: Optional[Sequence[Dict[str, Any]]]) -> Tuple[AdjustmentRule, ...]:
    """Build a rule set from configuration, or return the defaults.

    Args:
        raw: List of rule mappings (e.g. from YAML), or ``None``.

    Returns:
        Ordered tuple of :class:`AdjustmentRule`.

    Raises:
        ConfigurationError: If any rule is malformed.
    """
    if raw is None:
        return DEFAULT_ADJUSTMENT_RULES
    rules: List[AdjustmentRule] = []
    for index, entry in enumerate(raw):
        try:
            rules.append(AdjustmentRule.model_validate(entry))
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid adjustment rule at position {index}: {exc}"
            ) from exc
    logger.info("Adjustment rules loaded from config", extra={"count": len(rules)})
    return tuple(rules)


def apply_adjustments(
    base_score: float,
    classification: Classification,
    capabilities: CapabilityVector,
    rules: Sequence[AdjustmentRule] = DEFAULT_ADJUSTMENT_RULES,
) -> Tuple[int, List[str]]:
    """Apply every rule that fires and clamp the result.

    Rules are independent and accumulate.

    Returns:
        Tuple of (adjusted score clamped to 0--100 and rounded,
        names of the rules that fired).
    """
    adjusted = base_score
    fired: List[str] = []
    for rule in rules:
        if rule.applies(classification, capabilities):
            adjusted += rule.delta
            fired.append(rule.name)
    # Half-up rounding
    return max(0, min(100, math.floor(adjusted + 0.5))), fired
