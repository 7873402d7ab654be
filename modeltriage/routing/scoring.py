"""
Expected Success scoring engine.

Computes a 0--100 Expected Success score for every model given a
:class:`Classification`: a weighted capability average, signal-based
bonuses and penalties, clamping, ranking, confidence calibration,
key-factor selection and a templated one-sentence rationale.

Every function here is deterministic: the same classification and
capability table always produce the same result.
"""

import functools
import logging
from typing import Dict, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from modeltriage.capabilities.table import (
    CAPABILITY_LABELS,
    DIMENSIONS,
    CapabilityTable,
    ModelProfile,
    TaskWeightProfile,
)
from modeltriage.exceptions import RoutingInvariantError, UnknownModelIdentifierError
from modeltriage.routing.classification import Classification, ConfidenceBand
from modeltriage.routing.rules import (
    DEFAULT_ADJUSTMENT_RULES,
    AdjustmentRule,
    apply_adjustments,
)

logger = logging.getLogger(__name__)

ConfidenceLevel = Literal["Low", "Medium", "High"]

DEFAULT_BASE_SCORE = 50.0


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


class DimensionScore(BaseModel):
    """One dimension of a model's score breakdown."""

    model_config = ConfigDict(frozen=True)

    raw: float
    weight: float
    weighted: float


class ScoredModel(BaseModel):
    """Score of a single model against a classification.

    Attributes:
        model_id: The scored model.
        raw_score: Unclamped weighted average x 100 (informational).
        adjusted_score: Raw score plus adjustments, clamped to 0--100.
        dimensions: Per-dimension capability, weight and product.
        fired_rules: Names of the adjustment rules that fired.
    """

    model_config = ConfigDict(frozen=True)

    model_id: str
    raw_score: float
    adjusted_score: int = Field(ge=0, le=100)
    dimensions: Dict[str, DimensionScore]
    fired_rules: List[str] = Field(default_factory=list)


class KeyFactor(BaseModel):
    """A top dimension explaining why a model was chosen."""

    model_config = ConfigDict(frozen=True)

    label: str
    score: int = Field(ge=0, le=100)
    reason: str


class ScoringResult(BaseModel):
    """Transparency output for one model.

    Attributes:
        model_id: The recommended (or explained) model.
        expected_success: Adjusted score, 0--100.
        confidence: Calibrated confidence level.
        key_factors: Three or four explanatory factors.
        rationale: One templated sentence.
    """

    model_config = ConfigDict(frozen=True)

    model_id: str
    expected_success: int = Field(ge=0, le=100)
    confidence: ConfidenceLevel
    key_factors: List[KeyFactor]
    rationale: str


class ConfidenceCalibration(BaseModel):
    """Point table used to turn score gaps into a confidence level."""

    model_config = ConfigDict(frozen=True)

    gap_points: Tuple[Tuple[float, int], ...] = ((12, 3), (6, 2), (3, 1))
    classifier_points: Dict[str, int] = Field(
        default_factory=lambda: {"high": 2, "medium": 1, "low": 0}
    )
    top_score_threshold: float = 70
    top_score_points: int = 1
    high_min_points: int = 4
    medium_min_points: int = 2


DEFAULT_CALIBRATION = ConfidenceCalibration()


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def confidence_points(
    top_score: float,
    second_score: float,
    classifier_confidence: ConfidenceBand,
    calibration: ConfidenceCalibration = DEFAULT_CALIBRATION,
) -> int:
    """Sum the gap, classifier and absolute-score confidence points."""
    points = 0
    gap = top_score - second_score
    for min_gap, gap_pts in calibration.gap_points:
        if gap >= min_gap:
            points += gap_pts
            break
    points += calibration.classifier_points.get(classifier_confidence, 0)
    if top_score >= calibration.top_score_threshold:
        points += calibration.top_score_points
    return points


def compute_confidence(
    top_score: float,
    second_score: float,
    classifier_confidence: ConfidenceBand,
    calibration: ConfidenceCalibration = DEFAULT_CALIBRATION,
) -> ConfidenceLevel:
    """Map the winner's margin and classifier confidence to a level.

    Args:
        top_score: Adjusted score of the model being reported.
        second_score: Adjusted score it is compared against.
        classifier_confidence: Classifier band.
        calibration: Point table.

    Returns:
        ``"High"``, ``"Medium"`` or ``"Low"``.
    """
    points = confidence_points(
        top_score, second_score, classifier_confidence, calibration
    )
    if points >= calibration.high_min_points:
        return "High"
    if points >= calibration.medium_min_points:
        return "Medium"
    return "Low"


# dimension -> (>= 80, 60-79, below 60)
_REASON_TEMPLATES: Dict[str, Tuple[str, str, str]] = {
    "reasoning": (
        "Excels at complex logic", "Solid logical reasoning", "Basic reasoning capability",
    ),
    "code_generation": (
        "Top-tier code output", "Reliable code generation", "Adequate code support",
    ),
    "debugging": (
        "Expert error diagnosis", "Good error tracing", "Basic debugging support",
    ),
    "structured_output": (
        "Precise format control", "Good format adherence", "Basic format support",
    ),
    "instruction_following": (
        "Follows instructions closely", "Reliable instruction adherence", "May need guidance",
    ),
    "speed": (
        "Very fast response time", "Reasonable response speed", "Slower, more thorough",
    ),
    "cost_efficiency": (
        "Highly cost-effective", "Good value for quality", "Premium quality, higher cost",
    ),
    "recency_strength": (
        "Up-to-date knowledge", "Fairly current training", "May lack recent info",
    ),
}

TASK_DESCRIPTIONS: Dict[str, str] = {
    "code_gen": "code generation",
    "debug": "debugging and error analysis",
    "refactor": "code review and refactoring",
    "explain": "explanations and analysis",
    "analysis": "comparisons and analytical reasoning",
    "research": "deep research and reasoning",
    "creative": "creative writing and content",
    "math": "mathematical reasoning",
    "qa": "quick factual answers",
    "general": "general-purpose tasks",
}


def factor_reason(dimension: str, score: int) -> str:
    """Return the templated one-line reason for a dimension score."""
    templates = _REASON_TEMPLATES.get(dimension)
    if templates is None:
        return "Relevant capability"
    if score >= 80:
        return templates[0]
    if score >= 60:
        return templates[1]
    return templates[2]


def _compare_factors(a: Tuple[str, int, float], b: Tuple[str, int, float]) -> int:
    # Weight first (differences within 0.01 count as equal), then score
    weight_diff = b[2] - a[2]
    if abs(weight_diff) > 0.01:
        return 1 if weight_diff > 0 else -1
    return b[1] - a[1]


def select_key_factors(
    scored: ScoredModel,
    negligible_weight: float = 0.05,
    max_factors: int = 4,
) -> List[KeyFactor]:
    """Pick the dimensions that best explain a model's score.

    Dimensions with weight below ``negligible_weight`` are dropped; the
    rest are ordered by task weight, then by capability score.
    """
    candidates: List[Tuple[str, int, float]] = []
    for dimension in DIMENSIONS:
        entry = scored.dimensions[dimension]
        if entry.weight < negligible_weight:
            continue
        candidates.append((dimension, int(round(entry.raw * 100)), entry.weight))

    candidates.sort(key=functools.cmp_to_key(_compare_factors))

    return [
        KeyFactor(
            label=CAPABILITY_LABELS.get(dimension, dimension),
            score=score,
            reason=factor_reason(dimension, score),
        )
        for dimension, score, _ in candidates[:max_factors]
    ]


def build_rationale(display_name: str, task_category: str, score: int) -> str:
    """Assemble the one-sentence rationale for a model choice."""
    task = TASK_DESCRIPTIONS.get(task_category, "this type of task")
    if score >= 85:
        return (
            f"{display_name} is exceptionally well-suited for {task}, "
            f"with strong alignment across all key dimensions."
        )
    if score >= 75:
        return (
            f"{display_name} is a strong match for {task}, "
            f"offering the best balance of capability and efficiency."
        )
    if score >= 65:
        return (
            f"{display_name} is a good fit for {task}, "
            f"with solid capabilities where it matters most."
        )
    return (
        f"{display_name} is the best available option for {task} "
        f"given the current model lineup."
    )


def score_model(
    profile: ModelProfile,
    weights: TaskWeightProfile,
    classification: Classification,
    rules: Sequence[AdjustmentRule] = DEFAULT_ADJUSTMENT_RULES,
) -> ScoredModel:
    """Score one model against one classification.

    Base score is ``100 * sum(capability * weight) / sum(weight)``
    (50 when every weight is zero); adjustment rules are then applied
    and the result is clamped to 0--100.
    """
    caps = profile.capabilities
    dimensions: Dict[str, DimensionScore] = {}
    weighted_sum = 0.0
    total_weight = 0.0

    for dimension in DIMENSIONS:
        raw = caps.get(dimension)
        weight = weights.get(dimension)
        weighted = raw * weight
        dimensions[dimension] = DimensionScore(raw=raw, weight=weight, weighted=weighted)
        weighted_sum += weighted
        total_weight += weight

    raw_score = (
        weighted_sum / total_weight * 100 if total_weight > 0 else DEFAULT_BASE_SCORE
    )
    adjusted, fired = apply_adjustments(raw_score, classification, caps, rules)

    return ScoredModel(
        model_id=profile.id,
        raw_score=raw_score,
        adjusted_score=adjusted,
        dimensions=dimensions,
        fired_rules=fired,
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class ScoringEngine:
    """Score, rank and explain models for a classification.

    Args:
        table: The capability table.
        models: Model ids eligible for selection (the provider roster).
            Defaults to every model in the table.
        rules: Ordered adjustment rules.
        calibration: Confidence point table.
        negligible_weight: Weight below which a dimension is never a
            key factor.
        max_key_factors: Upper bound on key factors returned.
    """

    def __init__(
        self,
        table: CapabilityTable,
        models: Optional[Sequence[str]] = None,
        rules: Sequence[AdjustmentRule] = DEFAULT_ADJUSTMENT_RULES,
        calibration: ConfidenceCalibration = DEFAULT_CALIBRATION,
        negligible_weight: float = 0.05,
        max_key_factors: int = 4,
    ) -> None:
        self._table = table
        self._models: Tuple[str, ...] = tuple(
            models if models is not None else table.list_models()
        )
        table.validate_roster(list(self._models))
        self._rules = tuple(rules)
        self._calibration = calibration
        self._negligible_weight = negligible_weight
        self._max_key_factors = max_key_factors

    @property
    def models(self) -> Tuple[str, ...]:
        return self._models

    def rank(self, classification: Classification) -> List[ScoredModel]:
        """Score every eligible model, best first.

        Ties keep roster order.

        Raises:
            RoutingInvariantError: If no model is eligible.
        """
        if not self._models:
            logger.error("Scoring requested with an empty roster")
            raise RoutingInvariantError("No models available to score")

        weights = self._table.get_task_weights(classification.task_category)
        scores = [
            score_model(self._table.get_profile(m), weights, classification, self._rules)
            for m in self._models
        ]
        scores.sort(key=lambda s: s.adjusted_score, reverse=True)
        return scores

    def score(self, classification: Classification) -> ScoringResult:
        """Score all models and return the recommendation."""
        ranked = self.rank(classification)
        best = ranked[0]
        second_score = ranked[1].adjusted_score if len(ranked) > 1 else 0
        result = self._build_result(best, second_score, classification)

        logger.debug(
            "Models scored",
            extra={
                "task_category": classification.task_category,
                "ranking": [(s.model_id, s.adjusted_score) for s in ranked],
            },
        )
        return result

    def score_for_model(
        self,
        classification: Classification,
        model_id: str,
    ) -> ScoringResult:
        """Explain an already-chosen model.

        Confidence is computed against the true best model: against
        the runner-up when ``model_id`` is the best, otherwise against
        the best.

        Raises:
            UnknownModelIdentifierError: If ``model_id`` is not eligible.
        """
        if model_id not in self._models:
            raise UnknownModelIdentifierError(
                f"Model '{model_id}' is not in the routing roster"
            )
        ranked = self.rank(classification)
        target = next(s for s in ranked if s.model_id == model_id)
        best = ranked[0]
        if target.model_id == best.model_id:
            reference = ranked[1].adjusted_score if len(ranked) > 1 else 0
        else:
            reference = best.adjusted_score
        return self._build_result(target, reference, classification)

    def _build_result(
        self,
        scored: ScoredModel,
        reference_score: int,
        classification: Classification,
    ) -> ScoringResult:
        profile = self._table.get_profile(scored.model_id)
        return ScoringResult(
            model_id=scored.model_id,
            expected_success=scored.adjusted_score,
            confidence=compute_confidence(
                scored.adjusted_score,
                reference_score,
                classification.confidence,
                self._calibration,
            ),
            key_factors=select_key_factors(
                scored, self._negligible_weight, self._max_key_factors
            ),
            rationale=build_rationale(
                profile.display_name,
                classification.task_category,
                scored.adjusted_score,
            ),
        )
