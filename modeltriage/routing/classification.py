"""
Classification data model shared by the classifiers, the scoring
engine and the attachment override layer.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from modeltriage.capabilities.table import TaskCategory

StakesLevel = Literal["low", "medium", "high"]
ConfidenceBand = Literal["low", "medium", "high"]
ClassificationSource = Literal["heuristic", "external", "heuristic_fallback"]


class InputSignals(BaseModel):
    """Boolean signals extracted from the prompt text.

    Attributes:
        has_code: Prompt contains code or names a programming language.
        has_stack_trace: Prompt contains stack-trace-like content.
        strict_format: Prompt asks for a structured output format.
        concise: Prompt is short.
        long_form: Prompt is long.
        mentions_latest: Prompt asks about recent or current things.
    """

    model_config = ConfigDict(frozen=True)

    has_code: bool = False
    has_stack_trace: bool = False
    strict_format: bool = False
    concise: bool = False
    long_form: bool = False
    mentions_latest: bool = False


class Classification(BaseModel):
    """Structured view of a single request.

    Attributes:
        task_category: Detected task category.
        stakes: How costly a poor answer would be.
        signals: Boolean input signals.
        recency_required: Whether the answer needs recent knowledge.
        confidence: Classifier self-reported confidence band.
        confidence_score: The same confidence on a 0.0 -- 1.0 scale.
        source: Which classifier produced this classification.
        candidate_model: Model proposed by an external classifier.
        rationale: Free-text rationale from an external classifier.
    """

    model_config = ConfigDict(frozen=True)

    task_category: TaskCategory = "general"
    stakes: StakesLevel = "low"
    signals: InputSignals = Field(default_factory=InputSignals)
    recency_required: bool = False
    confidence: ConfidenceBand = "low"
    confidence_score: float = Field(default=0.5, ge=0.0, le=1.0)
    source: ClassificationSource = "heuristic"
    candidate_model: Optional[str] = None
    rationale: str = ""

    @property
    def fallback_used(self) -> bool:
        return self.source == "heuristic_fallback"


def band_for_score(score: float) -> ConfidenceBand:
    """Clamp a 0.0 -- 1.0 confidence into a band."""
    if score >= 0.8:
        return "high"
    if score >= 0.6:
        return "medium"
    return "low"
