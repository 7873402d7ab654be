"""
Decision assembler: the engine's public entry point.

Runs the attachment override layer, the configured classification
strategy, the low-confidence floor and the scoring engine, and merges
their outcomes into a single :class:`RoutingDecision`.
"""

import logging
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from modeltriage.capabilities.table import CapabilityTable
from modeltriage.config import Settings, get_settings, resolve_path
from modeltriage.exceptions import (
    ConfigurationError,
    RoutingInvariantError,
    UnknownModelIdentifierError,
)
from modeltriage.routing.attachments import AttachmentContext
from modeltriage.routing.classification import Classification
from modeltriage.routing.classifier import ClassificationStrategy, HeuristicClassifier
from modeltriage.routing.external import ExternalClassifier
from modeltriage.routing.overrides import AttachmentOverrideLayer
from modeltriage.routing.rules import load_rules
from modeltriage.routing.scoring import (
    ConfidenceCalibration,
    ScoringEngine,
    ScoringResult,
)

logger = logging.getLogger(__name__)

INTENT_BY_CATEGORY: Dict[str, str] = {
    "code_gen": "coding",
    "debug": "coding",
    "refactor": "coding",
    "creative": "writing",
    "explain": "analysis",
    "analysis": "analysis",
    "research": "analysis",
    "math": "analysis",
    "qa": "analysis",
    "general": "unknown",
}


class RoutingDecision(BaseModel):
    """The engine's output contract.

    Attributes:
        intent: Coarse intent label (coding, writing, analysis, vision,
            unknown).
        category: Task category, or the override category.
        chosen_model: Selected model id, always in the roster.
        confidence: Confidence scalar in [0, 1]; 0 when the low-confidence
            floor forced the safe default.
        explanation: Human-readable justification.
        fallback_used: True when a classification fallback occurred.
        scoring: Transparency breakdown for the chosen model.
    """

    model_config = ConfigDict(frozen=True)

    intent: str
    category: str
    chosen_model: str
    confidence: float = Field(ge=0.0, le=1.0)
    explanation: str
    fallback_used: bool = False
    scoring: Optional[ScoringResult] = None


class DecisionEngine:
    """Route a prompt (plus optional attachments) to one model.

    Args:
        table: Capability table (read-only).
        classifier: Classification strategy.  Defaults to heuristics.
        settings: Application settings.  Defaults to :func:`get_settings`.

    Raises:
        UnknownModelIdentifierError: If the roster, the safe default or
            an override model has no capability profile.
        ConfigurationError: If any configured model is outside the roster.
    """

    def __init__(
        self,
        table: CapabilityTable,
        classifier: Optional[ClassificationStrategy] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._table = table
        self._heuristic = HeuristicClassifier()
        self._classifier: ClassificationStrategy = classifier or self._heuristic

        routing = self._settings.routing
        scoring = self._settings.scoring
        self._roster = list(routing.roster) or table.list_models()
        table.validate_roster(self._roster)

        self._scorer = ScoringEngine(
            table,
            models=self._roster,
            rules=load_rules(scoring.adjustment_rules),
            calibration=ConfidenceCalibration(**scoring.calibration),
            negligible_weight=scoring.negligible_weight,
            max_key_factors=scoring.max_key_factors,
        )
        self._overrides = AttachmentOverrideLayer(table, self._settings.overrides)

        for model_id in [routing.safe_default_model] + self._overrides.model_ids:
            table.get_profile(model_id)
            if model_id not in self._roster:
                raise ConfigurationError(
                    f"Configured model '{model_id}' is not in the routing roster"
                )

    @property
    def roster(self) -> List[str]:
        return list(self._roster)

    def decide(
        self,
        prompt: str,
        attachments: Optional[AttachmentContext] = None,
    ) -> RoutingDecision:
        """Choose a model for the request.

        Never raises for classification problems; those degrade to
        heuristics or the safe default.

        Raises:
            RoutingInvariantError: If no model could be scored.
        """
        override = self._overrides.evaluate(prompt, attachments)
        if override is not None:
            classification = self._heuristic.classify(prompt, attachments)
            decision = RoutingDecision(
                intent=override.intent,
                category=override.category,
                chosen_model=override.model_id,
                confidence=override.confidence,
                explanation=override.explanation,
                scoring=self._scorer.score_for_model(classification, override.model_id),
            )
            self._log_decision(decision, path="override", rule=override.rule)
            return decision

        classification = self._classifier.classify(prompt, attachments)
        logger.debug(
            "Prompt classified",
            extra={
                "task_category": classification.task_category,
                "stakes": classification.stakes,
                "confidence": classification.confidence_score,
                "source": classification.source,
            },
        )

        routing = self._settings.routing
        if classification.confidence_score < routing.confidence_floor:
            decision = self._safe_default(classification)
            self._log_decision(decision, path="floor")
            return decision

        decision = self._scored_decision(classification)
        self._log_decision(decision, path="scored")
        return decision

    def explain(
        self,
        prompt: str,
        model_id: str,
        classification: Optional[Classification] = None,
    ) -> ScoringResult:
        """Recompute the full score breakdown for an already-chosen model.

        Raises:
            UnknownModelIdentifierError: If ``model_id`` is not routable.
        """
        if classification is None:
            classification = self._heuristic.classify(prompt)
        return self._scorer.score_for_model(classification, model_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _safe_default(self, classification: Classification) -> RoutingDecision:
        model_id = self._settings.routing.safe_default_model
        name = self._table.get_profile(model_id).display_name
        return RoutingDecision(
            intent=INTENT_BY_CATEGORY.get(classification.task_category, "unknown"),
            category=classification.task_category,
            chosen_model=model_id,
            confidence=0.0,
            explanation=f"Selected {name} as a reliable default for this request.",
            fallback_used=classification.fallback_used,
            scoring=self._scorer.score_for_model(classification, model_id),
        )

    def _scored_decision(self, classification: Classification) -> RoutingDecision:
        routing = self._settings.routing
        result = self._scorer.score(classification)
        if result.model_id not in self._roster:
            logger.error(
                "Scorer selected a model outside the roster",
                extra={"model": result.model_id},
            )
            raise RoutingInvariantError(
                f"Scorer selected '{result.model_id}', which is not routable"
            )

        candidate = classification.candidate_model
        if candidate and candidate != result.model_id:
            if candidate not in self._roster:
                logger.warning(
                    "Ignoring candidate model outside the roster",
                    extra={"candidate": candidate},
                )
            else:
                candidate_result = self._scorer.score_for_model(classification, candidate)
                gap = result.expected_success - candidate_result.expected_success
                if gap <= routing.candidate_tolerance:
                    result = candidate_result
                else:
                    logger.debug(
                        "Candidate model scored too far below the winner",
                        extra={"candidate": candidate, "gap": gap},
                    )

        confidence = routing.confidence_scalars[result.confidence]
        if classification.fallback_used:
            confidence = min(confidence, routing.confidence_scalars["Low"])

        explanation = result.rationale
        if classification.rationale and result.model_id == candidate:
            explanation = classification.rationale

        return RoutingDecision(
            intent=INTENT_BY_CATEGORY.get(classification.task_category, "unknown"),
            category=classification.task_category,
            chosen_model=result.model_id,
            confidence=confidence,
            explanation=explanation,
            fallback_used=classification.fallback_used,
            scoring=result,
        )

    @staticmethod
    def _log_decision(decision: RoutingDecision, path: str, rule: str = "") -> None:
        logger.info(
            "Routing decision",
            extra={
                "path": path,
                "rule": rule,
                "model": decision.chosen_model,
                "category": decision.category,
                "confidence": decision.confidence,
                "fallback_used": decision.fallback_used,
            },
        )


def build_classifier(
    settings: Settings,
    roster: Sequence[str] = (),
) -> ClassificationStrategy:
    """Instantiate the configured classification strategy.

    Raises:
        ConfigurationError: If ``classifier.strategy`` is unknown.
    """
    strategy = settings.classifier.strategy
    if strategy == "heuristic":
        return HeuristicClassifier()
    if strategy == "external":
        return ExternalClassifier(settings=settings.classifier, roster=roster)
    raise ConfigurationError(
        f"Unknown classifier strategy '{strategy}'. Allowed: heuristic, external"
    )


def build_engine(settings: Optional[Settings] = None) -> DecisionEngine:
    """Create a fully wired :class:`DecisionEngine` from settings."""
    settings = settings or get_settings()
    path = resolve_path(settings.routing.capabilities_path)
    table = CapabilityTable(path if path.exists() else None)
    roster = list(settings.routing.roster) or table.list_models()
    try:
        return DecisionEngine(table, build_classifier(settings, roster), settings)
    except UnknownModelIdentifierError:
        logger.error("Startup validation failed: unknown model in configuration")
        raise
