"""Routing pipeline: classification, scoring, overrides and decisions."""

from modeltriage.routing.attachments import Attachment, AttachmentContext
from modeltriage.routing.classification import Classification, InputSignals
from modeltriage.routing.classifier import ClassificationStrategy, HeuristicClassifier
from modeltriage.routing.engine import (
    DecisionEngine,
    RoutingDecision,
    build_classifier,
    build_engine,
)
from modeltriage.routing.external import ClassifierVerdict, ExternalClassifier
from modeltriage.routing.gists import AttachmentGist
from modeltriage.routing.overrides import AttachmentOverrideLayer, OverrideDecision
from modeltriage.routing.rules import DEFAULT_ADJUSTMENT_RULES, AdjustmentRule
from modeltriage.routing.scoring import (
    ConfidenceCalibration,
    KeyFactor,
    ScoredModel,
    ScoringEngine,
    ScoringResult,
    compute_confidence,
)

__all__ = [
    "Attachment",
    "AttachmentContext",
    "AttachmentGist",
    "AttachmentOverrideLayer",
    "AdjustmentRule",
    "Classification",
    "ClassificationStrategy",
    "ClassifierVerdict",
    "ConfidenceCalibration",
    "DEFAULT_ADJUSTMENT_RULES",
    "DecisionEngine",
    "ExternalClassifier",
    "HeuristicClassifier",
    "InputSignals",
    "KeyFactor",
    "OverrideDecision",
    "RoutingDecision",
    "ScoredModel",
    "ScoringEngine",
    "ScoringResult",
    "build_classifier",
    "build_engine",
    "compute_confidence",
]
