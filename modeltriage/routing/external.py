"""
External (LLM-backed) classification strategy.

Asks an OpenAI-compatible chat model to classify the prompt and propose
a model, bounded by a hard timeout.  Whatever goes wrong (timeout,
provider error, malformed reply) the strategy degrades to the
deterministic :class:`HeuristicClassifier` result, marked as a fallback.
"""

import json
import logging
import os
import re
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, List, Optional, Sequence

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from modeltriage.capabilities.table import TASK_CATEGORIES, TaskCategory
from modeltriage.config import ClassifierSettings
from modeltriage.exceptions import (
    ClassificationError,
    ClassificationParseFailure,
    ClassificationTimeout,
)
from modeltriage.routing.attachments import AttachmentContext
from modeltriage.routing.classification import Classification, band_for_score
from modeltriage.routing.classifier import HeuristicClassifier

logger = logging.getLogger(__name__)

CompletionFn = Callable[[str], str]

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

CLASSIFIER_INSTRUCTIONS = """Classify this prompt and propose the best model. Respond ONLY with valid JSON.

Prompt: "{prompt}"

Task categories: {categories}
Available models: {models}

If you are unsure, report a confidence below 0.5.

Required JSON format:
{{
  "category": "<one task category from the list>",
  "candidate_model": "<exact model id from the list>",
  "confidence": 0.0-1.0,
  "rationale": "<one sentence on what the request is about and why the model fits>"
}}

Output ONLY the JSON object, no other text."""


class ClassifierVerdict(BaseModel):
    """Structured reply from the external classifier."""

    model_config = ConfigDict(frozen=True)

    category: TaskCategory
    candidate_model: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("candidate_model", "chosenModel"),
    )
    confidence: float
    rationale: str = Field(
        default="",
        validation_alias=AliasChoices("rationale", "reason"),
    )

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        return max(0.0, min(1.0, v))


def parse_verdict(text: str) -> ClassifierVerdict:
    """Extract and validate the JSON object in a classifier reply.

    Raises:
        ClassificationParseFailure: If no valid verdict can be read.
    """
    if not text or not text.strip():
        raise ClassificationParseFailure("Classifier returned an empty response")
    match = _JSON_OBJECT.search(text)
    raw = match.group(0) if match else text.strip()
    try:
        return ClassifierVerdict.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError, TypeError) as exc:
        raise ClassificationParseFailure(
            f"Failed to parse classifier response: {exc}"
        ) from exc


def openai_completion(settings: ClassifierSettings) -> CompletionFn:
    """Build a completion function backed by the ``openai`` SDK."""

    def _complete(prompt: str) -> str:
        from openai import OpenAI

        client = OpenAI(
            api_key=os.getenv(settings.api_key_env),
            base_url=settings.base_url or None,
            timeout=settings.timeout_seconds,
            max_retries=0,
        )
        response = client.chat.completions.create(
            model=settings.model,
            messages=[{"role": "user", "content": prompt}],
            max_completion_tokens=settings.max_completion_tokens,
        )
        return response.choices[0].message.content or ""

    return _complete


class ExternalClassifier:
    """Classification strategy that consults an external reasoning model.

    Signals, stakes and recency always come from the heuristic pass;
    the external verdict only supplies the category, a candidate model,
    a confidence and a rationale.

    Args:
        heuristic: Deterministic classifier used for signals and fallback.
        completion_fn: Callable mapping an instruction prompt to reply
            text.  Defaults to an OpenAI chat completion.
        settings: Classifier settings (model, timeout).
        roster: Model ids offered to the external model.
    """

    def __init__(
        self,
        heuristic: Optional[HeuristicClassifier] = None,
        completion_fn: Optional[CompletionFn] = None,
        settings: Optional[ClassifierSettings] = None,
        roster: Sequence[str] = (),
    ) -> None:
        self._settings = settings or ClassifierSettings()
        self._heuristic = heuristic or HeuristicClassifier()
        self._complete = completion_fn or openai_completion(self._settings)
        self._roster: List[str] = list(roster)

    def classify(
        self,
        prompt: str,
        attachments: Optional[AttachmentContext] = None,
    ) -> Classification:
        """Classify via the external model, falling back on any failure.

        When the heuristic pass is already at least
        ``fast_path_confidence`` sure, its result is returned and the
        external model is not consulted.
        """
        base = self._heuristic.classify(prompt, attachments)
        if base.confidence_score >= self._settings.fast_path_confidence:
            logger.debug(
                "Heuristic classification confident, skipping external call",
                extra={
                    "category": base.task_category,
                    "confidence": base.confidence_score,
                },
            )
            return base

        try:
            verdict = self._request_verdict(prompt)
        except ClassificationError as exc:
            logger.warning(
                "External classification failed, using heuristics",
                extra={"error_type": type(exc).__name__, "error": str(exc)},
            )
            return base.model_copy(update={"source": "heuristic_fallback"})

        logger.debug(
            "External classification",
            extra={
                "category": verdict.category,
                "candidate": verdict.candidate_model,
                "confidence": verdict.confidence,
            },
        )
        return base.model_copy(
            update={
                "task_category": verdict.category,
                "confidence": band_for_score(verdict.confidence),
                "confidence_score": verdict.confidence,
                "source": "external",
                "candidate_model": verdict.candidate_model,
                "rationale": verdict.rationale,
            }
        )

    def _request_verdict(self, prompt: str) -> ClassifierVerdict:
        instruction = CLASSIFIER_INSTRUCTIONS.format(
            prompt=prompt,
            categories=", ".join(TASK_CATEGORIES),
            models=", ".join(self._roster),
        )
        timeout = self._settings.timeout_seconds

        future: Future = Future()

        def _run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self._complete(instruction))
            except Exception as exc:
                future.set_exception(exc)

        # Daemon thread: a call that loses the race never holds up exit
        threading.Thread(target=_run, name="external-classifier", daemon=True).start()
        try:
            text = future.result(timeout=timeout)
        except FutureTimeoutError as exc:
            future.cancel()
            raise ClassificationTimeout(
                f"Classifier did not answer within {timeout}s"
            ) from exc
        except ClassificationError:
            raise
        except Exception as exc:
            raise ClassificationError(f"Classifier call failed: {exc}") from exc

        return parse_verdict(text)
