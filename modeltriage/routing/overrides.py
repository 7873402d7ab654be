"""
Attachment override layer.

Hard rules that run before scoring: an attached image forces a vision
model, and an uploaded text/code file forces a strong coding model.
Rules are evaluated in order and the first whose predicate holds
decides; a rule may also decide to *defer* (return ``None``), which
hands the request to the scored path untouched.
"""

import logging
from typing import Callable, List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field

from modeltriage.capabilities.table import CapabilityTable
from modeltriage.config import OverrideSettings
from modeltriage.exceptions import ConfigurationError
from modeltriage.routing.attachments import (
    AttachmentContext,
    is_code_related,
    is_lightweight_request,
    requires_deep_reasoning,
)
from modeltriage.routing.gists import AttachmentGist

logger = logging.getLogger(__name__)

IMAGE_FALLBACK_EXPLANATION = (
    "This request includes an image that requires visual analysis, and the "
    "selected model is well-suited for interpreting visual information."
)
FILE_FALLBACK_EXPLANATION = (
    "This request includes an uploaded code/text file, so a stronger coding "
    "model was selected for accurate analysis and reliable results."
)


class OverrideDecision(BaseModel):
    """Outcome of an override rule that fired."""

    model_config = ConfigDict(frozen=True)

    rule: str
    intent: str
    category: str
    model_id: str
    confidence: float = Field(ge=0.0, le=1.0)
    explanation: str


class OverrideRule(NamedTuple):
    """An ordered ``(predicate, effect)`` pair.

    ``effect`` returning ``None`` means "defer to scoring".
    """

    name: str
    predicate: Callable[[str, AttachmentContext], bool]
    effect: Callable[[str, AttachmentContext], Optional[OverrideDecision]]


class AttachmentOverrideLayer:
    """Evaluate attachment-driven hard routing rules.

    Args:
        table: Capability table used to validate and name override models.
        settings: Override models and thresholds.

    Raises:
        UnknownModelIdentifierError: If an override model has no profile.
        ConfigurationError: If a vision slot names a non-vision model,
            or a file slot names a budget-tier model.
    """

    def __init__(
        self,
        table: CapabilityTable,
        settings: Optional[OverrideSettings] = None,
    ) -> None:
        self._table = table
        self._settings = settings or OverrideSettings()
        self._validate_models()
        self._rules: List[OverrideRule] = [
            OverrideRule("image_attachment", self._has_image, self._route_vision),
            OverrideRule("uploaded_file", self._has_text_file, self._route_uploaded_file),
            OverrideRule("code_prompt", self._is_code_prompt, self._defer),
        ]

    @property
    def rules(self) -> List[OverrideRule]:
        return list(self._rules)

    @property
    def model_ids(self) -> List[str]:
        s = self._settings
        return [
            s.vision_lightweight_model,
            s.vision_standard_model,
            s.deep_reasoning_model,
            s.workhorse_model,
        ]

    def evaluate(
        self,
        prompt: str,
        context: Optional[AttachmentContext],
    ) -> Optional[OverrideDecision]:
        """Return the override decision, or ``None`` to use scoring."""
        if context is None:
            return None
        if context.prompt_chars != len(prompt):
            # Size thresholds are measured against the prompt being routed
            context = context.model_copy(update={"prompt_chars": len(prompt)})
        for rule in self._rules:
            if rule.predicate(prompt, context):
                decision = rule.effect(prompt, context)
                logger.debug(
                    "Override rule matched",
                    extra={
                        "rule": rule.name,
                        "model": decision.model_id if decision else None,
                    },
                )
                return decision
        return None

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    @staticmethod
    def _has_image(prompt: str, context: AttachmentContext) -> bool:
        return context.has_images

    @staticmethod
    def _has_text_file(prompt: str, context: AttachmentContext) -> bool:
        return context.has_text_files

    @staticmethod
    def _is_code_prompt(prompt: str, context: AttachmentContext) -> bool:
        return is_code_related(prompt, context)

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------

    def _route_vision(self, prompt: str, context: AttachmentContext) -> OverrideDecision:
        s = self._settings
        lightweight = is_lightweight_request(
            context,
            image_prompt_chars=s.lightweight_image_prompt_chars,
            text_prompt_chars=s.lightweight_text_prompt_chars,
            text_chars=s.lightweight_text_chars,
        )
        if lightweight:
            model_id, category = s.vision_lightweight_model, "vision_lightweight"
        else:
            model_id, category = s.vision_standard_model, "vision_standard"
        return OverrideDecision(
            rule="image_attachment",
            intent="vision",
            category=category,
            model_id=model_id,
            confidence=s.vision_confidence,
            explanation=self._image_explanation(context.primary_gist, model_id, lightweight),
        )

    def _route_uploaded_file(self, prompt: str, context: AttachmentContext) -> OverrideDecision:
        s = self._settings
        complex_request = requires_deep_reasoning(
            prompt,
            context,
            deep_chars=s.deep_reasoning_chars,
            multi_file_chars=s.multi_file_chars,
        )
        if complex_request:
            model_id, category = s.deep_reasoning_model, "code_complex"
        else:
            model_id, category = s.workhorse_model, "code_uploaded_file"
        return OverrideDecision(
            rule="uploaded_file",
            intent="coding",
            category=category,
            model_id=model_id,
            confidence=s.file_confidence,
            explanation=self._file_explanation(context.primary_gist, model_id, complex_request),
        )

    @staticmethod
    def _defer(prompt: str, context: AttachmentContext) -> None:
        """Hand code prompts without uploads to category scoring.

        The rule never overrides.  It exists so the precedence list names
        this case explicitly: a code-related prompt with no attachment may
        still be routed to a lightweight model.
        """
        return None

    # ------------------------------------------------------------------
    # Explanations
    # ------------------------------------------------------------------

    def _image_explanation(
        self,
        gist: Optional[AttachmentGist],
        model_id: str,
        lightweight: bool,
    ) -> str:
        if gist is None:
            return IMAGE_FALLBACK_EXPLANATION
        name = self._table.get_profile(model_id).display_name
        prefix = (
            f"{name} is well-suited for quickly" if lightweight
            else f"{name} is highly effective at"
        )
        if "code" in gist.signals:
            task = "accurately reading and extracting code from images"
        elif "terminal" in gist.signals:
            task = "interpreting and explaining error messages from screenshots"
        elif "UI" in gist.signals:
            task = "analyzing interface behavior and visual layout"
        elif "diagram" in gist.signals:
            task = "understanding visual diagrams and structured information"
        else:
            task = "interpreting visual information"
        return f"This is {_with_article(gist.kind)} showing {gist.topic}, and {prefix} {task}."

    def _file_explanation(
        self,
        gist: Optional[AttachmentGist],
        model_id: str,
        complex_request: bool,
    ) -> str:
        if gist is None:
            return FILE_FALLBACK_EXPLANATION
        name = self._table.get_profile(model_id).display_name
        description = _describe_file(gist)
        if complex_request:
            return (
                f"This is {description}, and {name} is the best fit because "
                f"it excels at {_complex_capability(gist)}."
            )
        return f"This is {description}, and {name} is the best fit for {_file_capability(gist)}."

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_models(self) -> None:
        s = self._settings
        for slot in ("vision_lightweight_model", "vision_standard_model"):
            profile = self._table.get_profile(getattr(s, slot))
            if not profile.supports_vision:
                raise ConfigurationError(
                    f"overrides.{slot} must be a vision-capable model, got '{profile.id}'"
                )
        for slot in ("deep_reasoning_model", "workhorse_model"):
            profile = self._table.get_profile(getattr(s, slot))
            if profile.tier == "budget":
                raise ConfigurationError(
                    f"overrides.{slot} must not be a budget-tier model, got '{profile.id}'"
                )


def _with_article(phrase: str) -> str:
    article = "an" if phrase and phrase[0].lower() in "aeiou" else "a"
    return f"{article} {phrase}"


def _describe_file(gist: AttachmentGist) -> str:
    kind = gist.kind.lower()
    if gist.topic and gist.topic != "code" and gist.topic != f"{gist.language} code":
        return f"{_with_article(kind)} with {gist.topic}"
    return _with_article(kind)


def _complex_capability(gist: AttachmentGist) -> str:
    signals = gist.signals
    if "database" in signals:
        return "complex schema analysis and database architecture decisions"
    if "React" in signals or "Next.js" in signals:
        return "deep component architecture analysis and framework-aware refactoring"
    return "complex analysis, architectural decisions, and thorough code reasoning"


# signal -> capability phrase, first match wins
_FILE_CAPABILITIES = (
    ("error codes", "debugging and pinpointing root causes in error output"),
    ("build failure", "debugging and pinpointing root causes in error output"),
    ("styling", "CSS analysis, styling updates, and visual design improvements"),
    ("markup", "HTML structure analysis, accessibility improvements, and semantic markup"),
    ("database", "SQL analysis, query optimization, and schema improvements"),
    ("scripting", "script analysis, automation improvements, and best practices"),
    ("documentation", "documentation improvements, clarity, and structure"),
    ("data", "data analysis, structure validation, and processing"),
    ("config", "configuration analysis and optimization"),
)

# Checked after framework signals
_CODE_FILE_CAPABILITIES = (
    ("types", "type-safe code analysis and refactoring"),
    ("tests", "test analysis, coverage improvements, and best practices"),
)


def _file_capability(gist: AttachmentGist) -> str:
    for signal, phrase in _FILE_CAPABILITIES:
        if signal in gist.signals:
            return phrase
    if "React" in gist.signals or "Next.js" in gist.signals:
        return f"{gist.language or 'code'} analysis and framework-aware improvements"
    for signal, phrase in _CODE_FILE_CAPABILITIES:
        if signal in gist.signals:
            return phrase
    if gist.language and gist.language != "text":
        return f"{gist.language} analysis, improvements, and accurate edits"
    return "accurate file analysis and improvements"
