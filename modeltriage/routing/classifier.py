"""
Deterministic prompt classification for the ModelTriage engine.

Extracts the task category, stakes level, input signals and recency
requirement from a prompt using keyword/pattern matching.  Runs in
well under a millisecond and never fails: unrecognised input yields a
low-confidence ``general`` classification.
"""

import logging
import re
from typing import TYPE_CHECKING, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from modeltriage.capabilities.table import TASK_CATEGORIES
from modeltriage.routing.classification import (
    Classification,
    ConfidenceBand,
    InputSignals,
    StakesLevel,
)

if TYPE_CHECKING:
    from modeltriage.routing.attachments import AttachmentContext

logger = logging.getLogger(__name__)

_I = re.IGNORECASE


@runtime_checkable
class ClassificationStrategy(Protocol):
    """Protocol for classifiers the scoring engine can consume."""

    def classify(
        self,
        prompt: str,
        attachments: Optional["AttachmentContext"] = None,
    ) -> Classification:
        """Classify a prompt, optionally using attachment metadata."""
        ...


# ---------------------------------------------------------------------------
# Pattern libraries
# ---------------------------------------------------------------------------

_CATEGORY_PATTERNS: Dict[str, List[re.Pattern]] = {
    "code_gen": [
        re.compile(r"\b(write|create|generate|implement|build|make)\s+(a|an|the|me)?\s*(function|method|class|component|script|module|api|endpoint|hook|util)", _I),
        re.compile(r"\b(write|create|build)\s+(code|program|app|application|service)", _I),
        re.compile(r"\b(how\s+(to|do\s+I)\s+(create|make|implement|write|build))\b", _I),
        re.compile(r"\b(snippet|boilerplate|starter|template|scaffold)\b", _I),
        re.compile(r"\b(convert|transform|parse|serialize|deserialize)\s+(this|it|the|a|from|to)\b", _I),
    ],
    "debug": [
        re.compile(r"\b(debug|fix|error|bug|issue|problem|broken|crash|fail|exception)\b", _I),
        re.compile(r"\b(stack\s*trace|traceback|runtime\s*error|type\s*error|syntax\s*error)\b", _I),
        re.compile(r"\b(segfault|null\s*pointer|undefined\s+is\s+not|cannot\s+read\s+propert)", _I),
        re.compile(r"\b(ENOENT|ECONNREFUSED|SIGABRT|exit\s+code|status\s+code\s+[45]\d\d)\b", _I),
        re.compile(r"\b(what('s|\s+is)\s+wrong|doesn'?t\s+work|not\s+working)\b", _I),
        re.compile(r"\b(troubleshoot|diagnose|root\s+cause)\b", _I),
    ],
    "refactor": [
        re.compile(r"\b(refactor|clean\s+up|improve|optimize|simplify|restructure)\s+(this|my|the|code|function|class)", _I),
        re.compile(r"\b(code\s+review|review\s+(this|my|the)\s+(code|pr|pull\s+request))\b", _I),
        re.compile(r"\b(make\s+(this|it)\s+(cleaner|better|more\s+(readable|maintainable|efficient)))\b", _I),
        re.compile(r"\b(reduce\s+complexity|dry\s+up|extract\s+(method|function|component))\b", _I),
        re.compile(r"\b(pr\s+review|pull\s+request\s+review)\b", _I),
    ],
    "explain": [
        re.compile(r"\b(explain|describe|what\s+(is|are|does)|how\s+does|walk\s+me\s+through)\b", _I),
        re.compile(r"\b(understand|clarify|elaborate|break\s+down)\b", _I),
        re.compile(r"\b(when\s+to\s+use|why\s+(would|should|do)\s+(I|we|you))\b", _I),
    ],
    "analysis": [
        re.compile(r"\b(difference\s+between|compare|comparison|contrast|vs\.?|versus)\b", _I),
        re.compile(r"\b(pros\s+and\s+cons|advantages|disadvantages|trade[- ]?offs?)\b", _I),
        re.compile(r"\b(evaluate|assess|weigh)\s+(the\s+)?(options|approaches|alternatives|pros)\b", _I),
        re.compile(r"\b(which\s+(one\s+)?is\s+better|should\s+I\s+(use|choose|pick))\b", _I),
    ],
    "research": [
        re.compile(r"\b(research|investigate|find\s+out|look\s+into|deep\s+dive)\b", _I),
        re.compile(r"\b(analyze\s+(the\s+)?tradeoffs?|evaluate\s+(the\s+)?(options|approaches))\b", _I),
        re.compile(r"\b(system\s+design|architect(ure)?|design\s+pattern)\b", _I),
        re.compile(r"\b(benchmark|performance\s+comparison|cost[- ]benefit)\b", _I),
        re.compile(r"\b(feasibility|impact\s+analysis|risk\s+assessment)\b", _I),
        re.compile(r"\b(multi[- ]step\s+reasoning|think\s+through\s+step)\b", _I),
    ],
    "creative": [
        re.compile(r"\b(write\s+(a|an|me)\s+(story|poem|essay|blog|article|post|copy|email|letter|newsletter))\b", _I),
        re.compile(r"\b(marketing\s+(copy|email|content|campaign))\b", _I),
        re.compile(r"\b(draft|compose|author|ghostwrite)\b", _I),
        re.compile(r"\b(creative|brainstorm|ideate|come\s+up\s+with)\b", _I),
        re.compile(r"\b(summarize|rewrite|rephrase|paraphrase|simplify)\b", _I),
        re.compile(r"\b(cover\s+letter|resume|cv|linkedin)\b", _I),
        re.compile(r"\b(landing\s+page|headline|tagline|slogan)\b", _I),
    ],
    "math": [
        re.compile(r"\b(solve|equation|integral|derivative|theorem|prove|proof|probability|calculus|algebra)\b", _I),
        re.compile(r"\b(calculate|compute)\s+(the\s+)?(sum|product|area|volume|probability|value|limit|mean|average)\b", _I),
        re.compile(r"\d+\s*[-+*/^]\s*\d+"),
    ],
    "qa": [
        re.compile(r"^\s*(what|who|when|where|which)\s+(is|are|was|were|did|does|do)\b", _I),
        re.compile(r"^\s*how\s+(many|much|old|far|long|tall|big)\b", _I),
        re.compile(r"\?\s*$"),
        re.compile(r"\b(capital\s+of|population\s+of|meaning\s+of|definition\s+of|stand\s+for|born\s+in)\b", _I),
    ],
}

_STACK_TRACE_PATTERNS = [
    re.compile(r"\b(at\s+\w+\.\w+\s*\()"),
    re.compile(r"\b(File\s+\"[^\"]+\",\s+line\s+\d+)", _I),
    re.compile(r"\b(Traceback\s+\(most\s+recent)", _I),
    re.compile(r"^\s*at\s+\S+", re.MULTILINE),
    re.compile(r"\b\w*(Error|Exception):\s+"),
    re.compile(r"(cannot\s+read\s+propert|undefined\s+is\s+not|is\s+not\s+a\s+function|is\s+not\s+defined|segmentation\s+fault)", _I),
    re.compile(r"\b(panic:|goroutine\s+\d+)"),
]

_STRUCTURED_FORMAT_PATTERNS = [
    re.compile(r"\b(json|yaml|xml|csv|table|markdown\s+table|schema)\b", _I),
    re.compile(r"\b(format\s+as|output\s+as|return\s+as|respond\s+with|give\s+me\s+a)\s+(json|yaml|xml|csv|table)", _I),
    re.compile(r"\b(structured|formatted|typed)\s+(output|response|data)\b", _I),
    re.compile(r"\b(interface|type|schema|spec)\b", _I),
]

_RECENCY_PATTERNS = [
    re.compile(r"\b(latest|newest|recent|current|up[- ]to[- ]date|modern)\b", _I),
    re.compile(r"\b(202[5-9]|2030)\b"),
    re.compile(r"\b(new\s+(version|release|feature|api|update))\b", _I),
    re.compile(r"\b(just\s+released|recently\s+(added|changed|updated))\b", _I),
]

_HIGH_STAKES_PATTERNS = [
    re.compile(r"\b(executive|board|investor|stakeholder|c-suite|ceo|cto|cfo)\b", _I),
    re.compile(r"\b(production[- ]ready|enterprise|mission[- ]critical)\b", _I),
    re.compile(r"\b(legal|compliance|regulatory|audit)\b", _I),
    re.compile(r"\b(public\s+statement|press\s+release|official)\b", _I),
    re.compile(r"\b(sensitive|confidential|high[- ]stakes)\b", _I),
    re.compile(r"\b(security|authentication|authorization|encryption)\b", _I),
    re.compile(r"\b(payment|billing|financial|transaction)\b", _I),
]

_CODE_LANGUAGE_SIGNALS = re.compile(
    r"\b(typescript|javascript|python|java|rust|golang|ruby|swift|kotlin|c\+\+|csharp|c#|"
    r"php|sql|html|css|react|vue|angular|node\.?js|express|django|flask|rails|spring|"
    r"docker|kubernetes|terraform|aws|gcp|azure)\b",
    _I,
)
_CODE_KEYWORDS = re.compile(r"\b(function|class|const|let|var|def|import|export|return)\b")
_CODE_FENCE = re.compile(r"```[\s\S]*```")

# Length thresholds (characters)
CONCISE_MAX_CHARS = 100
LONG_FORM_MIN_CHARS = 500
MEDIUM_STAKES_MIN_CHARS = 600
QA_MAX_CHARS = 150

STACK_TRACE_DEBUG_BOOST = 3


def _match_count(text: str, patterns: List[re.Pattern]) -> int:
    return sum(1 for p in patterns if p.search(text))


class HeuristicClassifier:
    """Classify prompts with compiled regex pattern libraries.

    Category strength is the number of distinct patterns that match.
    The strongest category wins; ties go to the category listed first
    in the enumeration, and zero matches yield ``general``.
    """

    def __init__(self) -> None:
        self._patterns = _CATEGORY_PATTERNS

    def classify(
        self,
        prompt: str,
        attachments: Optional["AttachmentContext"] = None,
    ) -> Classification:
        """Classify a prompt.

        Args:
            prompt: The user request.
            attachments: Optional attachment metadata; uploaded code
                files set the ``has_code`` signal.

        Returns:
            A fresh :class:`Classification`.
        """
        prompt = prompt or ""
        if not prompt.strip():
            return Classification(
                task_category="general",
                confidence="low",
                confidence_score=0.0,
                signals=InputSignals(concise=True),
            )

        category, strength = self._detect_category(prompt)
        signals = self._detect_signals(prompt, attachments)
        stakes = self._detect_stakes(prompt)
        band = self._confidence_band(strength, prompt)

        classification = Classification(
            task_category=category,
            stakes=stakes,
            signals=signals,
            recency_required=signals.mentions_latest,
            confidence=band,
            confidence_score=round(min(0.95, 0.5 + 0.15 * strength), 2),
        )

        logger.debug(
            "Prompt classified",
            extra={
                "task_category": category,
                "strength": strength,
                "stakes": stakes,
                "confidence": band,
            },
        )
        return classification

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _detect_category(self, prompt: str) -> Tuple[str, int]:
        scores: Dict[str, int] = {
            category: _match_count(prompt, patterns)
            for category, patterns in self._patterns.items()
        }

        if len(prompt) >= QA_MAX_CHARS:
            scores["qa"] = 0

        if _match_count(prompt, _STACK_TRACE_PATTERNS) >= 2:
            scores["debug"] += STACK_TRACE_DEBUG_BOOST

        if scores["code_gen"] > 0 and _CODE_LANGUAGE_SIGNALS.search(prompt):
            scores["code_gen"] += 1

        best_category = "general"
        best_score = 0
        for category in TASK_CATEGORIES:
            score = scores.get(category, 0)
            if score > best_score:
                best_category, best_score = category, score
        return best_category, best_score

    @staticmethod
    def _detect_signals(
        prompt: str,
        attachments: Optional["AttachmentContext"],
    ) -> InputSignals:
        has_code = bool(
            _CODE_LANGUAGE_SIGNALS.search(prompt)
            or _CODE_FENCE.search(prompt)
            or _CODE_KEYWORDS.search(prompt)
        )
        if attachments is not None and attachments.has_code_files:
            has_code = True

        return InputSignals(
            has_code=has_code,
            has_stack_trace=_match_count(prompt, _STACK_TRACE_PATTERNS) >= 2,
            strict_format=_match_count(prompt, _STRUCTURED_FORMAT_PATTERNS) >= 1,
            concise=len(prompt) < CONCISE_MAX_CHARS,
            long_form=len(prompt) > LONG_FORM_MIN_CHARS,
            mentions_latest=_match_count(prompt, _RECENCY_PATTERNS) >= 1,
        )

    @staticmethod
    def _detect_stakes(prompt: str) -> StakesLevel:
        hits = _match_count(prompt, _HIGH_STAKES_PATTERNS)
        if hits >= 2:
            return "high"
        if hits == 1:
            return "medium"
        # Long, complex prompts default to medium stakes
        if len(prompt) > MEDIUM_STAKES_MIN_CHARS:
            return "medium"
        return "low"

    @staticmethod
    def _confidence_band(strength: int, prompt: str) -> ConfidenceBand:
        if strength >= 2:
            return "high"
        if strength == 1:
            return "medium"
        if len(prompt) > CONCISE_MAX_CHARS:
            return "medium"
        return "low"
