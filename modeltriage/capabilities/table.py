"""
Capability table for the ModelTriage decision engine.

Provides the per-model :class:`CapabilityVector` and the per-category
:class:`TaskWeightProfile`, which together are the single source of
truth for every score the engine computes.  Values are configuration:
they are loaded once at construction and never mutated afterwards.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from modeltriage.exceptions import ConfigurationError, UnknownModelIdentifierError

logger = logging.getLogger(__name__)

# Default config path (relative to project root)
DEFAULT_CAPABILITIES_CONFIG = Path("config/capabilities.yaml")

TaskCategory = Literal[
    "code_gen",
    "debug",
    "refactor",
    "explain",
    "analysis",
    "research",
    "creative",
    "math",
    "qa",
    "general",
]

# Enumeration order doubles as the tie-break order for classification.
TASK_CATEGORIES: Tuple[str, ...] = (
    "code_gen",
    "debug",
    "refactor",
    "explain",
    "analysis",
    "research",
    "creative",
    "math",
    "qa",
    "general",
)

DIMENSIONS: Tuple[str, ...] = (
    "reasoning",
    "code_generation",
    "debugging",
    "structured_output",
    "instruction_following",
    "speed",
    "cost_efficiency",
    "recency_strength",
)

CAPABILITY_LABELS: Dict[str, str] = {
    "reasoning": "Reasoning",
    "code_generation": "Code Generation",
    "debugging": "Debugging",
    "structured_output": "Structured Output",
    "instruction_following": "Instruction Following",
    "speed": "Speed",
    "cost_efficiency": "Cost Efficiency",
    "recency_strength": "Knowledge Recency",
}


class CapabilityVector(BaseModel):
    """A model's fixed competence score (0.0 -- 1.0) on each dimension."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    reasoning: float = Field(ge=0.0, le=1.0)
    code_generation: float = Field(ge=0.0, le=1.0)
    debugging: float = Field(ge=0.0, le=1.0)
    structured_output: float = Field(ge=0.0, le=1.0)
    instruction_following: float = Field(ge=0.0, le=1.0)
    speed: float = Field(ge=0.0, le=1.0)
    cost_efficiency: float = Field(ge=0.0, le=1.0)
    recency_strength: float = Field(ge=0.0, le=1.0)

    def get(self, dimension: str) -> float:
        """Return the score for a named dimension."""
        if dimension not in DIMENSIONS:
            raise KeyError(f"Unknown capability dimension '{dimension}'")
        return getattr(self, dimension)


class TaskWeightProfile(BaseModel):
    """Relative importance of each dimension for one task category.

    Weights are non-negative and are not required to sum to 1.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    reasoning: float = Field(ge=0.0)
    code_generation: float = Field(ge=0.0)
    debugging: float = Field(ge=0.0)
    structured_output: float = Field(ge=0.0)
    instruction_following: float = Field(ge=0.0)
    speed: float = Field(ge=0.0)
    cost_efficiency: float = Field(ge=0.0)
    recency_strength: float = Field(ge=0.0)

    def get(self, dimension: str) -> float:
        """Return the weight for a named dimension."""
        if dimension not in DIMENSIONS:
            raise KeyError(f"Unknown capability dimension '{dimension}'")
        return getattr(self, dimension)

    @property
    def total(self) -> float:
        return sum(getattr(self, d) for d in DIMENSIONS)


class ModelProfile(BaseModel):
    """Metadata and capabilities for a single routable model.

    Attributes:
        id: Canonical model identifier, e.g. ``gpt-5.2``.
        display_name: Human-readable name used in explanations.
        provider: Which vendor serves the model.
        tier: Price/speed tier; ``budget`` models are the cheapest.
        supports_vision: Whether the model accepts image inputs.
        capabilities: The model's capability vector.
        description: Free-form note about the model.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    provider: Literal["openai", "anthropic", "google"] = "openai"
    tier: Literal["budget", "mid", "premium"] = "mid"
    supports_vision: bool = False
    capabilities: CapabilityVector
    description: str = ""

    @field_validator("id")
    @classmethod
    def id_must_not_be_empty(cls, v: str) -> str:
        """Validate that the model id is not blank."""
        if not v or not v.strip():
            raise ValueError("Model id must not be empty")
        return v.strip()


class CapabilityTable:
    """Read-only store of model profiles and task weight profiles.

    Args:
        config_path: Optional path to a YAML file with ``models`` and
            ``task_weights`` sections.  If ``None`` and the default file
            does not exist, built-in defaults are registered.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        self._models: Dict[str, ModelProfile] = {}
        self._weights: Dict[str, TaskWeightProfile] = {}

        if config_path is not None:
            self._load_from_yaml(config_path)
        elif DEFAULT_CAPABILITIES_CONFIG.exists():
            self._load_from_yaml(DEFAULT_CAPABILITIES_CONFIG)
        else:
            self._register_defaults()

        self._check_complete()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_capabilities(self, model_id: str) -> CapabilityVector:
        """Return the capability vector of a model.

        Raises:
            UnknownModelIdentifierError: If the model is not in the table.
        """
        return self.get_profile(model_id).capabilities

    def get_profile(self, model_id: str) -> ModelProfile:
        """Return the full profile of a model.

        Args:
            model_id: Canonical model identifier.

        Returns:
            The matching ModelProfile.

        Raises:
            UnknownModelIdentifierError: If the model is not in the table.
        """
        if model_id not in self._models:
            raise UnknownModelIdentifierError(
                f"Model '{model_id}' not found in capability table. "
                f"Available: {list(self._models.keys())}"
            )
        return self._models[model_id]

    def get_task_weights(self, category: str) -> TaskWeightProfile:
        """Return the weight profile for a task category.

        Raises:
            ConfigurationError: If the category has no weight profile.
        """
        if category not in self._weights:
            raise ConfigurationError(
                f"Task category '{category}' has no weight profile. "
                f"Available: {list(self._weights.keys())}"
            )
        return self._weights[category]

    def list_models(self) -> List[str]:
        """Return every model id in table order."""
        return list(self._models.keys())

    def profiles(self) -> List[ModelProfile]:
        """Return every model profile in table order."""
        return list(self._models.values())

    def validate_roster(self, roster: List[str]) -> None:
        """Check that every roster id has exactly one profile.

        Args:
            roster: Model ids the provider layer is able to serve.

        Raises:
            UnknownModelIdentifierError: If any id is missing.
        """
        missing = [m for m in roster if m not in self._models]
        if missing:
            logger.error(
                "Roster references unknown models",
                extra={"missing": missing},
            )
            raise UnknownModelIdentifierError(
                f"Roster references models with no capability profile: {missing}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the table for CLI output.

        Returns:
            Dict with ``models`` list and ``count``.
        """
        return {
            "models": [p.model_dump() for p in self._models.values()],
            "count": len(self._models),
        }

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load_from_yaml(self, path: Path) -> None:
        """Parse a YAML config file and register models and weights.

        Raises:
            ConfigurationError: If the file cannot be read or parsed.
        """
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except FileNotFoundError as exc:
            raise ConfigurationError(
                f"Capabilities config file not found: {path}"
            ) from exc
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                f"Invalid YAML in {path}: {exc}"
            ) from exc

        if not data or "models" not in data or "task_weights" not in data:
            raise ConfigurationError(
                f"Expected top-level 'models' and 'task_weights' keys in {path}"
            )

        for model_id, fields in data["models"].items():
            try:
                self._register(ModelProfile(id=model_id, **fields))
            except (ValidationError, TypeError) as exc:
                logger.error(
                    "Failed to load model from config",
                    extra={"model": model_id, "error": str(exc)},
                )
                raise ConfigurationError(
                    f"Invalid model definition for '{model_id}' in {path}: {exc}"
                ) from exc

        for category, weights in data["task_weights"].items():
            try:
                self._weights[category] = TaskWeightProfile(**weights)
            except (ValidationError, TypeError) as exc:
                raise ConfigurationError(
                    f"Invalid task weights for '{category}' in {path}: {exc}"
                ) from exc

        logger.info(
            "Capabilities loaded from YAML",
            extra={"path": str(path), "count": len(self._models)},
        )

    def _register(self, profile: ModelProfile) -> None:
        if profile.id in self._models:
            raise ConfigurationError(f"Duplicate model profile '{profile.id}'")
        self._models[profile.id] = profile

    def _check_complete(self) -> None:
        if not self._models:
            raise ConfigurationError("Capability table contains zero models")
        missing = [c for c in TASK_CATEGORIES if c not in self._weights]
        if missing:
            raise ConfigurationError(
                f"Task categories without weight profiles: {missing}"
            )

    def _register_defaults(self) -> None:
        """Register the built-in model roster and task weight profiles."""
        for model_id, display, provider, tier, vision, caps in _DEFAULT_MODELS:
            self._register(
                ModelProfile(
                    id=model_id,
                    display_name=display,
                    provider=provider,
                    tier=tier,
                    supports_vision=vision,
                    capabilities=CapabilityVector(**dict(zip(DIMENSIONS, caps))),
                )
            )
        for category, weights in _DEFAULT_TASK_WEIGHTS.items():
            self._weights[category] = TaskWeightProfile(
                **dict(zip(DIMENSIONS, weights))
            )

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models


# ---------------------------------------------------------------------------
# Built-in data.  Capability tuples follow DIMENSIONS order:
# reasoning, code_generation, debugging, structured_output,
# instruction_following, speed, cost_efficiency, recency_strength
# ---------------------------------------------------------------------------

_DEFAULT_MODELS = [
    # Budget tier: fast and cheap, clearly below premium on quality
    ("gpt-5-mini", "GPT-5 Mini", "openai", "budget", False,
     (0.45, 0.55, 0.40, 0.70, 0.72, 0.95, 0.95, 0.80)),
    ("claude-haiku-4-5-20251001", "Claude Haiku 4.5", "anthropic", "budget", False,
     (0.42, 0.48, 0.35, 0.65, 0.70, 0.95, 0.92, 0.72)),
    ("gemini-3-flash-preview", "Gemini 3 Flash", "google", "budget", True,
     (0.48, 0.52, 0.42, 0.68, 0.68, 0.92, 0.90, 0.85)),
    # Mid tier: strong all-rounders
    ("claude-sonnet-4-5-20250929", "Claude Sonnet 4.5", "anthropic", "mid", True,
     (0.78, 0.88, 0.75, 0.80, 0.88, 0.70, 0.55, 0.75)),
    ("gemini-3-pro-preview", "Gemini 3 Pro", "google", "mid", True,
     (0.75, 0.72, 0.68, 0.75, 0.78, 0.58, 0.45, 0.92)),
    # Premium tier: low speed/cost keeps them off trivial prompts
    ("gpt-5.2", "GPT-5.2", "openai", "premium", True,
     (0.96, 0.90, 0.92, 0.85, 0.88, 0.30, 0.20, 0.85)),
    ("claude-opus-4-6", "Claude Opus 4.6", "anthropic", "premium", True,
     (0.94, 0.85, 0.88, 0.82, 0.92, 0.25, 0.15, 0.75)),
]

_DEFAULT_TASK_WEIGHTS = {
    "code_gen": (0.20, 0.40, 0.05, 0.15, 0.15, 0.03, 0.01, 0.01),
    "debug": (0.30, 0.08, 0.40, 0.05, 0.10, 0.03, 0.02, 0.02),
    "refactor": (0.28, 0.28, 0.10, 0.10, 0.20, 0.02, 0.01, 0.01),
    "explain": (0.35, 0.05, 0.05, 0.10, 0.25, 0.08, 0.07, 0.05),
    "analysis": (0.38, 0.03, 0.02, 0.12, 0.20, 0.10, 0.08, 0.07),
    "research": (0.40, 0.03, 0.03, 0.10, 0.15, 0.02, 0.02, 0.25),
    "creative": (0.15, 0.03, 0.02, 0.08, 0.35, 0.12, 0.12, 0.13),
    "math": (0.50, 0.03, 0.02, 0.15, 0.15, 0.05, 0.03, 0.07),
    # Simple factual questions: fast and cheap wins
    "qa": (0.10, 0.02, 0.02, 0.08, 0.18, 0.28, 0.27, 0.05),
    # Unclassified prompts lean toward quality over speed/cost
    "general": (0.28, 0.10, 0.05, 0.10, 0.27, 0.08, 0.07, 0.05),
}
