"""ModelTriage: deterministic model selection for LLM requests."""

__version__ = "0.1.0"
