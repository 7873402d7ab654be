"""
ModelTriage exception hierarchy.

All custom exceptions inherit from ModelTriageException so callers can
catch a single base type when they want a broad safety net.
"""


class ModelTriageException(Exception):
    """Base exception for all ModelTriage errors."""


class ConfigurationError(ModelTriageException, ValueError):
    """Raised when configuration is invalid or cannot be loaded."""


class UnknownModelIdentifierError(ModelTriageException, KeyError):
    """Raised when a model id has no profile in the capability table."""


class ClassificationError(ModelTriageException):
    """Raised when the external classifier cannot produce a verdict."""


class ClassificationTimeout(ClassificationError):
    """Raised when the external classifier exceeds its time bound."""


class ClassificationParseFailure(ClassificationError):
    """Raised when the external classifier returns malformed data."""


class RoutingInvariantError(ModelTriageException):
    """Raised when neither an override nor the scorer produced a decision."""
