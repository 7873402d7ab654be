"""Static capability table: model profiles and task weight profiles."""

from modeltriage.capabilities.table import (
    CAPABILITY_LABELS,
    DIMENSIONS,
    TASK_CATEGORIES,
    CapabilityTable,
    CapabilityVector,
    ModelProfile,
    TaskCategory,
    TaskWeightProfile,
)

__all__ = [
    "CAPABILITY_LABELS",
    "DIMENSIONS",
    "TASK_CATEGORIES",
    "CapabilityTable",
    "CapabilityVector",
    "ModelProfile",
    "TaskCategory",
    "TaskWeightProfile",
]
