import math
from typing import Optional

from compliance_engine.configs.engine_config_loader import DEFAULT_CONFIDENCE_THRESHOLD


def clamp_confidence(confidence: Optional[float]) -> float:
    """
    Normalise a provider confidence into [0, 1]. Missing or NaN reads as 0.

    Example:
        >>> clamp_confidence(1.4)
        1.0
        >>> clamp_confidence(float("nan"))
        0.0
    """
    if confidence is None:
        return 0.0

    try:
        value = float(confidence)
    except (TypeError, ValueError):
        return 0.0

    if math.isnan(value):
        return 0.0

    return max(0.0, min(1.0, value))


class ConfidenceGate:
    """
    Decides whether an extraction is trustworthy enough to be judged.

    An extraction that fails the gate is never handed to a comparator;
    the rule evaluator records it as UNCLEAR instead.
    """

    def __init__(self, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD):
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise ValueError("confidence threshold must be a number")
        if math.isnan(threshold) or not (0.0 <= threshold <= 1.0):
            raise ValueError(f"confidence threshold must be within [0, 1], got {threshold}")
        self.threshold = float(threshold)

    def is_usable(self, confidence: Optional[float]) -> bool:
        if confidence is None:
            return False

        if isinstance(confidence, float) and math.isnan(confidence):
            return False

        return clamp_confidence(confidence) >= self.threshold
