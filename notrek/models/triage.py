"""Risk and urgency enumerations with lenient normalization.

The language model is asked for a risk level but may omit it, misspell it or
use synonyms. Both normalizers are total: any input maps to a valid level,
with the lowest level as the default.
"""

from typing import Any, Literal

Risk = Literal["low", "moderate", "severe"]
Urgency = Literal["info", "elevated", "severe"]

_SEVERE = {"severe", "high", "escalate", "urgent"}
_MODERATE = {"moderate", "med", "medium", "watch"}


def normalize_risk(value: Any) -> Risk:
    """Map a model-supplied risk value onto low, moderate or severe."""
    s = str(value or "").strip().lower()
    if s in _SEVERE:
        return "severe"
    if s in _MODERATE:
        return "moderate"
    return "low"


def normalize_urgency(value: Any) -> Urgency:
    """Map a task urgency (or a risk level) onto info, elevated or severe."""
    s = str(value or "").strip().lower()
    if s in _SEVERE:
        return "severe"
    if s in _MODERATE or s == "elevated":
        return "elevated"
    return "info"
