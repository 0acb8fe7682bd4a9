"""AI helpers for form detection."""

from .form_detection import (
    FormDetector,
    FormDetectionResult,
    detect_form_fields_with_ai,
    fill_with_ai_selectors,
)

__all__ = [
    "FormDetector",
    "FormDetectionResult",
    "detect_form_fields_with_ai",
    "fill_with_ai_selectors",
]
