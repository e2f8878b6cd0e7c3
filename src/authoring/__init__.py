"""Assessment authoring validation.

Structural checks run before course content is persisted.
"""

from .validators import (
    ErrorCode,
    ValidationResult,
    ensure_valid,
    validate_course,
    validate_exam_assignment,
    validate_inline_quiz,
)


__all__ = [
    "ErrorCode",
    "ValidationResult",
    "ensure_valid",
    "validate_course",
    "validate_exam_assignment",
    "validate_inline_quiz",
]
