"""Enrollment/Access Gate module.

Provides:
- Typed access results (Allowed / Denied)
- The gate that authorizes views and submissions and records progress
"""

from .results import Allowed, DenialReason, Denied
from .service import (
    AccessGate,
    AssessmentInfo,
    AttemptRecordError,
    CourseStatus,
    ProgressConflictError,
)


__all__ = [
    "AccessGate",
    "Allowed",
    "AssessmentInfo",
    "AttemptRecordError",
    "CourseStatus",
    "DenialReason",
    "Denied",
    "ProgressConflictError",
]
