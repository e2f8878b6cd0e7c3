"""Typed outcomes of gate checks.

Denials are values, not exceptions: callers branch on ``Denied.reason`` so
"locked" and "not enrolled" can be rendered differently.
"""

from dataclasses import dataclass
from enum import Enum

from src.progress.engine import LectureStatus
from src.progress.models import LectureProgress


class DenialReason(str, Enum):
    """Why a learner may not view or submit."""

    NOT_ENROLLED = "NotEnrolled"
    LOCKED = "Locked"
    NO_ASSESSMENT = "NoAssessment"


@dataclass(frozen=True)
class Allowed:
    """Access granted; ``status`` is the lecture status after the call."""

    status: LectureStatus
    progress: LectureProgress | None = None


@dataclass(frozen=True)
class Denied:
    reason: DenialReason
