"""Learner progress module.

Provides:
- Enrollment Store (enrollments, CAS progress writes, attempt history)
- Progression state derivation over a course and a progress map
"""

from .engine import (
    LectureStatus,
    course_progress_percent,
    course_statuses,
    lecture_status,
    resume_lecture_index,
)
from .models import PROGRESS_TABLES_CQL, Enrollment, LectureProgress, QuizAttempt


__all__ = [
    "PROGRESS_TABLES_CQL",
    "Enrollment",
    "LectureProgress",
    "LectureStatus",
    "QuizAttempt",
    "course_progress_percent",
    "course_statuses",
    "lecture_status",
    "resume_lecture_index",
]
