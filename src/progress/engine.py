"""Progression state derivation.

Pure functions over a course and a learner's progress map. Nothing here
reads or writes storage, so a status is always re-derivable from persisted
state: correcting a prerequisite changes downstream statuses on next read.
"""

from collections.abc import Mapping
from decimal import Decimal
from enum import Enum

from src.assessments.evaluator import round_half_up
from src.core.exceptions import NotFoundError
from src.courses.models import Course
from src.courses.service import LectureNotFoundError

from .models import LectureProgress


ProgressMap = Mapping[int, LectureProgress]


class LectureStatus(str, Enum):
    """Derived status of a lecture for one learner."""

    LOCKED = "locked"
    UNLOCKED = "unlocked"
    CONTENT_COMPLETED = "content-completed"
    COMPLETED = "completed"


class CourseHasNoLecturesError(NotFoundError):
    """Course exists but has nothing to gate."""

    def __init__(self, message: str = "Course has no lectures"):
        super().__init__(message, "course_has_no_lectures")


def _check_index(course: Course, lecture_index: int) -> None:
    if not course.lectures:
        raise CourseHasNoLecturesError
    if not 0 <= lecture_index < course.lecture_count:
        raise LectureNotFoundError


def lecture_cleared(course: Course, progress_map: ProgressMap, lecture_index: int) -> bool:
    """Content completed and, when the lecture is gated, assessment passed."""
    progress = progress_map.get(lecture_index)
    if progress is None or not progress.completed:
        return False
    return not course.lectures[lecture_index].has_assessment or progress.quiz_passed


def prerequisite_met(course: Course, progress_map: ProgressMap, lecture_index: int) -> bool:
    """Whether lecture ``lecture_index`` may be opened.

    Lecture 0 is always open; lecture i>0 needs lecture i-1 cleared.
    """
    _check_index(course, lecture_index)
    if lecture_index == 0:
        return True
    return lecture_cleared(course, progress_map, lecture_index - 1)


def lecture_status(
    course: Course,
    progress_map: ProgressMap,
    lecture_index: int,
    *,
    enrolled: bool = True,
) -> LectureStatus:
    """Derive the status of one lecture.

    Raises:
        CourseHasNoLecturesError: Course has no lectures
        LectureNotFoundError: Index outside the course
    """
    _check_index(course, lecture_index)
    if not enrolled or not prerequisite_met(course, progress_map, lecture_index):
        return LectureStatus.LOCKED

    progress = progress_map.get(lecture_index)
    if progress is None or not progress.completed:
        return LectureStatus.UNLOCKED
    if lecture_cleared(course, progress_map, lecture_index):
        return LectureStatus.COMPLETED
    return LectureStatus.CONTENT_COMPLETED


def course_statuses(
    course: Course,
    progress_map: ProgressMap,
    *,
    enrolled: bool = True,
) -> list[LectureStatus]:
    """Status of every lecture, in course order."""
    if not course.lectures:
        raise CourseHasNoLecturesError
    return [
        lecture_status(course, progress_map, index, enrolled=enrolled)
        for index in range(course.lecture_count)
    ]


def can_advance(course: Course, progress_map: ProgressMap, lecture_index: int) -> bool:
    """Whether the learner may move past ``lecture_index``.

    True for the last lecture once it is cleared, even though nothing
    follows it.
    """
    _check_index(course, lecture_index)
    return lecture_cleared(course, progress_map, lecture_index)


def course_progress_percent(statuses: list[LectureStatus]) -> int:
    """Share of completed lectures, rounded half-up."""
    if not statuses:
        return 0
    completed = sum(1 for status in statuses if status == LectureStatus.COMPLETED)
    return round_half_up(Decimal(100 * completed) / Decimal(len(statuses)))


def resume_lecture_index(statuses: list[LectureStatus]) -> int:
    """First lecture that is open but not completed; 0 when none is."""
    for index, status in enumerate(statuses):
        if status in (LectureStatus.UNLOCKED, LectureStatus.CONTENT_COMPLETED):
            return index
    return 0
