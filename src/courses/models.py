"""Database models for course content.

Cassandra table definitions for:
- Courses: one row per course
- Lectures: ordered rows per course (position is the gating chain index)

A lecture carries at most one assessment, modelled as a tagged variant:
``NoAssessment | InlineAssessment(InlineQuiz) | FormalAssessment(exam_id)``.
Nested structures (content items, inline quiz questions) are stored as JSON
text columns.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar
from uuid import UUID, uuid4

import orjson


# Fallback used everywhere a lecture has no explicit passing score
DEFAULT_PASSING_SCORE = 60

# An inline quiz must have at least this many questions to be enabled
MIN_INLINE_QUIZ_QUESTIONS = 5

# Course and lecture codes are exactly this many digits
CODE_DIGITS = 5


class ContentType(str, Enum):
    """Lecture content item type."""

    VIDEO = "video"
    PDF = "pdf"
    IMAGE = "image"


class QuestionType(str, Enum):
    """Inline quiz question type."""

    MCQ = "mcq"
    SHORT = "short"


class AssessmentKind(str, Enum):
    """Tag of the assessment attached to a lecture."""

    NONE = "none"
    INLINE = "inline"
    FORMAL = "formal"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    course_code TEXT,
    title TEXT,
    description TEXT,
    teacher_id UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Position is the lecture index; progress rows are keyed by it
LECTURE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lectures (
    course_id UUID,
    position INT,
    lecture_code TEXT,
    title TEXT,
    description TEXT,
    content_items TEXT,
    assessment_kind TEXT,
    inline_quiz TEXT,
    auto_quiz_enabled BOOLEAN,
    formal_exam_id TEXT,
    exam_required BOOLEAN,
    passing_score INT,
    is_locked BOOLEAN,
    PRIMARY KEY (course_id, position)
) WITH CLUSTERING ORDER BY (position ASC)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    LECTURE_TABLE_CQL,
]


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def _load_json(value: str | None, default: Any) -> Any:
    if not value:
        return default
    return orjson.loads(value)


# ==============================================================================
# Value Objects
# ==============================================================================


@dataclass(frozen=True)
class ContentItem:
    """A video/pdf/image descriptor. Opaque to gating beyond its presence."""

    type: ContentType
    title: str
    url: str
    duration_seconds: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "url": self.url,
            "duration_seconds": self.duration_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentItem":
        return cls(
            type=ContentType(data["type"]),
            title=data.get("title", ""),
            url=data.get("url", ""),
            duration_seconds=data.get("duration_seconds"),
        )


@dataclass(frozen=True)
class QuizQuestion:
    """One inline quiz question.

    For MCQ the correct option is the option whose text equals
    ``correct_answer``; there is no per-option flag.
    """

    text: str
    type: QuestionType = QuestionType.MCQ
    options: tuple[str, ...] = ()
    correct_answer: str = ""
    points: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "type": self.type.value,
            "options": list(self.options),
            "correct_answer": self.correct_answer,
            "points": self.points,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QuizQuestion":
        return cls(
            text=data.get("text", ""),
            type=QuestionType(data.get("type", QuestionType.MCQ.value)),
            options=tuple(data.get("options") or ()),
            correct_answer=str(data.get("correct_answer") or ""),
            points=int(data.get("points") or 1),
        )


@dataclass(frozen=True)
class InlineQuiz:
    """Auto-graded quiz embedded in a lecture."""

    questions: tuple[QuizQuestion, ...] = ()
    enabled: bool = True

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    def to_json(self) -> str:
        return orjson.dumps([q.to_dict() for q in self.questions]).decode()

    @classmethod
    def from_json(cls, value: str | None, enabled: bool = True) -> "InlineQuiz":
        questions = tuple(QuizQuestion.from_dict(q) for q in _load_json(value, []))
        return cls(questions=questions, enabled=enabled)


@dataclass(frozen=True)
class NoAssessment:
    """Lecture without an assessment."""

    kind: ClassVar[AssessmentKind] = AssessmentKind.NONE


@dataclass(frozen=True)
class InlineAssessment:
    """Lecture gated by an inline quiz scored by this engine."""

    quiz: InlineQuiz
    kind: ClassVar[AssessmentKind] = AssessmentKind.INLINE


@dataclass(frozen=True)
class FormalAssessment:
    """Lecture gated by an exam graded by the External Exam Service."""

    exam_id: str
    kind: ClassVar[AssessmentKind] = AssessmentKind.FORMAL


Assessment = NoAssessment | InlineAssessment | FormalAssessment

NO_ASSESSMENT = NoAssessment()


def assessment_gates(assessment: Assessment) -> bool:
    """Whether an assessment must be passed before the next lecture unlocks.

    A disabled or empty inline quiz does not gate.
    """
    if assessment.kind == AssessmentKind.FORMAL:
        return True
    if assessment.kind == AssessmentKind.INLINE:
        return assessment.quiz.enabled and assessment.quiz.total_questions > 0
    return False


# ==============================================================================
# Entity Classes
# ==============================================================================


class Lecture:
    """One position in a course's gating chain.

    Attributes:
        index: Position within the course (0-based, stable once published)
        lecture_code: Internal 5-digit code, unique within the course
        title: Lecture title
        description: Rich text shown beside the content
        content_items: Ordered content descriptors
        assessment: Attached assessment variant
        exam_required: Authoring flag set when an exam is attached
        passing_score: Pass threshold 0-100 used for gating
        is_locked: Authoring override (informational, not used by gating)
    """

    def __init__(
        self,
        index: int,
        title: str,
        lecture_code: str = "",
        description: str = "",
        content_items: list[ContentItem] | None = None,
        assessment: Assessment = NO_ASSESSMENT,
        exam_required: bool = False,
        passing_score: int | None = None,
        is_locked: bool = True,
    ):
        self.index = index
        self.title = title
        self.lecture_code = lecture_code
        self.description = description
        self.content_items = content_items or []
        self.assessment = assessment
        self.exam_required = exam_required
        self.passing_score = (
            DEFAULT_PASSING_SCORE if passing_score is None else passing_score
        )
        self.is_locked = is_locked

    @property
    def has_assessment(self) -> bool:
        """Whether this lecture's assessment gates the next lecture."""
        return assessment_gates(self.assessment)

    @property
    def inline_quiz(self) -> InlineQuiz | None:
        if isinstance(self.assessment, InlineAssessment):
            return self.assessment.quiz
        return None

    @property
    def formal_exam_id(self) -> str | None:
        if isinstance(self.assessment, FormalAssessment):
            return self.assessment.exam_id
        return None

    @classmethod
    def from_row(cls, row: Any) -> "Lecture":
        """Create Lecture instance from Cassandra row."""
        kind = AssessmentKind(row.assessment_kind or AssessmentKind.NONE.value)
        assessment: Assessment = NO_ASSESSMENT
        if kind == AssessmentKind.INLINE:
            enabled = row.auto_quiz_enabled if row.auto_quiz_enabled is not None else True
            assessment = InlineAssessment(InlineQuiz.from_json(row.inline_quiz, enabled))
        elif kind == AssessmentKind.FORMAL and row.formal_exam_id:
            assessment = FormalAssessment(row.formal_exam_id)

        return cls(
            index=row.position,
            title=row.title or "",
            lecture_code=row.lecture_code or "",
            description=row.description or "",
            content_items=[
                ContentItem.from_dict(item)
                for item in _load_json(row.content_items, [])
            ],
            assessment=assessment,
            exam_required=bool(row.exam_required),
            passing_score=row.passing_score,
            is_locked=row.is_locked if row.is_locked is not None else True,
        )

    def to_row(self, course_id: UUID) -> list[Any]:
        """Values for the lecture upsert statement, in column order."""
        quiz = self.inline_quiz
        return [
            course_id,
            self.index,
            self.lecture_code,
            self.title,
            self.description,
            orjson.dumps([item.to_dict() for item in self.content_items]).decode(),
            self.assessment.kind.value,
            quiz.to_json() if quiz else None,
            quiz.enabled if quiz else True,
            self.formal_exam_id,
            self.exam_required,
            self.passing_score,
            self.is_locked,
        ]

    def __repr__(self) -> str:
        return (
            f"<Lecture {self.index} code={self.lecture_code} "
            f"assessment={self.assessment.kind.value}>"
        )


@dataclass
class Course:
    """Course entity: an ordered list of lectures.

    Lecture order defines the gating chain.
    """

    title: str
    course_code: str
    lectures: list[Lecture] = field(default_factory=list)
    id: UUID = field(default_factory=uuid4)
    description: str = ""
    teacher_id: UUID | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None

    @property
    def lecture_count(self) -> int:
        return len(self.lectures)

    def lecture(self, index: int) -> Lecture | None:
        """Lecture at ``index`` or None when out of range."""
        if 0 <= index < len(self.lectures):
            return self.lectures[index]
        return None

    @classmethod
    def from_rows(cls, row: Any, lecture_rows: list[Any]) -> "Course":
        """Create Course instance from a course row and its lecture rows."""
        lectures = sorted(
            (Lecture.from_row(r) for r in lecture_rows), key=lambda lec: lec.index
        )
        return cls(
            id=row.id,
            course_code=row.course_code or "",
            title=row.title or "",
            description=row.description or "",
            teacher_id=row.teacher_id,
            lectures=lectures,
            created_at=ensure_utc_aware(row.created_at) or datetime.now(UTC),
            updated_at=ensure_utc_aware(row.updated_at),
        )

    def __repr__(self) -> str:
        return f"<Course {self.id} code={self.course_code} lectures={self.lecture_count}>"
