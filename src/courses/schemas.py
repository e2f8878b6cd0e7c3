"""Pydantic schemas for course content.

Request and response models for:
- Course definitions (authoring view, with answers)
- Learner view (answers and lecture codes stripped)
- Auto-quiz replacement and exam assignment
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.core.exceptions import ValidationError
from src.courses.models import (
    DEFAULT_PASSING_SCORE,
    NO_ASSESSMENT,
    Assessment,
    AssessmentKind,
    ContentItem,
    ContentType,
    Course,
    FormalAssessment,
    InlineAssessment,
    InlineQuiz,
    Lecture,
    QuestionType,
    QuizQuestion,
)


# ==============================================================================
# Quiz Schemas
# ==============================================================================


class QuestionPayload(BaseModel):
    """Inline quiz question as authored."""

    text: str = Field(..., description="Question text")
    type: QuestionType = Field(QuestionType.MCQ, description="mcq or short")
    options: list[str] = Field(default_factory=list, description="MCQ options")
    correct_answer: str = Field("", description="Correct option value or answer")
    points: int = Field(1, description="Question weight (informational)")

    @field_validator("correct_answer", mode="before")
    @classmethod
    def coerce_correct_answer(cls, v: object) -> str:
        """Authoring clients may send numeric answers."""
        return "" if v is None else str(v)

    def to_question(self) -> QuizQuestion:
        return QuizQuestion(
            text=self.text,
            type=self.type,
            # Short-answer questions carry no options
            options=tuple(self.options) if self.type == QuestionType.MCQ else (),
            correct_answer=self.correct_answer,
            points=self.points,
        )

    @classmethod
    def from_question(cls, question: QuizQuestion) -> "QuestionPayload":
        return cls(
            text=question.text,
            type=question.type,
            options=list(question.options),
            correct_answer=question.correct_answer,
            points=question.points,
        )


class LearnerQuestion(BaseModel):
    """Inline quiz question as shown to learners (no answer)."""

    text: str
    type: QuestionType
    options: list[str]
    points: int


class AutoQuizRequest(BaseModel):
    """Replace a lecture's inline auto-quiz."""

    enabled: bool = Field(True, description="Whether the quiz gates the lecture")
    questions: list[QuestionPayload] = Field(default_factory=list)

    def to_quiz(self) -> InlineQuiz:
        return InlineQuiz(
            questions=tuple(q.to_question() for q in self.questions),
            enabled=self.enabled,
        )


class ExamAssignmentRequest(BaseModel):
    """Attach a formal exam reference to a lecture."""

    exam_id: str = Field(..., description="External exam identifier")
    passing_score: int | None = Field(
        None, description=f"Pass threshold (default {DEFAULT_PASSING_SCORE})"
    )


# ==============================================================================
# Lecture / Course Schemas
# ==============================================================================


class ContentItemPayload(BaseModel):
    """Lecture content descriptor."""

    type: ContentType
    title: str = ""
    url: str
    duration_seconds: int | None = Field(None, ge=0)


class LecturePayload(BaseModel):
    """Lecture as authored.

    ``inline_quiz`` and ``formal_exam_id`` are mutually exclusive.
    """

    title: str = ""
    lecture_code: str = ""
    description: str = ""
    content_items: list[ContentItemPayload] = Field(default_factory=list)
    inline_quiz: list[QuestionPayload] | None = None
    auto_quiz_enabled: bool = True
    formal_exam_id: str | None = None
    exam_required: bool = False
    passing_score: int | None = None
    is_locked: bool = True

    @field_validator("lecture_code", mode="before")
    @classmethod
    def coerce_code(cls, v: object) -> str:
        return "" if v is None else str(v)

    def to_assessment(self, index: int) -> Assessment:
        if self.inline_quiz is not None and self.formal_exam_id is not None:
            raise ValidationError("assessment_conflict", index=index)
        if self.formal_exam_id is not None:
            return FormalAssessment(self.formal_exam_id)
        if self.inline_quiz is not None:
            return InlineAssessment(
                InlineQuiz(
                    questions=tuple(q.to_question() for q in self.inline_quiz),
                    enabled=self.auto_quiz_enabled,
                )
            )
        return NO_ASSESSMENT

    def to_lecture(self, index: int) -> Lecture:
        assessment = self.to_assessment(index)
        return Lecture(
            index=index,
            title=self.title,
            lecture_code=self.lecture_code,
            description=self.description,
            content_items=[
                ContentItem(
                    type=item.type,
                    title=item.title,
                    url=item.url,
                    duration_seconds=item.duration_seconds,
                )
                for item in self.content_items
            ],
            assessment=assessment,
            exam_required=self.exam_required
            or assessment.kind == AssessmentKind.FORMAL,
            passing_score=self.passing_score,
            is_locked=self.is_locked,
        )


class SaveCourseRequest(BaseModel):
    """Create or replace a course definition."""

    id: UUID | None = Field(None, description="Existing course to replace")
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    course_code: str = Field(..., description="5-digit internal code")
    teacher_id: UUID | None = None
    lectures: list[LecturePayload] = Field(default_factory=list)

    @field_validator("course_code", mode="before")
    @classmethod
    def coerce_code(cls, v: object) -> str:
        return "" if v is None else str(v)

    def to_course(self) -> Course:
        """Build the domain course; raises on conflicting assessments."""
        course = Course(
            title=self.title,
            description=self.description,
            course_code=self.course_code,
            teacher_id=self.teacher_id,
            lectures=[lec.to_lecture(i) for i, lec in enumerate(self.lectures)],
        )
        if self.id is not None:
            course.id = self.id
        return course


class LectureResponse(BaseModel):
    """Lecture in the authoring view."""

    index: int
    title: str
    lecture_code: str
    description: str
    content_items: list[ContentItemPayload]
    assessment_kind: AssessmentKind
    inline_quiz: list[QuestionPayload] | None = None
    auto_quiz_enabled: bool = True
    formal_exam_id: str | None = None
    exam_required: bool
    passing_score: int
    is_locked: bool

    @classmethod
    def from_entity(cls, lecture: Lecture) -> "LectureResponse":
        quiz = lecture.inline_quiz
        return cls(
            index=lecture.index,
            title=lecture.title,
            lecture_code=lecture.lecture_code,
            description=lecture.description,
            content_items=[
                ContentItemPayload(**item.to_dict()) for item in lecture.content_items
            ],
            assessment_kind=lecture.assessment.kind,
            inline_quiz=[QuestionPayload.from_question(q) for q in quiz.questions]
            if quiz
            else None,
            auto_quiz_enabled=quiz.enabled if quiz else True,
            formal_exam_id=lecture.formal_exam_id,
            exam_required=lecture.exam_required,
            passing_score=lecture.passing_score,
            is_locked=lecture.is_locked,
        )


class CourseResponse(BaseModel):
    """Course in the authoring view."""

    id: UUID
    title: str
    description: str
    course_code: str
    teacher_id: UUID | None = None
    lectures: list[LectureResponse]
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, course: Course) -> "CourseResponse":
        return cls(
            id=course.id,
            title=course.title,
            description=course.description,
            course_code=course.course_code,
            teacher_id=course.teacher_id,
            lectures=[LectureResponse.from_entity(lec) for lec in course.lectures],
            created_at=course.created_at,
            updated_at=course.updated_at,
        )


class LearnerLectureResponse(BaseModel):
    """Lecture as shown to learners."""

    index: int
    title: str
    description: str
    content_items: list[ContentItemPayload]
    assessment_kind: AssessmentKind
    questions: list[LearnerQuestion] | None = None
    formal_exam_id: str | None = None
    passing_score: int

    @classmethod
    def from_entity(cls, lecture: Lecture) -> "LearnerLectureResponse":
        quiz = lecture.inline_quiz
        return cls(
            index=lecture.index,
            title=lecture.title,
            description=lecture.description,
            content_items=[
                ContentItemPayload(**item.to_dict()) for item in lecture.content_items
            ],
            assessment_kind=lecture.assessment.kind,
            questions=[
                LearnerQuestion(
                    text=q.text, type=q.type, options=list(q.options), points=q.points
                )
                for q in quiz.questions
            ]
            if quiz and quiz.enabled
            else None,
            formal_exam_id=lecture.formal_exam_id,
            passing_score=lecture.passing_score,
        )


class LearnerCourseResponse(BaseModel):
    """Course as shown to learners: no course/lecture codes, no answers."""

    id: UUID
    title: str
    description: str
    lectures: list[LearnerLectureResponse]

    @classmethod
    def from_entity(cls, course: Course) -> "LearnerCourseResponse":
        return cls(
            id=course.id,
            title=course.title,
            description=course.description,
            lectures=[LearnerLectureResponse.from_entity(lec) for lec in course.lectures],
        )
