"""External Exam Service client.

Formal exams are authored, timed and graded by a separate service. This
client only fetches exam metadata, forwards a learner's answers for grading
and reads the learner's attempt count; attempt limits and essay review stay
with the service.

Endpoints used (relative to ``exam_service_url``):
- ``GET  /exams/{exam_id}``
- ``POST /exams/{exam_id}/attempts``            body ``{learnerId, answers}``
- ``GET  /exams/{exam_id}/attempts/count``      query ``learnerId``
"""

from typing import Any
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from src.core.exceptions import EngineError, NotFoundError, UpstreamError
from src.courses.models import DEFAULT_PASSING_SCORE


logger = structlog.get_logger(__name__)


class ExamNotFoundError(NotFoundError):
    """Exam reference unknown to the External Exam Service."""

    def __init__(self, message: str = "Exam not found"):
        super().__init__(message, "exam_not_found")


class ExamServiceUnavailableError(UpstreamError):
    """No External Exam Service is configured."""

    def __init__(self, message: str = "Exam service not configured"):
        super().__init__(message, "exam_service_unavailable")


class ExamAttemptRejectedError(EngineError):
    """The service refused the attempt, e.g. no attempts left."""

    def __init__(self, message: str = "Exam attempt rejected"):
        super().__init__(message, "exam_attempt_rejected")


# ==============================================================================
# Wire models
# ==============================================================================


class ExamQuestion(BaseModel):
    """Formal exam question summary (answers never leave the service)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    text: str = Field("", alias="questionText")
    type: str = Field("mcq", pattern=r"^(mcq|short_answer|essay)$")
    points: int = 1


class FormalExam(BaseModel):
    """Exam metadata as returned by the External Exam Service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    title: str = ""
    questions: list[ExamQuestion] = Field(default_factory=list)
    time_limit: int | None = Field(None, alias="timeLimit")
    passing_score: int = Field(DEFAULT_PASSING_SCORE, alias="passingScore")
    max_attempts: int = Field(1, alias="maxAttempts")
    shuffle_questions: bool = Field(True, alias="shuffleQuestions")

    @property
    def total_questions(self) -> int:
        return len(self.questions)


class ExamAttemptResult(BaseModel):
    """Graded attempt as returned by the External Exam Service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    score: int = Field(..., ge=0, le=100)
    passed: bool
    correct_answers: int = Field(..., ge=0, alias="correctAnswers")
    total_questions: int = Field(..., ge=0, alias="totalQuestions")


class AttemptCount(BaseModel):
    count: int = Field(..., ge=0)


def _exam_path(exam_id: str, suffix: str = "") -> str:
    """Exam resource path; the id is a single escaped segment."""
    return f"/exams/{quote(exam_id, safe='')}{suffix}"


def _error_message(response: httpx.Response) -> str:
    """Refusal reason from an error body, falling back to the status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return f"Exam service refused the attempt: {response.status_code}"


# ==============================================================================
# Client
# ==============================================================================


class ExamServiceClient:
    """Async client for the External Exam Service.

    The underlying ``httpx.AsyncClient`` is owned by the caller when passed
    in (tests inject one backed by ``httpx.MockTransport``); otherwise the
    client creates its own and ``aclose`` releases it.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        exam_id: str,
        rejectable: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            ExamNotFoundError: On 404
            ExamAttemptRejectedError: On any other 4xx when ``rejectable``
            UpstreamError: On transport errors, other non-2xx codes or a
                body that is not JSON
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("exam_service_error", exam_id=exam_id, error="timeout")
            raise UpstreamError("Exam service timeout") from e
        except httpx.RequestError as e:
            logger.error("exam_service_error", exam_id=exam_id, error=str(e))
            raise UpstreamError(f"Exam service request error: {e}") from e

        if response.status_code == httpx.codes.NOT_FOUND:
            raise ExamNotFoundError

        if rejectable and response.is_client_error:
            message = _error_message(response)
            logger.info(
                "exam_attempt_rejected",
                exam_id=exam_id,
                status_code=response.status_code,
                message=message,
            )
            raise ExamAttemptRejectedError(message)

        if not response.is_success:
            logger.error(
                "exam_service_error",
                exam_id=exam_id,
                status_code=response.status_code,
                response_text=response.text[:500],
            )
            raise UpstreamError(f"Exam service error: {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            logger.error("exam_service_error", exam_id=exam_id, error="invalid_json")
            raise UpstreamError("Exam service returned malformed data") from e

    @staticmethod
    def _parse(model: type[BaseModel], data: Any, exam_id: str) -> Any:
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            logger.error(
                "exam_service_error",
                exam_id=exam_id,
                error="malformed_response",
                model=model.__name__,
            )
            raise UpstreamError("Exam service returned malformed data") from e

    async def get_exam(self, exam_id: str) -> FormalExam:
        """Fetch exam metadata."""
        data = await self._request("GET", _exam_path(exam_id), exam_id=exam_id)
        if isinstance(data, dict) and "id" not in data and "_id" in data:
            data = {**data, "id": data["_id"]}
        return self._parse(FormalExam, data, exam_id)

    async def submit_exam_attempt(
        self,
        exam_id: str,
        learner_id: str,
        answers: list[str | None],
    ) -> ExamAttemptResult:
        """Forward answers for grading; the service enforces max attempts."""
        data = await self._request(
            "POST",
            _exam_path(exam_id, "/attempts"),
            exam_id=exam_id,
            rejectable=True,
            json={"learnerId": learner_id, "answers": answers},
        )
        result = self._parse(ExamAttemptResult, data, exam_id)
        logger.debug(
            "exam_attempt_graded",
            exam_id=exam_id,
            score=result.score,
            passed=result.passed,
        )
        return result

    async def get_attempt_count(self, exam_id: str, learner_id: str) -> int:
        """Number of attempts the learner has used on this exam."""
        data = await self._request(
            "GET",
            _exam_path(exam_id, "/attempts/count"),
            exam_id=exam_id,
            params={"learnerId": learner_id},
        )
        return self._parse(AttemptCount, data, exam_id).count
