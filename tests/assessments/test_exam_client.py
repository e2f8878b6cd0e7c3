"""Tests for the External Exam Service client."""

import httpx
import pytest

from src.assessments.exam_client import (
    ExamAttemptRejectedError,
    ExamNotFoundError,
    ExamServiceClient,
)
from src.core.exceptions import UpstreamError


def _client(handler) -> ExamServiceClient:
    transport = httpx.MockTransport(handler)
    http = httpx.AsyncClient(transport=transport, base_url="https://exams.test/api")
    return ExamServiceClient(base_url="https://exams.test/api", client=http)


class TestGetExam:
    @pytest.mark.asyncio
    async def test_parses_exam(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/exams/exam-1"
            return httpx.Response(
                200,
                json={
                    "_id": "exam-1",
                    "title": "Midterm",
                    "questions": [
                        {"questionText": "Q1", "type": "mcq", "points": 2},
                        {"questionText": "Q2", "type": "essay", "points": 5},
                    ],
                    "timeLimit": 45,
                    "passingScore": 70,
                    "maxAttempts": 2,
                    "shuffleQuestions": False,
                },
            )

        exam = await _client(handler).get_exam("exam-1")

        assert exam.id == "exam-1"
        assert exam.total_questions == 2
        assert exam.time_limit == 45
        assert exam.passing_score == 70
        assert exam.max_attempts == 2
        assert exam.shuffle_questions is False

    @pytest.mark.asyncio
    async def test_exam_id_is_one_path_segment(self) -> None:
        """Slashes and query characters in an id never change the route."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.raw_path == b"/api/exams/a%2Fb%3Fx%3D1"
            return httpx.Response(200, json={"id": "a/b?x=1", "questions": []})

        exam = await _client(handler).get_exam("a/b?x=1")

        assert exam.id == "a/b?x=1"

    @pytest.mark.asyncio
    async def test_404_is_not_found(self) -> None:
        client = _client(lambda request: httpx.Response(404, json={"error": "nope"}))
        with pytest.raises(ExamNotFoundError):
            await client.get_exam("missing")

    @pytest.mark.asyncio
    async def test_unknown_question_type_is_malformed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"id": "exam-1", "questions": [{"type": "matching"}]}
            )

        with pytest.raises(UpstreamError):
            await _client(handler).get_exam("exam-1")


class TestSubmitExamAttempt:
    @pytest.mark.asyncio
    async def test_sends_answers_and_maps_result(self) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = request.read()
            return httpx.Response(
                200,
                json={"score": 80, "passed": True, "correctAnswers": 8, "totalQuestions": 10},
            )

        result = await _client(handler).submit_exam_attempt("exam-1", "learner-1", ["A", None])

        assert seen["path"] == "/api/exams/exam-1/attempts"
        assert b'"learnerId":"learner-1"' in seen["body"].replace(b" ", b"")
        assert result.score == 80
        assert result.passed is True
        assert result.correct_answers == 8
        assert result.total_questions == 10

    @pytest.mark.asyncio
    async def test_missing_fields_are_upstream_error(self) -> None:
        """A result without totals is malformed, not silently accepted."""
        client = _client(lambda request: httpx.Response(200, json={"score": 80}))
        with pytest.raises(UpstreamError):
            await client.submit_exam_attempt("exam-1", "learner-1", [])

    @pytest.mark.asyncio
    async def test_score_out_of_range_is_upstream_error(self) -> None:
        client = _client(
            lambda request: httpx.Response(
                200,
                json={"score": 140, "passed": True, "correctAnswers": 1, "totalQuestions": 1},
            )
        )
        with pytest.raises(UpstreamError):
            await client.submit_exam_attempt("exam-1", "learner-1", [])

    @pytest.mark.asyncio
    async def test_refused_attempt_is_rejected(self) -> None:
        client = _client(
            lambda request: httpx.Response(403, json={"message": "Maximum attempts reached"})
        )

        with pytest.raises(ExamAttemptRejectedError) as exc_info:
            await client.submit_exam_attempt("exam-1", "learner-1", [])

        assert exc_info.value.code == "exam_attempt_rejected"
        assert exc_info.value.message == "Maximum attempts reached"
        assert not isinstance(exc_info.value, UpstreamError)

    @pytest.mark.asyncio
    async def test_refusal_without_body_keeps_status(self) -> None:
        client = _client(lambda request: httpx.Response(422, text=""))

        with pytest.raises(ExamAttemptRejectedError) as exc_info:
            await client.submit_exam_attempt("exam-1", "learner-1", [])

        assert "422" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_client_error_on_read_is_upstream_error(self) -> None:
        client = _client(lambda request: httpx.Response(403, json={"message": "forbidden"}))
        with pytest.raises(UpstreamError):
            await client.get_exam("exam-1")

    @pytest.mark.asyncio
    async def test_server_error_is_upstream_error(self) -> None:
        client = _client(lambda request: httpx.Response(503, text="maintenance"))
        with pytest.raises(UpstreamError):
            await client.submit_exam_attempt("exam-1", "learner-1", [])

    @pytest.mark.asyncio
    async def test_non_json_body_is_upstream_error(self) -> None:
        client = _client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(UpstreamError):
            await client.submit_exam_attempt("exam-1", "learner-1", [])

    @pytest.mark.asyncio
    async def test_connection_error_is_upstream_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UpstreamError):
            await _client(handler).submit_exam_attempt("exam-1", "learner-1", [])


class TestGetAttemptCount:
    @pytest.mark.asyncio
    async def test_reads_count(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["learnerId"] == "learner-1"
            return httpx.Response(200, json={"count": 2})

        assert await _client(handler).get_attempt_count("exam-1", "learner-1") == 2
