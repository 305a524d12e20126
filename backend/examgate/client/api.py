"""Async HTTP client for the exam service, built on httpx."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple, Type, TypeVar
from uuid import UUID

import httpx
from pydantic import BaseModel

from ..config import HTTP_TIMEOUT_SECONDS
from ..errors import REJECTIONS, ExamGateError, NotFoundError, TransientError
from ..schemas.assignment_schema import AssignmentRead
from ..schemas.exam_schema import ExamRead
from ..schemas.question_schema import QuestionBatch, QuestionPublic
from ..schemas.result_schema import CompletionStatus, ExamResultRead

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = {408, 425, 429, 500, 502, 503, 504}

M = TypeVar("M", bound=BaseModel)


def error_from_response(res: httpx.Response) -> ExamGateError:
    """Map a failed response to the matching ExamGateError."""
    if res.status_code in TRANSIENT_STATUSES:
        return TransientError(f"HTTP {res.status_code} from {res.request.url.path}")
    try:
        body = res.json()
    except ValueError:
        body = None
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, dict) and detail.get("reason") in REJECTIONS:
        return REJECTIONS[detail["reason"]](detail.get("message"))
    message = detail if isinstance(detail, str) else f"HTTP {res.status_code}"
    if res.status_code == 404:
        return NotFoundError(message)
    error = ExamGateError(message)
    error.status_code = res.status_code
    return error


def parse_body(res: httpx.Response, model: Optional[Type[M]] = None):
    """Decode a successful response, validating it against ``model`` when given."""
    try:
        data = res.json()
        return model.model_validate(data) if model is not None else data
    except ValueError as exc:
        # JSONDecodeError and pydantic ValidationError are both ValueErrors
        logger.warning("Malformed response from %s: %s", res.request.url.path, exc)
        raise ExamGateError(f"Malformed response from {res.request.url.path}") from exc


class ExamApiClient:
    def __init__(
        self,
        base_url: str = "",
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.token = token

    async def __aenter__(self) -> "ExamApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            res = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as exc:
            raise TransientError(f"Network error: {exc}") from exc
        except httpx.HTTPError as exc:
            # undecodable body, redirect loop and the like
            raise TransientError(f"HTTP error: {exc}") from exc
        if res.status_code >= 400:
            raise error_from_response(res)
        return res

    async def login(self, email: str, password: str) -> dict:
        res = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        data = parse_body(res)
        self.token = data["token"]
        return data["user"]

    async def get_profile(self) -> dict:
        res = await self._request("GET", "/users/me")
        return parse_body(res)

    async def check_completion(self, exam_id: UUID, assignment_id: Optional[UUID]) -> CompletionStatus:
        params = {"assignment_id": str(assignment_id)} if assignment_id else None
        res = await self._request("GET", f"/api/quiz-results/{exam_id}/check", params=params)
        return parse_body(res, CompletionStatus)

    async def get_exam(self, exam_id: UUID) -> ExamRead:
        res = await self._request("GET", f"/api/exams/{exam_id}")
        return parse_body(res, ExamRead)

    async def get_questions(self, question_ids: Sequence[UUID]) -> Tuple[List[QuestionPublic], List[UUID]]:
        if not question_ids:
            return [], []
        res = await self._request("GET", "/api/questions", params=[("ids", str(q)) for q in question_ids])
        batch = parse_body(res, QuestionBatch)
        return batch.items, batch.missing

    async def get_assignment(self, assignment_id: UUID) -> AssignmentRead:
        res = await self._request("GET", f"/api/assignments/{assignment_id}")
        return parse_body(res, AssignmentRead)

    async def submit_result(
        self,
        exam_id: UUID,
        assignment_id: Optional[UUID],
        answers: Sequence[int],
        time_spent_minutes: float,
    ) -> ExamResultRead:
        payload = {
            "exam_id": str(exam_id),
            "assignment_id": str(assignment_id) if assignment_id else None,
            "answers": list(answers),
            "time_spent_minutes": time_spent_minutes,
        }
        res = await self._request("POST", "/api/quiz-results", json=payload)
        return parse_body(res, ExamResultRead)
