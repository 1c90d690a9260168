"""
Practice session endpoints.

Each action endpoint returns the session snapshot. Actions that do not apply
in the session's current state (a second finish, navigating during a
transition) are not errors: the snapshot comes back with ``accepted: false``.
"""
import logging
from typing import Callable

from fastapi import APIRouter, Depends, Request, status

from practice_app.core.config import settings
from practice_app.core.error_responses import (
    ErrorMessages,
    raise_bad_gateway,
    raise_bad_request,
    raise_conflict,
    raise_not_found,
    raise_service_unavailable,
)
from practice_app.core.registry import RegistryFullError, SessionRecord, SessionRegistry
from practice_app.core.session import GradingStatus, SessionConfigError, SessionStatus
from practice_app.grading.service import (
    AIGradingService,
    GradingService,
    GradingServiceError,
)
from practice_app.providers import create_provider
from practice_app.schemas.practice import (
    AnswerRequest,
    CreateSessionRequest,
    GeneratePracticeTestRequest,
    GeneratedPracticeTestResponse,
    GradeRequest,
    MistakeAnalysisResponse,
    MistakeRequest,
    NavigateRequest,
    ResultResponse,
    SessionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ==============================================================================
# Dependencies
# ==============================================================================


def get_registry(request: Request) -> SessionRegistry:
    """Session registry created at application startup."""
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        registry = SessionRegistry.from_settings(settings)
        request.app.state.registry = registry
    return registry


def get_grading_service(request: Request) -> GradingService:
    """
    AI grading service for the configured provider.

    Built on first use so the API starts without an AI key; grading endpoints
    answer 503 until one is configured.
    """
    service = getattr(request.app.state, "grading_service", None)
    if service is not None:
        return service

    if not settings.ai_api_key:
        raise_service_unavailable(ErrorMessages.AI_NOT_CONFIGURED)
    provider = create_provider(settings.AI_PROVIDER, settings.ai_api_key, settings.AI_MODEL)
    service = AIGradingService(provider, max_output_tokens=settings.AI_MAX_OUTPUT_TOKENS)
    request.app.state.grading_service = service
    logger.info(f"AI grading service initialized with provider '{settings.AI_PROVIDER}'")
    return service


def _get_record(registry: SessionRegistry, session_id: str) -> SessionRecord:
    record = registry.get(session_id)
    if record is None:
        raise_not_found(ErrorMessages.session_not_found(session_id))
    return record


def _apply(
    registry: SessionRegistry, session_id: str, action: Callable[..., bool]
) -> SessionResponse:
    record = _get_record(registry, session_id)
    accepted = action(record)
    return SessionResponse.from_record(record, accepted=accepted)


# ==============================================================================
# Lifecycle
# ==============================================================================


@router.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    body: CreateSessionRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    """
    Create a practice session.

    The session is created in the not-started state; call ``/start`` to begin
    the countdown.
    """
    questions = body.resolve_questions()
    if not questions:
        raise_bad_request(ErrorMessages.NO_QUESTIONS)

    try:
        record = registry.create(
            questions,
            time_budget_seconds=body.time_budget_seconds,
            per_question_seconds=body.per_question_seconds,
            answer_key=body.resolve_answer_key(),
            mode=body.mode,
            subject=body.subject,
            category=body.category,
            syllabus=body.syllabus,
            source_task=body.source_task.to_domain() if body.source_task else None,
        )
    except SessionConfigError as e:
        raise_bad_request(ErrorMessages.invalid_session_config(str(e)))
    except RegistryFullError:
        raise_conflict(ErrorMessages.TOO_MANY_SESSIONS)

    return SessionResponse.from_record(record)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
):
    return SessionResponse.from_record(_get_record(registry, session_id))


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
):
    """Discard a session. Its Result, if any, is gone afterwards."""
    if not registry.close(session_id):
        raise_not_found(ErrorMessages.session_not_found(session_id))


@router.post("/sessions/{session_id}/start", response_model=SessionResponse)
async def start_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return _apply(registry, session_id, lambda r: r.session.start())


@router.post("/sessions/{session_id}/finish", response_model=SessionResponse)
async def finish_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return _apply(registry, session_id, lambda r: r.session.finish())


@router.get("/sessions/{session_id}/result", response_model=ResultResponse)
async def get_result(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    record = _get_record(registry, session_id)
    if record.session.result is None:
        raise_not_found(ErrorMessages.RESULT_NOT_READY)
    return ResultResponse.from_domain(record.session.result)


# ==============================================================================
# Answering and navigation
# ==============================================================================


@router.post("/sessions/{session_id}/answer", response_model=SessionResponse)
async def submit_answer(
    session_id: str,
    body: AnswerRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    return _apply(registry, session_id, lambda r: r.session.submit_answer(body.answer))


@router.post("/sessions/{session_id}/clear", response_model=SessionResponse)
async def clear_answer(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return _apply(registry, session_id, lambda r: r.session.clear_answer())


@router.post("/sessions/{session_id}/review", response_model=SessionResponse)
async def mark_for_review(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return _apply(registry, session_id, lambda r: r.session.mark_for_review())


@router.post("/sessions/{session_id}/navigate", response_model=SessionResponse)
async def navigate(
    session_id: str,
    body: NavigateRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    return _apply(registry, session_id, lambda r: r.session.navigate(body.target_index))


@router.post("/sessions/{session_id}/next", response_model=SessionResponse)
async def next_question(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return _apply(registry, session_id, lambda r: r.session.next())


@router.post("/sessions/{session_id}/previous", response_model=SessionResponse)
async def previous_question(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return _apply(registry, session_id, lambda r: r.session.previous())


@router.post("/sessions/{session_id}/skip", response_model=SessionResponse)
async def skip_question(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return _apply(registry, session_id, lambda r: r.session.skip())


# ==============================================================================
# AI assisted grading
# ==============================================================================


@router.post("/sessions/{session_id}/grade", response_model=SessionResponse)
async def grade_session(
    session_id: str,
    body: GradeRequest,
    registry: SessionRegistry = Depends(get_registry),
    service: GradingService = Depends(get_grading_service),
):
    """
    Grade a finished session against a photographed answer key.

    A failure leaves the local result untouched and may be retried.
    """
    record = _get_record(registry, session_id)
    session = record.session
    if session.status != SessionStatus.FINISHED:
        raise_conflict(ErrorMessages.SESSION_NOT_FINISHED)
    if session.grading_status == GradingStatus.IN_FLIGHT:
        raise_conflict(ErrorMessages.GRADING_IN_PROGRESS)

    try:
        await session.request_ai_grading(service, body.answer_key_image)
    except GradingServiceError as e:
        raise_bad_gateway(
            ErrorMessages.AI_GRADING_FAILED,
            retryable=e.retryable,
            category=e.category.value,
        )
    return SessionResponse.from_record(record)


@router.post("/sessions/{session_id}/mistakes", response_model=MistakeAnalysisResponse)
async def analyze_mistake(
    session_id: str,
    body: MistakeRequest,
    registry: SessionRegistry = Depends(get_registry),
    service: GradingService = Depends(get_grading_service),
):
    """Explain one mistake; the topic is added to the session's weaknesses."""
    record = _get_record(registry, session_id)
    try:
        analysis = await record.session.analyze_mistake(
            service, body.image, body.description, body.question_number
        )
    except GradingServiceError as e:
        raise_bad_gateway(
            ErrorMessages.AI_ANALYSIS_FAILED,
            retryable=e.retryable,
            category=e.category.value,
        )
    return MistakeAnalysisResponse.from_domain(analysis, record.weaknesses)


@router.post("/generate", response_model=GeneratedPracticeTestResponse)
async def generate_practice_test(
    body: GeneratePracticeTestRequest,
    service: GradingService = Depends(get_grading_service),
):
    """Generate practice questions with an answer key for a topic."""
    try:
        test = await service.generate_practice_test(
            body.topic, body.num_questions, body.difficulty
        )
    except GradingServiceError as e:
        raise_bad_gateway(
            ErrorMessages.AI_GENERATION_FAILED,
            retryable=e.retryable,
            category=e.category.value,
        )
    return GeneratedPracticeTestResponse.from_domain(test)
