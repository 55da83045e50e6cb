import logging

from fastapi import APIRouter, HTTPException, status

from api.deps import GatewayDep
from schemas.analysis import AnalyzeRequest, FollowUpRequest, FollowUpResponse, GenerateTestsRequest
from schemas.assessment import AIGeneratedTest, GeminiPhysioResponse
from services.errors import GeminiError, GeminiRequestError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/analyze", response_model=GeminiPhysioResponse)
def analyze(payload: AnalyzeRequest, gateway: GatewayDep):
    if not payload.pain_markers:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Pain markers are required")

    try:
        return gateway.analyze(
            payload.pain_markers,
            payload.movement_test_results,
            context=payload.user_context,
            initial_story=payload.initial_story,
        )
    except GeminiRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except GeminiError:
        # Upstream reply is logged, never surfaced.
        logger.exception("Analysis API error")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to analyze symptoms")


@router.post("/follow-up", response_model=FollowUpResponse)
def follow_up(payload: FollowUpRequest, gateway: GatewayDep):
    if not payload.question.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Question is required")

    try:
        response = gateway.ask_follow_up(
            payload.question,
            payload.previous_analysis,
            payload.pain_markers,
            payload.movement_test_results,
            images=payload.images,
        )
    except GeminiRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except GeminiError:
        logger.exception("Follow-up API error")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to process follow-up question"
        )
    return FollowUpResponse(response=response)


@router.post("/generate-tests", response_model=list[AIGeneratedTest])
def generate_tests(payload: GenerateTestsRequest, gateway: GatewayDep):
    if not payload.pain_markers:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Pain markers are required")

    try:
        return gateway.generate_tests(payload.pain_markers, initial_story=payload.initial_story)
    except GeminiRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except GeminiError:
        logger.exception("Generate tests API error")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to generate tests")
