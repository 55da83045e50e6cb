from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from core.config import settings
from services.gemini_service import GeminiGateway
from services.pain_store import PainStore


def get_store(request: Request) -> PainStore:
    # One store per app, created by the app factory.
    return request.app.state.pain_store


StoreDep = Annotated[PainStore, Depends(get_store)]


@lru_cache(maxsize=1)
def _gateway_for(api_key: str, model: str) -> GeminiGateway:
    return GeminiGateway(api_key=api_key, model=model)


def get_gemini_gateway() -> GeminiGateway:
    # Credential check runs before request validation, so a misconfigured
    # server answers 500 regardless of the payload.
    if not settings.gemini_api_key:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Gemini API key not configured")
    return _gateway_for(settings.gemini_api_key, settings.gemini_model)


GatewayDep = Annotated[GeminiGateway, Depends(get_gemini_gateway)]
