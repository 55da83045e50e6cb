from fastapi import APIRouter

from api.routes import analysis, assessment, catalog, sessions

api_router = APIRouter()

api_router.include_router(analysis.router, tags=["analysis"])
api_router.include_router(assessment.router, tags=["assessment"], prefix="/assessment")
api_router.include_router(sessions.router, tags=["sessions"])
api_router.include_router(catalog.router, tags=["catalog"])
