import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.router import api_router
from core.config import settings
from database.session import SessionLocal, init_db
from services.pain_store import PainStore
from services.storage_service import SqlKeyValueStorage

logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def create_app(store: PainStore | None = None) -> FastAPI:
    app = FastAPI(title=settings.app_name)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_prefix)

    # Composition root: the single assessment store every route shares.
    app.state.pain_store = store or PainStore(
        storage=SqlKeyValueStorage(SessionLocal), storage_key=settings.storage_key
    )

    @app.on_event("startup")
    def _startup():
        init_db()
        app.state.pain_store.hydrate()

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
