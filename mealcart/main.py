from __future__ import annotations

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mealcart.api.v1.ingest import router as ingest_router
from mealcart.api.v1.planning import router as planning_router
from mealcart.api.v1.shopping import router as shopping_router
from mealcart.config import Settings
from mealcart.observability import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Ensure data dir exists so repos can write
    settings = Settings()
    os.makedirs(settings.data_dir, exist_ok=True)
    yield

def create_app() -> FastAPI:
    settings = Settings()
    configure_logging(settings.json_logs, settings.log_level)
    app = FastAPI(title="Mealcart API", version="1.0", lifespan=lifespan)

    # CORS (narrow it down in .env via CORS_ALLOW_ORIGINS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(shopping_router)
    app.include_router(planning_router)
    app.include_router(ingest_router)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/readyz")
    def readyz():
        return {"status": "ready"}

    return app

app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("mealcart.main:app", host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))
