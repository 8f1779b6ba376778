"""Application factory for the Decision Flow FastAPI backend."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import configure_logging, get_llm_settings, resolve_allowed_origins
from .llm import GenerationClient
from .memory import SessionRegistry
from .routers import wizard


def create_app(generation_client: GenerationClient | None = None) -> FastAPI:
    """Create and configure a FastAPI application instance."""

    configure_logging()
    app = FastAPI(
        title="Decision Flow Backend",
        version="0.1.0",
        description="Guided four-stage decision analysis backed by a generative model.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=resolve_allowed_origins(),
        allow_origin_regex=r"http://localhost:\d+$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.llm_settings = get_llm_settings()
    app.state.generation_client = generation_client or GenerationClient.from_settings(app.state.llm_settings)
    app.state.sessions = SessionRegistry()
    app.include_router(wizard.router)
    return app


app = create_app()
