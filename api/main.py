"""FastAPI service for Task Organizer."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import allowed_origins
from api.routers import analytics_router, auth_router, settings_router, tasks_router
from task_organizer.auth import IdentityClient
from task_organizer.config import Settings, load_settings
from task_organizer.task_store import DocumentStore, FileDocumentStore, FirestoreDocumentStore
from task_organizer.workspace import SessionRegistry, file_preferences

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def build_registry(settings: Settings) -> SessionRegistry:
    """Wire the shared services every client session uses."""
    documents: DocumentStore
    if settings.force_file_store:
        documents = FileDocumentStore(settings.data_dir / "documents")
        logger.info("Using file document store at %s", settings.data_dir / "documents")
    else:
        documents = FirestoreDocumentStore(project_id=settings.firebase_project_id)

    identity = IdentityClient(
        settings.firebase_api_key,
        project_id=settings.firebase_project_id,
    )
    return SessionRegistry(
        identity,
        documents,
        file_preferences(settings.data_dir / "preferences.json"),
        collection=settings.tasks_collection,
    )


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[SessionRegistry] = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        app.state.registry.close_all()

    app = FastAPI(
        title="Task Organizer API",
        version="0.1.0",
        description="State layer for the personal task organizer web client.",
        lifespan=lifespan,
    )

    origins = allowed_origins(settings)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.settings = settings
    app.state.registry = registry if registry is not None else build_registry(settings)

    @app.get("/health")
    def health_check(request: Request) -> dict:
        """Health check endpoint with service configuration status."""
        current = request.app.state.settings
        services = {
            "firebase_auth": "configured" if current.firebase_api_key else "not_configured",
            "document_store": "file" if current.force_file_store else "firestore",
        }
        return {
            "status": "ok",
            "time": datetime.now(timezone.utc).isoformat(),
            "environment": current.environment,
            "services": services,
            "sessions": len(request.app.state.registry),
        }

    app.include_router(auth_router, prefix="/auth", tags=["auth"])
    app.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
    app.include_router(analytics_router, prefix="/analytics", tags=["analytics"])
    app.include_router(settings_router, prefix="/settings", tags=["settings"])
    return app


app = create_app()
