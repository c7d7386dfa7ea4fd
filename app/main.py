import logging

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from app.api.contacts import router as contacts_router
from app.api.dashboard import router as dashboard_router
from app.api.notifications import router as notifications_router
from app.api.project_templates import router as project_templates_router
from app.api.projects import router as projects_router
from app.api.search import router as search_router
from app.container import configure_container
from app.db import SessionLocal
from app.errors import register_error_handlers
from app.logging import configure_logging
from app.telemetry import setup_otel

logger = logging.getLogger(__name__)

app = FastAPI(title="estateplan_crm API")

configure_logging()
setup_otel(app)
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(contacts_router)
_include_api_router(projects_router)
_include_api_router(project_templates_router)
_include_api_router(notifications_router)
_include_api_router(dashboard_router)
_include_api_router(search_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.head("/health")
def head_health():
    return Response(status_code=200)


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


@app.on_event("startup")
def _configure_services():
    configure_container(SessionLocal)
    logger.info("application_started")
