"""Dependency injection container.

Holds the stateful services of the application so routes and tests obtain
them from one place instead of module globals.

Usage:
    from app.container import configure_container

    # In FastAPI startup
    configure_container(SessionLocal)

    # In route handlers (see app/api/deps.py)
    cascade: DueDateCascade = Depends(get_due_date_cascade)

    # In tests
    with container.search_service.override(SearchService(enhancer=fake)):
        response = client.get("/search", params={"q": "trust"})
"""

from __future__ import annotations

from dependency_injector import containers, providers  # type: ignore[import-not-found]

from app.config import settings
from app.db import SessionLocal
from app.services.ai.client import build_ai_client
from app.services.due_date_cascade import DueDateCascade
from app.services.project_instantiator import ProjectInstantiator
from app.services.role_resolver import RoleResolver
from app.services.search import LlmQueryEnhancer, SearchService


def _build_query_enhancer():
    client = build_ai_client(settings)
    if client is None:
        return None
    return LlmQueryEnhancer(client)


class Container(containers.DeclarativeContainer):
    """Application dependency injection container.

    Provides:
    - Database session factory
    - Role resolver and project instantiator
    - Due-date cascade bound to the session factory
    - Search service with an optional query enhancer
    """

    # Overridden at runtime with the actual session factory
    db_session_factory = providers.Callable(lambda: SessionLocal)

    role_resolver = providers.Singleton(RoleResolver)
    project_instantiator = providers.Singleton(ProjectInstantiator, role_resolver=role_resolver)
    due_date_cascade = providers.Singleton(
        DueDateCascade,
        session_factory=db_session_factory,
        max_workers=settings.cascade_max_workers,
    )

    query_enhancer = providers.Singleton(_build_query_enhancer)
    search_service = providers.Singleton(SearchService, enhancer=query_enhancer)


# Global container instance
container = Container()


def get_container() -> Container:
    """Get the global container instance."""
    return container


def configure_container(db_session_factory) -> Container:
    """Configure the container with runtime dependencies.

    Args:
        db_session_factory: Callable that returns a new database session

    Returns:
        Configured container instance
    """
    container.db_session_factory.override(providers.Object(db_session_factory))
    container.due_date_cascade.reset()
    return container
