from app.db import get_db

# -------------------------------------------------------------------------
# Container-based Dependencies
# -------------------------------------------------------------------------
# These provide services from the DI container for use in route handlers.
# They can be easily mocked in tests by overriding the container providers.


def get_role_resolver():
    """Get the role resolver from the container."""
    from app.container import container
    return container.role_resolver()


def get_project_instantiator():
    """Get the template instantiator from the container."""
    from app.container import container
    return container.project_instantiator()


def get_due_date_cascade():
    """Get the due-date cascade updater from the container."""
    from app.container import container
    return container.due_date_cascade()


def get_search_service():
    """Get the search service from the container."""
    from app.container import container
    return container.search_service()


__all__ = [
    "get_db",
    "get_role_resolver",
    "get_project_instantiator",
    "get_due_date_cascade",
    "get_search_service",
]
