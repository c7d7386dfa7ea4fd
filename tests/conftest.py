import os
import sqlite3
import uuid

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import Base

load_dotenv(os.path.join(os.getcwd(), ".env"))

sqlite3.register_adapter(uuid.UUID, lambda u: str(u))

# SQLite has no native UUID; store the canonical string form and accept
# string ids in filters, as Postgres does.
from sqlalchemy.sql import sqltypes  # noqa: E402

_original_uuid_bind_processor = sqltypes.Uuid.bind_processor
_original_uuid_result_processor = sqltypes.Uuid.result_processor


def _sqlite_uuid_bind_processor(self, dialect):
    if dialect.name == "sqlite":
        def process(value):
            if value is not None:
                if isinstance(value, uuid.UUID):
                    return str(value)
                return str(uuid.UUID(value)) if value else None
            return None
        return process
    return _original_uuid_bind_processor(self, dialect)


def _sqlite_uuid_result_processor(self, dialect, coltype):
    if dialect.name == "sqlite":
        def process(value):
            if value is not None:
                if isinstance(value, uuid.UUID):
                    return value
                return uuid.UUID(value) if value else None
            return None
        return process
    return _original_uuid_result_processor(self, dialect, coltype)


sqltypes.Uuid.bind_processor = _sqlite_uuid_bind_processor
sqltypes.Uuid.result_processor = _sqlite_uuid_result_processor

import app.models  # noqa: F401,E402
from app.api.deps import get_db  # noqa: E402
from app.models.projects import MeetingType  # noqa: E402
from app.schemas.projects import ProjectCreate, ProjectTaskCreate, ProjectTemplateCreate  # noqa: E402
from app.services import project_templates as templates_service  # noqa: E402
from app.services import projects as projects_service  # noqa: E402
from tests.factories import make_contact, make_team_member  # noqa: E402


def _resolve_test_database_url() -> str | None:
    raw_url = os.getenv("TEST_DATABASE_URL")
    if not raw_url:
        return None
    url = make_url(raw_url)
    if url.drivername.startswith("postgresql") and url.database != "estateplan_test":
        url = url.set(database="estateplan_test")
    return url.render_as_string(hide_password=False)


@pytest.fixture(scope="session")
def engine():
    database_url = _resolve_test_database_url()
    if database_url:
        engine = create_engine(database_url)
    else:
        engine = create_engine(
            "sqlite+pysqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(bind=connection, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture()
def session_factory(db_session):
    """Sessions sharing the test transaction, for code that opens its own."""
    return sessionmaker(bind=db_session.get_bind(), autoflush=False, autocommit=False)


@pytest.fixture()
def client(db_session):
    from app.main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client_contact(db_session):
    return make_contact(db_session, first_name="Alice", last_name="Client")


@pytest.fixture()
def attorney(db_session):
    return make_team_member(db_session, "Jane", "Doe", "estate_attorney")


@pytest.fixture()
def template(db_session):
    return templates_service.project_templates.create(
        db_session,
        ProjectTemplateCreate(name="Financial Review Meeting", meeting_type=MeetingType.frm),
    )


@pytest.fixture()
def project(db_session):
    return projects_service.projects.create(db_session, ProjectCreate(name="Smith Estate Plan"))


@pytest.fixture()
def project_task(db_session, project):
    return projects_service.project_tasks.create(
        db_session,
        ProjectTaskCreate(project_id=project.id, title="Draft trust"),
    )
