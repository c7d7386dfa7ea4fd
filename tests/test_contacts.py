"""Tests for contacts, logged interactions and dashboard figures."""

import uuid
from datetime import date

import pytest
from fastapi import HTTPException

from app.models.contacts import ContactType
from app.models.interactions import CallTranscript, EmailDirection, EmailInteraction
from app.models.notification import Notification
from app.models.projects import ProjectStatus, ProjectTaskAssignee, TaskStatus
from app.schemas.contacts import ContactCreate, ContactUpdate
from app.schemas.interactions import CallTranscriptCreate, EmailInteractionCreate
from app.schemas.projects import ProjectCommentCreate, ProjectCreate, ProjectTaskCreate
from app.services import contacts as contacts_service
from app.services import dashboard as dashboard_service
from app.services import interactions as interactions_service
from app.services import projects as projects_service
from tests.factories import make_contact, make_team_member

TODAY = date(2025, 6, 1)


class TestContacts:
    """Tests for Contacts."""

    def test_create_normalizes_email(self, db_session):
        """Emails are stored trimmed and lower-cased."""
        contact = contacts_service.contacts.create(
            db_session, ContactCreate(first_name="Alice", last_name="Smith", email="  Alice@Example.COM ")
        )
        assert contact.email == "alice@example.com"
        assert contact.full_name == "Alice Smith"

    def test_list_search_and_filters(self, db_session):
        """Contacts can be searched by name or company and filtered by type and role."""
        smith = make_contact(db_session, first_name="Alice", last_name="Smith", company="Acme Trust")
        make_contact(db_session, first_name="Bob", last_name="Jones", contact_type=ContactType.prospect)
        attorney = make_team_member(db_session, "Jane", "Doe", "estate_attorney")

        found = contacts_service.contacts.list(db_session, None, None, None, "acme", "created_at", "asc", 50, 0)
        assert [c.id for c in found] == [smith.id]
        prospects = contacts_service.contacts.list(
            db_session, "prospect", None, None, None, "created_at", "asc", 50, 0
        )
        assert [c.last_name for c in prospects] == ["Jones"]
        by_role = contacts_service.contacts.list(
            db_session, None, None, "estate_attorney", None, "created_at", "asc", 50, 0
        )
        assert [c.id for c in by_role] == [attorney.id]

    def test_invalid_order_by_rejected(self, db_session):
        """Unknown sort columns are a 400."""
        with pytest.raises(HTTPException) as exc:
            contacts_service.contacts.list(db_session, None, None, None, None, "password", "asc", 50, 0)
        assert exc.value.status_code == 400

    def test_update(self, db_session, client_contact):
        """Partial updates leave other fields alone."""
        updated = contacts_service.contacts.update(
            db_session, str(client_contact.id), ContactUpdate(company="Smith Family Office")
        )
        assert updated.company == "Smith Family Office"
        assert updated.first_name == "Alice"

    def test_delete_project_client_rejected(self, db_session, client_contact):
        """A contact that is a project client cannot be deleted."""
        projects_service.projects.create(db_session, ProjectCreate(name="Plan", client_id=client_contact.id))
        with pytest.raises(HTTPException) as exc:
            contacts_service.contacts.delete(db_session, str(client_contact.id))
        assert exc.value.status_code == 400

    def test_delete_cleans_up_references(self, db_session, project, attorney):
        """Deleting a team member removes assignments and notifications and keeps comments."""
        projects_service.project_tasks.create(
            db_session,
            ProjectTaskCreate(project_id=project.id, title="Review", assigned_contact_ids=[attorney.id]),
        )
        comment = projects_service.project_comments.create(
            db_session, ProjectCommentCreate(project_id=project.id, author_contact_id=attorney.id, body="Done")
        )
        contacts_service.contacts.delete(db_session, str(attorney.id))

        assert db_session.query(ProjectTaskAssignee).filter(ProjectTaskAssignee.contact_id == attorney.id).count() == 0
        assert db_session.query(Notification).filter(Notification.recipient_contact_id == attorney.id).count() == 0
        db_session.refresh(comment)
        assert comment.author_contact_id is None

    def test_get_unknown_raises_404(self, db_session):
        """An unknown contact id is a 404."""
        with pytest.raises(HTTPException) as exc:
            contacts_service.contacts.get(db_session, str(uuid.uuid4()))
        assert exc.value.status_code == 404


class TestInteractions:
    """Tests for email interactions and call transcripts."""

    def test_log_email_and_call(self, db_session, client_contact):
        """Emails and calls are stored against the contact."""
        email = interactions_service.email_interactions.create(
            db_session,
            EmailInteractionCreate(
                contact_id=client_contact.id,
                subject="Trust documents",
                direction=EmailDirection.outbound,
                recipients=["alice@example.com"],
            ),
        )
        call = interactions_service.call_transcripts.create(
            db_session,
            CallTranscriptCreate(contact_id=client_contact.id, title="Intro call", duration_seconds=900),
        )
        emails = interactions_service.email_interactions.list(db_session, str(client_contact.id), 50, 0)
        calls = interactions_service.call_transcripts.list(db_session, str(client_contact.id), 50, 0)
        assert [e.id for e in emails] == [email.id]
        assert emails[0].recipients == ["alice@example.com"]
        assert [c.id for c in calls] == [call.id]

    def test_unknown_contact_raises_404(self, db_session):
        """Interactions need an existing contact."""
        with pytest.raises(HTTPException) as exc:
            interactions_service.email_interactions.create(
                db_session, EmailInteractionCreate(contact_id=uuid.uuid4(), subject="Hello")
            )
        assert exc.value.status_code == 404

    def test_deleted_with_contact(self, db_session):
        """Removing a contact removes its interactions."""
        contact = make_contact(db_session, first_name="Temp", last_name="Person")
        interactions_service.email_interactions.create(
            db_session, EmailInteractionCreate(contact_id=contact.id, subject="Hello")
        )
        interactions_service.call_transcripts.create(
            db_session, CallTranscriptCreate(contact_id=contact.id, title="Call")
        )
        contacts_service.contacts.delete(db_session, str(contact.id))
        assert db_session.query(EmailInteraction).count() == 0
        assert db_session.query(CallTranscript).count() == 0


class TestDashboard:
    """Tests for dashboard figures."""

    def test_stats(self, db_session):
        """Counts clients, prospects, active projects and overdue open tasks."""
        client = make_contact(db_session, first_name="Alice", last_name="Smith")
        make_contact(db_session, first_name="Bob", last_name="Jones", contact_type=ContactType.prospect)
        make_team_member(db_session, "Jane", "Doe", "estate_attorney")
        active = projects_service.projects.create(
            db_session, ProjectCreate(name="Active", client_id=client.id, status=ProjectStatus.active)
        )
        projects_service.projects.create(db_session, ProjectCreate(name="Planning"))
        for title, due, status in (
            ("Late", date(2025, 5, 1), TaskStatus.todo),
            ("Late but done", date(2025, 5, 1), TaskStatus.completed),
            ("Future", date(2025, 7, 1), TaskStatus.todo),
        ):
            projects_service.project_tasks.create(
                db_session, ProjectTaskCreate(project_id=active.id, title=title, due_date=due, status=status)
            )

        assert dashboard_service.stats(db_session, today=TODAY) == {
            "total_clients": 1,
            "active_projects": 1,
            "prospects": 1,
            "overdue_tasks": 1,
        }

    def test_projects_due(self, db_session):
        """Projects due within the window are listed soonest first."""
        later = projects_service.projects.create(db_session, ProjectCreate(name="Later", due_date=date(2025, 6, 20)))
        sooner = projects_service.projects.create(db_session, ProjectCreate(name="Sooner", due_date=date(2025, 6, 5)))
        projects_service.projects.create(db_session, ProjectCreate(name="Too far", due_date=date(2025, 8, 1)))
        due = dashboard_service.projects_due(db_session, today=TODAY)
        assert [p.id for p in due] == [sooner.id, later.id]
