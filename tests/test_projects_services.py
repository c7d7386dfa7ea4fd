"""Tests for project, task, milestone and comment services."""

import uuid
from datetime import date

import pytest
from fastapi import HTTPException

from app.models.activity import ActivityLog
from app.models.notification import Notification, NotificationKind
from app.models.projects import ProjectStatus, TaskStatus
from app.schemas.projects import (
    MilestoneCreate,
    ProjectCommentCreate,
    ProjectCreate,
    ProjectTaskCommentCreate,
    ProjectTaskCreate,
    ProjectTaskUpdate,
    ProjectUpdate,
)
from app.services import projects as projects_service
from tests.factories import add_template_milestone, make_team_member

TODAY = date(2025, 6, 1)


def _task(db_session, project, title, **kwargs):
    return projects_service.project_tasks.create(
        db_session, ProjectTaskCreate(project_id=project.id, title=title, **kwargs)
    )


class TestProjects:
    """Tests for Projects."""

    def test_create_logs_activity(self, db_session, client_contact):
        """Creating a project records an activity entry."""
        project = projects_service.projects.create(
            db_session, ProjectCreate(name="Smith Estate Plan", client_id=client_contact.id)
        )
        entry = db_session.query(ActivityLog).filter(ActivityLog.entity_id == project.id).one()
        assert entry.action == "created_project"

    def test_create_with_unknown_client_raises_404(self, db_session):
        """The client must be an existing contact."""
        with pytest.raises(HTTPException) as exc:
            projects_service.projects.create(db_session, ProjectCreate(name="Ghost", client_id=uuid.uuid4()))
        assert exc.value.status_code == 404

    def test_list_filters(self, db_session, client_contact):
        """Projects can be filtered by client, status and name."""
        mine = projects_service.projects.create(
            db_session, ProjectCreate(name="Smith Trust", client_id=client_contact.id, status=ProjectStatus.active)
        )
        projects_service.projects.create(db_session, ProjectCreate(name="Jones Will"))

        by_client = projects_service.projects.list(
            db_session, str(client_contact.id), None, None, None, None, "name", "asc", 50, 0
        )
        assert [p.id for p in by_client] == [mine.id]
        by_status = projects_service.projects.list(
            db_session, None, "active", None, None, None, "name", "asc", 50, 0
        )
        assert [p.id for p in by_status] == [mine.id]
        by_search = projects_service.projects.list(
            db_session, None, None, None, "trust", None, "name", "asc", 50, 0
        )
        assert [p.id for p in by_search] == [mine.id]

    def test_soft_delete(self, db_session, project):
        """Deleted projects are hidden from the default list."""
        projects_service.projects.delete(db_session, str(project.id))
        listed = projects_service.projects.list(db_session, None, None, None, None, None, "name", "asc", 50, 0)
        assert listed == []

    def test_update_rejects_inverted_dates(self, db_session, project):
        """start_date after end_date is rejected even across separate updates."""
        projects_service.projects.update(db_session, str(project.id), ProjectUpdate(end_date=date(2025, 1, 1)))
        with pytest.raises(HTTPException) as exc:
            projects_service.projects.update(db_session, str(project.id), ProjectUpdate(start_date=date(2025, 2, 1)))
        assert exc.value.status_code == 400

    def test_list_due_between(self, db_session):
        """Only open projects due in the window are returned."""
        due = projects_service.projects.create(db_session, ProjectCreate(name="Due", due_date=date(2025, 6, 10)))
        projects_service.projects.create(
            db_session,
            ProjectCreate(name="Done", due_date=date(2025, 6, 10), status=ProjectStatus.completed),
        )
        projects_service.projects.create(db_session, ProjectCreate(name="Later", due_date=date(2025, 9, 1)))
        found = projects_service.projects.list_due_between(db_session, TODAY, date(2025, 7, 1))
        assert [p.id for p in found] == [due.id]


class TestProjectTasks:
    """Tests for ProjectTasks."""

    def test_assignment_notifies_new_assignees(self, db_session, project, attorney):
        """Assigned contacts get one assignment notification."""
        task = _task(db_session, project, "Review will", assigned_contact_ids=[attorney.id, attorney.id])
        assert task.assigned_contact_ids == [attorney.id]
        notes = db_session.query(Notification).filter(Notification.recipient_contact_id == attorney.id).all()
        assert [(n.kind, n.entity_id) for n in notes] == [(NotificationKind.assignment, task.id)]

    def test_reassignment_replaces_assignees(self, db_session, project, attorney):
        """Updating assignees removes the old and notifies only the new."""
        paralegal = make_team_member(db_session, "Pat", "Legal", "paralegal")
        task = _task(db_session, project, "Review will", assigned_contact_ids=[attorney.id])
        task = projects_service.project_tasks.update(
            db_session, str(task.id), ProjectTaskUpdate(assigned_contact_ids=[paralegal.id])
        )
        assert task.assigned_contact_ids == [paralegal.id]
        assert (
            db_session.query(Notification).filter(Notification.recipient_contact_id == paralegal.id).count() == 1
        )

    def test_unknown_assignee_rejected(self, db_session, project):
        """Assignees must be existing contacts."""
        with pytest.raises(HTTPException) as exc:
            _task(db_session, project, "Ghost work", assigned_contact_ids=[uuid.uuid4()])
        assert exc.value.status_code == 404

    def test_parent_from_other_project_rejected(self, db_session, project):
        """Parents must be in the same project."""
        other = projects_service.projects.create(db_session, ProjectCreate(name="Other"))
        foreign = _task(db_session, other, "Foreign")
        with pytest.raises(HTTPException) as exc:
            _task(db_session, project, "Child", parent_task_id=foreign.id)
        assert exc.value.status_code == 400

    def test_parent_cycle_rejected(self, db_session, project):
        """A task cannot be moved under its own descendant."""
        parent = _task(db_session, project, "Parent")
        child = _task(db_session, project, "Child", parent_task_id=parent.id)
        with pytest.raises(HTTPException) as exc:
            projects_service.project_tasks.update(
                db_session, str(parent.id), ProjectTaskUpdate(parent_task_id=child.id)
            )
        assert exc.value.status_code == 400

    def test_completion_timestamp(self, db_session, project_task):
        """completed_at is set on completion and cleared on reopen."""
        done = projects_service.project_tasks.update(
            db_session, str(project_task.id), ProjectTaskUpdate(status=TaskStatus.completed)
        )
        assert done.completed_at is not None
        reopened = projects_service.project_tasks.update(
            db_session, str(project_task.id), ProjectTaskUpdate(status=TaskStatus.in_progress)
        )
        assert reopened.completed_at is None

    def test_list_by_assignee(self, db_session, project, attorney):
        """Tasks can be listed for one assignee."""
        mine = _task(db_session, project, "Mine", assigned_contact_ids=[attorney.id])
        _task(db_session, project, "Not mine")
        found = projects_service.project_tasks.list(
            db_session, str(project.id), None, None, str(attorney.id), None, "created_at", "asc", 50, 0
        )
        assert [t.id for t in found] == [mine.id]

    def test_upcoming_and_overdue(self, db_session, project):
        """Upcoming covers open todo tasks this week; overdue covers open past-due tasks."""
        soon = _task(db_session, project, "Soon", due_date=date(2025, 6, 5))
        _task(db_session, project, "Far", due_date=date(2025, 7, 1))
        late = _task(db_session, project, "Late", due_date=date(2025, 5, 20), status=TaskStatus.in_progress)
        _task(db_session, project, "Closed", due_date=date(2025, 5, 20), status=TaskStatus.completed)

        upcoming = projects_service.project_tasks.upcoming(db_session, today=TODAY)
        assert [t.id for t in upcoming] == [soon.id]
        overdue = projects_service.project_tasks.overdue(db_session, today=TODAY)
        assert [t.id for t in overdue] == [late.id]

    def test_soft_delete_hides_task(self, db_session, project, project_task):
        """Deleted tasks are dropped from the project's task list."""
        projects_service.project_tasks.delete(db_session, str(project_task.id))
        assert projects_service.project_tasks.list_for_project(db_session, str(project.id)) == []


class TestMilestones:
    """Tests for Milestones."""

    def test_requires_single_owner(self, project, template):
        """A milestone belongs to exactly one of a template or a project."""
        with pytest.raises(ValueError):
            MilestoneCreate(title="Both", template_id=template.id, project_id=project.id)

    def test_reorder(self, db_session, project):
        """Reordering assigns positions in the given order."""
        first = projects_service.milestones.create(db_session, MilestoneCreate(project_id=project.id, title="A"))
        second = projects_service.milestones.create(db_session, MilestoneCreate(project_id=project.id, title="B"))
        projects_service.milestones.reorder(db_session, [second.id, first.id])
        ordered = projects_service.milestones.list_for_project(db_session, str(project.id))
        assert [m.title for m in ordered] == ["B", "A"]
        assert [m.sort_order for m in ordered] == [1, 2]

    def test_reorder_mixed_owners_rejected(self, db_session, project, template):
        """Milestones from different owners cannot be reordered together."""
        mine = projects_service.milestones.create(db_session, MilestoneCreate(project_id=project.id, title="A"))
        theirs = add_template_milestone(db_session, template, "B")
        with pytest.raises(HTTPException) as exc:
            projects_service.milestones.reorder(db_session, [mine.id, theirs.id])
        assert exc.value.status_code == 400

    def test_delete_detaches_tasks(self, db_session, project):
        """Deleting a milestone keeps its tasks, without a milestone."""
        milestone = projects_service.milestones.create(
            db_session, MilestoneCreate(project_id=project.id, title="Prep")
        )
        task = _task(db_session, project, "Prep work", milestone_id=milestone.id)
        projects_service.milestones.delete(db_session, str(milestone.id))
        db_session.refresh(task)
        assert task.milestone_id is None

    def test_task_milestone_must_match_project(self, db_session, project, template):
        """Tasks cannot point at a template milestone."""
        milestone = add_template_milestone(db_session, template, "Template only")
        with pytest.raises(HTTPException) as exc:
            _task(db_session, project, "Mismatch", milestone_id=milestone.id)
        assert exc.value.status_code == 400


class TestComments:
    """Tests for task and project comments."""

    def test_task_comment_mentions_notify(self, db_session, project_task, attorney):
        """@first.last mentions of team members create notifications."""
        author = make_team_member(db_session, "Pat", "Legal", "paralegal")
        comment = projects_service.project_task_comments.create(
            db_session,
            ProjectTaskCommentCreate(
                task_id=project_task.id, author_contact_id=author.id, body="@jane.doe please review, cc @pat.legal"
            ),
        )
        assert comment.mentioned_contact_ids == [str(attorney.id)]
        note = db_session.query(Notification).filter(Notification.recipient_contact_id == attorney.id).one()
        assert note.kind == NotificationKind.mention
        assert note.entity_type == "task"
        assert note.entity_id == project_task.id
        assert note.title == "You were mentioned on Draft trust"

    def test_unknown_mention_ignored(self, db_session, project):
        """Handles that match nobody are ignored."""
        comment = projects_service.project_comments.create(
            db_session, ProjectCommentCreate(project_id=project.id, body="thanks @nobody.here")
        )
        assert comment.mentioned_contact_ids is None
        assert db_session.query(Notification).count() == 0

    def test_project_comments_listed_oldest_first(self, db_session, project):
        """Comments come back in posting order."""
        for body in ("first", "second"):
            projects_service.project_comments.create(
                db_session, ProjectCommentCreate(project_id=project.id, body=body)
            )
        listed = projects_service.project_comments.list(db_session, str(project.id), 50, 0)
        assert [c.body for c in listed] == ["first", "second"]

    def test_comment_on_unknown_task_raises_404(self, db_session):
        """Comments need an existing task."""
        with pytest.raises(HTTPException) as exc:
            projects_service.project_task_comments.create(
                db_session, ProjectTaskCommentCreate(task_id=uuid.uuid4(), body="hello")
            )
        assert exc.value.status_code == 404
