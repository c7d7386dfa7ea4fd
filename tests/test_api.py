"""HTTP-level tests for the routers."""

import uuid

from app.container import container
from app.services.due_date_cascade import DueDateCascade
from app.services.search import SearchService
from tests.factories import add_template_milestone, add_template_task, make_team_member


def _create_template_project(client, template, due_date="2025-06-01"):
    response = client.post(
        "/api/v1/projects",
        json={"name": "Smith FRM", "project_type": "frm", "due_date": due_date},
    )
    assert response.status_code == 201
    return response.json()


class TestHealth:
    """Tests for health and metrics endpoints."""

    def test_health(self, client):
        """The health endpoint answers without a database."""
        assert client.get("/health").json() == {"status": "ok"}

    def test_metrics(self, client):
        """Prometheus metrics are exposed."""
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]


class TestContactsApi:
    """Tests for the contacts router."""

    def test_create_get_and_list(self, client):
        """Contacts round-trip through the API under both prefixes."""
        created = client.post(
            "/contacts",
            json={"first_name": "Alice", "last_name": "Smith", "email": "ALICE@example.com"},
        )
        assert created.status_code == 201
        contact = created.json()
        assert contact["email"] == "alice@example.com"

        fetched = client.get(f"/api/v1/contacts/{contact['id']}")
        assert fetched.status_code == 200
        listed = client.get("/contacts", params={"q": "smith"}).json()
        assert listed["count"] == 1
        assert listed["items"][0]["id"] == contact["id"]

    def test_unknown_contact_404(self, client):
        """Unknown ids return a JSON 404."""
        response = client.get(f"/contacts/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json() == {"detail": "Contact not found"}

    def test_log_email_interaction(self, client, client_contact):
        """Emails are logged against the contact in the path."""
        response = client.post(
            f"/contacts/{client_contact.id}/email-interactions",
            json={"subject": "Trust documents", "direction": "outbound"},
        )
        assert response.status_code == 201
        assert response.json()["contact_id"] == str(client_contact.id)
        listed = client.get(f"/contacts/{client_contact.id}/email-interactions").json()
        assert listed["count"] == 1


class TestProjectsApi:
    """Tests for the projects router."""

    def test_create_from_matching_template(self, client, db_session, template, attorney):
        """Creating a project with a meeting type and date applies the template."""
        milestone = add_template_milestone(db_session, template, "Preparation", sort_order=1)
        parent = add_template_task(
            db_session,
            template,
            "Draft packet",
            milestone_id=milestone.id,
            days_from_anchor=-10,
            assigned_roles=["estate_attorney"],
        )
        add_template_task(
            db_session,
            template,
            "Draft summary",
            milestone_id=milestone.id,
            parent_task_id=parent.id,
            days_from_anchor=-12,
        )

        body = _create_template_project(client, template)

        assert body["message"] == "Created project with 2 tasks from Financial Review Meeting template"
        assert body["project"]["template_id"] == str(template.id)
        assert [m["title"] for m in body["milestones"]] == ["Preparation"]
        tasks = {task["title"]: task for task in body["tasks"]}
        assert tasks["Draft packet"]["due_date"] == "2025-05-22"
        assert tasks["Draft packet"]["assigned_contact_ids"] == [str(attorney.id)]

        tree = client.get(f"/projects/{body['project']['id']}/task-hierarchy").json()
        assert len(tree) == 1
        assert tree[0]["milestone"]["title"] == "Preparation"
        assert [node["title"] for node in tree[0]["tasks"]] == ["Draft packet"]
        assert [child["title"] for child in tree[0]["tasks"][0]["children"]] == ["Draft summary"]

    def test_create_without_template(self, client):
        """Projects without a matching template are created plainly."""
        response = client.post("/projects", json={"name": "Ad hoc"})
        assert response.status_code == 201
        assert response.json()["message"] == "Created project"
        assert response.json()["tasks"] == []

    def test_unknown_meeting_type_creates_plain_project(self, client, db_session, template):
        """An unrecognized meeting type falls back to a plain project."""
        add_template_task(db_session, template, "Hold meeting", days_from_anchor=0)
        response = client.post(
            "/projects",
            json={"name": "Annual review", "project_type": "annual_review", "due_date": "2025-06-01"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Created project"
        assert body["project"]["project_type"] is None
        assert body["project"]["template_id"] is None
        assert body["tasks"] == []

    def test_meeting_type_case_insensitive(self, client, db_session, template):
        """Meeting types are matched regardless of case."""
        add_template_task(db_session, template, "Hold meeting", days_from_anchor=0)
        response = client.post(
            "/projects",
            json={"name": "Smith FRM", "project_type": "FRM", "due_date": "2025-06-01"},
        )
        assert response.status_code == 201
        assert response.json()["project"]["template_id"] == str(template.id)

    def test_update_due_date_cascades(self, client, db_session, session_factory, template):
        """Moving the project date reschedules anchored tasks."""
        add_template_task(db_session, template, "Draft packet", days_from_anchor=-10)
        body = _create_template_project(client, template)
        project_id = body["project"]["id"]

        with container.due_date_cascade.override(DueDateCascade(session_factory, max_workers=1)):
            response = client.put(f"/projects/{project_id}/update-due-date", json={"due_date": "2025-07-01"})

        assert response.status_code == 200
        result = response.json()
        assert result["updated"] == 1
        assert result["message"] == "Updated project due date and 1 of 1 task dates"
        tasks = client.get(f"/projects/{project_id}/tasks").json()
        assert tasks[0]["due_date"] == "2025-06-21"

    def test_resolve_roles(self, client, db_session, template):
        """Pending role-tags are filled after the role is staffed."""
        add_template_task(db_session, template, "Review will", assigned_roles=["trust_officer"], days_from_anchor=0)
        body = _create_template_project(client, template)
        project_id = body["project"]["id"]
        assert body["tasks"][0]["assigned_roles"] == ["trust_officer"]

        make_team_member(db_session, "Tom", "Officer", "trust_officer")
        result = client.post(f"/projects/{project_id}/resolve-roles").json()
        assert result["tasks_updated"] == 1
        assert result["pending_roles"] == []

    def test_task_comment_with_mention(self, client, project_task, attorney):
        """Comment mentions notify the mentioned team member."""
        response = client.post(
            f"/project-tasks/{project_task.id}/comments",
            json={"body": "@jane.doe can you check this?"},
        )
        assert response.status_code == 201
        assert response.json()["mentioned_contact_ids"] == [str(attorney.id)]

        count = client.get("/notifications/unread-count", params={"recipient_contact_id": str(attorney.id)}).json()
        assert count["unread"] == 1

    def test_unknown_project_404(self, client):
        """Unknown projects return 404."""
        assert client.get(f"/projects/{uuid.uuid4()}").status_code == 404


class TestTemplatesApi:
    """Tests for the template router."""

    def test_copy_and_task_count(self, client, db_session, template):
        """Copies get the default name and the same number of tasks."""
        add_template_task(db_session, template, "One")
        add_template_task(db_session, template, "Two")

        copied = client.post(f"/project-templates/{template.id}/copy")
        assert copied.status_code == 201
        assert copied.json()["name"] == "Financial Review Meeting (Copy)"

        count = client.get(f"/project-templates/{copied.json()['id']}/task-count").json()
        assert count["task_count"] == 2

    def test_reorder_milestones(self, client, db_session, template):
        """Milestones can be reordered in one call."""
        first = add_template_milestone(db_session, template, "First", sort_order=1)
        second = add_template_milestone(db_session, template, "Second", sort_order=2)
        response = client.post(
            "/milestones/reorder", json={"milestone_ids": [str(second.id), str(first.id)]}
        )
        assert response.status_code == 200
        assert [m["title"] for m in response.json()] == ["Second", "First"]
        listed = client.get(f"/project-templates/{template.id}/milestones").json()
        assert [m["title"] for m in listed] == ["Second", "First"]


class TestSearchApi:
    """Tests for the search router."""

    def test_search_with_enhancer(self, client, db_session):
        """Search uses the container's service and its enhancer."""
        make_team_member(db_session, "Tom", "Officer", "trust_officer")
        service = SearchService(enhancer=lambda query: ["officer"])
        with container.search_service.override(service):
            response = client.get("/search", params={"q": "trust"})
        assert response.status_code == 200
        body = response.json()
        assert body["terms"] == ["trust", "officer"]
        assert [r["title"] for r in body["results"]] == ["Tom Officer"]

    def test_blank_query_rejected(self, client):
        """An empty query is a validation error."""
        assert client.get("/search", params={"q": ""}).status_code == 422


class TestDashboardApi:
    """Tests for the dashboard router."""

    def test_stats_and_activity(self, client, client_contact, project):
        """Stats are returned and creations show up in the activity feed."""
        stats = client.get("/dashboard/stats").json()
        assert stats["total_clients"] == 1
        activity = client.get("/dashboard/activity", params={"entity_type": "project"}).json()
        assert [entry["action"] for entry in activity["items"]] == ["created_project"]
