"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


contact_type = postgresql.ENUM("client", "prospect", "team_member", "strategic_partner", name="contacttype", create_type=False)
contact_status = postgresql.ENUM("active", "inactive", "follow_up", "converted", name="contactstatus", create_type=False)
email_direction = postgresql.ENUM("inbound", "outbound", name="emaildirection", create_type=False)
meeting_type = postgresql.ENUM("frm", "im", "ipu", "csr", "gpo", "tar", name="meetingtype", create_type=False)
project_status = postgresql.ENUM("planning", "active", "on_hold", "completed", "cancelled", name="projectstatus", create_type=False)
task_status = postgresql.ENUM("todo", "in_progress", "completed", "cancelled", name="taskstatus", create_type=False)
milestone_status = postgresql.ENUM("pending", "in_progress", "completed", name="milestonestatus", create_type=False)
notification_kind = postgresql.ENUM("mention", "due_reminder", "assignment", name="notificationkind", create_type=False)

ENUM_TYPES = (
    contact_type,
    contact_status,
    email_direction,
    meeting_type,
    project_status,
    task_status,
    milestone_status,
    notification_kind,
)


def _uuid(name: str, *args, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), *args, **kwargs)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUM_TYPES:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "contacts",
        _uuid("id", primary_key=True),
        sa.Column("first_name", sa.String(80), nullable=False),
        sa.Column("last_name", sa.String(80), nullable=False),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(40)),
        sa.Column("company", sa.String(160)),
        sa.Column("position", sa.String(120)),
        sa.Column("contact_type", contact_type, nullable=False, server_default="client"),
        sa.Column("status", contact_status, nullable=False, server_default="active"),
        sa.Column("role", sa.String(80)),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_contacts_email", "contacts", ["email"])
    op.create_index("ix_contacts_role", "contacts", ["role"])

    op.create_table(
        "email_interactions",
        _uuid("id", primary_key=True),
        _uuid("contact_id", sa.ForeignKey("contacts.id"), nullable=False),
        sa.Column("direction", email_direction, nullable=False, server_default="inbound"),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("body", sa.Text()),
        sa.Column("sender", sa.String(255)),
        sa.Column("recipients", sa.JSON()),
        sa.Column("sent_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_email_interactions_contact_id", "email_interactions", ["contact_id"])

    op.create_table(
        "call_transcripts",
        _uuid("id", primary_key=True),
        _uuid("contact_id", sa.ForeignKey("contacts.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("transcript", sa.Text()),
        sa.Column("summary", sa.Text()),
        sa.Column("duration_seconds", sa.Integer()),
        sa.Column("call_date", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_call_transcripts_contact_id", "call_transcripts", ["contact_id"])

    op.create_table(
        "project_templates",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("meeting_type", meeting_type),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "projects",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("description", sa.Text()),
        _uuid("client_id", sa.ForeignKey("contacts.id")),
        sa.Column("project_type", meeting_type),
        _uuid("template_id", sa.ForeignKey("project_templates.id")),
        sa.Column("status", project_status, nullable=False, server_default="planning"),
        sa.Column("start_date", sa.Date()),
        sa.Column("end_date", sa.Date()),
        sa.Column("due_date", sa.Date()),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_projects_client_id", "projects", ["client_id"])

    op.create_table(
        "milestones",
        _uuid("id", primary_key=True),
        _uuid("template_id", sa.ForeignKey("project_templates.id")),
        _uuid("project_id", sa.ForeignKey("projects.id")),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("status", milestone_status, nullable=False, server_default="pending"),
        sa.Column("due_date", sa.Date()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("(template_id IS NULL) <> (project_id IS NULL)", name="ck_milestones_single_owner"),
    )
    op.create_index("ix_milestones_template_id", "milestones", ["template_id"])
    op.create_index("ix_milestones_project_id", "milestones", ["project_id"])

    op.create_table(
        "project_template_tasks",
        _uuid("id", primary_key=True),
        _uuid("template_id", sa.ForeignKey("project_templates.id"), nullable=False),
        _uuid("milestone_id", sa.ForeignKey("milestones.id", ondelete="SET NULL")),
        _uuid("parent_task_id", sa.ForeignKey("project_template_tasks.id")),
        _uuid("depends_on_template_task_id", sa.ForeignKey("project_template_tasks.id")),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="25"),
        sa.Column("days_from_anchor", sa.Integer()),
        sa.Column("due_date", sa.Date()),
        sa.Column("assigned_roles", sa.JSON()),
        sa.Column("assigned_contact_ids", sa.JSON()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("priority BETWEEN 1 AND 50", name="ck_project_template_tasks_priority"),
        sa.CheckConstraint(
            "depends_on_template_task_id IS NULL OR depends_on_template_task_id <> id",
            name="ck_project_template_tasks_no_self_dependency",
        ),
    )
    op.create_index("ix_project_template_tasks_template_id", "project_template_tasks", ["template_id"])

    op.create_table(
        "project_tasks",
        _uuid("id", primary_key=True),
        _uuid("project_id", sa.ForeignKey("projects.id"), nullable=False),
        _uuid("milestone_id", sa.ForeignKey("milestones.id", ondelete="SET NULL")),
        _uuid("parent_task_id", sa.ForeignKey("project_tasks.id")),
        _uuid("depends_on_task_id", sa.ForeignKey("project_tasks.id")),
        sa.Column("dependency_lag_days", sa.Integer()),
        _uuid("template_task_id", sa.ForeignKey("project_template_tasks.id")),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("status", task_status, nullable=False, server_default="todo"),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="25"),
        sa.Column("due_date", sa.Date()),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("assigned_roles", sa.JSON()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("days_from_anchor", sa.Integer()),
        sa.Column("anchor_offset_days", sa.Integer()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("priority BETWEEN 1 AND 50", name="ck_project_tasks_priority"),
        sa.CheckConstraint(
            "depends_on_task_id IS NULL OR depends_on_task_id <> id",
            name="ck_project_tasks_no_self_dependency",
        ),
    )
    op.create_index("ix_project_tasks_project_id", "project_tasks", ["project_id"])
    op.create_index("ix_project_tasks_due_date", "project_tasks", ["due_date"])

    op.create_table(
        "project_task_assignees",
        _uuid("task_id", sa.ForeignKey("project_tasks.id", ondelete="CASCADE"), primary_key=True),
        _uuid("contact_id", sa.ForeignKey("contacts.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_project_task_assignees_contact_id", "project_task_assignees", ["contact_id"])

    op.create_table(
        "project_task_comments",
        _uuid("id", primary_key=True),
        _uuid("task_id", sa.ForeignKey("project_tasks.id"), nullable=False),
        _uuid("author_contact_id", sa.ForeignKey("contacts.id")),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("mentioned_contact_ids", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    op.create_table(
        "project_comments",
        _uuid("id", primary_key=True),
        _uuid("project_id", sa.ForeignKey("projects.id"), nullable=False),
        _uuid("author_contact_id", sa.ForeignKey("contacts.id")),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("mentioned_contact_ids", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    op.create_table(
        "notifications",
        _uuid("id", primary_key=True),
        _uuid("recipient_contact_id", sa.ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", notification_kind, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("body", sa.Text()),
        sa.Column("entity_type", sa.String(40)),
        _uuid("entity_id"),
        sa.Column("reminder_date", sa.Date()),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_notifications_recipient_unread", "notifications", ["recipient_contact_id", "is_read"])

    op.create_table(
        "activity_log",
        _uuid("id", primary_key=True),
        sa.Column("action", sa.String(60), nullable=False),
        sa.Column("entity_type", sa.String(40), nullable=False),
        _uuid("entity_id"),
        sa.Column("description", sa.Text()),
        sa.Column("metadata", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_activity_log_entity_id", "activity_log", ["entity_id"])
    op.create_index("ix_activity_log_created_at", "activity_log", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_activity_log_created_at", table_name="activity_log")
    op.drop_index("ix_activity_log_entity_id", table_name="activity_log")
    op.drop_table("activity_log")
    op.drop_index("ix_notifications_recipient_unread", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("project_comments")
    op.drop_table("project_task_comments")
    op.drop_index("ix_project_task_assignees_contact_id", table_name="project_task_assignees")
    op.drop_table("project_task_assignees")
    op.drop_index("ix_project_tasks_due_date", table_name="project_tasks")
    op.drop_index("ix_project_tasks_project_id", table_name="project_tasks")
    op.drop_table("project_tasks")
    op.drop_index("ix_project_template_tasks_template_id", table_name="project_template_tasks")
    op.drop_table("project_template_tasks")
    op.drop_index("ix_milestones_project_id", table_name="milestones")
    op.drop_index("ix_milestones_template_id", table_name="milestones")
    op.drop_table("milestones")
    op.drop_index("ix_projects_client_id", table_name="projects")
    op.drop_table("projects")
    op.drop_table("project_templates")
    op.drop_index("ix_call_transcripts_contact_id", table_name="call_transcripts")
    op.drop_table("call_transcripts")
    op.drop_index("ix_email_interactions_contact_id", table_name="email_interactions")
    op.drop_table("email_interactions")
    op.drop_index("ix_contacts_role", table_name="contacts")
    op.drop_index("ix_contacts_email", table_name="contacts")
    op.drop_table("contacts")

    bind = op.get_bind()
    for enum_type in reversed(ENUM_TYPES):
        enum_type.drop(bind, checkfirst=True)
