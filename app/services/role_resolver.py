"""Role label -> team-member contact resolution.

Template tasks name the team function that should own them (for example
``estate_attorney``) rather than a person. At instantiation time each label
is matched against active team-member contacts; labels nobody currently
fills are kept on the task as pending role-tags for manual assignment.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from app.models.contacts import Contact, ContactStatus, ContactType
from app.models.projects import ProjectTask, ProjectTaskAssignee
from app.services.common import coerce_uuid

logger = logging.getLogger(__name__)

# Seed-data placeholders that carry a role but are not real people.
PLACEHOLDER_NAMES: frozenset[tuple[str, str]] = frozenset(
    {
        ("Admin", "Assistant"),
        ("Financial", "Planner"),
        ("Insurance", "Business"),
        ("Insurance", "Health"),
    }
)


@dataclass(frozen=True)
class RoleResolution:
    contact_ids: list[UUID] | None
    unassigned_roles: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProjectRoleSummary:
    project_id: UUID
    tasks_checked: int
    tasks_updated: int
    pending_roles: list[str]


def normalize_roles(roles: str | Iterable[str] | None) -> list[str]:
    """Accept a single label or a list; drop blanks and duplicates, keep order."""
    if not roles:
        return []
    if isinstance(roles, str):
        roles = [roles]
    seen: set[str] = set()
    normalized: list[str] = []
    for role in roles:
        if not isinstance(role, str) or not role.strip():
            continue
        if role in seen:
            continue
        seen.add(role)
        normalized.append(role)
    return normalized


def _is_placeholder(contact: Contact) -> bool:
    return (contact.first_name, contact.last_name) in PLACEHOLDER_NAMES


class RoleResolver:
    def candidates(self, db: Session, roles: list[str]) -> list[Contact]:
        contacts = (
            db.query(Contact)
            .filter(Contact.contact_type == ContactType.team_member)
            .filter(Contact.status == ContactStatus.active)
            .filter(Contact.role.in_(roles))
            .order_by(Contact.created_at.asc(), Contact.id.asc())
            .all()
        )
        return [contact for contact in contacts if not _is_placeholder(contact)]

    def resolve(self, db: Session, roles: str | Iterable[str] | None) -> RoleResolution:
        labels = normalize_roles(roles)
        if not labels:
            return RoleResolution(contact_ids=None, unassigned_roles=[])

        by_role: dict[str, list[UUID]] = {}
        for contact in self.candidates(db, labels):
            by_role.setdefault(contact.role, []).append(contact.id)

        contact_ids: list[UUID] = []
        unassigned: list[str] = []
        for label in labels:
            matches = by_role.get(label)
            if not matches:
                unassigned.append(label)
                logger.info("role_unassigned role=%s", label)
                continue
            for contact_id in matches:
                if contact_id not in contact_ids:
                    contact_ids.append(contact_id)

        logger.debug(
            "roles_resolved roles=%s contact_ids=%s unassigned=%s",
            labels,
            [str(contact_id) for contact_id in contact_ids],
            unassigned,
        )
        return RoleResolution(contact_ids=contact_ids or None, unassigned_roles=unassigned)

    def resolve_project(self, db: Session, project_id) -> ProjectRoleSummary:
        """Re-resolve pending role-tags on every task of a project.

        Newly matched contacts are added to the task's assignees and their
        labels removed; labels still without a match stay pending. Running
        this again against an unchanged contact set changes nothing.
        """
        project_uuid = coerce_uuid(project_id)
        tasks = (
            db.query(ProjectTask)
            .options(selectinload(ProjectTask.assignees))
            .filter(ProjectTask.project_id == project_uuid)
            .filter(ProjectTask.is_active.is_(True))
            .all()
        )
        checked = 0
        updated = 0
        pending: list[str] = []
        for task in tasks:
            if not task.assigned_roles:
                continue
            checked += 1
            resolution = self.resolve(db, task.assigned_roles)
            current = {assignee.contact_id for assignee in task.assignees}
            added = [cid for cid in resolution.contact_ids or [] if cid not in current]
            for contact_id in added:
                task.assignees.append(ProjectTaskAssignee(task_id=task.id, contact_id=contact_id))
            remaining = resolution.unassigned_roles or None
            if added or remaining != task.assigned_roles:
                task.assigned_roles = remaining
                updated += 1
            for label in resolution.unassigned_roles:
                if label not in pending:
                    pending.append(label)
        if updated:
            db.commit()
        logger.info(
            "project_roles_resolved project_id=%s checked=%s updated=%s pending=%s",
            project_uuid,
            checked,
            updated,
            len(pending),
        )
        return ProjectRoleSummary(
            project_id=project_uuid,
            tasks_checked=checked,
            tasks_updated=updated,
            pending_roles=pending,
        )
