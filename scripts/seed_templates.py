import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from app.db import SessionLocal
from app.models.projects import MeetingType
from app.schemas.projects import MilestoneCreate, ProjectTemplateCreate, ProjectTemplateTaskCreate
from app.services import project_templates as templates_service
from app.services import projects as projects_service
from app.services.project_instantiator import SEALED_PACKET_TASK_TITLE

CHECKPOINT_TITLE = "Nominations and Deliverables Checkpoints"

# (milestone, title, days_from_anchor, roles, children)
DEMO_TASKS = [
    ("Preparation", "Schedule meeting with client", -21, ["admin_assistant"], []),
    ("Preparation", "Collect financial statements", -14, ["financial_planner"], ["Request brokerage statements"]),
    (
        "Preliminary Packet",
        "Draft preliminary packet",
        -10,
        ["estate_attorney"],
        ["Draft trust summary", "Draft beneficiary schedule"],
    ),
    ("Preliminary Packet", CHECKPOINT_TITLE, -7, ["estate_attorney"], ["Confirm nominations", "Confirm deliverables"]),
    ("Meeting", "Hold meeting", 0, ["estate_attorney"], []),
    ("Follow-up", "Send meeting recap", 2, ["admin_assistant"], []),
]


def parse_args():
    parser = argparse.ArgumentParser(description="Seed a demo estate-planning project template.")
    parser.add_argument("--name", default="Financial Review Meeting")
    parser.add_argument("--meeting-type", default=MeetingType.frm.value, choices=[m.value for m in MeetingType])
    return parser.parse_args()


def main():
    load_dotenv()
    args = parse_args()
    db = SessionLocal()
    try:
        template = templates_service.project_templates.create(
            db,
            ProjectTemplateCreate(
                name=args.name,
                description="Demo template created by seed script.",
                meeting_type=MeetingType(args.meeting_type),
            ),
        )
        milestones = {}
        for position, title in enumerate(dict.fromkeys(row[0] for row in DEMO_TASKS), start=1):
            milestones[title] = projects_service.milestones.create(
                db, MilestoneCreate(template_id=template.id, title=title, sort_order=position)
            )

        created = {}
        sort_order = 0
        for milestone_title, title, days, roles, children in DEMO_TASKS:
            sort_order += 1
            parent = templates_service.project_template_tasks.create(
                db,
                ProjectTemplateTaskCreate(
                    template_id=template.id,
                    milestone_id=milestones[milestone_title].id,
                    title=title,
                    days_from_anchor=days,
                    assigned_roles=roles,
                    sort_order=sort_order,
                ),
            )
            created[title] = parent
            for child_position, child_title in enumerate(children, start=1):
                templates_service.project_template_tasks.create(
                    db,
                    ProjectTemplateTaskCreate(
                        template_id=template.id,
                        milestone_id=milestones[milestone_title].id,
                        parent_task_id=parent.id,
                        title=child_title,
                        days_from_anchor=days,
                        sort_order=child_position,
                        level=1,
                    ),
                )

        templates_service.project_template_tasks.create(
            db,
            ProjectTemplateTaskCreate(
                template_id=template.id,
                milestone_id=milestones["Preliminary Packet"].id,
                depends_on_template_task_id=created["Draft preliminary packet"].id,
                title=SEALED_PACKET_TASK_TITLE,
                assigned_roles=["admin_assistant"],
                sort_order=sort_order + 1,
            ),
        )
        count = templates_service.project_templates.task_count(db, str(template.id))
        print(f"Created template {template.id} with {count} tasks")
    finally:
        db.close()


if __name__ == "__main__":
    main()
