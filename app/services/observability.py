"""Prometheus metrics for project instantiation and due-date cascades."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

PROJECT_INSTANTIATIONS = Counter(
    "project_instantiations_total",
    "Projects created from a template",
    ["status"],  # status: created, failed
)

TEMPLATE_TASKS_SKIPPED = Counter(
    "project_template_tasks_skipped_total",
    "Template tasks not copied into a project",
    ["reason"],  # reason: empty_title, parent_missing, parent_unresolved
)

CASCADE_TASK_UPDATES = Counter(
    "due_date_cascade_task_updates_total",
    "Task due-date updates issued by the due-date cascade",
    ["outcome"],  # outcome: updated, failed
)

CASCADE_DURATION = Histogram(
    "due_date_cascade_seconds",
    "Time to recompute and persist a project's task due dates",
)
