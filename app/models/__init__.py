from app.models.activity import ActivityLog  # noqa: F401
from app.models.contacts import Contact, ContactStatus, ContactType  # noqa: F401
from app.models.interactions import (  # noqa: F401
    CallTranscript,
    EmailDirection,
    EmailInteraction,
)
from app.models.notification import Notification, NotificationKind  # noqa: F401
from app.models.projects import (  # noqa: F401
    MeetingType,
    Milestone,
    MilestoneStatus,
    Project,
    ProjectComment,
    ProjectStatus,
    ProjectTask,
    ProjectTaskAssignee,
    ProjectTaskComment,
    ProjectTemplate,
    ProjectTemplateTask,
    TaskStatus,
)
