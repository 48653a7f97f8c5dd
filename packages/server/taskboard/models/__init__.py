# SQLModel definitions: imported here to ensure metadata is populated for create_all.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .organization import Organization  # noqa: F401
from .user import User  # noqa: F401
from .org_member import OrgMember  # noqa: F401
from .org_invite import OrgInvite  # noqa: F401
from .project import Project  # noqa: F401
from .task import Task  # noqa: F401
from .task_reply import TaskReply  # noqa: F401
from .daily_log import Approval, CompletionRecord, DailyItem, DailyLog  # noqa: F401
