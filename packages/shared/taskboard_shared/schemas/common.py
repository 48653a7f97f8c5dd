from enum import Enum

class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"

# Lowest to highest privilege; index is the rank
ROLE_PRIVILEGE_ORDER: list["Role"] = [
    Role.MEMBER,
    Role.MANAGER,
    Role.ADMIN,
]

SUPERVISOR_ROLES = frozenset({Role.ADMIN, Role.MANAGER})

class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

class DueBucket(str, Enum):
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    DUE_THIS_WEEK = "due_this_week"
    NONE = "none"

class ProjectStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"

class DailyLogStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class DailyItemStatus(str, Enum):
    TODO = "todo"
    DONE = "done"

class DailyItemPriority(str, Enum):
    P1 = "p1"
    P2 = "p2"
    P3 = "p3"
    P4 = "p4"

class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class TaskScope(str, Enum):
    ALL = "all"
    ME = "me"
