"""
Task due-date classification.

Every function here is a pure function of its arguments. Callers capture
``now`` once per computation and pass the same instant to every call so a
whole dashboard is evaluated against a single moment.

Buckets (mutually exclusive):
- overdue:       not done, expected_finish < now
- due_today:     not done, expected_finish within today's local day
                 (end of day inclusive, so expected_finish == now is today)
- due_this_week: not done, after end of today and on/before now + 7 days
- none:          done, no expected_finish, or further out

``in_progress`` is a separate axis: an in-progress task can also be overdue.
"""

from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Protocol, Sequence, TypeVar

from taskboard_shared.schemas.common import DueBucket, TaskStatus

DEFAULT_HORIZON_DAYS = 7
DEFAULT_LIST_LIMIT = 8


class TaskLike(Protocol):
    status: str
    expected_finish_at: Optional[datetime]
    completed_at: Optional[datetime]
    assignee_user_id: Optional[uuid.UUID]


T = TypeVar("T", bound=TaskLike)


@dataclass(frozen=True)
class TaskClassification:
    due: DueBucket
    in_progress: bool


@dataclass
class TaskSummary:
    total: int = 0
    open: int = 0
    in_progress: int = 0
    completed: int = 0
    completed_today: int = 0
    overdue: int = 0
    due_today: int = 0
    due_this_week: int = 0


@dataclass
class WorkloadRow:
    user_id: uuid.UUID
    open: int = 0
    overdue: int = 0
    in_progress: int = 0


@dataclass
class ActionLists:
    overdue: list = field(default_factory=list)
    due_today: list = field(default_factory=list)
    due_this_week: list = field(default_factory=list)
    in_progress: list = field(default_factory=list)


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------

def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops tzinfo on the way back)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def local_date(instant: datetime, tz: tzinfo) -> date:
    return as_utc(instant).astimezone(tz).date()


def local_day_bounds(now: datetime, tz: tzinfo) -> tuple[datetime, datetime]:
    """First and last instant of the local calendar day containing ``now``."""
    day = local_date(now, tz)
    return datetime.combine(day, time.min, tzinfo=tz), datetime.combine(day, time.max, tzinfo=tz)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def classify_due(
    task: TaskLike,
    now: datetime,
    tz: tzinfo = timezone.utc,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> DueBucket:
    if TaskStatus(task.status) == TaskStatus.DONE or task.expected_finish_at is None:
        return DueBucket.NONE

    now = as_utc(now)
    expected = as_utc(task.expected_finish_at)

    if expected < now:
        return DueBucket.OVERDUE

    _, end_of_today = local_day_bounds(now, tz)
    if expected <= end_of_today:
        return DueBucket.DUE_TODAY
    if expected <= now + timedelta(days=horizon_days):
        return DueBucket.DUE_THIS_WEEK
    return DueBucket.NONE


def classify_task(
    task: TaskLike,
    now: datetime,
    tz: tzinfo = timezone.utc,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> TaskClassification:
    return TaskClassification(
        due=classify_due(task, now, tz, horizon_days),
        in_progress=TaskStatus(task.status) == TaskStatus.IN_PROGRESS,
    )


def completed_on(task: TaskLike, day: date, tz: tzinfo) -> bool:
    if TaskStatus(task.status) != TaskStatus.DONE or task.completed_at is None:
        return False
    return local_date(task.completed_at, tz) == day


# ---------------------------------------------------------------------------
# Ordering and bounded lists
# ---------------------------------------------------------------------------

def _expected_finish_key(task: TaskLike) -> tuple[int, datetime]:
    if task.expected_finish_at is None:
        return (1, datetime.min.replace(tzinfo=timezone.utc))
    return (0, as_utc(task.expected_finish_at))


def sort_by_expected_finish(tasks: Iterable[T]) -> list[T]:
    """Ascending by expected finish; tasks without one go last."""
    return sorted(tasks, key=_expected_finish_key)


def top_n(
    tasks: Iterable[T],
    bucket: DueBucket,
    now: datetime,
    tz: tzinfo = timezone.utc,
    limit: int = DEFAULT_LIST_LIMIT,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> list[T]:
    matching = [t for t in tasks if classify_due(t, now, tz, horizon_days) == bucket]
    return sort_by_expected_finish(matching)[:limit]


def action_lists(
    tasks: Sequence[T],
    now: datetime,
    tz: tzinfo = timezone.utc,
    limit: int = DEFAULT_LIST_LIMIT,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> ActionLists:
    ordered = sort_by_expected_finish(tasks)
    lists = ActionLists()
    for task in ordered:
        bucket = classify_due(task, now, tz, horizon_days)
        target = {
            DueBucket.OVERDUE: lists.overdue,
            DueBucket.DUE_TODAY: lists.due_today,
            DueBucket.DUE_THIS_WEEK: lists.due_this_week,
        }.get(bucket)
        if target is not None and len(target) < limit:
            target.append(task)
        if TaskStatus(task.status) == TaskStatus.IN_PROGRESS and len(lists.in_progress) < limit:
            lists.in_progress.append(task)
    return lists


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

def summarize(
    tasks: Iterable[TaskLike],
    now: datetime,
    tz: tzinfo = timezone.utc,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> TaskSummary:
    today = local_date(now, tz)
    summary = TaskSummary()
    buckets: Counter[DueBucket] = Counter()

    for task in tasks:
        status = TaskStatus(task.status)
        summary.total += 1
        if status == TaskStatus.DONE:
            summary.completed += 1
            if completed_on(task, today, tz):
                summary.completed_today += 1
        else:
            summary.open += 1
        if status == TaskStatus.IN_PROGRESS:
            summary.in_progress += 1
        buckets[classify_due(task, now, tz, horizon_days)] += 1

    summary.overdue = buckets[DueBucket.OVERDUE]
    summary.due_today = buckets[DueBucket.DUE_TODAY]
    summary.due_this_week = buckets[DueBucket.DUE_THIS_WEEK]
    return summary


def workload(
    tasks: Iterable[TaskLike],
    now: datetime,
    tz: tzinfo = timezone.utc,
    limit: Optional[int] = None,
) -> list[WorkloadRow]:
    """Per-assignee open/overdue/in-progress counts, busiest first."""
    rows: dict[uuid.UUID, WorkloadRow] = {}
    for task in tasks:
        if task.assignee_user_id is None:
            continue
        row = rows.setdefault(task.assignee_user_id, WorkloadRow(user_id=task.assignee_user_id))
        status = TaskStatus(task.status)
        if status != TaskStatus.DONE:
            row.open += 1
        if status == TaskStatus.IN_PROGRESS:
            row.in_progress += 1
        if classify_due(task, now, tz) == DueBucket.OVERDUE:
            row.overdue += 1

    ranked = sorted(rows.values(), key=lambda r: (-r.overdue, -r.in_progress, -r.open))
    return ranked if limit is None else ranked[:limit]
