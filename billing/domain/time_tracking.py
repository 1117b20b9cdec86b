"""Task hours and billable line items derived from time entries."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import replace
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .calculator import line_amount, round_currency
from .entities import ZERO, LineItem, Project, Task, TimeEntry, as_decimal, new_id

MINUTES_PER_HOUR = Decimal("60")


def entry_duration(entry: TimeEntry) -> int:
    """Minutes recorded by ``entry``; derived from start/end when not set."""
    if entry.duration:
        return int(entry.duration)
    if entry.end_time is None or entry.start_time is None:
        return 0
    seconds = (entry.end_time - entry.start_time).total_seconds()
    return max(int(seconds // 60), 0)


def with_duration(entry: TimeEntry) -> TimeEntry:
    if entry.end_time is not None and entry.end_time < entry.start_time:
        raise ValueError("Time entry cannot end before it starts")
    return replace(entry, duration=entry_duration(entry))


def minutes_to_hours(minutes: int) -> Decimal:
    return round_currency(Decimal(minutes) / MINUTES_PER_HOUR)


def task_hours(task: Task, entries: Iterable[TimeEntry]) -> Task:
    own = [e for e in entries if e.task_id == task.id]
    total = sum(entry_duration(e) for e in own)
    billable = sum(entry_duration(e) for e in own if e.is_billable)
    return replace(
        task,
        actual_hours=minutes_to_hours(total),
        billable_hours=minutes_to_hours(billable) if task.is_billable else ZERO,
    )


def effective_rate(
    entry: TimeEntry,
    project: Optional[Project],
    default_rate: Decimal,
) -> Decimal:
    if entry.hourly_rate is not None:
        return as_decimal(entry.hourly_rate)
    if project is not None and project.hourly_rate is not None:
        return as_decimal(project.hourly_rate)
    return as_decimal(default_rate)


def billable_line_items(
    tasks: Sequence[Task],
    entries: Iterable[TimeEntry],
    projects: Iterable[Project],
    default_rate: Decimal = ZERO,
) -> List[LineItem]:
    """
    One line item per task and hourly rate.

    Only billable entries of billable tasks count. Entries of one task billed
    at different rates produce one line per rate.
    """
    projects_by_id: Dict[str, Project] = {p.id: p for p in projects}
    tasks_by_id: Dict[str, Task] = {t.id: t for t in tasks if t.is_billable}

    minutes: "OrderedDict[Tuple[str, Decimal], int]" = OrderedDict()
    for entry in entries:
        task = tasks_by_id.get(entry.task_id)
        if task is None or not entry.is_billable:
            continue
        rate = effective_rate(entry, projects_by_id.get(task.project_id), default_rate)
        key = (task.id, rate)
        minutes[key] = minutes.get(key, 0) + entry_duration(entry)

    items = []
    for (task_id, rate), total_minutes in minutes.items():
        if total_minutes <= 0:
            continue
        hours = minutes_to_hours(total_minutes)
        items.append(LineItem(
            id=new_id(),
            description=tasks_by_id[task_id].title,
            quantity=hours,
            rate=rate,
            amount=line_amount(hours, rate),
        ))
    return items
