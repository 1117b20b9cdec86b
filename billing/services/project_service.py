"""Projects, their tasks and the time logged against them."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from billing.domain.entities import (
    ActivityType,
    EntityType,
    Project,
    ProjectStatus,
    Task,
    TaskPriority,
    TaskStatus,
    TimeEntry,
    as_decimal,
    new_id,
)
from billing.domain.time_tracking import task_hours, with_duration
from billing.validation.errors import NotFoundError, ValidationError

from .base import BillingService

logger = logging.getLogger(__name__)

PROJECT_FIELDS = ("name", "description", "start_date", "end_date", "is_active")
TASK_FIELDS = ("title", "description", "assigned_to", "due_date", "is_billable", "tags")
TIME_ENTRY_FIELDS = ("description", "start_time", "end_time", "is_billable")


def _optional_decimal(value):
    return as_decimal(value) if value not in (None, "") else None


class ProjectService(BillingService):

    # Projects

    def get_project(self, project_id: str) -> Project:
        project = self.store.get_project(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    def list_projects(self, client_id: Optional[str] = None, status: Optional[str] = None) -> List[Project]:
        projects = self.store.list_projects()
        if client_id:
            projects = [p for p in projects if p.client_id == client_id]
        if status:
            projects = [p for p in projects if p.status.value == status]
        return projects

    def _check_dates(self, start, end, field_name: str = "endDate") -> None:
        if start and end and end < start:
            raise ValidationError.for_field(field_name, "End cannot be before start")

    def create_project(self, data: Dict[str, Any]) -> Project:
        if self.store.get_client(data.get("client_id") or "") is None:
            raise ValidationError.for_field("clientId", f"Client {data.get('client_id')} does not exist")
        if not (data.get("name") or "").strip():
            raise ValidationError.for_field("name", "Name is required")
        now = self.now()
        project = Project(
            id=new_id(),
            name=data["name"].strip(),
            description=data.get("description"),
            client_id=data["client_id"],
            status=ProjectStatus(data.get("status") or ProjectStatus.PLANNING),
            start_date=data.get("start_date") or self.today(),
            end_date=data.get("end_date"),
            budget=_optional_decimal(data.get("budget")),
            hourly_rate=_optional_decimal(data.get("hourly_rate")),
            is_active=data.get("is_active", True),
            created_at=now,
            updated_at=now,
        )
        self._check_dates(project.start_date, project.end_date)
        project = self.store.create_project(project)
        logger.info(f"Project {project.id} created for client {project.client_id}")
        self.activity.record(
            ActivityType.PROJECT_CREATED,
            f"Project {project.name} created",
            entity_type=EntityType.PROJECT,
            entity_id=project.id,
            entity_name=project.name,
            new=project,
        )
        return project

    def update_project(self, project_id: str, data: Dict[str, Any]) -> Project:
        existing = self.get_project(project_id)
        changes: Dict[str, Any] = {k: data[k] for k in PROJECT_FIELDS if k in data}
        if "client_id" in data and data["client_id"] != existing.client_id:
            if self.store.get_client(data["client_id"]) is None:
                raise ValidationError.for_field("clientId", f"Client {data['client_id']} does not exist")
            changes["client_id"] = data["client_id"]
        if data.get("status"):
            changes["status"] = ProjectStatus(data["status"])
        for name in ("budget", "hourly_rate"):
            if name in data:
                changes[name] = _optional_decimal(data[name])

        project = replace(existing, updated_at=self.now(), **changes)
        self._check_dates(project.start_date, project.end_date)
        project = self.store.update_project(project)
        logger.info(f"Project {project_id} updated")

        completed = project.status == ProjectStatus.COMPLETED and existing.status != ProjectStatus.COMPLETED
        self.activity.record(
            ActivityType.PROJECT_COMPLETED if completed else ActivityType.PROJECT_UPDATED,
            f"Project {project.name} {'completed' if completed else 'updated'}",
            entity_type=EntityType.PROJECT,
            entity_id=project.id,
            entity_name=project.name,
            previous=existing,
            new=project,
        )
        return project

    def delete_project(self, project_id: str) -> None:
        project = self.get_project(project_id)
        if not self.store.delete_project(project_id):
            raise NotFoundError("Project", project_id)
        logger.info(f"Project {project_id} deleted with its tasks and time entries")
        self.activity.record(
            ActivityType.PROJECT_DELETED,
            f"Project {project.name} deleted",
            entity_type=EntityType.PROJECT,
            entity_id=project.id,
            entity_name=project.name,
            previous=project,
        )

    # Tasks

    def get_task(self, task_id: str) -> Task:
        task = self.store.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task_hours(task, self.store.list_time_entries(task_id=task_id))

    def list_tasks(self, project_id: Optional[str] = None, status: Optional[str] = None) -> List[Task]:
        entries = self.store.list_time_entries(project_id=project_id)
        tasks = [task_hours(task, entries) for task in self.store.list_tasks(project_id)]
        if status:
            tasks = [t for t in tasks if t.status.value == status]
        return tasks

    def create_task(self, data: Dict[str, Any]) -> Task:
        project = self.get_project(data.get("project_id") or "") if data.get("project_id") else None
        if project is None:
            raise ValidationError.for_field("projectId", "Project is required")
        if not (data.get("title") or "").strip():
            raise ValidationError.for_field("title", "Title is required")
        now = self.now()
        task = self.store.create_task(Task(
            id=new_id(),
            project_id=project.id,
            title=data["title"].strip(),
            description=data.get("description"),
            status=TaskStatus(data.get("status") or TaskStatus.TODO),
            priority=TaskPriority(data.get("priority") or TaskPriority.MEDIUM),
            assigned_to=data.get("assigned_to"),
            due_date=data.get("due_date"),
            estimated_hours=_optional_decimal(data.get("estimated_hours")),
            is_billable=data.get("is_billable", True),
            tags=list(data.get("tags") or []),
            created_at=now,
            updated_at=now,
        ))
        logger.info(f"Task {task.id} created in project {project.id}")
        self.activity.record(
            ActivityType.TASK_CREATED,
            f"Task {task.title} created",
            entity_type=EntityType.TASK,
            entity_id=task.id,
            entity_name=task.title,
            new=task,
            metadata={"projectId": project.id},
        )
        return task

    def update_task(self, task_id: str, data: Dict[str, Any]) -> Task:
        existing = self.get_task(task_id)
        changes: Dict[str, Any] = {k: data[k] for k in TASK_FIELDS if k in data}
        if data.get("status"):
            changes["status"] = TaskStatus(data["status"])
        if data.get("priority"):
            changes["priority"] = TaskPriority(data["priority"])
        if "estimated_hours" in data:
            changes["estimated_hours"] = _optional_decimal(data["estimated_hours"])

        task = self.store.update_task(replace(existing, updated_at=self.now(), **changes))
        logger.info(f"Task {task_id} updated")

        completed = task.status == TaskStatus.COMPLETED and existing.status != TaskStatus.COMPLETED
        self.activity.record(
            ActivityType.TASK_COMPLETED if completed else ActivityType.TASK_UPDATED,
            f"Task {task.title} {'completed' if completed else 'updated'}",
            entity_type=EntityType.TASK,
            entity_id=task.id,
            entity_name=task.title,
            previous=existing,
            new=task,
        )
        return self.get_task(task_id)

    def delete_task(self, task_id: str) -> None:
        task = self.get_task(task_id)
        if not self.store.delete_task(task_id):
            raise NotFoundError("Task", task_id)
        logger.info(f"Task {task_id} deleted")
        self.activity.record(
            ActivityType.TASK_DELETED,
            f"Task {task.title} deleted",
            entity_type=EntityType.TASK,
            entity_id=task.id,
            entity_name=task.title,
            previous=task,
        )

    def _refresh_task_hours(self, task_id: str) -> None:
        task = self.store.get_task(task_id)
        if task is not None:
            self.store.update_task(task_hours(task, self.store.list_time_entries(task_id=task_id)))

    # Time entries

    def get_time_entry(self, entry_id: str) -> TimeEntry:
        entry = self.store.get_time_entry(entry_id)
        if entry is None:
            raise NotFoundError("TimeEntry", entry_id)
        return entry

    def list_time_entries(self, task_id: Optional[str] = None, project_id: Optional[str] = None) -> List[TimeEntry]:
        return sorted(
            self.store.list_time_entries(task_id=task_id, project_id=project_id),
            key=lambda e: e.start_time,
            reverse=True,
        )

    def _with_duration(self, entry: TimeEntry) -> TimeEntry:
        try:
            return with_duration(entry)
        except ValueError as e:
            raise ValidationError.for_field("endTime", str(e))

    def create_time_entry(self, data: Dict[str, Any]) -> TimeEntry:
        task = self.store.get_task(data.get("task_id") or "")
        if task is None:
            raise ValidationError.for_field("taskId", f"Task {data.get('task_id')} does not exist")
        if data.get("project_id") and data["project_id"] != task.project_id:
            raise ValidationError.for_field("projectId", "Time entry project must match the task's project")
        if not data.get("start_time"):
            raise ValidationError.for_field("startTime", "Start time is required")
        now = self.now()
        entry = self._with_duration(TimeEntry(
            id=new_id(),
            task_id=task.id,
            project_id=task.project_id,
            description=data.get("description"),
            start_time=data["start_time"],
            end_time=data.get("end_time"),
            duration=int(data.get("duration") or 0),
            is_billable=data.get("is_billable", True),
            hourly_rate=_optional_decimal(data.get("hourly_rate")),
            created_at=now,
            updated_at=now,
        ))
        entry = self.store.create_time_entry(entry)
        self._refresh_task_hours(task.id)
        logger.info(f"Time entry {entry.id} of {entry.duration} minutes logged on task {task.id}")
        self.activity.record(
            ActivityType.TIME_ENTRY_CREATED,
            f"{entry.duration} minutes logged on {task.title}",
            entity_type=EntityType.TIME_ENTRY,
            entity_id=entry.id,
            entity_name=task.title,
            new=entry,
        )
        return entry

    def update_time_entry(self, entry_id: str, data: Dict[str, Any]) -> TimeEntry:
        existing = self.get_time_entry(entry_id)
        changes: Dict[str, Any] = {k: data[k] for k in TIME_ENTRY_FIELDS if k in data}
        if "hourly_rate" in data:
            changes["hourly_rate"] = _optional_decimal(data["hourly_rate"])
        if "duration" in data:
            changes["duration"] = int(data["duration"] or 0)
        elif "start_time" in data or "end_time" in data:
            # re-derive from the new bounds
            changes["duration"] = 0

        entry = self._with_duration(replace(existing, updated_at=self.now(), **changes))
        entry = self.store.update_time_entry(entry)
        self._refresh_task_hours(entry.task_id)
        logger.info(f"Time entry {entry_id} updated")
        self.activity.record(
            ActivityType.TIME_ENTRY_UPDATED,
            "Time entry updated",
            entity_type=EntityType.TIME_ENTRY,
            entity_id=entry.id,
            previous=existing,
            new=entry,
        )
        return entry

    def delete_time_entry(self, entry_id: str) -> None:
        entry = self.get_time_entry(entry_id)
        if not self.store.delete_time_entry(entry_id):
            raise NotFoundError("TimeEntry", entry_id)
        self._refresh_task_hours(entry.task_id)
        logger.info(f"Time entry {entry_id} deleted")
        self.activity.record(
            ActivityType.TIME_ENTRY_DELETED,
            "Time entry deleted",
            entity_type=EntityType.TIME_ENTRY,
            entity_id=entry.id,
            previous=entry,
        )
