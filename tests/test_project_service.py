from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest

from billing import models
from billing.domain.entities import ActivityType, ProjectStatus, TaskStatus
from billing.services import ProjectService
from billing.validation.errors import NotFoundError, ValidationError

START = datetime(2024, 3, 1, 9, 0, tzinfo=dt_timezone.utc)


@pytest.mark.django_db
class TestProjectService:
    @pytest.fixture
    def service(self, store):
        return ProjectService(store, user_id="1")

    @pytest.fixture
    def project(self, service, client_record):
        return service.create_project({"name": "Website", "client_id": client_record.id})

    @pytest.fixture
    def task(self, service, project):
        return service.create_task({"project_id": project.id, "title": "Build pages"})

    def log(self, service, task, minutes, **extra):
        return service.create_time_entry(dict({
            "task_id": task.id,
            "start_time": START,
            "end_time": START + timedelta(minutes=minutes),
        }, **extra))

    def test_project_defaults(self, project, today):
        assert project.status == ProjectStatus.PLANNING
        assert project.start_date == today
        assert project.is_active

    def test_project_requires_existing_client(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create_project({"name": "Website", "client_id": "missing"})
        assert exc_info.value.fields[0].field == "clientId"

    def test_project_end_before_start(self, service, client_record, today):
        with pytest.raises(ValidationError):
            service.create_project({
                "name": "Website",
                "client_id": client_record.id,
                "start_date": today,
                "end_date": today - timedelta(days=1),
            })

    def test_completing_project_is_logged(self, service, store, project):
        service.update_project(project.id, {"status": "completed"})
        assert ActivityType.PROJECT_COMPLETED in [e.type for e in store.list_activity()]

    def test_task_requires_project(self, service):
        with pytest.raises(ValidationError):
            service.create_task({"title": "Orphan"})
        with pytest.raises(NotFoundError):
            service.create_task({"project_id": "missing", "title": "Orphan"})

    def test_time_entry_duration_is_derived(self, service, task):
        entry = self.log(service, task, 90)

        assert entry.duration == 90
        assert entry.project_id == task.project_id

    def test_task_hours_follow_time_entries(self, service, task):
        first = self.log(service, task, 90)
        self.log(service, task, 30, is_billable=False)

        refreshed = service.get_task(task.id)
        assert refreshed.actual_hours == Decimal("2.00")
        assert refreshed.billable_hours == Decimal("1.50")
        assert models.Task.objects.get(pk=task.id).actual_hours == Decimal("2.00")

        service.delete_time_entry(first.id)
        assert service.get_task(task.id).actual_hours == Decimal("0.50")

    def test_entry_cannot_end_before_start(self, service, task):
        with pytest.raises(ValidationError) as exc_info:
            service.create_time_entry({
                "task_id": task.id,
                "start_time": START,
                "end_time": START - timedelta(minutes=5),
            })
        assert exc_info.value.fields[0].field == "endTime"

    def test_entry_project_must_match_task(self, service, task):
        with pytest.raises(ValidationError):
            self.log(service, task, 30, project_id="another-project")

    def test_moving_end_time_rederives_duration(self, service, task):
        entry = self.log(service, task, 30)

        updated = service.update_time_entry(entry.id, {"end_time": START + timedelta(hours=2)})

        assert updated.duration == 120
        assert service.get_task(task.id).actual_hours == Decimal("2.00")

    def test_completing_task_is_logged(self, service, store, task):
        updated = service.update_task(task.id, {"status": "completed"})

        assert updated.status == TaskStatus.COMPLETED
        assert ActivityType.TASK_COMPLETED in [e.type for e in store.list_activity()]

    def test_list_tasks_by_status(self, service, project, task):
        service.create_task({"project_id": project.id, "title": "Review", "status": "review"})

        assert [t.title for t in service.list_tasks(project.id, status="review")] == ["Review"]
        assert len(service.list_tasks(project.id)) == 2

    def test_delete_project_removes_tasks(self, service, project, task):
        self.log(service, task, 15)

        service.delete_project(project.id)

        assert not models.Task.objects.filter(pk=task.id).exists()
        assert not models.TimeEntry.objects.exists()
