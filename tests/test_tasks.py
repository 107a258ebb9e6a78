"""
Tests for checklist generation and task bookkeeping.
"""

import pytest

import crud
from errors import NotFoundError
from models import TaskCategory, TaskPriority
from schemas import TaskCreate, TaskUpdate
from task_generator import APPLICATION_TASK_TEMPLATES, build_application_tasks


class TestBuildApplicationTasks:

    def test_tasks_are_tagged_with_university(self):
        rows = build_application_tasks(7, "abc123", "University of Oxford")

        assert len(rows) == len(APPLICATION_TASK_TEMPLATES)
        assert all(row["university_id"] == "abc123" for row in rows)
        assert all(row["user_id"] == 7 for row in rows)
        assert all(row["ai_generated"] for row in rows)
        assert "Prepare SOP for University of Oxford" in [row["title"] for row in rows]

    def test_missing_name_uses_placeholder(self):
        rows = build_application_tasks(7, "abc123")

        assert rows[0]["title"] == "Research your university's admission requirements"
        assert rows[0]["university_name"] is None

    def test_checklist_covers_documents_and_application(self):
        rows = build_application_tasks(1, "abc123", "ETH Zurich")
        categories = {row["category"] for row in rows}

        assert TaskCategory.DOCUMENT.value in categories
        assert TaskCategory.APPLICATION.value in categories
        assert 5 <= len(rows) <= 6


class TestTaskStore:
    """Tests for task CRUD against the in-memory database."""

    def test_generate_is_idempotent(self, db, user):
        first, created_first = crud.generate_university_tasks(db, user.id, "abc123", "ETH Zurich")
        second, created_second = crud.generate_university_tasks(db, user.id, "abc123", "ETH Zurich")

        assert created_first is True
        assert created_second is False
        assert sorted(t.id for t in first) == sorted(t.id for t in second)
        assert len(crud.get_tasks(db, user.id, "abc123")) == len(first)

    def test_tasks_sorted_by_priority(self, db, user):
        crud.create_task(db, user.id, TaskCreate(title="Low", priority=TaskPriority.LOW))
        crud.create_task(db, user.id, TaskCreate(title="High", priority=TaskPriority.HIGH))
        crud.create_task(db, user.id, TaskCreate(title="Medium"))

        titles = [t.title for t in crud.get_tasks(db, user.id)]

        assert titles == ["High", "Medium", "Low"]

    def test_manual_task_defaults(self, db, user):
        task = crud.create_task(db, user.id, TaskCreate(title="Book IELTS", category=TaskCategory.EXAM))

        assert task.ai_generated is False
        assert task.completed is False
        assert task.category == "exam"
        assert task.university_id is None

    def test_completion_sets_timestamp(self, db, user):
        task = crud.create_task(db, user.id, TaskCreate(title="Book IELTS"))

        done = crud.set_task_completed(db, user.id, task.id, True)
        assert done.completed is True
        assert done.completed_at is not None

        reopened = crud.set_task_completed(db, user.id, task.id, False)
        assert reopened.completed is False
        assert reopened.completed_at is None

    def test_update_task_fields_and_completion(self, db, user):
        task = crud.create_task(db, user.id, TaskCreate(title="Draft SOP"))

        updated = crud.update_task(db, user.id, task.id, TaskUpdate(title="Finish SOP", completed=True))

        assert updated.title == "Finish SOP"
        assert updated.completed_at is not None

    def test_task_of_another_user_is_not_found(self, db, user):
        task = crud.create_task(db, user.id, TaskCreate(title="Draft SOP"))

        with pytest.raises(NotFoundError):
            crud.get_task(db, user.id + 1, task.id)

    def test_delete_task(self, db, user):
        task = crud.create_task(db, user.id, TaskCreate(title="Draft SOP"))

        crud.delete_task(db, user.id, task.id)

        assert crud.get_tasks(db, user.id) == []

    def test_delete_university_tasks(self, db, user):
        crud.generate_university_tasks(db, user.id, "abc123")
        crud.create_task(db, user.id, TaskCreate(title="Unrelated"))

        deleted = crud.delete_university_tasks(db, user.id, "abc123")

        assert deleted == len(APPLICATION_TASK_TEMPLATES)
        assert [t.title for t in crud.get_tasks(db, user.id)] == ["Unrelated"]

    def test_create_task_for_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            crud.create_task(db, 999, TaskCreate(title="Orphan"))
