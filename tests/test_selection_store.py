"""
Tests for the shortlist/lock selection store backed by an in-memory database.
"""

import pytest
from sqlalchemy.orm import sessionmaker

import crud
from errors import NotFoundError
from models import CategoryEnum, LockedUniversity, Shortlist, Task
from normalization import generate_university_id
from schemas import SelectionStatus, UniversityMeta

TORONTO = generate_university_id("University of Toronto", "Canada")
UBC = generate_university_id("University of British Columbia", "Canada")
WATERLOO = generate_university_id("University of Waterloo", "Canada")
MCGILL = generate_university_id("McGill University", "Canada")


def _task_count(db, user_id, university_id):
    return db.query(Task).filter(Task.user_id == user_id, Task.university_id == university_id).count()


class TestShortlist:
    """Tests for adding, recategorizing and removing shortlist entries."""

    def test_shortlist_then_duplicate(self, db, user):
        """The second shortlist call reports the existing category and adds nothing."""
        # Act
        first = crud.add_to_shortlist(db, user.id, TORONTO, CategoryEnum.DREAM)
        second = crud.add_to_shortlist(db, user.id, TORONTO, CategoryEnum.TARGET)

        # Assert
        assert first.status == SelectionStatus.OK
        assert second.status == SelectionStatus.ALREADY_SHORTLISTED
        assert second.category == CategoryEnum.DREAM
        assert db.query(Shortlist).filter(Shortlist.user_id == user.id).count() == 1

    def test_shortlist_advances_stage(self, db, user):
        result = crud.add_to_shortlist(db, user.id, TORONTO)

        assert result.current_stage == 2
        assert crud.get_stage(db, user.id) == 2

    def test_shortlist_stores_display_fields(self, db, user):
        meta = UniversityMeta(name="University of Toronto", country="Canada", tuition_fee=45000)

        crud.add_to_shortlist(db, user.id, TORONTO, CategoryEnum.SAFE, meta)

        entry = crud.get_shortlist_entry(db, user.id, TORONTO)
        assert entry.university_name == "University of Toronto"
        assert entry.tuition_fee == 45000
        assert entry.category == "safe"

    def test_shortlist_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            crud.add_to_shortlist(db, 999, TORONTO)

    def test_update_category(self, db, user):
        crud.add_to_shortlist(db, user.id, TORONTO, CategoryEnum.DREAM)

        entry = crud.update_shortlist_category(db, user.id, TORONTO, CategoryEnum.SAFE)

        assert entry.category == "safe"

    def test_update_category_requires_entry(self, db, user):
        with pytest.raises(NotFoundError):
            crud.update_shortlist_category(db, user.id, TORONTO, CategoryEnum.SAFE)

    def test_remove_last_entry_returns_to_stage_one(self, db, user):
        crud.add_to_shortlist(db, user.id, TORONTO)

        result = crud.remove_from_shortlist(db, user.id, TORONTO)

        assert result.current_stage == 1
        assert crud.get_user_shortlists(db, user.id) == []

    def test_remove_keeps_stage_while_others_remain(self, db, user):
        crud.add_to_shortlist(db, user.id, TORONTO)
        crud.add_to_shortlist(db, user.id, UBC)

        result = crud.remove_from_shortlist(db, user.id, TORONTO)

        assert result.current_stage == 2

    def test_remove_locked_university_keeps_lock(self, db, user):
        """Unshortlisting a locked university leaves the lock and its stage alone."""
        crud.lock_university(db, user.id, TORONTO)

        result = crud.remove_from_shortlist(db, user.id, TORONTO)

        assert result.current_stage == 3
        assert crud.get_shortlist_entry(db, user.id, TORONTO) is None
        assert crud.get_locked_entry(db, user.id, TORONTO) is not None
        assert _task_count(db, user.id, TORONTO) == 6

    def test_remove_missing_entry_is_noop(self, db, user):
        result = crud.remove_from_shortlist(db, user.id, TORONTO)

        assert result.status == SelectionStatus.OK


class TestLock:
    """Tests for locking, unlocking and their side effects."""

    def test_lock_fresh_university(self, db, user):
        """Locking auto-shortlists as target and generates the checklist."""
        # Act
        result = crud.lock_university(db, user.id, TORONTO, UniversityMeta(name="University of Toronto"))

        # Assert
        assert result.status == SelectionStatus.OK
        assert result.category == CategoryEnum.TARGET
        assert result.current_stage == 3
        entry = crud.get_shortlist_entry(db, user.id, TORONTO)
        assert entry is not None
        assert entry.category == "target"
        assert 5 <= _task_count(db, user.id, TORONTO) <= 6
        assert result.tasks_created == _task_count(db, user.id, TORONTO)

    def test_lock_keeps_existing_category(self, db, user):
        crud.add_to_shortlist(db, user.id, TORONTO, CategoryEnum.DREAM)

        result = crud.lock_university(db, user.id, TORONTO)

        assert result.category == CategoryEnum.DREAM
        assert crud.get_shortlist_entry(db, user.id, TORONTO).category == "dream"

    def test_double_lock_generates_tasks_once(self, db, user):
        first = crud.lock_university(db, user.id, TORONTO)
        second = crud.lock_university(db, user.id, TORONTO)

        assert second.status == SelectionStatus.ALREADY_LOCKED
        assert _task_count(db, user.id, TORONTO) == first.tasks_created
        assert db.query(LockedUniversity).filter(LockedUniversity.user_id == user.id).count() == 1

    def test_third_lock_reaches_application_stage(self, db, user):
        crud.lock_university(db, user.id, TORONTO)
        crud.lock_university(db, user.id, UBC)
        result = crud.lock_university(db, user.id, WATERLOO)

        assert result.current_stage == 4

    def test_unlock_cascades_tasks(self, db, user):
        crud.lock_university(db, user.id, TORONTO)

        result = crud.unlock_university(db, user.id, TORONTO)

        assert result.status == SelectionStatus.OK
        assert result.tasks_deleted >= 5
        assert _task_count(db, user.id, TORONTO) == 0
        # The auto-added shortlist entry remains
        assert result.current_stage == 2

    def test_unlock_then_unshortlist(self, db, user):
        crud.lock_university(db, user.id, TORONTO)
        crud.unlock_university(db, user.id, TORONTO)

        result = crud.remove_from_shortlist(db, user.id, TORONTO)

        assert result.current_stage == 1

    def test_unlock_leaves_other_universities_tasks(self, db, user):
        crud.lock_university(db, user.id, TORONTO)
        crud.lock_university(db, user.id, UBC)

        crud.unlock_university(db, user.id, TORONTO)

        assert _task_count(db, user.id, UBC) > 0
        assert crud.get_stage(db, user.id) == 3

    def test_unlock_missing_entry_is_noop(self, db, user):
        crud.add_to_shortlist(db, user.id, TORONTO)

        result = crud.unlock_university(db, user.id, MCGILL)

        assert result.tasks_deleted == 0
        assert result.current_stage == 2

    def test_stage_walk(self, db, user):
        """Locked count 0 -> 1 -> 3 -> 0 stays within stages 1-4."""
        crud.add_to_shortlist(db, user.id, MCGILL)
        assert crud.get_stage(db, user.id) == 2

        crud.lock_university(db, user.id, TORONTO)
        assert crud.get_stage(db, user.id) == 3

        crud.lock_university(db, user.id, UBC)
        crud.lock_university(db, user.id, WATERLOO)
        assert crud.get_stage(db, user.id) == 4

        for university_id in (TORONTO, UBC, WATERLOO):
            crud.unlock_university(db, user.id, university_id)
            assert 1 <= crud.get_stage(db, user.id) <= 4
        assert crud.get_stage(db, user.id) == 2

    def test_checklist_failure_keeps_lock(self, db, user, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("task store unavailable")

        monkeypatch.setattr(crud, "generate_university_tasks", broken)

        result = crud.lock_university(db, user.id, TORONTO)

        assert result.status == SelectionStatus.OK
        assert result.tasks_created == 0
        assert crud.get_locked_entry(db, user.id, TORONTO) is not None


def _shortlist_from_other_session(monkeypatch, engine, user_id, university_id, category="dream"):
    """
    Make the next shortlist lookup miss while another session commits the same pair,
    so the following insert hits the unique constraint.
    """
    real_lookup = crud.get_shortlist_entry
    calls = {"count": 0}

    def racing_lookup(db, uid, univ_id):
        calls["count"] += 1
        if calls["count"] == 1:
            other = sessionmaker(bind=engine)()
            try:
                other.add(Shortlist(user_id=user_id, university_id=university_id, category=category))
                other.commit()
            finally:
                other.close()
            return None
        return real_lookup(db, uid, univ_id)

    monkeypatch.setattr(crud, "get_shortlist_entry", racing_lookup)


class TestConcurrentSelections:
    """Duplicate inserts caught by the unique constraints resolve to statuses."""

    def test_concurrent_shortlist_reports_existing_entry(self, db, engine, user, monkeypatch):
        # Arrange
        _shortlist_from_other_session(monkeypatch, engine, user.id, TORONTO)

        # Act
        result = crud.add_to_shortlist(db, user.id, TORONTO, CategoryEnum.SAFE)

        # Assert
        assert result.status == SelectionStatus.ALREADY_SHORTLISTED
        assert result.category == CategoryEnum.DREAM
        assert db.query(Shortlist).filter(Shortlist.user_id == user.id).count() == 1

    def test_lock_racing_a_shortlist_still_locks(self, db, engine, user, monkeypatch):
        # Arrange
        _shortlist_from_other_session(monkeypatch, engine, user.id, TORONTO)

        # Act
        result = crud.lock_university(db, user.id, TORONTO)

        # Assert
        assert result.status == SelectionStatus.OK
        assert result.category == CategoryEnum.DREAM
        assert result.current_stage == 3
        assert result.tasks_created == 6
        assert crud.get_locked_entry(db, user.id, TORONTO) is not None
        assert db.query(Shortlist).filter(Shortlist.user_id == user.id).count() == 1
