"""
CRUD operations: profiles, the shortlist/lock selection store, tasks and
the stored university catalog.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import DataValidationError, NotFoundError
from models import (
    UserProfile, Shortlist, LockedUniversity, Task, University, CategoryEnum, StageEnum, TaskPriority
)
from normalization import normalize_country
from schemas import (
    ProfileData, ProfileUpdate, SelectionResult, SelectionStatus, TaskCreate, TaskUpdate,
    UniversityMeta, UniversityRecord, UserProfileCreate
)
from stage import (
    clamp_stage, stage_after_lock, stage_after_onboarding, stage_after_shortlist,
    stage_after_unlock, stage_after_unshortlist
)
from task_generator import build_application_tasks

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

# ============================================
# USER PROFILE
# ============================================

def get_user_profile(db: Session, user_id: int) -> Optional[UserProfile]:
    """Get user profile by ID."""
    return db.query(UserProfile).filter(UserProfile.id == user_id).first()

def get_user_by_email(db: Session, email: str) -> Optional[UserProfile]:
    """Get user profile by email."""
    return db.query(UserProfile).filter(UserProfile.email == email).first()

def require_user(db: Session, user_id: int) -> UserProfile:
    profile = get_user_profile(db, user_id)
    if not profile:
        raise NotFoundError(f"User {user_id} not found")
    return profile

def require_user_by_email(db: Session, email: str) -> UserProfile:
    profile = get_user_by_email(db, email)
    if not profile:
        raise NotFoundError(f"User {email} not found")
    return profile

def profile_to_data(profile: UserProfile) -> ProfileData:
    """Convert a stored profile into the record used for scoring."""
    return ProfileData.model_validate(profile)

def _column_values(data: Dict) -> Dict:
    # Enums are stored by value
    return {key: getattr(value, "value", value) for key, value in data.items()}

def upsert_profile(db: Session, profile_data: UserProfileCreate) -> UserProfile:
    """
    Onboarding UPSERT.
    If profile exists -> UPDATE, if new -> INSERT.
    final_submit=true marks onboarding complete and moves the student to discovery.
    """
    fields = profile_data.model_dump(exclude={"final_submit"}, exclude_unset=True)
    fields["email"] = profile_data.email

    try:
        profile = get_user_by_email(db, profile_data.email)
        if profile:
            logger.info(f"[ONBOARDING] Updating existing profile for {profile_data.email}")
            for key, value in _column_values(fields).items():
                setattr(profile, key, value)
        else:
            logger.info(f"[ONBOARDING] Creating new profile for {profile_data.email}")
            profile = UserProfile(**_column_values(fields))
            profile.current_stage = StageEnum.BUILDING_PROFILE.value
            db.add(profile)

        if profile_data.final_submit:
            profile.onboarding_completed = True
            profile.current_stage = stage_after_onboarding(profile.current_stage)

        db.commit()
        db.refresh(profile)
        return profile
    except Exception as e:
        logger.error(f"[ONBOARDING] upsert_profile failed: {str(e)}")
        db.rollback()
        raise

def update_profile(db: Session, user_id: int, updates: ProfileUpdate) -> UserProfile:
    """Apply a partial profile update. The merged profile must still be valid."""
    profile = require_user(db, user_id)
    changes = updates.model_dump(exclude_unset=True)

    try:
        for key, value in _column_values(changes).items():
            setattr(profile, key, value)
        profile_to_data(profile)
    except ValueError as e:
        db.rollback()
        raise DataValidationError(f"Invalid profile update: {str(e)}") from e

    db.commit()
    db.refresh(profile)
    return profile

# ============================================
# STAGE
# ============================================

def get_stage(db: Session, user_id: int) -> int:
    """Current funnel stage (1-4)."""
    return clamp_stage(require_user(db, user_id).current_stage)

def _count_shortlisted(db: Session, user_id: int) -> int:
    return db.query(Shortlist).filter(Shortlist.user_id == user_id).count()

def _count_locked(db: Session, user_id: int) -> int:
    return db.query(LockedUniversity).filter(LockedUniversity.user_id == user_id).count()

# ============================================
# SHORTLIST
# ============================================

def get_user_shortlists(db: Session, user_id: int) -> List[Shortlist]:
    """All shortlisted universities for a user, oldest first."""
    return (
        db.query(Shortlist)
        .filter(Shortlist.user_id == user_id)
        .order_by(Shortlist.created_at, Shortlist.id)
        .all()
    )

def get_shortlist_entry(db: Session, user_id: int, university_id: str) -> Optional[Shortlist]:
    return db.query(Shortlist).filter(
        and_(
            Shortlist.user_id == user_id,
            Shortlist.university_id == university_id
        )
    ).first()

def _new_shortlist_row(user_id: int, university_id: str, category: CategoryEnum, meta: UniversityMeta) -> Shortlist:
    return Shortlist(
        user_id=user_id,
        university_id=university_id,
        category=CategoryEnum(category).value,
        university_name=meta.name,
        country=meta.country,
        tuition_fee=meta.tuition_fee,
        living_cost_per_year=meta.living_cost_per_year,
    )

def add_to_shortlist(
    db: Session,
    user_id: int,
    university_id: str,
    category: CategoryEnum = CategoryEnum.TARGET,
    meta: Optional[UniversityMeta] = None,
) -> SelectionResult:
    """
    Shortlist a university.
    An existing entry is left untouched and reported as ALREADY_SHORTLISTED
    together with its current category.
    """
    profile = require_user(db, user_id)
    meta = meta or UniversityMeta()

    existing = get_shortlist_entry(db, user_id, university_id)
    if existing:
        logger.info(f"[SHORTLIST] {university_id} already shortlisted for user {user_id}")
        return SelectionResult(
            status=SelectionStatus.ALREADY_SHORTLISTED,
            university_id=university_id,
            category=existing.category,
            current_stage=clamp_stage(profile.current_stage),
        )

    try:
        db.add(_new_shortlist_row(user_id, university_id, category, meta))
        profile.current_stage = stage_after_shortlist(profile.current_stage)
        db.commit()
    except IntegrityError:
        # A concurrent request inserted the same pair first
        db.rollback()
        existing = get_shortlist_entry(db, user_id, university_id)
        if not existing:
            raise
        logger.warning(f"[SHORTLIST] Concurrent duplicate for user {user_id}, university {university_id}")
        return SelectionResult(
            status=SelectionStatus.ALREADY_SHORTLISTED,
            university_id=university_id,
            category=existing.category,
            current_stage=clamp_stage(profile.current_stage),
        )
    except Exception as e:
        logger.error(f"[SHORTLIST] add_to_shortlist failed: {str(e)}")
        db.rollback()
        raise

    logger.info(f"[SHORTLIST] User {user_id} shortlisted {university_id} as {CategoryEnum(category).value}")
    return SelectionResult(
        university_id=university_id,
        category=category,
        current_stage=profile.current_stage,
    )

def update_shortlist_category(db: Session, user_id: int, university_id: str, category: CategoryEnum) -> Shortlist:
    """Change the category of an existing shortlist entry."""
    entry = get_shortlist_entry(db, user_id, university_id)
    if not entry:
        raise NotFoundError(f"University {university_id} is not shortlisted")
    entry.category = CategoryEnum(category).value
    db.commit()
    db.refresh(entry)
    return entry

def remove_from_shortlist(db: Session, user_id: int, university_id: str) -> SelectionResult:
    """Remove a shortlist entry. A lock on the same university stays; removing a missing entry is not an error."""
    profile = get_user_profile(db, user_id)
    if not profile:
        return SelectionResult(university_id=university_id, current_stage=StageEnum.BUILDING_PROFILE.value)

    try:
        deleted = db.query(Shortlist).filter(
            and_(Shortlist.user_id == user_id, Shortlist.university_id == university_id)
        ).delete()
        db.flush()
        profile.current_stage = stage_after_unshortlist(
            profile.current_stage, _count_shortlisted(db, user_id), _count_locked(db, user_id)
        )
        db.commit()
    except Exception as e:
        logger.error(f"[SHORTLIST] remove_from_shortlist failed: {str(e)}")
        db.rollback()
        raise

    logger.info(f"[SHORTLIST] User {user_id} removed {university_id} (deleted={deleted})")
    return SelectionResult(university_id=university_id, current_stage=profile.current_stage)

# ============================================
# LOCK
# ============================================

def get_locked_universities(db: Session, user_id: int) -> List[LockedUniversity]:
    return (
        db.query(LockedUniversity)
        .filter(LockedUniversity.user_id == user_id)
        .order_by(LockedUniversity.locked_at, LockedUniversity.id)
        .all()
    )

def get_locked_entry(db: Session, user_id: int, university_id: str) -> Optional[LockedUniversity]:
    return db.query(LockedUniversity).filter(
        and_(
            LockedUniversity.user_id == user_id,
            LockedUniversity.university_id == university_id
        )
    ).first()

def _insert_lock(db: Session, profile: UserProfile, university_id: str, meta: UniversityMeta) -> CategoryEnum:
    """Insert the lock, shortlisting as TARGET when missing, and commit. Returns the shortlist category."""
    user_id = profile.id
    db.add(LockedUniversity(
        user_id=user_id,
        university_id=university_id,
        university_name=meta.name,
        country=meta.country,
    ))

    shortlisted = get_shortlist_entry(db, user_id, university_id)
    if shortlisted:
        category = CategoryEnum(shortlisted.category)
    else:
        category = CategoryEnum.TARGET
        db.add(_new_shortlist_row(user_id, university_id, category, meta))

    db.flush()
    profile.current_stage = stage_after_lock(profile.current_stage, _count_locked(db, user_id))
    db.commit()
    return category

def lock_university(
    db: Session,
    user_id: int,
    university_id: str,
    meta: Optional[UniversityMeta] = None,
) -> SelectionResult:
    """
    Lock a university for application.

    Adds the university to the shortlist as TARGET when missing, advances the
    stage and generates the application checklist. A checklist failure is
    logged and does not undo the lock.
    """
    profile = require_user(db, user_id)
    meta = meta or UniversityMeta()

    if get_locked_entry(db, user_id, university_id):
        logger.info(f"[LOCK] {university_id} already locked for user {user_id}")
        return SelectionResult(
            status=SelectionStatus.ALREADY_LOCKED,
            university_id=university_id,
            current_stage=clamp_stage(profile.current_stage),
        )

    try:
        category = _insert_lock(db, profile, university_id, meta)
    except IntegrityError:
        db.rollback()
        if get_locked_entry(db, user_id, university_id):
            logger.warning(f"[LOCK] Concurrent duplicate for user {user_id}, university {university_id}")
            return SelectionResult(
                status=SelectionStatus.ALREADY_LOCKED,
                university_id=university_id,
                current_stage=clamp_stage(profile.current_stage),
            )
        if not get_shortlist_entry(db, user_id, university_id):
            raise

        # A concurrent shortlist inserted the pair first; lock against that entry
        logger.warning(f"[LOCK] Concurrent shortlist for user {user_id}, university {university_id}, retrying lock")
        try:
            category = _insert_lock(db, profile, university_id, meta)
        except Exception as e:
            logger.error(f"[LOCK] lock_university retry failed: {str(e)}")
            db.rollback()
            raise
    except Exception as e:
        logger.error(f"[LOCK] lock_university failed: {str(e)}")
        db.rollback()
        raise

    logger.info(f"[LOCK] User {user_id} locked {university_id}, stage={profile.current_stage}")

    tasks_created = 0
    try:
        tasks, created = generate_university_tasks(db, user_id, university_id, meta.name)
        if created:
            tasks_created = len(tasks)
    except Exception as e:
        logger.error(f"[TASKS] Checklist generation failed for {university_id}, lock kept: {str(e)}")

    return SelectionResult(
        university_id=university_id,
        category=category,
        current_stage=profile.current_stage,
        tasks_created=tasks_created,
    )

def unlock_university(db: Session, user_id: int, university_id: str) -> SelectionResult:
    """Unlock a university and delete its tasks. Unlocking a missing entry is not an error."""
    profile = get_user_profile(db, user_id)
    if not profile:
        return SelectionResult(university_id=university_id, current_stage=StageEnum.BUILDING_PROFILE.value)

    try:
        db.query(LockedUniversity).filter(
            and_(LockedUniversity.user_id == user_id, LockedUniversity.university_id == university_id)
        ).delete()
        tasks_deleted = db.query(Task).filter(
            and_(Task.user_id == user_id, Task.university_id == university_id)
        ).delete()
        db.flush()
        profile.current_stage = stage_after_unlock(
            profile.current_stage, _count_shortlisted(db, user_id), _count_locked(db, user_id)
        )
        db.commit()
    except Exception as e:
        logger.error(f"[LOCK] unlock_university failed: {str(e)}")
        db.rollback()
        raise

    logger.info(f"[LOCK] User {user_id} unlocked {university_id}, deleted {tasks_deleted} tasks")
    return SelectionResult(
        university_id=university_id,
        current_stage=profile.current_stage,
        tasks_deleted=tasks_deleted,
    )

# ============================================
# TASKS
# ============================================

PRIORITY_ORDER = case(
    (Task.priority == TaskPriority.HIGH.value, 0),
    (Task.priority == TaskPriority.MEDIUM.value, 1),
    else_=2,
)

def get_tasks(db: Session, user_id: int, university_id: Optional[str] = None) -> List[Task]:
    """Tasks for a user, highest priority first, newest first within a priority."""
    query = db.query(Task).filter(Task.user_id == user_id)
    if university_id is not None:
        query = query.filter(Task.university_id == university_id)
    return query.order_by(PRIORITY_ORDER, Task.created_at.desc(), Task.id.desc()).all()

def get_task(db: Session, user_id: int, task_id: int) -> Task:
    task = db.query(Task).filter(and_(Task.id == task_id, Task.user_id == user_id)).first()
    if not task:
        raise NotFoundError(f"Task {task_id} not found")
    return task

def create_task(db: Session, user_id: int, task_data: TaskCreate, ai_generated: bool = False) -> Task:
    """Create a manual (or chat-driven) task."""
    require_user(db, user_id)
    fields = _column_values(task_data.model_dump())
    task = Task(user_id=user_id, ai_generated=ai_generated, **fields)
    db.add(task)
    db.commit()
    db.refresh(task)
    return task

def set_task_completed(db: Session, user_id: int, task_id: int, completed: bool) -> Task:
    """Toggle completion. completed_at is set exactly when the task is completed."""
    task = get_task(db, user_id, task_id)
    task.completed = completed
    task.completed_at = _utcnow() if completed else None
    db.commit()
    db.refresh(task)
    return task

def update_task(db: Session, user_id: int, task_id: int, updates: TaskUpdate) -> Task:
    task = get_task(db, user_id, task_id)
    changes = _column_values(updates.model_dump(exclude_unset=True))
    completed = changes.pop("completed", None)

    for key, value in changes.items():
        setattr(task, key, value)

    if completed is not None and completed != task.completed:
        task.completed = completed
        task.completed_at = _utcnow() if completed else None

    db.commit()
    db.refresh(task)
    return task

def delete_task(db: Session, user_id: int, task_id: int):
    task = get_task(db, user_id, task_id)
    db.delete(task)
    db.commit()

def delete_university_tasks(db: Session, user_id: int, university_id: str) -> int:
    """Delete every task tied to one university."""
    try:
        deleted_count = db.query(Task).filter(
            and_(Task.user_id == user_id, Task.university_id == university_id)
        ).delete()
        db.commit()
        logger.info(f"[TASKS] Cleared {deleted_count} tasks for user {user_id}, university {university_id}")
        return deleted_count
    except Exception as e:
        logger.error(f"[TASKS] delete_university_tasks failed: {str(e)}")
        db.rollback()
        raise

def generate_university_tasks(
    db: Session,
    user_id: int,
    university_id: str,
    university_name: Optional[str] = None,
) -> Tuple[List[Task], bool]:
    """
    Generate the application checklist for a locked university.
    Check-then-create: when tasks already exist for the university they are
    returned unchanged.

    Returns:
        (tasks, created)
    """
    existing = get_tasks(db, user_id, university_id)
    if existing:
        logger.info(f"[TASKS] {len(existing)} tasks already exist for user {user_id}, university {university_id}")
        return existing, False

    try:
        tasks = [Task(**row) for row in build_application_tasks(user_id, university_id, university_name)]
        db.add_all(tasks)
        db.commit()
        for task in tasks:
            db.refresh(task)
        logger.info(f"[TASKS] Generated {len(tasks)} tasks for user {user_id}, university {university_id}")
        return tasks, True
    except Exception as e:
        logger.error(f"[TASKS] generate_university_tasks failed: {str(e)}")
        db.rollback()
        raise

# ============================================
# UNIVERSITY CATALOG
# ============================================

def upsert_universities(db: Session, records: Iterable[UniversityRecord], source: str = "seed") -> int:
    """Insert or replace catalog rows by university id."""
    count = 0
    try:
        for record in records:
            row = record.model_dump(mode="json")
            db.merge(University(source=source, **row))
            count += 1
        db.commit()
    except Exception as e:
        logger.error(f"[CATALOG] upsert_universities failed: {str(e)}")
        db.rollback()
        raise
    logger.info(f"[CATALOG] Upserted {count} universities from {source}")
    return count

def get_catalog_university(db: Session, university_id: str) -> Optional[UniversityRecord]:
    row = db.query(University).filter(University.id == university_id).first()
    return UniversityRecord.model_validate(row) if row else None

def count_catalog_universities(db: Session) -> int:
    return db.query(University).count()

def list_catalog_universities(
    db: Session,
    countries: Optional[List[str]] = None,
    fallback: bool = True,
) -> List[UniversityRecord]:
    """
    Catalog universities in the given countries, best ranked first.

    FAILSAFE: when the country filter matches nothing and fallback is set,
    the whole catalog is returned instead.
    """
    rows = db.query(University).order_by(University.ranking.is_(None), University.ranking, University.name).all()

    if countries:
        wanted = {normalize_country(c).lower() for c in countries}
        filtered = [r for r in rows if normalize_country(r.country).lower() in wanted]
        if filtered or not fallback:
            rows = filtered
        else:
            logger.warning(f"[CATALOG] No universities for {countries}, returning full catalog")

    return [UniversityRecord.model_validate(row) for row in rows]
