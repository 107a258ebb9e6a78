from sqlalchemy import (
    Column, Integer, String, Boolean, Float, ForeignKey, DateTime, Text, JSON, UniqueConstraint
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
import enum

Base = declarative_base()

# Enums
class StageEnum(int, enum.Enum):
    BUILDING_PROFILE = 1
    DISCOVERING = 2
    FINALIZING = 3
    PREPARING_APPLICATIONS = 4

class CategoryEnum(str, enum.Enum):
    DREAM = "dream"
    TARGET = "target"
    SAFE = "safe"

class DegreeLevel(str, enum.Enum):
    BACHELORS = "bachelors"
    MASTERS = "masters"
    MBA = "mba"
    PHD = "phd"

class FundingPlan(str, enum.Enum):
    SELF_FUNDED = "self-funded"
    SCHOLARSHIP = "scholarship"
    LOAN = "loan"
    MIXED = "mixed"

class ExamStatus(str, enum.Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    NOT_REQUIRED = "not-required"

class SopStatus(str, enum.Enum):
    NOT_STARTED = "not-started"
    DRAFT = "draft"
    READY = "ready"

class TaskPriority(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class TaskCategory(str, enum.Enum):
    DOCUMENT = "document"
    EXAM = "exam"
    APPLICATION = "application"
    GENERAL = "general"

# Models
class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255))
    email = Column(String(255), unique=True, nullable=False, index=True)

    # Academic background
    education_level = Column(String(100))
    degree = Column(String(255))
    major = Column(String(255))
    graduation_year = Column(Integer)
    gpa = Column(Float)

    # Study goals
    intended_degree = Column(String(50))
    field_of_study = Column(String(255))
    target_intake_year = Column(Integer)
    preferred_countries = Column(JSON, default=list)

    # Budget
    budget_min = Column(Integer)
    budget_max = Column(Integer)
    funding_plan = Column(String(50))

    # Exams & readiness
    ielts_status = Column(String(50), default=ExamStatus.NOT_STARTED.value)
    ielts_score = Column(Float)
    toefl_status = Column(String(50), default=ExamStatus.NOT_STARTED.value)
    toefl_score = Column(Float)
    gre_status = Column(String(50), default=ExamStatus.NOT_STARTED.value)
    gre_score = Column(Float)
    gmat_status = Column(String(50), default=ExamStatus.NOT_STARTED.value)
    gmat_score = Column(Float)
    sop_status = Column(String(50), default=SopStatus.NOT_STARTED.value)

    onboarding_completed = Column(Boolean, default=False)
    current_stage = Column(Integer, nullable=False, default=StageEnum.BUILDING_PROFILE.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class Shortlist(Base):
    __tablename__ = "shortlists"
    __table_args__ = (UniqueConstraint("user_id", "university_id", name="uq_shortlist_user_university"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    university_id = Column(String(512), nullable=False)
    category = Column(String(20), nullable=False, default=CategoryEnum.TARGET.value)

    # Denormalized display fields (the directory may be unavailable later)
    university_name = Column(String(255))
    country = Column(String(100))
    tuition_fee = Column(Integer)
    living_cost_per_year = Column(Integer)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

class LockedUniversity(Base):
    __tablename__ = "locked_universities"
    __table_args__ = (UniqueConstraint("user_id", "university_id", name="uq_locked_user_university"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    university_id = Column(String(512), nullable=False)
    university_name = Column(String(255))
    country = Column(String(100))
    locked_at = Column(DateTime(timezone=True), server_default=func.now())

class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    university_id = Column(String(512), index=True)
    university_name = Column(String(255))
    title = Column(String(255), nullable=False)
    description = Column(Text)
    category = Column(String(20), default=TaskCategory.GENERAL.value)
    priority = Column(String(20), nullable=False, default=TaskPriority.MEDIUM.value)
    due_date = Column(DateTime(timezone=True))
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True))
    ai_generated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class University(Base):
    """Stored university catalog (seeded or imported records)."""
    __tablename__ = "universities"

    id = Column(String(512), primary_key=True)
    name = Column(String(255), nullable=False)
    country = Column(String(100), nullable=False, index=True)
    city = Column(String(255))
    website = Column(String(255))
    ranking = Column(Integer)
    acceptance_rate = Column(Float)
    international_student_ratio = Column(Float)
    scholarships_available = Column(Boolean, default=False)
    tuition_fee = Column(Integer)
    living_cost_per_year = Column(Integer)
    application_fee = Column(Integer)
    description = Column(Text)
    programs = Column(JSON, nullable=False, default=list)
    source = Column(String(20), default="seed")
