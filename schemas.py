"""
Pydantic schemas: domain records (profile, university, fit results) and
API requests and responses.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from errors import DataValidationError
from models import (
    CategoryEnum, DegreeLevel, ExamStatus, FundingPlan, SopStatus, TaskCategory, TaskPriority
)
from normalization import (
    generate_university_id, normalize_degree, normalize_exam_status, normalize_sop_status, parse_gpa
)

EXAMS = ("ielts", "toefl", "gre", "gmat")

# ============================================
# PROFILE
# ============================================

class ProfileFields(BaseModel):
    """Profile attributes shared by onboarding, updates and the scoring record."""
    name: Optional[str] = None

    # Academic background
    education_level: Optional[str] = None
    degree: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[int] = None
    gpa: Optional[float] = Field(default=None, ge=0, le=100)

    # Study goals
    intended_degree: Optional[DegreeLevel] = None
    field_of_study: Optional[str] = None
    target_intake_year: Optional[int] = None
    preferred_countries: List[str] = []

    # Budget (annual, USD)
    budget_min: Optional[int] = Field(default=None, ge=0)
    budget_max: Optional[int] = Field(default=None, ge=0)
    funding_plan: Optional[FundingPlan] = None

    # Exams & readiness
    ielts_status: ExamStatus = ExamStatus.NOT_STARTED
    ielts_score: Optional[float] = None
    toefl_status: ExamStatus = ExamStatus.NOT_STARTED
    toefl_score: Optional[float] = None
    gre_status: ExamStatus = ExamStatus.NOT_STARTED
    gre_score: Optional[float] = None
    gmat_status: ExamStatus = ExamStatus.NOT_STARTED
    gmat_score: Optional[float] = None
    sop_status: SopStatus = SopStatus.NOT_STARTED

    @field_validator("gpa", mode="before")
    @classmethod
    def _parse_gpa(cls, value):
        return parse_gpa(value)

    @field_validator("intended_degree", mode="before")
    @classmethod
    def _normalize_degree(cls, value):
        if value is None or isinstance(value, DegreeLevel):
            return value
        return normalize_degree(value)

    @field_validator("funding_plan", mode="before")
    @classmethod
    def _normalize_funding(cls, value):
        if isinstance(value, str):
            value = value.strip().lower().replace("_", "-").replace(" ", "-")
            return value or None
        return value

    @field_validator("ielts_status", "toefl_status", "gre_status", "gmat_status", mode="before")
    @classmethod
    def _normalize_exam_status(cls, value):
        if isinstance(value, ExamStatus) or not (value is None or isinstance(value, str)):
            return value
        return normalize_exam_status(value)

    @field_validator("sop_status", mode="before")
    @classmethod
    def _normalize_sop_status(cls, value):
        if isinstance(value, SopStatus) or not (value is None or isinstance(value, str)):
            return value
        return normalize_sop_status(value)

    @field_validator("preferred_countries", mode="before")
    @classmethod
    def _default_countries(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [c.strip() for c in value.split(",") if c.strip()]
        return value

    @model_validator(mode="after")
    def _check_budget_bounds(self):
        if self.budget_min is not None and self.budget_max is not None and self.budget_min > self.budget_max:
            raise DataValidationError(
                f"budget_min ({self.budget_min}) must not exceed budget_max ({self.budget_max})"
            )
        return self


class ProfileData(ProfileFields):
    """Student profile as consumed by the fit scorer and the profile evaluator."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    email: Optional[str] = None

    def exam_statuses(self) -> Dict[str, ExamStatus]:
        return {exam: getattr(self, f"{exam}_status") for exam in EXAMS}


class UserProfileCreate(ProfileFields):
    name: str
    email: EmailStr
    final_submit: Optional[bool] = False  # Flag to mark onboarding as complete


class ProfileUpdate(ProfileFields):
    pass


class ProfileResponse(ProfileData):
    onboarding_completed: bool = False
    current_stage: int = 1


class OnboardingResponse(BaseModel):
    onboarding_completed: bool
    current_stage: int
    user_id: int

# ============================================
# UNIVERSITY
# ============================================

class ProgramRequirements(BaseModel):
    min_gpa: Optional[float] = Field(default=None, ge=0)
    ielts_min: Optional[float] = None
    toefl_min: Optional[float] = None
    gre_required: bool = False
    gmat_required: bool = False


class Program(BaseModel):
    name: str = ""
    degree: Optional[DegreeLevel] = None
    field: Optional[str] = None
    duration: Optional[str] = None
    tuition_per_year: Optional[int] = Field(default=None, ge=0)
    requirements: ProgramRequirements = Field(default_factory=ProgramRequirements)

    @field_validator("degree", mode="before")
    @classmethod
    def _normalize_degree(cls, value):
        if value is None or isinstance(value, DegreeLevel):
            return value
        return normalize_degree(value)


class UniversityRecord(BaseModel):
    """Normalized university description used for scoring."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    name: str
    country: str
    city: Optional[str] = None
    website: Optional[str] = None
    ranking: Optional[int] = Field(default=None, ge=0)
    acceptance_rate: Optional[float] = Field(default=None, ge=0, le=100)
    international_student_ratio: Optional[float] = Field(default=None, ge=0, le=100)
    scholarships_available: bool = False
    tuition_fee: Optional[int] = Field(default=None, ge=0)
    living_cost_per_year: Optional[int] = Field(default=None, ge=0)
    application_fee: Optional[int] = None
    description: Optional[str] = None
    programs: List[Program] = []

    @model_validator(mode="after")
    def _check_record(self):
        if not self.programs:
            raise DataValidationError(f"University '{self.name}' has no programs")
        if not self.id:
            self.id = generate_university_id(self.name, self.country)
        return self


class FitResult(BaseModel):
    university: UniversityRecord
    score: int
    category: CategoryEnum
    reasons: List[str] = []
    risks: List[str] = []
    estimated_cost: Optional[int] = None
    acceptance_chance: str = "low"  # high | medium | low


class CategorizedRecommendations(BaseModel):
    dream: List[FitResult] = []
    target: List[FitResult] = []
    safe: List[FitResult] = []

    @property
    def count(self) -> int:
        return len(self.dream) + len(self.target) + len(self.safe)


class RecommendationsResponse(BaseModel):
    message: str = ""
    source: str = "catalog"  # catalog | live
    recommendations: CategorizedRecommendations = Field(default_factory=CategorizedRecommendations)
    count: int = 0


class UniversityListResponse(BaseModel):
    source: str = "catalog"
    universities: List[UniversityRecord] = []
    count: int = 0


class SeedResponse(BaseModel):
    message: str
    count: int

# ============================================
# SELECTIONS
# ============================================

class SelectionStatus(str, Enum):
    OK = "OK"
    ALREADY_SHORTLISTED = "ALREADY_SHORTLISTED"
    ALREADY_LOCKED = "ALREADY_LOCKED"


class UniversityMeta(BaseModel):
    """Display fields stored next to a selection so later reads need no directory lookup."""
    name: Optional[str] = None
    country: Optional[str] = None
    tuition_fee: Optional[int] = None
    living_cost_per_year: Optional[int] = None

    @classmethod
    def from_record(cls, record: UniversityRecord) -> "UniversityMeta":
        return cls(
            name=record.name,
            country=record.country,
            tuition_fee=record.tuition_fee,
            living_cost_per_year=record.living_cost_per_year,
        )


class SelectionResult(BaseModel):
    status: SelectionStatus = SelectionStatus.OK
    university_id: str
    category: Optional[CategoryEnum] = None
    current_stage: int = 1
    tasks_created: int = 0
    tasks_deleted: int = 0


class ShortlistRequest(BaseModel):
    university_id: str
    category: CategoryEnum = CategoryEnum.TARGET
    university_name: Optional[str] = None
    country: Optional[str] = None
    tuition_fee: Optional[int] = None
    living_cost_per_year: Optional[int] = None

    def meta(self) -> UniversityMeta:
        return UniversityMeta(
            name=self.university_name,
            country=self.country,
            tuition_fee=self.tuition_fee,
            living_cost_per_year=self.living_cost_per_year,
        )


class CategoryUpdateRequest(BaseModel):
    category: CategoryEnum


class LockRequest(BaseModel):
    university_id: str
    university_name: Optional[str] = None
    country: Optional[str] = None

    def meta(self) -> UniversityMeta:
        return UniversityMeta(name=self.university_name, country=self.country)


class ShortlistEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    university_id: str
    category: CategoryEnum
    university_name: Optional[str] = None
    country: Optional[str] = None
    tuition_fee: Optional[int] = None
    living_cost_per_year: Optional[int] = None
    created_at: Optional[datetime] = None


class LockedEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    university_id: str
    university_name: Optional[str] = None
    country: Optional[str] = None
    locked_at: Optional[datetime] = None


class SelectionsResponse(BaseModel):
    shortlisted: List[ShortlistEntryResponse] = []
    locked: List[LockedEntryResponse] = []
    current_stage: int = 1


class StageResponse(BaseModel):
    current_stage: int
    label: str

# ============================================
# PROFILE STRENGTH
# ============================================

class SectionStrength(BaseModel):
    status: str = "missing"  # strong / average / weak / missing
    score: int = 0
    max_score: int = 0


class ProfileBreakdown(BaseModel):
    completion: Dict[str, SectionStrength] = {}
    strength: Dict[str, SectionStrength] = {}


class ProfileEvaluation(BaseModel):
    completion: int = 0
    strength: int = 0
    breakdown: ProfileBreakdown = Field(default_factory=ProfileBreakdown)
    next_actions: List[str] = []

# ============================================
# TASKS
# ============================================

class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: TaskCategory = TaskCategory.GENERAL
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    university_id: Optional[str] = None
    university_name: Optional[str] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[TaskCategory] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    completed: Optional[bool] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = ""
    category: Optional[TaskCategory] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    university_id: Optional[str] = None
    university_name: Optional[str] = None
    due_date: Optional[datetime] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    ai_generated: bool = False


class TaskGenerationResponse(BaseModel):
    message: str
    tasks: List[TaskResponse] = []

# Error Schema
class ErrorResponse(BaseModel):
    status: str = "ERROR"
    error: str
    message: str
