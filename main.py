import logging
from typing import List, Optional

from fastapi import FastAPI, Depends, Query, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from config import settings
import crud
import schemas
from database import get_db, verify_tables_exist
from errors import DataValidationError, ExternalSourceError, NotFoundError
from gemini_client import generate_recommendation_summary
from normalization import decode_university_id
from profile_strength import evaluate_profile
from scoring import compute_recommendations
from seed_data import SEED_UNIVERSITIES
from stage import stage_label
from university_source import UniversityDirectory

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(title="AI Counsellor Backend")

# Ensure database tables exist on startup
@app.on_event("startup")
def startup_event():
    settings.validate()
    verify_tables_exist()

@app.on_event("shutdown")
def shutdown_event():
    directory = getattr(app.state, "directory", None)
    if directory is not None:
        directory.close()

# Global Custom Error Handlers
def _error(status_code: int, error: str, message: str, **extra) -> JSONResponse:
    content = schemas.ErrorResponse(error=error, message=message).model_dump()
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert 422 to 400 for frontend compatibility."""
    return _error(400, "VALIDATION_ERROR", f"Invalid data format: {str(exc)}")

@app.exception_handler(DataValidationError)
async def data_validation_handler(request: Request, exc: DataValidationError):
    return _error(400, "VALIDATION_ERROR", str(exc))

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error(404, "NOT_FOUND", str(exc))

@app.exception_handler(ExternalSourceError)
async def external_source_handler(request: Request, exc: ExternalSourceError):
    logger.error(f"[DIRECTORY] {request.url.path}: {str(exc)}")
    return _error(
        503,
        "EXTERNAL_SOURCE_ERROR",
        "Unable to reach the university directory. Please try again later.",
        isTemporaryError=True,
    )

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions."""
    logger.exception(f"Global Error: {str(exc)}")
    return _error(500, "INTERNAL_SERVER_ERROR", "An unexpected error occurred. Please try again.")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def get_directory(request: Request) -> UniversityDirectory:
    """Dependency to get the app-wide university directory client."""
    directory = getattr(request.app.state, "directory", None)
    if directory is None:
        directory = UniversityDirectory()
        request.app.state.directory = directory
    return directory

def _ensure_catalog(db: Session) -> int:
    count = crud.count_catalog_universities(db)
    if count == 0:
        logger.info("[CATALOG] No universities found. Seeding database...")
        count = crud.upsert_universities(db, SEED_UNIVERSITIES, source="seed")
    return count

def _require_onboarded(db: Session, email: str):
    profile = crud.require_user_by_email(db, email)
    if not profile.onboarding_completed:
        raise DataValidationError("Profile incomplete. Please complete onboarding.")
    return profile

def _resolve_meta(db: Session, university_id: str, meta: schemas.UniversityMeta) -> schemas.UniversityMeta:
    """Fill missing display fields from the catalog, or from the id itself."""
    if meta.name and meta.country:
        return meta

    record = crud.get_catalog_university(db, university_id)
    if record:
        known = schemas.UniversityMeta.from_record(record)
    else:
        decoded = decode_university_id(university_id)
        known = schemas.UniversityMeta(name=decoded[0], country=decoded[1]) if decoded else schemas.UniversityMeta()

    return schemas.UniversityMeta(
        name=meta.name or known.name,
        country=meta.country or known.country,
        tuition_fee=meta.tuition_fee if meta.tuition_fee is not None else known.tuition_fee,
        living_cost_per_year=(
            meta.living_cost_per_year if meta.living_cost_per_year is not None else known.living_cost_per_year
        ),
    )

def _recommendations_response(profile, universities, source: str) -> schemas.RecommendationsResponse:
    profile_data = crud.profile_to_data(profile)
    recommendations = compute_recommendations(
        profile_data,
        universities,
        per_category_limit=settings.RECOMMENDATIONS_PER_CATEGORY,
    )
    return schemas.RecommendationsResponse(
        message=generate_recommendation_summary(profile_data, recommendations),
        source=source,
        recommendations=recommendations,
        count=recommendations.count,
    )

# ============================================
# ENDPOINTS
# ============================================

@app.get("/")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "ai-counsellor-backend"}

# ---------- Profile ----------

@app.post("/onboarding", response_model=schemas.OnboardingResponse)
async def onboarding(
    profile_data: schemas.UserProfileCreate,
    db: Session = Depends(get_db)
):
    """
    Complete user onboarding with UPSERT logic.
    If profile exists -> UPDATE
    If new -> INSERT
    If final_submit=true -> mark onboarding complete
    """
    logger.info(f"[ENDPOINT] /onboarding called for {profile_data.email}")
    profile = crud.upsert_profile(db, profile_data)
    return schemas.OnboardingResponse(
        onboarding_completed=profile.onboarding_completed,
        current_stage=profile.current_stage,
        user_id=profile.id
    )

@app.get("/profile", response_model=schemas.ProfileResponse)
async def get_profile(email: str, db: Session = Depends(get_db)):
    return crud.require_user_by_email(db, email)

@app.put("/profile", response_model=schemas.ProfileResponse)
async def update_profile(
    email: str,
    updates: schemas.ProfileUpdate,
    db: Session = Depends(get_db)
):
    profile = crud.require_user_by_email(db, email)
    return crud.update_profile(db, profile.id, updates)

@app.get("/profile-strength", response_model=schemas.ProfileEvaluation)
async def profile_strength(email: str, db: Session = Depends(get_db)):
    profile = crud.require_user_by_email(db, email)
    return evaluate_profile(crud.profile_to_data(profile))

# ---------- Recommendations ----------

@app.get("/recommendations", response_model=schemas.RecommendationsResponse)
async def get_recommendations(email: str, db: Session = Depends(get_db)):
    """
    Score the stored catalog against the student's profile.
    Returns 404 if user not found, 400 if onboarding is incomplete.
    Empty buckets are NOT an error.
    """
    logger.info(f"[ENDPOINT] /recommendations called for {email}")
    profile = _require_onboarded(db, email)
    _ensure_catalog(db)

    universities = crud.list_catalog_universities(db, countries=profile.preferred_countries or None)
    return _recommendations_response(profile, universities, source="catalog")

@app.get("/recommendations/live", response_model=schemas.RecommendationsResponse)
def get_live_recommendations(
    email: str,
    db: Session = Depends(get_db),
    directory: UniversityDirectory = Depends(get_directory)
):
    """Score universities fetched from the live directory. 503 when the directory is down."""
    logger.info(f"[ENDPOINT] /recommendations/live called for {email}")
    profile = _require_onboarded(db, email)

    countries = profile.preferred_countries or ["United States"]
    universities = directory.fetch_for_countries(countries)
    return _recommendations_response(profile, universities, source="live")

# ---------- Universities ----------

@app.get("/universities", response_model=schemas.UniversityListResponse)
async def list_universities(
    country: Optional[List[str]] = Query(default=None),
    db: Session = Depends(get_db)
):
    _ensure_catalog(db)
    universities = crud.list_catalog_universities(db, countries=country, fallback=False)
    return schemas.UniversityListResponse(universities=universities, count=len(universities))

@app.post("/universities/seed", response_model=schemas.SeedResponse)
async def seed_universities(db: Session = Depends(get_db)):
    existing_count = crud.count_catalog_universities(db)
    if existing_count > 0:
        return schemas.SeedResponse(message="Universities already seeded", count=existing_count)

    count = crud.upsert_universities(db, SEED_UNIVERSITIES, source="seed")
    return schemas.SeedResponse(message="Universities seeded successfully", count=count)

@app.get("/universities/live/search", response_model=schemas.UniversityListResponse)
def search_live_universities(q: str, directory: UniversityDirectory = Depends(get_directory)):
    universities = directory.search(q)
    return schemas.UniversityListResponse(source="live", universities=universities, count=len(universities))

@app.get("/universities/live/by-country/{country}", response_model=schemas.UniversityListResponse)
def live_universities_by_country(country: str, directory: UniversityDirectory = Depends(get_directory)):
    universities = directory.fetch_by_country(country)
    return schemas.UniversityListResponse(source="live", universities=universities, count=len(universities))

@app.get("/universities/live/{university_id}", response_model=schemas.UniversityRecord)
def live_university_details(university_id: str, directory: UniversityDirectory = Depends(get_directory)):
    record = directory.get_by_id(university_id)
    if not record:
        raise NotFoundError("University not found in the directory")
    return record

@app.get("/universities/{university_id}", response_model=schemas.UniversityRecord)
async def get_university(university_id: str, db: Session = Depends(get_db)):
    record = crud.get_catalog_university(db, university_id)
    if not record:
        raise NotFoundError("University not found")
    return record

# ---------- Shortlist & Lock ----------

@app.post("/shortlist", response_model=schemas.SelectionResult)
async def shortlist_university(
    email: str,
    request: schemas.ShortlistRequest,
    db: Session = Depends(get_db)
):
    profile = crud.require_user_by_email(db, email)
    meta = _resolve_meta(db, request.university_id, request.meta())
    return crud.add_to_shortlist(db, profile.id, request.university_id, request.category, meta)

@app.patch("/shortlist/{university_id}", response_model=schemas.ShortlistEntryResponse)
async def update_shortlist_category(
    university_id: str,
    email: str,
    request: schemas.CategoryUpdateRequest,
    db: Session = Depends(get_db)
):
    profile = crud.require_user_by_email(db, email)
    return crud.update_shortlist_category(db, profile.id, university_id, request.category)

@app.delete("/shortlist/{university_id}", response_model=schemas.SelectionResult)
async def remove_shortlisted_university(university_id: str, email: str, db: Session = Depends(get_db)):
    profile = crud.require_user_by_email(db, email)
    return crud.remove_from_shortlist(db, profile.id, university_id)

@app.post("/lock", response_model=schemas.SelectionResult)
async def lock_university(
    email: str,
    request: schemas.LockRequest,
    db: Session = Depends(get_db)
):
    profile = crud.require_user_by_email(db, email)
    meta = _resolve_meta(db, request.university_id, request.meta())
    return crud.lock_university(db, profile.id, request.university_id, meta)

@app.delete("/lock/{university_id}", response_model=schemas.SelectionResult)
async def unlock_university(university_id: str, email: str, db: Session = Depends(get_db)):
    profile = crud.require_user_by_email(db, email)
    return crud.unlock_university(db, profile.id, university_id)

@app.get("/selections", response_model=schemas.SelectionsResponse)
async def get_selections(email: str, db: Session = Depends(get_db)):
    profile = crud.require_user_by_email(db, email)
    return schemas.SelectionsResponse(
        shortlisted=[schemas.ShortlistEntryResponse.model_validate(s) for s in crud.get_user_shortlists(db, profile.id)],
        locked=[schemas.LockedEntryResponse.model_validate(entry) for entry in crud.get_locked_universities(db, profile.id)],
        current_stage=crud.get_stage(db, profile.id),
    )

@app.get("/stage", response_model=schemas.StageResponse)
async def get_stage(email: str, db: Session = Depends(get_db)):
    profile = crud.require_user_by_email(db, email)
    current_stage = crud.get_stage(db, profile.id)
    return schemas.StageResponse(current_stage=current_stage, label=stage_label(current_stage))

# ---------- Tasks ----------

@app.get("/tasks", response_model=List[schemas.TaskResponse])
async def list_tasks(
    email: str,
    university_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    profile = crud.require_user_by_email(db, email)
    return crud.get_tasks(db, profile.id, university_id)

@app.post("/tasks", response_model=schemas.TaskResponse)
async def create_task(
    email: str,
    task_data: schemas.TaskCreate,
    db: Session = Depends(get_db)
):
    profile = crud.require_user_by_email(db, email)
    return crud.create_task(db, profile.id, task_data)

@app.put("/tasks/{task_id}", response_model=schemas.TaskResponse)
async def update_task(
    task_id: int,
    email: str,
    updates: schemas.TaskUpdate,
    db: Session = Depends(get_db)
):
    profile = crud.require_user_by_email(db, email)
    return crud.update_task(db, profile.id, task_id, updates)

@app.delete("/tasks/university/{university_id}")
async def delete_university_tasks(university_id: str, email: str, db: Session = Depends(get_db)):
    profile = crud.require_user_by_email(db, email)
    deleted = crud.delete_university_tasks(db, profile.id, university_id)
    return {"message": "Tasks deleted", "deleted": deleted}

@app.delete("/tasks/{task_id}")
async def delete_task(task_id: int, email: str, db: Session = Depends(get_db)):
    profile = crud.require_user_by_email(db, email)
    crud.delete_task(db, profile.id, task_id)
    return {"message": "Task deleted"}

@app.post("/tasks/generate/{university_id}", response_model=schemas.TaskGenerationResponse)
async def generate_tasks(university_id: str, email: str, db: Session = Depends(get_db)):
    """Generate the application checklist for a locked university."""
    profile = crud.require_user_by_email(db, email)
    locked = crud.get_locked_entry(db, profile.id, university_id)
    if not locked:
        raise DataValidationError("University must be locked first")

    tasks, created = crud.generate_university_tasks(db, profile.id, university_id, locked.university_name)
    message = "Tasks generated successfully" if created else "Tasks already exist for this university"
    return schemas.TaskGenerationResponse(
        message=message,
        tasks=[schemas.TaskResponse.model_validate(t) for t in tasks]
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
