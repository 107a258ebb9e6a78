from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker
from config import settings
from models import Base
import logging

# Configure logger
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

def get_db_connection(database_url: str | None = None):
    """Create and return database engine."""
    url = database_url or settings.DATABASE_URL
    if not url:
        raise ValueError("DATABASE_URL environment variable not set")

    connect_args = {}
    if url.startswith("sqlite"):
        # Sessions are used from FastAPI's threadpool
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args)

engine = get_db_connection()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def verify_tables_exist(bind=None):
    """Ensure required tables exist, create if missing."""
    bind = bind or engine
    existing_tables = set(inspect(bind).get_table_names())
    missing = [name for name in Base.metadata.tables if name not in existing_tables]

    if missing:
        logger.info(f"Creating missing tables: {missing}")
        Base.metadata.create_all(bind=bind)
    return missing
