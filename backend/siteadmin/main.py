"""
Main FastAPI application.
Backend of the Dakshayani site admin: blog CMS and AI studio.
"""
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from siteadmin.config import settings
from siteadmin.database import SessionLocal, engine
from siteadmin.rate_limiter import limiter
from siteadmin.services.blog import PostRepository

# Make sure the log file directory exists before the handler opens it
Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.FileHandler(settings.log_file),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parent.parent

# Above this size the cheaper quick_check replaces the full integrity_check
FULL_CHECK_MAX_MB = 100


def run_migrations():
    """
    Bring the schema to the latest Alembic revision.
    The app does not start on a half-migrated database.
    """
    alembic_cfg = Config(str(BACKEND_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))

    logger.info("Applying database migrations")
    try:
        command.upgrade(alembic_cfg, "head")
    except Exception as e:
        logger.critical(f"Migration to head failed: {e}")
        sys.exit(1)
    logger.info("Schema is at head")


def check_database_integrity():
    """
    Run SQLite's own consistency check on an existing database file.
    Corruption stops the startup before anything writes to it.
    """
    db_path = Path(settings.database_path)
    if not db_path.exists():
        logger.info(f"No database at {db_path} yet, integrity check skipped")
        return

    size_mb = db_path.stat().st_size / (1024 * 1024)
    pragma = "integrity_check" if size_mb <= FULL_CHECK_MAX_MB else "quick_check"

    try:
        with engine.connect() as conn:
            verdict = conn.execute(text(f"PRAGMA {pragma}")).scalar()
    except Exception as e:
        logger.critical(f"PRAGMA {pragma} could not run: {e}")
        sys.exit(1)

    if verdict != "ok":
        logger.critical(f"PRAGMA {pragma} reported corruption: {verdict}")
        sys.exit(1)

    logger.info(f"PRAGMA {pragma} ok ({size_mb:.1f}MB)")


def seed_blog():
    """Insert the sample posts on an empty blog."""
    db = SessionLocal()
    try:
        inserted = PostRepository(db).seed_default()
        if inserted:
            logger.info(f"Blog was empty, inserted {inserted} sample posts")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown.
    Runs the critical checks on startup.
    """
    logger.info("Starting site admin application")
    logger.info(f"Database: {settings.database_path}")
    logger.info(f"Storage: {settings.storage_dir}")
    logger.info(f"Log level: {settings.log_level}")

    Path(settings.database_path).parent.mkdir(parents=True, exist_ok=True)
    Path(settings.storage_dir).mkdir(parents=True, exist_ok=True)

    check_database_integrity()
    run_migrations()
    seed_blog()

    yield

    logger.info("Shutting down site admin application")


app = FastAPI(
    title="Dakshayani Site Admin API",
    description="Blog CMS and AI studio",
    version="1.0.0",
    lifespan=lifespan
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint (no authentication)
@app.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "ok"}


# Routers
from siteadmin.routes import admin_blog, ai, auth, blog
app.include_router(auth.router, prefix="/api")
app.include_router(blog.router, prefix="/api")
app.include_router(admin_blog.router, prefix="/api")
app.include_router(ai.router, prefix="/api")
