import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from quizapp.core.config import settings

logger = logging.getLogger(__name__)

# -----------------------
# Database URL
# -----------------------
DATABASE_URL = settings.sqlalchemy_database_url

# Hide password in logs
safe_db_url = (
    DATABASE_URL.replace(settings.db_password, "****")
    if settings.db_password
    else DATABASE_URL
)
logger.info(f"Database URL: {safe_db_url}")


# -----------------------
# SQLAlchemy engine
# -----------------------
def build_engine(url: str):
    if url.startswith("sqlite"):
        # Single shared connection so in-memory databases survive across sessions
        return create_engine(
            url,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        url,
        echo=settings.debug,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,
        connect_args={"connect_timeout": 5},
    )


engine = build_engine(DATABASE_URL)


@event.listens_for(engine, "connect")
def set_timezone(dbapi_conn, connection_record):
    if engine.dialect.name != "postgresql":
        return
    cursor = dbapi_conn.cursor()
    cursor.execute(f"SET timezone='{settings.timezone}'")
    cursor.close()


def verify_connection():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection successful ✅")
    except Exception as e:
        logger.error(f"Failed to connect to database ❌: {str(e)}")
        raise


# -----------------------
# Session and Base
# -----------------------
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# -----------------------
# Dependency for FastAPI
# -----------------------
def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database error occurred: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()
