from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from stockroom.core.config import settings


def build_engine(url: str, **kwargs) -> Engine:
    """
    Create a database engine for the given URL.

    SQLite needs two adjustments: connections are shared across the threads
    FastAPI runs sync dependencies in, and foreign keys are off by default, so
    they are switched on per connection. Without that, a product could point
    at a category that doesn't exist.
    """
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        engine = create_engine(url, connect_args=connect_args, **kwargs)

        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine
    return create_engine(url, **kwargs)


# Create database engine - manages connection pool
engine = build_engine(settings.DATABASE_URL)

# Create session factory - each request gets a new session
# autocommit=False: Changes require explicit commit (prevents accidental commits)
# autoflush=False: Don't auto-flush before queries
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all database models
Base = declarative_base()


def get_db():
    """
    Dependency for getting database session.

    The session is closed after the request completes (via finally block).
    Using yield makes this a generator dependency - FastAPI handles the cleanup.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        # Always close session, even if request raises an exception
        db.close()
