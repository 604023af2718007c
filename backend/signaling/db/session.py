from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from signaling.core.config import settings


def build_engine(database_url: str):
    """Create an engine for either SQLite or PostgreSQL."""
    db_url_lower = database_url.lower()
    is_postgres = "postgresql" in db_url_lower or "postgres" in db_url_lower
    is_sqlite = db_url_lower.startswith("sqlite")

    connect_args = {}
    if is_postgres:
        # Payloads are opaque SDP/ICE JSON, keep the client encoding explicit
        connect_args["client_encoding"] = "UTF8"
    if is_sqlite:
        # FastAPI runs sync work on a threadpool
        connect_args["check_same_thread"] = False

    return create_engine(
        database_url,
        pool_pre_ping=True,
        connect_args=connect_args,
        echo=False  # Set to True for SQL query debugging
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base=declarative_base()

def get_db():
    db=SessionLocal()
    try:
        yield db

    finally:
        db.close()
