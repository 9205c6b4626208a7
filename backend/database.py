# backend/database.py
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from config import settings

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

# Hosted Postgres hands out postgres:// URLs, SQLAlchemy requires postgresql://
if SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)


def connect_args_for(url: str) -> dict:
    if "sqlite" in url:
        return {"check_same_thread": False}  # SQLite only
    return {}


engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args=connect_args_for(SQLALCHEMY_DATABASE_URL)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """Commit everything done inside the block as one unit, or nothing at all."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def init_db():
    # Models register themselves on Base.metadata when imported
    import models.users  # noqa: F401
    import models.product  # noqa: F401
    import models.movement  # noqa: F401
    import models.log  # noqa: F401

    Base.metadata.create_all(bind=engine)
