# feedback_questions/db/session.py
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from feedback_questions.core.config import settings

logger = logging.getLogger(__name__)

# SQLite needs check_same_thread disabled for the threadpool
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if "sqlite" in settings.DATABASE_URL else {},
)

# autoflush stays off: renumbering mutates several rows before a single flush
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Unit of work over the current session transaction.
    Commits when the block finishes, rolls everything back if it raises.
    """
    try:
        yield db
        db.commit()
    except Exception:
        logger.info("Rolling back transaction")
        db.rollback()
        raise
