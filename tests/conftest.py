"""
Shared fixtures: an in-memory SQLite database per test and a session
holding four questions numbered 1..4.
"""

import os

# Must be set before the package creates its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from feedback_questions.db.base import Base
from feedback_questions.db.session import get_db
from feedback_questions.main import app
from feedback_questions.models.feedback_question import FeedbackQuestion
from feedback_questions.models.feedback_session import FeedbackSession
from feedback_questions.schemas.feedback_session import FeedbackSessionAttributes

from helpers import COURSE_ID, OLD_TIMESTAMP, SESSION_NAME

# Test database (in-memory SQLite)
TEST_DATABASE_URL = "sqlite://"


@pytest.fixture(scope="function")
def db_session():
    """Create a test database session."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def feedback_session(db_session):
    """An empty feedback session."""
    fs = FeedbackSession(feedback_session_name=SESSION_NAME, course_id=COURSE_ID)
    db_session.add(fs)
    db_session.commit()
    return FeedbackSessionAttributes(feedback_session_name=SESSION_NAME, course_id=COURSE_ID)


@pytest.fixture
def four_questions(db_session, feedback_session):
    """
    Questions "Q1".."Q4" stored directly with numbers 1..4 and an old
    updated_at, so that timestamp changes are easy to spot.
    Returns {text: id}.
    """
    ids = {}
    for number in range(1, 5):
        fq = FeedbackQuestion(
            id=f"q{number}",
            feedback_session_name=SESSION_NAME,
            course_id=COURSE_ID,
            question_number=number,
            question_text=f"Q{number}",
            question_type="TEXT",
            giver_type="STUDENTS",
            recipient_type="SELF",
            number_of_entities_to_give_feedback_to=1,
            show_responses_to=["INSTRUCTORS"],
            show_giver_name_to=["INSTRUCTORS"],
            show_recipient_name_to=["INSTRUCTORS"],
            created_at=OLD_TIMESTAMP,
            updated_at=OLD_TIMESTAMP,
        )
        db_session.add(fq)
        ids[f"Q{number}"] = fq.id
    db_session.commit()
    return ids


@pytest.fixture
def client(db_session):
    """TestClient bound to the test database."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
