# feedback_questions/models/feedback_question.py
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKeyConstraint,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from feedback_questions.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeedbackQuestion(Base):
    __tablename__ = "feedback_questions"
    __table_args__ = (
        ForeignKeyConstraint(
            ["feedback_session_name", "course_id"],
            ["feedback_sessions.feedback_session_name", "feedback_sessions.course_id"],
        ),
    )

    # key: child of the owning session
    feedback_session_name = Column(String(255), primary_key=True)
    course_id = Column(String(100), primary_key=True, index=True)
    id = Column(String(64), primary_key=True)

    # no unique constraint: a shift passes through duplicates before it flushes
    question_number = Column(Integer, nullable=False, index=True)

    question_text = Column(Text, nullable=False)
    question_meta_data = Column(Text, nullable=True)
    question_type = Column(String(30), nullable=False)

    giver_type = Column(String(50), nullable=False, index=True)
    recipient_type = Column(String(50), nullable=False)
    number_of_entities_to_give_feedback_to = Column(Integer, nullable=False)

    show_responses_to = Column(JSON, nullable=False, default=list)
    show_giver_name_to = Column(JSON, nullable=False, default=list)
    show_recipient_name_to = Column(JSON, nullable=False, default=list)

    # set from Python, not onupdate: renumbering must be able to keep updated_at
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    feedback_session = relationship("FeedbackSession", back_populates="questions")
