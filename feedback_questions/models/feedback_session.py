# feedback_questions/models/feedback_session.py
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from feedback_questions.db.base import Base

class FeedbackSession(Base):
    __tablename__ = "feedback_sessions"

    feedback_session_name = Column(String(255), primary_key=True)
    course_id = Column(String(100), primary_key=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Owned questions. Deleting the session never touches them implicitly:
    # callers remove the questions first (see feedback_session_service).
    questions = relationship(
        "FeedbackQuestion",
        back_populates="feedback_session",
        passive_deletes="all",
        order_by="FeedbackQuestion.question_number",
    )
