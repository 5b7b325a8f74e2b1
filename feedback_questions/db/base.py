# feedback_questions/db/base.py
from sqlalchemy.orm import declarative_base

Base = declarative_base()

from feedback_questions.models.feedback_session import FeedbackSession  # noqa
from feedback_questions.models.feedback_question import FeedbackQuestion  # noqa
