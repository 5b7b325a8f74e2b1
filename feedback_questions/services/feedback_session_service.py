# feedback_questions/services/feedback_session_service.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from feedback_questions.core.exceptions import assert_not_none
from feedback_questions.db.session import transaction
from feedback_questions.models.feedback_question import FeedbackQuestion
from feedback_questions.models.feedback_session import FeedbackSession

logger = logging.getLogger(__name__)


def get_feedback_session(
    db: Session,
    feedback_session_name: str,
    course_id: str,
) -> Optional[FeedbackSession]:
    assert_not_none(feedback_session_name=feedback_session_name, course_id=course_id)
    return db.get(
        FeedbackSession,
        {"feedback_session_name": feedback_session_name, "course_id": course_id},
    )


def session_exists(db: Session, feedback_session_name: str, course_id: str) -> bool:
    """
    Asks the database, not the identity map, so a row removed since the
    session object was loaded counts as gone.
    """
    assert_not_none(feedback_session_name=feedback_session_name, course_id=course_id)
    row = (
        db.query(FeedbackSession.course_id)
        .filter(
            FeedbackSession.feedback_session_name == feedback_session_name,
            FeedbackSession.course_id == course_id,
        )
        .first()
    )
    return row is not None


def add_question_to_session(fs: FeedbackSession, question: FeedbackQuestion) -> None:
    fs.questions.append(question)


def remove_question_from_session(fs: FeedbackSession, question: FeedbackQuestion) -> None:
    if question in fs.questions:
        fs.questions.remove(question)


def delete_feedback_session(
    db: Session,
    *,
    feedback_session_name: str,
    course_id: str,
) -> None:
    """
    Deletes the session and its questions: questions first, then the session.
    Missing sessions are ignored.
    """
    with transaction(db):
        fs = get_feedback_session(db, feedback_session_name, course_id)
        if fs is None:
            logger.info(f"Trying to delete non-existent session: {course_id}/{feedback_session_name}")
            return

        deleted = (
            db.query(FeedbackQuestion)
            .filter(
                FeedbackQuestion.feedback_session_name == feedback_session_name,
                FeedbackQuestion.course_id == course_id,
            )
            .delete(synchronize_session=False)
        )
        db.expire(fs, ["questions"])
        db.delete(fs)

    logger.info(f"Deleted session {course_id}/{feedback_session_name} with {deleted} questions")

