# feedback_questions/api/v1/endpoints/questions.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from feedback_questions.core.exceptions import (
    EntityAlreadyExistsError,
    EntityDoesNotExistError,
    InvalidParametersError,
)
from feedback_questions.db.session import get_db
from feedback_questions.schemas.feedback_question import (
    FeedbackQuestionAttributes,
    FeedbackQuestionCreate,
    FeedbackQuestionEdit,
    FeedbackQuestionUpdate,
)
from feedback_questions.schemas.feedback_session import FeedbackSessionAttributes
from feedback_questions.services import feedback_question_service

router = APIRouter(
    prefix="/courses/{course_id}/sessions/{feedback_session_name}/questions",
    tags=["questions"],
)


def _to_http_error(e: Exception) -> HTTPException:
    if isinstance(e, EntityDoesNotExistError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, InvalidParametersError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.messages)
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/", response_model=List[FeedbackQuestionAttributes])
def list_questions(
    course_id: str,
    feedback_session_name: str,
    db: Session = Depends(get_db),
):
    """
    Questions of the session, in question number order.
    """
    return feedback_question_service.list_questions_for_session(
        db, feedback_session_name=feedback_session_name, course_id=course_id
    )


@router.get("/{question_id}", response_model=FeedbackQuestionAttributes)
def get_question(
    course_id: str,
    feedback_session_name: str,
    question_id: str,
    db: Session = Depends(get_db),
):
    session = FeedbackSessionAttributes(
        feedback_session_name=feedback_session_name, course_id=course_id
    )
    q = feedback_question_service.get_feedback_question(
        db, session=session, question_id=question_id
    )
    if not q:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Question not found",
        )
    return q


@router.post("/", response_model=FeedbackQuestionAttributes, status_code=status.HTTP_201_CREATED)
def create_question(
    course_id: str,
    feedback_session_name: str,
    obj_in: FeedbackQuestionCreate,
    db: Session = Depends(get_db),
):
    """
    Adds a question at obj_in.question_number (appends when 0).
    """
    session = FeedbackSessionAttributes(
        feedback_session_name=feedback_session_name, course_id=course_id
    )
    try:
        return feedback_question_service.place_question(
            db, session=session, question=obj_in, is_update=False
        )
    except (EntityDoesNotExistError, InvalidParametersError, EntityAlreadyExistsError) as e:
        raise _to_http_error(e)


@router.put("/{question_id}", response_model=FeedbackQuestionAttributes)
def update_question(
    course_id: str,
    feedback_session_name: str,
    question_id: str,
    obj_in: FeedbackQuestionEdit,
    db: Session = Depends(get_db),
):
    """
    Edits a question; a new question_number moves it.
    """
    session = FeedbackSessionAttributes(
        feedback_session_name=feedback_session_name, course_id=course_id
    )
    q = feedback_question_service.get_feedback_question(
        db, session=session, question_id=question_id
    )
    if not q:
        raise HTTPException(status_code=404, detail="Question not found")

    update = FeedbackQuestionUpdate(
        id=question_id,
        feedback_session_name=feedback_session_name,
        course_id=course_id,
        **obj_in.model_dump(exclude_unset=True),
    )
    try:
        return feedback_question_service.place_question(
            db,
            session=session,
            question=update,
            is_update=True,
            old_question_number=q.question_number,
        )
    except (EntityDoesNotExistError, InvalidParametersError) as e:
        raise _to_http_error(e)


@router.delete("/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_question(
    course_id: str,
    feedback_session_name: str,
    question_id: str,
    db: Session = Depends(get_db),
):
    session = FeedbackSessionAttributes(
        feedback_session_name=feedback_session_name, course_id=course_id
    )
    try:
        feedback_question_service.delete_feedback_question(
            db, session=session, question_id=question_id
        )
    except EntityDoesNotExistError as e:
        raise _to_http_error(e)
    return None
