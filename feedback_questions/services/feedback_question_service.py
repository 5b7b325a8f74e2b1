# feedback_questions/services/feedback_question_service.py
import logging
import uuid
from operator import attrgetter
from typing import Iterable, List, Optional, Union

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from feedback_questions.core.exceptions import (
    EntityAlreadyExistsError,
    EntityDoesNotExistError,
    InvalidParametersError,
    InvariantViolationError,
    assert_not_none,
)
from feedback_questions.db.session import transaction
from feedback_questions.models.enums import FeedbackParticipantType
from feedback_questions.models.feedback_question import FeedbackQuestion, utcnow
from feedback_questions.schemas.feedback_question import (
    FeedbackQuestionAttributes,
    FeedbackQuestionCreate,
    FeedbackQuestionUpdate,
)
from feedback_questions.schemas.feedback_session import FeedbackSessionAttributes
from feedback_questions.services import feedback_session_service

logger = logging.getLogger(__name__)

ERROR_UPDATE_NON_EXISTENT = "Trying to update non-existent Feedback Question : "
ERROR_NON_EXISTENT_SESSION = "Trying to update non-existent Feedback Session : "


def make_question_id() -> str:
    return uuid.uuid4().hex


def _is_deleted(db: Session, fq: FeedbackQuestion) -> bool:
    # pending delete (not flushed yet) or deleted by an earlier flush
    return fq in db.deleted or inspect(fq).deleted


def to_attributes_list(
    db: Session,
    questions: Iterable[FeedbackQuestion],
) -> List[FeedbackQuestionAttributes]:
    """
    Converts rows to attributes, skipping rows deleted in this transaction,
    sorted by question number.
    """
    result = [
        FeedbackQuestionAttributes.model_validate(fq)
        for fq in questions
        if not _is_deleted(db, fq)
    ]
    result.sort(key=attrgetter("question_number"))
    return result


def _get_question_entity(
    db: Session,
    *,
    feedback_session_name: str,
    course_id: str,
    question_id: str,
) -> Optional[FeedbackQuestion]:
    fq = db.get(
        FeedbackQuestion,
        {
            "feedback_session_name": feedback_session_name,
            "course_id": course_id,
            "id": question_id,
        },
    )
    if fq is None or _is_deleted(db, fq):
        return None
    return fq


def _build_attributes(
    session: FeedbackSessionAttributes,
    obj_in: FeedbackQuestionCreate,
) -> FeedbackQuestionAttributes:
    return FeedbackQuestionAttributes(
        feedback_session_name=session.feedback_session_name,
        course_id=session.course_id,
        **obj_in.model_dump(),
    )


# ---------------------------------------------------------------------------
# lookups
# ---------------------------------------------------------------------------

def get_feedback_question(
    db: Session,
    *,
    session: FeedbackSessionAttributes,
    question_id: str,
) -> Optional[FeedbackQuestionAttributes]:
    assert_not_none(session=session, question_id=question_id)

    fq = _get_question_entity(
        db,
        feedback_session_name=session.feedback_session_name,
        course_id=session.course_id,
        question_id=question_id,
    )
    if fq is None:
        logger.info(f"Trying to get non-existent Question: {question_id}")
        return None
    return FeedbackQuestionAttributes.model_validate(fq)


def get_feedback_question_by_number(
    db: Session,
    *,
    feedback_session_name: str,
    course_id: str,
    question_number: int,
) -> Optional[FeedbackQuestionAttributes]:
    assert_not_none(
        feedback_session_name=feedback_session_name,
        course_id=course_id,
        question_number=question_number,
    )

    matches = [
        fq
        for fq in db.query(FeedbackQuestion)
        .filter(
            FeedbackQuestion.feedback_session_name == feedback_session_name,
            FeedbackQuestion.course_id == course_id,
            FeedbackQuestion.question_number == question_number,
        )
        .all()
        if not _is_deleted(db, fq)
    ]

    if len(matches) > 1:
        logger.critical(
            f"More than one question with same question number in "
            f"{course_id}/{feedback_session_name} question {question_number}"
        )

    if not matches:
        logger.info(
            f"Trying to get non-existent Question: "
            f"{question_number}.{feedback_session_name}/{course_id}"
        )
        return None

    return FeedbackQuestionAttributes.model_validate(matches[0])


def list_questions_for_session(
    db: Session,
    *,
    feedback_session_name: str,
    course_id: str,
) -> List[FeedbackQuestionAttributes]:
    assert_not_none(feedback_session_name=feedback_session_name, course_id=course_id)

    questions = (
        db.query(FeedbackQuestion)
        .filter(
            FeedbackQuestion.feedback_session_name == feedback_session_name,
            FeedbackQuestion.course_id == course_id,
        )
        .all()
    )
    return to_attributes_list(db, questions)


def list_questions_for_giver_type(
    db: Session,
    *,
    feedback_session_name: str,
    course_id: str,
    giver_type: FeedbackParticipantType,
) -> List[FeedbackQuestionAttributes]:
    assert_not_none(
        feedback_session_name=feedback_session_name,
        course_id=course_id,
        giver_type=giver_type,
    )

    questions = (
        db.query(FeedbackQuestion)
        .filter(
            FeedbackQuestion.feedback_session_name == feedback_session_name,
            FeedbackQuestion.course_id == course_id,
            FeedbackQuestion.giver_type == FeedbackParticipantType(giver_type).value,
        )
        .all()
    )
    return to_attributes_list(db, questions)


def list_questions_for_course(
    db: Session,
    *,
    course_id: str,
) -> List[FeedbackQuestionAttributes]:
    assert_not_none(course_id=course_id)

    questions = (
        db.query(FeedbackQuestion)
        .filter(FeedbackQuestion.course_id == course_id)
        .all()
    )
    return to_attributes_list(db, questions)


# ---------------------------------------------------------------------------
# create / update / delete
# ---------------------------------------------------------------------------

def _prepare_entity(db: Session, question: FeedbackQuestionAttributes) -> FeedbackQuestion:
    question.sanitize_for_saving()

    errors = question.get_invalidity_info()
    if errors:
        raise InvalidParametersError(errors)

    if question.id is None:
        question.id = make_question_id()
    elif _get_question_entity(
        db,
        feedback_session_name=question.feedback_session_name,
        course_id=question.course_id,
        question_id=question.id,
    ) is not None:
        raise EntityAlreadyExistsError(
            f"Trying to create a Feedback Question that exists: {question.id}"
        )

    return FeedbackQuestion(**question.to_entity_fields())


def create_feedback_question_without_flushing(
    db: Session,
    *,
    session: FeedbackSessionAttributes,
    question: FeedbackQuestionAttributes,
) -> FeedbackQuestion:
    """
    Adds the question to its session inside the caller's transaction.
    """
    assert_not_none(session=session, question=question)

    fs = feedback_session_service.get_feedback_session(
        db, session.feedback_session_name, session.course_id
    )
    if fs is None:
        raise EntityDoesNotExistError(ERROR_NON_EXISTENT_SESSION + str(session))

    fq = _prepare_entity(db, question)
    feedback_session_service.add_question_to_session(fs, fq)

    logger.info(question.backup_identifier)
    return fq


def _count_session_questions(db: Session, session: FeedbackSessionAttributes) -> int:
    fs = feedback_session_service.get_feedback_session(
        db, session.feedback_session_name, session.course_id
    )
    if fs is None:
        raise EntityDoesNotExistError(ERROR_NON_EXISTENT_SESSION + str(session))
    # includes questions appended earlier in this transaction
    return len(to_attributes_list(db, fs.questions))


def _assign_next_question_number(question: FeedbackQuestionAttributes, count: int) -> None:
    """
    A plain create never shifts other questions, so it can only append:
    an unset number becomes count + 1 and any other number is rejected.
    place_question inserts at an arbitrary position.
    """
    if question.question_number <= 0:
        question.question_number = count + 1
    elif question.question_number != count + 1:
        raise InvalidParametersError([
            f"{question.question_number} is not the next question number {count + 1}. "
            "Use place_question to insert a question elsewhere."
        ])


def create_feedback_question(
    db: Session,
    *,
    session: FeedbackSessionAttributes,
    obj_in: FeedbackQuestionCreate,
) -> FeedbackQuestionAttributes:
    assert_not_none(session=session, obj_in=obj_in)

    question = _build_attributes(session, obj_in)
    with transaction(db):
        _assign_next_question_number(question, _count_session_questions(db, session))
        fq = create_feedback_question_without_flushing(db, session=session, question=question)
    db.refresh(fq)
    return FeedbackQuestionAttributes.model_validate(fq)


def create_feedback_question_without_existence_check(
    db: Session,
    *,
    session: FeedbackSessionAttributes,
    obj_in: FeedbackQuestionCreate,
) -> FeedbackQuestionAttributes:
    """
    For callers that already know the session exists: skips re-reading it.
    """
    assert_not_none(session=session, obj_in=obj_in)

    question = _build_attributes(session, obj_in)
    with transaction(db):
        count = len(list_questions_for_session(
            db,
            feedback_session_name=session.feedback_session_name,
            course_id=session.course_id,
        ))
        _assign_next_question_number(question, count)
        fq = _prepare_entity(db, question)
        db.add(fq)
        logger.info(question.backup_identifier)
    db.refresh(fq)
    return FeedbackQuestionAttributes.model_validate(fq)


def create_feedback_questions(
    db: Session,
    *,
    session: FeedbackSessionAttributes,
    questions: Iterable[FeedbackQuestionCreate],
) -> List[FeedbackQuestionAttributes]:
    """
    All or nothing: one invalid question rolls back the whole batch.
    Questions are appended in order.
    """
    assert_not_none(session=session, questions=questions)

    created = []
    with transaction(db):
        for obj_in in questions:
            question = _build_attributes(session, obj_in)
            _assign_next_question_number(question, _count_session_questions(db, session))
            created.append(
                create_feedback_question_without_flushing(db, session=session, question=question)
            )
    return [FeedbackQuestionAttributes.model_validate(fq) for fq in created]


def update_feedback_question_without_flushing(
    db: Session,
    obj_in: FeedbackQuestionUpdate,
    keep_update_timestamp: bool = False,
) -> FeedbackQuestion:
    fq = _get_question_entity(
        db,
        feedback_session_name=obj_in.feedback_session_name,
        course_id=obj_in.course_id,
        question_id=obj_in.id,
    )
    if fq is None:
        raise EntityDoesNotExistError(ERROR_UPDATE_NON_EXISTENT + obj_in.id)

    # keep existing: only the fields given on obj_in replace stored values
    changes = obj_in.changed_fields()
    merged = FeedbackQuestionAttributes.model_validate(
        {**FeedbackQuestionAttributes.model_validate(fq).model_dump(), **changes}
    )
    errors = merged.get_invalidity_info()
    if errors:
        raise InvalidParametersError(errors)

    entity_fields = merged.to_entity_fields()
    for field in changes:
        setattr(fq, field, entity_fields[field])

    if not keep_update_timestamp:
        fq.updated_at = utcnow()
    return fq


def update_feedback_question(
    db: Session,
    *,
    obj_in: FeedbackQuestionUpdate,
    keep_update_timestamp: bool = False,
) -> FeedbackQuestionAttributes:
    """
    Updates the question identified by obj_in's key. Fields that are unset
    or None keep their stored value. updated_at moves to now unless
    keep_update_timestamp is set.
    """
    assert_not_none(obj_in=obj_in)

    with transaction(db):
        fq = update_feedback_question_without_flushing(
            db, obj_in, keep_update_timestamp=keep_update_timestamp
        )
        logger.info(f"Recently modified feedback question::{fq.id}")
    db.refresh(fq)
    return FeedbackQuestionAttributes.model_validate(fq)


def delete_feedback_question(
    db: Session,
    *,
    session: FeedbackSessionAttributes,
    question_id: str,
) -> None:
    """
    Deletes the question and closes the gap it leaves in the numbering.
    Deleting a question that does not exist does nothing.
    """
    assert_not_none(session=session, question_id=question_id)

    with transaction(db):
        fs = feedback_session_service.get_feedback_session(
            db, session.feedback_session_name, session.course_id
        )
        if fs is None:
            raise EntityDoesNotExistError(ERROR_NON_EXISTENT_SESSION + str(session))

        fq = _get_question_entity(
            db,
            feedback_session_name=session.feedback_session_name,
            course_id=session.course_id,
            question_id=question_id,
        )
        if fq is None:
            logger.info(f"Trying to delete non-existent Question: {question_id}")
            return

        questions = to_attributes_list(db, fs.questions)
        adjust_question_numbers_without_committing(
            db,
            old_question_number=fq.question_number,
            new_question_number=len(questions),
            questions=questions,
        )
        feedback_session_service.remove_question_from_session(fs, fq)
        db.delete(fq)


def delete_feedback_questions_for_course(db: Session, *, course_id: str) -> int:
    assert_not_none(course_id=course_id)
    return delete_feedback_questions_for_courses(db, course_ids=[course_id])


def delete_feedback_questions_for_courses(db: Session, *, course_ids: List[str]) -> int:
    """
    Course teardown. No renumbering: the owning sessions go away as well.
    """
    assert_not_none(course_ids=course_ids)

    with transaction(db):
        deleted = (
            db.query(FeedbackQuestion)
            .filter(FeedbackQuestion.course_id.in_(course_ids))
            .delete(synchronize_session=False)
        )
    logger.info(f"Deleted {deleted} questions for courses {course_ids}")
    return deleted


# ---------------------------------------------------------------------------
# renumbering
# ---------------------------------------------------------------------------

def _shift_question(db: Session, question: FeedbackQuestionAttributes, offset: int) -> None:
    question.question_number += offset
    shift = FeedbackQuestionUpdate(
        id=question.id,
        feedback_session_name=question.feedback_session_name,
        course_id=question.course_id,
        question_number=question.question_number,
    )
    try:
        update_feedback_question_without_flushing(db, shift, keep_update_timestamp=True)
    except InvalidParametersError as e:
        logger.critical(f"Invalid question while renumbering {question.id}: {e}")
        raise InvariantViolationError(f"Invalid question. {e}") from e
    except EntityDoesNotExistError as e:
        logger.critical(f"Question disappeared while renumbering {question.id}: {e}")
        raise InvariantViolationError(f"Question disappeared. {e}") from e


def adjust_question_numbers_without_committing(
    db: Session,
    *,
    old_question_number: int,
    new_question_number: int,
    questions: List[FeedbackQuestionAttributes],
) -> None:
    """
    Makes room at new_question_number for a question leaving
    old_question_number. questions must be sorted by number, so that
    questions[i - 1] holds number i.

    Moving earlier pushes [new, old - 1] one slot later; moving later pulls
    [old + 1, new] one slot earlier. Shifts keep updated_at.
    """
    last = len(questions) + 1
    if not (1 <= old_question_number <= last and 1 <= new_question_number <= last):
        logger.critical(
            f"Question numbers {old_question_number} -> {new_question_number} "
            f"out of range for {len(questions)} questions"
        )
        raise InvariantViolationError(
            f"Cannot move question {old_question_number} to {new_question_number}: "
            f"the session has {len(questions)} questions."
        )

    if old_question_number > new_question_number:
        for i in range(old_question_number - 1, new_question_number - 1, -1):
            _shift_question(db, questions[i - 1], 1)
    elif old_question_number < new_question_number and old_question_number < len(questions):
        for i in range(old_question_number + 1, new_question_number + 1):
            _shift_question(db, questions[i - 1], -1)


def place_question(
    db: Session,
    *,
    session: FeedbackSessionAttributes,
    question: Union[FeedbackQuestionCreate, FeedbackQuestionUpdate],
    is_update: bool,
    old_question_number: int = 0,
) -> FeedbackQuestionAttributes:
    """
    Creates (is_update=False, question is a FeedbackQuestionCreate) or edits
    (is_update=True, question is a FeedbackQuestionUpdate) a question and
    moves it to its question_number, renumbering the others in one
    transaction.

    - question_number <= 0 (or unset on an edit) keeps an edited question in
      place and appends a new one.
    - a new question always starts outside the list, at count + 1.
    - an edited question always moves from its stored number;
      old_question_number is only checked against it.
    """
    assert_not_none(session=session, question=question)
    if is_update and not isinstance(question, FeedbackQuestionUpdate):
        raise ValueError("An edited question must be a FeedbackQuestionUpdate")
    if not is_update and not isinstance(question, FeedbackQuestionCreate):
        raise ValueError("A new question must be a FeedbackQuestionCreate")

    with transaction(db):
        fs = feedback_session_service.get_feedback_session(
            db, session.feedback_session_name, session.course_id
        )
        if fs is None:
            raise EntityDoesNotExistError(f"Session disappeared: {session}")

        questions = to_attributes_list(db, fs.questions)
        count = len(questions)

        if is_update:
            current = next((q for q in questions if q.id == question.id), None)
            if current is None:
                raise EntityDoesNotExistError(ERROR_UPDATE_NON_EXISTENT + question.id)
            if old_question_number > 0 and old_question_number != current.question_number:
                logger.warning(
                    f"Stale question number {old_question_number} for {question.id}, "
                    f"stored number is {current.question_number}"
                )
            old_question_number = current.question_number
            new_question_number = question.question_number
            if new_question_number is None or new_question_number <= 0:
                new_question_number = old_question_number
            new_question_number = min(new_question_number, count)
        else:
            old_question_number = count + 1
            new_question_number = question.question_number
            if new_question_number <= 0:
                new_question_number = count + 1
            new_question_number = min(new_question_number, count + 1)

        adjust_question_numbers_without_committing(
            db,
            old_question_number=old_question_number,
            new_question_number=new_question_number,
            questions=questions,
        )

        placed = question.model_copy(update={"question_number": new_question_number})
        if is_update:
            fq = update_feedback_question_without_flushing(db, placed)
            logger.info(f"Recently modified feedback question::{fq.id}")
        else:
            attributes = _build_attributes(session, placed)
            attributes.id = make_question_id()
            fq = create_feedback_question_without_flushing(
                db, session=session, question=attributes
            )

        # the loaded session object outlives a concurrent delete of its row
        if not feedback_session_service.session_exists(
            db, session.feedback_session_name, session.course_id
        ):
            raise EntityDoesNotExistError(f"Session disappeared: {session}")

    db.refresh(fq)
    return FeedbackQuestionAttributes.model_validate(fq)
