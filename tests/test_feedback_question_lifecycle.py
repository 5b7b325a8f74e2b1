import pytest

from feedback_questions.core.exceptions import (
    EntityAlreadyExistsError,
    EntityDoesNotExistError,
    InvalidParametersError,
)
from feedback_questions.db.session import transaction
from feedback_questions.models.enums import FeedbackParticipantType
from feedback_questions.models.feedback_question import FeedbackQuestion
from feedback_questions.models.feedback_session import FeedbackSession
from feedback_questions.schemas.feedback_question import (
    FeedbackQuestionAttributes,
    FeedbackQuestionUpdate,
)
from feedback_questions.schemas.feedback_session import FeedbackSessionAttributes
from feedback_questions.services import feedback_question_service as service
from feedback_questions.services import feedback_session_service

from helpers import (
    COURSE_ID,
    OLD_TIMESTAMP,
    SESSION_NAME,
    as_naive_utc,
    make_question_create,
    numbers_by_text,
)


def _list(db):
    return service.list_questions_for_session(
        db, feedback_session_name=SESSION_NAME, course_id=COURSE_ID
    )


class TestCreate:

    def test_create_adds_question_to_session(self, db_session, feedback_session):
        created = service.create_feedback_question(
            db_session,
            session=feedback_session,
            obj_in=make_question_create("  Rate your teammate  ", question_number=1),
        )

        assert created.id
        assert created.question_text == "Rate your teammate"
        assert created.created_at is not None

        fs = feedback_session_service.get_feedback_session(db_session, SESSION_NAME, COURSE_ID)
        assert [q.id for q in fs.questions] == [created.id]

    def test_create_in_missing_session(self, db_session):
        missing = FeedbackSessionAttributes(feedback_session_name="Ghost", course_id=COURSE_ID)
        with pytest.raises(EntityDoesNotExistError):
            service.create_feedback_question(
                db_session, session=missing, obj_in=make_question_create(question_number=1)
            )
        assert db_session.query(FeedbackQuestion).count() == 0

    def test_create_invalid_giver(self, db_session, feedback_session):
        with pytest.raises(InvalidParametersError) as excinfo:
            service.create_feedback_question(
                db_session,
                session=feedback_session,
                obj_in=make_question_create(giver_type="RECEIVER", question_number=1),
            )
        assert "RECEIVER is not a valid feedback giver." in excinfo.value.messages
        assert db_session.query(FeedbackQuestion).count() == 0

    def test_create_invalid_visibility(self, db_session, feedback_session):
        obj_in = make_question_create(
            question_number=1,
            show_responses_to=["RECEIVER"],
            show_giver_name_to=["INSTRUCTORS"],
            show_recipient_name_to=[],
        )
        with pytest.raises(InvalidParametersError) as excinfo:
            service.create_feedback_question(db_session, session=feedback_session, obj_in=obj_in)
        assert any("without showing response first" in m for m in excinfo.value.messages)

    def test_create_drops_irrelevant_visibility(self, db_session, feedback_session):
        created = service.create_feedback_question(
            db_session,
            session=feedback_session,
            obj_in=make_question_create(
                question_number=1,
                giver_type="INSTRUCTORS",
                recipient_type="NONE",
                show_responses_to=["INSTRUCTORS", "RECEIVER", "INSTRUCTORS"],
                show_giver_name_to=["INSTRUCTORS"],
                show_recipient_name_to=["RECEIVER"],
            ),
        )
        assert created.show_responses_to == [FeedbackParticipantType.INSTRUCTORS]
        assert created.show_recipient_name_to == []

    def test_create_existing_key(self, db_session, feedback_session, four_questions):
        existing = service.get_feedback_question(
            db_session, session=feedback_session, question_id=four_questions["Q1"]
        )
        with pytest.raises(EntityAlreadyExistsError):
            with transaction(db_session):
                service.create_feedback_question_without_flushing(
                    db_session, session=feedback_session, question=existing
                )

    def test_create_without_existence_check(self, db_session, feedback_session):
        created = service.create_feedback_question_without_existence_check(
            db_session, session=feedback_session, obj_in=make_question_create(question_number=1)
        )
        assert service.get_feedback_question(
            db_session, session=feedback_session, question_id=created.id
        ) is not None

    def test_create_batch_is_all_or_nothing(self, db_session, feedback_session):
        batch = [
            make_question_create("first", question_number=1),
            make_question_create("second", question_number=2, recipient_type="RECEIVER"),
        ]
        with pytest.raises(InvalidParametersError):
            service.create_feedback_questions(db_session, session=feedback_session, questions=batch)
        assert _list(db_session) == []

        batch[1] = make_question_create("second", question_number=2)
        created = service.create_feedback_questions(
            db_session, session=feedback_session, questions=batch
        )
        assert [q.question_text for q in created] == ["first", "second"]

    def test_create_without_number_appends(self, db_session, feedback_session, four_questions):
        created = service.create_feedback_question(
            db_session, session=feedback_session, obj_in=make_question_create("Q5")
        )

        assert created.question_number == 5
        assert numbers_by_text(_list(db_session)) == {"Q1": 1, "Q2": 2, "Q3": 3, "Q4": 4, "Q5": 5}

    def test_create_at_taken_number_is_rejected(self, db_session, feedback_session, four_questions):
        with pytest.raises(InvalidParametersError) as excinfo:
            service.create_feedback_question(
                db_session,
                session=feedback_session,
                obj_in=make_question_create("X", question_number=2),
            )
        assert any("is not the next question number 5" in m for m in excinfo.value.messages)

        with pytest.raises(InvalidParametersError):
            service.create_feedback_question_without_existence_check(
                db_session,
                session=feedback_session,
                obj_in=make_question_create("Y", question_number=9),
            )

        questions = _list(db_session)
        assert numbers_by_text(questions) == {"Q1": 1, "Q2": 2, "Q3": 3, "Q4": 4}

    def test_create_batch_appends_in_order(self, db_session, feedback_session, four_questions):
        created = service.create_feedback_questions(
            db_session,
            session=feedback_session,
            questions=[make_question_create("A"), make_question_create("B", question_number=6)],
        )

        assert [q.question_number for q in created] == [5, 6]
        questions = _list(db_session)
        assert sorted(q.question_number for q in questions) == [1, 2, 3, 4, 5, 6]


class TestUpdate:

    def test_keep_existing_fields(self, db_session, four_questions):
        updated = service.update_feedback_question(
            db_session,
            obj_in=FeedbackQuestionUpdate(
                id=four_questions["Q2"],
                feedback_session_name=SESSION_NAME,
                course_id=COURSE_ID,
                question_text="Q2 reworded",
                giver_type=None,
            ),
        )

        assert updated.question_text == "Q2 reworded"
        assert updated.giver_type == FeedbackParticipantType.STUDENTS
        assert updated.recipient_type == FeedbackParticipantType.SELF
        assert updated.question_number == 2
        assert as_naive_utc(updated.updated_at) > as_naive_utc(OLD_TIMESTAMP)

    def test_keep_update_timestamp(self, db_session, four_questions):
        updated = service.update_feedback_question(
            db_session,
            obj_in=FeedbackQuestionUpdate(
                id=four_questions["Q2"],
                feedback_session_name=SESSION_NAME,
                course_id=COURSE_ID,
                number_of_entities_to_give_feedback_to=3,
            ),
            keep_update_timestamp=True,
        )
        assert updated.number_of_entities_to_give_feedback_to == 3
        assert as_naive_utc(updated.updated_at) == as_naive_utc(OLD_TIMESTAMP)

    def test_update_missing_question(self, db_session, four_questions):
        with pytest.raises(EntityDoesNotExistError):
            service.update_feedback_question(
                db_session,
                obj_in=FeedbackQuestionUpdate(
                    id="missing",
                    feedback_session_name=SESSION_NAME,
                    course_id=COURSE_ID,
                    question_text="x",
                ),
            )

    def test_update_invalid_values_change_nothing(self, db_session, feedback_session, four_questions):
        with pytest.raises(InvalidParametersError):
            service.update_feedback_question(
                db_session,
                obj_in=FeedbackQuestionUpdate(
                    id=four_questions["Q1"],
                    feedback_session_name=SESSION_NAME,
                    course_id=COURSE_ID,
                    question_text="changed",
                    recipient_type="RECEIVER_TEAM_MEMBERS",
                ),
            )

        q1 = service.get_feedback_question(
            db_session, session=feedback_session, question_id=four_questions["Q1"]
        )
        assert q1.question_text == "Q1"
        assert q1.recipient_type == FeedbackParticipantType.SELF


class TestDelete:

    def test_delete_closes_gap(self, db_session, feedback_session, four_questions):
        service.delete_feedback_question(
            db_session, session=feedback_session, question_id=four_questions["Q2"]
        )

        questions = _list(db_session)
        assert numbers_by_text(questions) == {"Q1": 1, "Q3": 2, "Q4": 3}
        # shifting is not an edit
        assert all(
            as_naive_utc(q.updated_at) == as_naive_utc(OLD_TIMESTAMP) for q in questions
        )

    def test_delete_twice_is_a_no_op(self, db_session, feedback_session, four_questions):
        service.delete_feedback_question(
            db_session, session=feedback_session, question_id=four_questions["Q4"]
        )
        service.delete_feedback_question(
            db_session, session=feedback_session, question_id=four_questions["Q4"]
        )
        service.delete_feedback_question(
            db_session, session=feedback_session, question_id="never-created"
        )

        assert numbers_by_text(_list(db_session)) == {"Q1": 1, "Q2": 2, "Q3": 3}

    def test_delete_in_missing_session(self, db_session):
        missing = FeedbackSessionAttributes(feedback_session_name="Ghost", course_id=COURSE_ID)
        with pytest.raises(EntityDoesNotExistError):
            service.delete_feedback_question(db_session, session=missing, question_id="q1")

    def test_delete_for_courses(self, db_session, feedback_session, four_questions):
        db_session.add(FeedbackSession(feedback_session_name=SESSION_NAME, course_id="CS202"))
        db_session.commit()
        other = FeedbackSessionAttributes(feedback_session_name=SESSION_NAME, course_id="CS202")
        service.create_feedback_question(
            db_session, session=other, obj_in=make_question_create(question_number=1)
        )

        deleted = service.delete_feedback_questions_for_course(db_session, course_id=COURSE_ID)

        assert deleted == 4
        assert service.list_questions_for_course(db_session, course_id=COURSE_ID) == []
        assert len(service.list_questions_for_course(db_session, course_id="CS202")) == 1

    def test_deleting_session_deletes_its_questions(self, db_session, four_questions):
        feedback_session_service.delete_feedback_session(
            db_session, feedback_session_name=SESSION_NAME, course_id=COURSE_ID
        )

        assert feedback_session_service.get_feedback_session(
            db_session, SESSION_NAME, COURSE_ID
        ) is None
        assert db_session.query(FeedbackQuestion).count() == 0


def test_attributes_round_trip_from_orm(db_session, four_questions):
    fq = db_session.query(FeedbackQuestion).filter(FeedbackQuestion.id == "q1").one()
    attributes = FeedbackQuestionAttributes.model_validate(fq)
    assert attributes.backup_identifier == "Recently modified feedback question::q1"
    assert attributes.is_valid()
