from datetime import datetime, timezone

from feedback_questions.schemas.feedback_question import FeedbackQuestionCreate

COURSE_ID = "CS101"
SESSION_NAME = "Midterm Feedback"

OLD_TIMESTAMP = datetime(2020, 1, 1, tzinfo=timezone.utc)


def make_question_create(text="How well did your teammate communicate?", **overrides):
    data = dict(
        question_text=text,
        question_type="TEXT",
        giver_type="STUDENTS",
        recipient_type="OWN_TEAM_MEMBERS",
        show_responses_to=["INSTRUCTORS", "RECEIVER"],
        show_giver_name_to=["INSTRUCTORS"],
        show_recipient_name_to=["INSTRUCTORS", "RECEIVER"],
    )
    data.update(overrides)
    return FeedbackQuestionCreate(**data)


def numbers_by_text(questions):
    return {q.question_text: q.question_number for q in questions}


def as_naive_utc(value):
    # SQLite drops tzinfo on the way back
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
