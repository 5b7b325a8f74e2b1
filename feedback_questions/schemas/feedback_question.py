# feedback_questions/schemas/feedback_question.py
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from feedback_questions.models.enums import (
    MAX_POSSIBLE_RECIPIENTS,
    FeedbackParticipantType,
    FeedbackQuestionType,
)

KEY_FIELDS = {"id", "feedback_session_name", "course_id"}
VISIBILITY_FIELDS = ("show_responses_to", "show_giver_name_to", "show_recipient_name_to")


class FeedbackQuestionBase(BaseModel):
    question_text: str
    question_meta_data: str | None = None
    question_type: FeedbackQuestionType
    giver_type: FeedbackParticipantType
    recipient_type: FeedbackParticipantType
    number_of_entities_to_give_feedback_to: int = MAX_POSSIBLE_RECIPIENTS
    show_responses_to: list[FeedbackParticipantType] = []
    show_giver_name_to: list[FeedbackParticipantType] = []
    show_recipient_name_to: list[FeedbackParticipantType] = []


class FeedbackQuestionCreate(FeedbackQuestionBase):
    # 0 or less: append after the last question
    question_number: int = 0


class FeedbackQuestionEdit(BaseModel):
    """
    Partial edit. Fields left unset (or None) keep their stored value.
    """
    question_number: int | None = None
    question_text: str | None = None
    question_meta_data: str | None = None
    question_type: FeedbackQuestionType | None = None
    giver_type: FeedbackParticipantType | None = None
    recipient_type: FeedbackParticipantType | None = None
    number_of_entities_to_give_feedback_to: int | None = None
    show_responses_to: list[FeedbackParticipantType] | None = None
    show_giver_name_to: list[FeedbackParticipantType] | None = None
    show_recipient_name_to: list[FeedbackParticipantType] | None = None


class FeedbackQuestionUpdate(FeedbackQuestionEdit):
    id: str
    feedback_session_name: str
    course_id: str

    def changed_fields(self) -> dict[str, Any]:
        return self.model_dump(
            mode="json", exclude_unset=True, exclude_none=True, exclude=KEY_FIELDS
        )


class FeedbackQuestionAttributes(FeedbackQuestionBase):
    id: str | None = None
    feedback_session_name: str
    course_id: str
    question_number: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @property
    def backup_identifier(self) -> str:
        return f"Recently modified feedback question::{self.id}"

    def sanitize_for_saving(self) -> None:
        self.feedback_session_name = self.feedback_session_name.strip()
        self.course_id = self.course_id.strip()
        self.question_text = self.question_text.strip()
        if self.question_meta_data is not None:
            self.question_meta_data = self.question_meta_data.strip()
        for field in VISIBILITY_FIELDS:
            # de-duplicate, keep order
            setattr(self, field, list(dict.fromkeys(getattr(self, field))))
        self.remove_irrelevant_visibility_options()

    def remove_irrelevant_visibility_options(self) -> None:
        """
        Drops viewer roles that cannot exist for this giver/recipient pair,
        e.g. the receiver of a question that has no recipient.
        """
        to_remove = set()

        if self.recipient_type == FeedbackParticipantType.NONE:
            to_remove.add(FeedbackParticipantType.RECEIVER)
            to_remove.add(FeedbackParticipantType.RECEIVER_TEAM_MEMBERS)
        elif self.recipient_type in (
            FeedbackParticipantType.TEAMS,
            FeedbackParticipantType.INSTRUCTORS,
            FeedbackParticipantType.OWN_TEAM,
            FeedbackParticipantType.OWN_TEAM_MEMBERS,
        ):
            to_remove.add(FeedbackParticipantType.RECEIVER_TEAM_MEMBERS)

        if self.giver_type in (FeedbackParticipantType.TEAMS, FeedbackParticipantType.INSTRUCTORS):
            to_remove.add(FeedbackParticipantType.OWN_TEAM_MEMBERS)
            if self.recipient_type == FeedbackParticipantType.STUDENTS:
                to_remove.add(FeedbackParticipantType.RECEIVER_TEAM_MEMBERS)

        for field in VISIBILITY_FIELDS:
            setattr(self, field, [v for v in getattr(self, field) if v not in to_remove])

    def get_invalidity_info(self) -> list[str]:
        errors = []

        if not self.course_id or not self.course_id.strip():
            errors.append("The course ID must not be empty.")
        if not self.feedback_session_name or not self.feedback_session_name.strip():
            errors.append("The feedback session name must not be empty.")
        if not self.question_text or not self.question_text.strip():
            errors.append("The question text must not be empty.")
        if self.question_number < 1:
            errors.append(
                f"{self.question_number} is not a valid question number. "
                "It must be a positive integer."
            )

        if not self.giver_type.is_valid_giver:
            errors.append(f"{self.giver_type.value} is not a valid feedback giver.")
        if not self.recipient_type.is_valid_recipient:
            errors.append(f"{self.recipient_type.value} is not a valid feedback recipient.")
        if (
            self.giver_type == FeedbackParticipantType.TEAMS
            and self.recipient_type == FeedbackParticipantType.OWN_TEAM
        ):
            errors.append(
                "TEAMS cannot give feedback to OWN_TEAM. Use SELF as the recipient instead."
            )

        for field in VISIBILITY_FIELDS:
            for viewer in getattr(self, field):
                if not viewer.is_valid_viewer:
                    errors.append(f"{viewer.value} is not a valid feedback viewer ({field}).")

        for viewer in self.show_giver_name_to:
            if viewer not in self.show_responses_to:
                errors.append(
                    f"Trying to show giver name to {viewer.value} without showing response first."
                )
        for viewer in self.show_recipient_name_to:
            if viewer not in self.show_responses_to:
                errors.append(
                    f"Trying to show recipient name to {viewer.value} without showing response first."
                )

        return errors

    def is_valid(self) -> bool:
        return not self.get_invalidity_info()

    def to_entity_fields(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"created_at", "updated_at"})
