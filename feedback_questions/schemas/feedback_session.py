# feedback_questions/schemas/feedback_session.py
from pydantic import BaseModel


class FeedbackSessionAttributes(BaseModel):
    feedback_session_name: str
    course_id: str

    model_config = {"from_attributes": True}

    def __str__(self) -> str:
        return f"{self.course_id}/{self.feedback_session_name}"
