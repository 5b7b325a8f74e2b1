# feedback_questions/models/enums.py
from enum import Enum


class FeedbackParticipantType(str, Enum):
    # value, valid giver, valid recipient, valid viewer
    SELF = ("SELF", True, True, False)
    STUDENTS = ("STUDENTS", True, True, True)
    INSTRUCTORS = ("INSTRUCTORS", True, True, True)
    TEAMS = ("TEAMS", True, True, False)
    OWN_TEAM = ("OWN_TEAM", False, True, False)
    OWN_TEAM_MEMBERS = ("OWN_TEAM_MEMBERS", False, True, True)
    OWN_TEAM_MEMBERS_INCLUDING_SELF = ("OWN_TEAM_MEMBERS_INCLUDING_SELF", False, True, False)
    RECEIVER = ("RECEIVER", False, False, True)
    RECEIVER_TEAM_MEMBERS = ("RECEIVER_TEAM_MEMBERS", False, False, True)
    NONE = ("NONE", False, True, False)

    def __new__(cls, value: str, is_valid_giver: bool, is_valid_recipient: bool, is_valid_viewer: bool):
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.is_valid_giver = is_valid_giver
        obj.is_valid_recipient = is_valid_recipient
        obj.is_valid_viewer = is_valid_viewer
        return obj


class FeedbackQuestionType(str, Enum):
    TEXT = "TEXT"
    MCQ = "MCQ"
    MSQ = "MSQ"
    NUMSCALE = "NUMSCALE"
    CONSTSUM = "CONSTSUM"
    CONTRIB = "CONTRIB"
    RUBRIC = "RUBRIC"
    RANK_OPTIONS = "RANK_OPTIONS"
    RANK_RECIPIENTS = "RANK_RECIPIENTS"


# number_of_entities_to_give_feedback_to value meaning "no limit"
MAX_POSSIBLE_RECIPIENTS = -100
