# feedback_questions/core/exceptions.py
from typing import Any, Iterable


class InvalidParametersError(Exception):
    """Values failed validation; raised before anything is written."""

    def __init__(self, messages: Iterable[str] | str):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class EntityDoesNotExistError(Exception):
    pass


class EntityAlreadyExistsError(Exception):
    pass


class InvariantViolationError(Exception):
    """
    Stored data breaks an invariant the service is supposed to maintain,
    e.g. two questions sharing a number or a renumbering shift failing.
    Not recoverable for the current request.
    """


def assert_not_none(**params: Any) -> None:
    for name, value in params.items():
        if value is None:
            raise ValueError(f"Supplied parameter was null: {name}")
