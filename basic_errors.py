"""
Error taxonomy for the BASIC interpreter.

Fatal conditions are raised as BasicError subclasses and stop a run.
Non-fatal conditions (duplicate SUB, unknown command, GOSUB to a missing
subroutine) are collected as ErrorRecord entries on the interpreter.
"""

from typing import NamedTuple, Optional


class ErrorRecord(NamedTuple):
    message: str
    line_index: Optional[int]


class BasicError(Exception):
    """Base class for every fatal interpreter error."""

    def __init__(self, message, line_index=None):
        super().__init__(message)
        self.message = message
        self.line_index = line_index

    def __str__(self):
        if self.line_index is None:
            return self.message
        return f"{self.message} (line {self.line_index})"


class EvaluationError(BasicError):
    pass


class TokenizeError(EvaluationError):
    pass


class StackDisciplineError(BasicError):
    pass


class BasicSyntaxError(BasicError):
    def __init__(self, message, line_index=None, code=None, column=None):
        super().__init__(message, line_index)
        self.code = code
        self.column = column


class StepLimitExceeded(BasicError):
    pass
