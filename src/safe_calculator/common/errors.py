"""Error kinds raised while evaluating an arithmetic expression."""
from enum import Enum


class ErrorKind(str, Enum):
    """Classification of every failure the engine can report."""

    MISMATCHED_PARENTHESES = "MismatchedParentheses"
    INVALID_TOKEN = "InvalidToken"
    INSUFFICIENT_OPERANDS = "InsufficientOperands"
    MALFORMED_EXPRESSION = "MalformedExpression"
    DIVIDE_BY_ZERO = "DivideByZero"


class EvaluationError(ValueError):
    """
    Raised when an expression cannot be reduced to a single finite number.

    Callers switch on ``kind`` instead of parsing the message.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"
