"""Pydantic models for arithmetic operation requests and results."""
from collections import Counter
from typing import Dict, List

from pydantic import BaseModel, Field

from safe_calculator.common.errors import ErrorKind


class OperationRequest(BaseModel):
    """Represents a single arithmetic operation request sent to the server."""

    expression: str = Field(..., description="Arithmetic expression as a string")
    line: int = Field(default=1, ge=1, description="Line number of the expression in the input")


class OperationResult(BaseModel):
    """Represents the result of an evaluated arithmetic operation."""

    line: int = Field(..., ge=1, description="Line number of the expression in the input")
    expression: str = Field(..., description="Original arithmetic expression")
    result: float = Field(..., description="Evaluated numeric result of the expression")


class OperationFailure(BaseModel):
    """Represents an arithmetic operation that could not be evaluated."""

    line: int = Field(..., ge=1, description="Line number of the expression in the input")
    expression: str = Field(..., description="Original arithmetic expression")
    kind: ErrorKind = Field(..., description="Classification of the failure")
    error: str = Field(..., description="Human readable error message")


class BatchReport(BaseModel):
    """Outcome of a batch of expressions, as read back from the server reply."""

    results: List[OperationResult] = Field(default_factory=list, description="Evaluated expressions")
    failures: List[OperationFailure] = Field(default_factory=list, description="Expressions that failed")

    @property
    def failures_by_kind(self) -> Dict[ErrorKind, int]:
        """Number of failures for each error kind that occurred."""
        return dict(Counter(failure.kind for failure in self.failures))

    def summary(self) -> str:
        """One-line description, e.g. ``"3 evaluated, 2 failed (DivideByZero: 2)"``."""
        text = f"{len(self.results)} evaluated, {len(self.failures)} failed"
        if self.failures:
            counts = ", ".join(f"{kind.value}: {count}" for kind, count in self.failures_by_kind.items())
            text += f" ({counts})"
        return text
