"""Test display helpers."""
import pytest

from safe_calculator.common.display import error_message, format_result, round_result
from safe_calculator.common.errors import ErrorKind, EvaluationError
from safe_calculator.common.parser import evaluate


@pytest.mark.parametrize("value,expected", [
    (13.0, "13"),
    (-2.0, "-2"),
    (0.25, "0.25"),
    (-0.0, "0"),
    (1e-05, "0.00001"),
    (1e16, "10000000000000000"),
    (1e20, "100000000000000000000"),
    (-1e-12, "0"),
])
def test_format_result(value: float, expected: str) -> None:
    """Results are written in plain decimal digits, never in exponent notation."""
    assert format_result(value) == expected


@pytest.mark.parametrize("value", [1e-05, 0.000123, 123456.789, 1e16 + 2])
def test_format_result_reads_back_exactly(value: float) -> None:
    """The rendered text evaluates to the same number."""
    assert evaluate(format_result(value)) == value


def test_format_result_precision() -> None:
    assert format_result(2 / 3, precision=2) == "0.67"
    assert format_result(2.0, precision=0) == "2"
    assert format_result(100.0, precision=0) == "100"


def test_round_result() -> None:
    assert round_result(1 / 3) == 0.333333333
    assert round_result(2 / 3, precision=3) == 0.667
    assert str(round_result(-1e-12)) == "0.0"


@pytest.mark.parametrize("kind,expected", [
    (ErrorKind.DIVIDE_BY_ZERO, "Error: Divide by zero"),
    (ErrorKind.MISMATCHED_PARENTHESES, "Error"),
    (ErrorKind.INVALID_TOKEN, "Error"),
    (ErrorKind.INSUFFICIENT_OPERANDS, "Error"),
    (ErrorKind.MALFORMED_EXPRESSION, "Error"),
])
def test_error_message(kind: ErrorKind, expected: str) -> None:
    assert error_message(kind) == expected


def test_evaluation_error_str() -> None:
    exc = EvaluationError(ErrorKind.INVALID_TOKEN, "bad token")
    assert str(exc) == "InvalidToken: bad token"
    assert exc.message == "bad token"
    assert exc.kind == "InvalidToken"
