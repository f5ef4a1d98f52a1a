"""Presentation helpers shared by the calculator session and the batch server."""
from safe_calculator.common.errors import ErrorKind

DEFAULT_PRECISION = 9


def round_result(value: float, precision: int = DEFAULT_PRECISION) -> float:
    """
    Round a result to keep the display neat.

    :param float value: Raw evaluation result
    :param int precision: Maximum number of decimal places

    :return: Rounded value, with negative zero folded into zero
    :rtype: float
    """
    rounded = round(value, precision)
    # round(-1e-12, 9) gives -0.0
    return rounded + 0.0


def format_result(value: float, precision: int = DEFAULT_PRECISION) -> str:
    """
    Render a result the way a pocket calculator shows it.

    The text is always plain decimal digits, never exponent notation, so the
    tokenizer reads it back as the same number: ``13.0`` renders as ``"13"``
    and ``1e-05`` as ``"0.00001"``.

    :param float value: Value to render
    :param int precision: Maximum number of decimal places

    :return: Display text
    :rtype: str
    """
    text = f"{value:.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    # Tiny negative values print as "-0"
    if text == "-0":
        return "0"
    return text


def error_message(kind: ErrorKind) -> str:
    """Map an error kind to the text shown to the user."""
    if kind is ErrorKind.DIVIDE_BY_ZERO:
        return "Error: Divide by zero"
    return "Error"
