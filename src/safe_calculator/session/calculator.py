"""Interactive calculator state driven by key presses."""
from typing import List, Optional

from pydantic import BaseModel, Field

from safe_calculator.common.display import DEFAULT_PRECISION, error_message, format_result, round_result
from safe_calculator.common.errors import EvaluationError
from safe_calculator.common.logger import logger
from safe_calculator.common.parser import OPERATORS, ExpressionParser
from safe_calculator.common.tokens import Token

DIGITS = "0123456789"
PARENTHESES = "()"


class CalculatorSession(BaseModel):
    """
    Expression being typed on a calculator keypad, plus the last answer.

    The session owns the expression string that the keypad and keyboard
    handlers edit. It applies input policies before evaluation (a single
    decimal point per number, no leading binary operator, operator
    replacement) and turns results and errors into display text. The
    arithmetic itself is delegated to :class:`ExpressionParser`.
    """

    expression: str = Field(default="", description="Expression typed so far")
    last_result: Optional[float] = Field(default=None, description="Result of the last successful evaluation")
    precision: int = Field(default=DEFAULT_PRECISION, ge=0, le=15, description="Decimal places kept for display")
    strict_decimals: bool = Field(default=False, description="Reject a second decimal point inside one literal")

    @property
    def display(self) -> str:
        """Main display line."""
        return self.expression if self.expression else "0"

    @property
    def history(self) -> str:
        """Secondary display line showing the previous answer."""
        if self.last_result is None:
            return ""
        return f"Ans = {format_result(self.last_result, self.precision)}"

    def _last_token(self) -> Optional[Token]:
        tokens: List[Token] = ExpressionParser.tokenize(self.expression)
        return tokens[-1] if tokens else None

    def push_value(self, value: str) -> None:
        """
        Append a digit or a decimal point.

        A decimal point is ignored when the number being typed already has
        one, and starts a new ``0.`` when no number is being typed.

        :param str value: A single digit or "."
        """
        if value == ".":
            last = self._last_token()
            if last is not None and last.is_number:
                if "." in last.text:
                    return
                self.expression += "."
            else:
                self.expression += "0."
            return

        if value not in DIGITS:
            raise ValueError(f"Not a digit: {value!r}")
        self.expression += value

    def push_operator(self, symbol: str) -> None:
        """
        Append a binary operator.

        With an empty expression only a leading minus is accepted. Typing an
        operator right after another one replaces it.

        :param str symbol: One of "+", "-", "*", "/"
        """
        if symbol not in OPERATORS:
            raise ValueError(f"Not an operator: {symbol!r}")

        last = self._last_token()
        if last is None:
            if symbol == "-":
                self.expression += symbol
        elif last.is_operator:
            self.expression = self.expression[:-1] + symbol
        else:
            self.expression += symbol

    def push_paren(self, paren: str) -> None:
        if paren not in PARENTHESES:
            raise ValueError(f"Not a parenthesis: {paren!r}")
        self.expression += paren

    def backspace(self) -> None:
        self.expression = self.expression[:-1]

    def clear(self) -> None:
        self.expression = ""
        self.last_result = None

    def evaluate_now(self) -> str:
        """
        Evaluate the current expression and return the text to display.

        On success the expression is replaced by the rounded result so that
        typing can continue from it. On failure the session is reset and the
        error message is returned instead.

        :return: Display text
        :rtype: str
        """
        try:
            result = ExpressionParser.evaluate(self.expression or "0", strict_decimals=self.strict_decimals)
        except EvaluationError as exc:
            logger.info(f"Evaluation failed for {self.expression!r}: {exc}")
            self.clear()
            return error_message(exc.kind)

        rounded = round_result(result, self.precision)
        self.last_result = rounded
        self.expression = format_result(rounded, self.precision)
        return self.display

    def press(self, key: str) -> Optional[str]:
        """
        Handle one keyboard key.

        :param str key: Key name ("7", ".", "+", "Backspace", "Enter", "=", "Escape", ...)

        :return: Display text after an evaluation, otherwise None
        :rtype: Optional[str]
        """
        if key in ("Enter", "="):
            return self.evaluate_now()

        if key == "Backspace":
            self.backspace()
        elif key == "Escape":
            self.clear()
        elif len(key) == 1 and key in DIGITS + ".":
            self.push_value(key)
        elif len(key) == 1 and (key in OPERATORS or key in PARENTHESES):
            # Keyboard input bypasses the keypad's operator replacement
            self.expression += key
        return None
