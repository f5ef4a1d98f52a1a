"""Parse and evaluate arithmetic expressions safely."""
from collections.abc import Callable as ABCCallable
import logging
import math
import operator
from typing import Callable, List, Sequence, Tuple

from safe_calculator.common.errors import ErrorKind, EvaluationError
from safe_calculator.common.logger import logger
from safe_calculator.common.tokens import Token, TokenKind


# Type alias for operator functions (taking two floats, returning a float)
OperatorFn: ABCCallable[[float, float], float] = Callable[[float, float], float]

# Mapping of operator symbols to (precedence, function)
OPERATORS: dict[str, Tuple[int, OperatorFn]] = {
    "+": (1, operator.add),
    "-": (1, operator.sub),
    "*": (2, operator.mul),
    "/": (2, operator.truediv),
}

# A rewritten unary minus binds tighter than any binary operator
UNARY_MINUS_PRECEDENCE = 3

NUMBER_CHARS = "0123456789."


class ExpressionParser:
    """
    Parse and evaluate arithmetic expressions safely.

    Design constraints:
        - No eval(), no dynamic code execution
        - Safe, deterministic computation
        - Stateless: every call owns its tokens, RPN sequence and value stack

    Algorithm:
        1. Tokenize character by character, rewriting a unary minus as ``0 -``
        2. Convert to Reverse Polish Notation (RPN) using Shunting-yard
        3. Evaluate RPN using a stack

    Examples:
        - Infix expression (standard notation): 3 * -2
        - Tokens: 3 * 0 - 2 (the minus is marked unary)
        - Corresponding Reverse Polish Notation (RPN): 3 0 2 - *
    """

    @staticmethod
    def _starts_operand(tokens: List[Token]) -> bool:
        """
        Tell whether the next token is expected to begin an operand.

        A minus in that position has no left operand and must be rewritten.

        :param List[Token] tokens: Tokens emitted so far

        :return: True at the start of input, after an operator or after '('
        :rtype: bool
        """
        if not tokens:
            return True
        return tokens[-1].is_operator or tokens[-1].kind is TokenKind.LEFT_PAREN

    @staticmethod
    def tokenize(expr: str, strict_decimals: bool = False) -> List[Token]:
        """
        Split an arithmetic expression into tokens.

        Unrecognized characters, whitespace included, are skipped. A number
        literal stops at its second decimal point; by default the rest of the
        text is scanned again as a new literal (``"1.2.3"`` gives ``1.2`` and
        ``.3``), while ``strict_decimals`` rejects it.

        :param str expr: Arithmetic expression as a string
        :param bool strict_decimals: Raise instead of splitting on a second decimal point

        :return: List of tokens
        :rtype: List[Token]
        :raises EvaluationError: INVALID_TOKEN on a second decimal point in strict mode
        """
        tokens: List[Token] = []
        i = 0

        while i < len(expr):
            char = expr[i]

            if char in NUMBER_CHARS:
                start = i
                seen_dot = False
                while i < len(expr) and expr[i] in NUMBER_CHARS:
                    if expr[i] == ".":
                        if seen_dot:
                            if strict_decimals:
                                raise EvaluationError(
                                    ErrorKind.INVALID_TOKEN,
                                    f"Second decimal point in number at position {i}: {expr!r}",
                                )
                            break
                        seen_dot = True
                    i += 1

                literal = expr[start:i]
                # "12." is read as "12.0"
                if literal.endswith("."):
                    literal += "0"
                tokens.append(Token.number(literal))
                continue

            if char in OPERATORS:
                unary = char == "-" and ExpressionParser._starts_operand(tokens)
                if unary:
                    tokens.append(Token.number("0"))
                tokens.append(Token.operator(char, unary=unary))
            elif char == "(":
                tokens.append(Token.left_paren())
            elif char == ")":
                tokens.append(Token.right_paren())

            i += 1

        return tokens

    @staticmethod
    def _precedence(token: Token) -> int:
        if token.unary:
            return UNARY_MINUS_PRECEDENCE
        return OPERATORS[token.text][0]

    @staticmethod
    def to_rpn(tokens: Sequence[Token]) -> List[Token]:
        """
        Convert a list of tokens into Reverse Polish Notation (RPN) using the Shunting-yard algorithm.

        Binary operators are left-associative, so ``a - b - c`` is ``(a - b) - c``.
        The unary minus is right-associative, so ``--5`` is ``0 - (0 - 5)``.

        :param Sequence[Token] tokens: List of arithmetic tokens

        :return: List of tokens in RPN order, without parentheses
        :rtype: List[Token]
        :raises EvaluationError: MISMATCHED_PARENTHESES or INVALID_TOKEN
        """
        output: List[Token] = []
        stack: List[Token] = []

        for token in tokens:
            if not isinstance(token, Token):
                raise EvaluationError(ErrorKind.INVALID_TOKEN, f"Invalid token: {token!r}")

            if token.kind is TokenKind.NUMBER:
                # Numbers are added directly to the output
                output.append(token)

            elif token.kind is TokenKind.OPERATOR:
                # Pop operators that bind at least as tightly (strictly tighter for unary minus)
                prec = ExpressionParser._precedence(token)
                while stack and stack[-1].is_operator:
                    top_prec = ExpressionParser._precedence(stack[-1])
                    if top_prec < prec or (token.unary and top_prec == prec):
                        break
                    output.append(stack.pop())
                stack.append(token)

            elif token.kind is TokenKind.LEFT_PAREN:
                stack.append(token)

            else:
                while stack and stack[-1].kind is not TokenKind.LEFT_PAREN:
                    output.append(stack.pop())
                if not stack:
                    raise EvaluationError(
                        ErrorKind.MISMATCHED_PARENTHESES, "Closing parenthesis without a matching '('"
                    )
                # Discard the matching "("
                stack.pop()

        # Append remaining operators (stack top first)
        while stack:
            token = stack.pop()
            if token.is_parenthesis:
                raise EvaluationError(ErrorKind.MISMATCHED_PARENTHESES, "Unclosed parenthesis '('")
            output.append(token)

        return output

    @staticmethod
    def eval_rpn(rpn: Sequence[Token]) -> float:
        """
        Reduce an RPN token sequence to a single value using a stack.

        :param Sequence[Token] rpn: Tokens in RPN order

        :return: Computed result as float, possibly non-finite on overflow
        :rtype: float
        :raises EvaluationError: INSUFFICIENT_OPERANDS, DIVIDE_BY_ZERO, MALFORMED_EXPRESSION or INVALID_TOKEN
        """
        stack: List[float] = []

        for token in rpn:
            if not isinstance(token, Token) or token.is_parenthesis:
                raise EvaluationError(ErrorKind.INVALID_TOKEN, f"Invalid RPN token: {token!r}")

            if token.is_number:
                stack.append(float(token.text))
                continue

            # Operator requires two operands
            if len(stack) < 2:
                raise EvaluationError(
                    ErrorKind.INSUFFICIENT_OPERANDS, f"Operator {token.text!r} needs two operands"
                )
            b: float = stack.pop()
            a: float = stack.pop()
            if token.text == "/" and b == 0:
                raise EvaluationError(ErrorKind.DIVIDE_BY_ZERO, "Division by zero")
            stack.append(OPERATORS[token.text][1](a, b))

        if len(stack) != 1:
            raise EvaluationError(
                ErrorKind.MALFORMED_EXPRESSION, f"Expected one value after evaluation, found {len(stack)}"
            )

        return stack[0]

    @staticmethod
    def evaluate(expr: str, strict_decimals: bool = False) -> float:
        """
        Evaluate an arithmetic expression safely.

        An expression without any token (e.g. ``""``) evaluates to ``0.0``.
        A non-finite result is reported as DIVIDE_BY_ZERO.

        :param str expr: Arithmetic expression string
        :param bool strict_decimals: Reject a second decimal point inside one literal

        :return: Computed result as float
        :rtype: float
        :raises EvaluationError: If expression is invalid or malformed
        """
        tokens: List[Token] = ExpressionParser.tokenize(expr, strict_decimals=strict_decimals)

        if not tokens:
            return 0.0

        rpn: List[Token] = ExpressionParser.to_rpn(tokens)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("RPN for %r: %s", expr, " ".join(str(token) for token in rpn))

        result: float = ExpressionParser.eval_rpn(rpn)

        if not math.isfinite(result):
            raise EvaluationError(ErrorKind.DIVIDE_BY_ZERO, f"Result is not a finite number: {result}")

        return result


def evaluate(expr: str, strict_decimals: bool = False) -> float:
    """
    Evaluate ``expr`` with :class:`ExpressionParser`.

    :param str expr: Arithmetic expression string
    :param bool strict_decimals: Reject a second decimal point inside one literal

    :return: Computed result as float
    :rtype: float
    :raises EvaluationError: If expression is invalid or malformed
    """
    return ExpressionParser.evaluate(expr, strict_decimals=strict_decimals)
