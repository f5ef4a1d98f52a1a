"""Pydantic models for the lexical tokens of an arithmetic expression."""
from enum import Enum
import re

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Digits with at most one decimal point; a trailing point is normalized away by the tokenizer
NUMBER_PATTERN = re.compile(r"^(\d+(\.\d+)?|\.\d+)$")

OPERATOR_SYMBOLS = ("+", "-", "*", "/")


class TokenKind(str, Enum):
    """Lexical category of a token."""

    NUMBER = "number"
    OPERATOR = "operator"
    LEFT_PAREN = "left_paren"
    RIGHT_PAREN = "right_paren"


class Token(BaseModel):
    """
    A single lexical unit of an expression.

    Tokens are immutable and compare by value, so token sequences can be
    checked with a plain ``==`` in tests and drivers.
    """

    model_config = ConfigDict(frozen=True)

    kind: TokenKind = Field(..., description="Lexical category")
    text: str = Field(..., min_length=1, description="Source lexeme, normalized for numbers")
    unary: bool = Field(default=False, description="Minus produced by the unary-minus rewrite")

    @model_validator(mode="after")
    def text_must_match_kind(self) -> "Token":
        """Ensure the lexeme is legal for its kind."""
        if self.kind is TokenKind.NUMBER and not NUMBER_PATTERN.match(self.text):
            raise ValueError(f"Invalid number literal: {self.text!r}")
        if self.kind is TokenKind.OPERATOR and self.text not in OPERATOR_SYMBOLS:
            raise ValueError(f"Invalid operator: {self.text!r}")
        if self.kind is TokenKind.LEFT_PAREN and self.text != "(":
            raise ValueError(f"Invalid left parenthesis: {self.text!r}")
        if self.kind is TokenKind.RIGHT_PAREN and self.text != ")":
            raise ValueError(f"Invalid right parenthesis: {self.text!r}")
        if self.unary and self.text != "-":
            raise ValueError("Only '-' can be unary")
        return self

    @classmethod
    def number(cls, text: str) -> "Token":
        return cls(kind=TokenKind.NUMBER, text=text)

    @classmethod
    def operator(cls, symbol: str, unary: bool = False) -> "Token":
        return cls(kind=TokenKind.OPERATOR, text=symbol, unary=unary)

    @classmethod
    def left_paren(cls) -> "Token":
        return cls(kind=TokenKind.LEFT_PAREN, text="(")

    @classmethod
    def right_paren(cls) -> "Token":
        return cls(kind=TokenKind.RIGHT_PAREN, text=")")

    @property
    def is_number(self) -> bool:
        return self.kind is TokenKind.NUMBER

    @property
    def is_operator(self) -> bool:
        return self.kind is TokenKind.OPERATOR

    @property
    def is_parenthesis(self) -> bool:
        return self.kind in (TokenKind.LEFT_PAREN, TokenKind.RIGHT_PAREN)

    def __str__(self) -> str:
        return self.text
