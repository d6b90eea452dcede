"""Token model for ilang. Tokens are immutable once the lexer produces them.

Token kinds fall into the groups below. Fixed kinds carry their exact source text as their enum value, so the lexer's
fixed-string table is built straight from the enumeration; the remaining kinds are classes of text (literals,
identifiers) and carry a bracketed description instead.
"""

from collections import namedtuple
from enum import Enum


class TokenKind(Enum):
    # keywords
    VAR = "var"
    IF = "if"
    THEN = "then"
    ELSE = "else"
    FOR = "for"
    IN = "in"
    WHILE = "while"
    LOOP = "loop"
    FUNC = "func"
    RETURN = "return"
    BREAK = "break"
    PRINT = "print"
    IS = "is"
    END = "end"

    # built-in type identifiers
    INTEGER_TYPE = "Integer"
    REAL_TYPE = "Real"
    BOOL_TYPE = "Bool"
    STRING_TYPE = "String"
    ARRAY_TYPE = "Array"
    TUPLE_TYPE = "Tuple"
    EMPTY_TYPE = "Empty"

    # punctuators
    ROUND_OPEN = "("
    ROUND_CLOSE = ")"
    CURLY_OPEN = "{"
    CURLY_CLOSE = "}"
    SQUARE_OPEN = "["
    SQUARE_CLOSE = "]"
    SEMICOLON = ";"
    COLON = ":"
    COMMA = ","

    # operators
    ASSIGN = ":="
    PLUS_ASSIGN = "+="
    DOT = "."
    RANGE = ".."
    ARROW = "=>"
    PLUS = "+"
    MINUS = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    PERCENT = "%"
    AND = "and"
    OR = "or"
    XOR = "xor"

    # comparators
    LESS = "<"
    LEQ = "<="
    GREATER = ">"
    GEQ = ">="
    EQUAL = "="
    NOT_EQUAL = "!="

    # literals and the rest
    INT_LITERAL = "<integer>"
    REAL_LITERAL = "<real>"
    BOOL_LITERAL = "<boolean>"
    STRING_LITERAL = "<string>"
    IDENTIFIER = "<identifier>"
    UNKNOWN = "<unknown>"


TYPE_IDENTIFIERS = frozenset({
    TokenKind.INTEGER_TYPE, TokenKind.REAL_TYPE, TokenKind.BOOL_TYPE, TokenKind.STRING_TYPE, TokenKind.ARRAY_TYPE,
    TokenKind.TUPLE_TYPE, TokenKind.EMPTY_TYPE,
})

COMPARATORS = frozenset({
    TokenKind.LESS, TokenKind.LEQ, TokenKind.GREATER, TokenKind.GEQ, TokenKind.EQUAL, TokenKind.NOT_EQUAL,
})

# operators that may join two operands inside an expression ('is' included)
BINARY_OPERATORS = frozenset({
    TokenKind.PLUS, TokenKind.MINUS, TokenKind.MULTIPLY, TokenKind.DIVIDE, TokenKind.PERCENT, TokenKind.AND,
    TokenKind.OR, TokenKind.XOR, TokenKind.IS,
}) | COMPARATORS

ASSIGNMENT_OPERATORS = frozenset({TokenKind.ASSIGN, TokenKind.PLUS_ASSIGN})

LITERALS = frozenset({
    TokenKind.INT_LITERAL, TokenKind.REAL_LITERAL, TokenKind.BOOL_LITERAL, TokenKind.STRING_LITERAL,
})

# kinds matched by a class of text rather than by one exact string
CLASSES = LITERALS | {TokenKind.IDENTIFIER, TokenKind.UNKNOWN}

FIXED = {kind.value: kind for kind in TokenKind if kind not in CLASSES}


class Span(namedtuple("Span", "start_line start_col end_line end_col")):
    """1-based, end-inclusive source location."""
    __slots__ = ()

    def merge(self, last):
        """Span running from the start of self to the end of last."""
        return Span(self.start_line, self.start_col, last.end_line, last.end_col)

    def __str__(self):
        return f"{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


class Token(namedtuple("Token", "kind text span")):
    """A lexeme: its kind, its exact source text, and where it was read."""
    __slots__ = ()

    def __str__(self):
        return f"{self.kind.name} '{self.text}' on {self.span}"
