"""Lexical analysis for ilang: a single left-to-right scan over the source with a growable buffer.

Before each character is appended, the buffer is checked for a complete token in fixed priority order:

```
comment        ; "// ... <newline>" or "/* ... */", discarded
fixed text     ; keywords, type identifiers, operators, punctuators, comparators
number         ; -?(\\d+\\.?\\d*|\\d*\\.\\d+), integer if it parses as one, real otherwise
string         ; "..." on a single line
boolean        ; true | false
identifier     ; [A-Za-z_][A-Za-z0-9_]*
whitespace     ; discarded
unknown        ; anything that cannot grow into one of the above
```

A token is only emitted when appending the next character would break its match (longest match), so `<=` is never
read as `<` followed by `=`. Lexing never fails: unrecognized text becomes an UNKNOWN token for the parser to report.
"""

import re

from ilang.syntax.tokens import FIXED, Span, Token, TokenKind


NUMBER = re.compile(r"-?(\d+\.?\d*|\d*\.\d+)")
NUMBER_PREFIX = re.compile(r"-?\d*\.?\d*")
STRING = re.compile(r'"[^"\n]*"')
IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
BOOLEANS = ("true", "false")

COMMENT_STARTS = ("//", "/*")
# characters that end a run of unknown text
BOUNDARIES = frozenset(text[0] for text in FIXED if not text[0].isalpha()) | {'"'}


def is_identifier_char(char):
    return char is not None and (char.isalnum() or char == "_")


class Lexer:
    """Finite-state tokenizer. Instantiate with the source text and call tokenize."""

    def __init__(self, source):
        self.source = source
        self.tokens = []

        self.buffer = ""
        self.positions = []  # (line, col) of every buffered character

        self.line = 1
        self.column = 1

    def tokenize(self):
        """Returns the ordered list of tokens in self.source."""
        for char in self.source:
            self._flush(char)
            self._consume(char)
        self._flush(None)

        if self.buffer:
            # open string, unterminated block comment, or line comment at end of input
            if self.buffer.startswith("//"):
                self._discard()
            else:
                self._emit(TokenKind.UNKNOWN)

        return self.tokens

    def _consume(self, char):
        self.buffer += char
        self.positions.append((self.line, self.column))

        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1

    def _flush(self, lookahead):
        """Emits or discards the buffer if it holds a complete token that lookahead can't extend."""
        buffer = self.buffer
        if not buffer:
            return

        if self._is_comment(buffer):
            self._discard()
            return

        kind = FIXED.get(buffer)
        if kind is not None:
            if not self._extends_fixed(buffer, lookahead):
                self._emit(kind)
            return

        if NUMBER.fullmatch(buffer):
            if buffer.endswith(".") and lookahead == ".":
                self._emit_number_before_range()
            elif not (is_identifier_char(lookahead) or lookahead == "."):
                self._emit_number()
            return

        if STRING.fullmatch(buffer):
            self._emit(TokenKind.STRING_LITERAL)

        elif buffer in BOOLEANS and not is_identifier_char(lookahead):
            self._emit(TokenKind.BOOL_LITERAL)

        elif IDENTIFIER.fullmatch(buffer):
            if not is_identifier_char(lookahead):
                self._emit(TokenKind.IDENTIFIER)

        elif buffer.isspace():
            self._discard()

        elif not self._is_viable(buffer) and (lookahead is None or lookahead.isspace() or lookahead in BOUNDARIES):
            self._emit(TokenKind.UNKNOWN)

    @staticmethod
    def _is_comment(buffer):
        if buffer.startswith("//"):
            return buffer.endswith("\n")
        return buffer.startswith("/*") and buffer.endswith("*/") and len(buffer) >= 4

    @staticmethod
    def _extends_fixed(buffer, lookahead):
        """Whether or not buffer + lookahead may still become a longer token than buffer."""
        if lookahead is None:
            return False
        if buffer[0].isalpha():
            return is_identifier_char(lookahead)  # keyword is a prefix of a longer identifier

        extended = buffer + lookahead
        if extended in COMMENT_STARTS:
            return True
        return any(text.startswith(extended) for text in FIXED if not text[0].isalpha())

    @staticmethod
    def _is_viable(buffer):
        """Whether or not buffer is a prefix of some valid token."""
        if buffer.startswith('"'):
            return '"' not in buffer[1:] and "\n" not in buffer
        if buffer.startswith(COMMENT_STARTS):
            return True
        if any(text.startswith(buffer) for text in FIXED):
            return True
        return bool(NUMBER_PREFIX.fullmatch(buffer) or IDENTIFIER.fullmatch(buffer))

    def _emit_number(self):
        try:
            int(self.buffer)
            self._emit(TokenKind.INT_LITERAL)
        except ValueError:
            self._emit(TokenKind.REAL_LITERAL)

    def _emit_number_before_range(self):
        """'1..' is the integer 1 followed by the start of a range."""
        dot, position = self.buffer[-1], self.positions[-1]
        self.buffer, self.positions = self.buffer[:-1], self.positions[:-1]
        self._emit_number()
        self.buffer, self.positions = dot, [position]

    def _emit(self, kind):
        (start_line, start_col), (end_line, end_col) = self.positions[0], self.positions[-1]
        self.tokens.append(Token(kind, self.buffer, Span(start_line, start_col, end_line, end_col)))
        self._discard()

    def _discard(self):
        self.buffer = ""
        self.positions = []


def tokenize(source):
    """Returns the ordered list of tokens in source."""
    return Lexer(source).tokenize()
