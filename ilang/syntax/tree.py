"""Abstract syntax tree for ilang.

The tree is a closed set of node classes. Expressions are binary trees of Lhs/Operator/Rhs; a lone Lhs is a passthrough
("just evaluate Lhs"), and an Expression with no Lhs is the initializer of a declaration/assignment (":= <Rhs>").
Literals, identifiers, references, composite literals, functions and calls are Expressions with no Lhs/Operator/Rhs
of their own.

Some fields are rewritten after construction: the parser re-balances operators as it reads them, and the semantic
analyzer folds constants and prunes dead statements in place.
"""

from enum import Enum

from ilang.syntax.tokens import Span, Token, TokenKind, TYPE_IDENTIFIERS


class OperatorKind(Enum):
    PLUS = "+"
    MINUS = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    MODULO = "%"
    AND = "and"
    OR = "or"
    XOR = "xor"
    EQUAL = "="
    NOT_EQUAL = "!="
    LESS = "<"
    LESS_OR_EQUAL = "<="
    GREATER = ">"
    GREATER_OR_EQUAL = ">="
    ASSIGN = ":="
    MEMBERWISE_ADDITION = "+="
    IS = "is"


OPERATOR_KINDS = {
    TokenKind.PLUS: OperatorKind.PLUS,
    TokenKind.MINUS: OperatorKind.MINUS,
    TokenKind.MULTIPLY: OperatorKind.MULTIPLY,
    TokenKind.DIVIDE: OperatorKind.DIVIDE,
    TokenKind.PERCENT: OperatorKind.MODULO,
    TokenKind.AND: OperatorKind.AND,
    TokenKind.OR: OperatorKind.OR,
    TokenKind.XOR: OperatorKind.XOR,
    TokenKind.EQUAL: OperatorKind.EQUAL,
    TokenKind.NOT_EQUAL: OperatorKind.NOT_EQUAL,
    TokenKind.LESS: OperatorKind.LESS,
    TokenKind.LEQ: OperatorKind.LESS_OR_EQUAL,
    TokenKind.GREATER: OperatorKind.GREATER,
    TokenKind.GEQ: OperatorKind.GREATER_OR_EQUAL,
    TokenKind.ASSIGN: OperatorKind.ASSIGN,
    TokenKind.PLUS_ASSIGN: OperatorKind.MEMBERWISE_ADDITION,
    TokenKind.IS: OperatorKind.IS,
}

# assignment sticks last; everything not listed (boolean, comparison, 'is') weighs -1
WEIGHTS = {
    OperatorKind.ASSIGN: 10,
    OperatorKind.MEMBERWISE_ADDITION: 10,
    OperatorKind.MULTIPLY: 2,
    OperatorKind.DIVIDE: 2,
    OperatorKind.MODULO: 2,
    OperatorKind.PLUS: 1,
    OperatorKind.MINUS: 1,
}

ARITHMETIC = frozenset({
    OperatorKind.PLUS, OperatorKind.MINUS, OperatorKind.MULTIPLY, OperatorKind.DIVIDE, OperatorKind.MODULO,
})
FOLDABLE = frozenset({OperatorKind.PLUS, OperatorKind.MINUS, OperatorKind.MULTIPLY, OperatorKind.DIVIDE})
ORDERING = frozenset({
    OperatorKind.LESS, OperatorKind.LESS_OR_EQUAL, OperatorKind.GREATER, OperatorKind.GREATER_OR_EQUAL,
})
EQUALITY = frozenset({OperatorKind.EQUAL, OperatorKind.NOT_EQUAL})
LOGICAL = frozenset({OperatorKind.AND, OperatorKind.OR, OperatorKind.XOR})


class LiteralKind(Enum):
    INTEGER = "Integer"
    REAL = "Real"
    BOOLEAN = "Boolean"
    STRING = "String"


LITERAL_KINDS = {
    TokenKind.INT_LITERAL: LiteralKind.INTEGER,
    TokenKind.REAL_LITERAL: LiteralKind.REAL,
    TokenKind.BOOL_LITERAL: LiteralKind.BOOLEAN,
    TokenKind.STRING_LITERAL: LiteralKind.STRING,
}


class Node:
    """Superclass of every tree node. Nodes compare structurally."""
    span = None
    _ignored = ()  # attributes left out of structural comparison

    def children(self):
        """Direct sub nodes, in source order."""
        return []

    def display(self, indents=0):
        """Recursively displays the tree with readable format.

        Format:
        <Node>(expr='<expr>', nodes=[
            <Node>(expr='<expr>', nodes=[
                ...
                <Node>(expr='<expr>')  # <-- if nodes is empty
            ])
        ])
        """
        result = f"{'    ' * indents}{type(self).__name__}(expr='{self}'"
        children = self.children()
        if children:
            result += ", nodes=["
            for node in children:
                result += "\n" + node.display(indents + 1) + ","
            result = result[:-1] + f"\n{'    ' * indents}]"
        return result + ")"

    def _fields(self):
        return {name: value for name, value in vars(self).items() if name not in self._ignored}

    def __eq__(self, other):
        return type(self) is type(other) and self._fields() == other._fields()

    def __ne__(self, other):
        return not self == other

    __hash__ = object.__hash__

    def __repr__(self):
        return f"{type(self).__name__}('{self}')"


def _present(*nodes):
    return [node for node in nodes if node is not None]


class Program(Node):

    def __init__(self, declarations=None, span=None):
        self.declarations = declarations if declarations is not None else []
        self.span = span

    def children(self):
        return list(self.declarations)

    def __str__(self):
        return " ".join(f"{declaration};" for declaration in self.declarations)


class Body(Node):
    """Ordered statements of a block: function, loop, or branch."""

    def __init__(self, statements=None, span=None):
        self.statements = statements if statements is not None else []
        self.span = span

    def children(self):
        return list(self.statements)

    def __str__(self):
        return " ".join(f"{statement};" for statement in self.statements)


class Operator(Node):
    """Binary operator. weight is only meaningful to the parser, which uses it to resolve precedence."""

    def __init__(self, token, kind=None):
        self.token = token
        self.kind = kind if kind is not None else OPERATOR_KINDS[token.kind]
        self.weight = WEIGHTS.get(self.kind, -1)
        self.span = token.span

    def make_weight_persistent(self):
        """Parenthesized operators bind tighter than their nominal weight."""
        self.weight += 2

    def compare(self, other):
        """-1, 0 or 1 as self weighs less than, the same as, or more than other."""
        return (self.weight > other.weight) - (self.weight < other.weight)

    def __str__(self):
        return self.kind.value


class Expression(Node):

    def __init__(self, lhs=None, operator=None, rhs=None, grouped=False, span=None):
        self.lhs = lhs
        self.operator = operator
        self.rhs = rhs
        self.grouped = grouped  # written in parentheses
        self.span = span

    @property
    def is_binary(self):
        return self.lhs is not None and self.operator is not None and self.rhs is not None

    @property
    def is_passthrough(self):
        return self.lhs is not None and self.operator is None and self.rhs is None

    def children(self):
        return _present(self.lhs, self.operator, self.rhs)

    def __str__(self):
        if self.is_passthrough:
            text = str(self.lhs)
        elif self.lhs is None:
            text = f"{self.operator} {self.rhs}"
        else:
            text = f"{self.lhs} {self.operator} {self.rhs}"
        return f"({text})" if self.grouped else text


class Literal(Expression):

    def __init__(self, kind, token):
        super().__init__(span=token.span)
        self.kind = kind
        self.token = token

    @classmethod
    def from_token(cls, token):
        return cls(LITERAL_KINDS[token.kind], token)

    @classmethod
    def from_value(cls, value, span):
        """Literal holding value, as produced by constant folding."""
        if isinstance(value, bool):
            token = Token(TokenKind.BOOL_LITERAL, "true" if value else "false", span)
        elif isinstance(value, int):
            token = Token(TokenKind.INT_LITERAL, str(value), span)
        elif isinstance(value, float):
            token = Token(TokenKind.REAL_LITERAL, repr(value), span)
        else:
            token = Token(TokenKind.STRING_LITERAL, f'"{value}"', span)
        return cls.from_token(token)

    @property
    def value(self):
        text = self.token.text
        if self.kind is LiteralKind.INTEGER:
            return int(text)
        if self.kind is LiteralKind.REAL:
            return float(text)
        if self.kind is LiteralKind.BOOLEAN:
            return text == "true"
        return text[1:-1]

    def __str__(self):
        return self.token.text


class Identifier(Expression):
    """A name. Built-in type names (the right operand of 'is', annotations) are Identifiers too."""

    def __init__(self, token):
        super().__init__(span=token.span)
        self.token = token

    @property
    def name(self):
        return self.token.text

    @property
    def is_type(self):
        return self.token.kind in TYPE_IDENTIFIERS

    def __str__(self):
        return self.name


class ArrayLiteral(Expression):

    def __init__(self, items, span=None):
        super().__init__(span=span)
        self.items = items

    def children(self):
        return list(self.items)

    def __str__(self):
        return "[" + ", ".join(str(item) for item in self.items) + "]"


class ArrayReference(Expression):

    def __init__(self, identifier, index, span=None):
        super().__init__(span=span)
        self.identifier = identifier
        self.index = index

    def children(self):
        return [self.identifier, self.index]

    def __str__(self):
        return f"{self.identifier}[{self.index}]"


class VariableDeclaration(Node):
    """var <identifier> (: <type>)? (<operator> <expression>)?

    expression, when present, is an Expression with no Lhs whose operator must be ':='.
    """

    def __init__(self, identifier, type=None, expression=None, span=None):
        self.identifier = identifier
        self.type = type
        self.expression = expression
        self.span = span

    @property
    def name(self):
        return self.identifier.name

    def children(self):
        return _present(self.identifier, self.type, self.expression)

    def _declaration(self):
        text = self.name
        if self.type is not None:
            text += f" : {self.type}"
        if self.expression is not None:
            text += f" {self.expression}"
        return text

    def __str__(self):
        return "var " + self._declaration()


class TupleElement(VariableDeclaration):
    """Field of a tuple literal, declared like a variable inside the tuple's scope."""

    def __str__(self):
        return self._declaration()


class Tuple(Expression):
    """items maps field name to TupleElement; insertion order is kept for display."""

    def __init__(self, items, span=None):
        super().__init__(span=span)
        self.items = items

    @property
    def scope_name(self):
        """Scope the fields are declared in when the tuple isn't bound to a variable."""
        return f"<tuple {self.span.start_line}:{self.span.start_col}>"

    def children(self):
        return list(self.items.values())

    def __str__(self):
        return "{" + ", ".join(str(item) for item in self.items.values()) + "}"


class TupleReference(Expression):

    def __init__(self, identifier, field, span=None):
        super().__init__(span=span)
        self.identifier = identifier
        self.field = field

    def children(self):
        return [self.identifier, self.field]

    def __str__(self):
        return f"{self.identifier}.{self.field}"


class Function(Expression):
    """(params) => expression, or (params) is body end. Exactly one of expression/body is set."""

    def __init__(self, params, expression=None, body=None, span=None):
        super().__init__(span=span)
        self.params = params
        self.expression = expression
        self.body = body

    @property
    def scope_name(self):
        """Scope the parameters are declared in when the function isn't bound to a variable."""
        return f"<function {self.span.start_line}:{self.span.start_col}>"

    def children(self):
        return self.params + _present(self.expression, self.body)

    def __str__(self):
        params = "(" + ", ".join(str(param) for param in self.params) + ")"
        if self.expression is not None:
            return f"{params} => {self.expression}"
        return " ".join(part for part in (params, "is", str(self.body), "end") if part)


class FunctionCall(Expression):
    """function is filled in by semantic analysis when the callee is known."""
    _ignored = ("function",)

    def __init__(self, identifier, arguments, span=None):
        super().__init__(span=span)
        self.identifier = identifier
        self.arguments = arguments
        self.function = None

    @property
    def name(self):
        return self.identifier.name

    def children(self):
        return [self.identifier] + list(self.arguments)

    def __str__(self):
        return f"{self.identifier}(" + ", ".join(str(argument) for argument in self.arguments) + ")"


class VariableAssignment(Node):
    """<target> <operator> <expression>, where target is an Identifier, ArrayReference or TupleReference and the
    operator must be ':='.
    """

    def __init__(self, target, expression, span=None):
        self.target = target
        self.expression = expression
        self.span = span

    @property
    def identifier(self):
        if isinstance(self.target, Identifier):
            return self.target
        return self.target.identifier

    def children(self):
        return [self.target, self.expression]

    def __str__(self):
        return f"{self.target} {self.expression}"


class MemberwiseAddition(VariableAssignment):
    """<target> += <expression>."""


class If(Node):

    def __init__(self, condition, then_body, else_body=None, span=None):
        self.condition = condition
        self.then_body = then_body
        self.else_body = else_body
        self.span = span

    def children(self):
        return _present(self.condition, self.then_body, self.else_body)

    def __str__(self):
        parts = ["if", str(self.condition), "then", str(self.then_body)]
        if self.else_body is not None:
            parts += ["else", str(self.else_body)]
        return " ".join(part for part in parts + ["end"] if part)


class While(Node):

    def __init__(self, condition, body, span=None):
        self.condition = condition
        self.body = body
        self.span = span

    def children(self):
        return [self.condition, self.body]

    def __str__(self):
        return " ".join(part for part in ("while", str(self.condition), "loop", str(self.body), "end") if part)


class For(Node):
    """for <identifier> in <start>..<stop> loop <body> end, iterating over [start, stop)."""

    def __init__(self, identifier, start, stop, body, span=None):
        self.identifier = identifier
        self.start = start
        self.stop = stop
        self.body = body
        self.span = span

    def children(self):
        return [self.identifier, self.start, self.stop, self.body]

    def __str__(self):
        header = f"for {self.identifier} in {self.start}..{self.stop} loop"
        return " ".join(part for part in (header, str(self.body), "end") if part)


class Print(Node):

    def __init__(self, items, span=None):
        self.items = items
        self.span = span

    def children(self):
        return list(self.items)

    def __str__(self):
        return "print " + ", ".join(str(item) for item in self.items)


class Return(Node):

    def __init__(self, expression=None, span=None):
        self.expression = expression
        self.span = span

    def children(self):
        return _present(self.expression)

    def __str__(self):
        return "return" if self.expression is None else f"return {self.expression}"


class Break(Node):

    def __init__(self, span=None):
        self.span = span

    def __str__(self):
        return "break"


def zero(span):
    """Integer literal 0, used for desugaring ('for x in n', unary minus)."""
    return Literal.from_token(Token(TokenKind.INT_LITERAL, "0", span))


__all__ = [
    "ARITHMETIC", "EQUALITY", "FOLDABLE", "LOGICAL", "ORDERING", "ArrayLiteral", "ArrayReference", "Body", "Break",
    "Expression", "For", "Function", "FunctionCall", "Identifier", "If", "Literal", "LiteralKind",
    "MemberwiseAddition", "Node", "Operator", "OperatorKind", "Print", "Program", "Return", "Span", "Tuple",
    "TupleElement", "TupleReference", "VariableAssignment", "VariableDeclaration", "While", "zero",
]
