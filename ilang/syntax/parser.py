"""Syntax analysis for ilang: recursive descent over the token list produced by the lexer.

All grammar can be loosely defined as follows (';' between statements is optional):

```
<program>     ::= <statement>*
<statement>   ::= <declaration> | <assignment> | <call> | <print> | <if> | <while> | <for>
                | "return" <expr>? | "break"                ; return/break only inside blocks
<declaration> ::= "var" <ident> (":" <type>)? (<op> <expr>)?  ; <op> must be ":=", checked by the analyzer
<assignment>  ::= <reference> (":=" | "+=") <expr>
<reference>   ::= <ident> | <ident> "[" <expr> "]" | <ident> "." <ident> | <call>
<call>        ::= <ident> "(" (<expr> ("," <expr>)*)? ")"
<print>       ::= "print" <expr> ("," <expr>)*
<if>          ::= "if" <expr> "then" <body> ("else" <body>)? "end"
<while>       ::= "while" <expr> "loop" <body> "end"
<for>         ::= "for" <ident> "in" <expr> (".." <expr>)? "loop" <body> "end"

<expr>        ::= <operand> (<binop> <operand>)*          ; right operand of "is" is a <type>
<operand>     ::= <literal> | "-" <operand> | <reference> | "(" <expr> ")"
                | "[" <exprs>? "]" | "{" <field> ("," <field>)* "}"
                | "func"? "(" <idents>? ")" ("=>" <expr> | "is" <body> "end")
```

Precedence is resolved with operator weights rather than one grammar rule per level: whenever an operator is read,
it either becomes the new root of the expression read so far or sinks into its right spine, depending on how its
weight compares with the weights already there.
"""

from ilang.lang.error import GenericException
from ilang.syntax.tokens import (
    ASSIGNMENT_OPERATORS, BINARY_OPERATORS, LITERALS, TYPE_IDENTIFIERS, Token, TokenKind,
)
from ilang.syntax.tree import (
    ArrayLiteral, ArrayReference, Body, Break, Expression, For, Function, FunctionCall, Identifier, If, Literal,
    MemberwiseAddition, Operator, OperatorKind, Print, Program, Return, Tuple, TupleElement, TupleReference,
    VariableAssignment, VariableDeclaration, While, zero,
)


# operators accepted after a declared name or a reference statement; the analyzer decides which ones are legal
STATEMENT_OPERATORS = (ASSIGNMENT_OPERATORS | BINARY_OPERATORS) - {TokenKind.IS}
RETURN_TERMINATORS = (TokenKind.SEMICOLON, TokenKind.END, TokenKind.ELSE)


class ParseError(GenericException):
    """Raised on the first unexpected token. token is None when input ends too early."""

    def __init__(self, token, context):
        where = "EOF" if token is None else str(token)
        super().__init__("{} : Unexpected token {}", (where, context), span=None if token is None else token.span)
        self.token = token


class Parser:
    """Builds a Program from a list of tokens. Instantiate with the tokens and call parse."""

    def __init__(self, tokens):
        self.tokens = list(tokens)
        self.position = 0

    def parse(self):
        """Returns (program, error). On a syntax error, program is None and error is the ParseError; parsing stops at
        the offending token.
        """
        try:
            return self._program(), None
        except ParseError as error:
            return None, error

    # token stream

    def _peek(self, offset=0):
        index = self.position + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def _check(self, *kinds, offset=0):
        token = self._peek(offset)
        return token is not None and token.kind in kinds

    def _previous(self):
        return self.tokens[self.position - 1]

    def _advance(self):
        token = self._peek()
        if token is None:
            raise ParseError(None, "(unexpected end of input)")
        self.position += 1
        return token

    def _accept(self, kind):
        return self._advance() if self._check(kind) else None

    def _expect(self, kind, context):
        if not self._check(kind):
            raise ParseError(self._peek(), f"{context}, expected '{kind.value}'")
        return self._advance()

    def _span_from(self, start):
        return start.span.merge(self._previous().span)

    def _skip_separators(self):
        while self._accept(TokenKind.SEMICOLON):
            pass

    def _list(self, closing, item, context):
        """Parses comma-separated items up to and including the closing token."""
        items = []
        if self._accept(closing):
            return items

        while True:
            items.append(item())
            if self._accept(closing):
                return items
            if not self._check(TokenKind.COMMA):
                raise ParseError(self._peek(), f"{context}, expected ',' or '{closing.value}'")
            self._advance()

    # statements

    def _program(self):
        declarations = []
        self._skip_separators()
        while self._peek() is not None:
            declarations.append(self._statement(in_body=False))
            self._skip_separators()

        span = declarations[0].span.merge(declarations[-1].span) if declarations else None
        return Program(declarations, span)

    def _body(self, *terminators):
        """Statements up to (not including) one of terminators."""
        statements = []
        self._skip_separators()
        while not self._check(*terminators):
            if self._peek() is None:
                expected = " or ".join(f"'{kind.value}'" for kind in terminators)
                raise ParseError(None, f"in block, expected {expected}")
            statements.append(self._statement(in_body=True))
            self._skip_separators()

        if statements:
            return Body(statements, statements[0].span.merge(statements[-1].span))
        return Body(statements, self._peek().span)

    def _statement(self, in_body):
        token = self._peek()
        kind = token.kind

        if kind is TokenKind.VAR:
            return self._declaration()
        if kind is TokenKind.IDENTIFIER:
            return self._reference_statement()
        if kind is TokenKind.PRINT:
            return self._print()
        if kind is TokenKind.IF:
            return self._if()
        if kind is TokenKind.WHILE:
            return self._while()
        if kind is TokenKind.FOR:
            return self._for()
        if kind is TokenKind.RETURN and in_body:
            return self._return()
        if kind is TokenKind.BREAK and in_body:
            return Break(self._advance().span)

        raise ParseError(token, "at start of statement" if in_body else "at start of top-level statement")

    def _declaration(self):
        start = self._advance()
        return self._declarator(start, "in variable declaration", VariableDeclaration)

    def _declarator(self, start, context, cls):
        """<ident> (: <type>)? (<op> <expr>)?, shared by declarations and tuple fields."""
        identifier = Identifier(self._expect(TokenKind.IDENTIFIER, context))

        annotation = None
        if self._accept(TokenKind.COLON):
            if not self._check(*TYPE_IDENTIFIERS):
                raise ParseError(self._peek(), f"{context}, expected type identifier")
            annotation = Identifier(self._advance())

        expression = self._initializer() if self._check(*STATEMENT_OPERATORS) else None
        return cls(identifier, annotation, expression, self._span_from(start))

    def _initializer(self):
        """<op> <expr>, as an Expression with no Lhs."""
        token = self._advance()
        rhs = self._expression()
        return Expression(operator=Operator(token), rhs=rhs, span=self._span_from(token))

    def _reference_statement(self):
        start = self._peek()
        target = self._reference()

        if self._check(*STATEMENT_OPERATORS):
            if isinstance(target, FunctionCall):
                raise ParseError(self._peek(), "after function call")

            expression = self._initializer()
            if expression.operator.kind is OperatorKind.MEMBERWISE_ADDITION:
                return MemberwiseAddition(target, expression, self._span_from(start))
            return VariableAssignment(target, expression, self._span_from(start))

        if isinstance(target, FunctionCall):
            return target
        raise ParseError(self._peek(), f"after '{target}', expected ':=' or '+='")

    def _print(self):
        start = self._advance()
        items = [self._expression()]
        while self._accept(TokenKind.COMMA):
            items.append(self._expression())
        return Print(items, self._span_from(start))

    def _if(self):
        start = self._advance()
        condition = self._expression()
        self._expect(TokenKind.THEN, "in if statement")

        then_body = self._body(TokenKind.ELSE, TokenKind.END)
        else_body = self._body(TokenKind.END) if self._accept(TokenKind.ELSE) else None
        self._expect(TokenKind.END, "in if statement")

        return If(condition, then_body, else_body, self._span_from(start))

    def _while(self):
        start = self._advance()
        condition = self._expression()
        self._expect(TokenKind.LOOP, "in while loop")

        body = self._body(TokenKind.END)
        self._expect(TokenKind.END, "in while loop")

        return While(condition, body, self._span_from(start))

    def _for(self):
        start = self._advance()
        identifier = Identifier(self._expect(TokenKind.IDENTIFIER, "in for loop"))
        self._expect(TokenKind.IN, "in for loop")

        lower = self._expression()
        if self._accept(TokenKind.RANGE):
            upper = self._expression()
        else:
            lower, upper = zero(lower.span), lower  # for x in n loop ... == for x in 0..n loop ...
        self._expect(TokenKind.LOOP, "in for loop")

        body = self._body(TokenKind.END)
        self._expect(TokenKind.END, "in for loop")

        return For(identifier, lower, upper, body, self._span_from(start))

    def _return(self):
        start = self._advance()
        if self._peek() is None or self._check(*RETURN_TERMINATORS):
            return Return(span=start.span)
        return Return(self._expression(), self._span_from(start))

    # expressions

    def _expression(self):
        tree = self._operand()

        while self._check(*BINARY_OPERATORS):
            operator = Operator(self._advance())
            if operator.kind is OperatorKind.IS and self._check(*TYPE_IDENTIFIERS):
                operand = Identifier(self._advance())
            else:
                operand = self._operand()
            tree = Parser._rebalance(tree, operator, operand)

        return tree

    @staticmethod
    def _rebalance(tree, operator, operand):
        """Attaches 'operator operand' to tree. An operator heavier than the root of an ungrouped binary tree sinks
        into its right spine; otherwise the whole tree becomes its left operand (equal weights associate left).
        """
        if tree.is_binary and not tree.grouped and tree.operator.compare(operator) < 0:
            tree.rhs = Parser._rebalance(tree.rhs, operator, operand)
            tree.span = tree.span.merge(operand.span)
            return tree
        return Expression(tree, operator, operand, span=tree.span.merge(operand.span))

    def _operand(self):
        token = self._peek()
        if token is None:
            raise ParseError(None, "(expected expression)")
        kind = token.kind

        if kind in LITERALS:
            return Literal.from_token(self._advance())
        if kind is TokenKind.MINUS:
            return self._negation()
        if kind is TokenKind.IDENTIFIER:
            return self._reference()
        if kind is TokenKind.SQUARE_OPEN:
            return self._array()
        if kind is TokenKind.CURLY_OPEN:
            return self._tuple()
        if kind is TokenKind.FUNC or (kind is TokenKind.ROUND_OPEN and self._at_function_literal()):
            return self._function()
        if kind is TokenKind.ROUND_OPEN:
            return self._group()

        raise ParseError(token, "in expression")

    def _negation(self):
        minus = self._advance()
        if self._check(TokenKind.INT_LITERAL, TokenKind.REAL_LITERAL):
            literal = self._advance()
            return Literal.from_token(Token(literal.kind, "-" + literal.text, minus.span.merge(literal.span)))

        operand = self._operand()
        operator = Operator(minus)
        operator.make_weight_persistent()
        return Expression(zero(minus.span), operator, operand, grouped=True, span=minus.span.merge(operand.span))

    def _reference(self):
        token = self._expect(TokenKind.IDENTIFIER, "in reference")
        identifier = Identifier(token)

        if self._accept(TokenKind.ROUND_OPEN):
            arguments = self._list(TokenKind.ROUND_CLOSE, self._expression, "in argument list")
            return FunctionCall(identifier, arguments, self._span_from(token))

        if self._accept(TokenKind.SQUARE_OPEN):
            index = self._expression()
            self._expect(TokenKind.SQUARE_CLOSE, "in array reference")
            return ArrayReference(identifier, index, self._span_from(token))

        if self._accept(TokenKind.DOT):
            field = Identifier(self._expect(TokenKind.IDENTIFIER, "in tuple reference"))
            return TupleReference(identifier, field, self._span_from(token))

        return identifier

    def _array(self):
        start = self._advance()
        items = self._list(TokenKind.SQUARE_CLOSE, self._expression, "in array literal")
        return ArrayLiteral(items, self._span_from(start))

    def _tuple(self):
        start = self._advance()
        items = {}

        def field():
            token = self._peek()
            element = self._declarator(token, "in tuple literal", TupleElement)
            if element.name in items:
                raise ParseError(token, f"in tuple literal, field '{element.name}' is already defined")
            items[element.name] = element

        self._list(TokenKind.CURLY_CLOSE, field, "in tuple literal")
        return Tuple(items, self._span_from(start))

    def _at_function_literal(self):
        """Whether or not the '(' at the current position opens the parameter list of a function literal."""
        offset = 1
        if not self._check(TokenKind.ROUND_CLOSE, offset=offset):
            while True:
                if not self._check(TokenKind.IDENTIFIER, offset=offset):
                    return False
                offset += 1
                if not self._check(TokenKind.COMMA, offset=offset):
                    break
                offset += 1

            if not self._check(TokenKind.ROUND_CLOSE, offset=offset):
                return False

        offset += 1
        if self._check(TokenKind.ARROW, offset=offset):
            return True
        # '(x) is Integer' is a type test, '(x) is ... end' is a function
        return self._check(TokenKind.IS, offset=offset) and not self._check(*TYPE_IDENTIFIERS, offset=offset + 1)

    def _function(self):
        start = self._peek()
        self._accept(TokenKind.FUNC)
        self._expect(TokenKind.ROUND_OPEN, "in function literal")

        def param():
            return Identifier(self._expect(TokenKind.IDENTIFIER, "in parameter list"))

        params = self._list(TokenKind.ROUND_CLOSE, param, "in parameter list")

        if self._accept(TokenKind.ARROW):
            expression = self._expression()
            return Function(params, expression=expression, span=self._span_from(start))

        if not self._accept(TokenKind.IS):
            raise ParseError(self._peek(), "in function literal, expected '=>' or 'is'")
        body = self._body(TokenKind.END)
        self._expect(TokenKind.END, "in function literal")
        return Function(params, body=body, span=self._span_from(start))

    def _group(self):
        start = self._advance()
        inner = self._expression()
        self._expect(TokenKind.ROUND_CLOSE, "in parenthesized expression")
        span = self._span_from(start)

        if type(inner) is Expression and inner.is_binary:
            inner.grouped = True
            inner.operator.make_weight_persistent()
            inner.span = span
            return inner
        return Expression(lhs=inner, grouped=True, span=span)


def parse(tokens):
    """Returns (program, error) for tokens. See Parser.parse."""
    return Parser(tokens).parse()
