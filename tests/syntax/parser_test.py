import unittest

from ilang.syntax.lexer import tokenize
from ilang.syntax.parser import ParseError, parse
from ilang.syntax.tree import (
    ArrayReference, Break, Expression, For, Function, FunctionCall, Identifier, If, Literal, LiteralKind,
    MemberwiseAddition, OperatorKind, Print, Return, Tuple, TupleReference, VariableAssignment, VariableDeclaration,
    While,
)


def parsed(source):
    program, error = parse(tokenize(source))
    if error is not None:
        raise error
    return program


def printed(source):
    """Expression of the first print statement in source."""
    return parsed(source).declarations[0].items[0]


class ParserTestCase(unittest.TestCase):

    def test_syntax_errors(self):
        should_fail = [
            "var", "var a :=", "print", "if true then print 1", "return 1", "break", "a", "f(1) := 2",
            "var t := {a := 1, a := 2}", "print (1", "1 + 2", "var a : x := 1", "@", "while true print 1 end",
            "for i 1..2 loop end", "print [1, 2", "var f := (x) is print x", "print f(1,)", "else",
        ]
        for case in should_fail:
            program, error = parse(tokenize(case))
            self.assertIsNone(program, case)
            self.assertIsInstance(error, ParseError, case)

    def test_error_message(self):
        __, error = parse(tokenize("print 1;\nreturn 1"))
        self.assertTrue(error.plain.startswith("RETURN 'return' on 2:1-2:6 : Unexpected token"), error.plain)
        self.assertEqual(2, error.span.start_line)

        __, error = parse(tokenize("var a :="))
        self.assertTrue(error.plain.startswith("EOF : Unexpected token"), error.plain)
        self.assertIsNone(error.span)

    def test_statements(self):
        cases = {
            "var a": VariableDeclaration,
            "var a : Real := 1": VariableDeclaration,
            "a := 1": VariableAssignment,
            "a[0] := 1": VariableAssignment,
            "t.x := 2": VariableAssignment,
            "t += {b := 2}": MemberwiseAddition,
            "f(1, 2)": FunctionCall,
            "print 1, 2": Print,
            "if a then print 1 else print 2 end": If,
            "while true loop break; end": While,
            "for i in 10 loop print i end": For,
        }
        for case, result in cases.items():
            program = parsed(case)
            self.assertEqual(1, len(program.declarations), case)
            self.assertIsInstance(program.declarations[0], result, case)

    def test_optional_separators(self):
        program = parsed("var a := 1;; print a\nprint 2;")
        self.assertEqual(3, len(program.declarations))
        self.assertEqual("var a := 1; print a; print 2;", str(program))

    def test_precedence(self):
        expression = printed("print 2 + 3 * 4")
        self.assertIs(OperatorKind.PLUS, expression.operator.kind)
        self.assertIs(OperatorKind.MULTIPLY, expression.rhs.operator.kind)

        expression = printed("print (2 + 3) * 4")
        self.assertIs(OperatorKind.MULTIPLY, expression.operator.kind)
        self.assertTrue(expression.lhs.grouped)
        self.assertEqual("(2 + 3) * 4", str(expression))

        expression = printed("print 2 * 3 + 4")
        self.assertIs(OperatorKind.PLUS, expression.operator.kind)
        self.assertIs(OperatorKind.MULTIPLY, expression.lhs.operator.kind)

        expression = printed("print 1 - 2 - 3")
        self.assertEqual("1 - 2", str(expression.lhs))
        self.assertEqual("3", str(expression.rhs))

        expression = printed("print a < b + 1")
        self.assertIs(OperatorKind.LESS, expression.operator.kind)
        self.assertIs(OperatorKind.PLUS, expression.rhs.operator.kind)

        expression = printed("print (a < b) and (c < d)")
        self.assertIs(OperatorKind.AND, expression.operator.kind)
        self.assertIs(OperatorKind.LESS, expression.lhs.operator.kind)
        self.assertIs(OperatorKind.LESS, expression.rhs.operator.kind)

    def test_type_test(self):
        expression = printed("print x is Integer")
        self.assertIs(OperatorKind.IS, expression.operator.kind)
        self.assertIsInstance(expression.rhs, Identifier)
        self.assertTrue(expression.rhs.is_type)

        expression = printed("print (x) is Integer")
        self.assertIs(OperatorKind.IS, expression.operator.kind)

    def test_negation(self):
        literal = parsed("var n := -5").declarations[0].expression.rhs
        self.assertIsInstance(literal, Literal)
        self.assertEqual(-5, literal.value)

        expression = parsed("var m := -x").declarations[0].expression.rhs
        self.assertEqual("(0 - x)", str(expression))

        expression = printed("print 3 - -2.5")
        self.assertIs(OperatorKind.MINUS, expression.operator.kind)
        self.assertEqual(-2.5, expression.rhs.value)

    def test_references(self):
        cases = {
            "print a": Identifier,
            "print a[1 + 1]": ArrayReference,
            "print t.x": TupleReference,
            "print f()": FunctionCall,
            "print f(1, g(2))": FunctionCall,
        }
        for case, result in cases.items():
            self.assertIsInstance(printed(case), result, case)

        self.assertEqual(2, len(printed("print f(1, g(2))").arguments))

    def test_literals(self):
        cases = {
            "print 1": (LiteralKind.INTEGER, 1),
            "print 1.25": (LiteralKind.REAL, 1.25),
            "print true": (LiteralKind.BOOLEAN, True),
            'print "text"': (LiteralKind.STRING, "text"),
        }
        for case, (kind, value) in cases.items():
            literal = printed(case)
            self.assertIs(kind, literal.kind, case)
            self.assertEqual(value, literal.value, case)

        self.assertEqual(["1", "2", "3"], [str(item) for item in printed("print [1, 2, 3]").items])
        self.assertEqual([], printed("print []").items)

        tuple_literal = printed("print {a := 1, b : Real := 2, c}")
        self.assertIsInstance(tuple_literal, Tuple)
        self.assertEqual(["a", "b", "c"], list(tuple_literal.items))
        self.assertEqual("{a := 1, b : Real := 2, c}", str(tuple_literal))

    def test_functions(self):
        function = parsed("var f := (x, y) => x + y").declarations[0].expression.rhs
        self.assertIsInstance(function, Function)
        self.assertEqual(["x", "y"], [param.name for param in function.params])
        self.assertEqual("x + y", str(function.expression))
        self.assertIsNone(function.body)

        function = parsed("var g := func(x) is return x end").declarations[0].expression.rhs
        self.assertIsInstance(function.body.statements[0], Return)
        self.assertEqual("(x) is return x; end", str(function))

        function = parsed("var h := () is end").declarations[0].expression.rhs
        self.assertEqual([], function.params)
        self.assertEqual([], function.body.statements)

        should_pass = ["var f := () => 1", "var f := (a) is while true loop break end end", "var f := func() => 0"]
        for case in should_pass:
            self.assertIsInstance(parsed(case).declarations[0].expression.rhs, Function, case)

    def test_blocks(self):
        loop = parsed("for i in 10 loop print i end").declarations[0]
        self.assertEqual(0, loop.start.value)
        self.assertEqual(10, loop.stop.value)

        loop = parsed("for i in a..b + 1 loop break; print i end").declarations[0]
        self.assertEqual("a", str(loop.start))
        self.assertEqual("b + 1", str(loop.stop))
        self.assertIsInstance(loop.body.statements[0], Break)

        branch = parsed("if a then print 1 end").declarations[0]
        self.assertIsNone(branch.else_body)
        branch = parsed("if a then else print 2; print 3 end").declarations[0]
        self.assertEqual([], branch.then_body.statements)
        self.assertEqual(2, len(branch.else_body.statements))

        body = parsed("var f := () is return end").declarations[0].expression.rhs.body
        self.assertIsNone(body.statements[0].expression)

    def test_determinism(self):
        source = """
        var a := [1, 2, 3]
        var t := {x := 1, y := (a) => a * 2}
        var f := (n) is
            if n <= 1 then return 1 else return n * f(n - 1) end
        end
        for i in 0..3 loop a[i] := i * 2 + -1 end
        print f(5), a, t.x is Integer
        """
        tokens = tokenize(source)
        self.assertEqual(parse(tokens)[0], parse(tokens)[0])
        self.assertNotEqual(parsed("print 1 + 2"), parsed("print 1 + 3"))

    def test_display(self):
        expected = "\n".join([
            "Program(expr='var a := 1;', nodes=[",
            "    VariableDeclaration(expr='var a := 1', nodes=[",
            "        Identifier(expr='a'),",
            "        Expression(expr=':= 1', nodes=[",
            "            Operator(expr=':='),",
            "            Literal(expr='1')",
            "        ])",
            "    ])",
            "])",
        ])
        self.assertEqual(expected, parsed("var a := 1").display())

    def test_spans(self):
        declaration = parsed("var a := 1 +\n  2").declarations[0]
        self.assertEqual((1, 1, 2, 3), tuple(declaration.span))
        self.assertEqual((1, 10, 2, 3), tuple(declaration.expression.rhs.span))

    def test_permissive_operators(self):
        declaration = parsed("var a + 1").declarations[0]
        self.assertIs(OperatorKind.PLUS, declaration.expression.operator.kind)

        assignment = parsed("a - 1").declarations[0]
        self.assertIsInstance(assignment, VariableAssignment)
        self.assertIs(OperatorKind.MINUS, assignment.expression.operator.kind)
        self.assertIsInstance(assignment.expression, Expression)


if __name__ == '__main__':
    unittest.main()
