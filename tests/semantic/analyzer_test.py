import unittest

from ilang.semantic.analyzer import Analyzer, Diagnostic
from ilang.semantic.symbols import Type
from ilang.syntax.lexer import tokenize
from ilang.syntax.parser import parse
from ilang.syntax.tree import Break, Literal, Print
from ilang.syntax.tokens import Span


def analyzed(source):
    """Returns (analyzer, program, error messages, warning messages) for source."""
    program, error = parse(tokenize(source))
    if error is not None:
        raise error

    analyzer = Analyzer()
    program, errors, warnings = analyzer.analyze(program)
    return analyzer, program, [error.message for error in errors], [warning.message for warning in warnings]


class AnalyzerTestCase(unittest.TestCase):

    def test_errors(self):
        should_fail = {
            "print y": "undeclared variable 'y'",
            "var a := 1; var a := 2; print a": "variable 'a' already declared in this area (<global>)",
            "var a + 1; print a": "unexpected operator '+' in variable declaration context",
            "var a := 1; a + 2; print a": "unexpected operator '+' in variable assignment context",
            "var a := 1; a += 3": "second term of 'a += 3' is not a tuple, so both terms must have the same type "
                                  "when it runs",
            "var f := (x) => x; print f(1, 2)": "function 'f' takes 1 arguments, but 2 given",
            "print 1 + true": "invalid operands type: Integer + Boolean",
            "print [1] * 2": "invalid operands type: Array * Integer",
            "print 1 < \"a\"": "invalid operands type: Integer < String",
            "var f := () is break; end; f()": "break statement not in context of loop",
            "if true then return 1 end": "return statement not in context of function declaration",
            "var a := [1, 2]; print a[true]": "index of array must be Integer, but it's Boolean",
            "var t := {x := 1}; print t.y": "there is no such property 'y' in 't'",
            "while 1 loop end": "condition of while loop must be Bool, but it's Integer",
            "if 1.5 then end": "condition of if statement must be Bool, but it's Real",
            "for i in 0..true loop end": "bounds of for loop must be Integer, but it's Boolean",
            "print 1 is 2": "right operand of 'is' must be a built-in type, not '2'",
            "var r : Integer := 1.5; print r": "cannot initialize 'r' of type Integer with Real",
            "var n := 1; n(2)": "'n' is not a function, but Integer",
            "g(1)": "undeclared function 'g'",
            "var n := 1; var f := () => n; print f()": "undeclared variable 'n'",
            "var a := 1; print a[0]": "'a' is not an array, but Integer",
        }
        for case, result in should_fail.items():
            __, __, errors, warnings = analyzed(case)
            self.assertIn(result, errors + warnings, case)

        should_pass = [
            "var a := 1; print a",
            "var r : Real := 1; print r",
            "var s := \"a\" + \"b\"; print s",
            "var i := 0; while i < 3 loop print i; i := i + 1; end",
            "for i in 10 loop if i = 3 then break end print i end",
            "var fact := (n) is if n <= 1 then return 1 end return n * fact(n - 1) end; print fact(5)",
            "var t := {a := 1, b := a + 1}; t.a := 5; print t.b",
            "var a := [1, 2]; a[0] := a[1] + 1; print a + [3], a = [2, 2]",
            "var f; f := (x) => x * 2; print f(2)",
            "var x; print x is Empty",
            "var a := 1; var b := a; b := 2; print b",
        ]
        for case in should_pass:
            __, __, errors, __ = analyzed(case)
            self.assertEqual([], errors, case)

    def test_errors_are_collected(self):
        __, __, errors, __ = analyzed("print a; print b; print 1 + true; print a")
        self.assertEqual(
            ["undeclared variable 'a'", "undeclared variable 'b'", "invalid operands type: Integer + Boolean",
             "undeclared variable 'a'"],
            errors
        )

        program, __ = parse(tokenize("print a; print a"))
        __, errors, __ = Analyzer().analyze(program)
        self.assertEqual(2, len(errors))
        self.assertEqual("undeclared variable 'a' (on 1:7-1:7)", str(errors[0]))

    def test_diagnostic_location(self):
        program, __ = parse(tokenize("var f := (x) is print y end; f(1); f(2)"))
        __, errors, __ = Analyzer().analyze(program)
        self.assertEqual([Diagnostic("undeclared variable 'y'", Span(1, 23, 1, 23))], errors)

    def test_constant_folding(self):
        analyzer, program, errors, __ = analyzed("var a := 2 + 3; print a")
        self.assertEqual([], errors)

        initializer = program.declarations[0].expression.rhs
        self.assertIsInstance(initializer, Literal)
        self.assertEqual(5, initializer.value)

        entry = analyzer.table.resolve(["a"])
        self.assertIs(Type.INTEGER, entry.type)
        self.assertEqual(5, entry.value)

        cases = {
            "print 1 + 2.5": 3.5,
            "print (2 + 3) * 4": 20,
            "print 2 + 3 * 4": 14,
            "print 7 / 2": 3,
            "print -7 / 2": -3,
            "print 1.5 * 2": 3.0,
            "print \"a\" + \"b\"": "ab",
            "print -(2)": -2,
        }
        for case, result in cases.items():
            __, program, __, __ = analyzed(case)
            literal = program.declarations[0].items[0]
            self.assertIsInstance(literal, Literal, case)
            self.assertEqual(result, literal.value, case)
            self.assertIs(type(result), type(literal.value), case)

        should_not_fold = ["print 1 / 0", "print 7 % 2", "print 1 < 2", "print true and false", "print [1] + 2"]
        for case in should_not_fold:
            __, program, errors, __ = analyzed(case)
            self.assertEqual([], errors, case)
            self.assertNotIsInstance(program.declarations[0].items[0], Literal, case)

    def test_dead_code(self):
        __, program, errors, warnings = analyzed("while true loop break; print x; break; print 1 end")
        body = program.declarations[0].body.statements
        self.assertEqual([], errors)
        self.assertEqual(2, len(body))
        self.assertTrue(all(isinstance(statement, Break) for statement in body))
        self.assertIn("unreachable statement 'print x' removed", warnings)

        __, program, errors, __ = analyzed("var f := () is return 1; print 2 end; print f()")
        self.assertEqual([], errors)
        self.assertEqual(1, len(program.declarations[0].expression.rhs.body.statements))

        # only the block holding the break is cut short
        __, program, __, __ = analyzed("for i in 3 loop if i = 1 then break end print i end")
        self.assertEqual(2, len(program.declarations[0].body.statements))

    def test_unused_variables(self):
        analyzer, program, errors, warnings = analyzed("var unused := 1; print 2;")
        self.assertEqual([], errors)
        self.assertEqual(1, len(program.declarations))
        self.assertIsInstance(program.declarations[0], Print)
        self.assertIn("delete unused variable 'unused'", warnings)
        self.assertIsNone(analyzer.table.resolve(["unused"]))

        __, program, __, warnings = analyzed("var f := (n) is var tmp := n; return n end; print f(1)")
        self.assertEqual(1, len(program.declarations[0].expression.rhs.body.statements))
        self.assertIn("delete unused variable 'tmp'", warnings)

        __, program, __, warnings = analyzed("var a := 1; a := 2")
        self.assertEqual(2, len(program.declarations))
        self.assertEqual([], [warning for warning in warnings if warning.startswith("delete")])

    def test_scope_addressing(self):
        analyzer, __, errors, __ = analyzed("var x := 1; var f := (x) is print f.x; end; f(2); print x")
        self.assertEqual([], errors)

        parameter, global_x = analyzer.table.resolve(["f", "x"]), analyzer.table.resolve(["x"])
        self.assertIsNotNone(parameter)
        self.assertIsNot(global_x, parameter)
        self.assertTrue(parameter.used)
        self.assertIs(Type.INTEGER, global_x.type)
        self.assertIsNone(parameter.type)
        self.assertIs(Type.FUNCTION, analyzer.table.resolve(["f"]).type)

        analyzer, __, errors, __ = analyzed("var t := {a := 1, b := {c := true}}; print t.b")
        self.assertEqual([], errors)
        self.assertIs(Type.BOOLEAN, analyzer.table.resolve(["t", "b", "c"]).type)

    def test_aliases(self):
        should_pass = [
            "var t := {a := 1}; var u := t; print u.a",
            "var t := {a := 1}; var u := {b := 2}; u := t; print u.a",
            "var t := {a := {b := 1}}; var u := t.a; print u.b",
            "var t := {a := 1}; t := t; print t.a",
        ]
        for case in should_pass:
            __, __, errors, __ = analyzed(case)
            self.assertEqual([], errors, case)

        analyzer, __, __, __ = analyzed("var t := {a := 1}; var u := t; u.a := 2; print t.a, u.a")
        self.assertIsNot(analyzer.table.resolve(["t", "a"]), analyzer.table.resolve(["u", "a"]))

        __, program, errors, __ = analyzed("var f := (x) => x; var g := f; print g(1, 2)")
        self.assertIn("function 'g' takes 1 arguments, but 2 given", errors)
        self.assertIs(program.declarations[0].expression.rhs, program.declarations[2].items[0].function)

        __, __, errors, __ = analyzed("var t := {a := 1}; var u := u; print u.a")
        self.assertEqual(["undeclared variable 'u'"], errors)

    def test_assignment_types(self):
        analyzer, __, errors, __ = analyzed("var x := 1; var c := false; if c then x := \"s\" end; print x + 1")
        self.assertEqual([], errors)
        self.assertIsNone(analyzer.table.resolve(["x"]).type)

        analyzer, __, errors, __ = analyzed("var x; x := 1.5; x := 2.5; print x")
        self.assertEqual([], errors)
        self.assertIs(Type.REAL, analyzer.table.resolve(["x"]).type)

        __, __, errors, __ = analyzed("var x := 1; x := 2; print x + true")
        self.assertEqual(["invalid operands type: Integer + Boolean"], errors)

    def test_calls(self):
        __, program, errors, warnings = analyzed("var f := (a, b) => a + b; print f(1, 2)")
        self.assertEqual([], errors)
        call = program.declarations[1].items[0]
        self.assertIs(program.declarations[0].expression.rhs, call.function)

        __, __, errors, warnings = analyzed("var g := (f) => f(1); print g((x) => x)")
        self.assertEqual([], errors)
        self.assertIn("'f' may not be a function", warnings)

        __, __, __, warnings = analyzed("var f := () is end; f()")
        self.assertIn("function '() is end' has an empty body", warnings)

    def test_memberwise_addition(self):
        __, __, errors, warnings = analyzed("var t := {a := 1}; t += {b := 2}; print t.b")
        self.assertEqual([], errors)
        self.assertIn("second term of 't += {b := 2}' is a tuple, so 't' must be a tuple when it runs", warnings)


if __name__ == '__main__':
    unittest.main()
