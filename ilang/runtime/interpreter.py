"""Tree-walking interpreter for checked ilang programs.

Every statement returns an Outcome telling its enclosing construct how to go on: CONTINUE with the next statement,
BREAK out of the nearest loop, RETURN from the nearest function call, or stop everything on ERROR. Expressions raise
InterpretationError instead, which is turned into an ERROR Outcome at the statement that evaluated them.

Variables live in the interpreter's own SymbolTable, addressed exactly like the analyzer's: a call relocates the
table to the callee's path and binds the arguments as fresh children of the callee's entry.
"""

from collections import namedtuple
from enum import Enum

from ilang.lang.error import GenericException
from ilang.runtime import operations
from ilang.runtime.operations import OperationError, duplicate, render, type_of
from ilang.semantic.symbols import SymbolError, SymbolTable, Type, VariableInformation
from ilang.syntax.tokens import TokenKind
from ilang.syntax.tree import (
    ArrayLiteral, ArrayReference, Break, For, Function, FunctionCall, Identifier, If, Literal, MemberwiseAddition,
    OperatorKind, Print, Return, Tuple, TupleReference, VariableAssignment, VariableDeclaration, While,
)


class Signal(Enum):
    CONTINUE = "continue"
    BREAK = "break"
    RETURN = "return"
    ERROR = "error"


class Outcome(namedtuple("Outcome", "signal value")):
    """Result of running a statement. value is the returned value for RETURN and the InterpretationError for ERROR."""
    __slots__ = ()


CONTINUE = Outcome(Signal.CONTINUE, None)


class InterpretationError(GenericException):
    """Runtime error, reported against the textual form of the node being run."""

    def __init__(self, node, message):
        super().__init__("INTERPRETATION ERROR on {}: {}", (str(node), message), span=node.span)
        self.node = node


class Interpreter:
    """Runs Programs, writing every printed line through output."""

    def __init__(self, output=print):
        self.output = output
        self.table = SymbolTable()

    def run(self, program, table=None):
        """Runs program against table (a fresh SymbolTable by default) and returns the final Outcome. The program
        stops at the first runtime error, which is returned as an ERROR Outcome; anything printed before it stays
        printed.
        """
        self.table = table if table is not None else SymbolTable()
        return self._block(program.declarations)

    # statements

    def _block(self, statements):
        for statement in statements:
            outcome = self._statement(statement)
            if outcome.signal is not Signal.CONTINUE:
                return outcome
        return CONTINUE

    def _statement(self, node):
        try:
            return self._execute(node)
        except InterpretationError as error:
            return Outcome(Signal.ERROR, error)
        except (OperationError, SymbolError) as error:
            return Outcome(Signal.ERROR, InterpretationError(node, error.plain))

    def _execute(self, node):
        if isinstance(node, VariableDeclaration):
            value = self._evaluate(node.expression.rhs) if node.expression is not None else None
            self._store(self.table.declare(node.name, replace=True), Interpreter._widen(node, value))

        elif isinstance(node, VariableAssignment):
            self._assignment(node)

        elif isinstance(node, FunctionCall):
            self._call(node)

        elif isinstance(node, Print):
            values = []
            for item in node.items:
                value = self._evaluate(item)
                if value is None:
                    raise InterpretationError(item, "value is empty")
                values.append(render(value))
            self.output(", ".join(values))

        elif isinstance(node, If):
            if self._condition(node.condition):
                return self._block(node.then_body.statements)
            if node.else_body is not None:
                return self._block(node.else_body.statements)

        elif isinstance(node, While):
            while self._condition(node.condition):
                outcome = self._block(node.body.statements)
                if outcome.signal is Signal.BREAK:
                    break
                if outcome.signal is not Signal.CONTINUE:
                    return outcome

        elif isinstance(node, For):
            return self._for(node)

        elif isinstance(node, Return):
            value = self._evaluate(node.expression) if node.expression is not None else None
            return Outcome(Signal.RETURN, value)

        elif isinstance(node, Break):
            return Outcome(Signal.BREAK, None)

        return CONTINUE

    @staticmethod
    def _widen(declaration, value):
        """Integer values stored in variables annotated as Real become reals."""
        if declaration.type is None or declaration.type.token.kind is not TokenKind.REAL_TYPE:
            return value
        return float(value) if operations.is_number(value) else value

    def _condition(self, node):
        value = self._evaluate(node)
        if not isinstance(value, bool):
            raise InterpretationError(node, f"condition must be Bool, not {type_of(value)}")
        return value

    def _bound(self, node):
        value = self._evaluate(node)
        if not (isinstance(value, int) and not isinstance(value, bool)):
            raise InterpretationError(node, f"bounds of for loop must be Integer, not {type_of(value)}")
        return value

    def _for(self, node):
        lower, upper = self._bound(node.start), self._bound(node.stop)

        __, entry = self.table.lookup(node.identifier.name)
        if entry is None or entry.type is Type.FUNCTION:
            entry = self.table.materialize(node.identifier.name)

        for value in range(lower, upper):
            self._store(entry, value)
            outcome = self._block(node.body.statements)
            if outcome.signal is Signal.BREAK:
                break
            if outcome.signal is not Signal.CONTINUE:
                return outcome
        return CONTINUE

    def _assignment(self, node):
        target = node.target
        value = self._evaluate(node.expression.rhs)

        if isinstance(node, MemberwiseAddition):
            current = self._evaluate(target)
            if isinstance(current, dict) and isinstance(value, dict):
                value = {**current, **value}
            else:
                value = self._apply(node, OperatorKind.PLUS, current, value)

        if isinstance(target, Identifier):
            self._store(self._entry(target), value)

        elif isinstance(target, ArrayReference):
            array = self._evaluate(target.identifier)
            if not isinstance(array, list):
                raise InterpretationError(target, f"'{target.identifier}' is not an array")
            array[self._index(target, array)] = duplicate(value)

        else:
            self._store(self._field(target), value)

    # storage

    def _entry(self, identifier):
        __, entry = self.table.lookup(identifier.name)
        if entry is None:
            raise InterpretationError(identifier, f"undeclared variable '{identifier}'")
        return entry

    def _field(self, node):
        entry = self._entry(node.identifier)
        if not entry.is_scope:
            raise InterpretationError(node, f"'{node.identifier}' is not a tuple")

        field = entry.children.get(node.field.name)
        if field is None:
            raise InterpretationError(node, f"there is no such property '{node.field}' in '{node.identifier}'")
        return field

    def _store(self, entry, value):
        """Writes a copy of value into entry. Tuples are stored as one child entry per field."""
        entry.type = type_of(value)
        entry.children = {}

        if isinstance(value, dict):
            entry.value = None
            for name, item in value.items():
                self._store(entry.children.setdefault(name, VariableInformation(name)), item)
        else:
            entry.value = duplicate(value)

    def _read(self, entry):
        if entry.type is Type.TUPLE:
            return {name: self._read(child) for name, child in entry.children.items()}
        return entry.value

    # expressions

    def _evaluate(self, node):
        if isinstance(node, Literal):
            return node.value

        if isinstance(node, Identifier):
            return self._read(self._entry(node))

        if isinstance(node, ArrayLiteral):
            return [self._evaluate(item) for item in node.items]

        if isinstance(node, ArrayReference):
            array = self._evaluate(node.identifier)
            if not isinstance(array, list):
                raise InterpretationError(node, f"'{node.identifier}' is not an array")
            return array[self._index(node, array)]

        if isinstance(node, TupleReference):
            return self._read(self._field(node))

        if isinstance(node, Tuple):
            return self._tuple(node)

        if isinstance(node, Function):
            return node

        if isinstance(node, FunctionCall):
            outcome = self._call(node)
            if outcome.signal is not Signal.RETURN:
                raise InterpretationError(node, f"function '{node.identifier}' returned no value")
            return outcome.value

        if node.is_passthrough:
            return self._evaluate(node.lhs)

        lhs = self._evaluate(node.lhs)
        if node.operator.kind is OperatorKind.IS:
            if not (isinstance(node.rhs, Identifier) and node.rhs.is_type):
                raise InterpretationError(node, f"'{node.rhs}' is not a built-in type")
            return type_of(lhs) is Type.from_token_kind(node.rhs.token.kind)

        rhs = self._evaluate(node.rhs)
        return self._apply(node, node.operator.kind, lhs, rhs)

    @staticmethod
    def _apply(node, kind, lhs, rhs):
        try:
            return operations.apply(kind, lhs, rhs)
        except OperationError as error:
            raise InterpretationError(node, error.plain) from error

    def _index(self, node, array):
        index = self._evaluate(node.index)
        if not (isinstance(index, int) and not isinstance(index, bool)):
            raise InterpretationError(node, f"index of array must be Integer, not {type_of(index)}")
        if not 0 <= index < len(array):
            raise InterpretationError(node, f"index {index} is out of range for array of length {len(array)}")
        return index

    def _tuple(self, node):
        """Evaluates the fields of a tuple literal in order, inside an area of its own so that fields can refer to
        the ones before them.
        """
        entry = self.table.declare(node.scope_name, Type.TUPLE, replace=True)
        path = self.table.path + [entry.name]
        try:
            with self.table.scope(entry.name):
                for element in node.items.values():
                    value = self._evaluate(element.expression.rhs) if element.expression is not None else None
                    self._store(self.table.declare(element.name, replace=True), Interpreter._widen(element, value))
            return self._read(entry)
        finally:
            self.table.remove(path)

    def _call(self, node):
        """Calls a function and returns the Outcome of its body: RETURN with the returned value, or CONTINUE if the
        body ran out without returning. Errors inside the body are raised again here.
        """
        path, entry = self.table.lookup(node.name)
        if entry is None:
            raise InterpretationError(node, f"undeclared function '{node.identifier}'")

        function = self._read(entry)
        if not isinstance(function, Function):
            raise InterpretationError(node, f"'{node.identifier}' is not a function, but {type_of(function)}")
        if len(function.params) != len(node.arguments):
            expected, given = len(function.params), len(node.arguments)
            msg = f"function '{node.identifier}' takes {expected} arguments, but {given} given"
            raise InterpretationError(node, msg)

        arguments = [self._evaluate(argument) for argument in node.arguments]

        saved, entry.children = entry.children, {}  # each call gets its own parameters and locals
        try:
            with self.table.relocated(path):
                for param, value in zip(function.params, arguments):
                    self._store(self.table.declare(param.name, replace=True), value)

                if function.expression is not None:
                    return Outcome(Signal.RETURN, self._evaluate(function.expression))
                outcome = self._block(function.body.statements)
        finally:
            entry.children = saved

        if outcome.signal is Signal.ERROR:
            raise outcome.value
        return outcome if outcome.signal is Signal.RETURN else CONTINUE


def run(program, output=print):
    """Runs program with a fresh Interpreter and returns the final Outcome."""
    return Interpreter(output).run(program)
