"""Semantic analysis for ilang. Walks a parsed Program once, building a SymbolTable and collecting every error and
warning it finds instead of stopping at the first one. The tree is rewritten in place along the way:

1. arithmetic on two literals is folded into a single Literal,
2. statements following a reachable break/return in the same block are removed,
3. declarations whose variable is never read or written are removed once the walk is over.

Blocks (if/while/for bodies) don't open areas of their own; only functions and tuples do.
"""

from collections import namedtuple

from ilang.runtime import operations
from ilang.runtime.operations import OperationError
from ilang.semantic.symbols import SCOPE_TYPES, SymbolError, SymbolTable, Type
from ilang.syntax.tree import (
    ARITHMETIC, EQUALITY, FOLDABLE, LOGICAL, ORDERING, ArrayLiteral, ArrayReference, Body, Break, For, Function,
    FunctionCall, Identifier, If, Literal, MemberwiseAddition, OperatorKind, Print, Return, Tuple, TupleReference,
    VariableAssignment, VariableDeclaration, While,
)


class Diagnostic(namedtuple("Diagnostic", "message span")):
    """Semantic error or warning. span is None if no location is known."""
    __slots__ = ()

    def __str__(self):
        return self.message if self.span is None else f"{self.message} (on {self.span})"


# constructs enclosing the statement being checked
Context = namedtuple("Context", "in_loop in_function")
TOP_LEVEL = Context(in_loop=False, in_function=False)

# types that only '+' (arrays) and '='/'!=' (arrays) accept as operands
OPAQUE = (Type.ARRAY, Type.TUPLE, Type.FUNCTION, Type.EMPTY)


def composite_type(node):
    return Type.FUNCTION if isinstance(node, Function) else Type.TUPLE


class Analyzer:
    """Checks one Program. table holds the symbols once analyze has run."""

    def __init__(self):
        self.table = SymbolTable()
        self.errors = {}    # dicts used as insertion-ordered sets of Diagnostics
        self.warnings = {}
        self.declarations = []  # (VariableDeclaration, entry, path), checked for use after the walk

    def analyze(self, program):
        """Returns (program, errors, warnings), where errors and warnings are lists of distinct Diagnostics. program
        is mutated in place. Never raises for problems in program.
        """
        self._block(program.declarations, TOP_LEVEL)
        self._prune(program)
        return program, list(self.errors), list(self.warnings)

    def _error(self, message, span):
        self.errors[Diagnostic(message, span)] = None

    def _warn(self, message, span):
        self.warnings[Diagnostic(message, span)] = None

    # statements

    def _block(self, statements, context):
        """Checks statements in order, removing every statement but 'break' after a break/return that is reached."""
        terminated = False
        index = 0
        while index < len(statements):
            statement = statements[index]
            if terminated and not isinstance(statement, Break):
                self._warn(f"unreachable statement '{statement}' removed", statement.span)
                del statements[index]
                continue

            self._statement(statement, context)
            if isinstance(statement, Break) and context.in_loop:
                terminated = True
            elif isinstance(statement, Return) and context.in_function:
                terminated = True
            index += 1

    def _statement(self, node, context):
        if isinstance(node, VariableDeclaration):
            self._declaration(node, context, record=True)

        elif isinstance(node, MemberwiseAddition):
            self._memberwise(node, context)

        elif isinstance(node, VariableAssignment):
            self._assignment(node, context)

        elif isinstance(node, FunctionCall):
            self._call(node, context)

        elif isinstance(node, Print):
            node.items = [self._expression(item, context)[0] for item in node.items]

        elif isinstance(node, If):
            node.condition = self._condition(node.condition, context, "if statement")
            self._block(node.then_body.statements, context)
            if node.else_body is not None:
                self._block(node.else_body.statements, context)

        elif isinstance(node, While):
            node.condition = self._condition(node.condition, context, "while loop")
            self._block(node.body.statements, context._replace(in_loop=True))

        elif isinstance(node, For):
            self._for(node, context)

        elif isinstance(node, Return):
            if not context.in_function:
                self._error("return statement not in context of function declaration", node.span)
            if node.expression is not None:
                node.expression = self._expression(node.expression, context)[0]

        elif isinstance(node, Break):
            if not context.in_loop:
                self._error("break statement not in context of loop", node.span)

    def _condition(self, node, context, construct):
        node, type = self._expression(node, context)
        if type is not None and type is not Type.BOOLEAN:
            self._error(f"condition of {construct} must be Bool, but it's {type}", node.span)
        return node

    def _for(self, node, context):
        node.start, lower = self._expression(node.start, context)
        node.stop, upper = self._expression(node.stop, context)
        for bound, type in ((node.start, lower), (node.stop, upper)):
            if type is not None and type is not Type.INTEGER:
                self._error(f"bounds of for loop must be Integer, but it's {type}", bound.span)

        __, entry = self.table.lookup(node.identifier.name)
        if entry is None or entry.type is Type.FUNCTION:
            entry = self.table.materialize(node.identifier.name)
        entry.type = Type.INTEGER
        entry.used = True

        self._block(node.body.statements, context._replace(in_loop=True))

    def _declare(self, name, span, type=None):
        """Declares name in the current area, or records an error and returns None."""
        try:
            return self.table.declare(name, type)
        except SymbolError as error:
            self._error(error.plain, span)
            return None

    def _declaration(self, node, context, record):
        """Checks a declaration or tuple field. Functions and tuples are declared before their own contents are
        checked, so that they can refer to themselves.
        """
        initializer = node.expression
        annotation = Type.from_token_kind(node.type.token.kind) if node.type is not None else None

        if initializer is not None and initializer.operator.kind is not OperatorKind.ASSIGN:
            operator = initializer.operator
            self._error(f"unexpected operator '{operator}' in variable declaration context", operator.span)
        value = initializer.rhs if initializer is not None else None

        if isinstance(value, (Function, Tuple)):
            type = composite_type(value)
            entry = self._declare(node.name, node.identifier.span, type)
            if entry is None:
                self._anonymous(value, context)
            else:
                self._composite(value, entry, self.table.path + [node.name], context)
        else:
            type = None
            if value is not None:
                initializer.rhs, type = self._expression(value, context)
            entry = self._declare(node.name, node.identifier.span, type)
            if entry is not None and value is not None:
                self._bind(entry, initializer.rhs, type)

        if annotation is not None:
            if type is not None and not annotation.accepts(type):
                self._error(f"cannot initialize '{node.name}' of type {annotation} with {type}", node.span)
            elif entry is not None:
                entry.type = annotation

        if record and entry is not None:
            self.declarations.append((node, entry, self.table.path + [node.name]))

    def _composite(self, node, entry, path, context):
        """Checks the parameters and body of a function, or the fields of a tuple, inside the area of entry, found at
        path.
        """
        entry.type = composite_type(node)
        entry.value = node
        entry.children = {}

        with self.table.relocated(path):
            if isinstance(node, Function):
                self._function(node)
            else:
                for element in node.items.values():
                    self._declaration(element, context, record=False)

    def _anonymous(self, node, context):
        """Checks a function or tuple literal that isn't bound to a variable, inside an area of its own."""
        entry = self.table.declare(node.scope_name, replace=True)
        self._composite(node, entry, self.table.path + [entry.name], context)
        return entry

    def _function(self, node):
        context = Context(in_loop=False, in_function=True)
        for param in node.params:
            self._declare(param.name, param.span)

        if node.expression is not None:
            node.expression = self._expression(node.expression, context)[0]
        elif not node.body.statements:
            self._warn(f"function '{node}' has an empty body", node.span)
        else:
            self._block(node.body.statements, context)

    def _target(self, target, context):
        """Checks what an assignment writes to. Returns (path, entry) for a plain variable, (None, None) otherwise."""
        if isinstance(target, ArrayReference):
            self._array_reference(target, context)
            return None, None
        if isinstance(target, TupleReference):
            self._tuple_reference(target)
            return None, None

        path, entry = self.table.lookup(target.name)
        if entry is None:
            self._error(f"undeclared variable '{target}'", target.span)
        else:
            entry.used = True
        return path, entry

    def _assignment(self, node, context):
        operator = node.expression.operator
        if operator.kind is not OperatorKind.ASSIGN:
            self._error(f"unexpected operator '{operator}' in variable assignment context", operator.span)

        path, entry = self._target(node.target, context)
        value = node.expression.rhs
        previous = entry.type if entry is not None else None

        if entry is not None and isinstance(value, (Function, Tuple)):
            self._composite(value, entry, path, context)
        else:
            node.expression.rhs, type = self._expression(value, context)
            if entry is not None:
                self._bind(entry, node.expression.rhs, type)

        # a variable holding values of different types has no static type
        if entry is not None and previous is not None and entry.type is not previous:
            entry.type = None

    def _bind(self, entry, node, type):
        """Records in entry the value of node, whose static type is type. A function or tuple read from another
        variable brings that variable's parameters or fields along; when they can't be found the type stays unknown.
        """
        source = self._source(node) if type in SCOPE_TYPES else None
        if source is not None:
            source = source.copy()  # node may read entry itself

        entry.type = type
        entry.value = node.value if isinstance(node, Literal) else None
        entry.children = {}

        if source is not None:
            entry.value, entry.children = source.value, source.children
        elif type in SCOPE_TYPES:
            entry.type = None

    def _source(self, node):
        """Table entry that node reads, if it is a variable or a tuple field."""
        if isinstance(node, Identifier):
            return self.table.lookup(node.name)[1]
        if isinstance(node, TupleReference):
            __, owner = self.table.lookup(node.identifier.name)
            if owner is not None and owner.is_scope:
                return owner.children.get(node.field.name)
        return None

    def _memberwise(self, node, context):
        operator = node.expression.operator
        if operator.kind is not OperatorKind.MEMBERWISE_ADDITION:
            self._error(f"unexpected operator '{operator}' in memberwise addition context", operator.span)

        __, entry = self._target(node.target, context)
        value = node.expression.rhs

        if isinstance(value, Tuple):
            msg = f"second term of '{node}' is a tuple, so '{node.target}' must be a tuple when it runs"
            self._warn(msg, node.span)
            fields = self._anonymous(value, context)
            if entry is not None and entry.type is Type.TUPLE:
                entry.children.update(fields.children)
        else:
            msg = f"second term of '{node}' is not a tuple, so both terms must have the same type when it runs"
            self._warn(msg, node.span)
            node.expression.rhs = self._expression(value, context)[0]

    # expressions

    def _expression(self, node, context):
        """Returns (node, type): node with its constants folded, which may be a new Literal to put in its place, and
        its static type, or None when the type is only known at run time.
        """
        if isinstance(node, Literal):
            return node, Type.from_literal_kind(node.kind)

        if isinstance(node, Identifier):
            return node, self._identifier(node)

        if isinstance(node, ArrayLiteral):
            node.items = [self._expression(item, context)[0] for item in node.items]
            return node, Type.ARRAY

        if isinstance(node, ArrayReference):
            self._array_reference(node, context)
            return node, None

        if isinstance(node, TupleReference):
            return node, self._tuple_reference(node)

        if isinstance(node, (Function, Tuple)):
            self._anonymous(node, context)
            return node, composite_type(node)

        if isinstance(node, FunctionCall):
            return node, self._call(node, context)

        if node.is_passthrough:
            node.lhs, type = self._expression(node.lhs, context)
            return (node.lhs if isinstance(node.lhs, Literal) else node), type

        return self._binary(node, context)

    def _identifier(self, node):
        __, entry = self.table.lookup(node.name)
        if entry is None:
            self._error(f"undeclared variable '{node}'", node.span)
            return None

        entry.used = True
        return entry.type

    def _array_reference(self, node, context):
        type = self._identifier(node.identifier)
        if type is not None and type is not Type.ARRAY:
            self._error(f"'{node.identifier}' is not an array, but {type}", node.identifier.span)

        node.index, index_type = self._expression(node.index, context)
        if index_type is not None and index_type is not Type.INTEGER:
            self._error(f"index of array must be Integer, but it's {index_type}", node.index.span)

    def _tuple_reference(self, node):
        __, entry = self.table.lookup(node.identifier.name)
        if entry is None:
            self._error(f"undeclared variable '{node.identifier}'", node.identifier.span)
            return None

        entry.used = True
        if entry.type is None:
            return None

        field = entry.children.get(node.field.name) if entry.is_scope else None
        if field is None:
            self._error(f"there is no such property '{node.field}' in '{node.identifier}'", node.span)
            return None

        field.used = True
        return field.type

    def _call(self, node, context):
        node.arguments = [self._expression(argument, context)[0] for argument in node.arguments]

        __, entry = self.table.lookup(node.name)
        if entry is None:
            self._error(f"undeclared function '{node.identifier}'", node.identifier.span)
            return None

        entry.used = True
        if entry.type is None:
            self._warn(f"'{node.identifier}' may not be a function", node.span)
            return None
        if entry.type is not Type.FUNCTION:
            self._error(f"'{node.identifier}' is not a function, but {entry.type}", node.span)
            return None

        if isinstance(entry.value, Function):
            node.function = entry.value
            expected, given = len(entry.value.params), len(node.arguments)
            if expected != given:
                self._error(f"function '{node.identifier}' takes {expected} arguments, but {given} given", node.span)
        return None

    def _binary(self, node, context):
        kind = node.operator.kind
        node.lhs, left = self._expression(node.lhs, context)

        if kind is OperatorKind.IS:
            if not (isinstance(node.rhs, Identifier) and node.rhs.is_type):
                self._error(f"right operand of 'is' must be a built-in type, not '{node.rhs}'", node.rhs.span)
            return node, Type.BOOLEAN

        node.rhs, right = self._expression(node.rhs, context)
        return self._fold(node), self._binary_type(node, left, right)

    def _binary_type(self, node, left, right):
        """Static type of a binary expression whose operands have types left and right."""
        if left is None or right is None:
            return None

        kind = node.operator.kind
        if kind is OperatorKind.PLUS and Type.ARRAY in (left, right):
            return Type.ARRAY
        if kind in EQUALITY and left is right is Type.ARRAY:
            return Type.BOOLEAN

        if left not in OPAQUE and right not in OPAQUE:
            numeric = left.numeric and right.numeric
            if kind in ARITHMETIC:
                if numeric:
                    return Type.INTEGER if left is right is Type.INTEGER else Type.REAL
                if kind is OperatorKind.PLUS and left is right is Type.STRING:
                    return Type.STRING
            elif kind in ORDERING and numeric:
                return Type.BOOLEAN
            elif kind in EQUALITY and (numeric or left is right):
                return Type.BOOLEAN
            elif kind in LOGICAL and left is right is Type.BOOLEAN:
                return Type.BOOLEAN

        self._error(f"invalid operands type: {left} {node.operator} {right}", node.operator.span)
        return None

    @staticmethod
    def _fold(node):
        """node as a single Literal if it is arithmetic on two literals that can be computed now."""
        if node.operator.kind not in FOLDABLE:
            return node
        if not (isinstance(node.lhs, Literal) and isinstance(node.rhs, Literal)):
            return node

        try:
            value = operations.apply(node.operator.kind, node.lhs.value, node.rhs.value)
        except OperationError:
            return node  # left for the interpreter to report
        return Literal.from_value(value, node.span)

    # unused variables

    def _prune(self, program):
        unused = {id(node): path for node, entry, path in self.declarations if not entry.used}
        if unused:
            self._prune_block(program.declarations, unused)

    def _prune_block(self, statements, unused):
        kept = []
        for statement in statements:
            if id(statement) in unused:
                self._warn(f"delete unused variable '{statement.name}'", statement.span)
                self.table.remove(unused[id(statement)])
                continue

            kept.append(statement)
            self._prune_nested(statement, unused)
        statements[:] = kept

    def _prune_nested(self, node, unused):
        for child in node.children():
            if isinstance(child, Body):
                self._prune_block(child.statements, unused)
            else:
                self._prune_nested(child, unused)


def analyze(program):
    """Returns (program, errors, warnings). See Analyzer.analyze."""
    return Analyzer().analyze(program)
