"""Binary operator semantics on runtime values, shared by constant folding and the interpreter.

Runtime values are plain Python objects: int (Integer), float (Real), bool (Boolean), str (String), list (Array),
dict of field name to value (Tuple), Function nodes, and None for an Empty/uninitialized value. Note that bool is never
treated as a number here even though Python allows it.
"""

import math

from ilang.lang.error import GenericException
from ilang.semantic.symbols import Type
from ilang.syntax.tree import ARITHMETIC, EQUALITY, LOGICAL, ORDERING, Function, OperatorKind


class OperationError(GenericException):
    """Raised when an operator can't be applied to its operands."""


def is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def type_of(value):
    """Type of a runtime value."""
    if value is None:
        return Type.EMPTY
    if isinstance(value, bool):
        return Type.BOOLEAN
    if isinstance(value, int):
        return Type.INTEGER
    if isinstance(value, float):
        return Type.REAL
    if isinstance(value, str):
        return Type.STRING
    if isinstance(value, list):
        return Type.ARRAY
    if isinstance(value, dict):
        return Type.TUPLE
    if isinstance(value, Function):
        return Type.FUNCTION
    raise OperationError("'{}' is not an ilang value", repr(value), internal=True)


def duplicate(value):
    """Copy of value that shares no arrays or tuples with it."""
    if isinstance(value, list):
        return [duplicate(item) for item in value]
    if isinstance(value, dict):
        return {name: duplicate(item) for name, item in value.items()}
    return value


def render(value):
    """Text that print writes for value."""
    if value is None:
        return "empty"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, list):
        return "[" + ", ".join(render(item) for item in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{name} := {render(item)}" for name, item in value.items()) + "}"
    return str(value)


def _invalid(kind, lhs, rhs):
    msg = "invalid operands type for '{}': {} and {}"
    return OperationError(msg, (kind.value, type_of(lhs), type_of(rhs)), diagnosis=False)


def _truncated_division(lhs, rhs):
    """Integer quotient rounded toward zero."""
    quotient = abs(lhs) // abs(rhs)
    return quotient if (lhs < 0) == (rhs < 0) else -quotient


def _arithmetic(kind, lhs, rhs):
    if kind is OperatorKind.PLUS:
        if isinstance(lhs, list) and isinstance(rhs, list):
            return lhs + rhs
        if isinstance(lhs, list):
            return lhs + [rhs]
        if isinstance(rhs, list):
            return [lhs] + rhs
        if isinstance(lhs, str) and isinstance(rhs, str):
            return lhs + rhs

    if not (is_number(lhs) and is_number(rhs)):
        raise _invalid(kind, lhs, rhs)
    integers = isinstance(lhs, int) and isinstance(rhs, int)

    if kind is OperatorKind.PLUS:
        return lhs + rhs
    if kind is OperatorKind.MINUS:
        return lhs - rhs
    if kind is OperatorKind.MULTIPLY:
        return lhs * rhs

    if rhs == 0:
        raise OperationError("division by zero", diagnosis=False)
    if kind is OperatorKind.DIVIDE:
        return _truncated_division(lhs, rhs) if integers else lhs / rhs
    if integers:
        return lhs - rhs * _truncated_division(lhs, rhs)
    return math.fmod(lhs, rhs)


def _equal(lhs, rhs):
    if is_number(lhs) and is_number(rhs):
        return lhs == rhs
    if isinstance(lhs, list) and isinstance(rhs, list):
        return len(lhs) == len(rhs) and all(_equal(left, right) for left, right in zip(lhs, rhs))
    if type(lhs) is type(rhs) and isinstance(lhs, (str, bool)):
        return lhs == rhs
    return False


def _comparable(lhs, rhs):
    if is_number(lhs) and is_number(rhs):
        return True
    if isinstance(lhs, list) and isinstance(rhs, list):
        return True
    return type(lhs) is type(rhs) and isinstance(lhs, (str, bool))


def apply(kind, lhs, rhs):
    """Applies the binary operator kind to two runtime values. Raises OperationError for unsupported operand pairs
    and for division by zero.
    """
    if kind in ARITHMETIC:
        return _arithmetic(kind, lhs, rhs)

    if kind in ORDERING:
        if not (is_number(lhs) and is_number(rhs)):
            raise _invalid(kind, lhs, rhs)
        if kind is OperatorKind.LESS:
            return lhs < rhs
        if kind is OperatorKind.LESS_OR_EQUAL:
            return lhs <= rhs
        if kind is OperatorKind.GREATER:
            return lhs > rhs
        return lhs >= rhs

    if kind in EQUALITY:
        if not _comparable(lhs, rhs):
            raise _invalid(kind, lhs, rhs)
        equal = _equal(lhs, rhs)
        return equal if kind is OperatorKind.EQUAL else not equal

    if kind in LOGICAL:
        if not (isinstance(lhs, bool) and isinstance(rhs, bool)):
            raise _invalid(kind, lhs, rhs)
        if kind is OperatorKind.AND:
            return lhs and rhs
        if kind is OperatorKind.OR:
            return lhs or rhs
        return lhs != rhs

    raise OperationError("'{}' is not a binary operator", kind.value, diagnosis=False)
