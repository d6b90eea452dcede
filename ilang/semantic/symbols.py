"""Hierarchical symbol table shared in shape by the semantic analyzer and the interpreter.

Every entry can act as a scope: a function's parameters and locals, and a tuple's fields, are children of the entry
holding that function/tuple. A name is addressed by its scope path, e.g. ["f", "x"] is parameter x of function f, and
each intermediate segment of a path must be a Function or a Tuple.
"""

from contextlib import contextmanager
from enum import Enum

from ilang.lang.error import GenericException
from ilang.syntax.tokens import TokenKind


class Type(Enum):
    INTEGER = "Integer"
    REAL = "Real"
    BOOLEAN = "Boolean"
    STRING = "String"
    ARRAY = "Array"
    TUPLE = "Tuple"
    EMPTY = "Empty"
    FUNCTION = "Function"

    @staticmethod
    def from_token_kind(kind):
        """Type named by a built-in type identifier token."""
        return TYPE_NAMES[kind]

    @staticmethod
    def from_literal_kind(kind):
        return Type(kind.value)

    @property
    def numeric(self):
        return self in (Type.INTEGER, Type.REAL)

    def accepts(self, other):
        """Whether or not a value of type other can be stored as self (Integer widens to Real)."""
        return self is other or (self is Type.REAL and other is Type.INTEGER)

    def __str__(self):
        return self.value


TYPE_NAMES = {
    TokenKind.INTEGER_TYPE: Type.INTEGER,
    TokenKind.REAL_TYPE: Type.REAL,
    TokenKind.BOOL_TYPE: Type.BOOLEAN,
    TokenKind.STRING_TYPE: Type.STRING,
    TokenKind.ARRAY_TYPE: Type.ARRAY,
    TokenKind.TUPLE_TYPE: Type.TUPLE,
    TokenKind.EMPTY_TYPE: Type.EMPTY,
}

SCOPE_TYPES = (Type.FUNCTION, Type.TUPLE)


class SymbolError(GenericException):
    """Raised when a scope path can't be walked or a name is declared twice in one area."""


class VariableInformation:
    """Symbol table entry. type is None until known; children holds the entries nested under this one."""

    def __init__(self, name, type=None, value=None, used=False):
        self.name = name
        self.type = type
        self.value = value
        self.used = used
        self.children = {}

    @property
    def is_scope(self):
        return self.type in SCOPE_TYPES

    def copy(self):
        """Copy of this entry and every entry nested under it. Values are shared, not copied."""
        entry = VariableInformation(self.name, self.type, self.value, self.used)
        entry.children = {name: child.copy() for name, child in self.children.items()}
        return entry

    def __repr__(self):
        return f"VariableInformation(name='{self.name}', type={self.type}, used={self.used})"


class SymbolTable:
    """Name-path addressed table. path is the current scope path; operations without an explicit path act on it."""

    def __init__(self):
        self.root = {}
        self.path = []

    @contextmanager
    def scope(self, *names):
        """Pushes names onto the scope path for the duration of the with block."""
        self.path.extend(names)
        try:
            yield self
        finally:
            del self.path[len(self.path) - len(names):]

    @contextmanager
    def relocated(self, path):
        """Replaces the scope path with path for the duration of the with block."""
        saved, self.path = self.path, list(path)
        try:
            yield self
        finally:
            self.path = saved

    @staticmethod
    def describe(path):
        return ".".join(path) if path else "<global>"

    def area(self, path=None):
        """The children map addressed by path (the current path by default), or None if path doesn't lead through
        functions and tuples.
        """
        area = self.root
        for name in (self.path if path is None else path):
            entry = area.get(name)
            if entry is None or not entry.is_scope:
                return None
            area = entry.children
        return area

    def resolve(self, path):
        """Entry at path, or None."""
        if not path:
            return None
        area = self.area(path[:-1])
        return None if area is None else area.get(path[-1])

    def declare(self, name, type=None, value=None, replace=False):
        """Creates entry name in the current area and returns it. Unless replace is set, an existing entry with the
        same name is an error.
        """
        area = self.area()
        if area is None:
            raise SymbolError("there is no area called '{}'", SymbolTable.describe(self.path))
        if name in area and not replace:
            msg = "variable '{}' already declared in this area ({})"
            raise SymbolError(msg, (name, SymbolTable.describe(self.path)))

        entry = area[name] = VariableInformation(name, type, value)
        return entry

    def materialize(self, name):
        """Entry name in the current area, created if it doesn't exist yet."""
        area = self.area()
        if area is None:
            raise SymbolError("there is no area called '{}'", SymbolTable.describe(self.path))
        if name not in area:
            area[name] = VariableInformation(name)
        return area[name]

    def lookup(self, name):
        """Finds name from the innermost area outward and returns (path, entry), or (None, None) if it isn't visible.
        Once the search leaves a function's area, only Function entries are visible.
        """
        functions_only = False
        for depth in range(len(self.path), -1, -1):
            prefix = self.path[:depth]
            area = self.area(prefix)

            if area is not None:
                entry = area.get(name)
                if entry is not None and (not functions_only or entry.type is Type.FUNCTION):
                    return prefix + [name], entry

            owner = self.resolve(prefix)
            if owner is not None and owner.type is Type.FUNCTION:
                functions_only = True

        return None, None

    def remove(self, path):
        area = self.area(path[:-1])
        if area is not None:
            area.pop(path[-1], None)

    def dump(self):
        """Readable, indented listing of every entry."""

        def _dump(area, indents):
            lines = []
            for entry in area.values():
                line = f"{'    ' * indents}{entry.name}: {entry.type if entry.type is not None else '?'}"
                if entry.value is not None and not entry.is_scope:
                    line += f" = {entry.value!r}"
                if not entry.used:
                    line += " (unused)"
                lines.append(line)
                lines += _dump(entry.children, indents + 1)
            return lines

        return "\n".join(_dump(self.root, 0))
