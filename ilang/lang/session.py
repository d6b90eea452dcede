"""Session control for ilang. Loads a program and drives it through lexing, parsing, semantic analysis and
interpretation, handing every diagnostic to the ErrorHandler on the way.
"""

from ilang.lang.error import GenericException
from ilang.runtime.interpreter import Interpreter, Signal
from ilang.semantic.analyzer import Analyzer
from ilang.syntax.lexer import tokenize
from ilang.syntax.parser import parse


class SemanticError(GenericException):
    """A semantic error or warning, as reported by the ErrorHandler."""

    def __init__(self, diagnostic):
        escaped = diagnostic.message.replace("{", "{{").replace("}", "}}")
        super().__init__(escaped, span=diagnostic.span)


class Session:
    """Governs the run of one ilang program. Intermediate results are kept as attributes once run has been called."""
    TRACES = ("tokens", "tree", "symbols")  # stages that can be printed as they finish

    def __init__(self, error_handler, path, source=None, trace=()):
        """Reads path as UTF-8 unless source is given; path is then only used in messages."""
        if source is None:
            try:
                with open(path, "r", encoding="utf-8") as file:
                    source = file.read()
            except OSError:
                raise GenericException("'{}' could not be opened", path, diagnosis=False)

        self.error_handler = error_handler
        self.error_handler.register_source(path, source)

        self.path = path
        self.source = source
        self.trace = set(trace)

        self.tokens = []
        self.program = None
        self.analyzer = None
        self.errors = []
        self.warnings = []
        self.outcome = None

    def run(self, output=print):
        """Runs the program, writing its printed lines through output. Returns whether or not it ran to the end
        without errors; errors are thrown to the ErrorHandler, which exits if it is fatal.
        """
        self.tokens = tokenize(self.source)
        if "tokens" in self.trace:
            for token in self.tokens:
                print(token)

        self.program, error = parse(self.tokens)
        if error is not None:
            self.error_handler.throw(error)
            return False
        if "tree" in self.trace:
            print(self.program.display())

        self.analyzer = Analyzer()
        __, self.errors, self.warnings = self.analyzer.analyze(self.program)
        for warning in self.warnings:
            self.error_handler.warn(SemanticError(warning))
        if "symbols" in self.trace:
            print(self.analyzer.table.dump())

        if self.errors:
            *reported, thrown = self.errors
            for error in reported:
                self.error_handler.report(SemanticError(error))
            self.error_handler.throw(SemanticError(thrown))
            return False

        self.outcome = Interpreter(output).run(self.program)
        if self.outcome.signal is Signal.ERROR:
            self.error_handler.throw(self.outcome.value)
            return False
        return True
