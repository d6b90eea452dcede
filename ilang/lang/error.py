"""Error handling for the ilang pipeline. Every error raised inside a stage is a GenericException; if another type of
error reaches ErrorHandler, it is assumed to be an internal issue.
"""

import sys

from termcolor import colored


class GenericException(Exception):
    """Templates an error/warning message so that it can be reported by ErrorHandler. msg is a str.format template and
    exprs are the offending snippets that get bolded in place.
    """

    def __init__(self, msg, exprs=None, span=None, diagnosis=True, internal=False):
        """Parses args for GenericException or warning."""
        if exprs is None:
            exprs = []
        if isinstance(exprs, str):
            exprs = [exprs]

        self.plain = msg.format(*exprs)
        self.msg = msg.format(*(colored(str(expr), attrs=["bold"]) for expr in exprs))  # color expr snippets
        self.span = span  # source span of the offending token/node, if known

        self.diagnosis = diagnosis
        self.internal = internal
        super().__init__(self.plain)


class ErrorHandler:
    """Context manager that will silently suppress Python errors and report ilang errors/warnings instead."""
    ERROR = "red"
    WARNING = "magenta"

    def __init__(self, fatal=True):
        self.fatal = fatal
        self.path = None
        self.lines = []

    def register_source(self, path, source):
        """Registers the file being run so that spans can be shown against its lines."""
        self.path = path
        self.lines = source.splitlines()

    def diagnose(self, error, warning=False):
        """Returns the offending line of source with error.span underlined. Multi-line spans are underlined up to the
        end of their first line.
        """
        color = ErrorHandler.WARNING if warning else ErrorHandler.ERROR
        span = error.span

        line = self.lines[span.start_line - 1].expandtabs(1)
        start = max(span.start_col - 1, 0)
        end = span.end_col if span.end_line == span.start_line else len(line)
        end = max(end, start + 1)

        diagnosis = "  " + line[:start]
        diagnosis += colored(line[start:end], color, attrs=["bold"])
        diagnosis += line[end:] + "\n"

        diagnosis += "  " + " " * start
        diagnosis += colored("^" + "~" * (end - start - 1), color, attrs=["bold"])

        return diagnosis

    def warn(self, error):
        """Prints warning message based on error."""
        self._print(error, colored("warning: ", ErrorHandler.WARNING, attrs=["bold"]), warning=True)

    def report(self, error):
        """Prints error message based on error without stopping."""
        label = colored("error: ", ErrorHandler.ERROR, attrs=["bold"])
        if error.internal:
            label = colored("[internal] ", ErrorHandler.ERROR, attrs=["bold"]) + label
        self._print(error, label)

    def throw(self, error):
        """Reports error and exits if this handler is fatal. error must be a GenericException."""
        self.report(error)
        if self.fatal:
            sys.exit(1)

    def _print(self, error, label, warning=False):
        prefix = ""
        if self.path is not None:
            prefix = f"{self.path}:"
            if error.span is not None:
                prefix += f"{error.span.start_line}:{error.span.start_col}:"
            prefix = colored(prefix + " ", attrs=["bold"])

        print(prefix + label + error.msg)

        if not error.internal and error.diagnosis and self._can_diagnose(error):
            print(self.diagnose(error, warning=warning))

    def _can_diagnose(self, error):
        return error.span is not None and 0 < error.span.start_line <= len(self.lines)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        do_exit = False
        if exc_type is KeyboardInterrupt:
            self.throw(GenericException("keyboard interrupt"))
        elif exc_type is SystemExit:
            do_exit = True
        elif exc_type is RecursionError:
            self.throw(GenericException("maximum recursion depth exceeded while interpreting"))
        elif exc_type is not None and issubclass(exc_type, GenericException):
            self.throw(exc_val)
        elif exc_type is not None:
            self.throw(GenericException("unknown error: '{}: {}'", (exc_type.__name__, exc_val), internal=True))
            do_exit = True

        return not do_exit
