"""Runs .il files with the ilang interpreter, inside the error handling context manager. Called from the ilang console
script.
"""

import argparse

from ilang.lang.error import ErrorHandler
from ilang.lang.session import Session


def main():
    """Runs ilang interpreter. Called from ilang console script."""
    with ErrorHandler() as error_handler:
        parser = argparse.ArgumentParser(description="lex, parse, check and run an ilang program")
        parser.add_argument("file", help="file to interpret and run")
        parser.add_argument("--trace", choices=Session.TRACES, action="append", default=[],
                            help="print the output of a stage as it finishes (repeatable)")
        args = parser.parse_args()

        Session(error_handler, args.file, trace=args.trace).run()


if __name__ == "__main__":
    main()
