"""ilang: interpreter for a small imperative language with variables, arrays, tuples, functions and loops.

Basic program flow:
    1. Lexer: scans the source into tokens (ilang/syntax/lexer.py), never failing on bad input
    2. Parser: builds an AST from the tokens by recursive descent (ilang/syntax/parser.py)
        - Node classes and operator weights are in ilang/syntax/tree.py
    3. Semantic analysis: walks the AST with a scoped symbol table (ilang/semantic/analyzer.py)
        - Reports undeclared names, bad operand types, misplaced break/return, ...
        - Folds constants, removes unreachable statements and unused variables
    4. Interpretation: walks the checked AST again with a symbol table of its own (ilang/runtime/interpreter.py)

"""
