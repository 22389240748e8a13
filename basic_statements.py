# -*- coding: utf-8 -*-
"""
Statement grammar for the line-oriented BASIC dialect.

Every source line is parsed once, up front, into a tagged statement tuple:

    ('LET', var, expr)          ('IF', cond, inline_statement_text)
    ('FOR', var, start, stop)   ('NEXT', var)
    ('WHILE', cond)             ('WEND',)
    ('GOSUB', name)             ('RETURN',)
    ('PRINT', expr)             ('END',)
    ('REM', text)               ('SUB', name)
    ('SETPX', [x, y, color])    ('GETPX', [x, y] or [x, y, var])

Expressions stay as source text; the evaluator tokenizes them when the
statement runs. Lines with an unknown leading keyword become
('UNKNOWN', keyword); lines with a known keyword but bad arguments become
('MALFORMED', message, column) in parse_program so the executor can report
them with their line index.
"""

import re
from typing import Any, List, Optional, Tuple

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedInput, VisitError

from basic_errors import BasicError, BasicSyntaxError, TokenizeError
from basic_tokenizer import tokenize

Stmt = Tuple[Any, ...]

KEYWORDS = {
    'LET', 'IF', 'FOR', 'NEXT', 'WHILE', 'WEND', 'GOSUB', 'RETURN',
    'PRINT', 'END', 'REM', 'SUB', 'SETPX', 'GETPX',
}

# ----- Grammar -----
# EXPR / COND / BOUND capture raw expression text. The contextual lexer only
# offers them where an expression is expected, so they never compete with
# the keyword strings. COND and BOUND step over quoted strings whole, so a
# THEN or TO inside a string literal does not end the expression.
GRAMMAR = r"""
?start: statement

?statement: let_stmt
          | if_stmt
          | for_stmt
          | next_stmt
          | while_stmt
          | wend_stmt
          | gosub_stmt
          | return_stmt
          | print_stmt
          | end_stmt
          | rem_stmt
          | sub_stmt
          | setpx_stmt
          | getpx_stmt

// ----- assignment / output -----
let_stmt: "LET" NAME "=" EXPR
print_stmt: "PRINT" EXPR

// ----- IF (single inline statement, no ELSE) -----
if_stmt: "IF" COND "THEN" EXPR

// ----- loops -----
for_stmt: "FOR" NAME "=" BOUND "TO" EXPR
next_stmt: "NEXT" NAME
while_stmt: "WHILE" EXPR
wend_stmt: "WEND"

// ----- subroutines -----
sub_stmt: "SUB" NAME
gosub_stmt: "GOSUB" NAME
return_stmt: "RETURN"

// ----- misc -----
end_stmt: "END"
rem_stmt: "REM" EXPR?

// ----- display -----
setpx_stmt: "SETPX" EXPR
getpx_stmt: "GETPX" EXPR

NAME: /[A-Za-z]+/
EXPR: /\S.*/
COND: /(?:"[^"]*"|[^"\s])(?:"[^"]*"|[^"])*?(?=\s+THEN\b)/
BOUND: /(?:"[^"]*"|[^"\s])(?:"[^"]*"|[^"])*?(?=\s+TO\b)/

%import common.WS_INLINE
%ignore WS_INLINE
"""

LEADING_WORD = re.compile(r'[A-Za-z]+|\S+')


def split_operands(args):
    """
    Split 'X (Y + 1) C' into ['X', '(Y + 1)', 'C'].

    Each operand is one token, optionally signed, or a parenthesised group.
    """
    try:
        tokens = list(tokenize(args))
    except TokenizeError as e:
        raise BasicSyntaxError(e.message) from None

    starts = []
    depth = 0
    in_operand = False
    for tok in tokens:
        if not in_operand:
            starts.append(tok.pos)
            in_operand = True
            if tok.type == 'OP' and tok.val in ('-', '+'):
                continue
        if tok.type == 'LPAREN':
            depth += 1
        elif tok.type == 'RPAREN':
            depth -= 1
            if depth < 0:
                raise BasicSyntaxError(f"Unmatched ')' in {args!r}")
        elif tok.type == 'OP' and depth == 0:
            raise BasicSyntaxError(f"Operator {tok.val!r} outside parentheses in {args!r}")
        if depth == 0:
            in_operand = False

    if depth != 0 or in_operand:
        raise BasicSyntaxError(f"Incomplete operand in {args!r}")

    bounds = starts + [len(args)]
    return [args[a:b].strip() for a, b in zip(bounds, bounds[1:])]


# ----- Transformer (tuple IR) -----
@v_args(inline=True)
class StatementTransformer(Transformer):
    def let_stmt(self, var, expr): return ('LET', str(var), str(expr))
    def print_stmt(self, expr): return ('PRINT', str(expr))
    def if_stmt(self, cond, tail): return ('IF', str(cond), str(tail))

    def for_stmt(self, var, start, stop):
        return ('FOR', str(var), str(start), str(stop))

    def next_stmt(self, var): return ('NEXT', str(var))
    def while_stmt(self, cond): return ('WHILE', str(cond))
    def wend_stmt(self): return ('WEND',)
    def sub_stmt(self, name): return ('SUB', str(name))
    def gosub_stmt(self, name): return ('GOSUB', str(name))
    def return_stmt(self): return ('RETURN',)
    def end_stmt(self): return ('END',)

    def rem_stmt(self, remark=None):
        return ('REM', str(remark) if remark is not None else '')

    def setpx_stmt(self, args):
        operands = split_operands(str(args))
        if len(operands) != 3:
            raise BasicSyntaxError(f"SETPX expects x y color, got {len(operands)} operand(s)")
        return ('SETPX', operands)

    def getpx_stmt(self, args):
        operands = split_operands(str(args))
        if len(operands) not in (2, 3):
            raise BasicSyntaxError(f"GETPX expects x y [variable], got {len(operands)} operand(s)")
        if len(operands) == 3 and not operands[2].isalpha():
            raise BasicSyntaxError(f"GETPX target must be a variable name, got {operands[2]!r}")
        return ('GETPX', operands)


PARSER = Lark(GRAMMAR, parser="lalr", start="start", lexer="contextual")


def leading_keyword(code):
    m = LEADING_WORD.match(code)
    return m.group(0) if m else ''


def parse_statement(line) -> Optional[Stmt]:
    """Parse one line. Blank -> None, unknown keyword -> ('UNKNOWN', kw)."""
    code = line.strip()
    if not code:
        return None

    keyword = leading_keyword(code)
    if keyword not in KEYWORDS:
        return ('UNKNOWN', keyword)

    try:
        tree = PARSER.parse(code)
        return StatementTransformer().transform(tree)
    except UnexpectedInput as e:
        raise BasicSyntaxError(f"Malformed {keyword} statement: {code!r}",
                               code=code, column=getattr(e, 'column', None)) from None
    except VisitError as e:
        if isinstance(e.orig_exc, BasicSyntaxError):
            e.orig_exc.code = code
            raise e.orig_exc from None
        if isinstance(e.orig_exc, BasicError):
            raise BasicSyntaxError(e.orig_exc.message, code=code) from None
        raise


def parse_program(program) -> Tuple[List[str], List[Optional[Stmt]]]:
    """Split program text into trimmed lines and their parsed statements."""
    lines = [raw.strip() for raw in program.split('\n')]
    statements: List[Optional[Stmt]] = []
    for code in lines:
        try:
            statements.append(parse_statement(code))
        except BasicSyntaxError as e:
            statements.append(('MALFORMED', e.message, e.column))
    return lines, statements
