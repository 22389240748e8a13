# -*- coding: utf-8 -*-
"""
Command line runner.

    basic-run program.bas                 # run, print output
    basic-run --check program.bas         # parse only + statement summary
    basic-run --trace --max-steps 10000 program.bas
"""

import logging
import sys
from argparse import ArgumentParser
from collections import Counter

from basic_display import DEFAULT_HEIGHT, DEFAULT_WIDTH, BasicDisplay
from basic_errors import BasicError, BasicSyntaxError
from basic_interpreter import BasicInterpreter
from basic_statements import parse_program
from basic_values import to_text

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_ERRORS = 2


def _lex_window(text, pos, width=120):
    """Slice of a source line around pos, with a caret under pos on the next line."""
    a = max(0, pos-width//2); b = min(len(text), pos+width//2)
    caret = ' ' * (pos-a) + '^'
    return text[a:b] + "\n" + caret


def read_source(path):
    if path == '-':
        return sys.stdin.read()
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def summarize(statements):
    cnt = Counter()
    for st in statements:
        if st is None:
            cnt['EMPTY'] += 1
        else:
            cnt[st[0]] += 1
    return cnt


def check(source, out=None):
    out = out or sys.stdout
    lines, statements = parse_program(source)
    bad = [(i, st) for i, st in enumerate(statements) if st and st[0] in ('UNKNOWN', 'MALFORMED')]

    if bad:
        print("PARSE FAIL", file=out)
        for i, st in bad:
            if st[0] == 'UNKNOWN':
                print(f"  line {i}: unknown command {st[1]}", file=out)
            else:
                print(f"  line {i}: {st[1]}", file=out)
                if st[2]:
                    print(_lex_window(lines[i], st[2] - 1), file=out)
    else:
        print("PARSE OK", file=out)

    print("Lines parsed:", len(lines), file=out)
    print("---- Statement counts ----", file=out)
    for k, v in summarize(statements).most_common():
        print(f"  {k:10s} {v}", file=out)
    return EXIT_FATAL if bad else EXIT_OK


def build_arg_parser():
    cmd = ArgumentParser(prog='basic-run', description='Run a line-oriented BASIC program')
    cmd.add_argument('program', help='BASIC source file, - for stdin')
    cmd.add_argument('--check', action='store_true',
                     help='Only parse the program and print a statement summary')
    cmd.add_argument('--max-steps', type=int, default=None,
                     help='Abort after this many executed statements')
    cmd.add_argument('--trace', action='store_true',
                     help='Log every executed statement to stderr')
    cmd.add_argument('--width', type=int, default=DEFAULT_WIDTH, help='Display width in pixels')
    cmd.add_argument('--height', type=int, default=DEFAULT_HEIGHT, help='Display height in pixels')
    cmd.add_argument('--dump-vars', action='store_true',
                     help='Print the variables after the run')
    return cmd


def main(argv=None):
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.trace else logging.WARNING,
        stream=sys.stderr,
        format='%(levelname)s %(name)s: %(message)s',
    )

    source = read_source(args.program)
    if args.check:
        return check(source)

    interp = BasicInterpreter(display=BasicDisplay(args.width, args.height), max_steps=args.max_steps)
    status = EXIT_OK
    try:
        interp.run(source)
    except BasicSyntaxError as e:
        status = EXIT_FATAL
        print(f"Syntax error: {e}", file=sys.stderr)
        if e.code and e.column:
            print(_lex_window(e.code, e.column - 1), file=sys.stderr)
    except BasicError as e:
        status = EXIT_FATAL
        print(f"Runtime error: {e}", file=sys.stderr)

    # partial output is still printed after a fatal error
    for line in interp.output:
        print(line)

    for err in interp.errors:
        print(f"Error at line {err.line_index}: {err.message}", file=sys.stderr)
    if status == EXIT_OK and interp.errors:
        status = EXIT_ERRORS

    if args.dump_vars:
        for name, value in sorted(interp.variables.as_dict().items()):
            print(f"{name} = {to_text(value)}")
    return status


if __name__ == "__main__":
    sys.exit(main())
