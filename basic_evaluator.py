"""
Expression evaluator: shunting-yard conversion to RPN, then a stack scan.

    ev = BasicEvaluator(store)
    ev.evaluate('10 > 3 + 4')      # ('NUM', 1.0)
    ev.evaluate('"a" + 1')         # ('STR', 'a1')

The evaluator never copies the variable store it is given; every call sees
the values as they are at that moment.
"""

import logging
import operator

from basic_errors import EvaluationError
from basic_tokenizer import tokenize
from basic_values import NUM, STR, ZERO, ONE, number, text, to_text, from_python

log = logging.getLogger(__name__)

# Higher precedence binds tighter.
PRECEDENCE = {
    '=': 1,
    '<>': 2, '<=': 2, '>=': 2, '<': 2, '>': 2,
    '+': 3, '-': 3,
    '*': 4, '/': 4,
    'NEG': 5, 'POS': 5,
}

UNARY = {'NEG', 'POS'}
PREFIX_SIGNS = {'-': 'NEG', '+': 'POS'}

ARITHMETIC = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '/': operator.truediv,
}

COMPARISON = {
    '>': operator.gt,
    '<': operator.lt,
    '>=': operator.ge,
    '<=': operator.le,
    '=': operator.eq,
    '<>': operator.ne,
}


def _flag(cond):
    return ONE if cond else ZERO


def apply_operator(op, a, b):
    """Apply a binary operator to two tagged values (a pushed first)."""
    if a[0] == NUM and b[0] == NUM:
        if op in ARITHMETIC:
            try:
                return number(ARITHMETIC[op](a[1], b[1]))
            except ZeroDivisionError:
                raise EvaluationError(f"Division by zero: {to_text(a)} / {to_text(b)}") from None
        if op in COMPARISON:
            return _flag(COMPARISON[op](a[1], b[1]))
        raise EvaluationError(f"Unknown operator {op!r}")

    # at least one side is text: compare/concatenate textual forms
    str_a, str_b = to_text(a), to_text(b)
    if op == '+':
        return text(str_a + str_b)
    if op == '=':
        return _flag(str_a == str_b)
    if op == '<>':
        return _flag(str_a != str_b)
    raise EvaluationError(f"Unsupported operator {op!r} for text operands")


def apply_unary(op, a):
    if a[0] != NUM:
        sign = '-' if op == 'NEG' else '+'
        raise EvaluationError(f"Unsupported operator {sign!r} for text operands")
    return number(-a[1]) if op == 'NEG' else a


class BasicEvaluator:
    def __init__(self, variables=None):
        # read-only view of the interpreter's store (or any mapping)
        self.variables = variables if variables is not None else {}

    def lookup(self, name):
        return from_python(self.variables.get(name, ZERO))

    def evaluate(self, expression):
        queue = self.to_rpn(tokenize(expression))
        log.debug("RPN %r -> %s", expression, queue)
        return self.evaluate_rpn(queue)

    # ----- phase 1: infix -> postfix -----
    def to_rpn(self, tokens):
        output = []
        ops = []
        expect_operand = True

        for tok in tokens:
            if tok.type in ('NUMBER', 'STRING', 'IDENT'):
                if not expect_operand:
                    raise EvaluationError(f"Missing operator before {tok.val!r}")
                if tok.type == 'NUMBER':
                    output.append(number(tok.val))
                elif tok.type == 'STRING':
                    output.append(text(tok.val))
                else:
                    output.append(self.lookup(tok.val))
                expect_operand = False

            elif tok.type == 'OP':
                if expect_operand:
                    # sign in operand position: prefix operator, never pops
                    if tok.val in PREFIX_SIGNS:
                        ops.append(PREFIX_SIGNS[tok.val])
                        continue
                    raise EvaluationError(f"Missing operand before {tok.val!r}")
                prec = PRECEDENCE[tok.val]
                while ops and ops[-1] != '(' and PRECEDENCE[ops[-1]] >= prec:
                    output.append(('OP', ops.pop()))
                ops.append(tok.val)
                expect_operand = True

            elif tok.type == 'LPAREN':
                if not expect_operand:
                    raise EvaluationError("Missing operator before '('")
                ops.append('(')

            elif tok.type == 'RPAREN':
                if expect_operand:
                    raise EvaluationError("Missing operand before ')'")
                while ops and ops[-1] != '(':
                    output.append(('OP', ops.pop()))
                if not ops:
                    raise EvaluationError("Unmatched ')'")
                ops.pop()

            else:
                raise EvaluationError(f"Unexpected token {tok!r}")

        if expect_operand:
            if not output and not ops:
                raise EvaluationError("Empty expression")
            raise EvaluationError("Expression ends without an operand")

        while ops:
            op = ops.pop()
            if op == '(':
                raise EvaluationError("Unmatched '('")
            output.append(('OP', op))
        return output

    # ----- phase 2: postfix scan -----
    def evaluate_rpn(self, queue):
        stack = []
        for tag, payload in queue:
            if tag == 'OP':
                if payload in UNARY:
                    if not stack:
                        raise EvaluationError(f"Missing operand for {payload}")
                    stack.append(apply_unary(payload, stack.pop()))
                    continue
                if len(stack) < 2:
                    raise EvaluationError(f"Missing operand for {payload!r}")
                b = stack.pop()
                a = stack.pop()
                stack.append(apply_operator(payload, a, b))
            elif tag in (NUM, STR):
                stack.append((tag, payload))
            else:
                raise EvaluationError(f"Unexpected queue entry {(tag, payload)!r}")

        if len(stack) != 1:
            raise EvaluationError(f"Malformed expression ({len(stack)} values left)")
        return stack[0]


def evaluate(expression, variables=None):
    return BasicEvaluator(variables).evaluate(expression)
