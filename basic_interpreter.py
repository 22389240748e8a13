"""
Statement executor for the line-oriented BASIC dialect.

    interp = BasicInterpreter()
    interp.run('LET X = 10\\nPRINT X')
    interp.output.buffer    # ['10']
    interp.errors           # [] (non-fatal problems, with line index)

The program counter is an index into the trimmed line list. After every
statement the loop adds one to it, so a handler that jumps stores the index
of the line *before* the one that should run next: NEXT/WEND jump to their
FOR/WHILE line, GOSUB jumps to the SUB line, RETURN jumps back to the GOSUB
line.

Fatal conditions (stack misuse, bad expressions, malformed statements)
raise a BasicError with line_index set; output produced before the failure
stays in the output buffer.
"""

import logging
import math

from basic_display import BasicDisplay
from basic_errors import (BasicError, BasicSyntaxError, ErrorRecord, EvaluationError,
                          StackDisciplineError, StepLimitExceeded)
from basic_evaluator import BasicEvaluator
from basic_output import OutputBuffer
from basic_statements import parse_program, parse_statement
from basic_values import NUM, VariableStore, is_truthy, number, to_text

log = logging.getLogger(__name__)

NOT_STARTED = 'not-started'
RUNNING = 'running'
HALTED = 'halted'


class BasicInterpreter:
    def __init__(self, display=None, output=None, max_steps=None):
        self.display = display if display is not None else BasicDisplay()
        self.output = output if output is not None else OutputBuffer()
        self.max_steps = max_steps

        self.variables = VariableStore()
        # shares the store: every evaluation sees current values
        self.evaluator = BasicEvaluator(self.variables)

        self.lines = []
        self.statements = []
        self.subroutines = {}  # name -> index of its SUB line
        self.errors = []       # ErrorRecord(message, line_index)

        self.call_stack = []   # GOSUB line indices
        self.for_stack = []    # (var, for_index, stop)
        self.while_stack = []  # (cond_text, while_index)

        self.program_counter = 0
        self.halted = False
        self.state = NOT_STARTED
        self.steps = 0
        self._inline_cache = {}

        self._handlers = {
            'LET': self._do_let,
            'IF': self._do_if,
            'FOR': self._do_for,
            'NEXT': self._do_next,
            'WHILE': self._do_while,
            'WEND': self._do_wend,
            'GOSUB': self._do_gosub,
            'RETURN': self._do_return,
            'PRINT': self._do_print,
            'END': self._do_end,
            'REM': self._do_nothing,
            'SUB': self._do_nothing,
            'SETPX': self._do_setpx,
            'GETPX': self._do_getpx,
            'UNKNOWN': self._do_unknown,
            'MALFORMED': self._do_malformed,
        }

    # -------------- loading --------------
    def load(self, program):
        """Parse program text and pre-scan its subroutines."""
        self.lines, self.statements = parse_program(program)
        self._inline_cache = {}
        self._reset()
        self._scan_subroutines()

    def _reset(self):
        self.variables.clear()
        self.subroutines = {}
        self.errors = []
        self.call_stack = []
        self.for_stack = []
        self.while_stack = []
        self.program_counter = 0
        self.halted = False
        self.state = NOT_STARTED
        self.steps = 0
        self.output.clear()

    def _scan_subroutines(self):
        for index, stmt in enumerate(self.statements):
            if stmt is None or stmt[0] != 'SUB':
                continue
            name = stmt[1]
            if name in self.subroutines:
                # first declaration wins
                self._record(f"Duplicate subroutine: {name} (first declared at line {self.subroutines[name]})",
                             index)
            else:
                self.subroutines[name] = index

    # -------------- running --------------
    def run(self, program=None):
        """Run program text (or the loaded program again) to completion."""
        if program is not None:
            self.load(program)
        elif self.state != NOT_STARTED:
            self._reset()
            self._scan_subroutines()

        self.state = RUNNING
        try:
            while not self.halted and 0 <= self.program_counter < len(self.lines):
                stmt = self.statements[self.program_counter]
                if stmt is not None:
                    self._step(stmt)
                self.program_counter += 1
        finally:
            self.halted = True
            self.state = HALTED
        return self.output.buffer

    def _step(self, stmt):
        self.steps += 1
        try:
            if self.max_steps is not None and self.steps > self.max_steps:
                raise StepLimitExceeded(f"Step limit of {self.max_steps} exceeded")
            self.exec_stmt(stmt)
        except BasicError as e:
            if e.line_index is None:
                e.line_index = self.program_counter
            log.error("%s", e)
            raise

    def exec_stmt(self, stmt):
        typ = stmt[0]
        log.debug("Executing %s at line %d", typ, self.program_counter)
        self._handlers[typ](*stmt[1:])

    def evaluate(self, expression):
        return self.evaluator.evaluate(expression)

    # -------------- helpers --------------
    def _record(self, message, line_index=None):
        if line_index is None:
            line_index = self.program_counter
        log.warning("%s (line %d)", message, line_index)
        self.errors.append(ErrorRecord(message, line_index))

    def _eval_number(self, expression, what):
        value = self.evaluate(expression)
        if value[0] != NUM:
            raise EvaluationError(f"{what} must be a number, got {to_text(value)!r}")
        if not math.isfinite(value[1]):
            raise EvaluationError(f"{what} must be finite, got {to_text(value)}")
        return value[1]

    # -------------- statement handlers --------------
    def _do_let(self, var, expr):
        self.variables.set(var, self.evaluate(expr))

    def _do_if(self, cond, inline):
        if not is_truthy(self.evaluate(cond)):
            return
        if inline not in self._inline_cache:
            self._inline_cache[inline] = parse_statement(inline)
        self.exec_stmt(self._inline_cache[inline])

    def _do_for(self, var, start, stop):
        # both bounds are fixed at loop entry
        start_value = self.evaluate(start)
        stop_value = self.evaluate(stop)
        self.variables.set(var, start_value)
        self.for_stack.append((var, self.program_counter, stop_value))

    def _do_next(self, var):
        if not self.for_stack:
            raise StackDisciplineError(f"NEXT {var} without FOR")
        frame = self.for_stack.pop()
        loop_var, for_index, stop = frame
        if loop_var != var:
            raise StackDisciplineError(f"NEXT {var} does not match FOR {loop_var}")

        current = self.variables.get(var)
        if current[0] != NUM:
            raise EvaluationError(f"FOR variable {var} is not a number: {to_text(current)!r}")
        if stop[0] != NUM:
            raise EvaluationError(f"FOR {var} upper bound is not a number: {to_text(stop)!r}")

        value = current[1] + 1
        self.variables.set(var, number(value))
        if value <= stop[1]:
            self.for_stack.append(frame)
            self.program_counter = for_index

    def _do_while(self, cond):
        self.while_stack.append((cond, self.program_counter))

    def _do_wend(self):
        if not self.while_stack:
            raise StackDisciplineError("WEND without WHILE")
        frame = self.while_stack.pop()
        cond, while_index = frame
        if is_truthy(self.evaluate(cond)):
            self.while_stack.append(frame)
            self.program_counter = while_index

    def _do_gosub(self, name):
        if name not in self.subroutines:
            self._record(f"Unknown subroutine: {name}")
            return
        self.call_stack.append(self.program_counter)
        self.program_counter = self.subroutines[name]

    def _do_return(self):
        if not self.call_stack:
            raise StackDisciplineError("RETURN without GOSUB")
        self.program_counter = self.call_stack.pop()

    def _do_print(self, expr):
        self.output.write_line(to_text(self.evaluate(expr)))

    def _do_end(self):
        self.halted = True

    def _do_nothing(self, *args):
        pass

    def _do_setpx(self, args):
        x, y, color = (self._eval_number(a, 'SETPX argument') for a in args)
        self.display.set_pixel(int(x), int(y), int(color))

    def _do_getpx(self, args):
        x = self._eval_number(args[0], 'GETPX argument')
        y = self._eval_number(args[1], 'GETPX argument')
        value = number(self.display.get_pixel(int(x), int(y)))
        if len(args) == 3:
            self.variables.set(args[2], value)
        else:
            self.output.write_line(to_text(value))

    def _do_unknown(self, keyword):
        self._record(f"Unknown command: {keyword}")

    def _do_malformed(self, message, column=None):
        raise BasicSyntaxError(message, code=self.lines[self.program_counter], column=column)


def run(program, **kwargs):
    """Run program text on a fresh interpreter and return it."""
    interp = BasicInterpreter(**kwargs)
    interp.run(program)
    return interp
