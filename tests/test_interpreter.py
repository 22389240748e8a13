import pytest

from basic_display import BasicDisplay
from basic_errors import (BasicSyntaxError, ErrorRecord, EvaluationError,
                          StackDisciplineError, StepLimitExceeded)
from basic_interpreter import HALTED, NOT_STARTED, BasicInterpreter, run
from basic_values import number, text


def lines(*stmts):
    return '\n'.join(stmts)


class TestSamplePrograms:
    def test_let_and_print(self, run_program):
        interp = run_program('LET X = 10\nPRINT X')
        assert interp.output.buffer == ['10']

    def test_small_numbers_print_positionally(self, run_program):
        interp = run_program('PRINT 0.000001\nPRINT 0.0000001')
        assert interp.output.buffer == ['0.000001', '1e-7']

    def test_indented_lines(self, run_program):
        interp = run_program("""
        LET X = 10
        PRINT X""")
        assert interp.output.buffer == ['10']

    def test_for_loop(self, run_program):
        interp = run_program(lines(
            'LET X = 10',
            'LET Y = 0',
            'FOR I = 1 TO 5',
            '  LET Y = Y + X',
            'NEXT I',
            'PRINT Y',
        ))
        assert interp.output.buffer == ['50']
        assert interp.variables['I'] == number(6)

    def test_while_loop(self, run_program):
        interp = run_program(lines(
            'LET X = 10',
            'LET Y = 0',
            'WHILE Y < 50',
            '  LET Y = Y + X',
            'WEND',
            'PRINT Y',
        ))
        assert interp.output.buffer == ['50']

    def test_print_text_and_fraction(self, run_program):
        interp = run_program('PRINT "Half is " + 1 / 2\nPRINT 7 / 2 * 2')
        assert interp.output.buffer == ['Half is 0.5', '7']


class TestIf:
    def test_false_condition_prints_nothing(self, run_program):
        assert run_program('IF 1 > 2 THEN PRINT "no"').output.buffer == []

    def test_true_condition_runs_one_statement(self, run_program):
        interp = run_program('IF 2 > 1 THEN PRINT "yes"\nPRINT "after"')
        assert interp.output.buffer == ['yes', 'after']

    def test_inline_assignment(self, run_program):
        interp = run_program('LET A = 3\nIF A = 3 THEN LET A = A * 2\nPRINT A')
        assert interp.output.buffer == ['6']

    def test_then_inside_string_condition(self, run_program):
        interp = run_program('LET X = "A THEN"\nIF X = "A THEN" THEN PRINT 1')
        assert interp.output.buffer == ['1']
        assert interp.errors == []

    def test_nested_if(self, run_program):
        interp = run_program('IF 1 THEN IF 0 THEN PRINT "x"\nIF 1 THEN IF 1 THEN PRINT "y"')
        assert interp.output.buffer == ['y']

    def test_text_condition(self, run_program):
        interp = run_program('IF "" THEN PRINT "empty"\nIF "s" THEN PRINT "full"')
        assert interp.output.buffer == ['full']

    def test_inline_end_halts(self, run_program):
        interp = run_program('IF 1 THEN END\nPRINT "unreached"')
        assert interp.output.buffer == []

    def test_inline_unknown_command_is_recorded(self, run_program):
        interp = run_program('IF 1 THEN JUMP\nPRINT "on"')
        assert interp.output.buffer == ['on']
        assert interp.errors == [ErrorRecord('Unknown command: JUMP', 0)]


class TestLoops:
    def test_for_counts_inclusive(self, run_program):
        interp = run_program('FOR I = 1 TO 3\nPRINT I\nNEXT I')
        assert interp.output.buffer == ['1', '2', '3']

    def test_for_body_runs_once_when_start_exceeds_stop(self, run_program):
        interp = run_program('FOR I = 5 TO 1\nPRINT I\nNEXT I\nPRINT "done"')
        assert interp.output.buffer == ['5', 'done']

    def test_for_bounds_are_evaluated_once(self, run_program):
        interp = run_program(lines(
            'LET N = 3',
            'FOR I = 1 TO N',
            '  LET N = 10',
            '  PRINT I',
            'NEXT I',
        ))
        assert interp.output.buffer == ['1', '2', '3']

    def test_nested_for(self, run_program):
        interp = run_program(lines(
            'LET C = 0',
            'FOR I = 1 TO 3',
            'FOR J = 1 TO 4',
            'LET C = C + 1',
            'NEXT J',
            'NEXT I',
            'PRINT C',
        ))
        assert interp.output.buffer == ['12']
        assert interp.for_stack == []

    def test_for_negative_start(self, run_program):
        interp = run_program('FOR I = -1 TO 1\nPRINT I\nNEXT I')
        assert interp.output.buffer == ['-1', '0', '1']

    def test_while_condition_is_re_evaluated(self, run_program):
        interp = run_program(lines(
            'LET N = 0',
            'WHILE N < 3',
            'LET N = N + 1',
            'PRINT N',
            'WEND',
        ))
        assert interp.output.buffer == ['1', '2', '3']
        assert interp.while_stack == []

    def test_while_body_runs_once_before_first_check(self, run_program):
        interp = run_program('WHILE 0\nPRINT "body"\nWEND\nPRINT "out"')
        assert interp.output.buffer == ['body', 'out']

    def test_for_inside_while(self, run_program):
        interp = run_program(lines(
            'LET T = 0',
            'LET K = 0',
            'WHILE K < 2',
            'FOR I = 1 TO 3',
            'LET T = T + I',
            'NEXT I',
            'LET K = K + 1',
            'WEND',
            'PRINT T',
        ))
        assert interp.output.buffer == ['12']


class TestSubroutines:
    PROGRAM = lines(
        'PRINT "start"',
        'GOSUB GREET',
        'PRINT "back"',
        'END',
        'SUB GREET',
        'PRINT "hello"',
        'RETURN',
    )

    def test_gosub_returns_after_call_site(self, run_program):
        interp = run_program(self.PROGRAM)
        assert interp.output.buffer == ['start', 'hello', 'back']
        assert interp.call_stack == []

    def test_subroutine_table(self, run_program):
        assert run_program(self.PROGRAM).subroutines == {'GREET': 4}

    def test_nested_calls(self, run_program):
        interp = run_program(lines(
            'GOSUB A',
            'PRINT "main"',
            'END',
            'SUB A',
            'PRINT "a1"',
            'GOSUB B',
            'PRINT "a2"',
            'RETURN',
            'SUB B',
            'PRINT "b"',
            'RETURN',
        ))
        assert interp.output.buffer == ['a1', 'b', 'a2', 'main']

    def test_gosub_in_loop(self, run_program):
        interp = run_program(lines(
            'FOR I = 1 TO 3',
            'GOSUB SHOW',
            'NEXT I',
            'END',
            'SUB SHOW',
            'PRINT I * 10',
            'RETURN',
        ))
        assert interp.output.buffer == ['10', '20', '30']

    def test_inline_gosub(self, run_program):
        interp = run_program(lines(
            'IF 1 THEN GOSUB S',
            'PRINT "after"',
            'END',
            'SUB S',
            'PRINT "in"',
            'RETURN',
        ))
        assert interp.output.buffer == ['in', 'after']

    def test_missing_subroutine_is_recorded(self, run_program):
        interp = run_program('GOSUB NOWHERE\nPRINT "still running"')
        assert interp.output.buffer == ['still running']
        assert interp.errors == [ErrorRecord('Unknown subroutine: NOWHERE', 0)]

    def test_duplicate_subroutine_first_wins(self, run_program):
        interp = run_program(lines(
            'GOSUB S',
            'END',
            'SUB S',
            'PRINT "first"',
            'RETURN',
            'SUB S',
            'PRINT "second"',
            'RETURN',
        ))
        assert interp.output.buffer == ['first']
        assert interp.subroutines == {'S': 2}
        assert len(interp.errors) == 1
        assert interp.errors[0].line_index == 5
        assert 'Duplicate subroutine: S' in interp.errors[0].message

    def test_flowing_into_sub_is_a_no_op(self, run_program):
        interp = run_program('SUB S\nPRINT "fell in"')
        assert interp.output.buffer == ['fell in']


class TestNonFatalErrors:
    def test_unknown_command(self, run_program):
        interp = run_program('PRINT 1\nFROB 2\nPRINT 3')
        assert interp.output.buffer == ['1', '3']
        assert interp.errors == [ErrorRecord('Unknown command: FROB', 1)]

    def test_unknown_command_is_only_reported_when_reached(self, run_program):
        interp = run_program('END\nFROB')
        assert interp.errors == []

    def test_errors_accumulate_in_order(self, run_program):
        interp = run_program('SUB A\nSUB A\nGOSUB B\nXYZ')
        assert [e.line_index for e in interp.errors] == [1, 2, 3]

    def test_rem_and_blank_lines(self, run_program):
        interp = run_program('REM header\n\n   \nPRINT "ok"')
        assert interp.output.buffer == ['ok']
        assert interp.errors == []


class TestFatalErrors:
    @pytest.mark.parametrize('program, message', [
        ('NEXT I', 'without FOR'),
        ('FOR I = 1 TO 2\nNEXT J', 'does not match'),
        ('WEND', 'without WHILE'),
        ('RETURN', 'without GOSUB'),
    ])
    def test_stack_discipline(self, interp, program, message):
        with pytest.raises(StackDisciplineError, match=message):
            interp.run(program)

    def test_partial_output_survives(self, interp):
        with pytest.raises(EvaluationError) as info:
            interp.run('PRINT "before"\nPRINT "a" - 1\nPRINT "after"')
        assert interp.output.buffer == ['before']
        assert info.value.line_index == 1
        assert interp.halted

    def test_malformed_statement(self, interp):
        with pytest.raises(BasicSyntaxError) as info:
            interp.run('PRINT 1\nLET = 2')
        assert info.value.line_index == 1
        assert info.value.code == 'LET = 2'
        assert interp.output.buffer == ['1']

    def test_malformed_expression(self, interp):
        with pytest.raises(EvaluationError):
            interp.run('LET X = (1 + 2')

    def test_text_loop_bound(self, interp):
        with pytest.raises(EvaluationError):
            interp.run('FOR I = 1 TO "x"\nNEXT I')

    def test_step_limit(self):
        interp = BasicInterpreter(max_steps=50)
        with pytest.raises(StepLimitExceeded) as info:
            interp.run('WHILE 1\nWEND')
        assert info.value.line_index in (0, 1)

    def test_step_limit_not_hit(self):
        interp = BasicInterpreter(max_steps=100)
        interp.run('FOR I = 1 TO 3\nNEXT I')
        assert interp.steps == 4


class TestEnd:
    def test_end_stops_execution(self, run_program):
        interp = run_program('PRINT 1\nEND\nPRINT 2')
        assert interp.output.buffer == ['1']
        assert interp.halted
        assert interp.state == HALTED


class TestDisplay:
    def test_setpx_and_getpx_into_variable(self, run_program):
        interp = run_program('SETPX 1 2 255\nGETPX 1 2 P\nPRINT P')
        assert interp.output.buffer == ['255']
        assert interp.display.get_pixel(1, 2) == 255

    def test_getpx_prints_without_variable(self, run_program):
        interp = run_program('SETPX 0 0 7\nGETPX 0 0')
        assert interp.output.buffer == ['7']

    def test_expression_operands(self, run_program):
        interp = run_program('LET X = 2\nSETPX X (X + 1) (X * 100)')
        assert interp.display.get_pixel(2, 3) == 200

    def test_out_of_range_color_ignored(self, run_program):
        interp = run_program('SETPX 0 0 70000\nGETPX 0 0')
        assert interp.output.buffer == ['0']

    def test_out_of_bounds_ignored(self, run_program):
        interp = run_program('SETPX 40 0 1\nGETPX 40 0')
        assert interp.output.buffer == ['0']

    def test_custom_display(self):
        display = BasicDisplay(4, 4)
        interp = BasicInterpreter(display=display)
        interp.run('SETPX 3 3 9')
        assert display.pixels[3][3] == 9

    def test_text_coordinate_fails(self, interp):
        with pytest.raises(EvaluationError):
            interp.run('SETPX "a" 0 1')


class TestRunState:
    PROGRAM = 'LET A = 1\nPRINT A + 1\nFROB\nGOSUB X'

    def test_idempotent_on_fresh_instances(self):
        a, b = BasicInterpreter(), BasicInterpreter()
        a.run(self.PROGRAM)
        b.run(self.PROGRAM)
        assert a.output.buffer == b.output.buffer == ['2']
        assert a.errors == b.errors
        assert len(a.errors) == 2

    def test_rerun_resets_state(self, interp):
        interp.run(self.PROGRAM)
        interp.run()
        assert interp.output.buffer == ['2']
        assert len(interp.errors) == 2

    def test_run_replaces_previous_program(self, interp):
        interp.run('LET Z = 5\nPRINT Z')
        interp.run('PRINT Z')
        assert interp.output.buffer == ['0']
        assert 'Z' not in interp.variables

    def test_load_reports_registration_errors(self, interp):
        interp.load('SUB A\nSUB A')
        assert interp.state == NOT_STARTED
        assert [e.line_index for e in interp.errors] == [1]

    def test_evaluator_shares_the_store(self, interp):
        interp.run('LET S = "abc"')
        assert interp.evaluate('S + "!"') == text('abc!')

    def test_module_level_run(self):
        interp = run('PRINT 6 * 7')
        assert interp.output.buffer == ['42']
