import pytest

from basic_evaluator import BasicEvaluator
from basic_interpreter import BasicInterpreter
from basic_values import VariableStore


@pytest.fixture
def store():
    return VariableStore()


@pytest.fixture
def evaluator(store):
    return BasicEvaluator(store)


@pytest.fixture
def interp():
    return BasicInterpreter()


@pytest.fixture
def run_program(interp):
    """Run program text and return the interpreter."""
    def _run(program):
        interp.run(program)
        return interp
    return _run
