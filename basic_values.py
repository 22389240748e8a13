# Runtime values and the variable store.
#
# A value is a tagged tuple, the same shape the parser IR uses:
#   ('NUM', float)   number
#   ('STR', str)     text

import math
from decimal import Decimal
from typing import Any, Dict, Tuple

Value = Tuple[str, Any]

NUM = 'NUM'
STR = 'STR'


def number(x) -> Value:
    return (NUM, float(x))


def text(s) -> Value:
    return (STR, str(s))


ZERO = number(0)
ONE = number(1)


def format_number(x: float) -> str:
    """
    Shortest text form of a number, JavaScript style.

    10.0 -> "10", 2.5 -> "2.5", 0.000001 -> "0.000001", 1e-7 -> "1e-7",
    1e21 -> "1e+21". Positional notation for 1e-6 <= |x| < 1e21.
    """
    if not math.isfinite(x):
        return repr(x)
    if x.is_integer() and abs(x) < 1e21:
        return str(int(x))
    s = repr(x)
    if 'e' not in s:
        return s
    if 1e-6 <= abs(x) < 1e21:
        return format(Decimal(s), 'f')
    mantissa, exponent = s.split('e')
    return f"{mantissa}e{int(exponent):+d}"


def to_text(v: Value) -> str:
    tag, payload = v
    if tag == NUM:
        return format_number(payload)
    return payload


def is_truthy(v: Value) -> bool:
    tag, payload = v
    if tag == NUM:
        return payload != 0
    return payload != ''


def from_python(x) -> Value:
    """Wrap a plain Python int/float/str as a tagged value."""
    if isinstance(x, tuple) and len(x) == 2 and x[0] in (NUM, STR):
        return x
    if isinstance(x, str):
        return text(x)
    return number(x)


class VariableStore:
    """
    Identifier -> value mapping.

    Names are case-sensitive as written. Reading a name that was never
    assigned yields ZERO; entries live for the whole run.
    """

    def __init__(self, initial=None):
        self._vars: Dict[str, Value] = {}
        if initial:
            for name, value in dict(initial).items():
                self.set(name, from_python(value))

    def get(self, name: str, default: Value = ZERO) -> Value:
        return self._vars.get(name, default)

    def set(self, name: str, value: Value):
        self._vars[name] = value

    def clear(self):
        self._vars.clear()

    def as_dict(self) -> Dict[str, Value]:
        return dict(self._vars)

    def __getitem__(self, name):
        return self.get(name)

    def __contains__(self, name):
        return name in self._vars

    def __len__(self):
        return len(self._vars)

    def __iter__(self):
        return iter(self._vars)

    def __repr__(self):
        return f"VariableStore({self._vars!r})"
