import re

from basic_errors import TokenizeError

# =========================
# Tokenizer (expressions)
# =========================
# Order matters: two-character operators come before their one-character
# prefixes so '<=' is never split into '<' '='.
TOKEN_SPECIFICATION = [
    ('NUMBER',   r'\d+(?:\.\d*)?'),          # 12, 12., 12.5  (no sign, no exponent)
    ('STRING',   r'"[^"]*"'),                # closed by the first following quote
    ('IDENT',    r'[A-Za-z]+'),              # letters only
    ('OP',       r'<>|<=|>=|[-+*/=<>]'),
    ('LPAREN',   r'\('),
    ('RPAREN',   r'\)'),
    ('SKIP',     r'\s+'),
    ('MISMATCH', r'.'),
]

# ASCII only: Unicode digits and spaces fall through to MISMATCH.
TOKEN_REGEX = re.compile('|'.join('(?P<%s>%s)' % pair for pair in TOKEN_SPECIFICATION), re.ASCII)


class Token:
    def __init__(self, typ, val, pos=None):
        self.type = typ  # 'IDENT','NUMBER','STRING','OP','LPAREN','RPAREN'
        self.val = val
        self.pos = pos

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return self.type == other.type and self.val == other.val

    def __hash__(self):
        return hash((self.type, self.val))

    def __repr__(self):
        return f"Token({self.type},{self.val!r})"


def tokenize(expression):
    """Yield the tokens of one expression string, left to right."""
    for mo in TOKEN_REGEX.finditer(expression):
        kind = mo.lastgroup
        value = mo.group()
        if kind == 'SKIP':
            continue
        if kind == 'MISMATCH':
            if value == '"':
                raise TokenizeError(f"Unterminated string starting at offset {mo.start()}: {expression!r}")
            raise TokenizeError(f"Unexpected character {value!r} at offset {mo.start()}: {expression!r}")
        if kind == 'NUMBER':
            value = float(value)
        elif kind == 'STRING':
            value = value[1:-1]
        yield Token(kind, value, mo.start())
