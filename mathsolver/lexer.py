from __future__ import annotations

from typing import NamedTuple

import ply.lex as lex

from mathsolver.errors import SourcePosition

tokens = (
    "NUMBER", "VARIABLE", "CONSTANT", "FUNCTION",
    "PLUS", "MINUS", "TIMES", "DIVIDE", "POWER", "FACTORIAL",
    "COMMA", "EQUALS",
    "LPAREN", "RPAREN",
    "LBRACE", "RBRACE",
    "LBRACKET", "RBRACKET",
    "UNDERSCORE",
    "COMMAND",
    "NONE", "END",
)

CONSTANT_NAMES = frozenset({"pi", "phi"})
FUNCTION_NAMES = frozenset({"sin", "cos", "tan", "log", "ln", "sqrt"})

t_PLUS       = r"\+"
t_MINUS      = r"-"
t_TIMES      = r"\*"
t_DIVIDE     = r"/"
t_POWER      = r"\^"
t_FACTORIAL  = r"!"
t_COMMA      = r","
t_EQUALS     = r"="
t_LPAREN     = r"\("
t_RPAREN     = r"\)"
t_LBRACE     = r"\{"
t_RBRACE     = r"\}"
t_LBRACKET   = r"\["
t_RBRACKET   = r"\]"
t_UNDERSCORE = r"_"

t_ignore = " \t\r\f\v"


def t_newline(t):
    r"\n+"
    t.lexer.lineno += len(t.value)


def t_COMMAND(t):
    r"\\[a-zA-Z]+"
    # Strip the backslash; handlers are keyed by bare name
    t.value = t.value[1:]
    return t


def t_NUMBER(t):
    r"\d+\.?\d*|\.\d+"
    return t


def t_GREEK(t):
    r"π|φ"
    t.value = "pi" if t.value == "π" else "phi"
    t.type = "CONSTANT"
    return t


def t_IDENTIFIER(t):
    r"[a-zA-Z][a-zA-Z0-9_]*"
    t.value = t.value.lower()
    if t.value in CONSTANT_NAMES:
        t.type = "CONSTANT"
    elif t.value in FUNCTION_NAMES:
        t.type = "FUNCTION"
    else:
        t.type = "VARIABLE"
    return t


def t_error(t):
    # Unknown characters become NONE tokens; the parser reports them
    t.type = "NONE"
    t.value = t.value[0]
    t.lexer.skip(1)
    return t


_raw_lexer = lex.lex()


class Token(NamedTuple):
    """A single lexical token: kind, literal text and source span."""

    kind: str
    text: str
    position: SourcePosition


def find_column(data: str, lexpos: int) -> int:
    """Return the 1-based column of offset *lexpos* in *data*."""
    line_start = data.rfind("\n", 0, lexpos) + 1
    return (lexpos - line_start) + 1


class Tokenizer:
    """Pull-based tokenizer over a single input string.

    Wraps a clone of the module-level ply lexer so several tokenizers can
    be alive at once, and converts ply's ``LexToken`` objects into
    immutable :class:`Token` tuples with full source positions.  After
    the input is exhausted every call returns an ``END`` token.

    Examples
    --------
    >>> from mathsolver.lexer import Tokenizer
    >>> tz = Tokenizer("2 + x")
    >>> [tz.next_token().kind for _ in range(4)]
    ['NUMBER', 'PLUS', 'VARIABLE', 'END']
    """

    def __init__(self, text: str) -> None:
        self.text = text or ""
        self.lexer = _raw_lexer.clone()
        self.lexer.lineno = 1
        self.lexer.input(self.text)

    def next_token(self) -> Token:
        tok = self.lexer.token()
        if tok is None:
            end = len(self.text)
            position = SourcePosition(end, end, self.lexer.lineno, find_column(self.text, end))
            return Token("END", "", position)

        # ply reports lexpos after skipping, so the span ends at the lexer cursor
        start = tok.lexpos
        end = self.lexer.lexpos
        position = SourcePosition(start, end, tok.lineno, find_column(self.text, start))
        return Token(tok.type, tok.value, position)


def tokenize(text: str) -> list[Token]:
    """Return every token of *text*, ending with the ``END`` token.

    Parameters
    ----------
    text : str
        Expression source.

    Returns
    -------
    list[Token]
        Tokens in source order; the last element has kind ``"END"``.

    Examples
    --------
    >>> from mathsolver.lexer import tokenize
    >>> [(t.kind, t.text) for t in tokenize("\\\\frac{1}{2}")]
    [('COMMAND', 'frac'), ('LBRACE', '{'), ('NUMBER', '1'), ('RBRACE', '}'), ('LBRACE', '{'), ('NUMBER', '2'), ('RBRACE', '}'), ('END', '')]
    """
    tokenizer = Tokenizer(text)
    result = []
    while True:
        tok = tokenizer.next_token()
        result.append(tok)
        if tok.kind == "END":
            return result
