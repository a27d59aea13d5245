import pytest

from mathsolver.lexer import Tokenizer, tokenize


def kinds(text: str) -> list[str]:
    """Helper function that returns the token kinds of *text*, END included."""
    return [tok.kind for tok in tokenize(text)]


@pytest.mark.parametrize("text, expected", [
    ("2 + 3 * 4", ["NUMBER", "PLUS", "NUMBER", "TIMES", "NUMBER", "END"]),
    ("x ^ 2!", ["VARIABLE", "POWER", "NUMBER", "FACTORIAL", "END"]),
    ("sin(pi)", ["FUNCTION", "LPAREN", "CONSTANT", "RPAREN", "END"]),
    ("f(a, b) = c", ["VARIABLE", "LPAREN", "VARIABLE", "COMMA", "VARIABLE", "RPAREN",
                     "EQUALS", "VARIABLE", "END"]),
    ("\\sqrt[3]{x}", ["COMMAND", "LBRACKET", "NUMBER", "RBRACKET", "LBRACE", "VARIABLE",
                      "RBRACE", "END"]),
    ("\\sum_{i=1}^{5}", ["COMMAND", "UNDERSCORE", "LBRACE", "VARIABLE", "EQUALS", "NUMBER",
                         "RBRACE", "POWER", "LBRACE", "NUMBER", "RBRACE", "END"]),
    ("", ["END"]),
    ("   \t ", ["END"]),
])
def test_token_kinds(text, expected):
    assert kinds(text) == expected


@pytest.mark.parametrize("literal", ["42", "3.14", ".5", "5.", "007"])
def test_decimal_literals(literal):
    tokens = tokenize(literal)
    assert tokens[0].kind == "NUMBER"
    assert tokens[0].text == literal
    assert tokens[1].kind == "END"


def test_number_with_two_points_splits():
    # "1.2.3" is "1.2" followed by ".3"
    assert [(t.kind, t.text) for t in tokenize("1.2.3")[:2]] == [("NUMBER", "1.2"), ("NUMBER", ".3")]


class TestIdentifiers:
    @pytest.mark.parametrize("name", ["PI", "Pi", "phi", "π", "φ"])
    def test_constants(self, name):
        tok = tokenize(name)[0]
        assert tok.kind == "CONSTANT"
        assert tok.text in ("pi", "phi")

    @pytest.mark.parametrize("name", ["sin", "COS", "Tan", "log", "ln", "sqrt"])
    def test_functions_are_case_folded(self, name):
        tok = tokenize(name)[0]
        assert tok.kind == "FUNCTION"
        assert tok.text == name.lower()

    @pytest.mark.parametrize("name", ["x", "Total", "rate_2", "e", "sine"])
    def test_variables(self, name):
        tok = tokenize(name)[0]
        assert tok.kind == "VARIABLE"
        assert tok.text == name.lower()


class TestCommands:
    def test_backslash_is_stripped(self):
        tok = tokenize("\\frac")[0]
        assert (tok.kind, tok.text) == ("COMMAND", "frac")

    def test_lone_backslash_is_none(self):
        tok = tokenize("\\ 1")[0]
        assert (tok.kind, tok.text) == ("NONE", "\\")


class TestUnknownCharacters:
    @pytest.mark.parametrize("char", ["$", "#", "&", "@", "?"])
    def test_unknown_character_yields_none(self, char):
        tokens = tokenize(f"1 {char} 2")
        assert [t.kind for t in tokens] == ["NUMBER", "NONE", "NUMBER", "END"]
        assert tokens[1].text == char


class TestPositions:
    def test_offsets_and_columns(self):
        tokens = tokenize("12 + x")
        assert [(t.position.start, t.position.end) for t in tokens[:3]] == [(0, 2), (3, 4), (5, 6)]
        assert [t.position.column for t in tokens[:3]] == [1, 4, 6]
        assert all(t.position.line == 1 for t in tokens)

    def test_newlines_advance_line_and_reset_column(self):
        tokens = tokenize("1 +\n  2")
        two = tokens[2]
        assert two.text == "2"
        assert two.position.line == 2
        assert two.position.column == 3

    def test_end_token_sits_at_end_of_input(self):
        end = tokenize("1 + 2")[-1]
        assert end.position.start == end.position.end == 5


class TestTokenizer:
    def test_end_is_repeated_after_exhaustion(self):
        tz = Tokenizer("7")
        assert tz.next_token().kind == "NUMBER"
        assert tz.next_token().kind == "END"
        assert tz.next_token().kind == "END"

    def test_tokenizers_are_independent(self):
        first = Tokenizer("1 + 2")
        second = Tokenizer("x")
        first.next_token()
        assert second.next_token().text == "x"
        assert first.next_token().kind == "PLUS"
