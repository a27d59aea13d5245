from __future__ import annotations

from decimal import Decimal
from typing import Callable, NamedTuple

from mathsolver.errors import ParseError
from mathsolver.lexer import Token, Tokenizer
from mathsolver.runtime import lookup_constant
from mathsolver.utils.ast_utils import (BinaryOp
                                        , Node
                                        , make_binary
                                        , make_factorial
                                        , make_function
                                        , make_iterator
                                        , make_number
                                        , make_parenthesis
                                        , make_variable
                                        , span)

CommandHandler = Callable[[Token], Node]

# LaTeX commands that act as infix multiplication inside a term
MULTIPLY_COMMANDS = frozenset({"cdot", "times"})


class IterationRange(NamedTuple):
    variable: str
    start: Node


class Parser:
    """Recursive-descent parser for infix and LaTeX expressions.

    Grammar, lowest to highest precedence::

        expression := term (('+' | '-') term)*
        term       := factor (('*' | '/' | \\cdot | \\times) factor)*
        factor     := postfix ('^' factor)?
        postfix    := primary '!'*
        primary    := NUMBER | VARIABLE | CONSTANT
                    | FUNCTION '(' args ')' | FUNCTION '{' expression '}'
                    | '(' expression ')' | '{' expression '}'
                    | COMMAND | '-' factor

    LaTeX commands are dispatched through ``self.commands``, a table from
    lower-cased command name to a handler that receives the command token
    (already consumed) and returns the parsed node.  Handlers can be added
    or replaced with :meth:`register_command`.

    Parameters
    ----------
    text : str
        Expression source.

    Examples
    --------
    >>> from mathsolver.parser import Parser
    >>> Parser("2 ^ 3 ^ 2").parse().tag
    'pow'
    """

    def __init__(self, text: str) -> None:
        self.tokenizer = Tokenizer(text)
        self.current: Token = self.tokenizer.next_token()
        self.commands: dict[str, CommandHandler] = {
            "frac": self.parse_frac,
            "sqrt": self.parse_sqrt,
            "sum": lambda tok: self.parse_iterator("sum", tok),
            "prod": lambda tok: self.parse_iterator("prod", tok),
            "sin": lambda tok: self.parse_function_command("sin", tok),
            "cos": lambda tok: self.parse_function_command("cos", tok),
            "tan": lambda tok: self.parse_function_command("tan", tok),
            "log": lambda tok: self.parse_function_command("log", tok),
            "ln": lambda tok: self.parse_function_command("ln", tok),
            "pi": lambda tok: make_variable("pi", tok.position),
            "phi": lambda tok: make_variable("phi", tok.position),
        }

    def register_command(self, name: str, handler: CommandHandler) -> None:
        """Add or replace the handler for ``\\name``."""
        if handler is None:
            raise ValueError("handler must not be None")
        self.commands[name.lower()] = handler

    # Cursor
    def advance(self) -> Token:
        """Consume the current token and return it."""
        tok = self.current
        self.current = self.tokenizer.next_token()
        return tok

    def expect(self, kind: str, message: str) -> Token:
        if self.current.kind != kind:
            raise ParseError(message, self.current.position)
        return self.advance()

    # Grammar
    def parse(self) -> Node:
        node = self.parse_expression()
        if self.current.kind == "NONE":
            raise ParseError(f"Unexpected character '{self.current.text}'", self.current.position)
        if self.current.kind != "END":
            raise ParseError(f"Unexpected token '{self.current.text}'", self.current.position)
        return node

    def parse_expression(self) -> Node:
        left = self.parse_term()
        while self.current.kind in ("PLUS", "MINUS"):
            op = self.advance()
            right = self.parse_term()
            tag = "add" if op.kind == "PLUS" else "sub"
            left = make_binary(tag, left, right, op.position)
        return left

    def parse_term(self) -> Node:
        left = self.parse_factor()
        while self._at_multiplicative():
            op = self.advance()
            right = self.parse_factor()
            tag = "div" if op.kind == "DIVIDE" else "mul"
            left = make_binary(tag, left, right, op.position)
        return left

    def _at_multiplicative(self) -> bool:
        tok = self.current
        if tok.kind in ("TIMES", "DIVIDE"):
            return True
        return tok.kind == "COMMAND" and tok.text.lower() in MULTIPLY_COMMANDS

    def parse_factor(self) -> Node:
        base = self.parse_postfix()
        if self.current.kind == "POWER":
            op = self.advance()
            exponent = self.parse_factor()  # right-associative
            return make_binary("pow", base, exponent, op.position)
        return base

    def parse_postfix(self) -> Node:
        node = self.parse_primary()
        while self.current.kind == "FACTORIAL":
            bang = self.advance()
            node = make_factorial(node, span(node.position, bang.position, bang.position))
        return node

    def parse_primary(self) -> Node:
        tok = self.current

        if tok.kind == "NUMBER":
            self.advance()
            return make_number(Decimal(tok.text), tok.position)

        if tok.kind in ("VARIABLE", "CONSTANT"):
            self.advance()
            return make_variable(tok.text, tok.position)

        if tok.kind == "FUNCTION":
            return self.parse_function_call()

        if tok.kind == "LPAREN":
            self.advance()
            inner = self.parse_expression()
            close = self.expect("RPAREN", "Expected closing parenthesis ')'")
            return make_parenthesis(inner, span(tok.position, close.position, tok.position))

        if tok.kind == "LBRACE":
            # LaTeX group: braces only delimit, they add no node
            return self.parse_braced_expression()

        if tok.kind == "COMMAND":
            return self.parse_command()

        if tok.kind == "MINUS":
            self.advance()
            operand = self.parse_factor()
            zero = make_number(0, tok.position)
            return make_binary("sub", zero, operand, tok.position)

        if tok.kind == "END":
            raise ParseError("Unexpected end of expression", tok.position)
        if tok.kind == "NONE":
            raise ParseError(f"Unexpected character '{tok.text}'", tok.position)
        raise ParseError(f"Unexpected token '{tok.text}'", tok.position)

    def parse_function_call(self) -> Node:
        name_tok = self.advance()
        if self.current.kind == "LBRACE":
            arg = self.parse_braced_expression()
            return make_function(name_tok.text, [arg], span(name_tok.position, arg.position, name_tok.position))

        self.expect("LPAREN", f"Expected '(' after function '{name_tok.text}'")
        args = [self.parse_expression()]
        while self.current.kind == "COMMA":
            self.advance()
            args.append(self.parse_expression())
        close = self.expect("RPAREN", f"Expected ')' after arguments of '{name_tok.text}'")
        return make_function(name_tok.text, args, span(name_tok.position, close.position, name_tok.position))

    def parse_braced_expression(self) -> Node:
        self.expect("LBRACE", "Expected '{'")
        node = self.parse_expression()
        self.expect("RBRACE", "Expected '}'")
        return node

    def parse_braced_or_primary(self) -> Node:
        if self.current.kind == "LBRACE":
            return self.parse_braced_expression()
        return self.parse_primary()

    # LaTeX commands
    def parse_command(self) -> Node:
        tok = self.advance()
        name = tok.text.lower()
        if name in MULTIPLY_COMMANDS:
            raise ParseError(f"Missing left operand for '\\{tok.text}'", tok.position)
        handler = self.commands.get(name)
        if handler is None:
            raise ParseError(f"Unsupported LaTeX command: \\{tok.text}", tok.position)
        return handler(tok)

    def parse_frac(self, command: Token) -> Node:
        if self.current.kind != "LBRACE":
            raise ParseError("Expected '{' after \\frac", self.current.position)
        self.advance()
        numerator = self.parse_expression()
        self.expect("RBRACE", "Expected '}' after numerator in \\frac")
        if self.current.kind != "LBRACE":
            raise ParseError("Expected '{' for denominator in \\frac", self.current.position)
        self.advance()
        denominator = self.parse_expression()
        close = self.expect("RBRACE", "Expected '}' after denominator in \\frac")
        return BinaryOp("div", numerator, denominator,
                        span(command.position, close.position, command.position))

    def parse_sqrt(self, command: Token) -> Node:
        order = None
        if self.current.kind == "LBRACKET":
            self.advance()
            order = self.parse_expression()
            self.expect("RBRACKET", "Expected ']' after root order in \\sqrt")

        radicand = self.parse_braced_expression()
        position = span(command.position, radicand.position, command.position)
        if order is None:
            return make_function("sqrt", [radicand], position)

        # \sqrt[n]{x} is x ^ (1 / n)
        one = make_number(1, order.position)
        reciprocal = BinaryOp("div", one, order, order.position)
        return BinaryOp("pow", radicand, reciprocal, position)

    def parse_function_command(self, name: str, command: Token) -> Node:
        arg = self.parse_braced_or_primary()
        return make_function(name, [arg], span(command.position, arg.position, command.position))

    def parse_iterator(self, tag: str, command: Token) -> Node:
        label = "\\" + command.text
        if self.current.kind != "UNDERSCORE":
            raise ParseError(f"Expected '_' after {label}", self.current.position)
        self.advance()
        bounds = self.parse_iteration_range()

        if self.current.kind != "POWER":
            raise ParseError(f"Expected '^' after lower bound in {label}", self.current.position)
        self.advance()
        upper = self.parse_braced_or_primary()
        body = self.parse_braced_or_primary()
        return make_iterator(tag, bounds.variable, bounds.start, upper, body,
                             span(command.position, body.position, command.position))

    def parse_iteration_range(self) -> IterationRange:
        if self.current.kind == "LBRACE":
            self.advance()
            bounds = self.parse_iteration_range_content(braced=True)
            self.expect("RBRACE", "Expected '}' after iteration range")
            return bounds
        return self.parse_iteration_range_content(braced=False)

    def parse_iteration_range_content(self, braced: bool) -> IterationRange:
        if self.current.kind != "VARIABLE":
            raise ParseError("Expected variable name in iteration range", self.current.position)
        if lookup_constant(self.current.text) is not None:
            # constants take precedence over variables in every lookup
            raise ParseError(f"Cannot use constant '{self.current.text}' as iteration variable",
                             self.current.position)
        variable = self.advance().text
        self.expect("EQUALS", "Expected '=' after variable in iteration range")
        start = self.parse_expression() if braced else self.parse_primary()
        return IterationRange(variable, start)


def parse(text: str) -> Node:
    """Parse *text* into an AST.

    Parameters
    ----------
    text : str
        Infix or LaTeX expression, e.g. ``"2 + 3 * 4"`` or
        ``"\\frac{1}{2}"``.

    Returns
    -------
    Node
        Root of the tree.

    Raises
    ------
    ParseError
        On any grammar mismatch or leftover input.

    Examples
    --------
    >>> from mathsolver.parser import parse
    >>> parse("1 / 0").tag
    'div'
    """
    return Parser(text).parse()
