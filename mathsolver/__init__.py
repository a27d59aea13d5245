from mathsolver.arithmetic import ArithmeticFormat, ArithmeticMode, PrecisionUnit
from mathsolver.config import SolverConfig
from mathsolver.errors import (ConfigError
                               , EvalError
                               , FormatConfigError
                               , MathSolverError
                               , ParseError
                               , SourcePosition)
from mathsolver.evaluator import (CalculationStep
                                  , Evaluator
                                  , StepEvaluator
                                  , StepResult
                                  , evaluate
                                  , evaluate_with_steps)
from mathsolver.lexer import Token, Tokenizer, tokenize
from mathsolver.parser import Parser, parse
from mathsolver.solver import CalculationResult, MathSolver
from mathsolver.utils.print_utils import format_expression


def validate(text: str) -> bool:
    """Return True if *text* parses; never raises ``ParseError``."""
    try:
        parse(text)
    except ParseError:
        return False
    return True


__version__ = "0.1.0"
