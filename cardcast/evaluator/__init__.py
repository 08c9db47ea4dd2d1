"""Report predicate evaluation.

Public API
----------
Evaluator
    Compiles and caches CEL predicates over fetch results.
ALWAYS, NEVER
    Sentinel expressions that bypass the compiler.
InvalidExpressionError, UnexpectedResultTypeError, EvaluationError
    The evaluation error kinds.

"""

from cardcast.evaluator.errors import (
    EvaluationError,
    EvaluatorError,
    InvalidExpressionError,
    UnexpectedResultTypeError,
)
from cardcast.evaluator.service import (
    ALWAYS,
    DEFAULT_CACHE_SIZE,
    NEVER,
    Evaluator,
)

__all__ = [
    "ALWAYS",
    "DEFAULT_CACHE_SIZE",
    "NEVER",
    "EvaluationError",
    "Evaluator",
    "EvaluatorError",
    "InvalidExpressionError",
    "UnexpectedResultTypeError",
]
