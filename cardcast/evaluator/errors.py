"""Errors raised while evaluating report predicates."""

from __future__ import annotations


class EvaluatorError(Exception):
    """Base class for predicate evaluation errors."""

    def __init__(self, message: str, *, expression: str) -> None:
        """Initialise with a message and the offending expression."""
        self.expression = expression
        super().__init__(message)


class InvalidExpressionError(EvaluatorError):
    """Raised when a predicate does not compile."""

    @classmethod
    def from_parse(cls, expression: str, detail: str) -> InvalidExpressionError:
        """Create an error from the compiler's diagnostic."""
        return cls(
            f"predicate {expression!r} does not compile: {detail}",
            expression=expression,
        )


class UnexpectedResultTypeError(EvaluatorError):
    """Raised when a predicate evaluates to something other than a boolean."""

    @classmethod
    def for_value(cls, expression: str, value: object) -> UnexpectedResultTypeError:
        """Create an error naming the type the predicate produced."""
        return cls(
            f"predicate {expression!r} produced {type(value).__name__}, "
            "expected bool",
            expression=expression,
        )


class EvaluationError(EvaluatorError):
    """Raised when a compiled predicate fails at runtime."""

    @classmethod
    def runtime(cls, expression: str, detail: str) -> EvaluationError:
        """Create an error for a failure inside the interpreter."""
        return cls(
            f"predicate {expression!r} failed: {detail}",
            expression=expression,
        )

    @classmethod
    def timeout(cls, expression: str, seconds: float) -> EvaluationError:
        """Create an error for an evaluation that exceeded its budget."""
        return cls(
            f"predicate {expression!r} did not finish within {seconds:.1f}s",
            expression=expression,
        )
