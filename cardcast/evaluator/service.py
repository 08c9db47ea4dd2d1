"""Boolean predicates deciding whether a report is worth delivering.

Predicates are CEL expressions over one variable, ``report``, bound to the
fetch result (card title to list of rows). Two sentinels skip the compiler:
``[*]`` always passes and ``[!*]`` never does.

Usage
-----
>>> evaluator = Evaluator()
>>> await evaluator.evaluate({"sales": [{"total": 3}]}, 'size(report["sales"]) > 0')
True
>>> await evaluator.evaluate({}, "[!*]")
False

Examples of useful predicates::

    report["sheet1"].all(r, r["total"] != 0)
    size(report["sheet1"]) > 1
    report.map(k, report[k]).flatten().size() > 1

"""

from __future__ import annotations

import asyncio
import typing as typ

import celpy
from celpy import celtypes

from cardcast.common.lru import LRUCache
from cardcast.evaluator.errors import (
    EvaluationError,
    InvalidExpressionError,
    UnexpectedResultTypeError,
)
from cardcast.evaluator.functions import EXTRA_FUNCTIONS, to_cel
from cardcast.logging import get_logger, log_debug

if typ.TYPE_CHECKING:
    from cardcast.models import FetchResult

logger = get_logger(__name__)

ALWAYS = "[*]"
NEVER = "[!*]"
DEFAULT_CACHE_SIZE = 15
DEFAULT_TIMEOUT_S = 30.0


class Evaluator:
    """Compile, cache and run report predicates.

    Compiled programs are kept in an LRU keyed by expression text. A program
    holds no per-run state, so one cached program may be evaluated by several
    workers at once.

    Parameters
    ----------
    cache_size
        Capacity of the compiled-program LRU.
    timeout
        Seconds one evaluation may run before it is abandoned.

    """

    def __init__(
        self,
        *,
        cache_size: int = DEFAULT_CACHE_SIZE,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        """Build the CEL environment and an empty program cache."""
        self._env = celpy.Environment()
        self._programs: LRUCache[str, celpy.Runner] = LRUCache(cache_size)
        self._timeout = timeout

    @property
    def cached_programs(self) -> int:
        """Return the number of compiled programs currently cached."""
        return len(self._programs)

    async def evaluate(self, data: FetchResult, expression: str) -> bool:
        """Evaluate ``expression`` against ``data``.

        Returns
        -------
        bool
            The predicate's verdict.

        Raises
        ------
        InvalidExpressionError
            If the expression does not compile.
        UnexpectedResultTypeError
            If the expression does not produce a boolean.
        EvaluationError
            If evaluation fails or exceeds the timeout.

        """
        if expression == ALWAYS:
            return True
        if expression == NEVER:
            return False

        program = self._program(expression)
        try:
            activation = {"report": to_cel(data)}
        except TypeError as exc:
            raise EvaluationError.runtime(expression, str(exc)) from exc

        try:
            async with asyncio.timeout(self._timeout):
                result = await asyncio.to_thread(
                    self._run, program, activation, expression
                )
        except TimeoutError as exc:
            raise EvaluationError.timeout(expression, self._timeout) from exc

        if not isinstance(result, celtypes.BoolType):
            raise UnexpectedResultTypeError.for_value(expression, result)
        return bool(result)

    def _program(self, expression: str) -> celpy.Runner:
        cached = self._programs.get(expression)
        if cached is not None:
            log_debug(logger, "Predicate cache hit for %r", expression)
            return cached

        log_debug(logger, "Predicate cache miss for %r", expression)
        try:
            ast = self._env.compile(expression)
        except celpy.CELParseError as exc:
            raise InvalidExpressionError.from_parse(expression, str(exc)) from exc
        program = self._env.program(ast, functions=dict(EXTRA_FUNCTIONS))
        return self._programs.get_or_put(expression, program)

    @staticmethod
    def _run(
        program: celpy.Runner,
        activation: dict[str, celtypes.Value],
        expression: str,
    ) -> object:
        try:
            result = program.evaluate(activation)
        except celpy.CELEvalError as exc:
            raise EvaluationError.runtime(expression, str(exc)) from exc
        except Exception as exc:
            raise EvaluationError.runtime(
                expression, f"{type(exc).__name__}: {exc}"
            ) from exc
        if isinstance(result, celpy.CELEvalError):
            raise EvaluationError.runtime(expression, str(result))
        return result
