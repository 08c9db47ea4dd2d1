"""Report generation workers.

Public API
----------
Generator, GeneratorDependencies
    Worker pool running collect, evaluate, export and deliver per job.
JobOutcome
    How one job ended.
GenerationEventLogger, GenerationEventType
    Structured lifecycle events.
NoTargetsError
    Raised when no recipient of a report resolves.

"""

from cardcast.generator.errors import GenerationError, NoTargetsError
from cardcast.generator.observability import (
    GenerationEventLogger,
    GenerationEventType,
)
from cardcast.generator.service import Generator, GeneratorDependencies, JobOutcome

__all__ = [
    "GenerationError",
    "GenerationEventLogger",
    "GenerationEventType",
    "Generator",
    "GeneratorDependencies",
    "JobOutcome",
    "NoTargetsError",
]
