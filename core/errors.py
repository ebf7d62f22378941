"""Pipeline error taxonomy.

Only ServiceUnavailable escapes Orchestrator.generate. Everything else is
caught and folded into the GenerationResult warnings/errors.
"""


class AutocoderError(Exception):
    """Base class for pipeline errors."""


class ServiceUnavailable(AutocoderError):
    """A required collaborator is missing entirely. Fatal, never retried."""


class GenerationTimeout(AutocoderError):
    """The whole-run budget expired. Recovered through the chunked fallback."""


class ValidationFailure(AutocoderError):
    """One or more gate checks failed. Retried up to max_iterations."""

    def __init__(self, validation):
        failed = ", ".join(c.check for c in validation.failed_checks)
        super().__init__(f"Validation failed: {failed}")
        self.validation = validation


class SandboxExecutionError(AutocoderError):
    """A single sandbox command could not run. Recorded as a failed check."""


class MaxIterationsExceeded(AutocoderError):
    """The loop ran out of iterations without passing the gate."""

    def __init__(self, iterations, validation=None):
        super().__init__(f"Validation did not pass after {iterations} iteration(s)")
        self.iterations = iterations
        self.validation = validation
