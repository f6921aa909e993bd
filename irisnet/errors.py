"""
Error taxonomy for the pipeline.

Everything except ConvergenceFailure is fatal to a run. ConvergenceFailure
is raised by a trainer and may be tolerated per fold by the
cross-validation runner.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class EncodingError(PipelineError, ValueError):
    """Bad or unseen label, or a feature column that cannot be normalized."""


class InvalidFoldCount(PipelineError, ValueError):
    """k is outside [2, n]."""


class InvalidSplitFraction(PipelineError, ValueError):
    """Train fraction leaves the train or test side empty."""


class ConvergenceFailure(PipelineError, RuntimeError):
    """The trainer did not reach its threshold within the step budget."""

    def __init__(self, message: str, n_steps: int | None = None):
        super().__init__(message)
        self.n_steps = n_steps


class ShapeMismatch(PipelineError, ValueError):
    """Score and target matrices disagree in shape (a wiring bug)."""
