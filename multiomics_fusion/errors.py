"""
errors.py
---------
Exception hierarchy for the fusion / clustering pipeline.

Every failure is raised to the caller; nothing in the library retries or
recovers internally.

  InputValidationError   malformed input or configuration (fatal)
  DegenerateGraphError   numerically degenerate graph with no defined fallback
  ConvergenceError       defensive iteration cap exceeded (implementation bug)
"""


class FusionPipelineError(Exception):
    """Base class for all pipeline errors."""


class InputValidationError(FusionPipelineError, ValueError):
    """Mismatched samples, non-square matrices, NaN/Inf values, bad k."""


class DegenerateGraphError(FusionPipelineError, ValueError):
    """Graph cannot be normalised, e.g. a sample with zero degree."""


class ConvergenceError(FusionPipelineError, RuntimeError):
    """Raised when an iteration cap that should never bind is exceeded."""
