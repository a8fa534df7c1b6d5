"""Errors raised by the processing engine."""


class ProcessingError(Exception):
    """Base class for engine failures; recorded as task status ``error``."""


class AnalysisError(ProcessingError):
    """Frame extraction or dominant-color estimation failed."""


class TransformError(ProcessingError):
    """Color-key encoding failed or produced no output."""
