"""
tsroutes exception hierarchy

Generation-time failures are raised, never swallowed: a malformed route set or an
unwritable output path aborts the whole run.
"""

from typing import Optional


class TsRoutesError(Exception):
    """Base class for all tsroutes exceptions."""

    def __init__(self, message: str, context: Optional[str] = None):
        if context:
            message = f"{context}: {message}"
        super().__init__(message)
        self.message = message
        self.context = context


class GenerationError(TsRoutesError, ValueError):
    """Route or type descriptors cannot be turned into valid client code."""


class OutputWriteError(TsRoutesError):
    """The generated module could not be written to its output path."""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path
