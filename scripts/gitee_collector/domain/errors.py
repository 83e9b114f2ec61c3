"""
Domain Layer — Errors
---------------------
Every collector-specific exception inherits from CollectorError, so the
orchestrator can turn any per-target failure into a dropped outcome with a
single except clause, while the service lets CacheWriteFailed abort the run.
"""

from __future__ import annotations


class CollectorError(Exception):
    """Base exception for all collector errors."""


class InvalidTargetError(CollectorError):
    """The URL is not a https://gitee.com/<owner>/<repo> repository URL."""


class NoCredentialsError(CollectorError):
    """No client handle is available for a live fetch."""


class UpstreamRequestFailed(CollectorError):
    """A sub-query returned a non-success status or never got a response."""

    def __init__(self, message: str = "", *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResponseParseFailed(CollectorError):
    """A response body or pagination header did not have the expected shape."""


class CacheReadFailed(CollectorError):
    """The cache store could not be read. Never fatal."""


class CacheWriteFailed(CollectorError):
    """The collected mapping could not be serialized or written. Fatal."""
