"""
AdOps error hierarchy for clear classification in logs and API responses.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AdOpsError(Exception):
    """Base class for all AdOps Analytics errors."""

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.source = source
        self.details = details or {}

    def as_dict(self) -> Dict[str, Any]:
        """Serializable representation for logs/API."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "source": self.source,
            "details": self.details,
        }


class FetchOperationError(AdOpsError):
    """A fetch operation failed: network, HTTP status or decoding."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.url = url
        self.status_code = status_code
        if url is not None:
            self.details["url"] = url
        if status_code is not None:
            self.details["status_code"] = status_code

    @classmethod
    def wrap(cls, exc: BaseException, *, source: Optional[str] = None) -> "FetchOperationError":
        """Return ``exc`` unchanged if already wrapped, else a chained wrapper."""
        if isinstance(exc, FetchOperationError):
            return exc
        wrapped = cls(str(exc) or exc.__class__.__name__, source=source)
        wrapped.details["cause"] = exc.__class__.__name__
        wrapped.__cause__ = exc
        return wrapped


class ConfigError(AdOpsError):
    """Raised on missing/invalid configuration values."""

    def __init__(
        self,
        message: str,
        *,
        key: Optional[str] = None,
        section: Optional[str] = None,
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.key = key
        self.section = section
        if key is not None:
            self.details["key"] = key
        if section is not None:
            self.details["section"] = section
