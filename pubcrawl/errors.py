from __future__ import annotations
from typing import Any, Dict, Optional


class PubCrawlError(Exception):
    """Base error; ``context`` is rendered into the message as ``key=value`` pairs."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = dict(context or {})
        super().__init__(message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({ctx})"


class NotFoundError(PubCrawlError):
    """Expected wrapper element or document is absent."""

    def __init__(self, message: str, identifier: Optional[str] = None):
        super().__init__(message, {"id": identifier} if identifier else None)
        self.identifier = identifier


class MalformedInputError(PubCrawlError):
    """Payload could not be parsed as markup at all."""


class SourceError(PubCrawlError):
    """An upstream fetch failed; wraps transport-layer exceptions."""

    def __init__(self, message: str, source: str, status: Optional[int] = None):
        ctx: Dict[str, Any] = {"source": source}
        if status is not None:
            ctx["status"] = status
        super().__init__(message, ctx)
        self.source = source
        self.status = status


class AggregateFailure(PubCrawlError):
    """Every branch of a multi-source operation failed or came back empty."""

    def __init__(self, message: str, reasons: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.reasons = dict(reasons or {})

    def __str__(self) -> str:
        if not self.reasons:
            return self.message
        detail = "; ".join(f"{k}: {v}" for k, v in self.reasons.items())
        return f"{self.message} [{detail}]"


class UnsupportedStyleError(PubCrawlError, ValueError):
    """Unknown citation style selector."""
