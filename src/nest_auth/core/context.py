"""Request-scoped context passed explicitly to components that log."""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any


class ContextLoggerAdapter(logging.LoggerAdapter):
    """Adds the request context to every record, keeping per-call extras."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


@dataclass
class RequestContext:
    """Per-request trace data.

    Created by the request logging middleware and stored on
    ``request.state.context``; services receive it as an argument instead of
    reading a process-wide "current trace id".
    """

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    method: str | None = None
    path: str | None = None
    client_ip: str | None = None
    user_id: str | None = None

    def log_extra(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "user_id": self.user_id,
        }

    def logger(self, name: str) -> ContextLoggerAdapter:
        """Return a logger that tags every record with this context."""
        return ContextLoggerAdapter(logging.getLogger(name), self.log_extra())


def get_logger(name: str, context: RequestContext | None = None) -> logging.Logger | logging.LoggerAdapter:
    if context is None:
        return logging.getLogger(name)
    return context.logger(name)
