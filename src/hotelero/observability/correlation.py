"""Correlation ID propagation for request tracing.

The id lives in a ContextVar so it follows the request through sync route
handlers (threadpool) and into every log line.
"""

import uuid
from contextvars import ContextVar, Token

CORRELATION_ID_HEADER = "X-Correlation-ID"

_correlation_id: ContextVar[str] = ContextVar("hotelero_correlation_id", default="")


def new_correlation_id() -> str:
    return str(uuid.uuid4())


def get_correlation_id() -> str:
    """Current correlation ID, or empty string outside a request."""
    return _correlation_id.get()


def bind_correlation_id(cid: str) -> Token[str]:
    return _correlation_id.set(cid)


def unbind_correlation_id(token: Token[str]) -> None:
    _correlation_id.reset(token)
