import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

# Context variable storing the correlation id for the current request or job
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def correlation_scope(rid: str) -> Iterator[str]:
    """
    Tag every log record emitted inside the block with rid.

    Used by queue workers so all lines of one ingestion job share its job id.
    """
    token = request_id_ctx.set(rid)
    try:
        yield rid
    finally:
        request_id_ctx.reset(token)
