"""Per-call metadata carried through a request context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

CONTEXT_MSG_KEY = "hellorpc.message"


@dataclass
class Message:
    """Service and method names that belong to one call."""

    service_name: str = ""
    method_name: str = ""


def get_message(ctx: Mapping[str, Any] | None) -> tuple[Mapping[str, Any], Message]:
    """Return ``(ctx, message)`` for a context.

    When the context already carries a Message it is returned as is, together
    with the same context. Otherwise a fresh Message is attached to a copy of
    the context, and that copy is returned with it.
    """
    if ctx is None:
        ctx = {}
    found = ctx.get(CONTEXT_MSG_KEY)
    if isinstance(found, Message):
        return ctx, found
    message = Message()
    return {**ctx, CONTEXT_MSG_KEY: message}, message