"""Per-request trace context shared by log lines, spans and tool handlers.

Each MCP tool call or HTTP request runs in its own asyncio task, so a
ContextVar keeps the ids and the bound tool name apart without locking.
"""

from __future__ import annotations

from contextvars import ContextVar
import re
from uuid import uuid4


trace_context: ContextVar[dict | None] = ContextVar("trace_context", default=None)

_TRACEPARENT_RE = re.compile(r"^[0-9a-f]{2}-([0-9a-f]{32})-([0-9a-f]{16})-[0-9a-f]{2}$")
_TRACE_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def generate_trace_id() -> str:
    return uuid4().hex


def generate_span_id() -> str:
    return uuid4().hex[:16]


def get_trace_context() -> dict:
    """Return the current trace context, creating one on first use."""
    ctx = trace_context.get()
    if ctx is None or not ctx.get("trace_id"):
        ctx = {"trace_id": generate_trace_id(), "span_id": generate_span_id()}
        trace_context.set(ctx)
    return ctx


def set_trace_context(trace_id: str, span_id: str, **extra: object) -> None:
    trace_context.set({"trace_id": trace_id, "span_id": span_id, **extra})


def bind_tool(tool: str) -> None:
    """Attach the active tool name so log lines and spans can be grouped per tool."""
    ctx = get_trace_context()
    trace_context.set({**ctx, "tool": tool})


def bound_tool() -> str | None:
    ctx = trace_context.get()
    return ctx.get("tool") if ctx else None


def update_span_id(span_id: str) -> None:
    ctx = trace_context.get() or {}
    trace_context.set({**ctx, "span_id": span_id})


def trace_id_from_headers(traceparent: str | None, trace_id: str | None) -> str | None:
    """Pick the caller's trace id from a W3C `traceparent` or a bare `x-trace-id`.

    Malformed and all-zero ids are ignored.
    """
    if traceparent:
        match = _TRACEPARENT_RE.match(traceparent.strip().lower())
        if match and set(match.group(1)) != {"0"}:
            return match.group(1)
    if trace_id:
        candidate = trace_id.strip().lower()
        if _TRACE_ID_RE.match(candidate) and set(candidate) != {"0"}:
            return candidate
    return None
