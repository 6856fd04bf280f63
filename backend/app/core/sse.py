"""Server-sent event helpers for streaming responses."""
from __future__ import annotations

import json
from typing import Any, AsyncGenerator, Iterable

from fastapi.responses import StreamingResponse

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(data: str, event: str | None = None) -> str:
    """Return a properly formatted SSE payload."""
    lines = []
    if event:
        lines.append(f"event: {event}")
    for chunk in data.splitlines() or [""]:
        lines.append(f"data: {chunk}")
    lines.append("\n")
    return "\n".join(lines)


def format_json_event(payload: dict[str, Any]) -> str:
    """Serialise ``payload`` as a single-line SSE data message."""

    return format_sse(json.dumps(payload, default=str))


def stream(iterable: Iterable[str] | AsyncGenerator[str, None]) -> StreamingResponse:
    """Create a streaming response for an iterable of SSE payloads."""

    async def iterator() -> AsyncGenerator[bytes, None]:
        if hasattr(iterable, "__aiter__"):
            async for item in iterable:  # type: ignore[union-attr]
                yield item.encode("utf-8")
        else:
            for item in iterable:  # type: ignore[union-attr]
                yield item.encode("utf-8")

    return StreamingResponse(iterator(), media_type="text/event-stream", headers=SSE_HEADERS)
