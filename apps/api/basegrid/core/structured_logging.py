"""Log context helpers.

Only identifiers go into log records: never names, e-mails, summaries or
cell values.
"""

from typing import Any

from fastapi import Request

CONTEXT_KEYS = ("user_id", "base_id", "request_id", "route", "method")


def build_log_context(**values: Any) -> dict[str, Any]:
    """Dict for ``extra=`` with the known keys that have a value."""
    unknown = set(values) - set(CONTEXT_KEYS)
    if unknown:
        raise TypeError(f"Unsupported log context keys: {', '.join(sorted(unknown))}")
    return {key: values[key] for key in CONTEXT_KEYS if values.get(key)}


def request_log_context(request: Request, *, user_id: int | None = None) -> dict[str, Any]:
    """Context for a request: its id, route, method and the base in the path."""
    raw_base_id = str(request.path_params.get("base_id") or "")
    return build_log_context(
        user_id=user_id,
        base_id=int(raw_base_id) if raw_base_id.isdigit() else None,
        request_id=getattr(request.state, "request_id", None),
        route=request.url.path,
        method=request.method,
    )
