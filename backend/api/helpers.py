"""Shared helpers for API routes (response shaping, error bodies)."""

from errors import TallyError


def record_list(records: list) -> dict:
    """Build the list body used by every multi-record endpoint."""
    return {
        "records": [r.model_dump() for r in records],
        "count": len(records),
    }


def error_body(exc: TallyError) -> dict:
    return {"error": exc.code, "msg": exc.msg}
