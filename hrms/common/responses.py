"""Success envelope shared by every router."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


def success(data: Any = None, message: Optional[str] = None, **extra: Any) -> dict[str, Any]:
    """Build ``{"success": true, "message": ..., "data": ...}``.

    Pydantic models (or lists of them) are dumped in JSON mode so that
    UUIDs, dates and decimals serialise consistently.
    """
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = _dump(data)
    body.update({k: _dump(v) for k, v in extra.items()})
    return body


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_dump(v) for v in value]
    if isinstance(value, dict):
        return {k: _dump(v) for k, v in value.items()}
    return value
