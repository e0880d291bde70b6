"""Handler outcome types.

Tool handlers return loosely-shaped payloads (``dict`` or a JSON string). The
approval manager never inspects those ad hoc; it first classifies the payload
into exactly one of three tagged outcomes:

- ``HandlerSuccess``: the operation completed.
- ``HandlerPartialSuccess``: a batch operation where only some items completed.
  This is still a terminal *success* for the proposal.
- ``HandlerFailure``: the handler raised, or returned an ``error`` without a
  ``partialSuccess`` marker.

``HandlerOutcome`` is a discriminated union on ``kind`` so it can also be
validated from serialized data.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from .base import BaseSchema


class HandlerSuccess(BaseSchema):
    kind: Literal["success"] = "success"
    payload: Dict[str, Any] = Field(default_factory=dict)
    result_url: Optional[str] = None


class HandlerPartialSuccess(BaseSchema):
    kind: Literal["partial_success"] = "partial_success"
    payload: Dict[str, Any] = Field(default_factory=dict)
    result_url: Optional[str] = None


class HandlerFailure(BaseSchema):
    kind: Literal["failure"] = "failure"
    error: str


HandlerOutcome = Annotated[
    Union[HandlerSuccess, HandlerPartialSuccess, HandlerFailure],
    Field(discriminator="kind"),
]

handler_outcome_adapter: TypeAdapter[HandlerOutcome] = TypeAdapter(HandlerOutcome)


def _as_payload(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            return {"result": raw}
        return decoded if isinstance(decoded, dict) else {"result": decoded}
    if raw is None:
        return {}
    return {"result": raw}


def _result_url(payload: Dict[str, Any]) -> Optional[str]:
    url = payload.get("url") or payload.get("resultUrl")
    return str(url) if url else None


def classify_handler_result(raw: Any) -> HandlerOutcome:
    """Classify a raw handler return value into a ``HandlerOutcome``.

    Args:
        raw: The value returned by a tool handler.

    Returns:
        The matching tagged outcome.
    """
    payload = _as_payload(raw)
    if payload.get("partialSuccess"):
        return HandlerPartialSuccess(payload=payload, result_url=_result_url(payload))
    if payload.get("error"):
        return HandlerFailure(error=str(payload["error"]))
    return HandlerSuccess(payload=payload, result_url=_result_url(payload))
