"""Shared model configuration for wire-format schemas.

The web client speaks camelCase JSON (``solutionSteps``, ``createdAt``).
WireModel exposes snake_case attributes in Python, accepts either spelling on
input and serializes with the camelCase aliases.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model using camelCase aliases on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def new_id() -> str:
    """Generate a random identifier for records created without one."""
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(v: Any) -> Any:
    """Attach UTC to naive datetimes; leave other values for pydantic to parse."""
    if isinstance(v, datetime) and v.tzinfo is None:
        return v.replace(tzinfo=UTC)
    return v


def coerce_str_list(v: Any) -> list[str]:
    """Coerce a loosely-typed value into a list of non-empty, stripped strings."""
    if not isinstance(v, list):
        return []
    out = []
    for item in v:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            out.append(text)
    return out
