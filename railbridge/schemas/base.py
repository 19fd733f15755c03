"""Base model and primitive types shared by all railbridge schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

X402_VERSION = 2

# CAIP-2 network identifier, e.g. "eip155:84532"
Network = str


class BaseX402Model(BaseModel):
    """Base model serialised with camelCase aliases on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to the JSON-ready camelCase form used by HTTP responses."""
        return self.model_dump(by_alias=True, exclude_none=True)
