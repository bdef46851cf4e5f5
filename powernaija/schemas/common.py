"""Shared response shapes."""

import math
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit))


def envelope(data: Any = None, message: str | None = None) -> dict:
    """Wrap a payload in the ``{success, message?, data}`` envelope."""
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, mode="json")
    elif isinstance(data, list):
        data = [
            item.model_dump(by_alias=True, mode="json") if isinstance(item, BaseModel) else item
            for item in data
        ]
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    body["data"] = data
    return body


def paginated(items: list, page: int, limit: int, total: int) -> dict:
    """Envelope for a page of results, with the pagination block beside ``data``."""
    body = envelope(items)
    body["pagination"] = Pagination.build(page, limit, total).model_dump(by_alias=True)
    return body
