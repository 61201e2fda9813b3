"""Query-string conventions shared by list routes."""

import json
from dataclasses import dataclass
from typing import Annotated, Any

from fastapi import Depends, Query

from livedesk.config import AppConfig
from livedesk.utils.dependencies import get_settings
from livedesk.utils.exceptions import BadRequestError


@dataclass(frozen=True)
class Pagination:
    offset: int
    count: int


@dataclass(frozen=True)
class JsonQuery:
    sort: dict[str, int] | None
    fields: dict[str, int] | None
    query: dict[str, Any]


def get_pagination_items(
    config: Annotated[AppConfig, Depends(get_settings)],
    offset: int = Query(0, ge=0),
    count: int | None = Query(None, ge=1),
) -> Pagination:
    if count is None:
        count = config.api_default_count
    return Pagination(offset=offset, count=min(count, config.api_upper_count_limit))


def _parse_json_object(name: str, raw: str | None) -> dict[str, Any] | None:
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise BadRequestError(
            f'Invalid {name} parameter provided "{raw}": {e.msg}'
        ) from e
    if not isinstance(value, dict):
        raise BadRequestError(f"The {name} parameter must be a JSON object.")
    return value


def _parse_direction_map(name: str, raw: str | None) -> dict[str, int] | None:
    value = _parse_json_object(name, raw)
    if value is None:
        return None
    for key, direction in value.items():
        if direction not in (0, 1, -1) or isinstance(direction, bool):
            raise BadRequestError(
                f'Invalid {name} value for "{key}", expected 1, 0 or -1.'
            )
    return value


def parse_json_query(
    sort: str | None = Query(None, description="JSON object, e.g. {\"_updatedAt\": -1}"),
    fields: str | None = Query(None, description="JSON projection, e.g. {\"method\": 1}"),
    query: str | None = Query(None, description="JSON MongoDB filter"),
) -> JsonQuery:
    return JsonQuery(
        sort=_parse_direction_map("sort", sort),
        fields=_parse_direction_map("fields", fields),
        query=_parse_json_object("query", query) or {},
    )
