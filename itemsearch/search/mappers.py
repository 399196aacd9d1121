"""Row mappers turning result mappings into records."""

from collections.abc import Mapping
from datetime import UTC, datetime
from numbers import Real
from typing import Any

from pydantic import ValidationError

from itemsearch.core.exceptions import MappingError, ParseError
from itemsearch.items.schemas import (
    CategoryCount,
    ItemRead,
    ItemWithAllDistances,
    ItemWithDistance,
)
from itemsearch.search.codec import decode
from itemsearch.search.metrics import DistanceMetric

ITEM_COLUMNS = ("id", "name", "category", "price", "embedding", "created_at")


def _column(row: Mapping[str, Any], name: str) -> Any:
    try:
        return row[name]
    except KeyError:
        raise MappingError(
            f"Result row is missing column '{name}'",
            details={"column": name, "available": sorted(row.keys())},
        ) from None


def _float_column(row: Mapping[str, Any], name: str) -> float:
    value = _column(row, name)
    if isinstance(value, bool) or not isinstance(value, Real):
        raise MappingError(
            f"Column '{name}' is not numeric",
            details={"column": name, "type": type(value).__name__},
        )
    return float(value)


def map_item(row: Mapping[str, Any]) -> ItemRead:
    """Build an ItemRead from the standard item columns."""
    values = {name: _column(row, name) for name in ITEM_COLUMNS}

    embedding = values["embedding"]
    if embedding is not None and not isinstance(embedding, str):
        raise MappingError(
            "Column 'embedding' must be selected as text",
            details={"column": "embedding", "type": type(embedding).__name__},
        )
    try:
        values["embedding"] = decode(embedding)
    except ParseError as e:
        raise MappingError(
            "Stored embedding could not be decoded", details=e.details
        ) from e

    created_at = values["created_at"]
    if isinstance(created_at, datetime) and created_at.tzinfo is None:
        values["created_at"] = created_at.replace(tzinfo=UTC)

    try:
        return ItemRead.model_validate(values)
    except ValidationError as e:
        raise MappingError(
            "Result row does not match the item shape",
            details={"errors": e.errors(include_url=False, include_input=False)},
        ) from e


def map_item_with_distance(row: Mapping[str, Any]) -> ItemWithDistance:
    return ItemWithDistance(item=map_item(row), distance=_float_column(row, "distance"))


def map_item_with_all_distances(row: Mapping[str, Any]) -> ItemWithAllDistances:
    return ItemWithAllDistances(
        item=map_item(row),
        **{
            metric.column_label: _float_column(row, metric.column_label)
            for metric in DistanceMetric
        },
    )


def map_category_count(row: Mapping[str, Any]) -> CategoryCount:
    category = _column(row, "category")
    count = _column(row, "item_count")
    if category is not None and not isinstance(category, str):
        raise MappingError(
            "Column 'category' is not text", details={"column": "category"}
        )
    if isinstance(count, bool) or not isinstance(count, int):
        raise MappingError(
            "Column 'item_count' is not an integer", details={"column": "item_count"}
        )
    return CategoryCount(category=category, count=count)
