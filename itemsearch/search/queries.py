"""
Statement builders for the items table.

Every value (vectors, limits, thresholds, filters) is a bound parameter. Vectors
travel as pgvector text and are cast server-side with CAST(... AS VECTOR), so
a dimension mismatch is reported by the database.
"""

from collections.abc import Sequence
from decimal import Decimal

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    Delete,
    Float,
    Insert,
    Select,
    Text,
    Update,
    bindparam,
    cast,
    delete,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.sql.elements import ColumnElement

from itemsearch.items.models import Item
from itemsearch.items.schemas import ItemCreate, SimilarityFilters
from itemsearch.search.codec import encode
from itemsearch.search.metrics import DistanceMetric

items = Item.__table__


def item_columns() -> list[ColumnElement]:
    """Columns every item query returns; the embedding comes back as text."""
    return [
        items.c.id,
        items.c.name,
        items.c.category,
        items.c.price,
        cast(items.c.embedding, Text).label("embedding"),
        items.c.created_at,
    ]


def vector_param(name: str, vector: Sequence[float] | None) -> ColumnElement:
    """Bind a vector as text and cast it to the pgvector type."""
    return cast(bindparam(name, value=encode(vector), type_=Text), Vector())


def distance(metric: DistanceMetric, query_vector: ColumnElement) -> ColumnElement[float]:
    """Distance between the embedding column and the query vector."""
    return items.c.embedding.op(metric.operator, return_type=Float)(query_vector)


def filter_conditions(filters: SimilarityFilters | None) -> list[ColumnElement[bool]]:
    """Translate filters into WHERE conditions."""
    if filters is None:
        return []

    conditions = []
    if filters.category is not None:
        conditions.append(items.c.category == filters.category)

    if filters.min_price is not None and filters.max_price is not None:
        conditions.append(items.c.price.between(filters.min_price, filters.max_price))
    elif filters.max_price is not None:
        conditions.append(items.c.price < filters.max_price)
    elif filters.min_price is not None:
        conditions.append(items.c.price >= filters.min_price)

    return conditions


def similar_items(
    metric: DistanceMetric,
    query_vector: Sequence[float],
    limit: int,
    filters: SimilarityFilters | None = None,
) -> Select:
    """
    Top-K items ordered by distance to the query vector.

    Args:
        metric: Distance function to rank by
        query_vector: Search vector
        limit: Maximum rows to return
        filters: Optional category / price filters

    Returns:
        SELECT of item columns plus a "distance" column, ascending
    """
    dist = distance(metric, vector_param("query_vector", query_vector)).label("distance")

    return (
        select(*item_columns(), dist)
        .where(items.c.embedding.is_not(None), *filter_conditions(filters))
        .order_by(dist)
        .limit(limit)
    )


def items_within_threshold(
    metric: DistanceMetric, query_vector: Sequence[float], threshold: float
) -> Select:
    """Items whose distance is strictly below the threshold; no LIMIT."""
    dist_expr = distance(metric, vector_param("query_vector", query_vector))
    dist = dist_expr.label("distance")

    return (
        select(*item_columns(), dist)
        .where(dist_expr < bindparam("threshold", value=threshold, type_=Float))
        .order_by(dist)
    )


def compare_all_metrics(query_vector: Sequence[float], limit: int) -> Select:
    """Every metric side by side, ordered by L2 distance."""
    vector = vector_param("query_vector", query_vector)
    columns = {
        metric: distance(metric, vector).label(metric.column_label)
        for metric in DistanceMetric
    }

    return (
        select(*item_columns(), *columns.values())
        .where(items.c.embedding.is_not(None))
        .order_by(columns[DistanceMetric.L2])
        .limit(limit)
    )


def item_by_id(item_id: int) -> Select:
    return select(*item_columns()).where(items.c.id == item_id)


def all_items() -> Select:
    return select(*item_columns()).order_by(items.c.name)


def items_in_category(category: str) -> Select:
    return select(*item_columns()).where(items.c.category == category).order_by(items.c.name)


def items_under_price(max_price: Decimal) -> Select:
    return select(*item_columns()).where(items.c.price < max_price).order_by(items.c.price)


def category_counts() -> Select:
    return (
        select(items.c.category, func.count().label("item_count"))
        .group_by(items.c.category)
        .order_by(items.c.category)
    )


def _item_values(data: ItemCreate) -> dict:
    return {
        "name": data.name,
        "category": data.category,
        "price": data.price,
        # "embedding" itself is reserved for the VALUES/SET clause
        "embedding": vector_param("embedding_text", data.embedding),
    }


def insert_item(data: ItemCreate) -> Insert:
    return insert(items).values(**_item_values(data)).returning(*item_columns())


def update_item(item_id: int, data: ItemCreate) -> Update:
    # created_at is never part of the SET list
    return (
        update(items)
        .where(items.c.id == item_id)
        .values(**_item_values(data))
        .returning(*item_columns())
    )


def delete_item(item_id: int) -> Delete:
    return delete(items).where(items.c.id == item_id)
