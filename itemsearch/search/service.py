"""
Similarity search service for the items table.

Combines the statement builders with the row mappers. Each call is a single
round trip through the executor; nothing is cached between calls.
"""

import math
from collections.abc import Sequence
from decimal import Decimal

from itemsearch.config.logging import get_logger
from itemsearch.core.exceptions import InvalidArgumentError, NotFoundError
from itemsearch.infra.executor import QueryExecutor
from itemsearch.items.schemas import (
    CategoryCount,
    ItemCreate,
    ItemRead,
    ItemWithAllDistances,
    ItemWithDistance,
    SimilarityFilters,
)
from itemsearch.search import queries
from itemsearch.search.codec import coerce_query_vector, format_for_log
from itemsearch.search.mappers import (
    map_category_count,
    map_item,
    map_item_with_all_distances,
    map_item_with_distance,
)
from itemsearch.search.metrics import DistanceMetric

logger = get_logger(__name__)

QueryVector = str | Sequence[float]


def _check_limit(limit: int) -> None:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise InvalidArgumentError(
            "limit must be a positive integer", details={"limit": repr(limit)}
        )


def _check_filters(filters: SimilarityFilters | None) -> SimilarityFilters:
    if filters is None or filters.is_empty:
        raise InvalidArgumentError("At least one filter value is required")
    if filters.category is not None and not filters.category:
        raise InvalidArgumentError("category filter must not be empty")
    if (
        filters.min_price is not None
        and filters.max_price is not None
        and filters.min_price > filters.max_price
    ):
        raise InvalidArgumentError(
            "min_price must not exceed max_price",
            details={"min_price": str(filters.min_price), "max_price": str(filters.max_price)},
        )
    return filters


class SimilarityService:
    """
    Nearest-neighbour queries over item embeddings.

    Storage failures raise StorageError from the executor and are not retried.
    """

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    async def find_similar(
        self, metric: DistanceMetric, query_vector: QueryVector, limit: int
    ) -> list[ItemRead]:
        """
        Find the items closest to a query vector.

        Args:
            metric: Distance function to rank by
            query_vector: pgvector text or a sequence of numbers
            limit: Maximum items to return

        Returns:
            Items ordered from most to least similar

        Raises:
            InvalidVectorError: If the query vector cannot be decoded
            InvalidArgumentError: If limit is not positive
        """
        results = await self.find_similar_with_distance(metric, query_vector, limit)
        return [result.item for result in results]

    async def find_similar_with_distance(
        self, metric: DistanceMetric, query_vector: QueryVector, limit: int
    ) -> list[ItemWithDistance]:
        """Like find_similar, keeping each item's distance."""
        vector = coerce_query_vector(query_vector)
        _check_limit(limit)

        rows = await self.executor.fetch_all(queries.similar_items(metric, vector, limit))
        results = [map_item_with_distance(row) for row in rows]

        logger.debug(
            "Similarity search",
            operation="find_similar",
            metric=metric.value,
            limit=limit,
            query_vector=format_for_log(vector),
            results=len(results),
        )
        return results

    async def find_within_threshold(
        self, metric: DistanceMetric, query_vector: QueryVector, threshold: float
    ) -> list[ItemWithDistance]:
        """
        Find every item closer than a threshold.

        The result size is unbounded; the threshold replaces the limit.
        """
        vector = coerce_query_vector(query_vector)
        if (
            isinstance(threshold, bool)
            or not isinstance(threshold, int | float)
            or not math.isfinite(threshold)
        ):
            raise InvalidArgumentError(
                "threshold must be a finite number", details={"threshold": repr(threshold)}
            )

        rows = await self.executor.fetch_all(
            queries.items_within_threshold(metric, vector, float(threshold))
        )
        results = [map_item_with_distance(row) for row in rows]

        logger.debug(
            "Similarity search",
            operation="find_within_threshold",
            metric=metric.value,
            threshold=threshold,
            query_vector=format_for_log(vector),
            results=len(results),
        )
        return results

    async def find_similar_filtered(
        self,
        metric: DistanceMetric,
        query_vector: QueryVector,
        limit: int,
        filters: SimilarityFilters,
    ) -> list[ItemRead]:
        """
        Find the closest items among those matching category / price filters.

        Args:
            metric: Distance function to rank by
            query_vector: pgvector text or a sequence of numbers
            limit: Maximum items to return
            filters: At least one of category, min_price, max_price

        Returns:
            Matching items ordered from most to least similar
        """
        results = await self.find_similar_filtered_with_distance(
            metric, query_vector, limit, filters
        )
        return [result.item for result in results]

    async def find_similar_filtered_with_distance(
        self,
        metric: DistanceMetric,
        query_vector: QueryVector,
        limit: int,
        filters: SimilarityFilters,
    ) -> list[ItemWithDistance]:
        vector = coerce_query_vector(query_vector)
        _check_limit(limit)
        _check_filters(filters)

        rows = await self.executor.fetch_all(
            queries.similar_items(metric, vector, limit, filters)
        )
        results = [map_item_with_distance(row) for row in rows]

        logger.debug(
            "Similarity search",
            operation="find_similar_filtered",
            metric=metric.value,
            limit=limit,
            filters=filters.model_dump(exclude_none=True, mode="json"),
            query_vector=format_for_log(vector),
            results=len(results),
        )
        return results

    async def compare_all_metrics(
        self, query_vector: QueryVector, limit: int
    ) -> list[ItemWithAllDistances]:
        """Distances under every metric for the items nearest by L2."""
        vector = coerce_query_vector(query_vector)
        _check_limit(limit)

        rows = await self.executor.fetch_all(queries.compare_all_metrics(vector, limit))
        results = [map_item_with_all_distances(row) for row in rows]

        logger.debug(
            "Similarity search",
            operation="compare_all_metrics",
            limit=limit,
            query_vector=format_for_log(vector),
            results=len(results),
        )
        return results

    # Plain lookups and writes

    async def get_item(self, item_id: int) -> ItemRead | None:
        rows = await self.executor.fetch_all(queries.item_by_id(item_id))
        return map_item(rows[0]) if rows else None

    async def list_items(self) -> list[ItemRead]:
        rows = await self.executor.fetch_all(queries.all_items())
        return [map_item(row) for row in rows]

    async def find_by_category(self, category: str) -> list[ItemRead]:
        rows = await self.executor.fetch_all(queries.items_in_category(category))
        return [map_item(row) for row in rows]

    async def find_under_price(self, max_price: Decimal) -> list[ItemRead]:
        rows = await self.executor.fetch_all(queries.items_under_price(max_price))
        return [map_item(row) for row in rows]

    async def count_by_category(self) -> list[CategoryCount]:
        rows = await self.executor.fetch_all(queries.category_counts())
        return [map_category_count(row) for row in rows]

    async def save(self, item: ItemCreate, item_id: int | None = None) -> ItemRead:
        """Insert an item, or replace the fields of an existing one."""
        if item_id is None:
            rows = await self.executor.fetch_all(queries.insert_item(item))
        else:
            rows = await self.executor.fetch_all(queries.update_item(item_id, item))
            if not rows:
                raise NotFoundError("Item not found", details={"item_id": item_id})

        saved = map_item(rows[0])
        logger.info("Item saved", item_id=saved.id, name=saved.name, updated=item_id is not None)
        return saved

    async def delete(self, item_id: int) -> bool:
        """Delete an item; False when there was nothing to delete."""
        deleted = await self.executor.execute(queries.delete_item(item_id))
        if deleted:
            logger.info("Item deleted", item_id=item_id)
        return deleted > 0
