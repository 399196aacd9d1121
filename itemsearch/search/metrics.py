from enum import Enum


class DistanceMetric(str, Enum):
    """Distance functions supported by pgvector."""

    L2 = "l2"
    COSINE = "cosine"
    INNER_PRODUCT = "inner_product"
    L1 = "l1"

    @property
    def operator(self) -> str:
        """pgvector operator computing this distance."""
        return _OPERATORS[self]

    @property
    def column_label(self) -> str:
        """Column name used when every metric is selected side by side."""
        return _COLUMN_LABELS[self]


# <#> returns the negative inner product, so ascending order still means
# "most similar first" for every metric.
_OPERATORS = {
    DistanceMetric.L2: "<->",
    DistanceMetric.COSINE: "<=>",
    DistanceMetric.INNER_PRODUCT: "<#>",
    DistanceMetric.L1: "<+>",
}

_COLUMN_LABELS = {
    DistanceMetric.L2: "l2_distance",
    DistanceMetric.COSINE: "cosine_distance",
    DistanceMetric.INNER_PRODUCT: "neg_inner_product",
    DistanceMetric.L1: "l1_distance",
}
