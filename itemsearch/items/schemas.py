import math
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ItemRead(BaseModel):
    """Item as read back from the items table."""

    # Rows come straight from the driver, so no coercion
    model_config = ConfigDict(strict=True, frozen=True)

    id: int
    name: str
    category: str | None
    price: Decimal | None
    embedding: list[float] | None
    created_at: datetime


class ItemCreate(BaseModel):
    """Schema for inserting or replacing an item."""

    name: str = Field(..., min_length=1, description="Item name")
    category: str | None = Field(default=None, description="Grouping key")
    price: Decimal | None = Field(
        default=None, max_digits=10, decimal_places=2, description="Unit price"
    )
    embedding: list[float] | None = Field(
        default=None, description="Embedding with the table's dimension"
    )

    @field_validator("embedding")
    @classmethod
    def validate_embedding(cls, v):
        if v is None:
            return v
        if not v:
            raise ValueError("embedding must have at least one dimension")
        if not all(math.isfinite(x) for x in v):
            raise ValueError("embedding values must be finite")
        return v


class ItemWithDistance(BaseModel):
    """An item paired with its distance to the query vector."""

    model_config = ConfigDict(frozen=True)

    item: ItemRead
    distance: float


class ItemWithAllDistances(BaseModel):
    """An item with its distance to the query vector under every metric."""

    model_config = ConfigDict(frozen=True)

    item: ItemRead
    l2_distance: float
    cosine_distance: float
    neg_inner_product: float
    l1_distance: float


class CategoryCount(BaseModel):
    """Number of items in one category."""

    model_config = ConfigDict(frozen=True)

    category: str | None
    count: int


class SimilarityFilters(BaseModel):
    """Row filters applied before ranking by distance."""

    category: str | None = Field(default=None, description="Exact category match")
    min_price: Decimal | None = Field(default=None, description="Inclusive lower price bound")
    max_price: Decimal | None = Field(
        default=None,
        description="Price ceiling; exclusive on its own, inclusive together with min_price",
    )

    @property
    def is_empty(self) -> bool:
        return self.category is None and self.min_price is None and self.max_price is None
