from datetime import datetime
from decimal import Decimal

from pgvector.sqlalchemy import Vector
from sqlalchemy import Identity, Index, Numeric, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from itemsearch.config.settings import settings
from itemsearch.infra.database import Base


class Item(Base):
    """Catalogue item with a fixed-length embedding."""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Identity(), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(Text)
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))

    # Dimension must match whatever the table was created with; the database
    # rejects mismatched vectors, nothing checks it in memory.
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(settings.embedding_dimension)
    )

    # Set once by the server, never part of an UPDATE
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("items_category_idx", "category"),)

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, name={self.name!r}, category={self.category!r})>"
