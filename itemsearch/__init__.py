"""Vector similarity queries over a pgvector-backed items table."""

__version__ = "1.0.0"
