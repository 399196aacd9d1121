"""
Text codec for pgvector values.

pgvector reads and writes vectors as ``[v0,v1,...]``. Queries send the encoded
text as a bound parameter and cast it server-side, and the row mapper decodes
the ``embedding::text`` column back into floats.
"""

import math
import re
from collections.abc import Sequence
from numbers import Real

from itemsearch.core.exceptions import InvalidArgumentError, InvalidVectorError, ParseError

# Plain decimal literals only: float() would also take "nan", "inf" and "1_0"
_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def encode(vector: Sequence[float] | None) -> str | None:
    """
    Encode a vector as pgvector text.

    Uses repr() for each component so the text round-trips exactly.

    Args:
        vector: Vector components, or None

    Returns:
        Text such as "[1.0,0.5,0.2,0.1]", or None for None
    """
    if vector is None:
        return None

    parts = []
    for index, value in enumerate(vector):
        number = float(value)
        if not math.isfinite(number):
            raise InvalidArgumentError(
                "Vector values must be finite",
                details={"index": index, "value": str(value)},
            )
        parts.append(repr(number))

    return "[" + ",".join(parts) + "]"


def decode(text: str | None) -> list[float] | None:
    """
    Decode pgvector text into a list of floats.

    Args:
        text: Text such as "[1.0, 0.5, 0.2, 0.1]"; brackets are optional

    Returns:
        The components, or None for None/blank input

    Raises:
        ParseError: If the brackets are unbalanced or a segment is not a number
    """
    if text is None:
        return None

    cleaned = text.strip()
    if not cleaned:
        return None

    opens, closes = cleaned.startswith("["), cleaned.endswith("]")
    if opens != closes:
        raise ParseError("Unbalanced brackets in vector", details={"input": text})
    if opens:
        cleaned = cleaned[1:-1]

    vector = []
    for index, segment in enumerate(cleaned.split(",")):
        segment = segment.strip()
        if not _NUMBER.fullmatch(segment):
            raise ParseError(
                f"Invalid vector component: '{segment}'",
                details={"input": text, "index": index, "segment": segment},
            )
        value = float(segment)
        if math.isinf(value):
            raise ParseError(
                f"Vector component out of range: '{segment}'",
                details={"input": text, "index": index, "segment": segment},
            )
        vector.append(value)

    return vector


def format_for_log(vector: Sequence[float] | None) -> str:
    """Render a vector with one decimal place, for log lines only."""
    if vector is None:
        return "null"
    return "[" + ", ".join(f"{v:.1f}" for v in vector) + "]"


def coerce_query_vector(value: str | Sequence[float] | None) -> list[float]:
    """
    Turn caller input into a search vector.

    Args:
        value: pgvector text or a sequence of numbers

    Returns:
        A non-empty list of finite floats

    Raises:
        InvalidVectorError: If the input is missing, empty or not numeric
    """
    if isinstance(value, str):
        try:
            vector = decode(value)
        except ParseError as e:
            raise InvalidVectorError(e.message, details=e.details) from e
    elif value is None:
        vector = None
    elif isinstance(value, (bytes, bytearray)) or not isinstance(value, Sequence):
        raise InvalidVectorError(
            "Query vector must be text or a sequence of numbers",
            details={"type": type(value).__name__},
        )
    else:
        vector = []
        for index, component in enumerate(value):
            # bool is a Real subclass, reject it explicitly
            if isinstance(component, bool) or not isinstance(component, Real):
                raise InvalidVectorError(
                    "Query vector components must be numbers",
                    details={"index": index, "value": repr(component)},
                )
            if not math.isfinite(component):
                raise InvalidVectorError(
                    "Query vector components must be finite",
                    details={"index": index, "value": repr(component)},
                )
            vector.append(float(component))

    if not vector:
        raise InvalidVectorError("Query vector is required")

    return vector
