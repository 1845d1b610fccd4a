"""Query string helpers shared by adapters and diagnostic stages."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Literal
from urllib.parse import quote, quote_plus

QueryEncoding = Literal["www_form", "rfc3986"]

QUERY_ENCODINGS: tuple[str, ...] = ("www_form", "rfc3986")


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def encode_pair(key: Any, value: Any) -> list[tuple[str, str]]:
    """Flatten one query pair into wire pairs.

    Nested mappings become ``key[sub]`` pairs and lists become ``key[]`` pairs,
    recursively, so ``("a", {"b": [1, 2]})`` yields ``a[b][]=1`` and
    ``a[b][]=2``.
    """
    name = _to_text(key)
    if isinstance(value, Mapping):
        pairs: list[tuple[str, str]] = []
        for sub_key, sub_value in value.items():
            pairs.extend(encode_pair(f"{name}[{_to_text(sub_key)}]", sub_value))
        return pairs
    if isinstance(value, list | tuple):
        pairs = []
        for item in value:
            pairs.extend(encode_pair(f"{name}[]", item))
        return pairs
    return [(name, _to_text(value))]


def encode_pairs(query: Iterable[tuple[Any, Any]] | Mapping[Any, Any]) -> list[tuple[str, str]]:
    """Flatten every pair of ``query``, preserving order."""
    items = query.items() if isinstance(query, Mapping) else query
    pairs: list[tuple[str, str]] = []
    for key, value in items:
        pairs.extend(encode_pair(key, value))
    return pairs


def encode_query(
    query: Iterable[tuple[Any, Any]] | Mapping[Any, Any],
    encoding: str = "www_form",
) -> str:
    """Encode ``query`` as a query string.

    Args:
        query: Ordered pairs (or a mapping) to encode.
        encoding: ``"www_form"`` encodes spaces as ``+``; ``"rfc3986"``
            percent-encodes them as ``%20``.

    Raises:
        ValueError: If ``encoding`` is not a supported encoding.
    """
    if encoding == "www_form":
        quote_fn = quote_plus
    elif encoding == "rfc3986":
        quote_fn = quote
    else:
        raise ValueError(
            f"Invalid query encoding: {encoding!r}. Must be one of: {', '.join(QUERY_ENCODINGS)}"
        )
    return "&".join(
        f"{quote_fn(k, safe='')}={quote_fn(v, safe='')}" for k, v in encode_pairs(query)
    )


def build_url(
    url: str,
    query: Iterable[tuple[Any, Any]] | Mapping[Any, Any],
    encoding: str = "www_form",
) -> str:
    """Append the encoded ``query`` to ``url``."""
    encoded = encode_query(query, encoding)
    if not encoded:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{encoded}"
